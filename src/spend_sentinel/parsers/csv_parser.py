"""CSV parser for expense exports.

Expected column order:
    amount, merchant, date, paymentMode[, category[, note]]

A first row with any cell containing "amount" is treated as a header.
"""

import csv
import io
from pathlib import Path

from spend_sentinel.models.category import Category
from spend_sentinel.models.record import PaymentMode, RawRecord
from spend_sentinel.parsers.base import BaseParser, ParseError, RowError
from spend_sentinel.utils.date_utils import parse_timestamp
from spend_sentinel.utils.decimal_utils import parse_amount, to_float_amount
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

# Maximum CSV file size to prevent memory exhaustion (50 MB)
MAX_CSV_FILE_SIZE = 50 * 1024 * 1024

# Maximum number of rows to prevent memory exhaustion from many small rows
MAX_CSV_ROWS = 500_000

MIN_COLUMNS = 4

SAMPLE_ROWS = [
    ["amount", "merchant", "date", "paymentMode", "category", "note"],
    ["150.50", "Swiggy", "2025-12-28 14:30", "UPI", "Food", "Lunch order"],
    ["50.00", "Metro Card", "2025-12-28 09:15", "Card", "Transport", "Daily commute"],
    ["999.00", "Netflix", "2025-12-01 00:00", "Subscription", "Subscriptions", "Monthly subscription"],
    ["250.00", "Amazon", "2025-12-27 18:45", "UPI", "Shopping", "Books"],
    ["80.00", "Canteen", "2025-12-28 13:00", "Cash", "Food", "Lunch"],
]


class CSVParser(BaseParser):
    """Parser for expense CSV files."""

    def __init__(self, strict: bool = False):
        """Initialize CSV parser.

        Args:
            strict: If True, raise RowError on the first bad row.
                   If False, log warnings and skip bad rows.
        """
        self.strict = strict
        self.row_errors: list[RowError] = []

    @property
    def supported_extensions(self) -> list[str]:
        """Return supported file extensions."""
        return [".csv", ".tsv", ".txt"]

    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the file.

        Args:
            file_path: Path to the file.

        Returns:
            True if the extension is supported and the first line has
            enough columns.
        """
        if not self._check_extension(file_path):
            return False

        first_line = self._peek_line(file_path)
        if not first_line:
            return False
        first_row = next(csv.reader([first_line], delimiter=self._delimiter(file_path)), [])
        return len(first_row) >= MIN_COLUMNS

    def parse(self, file_path: Path) -> list[RawRecord]:
        """Parse a CSV file and return raw records.

        Row-level failures are collected in ``row_errors`` (or raised in
        strict mode).

        Args:
            file_path: Path to the CSV file.

        Returns:
            List of RawRecord objects in file order.

        Raises:
            ParseError: If the file is missing, empty, too large or unreadable.
            RowError: In strict mode, for the first row that fails.
        """
        content = self._read_text(file_path, MAX_CSV_FILE_SIZE)
        records = self.parse_text(content, file_path)

        logger.info(
            f"Parsed {len(records)} records from {file_path.name} "
            f"({len(self.row_errors)} rows skipped)"
        )
        if self.row_errors:
            logger.warning(
                f"{len(self.row_errors)} rows could not be parsed in {file_path.name} "
                f"- use -vv for details"
            )
        return records

    def parse_text(self, content: str, file_path: Path | None = None) -> list[RawRecord]:
        """Parse CSV content already read into memory.

        Args:
            content: CSV text.
            file_path: Source path, used for delimiter choice and messages.

        Returns:
            List of RawRecord objects.

        Raises:
            ParseError: If the content has no rows.
            RowError: In strict mode, for the first row that fails.
        """
        self.row_errors = []
        delimiter = self._delimiter(file_path) if file_path else ","
        rows = list(csv.reader(io.StringIO(content), delimiter=delimiter))

        if not any(self._has_content(row) for row in rows):
            raise ParseError("CSV file is empty", file_path)

        first = next(i for i, row in enumerate(rows) if self._has_content(row))
        start = first + 1 if self._is_header(rows[first]) else first
        records = []

        for line, row in enumerate(rows[start:], start=start + 1):
            if line > MAX_CSV_ROWS:
                raise ParseError(
                    f"File exceeds maximum row limit ({MAX_CSV_ROWS:,} rows). "
                    f"Split file into smaller chunks.",
                    file_path,
                )

            if not self._has_content(row):
                continue

            try:
                records.append(self._parse_row(row, line, file_path))
            except RowError as e:
                if self.strict:
                    raise
                logger.debug(f"Skipping row: {e}")
                self.row_errors.append(e)

        return records

    def _parse_row(self, row: list[str], line: int, file_path: Path | None) -> RawRecord:
        """Parse a single CSV row into a RawRecord.

        Args:
            row: List of cell values.
            line: 1-based line number.
            file_path: Source path for error context.

        Returns:
            RawRecord.

        Raises:
            RowError: If the row is short or a field fails validation.
        """
        if len(row) < MIN_COLUMNS:
            raise RowError(
                f"Expected at least {MIN_COLUMNS} columns, got {len(row)}", line, file_path
            )

        merchant = row[1].strip()
        if not merchant:
            raise RowError("Merchant is empty", line, file_path)

        try:
            amount = to_float_amount(parse_amount(row[0]))
            timestamp = parse_timestamp(row[2])
            payment_mode = PaymentMode.parse(row[3])
        except ValueError as e:
            raise RowError(str(e), line, file_path) from e

        category = None
        if len(row) > 4 and row[4].strip():
            category = Category.parse(row[4])

        note = None
        if len(row) > 5 and row[5].strip():
            note = row[5].strip()

        return RawRecord(
            amount=amount,
            merchant=merchant,
            timestamp=timestamp,
            payment_mode=payment_mode,
            category=category,
            note=note,
            source_line=line,
        )

    def _is_header(self, row: list[str]) -> bool:
        return any("amount" in cell.lower() for cell in row)

    def _has_content(self, row: list[str]) -> bool:
        return any(cell.strip() for cell in row)

    def _delimiter(self, file_path: Path) -> str:
        return "\t" if file_path.suffix.lower() == ".tsv" else ","


def generate_sample_csv() -> str:
    """Generate a sample expense CSV showing the expected layout.

    Returns:
        CSV text with a header and five example rows.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(SAMPLE_ROWS)
    return buffer.getvalue()
