"""Parser interface and errors shared by expense importers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from spend_sentinel.models.record import RawRecord
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)


class ParseError(Exception):
    """Exception raised when a whole file cannot be parsed."""

    def __init__(self, message: str, file_path: Optional[Path] = None):
        """Initialize ParseError.

        Args:
            message: Error message.
            file_path: Optional path to the file that failed.
        """
        self.file_path = file_path
        super().__init__(message)


class RowError(ParseError):
    """Exception raised when a single row cannot be turned into a record."""

    def __init__(self, message: str, line: int, file_path: Optional[Path] = None):
        """Initialize RowError.

        Args:
            message: Error message.
            line: 1-based line number of the row in the file.
            file_path: Optional path to the file containing the row.
        """
        self.line = line
        super().__init__(f"Row {line}: {message}", file_path)


class BaseParser(ABC):
    """Common base for importers that turn a file into RawRecords.

    Implementations declare the extensions they accept, decide from a
    quick look at the file whether they can read it, and parse it into
    validated RawRecords. Category detection is left to the Normalizer.
    """

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """Lowercase file extensions, including the dot."""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        """Whether this parser recognises the file."""

    @abstractmethod
    def parse(self, file_path: Path) -> list[RawRecord]:
        """Parse a file into raw records in file order.

        Raises:
            ParseError: If the file cannot be parsed.
        """

    def _check_extension(self, file_path: Path) -> bool:
        return file_path.suffix.lower() in self.supported_extensions

    def _read_text(self, file_path: Path, max_size: int) -> str:
        """Read a whole text file after existence and size checks.

        A UTF-8 byte order mark is dropped and undecodable bytes are
        replaced rather than failing the import.

        Args:
            file_path: File to read.
            max_size: Largest accepted size in bytes.

        Returns:
            File content.

        Raises:
            ParseError: If the file is missing, too large or unreadable.
        """
        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}", file_path)

        file_size = file_path.stat().st_size
        if file_size > max_size:
            raise ParseError(
                f"File too large ({file_size / 1024 / 1024:.1f} MB). "
                f"Maximum allowed is {max_size / 1024 / 1024:.0f} MB",
                file_path,
            )

        try:
            with open(file_path, encoding="utf-8-sig", errors="replace", newline="") as f:
                return f.read()
        except OSError as e:
            raise ParseError(f"Failed to read {file_path.name}: {e}", file_path) from e

    def _peek_line(self, file_path: Path) -> Optional[str]:
        """First line of a file without its line ending, or None if unreadable."""
        try:
            with open(file_path, encoding="utf-8-sig", errors="replace") as f:
                return f.readline().rstrip("\r\n")
        except OSError as e:
            logger.warning(f"{self.name} could not read {file_path}: {e}")
            return None
