"""Excel workbook writer for spending analysis output."""

from pathlib import Path
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from spend_sentinel.config import Config
from spend_sentinel.models.alert import Alert
from spend_sentinel.models.record import Record, RiskLevel
from spend_sentinel.models.report import InsightSummary
from spend_sentinel.output.csv_exporter import ALERT_HEADERS, RECORD_HEADERS
from spend_sentinel.utils.logging_config import get_logger
from spend_sentinel.utils.sanitize import sanitize_for_csv

logger = get_logger(__name__)

RISK_FILLS = {
    RiskLevel.GREEN: "D1FAE5",
    RiskLevel.AMBER: "FEF3C7",
    RiskLevel.RED: "FEE2E2",
}


class ExcelWriter:
    """Writes analysis results to a multi-sheet Excel workbook.

    Generates sheets:
    - Summary
    - Records
    - Alerts
    """

    SHEET_SUMMARY = "Summary"
    SHEET_RECORDS = "Records"
    SHEET_ALERTS = "Alerts"

    def __init__(self, config: Config):
        """Initialize Excel writer.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.output_config = config.output

        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        self.right_aligned = Alignment(horizontal="right")
        self.wrapped = Alignment(wrap_text=True, vertical="top")
        self.money_format = "#,##0." + "0" * self.output_config.decimal_places
        self.risk_fills = {
            level: PatternFill(start_color=color, end_color=color, fill_type="solid")
            for level, color in RISK_FILLS.items()
        }

    def write(
        self,
        output_path: Path,
        records: list[Record],
        alerts: list[Alert],
        summary: Optional[InsightSummary] = None,
    ) -> None:
        """Write all data to an Excel workbook.

        Args:
            output_path: Path for output file.
            records: Scored records.
            alerts: Alerts to include.
            summary: Optional pre-computed insight summary.
        """
        logger.info(f"Writing Excel workbook to {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        if summary is not None:
            self._create_summary_sheet(wb, summary)
        self._create_records_sheet(wb, records)
        self._create_alerts_sheet(wb, alerts, records)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Excel workbook saved: {output_path}")

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
        ws.freeze_panes = "A2"

    def _create_summary_sheet(self, wb: Workbook, summary: InsightSummary) -> None:
        """Create the Summary sheet with category totals and burn-rate figures."""
        ws = wb.create_sheet(self.SHEET_SUMMARY)
        symbol = self.output_config.currency_symbol

        row = 1
        ws.cell(row=row, column=1, value="SPENDING BY CATEGORY").font = Font(bold=True, size=14)
        row += 1
        for category, total in sorted(
            summary.category_spending.items(), key=lambda item: item[0].value
        ):
            ws.cell(row=row, column=1, value=category.value)
            ws.cell(row=row, column=2, value=total).number_format = self.money_format
            row += 1
        ws.cell(row=row, column=1, value="Total").font = Font(bold=True)
        total_cell = ws.cell(row=row, column=2, value=summary.total_spend)
        total_cell.number_format = self.money_format
        total_cell.font = Font(bold=True)
        row += 2

        figures: list[tuple[str, object, bool]] = [
            ("Last 7 days", summary.weekly_spend, True),
            ("Last 30 days", summary.monthly_spend, True),
            ("Daily burn rate", summary.daily_burn_rate, True),
            ("Days remaining", summary.days_remaining, False),
            (f"Monthly recurring ({symbol})", summary.total_subscriptions, True),
            ("Meal equivalent", summary.meal_equivalent, False),
            ("Safe to spend", summary.safe_to_spend, True),
        ]
        for label, value, is_money in figures:
            ws.cell(row=row, column=1, value=label)
            cell = ws.cell(row=row, column=2, value="—" if value is None else value)
            if is_money and value is not None:
                cell.number_format = self.money_format
            cell.alignment = self.right_aligned
            row += 1

        ws.column_dimensions["A"].width = 28
        ws.column_dimensions["B"].width = 16

    def _create_records_sheet(self, wb: Workbook, records: list[Record]) -> None:
        """Create the Records sheet, one row per record with risk colouring."""
        ws = wb.create_sheet(self.SHEET_RECORDS)
        self._write_headers(ws, RECORD_HEADERS)

        ordered = sorted(records, key=lambda r: (r.timestamp, r.merchant, r.id))
        for row, record in enumerate(ordered, 2):
            values = [
                record.id,
                record.timestamp,
                sanitize_for_csv(record.merchant),
                record.category.value,
                record.payment_mode.value,
                record.amount,
                record.time_bucket.value,
                round(record.spend_intensity, 2),
                "Yes" if record.recurrence_flag else "",
                record.risk_level.value,
                round(record.risk_score, 3),
                sanitize_for_csv(record.risk_reason or ""),
                sanitize_for_csv(record.note or ""),
            ]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value)

            ws.cell(row=row, column=2).number_format = "yyyy-mm-dd hh:mm"
            ws.cell(row=row, column=6).number_format = self.money_format
            ws.cell(row=row, column=10).fill = self.risk_fills[record.risk_level]

        widths = [38, 18, 28, 16, 14, 12, 12, 10, 10, 10, 10, 60, 30]
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

        logger.debug(f"Created Records sheet with {len(ordered)} rows")

    def _create_alerts_sheet(
        self,
        wb: Workbook,
        alerts: list[Alert],
        records: list[Record],
    ) -> None:
        """Create the Alerts sheet joined with record merchant and amount."""
        ws = wb.create_sheet(self.SHEET_ALERTS)
        self._write_headers(ws, ALERT_HEADERS)
        by_id = {r.id: r for r in records}

        for row, alert in enumerate(alerts, 2):
            record = by_id.get(alert.record_id)
            values = [
                alert.detected_at,
                alert.record_id,
                sanitize_for_csv(record.merchant) if record else "",
                record.amount if record else None,
                alert.alert_type.title,
                alert.risk_level.value,
                sanitize_for_csv(alert.reason),
                sanitize_for_csv(alert.suggested_action),
                "Yes" if alert.is_read else "",
                "Yes" if alert.is_dismissed else "",
            ]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                if col in (7, 8):
                    cell.alignment = self.wrapped

            ws.cell(row=row, column=1).number_format = "yyyy-mm-dd hh:mm"
            ws.cell(row=row, column=4).number_format = self.money_format
            ws.cell(row=row, column=6).fill = self.risk_fills[alert.risk_level]

        widths = [18, 38, 28, 12, 20, 10, 60, 60, 8, 10]
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

        logger.debug(f"Created Alerts sheet with {len(alerts)} rows")
