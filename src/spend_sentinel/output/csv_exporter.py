"""CSV exporter for scored records, alerts and the insight summary."""

import csv
from pathlib import Path
from typing import Optional

from spend_sentinel.config import Config
from spend_sentinel.models.alert import Alert
from spend_sentinel.models.record import Record
from spend_sentinel.models.report import InsightSummary
from spend_sentinel.utils.date_utils import format_timestamp
from spend_sentinel.utils.logging_config import get_logger
from spend_sentinel.utils.sanitize import sanitize_for_csv

logger = get_logger(__name__)

RECORD_HEADERS = [
    "ID", "Timestamp", "Merchant", "Category", "Payment Mode", "Amount",
    "Time Bucket", "Spend Intensity", "Recurring", "Risk Level", "Risk Score",
    "Risk Reason", "Note",
]

ALERT_HEADERS = [
    "Detected At", "Record ID", "Merchant", "Amount", "Alert Type",
    "Risk Level", "Reason", "Suggested Action", "Read", "Dismissed",
]


class CSVExporter:
    """Exports analysis results to CSV files.

    Creates in the output directory:
    - records.csv
    - alerts.csv
    - summary.csv
    """

    def __init__(self, config: Config):
        """Initialize CSV exporter.

        Args:
            config: Application configuration.
        """
        self.config = config
        self.output_config = config.output

    def export(
        self,
        output_dir: Path,
        records: list[Record],
        alerts: list[Alert],
        summary: Optional[InsightSummary] = None,
    ) -> list[Path]:
        """Export all data to CSV files.

        Args:
            output_dir: Directory for the CSV files.
            records: Scored records.
            alerts: Alerts to export.
            summary: Optional pre-computed insight summary.

        Returns:
            List of paths to created CSV files.
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        created_files = [
            self.export_records(output_dir / "records.csv", records),
            self.export_alerts(output_dir / "alerts.csv", alerts, records),
        ]
        if summary is not None:
            created_files.append(self.export_summary(output_dir / "summary.csv", summary))

        logger.info(f"Exported {len(created_files)} CSV files")
        return created_files

    def export_records(self, output_path: Path, records: list[Record]) -> Path:
        """Export scored records, oldest first.

        Args:
            output_path: File to write.
            records: Scored records.

        Returns:
            Path to created file.
        """
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(RECORD_HEADERS)

            for record in sorted(records, key=lambda r: (r.timestamp, r.merchant, r.id)):
                writer.writerow([
                    record.id,
                    format_timestamp(record.timestamp, self.output_config.date_format),
                    sanitize_for_csv(record.merchant),
                    record.category.value,
                    record.payment_mode.value,
                    self._amount(record.amount),
                    record.time_bucket.value,
                    f"{record.spend_intensity:.2f}",
                    "Yes" if record.recurrence_flag else "",
                    record.risk_level.value,
                    f"{record.risk_score:.3f}",
                    sanitize_for_csv(record.risk_reason or ""),
                    sanitize_for_csv(record.note or ""),
                ])

        logger.info(f"Exported {len(records)} records to {output_path}")
        return output_path

    def export_alerts(
        self,
        output_path: Path,
        alerts: list[Alert],
        records: list[Record],
    ) -> Path:
        """Export alerts joined with their record's merchant and amount.

        Args:
            output_path: File to write.
            alerts: Alerts to export.
            records: Records the alerts refer to.

        Returns:
            Path to created file.
        """
        by_id = {r.id: r for r in records}

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(ALERT_HEADERS)

            for alert in alerts:
                record = by_id.get(alert.record_id)
                if record is None:
                    logger.warning(f"Alert {alert.id} refers to unknown record {alert.record_id}")
                writer.writerow([
                    format_timestamp(alert.detected_at, self.output_config.date_format),
                    alert.record_id,
                    sanitize_for_csv(record.merchant) if record else "",
                    self._amount(record.amount) if record else "",
                    alert.alert_type.title,
                    alert.risk_level.value,
                    sanitize_for_csv(alert.reason),
                    sanitize_for_csv(alert.suggested_action),
                    "Yes" if alert.is_read else "",
                    "Yes" if alert.is_dismissed else "",
                ])

        logger.info(f"Exported {len(alerts)} alerts to {output_path}")
        return output_path

    def export_summary(self, output_path: Path, summary: InsightSummary) -> Path:
        """Export the insight summary as label/value rows.

        Args:
            output_path: File to write.
            summary: Pre-computed insight summary.

        Returns:
            Path to created file.
        """
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)

            writer.writerow(["SPENDING BY CATEGORY", ""])
            for category, total in sorted(
                summary.category_spending.items(), key=lambda item: item[0].value
            ):
                writer.writerow([category.value, self._amount(total)])
            writer.writerow(["Total", self._amount(summary.total_spend)])
            writer.writerow([])

            writer.writerow(["BURN RATE", ""])
            writer.writerow(["Last 7 days", self._amount(summary.weekly_spend)])
            writer.writerow(["Last 30 days", self._amount(summary.monthly_spend)])
            writer.writerow(["Daily burn rate", self._amount(summary.daily_burn_rate)])
            writer.writerow([
                "Days remaining",
                "" if summary.days_remaining is None else summary.days_remaining,
            ])
            writer.writerow([])

            writer.writerow(["SUBSCRIPTIONS", ""])
            writer.writerow(["Monthly recurring", self._amount(summary.total_subscriptions)])
            writer.writerow(["Meal equivalent", summary.meal_equivalent])
            writer.writerow([
                "Safe to spend",
                "" if summary.safe_to_spend is None else self._amount(summary.safe_to_spend),
            ])

        logger.info(f"Exported summary to {output_path}")
        return output_path

    def _amount(self, value: float) -> str:
        return f"{value:.{self.output_config.decimal_places}f}"
