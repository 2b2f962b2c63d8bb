"""Local JSON persistence for records, alerts and the spending fingerprint.

Each collection lives in its own file under the data directory:

- records.json      scored records in processing order
- alerts.json       alerts, newest batch last
- fingerprint.json  the current spending fingerprint

Writes go to a temporary file that then replaces the target, so an
interrupted write never leaves a truncated file behind. The store is not
thread-safe; callers serialize writes.
"""

import json
import os
import tempfile
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from spend_sentinel.models.alert import Alert
from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import Record, RiskLevel
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

RECORDS_FILE = "records.json"
ALERTS_FILE = "alerts.json"
FINGERPRINT_FILE = "fingerprint.json"


class StorageError(Exception):
    """Exception raised when a data file cannot be read or written."""

    def __init__(self, message: str, file_path: Optional[Path] = None):
        """Initialize StorageError.

        Args:
            message: Error message.
            file_path: Optional path to the offending file.
        """
        self.file_path = file_path
        super().__init__(message)


class AlertStateError(Exception):
    """Exception raised when an alert lifecycle change refers to an unknown alert."""


class LocalStore:
    """File-backed store for the spending analysis state."""

    def __init__(self, data_dir: Path):
        """Initialize the store.

        Args:
            data_dir: Directory holding the JSON files. Created on first write.
        """
        self.data_dir = data_dir

    # ==================== FINGERPRINT ====================

    def load_fingerprint(self) -> Fingerprint:
        """Load the stored fingerprint, or an empty one if none is saved."""
        data = self._read(FINGERPRINT_FILE)
        if data is None:
            logger.debug("No stored fingerprint, starting from empty baseline")
            return Fingerprint.empty()
        if not isinstance(data, dict):
            raise StorageError("Fingerprint file must contain an object", self._path(FINGERPRINT_FILE))
        return Fingerprint.from_dict(data)

    def save_fingerprint(self, fingerprint: Fingerprint) -> None:
        self._write(FINGERPRINT_FILE, fingerprint.to_dict())
        logger.debug(f"Saved fingerprint ({fingerprint.total_transactions} transactions)")

    # ==================== RECORDS ====================

    def list_records(self) -> list[Record]:
        """Return all records in the order they were processed."""
        return [Record.from_dict(item) for item in self._read_list(RECORDS_FILE)]

    def add_records(self, records: list[Record]) -> None:
        """Append records after the existing ones."""
        if not records:
            return
        existing = self._read_list(RECORDS_FILE)
        existing.extend(r.to_dict() for r in records)
        self._write(RECORDS_FILE, existing)
        logger.info(f"Stored {len(records)} records ({len(existing)} total)")

    def replace_records(self, records: list[Record]) -> None:
        """Overwrite all records, e.g. after a rescore."""
        self._write(RECORDS_FILE, [r.to_dict() for r in records])
        logger.info(f"Replaced records ({len(records)} total)")

    def filter_records(
        self,
        category: Optional[Category] = None,
        risk_level: Optional[RiskLevel] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Record]:
        """Return records matching all given filters, newest first.

        Args:
            category: Only records in this category.
            risk_level: Only records at this risk level.
            start: Only records at or after this time.
            end: Only records at or before this time.

        Returns:
            Matching records sorted by timestamp descending.
        """
        matches = [
            r
            for r in self.list_records()
            if (category is None or r.category is category)
            and (risk_level is None or r.risk_level is risk_level)
            and (start is None or r.timestamp >= start)
            and (end is None or r.timestamp <= end)
        ]
        return sorted(matches, key=lambda r: r.timestamp, reverse=True)

    # ==================== ALERTS ====================

    def list_alerts(
        self,
        unread_only: bool = False,
        include_dismissed: bool = False,
        risk_level: Optional[RiskLevel] = None,
    ) -> list[Alert]:
        """Return stored alerts, newest first.

        Args:
            unread_only: Skip alerts already marked read.
            include_dismissed: Include dismissed alerts.
            risk_level: Only alerts at this risk level.

        Returns:
            Matching alerts sorted by detection time descending.
        """
        alerts = [Alert.from_dict(item) for item in self._read_list(ALERTS_FILE)]
        matches = [
            a
            for a in alerts
            if (include_dismissed or not a.is_dismissed)
            and (not unread_only or not a.is_read)
            and (risk_level is None or a.risk_level is risk_level)
        ]
        return sorted(matches, key=lambda a: a.detected_at, reverse=True)

    def add_alerts(self, alerts: list[Alert]) -> None:
        if not alerts:
            return
        existing = self._read_list(ALERTS_FILE)
        existing.extend(a.to_dict() for a in alerts)
        self._write(ALERTS_FILE, existing)
        logger.info(f"Stored {len(alerts)} alerts")

    def replace_alerts(self, alerts: list[Alert]) -> None:
        self._write(ALERTS_FILE, [a.to_dict() for a in alerts])
        logger.info(f"Replaced alerts ({len(alerts)} total)")

    def mark_alert_read(self, alert_id: str) -> Alert:
        """Mark an alert read.

        Raises:
            AlertStateError: If no alert has this id.
        """
        return self._update_alert(alert_id, Alert.mark_read)

    def dismiss_alert(self, alert_id: str) -> Alert:
        """Dismiss an alert. Dismissal is permanent.

        Raises:
            AlertStateError: If no alert has this id.
        """
        return self._update_alert(alert_id, Alert.dismiss)

    def alert_counts_by_level(self) -> dict[RiskLevel, int]:
        """Count non-dismissed alerts per risk level."""
        counts = Counter(a.risk_level for a in self.list_alerts())
        return dict(counts)

    # ==================== UTILITY ====================

    def clear(self) -> None:
        """Delete all records and alerts and reset the fingerprint."""
        self._write(RECORDS_FILE, [])
        self._write(ALERTS_FILE, [])
        self._write(FINGERPRINT_FILE, Fingerprint.empty().to_dict())
        logger.info(f"Cleared all data in {self.data_dir}")

    def _update_alert(self, alert_id: str, change: Any) -> Alert:
        alerts = [Alert.from_dict(item) for item in self._read_list(ALERTS_FILE)]
        for alert in alerts:
            if alert.id == alert_id:
                change(alert)
                self._write(ALERTS_FILE, [a.to_dict() for a in alerts])
                return alert
        raise AlertStateError(f"Unknown alert id: {alert_id}")

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read(self, name: str) -> Any:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt data file {path}: {e}", path) from e
        except OSError as e:
            raise StorageError(f"Cannot read {path}: {e}", path) from e

    def _read_list(self, name: str) -> list[dict[str, Any]]:
        data = self._read(name)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError(f"{name} must contain a list", self._path(name))
        return data

    def _write(self, name: str, data: Any) -> None:
        path = self._path(name)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}", path) from e
