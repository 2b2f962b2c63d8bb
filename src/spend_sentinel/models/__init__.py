"""Data models for expense records, fingerprints, alerts, and summaries."""

from spend_sentinel.models.alert import Alert, AlertType
from spend_sentinel.models.category import Category, detect_category
from spend_sentinel.models.fingerprint import (
    Fingerprint,
    RecurrenceFrequency,
    RecurringCost,
)
from spend_sentinel.models.record import (
    PaymentMode,
    RawRecord,
    Record,
    RiskLevel,
    TimeBucket,
)
from spend_sentinel.models.report import InsightSummary

__all__ = [
    "Alert",
    "AlertType",
    "Category",
    "detect_category",
    "Fingerprint",
    "RecurrenceFrequency",
    "RecurringCost",
    "PaymentMode",
    "RawRecord",
    "Record",
    "RiskLevel",
    "TimeBucket",
    "InsightSummary",
]
