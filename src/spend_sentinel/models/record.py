"""Expense record data models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from spend_sentinel.models.category import Category


class PaymentMode(Enum):
    """How an expense was paid."""

    UPI = "UPI"  # Electronic transfer
    CASH = "Cash"
    CARD = "Card"
    SUBSCRIPTION = "Subscription"

    @classmethod
    def parse(cls, value: "str | PaymentMode") -> "PaymentMode":
        """Resolve a payment mode name case-insensitively.

        Args:
            value: Payment mode name or PaymentMode.

        Returns:
            The matching PaymentMode.

        Raises:
            ValueError: If the name is not a known payment mode.
        """
        if isinstance(value, PaymentMode):
            return value
        wanted = str(value).strip().lower()
        for mode in cls:
            if mode.value.lower() == wanted or mode.name.lower() == wanted:
                return mode
        raise ValueError(f"Unknown payment mode: '{value}'")


class TimeBucket(Enum):
    """Coarse part-of-day classification."""

    MORNING = "morning"  # 05:00-11:59
    AFTERNOON = "afternoon"  # 12:00-17:59
    NIGHT = "night"  # 18:00-04:59, spans midnight

    @classmethod
    def from_hour(cls, hour: int) -> "TimeBucket":
        """Bucket an hour of day (0-23)."""
        if 5 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 18:
            return cls.AFTERNOON
        return cls.NIGHT


class RiskLevel(Enum):
    """Traffic-light risk level derived from the composite risk score."""

    GREEN = "green"
    AMBER = "amber"
    RED = "red"


@dataclass
class RawRecord:
    """Validated expense input before normalization.

    Produced by the CSV parser or constructed directly by callers; amount,
    timestamp and payment mode are already validated.
    """

    amount: float
    merchant: str
    timestamp: datetime
    payment_mode: PaymentMode
    category: Optional[Category] = None
    note: Optional[str] = None
    source_line: Optional[int] = None


@dataclass
class Record:
    """Normalized and scored expense record.

    Attributes:
        amount: Amount spent (non-negative).
        merchant: Merchant or payee text as entered.
        timestamp: When the expense happened.
        payment_mode: How it was paid.
        category: Resolved category.
        note: Optional free-text note.
        id: Unique identifier (UUID), fixed once created.
        time_bucket: Part of day the expense falls in.
        spend_intensity: Amount relative to the category's baseline average.
        recurrence_flag: Whether the expense is a subscription payment.
        risk_level: Risk level from the last scoring pass.
        risk_score: Composite risk score (0.0-1.0) from the last scoring pass.
        risk_reason: Joined explanation of the contributing factors.
    """

    amount: float
    merchant: str
    timestamp: datetime
    payment_mode: PaymentMode
    category: Category

    note: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Normalization output
    time_bucket: TimeBucket = TimeBucket.NIGHT
    spend_intensity: float = 1.0
    recurrence_flag: bool = False

    # Scoring output
    risk_level: RiskLevel = RiskLevel.GREEN
    risk_score: float = 0.0
    risk_reason: Optional[str] = None

    @property
    def hour(self) -> int:
        """Hour of day (0-23) of the timestamp."""
        return self.timestamp.hour

    @property
    def is_flagged(self) -> bool:
        """Whether the record is amber or red."""
        return self.risk_level is not RiskLevel.GREEN

    def same_merchant(self, other: "Record") -> bool:
        """Case-insensitive merchant comparison."""
        return self.merchant.lower() == other.merchant.lower()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for storage."""
        return {
            "id": self.id,
            "amount": self.amount,
            "merchant": self.merchant,
            "timestamp": self.timestamp.isoformat(),
            "paymentMode": self.payment_mode.value,
            "category": self.category.value,
            "note": self.note,
            "timeBucket": self.time_bucket.value,
            "spendIntensity": self.spend_intensity,
            "recurrenceFlag": self.recurrence_flag,
            "riskLevel": self.risk_level.value,
            "riskScore": self.risk_score,
            "riskReason": self.risk_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Record":
        """Create a Record from a stored dict."""
        return cls(
            id=str(data["id"]),
            amount=float(data["amount"]),
            merchant=str(data["merchant"]),
            timestamp=datetime.fromisoformat(str(data["timestamp"])),
            payment_mode=PaymentMode.parse(str(data["paymentMode"])),
            category=Category.parse(data.get("category")),
            note=data.get("note"),
            time_bucket=TimeBucket(data.get("timeBucket", TimeBucket.NIGHT.value)),
            spend_intensity=float(data.get("spendIntensity", 1.0)),
            recurrence_flag=bool(data.get("recurrenceFlag", False)),
            risk_level=RiskLevel(data.get("riskLevel", RiskLevel.GREEN.value)),
            risk_score=float(data.get("riskScore", 0.0)),
            risk_reason=data.get("riskReason"),
        )

    def __repr__(self) -> str:
        return (
            f"Record(timestamp={self.timestamp:%Y-%m-%d %H:%M}, "
            f"merchant={self.merchant[:30]!r}, "
            f"amount={self.amount:.2f}, "
            f"risk={self.risk_level.value})"
        )
