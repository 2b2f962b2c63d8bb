"""Risk alert data model."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from spend_sentinel.models.record import RiskLevel


class AlertType(Enum):
    """Kind of risky behaviour an alert describes."""

    DUPLICATE_PAYMENT = "duplicate_payment"
    SPENDING_SPIKE = "spending_spike"
    MICRO_TRANSACTION = "micro_transaction"
    SUBSCRIPTION_TRAP = "subscription_trap"

    @property
    def title(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass
class Alert:
    """Explainable alert raised for one amber or red record.

    Lifecycle: created unread and undismissed; may be marked read; may be
    dismissed. The two flags are independent and only ever move from False
    to True.

    Attributes:
        record_id: ID of the record the alert refers to.
        alert_type: Classification of the alert.
        risk_level: Risk level of the record when the alert was raised.
        reason: Why the record was flagged.
        suggested_action: What the user should do next.
        detected_at: When the alert was generated.
        id: Unique identifier (UUID).
        is_read: Whether the user has seen the alert.
        is_dismissed: Whether the user has dismissed the alert.
    """

    record_id: str
    alert_type: AlertType
    risk_level: RiskLevel
    reason: str
    suggested_action: str
    detected_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_read: bool = False
    is_dismissed: bool = False

    def mark_read(self) -> None:
        """Mark the alert as read. Idempotent."""
        self.is_read = True

    def dismiss(self) -> None:
        """Dismiss the alert. Terminal and idempotent."""
        self.is_dismissed = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recordId": self.record_id,
            "alertType": self.alert_type.value,
            "riskLevel": self.risk_level.value,
            "reason": self.reason,
            "suggestedAction": self.suggested_action,
            "detectedAt": self.detected_at.isoformat(),
            "isRead": self.is_read,
            "isDismissed": self.is_dismissed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alert":
        return cls(
            id=str(data["id"]),
            record_id=str(data["recordId"]),
            alert_type=AlertType(data["alertType"]),
            risk_level=RiskLevel(data["riskLevel"]),
            reason=str(data["reason"]),
            suggested_action=str(data["suggestedAction"]),
            detected_at=datetime.fromisoformat(str(data["detectedAt"])),
            is_read=bool(data.get("isRead", False)),
            is_dismissed=bool(data.get("isDismissed", False)),
        )
