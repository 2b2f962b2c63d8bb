"""Personal spending fingerprint: the evolving behavioural baseline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from spend_sentinel.models.category import Category

DEFAULT_RISK_TOLERANCE = 0.5


class RecurrenceFrequency(Enum):
    """Payment cadence of a recurring cost."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass
class RecurringCost:
    """A merchant paid at regular intervals.

    Attributes:
        merchant: Merchant name as it appears on the records.
        amount: Mean amount paid to the merchant.
        frequency: Detected cadence.
        last_detected: Timestamp of the latest payment in the pattern.
    """

    merchant: str
    amount: float
    frequency: RecurrenceFrequency
    last_detected: datetime

    def matches(self, merchant: str) -> bool:
        """Case-insensitive merchant match."""
        return self.merchant.lower() == merchant.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "merchant": self.merchant,
            "amount": self.amount,
            "frequency": self.frequency.value,
            "lastDetected": self.last_detected.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecurringCost":
        return cls(
            merchant=str(data["merchant"]),
            amount=float(data["amount"]),
            frequency=RecurrenceFrequency(data["frequency"]),
            last_detected=datetime.fromisoformat(str(data["lastDetected"])),
        )


@dataclass
class Fingerprint:
    """Per-user statistical baseline of spending behaviour.

    A fingerprint is treated as a value: processing stages return a new
    instance instead of changing the one they were given.

    Attributes:
        category_averages: Mean amount per category seen at least once.
        hour_frequency: Number of records per hour of day (0-23).
        weekly_burn_rate: Spend per week.
        recurring_costs: Detected recurring payments.
        risk_tolerance: Sensitivity dial in [0, 1]; higher means fewer alerts.
        total_transactions: Number of records folded into the baseline.
        last_updated: When the baseline was last computed.
    """

    category_averages: dict[Category, float] = field(default_factory=dict)
    hour_frequency: dict[int, int] = field(default_factory=dict)
    weekly_burn_rate: float = 0.0
    recurring_costs: list[RecurringCost] = field(default_factory=list)
    risk_tolerance: float = DEFAULT_RISK_TOLERANCE
    total_transactions: int = 0
    last_updated: datetime = field(default_factory=datetime.now)

    @classmethod
    def empty(cls, now: Optional[datetime] = None) -> "Fingerprint":
        """Baseline for a user with no history."""
        return cls(last_updated=now or datetime.now())

    def category_average(self, category: Category) -> float:
        """Average spend for a category, 0.0 when there is no history."""
        return self.category_averages.get(category, 0.0)

    def has_baseline(self, category: Category) -> bool:
        """Whether the category has a usable (positive) average."""
        return self.category_average(category) > 0.0

    def is_typical_hour(self, hour: int) -> bool:
        """Check whether an hour of day is a typical spending hour.

        An hour is typical when its frequency is at least half the mean
        frequency across observed hours. With no observed hours every hour is
        typical.
        """
        if not self.hour_frequency:
            return True
        frequency = self.hour_frequency.get(hour, 0)
        mean_frequency = sum(self.hour_frequency.values()) / len(self.hour_frequency)
        return frequency >= mean_frequency * 0.5

    @property
    def daily_burn_rate(self) -> float:
        return self.weekly_burn_rate / 7

    @property
    def monthly_recurring_costs(self) -> list[RecurringCost]:
        return [c for c in self.recurring_costs if c.frequency is RecurrenceFrequency.MONTHLY]

    @property
    def total_fixed_monthly_costs(self) -> float:
        """Sum of recurring costs with monthly cadence."""
        return sum((c.amount for c in self.monthly_recurring_costs), 0.0)

    def find_recurring_cost(self, merchant: str) -> Optional[RecurringCost]:
        """First recurring cost for a merchant (case-insensitive), if any."""
        for cost in self.recurring_costs:
            if cost.matches(merchant):
                return cost
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for storage."""
        return {
            "categoryAverages": {c.value: avg for c, avg in self.category_averages.items()},
            "typicalSpendingHours": {str(h): n for h, n in sorted(self.hour_frequency.items())},
            "weeklyBurnRate": self.weekly_burn_rate,
            "fixedRecurringCosts": [c.to_dict() for c in self.recurring_costs],
            "riskToleranceBand": self.risk_tolerance,
            "totalTransactions": self.total_transactions,
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Fingerprint":
        """Create a Fingerprint from a stored dict, filling missing fields."""
        last_updated = data.get("lastUpdated")
        return cls(
            category_averages={
                Category.parse(name): float(avg)
                for name, avg in (data.get("categoryAverages") or {}).items()
            },
            hour_frequency={
                int(hour): int(count)
                for hour, count in (data.get("typicalSpendingHours") or {}).items()
            },
            weekly_burn_rate=float(data.get("weeklyBurnRate", 0.0)),
            recurring_costs=[
                RecurringCost.from_dict(c) for c in (data.get("fixedRecurringCosts") or [])
            ],
            risk_tolerance=float(data.get("riskToleranceBand", DEFAULT_RISK_TOLERANCE)),
            total_transactions=int(data.get("totalTransactions", 0)),
            last_updated=(
                datetime.fromisoformat(str(last_updated)) if last_updated else datetime.now()
            ),
        )
