"""Portfolio-level insight summary model."""

from dataclasses import dataclass, field
from typing import Any, Optional

from spend_sentinel.models.category import Category


@dataclass
class InsightSummary:
    """Pre-computed spending summary.

    Single source of truth for the summary figures shown by the CLI and
    written by the CSV and Excel exporters.

    Attributes:
        category_spending: Total spend per category over all records.
        weekly_spend: Spend in the trailing 7 days.
        monthly_spend: Spend in the trailing 30 days.
        daily_burn_rate: Weekly burn rate divided by 7.
        days_remaining: Days the balance lasts at the daily burn rate
            (None without a balance or with no burn).
        total_subscriptions: Sum of monthly recurring costs.
        meal_equivalent: Monthly recurring cost expressed in meals.
        safe_to_spend: Balance minus fixed monthly costs (None without a balance).
        balance: Balance the projections were computed from.
    """

    category_spending: dict[Category, float] = field(default_factory=dict)
    weekly_spend: float = 0.0
    monthly_spend: float = 0.0
    daily_burn_rate: float = 0.0
    days_remaining: Optional[int] = None
    total_subscriptions: float = 0.0
    meal_equivalent: int = 0
    safe_to_spend: Optional[float] = None
    balance: Optional[float] = None

    @property
    def total_spend(self) -> float:
        """Sum of all category totals."""
        return sum(self.category_spending.values(), 0.0)

    @property
    def top_category(self) -> Optional[Category]:
        """Category with the highest total spend."""
        if not self.category_spending:
            return None
        return max(self.category_spending, key=lambda c: self.category_spending[c])

    def to_dict(self) -> dict[str, Any]:
        return {
            "categorySpending": {c.value: v for c, v in self.category_spending.items()},
            "weeklySpend": self.weekly_spend,
            "monthlySpend": self.monthly_spend,
            "dailyBurnRate": self.daily_burn_rate,
            "daysRemaining": self.days_remaining,
            "totalSubscriptions": self.total_subscriptions,
            "mealEquivalent": self.meal_equivalent,
            "safeToSpend": self.safe_to_spend,
        }
