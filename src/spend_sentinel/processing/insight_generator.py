"""Alert classification, explanation and portfolio summary generation."""

import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from spend_sentinel.config import Config
from spend_sentinel.models.alert import Alert, AlertType
from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import PaymentMode, Record
from spend_sentinel.models.report import InsightSummary
from spend_sentinel.utils.date_utils import is_within_window
from spend_sentinel.utils.decimal_utils import format_currency
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

MICRO_WINDOW = timedelta(hours=24)


class Insight(NamedTuple):
    """Rendered explanation for an alert."""

    reason: str
    suggested_action: str


class InsightGenerator:
    """Turns flagged records into explainable alerts.

    Alert types are checked in priority order, first match wins:
    1. Duplicate payment (same merchant and amount within the hour)
    2. Spending spike (spend intensity above threshold)
    3. Micro-transactions (burst of small payments in 24 hours)
    4. Subscription trap (subscription payments)
    5. Spending spike as the fallback
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize insight generator.

        Args:
            config: Application configuration with scoring thresholds.
        """
        self.config = config or Config()
        self.scoring = self.config.scoring
        self.currency_symbol = self.config.output.currency_symbol

    def generate_alerts(
        self,
        records: list[Record],
        fingerprint: Fingerprint,
        context: Optional[list[Record]] = None,
        now: Optional[datetime] = None,
    ) -> list[Alert]:
        """Generate alerts for amber and red records.

        Args:
            records: Scored records to raise alerts for.
            fingerprint: Baseline used in the explanations.
            context: Records searched for duplicates and micro-transaction
                bursts (default: records).
            now: Detection time stamped on the alerts.

        Returns:
            One alert per amber or red record, in input order.
        """
        if context is None:
            context = records
        detected_at = now or datetime.now()

        alerts: list[Alert] = []
        for record in records:
            if not record.is_flagged:
                continue

            alert_type = self.classify(record, context)
            insight = self.render(record, alert_type, fingerprint, context)
            alerts.append(
                Alert(
                    record_id=record.id,
                    alert_type=alert_type,
                    risk_level=record.risk_level,
                    reason=insight.reason,
                    suggested_action=insight.suggested_action,
                    detected_at=detected_at,
                )
            )
            logger.debug(f"Raised {alert_type.value} alert for {record!r}")

        logger.info(f"Generated {len(alerts)} alerts from {len(records)} records")
        return alerts

    def classify(self, record: Record, context: list[Record]) -> AlertType:
        """Pick the alert type for a flagged record."""
        if self._find_duplicates(record, context):
            return AlertType.DUPLICATE_PAYMENT

        if record.spend_intensity > self.scoring.spike_intensity_threshold:
            return AlertType.SPENDING_SPIKE

        if record.amount < self.scoring.micro_amount_threshold:
            if len(self._recent_micro(record, context)) >= self.scoring.micro_count_threshold:
                return AlertType.MICRO_TRANSACTION

        if record.payment_mode is PaymentMode.SUBSCRIPTION or record.recurrence_flag:
            return AlertType.SUBSCRIPTION_TRAP

        return AlertType.SPENDING_SPIKE

    def render(
        self,
        record: Record,
        alert_type: AlertType,
        fingerprint: Fingerprint,
        context: list[Record],
    ) -> Insight:
        """Render the reason and suggested action for an alert."""
        amount = self._money(record.amount)
        category = record.category.label

        if alert_type is AlertType.DUPLICATE_PAYMENT:
            return Insight(
                f"Duplicate payment detected: {amount} to {record.merchant} within the last hour.",
                "Check your payment history and contact the merchant if this was "
                "charged twice by mistake.",
            )

        if alert_type is AlertType.SPENDING_SPIKE:
            if fingerprint.has_baseline(record.category):
                multiplier = f"{record.amount / fingerprint.category_average(record.category):.1f}"
            else:
                multiplier = "—"
            return Insight(
                f"This expense ({amount}) is {multiplier}× higher than your usual {category} spend.",
                f"Review if this was a planned expense. Consider setting a budget limit "
                f"for {category}.",
            )

        if alert_type is AlertType.MICRO_TRANSACTION:
            recent_small = self._recent_micro(record, context)
            total_small = sum((r.amount for r in recent_small), 0.0)
            return Insight(
                f"{len(recent_small)} small transactions ({self._money(total_small)} total) "
                f"in the last 24 hours.",
                "Small expenses add up quickly. Consider consolidating purchases or using "
                "cash to track better.",
            )

        known = fingerprint.find_recurring_cost(record.merchant)
        meals = self.meal_equivalent(record.amount)
        if known is None:
            return Insight(
                f"New subscription detected: {record.merchant} at {amount}/month.",
                f"This costs {amount}/month ≈ {meals} canteen meals. Review if you'll use "
                f"it regularly.",
            )
        if known.amount <= 0:
            # No usable price to compare against
            return Insight(
                f"Subscription payment: {record.merchant} at {amount}/month.",
                f"This costs {amount}/month ≈ {meals} canteen meals. Review if you'll use "
                f"it regularly.",
            )
        return Insight(
            f"Subscription amount changed: {self._money(known.amount)} → {amount} "
            f"for {record.merchant}.",
            "Verify this price change is expected. Check for plan upgrades or hidden fees.",
        )

    def summarize(
        self,
        records: list[Record],
        fingerprint: Fingerprint,
        balance: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> InsightSummary:
        """Aggregate spending figures across all records.

        Args:
            records: All records.
            fingerprint: Current baseline (burn rate, recurring costs).
            balance: Optional current balance for projections.
            now: Reference time for the trailing windows.

        Returns:
            InsightSummary.
        """
        now = now or datetime.now()

        category_spending: dict[Category, float] = defaultdict(float)
        for record in records:
            category_spending[record.category] += record.amount

        one_week_ago = now - timedelta(days=7)
        one_month_ago = now - timedelta(days=30)
        weekly_spend = sum((r.amount for r in records if r.timestamp > one_week_ago), 0.0)
        monthly_spend = sum((r.amount for r in records if r.timestamp > one_month_ago), 0.0)

        daily_burn_rate = fingerprint.daily_burn_rate
        days_remaining = None
        if balance is not None and daily_burn_rate > 0:
            days_remaining = math.floor(balance / daily_burn_rate)

        total_subscriptions = fingerprint.total_fixed_monthly_costs
        safe_to_spend = balance - total_subscriptions if balance is not None else None

        return InsightSummary(
            category_spending=dict(category_spending),
            weekly_spend=weekly_spend,
            monthly_spend=monthly_spend,
            daily_burn_rate=daily_burn_rate,
            days_remaining=days_remaining,
            total_subscriptions=total_subscriptions,
            meal_equivalent=self.meal_equivalent(total_subscriptions),
            safe_to_spend=safe_to_spend,
            balance=balance,
        )

    def meal_equivalent(self, amount: float) -> int:
        """Number of whole reference meals an amount pays for."""
        return math.floor(amount / self.scoring.meal_reference_amount)

    def _find_duplicates(self, record: Record, context: list[Record]) -> list[Record]:
        window = timedelta(minutes=self.scoring.duplicate_window_minutes)
        return [
            other
            for other in context
            if other.id != record.id
            and other.same_merchant(record)
            and abs(other.amount - record.amount) < self.scoring.duplicate_amount_tolerance
            and abs(other.timestamp - record.timestamp) < window
        ]

    def _recent_micro(self, record: Record, context: list[Record]) -> list[Record]:
        # Trailing 24 hours up to and including the record's own timestamp
        return [
            other
            for other in context
            if other.amount < self.scoring.micro_amount_threshold
            and is_within_window(
                other.timestamp, record.timestamp, MICRO_WINDOW, include_reference=True
            )
        ]

    def _money(self, amount: float) -> str:
        return format_currency(amount, self.currency_symbol)


def generate_alerts(
    records: list[Record],
    fingerprint: Fingerprint,
    config: Optional[Config] = None,
) -> list[Alert]:
    """Convenience function to generate alerts.

    Args:
        records: Scored records.
        fingerprint: Current baseline.
        config: Application configuration.

    Returns:
        Alerts for the amber and red records.
    """
    return InsightGenerator(config).generate_alerts(records, fingerprint)
