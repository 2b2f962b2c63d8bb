"""Spending fingerprint construction: full rebuild and incremental update."""

import statistics
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import (
    DEFAULT_RISK_TOLERANCE,
    Fingerprint,
    RecurrenceFrequency,
    RecurringCost,
)
from spend_sentinel.models.record import Record
from spend_sentinel.utils.date_utils import whole_days_between
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

# Allowed deviation of each gap from the mean gap, in days
RECURRENCE_TOLERANCE_DAYS = 3

# Mean gap upper bounds for each cadence
DAILY_MAX_MEAN_GAP = 1.5
WEEKLY_MAX_MEAN_GAP = 10.0

# Minimum records before the tolerance band is derived from variance
MIN_RECORDS_FOR_TOLERANCE = 3

# (coefficient of variation upper bound, tolerance band)
TOLERANCE_BANDS = [
    (0.3, 0.2),  # Steady spender: low tolerance, stricter alerts
    (0.7, 0.5),
]
HIGH_VARIANCE_TOLERANCE = 0.8


class ProfileBuilder:
    """Builds and updates the personal spending fingerprint.

    The fingerprint captures:
    - Average spend per category
    - Typical spending hours
    - Weekly burn rate
    - Fixed recurring costs
    - Personal risk tolerance band

    Burn rate, recurring costs and tolerance are only refreshed by a full
    rebuild; the incremental update keeps them as they are.
    """

    def build(self, records: list[Record], now: Optional[datetime] = None) -> Fingerprint:
        """Rebuild a fingerprint from a full record history.

        Any earlier fingerprint state is ignored.

        Args:
            records: All records, in any order.
            now: Reference time for the burn rate (default: current time).

        Returns:
            New Fingerprint.
        """
        now = now or datetime.now()

        if not records:
            logger.info("No records to profile, using empty fingerprint")
            return Fingerprint.empty(now)

        fingerprint = Fingerprint(
            category_averages=self._category_averages(records),
            hour_frequency=self._hour_frequency(records),
            weekly_burn_rate=self._weekly_burn_rate(records, now),
            recurring_costs=self._detect_recurring_costs(records),
            risk_tolerance=self._risk_tolerance(records),
            total_transactions=len(records),
            last_updated=now,
        )

        logger.info(
            f"Rebuilt fingerprint from {len(records)} records: "
            f"{len(fingerprint.category_averages)} categories, "
            f"{len(fingerprint.recurring_costs)} recurring costs, "
            f"tolerance {fingerprint.risk_tolerance}"
        )
        return fingerprint

    def update(
        self,
        fingerprint: Fingerprint,
        record: Record,
        now: Optional[datetime] = None,
    ) -> Fingerprint:
        """Fold one newly scored record into a fingerprint.

        The category average is a running mean weighted by the fingerprint's
        total record count, not the per-category count.

        Args:
            fingerprint: Current fingerprint (not modified).
            record: Newly scored record.
            now: Update time (default: current time).

        Returns:
            New Fingerprint.
        """
        n = fingerprint.total_transactions
        category_averages = dict(fingerprint.category_averages)
        current_avg = category_averages.get(record.category, 0.0)
        category_averages[record.category] = (current_avg * n + record.amount) / (n + 1)

        hour_frequency = dict(fingerprint.hour_frequency)
        hour_frequency[record.hour] = hour_frequency.get(record.hour, 0) + 1

        return Fingerprint(
            category_averages=category_averages,
            hour_frequency=hour_frequency,
            weekly_burn_rate=fingerprint.weekly_burn_rate,
            recurring_costs=list(fingerprint.recurring_costs),
            risk_tolerance=fingerprint.risk_tolerance,
            total_transactions=n + 1,
            last_updated=now or datetime.now(),
        )

    def _category_averages(self, records: list[Record]) -> dict[Category, float]:
        """Arithmetic mean amount per category."""
        totals: dict[Category, float] = defaultdict(float)
        counts: dict[Category, int] = defaultdict(int)

        for record in records:
            totals[record.category] += record.amount
            counts[record.category] += 1

        return {category: totals[category] / counts[category] for category in totals}

    def _hour_frequency(self, records: list[Record]) -> dict[int, int]:
        """Record count per hour of day, across all dates."""
        frequency: dict[int, int] = defaultdict(int)
        for record in records:
            frequency[record.hour] += 1
        return dict(frequency)

    def _weekly_burn_rate(self, records: list[Record], now: datetime) -> float:
        """Spend over the trailing week.

        Histories shorter than a week are extrapolated from the daily average
        so that a new user's burn rate is not undercounted.
        """
        one_week_ago = now - timedelta(days=7)
        recent_total = sum((r.amount for r in records if r.timestamp > one_week_ago), 0.0)

        earliest = min(r.timestamp for r in records)
        # Records dated after now count as a history of zero whole days
        days_since_earliest = max(whole_days_between(earliest, now), 0)

        if days_since_earliest < 7:
            all_time_total = sum((r.amount for r in records), 0.0)
            return (all_time_total / (days_since_earliest + 1)) * 7

        return recent_total

    def _detect_recurring_costs(self, records: list[Record]) -> list[RecurringCost]:
        """Detect merchants paid at regular intervals.

        A merchant is regular when it has at least two records and every gap
        between consecutive payments (in whole days) is within
        RECURRENCE_TOLERANCE_DAYS of the mean gap.
        """
        by_merchant: dict[str, list[Record]] = defaultdict(list)
        for record in records:
            by_merchant[record.merchant].append(record)

        recurring: list[RecurringCost] = []

        for merchant, merchant_records in by_merchant.items():
            if len(merchant_records) < 2:
                continue

            ordered = sorted(merchant_records, key=lambda r: r.timestamp)
            gaps = [
                whole_days_between(ordered[i - 1].timestamp, ordered[i].timestamp)
                for i in range(1, len(ordered))
            ]

            mean_gap = sum(gaps) / len(gaps)
            if not all(abs(gap - mean_gap) <= RECURRENCE_TOLERANCE_DAYS for gap in gaps):
                logger.debug(f"Irregular payment gaps for '{merchant}': {gaps}")
                continue

            if mean_gap <= DAILY_MAX_MEAN_GAP:
                frequency = RecurrenceFrequency.DAILY
            elif mean_gap <= WEEKLY_MAX_MEAN_GAP:
                frequency = RecurrenceFrequency.WEEKLY
            else:
                frequency = RecurrenceFrequency.MONTHLY

            mean_amount = sum(r.amount for r in ordered) / len(ordered)
            recurring.append(
                RecurringCost(
                    merchant=merchant,
                    amount=mean_amount,
                    frequency=frequency,
                    last_detected=ordered[-1].timestamp,
                )
            )

        return recurring

    def _risk_tolerance(self, records: list[Record]) -> float:
        """Map the population coefficient of variation of amounts to a band."""
        if len(records) < MIN_RECORDS_FOR_TOLERANCE:
            return DEFAULT_RISK_TOLERANCE

        amounts = [r.amount for r in records]
        mean = sum(amounts) / len(amounts)
        cv = statistics.pstdev(amounts) / mean if mean > 0 else 0.0

        for upper_bound, band in TOLERANCE_BANDS:
            if cv < upper_bound:
                return band
        return HIGH_VARIANCE_TOLERANCE


def build_fingerprint(records: list[Record], now: Optional[datetime] = None) -> Fingerprint:
    """Convenience function for a full fingerprint rebuild.

    Args:
        records: All records.
        now: Reference time for the burn rate.

    Returns:
        New Fingerprint.
    """
    return ProfileBuilder().build(records, now)
