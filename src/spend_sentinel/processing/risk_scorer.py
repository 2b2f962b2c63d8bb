"""Contextual risk scoring for expense records."""

from dataclasses import replace
from datetime import timedelta
from typing import NamedTuple, Optional

from spend_sentinel.config import Config
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import PaymentMode, Record, RiskLevel
from spend_sentinel.utils.date_utils import is_within_window
from spend_sentinel.utils.decimal_utils import format_currency
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

# Composite risk score weights (sum to 1.0)
AMOUNT_WEIGHT = 0.40
TIME_WEIGHT = 0.20
FREQUENCY_WEIGHT = 0.25
RECURRENCE_WEIGHT = 0.15

# Separator between factor reasons in Record.risk_reason
REASON_SEPARATOR = " • "

UNUSUAL_HOUR_SCORE = 0.6
FREQUENCY_WINDOW = timedelta(hours=24)
SUBSCRIPTION_CHANGE_TOLERANCE = 0.2


class FactorScore(NamedTuple):
    """Score of a single risk factor with an optional explanation."""

    score: float
    reason: Optional[str] = None


NEUTRAL = FactorScore(0.0)


def map_risk_level(crs: float, risk_tolerance: float) -> RiskLevel:
    """Map a composite risk score to a risk level.

    Thresholds rise with tolerance: amber at 0.3-0.5, red at 0.6-0.8.

    Args:
        crs: Composite risk score.
        risk_tolerance: Fingerprint tolerance band in [0, 1].

    Returns:
        RiskLevel for the score.
    """
    amber_threshold = 0.3 + risk_tolerance * 0.2
    red_threshold = 0.6 + risk_tolerance * 0.2

    if crs >= red_threshold:
        return RiskLevel.RED
    if crs >= amber_threshold:
        return RiskLevel.AMBER
    return RiskLevel.GREEN


class RiskScorer:
    """Computes the composite risk score (CRS) of a record.

    CRS factors:
    - Amount deviation from the category average (40%)
    - Unusual spending hour (20%)
    - Repeated payments to one merchant within 24 hours (25%)
    - New or re-priced subscriptions (15%)
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize risk scorer.

        Args:
            config: Application configuration.
        """
        self.config = config or Config()
        self.currency_symbol = self.config.output.currency_symbol
        self.min_history = self.config.scoring.min_history_for_time_scoring

    def score(
        self,
        record: Record,
        fingerprint: Fingerprint,
        prior_records: list[Record],
    ) -> Record:
        """Score a single record.

        Args:
            record: Normalized record.
            fingerprint: Baseline to score against.
            prior_records: Records processed before this one.

        Returns:
            New Record with risk score, level and reason set.
        """
        factors = [
            (AMOUNT_WEIGHT, self.score_amount(record, fingerprint)),
            (TIME_WEIGHT, self.score_time(record, fingerprint)),
            (FREQUENCY_WEIGHT, self.score_frequency(record, prior_records)),
            (RECURRENCE_WEIGHT, self.score_recurrence(record, fingerprint)),
        ]

        crs = 0.0
        reasons: list[str] = []
        for weight, factor in factors:
            crs += factor.score * weight
            if factor.reason:
                reasons.append(factor.reason)

        risk_level = map_risk_level(crs, fingerprint.risk_tolerance)
        logger.debug(f"Scored {record!r}: crs={crs:.3f} level={risk_level.value}")

        return replace(
            record,
            risk_score=crs,
            risk_level=risk_level,
            risk_reason=REASON_SEPARATOR.join(reasons) if reasons else None,
        )

    def score_batch(self, records: list[Record], fingerprint: Fingerprint) -> list[Record]:
        """Score records in sequence order.

        Each record's prior context is the records before it in the given
        list, whether or not the list is chronological.

        Args:
            records: Records to score.
            fingerprint: Baseline to score against.

        Returns:
            Scored records in input order.
        """
        scored = [
            self.score(record, fingerprint, records[:i])
            for i, record in enumerate(records)
        ]
        flagged = sum(1 for r in scored if r.is_flagged)
        logger.info(f"Scored {len(scored)} records, {flagged} amber or red")
        return scored

    def score_amount(self, record: Record, fingerprint: Fingerprint) -> FactorScore:
        """Score deviation of the amount from the category average."""
        if not fingerprint.has_baseline(record.category):
            return NEUTRAL

        category_avg = fingerprint.category_average(record.category)
        deviation = abs(record.amount - category_avg) / category_avg
        multiplier = record.amount / category_avg

        if deviation < 0.5:
            return FactorScore(deviation * 0.6)
        if deviation < 2.0:
            return FactorScore(
                0.3 + (deviation - 0.5) * 0.27,
                f"{multiplier:.1f}× your usual {record.category.label} spend",
            )
        return FactorScore(
            0.7 + min(max((deviation - 2.0) / 3.0, 0.0), 0.3),
            f"{multiplier:.1f}× higher than your typical {record.category.label} expense",
        )

    def score_time(self, record: Record, fingerprint: Fingerprint) -> FactorScore:
        """Score spending at an hour the user rarely spends at."""
        if fingerprint.total_transactions < self.min_history:
            return NEUTRAL
        if fingerprint.is_typical_hour(record.hour):
            return NEUTRAL

        hour = record.hour
        if hour < 5 or hour >= 22:
            label = f"late night ({hour}:00)"
        else:
            label = f"{hour}:00"
        return FactorScore(UNUSUAL_HOUR_SCORE, f"Unusual spending time: {label}")

    def score_frequency(self, record: Record, prior_records: list[Record]) -> FactorScore:
        """Score repeated payments to the same merchant in the last 24 hours."""
        matches = sum(
            1
            for prior in prior_records
            if prior.same_merchant(record)
            and is_within_window(prior.timestamp, record.timestamp, FREQUENCY_WINDOW)
        )
        count = matches + 1

        if count >= 3:
            return FactorScore(0.9, f"{count} payments to {record.merchant} in 24 hours")
        if count == 2:
            return FactorScore(0.5, f"Repeated payment to {record.merchant} today")
        return NEUTRAL

    def score_recurrence(self, record: Record, fingerprint: Fingerprint) -> FactorScore:
        """Score subscriptions that are new or changed price."""
        if record.payment_mode is not PaymentMode.SUBSCRIPTION:
            return NEUTRAL

        known = fingerprint.find_recurring_cost(record.merchant)
        if known is None:
            return FactorScore(0.6, f"New subscription detected: {record.merchant}")

        if known.amount <= 0:
            return NEUTRAL

        deviation = abs(record.amount - known.amount) / known.amount
        if deviation > SUBSCRIPTION_CHANGE_TOLERANCE:
            old = format_currency(known.amount, self.currency_symbol)
            new = format_currency(record.amount, self.currency_symbol)
            return FactorScore(0.7, f"Subscription amount changed: {old} → {new}")
        return NEUTRAL


def score_records(
    records: list[Record],
    fingerprint: Fingerprint,
    config: Optional[Config] = None,
) -> list[Record]:
    """Convenience function to score records in sequence order.

    Args:
        records: Records to score.
        fingerprint: Baseline to score against.
        config: Application configuration.

    Returns:
        Scored records.
    """
    return RiskScorer(config).score_batch(records, fingerprint)
