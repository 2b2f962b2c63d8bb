"""Record normalizer for converting raw expense input to feature-bearing records."""

from typing import Optional

from spend_sentinel.config import Config
from spend_sentinel.models.category import Category, detect_category
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import PaymentMode, RawRecord, Record, TimeBucket
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)


class Normalizer:
    """Normalizes raw expense input into the standard Record format.

    The normalizer:
    - Resolves the category (explicit, keyword match, or Miscellaneous)
    - Buckets the timestamp into morning/afternoon/night
    - Computes spend intensity against the fingerprint's category average
    - Flags subscription payments as recurring

    Normalization is pure: the fingerprint is only read.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize normalizer with configuration.

        Args:
            config: Application configuration (keyword table).
        """
        self.config = config or Config()

    def normalize(self, raw: RawRecord, fingerprint: Fingerprint) -> Record:
        """Normalize a single raw record.

        Args:
            raw: Validated raw input.
            fingerprint: Current baseline.

        Returns:
            New Record with derived fields set and a default (green) risk.
        """
        category = self.resolve_category(raw.merchant, raw.category)

        return Record(
            amount=raw.amount,
            merchant=raw.merchant,
            timestamp=raw.timestamp,
            payment_mode=raw.payment_mode,
            category=category,
            note=raw.note,
            time_bucket=TimeBucket.from_hour(raw.timestamp.hour),
            spend_intensity=spend_intensity(raw.amount, category, fingerprint),
            recurrence_flag=raw.payment_mode is PaymentMode.SUBSCRIPTION,
        )

    def normalize_batch(
        self,
        raw_records: list[RawRecord],
        fingerprint: Fingerprint,
    ) -> list[Record]:
        """Normalize many raw records against the same fingerprint.

        Args:
            raw_records: Validated raw input.
            fingerprint: Current baseline.

        Returns:
            Normalized records in input order.
        """
        records = [self.normalize(raw, fingerprint) for raw in raw_records]
        logger.info(f"Normalized {len(records)} records")
        return records

    def resolve_category(self, merchant: str, category: Optional[Category]) -> Category:
        """Explicit category if given, else keyword detection on the merchant."""
        if category is not None:
            return category
        detected = detect_category(merchant, self.config.categories.keywords)
        logger.debug(f"Auto-detected category {detected.value} for '{merchant}'")
        return detected


def spend_intensity(amount: float, category: Category, fingerprint: Fingerprint) -> float:
    """Ratio of amount to the category's baseline average.

    Exactly 1.0 when the category has no baseline yet.
    """
    if not fingerprint.has_baseline(category):
        return 1.0
    return amount / fingerprint.category_average(category)


def normalize_records(
    raw_records: list[RawRecord],
    fingerprint: Fingerprint,
    config: Optional[Config] = None,
) -> list[Record]:
    """Convenience function to normalize records.

    Args:
        raw_records: Validated raw input.
        fingerprint: Current baseline.
        config: Application configuration.

    Returns:
        Normalized records in input order.
    """
    normalizer = Normalizer(config)
    return normalizer.normalize_batch(raw_records, fingerprint)
