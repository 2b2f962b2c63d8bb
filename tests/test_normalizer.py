"""Tests for record normalization."""

from datetime import datetime

import pytest

from spend_sentinel.config import CategoryConfig, Config
from spend_sentinel.models.category import Category, merge_keywords
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import PaymentMode, RawRecord, RiskLevel, TimeBucket
from spend_sentinel.processing.normalizer import Normalizer, normalize_records, spend_intensity


def create_raw(
    amount: float = 100.0,
    merchant: str = "Swiggy",
    timestamp: datetime = datetime(2025, 12, 28, 14, 30),
    payment_mode: PaymentMode = PaymentMode.UPI,
    category: Category | None = None,
    note: str | None = None,
) -> RawRecord:
    """Helper to create a RawRecord for testing."""
    return RawRecord(
        amount=amount,
        merchant=merchant,
        timestamp=timestamp,
        payment_mode=payment_mode,
        category=category,
        note=note,
    )


class TestCategoryResolution:
    """Tests for category resolution during normalization."""

    def test_explicit_category_is_kept(self) -> None:
        """Test that an explicit category wins over keyword detection."""
        record = Normalizer().normalize(
            create_raw(merchant="Swiggy", category=Category.SHOPPING), Fingerprint.empty()
        )
        assert record.category is Category.SHOPPING

    def test_keyword_detection(self) -> None:
        """Test that the merchant is matched against the keyword table."""
        normalizer = Normalizer()
        fp = Fingerprint.empty()
        assert normalizer.normalize(create_raw(merchant="Swiggy Order"), fp).category is Category.FOOD
        assert normalizer.normalize(create_raw(merchant="Uber Trip"), fp).category is Category.TRANSPORT
        assert normalizer.normalize(create_raw(merchant="NETFLIX.COM"), fp).category is Category.SUBSCRIPTIONS

    def test_unknown_merchant_is_miscellaneous(self) -> None:
        """Test fallback when no keyword matches."""
        record = Normalizer().normalize(create_raw(merchant="Qwerty Ltd"), Fingerprint.empty())
        assert record.category is Category.MISCELLANEOUS

    def test_configured_keywords_extend_table(self) -> None:
        """Test that keywords from configuration are used for detection."""
        config = Config(
            categories=CategoryConfig(keywords=merge_keywords({Category.FOOD: ["juice centre"]}))
        )
        record = Normalizer(config).normalize(
            create_raw(merchant="Campus Juice Centre"), Fingerprint.empty()
        )
        assert record.category is Category.FOOD


class TestTimeBucket:
    """Tests for part-of-day bucketing."""

    @pytest.mark.parametrize(
        "hour,expected",
        [
            (4, TimeBucket.NIGHT),
            (5, TimeBucket.MORNING),
            (11, TimeBucket.MORNING),
            (12, TimeBucket.AFTERNOON),
            (17, TimeBucket.AFTERNOON),
            (18, TimeBucket.NIGHT),
            (0, TimeBucket.NIGHT),
        ],
    )
    def test_bucket_boundaries(self, hour: int, expected: TimeBucket) -> None:
        """Test bucket boundaries at 5:00, 12:00 and 18:00."""
        record = Normalizer().normalize(
            create_raw(timestamp=datetime(2025, 12, 28, hour, 59)), Fingerprint.empty()
        )
        assert record.time_bucket is expected


class TestSpendIntensity:
    """Tests for spend intensity against the category baseline."""

    def test_no_baseline_is_exactly_one(self) -> None:
        """Test that a category without history has intensity 1.0."""
        assert spend_intensity(5000.0, Category.FOOD, Fingerprint.empty()) == 1.0

    def test_zero_average_is_no_baseline(self) -> None:
        """Test that a zero category average does not divide by zero."""
        fp = Fingerprint(category_averages={Category.FOOD: 0.0})
        assert spend_intensity(120.0, Category.FOOD, fp) == 1.0

    def test_ratio_to_average(self) -> None:
        """Test intensity as amount over category average."""
        fp = Fingerprint(category_averages={Category.FOOD: 150.0})
        record = Normalizer().normalize(create_raw(amount=450.0, merchant="Swiggy"), fp)
        assert record.spend_intensity == pytest.approx(3.0)


class TestNormalize:
    """Tests for the remaining normalized fields."""

    def test_subscription_sets_recurrence_flag(self) -> None:
        """Test that only subscription payments are flagged recurring."""
        normalizer = Normalizer()
        fp = Fingerprint.empty()
        sub = normalizer.normalize(
            create_raw(merchant="Netflix", payment_mode=PaymentMode.SUBSCRIPTION), fp
        )
        upi = normalizer.normalize(create_raw(merchant="Netflix"), fp)
        assert sub.recurrence_flag is True
        assert upi.recurrence_flag is False

    def test_new_record_is_unscored(self) -> None:
        """Test that normalized records start green with no reason."""
        record = Normalizer().normalize(create_raw(note="lunch"), Fingerprint.empty())
        assert record.risk_level is RiskLevel.GREEN
        assert record.risk_score == 0.0
        assert record.risk_reason is None
        assert record.note == "lunch"
        assert record.id

    def test_fingerprint_is_not_modified(self) -> None:
        """Test that normalization only reads the fingerprint."""
        fp = Fingerprint(category_averages={Category.FOOD: 100.0}, total_transactions=3)
        Normalizer().normalize(create_raw(amount=900.0), fp)
        assert fp.category_averages == {Category.FOOD: 100.0}
        assert fp.total_transactions == 3

    def test_normalize_records_keeps_order(self) -> None:
        """Test the convenience function over a batch."""
        raws = [create_raw(merchant="Uber"), create_raw(merchant="Amazon")]
        records = normalize_records(raws, Fingerprint.empty())
        assert [r.merchant for r in records] == ["Uber", "Amazon"]
        assert len({r.id for r in records}) == 2
