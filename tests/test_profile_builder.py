"""Tests for spending fingerprint construction."""

from datetime import datetime, timedelta

import pytest

from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import Fingerprint, RecurrenceFrequency
from spend_sentinel.models.record import PaymentMode, Record
from spend_sentinel.processing.profile_builder import ProfileBuilder, build_fingerprint

NOW = datetime(2025, 12, 31, 12, 0)


def create_record(
    amount: float,
    timestamp: datetime,
    merchant: str = "Swiggy",
    category: Category = Category.FOOD,
    payment_mode: PaymentMode = PaymentMode.UPI,
) -> Record:
    """Helper to create a Record for testing."""
    return Record(
        amount=amount,
        merchant=merchant,
        timestamp=timestamp,
        payment_mode=payment_mode,
        category=category,
    )


class TestFullRebuild:
    """Tests for ProfileBuilder.build."""

    def test_empty_history(self) -> None:
        """Test that no records give the empty baseline."""
        fp = ProfileBuilder().build([], NOW)
        assert fp.category_averages == {}
        assert fp.hour_frequency == {}
        assert fp.weekly_burn_rate == 0.0
        assert fp.recurring_costs == []
        assert fp.risk_tolerance == 0.5
        assert fp.total_transactions == 0
        assert fp.last_updated == NOW

    def test_category_averages_and_hours(self) -> None:
        """Test per-category means and per-hour counts."""
        records = [
            create_record(100.0, datetime(2025, 12, 1, 13, 0)),
            create_record(200.0, datetime(2025, 12, 2, 13, 45)),
            create_record(60.0, datetime(2025, 12, 3, 9, 0), "Metro", Category.TRANSPORT),
        ]
        fp = ProfileBuilder().build(records, NOW)
        assert fp.category_averages == {
            Category.FOOD: pytest.approx(150.0),
            Category.TRANSPORT: pytest.approx(60.0),
        }
        assert fp.hour_frequency == {13: 2, 9: 1}
        assert fp.total_transactions == 3
        assert fp.last_updated == NOW

    def test_rebuild_is_idempotent(self) -> None:
        """Test that rebuilding twice from the same records is identical."""
        records = [
            create_record(120.0, datetime(2025, 11, 1, 8, 0)),
            create_record(80.0, datetime(2025, 11, 20, 20, 0), "Uber", Category.TRANSPORT),
            create_record(999.0, datetime(2025, 12, 1, 0, 0), "Netflix", Category.SUBSCRIPTIONS),
        ]
        builder = ProfileBuilder()
        first = builder.build(records, NOW)
        second = builder.build(records, NOW)
        assert first.category_averages == second.category_averages
        assert first.hour_frequency == second.hour_frequency
        assert first.risk_tolerance == second.risk_tolerance
        assert first == second

    def test_build_fingerprint_convenience(self) -> None:
        """Test the module-level helper."""
        records = [create_record(50.0, datetime(2025, 12, 30, 10, 0))]
        assert build_fingerprint(records, NOW) == ProfileBuilder().build(records, NOW)


class TestWeeklyBurnRate:
    """Tests for weekly burn rate computation."""

    def test_trailing_week_total(self) -> None:
        """Test that only records after now minus 7 days count."""
        records = [
            create_record(500.0, datetime(2025, 12, 1, 12, 0)),
            create_record(100.0, datetime(2025, 12, 25, 12, 0)),
            create_record(200.0, datetime(2025, 12, 30, 12, 0)),
        ]
        fp = ProfileBuilder().build(records, NOW)
        assert fp.weekly_burn_rate == pytest.approx(300.0)

    def test_window_start_is_exclusive(self) -> None:
        """Test that a record exactly 7 days old is outside the window."""
        records = [
            create_record(500.0, datetime(2025, 12, 1, 12, 0)),
            create_record(70.0, NOW - timedelta(days=7)),
            create_record(30.0, NOW - timedelta(days=6)),
        ]
        fp = ProfileBuilder().build(records, NOW)
        assert fp.weekly_burn_rate == pytest.approx(30.0)

    def test_short_history_is_extrapolated(self) -> None:
        """Test extrapolation from the daily average for under a week of data."""
        records = [
            create_record(100.0, datetime(2025, 12, 29, 12, 0)),
            create_record(200.0, datetime(2025, 12, 31, 10, 0)),
        ]
        fp = ProfileBuilder().build(records, NOW)
        # 2 whole days of history: 300 / 3 days * 7
        assert fp.weekly_burn_rate == pytest.approx(700.0)

    @pytest.mark.parametrize("days_ahead", [1, 3])
    def test_future_dated_record(self, days_ahead: int) -> None:
        """Test that a record dated after now is extrapolated as a single day."""
        records = [create_record(50.0, NOW + timedelta(days=days_ahead, hours=2))]
        fp = ProfileBuilder().build(records, NOW)
        assert fp.weekly_burn_rate == pytest.approx(350.0)


class TestRecurringCosts:
    """Tests for recurring cost detection."""

    def test_netflix_monthly(self) -> None:
        """Test that monthly payments of 999 are detected as monthly."""
        records = [
            create_record(999.0, datetime(2025, month, 1), "Netflix", Category.SUBSCRIPTIONS)
            for month in (9, 10, 11, 12)
        ]
        fp = ProfileBuilder().build(records, NOW)

        assert len(fp.recurring_costs) == 1
        cost = fp.recurring_costs[0]
        assert cost.merchant == "Netflix"
        assert cost.amount == pytest.approx(999.0)
        assert cost.frequency is RecurrenceFrequency.MONTHLY
        assert cost.last_detected == datetime(2025, 12, 1)
        assert fp.total_fixed_monthly_costs == pytest.approx(999.0)

    def test_weekly_and_daily_cadence(self) -> None:
        """Test cadence classification from the mean gap."""
        gym = [
            create_record(200.0, datetime(2025, 12, 1) + timedelta(days=7 * i), "Gym")
            for i in range(4)
        ]
        chai = [
            create_record(15.0, datetime(2025, 12, 20, 16, 0) + timedelta(days=i), "Chai Point")
            for i in range(5)
        ]
        fp = ProfileBuilder().build(gym + chai, NOW)
        by_merchant = {c.merchant: c.frequency for c in fp.recurring_costs}
        assert by_merchant == {
            "Gym": RecurrenceFrequency.WEEKLY,
            "Chai Point": RecurrenceFrequency.DAILY,
        }
        # Weekly and daily costs are not fixed monthly costs
        assert fp.total_fixed_monthly_costs == 0.0

    def test_irregular_gaps_are_not_recurring(self) -> None:
        """Test that a gap more than 3 days from the mean disqualifies a merchant."""
        records = [
            create_record(300.0, datetime(2025, 12, 1), "Amazon", Category.SHOPPING),
            create_record(300.0, datetime(2025, 12, 3), "Amazon", Category.SHOPPING),
            create_record(300.0, datetime(2025, 12, 23), "Amazon", Category.SHOPPING),
        ]
        fp = ProfileBuilder().build(records, NOW)
        assert fp.recurring_costs == []

    def test_single_payment_is_not_recurring(self) -> None:
        """Test that one payment is never a pattern."""
        records = [create_record(999.0, datetime(2025, 12, 1), "Netflix", Category.SUBSCRIPTIONS)]
        assert ProfileBuilder().build(records, NOW).recurring_costs == []

    def test_grouping_uses_exact_merchant_text(self) -> None:
        """Test that merchants differing only in case are grouped separately."""
        records = [
            create_record(999.0, datetime(2025, 11, 1), "Netflix", Category.SUBSCRIPTIONS),
            create_record(999.0, datetime(2025, 12, 1), "NETFLIX", Category.SUBSCRIPTIONS),
        ]
        assert ProfileBuilder().build(records, NOW).recurring_costs == []


class TestRiskTolerance:
    """Tests for the risk tolerance band."""

    @pytest.mark.parametrize(
        "amounts,expected",
        [
            ([100.0, 100.0], 0.5),  # Too few records
            ([100.0, 100.0, 100.0], 0.2),  # CV 0
            ([100.0, 200.0, 300.0], 0.5),  # CV ~0.41
            ([10.0, 10.0, 1000.0], 0.8),  # CV ~1.37
            ([0.0, 0.0, 0.0], 0.2),  # Zero mean counts as CV 0
        ],
    )
    def test_tolerance_bands(self, amounts: list[float], expected: float) -> None:
        """Test mapping of coefficient of variation to tolerance bands."""
        records = [
            create_record(amount, datetime(2025, 12, 1) + timedelta(days=i), f"Shop {i}")
            for i, amount in enumerate(amounts)
        ]
        assert ProfileBuilder().build(records, NOW).risk_tolerance == expected


class TestIncrementalUpdate:
    """Tests for ProfileBuilder.update."""

    def test_running_mean_uses_global_count(self) -> None:
        """Test the running mean weighted by total records, not category records.

        With 4 records in total the food average of 100 moves to
        (100 * 4 + 200) / 5 = 120, even if fewer of the 4 were food.
        """
        fp = Fingerprint(category_averages={Category.FOOD: 100.0}, total_transactions=4)
        record = create_record(200.0, datetime(2025, 12, 31, 9, 0))

        updated = ProfileBuilder().update(fp, record, NOW)

        assert updated.category_averages[Category.FOOD] == pytest.approx(120.0)
        assert updated.total_transactions == 5

    def test_new_category_average_is_diluted_by_global_count(self) -> None:
        """Flag: a first record in a new category is averaged over all records.

        A per-category mean would give 200 here; the global counter gives
        (0 * 4 + 200) / 5 = 40. This reproduces the historical formula and is
        suspect behaviour.
        """
        fp = Fingerprint(category_averages={Category.FOOD: 100.0}, total_transactions=4)
        record = create_record(200.0, datetime(2025, 12, 31, 9, 0), "Uber", Category.TRANSPORT)

        updated = ProfileBuilder().update(fp, record, NOW)

        assert updated.category_averages[Category.TRANSPORT] == pytest.approx(40.0)
        assert updated.category_averages[Category.FOOD] == pytest.approx(100.0)

    def test_update_leaves_rebuild_only_fields(self) -> None:
        """Test that burn rate, recurring costs and tolerance are carried over."""
        base = ProfileBuilder().build(
            [
                create_record(999.0, datetime(2025, 11, 1), "Netflix", Category.SUBSCRIPTIONS),
                create_record(999.0, datetime(2025, 12, 1), "Netflix", Category.SUBSCRIPTIONS),
                create_record(50.0, datetime(2025, 12, 30, 9, 0)),
            ],
            NOW,
        )
        record = create_record(5000.0, datetime(2025, 12, 31, 23, 0))

        updated = ProfileBuilder().update(base, record, NOW + timedelta(hours=1))

        assert updated.weekly_burn_rate == base.weekly_burn_rate
        assert updated.recurring_costs == base.recurring_costs
        assert updated.risk_tolerance == base.risk_tolerance
        assert updated.hour_frequency[23] == base.hour_frequency.get(23, 0) + 1
        assert updated.last_updated == NOW + timedelta(hours=1)

    def test_update_does_not_modify_input(self) -> None:
        """Test that the fingerprint is treated as a value."""
        fp = Fingerprint(
            category_averages={Category.FOOD: 100.0},
            hour_frequency={9: 2},
            total_transactions=2,
        )
        ProfileBuilder().update(fp, create_record(300.0, datetime(2025, 12, 31, 9, 0)), NOW)
        assert fp.category_averages == {Category.FOOD: 100.0}
        assert fp.hour_frequency == {9: 2}
        assert fp.total_transactions == 2
