"""Tests for the spending engine pipeline."""

from datetime import datetime, timedelta

import pytest

from spend_sentinel.models.alert import AlertType
from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import PaymentMode, RawRecord, Record, RiskLevel
from spend_sentinel.processing.engine import SpendingEngine
from spend_sentinel.processing.profile_builder import ProfileBuilder

T0 = datetime(2025, 12, 28, 12, 0)
NOW = datetime(2025, 12, 31, 12, 0)


def create_raw(
    amount: float,
    merchant: str = "Swiggy",
    timestamp: datetime = T0,
    payment_mode: PaymentMode = PaymentMode.UPI,
    category: Category | None = None,
) -> RawRecord:
    """Helper to create a RawRecord for testing."""
    return RawRecord(
        amount=amount,
        merchant=merchant,
        timestamp=timestamp,
        payment_mode=payment_mode,
        category=category,
    )


def create_history() -> list[RawRecord]:
    """A month of mixed expenses ending with a few risky ones."""
    raws = []
    for day in range(1, 25):
        raws.append(create_raw(120.0 + day, "Canteen", datetime(2025, 12, day, 13, 0)))
        if day % 3 == 0:
            raws.append(create_raw(40.0, "Metro", datetime(2025, 12, day, 9, 0)))
    raws.append(create_raw(999.0, "Netflix", datetime(2025, 12, 1, 0, 0), PaymentMode.SUBSCRIPTION))
    raws.append(create_raw(900.0, "Swiggy", datetime(2025, 12, 26, 23, 30)))
    raws.append(create_raw(900.0, "Swiggy", datetime(2025, 12, 26, 23, 40)))
    return raws


def score_view(records: list[Record]) -> list[tuple]:
    """Fields that must match between runs (ids are random)."""
    return [
        (r.merchant, r.category, r.spend_intensity, r.risk_score, r.risk_level, r.risk_reason)
        for r in records
    ]


class TestProcessRecord:
    """Tests for single-record processing."""

    def test_first_record_for_new_user(self) -> None:
        """Test the full path on an empty baseline."""
        result = SpendingEngine().process_record(
            create_raw(450.0), Fingerprint.empty(NOW), [], now=NOW
        )

        assert result.record.category is Category.FOOD
        assert result.record.spend_intensity == 1.0
        assert result.record.risk_level is RiskLevel.GREEN
        assert result.alerts == []
        assert result.fingerprint.total_transactions == 1
        assert result.fingerprint.category_averages[Category.FOOD] == pytest.approx(450.0)
        assert result.fingerprint.hour_frequency == {12: 1}
        assert result.fingerprint.last_updated == NOW

    def test_duplicate_against_existing_records(self) -> None:
        """Test that the alert for a new record checks earlier stored records."""
        fp = Fingerprint(
            category_averages={Category.FOOD: 50.0}, total_transactions=1, risk_tolerance=0.2
        )
        existing = SpendingEngine().process_record(create_raw(150.0), fp, [], now=NOW)

        result = SpendingEngine().process_record(
            create_raw(150.0, timestamp=T0 + timedelta(minutes=10)),
            fp,
            [existing.record],
            now=NOW,
        )

        assert result.record.risk_level is RiskLevel.AMBER
        assert "Repeated payment to Swiggy today" in result.record.risk_reason
        assert len(result.alerts) == 1
        assert result.alerts[0].alert_type is AlertType.DUPLICATE_PAYMENT
        assert result.alerts[0].record_id == result.record.id

    def test_input_fingerprint_unchanged(self) -> None:
        """Test that processing returns a new fingerprint."""
        fp = Fingerprint.empty(NOW)
        SpendingEngine().process_record(create_raw(450.0), fp, [], now=NOW)
        assert fp.total_transactions == 0
        assert fp.category_averages == {}


class TestBatchProcess:
    """Tests for batch processing."""

    def test_batch_threads_fingerprint(self) -> None:
        """Test that every record is folded into the final fingerprint."""
        raws = [create_raw(100.0 + i, timestamp=T0 + timedelta(days=i)) for i in range(3)]
        calls: list[tuple[int, int]] = []

        result = SpendingEngine().batch_process(
            raws, Fingerprint.empty(NOW), now=NOW, on_progress=lambda d, t: calls.append((d, t))
        )

        assert len(result.records) == 3
        assert result.fingerprint.total_transactions == 3
        assert calls == [(1, 3), (2, 3), (3, 3)]
        # Second record is scored against the average after the first
        assert result.records[1].spend_intensity == pytest.approx(101.0 / 100.0)

    def test_batch_alerts_cover_whole_batch(self) -> None:
        """Test that alerts are regenerated for every flagged record in the batch."""
        result = SpendingEngine().batch_process(create_history(), Fingerprint.empty(NOW), now=NOW)

        flagged_ids = {r.id for r in result.records if r.is_flagged}
        assert result.flagged_count == len(flagged_ids)
        assert {a.record_id for a in result.alerts} == flagged_ids
        assert all(a.detected_at == NOW for a in result.alerts)

    def test_deterministic(self) -> None:
        """Test that the same inputs and time give the same outputs."""
        engine = SpendingEngine()
        first = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW)
        second = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW)

        assert score_view(first.records) == score_view(second.records)
        assert first.fingerprint == second.fingerprint
        assert [(a.alert_type, a.reason) for a in first.alerts] == [
            (a.alert_type, a.reason) for a in second.alerts
        ]

    def test_empty_batch(self) -> None:
        """Test that an empty batch returns the starting fingerprint."""
        fp = Fingerprint.empty(NOW)
        result = SpendingEngine().batch_process([], fp, now=NOW)
        assert result.records == []
        assert result.alerts == []
        assert result.fingerprint == fp


class TestRecalibration:
    """Tests for fingerprint rebuild and rescoring."""

    def test_rebuild_matches_profile_builder(self) -> None:
        """Test that the engine rebuild is a plain full profile."""
        engine = SpendingEngine()
        records = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW).records
        assert engine.rebuild_fingerprint(records, NOW) == ProfileBuilder().build(records, NOW)

    def test_rebuild_and_rescore(self) -> None:
        """Test that rescoring uses the rebuilt fingerprint and keeps record ids."""
        engine = SpendingEngine()
        records = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW).records

        result = engine.rebuild_and_rescore(records, NOW)

        assert [r.id for r in result.records] == [r.id for r in records]
        assert result.fingerprint.total_transactions == len(records)
        assert result.fingerprint.category_averages[Category.FOOD] > 0
        assert {a.record_id for a in result.alerts} == {
            r.id for r in result.records if r.is_flagged
        }

    def test_rebuild_is_idempotent(self) -> None:
        """Test that rebuilding twice from the same records gives the same baseline."""
        engine = SpendingEngine()
        records = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW).records
        first = engine.rebuild_and_rescore(records, NOW)
        second = engine.rebuild_and_rescore(records, NOW)
        assert first.fingerprint == second.fingerprint
        assert score_view(first.records) == score_view(second.records)

    def test_spike_after_recalibration(self) -> None:
        """Test that a large late-night expense stands out against a rebuilt baseline."""
        engine = SpendingEngine()
        records = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW).records
        fp = engine.rebuild_fingerprint(records, NOW)

        result = engine.process_record(
            create_raw(2000.0, "Zomato", datetime(2025, 12, 30, 3, 0)), fp, records, now=NOW
        )

        assert result.record.is_flagged
        assert "Unusual spending time: late night (3:00)" in result.record.risk_reason
        assert result.alerts[0].alert_type is AlertType.SPENDING_SPIKE


class TestSummarize:
    """Tests for the engine summary passthrough."""

    def test_summary(self) -> None:
        """Test that the summary reflects the processed records."""
        engine = SpendingEngine()
        batch = engine.batch_process(create_history(), Fingerprint.empty(NOW), now=NOW)
        fp = engine.rebuild_fingerprint(batch.records, NOW)

        summary = engine.summarize(batch.records, fp, balance=10_000.0, now=NOW)

        assert summary.total_spend == pytest.approx(sum(r.amount for r in batch.records))
        assert summary.total_subscriptions == 0.0
        assert summary.days_remaining is not None
