"""Tests for the local JSON store."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from spend_sentinel.models.alert import Alert, AlertType
from spend_sentinel.models.category import Category
from spend_sentinel.models.fingerprint import Fingerprint, RecurrenceFrequency, RecurringCost
from spend_sentinel.models.record import PaymentMode, Record, RiskLevel, TimeBucket
from spend_sentinel.storage import AlertStateError, LocalStore, StorageError

T0 = datetime(2025, 12, 28, 12, 0)


def create_record(
    merchant: str = "Swiggy",
    timestamp: datetime = T0,
    category: Category = Category.FOOD,
    risk_level: RiskLevel = RiskLevel.GREEN,
    amount: float = 150.5,
) -> Record:
    """Helper to create a Record for testing."""
    return Record(
        amount=amount,
        merchant=merchant,
        timestamp=timestamp,
        payment_mode=PaymentMode.UPI,
        category=category,
        note="lunch",
        time_bucket=TimeBucket.AFTERNOON,
        spend_intensity=1.25,
        risk_level=risk_level,
        risk_score=0.42,
        risk_reason="Repeated payment to Swiggy today",
    )


def create_alert(
    record_id: str = "rec-1",
    risk_level: RiskLevel = RiskLevel.AMBER,
    detected_at: datetime = T0,
) -> Alert:
    """Helper to create an Alert for testing."""
    return Alert(
        record_id=record_id,
        alert_type=AlertType.SPENDING_SPIKE,
        risk_level=risk_level,
        reason="This expense (₹450) is 3.0× higher than your usual food spend.",
        suggested_action="Review if this was a planned expense.",
        detected_at=detected_at,
    )


class TestFingerprintStorage:
    """Tests for fingerprint persistence."""

    def test_missing_fingerprint_is_empty(self, tmp_path: Path) -> None:
        """Test that a fresh store starts from an empty baseline."""
        fp = LocalStore(tmp_path).load_fingerprint()
        assert fp.total_transactions == 0
        assert fp.risk_tolerance == 0.5

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Test that a saved fingerprint loads back unchanged."""
        fp = Fingerprint(
            category_averages={Category.FOOD: 180.25, Category.TRANSPORT: 40.0},
            hour_frequency={9: 3, 13: 7},
            weekly_burn_rate=1260.0,
            recurring_costs=[
                RecurringCost("Netflix", 999.0, RecurrenceFrequency.MONTHLY, datetime(2025, 12, 1))
            ],
            risk_tolerance=0.8,
            total_transactions=10,
            last_updated=T0,
        )
        store = LocalStore(tmp_path / "data")
        store.save_fingerprint(fp)
        assert store.load_fingerprint() == fp


class TestRecordStorage:
    """Tests for record persistence and filtering."""

    def test_add_keeps_processing_order(self, tmp_path: Path) -> None:
        """Test that records are appended in the order given."""
        store = LocalStore(tmp_path)
        first = create_record("Uber", T0 + timedelta(days=1))
        second = create_record("Amazon", T0)
        store.add_records([first])
        store.add_records([second])

        loaded = store.list_records()
        assert [r.id for r in loaded] == [first.id, second.id]
        assert loaded[0] == first

    def test_replace_records(self, tmp_path: Path) -> None:
        """Test that replace overwrites the stored records."""
        store = LocalStore(tmp_path)
        store.add_records([create_record(), create_record()])
        replacement = create_record("Metro")
        store.replace_records([replacement])
        assert [r.id for r in store.list_records()] == [replacement.id]

    def test_filter_records(self, tmp_path: Path) -> None:
        """Test category, risk level and inclusive date filters, newest first."""
        store = LocalStore(tmp_path)
        food_old = create_record(timestamp=T0 - timedelta(days=10))
        food_new = create_record(timestamp=T0, risk_level=RiskLevel.RED)
        transport = create_record("Metro", T0 - timedelta(days=1), Category.TRANSPORT)
        store.add_records([food_old, food_new, transport])

        assert [r.id for r in store.filter_records(category=Category.FOOD)] == [
            food_new.id,
            food_old.id,
        ]
        assert [r.id for r in store.filter_records(risk_level=RiskLevel.RED)] == [food_new.id]
        in_range = store.filter_records(start=T0 - timedelta(days=1), end=T0)
        assert [r.id for r in in_range] == [food_new.id, transport.id]


class TestAlertStorage:
    """Tests for alert persistence and lifecycle."""

    def test_list_newest_first(self, tmp_path: Path) -> None:
        """Test ordering by detection time."""
        store = LocalStore(tmp_path)
        older = create_alert(detected_at=T0)
        newer = create_alert(detected_at=T0 + timedelta(hours=1))
        store.add_alerts([older, newer])
        assert [a.id for a in store.list_alerts()] == [newer.id, older.id]

    def test_mark_read_and_unread_filter(self, tmp_path: Path) -> None:
        """Test that read alerts drop out of the unread listing."""
        store = LocalStore(tmp_path)
        alert = create_alert()
        store.add_alerts([alert, create_alert()])

        updated = store.mark_alert_read(alert.id)

        assert updated.is_read is True
        assert len(store.list_alerts(unread_only=True)) == 1
        assert len(store.list_alerts()) == 2

    def test_dismiss_hides_alert(self, tmp_path: Path) -> None:
        """Test that dismissed alerts are hidden unless requested."""
        store = LocalStore(tmp_path)
        alert = create_alert()
        store.add_alerts([alert])

        store.dismiss_alert(alert.id)
        store.dismiss_alert(alert.id)

        assert store.list_alerts() == []
        dismissed = store.list_alerts(include_dismissed=True)
        assert dismissed[0].is_dismissed is True

    def test_dismissed_alert_can_still_be_read(self, tmp_path: Path) -> None:
        """Test that the read flag is independent of dismissal."""
        store = LocalStore(tmp_path)
        alert = create_alert()
        store.add_alerts([alert])
        store.dismiss_alert(alert.id)

        updated = store.mark_alert_read(alert.id)

        assert updated.is_read is True
        assert updated.is_dismissed is True

    def test_unknown_alert(self, tmp_path: Path) -> None:
        """Test that lifecycle changes to unknown ids raise."""
        store = LocalStore(tmp_path)
        with pytest.raises(AlertStateError):
            store.mark_alert_read("nope")
        with pytest.raises(AlertStateError):
            store.dismiss_alert("nope")

    def test_counts_by_level_skip_dismissed(self, tmp_path: Path) -> None:
        """Test alert counts per risk level."""
        store = LocalStore(tmp_path)
        dismissed = create_alert(risk_level=RiskLevel.RED)
        store.add_alerts(
            [create_alert(), create_alert(), create_alert(risk_level=RiskLevel.RED), dismissed]
        )
        store.dismiss_alert(dismissed.id)
        assert store.alert_counts_by_level() == {RiskLevel.AMBER: 2, RiskLevel.RED: 1}

    def test_filter_by_level(self, tmp_path: Path) -> None:
        store = LocalStore(tmp_path)
        red = create_alert(risk_level=RiskLevel.RED)
        store.add_alerts([create_alert(), red])
        assert [a.id for a in store.list_alerts(risk_level=RiskLevel.RED)] == [red.id]


class TestStoreFiles:
    """Tests for file handling."""

    def test_clear(self, tmp_path: Path) -> None:
        """Test that clear resets every collection."""
        store = LocalStore(tmp_path)
        store.add_records([create_record()])
        store.add_alerts([create_alert()])
        store.save_fingerprint(Fingerprint(total_transactions=5))

        store.clear()

        assert store.list_records() == []
        assert store.list_alerts(include_dismissed=True) == []
        assert store.load_fingerprint().total_transactions == 0

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        """Test that writes replace the target without leftovers."""
        store = LocalStore(tmp_path)
        store.add_records([create_record()])
        store.add_records([create_record()])
        assert sorted(p.name for p in tmp_path.iterdir()) == ["records.json"]

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """Test that unreadable JSON is a storage error."""
        (tmp_path / "records.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError, match="Corrupt"):
            LocalStore(tmp_path).list_records()

    def test_wrong_shape(self, tmp_path: Path) -> None:
        """Test that a non-list records file is a storage error."""
        (tmp_path / "records.json").write_text('{"id": 1}', encoding="utf-8")
        with pytest.raises(StorageError, match="must contain a list"):
            LocalStore(tmp_path).list_records()
