"""Pipeline orchestrator sequencing normalization, scoring, profiling and insights."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from spend_sentinel.config import Config
from spend_sentinel.models.alert import Alert
from spend_sentinel.models.fingerprint import Fingerprint
from spend_sentinel.models.record import RawRecord, Record
from spend_sentinel.models.report import InsightSummary
from spend_sentinel.processing.insight_generator import InsightGenerator
from spend_sentinel.processing.normalizer import Normalizer
from spend_sentinel.processing.profile_builder import ProfileBuilder
from spend_sentinel.processing.risk_scorer import RiskScorer
from spend_sentinel.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


@dataclass
class ProcessResult:
    """Outcome of processing one record."""

    record: Record
    fingerprint: Fingerprint
    alerts: list[Alert] = field(default_factory=list)


@dataclass
class BatchResult:
    """Outcome of processing or rescoring many records."""

    records: list[Record]
    fingerprint: Fingerprint
    alerts: list[Alert] = field(default_factory=list)

    @property
    def flagged_count(self) -> int:
        return sum(1 for r in self.records if r.is_flagged)


class SpendingEngine:
    """Runs the four analysis stages over expense records.

    The engine holds no baseline state of its own: every operation takes the
    current fingerprint and returns the next one. Persisting it is the
    caller's job.
    """

    def __init__(self, config: Optional[Config] = None):
        """Initialize the engine and its stages.

        Args:
            config: Application configuration.
        """
        self.config = config or Config()
        self.normalizer = Normalizer(self.config)
        self.profile_builder = ProfileBuilder()
        self.risk_scorer = RiskScorer(self.config)
        self.insight_generator = InsightGenerator(self.config)

    def process_record(
        self,
        raw: RawRecord,
        fingerprint: Fingerprint,
        existing_records: list[Record],
        now: Optional[datetime] = None,
    ) -> ProcessResult:
        """Process one new record through all stages.

        Normalize, score against the existing records, fold into the
        fingerprint, then raise alerts for this record only. Duplicate and
        micro-transaction checks look at the existing records too.

        Args:
            raw: Validated raw input.
            fingerprint: Current baseline.
            existing_records: Records already processed, in processing order.
            now: Processing time.

        Returns:
            ProcessResult with the scored record, next fingerprint and alerts.
        """
        normalized = self.normalizer.normalize(raw, fingerprint)
        scored = self.risk_scorer.score(normalized, fingerprint, existing_records)
        updated = self.profile_builder.update(fingerprint, scored, now)
        alerts = self.insight_generator.generate_alerts(
            [scored], updated, context=[*existing_records, scored], now=now
        )
        return ProcessResult(record=scored, fingerprint=updated, alerts=alerts)

    def rebuild_fingerprint(
        self,
        records: list[Record],
        now: Optional[datetime] = None,
    ) -> Fingerprint:
        """Rebuild the fingerprint from scratch over all records."""
        with LogContext(logger, "fingerprint rebuild", records=len(records)):
            return self.profile_builder.build(records, now)

    def rescore_all(self, records: list[Record], fingerprint: Fingerprint) -> list[Record]:
        """Rescore every record against a fingerprint, in sequence order."""
        with LogContext(logger, "rescore", records=len(records)):
            return self.risk_scorer.score_batch(records, fingerprint)

    def detect_anomalies(
        self,
        records: list[Record],
        fingerprint: Fingerprint,
        now: Optional[datetime] = None,
    ) -> list[Alert]:
        """Generate alerts for every flagged record in a set."""
        return self.insight_generator.generate_alerts(records, fingerprint, now=now)

    def batch_process(
        self,
        raw_records: list[RawRecord],
        fingerprint: Fingerprint,
        now: Optional[datetime] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> BatchResult:
        """Process many raw records sequentially, in input order.

        Each record's prior context is only the records already processed in
        this call. Alerts are regenerated over the whole batch at the end
        against the final fingerprint.

        Args:
            raw_records: Validated raw input, e.g. from a CSV import.
            fingerprint: Baseline to start from.
            now: Processing time.
            on_progress: Called with (done, total) after each record.

        Returns:
            BatchResult with all scored records, final fingerprint and alerts.
        """
        processed: list[Record] = []
        current = fingerprint
        total = len(raw_records)

        with LogContext(logger, "batch process", records=total):
            for raw in raw_records:
                result = self.process_record(raw, current, processed, now)
                processed.append(result.record)
                current = result.fingerprint
                if on_progress is not None:
                    on_progress(len(processed), total)

            alerts = self.detect_anomalies(processed, current, now)

        logger.info(f"Batch processed {len(processed)} records, {len(alerts)} alerts")
        return BatchResult(records=processed, fingerprint=current, alerts=alerts)

    def rebuild_and_rescore(
        self,
        records: list[Record],
        now: Optional[datetime] = None,
    ) -> BatchResult:
        """Recalibrate: rebuild the fingerprint, rescore and regenerate alerts.

        Used after records are corrected or deleted.
        """
        fingerprint = self.rebuild_fingerprint(records, now)
        rescored = self.rescore_all(records, fingerprint)
        alerts = self.detect_anomalies(rescored, fingerprint, now)
        return BatchResult(records=rescored, fingerprint=fingerprint, alerts=alerts)

    def summarize(
        self,
        records: list[Record],
        fingerprint: Fingerprint,
        balance: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> InsightSummary:
        """Portfolio-level spending summary."""
        return self.insight_generator.summarize(records, fingerprint, balance, now)
