"""Expense analysis pipeline components."""

from spend_sentinel.processing.normalizer import (
    Normalizer,
    normalize_records,
)
from spend_sentinel.processing.profile_builder import (
    ProfileBuilder,
    build_fingerprint,
)
from spend_sentinel.processing.risk_scorer import (
    RiskScorer,
    map_risk_level,
    score_records,
)
from spend_sentinel.processing.insight_generator import (
    InsightGenerator,
    generate_alerts,
)
from spend_sentinel.processing.engine import (
    BatchResult,
    ProcessResult,
    SpendingEngine,
)

__all__ = [
    "Normalizer",
    "normalize_records",
    "ProfileBuilder",
    "build_fingerprint",
    "RiskScorer",
    "map_risk_level",
    "score_records",
    "InsightGenerator",
    "generate_alerts",
    "SpendingEngine",
    "ProcessResult",
    "BatchResult",
]
