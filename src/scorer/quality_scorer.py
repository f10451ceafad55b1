"""
Quality Scorer

Shared pieces of the two interchangeable quality scoring strategies:
- ScoringMethod selector and create_scorer() factory
- Consistency score between test and validation snapshots
- Validation/test blending
- Advisory notes (diagnostic only, never gate admission)
"""

from enum import Enum
from typing import List, Optional, Protocol

from src.scorer.models import PerformanceSnapshot

DEFAULT_BLEND = {'validation': 0.5, 'test': 0.35}


class ScoringMethod(str, Enum):
    COMPOSITE = "composite"
    MCDA = "mcda"


class QualityScorer(Protocol):
    """A scoring strategy turning two snapshots into one quality number."""

    def compute_quality(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> float:
        ...

    def generate_notes(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> List[str]:
        ...


def consistency_score(test: PerformanceSnapshot, validation: PerformanceSnapshot) -> float:
    """
    Agreement between test and validation performance, 0-100.

    Averages the relative differences of win rate, median profit and
    Sharpe ratio. Returns 0 when the test side is too close to zero for a
    relative difference to mean anything.
    """
    if (
        test.win_rate < 0.01
        or abs(test.median_profit) < 1e-4
        or test.sharpe_ratio < 0.01
    ):
        return 0.0

    win_rate_diff = abs(test.win_rate - validation.win_rate) / test.win_rate
    profit_diff = abs(test.median_profit - validation.median_profit) / abs(test.median_profit)
    sharpe_diff = abs(test.sharpe_ratio - validation.sharpe_ratio) / max(test.sharpe_ratio, 0.1)

    avg_diff = (win_rate_diff + profit_diff + sharpe_diff) / 3.0
    return max(0.0, 100.0 - avg_diff * 100.0)


def blend(validation_value: float, test_value: float, weights: Optional[dict] = None) -> float:
    """Weighted validation/test mix (validation is primary)."""
    weights = weights or DEFAULT_BLEND
    return validation_value * weights['validation'] + test_value * weights['test']


def consistency_bonus(consistency: float) -> float:
    return max(0.0, 100.0 - consistency)


def base_notes(
    test: PerformanceSnapshot,
    validation: PerformanceSnapshot,
    consistency: float
) -> List[str]:
    notes = []

    if test.median_profit <= 0:
        notes.append("WARNING: Test median profit is not positive")
    if validation.median_profit <= 0:
        notes.append("WARNING: Validation median profit is not positive")

    if test.top_two_contribution > 0.6:
        notes.append(
            f"WARNING: Test top two segment contribution is "
            f"{test.top_two_contribution:.1%} (>60%)"
        )
    if validation.top_two_contribution > 0.6:
        notes.append(
            f"WARNING: Validation top two segment contribution is "
            f"{validation.top_two_contribution:.1%} (>60%)"
        )

    if consistency > 40.0:
        notes.append(f"WARNING: High inconsistency score ({consistency:.1f}) - possible overfitting")
    elif consistency <= 20.0:
        notes.append(f"GOOD: Low inconsistency score ({consistency:.1f})")

    if validation.win_rate >= 0.7:
        notes.append(f"GOOD: High validation win rate ({validation.win_rate:.1%})")
    if validation.sharpe_ratio >= 2.0:
        notes.append(f"GOOD: Excellent Sharpe ratio ({validation.sharpe_ratio:.2f})")

    return notes


def create_scorer(method=ScoringMethod.MCDA, config: Optional[dict] = None) -> QualityScorer:
    """
    Build the scorer for a run.

    Args:
        method: ScoringMethod or its string value
        config: Full config dict (reads the 'scoring' section)

    Raises:
        ValueError: If method is unknown
    """
    from src.scorer.composite_scorer import CompositeScorer
    from src.scorer.mcda_scorer import MCDAScorer

    method = ScoringMethod(method)

    if method == ScoringMethod.COMPOSITE:
        return CompositeScorer(config)
    return MCDAScorer(config)
