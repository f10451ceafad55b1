"""
MCDA Scorer - Multi-Criteria Decision Analysis

Default scoring method. Three steps:
1. Normalize win rate, Sharpe and median profit against "perfect"
   reference values, capped at 100, then blend validation/test
2. Risk penalty from blended CV and single-segment drawdown, outlier
   penalty from blended top-two contribution
3. Weighted base score minus penalties, floored at 0
"""

from typing import List, Optional

from src.scorer.models import PerformanceSnapshot
from src.scorer.quality_scorer import DEFAULT_BLEND, base_notes, blend, consistency_bonus
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_PERFECT = {
    'win_rate': 0.8,
    'sharpe': 3.0,
    'median_profit': 0.10,
    'coefficient_of_variation': 2.0,
    'max_drawdown': 1.0,
}

DEFAULT_WEIGHTS = {
    'profit': 0.45,
    'sharpe': 0.20,
    'win_rate': 0.25,
    'consistency': 0.10,
}

DEFAULT_PENALTIES = {
    'risk': 0.3,
    'outlier': 0.2,
    'outlier_threshold': 0.4,
}


def normalize(value: float, perfect: float) -> float:
    """Scale value to 0-100 relative to perfect (capped at 100, not floored)."""
    return min(value / perfect * 100.0, 100.0)


class MCDAScorer:
    """Normalize-then-weight scorer with risk and outlier penalties."""

    def __init__(self, config: Optional[dict] = None):
        scoring = (config or {}).get('scoring', {})
        section = scoring.get('mcda', {})

        self.perfect = {**DEFAULT_PERFECT, **section.get('perfect', {})}
        self.weights = {**DEFAULT_WEIGHTS, **section.get('weights', {})}
        self.penalties = {**DEFAULT_PENALTIES, **section.get('penalties', {})}
        self.blend_weights = {**DEFAULT_BLEND, **scoring.get('blend', {})}

        logger.debug(
            f"MCDAScorer initialized: perfect={self.perfect}, weights={self.weights}"
        )

    def _normalized_blend(self, test: PerformanceSnapshot, validation: PerformanceSnapshot,
                          attr: str, key: str) -> float:
        perfect = self.perfect[key]
        return blend(
            normalize(getattr(validation, attr), perfect),
            normalize(getattr(test, attr), perfect),
            self.blend_weights,
        )

    def risk_penalty(self, test: PerformanceSnapshot, validation: PerformanceSnapshot) -> float:
        avg_cv = blend(validation.coefficient_of_variation, test.coefficient_of_variation,
                       self.blend_weights)
        avg_drawdown = blend(validation.max_drawdown, test.max_drawdown, self.blend_weights)

        penalty = (
            avg_cv / self.perfect['coefficient_of_variation'] * 50.0
            + avg_drawdown / self.perfect['max_drawdown'] * 50.0
        )
        return min(penalty, 100.0)

    def outlier_penalty(self, test: PerformanceSnapshot, validation: PerformanceSnapshot) -> float:
        avg_top_two = blend(validation.top_two_contribution, test.top_two_contribution,
                            self.blend_weights)
        return max(0.0, avg_top_two - self.penalties['outlier_threshold'])

    def compute_quality(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> float:
        win_rate_score = self._normalized_blend(test, validation, 'win_rate', 'win_rate')
        sharpe_score = self._normalized_blend(test, validation, 'sharpe_ratio', 'sharpe')
        profit_score = self._normalized_blend(test, validation, 'median_profit', 'median_profit')

        w = self.weights
        base = (
            profit_score * w['profit']
            + sharpe_score * w['sharpe']
            + win_rate_score * w['win_rate']
            + consistency_bonus(consistency) * w['consistency']
        )

        quality = (
            base
            - self.risk_penalty(test, validation) * self.penalties['risk']
            - self.outlier_penalty(test, validation) * self.penalties['outlier']
        )
        return max(0.0, quality)

    def generate_notes(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> List[str]:
        notes = base_notes(test, validation, consistency)

        if validation.coefficient_of_variation > self.perfect['coefficient_of_variation']:
            notes.append(
                f"WARNING: High coefficient of variation "
                f"({validation.coefficient_of_variation:.2f}) - high risk"
            )

        return notes
