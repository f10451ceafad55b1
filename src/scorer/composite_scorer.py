"""
Composite Scorer - Linear Weighted Sum

Quality = 0.25 x WinRate
        + 0.20 x (20 x Sharpe)
        + 0.20 x (100 x MedianProfit)
        + 0.15 x (100 x ProfitAtFee)
        + 0.10 x ConsistencyBonus
        + 0.10 x (1 - TopTwoContribution)

Every input is a validation/test blend. Floored at 0.
"""

from typing import List, Optional

from src.scorer.models import PerformanceSnapshot
from src.scorer.quality_scorer import DEFAULT_BLEND, base_notes, blend, consistency_bonus
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WEIGHTS = {
    'win_rate': 0.25,
    'sharpe': 0.20,
    'median_profit': 0.20,
    'profit_at_fee': 0.15,
    'consistency': 0.10,
    'concentration': 0.10,
}


class CompositeScorer:
    """Simple weighted sum of raw blended metrics."""

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: Configuration dict with optional 'scoring.composite' and
                'scoring.blend' sections. None uses the default weights.
        """
        scoring = (config or {}).get('scoring', {})
        section = scoring.get('composite', {})

        self.weights = {**DEFAULT_WEIGHTS, **section.get('weights', {})}
        self.blend_weights = {**DEFAULT_BLEND, **scoring.get('blend', {})}
        self.sharpe_scale = section.get('sharpe_scale', 20.0)
        self.median_scale = section.get('median_scale', 100.0)
        self.profit_scale = section.get('profit_scale', 100.0)

        logger.debug(f"CompositeScorer initialized with weights: {self.weights}")

    def compute_quality(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> float:
        def mix(attr: str) -> float:
            return blend(getattr(validation, attr), getattr(test, attr), self.blend_weights)

        w = self.weights
        quality = (
            w['win_rate'] * mix('win_rate')
            + w['sharpe'] * self.sharpe_scale * mix('sharpe_ratio')
            + w['median_profit'] * self.median_scale * mix('median_profit')
            + w['profit_at_fee'] * self.profit_scale * mix('profit_at_fee')
            + w['consistency'] * consistency_bonus(consistency)
            + w['concentration'] * (1.0 - mix('top_two_contribution'))
        )

        return max(0.0, quality)

    def generate_notes(
        self,
        test: PerformanceSnapshot,
        validation: PerformanceSnapshot,
        consistency: float
    ) -> List[str]:
        return base_notes(test, validation, consistency)
