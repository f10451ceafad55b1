"""
Strategy pre-filter

Drops losing candidates before scoring and keeps only the most profitable
fraction, ranked by training-segment profit at one fee rate.
"""

import math
from decimal import Decimal
from typing import List, Optional

from src.scorer.models import StrategyCandidate
from src.scorer.profit_calculator import strategy_total_profit


def training_profit(candidate: StrategyCandidate, fee_rate) -> Decimal:
    """Profit over segments flagged for training (all segments if none are)."""
    train_ids = {s.segment_id for s in candidate.segments if s.train_on}
    return strategy_total_profit(candidate, fee_rate, train_ids or None)


def filter_failed_strategies(
    candidates: Optional[List[StrategyCandidate]],
    upload_percentage: float,
    fee_rate
) -> List[StrategyCandidate]:
    """
    Keep profitable candidates, best first, limited to a top fraction.

    Args:
        candidates: Converted candidates
        upload_percentage: Fraction to keep (>= 1 keeps all profitable ones)
        fee_rate: Fee used to rank

    Returns:
        ceil(n * upload_percentage) candidates, at least one if any profitable
    """
    if not candidates:
        return []

    scored = [(training_profit(c, fee_rate), c) for c in candidates]
    profitable = [(p, c) for p, c in scored if p > 0]
    if not profitable:
        return []

    profitable.sort(key=lambda pc: pc[0], reverse=True)
    ranked = [c for _, c in profitable]

    if upload_percentage >= 1:
        return ranked

    keep = math.ceil(Decimal(len(ranked)) * Decimal(str(upload_percentage)))
    return ranked[:max(1, keep)]
