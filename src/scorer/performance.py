"""
Performance Metrics

Derives a PerformanceSnapshot from per-segment profits computed at one
fee rate. Profits arrive as Decimal; the hard filters and the top-two
ratio stay in Decimal, the remaining statistics run on numpy float arrays.

Zero-trade segments never enter a statistic; they are only counted.
"""

from decimal import Decimal
from typing import Optional, Sequence

import numpy as np

from src.scorer.models import PerformanceSnapshot, SegmentRecord
from src.scorer.profit_calculator import ZERO, segment_profit, to_decimal
from src.utils.logger import get_logger

logger = get_logger(__name__)

EPSILON = 1e-4
DECIMAL_EPSILON = Decimal("0.0001")
TRIM_PROPORTION = 0.1

DEFAULT_HARD_FILTERS = {
    'min_median_profit': 0.0,
    'max_top_two_contribution': 0.60,
}


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def sample_std_dev(values: Sequence[float]) -> float:
    """Standard deviation with n-1 denominator (0 for fewer than two values)."""
    if len(values) <= 1:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def decimal_median(values: Sequence) -> Decimal:
    """Exact median of Decimal profits (0 for an empty list)."""
    if len(values) == 0:
        return ZERO

    ordered = sorted(to_decimal(v) for v in values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def decimal_top_two_contribution(values: Sequence) -> Decimal:
    """Exact share of the signed total profit produced by the two best segments."""
    if len(values) == 0:
        return ZERO

    ordered = sorted((to_decimal(v) for v in values), reverse=True)
    total = sum(ordered, ZERO)
    if abs(total) < DECIMAL_EPSILON:
        return ZERO

    return sum(ordered[:2], ZERO) / total


def top_two_contribution(values: Sequence) -> float:
    """Share of the signed total profit produced by the two best segments."""
    return float(decimal_top_two_contribution(values))


def trimmed_mean(values: Sequence[float], proportion: float = TRIM_PROPORTION) -> float:
    """
    Mean after dropping int(n * proportion) values from each end.

    Falls back to the median when trimming would remove every value.
    """
    if len(values) == 0:
        return 0.0

    arr = np.sort(np.asarray(values, dtype=float))
    trim = int(len(arr) * proportion)
    if trim * 2 >= len(arr):
        return median(values)

    return float(arr[trim:len(arr) - trim].mean())


def passes_hard_filters(
    profits: Sequence,
    min_median_profit=0.0,
    max_top_two_contribution=0.60
) -> bool:
    """
    Hard admission filters applied before any metric is computed.

    - median profit must be strictly greater than min_median_profit
    - top-two contribution must not exceed max_top_two_contribution
      (exactly at the bound passes)

    Compared in Decimal, so a ratio of exactly 0.60 is never pushed over
    the bound by binary rounding.
    """
    if len(profits) == 0:
        return False

    if decimal_median(profits) <= to_decimal(min_median_profit):
        return False

    if decimal_top_two_contribution(profits) > to_decimal(max_top_two_contribution):
        return False

    return True


def compute_performance(
    profits: Sequence,
    trade_counts: Sequence[int],
    zero_trade_count: int = 0
) -> PerformanceSnapshot:
    """
    Compute every snapshot metric for a list of segment profits.

    Args:
        profits: Per-segment profit (Decimal or float), zero-trade segments
            already removed
        trade_counts: Trade count of each segment, aligned with profits
        zero_trade_count: Number of segments excluded for having no trades

    Returns:
        PerformanceSnapshot (all zeros when profits is empty)
    """
    values = [float(p) for p in profits]
    n = len(values)

    if n == 0:
        return PerformanceSnapshot.empty(0, zero_trade_count)

    arr = np.asarray(values, dtype=float)
    mean = float(arr.mean())
    std = sample_std_dev(values)
    total = float(arr.sum())
    total_trades = int(sum(trade_counts))
    worst = float(arr.min())

    return PerformanceSnapshot(
        segment_count=n,
        zero_trade_segment_count=zero_trade_count,
        win_rate=int((arr > 0).sum()) / n,
        mean_profit=mean,
        median_profit=median(values),
        trimmed_mean_profit=trimmed_mean(values),
        std_dev_profit=std,
        coefficient_of_variation=std / abs(mean) if abs(mean) > EPSILON else 0.0,
        sharpe_ratio=mean / std if std > EPSILON else 0.0,
        total_trades=total_trades,
        profit_per_trade=total / total_trades if total_trades > 0 else 0.0,
        profit_at_fee=total,
        max_drawdown=abs(worst) if worst < 0 else 0.0,
        top_two_contribution=top_two_contribution(profits),
    )


def segment_performance(segments: Sequence[SegmentRecord], fee_rate) -> PerformanceSnapshot:
    """Snapshot over a segment list without any hard filtering."""
    active = [s for s in segments if s.trade_count > 0]
    zero_count = len(segments) - len(active)

    profits = [segment_profit(s, fee_rate) for s in active]
    return compute_performance(profits, [s.trade_count for s in active], zero_count)


def generate_performance(
    segments: Optional[Sequence[SegmentRecord]],
    fee_rate,
    hard_filters: Optional[dict] = None
) -> Optional[PerformanceSnapshot]:
    """
    Pass/fail performance for a segment list at one fee rate.

    Returns:
        PerformanceSnapshot, or None when no segment traded or a hard
        filter fails
    """
    if not segments:
        return None

    filters = {**DEFAULT_HARD_FILTERS, **(hard_filters or {})}

    active = [s for s in segments if s.trade_count > 0]
    if not active:
        logger.debug(f"No traded segments out of {len(segments)}")
        return None

    profits = [segment_profit(s, fee_rate) for s in active]

    if not passes_hard_filters(
        profits,
        min_median_profit=filters['min_median_profit'],
        max_top_two_contribution=filters['max_top_two_contribution'],
    ):
        logger.debug(
            f"Hard filters failed: median={decimal_median(profits):.6f}, "
            f"top_two={decimal_top_two_contribution(profits):.3f}"
        )
        return None

    return compute_performance(
        profits,
        [s.trade_count for s in active],
        zero_trade_count=len(segments) - len(active),
    )
