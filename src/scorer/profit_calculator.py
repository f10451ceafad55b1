"""
Profit Calculator

Fee-aware profit arithmetic over trades, segments and candidates.
All amounts are Decimal; the fee rate is applied independently to the
buy cost and to the sell proceeds.

    profit = (received - received * fee) - (cost + cost * fee)

Incomplete trades (missing or failed leg) contribute zero.
"""

from decimal import Decimal
from typing import Dict, Iterable, Optional, Set

from src.scorer.models import SegmentRecord, StrategyCandidate, Trade

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Coerce a fee rate or amount to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def trade_profit(trade: Trade, fee_rate) -> Decimal:
    """Net profit of one trade after fees on both legs."""
    if trade is None or not trade.is_complete:
        return ZERO

    fee = to_decimal(fee_rate)
    cost = trade.buy.total_cost
    received = trade.sell.total_received

    return (received - received * fee) - (cost + cost * fee)


def trade_profit_pct(trade: Trade, fee_rate) -> Decimal:
    """Net profit as a fraction of the buy cost (zero when cost is zero)."""
    if trade is None or not trade.is_complete:
        return ZERO

    cost = trade.buy.total_cost
    if cost == 0:
        return ZERO

    return trade_profit(trade, fee_rate) / cost


def segment_profit(segment: SegmentRecord, fee_rate) -> Decimal:
    if segment is None or not segment.trades:
        return ZERO

    return sum((trade_profit(t, fee_rate) for t in segment.trades), ZERO)


def strategy_total_profit(
    candidate: StrategyCandidate,
    fee_rate,
    segment_filter: Optional[Set[str]] = None
) -> Decimal:
    """
    Sum of segment profits for a candidate.

    Args:
        candidate: Strategy candidate
        fee_rate: Per-leg fee fraction
        segment_filter: Segment ids to include. None includes every segment,
            an empty set includes none.

    Returns:
        Total net profit
    """
    if candidate is None:
        return ZERO

    total = ZERO
    for segment in candidate.segments:
        if segment_filter is not None and segment.segment_id not in segment_filter:
            continue
        total += segment_profit(segment, fee_rate)

    return total


def count_segment_trades(segment: SegmentRecord) -> int:
    if segment is None:
        return 0
    return segment.trade_count


def count_trades(candidate: StrategyCandidate) -> int:
    if candidate is None:
        return 0
    return sum(count_segment_trades(s) for s in candidate.segments)


def average_profit_per_trade(candidate: StrategyCandidate, fee_rate) -> Decimal:
    trades = count_trades(candidate)
    if trades == 0:
        return ZERO
    return strategy_total_profit(candidate, fee_rate) / trades


def average_segment_profit(candidate: StrategyCandidate, fee_rate) -> Decimal:
    """Mean profit over the segments whose profit is non-zero."""
    if candidate is None:
        return ZERO

    profits = [segment_profit(s, fee_rate) for s in candidate.segments]
    profits = [p for p in profits if p != 0]
    if not profits:
        return ZERO

    return sum(profits, ZERO) / len(profits)


def profit_by_fee_tier(
    candidate: StrategyCandidate,
    fee_tiers: Iterable,
    segment_filter: Optional[Set[str]] = None
) -> Dict[float, float]:
    """
    Total profit at each fee tier, as floats for persistence and reporting.

    Example:
        >>> profit_by_fee_tier(candidate, [0.0, 0.008])
        {0.0: 1.25, 0.008: 0.41}
    """
    return {
        float(fee): float(strategy_total_profit(candidate, fee, segment_filter))
        for fee in fee_tiers
    }
