"""
Evaluation Result Converter

Turns executor output (StrategyEvaluationResult) into StrategyCandidates:
- one candidate per executor, with a fresh UUID
- segment ids taken from the segment details by position
- segments without a trade list are skipped
- train flags taken from the segment configuration when one is supplied
"""

import uuid
from decimal import Decimal
from typing import Iterable, List, Optional, Set

from src.backtester.schemas import (
    ExecutorEvaluationResult,
    SegmentConfig,
    StrategyEvaluationResult,
    TradeStats,
)
from src.scorer.models import BuyLeg, SegmentRecord, SellLeg, StrategyCandidate, Trade
from src.scorer.profit_calculator import profit_by_fee_tier
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_FEE_TIERS = [
    0.0, 0.001, 0.008, 0.01, 0.015, 0.02, 0.025, 0.03, 0.035, 0.04, 0.05, 0.06,
]


def train_segment_ids(segment_config: Optional[SegmentConfig]) -> Optional[Set[str]]:
    """
    Ids of segments flagged for training.

    None (meaning "all segments") when there is no segment configuration or
    when no segment is flagged for training.
    """
    if segment_config is None or not segment_config.segments:
        return None

    ids = {s.id for s in segment_config.segments if s.train_on}
    return ids or None


def holdout_segment_ids(segment_config: Optional[SegmentConfig]) -> Optional[Set[str]]:
    """
    Ids of segments held out for testing.

    None when there is no segment configuration; an empty set when every
    segment is a training segment.
    """
    if segment_config is None or not segment_config.segments:
        return None

    return {s.id for s in segment_config.segments if not s.train_on}


def _convert_trade(stats: TradeStats) -> Trade:
    buy = None
    if stats.buy_stats is not None:
        buy = BuyLeg(
            amount=stats.buy_stats.amount_bought,
            total_cost=Decimal(stats.buy_stats.total_cost),
            succeeded=stats.buy_stats.is_successful,
            end_time=stats.buy_stats.end_time,
        )

    sell = None
    if stats.sell_stats is not None:
        sell = SellLeg(
            amount=stats.sell_stats.amount_sold,
            total_received=Decimal(stats.sell_stats.total_received),
            succeeded=stats.sell_stats.is_successful,
            end_time=stats.sell_stats.end_time,
        )

    return Trade(buy=buy, sell=sell)


def _segment_ids(result: StrategyEvaluationResult) -> List[str]:
    return [d.id for d in (result.segment_details or []) if d is not None and d.id]


def convert_executor_result(
    executor_result: ExecutorEvaluationResult,
    segment_ids: List[str],
    run_name: str,
    segment_config: Optional[SegmentConfig] = None,
    config_reference: Optional[dict] = None,
    fee_tiers: Iterable = DEFAULT_FEE_TIERS,
) -> StrategyCandidate:
    """Build one candidate from one executor's per-segment stats."""
    train_flags = segment_config.train_on_map() if segment_config is not None else {}

    segments = []
    for index, segment_stats in enumerate(executor_result.segment_stats or []):
        executor_stats = segment_stats.executor_stats
        if executor_stats is None or executor_stats.trade_stats_list is None:
            continue

        if index < len(segment_ids):
            segment_id = segment_ids[index]
        else:
            segment_id = f"segment-{segment_stats.segment_number}"

        trades = tuple(
            _convert_trade(t) for t in executor_stats.trade_stats_list if t is not None
        )
        segments.append(SegmentRecord(
            segment_id=segment_id,
            trades=trades,
            train_on=train_flags.get(segment_id),
        ))

    candidate = StrategyCandidate(
        candidate_id=str(uuid.uuid4()),
        segments=tuple(segments),
        run_name=run_name,
        config_reference=executor_result.executor_name,
        metadata={
            'executor_name': executor_result.executor_name,
            'executor_config': config_reference,
            'segment_count': len(executor_result.segment_stats or []),
        },
    )

    candidate.metadata['train_profit'] = profit_by_fee_tier(
        candidate, fee_tiers, train_segment_ids(segment_config)
    )
    candidate.metadata['test_profit'] = profit_by_fee_tier(
        candidate, fee_tiers, holdout_segment_ids(segment_config)
    )
    return candidate


def convert_evaluation_result(
    result: Optional[StrategyEvaluationResult],
    run_name: str,
    segment_config: Optional[SegmentConfig] = None,
    fee_tiers: Iterable = DEFAULT_FEE_TIERS,
) -> List[StrategyCandidate]:
    """
    Convert a whole executor output file into candidates.

    Returns:
        One StrategyCandidate per executor (empty list for empty input)
    """
    if result is None or not result.executor_evaluation_results:
        return []

    fee_tiers = list(fee_tiers)
    segment_ids = _segment_ids(result)

    candidates = [
        convert_executor_result(
            executor_result,
            segment_ids,
            run_name,
            segment_config=segment_config,
            config_reference=result.executor_config(executor_result.executor_name),
            fee_tiers=fee_tiers,
        )
        for executor_result in result.executor_evaluation_results
    ]

    logger.debug(f"Converted {len(candidates)} candidates for run '{run_name}'")
    return candidates
