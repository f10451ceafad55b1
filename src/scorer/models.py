"""
Scoring data model

Immutable records flowing through the scoring pipeline:
- Trade legs and trades (monetary amounts as Decimal)
- Segments and strategy candidates
- Performance snapshots and validation reports (statistics as float)
- Ranked entries held by the registry
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class BuyLeg:
    amount: Decimal
    total_cost: Decimal
    succeeded: bool
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class SellLeg:
    amount: Decimal
    total_received: Decimal
    succeeded: bool
    end_time: Optional[datetime] = None


@dataclass(frozen=True)
class Trade:
    """A buy/sell pair. The sell leg is missing while a position is still open."""
    buy: Optional[BuyLeg]
    sell: Optional[SellLeg] = None

    @property
    def is_complete(self) -> bool:
        return (
            self.buy is not None
            and self.sell is not None
            and self.buy.succeeded
            and self.sell.succeeded
        )


@dataclass(frozen=True)
class SegmentRecord:
    """
    Trades produced by one strategy over one historical segment.

    trades is None when the backtest produced no trade list at all;
    train_on is None when no external train/validation flag is known.
    """
    segment_id: str
    trades: Optional[Tuple[Trade, ...]] = ()
    train_on: Optional[bool] = None

    @property
    def trade_count(self) -> int:
        return len(self.trades) if self.trades is not None else 0


@dataclass(frozen=True)
class StrategyCandidate:
    candidate_id: str
    segments: Tuple[SegmentRecord, ...]
    run_name: str = ""
    config_reference: Optional[str] = None
    metadata: Dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Summary statistics of per-segment profits at one fee rate."""
    segment_count: int
    zero_trade_segment_count: int
    win_rate: float
    mean_profit: float
    median_profit: float
    trimmed_mean_profit: float
    std_dev_profit: float
    coefficient_of_variation: float
    sharpe_ratio: float
    total_trades: int
    profit_per_trade: float
    profit_at_fee: float
    max_drawdown: float
    top_two_contribution: float

    @classmethod
    def empty(cls, segment_count: int = 0, zero_trade_segment_count: int = 0) -> "PerformanceSnapshot":
        return cls(
            segment_count=segment_count,
            zero_trade_segment_count=zero_trade_segment_count,
            win_rate=0.0,
            mean_profit=0.0,
            median_profit=0.0,
            trimmed_mean_profit=0.0,
            std_dev_profit=0.0,
            coefficient_of_variation=0.0,
            sharpe_ratio=0.0,
            total_trades=0,
            profit_per_trade=0.0,
            profit_at_fee=0.0,
            max_drawdown=0.0,
            top_two_contribution=0.0,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ValidationReport:
    test_performance: PerformanceSnapshot
    validation_performance: PerformanceSnapshot
    consistency_score: float
    quality_score: float
    notes: Tuple[str, ...] = ()
    fee_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            'fee_rate': self.fee_rate,
            'consistency_score': self.consistency_score,
            'quality_score': self.quality_score,
            'notes': list(self.notes),
            'test_performance': self.test_performance.to_dict(),
            'validation_performance': self.validation_performance.to_dict(),
        }


@dataclass(frozen=True)
class RankedEntry:
    """A candidate together with its validation reports keyed by fee rate."""
    candidate: StrategyCandidate
    reports: Dict[Decimal, ValidationReport]
    primary_fee: Decimal

    @property
    def quality_score(self) -> float:
        report = self.reports.get(self.primary_fee)
        return report.quality_score if report is not None else 0.0

    @property
    def primary_report(self) -> Optional[ValidationReport]:
        return self.reports.get(self.primary_fee)
