"""
Pydantic schemas for backtest executor output and segment configuration

The executor writes PascalCase JSON; camelCase and snake_case keys are
accepted as well.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _alias(pascal: str, **kwargs):
    camel = pascal[0].lower() + pascal[1:]
    return Field(validation_alias=AliasChoices(pascal, camel), **kwargs)


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# TRADE LEGS
# =============================================================================

class BuyStats(_Schema):
    """Completed (or failed) buy operation"""
    amount_bought: Decimal = _alias("AmountBought", default=Decimal("0"))
    average_price: Decimal = _alias("AveragePrice", default=Decimal("0"))
    total_cost: Decimal = _alias("TotalCost", default=Decimal("0"))
    total_fees: Decimal = _alias("TotalFees", default=Decimal("0"))
    is_successful: bool = _alias("IsSuccessful", default=False)
    error_message: Optional[str] = _alias("ErrorMessage", default="")
    start_time: Optional[datetime] = _alias("StartTime", default=None)
    end_time: Optional[datetime] = _alias("EndTime", default=None)


class SellStats(_Schema):
    """Completed (or failed) sell operation"""
    amount_sold: Decimal = _alias("AmountSold", default=Decimal("0"))
    average_price: Decimal = _alias("AveragePrice", default=Decimal("0"))
    total_received: Decimal = _alias("TotalReceived", default=Decimal("0"))
    total_fees: Decimal = _alias("TotalFees", default=Decimal("0"))
    is_successful: bool = _alias("IsSuccessful", default=False)
    error_message: Optional[str] = _alias("ErrorMessage", default="")
    start_time: Optional[datetime] = _alias("StartTime", default=None)
    end_time: Optional[datetime] = _alias("EndTime", default=None)


class TradeStats(_Schema):
    """Buy/sell pair; sell_stats is None while the position is open"""
    buy_stats: Optional[BuyStats] = _alias("BuyStats", default=None)
    sell_stats: Optional[SellStats] = _alias("SellStats", default=None)


# =============================================================================
# EXECUTOR RESULTS
# =============================================================================

class ExecutorStats(_Schema):
    """Statistics of one executor over one segment"""
    trading_pair: Optional[Any] = _alias("TradingPair", default=None)
    start_time: Optional[datetime] = _alias("StartTime", default=None)
    total_running_time: Optional[Any] = _alias("TotalRunningTime", default=None)
    trade_stats_list: Optional[List[TradeStats]] = _alias("TradeStatsList", default=None)


class SegmentExecutorStats(_Schema):
    segment_number: int = _alias("SegmentNumber")
    executor_stats: Optional[ExecutorStats] = _alias("ExecutorStats", default=None)


class ExecutorEvaluationResult(_Schema):
    """All segment stats of one executor (one strategy candidate)"""
    executor_name: str = _alias("ExecutorName")
    segment_stats: Optional[List[SegmentExecutorStats]] = _alias("SegmentStats", default_factory=list)


class PlaybackSegmentDetails(_Schema):
    id: str = _alias("Id")
    file_path: Optional[str] = _alias("FilePath", default=None)
    use_dex: bool = _alias("UseDex", default=False)
    crypto_trading_pair: Optional[Any] = _alias("CryptoTradingPair", default=None)


class StrategyEvaluationResult(_Schema):
    """Top-level executor output file"""
    segment_details: Optional[List[PlaybackSegmentDetails]] = _alias("SegmentDetails", default=None)
    trade_container_config: Optional[Dict[str, Any]] = _alias("TradeContainerConfig", default=None)
    executor_evaluation_results: Optional[List[ExecutorEvaluationResult]] = _alias(
        "ExecutorEvaluationResults", default=None
    )

    def executor_config(self, executor_name: str) -> Optional[Dict[str, Any]]:
        """Executor entry of the trade container config matching executor_name"""
        container = self.trade_container_config or {}
        executors = container.get("Executors") or container.get("executors") or []
        for executor in executors:
            if isinstance(executor, dict) and (executor.get("Name") or executor.get("name")) == executor_name:
                return executor
        return None


# =============================================================================
# SEGMENT CONFIGURATION
# =============================================================================

class SegmentInfo(_Schema):
    id: str = _alias("Id", default="")
    path: str = _alias("Path", default="")
    asset_id: str = _alias("AssetId", default="")
    quote_asset_id: str = _alias("QuoteAssetId", default="")
    train_on: bool = _alias("TrainOn", default=True)


class SegmentConfig(_Schema):
    data_type: str = _alias("DataType", default="")
    segments: List[SegmentInfo] = _alias("Segments", default_factory=list)

    def train_on_map(self) -> Dict[str, bool]:
        return {s.id: s.train_on for s in self.segments}
