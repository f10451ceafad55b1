"""
Backtest output module

Reads backtest executor output and turns it into scoring candidates.
"""

from src.backtester.converter import convert_evaluation_result
from src.backtester.result_loader import load_evaluation_result, load_segment_config
from src.backtester.schemas import SegmentConfig, StrategyEvaluationResult
from src.backtester.strategy_filter import filter_failed_strategies

__all__ = [
    'convert_evaluation_result',
    'load_evaluation_result',
    'load_segment_config',
    'SegmentConfig',
    'StrategyEvaluationResult',
    'filter_failed_strategies',
]
