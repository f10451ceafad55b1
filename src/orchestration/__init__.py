"""
ToeRank Orchestration Module

Runs backtest jobs in parallel against one shared analysis service.
"""

from src.orchestration.parallel_runner import BacktestJob, ParallelRunner, RunSummary

__all__ = [
    'BacktestJob',
    'ParallelRunner',
    'RunSummary',
]
