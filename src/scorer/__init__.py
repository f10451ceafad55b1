"""
SCORER Module - Strategy Scoring and Bounded Ranking

Components:
- profit_calculator: Fee-aware Decimal profit arithmetic
- performance: Segment statistics and hard filters
- CompositeScorer / MCDAScorer: Interchangeable quality scoring
- StrategyAnalyzer: Performance + validation reports
- RankingRegistry: Thread-safe bounded leaderboard
- StrategyAnalysisService: Score-then-rank entry point for workers
"""

from src.scorer.analysis_service import StrategyAnalysisService
from src.scorer.analyzer import StrategyAnalyzer
from src.scorer.composite_scorer import CompositeScorer
from src.scorer.mcda_scorer import MCDAScorer
from src.scorer.models import (
    BuyLeg,
    PerformanceSnapshot,
    RankedEntry,
    SegmentRecord,
    SellLeg,
    StrategyCandidate,
    Trade,
    ValidationReport,
)
from src.scorer.quality_scorer import ScoringMethod, create_scorer
from src.scorer.ranking_registry import RankingRegistry, RegistryError, RegistryState

__all__ = [
    'StrategyAnalysisService',
    'StrategyAnalyzer',
    'CompositeScorer',
    'MCDAScorer',
    'BuyLeg',
    'SellLeg',
    'Trade',
    'SegmentRecord',
    'StrategyCandidate',
    'PerformanceSnapshot',
    'ValidationReport',
    'RankedEntry',
    'ScoringMethod',
    'create_scorer',
    'RankingRegistry',
    'RegistryError',
    'RegistryState',
]
