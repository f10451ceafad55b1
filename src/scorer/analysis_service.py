"""
Strategy Analysis Service

Entry point shared by every worker of a batch run:
1. Split candidate segments into test/validation
2. Hard-filter pass at the filter fee on the test split
3. Validation reports at every validation fee tier (first tier is primary)
4. Offer the scored entry to the shared RankingRegistry

Steps 1-3 run without any lock; only step 4 touches shared state.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from src.scorer.analyzer import StrategyAnalyzer
from src.scorer.models import RankedEntry, StrategyCandidate, ValidationReport
from src.scorer.profit_calculator import to_decimal
from src.scorer.quality_scorer import ScoringMethod, create_scorer
from src.scorer.ranking_registry import DEFAULT_CAPACITY, DEFAULT_LOCK_TIMEOUT, RankingRegistry
from src.scorer.segment_split import DEFAULT_TEST_RATIO, split_segments
from src.utils.counters import RunCounters
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_FILTER_FEE = 0.0001
DEFAULT_VALIDATION_FEES = [0.0001, 0.008, 0.015]


class StrategyAnalysisService:
    """
    Scores candidates and keeps the best of them.

    All public methods are safe for concurrent use.
    """

    def __init__(self, config: Optional[dict] = None, registry: Optional[RankingRegistry] = None):
        """
        Args:
            config: Full configuration dict ('scoring' and 'ranking' sections).
                None uses defaults (MCDA, capacity 100).
            registry: Registry to use instead of building one from config
        """
        config = config or {}
        scoring = config.get('scoring', {})
        ranking = config.get('ranking', {})

        self.method = ScoringMethod(scoring.get('method', ScoringMethod.MCDA.value))
        self.filter_fee = to_decimal(scoring.get('filter_fee', DEFAULT_FILTER_FEE))
        self.validation_fees = [
            to_decimal(f) for f in scoring.get('validation_fees', DEFAULT_VALIDATION_FEES)
        ]
        if not self.validation_fees:
            raise ValueError("At least one validation fee is required")
        self.primary_fee = self.validation_fees[0]
        self.test_ratio = scoring.get('split', {}).get('test_ratio', DEFAULT_TEST_RATIO)

        self.analyzer = StrategyAnalyzer(
            scorer=create_scorer(self.method, config),
            hard_filters=scoring.get('hard_filters'),
        )

        self.registry = registry if registry is not None else RankingRegistry(
            capacity=ranking.get('capacity', DEFAULT_CAPACITY),
            lock_timeout=ranking.get('lock_timeout_seconds', DEFAULT_LOCK_TIMEOUT),
        )
        self.counters = RunCounters()

        logger.info(
            f"StrategyAnalysisService initialized: method={self.method.value}, "
            f"capacity={self.registry.capacity}, "
            f"validation_fees={[float(f) for f in self.validation_fees]}"
        )

    def score(self, candidate: StrategyCandidate) -> Optional[RankedEntry]:
        """
        Score a candidate without touching the registry.

        Returns:
            RankedEntry, or None if the candidate fails the hard filters
        """
        if candidate is None or not candidate.segments:
            return None

        test_segments, validation_segments = split_segments(candidate.segments, self.test_ratio)

        if self.analyzer.generate_performance(test_segments, self.filter_fee) is None:
            return None

        reports: Dict[Decimal, ValidationReport] = {
            fee: self.analyzer.generate_validation(test_segments, validation_segments, fee)
            for fee in self.validation_fees
        }

        return RankedEntry(candidate=candidate, reports=reports, primary_fee=self.primary_fee)

    def add_strategy(self, candidate: StrategyCandidate) -> bool:
        """
        Score a candidate and offer it to the leaderboard.

        Returns:
            True if the candidate entered the registry
        """
        self.counters.submitted.increment()

        entry = self.score(candidate)
        if entry is None:
            self.counters.filtered_out.increment()
            cid = candidate.candidate_id if candidate is not None else None
            logger.debug(f"Candidate {cid} filtered out")
            return False

        if self.registry.try_add(entry):
            self.counters.accepted.increment()
            return True

        self.counters.rejected.increment()
        return False

    def get_top_strategies(self) -> List[RankedEntry]:
        return self.registry.snapshot()

    def get_count(self) -> int:
        return self.registry.size()

    def get_minimum_quality_score(self) -> float:
        return self.registry.minimum_score()
