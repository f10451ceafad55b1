"""
Test Strategy Analysis Service

Split policy, score-then-rank flow and run counters.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from src.scorer.analysis_service import StrategyAnalysisService
from src.scorer.composite_scorer import CompositeScorer
from src.scorer.mcda_scorer import MCDAScorer
from src.scorer.ranking_registry import RankingRegistry
from src.scorer.segment_split import split_segments
from tests.factories import make_candidate, make_segment

BASE_PROFITS = [0.05, 0.04, 0.03, 0.02, 0.01, 0.05, 0.04, 0.03, 0.02, 0.03]


def scaled_candidate(factor: float, candidate_id: str):
    return make_candidate([p * factor for p in BASE_PROFITS], candidate_id=candidate_id)


class TestSplitSegments:
    """Train/validation split"""

    @pytest.mark.parametrize("n,test_count", [(10, 8), (5, 4), (3, 3), (1, 1), (35, 28)])
    def test_positional_split(self, n, test_count):
        segments = [make_segment(f"s{i}", [0.01]) for i in range(n)]

        test, val = split_segments(segments)

        assert len(test) == test_count
        assert len(val) == n - test_count
        assert test + val == segments

    def test_train_flags_take_precedence(self):
        flags = [False, True, True, False, True]
        segments = [make_segment(f"s{i}", [0.01], train_on=f) for i, f in enumerate(flags)]

        test, val = split_segments(segments)

        assert [s.segment_id for s in test] == ["s1", "s2", "s4"]
        assert [s.segment_id for s in val] == ["s0", "s3"]

    def test_partial_flags_fall_back_to_position(self):
        segments = [make_segment("a", [0.01], train_on=False)] + [
            make_segment(f"s{i}", [0.01]) for i in range(4)
        ]

        test, val = split_segments(segments)

        assert len(test) == 4
        assert test[0].segment_id == "a"

    @pytest.mark.parametrize("flag", [True, False])
    def test_one_sided_flags_fall_back_to_position(self, flag):
        segments = [make_segment(f"s{i}", [0.01], train_on=flag) for i in range(10)]

        test, val = split_segments(segments)

        assert len(test) == 8
        assert [s.segment_id for s in val] == ["s8", "s9"]

    def test_empty(self):
        assert split_segments([]) == ([], [])


class TestAddStrategy:
    """Score-then-rank flow"""

    def test_defaults(self):
        service = StrategyAnalysisService()
        assert isinstance(service.analyzer.scorer, MCDAScorer)
        assert service.registry.capacity == 100
        assert service.primary_fee == Decimal("0.0001")

    def test_method_from_config(self, scoring_config):
        scoring_config['scoring']['method'] = 'composite'
        service = StrategyAnalysisService(scoring_config)
        assert isinstance(service.analyzer.scorer, CompositeScorer)

    def test_none_candidate(self):
        service = StrategyAnalysisService()
        assert service.add_strategy(None) is False
        assert service.counters.filtered_out.value == 1

    def test_hard_filtered_candidate_rejected(self):
        service = StrategyAnalysisService()
        # Test split [10, -2, 3, 1]: two segments carry > 100% of profit
        assert not service.add_strategy(make_candidate([10, -2, 3, 1, 50]))
        assert service.get_count() == 0

    def test_accepted_candidate_has_report_per_fee(self, scoring_config):
        service = StrategyAnalysisService(scoring_config)

        assert service.add_strategy(scaled_candidate(1.0, "a"))

        entry = service.get_top_strategies()[0]
        assert set(entry.reports) == {Decimal("0.0001"), Decimal("0.008"), Decimal("0.015")}
        assert entry.quality_score == entry.reports[Decimal("0.0001")].quality_score
        assert entry.primary_report.test_performance.segment_count == 8
        assert entry.primary_report.validation_performance.segment_count == 2

    def test_all_training_flags_still_leave_validation(self, scoring_config):
        service = StrategyAnalysisService(scoring_config)
        candidate = make_candidate(BASE_PROFITS, candidate_id="a", train_flags=[True] * 10)

        entry = service.score(candidate)

        assert entry is not None
        assert entry.primary_report.test_performance.segment_count == 8
        assert entry.primary_report.validation_performance.segment_count == 2

    def test_higher_fee_lowers_profit(self, scoring_config):
        service = StrategyAnalysisService(scoring_config)
        entry = service.score(scaled_candidate(1.0, "a"))

        low = entry.reports[Decimal("0.0001")].test_performance.profit_at_fee
        high = entry.reports[Decimal("0.015")].test_performance.profit_at_fee
        assert high < low

    def test_score_does_not_touch_registry(self):
        service = StrategyAnalysisService()
        assert service.score(scaled_candidate(1.0, "a")) is not None
        assert service.get_count() == 0

    def test_capacity_eviction(self, scoring_config):
        scoring_config['ranking']['capacity'] = 2
        service = StrategyAnalysisService(scoring_config)

        assert service.add_strategy(scaled_candidate(1.0, "low"))
        assert service.add_strategy(scaled_candidate(2.0, "mid"))
        assert service.add_strategy(scaled_candidate(3.0, "high"))
        assert not service.add_strategy(scaled_candidate(0.5, "lowest"))

        ids = [e.candidate.candidate_id for e in service.get_top_strategies()]
        assert ids == ["high", "mid"]
        assert service.get_minimum_quality_score() == service.get_top_strategies()[-1].quality_score
        assert service.counters.to_dict() == {
            'submitted': 4, 'filtered_out': 0, 'accepted': 3, 'rejected': 1,
        }

    def test_shared_registry(self):
        registry = RankingRegistry(capacity=3)
        service = StrategyAnalysisService(registry=registry)
        service.add_strategy(scaled_candidate(1.0, "a"))
        assert registry.size() == 1

    def test_empty_validation_fees_rejected(self):
        with pytest.raises(ValueError):
            StrategyAnalysisService({'scoring': {'validation_fees': []}})


class TestConcurrentAddStrategy:
    """Many workers, one service"""

    def test_counters_and_capacity(self, scoring_config):
        service = StrategyAnalysisService(scoring_config)
        candidates = [scaled_candidate(0.5 + i * 0.05, f"c{i}") for i in range(40)]
        candidates += [make_candidate([10, -2, 3, 1, 50], candidate_id=f"bad{i}") for i in range(10)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(service.add_strategy, candidates))

        counters = service.counters.to_dict()
        assert counters['submitted'] == 50
        assert counters['filtered_out'] == 10
        assert counters['accepted'] + counters['rejected'] == 40
        assert service.get_count() == scoring_config['ranking']['capacity']
