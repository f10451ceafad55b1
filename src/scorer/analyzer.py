"""
Strategy Analyzer

Combines performance metrics with a quality scorer:
- generate_performance(): pass/fail check at one fee rate
- generate_validation(): test vs validation report, never filters
"""

from typing import Optional, Sequence

from src.scorer import performance
from src.scorer.models import PerformanceSnapshot, SegmentRecord, ValidationReport
from src.scorer.quality_scorer import QualityScorer, consistency_score, create_scorer


class StrategyAnalyzer:
    """
    Stateless analyzer bound to one scoring method.

    Safe to share between worker threads.
    """

    def __init__(self, scorer: Optional[QualityScorer] = None, hard_filters: Optional[dict] = None):
        self.scorer = scorer if scorer is not None else create_scorer()
        self.hard_filters = {**performance.DEFAULT_HARD_FILTERS, **(hard_filters or {})}

    def generate_performance(
        self,
        segments: Optional[Sequence[SegmentRecord]],
        fee_rate
    ) -> Optional[PerformanceSnapshot]:
        """
        Performance at fee_rate, or None if the segments do not qualify.

        None means: no segments, no segment with trades, median profit not
        positive, or two segments carrying more than the allowed share of
        total profit.
        """
        return performance.generate_performance(segments, fee_rate, self.hard_filters)

    def generate_validation(
        self,
        test_segments: Sequence[SegmentRecord],
        validation_segments: Sequence[SegmentRecord],
        fee_rate
    ) -> ValidationReport:
        """
        Score test vs validation performance at fee_rate.

        Always returns a report. Zero-trade segments are excluded from both
        snapshots and counted separately.
        """
        test_perf = performance.segment_performance(test_segments or [], fee_rate)
        val_perf = performance.segment_performance(validation_segments or [], fee_rate)

        consistency = consistency_score(test_perf, val_perf)

        return ValidationReport(
            test_performance=test_perf,
            validation_performance=val_perf,
            consistency_score=consistency,
            quality_score=self.scorer.compute_quality(test_perf, val_perf, consistency),
            notes=tuple(self.scorer.generate_notes(test_perf, val_perf, consistency)),
            fee_rate=float(fee_rate),
        )
