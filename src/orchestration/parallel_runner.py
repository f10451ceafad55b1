"""
Parallel Runner

Runs backtest jobs on a fixed thread pool against one shared
StrategyAnalysisService:
1. Create the batch run record in the sink
2. Each worker loads its job result, converts it to candidates,
   optionally pre-filters, and submits every candidate
3. Drain the registry once and persist the final ranking

A failing job is logged and counted, other jobs keep running.
A RegistryError aborts the whole run.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed, Future
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from src.backtester.converter import (
    DEFAULT_FEE_TIERS,
    convert_evaluation_result,
    holdout_segment_ids,
    train_segment_ids,
)
from src.backtester.schemas import SegmentConfig, StrategyEvaluationResult
from src.backtester.strategy_filter import filter_failed_strategies
from src.database.sink import InMemorySink, PersistenceSink
from src.scorer.analysis_service import StrategyAnalysisService
from src.scorer.models import RankedEntry
from src.scorer.ranking_registry import RegistryError
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BacktestJob:
    """
    One backtest whose output is ready to be scored.

    load returns the parsed executor output; launching the executor itself
    happens elsewhere.
    """
    name: str
    load: Callable[[], StrategyEvaluationResult]
    segment_config: Optional[SegmentConfig] = None
    run_name: Optional[str] = None


@dataclass
class RunSummary:
    batch_run_id: str
    job_count: int
    completed_jobs: int = 0
    failed_jobs: int = 0
    skipped_jobs: int = 0
    total_strategies: int = 0
    uploaded_strategies: int = 0
    counters: Dict[str, int] = field(default_factory=dict)
    top_strategies: List[RankedEntry] = field(default_factory=list)


def segment_train_info(segment_config: Optional[SegmentConfig]) -> Optional[dict]:
    if segment_config is None:
        return None
    return {
        'train': sorted(train_segment_ids(segment_config) or []),
        'test': sorted(holdout_segment_ids(segment_config) or []),
    }


class ParallelRunner:
    """
    Fixed-size worker pool feeding one analysis service.

    The service's registry is drained at the end of run(), so a runner
    and its service serve a single batch.
    """

    def __init__(
        self,
        config: Optional[dict] = None,
        service: Optional[StrategyAnalysisService] = None,
        sink: Optional[PersistenceSink] = None
    ):
        self.config = config or {}
        runner_config = self.config.get('runner', {})
        prefilter = runner_config.get('prefilter', {})

        self.parallel_runners = runner_config.get('parallel_runners', 4)
        self.prefilter_enabled = prefilter.get('enabled', False)
        self.upload_percentage = prefilter.get('upload_percentage', 1.0)
        self.prefilter_fee = prefilter.get('fee', 0.008)
        self.fee_tiers = self.config.get('scoring', {}).get('fee_tiers', DEFAULT_FEE_TIERS)
        self.server = self.config.get('system', {}).get('server', 'local')

        self.service = service if service is not None else StrategyAnalysisService(self.config)
        self.sink = sink if sink is not None else InMemorySink()
        self.shutdown_event = threading.Event()

        self._stats_lock = threading.Lock()
        self._total_strategies = 0

        logger.info(
            f"ParallelRunner initialized: {self.parallel_runners} runners, "
            f"prefilter={'on' if self.prefilter_enabled else 'off'}"
        )

    def request_shutdown(self) -> None:
        """Stop starting new jobs; jobs already running finish normally."""
        logger.info("Shutdown requested - no new jobs will start")
        self.shutdown_event.set()

    def _run_job(self, job: BacktestJob) -> Optional[int]:
        """
        Load, convert and submit one job.

        Returns:
            Number of candidates submitted, or None if skipped for shutdown
        """
        if self.shutdown_event.is_set():
            logger.debug(f"[{job.name}] Skipped (shutdown)")
            return None

        result = job.load()
        candidates = convert_evaluation_result(
            result,
            run_name=job.run_name or job.name,
            segment_config=job.segment_config,
            fee_tiers=self.fee_tiers,
        )

        with self._stats_lock:
            self._total_strategies += len(candidates)

        if self.prefilter_enabled:
            before = len(candidates)
            candidates = filter_failed_strategies(candidates, self.upload_percentage, self.prefilter_fee)
            logger.debug(f"[{job.name}] Pre-filter kept {len(candidates)}/{before}")

        accepted = 0
        for candidate in candidates:
            if self.service.add_strategy(candidate):
                accepted += 1

        logger.info(
            f"[{job.name}] Submitted {len(candidates)} candidates, {accepted} accepted "
            f"(registry {self.service.get_count()}/{self.service.registry.capacity})"
        )
        return len(candidates)

    def run(self, jobs: List[BacktestJob], name: str = "batch") -> RunSummary:
        """
        Run every job and persist the final ranking.

        Raises:
            RegistryError: If the shared registry is misused (aborts the run)
        """
        first_config = next((j.segment_config for j in jobs if j.segment_config is not None), None)

        batch_run_id = self.sink.create_batch_run(
            name,
            server=self.server,
            scoring_method=self.service.method.value,
            parallel_runners=self.parallel_runners,
            job_count=len(jobs),
            segment_count=len(first_config.segments) if first_config else 0,
            segment_train_info=segment_train_info(first_config),
        )
        summary = RunSummary(batch_run_id=batch_run_id, job_count=len(jobs))

        logger.info(f"Starting batch '{name}': {len(jobs)} jobs on {self.parallel_runners} runners")

        executor = ThreadPoolExecutor(
            max_workers=self.parallel_runners,
            thread_name_prefix="ToeRunner"
        )
        futures: Dict[Future, BacktestJob] = {}
        try:
            futures = {executor.submit(self._run_job, job): job for job in jobs}

            for future in as_completed(futures):
                job = futures[future]
                try:
                    submitted = future.result()
                except RegistryError:
                    logger.critical(f"[{job.name}] Registry failure - aborting batch", exc_info=True)
                    self.shutdown_event.set()
                    raise
                except Exception as e:
                    summary.failed_jobs += 1
                    logger.error(f"[{job.name}] Job failed: {e}", exc_info=True)
                    continue

                if submitted is None:
                    summary.skipped_jobs += 1
                else:
                    summary.completed_jobs += 1
        finally:
            executor.shutdown(wait=True, cancel_futures=self.shutdown_event.is_set())

        final = self.service.registry.drain()
        for rank, entry in enumerate(final, start=1):
            self.sink.append_ranked_entry(batch_run_id, entry, rank)
            self.sink.append_segment_details(batch_run_id, entry, self.fee_tiers)

        summary.total_strategies = self._total_strategies
        summary.uploaded_strategies = len(final)
        summary.counters = self.service.counters.to_dict()
        summary.top_strategies = final

        self.sink.update_run_summary(
            batch_run_id,
            total_strategies=summary.total_strategies,
            uploaded_strategies=summary.uploaded_strategies,
            failed_jobs=summary.failed_jobs,
            counters=summary.counters,
        )

        logger.info(
            f"Batch '{name}' complete: {summary.completed_jobs} jobs ok, "
            f"{summary.failed_jobs} failed, {summary.skipped_jobs} skipped, "
            f"{summary.uploaded_strategies}/{summary.total_strategies} strategies ranked"
        )
        return summary
