"""
Test Parallel Runner

Worker pool feeding one analysis service, job failure isolation,
shutdown and persistence of the final ranking.
"""

import threading

import pytest

from src.backtester.schemas import SegmentConfig
from src.database.sink import InMemorySink
from src.orchestration.parallel_runner import BacktestJob, ParallelRunner, segment_train_info
from src.scorer.analysis_service import StrategyAnalysisService
from src.scorer.ranking_registry import RegistryError
from tests.factories import make_evaluation_result

BASE_PROFITS = [0.05, 0.04, 0.03, 0.02, 0.01, 0.05, 0.04, 0.03, 0.02, 0.03]


def job(name, factors, **kwargs):
    profits = {
        f"{name}-ex{i}": [p * f for p in BASE_PROFITS]
        for i, f in enumerate(factors)
    }
    return BacktestJob(name=name, load=lambda: make_evaluation_result(profits), **kwargs)


def failing_job(name):
    def load():
        raise FileNotFoundError(f"{name}.json")
    return BacktestJob(name=name, load=load)


class TestSegmentTrainInfo:

    def test_train_and_test_ids(self):
        config = SegmentConfig.model_validate({"Segments": [
            {"Id": "b", "TrainOn": True},
            {"Id": "a", "TrainOn": True},
            {"Id": "c", "TrainOn": False},
        ]})
        assert segment_train_info(config) == {'train': ['a', 'b'], 'test': ['c']}

    def test_no_config(self):
        assert segment_train_info(None) is None


class TestParallelRunner:

    def test_run_ranks_and_persists(self, scoring_config):
        sink = InMemorySink()
        runner = ParallelRunner(scoring_config, sink=sink)
        jobs = [job(f"job{j}", [1 + j, 1.5 + j]) for j in range(3)]

        summary = runner.run(jobs, name="nightly")

        assert summary.completed_jobs == 3
        assert summary.failed_jobs == 0
        assert summary.total_strategies == 6
        assert summary.uploaded_strategies == 5
        assert summary.counters['submitted'] == 6
        assert len(summary.top_strategies) == 5

        run = sink.batch_runs[summary.batch_run_id]
        assert run['name'] == "nightly"
        assert run['server'] == "test-host"
        assert run['scoring_method'] == "mcda"
        assert run['parallel_runners'] == 3
        assert run['uploaded_strategies'] == 5
        assert run['end_time'] is not None

        ranked = sink.ranked_entries[summary.batch_run_id]
        assert [r['rank'] for r in ranked] == [1, 2, 3, 4, 5]
        scores = [r['quality_score'] for r in ranked]
        assert scores == sorted(scores, reverse=True)
        assert len(sink.segment_details[summary.batch_run_id]) == 5 * len(BASE_PROFITS)

    def test_workers_named(self, scoring_config):
        names = set()

        def load():
            names.add(threading.current_thread().name)
            return make_evaluation_result({"ex": BASE_PROFITS})

        runner = ParallelRunner(scoring_config)
        runner.run([BacktestJob(name="j", load=load)])

        assert all(n.startswith("ToeRunner") for n in names)

    def test_failing_job_counted_not_fatal(self, scoring_config):
        sink = InMemorySink()
        runner = ParallelRunner(scoring_config, sink=sink)

        summary = runner.run([job("ok", [1.0]), failing_job("broken")])

        assert summary.completed_jobs == 1
        assert summary.failed_jobs == 1
        assert summary.uploaded_strategies == 1
        assert sink.batch_runs[summary.batch_run_id]['failed_jobs'] == 1

    def test_shutdown_skips_new_jobs(self, scoring_config):
        runner = ParallelRunner(scoring_config)
        runner.request_shutdown()

        summary = runner.run([job("a", [1.0]), job("b", [1.0])])

        assert summary.skipped_jobs == 2
        assert summary.uploaded_strategies == 0

    def test_registry_error_aborts_run(self, scoring_config):
        service = StrategyAnalysisService(scoring_config)
        service.registry.drain()
        runner = ParallelRunner(scoring_config, service=service)

        with pytest.raises(RegistryError):
            runner.run([job("a", [1.0])])

    def test_prefilter_limits_submissions(self, scoring_config):
        scoring_config['runner']['prefilter'] = {
            'enabled': True, 'upload_percentage': 0.5, 'fee': 0.0,
        }
        runner = ParallelRunner(scoring_config)

        summary = runner.run([job("a", [1.0, 2.0, 3.0, 4.0])])

        assert summary.total_strategies == 4
        assert summary.counters['submitted'] == 2
        executors = {e.candidate.metadata['executor_name'] for e in summary.top_strategies}
        assert executors == {"a-ex3", "a-ex2"}

    def test_segment_config_recorded(self, scoring_config):
        sink = InMemorySink()
        config = SegmentConfig.model_validate({"Segments": [
            {"Id": f"seg-{i}", "TrainOn": i < 8} for i in range(10)
        ]})
        runner = ParallelRunner(scoring_config, sink=sink)

        summary = runner.run([job("a", [1.0], segment_config=config)])

        run = sink.batch_runs[summary.batch_run_id]
        assert run['segment_count'] == 10
        assert run['segment_train_info']['test'] == ['seg-8', 'seg-9']
        entry = summary.top_strategies[0]
        assert [s.train_on for s in entry.candidate.segments] == [True] * 8 + [False] * 2
