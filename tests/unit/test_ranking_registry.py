"""
Test Ranking Registry

Bounded leaderboard admission, lifecycle and concurrency guarantees.
"""

import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.scorer.models import StrategyCandidate
from src.scorer.ranking_registry import (
    RankingRegistry,
    RegistryClosedError,
    RegistryError,
    RegistryLockError,
    RegistryState,
)
from tests.factories import make_entry


class TestAdmission:
    """Leaderboard rules"""

    def test_fills_until_capacity(self):
        registry = RankingRegistry(capacity=3)

        assert registry.try_add(make_entry(1.0))
        assert registry.try_add(make_entry(-5.0))
        assert registry.try_add(make_entry(0.0))

        assert registry.size() == 3

    def test_better_entry_evicts_minimum(self):
        registry = RankingRegistry(capacity=2)
        registry.try_add(make_entry(10.0, "a"))
        registry.try_add(make_entry(20.0, "b"))

        assert registry.try_add(make_entry(15.0, "c"))

        ids = [e.candidate.candidate_id for e in registry.snapshot()]
        assert ids == ["b", "c"]
        assert registry.minimum_score() == 15.0

    def test_worse_entry_rejected(self):
        registry = RankingRegistry(capacity=2)
        registry.try_add(make_entry(10.0, "a"))
        registry.try_add(make_entry(20.0, "b"))

        assert not registry.try_add(make_entry(5.0, "c"))
        assert registry.size() == 2

    def test_tie_with_minimum_does_not_evict(self):
        registry = RankingRegistry(capacity=2)
        registry.try_add(make_entry(10.0, "a"))
        registry.try_add(make_entry(20.0, "b"))

        assert not registry.try_add(make_entry(10.0, "tie"))
        assert {e.candidate.candidate_id for e in registry.snapshot()} == {"a", "b"}

    def test_none_entry_is_programming_error(self):
        with pytest.raises(RegistryError):
            RankingRegistry().try_add(None)

    @pytest.mark.parametrize("capacity", [0, -1, 2.5, None])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            RankingRegistry(capacity=capacity)


class TestReadAccessors:
    """snapshot / size / minimum_score"""

    def test_empty_registry(self):
        registry = RankingRegistry()
        assert registry.size() == 0
        assert registry.minimum_score() == 0.0
        assert registry.snapshot() == []

    def test_snapshot_sorted_descending(self):
        registry = RankingRegistry(capacity=10)
        for score in [3.0, 9.0, 1.0, 7.0]:
            registry.try_add(make_entry(score))

        scores = [e.quality_score for e in registry.snapshot()]
        assert scores == [9.0, 7.0, 3.0, 1.0]

    def test_snapshot_is_defensive_copy(self):
        registry = RankingRegistry(capacity=3)
        registry.try_add(make_entry(1.0))

        snap = registry.snapshot()
        snap.clear()

        assert registry.size() == 1
        assert registry.snapshot() == registry.snapshot()


class TestLifecycle:
    """EMPTY -> FILLING -> FULL -> DRAINED"""

    def test_state_transitions(self):
        registry = RankingRegistry(capacity=2)
        assert registry.state == RegistryState.EMPTY

        registry.try_add(make_entry(1.0))
        assert registry.state == RegistryState.FILLING

        registry.try_add(make_entry(2.0))
        assert registry.state == RegistryState.FULL

        registry.try_add(make_entry(3.0))
        assert registry.state == RegistryState.FULL

        registry.drain()
        assert registry.state == RegistryState.DRAINED

    def test_drain_returns_final_ranking(self):
        registry = RankingRegistry(capacity=2)
        for score in [1.0, 5.0, 3.0]:
            registry.try_add(make_entry(score))

        final = registry.drain()

        assert [e.quality_score for e in final] == [5.0, 3.0]

    def test_use_after_drain(self):
        registry = RankingRegistry(capacity=2)
        registry.drain()

        with pytest.raises(RegistryClosedError):
            registry.try_add(make_entry(1.0))
        with pytest.raises(RegistryClosedError):
            registry.drain()


class TestLockDiscipline:
    """Fail-fast lock misuse"""

    def test_lock_timeout(self):
        registry = RankingRegistry(capacity=2, lock_timeout=0.05)
        registry.lock.acquire()
        try:
            with pytest.raises(RegistryLockError):
                registry.size()
        finally:
            registry.lock.release()

    def test_reentrant_access_detected(self):
        registry = RankingRegistry(capacity=1)

        class CallsBack:
            """Entry whose score reads the registry while it is locked"""
            candidate = StrategyCandidate(candidate_id="callback", segments=())

            def __init__(self):
                self.inside = False

            @property
            def quality_score(self):
                if self.inside:
                    return registry.minimum_score()
                return 1.0

        entry = CallsBack()
        registry.try_add(entry)
        entry.inside = True

        with pytest.raises(RegistryLockError, match="Re-entrant"):
            registry.try_add(make_entry(5.0))

        # lock released after the failure
        entry.inside = False
        assert registry.size() == 1


class TestConcurrency:
    """Randomized concurrent insertions"""

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_capacity_and_ordering_invariants(self, seed):
        rng = random.Random(seed)
        capacity = 25
        scores = rng.sample(range(100_000), 1_000)
        registry = RankingRegistry(capacity=capacity)

        sizes = []
        sizes_lock = threading.Lock()

        def submit(score):
            registry.try_add(make_entry(score / 100.0, f"c{score}"))
            size = registry.size()
            with sizes_lock:
                sizes.append(size)

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(submit, scores))

        final = registry.snapshot()
        assert len(final) == capacity
        assert max(sizes) <= capacity

        # Distinct scores: survivors are exactly the global top N
        expected = sorted(scores, reverse=True)[:capacity]
        assert [e.quality_score for e in final] == [s / 100.0 for s in expected]

        survivor_min = min(e.quality_score for e in final)
        survivor_ids = {e.candidate.candidate_id for e in final}
        non_survivors = [s / 100.0 for s in scores if f"c{s}" not in survivor_ids]
        assert all(survivor_min >= s for s in non_survivors)
