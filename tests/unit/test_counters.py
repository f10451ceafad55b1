"""
Test run counters
"""

from concurrent.futures import ThreadPoolExecutor

from src.utils.counters import AtomicCounter, RunCounters


class TestAtomicCounter:

    def test_increment_returns_new_value(self):
        counter = AtomicCounter()
        assert counter.increment() == 1
        assert counter.increment(5) == 6
        assert counter.value == 6

    def test_concurrent_increments(self):
        counter = AtomicCounter()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: counter.increment(), range(2000)))

        assert counter.value == 2000


class TestRunCounters:

    def test_to_dict(self):
        counters = RunCounters()
        counters.submitted.increment(3)
        counters.accepted.increment()

        assert counters.to_dict() == {
            'submitted': 3, 'filtered_out': 0, 'accepted': 1, 'rejected': 0,
        }
