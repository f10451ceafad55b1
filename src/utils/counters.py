"""
Thread-safe run counters

Counters are shared by every worker thread of a batch run, so each one
serialises its own updates.
"""

import threading
from dataclasses import dataclass, field


class AtomicCounter:
    """Integer counter with lock-protected increments."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self.lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add amount and return the new value."""
        with self.lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self.lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


@dataclass
class RunCounters:
    """
    Per-run counters for candidates flowing through the analysis service.

    submitted = filtered_out + rejected + accepted once all workers finish.
    """
    submitted: AtomicCounter = field(default_factory=AtomicCounter)
    filtered_out: AtomicCounter = field(default_factory=AtomicCounter)
    accepted: AtomicCounter = field(default_factory=AtomicCounter)
    rejected: AtomicCounter = field(default_factory=AtomicCounter)

    def to_dict(self) -> dict:
        return {
            'submitted': self.submitted.value,
            'filtered_out': self.filtered_out.value,
            'accepted': self.accepted.value,
            'rejected': self.rejected.value,
        }
