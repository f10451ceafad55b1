"""
Ranking Registry - Bounded Leaderboard

Holds at most `capacity` ranked entries:
- Not full -> entry is always admitted
- Full and score > current minimum -> evict the minimum, admit
- Otherwise -> rejected, nothing changes (ties do not evict)

Reading the minimum, evicting and inserting happen under one lock.
Scoring must be done by the caller before try_add() is called.

Lifecycle: EMPTY -> FILLING -> FULL -> DRAINED (drain() is one-shot).
"""

import threading
from enum import Enum
from typing import List, Optional

from src.scorer.models import RankedEntry
from src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_LOCK_TIMEOUT = 30.0


class RegistryError(Exception):
    """Unrecoverable registry misuse; aborts the run."""


class RegistryClosedError(RegistryError):
    """Registry was used after drain()."""


class RegistryLockError(RegistryError):
    """Lock could not be acquired, or was re-entered by its holder."""


class RegistryInvariantError(RegistryError):
    """Capacity or ordering invariant was violated."""


class RegistryState(str, Enum):
    EMPTY = "EMPTY"
    FILLING = "FILLING"
    FULL = "FULL"
    DRAINED = "DRAINED"


class RankingRegistry:
    """
    Thread-safe bounded set of the best-scoring entries.

    Example:
        >>> registry = RankingRegistry(capacity=100)
        >>> registry.try_add(entry)
        True
        >>> registry.snapshot()[0].quality_score
        87.5
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        """
        Args:
            capacity: Maximum number of entries (>= 1)
            lock_timeout: Seconds to wait for the lock before failing

        Raises:
            ValueError: If capacity < 1
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")

        self.capacity = capacity
        self.lock_timeout = lock_timeout
        self.lock = threading.Lock()

        self._entries: List[RankedEntry] = []
        self._drained = False
        self._owner: Optional[int] = None

        logger.debug(f"RankingRegistry initialized: capacity={capacity}")

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def _acquire(self) -> None:
        me = threading.get_ident()
        if self._owner == me:
            raise RegistryLockError("Re-entrant registry access from the thread holding its lock")

        if not self.lock.acquire(timeout=self.lock_timeout):
            raise RegistryLockError(
                f"Could not acquire registry lock within {self.lock_timeout}s"
            )
        self._owner = me

    def _release(self) -> None:
        self._owner = None
        self.lock.release()

    def _check_invariants_locked(self) -> None:
        """Must hold lock."""
        if len(self._entries) > self.capacity:
            raise RegistryInvariantError(
                f"Registry holds {len(self._entries)} entries, capacity is {self.capacity}"
            )

    def _sorted_locked(self) -> List[RankedEntry]:
        return sorted(self._entries, key=lambda e: e.quality_score, reverse=True)

    def _state_locked(self) -> RegistryState:
        if self._drained:
            return RegistryState.DRAINED
        if not self._entries:
            return RegistryState.EMPTY
        if len(self._entries) < self.capacity:
            return RegistryState.FILLING
        return RegistryState.FULL

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def try_add(self, entry: RankedEntry) -> bool:
        """
        Offer an already-scored entry to the leaderboard.

        Returns:
            True if admitted (possibly evicting the current minimum)

        Raises:
            RegistryError: On None entry, use after drain, lock misuse or a
                broken invariant
        """
        if entry is None:
            raise RegistryError("try_add() called with None entry")

        score = entry.quality_score

        self._acquire()
        try:
            if self._drained:
                raise RegistryClosedError("try_add() called after drain()")

            if len(self._entries) < self.capacity:
                self._entries.append(entry)
                admitted = True
                logger.debug(
                    f"Admitted {entry.candidate.candidate_id} (score={score:.2f}) "
                    f"[{len(self._entries)}/{self.capacity}]"
                )
            else:
                worst_index = min(
                    range(len(self._entries)),
                    key=lambda i: self._entries[i].quality_score
                )
                worst = self._entries[worst_index]

                if score > worst.quality_score:
                    self._entries[worst_index] = entry
                    admitted = True
                    logger.info(
                        f"Leaderboard: evicted {worst.candidate.candidate_id} "
                        f"(score={worst.quality_score:.2f}), admitted "
                        f"{entry.candidate.candidate_id} (score={score:.2f})"
                    )
                else:
                    admitted = False
                    logger.debug(
                        f"Rejected {entry.candidate.candidate_id}: score {score:.2f} "
                        f"<= minimum {worst.quality_score:.2f}"
                    )

            self._check_invariants_locked()
            return admitted
        finally:
            self._release()

    def drain(self) -> List[RankedEntry]:
        """
        Close the registry and return its final ranking (descending).

        Raises:
            RegistryClosedError: If already drained
        """
        self._acquire()
        try:
            if self._drained:
                raise RegistryClosedError("drain() called twice")

            final = self._sorted_locked()
            self._drained = True
            logger.info(f"Registry drained with {len(final)} entries")
            return final
        finally:
            self._release()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def snapshot(self) -> List[RankedEntry]:
        """Defensive copy sorted by quality score, best first."""
        self._acquire()
        try:
            return self._sorted_locked()
        finally:
            self._release()

    def size(self) -> int:
        self._acquire()
        try:
            return len(self._entries)
        finally:
            self._release()

    def minimum_score(self) -> float:
        """Lowest quality score held, 0.0 when empty."""
        self._acquire()
        try:
            if not self._entries:
                return 0.0
            return min(e.quality_score for e in self._entries)
        finally:
            self._release()

    @property
    def state(self) -> RegistryState:
        self._acquire()
        try:
            return self._state_locked()
        finally:
            self._release()
