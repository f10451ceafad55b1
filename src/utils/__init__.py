"""
Shared utilities for ToeRank

Provides:
- Logging setup (rich console + rotating file)
- Thread-safe run counters
"""

from .logger import setup_logging, get_logger
from .counters import AtomicCounter, RunCounters

__all__ = [
    "setup_logging",
    "get_logger",
    "AtomicCounter",
    "RunCounters",
]
