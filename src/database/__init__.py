"""
Database module for ToeRank

Provides:
- SQLAlchemy models (batch runs, ranked strategies, segment details)
- Database connection and session management
- Persistence sinks used by the parallel runner
"""

from .models import Base, BatchRun, RankedStrategy, SegmentDetail
from .connection import get_engine, get_session, init_db
from .sink import InMemorySink, PersistenceSink, SqlAlchemySink

__all__ = [
    "Base",
    "BatchRun",
    "RankedStrategy",
    "SegmentDetail",
    "get_engine",
    "get_session",
    "init_db",
    "InMemorySink",
    "PersistenceSink",
    "SqlAlchemySink",
]
