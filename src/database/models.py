"""
SQLAlchemy Models for ToeRank

Database schema for:
- Batch runs (one per parallel run)
- Ranked strategies (final leaderboard of a run)
- Segment details of each ranked strategy
"""

import uuid
from datetime import datetime, UTC

from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Boolean, JSON, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# BATCH RUNS
# ==============================================================================

class BatchRun(Base):
    """
    One execution of the parallel runner

    Created before any job starts, summary fields filled in at the end.
    """
    __tablename__ = "batch_runs"

    id = Column(String(36), primary_key=True, default=_uuid_str)

    name = Column(String(255), nullable=False, index=True)
    server = Column(String(255))
    scoring_method = Column(String(20))
    parallel_runners = Column(Integer, nullable=False, default=1)

    start_time = Column(DateTime, nullable=False, default=_utcnow)
    end_time = Column(DateTime)

    job_count = Column(Integer, nullable=False, default=0)
    segment_count = Column(Integer, default=0)
    segment_train_info = Column(JSON)
    # Example: {"train": ["seg-1", "seg-2"], "test": ["seg-3"]}

    # Run summary
    total_strategies = Column(Integer, default=0)
    uploaded_strategies = Column(Integer, default=0)
    failed_jobs = Column(Integer, default=0)
    counters = Column(JSON)
    # Example: {"submitted": 120, "filtered_out": 80, "accepted": 30, "rejected": 10}

    ranked_strategies = relationship(
        "RankedStrategy", back_populates="batch_run", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<BatchRun(name={self.name}, jobs={self.job_count}, uploaded={self.uploaded_strategies})>"


# ==============================================================================
# RANKED STRATEGIES
# ==============================================================================

class RankedStrategy(Base):
    """A strategy that survived in the final leaderboard of a batch run"""
    __tablename__ = "ranked_strategies"

    id = Column(String(36), primary_key=True)  # candidate id
    batch_run_id = Column(String(36), ForeignKey("batch_runs.id"), nullable=False, index=True)

    rank = Column(Integer, nullable=False)  # 1 = best
    run_name = Column(String(255))
    executor_name = Column(String(255))
    executor_config = Column(JSON)

    quality_score = Column(Float, nullable=False, index=True)
    consistency_score = Column(Float)
    primary_fee = Column(Float, nullable=False)

    segment_count = Column(Integer, default=0)
    total_trades = Column(Integer, default=0)

    # Validation reports keyed by fee rate (as string)
    reports = Column(JSON)
    # Example: {"0.0001": {"quality_score": 71.2, "notes": [...], ...}, "0.008": {...}}

    train_profit = Column(JSON)  # {fee: profit} over training segments
    test_profit = Column(JSON)   # {fee: profit} over test segments

    created_at = Column(DateTime, default=_utcnow, nullable=False)

    batch_run = relationship("BatchRun", back_populates="ranked_strategies")
    segment_details = relationship(
        "SegmentDetail", back_populates="ranked_strategy", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('idx_batch_rank', 'batch_run_id', 'rank'),
    )

    def __repr__(self):
        return f"<RankedStrategy(id={self.id}, rank={self.rank}, score={self.quality_score:.2f})>"


# ==============================================================================
# SEGMENT DETAILS
# ==============================================================================

class SegmentDetail(Base):
    """Per-segment trades and profits of a ranked strategy"""
    __tablename__ = "segment_details"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    ranked_strategy_id = Column(
        String(36), ForeignKey("ranked_strategies.id"), nullable=False, index=True
    )
    batch_run_id = Column(String(36), nullable=False, index=True)

    segment_id = Column(String(255), nullable=False)
    train_on = Column(Boolean)
    total_trades = Column(Integer, nullable=False, default=0)

    profit_by_fee = Column(JSON)  # {fee: profit}
    trades = Column(JSON)
    # Example: [{"buy": {"amount": "1.5", "total_cost": "10.0", "end_time": "..."},
    #            "sell": {"amount": "1.5", "total_received": "10.4", "end_time": "..."}}]

    ranked_strategy = relationship("RankedStrategy", back_populates="segment_details")

    def __repr__(self):
        return f"<SegmentDetail(segment={self.segment_id}, trades={self.total_trades})>"
