"""
Persistence sinks for ranking results

A sink receives, in order:
1. create_batch_run() once, before any job starts
2. append_ranked_entry() + append_segment_details() for every entry of
   the final registry snapshot
3. update_run_summary() once, at the end

InMemorySink keeps plain dicts (tests, dry runs); SqlAlchemySink writes
the ORM models through a session context manager.
"""

import threading
from datetime import datetime, UTC
from typing import Callable, ContextManager, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.orm import Session

from src.database.models import BatchRun, RankedStrategy, SegmentDetail
from src.scorer.models import RankedEntry, SegmentRecord, Trade
from src.scorer.profit_calculator import count_trades, segment_profit
from src.utils.logger import get_logger

logger = get_logger(__name__)


class PersistenceSink(Protocol):
    def create_batch_run(self, name: str, **fields) -> str:
        ...

    def append_ranked_entry(self, batch_run_id: str, entry: RankedEntry, rank: int) -> None:
        ...

    def append_segment_details(self, batch_run_id: str, entry: RankedEntry,
                               fee_tiers: Iterable) -> int:
        ...

    def update_run_summary(self, batch_run_id: str, total_strategies: int,
                           uploaded_strategies: int, **fields) -> None:
        ...


# ==============================================================================
# SERIALIZATION
# ==============================================================================

def _leg_dict(leg, value_attr: str) -> Optional[dict]:
    if leg is None:
        return None
    return {
        'amount': str(leg.amount),
        value_attr: str(getattr(leg, value_attr)),
        'succeeded': leg.succeeded,
        'end_time': leg.end_time.isoformat() if leg.end_time else None,
    }


def trade_to_dict(trade: Trade) -> dict:
    return {
        'buy': _leg_dict(trade.buy, 'total_cost'),
        'sell': _leg_dict(trade.sell, 'total_received'),
    }


def ranked_entry_record(entry: RankedEntry, rank: int) -> dict:
    """Flat dict describing a ranked entry (fee keys as strings)"""
    candidate = entry.candidate
    primary = entry.primary_report
    metadata = candidate.metadata or {}

    return {
        'id': candidate.candidate_id,
        'rank': rank,
        'run_name': candidate.run_name,
        'executor_name': metadata.get('executor_name', candidate.config_reference),
        'executor_config': metadata.get('executor_config'),
        'quality_score': entry.quality_score,
        'consistency_score': primary.consistency_score if primary else 0.0,
        'primary_fee': float(entry.primary_fee),
        'segment_count': len(candidate.segments),
        'total_trades': count_trades(candidate),
        'reports': {str(fee): report.to_dict() for fee, report in entry.reports.items()},
        'train_profit': {str(k): v for k, v in metadata.get('train_profit', {}).items()},
        'test_profit': {str(k): v for k, v in metadata.get('test_profit', {}).items()},
    }


def segment_detail_records(entry: RankedEntry, fee_tiers: Iterable) -> List[dict]:
    """Per-segment records, skipping segments without trades"""
    fee_tiers = list(fee_tiers)
    records = []

    for segment in entry.candidate.segments:
        if segment.trade_count == 0:
            continue
        records.append(_segment_record(segment, fee_tiers))

    return records


def _segment_record(segment: SegmentRecord, fee_tiers: list) -> dict:
    return {
        'segment_id': segment.segment_id,
        'train_on': segment.train_on,
        'total_trades': segment.trade_count,
        'profit_by_fee': {str(fee): float(segment_profit(segment, fee)) for fee in fee_tiers},
        'trades': [trade_to_dict(t) for t in segment.trades],
    }


# ==============================================================================
# IN-MEMORY SINK
# ==============================================================================

class InMemorySink:
    """Stores everything in dicts; thread-safe."""

    def __init__(self):
        self.lock = threading.Lock()
        self.batch_runs: Dict[str, dict] = {}
        self.ranked_entries: Dict[str, List[dict]] = {}
        self.segment_details: Dict[str, List[dict]] = {}
        self._next_id = 0

    def create_batch_run(self, name: str, **fields) -> str:
        with self.lock:
            self._next_id += 1
            batch_run_id = f"batch-{self._next_id}"
            self.batch_runs[batch_run_id] = {
                'id': batch_run_id,
                'name': name,
                'start_time': datetime.now(UTC),
                'end_time': None,
                **fields,
            }
            self.ranked_entries[batch_run_id] = []
            self.segment_details[batch_run_id] = []
        logger.debug(f"InMemorySink: created batch run {batch_run_id} ({name})")
        return batch_run_id

    def append_ranked_entry(self, batch_run_id: str, entry: RankedEntry, rank: int) -> None:
        record = ranked_entry_record(entry, rank)
        with self.lock:
            self.ranked_entries[batch_run_id].append(record)

    def append_segment_details(self, batch_run_id: str, entry: RankedEntry,
                               fee_tiers: Iterable) -> int:
        records = segment_detail_records(entry, fee_tiers)
        for record in records:
            record['ranked_strategy_id'] = entry.candidate.candidate_id
        with self.lock:
            self.segment_details[batch_run_id].extend(records)
        return len(records)

    def update_run_summary(self, batch_run_id: str, total_strategies: int,
                           uploaded_strategies: int, **fields) -> None:
        with self.lock:
            run = self.batch_runs[batch_run_id]
            run.update(
                total_strategies=total_strategies,
                uploaded_strategies=uploaded_strategies,
                end_time=datetime.now(UTC),
                **fields,
            )


# ==============================================================================
# SQLALCHEMY SINK
# ==============================================================================

class SqlAlchemySink:
    """
    Writes batch runs and ranked strategies through SQLAlchemy.

    Args:
        session_scope: Zero-arg callable returning a context manager that
            yields a Session and commits on exit (defaults to get_session)
    """

    def __init__(self, session_scope: Optional[Callable[[], ContextManager[Session]]] = None):
        if session_scope is None:
            from src.database.connection import get_session
            session_scope = get_session
        self.session_scope = session_scope

    def create_batch_run(self, name: str, **fields) -> str:
        with self.session_scope() as session:
            run = BatchRun(name=name, **fields)
            session.add(run)
            session.flush()
            batch_run_id = run.id
        logger.info(f"Batch run created: {name} ({batch_run_id})")
        return batch_run_id

    def append_ranked_entry(self, batch_run_id: str, entry: RankedEntry, rank: int) -> None:
        record = ranked_entry_record(entry, rank)
        with self.session_scope() as session:
            session.add(RankedStrategy(batch_run_id=batch_run_id, **record))

    def append_segment_details(self, batch_run_id: str, entry: RankedEntry,
                               fee_tiers: Iterable) -> int:
        records = segment_detail_records(entry, fee_tiers)
        with self.session_scope() as session:
            for record in records:
                session.add(SegmentDetail(
                    batch_run_id=batch_run_id,
                    ranked_strategy_id=entry.candidate.candidate_id,
                    **record,
                ))
        return len(records)

    def update_run_summary(self, batch_run_id: str, total_strategies: int,
                           uploaded_strategies: int, **fields) -> None:
        with self.session_scope() as session:
            run = session.get(BatchRun, batch_run_id)
            if run is None:
                raise ValueError(f"Batch run not found: {batch_run_id}")

            run.total_strategies = total_strategies
            run.uploaded_strategies = uploaded_strategies
            run.end_time = datetime.now(UTC)
            for key, value in fields.items():
                setattr(run, key, value)

        logger.info(
            f"Batch run {batch_run_id} summary: {uploaded_strategies}/{total_strategies} uploaded"
        )
