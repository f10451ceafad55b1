"""
Global test fixtures for ToeRank

Provides reusable fixtures for all test modules.
"""

import sys
from contextlib import contextmanager
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.database.models import Base
from tests.factories import make_candidate


@pytest.fixture
def candidate_factory():
    return make_candidate


@pytest.fixture
def scoring_config():
    """Scoring configuration mirroring config/config.yaml defaults"""
    return {
        'scoring': {
            'method': 'mcda',
            'filter_fee': 0.0001,
            'validation_fees': [0.0001, 0.008, 0.015],
            'fee_tiers': [0.0, 0.001, 0.008, 0.01, 0.015],
            'split': {'test_ratio': 0.8},
            'hard_filters': {
                'min_median_profit': 0.0,
                'max_top_two_contribution': 0.60,
            },
            'blend': {'validation': 0.5, 'test': 0.35},
        },
        'ranking': {
            'capacity': 5,
            'lock_timeout_seconds': 5,
        },
        'runner': {
            'parallel_runners': 3,
            'prefilter': {'enabled': False},
        },
        'system': {'server': 'test-host'},
    }


@pytest.fixture
def db_session_scope():
    """In-memory SQLite session scope shared across threads"""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    @contextmanager
    def scope():
        session = Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield scope

    engine.dispose()
