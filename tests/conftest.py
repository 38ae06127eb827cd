import pytest
from datetime import date
from sqlalchemy.orm import sessionmaker

from clockify_auto.database import create_db_engine, run_migrations
from clockify_auto.services.ledger import LedgerService

# Fixed "today" for ledger end-date derivation
TODAY = date(2025, 1, 20)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def ledger(session_factory) -> LedgerService:
    return LedgerService(session_factory, today=lambda: TODAY)
