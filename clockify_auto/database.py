"""Database engine, session factory and schema migrations."""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

log = logging.getLogger(__name__)

Base = declarative_base()

SessionLocal = sessionmaker(autocommit=False, autoflush=False)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def create_db_engine(database_url: str) -> Engine:
    """Create an engine, making sure the parent directory of a SQLite file exists."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, future=True)


def run_migrations(engine: Engine) -> None:
    """Upgrade the schema to the latest Alembic revision."""
    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", engine.url.render_as_string(hide_password=False))
    with engine.begin() as connection:
        alembic_cfg.attributes["connection"] = connection
        command.upgrade(alembic_cfg, "head")
    log.debug(f"Database schema up to date at {engine.url}")


def init_db(database_url: str) -> Engine:
    """Open the database, apply migrations and bind the session factory."""
    engine = create_db_engine(database_url)
    run_migrations(engine)
    SessionLocal.configure(bind=engine)
    return engine
