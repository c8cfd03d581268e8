"""SQLModel database engine and session management."""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from tradedesk.config import settings

logger = logging.getLogger(__name__)

# Schema revisions applied by _run_migrations, in order
SCHEMA_VERSION = 2

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
engine_kwargs = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False
    if settings.database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
    **engine_kwargs,
)


def _run_migrations(target=None):
    """Bring legacy tables up to SCHEMA_VERSION.

    Revision 2 added trading_accounts.trading_mode. Tables created before it
    get the column with every existing account in demo mode.
    """
    target = target or engine
    inspector = inspect(target)

    if "trading_accounts" not in inspector.get_table_names():
        return

    columns = {col["name"] for col in inspector.get_columns("trading_accounts")}
    if "trading_mode" not in columns:
        logger.info("Migrating: adding trading_accounts.trading_mode (schema v2)")
        with target.connect() as conn:
            conn.execute(text(
                "ALTER TABLE trading_accounts "
                "ADD COLUMN trading_mode VARCHAR NOT NULL DEFAULT 'demo'"
            ))
            conn.commit()


def create_db_and_tables(target=None):
    """Create all tables and apply migrations. Called on startup."""
    import tradedesk.models  # noqa: F401  registers tables on the metadata

    target = target or engine
    SQLModel.metadata.create_all(target)
    _run_migrations(target)


def get_session() -> Session:
    """Dependency that yields a database session."""
    with Session(engine) as session:
        yield session
