"""
Database connection, schema versioning and session management.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from convokeep.config import DATABASE_URL, SQL_ECHO
from convokeep.db.importers.errors import StorageError
from convokeep.db.models.models import Base

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def _configure_sqlite_connection(dbapi_connection, connection_record):
    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn):
    conn.exec_driver_sql("BEGIN")


class StorageConnector:
    """
    Owns the engine, schema creation and version-to-version migrations.

    The schema version is tracked by alembic; connect() upgrades any older
    store to head and then adds indexes the models declare but the live
    schema is missing.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or DATABASE_URL
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def connect(self) -> Engine:
        """Create the engine and bring the schema up to date. Idempotent."""
        if self.engine is not None:
            return self.engine

        try:
            engine = self._create_engine()
            self._run_migrations(engine)
            self._update_indexes(engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StorageError("Failed to initialize database", original_error=e) from e

        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info(f"Connected to archive at {engine.url.render_as_string(hide_password=True)}")
        return engine

    def _create_engine(self) -> Engine:
        url = make_url(self.database_url)
        kwargs = {"echo": SQL_ECHO}

        if url.get_backend_name() == "sqlite":
            if url.database in (None, "", ":memory:"):
                # Keep one shared connection so the in-memory database survives
                kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(url, **kwargs)
        if url.get_backend_name() == "sqlite":
            event.listen(engine, "connect", _configure_sqlite_connection)
            event.listen(engine, "begin", _begin_sqlite_transaction)
        return engine

    def _alembic_config(self) -> Config:
        cfg = Config()
        cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
        cfg.set_main_option("sqlalchemy.url", self.database_url.replace("%", "%%"))
        return cfg

    def _run_migrations(self, engine: Engine) -> None:
        cfg = self._alembic_config()
        with engine.begin() as connection:
            before = MigrationContext.configure(connection).get_current_revision()
            cfg.attributes["connection"] = connection
            command.upgrade(cfg, "head")
            after = MigrationContext.configure(connection).get_current_revision()

        if before != after:
            logger.info(f"Migrated archive schema from {before or 'empty'} to {after}")

    def _update_indexes(self, engine: Engine) -> None:
        """Create any index declared on the models that the live schema lacks."""
        inspector = inspect(engine)
        for table in Base.metadata.sorted_tables:
            existing = {index["name"] for index in inspector.get_indexes(table.name)}
            for index in table.indexes:
                if index.name not in existing:
                    logger.info(f"Adding missing index {index.name} on {table.name}")
                    index.create(bind=engine)

    def get_schema_version(self) -> Optional[str]:
        """Return the alembic revision of the live schema."""
        engine = self.connect()
        with engine.connect() as connection:
            return MigrationContext.configure(connection).get_current_revision()

    def get_session(self) -> Session:
        """Get a new database session."""
        self.connect()
        return self._session_factory()

    @contextmanager
    def get_session_context(self):
        """Context manager for database sessions with automatic cleanup."""
        session = self.get_session()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Release all pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self._session_factory = None
            logger.info("Database connection closed")
