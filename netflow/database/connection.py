# netflow/database/connection.py

from typing import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, Engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from ..core.logging import NetflowLogger, log_with_context, INFO, DEBUG, ERROR
from ..types import DatabaseConfig
from .base import Base


SQLITE_BUSY_TIMEOUT_MS = 30000


class DatabaseManager:
    def __init__(self, config: DatabaseConfig):
        if not config:
            raise ValueError("DatabaseConfig is required")

        self.config = config
        self.logger = NetflowLogger.get_logger(f'database.{self.__class__.__name__.lower()}')
        self._engine = None
        self._session_factory = None

        log_with_context(self.logger, INFO, "DatabaseManager initialized",
                         db_url=self._redacted_url(config.url))

    @staticmethod
    def _redacted_url(url: str) -> str:
        if '@' in url and '://' in url:
            scheme, rest = url.split('://', 1)
            return f"{scheme}://***@{rest.split('@', 1)[1]}"
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.config.url.startswith("sqlite")

    def _create_engine(self) -> Engine:
        if not self.is_sqlite:
            return create_engine(
                self.config.url,
                poolclass=QueuePool,
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=30,
                pool_recycle=3600,
                pool_pre_ping=True,
            )

        in_memory = self.config.url in ("sqlite://", "sqlite:///:memory:")
        engine = create_engine(
            self.config.url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )

        @event.listens_for(engine, "connect")
        def _configure_sqlite(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            # WAL lets the API read while the indexer holds the write lock
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        return engine

    def initialize(self) -> None:
        if self._engine is not None:
            self.logger.warning("Database already initialized")
            return

        try:
            self.logger.info("Initializing database engine")

            self._engine = self._create_engine()
            self._session_factory = sessionmaker(
                bind=self._engine,
                expire_on_commit=False,
            )

            # Import tables so they register on the metadata
            from . import tables  # noqa: F401
            Base.metadata.create_all(self._engine)

            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            log_with_context(self.logger, INFO, "Database initialized successfully",
                             tables=sorted(Base.metadata.tables))

        except Exception as e:
            log_with_context(self.logger, ERROR, "Failed to initialize database",
                             error=str(e),
                             exception_type=type(e).__name__)
            raise

    def shutdown(self) -> None:
        self.logger.info("Shutting down database connections")
        if self._engine:
            self._engine.dispose()
            self._engine = None
        self._session_factory = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._session_factory

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        session = self.session_factory()
        try:
            yield session
        except Exception as e:
            log_with_context(self.logger, DEBUG, "Database session error, rolling back",
                             error=str(e),
                             exception_type=type(e).__name__)
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def get_transaction(self) -> Generator[Session, None, None]:
        with self.get_session() as session:
            try:
                yield session
                session.commit()
                log_with_context(self.logger, DEBUG, "Database transaction committed")
            except Exception as e:
                session.rollback()
                log_with_context(self.logger, ERROR, "Database transaction rolled back",
                                 error=str(e),
                                 exception_type=type(e).__name__)
                raise
