"""
Database connection setup for the character store.

DatabaseConnection owns the single shared async engine. Its lifecycle is
connect -> run pending migrations -> ready, and disconnect() is safe to call
any number of times. The repository only ever receives the session factory
once connect() has succeeded.
"""

import traceback
from typing import Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mmo_server.src.core.config import Settings, settings as default_settings
from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import record_error
from mmo_server.src.schemas.service_results import ErrorKind, ServiceResult, Severity, log_extra

logger = get_logger(__name__)


class DatabaseConnection:
    """Opens, migrates and closes the connection to the character store."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.last_migration_result: Optional[ServiceResult] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database engine not initialized - call connect() first")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise RuntimeError("Database session factory not initialized - call connect() first")
        return self._session_factory

    async def connect(self, url: Optional[Union[str, URL]] = None, run_migrations: bool = True) -> bool:
        """
        Establish the connection and bring the schema up to date.

        Args:
            url: Explicit database URL; defaults to the configured one
            run_migrations: Apply pending migrations after connecting

        Returns:
            True if the store is reachable, False otherwise. A migration
            failure is logged and recorded in ``last_migration_result`` but
            does not make connect() fail.
        """
        if self._engine is not None:
            logger.warning("Database already connected")
            return True

        db_url = make_url(url) if url is not None else self._settings.database_url()
        connect_args = self._settings.database_connect_args() if url is None else {}

        logger.info(
            "Connecting to database",
            extra={
                "host": db_url.host,
                "port": db_url.port,
                "database": db_url.database,
                "ssl": bool(connect_args.get("ssl")),
            },
        )

        engine = create_async_engine(
            db_url,
            echo=self._settings.DATABASE_ECHO,
            connect_args=connect_args,
            pool_pre_ping=True,
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            record_error("database", ErrorKind.CONNECTIVITY.value)
            logger.error(
                "Failed to connect to database",
                extra=log_extra(
                    ErrorKind.CONNECTIVITY,
                    Severity.SEVERE,
                    error=str(e),
                    traceback=traceback.format_exc(),
                ),
            )
            await engine.dispose()
            return False

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
        )
        logger.info("Successfully connected to database")

        if run_migrations:
            await self.run_migrations()

        return True

    async def run_migrations(self) -> ServiceResult:
        # Import here to avoid circular imports
        from mmo_server.src.migrations import MigrationRunner

        self.last_migration_result = await MigrationRunner(self.engine).run_migrations()
        return self.last_migration_result

    def is_connected(self) -> bool:
        return self._engine is not None

    async def disconnect(self) -> None:
        """Close the connection. Safe to call when already closed."""
        if self._engine is None:
            return

        engine = self._engine
        self._engine = None
        self._session_factory = None
        try:
            await engine.dispose()
            logger.info("Disconnected from database")
        except SQLAlchemyError as e:
            logger.error(
                "Error closing database connection",
                extra=log_extra(ErrorKind.CONNECTIVITY, Severity.SEVERE, error=str(e)),
            )
