"""
Schema migration runner.

Applies the registered migration units in order, at most once each, using the
``migrations`` ledger table as the single source of truth for what has run.
Each unit is applied and recorded in its own transaction: a failure aborts the
rest of the run but leaves earlier units applied. Nothing is retried.
"""

import traceback
from typing import Callable, List, Optional, Sequence

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import migrations_applied_total, record_error
from mmo_server.src.models.migration import MigrationRecord
from mmo_server.src.schemas.character import now_millis
from mmo_server.src.schemas.service_results import (
    ErrorKind,
    ServiceResult,
    Severity,
    log_extra,
)

from .base import Migration

logger = get_logger(__name__)


def _run_with_operations(sync_conn, action: Callable[[Operations], None]) -> None:
    context = MigrationContext.configure(sync_conn)
    action(Operations(context))


class MigrationRunner:
    """Runs pending schema migrations against the character store."""

    def __init__(
        self,
        engine: AsyncEngine,
        migrations: Optional[Sequence[Migration]] = None,
        clock: Callable[[], int] = now_millis,
    ):
        if migrations is None:
            # Import here to avoid circular imports
            from mmo_server.src.migrations import MIGRATIONS

            migrations = MIGRATIONS
        self._engine = engine
        self._migrations = list(migrations)
        self._clock = clock

    @property
    def migrations(self) -> List[Migration]:
        return list(self._migrations)

    async def _create_ledger_table(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(MigrationRecord.__table__.create, checkfirst=True)

    async def _is_applied(self, conn: AsyncConnection, name: str) -> bool:
        result = await conn.execute(
            select(func.count())
            .select_from(MigrationRecord)
            .where(MigrationRecord.name == name)
        )
        return result.scalar_one() > 0

    async def _record(self, conn: AsyncConnection, name: str) -> None:
        await conn.execute(
            insert(MigrationRecord).values(name=name, executed_at=self._clock())
        )

    async def run_migrations(self) -> ServiceResult[List[str]]:
        """
        Apply every pending migration in registration order.

        Returns:
            ServiceResult whose data lists the names applied by this run. On
            failure the result is unsuccessful and data still lists the units
            that were applied before the failing one.
        """
        applied: List[str] = []
        current: Optional[str] = None

        try:
            await self._create_ledger_table()

            for migration in self._migrations:
                current = migration.name
                async with self._engine.begin() as conn:
                    if await self._is_applied(conn, migration.name):
                        logger.info(
                            "Migration already executed",
                            extra={"migration": migration.name},
                        )
                        continue

                    logger.info("Running migration", extra={"migration": migration.name})
                    await conn.run_sync(_run_with_operations, migration.upgrade)
                    await self._record(conn, migration.name)

                applied.append(migration.name)
                migrations_applied_total.inc()
                logger.info("Migration completed", extra={"migration": migration.name})

        except Exception as e:
            record_error("migrations", ErrorKind.MIGRATION.value)
            logger.error(
                "Error running migrations",
                extra=log_extra(
                    ErrorKind.MIGRATION,
                    Severity.SEVERE,
                    migration=current,
                    applied=applied,
                    error=str(e),
                    traceback=traceback.format_exc(),
                ),
            )
            return ServiceResult.failure(
                f"Migration {current} failed: {e}",
                ErrorKind.MIGRATION,
                data=applied,
            )

        logger.info("All migrations completed successfully", extra={"applied": applied})
        return ServiceResult.success_with_data(applied, "Migrations up to date")

    async def rollback_last(self) -> ServiceResult[str]:
        """
        Undo the most recently registered migration if it has been applied.

        The reverse action and the ledger delete share one transaction.
        """
        if not self._migrations:
            logger.warning(
                "No migrations to rollback",
                extra=log_extra(ErrorKind.NOT_FOUND, Severity.WARNING),
            )
            return ServiceResult.failure(
                "No migrations registered", ErrorKind.NOT_FOUND, Severity.WARNING
            )

        last = self._migrations[-1]
        try:
            await self._create_ledger_table()

            async with self._engine.begin() as conn:
                if not await self._is_applied(conn, last.name):
                    logger.warning(
                        "Migration not executed, nothing to rollback",
                        extra=log_extra(
                            ErrorKind.NOT_FOUND, Severity.WARNING, migration=last.name
                        ),
                    )
                    return ServiceResult.failure(
                        f"Migration {last.name} has not been executed",
                        ErrorKind.NOT_FOUND,
                        Severity.WARNING,
                    )

                logger.info("Rolling back migration", extra={"migration": last.name})
                await conn.run_sync(_run_with_operations, last.downgrade)
                await conn.execute(
                    delete(MigrationRecord).where(MigrationRecord.name == last.name)
                )

        except Exception as e:
            record_error("migrations", ErrorKind.MIGRATION.value)
            logger.error(
                "Error rolling back migration",
                extra=log_extra(
                    ErrorKind.MIGRATION,
                    Severity.SEVERE,
                    migration=last.name,
                    error=str(e),
                    traceback=traceback.format_exc(),
                ),
            )
            return ServiceResult.failure(
                f"Rollback of {last.name} failed: {e}", ErrorKind.MIGRATION
            )

        logger.info("Rollback completed", extra={"migration": last.name})
        return ServiceResult.success_with_data(last.name, "Rollback completed")

    async def applied_migrations(self) -> List[str]:
        """Ledger contents in execution order."""
        await self._create_ledger_table()
        async with self._engine.connect() as conn:
            result = await conn.execute(
                select(MigrationRecord.name).order_by(MigrationRecord.id)
            )
            return list(result.scalars().all())
