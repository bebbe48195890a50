"""Local cache store for library items, sessions and logs.

Hey future me - the cache is a SPEED layer, never a source of truth. Two rules:

1. Nothing in here raises to the caller. Reads degrade to [] (or None), writes
   degrade to "not persisted". Both are logged as CacheError and that's it.
2. Every save is set reconciliation: upsert everything incoming by id, delete
   every cached row whose id is not incoming. After a save the cached id set
   equals the incoming id set (scoped to one session for logs).

Writes go through ONE asyncio.Lock so two pulls finishing at the same moment
cannot interleave their upsert/prune transactions. Reads are not locked.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from practicesync.domain.entities import LibraryItem, PracticeLog, PracticeSession
from practicesync.domain.exceptions import CacheError
from practicesync.domain.ports import IPracticeCache
from practicesync.infrastructure.observability.log_messages import LogMessages
from practicesync.infrastructure.persistence.database import Database
from practicesync.infrastructure.persistence.models import (
    CachedLibraryItemModel,
    CachedLogModel,
    CachedSessionModel,
    CacheMetadataModel,
    ensure_utc_aware,
    utc_now,
)
from practicesync.infrastructure.persistence.retry import with_db_retry

logger = logging.getLogger(__name__)

LIBRARY_KEY = "library"
SESSIONS_KEY = "sessions"

# Storage failures we absorb. Anything else is a bug and should surface.
_STORAGE_ERRORS = (SQLAlchemyError, OSError)


class _CachedModel(Protocol):
    id: str

    def apply(self, entity: Any) -> None: ...


class SqlAlchemyCacheStore(IPracticeCache):
    """SQLite-backed implementation of the practice cache."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> bool:
        """Create the cache tables. Returns False if storage is unusable."""
        try:
            await self._db.create_tables()
        except _STORAGE_ERRORS as e:
            self._log_failure("initialize", e)
            return False
        return True

    async def close(self) -> None:
        await self._db.close()

    # =========================================================================
    # READS
    # =========================================================================

    async def load_library_items(self) -> list[LibraryItem]:
        """Cached library, sorted by name."""
        stmt = select(CachedLibraryItemModel).order_by(CachedLibraryItemModel.name)
        rows = await self._read("load_library_items", stmt)
        return [row.to_entity() for row in rows]

    async def load_sessions(self) -> list[PracticeSession]:
        """Cached sessions, newest first."""
        stmt = select(CachedSessionModel).order_by(CachedSessionModel.session_date.desc())
        rows = await self._read("load_sessions", stmt)
        return [row.to_entity() for row in rows]

    async def load_logs(self, session_id: str) -> list[PracticeLog]:
        """Cached logs of one session in practice order."""
        stmt = (
            select(CachedLogModel)
            .where(CachedLogModel.session_id == session_id)
            .order_by(CachedLogModel.sort_order)
        )
        rows = await self._read("load_logs", stmt)
        return [row.to_entity() for row in rows]

    async def load_all_logs(self) -> list[PracticeLog]:
        """Every cached log (statistics input)."""
        stmt = select(CachedLogModel).order_by(
            CachedLogModel.session_id, CachedLogModel.sort_order
        )
        rows = await self._read("load_all_logs", stmt)
        return [row.to_entity() for row in rows]

    async def last_updated(self, key: str) -> datetime | None:
        """When the collection was last saved, or None if never (or unreadable)."""
        stmt = select(CacheMetadataModel).where(CacheMetadataModel.key == key)
        rows = await self._read("last_updated", stmt)
        if not rows:
            return None
        return ensure_utc_aware(rows[0].last_updated)

    async def has_library_cache(self) -> bool:
        return await self.last_updated(LIBRARY_KEY) is not None

    async def has_sessions_cache(self) -> bool:
        return await self.last_updated(SESSIONS_KEY) is not None

    async def _read(self, operation: str, stmt: Any) -> list[Any]:
        try:
            async with self._db.session_scope() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except _STORAGE_ERRORS as e:
            self._log_failure(operation, e)
            return []

    # =========================================================================
    # WRITES
    # =========================================================================

    async def save_library_items(self, items: list[LibraryItem]) -> None:
        async def work(session: AsyncSession) -> None:
            stats = await _upsert_prune(
                session,
                CachedLibraryItemModel,
                CachedLibraryItemModel.from_entity,
                items,
                select(CachedLibraryItemModel),
            )
            await _touch_metadata(session, LIBRARY_KEY)
            logger.debug(LogMessages.sync_completed("Library cache", **stats))

        await self._write("save_library_items", work)

    async def save_sessions(self, sessions: list[PracticeSession]) -> None:
        async def work(session: AsyncSession) -> None:
            stats = await _upsert_prune(
                session,
                CachedSessionModel,
                CachedSessionModel.from_entity,
                sessions,
                select(CachedSessionModel),
            )
            await _touch_metadata(session, SESSIONS_KEY)
            logger.debug(LogMessages.sync_completed("Sessions cache", **stats))

        await self._write("save_sessions", work)

    async def save_logs(self, logs: list[PracticeLog], session_id: str) -> None:
        # Hey future me - scoped: only this session's rows are candidates for pruning.
        # Logs of other sessions are untouched, and there is no metadata row for logs.
        async def work(session: AsyncSession) -> None:
            stats = await _upsert_prune(
                session,
                CachedLogModel,
                CachedLogModel.from_entity,
                logs,
                select(CachedLogModel).where(CachedLogModel.session_id == session_id),
            )
            logger.debug(LogMessages.sync_completed(f"Logs cache ({session_id})", **stats))

        await self._write("save_logs", work)

    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        async def work(session: AsyncSession) -> None:
            model = await session.get(CachedLogModel, log_id)
            if model is None:
                return
            if planned_minutes is not None:
                model.planned_minutes = planned_minutes
            if actual_minutes is not None:
                model.actual_minutes = actual_minutes
            if order is not None:
                model.sort_order = order
            if notes is not None:
                model.notes = notes
            model.cached_at = utc_now()

        await self._write("update_log", work)

    async def _write(
        self, operation: str, work: Callable[[AsyncSession], Awaitable[None]]
    ) -> None:
        async with self._write_lock:
            try:
                await self._run_in_transaction(work)
            except _STORAGE_ERRORS as e:
                self._log_failure(operation, e)

    @with_db_retry(max_attempts=3, initial_delay=0.2)
    async def _run_in_transaction(
        self, work: Callable[[AsyncSession], Awaitable[None]]
    ) -> None:
        async with self._db.session_scope() as session:
            await work(session)

    @staticmethod
    def _log_failure(operation: str, error: Exception) -> None:
        cache_error = CacheError(f"{operation} failed: {error}")
        logger.warning(
            LogMessages.cache_operation_failed(operation, cache_error.message),
            exc_info=error,
        )


async def _upsert_prune(
    session: AsyncSession,
    model_cls: type,
    factory: Callable[[Any], Any],
    entities: Sequence[Any],
    scope: Any,
) -> dict[str, int]:
    """Make the rows selected by ``scope`` match ``entities`` exactly, keyed by id."""
    existing: dict[str, _CachedModel] = {
        row.id: row for row in (await session.execute(scope)).scalars().all()
    }
    incoming_ids: set[str] = set()
    added = updated = 0

    for entity in entities:
        incoming_ids.add(entity.id)
        model = existing.get(entity.id)
        if model is None:
            # May live outside the scope (a log moved between sessions)
            model = await session.get(model_cls, entity.id)
        if model is None:
            model = factory(entity)
            session.add(model)
            existing[entity.id] = model
            added += 1
        else:
            model.apply(entity)
            existing[entity.id] = model
            updated += 1

    removed = 0
    for row_id, model in existing.items():
        if row_id not in incoming_ids:
            await session.delete(model)
            removed += 1

    return {"added": added, "updated": updated, "removed": removed}


async def _touch_metadata(session: AsyncSession, key: str) -> None:
    meta = await session.get(CacheMetadataModel, key)
    if meta is None:
        session.add(CacheMetadataModel(key=key, last_updated=utc_now()))
    else:
        meta.last_updated = utc_now()
