"""Reconciliation between the remote workspace, the local cache and the UI state.

Hey future me - this is where the interesting invariants live. The engine itself
is STATELESS: it gets the remote client and the cache at construction and the
state slices it should write into per call.

PULL (remote → local), cache-first-then-refresh:
    1. cached set non-empty → publish loaded(cached) right away
       otherwise → publish loading (unless the target already shows data)
    2. fetch from remote
    3. success → publish loaded(fetched), upsert/prune the cache
    4. failure → keep whatever data is shown (log only), else publish error(e)

PUSH (local → remote), only on explicit save:
    1. archive deleted_log_ids one by one; first failure aborts, nothing rolled back,
       the archived ids leave the set only when ALL archives went through
    2. walk selected_items in index order, order = index:
         no log_id         → create, store log_id, send actual minutes if any, clean
         log_id + dirty    → update planned/actual/order, clean
         log_id + clean    → skip (no remote call)
    3. an item edited while its request was in flight stays dirty
    4. first failure aborts; processed items keep their new state; error propagates
    5. full success → cache mirrors the selection for that session

The save is intentionally NOT atomic. A half-applied save is safe to retry:
created items carry their log_id and are clean, the rest are still dirty.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from practicesync.application.state.library_state import LibraryState
from practicesync.application.state.observable import Observable
from practicesync.application.state.selection_state import SelectionState
from practicesync.domain.entities import (
    LibraryItem,
    LoadingState,
    PracticeLog,
    PracticeSession,
    SelectedItem,
)
from practicesync.domain.exceptions import DomainException
from practicesync.domain.ports import IPracticeCache, IPracticeRemoteClient
from practicesync.infrastructure.observability.log_messages import LogMessages
from practicesync.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PushResult:
    """What a successful push did."""

    deleted: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0


class ReconciliationEngine:
    """Pull and push algorithms between remote, cache and state slices."""

    def __init__(self, remote: IPracticeRemoteClient, cache: IPracticeCache) -> None:
        self.remote = remote
        self.cache = cache

    # =========================================================================
    # PULL
    # =========================================================================

    async def _pull(
        self,
        entity: str,
        target: Observable[LoadingState[list[T]]],
        load_cached: Callable[[], Awaitable[list[T]]],
        fetch: Callable[[], Awaitable[list[T]]],
        save: Callable[[list[T]], Awaitable[None]],
    ) -> list[T] | None:
        """Cache-first-then-refresh into ``target``. Returns fetched data or None."""
        set_correlation_id()

        cached = await load_cached()
        if cached:
            target.set(LoadingState.loaded(cached))
        elif not target.value.has_data:
            target.set(LoadingState.loading())

        logger.debug(LogMessages.sync_started(entity, "Notion", count=len(cached) or None))

        try:
            fetched = await fetch()
        except DomainException as e:
            if target.value.has_data:
                logger.warning(
                    LogMessages.sync_failed(
                        entity, "Notion", e.message, hint="Keeping the data already shown"
                    )
                )
            else:
                logger.warning(LogMessages.sync_failed(entity, "Notion", e.message))
                target.set(LoadingState.failed(e))
            return None

        target.set(LoadingState.loaded(fetched))
        await save(fetched)
        logger.info("%s pulled: %d entries", entity, len(fetched))
        return fetched

    async def pull_library(self, state: LibraryState) -> list[LibraryItem] | None:
        return await self._pull(
            "Library",
            state.library,
            self.cache.load_library_items,
            self.remote.fetch_library,
            self.cache.save_library_items,
        )

    async def pull_sessions(self, state: LibraryState) -> list[PracticeSession] | None:
        return await self._pull(
            "Sessions",
            state.sessions,
            self.cache.load_sessions,
            self.remote.fetch_sessions,
            self.cache.save_sessions,
        )

    async def pull_all(self, state: LibraryState) -> None:
        """Library and sessions concurrently; each finishes or fails on its own."""
        results = await asyncio.gather(
            self.pull_library(state),
            self.pull_sessions(state),
            return_exceptions=True,
        )
        for result in results:
            # _pull folds domain errors into state; anything here is a bug
            if isinstance(result, BaseException):
                raise result

    async def pull_logs(
        self,
        session_id: str,
        target: Observable[LoadingState[list[PracticeLog]]],
    ) -> list[PracticeLog] | None:
        async def save(logs: list[PracticeLog]) -> None:
            await self.cache.save_logs(logs, session_id)

        return await self._pull(
            "Session logs",
            target,
            lambda: self.cache.load_logs(session_id),
            lambda: self.remote.fetch_logs(session_id),
            save,
        )

    # =========================================================================
    # PUSH
    # =========================================================================

    async def push_session(self, session_id: str, selection: SelectionState) -> PushResult:
        """Write pending deletes and dirty items of ``selection`` to the remote.

        Raises:
            DomainException: The first remote failure, after logging what was applied
        """
        set_correlation_id()
        result = PushResult()

        pending_deletes = sorted(selection.deleted_log_ids)
        for log_id in pending_deletes:
            try:
                await self.remote.delete_log(log_id)
            except DomainException as e:
                logger.error(LogMessages.save_aborted(session_id, "delete", result.deleted, e.message))
                raise
            result.deleted += 1
        # ids removed while the deletes were in flight stay queued for the next save
        selection.deleted_log_ids.difference_update(pending_deletes)

        items: Sequence[SelectedItem] = list(selection.selected_items)
        for index, selected in enumerate(items):
            try:
                await self._push_item(session_id, index, selected, selection, result)
            except DomainException as e:
                done = result.created + result.updated + result.skipped
                logger.error(LogMessages.save_aborted(session_id, "upsert", done, e.message))
                raise

        await self.cache.save_logs(_mirror_logs(session_id, items), session_id)
        logger.info(
            LogMessages.sync_completed(
                "Session", added=result.created, updated=result.updated, removed=result.deleted
            )
        )
        return result

    async def _push_item(
        self,
        session_id: str,
        index: int,
        selected: SelectedItem,
        selection: SelectionState,
        result: PushResult,
    ) -> None:
        # Yo, the user can keep editing while a request is in flight. The item only
        # goes clean when the selection revision did not move across the write.
        revision = selection.revision
        if selected.log_id is None:
            selected.log_id = await self.remote.create_log(
                name=selected.item.name,
                item_id=selected.item.id,
                session_id=session_id,
                planned_minutes=selected.planned_minutes,
                order=index,
                notes=selected.notes,
            )
            # create has no actual minutes field, time practiced before the first save
            # follows as an update
            if selected.actual_minutes is not None:
                await self.remote.update_log(
                    selected.log_id, actual_minutes=selected.actual_minutes
                )
            result.created += 1
        elif selected.is_dirty:
            await self.remote.update_log(
                selected.log_id,
                planned_minutes=selected.planned_minutes,
                actual_minutes=selected.actual_minutes,
                order=index,
                notes=selected.notes,
            )
            result.updated += 1
        else:
            result.skipped += 1
            return
        selected.is_dirty = selection.revision != revision

    async def record_practice_time(self, selected: SelectedItem) -> None:
        """Write one item's actual minutes remotely, then patch the cached row."""
        if selected.log_id is None:
            raise ValueError("Cannot record practice time for an unsaved item")
        await self.remote.update_log(selected.log_id, actual_minutes=selected.actual_minutes)
        await self.cache.update_log(selected.log_id, actual_minutes=selected.actual_minutes)


def _mirror_logs(session_id: str, items: Sequence[SelectedItem]) -> list[PracticeLog]:
    logs: list[PracticeLog] = []
    for index, selected in enumerate(items):
        if selected.log_id is None:
            continue
        logs.append(
            PracticeLog(
                id=selected.log_id,
                name=selected.item.name,
                item_id=selected.item.id,
                session_id=session_id,
                planned_minutes=selected.planned_minutes,
                actual_minutes=selected.actual_minutes,
                order=index,
                notes=selected.notes,
            )
        )
    return logs
