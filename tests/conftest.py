"""Shared fixtures.

Hey future me - FakeRemote is an in-memory stand-in for the Notion workspace.
It keeps real state (created logs get ids, updates stick, deletes archive) so
reconciliation tests can assert on what the "server" ends up holding, and it
can be told to fail from the n-th call of a method onwards.
"""

import dataclasses
from collections import Counter
from collections.abc import AsyncIterator, Callable
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from practicesync.config.settings import DatabaseSettings
from practicesync.domain.entities import (
    ItemType,
    LibraryItem,
    PracticeLog,
    PracticeSession,
)
from practicesync.domain.ports import IPracticeRemoteClient
from practicesync.infrastructure.persistence.cache_store import SqlAlchemyCacheStore
from practicesync.infrastructure.persistence.database import Database


class FakeRemote(IPracticeRemoteClient):
    """In-memory remote workspace with per-method failure injection."""

    def __init__(
        self,
        library: list[LibraryItem] | None = None,
        sessions: list[PracticeSession] | None = None,
        logs: list[PracticeLog] | None = None,
    ) -> None:
        self.library = list(library or [])
        self.sessions = list(sessions or [])
        self.logs: dict[str, PracticeLog] = {log.id: log for log in logs or []}
        self.archived: list[str] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.call_counts: Counter[str] = Counter()
        self.fail_on: dict[str, tuple[int, Exception]] = {}
        self.closed = False
        self._next_id = 0

    def fail(self, method: str, error: Exception, from_call: int = 1) -> None:
        """Make ``method`` raise ``error`` on call number ``from_call`` and later."""
        self.fail_on[method] = (from_call, error)

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def _enter(self, method: str, **kwargs: Any) -> None:
        self.call_counts[method] += 1
        self.calls.append((method, kwargs))
        rule = self.fail_on.get(method)
        if rule is not None and self.call_counts[method] >= rule[0]:
            raise rule[1]

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    async def fetch_library(self) -> list[LibraryItem]:
        self._enter("fetch_library")
        return list(self.library)

    async def fetch_sessions(self) -> list[PracticeSession]:
        self._enter("fetch_sessions")
        return sorted(self.sessions, key=lambda s: s.date, reverse=True)

    async def fetch_logs(self, session_id: str) -> list[PracticeLog]:
        self._enter("fetch_logs", session_id=session_id)
        return sorted(
            (log for log in self.logs.values() if log.session_id == session_id),
            key=lambda log: log.order,
        )

    async def create_session(self, name: str, iso_date: str) -> PracticeSession:
        self._enter("create_session", name=name, iso_date=iso_date)
        session = PracticeSession(
            id=self._new_id("session"), name=name, date=date.fromisoformat(iso_date)
        )
        self.sessions.append(session)
        return session

    async def create_log(
        self,
        name: str,
        item_id: str,
        session_id: str,
        planned_minutes: int,
        order: int,
        notes: str | None = None,
    ) -> str:
        self._enter(
            "create_log",
            name=name,
            item_id=item_id,
            session_id=session_id,
            planned_minutes=planned_minutes,
            order=order,
            notes=notes,
        )
        log_id = self._new_id("log")
        self.logs[log_id] = PracticeLog(
            id=log_id,
            name=name,
            item_id=item_id,
            session_id=session_id,
            planned_minutes=planned_minutes,
            order=order,
            notes=notes,
        )
        return log_id

    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        changes = {
            key: value
            for key, value in {
                "planned_minutes": planned_minutes,
                "actual_minutes": actual_minutes,
                "order": order,
                "notes": notes,
            }.items()
            if value is not None
        }
        self._enter("update_log", log_id=log_id, **changes)
        if log_id in self.logs:
            self.logs[log_id] = dataclasses.replace(self.logs[log_id], **changes)

    async def delete_log(self, log_id: str) -> None:
        self._enter("delete_log", log_id=log_id)
        self.logs.pop(log_id, None)
        self.archived.append(log_id)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# ENTITIES
# =============================================================================


@pytest.fixture
def library_items() -> list[LibraryItem]:
    """Three library items of different types."""
    return [
        LibraryItem(
            id="item-blackbird",
            name="Blackbird",
            type=ItemType.SONG,
            artist="The Beatles",
            tags=["fingerstyle", "beatles"],
            last_practiced=date(2024, 3, 1),
            times_practiced=12,
        ),
        LibraryItem(
            id="item-spider",
            name="Spider Exercise",
            type=ItemType.EXERCISE,
            tags=["technique"],
            last_practiced=date(2024, 3, 10),
            times_practiced=30,
        ),
        LibraryItem(
            id="item-lesson",
            name="Lesson 4: Barre Chords",
            type=ItemType.COURSE_LESSON,
            artist="Justin",
            times_practiced=2,
        ),
    ]


@pytest.fixture
def today_session() -> PracticeSession:
    return PracticeSession(id="session-today", name="Practice today", date=date.today())


@pytest.fixture
def make_remote() -> Callable[..., FakeRemote]:
    """Factory for FakeRemote instances."""
    return FakeRemote


# =============================================================================
# CACHE
# =============================================================================


@pytest.fixture
def database_settings(tmp_path: Path) -> DatabaseSettings:
    return DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")


@pytest.fixture
async def database(database_settings: DatabaseSettings) -> AsyncIterator[Database]:
    db = Database(database_settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
async def cache(database: Database) -> SqlAlchemyCacheStore:
    """Initialized cache store on a temporary SQLite file."""
    store = SqlAlchemyCacheStore(database)
    assert await store.initialize()
    return store
