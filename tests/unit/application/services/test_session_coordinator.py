"""Tests for SessionCoordinator.

Hey future me - the coordinator is wired with the real SQLite cache and
credential store plus the in-memory FakeRemote, so these read like small
end-to-end runs of what a UI would do.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from datetime import date, timedelta
from typing import Any

import pytest
from pytest_mock import MockerFixture

from practicesync.application.services import SessionCoordinator, SessionViewMode
from practicesync.config.settings import DatabaseSettings, LoggingSettings, Settings
from practicesync.domain.entities import (
    LibraryItem,
    LoadingState,
    PracticeLog,
    PracticeSession,
)
from practicesync.domain.exceptions import (
    NetworkError,
    NoCredentialError,
    StorageUnavailableError,
    ValidationException,
)
from practicesync.infrastructure.credentials import DatabaseCredentialProvider
from practicesync.infrastructure.persistence.cache_store import SqlAlchemyCacheStore
from practicesync.infrastructure.persistence.database import Database

TODAY = date.today()
PAST = TODAY - timedelta(days=3)


@pytest.fixture
def past_session() -> PracticeSession:
    return PracticeSession(id="session-past", name="Earlier", date=PAST)


@pytest.fixture
def remote(
    make_remote: Callable[..., Any],
    library_items: list[LibraryItem],
    today_session: PracticeSession,
    past_session: PracticeSession,
) -> Any:
    return make_remote(
        library=library_items,
        sessions=[today_session, past_session],
        logs=[
            PracticeLog(
                id="log-today",
                name="Spider Exercise",
                item_id="item-spider",
                session_id="session-today",
                planned_minutes=12,
            ),
            PracticeLog(
                id="log-past-1",
                name="Blackbird",
                item_id="item-blackbird",
                session_id="session-past",
                planned_minutes=10,
                actual_minutes=11.0,
                notes="slow",
            ),
            PracticeLog(
                id="log-past-2",
                name="Lesson 4: Barre Chords",
                item_id="item-lesson",
                session_id="session-past",
                planned_minutes=4,
                order=1,
            ),
        ],
    )


@pytest.fixture
async def coordinator(
    database: Database, cache: SqlAlchemyCacheStore, remote: Any
) -> AsyncIterator[SessionCoordinator]:
    coordinator = SessionCoordinator(
        Settings(),
        DatabaseCredentialProvider(database),
        cache,
        remote_factory=lambda api_key: remote,
    )
    yield coordinator
    await coordinator.aclose()


@pytest.fixture
async def connected(coordinator: SessionCoordinator) -> SessionCoordinator:
    await coordinator.set_api_key("secret_abc")
    return coordinator


class TestCredentials:
    """API key lifecycle."""

    async def test_without_key_nothing_is_fetched(
        self, coordinator: SessionCoordinator, remote: Any
    ) -> None:
        assert await coordinator.configure_remote() is False
        assert coordinator.needs_api_key

        await coordinator.load_data()

        assert isinstance(coordinator.library.library.value.error, NoCredentialError)
        assert isinstance(coordinator.library.sessions.value.error, NoCredentialError)
        assert remote.calls == []

    async def test_blank_key_rejected(self, coordinator: SessionCoordinator) -> None:
        with pytest.raises(ValidationException):
            await coordinator.set_api_key("   ")
        assert coordinator.needs_api_key

    async def test_set_key_connects(self, connected: SessionCoordinator, remote: Any) -> None:
        assert not connected.needs_api_key
        assert connected.engine.remote is remote
        assert await connected.credentials.get_api_key() == "secret_abc"

    async def test_clear_key_drops_loaded_state(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        await connected.load_data()

        await connected.clear_api_key()

        assert connected.needs_api_key
        assert remote.closed
        assert connected.library.library.value.is_idle
        assert connected.selection.selected_items == []
        assert connected.selection.current_session is None
        assert await connected.credentials.get_api_key() is None

    async def test_credential_store_failure_surfaces_in_state(
        self, coordinator: SessionCoordinator, mocker: MockerFixture
    ) -> None:
        mocker.patch.object(
            coordinator.credentials,
            "get_api_key",
            side_effect=StorageUnavailableError("disk gone"),
        )

        assert await coordinator.configure_remote() is False
        await coordinator.load_data()

        assert isinstance(coordinator.library.library.value.error, StorageUnavailableError)


class TestLoading:
    """Loading library, sessions and the selected date's session."""

    async def test_load_data_hydrates_today(self, connected: SessionCoordinator) -> None:
        await connected.load_data()

        assert len(connected.library.library_items) == 3
        assert len(connected.library.session_list) == 2
        assert connected.selection.current_session is not None
        assert connected.selection.current_session.id == "session-today"
        [item] = connected.selection.selected_items
        assert item.log_id == "log-today"
        assert item.planned_minutes == 12
        assert not connected.selection.has_unsaved_changes
        assert connected.view_mode is SessionViewMode.EDITING

    async def test_load_data_if_needed_only_once(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        await connected.load_data_if_needed()
        await connected.load_data_if_needed()

        assert remote.call_counts["fetch_library"] == 1

    async def test_past_session_opens_read_only(self, connected: SessionCoordinator) -> None:
        await connected.load_data()

        await connected.select_date(PAST)

        assert connected.is_viewing
        assert connected.is_selected_date_past
        assert [s.log_id for s in connected.selection.selected_items] == [
            "log-past-1",
            "log-past-2",
        ]
        connected.switch_to_edit_mode()
        assert connected.view_mode is SessionViewMode.EDITING

    async def test_date_without_session(self, connected: SessionCoordinator) -> None:
        await connected.load_data()

        await connected.select_date(PAST - timedelta(days=1))

        assert connected.selection.current_session is None
        assert connected.selection.selected_items == []
        assert connected.view_mode is SessionViewMode.EDITING

    async def test_logs_failure_sets_session_error(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        await connected.load_data()
        remote.fail("fetch_logs", NetworkError("offline"))

        await connected.select_date(PAST)

        assert isinstance(connected.selection.session_error, NetworkError)
        assert not connected.selection.is_loading_session

    async def test_edit_during_refresh_is_kept(
        self,
        connected: SessionCoordinator,
        remote: Any,
        cache: SqlAlchemyCacheStore,
        library_items: list[LibraryItem],
        today_session: PracticeSession,
        mocker: MockerFixture,
    ) -> None:
        connected.library.library.set(LoadingState.loaded(library_items))
        connected.library.sessions.set(LoadingState.loaded([today_session]))
        await cache.save_logs([remote.logs["log-today"]], "session-today")
        original_fetch = remote.fetch_logs

        async def fetch_while_user_edits(session_id: str) -> list[PracticeLog]:
            connected.selection.update_planned_time(0, 20)
            return await original_fetch(session_id)

        mocker.patch.object(remote, "fetch_logs", side_effect=fetch_while_user_edits)

        await connected.select_date(TODAY)

        [item] = connected.selection.selected_items
        assert item.planned_minutes == 20
        assert item.is_dirty

    async def test_refresh_replaces_cached_logs_when_untouched(
        self,
        connected: SessionCoordinator,
        remote: Any,
        cache: SqlAlchemyCacheStore,
        library_items: list[LibraryItem],
        today_session: PracticeSession,
    ) -> None:
        connected.library.library.set(LoadingState.loaded(library_items))
        connected.library.sessions.set(LoadingState.loaded([today_session]))
        stale = PracticeLog(
            id="log-today",
            name="Spider Exercise",
            item_id="item-spider",
            session_id="session-today",
            planned_minutes=3,
        )
        await cache.save_logs([stale], "session-today")

        await connected.select_date(TODAY)

        assert connected.selection.selected_items[0].planned_minutes == 12

    async def test_superseded_load_leaves_newer_date_alone(
        self,
        connected: SessionCoordinator,
        remote: Any,
        library_items: list[LibraryItem],
        today_session: PracticeSession,
        past_session: PracticeSession,
        mocker: MockerFixture,
    ) -> None:
        connected.library.library.set(LoadingState.loaded(library_items))
        connected.library.sessions.set(LoadingState.loaded([today_session, past_session]))
        original_fetch = remote.fetch_logs
        entered = {"session-past": asyncio.Event(), "session-today": asyncio.Event()}
        gates = {"session-past": asyncio.Event(), "session-today": asyncio.Event()}

        async def gated_fetch(session_id: str) -> list[PracticeLog]:
            entered[session_id].set()
            await gates[session_id].wait()
            if session_id == "session-today":
                raise NetworkError("offline")
            return await original_fetch(session_id)

        mocker.patch.object(remote, "fetch_logs", side_effect=gated_fetch)

        load_past = asyncio.create_task(connected.select_date(PAST))
        await entered["session-past"].wait()
        load_today = asyncio.create_task(connected.select_date(TODAY))
        await entered["session-today"].wait()

        # the older load finishes first and must not hydrate today or end its loading
        gates["session-past"].set()
        await load_past

        assert connected.selection.is_loading_session
        assert connected.selection.selected_items == []

        gates["session-today"].set()
        await load_today

        selection = connected.selection
        assert isinstance(selection.session_error, NetworkError)
        assert selection.selected_items == []
        assert selection.current_session is not None
        assert selection.current_session.id == "session-today"
        assert not selection.is_loading_session
        assert connected.session_logs.value.is_error


class TestSaving:
    """Explicit save and session creation."""

    async def test_save_creates_missing_session(
        self,
        connected: SessionCoordinator,
        remote: Any,
        cache: SqlAlchemyCacheStore,
        library_items: list[LibraryItem],
    ) -> None:
        remote.sessions = []
        await connected.load_data()
        connected.selection.toggle_selection(library_items[0])

        assert await connected.save_session() is True

        [call] = remote.calls_to("create_session")
        assert call["iso_date"] == TODAY.isoformat()
        assert call["name"] == TODAY.strftime("Practice %Y-%m-%d")
        session = connected.selection.current_session
        assert session is not None
        assert [s.id for s in await cache.load_sessions()] == [session.id]
        assert remote.calls_to("create_log")[0]["session_id"] == session.id
        assert not connected.selection.has_unsaved_changes
        assert not connected.selection.is_saving_session

    async def test_save_refused_while_loading(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        connected.selection.is_loading_session = True

        assert await connected.save_session() is False
        assert remote.calls == []

    async def test_save_without_key_records_error(
        self, coordinator: SessionCoordinator, library_items: list[LibraryItem]
    ) -> None:
        coordinator.selection.toggle_selection(library_items[0])

        assert await coordinator.save_session() is False

        assert isinstance(coordinator.selection.session_error, NoCredentialError)
        assert coordinator.selection.has_unsaved_changes
        assert not coordinator.selection.is_saving_session

    async def test_select_date_ends_practice(self, connected: SessionCoordinator) -> None:
        await connected.load_data()
        connected.controller.start_practice()

        await connected.select_date(PAST)

        assert not connected.controller.is_practicing
        assert not connected.timer.is_running

    async def test_copy_session_to_today(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        await connected.load_data()

        assert await connected.copy_session_to_today("session-past") is True

        assert remote.archived == ["log-today"]
        created = remote.calls_to("create_log")
        assert [(c["item_id"], c["planned_minutes"], c["order"]) for c in created] == [
            ("item-blackbird", 10, 0),
            ("item-lesson", 4, 1),
        ]
        assert created[0]["notes"] == "slow"
        assert all(c["session_id"] == "session-today" for c in created)
        assert connected.is_selected_date_today
        # actual time is not carried over
        assert all(s.actual_minutes is None for s in connected.selection.selected_items)

    async def test_copy_failure_records_error(
        self, connected: SessionCoordinator, remote: Any
    ) -> None:
        remote.fail("fetch_logs", NetworkError("offline"))

        assert await connected.copy_session_to_today("session-past") is False
        assert isinstance(connected.selection.session_error, NetworkError)

    async def test_copy_aborts_when_today_does_not_load(
        self,
        connected: SessionCoordinator,
        remote: Any,
        library_items: list[LibraryItem],
        today_session: PracticeSession,
        past_session: PracticeSession,
    ) -> None:
        connected.library.library.set(LoadingState.loaded(library_items))
        connected.library.sessions.set(LoadingState.loaded([today_session, past_session]))
        # the source logs come through, today's saved logs do not
        remote.fail("fetch_logs", NetworkError("offline"), from_call=2)

        assert await connected.copy_session_to_today("session-past") is False

        assert isinstance(connected.selection.session_error, NetworkError)
        assert remote.calls_to("create_log") == []
        assert remote.archived == []
        assert "log-today" in remote.logs


class TestStats:
    async def test_stats_from_cached_logs(self, connected: SessionCoordinator) -> None:
        await connected.load_data()
        await connected.select_date(PAST)

        stats = await connected.refresh_stats(today=TODAY)

        assert stats.total_sessions == 2
        assert stats.total_practice_minutes == 11.0
        assert stats.top_items_by_time[0].item.id == "item-blackbird"
        summaries = connected.day_summaries(PAST.year, PAST.month)
        assert next(s for s in summaries if s.date == PAST).item_count == 2
        assert connected.goal_achievement_rate == 0


class TestCreate:
    async def test_create_configures_logging(
        self, database_settings: DatabaseSettings, mocker: MockerFixture
    ) -> None:
        configure = mocker.patch(
            "practicesync.application.services.session_coordinator.configure_logging"
        )
        settings = Settings(
            database=database_settings,
            logging=LoggingSettings(level="DEBUG", json_format=True),
        )

        coordinator = await SessionCoordinator.create(settings)
        try:
            configure.assert_called_once_with("DEBUG", True, "practicesync")
        finally:
            await coordinator.aclose()
