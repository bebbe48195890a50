"""Session coordinator: the one object a UI talks to.

Hey future me - this wires everything together and owns nothing clever itself:

    settings ──► credentials ──► remote (NotionClient per API key)
                     │
    cache ◄──── ReconciliationEngine ────► LibraryState / SelectionState
                     ▲
    SessionTimer ◄── PracticeController ──► NotificationService (overtime)

Without an API key the engine talks to a stand-in remote that raises
NoCredentialError on every call, so nothing goes over the wire and every
path records the error the same way a failed request would.

The one subtle rule lives in select_date(): logs are shown cache-first, then
refreshed from Notion. If the user edits the selection while the refresh is in
flight, the refresh result is NOT applied (local edits win, they are dirty and
the next save writes them).

Every select_date() call loads into its own target and holds a token; a load
that was superseded by a newer date selection is dropped and never clears
is_loading_session.
"""

import logging
from collections.abc import Callable
from datetime import date
from enum import Enum
from typing import Any

from practicesync.application.services.notification_service import NotificationService
from practicesync.application.services.practice_service import PracticeController
from practicesync.application.services.reconciliation_service import ReconciliationEngine
from practicesync.application.services.stats_service import PracticeStats, StatsService
from practicesync.application.state import LibraryState, Observable, SelectionState, SessionTimer
from practicesync.config.settings import Settings, get_settings
from practicesync.domain.entities import (
    DaySummary,
    LibraryItem,
    LoadingState,
    PracticeLog,
    PracticeSession,
    SelectedItem,
)
from practicesync.domain.exceptions import (
    DomainException,
    NoCredentialError,
    ValidationException,
)
from practicesync.domain.ports import (
    ICredentialProvider,
    IOvertimeAlerter,
    IPracticeCache,
    IPracticeRemoteClient,
)
from practicesync.infrastructure.observability.log_messages import LogMessages
from practicesync.infrastructure.observability.logging import configure_logging

logger = logging.getLogger(__name__)

RemoteFactory = Callable[[str], IPracticeRemoteClient]


class SessionViewMode(str, Enum):
    """Past sessions with data open read-only until the user asks to edit."""

    VIEWING = "viewing"
    EDITING = "editing"


class _MissingCredentialRemote(IPracticeRemoteClient):
    """Remote used while no API key is configured. Every call fails fast."""

    async def fetch_library(self) -> list[LibraryItem]:
        raise NoCredentialError()

    async def fetch_sessions(self) -> list[PracticeSession]:
        raise NoCredentialError()

    async def fetch_logs(self, session_id: str) -> list[PracticeLog]:
        raise NoCredentialError()

    async def create_session(self, name: str, iso_date: str) -> PracticeSession:
        raise NoCredentialError()

    async def create_log(
        self,
        name: str,
        item_id: str,
        session_id: str,
        planned_minutes: int,
        order: int,
        notes: str | None = None,
    ) -> str:
        raise NoCredentialError()

    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        raise NoCredentialError()

    async def delete_log(self, log_id: str) -> None:
        raise NoCredentialError()


class SessionCoordinator:
    """UI-facing facade over state slices, reconciliation and practice mode."""

    def __init__(
        self,
        settings: Settings,
        credentials: ICredentialProvider,
        cache: IPracticeCache,
        remote_factory: RemoteFactory | None = None,
        alerter: IOvertimeAlerter | None = None,
        stats_service: StatsService | None = None,
    ) -> None:
        self.settings = settings
        self.credentials = credentials
        self.cache = cache
        self._remote_factory = remote_factory or self._default_remote_factory
        self.remote: IPracticeRemoteClient | None = None

        self.library = LibraryState()
        self.selection = SelectionState(settings.practice.default_planned_minutes)
        self.session_logs: Observable[LoadingState[list[PracticeLog]]] = Observable(
            LoadingState.idle(), name="session_logs"
        )
        self.timer = SessionTimer(interval=settings.practice.tick_interval_seconds)
        self.engine = ReconciliationEngine(_MissingCredentialRemote(), cache)
        self.alerter = alerter
        self.controller = PracticeController(self.selection, self.engine, self.timer, alerter)

        self.view_mode = SessionViewMode.EDITING
        self.credential_error: DomainException | None = None

        self.stats_service = stats_service or StatsService()
        self.practice_stats = PracticeStats()
        self._stats_sessions: list[PracticeSession] = []
        self._stats_logs: list[PracticeLog] = []
        self._on_close: list[Callable[[], Any]] = []
        self._load_token = 0

    @classmethod
    async def create(cls, settings: Settings | None = None) -> "SessionCoordinator":
        """Build the default stack (logging, SQLite cache, DB credentials, webhook alerts)."""
        from practicesync.infrastructure.credentials import DatabaseCredentialProvider
        from practicesync.infrastructure.persistence.cache_store import SqlAlchemyCacheStore
        from practicesync.infrastructure.persistence.database import Database

        settings = settings or get_settings()
        configure_logging(
            settings.logging.level, settings.logging.json_format, settings.app_name
        )
        database = Database(settings.database)
        cache = SqlAlchemyCacheStore(database)
        await cache.initialize()

        coordinator = cls(
            settings,
            DatabaseCredentialProvider(database, settings.notion.api_key),
            cache,
            alerter=NotificationService(settings=settings.notifications),
        )
        coordinator._on_close.append(cache.close)
        await coordinator.configure_remote()
        return coordinator

    def _default_remote_factory(self, api_key: str) -> IPracticeRemoteClient:
        from practicesync.infrastructure.integrations.notion_client import NotionClient

        return NotionClient(
            self.settings.notion,
            api_key,
            default_planned_minutes=self.settings.practice.default_planned_minutes,
            default_goal_minutes=self.settings.practice.default_goal_minutes,
        )

    # =========================================================================
    # CREDENTIALS
    # =========================================================================

    @property
    def needs_api_key(self) -> bool:
        return self.remote is None

    async def configure_remote(self) -> bool:
        """(Re)build the remote client from the stored key. True if one exists."""
        try:
            api_key = await self.credentials.get_api_key()
        except DomainException as e:
            logger.warning("Credential lookup failed: %s", e.message)
            self.credential_error = e
            api_key = None

        await self._close_remote()
        if not api_key:
            logger.info(LogMessages.credential_missing("Notion", "Library and session sync"))
            return False

        self.remote = self._remote_factory(api_key)
        self.engine.remote = self.remote
        self.credential_error = None
        return True

    async def set_api_key(self, api_key: str) -> None:
        """Store a new key and rebuild the remote client.

        Raises:
            ValidationException: Empty key
            StorageUnavailableError: The credential store could not be written
        """
        api_key = api_key.strip()
        if not api_key:
            raise ValidationException("API key must not be empty")
        await self.credentials.save_api_key(api_key)
        await self.configure_remote()

    async def clear_api_key(self) -> None:
        """Forget the key and drop everything loaded with it."""
        await self.credentials.delete_api_key()
        await self._close_remote()
        # in-flight loads belong to the old key
        self._load_token += 1
        self.selection.is_loading_session = False
        self.controller.end_practice()
        self.library.reset()
        self.selection.clear_selection()
        self.session_logs.set(LoadingState.idle())

    async def _close_remote(self) -> None:
        if self.remote is not None:
            await self.remote.close()
        self.remote = None
        self.engine.remote = _MissingCredentialRemote()

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load_data(self) -> None:
        """Pull library and sessions, then load the session of the selected date."""
        if self.needs_api_key:
            error = self.credential_error or NoCredentialError()
            self.library.library.set(LoadingState.failed(error))
            self.library.sessions.set(LoadingState.failed(error))
            return

        await self.engine.pull_all(self.library)
        await self.select_date(self.selection.selected_date)

    async def refresh(self) -> None:
        await self.load_data()

    async def load_data_if_needed(self) -> None:
        if self.library.library.value.is_idle and self.library.sessions.value.is_idle:
            await self.load_data()

    # =========================================================================
    # SESSION FOR A DATE
    # =========================================================================

    async def select_date(self, day: date) -> None:
        """Make ``day`` current and load its session into the selection."""
        selection = self.selection
        if self.controller.is_practicing:
            self.controller.end_practice()

        # Only the newest load may touch the selection or clear the loading flag
        self._load_token += 1
        token = self._load_token

        selection.selected_date = day
        selection.session_error = None
        session = self.library.session_for(day)
        # hydrate([]) bumps the revision; edits are detected against this baseline
        selection.hydrate([], [])
        selection.current_session = session
        self.session_logs.set(LoadingState.idle())

        if session is None:
            selection.is_loading_session = False
            self.view_mode = SessionViewMode.EDITING
            selection.notify()
            return

        baseline = selection.revision
        library_items = self.library.library_items
        # A target per load, so a superseded fetch never publishes into a newer one
        target: Observable[LoadingState[list[PracticeLog]]] = Observable(
            LoadingState.idle(), name=f"session_logs:{session.id}"
        )

        def apply_logs(state: LoadingState[list[PracticeLog]]) -> None:
            nonlocal baseline
            if token != self._load_token:
                return
            self.session_logs.set(state)
            if not state.is_loaded:
                return
            if selection.revision != baseline:
                logger.info("Selection edited while loading %s; keeping local edits", session.id)
                return
            selection.hydrate(state.value or [], library_items)
            selection.current_session = session
            baseline = selection.revision

        selection.is_loading_session = True
        selection.notify()
        target.subscribe(apply_logs)
        try:
            await self.engine.pull_logs(session.id, target)
        finally:
            if token == self._load_token:
                selection.is_loading_session = False

        if token != self._load_token:
            logger.debug("Load of %s superseded by a newer date selection", session.id)
            return

        if target.value.is_error:
            selection.session_error = target.value.error
        self.view_mode = (
            SessionViewMode.VIEWING
            if self.is_selected_date_past and selection.selected_items
            else SessionViewMode.EDITING
        )
        selection.notify()

    async def create_session_for_selected_date(self) -> PracticeSession:
        """Create the remote session for the selected date and make it current.

        Raises:
            DomainException: Remote failure (or no API key)
        """
        day = self.selection.selected_date
        name = day.strftime(self.settings.practice.session_name_format)
        session = await self.engine.remote.create_session(name, day.isoformat())

        # Only mirror into the cache when the full list is known, the save prunes
        had_sessions = self.library.sessions.value.is_loaded
        self.library.add_session(session)
        if had_sessions:
            await self.cache.save_sessions(self.library.session_list)

        self.selection.current_session = session
        self.selection.notify()
        logger.info("Created session %s for %s", session.id, day.isoformat())
        return session

    async def save_session(self) -> bool:
        """Push the selection to Notion. Errors land in selection.session_error."""
        selection = self.selection
        if selection.is_loading_session:
            logger.warning("Save refused while a session is loading")
            return False
        if selection.is_saving_session:
            return False

        selection.is_saving_session = True
        selection.session_error = None
        selection.notify()
        try:
            session = selection.current_session
            if session is None:
                session = await self.create_session_for_selected_date()
            await self.engine.push_session(session.id, selection)
        except DomainException as e:
            selection.session_error = e
            return False
        finally:
            selection.is_saving_session = False
            selection.notify()
        return True

    async def copy_session_to_today(self, from_session_id: str) -> bool:
        """Plan today with the items of another session, then save."""
        logs = await self.cache.load_logs(from_session_id)
        if not logs:
            try:
                logs = await self.engine.remote.fetch_logs(from_session_id)
            except DomainException as e:
                self.selection.session_error = e
                self.selection.notify()
                return False

        copies: list[SelectedItem] = []
        for log in sorted(logs, key=lambda entry: entry.order):
            item = self.library.find_item(log.item_id) or LibraryItem.placeholder(
                log.item_id, log.name
            )
            copy = SelectedItem.new(item, planned_minutes=log.planned_minutes)
            copy.notes = log.notes
            copies.append(copy)

        await self.select_date(date.today())
        if self.selection.session_error is not None:
            # today's saved logs are unknown, so they could not be archived
            logger.warning(
                "Copy aborted, today's session did not load: %s", self.selection.session_error
            )
            return False
        # Whatever today already had is replaced, so its saved logs get archived
        for existing in self.selection.selected_items:
            if existing.log_id is not None:
                self.selection.deleted_log_ids.add(existing.log_id)
        self.selection.replace_items(copies)
        self.view_mode = SessionViewMode.EDITING
        return await self.save_session()

    # =========================================================================
    # VIEW MODE / DATE HELPERS
    # =========================================================================

    def switch_to_edit_mode(self) -> None:
        self.view_mode = SessionViewMode.EDITING
        self.selection.notify()

    @property
    def is_viewing(self) -> bool:
        return self.view_mode is SessionViewMode.VIEWING

    @property
    def is_selected_date_today(self) -> bool:
        return self.selection.selected_date == date.today()

    @property
    def is_selected_date_past(self) -> bool:
        return self.selection.selected_date < date.today()

    # =========================================================================
    # STATS
    # =========================================================================

    async def refresh_stats(self, today: date | None = None) -> PracticeStats:
        """Recompute stats from the loaded sessions and every cached log."""
        sessions = self.library.session_list or await self.cache.load_sessions()
        library = self.library.library_items or await self.cache.load_library_items()
        self._stats_sessions = sessions
        self._stats_logs = await self.cache.load_all_logs()
        self.practice_stats = self.stats_service.compute_stats(
            sessions, self._stats_logs, library, today=today
        )
        return self.practice_stats

    def day_summaries(self, year: int, month: int) -> list[DaySummary]:
        return self.stats_service.day_summaries(
            self._stats_sessions, self._stats_logs, year, month
        )

    @property
    def goal_achievement_rate(self) -> int:
        return self.stats_service.goal_achievement_rate(self._stats_sessions, self._stats_logs)

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    async def aclose(self) -> None:
        await self.timer.aclose()
        if isinstance(self.alerter, NotificationService):
            await self.alerter.drain()
        await self._close_remote()
        for close in self._on_close:
            await close()
        self._on_close.clear()
