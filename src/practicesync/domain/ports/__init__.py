"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from practicesync.domain.entities import (
    LibraryItem,
    PracticeLog,
    PracticeSession,
    SelectedItem,
)

# Notification system interfaces
from practicesync.domain.ports.notification import (
    INotificationProvider,
    Notification,
    NotificationPriority,
    NotificationResult,
    NotificationType,
)


class IPracticeRemoteClient(ABC):
    """Port for the remote workspace holding library, sessions and logs.

    Implementations hide pagination and property shapes. Every method raises a
    RemoteError subclass (or NoCredentialError) on failure.
    """

    @abstractmethod
    async def fetch_library(self) -> list[LibraryItem]:
        """Fetch every library item, following continuation cursors."""
        pass

    @abstractmethod
    async def fetch_sessions(self) -> list[PracticeSession]:
        """Fetch every session (date descending is a hint, not a contract)."""
        pass

    @abstractmethod
    async def fetch_logs(self, session_id: str) -> list[PracticeLog]:
        """Fetch the logs of one session."""
        pass

    @abstractmethod
    async def create_session(self, name: str, iso_date: str) -> PracticeSession:
        """Create a session and return it with its server id."""
        pass

    @abstractmethod
    async def create_log(
        self,
        name: str,
        item_id: str,
        session_id: str,
        planned_minutes: int,
        order: int,
        notes: str | None = None,
    ) -> str:
        """Create a log and return its server id."""
        pass

    @abstractmethod
    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        """Partially update a log. Only provided fields are sent."""
        pass

    @abstractmethod
    async def delete_log(self, log_id: str) -> None:
        """Archive (soft delete) a log."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None


class IPracticeCache(ABC):
    """Port for the local persistent cache.

    Hey future me - reads and writes NEVER raise. A broken cache degrades to
    "empty" on read and "not persisted" on write, both only logged.
    """

    @abstractmethod
    async def load_library_items(self) -> list[LibraryItem]:
        pass

    @abstractmethod
    async def load_sessions(self) -> list[PracticeSession]:
        pass

    @abstractmethod
    async def load_logs(self, session_id: str) -> list[PracticeLog]:
        pass

    @abstractmethod
    async def load_all_logs(self) -> list[PracticeLog]:
        pass

    @abstractmethod
    async def save_library_items(self, items: list[LibraryItem]) -> None:
        """Upsert every item and prune cached items missing from ``items``."""
        pass

    @abstractmethod
    async def save_sessions(self, sessions: list[PracticeSession]) -> None:
        """Upsert every session and prune cached sessions missing from ``sessions``."""
        pass

    @abstractmethod
    async def save_logs(self, logs: list[PracticeLog], session_id: str) -> None:
        """Upsert/prune, scoped to one session's logs."""
        pass

    @abstractmethod
    async def update_log(
        self,
        log_id: str,
        planned_minutes: int | None = None,
        actual_minutes: float | None = None,
        order: int | None = None,
        notes: str | None = None,
    ) -> None:
        """Patch one cached log. Missing rows are a silent no-op."""
        pass

    @abstractmethod
    async def last_updated(self, key: str) -> datetime | None:
        """When the collection ``key`` ("library", "sessions") was last saved."""
        pass


class ICredentialProvider(ABC):
    """Port for API key storage.

    Raises StorageUnavailableError when the backing store cannot be used.
    """

    @abstractmethod
    async def get_api_key(self) -> str | None:
        pass

    @abstractmethod
    async def save_api_key(self, api_key: str) -> None:
        pass

    @abstractmethod
    async def delete_api_key(self) -> None:
        pass


class IOvertimeAlerter(ABC):
    """Port for the "planned time is up" side effect.

    Called synchronously from the timer tick, so implementations must not
    block. Schedule real work on the loop and return.
    """

    @abstractmethod
    def deliver_overtime_alert(self, item: SelectedItem) -> None:
        pass


__all__ = [
    "ICredentialProvider",
    "INotificationProvider",
    "IOvertimeAlerter",
    "IPracticeCache",
    "IPracticeRemoteClient",
    "Notification",
    "NotificationPriority",
    "NotificationResult",
    "NotificationType",
]
