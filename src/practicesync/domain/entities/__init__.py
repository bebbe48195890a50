"""Domain entities."""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


# Hey future me, the values are the remote select option labels. Anything the
# user invents in the workspace (a new "Theory" option, a typo) maps to UNKNOWN
# instead of blowing up the whole library fetch.
class ItemType(str, Enum):
    """Kind of practice item."""

    SONG = "Song"
    EXERCISE = "Exercise"
    COURSE_LESSON = "Course Lesson"
    UNKNOWN = "Unknown"

    @classmethod
    def from_remote(cls, value: str | None) -> "ItemType":
        """Map a remote select value to an ItemType (UNKNOWN when unmatched)."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True, eq=False)
class LibraryItem:
    """A song, exercise or lesson in the practice library.

    Library items are read-only on this side: they only ever arrive from a
    remote fetch and are replaced wholesale on every refresh. Identity is the
    remote id, so two fetches of the same item compare equal even when the
    practice counters moved.
    """

    id: str
    name: str
    type: ItemType = ItemType.UNKNOWN
    artist: str | None = None
    tags: list[str] = field(default_factory=list)
    last_practiced: date | None = None
    times_practiced: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LibraryItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def placeholder(cls, item_id: str, name: str) -> "LibraryItem":
        """Stand-in for a log whose item is missing from the loaded library."""
        return cls(id=item_id, name=name, type=ItemType.UNKNOWN)


@dataclass
class PracticeSession:
    """One practice session, bucketed by calendar day."""

    id: str
    name: str
    date: date
    goal_minutes: int = 30


@dataclass
class PracticeLog:
    """One item practiced (or planned) inside a session.

    ``order`` is the position inside the session. Saves renumber it from 0 so
    it always matches what the user last saw.
    """

    id: str
    name: str
    item_id: str
    session_id: str
    planned_minutes: int = 5
    actual_minutes: float | None = None
    order: int = 0
    notes: str | None = None


# Yo, SelectedItem is THE mutable working copy the UI edits. Invariant: an item
# without a log_id has never been written remotely, so it is always dirty.
# __post_init__ enforces that no matter what the caller passed.
@dataclass
class SelectedItem:
    """A library item placed into the current session, with local edit state."""

    id: str
    item: LibraryItem
    planned_minutes: int = 5
    actual_minutes: float | None = None
    log_id: str | None = None
    is_dirty: bool = True
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.log_id is None:
            self.is_dirty = True

    @classmethod
    def new(cls, item: LibraryItem, planned_minutes: int = 5) -> "SelectedItem":
        """Fresh unsaved selection with a generated local id."""
        return cls(
            id=str(uuid.uuid4()),
            item=item,
            planned_minutes=max(1, planned_minutes),
            is_dirty=True,
        )

    @classmethod
    def from_log(cls, log: PracticeLog, item: LibraryItem) -> "SelectedItem":
        """Clean selection hydrated from a saved log."""
        return cls(
            id=log.id,
            item=item,
            planned_minutes=log.planned_minutes,
            actual_minutes=log.actual_minutes,
            log_id=log.id,
            is_dirty=False,
            notes=log.notes,
        )

    @property
    def planned_seconds(self) -> float:
        return self.planned_minutes * 60.0


class LoadingStatus(str, Enum):
    """Lifecycle of an asynchronously loaded collection."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class LoadingState(Generic[T]):
    """idle | loading | loaded(value) | error(exception)."""

    status: LoadingStatus = LoadingStatus.IDLE
    value: T | None = None
    error: Exception | None = None

    @classmethod
    def idle(cls) -> "LoadingState[Any]":
        return cls()

    @classmethod
    def loading(cls) -> "LoadingState[Any]":
        return cls(status=LoadingStatus.LOADING)

    @classmethod
    def loaded(cls, value: T) -> "LoadingState[T]":
        return cls(status=LoadingStatus.LOADED, value=value)

    @classmethod
    def failed(cls, error: Exception) -> "LoadingState[Any]":
        return cls(status=LoadingStatus.ERROR, error=error)

    @property
    def is_idle(self) -> bool:
        return self.status is LoadingStatus.IDLE

    @property
    def is_loading(self) -> bool:
        return self.status is LoadingStatus.LOADING

    @property
    def is_loaded(self) -> bool:
        return self.status is LoadingStatus.LOADED

    @property
    def is_error(self) -> bool:
        return self.status is LoadingStatus.ERROR

    @property
    def has_data(self) -> bool:
        """Loaded with a non-empty value."""
        return self.is_loaded and bool(self.value)


@dataclass(frozen=True)
class DaySummary:
    """Per-day roll-up used by the calendar heat map."""

    date: date
    item_count: int
    planned_minutes: int
    actual_minutes: float

    @property
    def has_data(self) -> bool:
        return self.item_count > 0

    @property
    def intensity(self) -> float:
        """0.0-1.0, saturating at one hour of actual practice."""
        if self.actual_minutes <= 0:
            return 0.0
        return min(1.0, self.actual_minutes / 60.0)

    @property
    def time_label(self) -> str | None:
        """Compact label like "45m", "1h" or "1h 5m"."""
        if self.actual_minutes <= 0:
            return None
        minutes = int(self.actual_minutes)
        if minutes >= 60:
            hours, rest = divmod(minutes, 60)
            return f"{hours}h" if rest == 0 else f"{hours}h {rest}m"
        return f"{minutes}m"


__all__ = [
    "DaySummary",
    "ItemType",
    "LibraryItem",
    "LoadingState",
    "LoadingStatus",
    "PracticeLog",
    "PracticeSession",
    "SelectedItem",
]
