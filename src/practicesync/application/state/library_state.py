"""Library and sessions state slice with filtering and sorting."""

from datetime import date
from enum import Enum

from practicesync.application.state.observable import Observable
from practicesync.domain.entities import (
    ItemType,
    LibraryItem,
    LoadingState,
    PracticeSession,
)


class SortOption(str, Enum):
    """Library sort keys."""

    NAME = "name"
    LAST_PRACTICED = "last_practiced"
    TIMES_PRACTICED = "times_practiced"


_FilterKey = tuple[str, ItemType | None, SortOption, bool, int]


class LibraryState:
    """Loading state for library and sessions plus the library filter controls.

    Hey future me - filtered_library is memoized on (search, type filter, sort
    option, direction, library version). Anything else changing (a timer tick,
    a selection edit) returns the cached list without re-filtering.
    """

    def __init__(self) -> None:
        self.library: Observable[LoadingState[list[LibraryItem]]] = Observable(
            LoadingState.idle(), name="library"
        )
        self.sessions: Observable[LoadingState[list[PracticeSession]]] = Observable(
            LoadingState.idle(), name="sessions"
        )
        self.search_text = ""
        self.type_filter: ItemType | None = None
        self.sort_option = SortOption.NAME
        self.sort_ascending = True

        self._filter_key: _FilterKey | None = None
        self._filtered: list[LibraryItem] = []
        self.filter_evaluations = 0

    # === Derived collections ===

    @property
    def library_items(self) -> list[LibraryItem]:
        return list(self.library.value.value or [])

    @property
    def session_list(self) -> list[PracticeSession]:
        return list(self.sessions.value.value or [])

    @property
    def is_loading(self) -> bool:
        return self.library.value.is_loading or self.sessions.value.is_loading

    @property
    def filtered_library(self) -> list[LibraryItem]:
        key: _FilterKey = (
            self.search_text,
            self.type_filter,
            self.sort_option,
            self.sort_ascending,
            self.library.version,
        )
        if key != self._filter_key:
            self._filtered = self._compute_filtered()
            self._filter_key = key
            self.filter_evaluations += 1
        return self._filtered

    def _compute_filtered(self) -> list[LibraryItem]:
        items = self.library_items

        query = self.search_text.strip().lower()
        if query:
            items = [
                item
                for item in items
                if query in item.name.lower()
                or (item.artist is not None and query in item.artist.lower())
                or any(query in tag.lower() for tag in item.tags)
            ]

        if self.type_filter is not None:
            items = [item for item in items if item.type is self.type_filter]

        # "Ascending" is the natural direction of each option: A-Z for names,
        # most recent first for last practiced, most practiced first for counts.
        if self.sort_option is SortOption.NAME:
            items.sort(key=lambda i: i.name.casefold())
        elif self.sort_option is SortOption.LAST_PRACTICED:
            items.sort(key=lambda i: i.last_practiced or date.min, reverse=True)
        else:
            items.sort(key=lambda i: i.times_practiced, reverse=True)

        if not self.sort_ascending:
            items.reverse()
        return items

    # === Filter controls ===

    def set_search_text(self, text: str) -> None:
        self.search_text = text

    def set_type_filter(self, item_type: ItemType | None) -> None:
        self.type_filter = item_type

    def set_sort(self, option: SortOption, ascending: bool | None = None) -> None:
        self.sort_option = option
        if ascending is not None:
            self.sort_ascending = ascending

    def toggle_sort_direction(self) -> None:
        self.sort_ascending = not self.sort_ascending

    # === Sessions helpers ===

    def sessions_on(self, day: date) -> list[PracticeSession]:
        return [s for s in self.session_list if s.date == day]

    def session_for(self, day: date) -> PracticeSession | None:
        """First session on a day (the list is newest first, ties keep remote order)."""
        matches = self.sessions_on(day)
        return matches[0] if matches else None

    def add_session(self, session: PracticeSession) -> None:
        """Prepend a freshly created session to the loaded list."""
        current = [s for s in self.session_list if s.id != session.id]
        self.sessions.set(LoadingState.loaded([session, *current]))

    def find_item(self, item_id: str) -> LibraryItem | None:
        for item in self.library_items:
            if item.id == item_id:
                return item
        return None

    def reset(self) -> None:
        self.library.set(LoadingState.idle())
        self.sessions.set(LoadingState.idle())
