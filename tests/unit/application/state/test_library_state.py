"""Tests for the library slice: filtering, sorting and memoization."""

from datetime import date

from practicesync.application.state import LibraryState, SortOption
from practicesync.domain.entities import ItemType, LibraryItem, LoadingState, PracticeSession


def _loaded(items: list[LibraryItem]) -> LibraryState:
    state = LibraryState()
    state.library.set(LoadingState.loaded(items))
    return state


class TestFiltering:
    """Test search and type filter."""

    def test_search_matches_name_artist_and_tags(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)

        state.set_search_text("BEATLES")
        assert [i.id for i in state.filtered_library] == ["item-blackbird"]

        state.set_search_text("justin")
        assert [i.id for i in state.filtered_library] == ["item-lesson"]

        state.set_search_text("technique")
        assert [i.id for i in state.filtered_library] == ["item-spider"]

    def test_blank_search_matches_all(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        state.set_search_text("   ")
        assert len(state.filtered_library) == 3

    def test_type_filter(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        state.set_type_filter(ItemType.EXERCISE)
        assert [i.id for i in state.filtered_library] == ["item-spider"]


class TestSorting:
    """Test sort options and direction."""

    def test_name_sort(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        assert [i.name for i in state.filtered_library] == [
            "Blackbird",
            "Lesson 4: Barre Chords",
            "Spider Exercise",
        ]

    def test_last_practiced_most_recent_first_and_never_last(
        self, library_items: list[LibraryItem]
    ) -> None:
        state = _loaded(library_items)
        state.set_sort(SortOption.LAST_PRACTICED)
        assert [i.id for i in state.filtered_library] == [
            "item-spider",
            "item-blackbird",
            "item-lesson",
        ]

    def test_times_practiced_descending_then_toggle(
        self, library_items: list[LibraryItem]
    ) -> None:
        state = _loaded(library_items)
        state.set_sort(SortOption.TIMES_PRACTICED)
        assert [i.times_practiced for i in state.filtered_library] == [30, 12, 2]

        state.toggle_sort_direction()
        assert [i.times_practiced for i in state.filtered_library] == [2, 12, 30]


class TestMemoization:
    """Filtered library is only recomputed when one of its inputs changes."""

    def test_repeated_reads_reuse_result(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)

        first = state.filtered_library
        second = state.filtered_library

        assert first is second
        assert state.filter_evaluations == 1

    def test_sessions_change_does_not_refilter(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        state.filtered_library

        state.sessions.set(LoadingState.loaded([]))
        state.filtered_library

        assert state.filter_evaluations == 1

    def test_library_reload_refilters(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        state.filtered_library

        state.library.set(LoadingState.loaded(library_items[:1]))

        assert len(state.filtered_library) == 1
        assert state.filter_evaluations == 2

    def test_each_control_refilters(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        state.filtered_library
        state.set_search_text("a")
        state.filtered_library
        state.set_type_filter(ItemType.SONG)
        state.filtered_library
        state.set_sort(SortOption.TIMES_PRACTICED)
        state.filtered_library
        state.toggle_sort_direction()
        state.filtered_library

        assert state.filter_evaluations == 5


class TestSessionHelpers:
    def test_session_for_and_add_session(self) -> None:
        state = LibraryState()
        day = date(2024, 5, 2)
        older = PracticeSession(id="s1", name="A", date=date(2024, 5, 1))
        state.sessions.set(LoadingState.loaded([older]))

        created = PracticeSession(id="s2", name="B", date=day)
        state.add_session(created)
        state.add_session(created)

        assert [s.id for s in state.session_list] == ["s2", "s1"]
        assert state.session_for(day) == created
        assert state.session_for(date(2024, 5, 3)) is None

    def test_find_item_and_reset(self, library_items: list[LibraryItem]) -> None:
        state = _loaded(library_items)
        assert state.find_item("item-spider") is library_items[1]
        assert state.find_item("nope") is None

        state.reset()

        assert state.library.value.is_idle
        assert state.library_items == []
