"""Observable state slices exposed to the UI."""

from practicesync.application.state.library_state import LibraryState, SortOption
from practicesync.application.state.observable import Observable
from practicesync.application.state.selection_state import SelectionState
from practicesync.application.state.timer_state import SessionTimer

__all__ = [
    "LibraryState",
    "Observable",
    "SelectionState",
    "SessionTimer",
    "SortOption",
]
