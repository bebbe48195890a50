"""Selection slice: the items of the session being composed or practiced.

Hey future me - this slice EXCLUSIVELY owns selected_items and deleted_log_ids.
The reconciliation engine mutates items only through the references handed to
it (setting log_id / clearing is_dirty after a confirmed write), and every edit
here bumps `revision` so a slow remote refresh can tell the user touched the
selection while it was in flight.
"""

import logging
from datetime import date

from practicesync.application.state.observable import Observable
from practicesync.domain.entities import (
    LibraryItem,
    PracticeLog,
    PracticeSession,
    SelectedItem,
)

logger = logging.getLogger(__name__)


class SelectionState:
    """Selected items, pending deletes, and current-session bookkeeping."""

    def __init__(self, default_planned_minutes: int = 5) -> None:
        self.default_planned_minutes = default_planned_minutes
        self.selected_items: list[SelectedItem] = []
        self.deleted_log_ids: set[str] = set()
        self.current_session: PracticeSession | None = None
        self.selected_date: date = date.today()
        self.is_loading_session = False
        self.is_saving_session = False
        self.session_error: Exception | None = None
        self.revision = 0
        self.changes: Observable["SelectionState"] = Observable(self, name="selection")

    def _changed(self) -> None:
        self.revision += 1
        self.changes.notify()

    def notify(self) -> None:
        """Publish flag changes (loading/saving/error) without an edit revision."""
        self.changes.notify()

    def touch(self) -> None:
        """Publish an in-place item edit made outside this class (recorded time)."""
        self._changed()

    # === Queries ===

    def is_selected(self, item: LibraryItem) -> bool:
        return any(s.item.id == item.id for s in self.selected_items)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self.deleted_log_ids) or any(s.is_dirty for s in self.selected_items)

    @property
    def total_planned_minutes(self) -> int:
        return sum(s.planned_minutes for s in self.selected_items)

    @property
    def total_actual_minutes(self) -> float:
        return sum(s.actual_minutes or 0.0 for s in self.selected_items)

    def _valid(self, index: int) -> bool:
        return 0 <= index < len(self.selected_items)

    # === Edits ===

    def toggle_selection(self, item: LibraryItem) -> None:
        """Deselect if selected (queueing its log for deletion), else append."""
        for index, selected in enumerate(self.selected_items):
            if selected.item.id == item.id:
                self.remove_selected_item(index)
                return
        self.selected_items.append(
            SelectedItem.new(item, planned_minutes=self.default_planned_minutes)
        )
        self._changed()

    def remove_selected_item(self, index: int) -> None:
        if not self._valid(index):
            return
        removed = self.selected_items.pop(index)
        if removed.log_id is not None:
            self.deleted_log_ids.add(removed.log_id)
        self._changed()

    def update_planned_time(self, index: int, minutes: int) -> None:
        if not self._valid(index):
            return
        selected = self.selected_items[index]
        selected.planned_minutes = max(1, minutes)
        selected.is_dirty = True
        self._changed()

    def update_notes(self, index: int, notes: str | None) -> None:
        if not self._valid(index):
            return
        selected = self.selected_items[index]
        selected.notes = notes or None
        selected.is_dirty = True
        self._changed()

    # Yo, a move shifts the index (= order) of potentially EVERY item, so every item
    # goes dirty and the next save rewrites order for all of them.
    def move_selected_item(self, from_index: int, to_index: int) -> None:
        if not self._valid(from_index):
            return
        to_index = max(0, min(to_index, len(self.selected_items) - 1))
        item = self.selected_items.pop(from_index)
        self.selected_items.insert(to_index, item)
        for selected in self.selected_items:
            selected.is_dirty = True
        self._changed()

    def replace_items(self, items: list[SelectedItem]) -> None:
        self.selected_items = list(items)
        self._changed()

    def hydrate(self, logs: list[PracticeLog], library: list[LibraryItem]) -> None:
        """Replace the selection with clean items built from saved logs."""
        by_id = {item.id: item for item in library}
        hydrated = []
        for log in sorted(logs, key=lambda entry: entry.order):
            item = by_id.get(log.item_id)
            if item is None:
                logger.debug("Log %s references unknown item %s", log.id, log.item_id)
                item = LibraryItem.placeholder(log.item_id, log.name)
            hydrated.append(SelectedItem.from_log(log, item))
        self.selected_items = hydrated
        self.deleted_log_ids = set()
        self._changed()

    def clear_selection(self) -> None:
        self.selected_items = []
        self.deleted_log_ids = set()
        self.current_session = None
        self._changed()
