"""Practice mode: walking through the selected items with the session timer.

Hey future me - the state machine is small:

    IDLE ──select items──► CONFIGURING ──start_practice──► PRACTICING(index)
      ▲                                                        │
      └──────── finish on last item / end_practice / skip past last ┘

Overtime alert rule (the one that bit us before): fire on the tick where
remaining time goes from > 0 to <= 0, at most once per item per practice run.
Resuming an item whose recorded time already reaches its plan arms the flag up
front, so it never fires for that item.
"""

import logging
from enum import Enum

from practicesync.application.services.reconciliation_service import ReconciliationEngine
from practicesync.application.state.selection_state import SelectionState
from practicesync.application.state.timer_state import SessionTimer
from practicesync.domain.entities import SelectedItem
from practicesync.domain.exceptions import DomainException
from practicesync.domain.ports import IOvertimeAlerter

logger = logging.getLogger(__name__)


class PracticePhase(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    PRACTICING = "practicing"


def format_seconds(seconds: float) -> str:
    """Format as M:SS (minutes are not capped at 59)."""
    total = int(max(0.0, seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


class PracticeController:
    """Drives practice mode over the selection slice and the session timer."""

    def __init__(
        self,
        selection: SelectionState,
        engine: ReconciliationEngine,
        timer: SessionTimer,
        alerter: IOvertimeAlerter | None = None,
    ) -> None:
        self.selection = selection
        self.engine = engine
        self.timer = timer
        self.alerter = alerter
        self.practice_index: int | None = None
        self.timer.on_tick = self._on_tick

    # === Derived state ===

    @property
    def phase(self) -> PracticePhase:
        if self.practice_index is not None:
            return PracticePhase.PRACTICING
        if self.selection.selected_items:
            return PracticePhase.CONFIGURING
        return PracticePhase.IDLE

    @property
    def is_practicing(self) -> bool:
        return self.practice_index is not None

    @property
    def current_practice_item(self) -> SelectedItem | None:
        index = self.practice_index
        if index is None or not 0 <= index < len(self.selection.selected_items):
            return None
        return self.selection.selected_items[index]

    @property
    def practice_progress(self) -> str:
        if self.practice_index is None:
            return ""
        return f"{self.practice_index + 1} / {len(self.selection.selected_items)}"

    @property
    def elapsed_seconds(self) -> float:
        return self.timer.elapsed_seconds

    @property
    def remaining_seconds(self) -> float:
        item = self.current_practice_item
        if item is None:
            return 0.0
        return item.planned_seconds - self.timer.elapsed_seconds

    @property
    def is_overtime(self) -> bool:
        item = self.current_practice_item
        return item is not None and self.timer.elapsed_seconds > item.planned_seconds

    @property
    def elapsed_formatted(self) -> str:
        return format_seconds(self.timer.elapsed_seconds)

    @property
    def remaining_formatted(self) -> str:
        # floored at zero for display, is_overtime tells the rest
        return format_seconds(self.remaining_seconds)

    @property
    def overtime_formatted(self) -> str:
        return format_seconds(-self.remaining_seconds)

    # === Transitions ===

    def start_practice(self, index: int = 0) -> None:
        if not self.selection.selected_items:
            return
        index = max(0, min(index, len(self.selection.selected_items) - 1))
        self._enter(index)
        self.timer.resume()

    def _enter(self, index: int) -> None:
        """Make ``index`` current and seed the clock from its recorded time."""
        self.practice_index = index
        item = self.selection.selected_items[index]
        seed = (item.actual_minutes or 0.0) * 60.0
        self.timer.seed(seed)
        self.timer.has_triggered_overtime_alert = seed >= item.planned_seconds
        self.selection.notify()

    def _exit(self) -> None:
        self.timer.reset()
        self.practice_index = None
        self.selection.notify()

    def _capture_current(self) -> tuple[SelectedItem, bool] | None:
        """Store elapsed time on the current item and mark it dirty.

        Returns the item and whether it already had unsaved edits before the capture.
        """
        item = self.current_practice_item
        if item is None:
            return None
        had_pending_edits = item.is_dirty
        item.actual_minutes = self.timer.elapsed_seconds / 60.0
        item.is_dirty = True
        self.selection.touch()
        return item, had_pending_edits

    async def _persist(self, captured: tuple[SelectedItem, bool] | None) -> None:
        """Write recorded time for an already saved item. Failures keep it dirty.

        Only actual minutes go out here, so planned/notes/order edits made before or
        during the write stay pending for the next save.
        """
        if captured is None:
            return
        item, had_pending_edits = captured
        if item.log_id is None:
            return
        revision = self.selection.revision
        try:
            await self.engine.record_practice_time(item)
        except DomainException as e:
            logger.warning("Could not record practice time for %s: %s", item.item.name, e.message)
            self.selection.session_error = e
        else:
            item.is_dirty = had_pending_edits or self.selection.revision != revision
        self.selection.notify()

    async def finish_current_item(self) -> None:
        """Record time for the current item and leave practice mode."""
        if self.practice_index is None:
            return
        captured = self._capture_current()
        self._exit()
        await self._persist(captured)

    async def finish_and_next_item(self) -> None:
        """Record time and move on; on the last item same as finish_current_item."""
        index = self.practice_index
        if index is None:
            return
        if index + 1 >= len(self.selection.selected_items):
            await self.finish_current_item()
            return
        captured = self._capture_current()
        # The clock keeps its run state, so there is no gap between items
        self._enter(index + 1)
        await self._persist(captured)

    def skip_to_next_item(self) -> None:
        """Move on without recording time."""
        index = self.practice_index
        if index is None:
            return
        if index + 1 >= len(self.selection.selected_items):
            self._exit()
        else:
            self._enter(index + 1)

    def end_practice(self) -> None:
        """Leave practice mode without recording time."""
        if self.practice_index is not None:
            self._exit()

    def toggle_timer(self) -> None:
        if self.practice_index is not None:
            self.timer.toggle()

    def pause_timer(self) -> None:
        self.timer.pause()

    def resume_timer(self) -> None:
        if self.practice_index is not None:
            self.timer.resume()

    # === Tick ===

    def _on_tick(self, before: float, after: float) -> None:
        item = self.current_practice_item
        if item is None or self.timer.has_triggered_overtime_alert:
            return
        planned = item.planned_seconds
        if planned - before > 0 and planned - after <= 0:
            self.timer.has_triggered_overtime_alert = True
            logger.info("Planned time reached for %s", item.item.name)
            if self.alerter is not None:
                try:
                    self.alerter.deliver_overtime_alert(item)
                except Exception:
                    logger.exception("Overtime alert delivery failed")
