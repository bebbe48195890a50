"""Stats Service - practice statistics computed from cached sessions and logs.

Hey future me - this is pure computation over lists, no I/O. The coordinator
feeds it whatever the cache holds (all sessions, all cached logs, the library),
so the numbers only cover sessions whose logs were loaded at least once.

Rules worth remembering:
- "practiced" means actual_minutes > 0; planned-only logs count for nothing
- streaks run over DISTINCT session dates; the current streak may start
  yesterday when there is no session today yet
- weeks start on Monday
"""

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta

from practicesync.domain.entities import (
    DaySummary,
    ItemType,
    LibraryItem,
    PracticeLog,
    PracticeSession,
)

TOP_ITEMS_LIMIT = 10
TREND_WEEKS = 8
RECENT_DAYS = 7


@dataclass(frozen=True)
class ItemMinutes:
    item: LibraryItem
    minutes: float


@dataclass(frozen=True)
class ItemCount:
    item: LibraryItem
    count: int


@dataclass(frozen=True)
class WeekMinutes:
    week_start: date
    minutes: float


@dataclass(frozen=True)
class DayActivity:
    date: date
    minutes: float
    item_count: int


@dataclass(frozen=True)
class PracticeStats:
    """Everything the stats dashboard shows."""

    total_practice_minutes: float = 0.0
    total_sessions: int = 0
    total_items_practiced: int = 0
    average_session_minutes: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    this_week_minutes: float = 0.0
    this_month_minutes: float = 0.0
    last_30_days_minutes: float = 0.0
    top_items_by_time: list[ItemMinutes] = field(default_factory=list)
    top_items_by_count: list[ItemCount] = field(default_factory=list)
    minutes_by_type: dict[ItemType, float] = field(default_factory=dict)
    weekly_trend: list[WeekMinutes] = field(default_factory=list)
    recent_days: list[DayActivity] = field(default_factory=list)


def _week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


class StatsService:
    """Compute practice statistics."""

    def compute_stats(
        self,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library: list[LibraryItem],
        today: date | None = None,
    ) -> PracticeStats:
        today = today or date.today()
        library_by_id = {item.id: item for item in library}

        session_minutes = self._session_minutes(sessions, logs)
        current_streak, longest_streak = self.compute_streaks(sessions, today)

        return PracticeStats(
            total_practice_minutes=sum(log.actual_minutes or 0.0 for log in logs),
            total_sessions=len(sessions),
            total_items_practiced=len({log.item_id for log in logs}),
            average_session_minutes=(
                sum(session_minutes.values()) / len(sessions) if sessions else 0.0
            ),
            current_streak=current_streak,
            longest_streak=longest_streak,
            this_week_minutes=self._minutes_in_range(sessions, logs, _week_start(today), today),
            this_month_minutes=self._minutes_in_range(
                sessions, logs, today.replace(day=1), today
            ),
            last_30_days_minutes=self._minutes_in_range(
                sessions, logs, today - timedelta(days=30), today
            ),
            top_items_by_time=self._top_by_time(logs, library_by_id),
            top_items_by_count=self._top_by_count(logs, library_by_id),
            minutes_by_type=self._minutes_by_type(logs, library_by_id),
            weekly_trend=self._weekly_trend(sessions, logs, today),
            recent_days=self._recent_days(sessions, logs, today),
        )

    # === Streaks ===

    @staticmethod
    def compute_streaks(sessions: list[PracticeSession], today: date) -> tuple[int, int]:
        """(current, longest) run of consecutive session days."""
        days = sorted({s.date for s in sessions}, reverse=True)
        if not days:
            return 0, 0
        day_set = set(days)

        current = 0
        check = today if today in day_set else today - timedelta(days=1)
        while check in day_set:
            current += 1
            check -= timedelta(days=1)

        longest = streak = 1
        for newer, older in zip(days, days[1:]):
            if (newer - older).days == 1:
                streak += 1
            else:
                streak = 1
            longest = max(longest, streak)

        return current, longest

    # === Helpers ===

    @staticmethod
    def _session_minutes(
        sessions: list[PracticeSession], logs: list[PracticeLog]
    ) -> dict[str, float]:
        result = {session.id: 0.0 for session in sessions}
        for log in logs:
            if log.session_id in result:
                result[log.session_id] += log.actual_minutes or 0.0
        return result

    @staticmethod
    def _minutes_in_range(
        sessions: list[PracticeSession], logs: list[PracticeLog], start: date, end: date
    ) -> float:
        ids = {s.id for s in sessions if start <= s.date <= end}
        return sum(log.actual_minutes or 0.0 for log in logs if log.session_id in ids)

    @staticmethod
    def _top_by_time(
        logs: list[PracticeLog], library_by_id: dict[str, LibraryItem]
    ) -> list[ItemMinutes]:
        minutes: dict[str, float] = defaultdict(float)
        for log in logs:
            if log.actual_minutes is not None:
                minutes[log.item_id] += log.actual_minutes
        ranked = sorted(minutes.items(), key=lambda kv: kv[1], reverse=True)[:TOP_ITEMS_LIMIT]
        return [
            ItemMinutes(library_by_id[item_id], value)
            for item_id, value in ranked
            if item_id in library_by_id
        ]

    @staticmethod
    def _top_by_count(
        logs: list[PracticeLog], library_by_id: dict[str, LibraryItem]
    ) -> list[ItemCount]:
        counts: dict[str, int] = defaultdict(int)
        for log in logs:
            if log.actual_minutes is not None and log.actual_minutes > 0:
                counts[log.item_id] += 1
        ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:TOP_ITEMS_LIMIT]
        return [
            ItemCount(library_by_id[item_id], value)
            for item_id, value in ranked
            if item_id in library_by_id
        ]

    @staticmethod
    def _minutes_by_type(
        logs: list[PracticeLog], library_by_id: dict[str, LibraryItem]
    ) -> dict[ItemType, float]:
        result: dict[ItemType, float] = defaultdict(float)
        for log in logs:
            item = library_by_id.get(log.item_id)
            if log.actual_minutes is not None and item is not None:
                result[item.type] += log.actual_minutes
        return dict(result)

    def _weekly_trend(
        self, sessions: list[PracticeSession], logs: list[PracticeLog], today: date
    ) -> list[WeekMinutes]:
        this_week = _week_start(today)
        trend = []
        for offset in reversed(range(TREND_WEEKS)):
            start = this_week - timedelta(weeks=offset)
            trend.append(
                WeekMinutes(
                    start, self._minutes_in_range(sessions, logs, start, start + timedelta(days=6))
                )
            )
        return trend

    @staticmethod
    def _recent_days(
        sessions: list[PracticeSession], logs: list[PracticeLog], today: date
    ) -> list[DayActivity]:
        result = []
        for offset in reversed(range(RECENT_DAYS)):
            day = today - timedelta(days=offset)
            ids = {s.id for s in sessions if s.date == day}
            day_logs = [log for log in logs if log.session_id in ids]
            result.append(
                DayActivity(
                    date=day,
                    minutes=sum(log.actual_minutes or 0.0 for log in day_logs),
                    item_count=sum(1 for log in day_logs if (log.actual_minutes or 0) > 0),
                )
            )
        return result

    # === Calendar ===

    @staticmethod
    def day_summaries(
        sessions: list[PracticeSession], logs: list[PracticeLog], year: int, month: int
    ) -> list[DaySummary]:
        """One summary per day of the month, empty days included."""
        logs_by_session: dict[str, list[PracticeLog]] = defaultdict(list)
        for log in logs:
            logs_by_session[log.session_id].append(log)

        summaries = []
        for day_number in range(1, calendar.monthrange(year, month)[1] + 1):
            day = date(year, month, day_number)
            day_logs = [
                log for s in sessions if s.date == day for log in logs_by_session.get(s.id, [])
            ]
            summaries.append(
                DaySummary(
                    date=day,
                    item_count=len(day_logs),
                    planned_minutes=sum(log.planned_minutes for log in day_logs),
                    actual_minutes=sum(log.actual_minutes or 0.0 for log in day_logs),
                )
            )
        return summaries

    # Hey future me - only sessions with SOME recorded time count. A session that
    # was only planned is not a missed goal, it just never happened.
    @staticmethod
    def goal_achievement_rate(
        sessions: list[PracticeSession], logs: list[PracticeLog]
    ) -> int:
        """Percent of practiced sessions whose actual minutes reach the goal."""
        minutes = StatsService._session_minutes(sessions, logs)
        practiced = [s for s in sessions if minutes[s.id] > 0]
        if not practiced:
            return 0
        met = sum(1 for s in practiced if minutes[s.id] >= s.goal_minutes)
        return round(100 * met / len(practiced))
