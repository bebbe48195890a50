"""Tests for StatsService."""

from datetime import date

import pytest

from practicesync.application.services import StatsService
from practicesync.domain.entities import ItemType, LibraryItem, PracticeLog, PracticeSession

TODAY = date(2024, 3, 13)  # a Wednesday


def _session(session_id: str, day: date, goal: int = 30) -> PracticeSession:
    return PracticeSession(id=session_id, name=session_id, date=day, goal_minutes=goal)


def _log(session_id: str, item_id: str, actual: float | None, planned: int = 5) -> PracticeLog:
    return PracticeLog(
        id=f"{session_id}-{item_id}",
        name=item_id,
        item_id=item_id,
        session_id=session_id,
        planned_minutes=planned,
        actual_minutes=actual,
    )


@pytest.fixture
def sessions() -> list[PracticeSession]:
    return [
        _session("s1", date(2024, 3, 13)),
        _session("s2", date(2024, 3, 12)),
        _session("s3", date(2024, 3, 11)),
        _session("s4", date(2024, 3, 5), goal=20),
        _session("s5", date(2024, 2, 20)),
    ]


@pytest.fixture
def logs() -> list[PracticeLog]:
    return [
        _log("s1", "item-blackbird", 20),
        _log("s1", "item-spider", 15),
        _log("s2", "item-spider", 10),
        _log("s3", "item-lesson", None),
        _log("s4", "item-blackbird", 25),
        _log("s4", "deleted-item", 5),
        _log("s5", "item-blackbird", 0.0),
    ]


@pytest.fixture
def service() -> StatsService:
    return StatsService()


class TestComputeStats:
    """Totals, ranges and rankings."""

    def test_totals(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        stats = service.compute_stats(sessions, logs, library_items, today=TODAY)

        assert stats.total_practice_minutes == 75
        assert stats.total_sessions == 5
        assert stats.total_items_practiced == 4
        assert stats.average_session_minutes == 15

    def test_ranges(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        stats = service.compute_stats(sessions, logs, library_items, today=TODAY)

        assert stats.this_week_minutes == 45
        assert stats.this_month_minutes == 75
        assert stats.last_30_days_minutes == 75

    def test_top_items_skip_unknown_and_unpracticed(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        stats = service.compute_stats(sessions, logs, library_items, today=TODAY)

        assert [(t.item.id, t.minutes) for t in stats.top_items_by_time] == [
            ("item-blackbird", 45),
            ("item-spider", 25),
        ]
        assert {c.item.id: c.count for c in stats.top_items_by_count} == {
            "item-blackbird": 2,
            "item-spider": 2,
        }

    def test_minutes_by_type(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        stats = service.compute_stats(sessions, logs, library_items, today=TODAY)

        assert stats.minutes_by_type == {ItemType.SONG: 45, ItemType.EXERCISE: 25}

    def test_weekly_trend_oldest_first(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        trend = service.compute_stats(sessions, logs, library_items, today=TODAY).weekly_trend

        assert len(trend) == 8
        assert trend[0].week_start == date(2024, 1, 22)
        assert trend[-1].week_start == date(2024, 3, 11)
        assert trend[-1].minutes == 45
        assert trend[-2].minutes == 30

    def test_recent_days(
        self,
        service: StatsService,
        sessions: list[PracticeSession],
        logs: list[PracticeLog],
        library_items: list[LibraryItem],
    ) -> None:
        recent = service.compute_stats(sessions, logs, library_items, today=TODAY).recent_days

        assert [d.date for d in recent][0] == date(2024, 3, 7)
        assert (recent[-1].minutes, recent[-1].item_count) == (35, 2)
        assert (recent[-3].minutes, recent[-3].item_count) == (0, 0)

    def test_empty_input(self, service: StatsService) -> None:
        stats = service.compute_stats([], [], [], today=TODAY)

        assert stats.total_sessions == 0
        assert stats.average_session_minutes == 0.0
        assert stats.current_streak == 0
        assert stats.top_items_by_time == []


class TestStreaks:
    """Consecutive distinct session days."""

    def test_current_and_longest(self, sessions: list[PracticeSession]) -> None:
        assert StatsService.compute_streaks(sessions, TODAY) == (3, 3)

    def test_current_may_start_yesterday(self) -> None:
        sessions = [_session("a", date(2024, 3, 12)), _session("b", date(2024, 3, 11))]
        assert StatsService.compute_streaks(sessions, TODAY) == (2, 2)

    def test_gap_resets_current(self) -> None:
        sessions = [_session("a", date(2024, 3, 10))]
        assert StatsService.compute_streaks(sessions, TODAY) == (0, 1)

    def test_duplicate_dates_count_once(self) -> None:
        sessions = [
            _session("a", date(2024, 3, 1)),
            _session("b", date(2024, 3, 2)),
            _session("c", date(2024, 3, 2)),
            _session("d", date(2024, 3, 3)),
            _session("e", date(2024, 3, 5)),
            _session("f", date(2024, 3, 6)),
        ]
        assert StatsService.compute_streaks(sessions, TODAY) == (0, 3)


class TestCalendar:
    def test_day_summaries_cover_month(
        self, sessions: list[PracticeSession], logs: list[PracticeLog]
    ) -> None:
        summaries = StatsService.day_summaries(sessions, logs, 2024, 3)

        assert len(summaries) == 31
        by_day = {s.date.day: s for s in summaries}
        assert by_day[13].item_count == 2
        assert by_day[13].actual_minutes == 35
        assert by_day[11].planned_minutes == 5
        assert not by_day[11].time_label
        assert not by_day[1].has_data

    def test_leap_february(self) -> None:
        assert len(StatsService.day_summaries([], [], 2024, 2)) == 29

    def test_goal_achievement_rate(
        self, sessions: list[PracticeSession], logs: list[PracticeLog]
    ) -> None:
        # s1 (35 of 30) and s4 (30 of 20) met, s2 (10 of 30) missed
        assert StatsService.goal_achievement_rate(sessions, logs) == 67

    def test_goal_rate_without_practice(self) -> None:
        assert StatsService.goal_achievement_rate([_session("a", TODAY)], []) == 0
