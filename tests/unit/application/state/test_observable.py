"""Tests for the observable value."""

import logging

import pytest

from practicesync.application.state import Observable


class TestObservable:
    def test_set_notifies_and_bumps_version(self) -> None:
        observable = Observable(0, name="counter")
        seen: list[int] = []
        observable.subscribe(seen.append)

        observable.set(1)
        observable.set(2)

        assert seen == [1, 2]
        assert observable.version == 2

    def test_unsubscribe(self) -> None:
        observable = Observable("a")
        seen: list[str] = []
        unsubscribe = observable.subscribe(seen.append)

        unsubscribe()
        observable.set("b")

        assert seen == []
        assert observable.listener_count == 0

    def test_failing_listener_does_not_block_others(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        observable = Observable(0, name="flaky")
        seen: list[int] = []

        def boom(_: int) -> None:
            raise RuntimeError("listener bug")

        observable.subscribe(boom)
        observable.subscribe(seen.append)

        with caplog.at_level(logging.ERROR):
            observable.set(5)

        assert seen == [5]
        assert observable.value == 5
        assert "Error in flaky listener" in caplog.text

    def test_non_callable_rejected(self) -> None:
        with pytest.raises(ValueError):
            Observable(0).subscribe("nope")  # type: ignore[arg-type]
