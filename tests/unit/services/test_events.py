"""Unit tests for priority-ordered reload listeners."""

from datasync.models.enums import ListenerPriority
from datasync.models.events import ReloadCompleted
from datasync.services.events import ReloadListeners


def _event() -> ReloadCompleted:
    return ReloadCompleted(dataset_type="widget", valid_count=1, invalid_count=0)


class TestReloadListeners:
    def test_runs_lowest_priority_value_first(self) -> None:
        order: list[str] = []
        listeners = ReloadListeners()
        listeners.add(lambda event: order.append("low"), ListenerPriority.LOW)
        listeners.add(lambda event: order.append("highest"), ListenerPriority.HIGHEST)
        listeners.add(lambda event: order.append("normal"))

        listeners.notify(_event())

        assert order == ["highest", "normal", "low"]

    def test_equal_priority_runs_in_subscription_order(self) -> None:
        order: list[int] = []
        listeners = ReloadListeners()
        for i in range(5):
            listeners.add(lambda event, i=i: order.append(i))

        listeners.notify(_event())

        assert order == [0, 1, 2, 3, 4]

    def test_failing_listener_does_not_stop_others(self) -> None:
        seen: list[ReloadCompleted] = []
        listeners = ReloadListeners()

        def broken(event: ReloadCompleted) -> None:
            raise RuntimeError("listener bug")

        listeners.add(broken, ListenerPriority.HIGH)
        listeners.add(seen.append)

        listeners.notify(_event())

        assert seen == [_event()]

    def test_decorator_registers_listener(self) -> None:
        seen: list[str] = []
        listeners = ReloadListeners()

        @listeners.listener(priority=ListenerPriority.LOWEST)
        def on_reload(event: ReloadCompleted) -> None:
            seen.append(event.dataset_type)

        listeners.notify(_event())

        assert seen == ["widget"]
        assert len(listeners) == 1

    def test_remove(self) -> None:
        seen: list[ReloadCompleted] = []
        listeners = ReloadListeners()

        def on_reload(event: ReloadCompleted) -> None:
            seen.append(event)

        listeners.add(on_reload)

        assert listeners.remove(on_reload) is True
        assert listeners.remove(on_reload) is False
        listeners.notify(_event())

        assert len(listeners) == 0
        assert seen == []
