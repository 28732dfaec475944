"""Tests for mvndash.process.channel."""

from __future__ import annotations

from mvndash.process.channel import EventChannel, ProcessEvent, ProcessEventType


class TestProcessEvent:
    def test_constructors(self) -> None:
        assert ProcessEvent.started(42).pid == 42
        assert ProcessEvent.line("x").text == "x"
        assert ProcessEvent.completed(3).code == 3
        assert ProcessEvent.error("bad").message == "bad"

    def test_terminal_events(self) -> None:
        assert ProcessEvent.completed(0).is_terminal
        assert ProcessEvent.error("x").is_terminal
        assert not ProcessEvent.line("x").is_terminal
        assert not ProcessEvent.started(1).is_terminal

    def test_values_are_lowercase(self) -> None:
        for t in ProcessEventType:
            assert t.value == t.name.lower()


class TestEventChannel:
    def test_drain_returns_in_order(self) -> None:
        channel = EventChannel()
        for i in range(5):
            channel.send(ProcessEvent.line(str(i)))
        assert [e.text for e in channel.drain()] == ["0", "1", "2", "3", "4"]
        assert channel.drain() == []

    def test_closes_after_terminal_event(self) -> None:
        channel = EventChannel()
        channel.send(ProcessEvent.line("a"))
        channel.send(ProcessEvent.completed(0))
        channel.send(ProcessEvent.line("late"))
        events = channel.drain()
        assert [e.type for e in events] == [ProcessEventType.LINE, ProcessEventType.COMPLETED]
        assert channel.closed

    def test_only_one_terminal_event(self) -> None:
        channel = EventChannel()
        channel.send(ProcessEvent.error("first"))
        channel.send(ProcessEvent.completed(1))
        events = channel.drain()
        assert len(events) == 1
        assert events[0].message == "first"

    def test_get_times_out(self) -> None:
        channel = EventChannel()
        assert channel.get(timeout=0.01) is None
        channel.send(ProcessEvent.line("x"))
        event = channel.get(timeout=0.01)
        assert event is not None and event.text == "x"
        assert channel.empty()
