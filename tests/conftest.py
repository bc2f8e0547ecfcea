from __future__ import annotations

from typing import Iterable

import pytest
from evdev import InputEvent


class FakeSource:
    """Stands in for evdev.InputDevice: replays events, then optionally fails."""

    def __init__(self, events: Iterable[InputEvent] = (), error: OSError | None = None) -> None:
        self.path = "/dev/input/event99"
        self.name = "Fake Receiver"
        self._events = list(events)
        self._error = error
        self.grabbed = False
        self.closed = False

    def read_loop(self):
        yield from self._events
        if self._error is not None:
            raise self._error

    def grab(self) -> None:
        self.grabbed = True

    def ungrab(self) -> None:
        self.grabbed = False

    def close(self) -> None:
        self.closed = True


class FakeSink:
    """Stands in for evdev.UInput, recording (type, code, value) triples."""

    def __init__(self) -> None:
        self.written: list[tuple[int, int, int]] = []
        self.closed = False

    def write(self, etype: int, code: int, value: int) -> None:
        self.written.append((etype, code, value))

    def write_event(self, event: InputEvent) -> None:
        self.write(event.type, event.code, event.value)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def fake_source():
    return FakeSource
