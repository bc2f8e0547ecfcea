from __future__ import annotations

from types import SimpleNamespace

import pytest
from evdev import InputEvent, ecodes

from accelerator import device
from accelerator.config import Profile
from accelerator.device import Accelerator, PointerDevice, enumerate_pointing_devices
from accelerator.errors import DeviceError, DeviceGoneError

REL = ecodes.EV_REL
SYN = ecodes.EV_SYN


def ev(etype: int, code: int, value: int = 0, t: float = 1000.0) -> InputEvent:
    sec = int(t)
    usec = int(round((t - sec) * 1_000_000))
    return InputEvent(sec, usec, etype, code, value)


def rel_x(value: int) -> InputEvent:
    return ev(REL, ecodes.REL_X, value)


def rel_y(value: int) -> InputEvent:
    return ev(REL, ecodes.REL_Y, value)


def report(t: float = 1000.0) -> InputEvent:
    return ev(SYN, ecodes.SYN_REPORT, 0, t)


def dropped() -> InputEvent:
    return ev(SYN, ecodes.SYN_DROPPED)


def feed(acc: Accelerator, events: list[InputEvent]) -> None:
    for event in events:
        acc.handle_event(event)


@pytest.fixture
def doubler(fake_source, sink) -> Accelerator:
    return Accelerator(fake_source(), sink, Profile(sens_mult=2.0, accel=0.0))


def test_motion_is_scaled_and_emitted_on_report(doubler: Accelerator, sink) -> None:
    feed(doubler, [rel_x(3), rel_y(4)])
    assert sink.written == []

    doubler.handle_event(report())
    assert sink.written == [
        (REL, ecodes.REL_X, 6),
        (REL, ecodes.REL_Y, 8),
        (SYN, ecodes.SYN_REPORT, 0),
    ]


def test_zero_axis_is_not_written(doubler: Accelerator, sink) -> None:
    feed(doubler, [rel_x(2), report()])
    assert sink.written == [(REL, ecodes.REL_X, 4), (SYN, ecodes.SYN_REPORT, 0)]


def test_buttons_and_wheel_pass_through(doubler: Accelerator, sink) -> None:
    feed(doubler, [
        ev(ecodes.EV_KEY, ecodes.BTN_LEFT, 1),
        ev(REL, ecodes.REL_WHEEL, -1),
        ev(ecodes.EV_MSC, ecodes.MSC_SCAN, 90001),
    ])
    assert sink.written == [
        (ecodes.EV_KEY, ecodes.BTN_LEFT, 1),
        (REL, ecodes.REL_WHEEL, -1),
        (ecodes.EV_MSC, ecodes.MSC_SCAN, 90001),
    ]


def test_syn_dropped_discards_until_next_report(doubler: Accelerator, sink) -> None:
    feed(doubler, [
        rel_x(5),
        dropped(),
        rel_x(7),
        ev(ecodes.EV_KEY, ecodes.BTN_RIGHT, 1),
        report(),
    ])
    assert sink.written == []

    feed(doubler, [rel_x(1), report(1000.01)])
    assert sink.written == [(REL, ecodes.REL_X, 2), (SYN, ecodes.SYN_REPORT, 0)]


def test_run_processes_events_then_reports_device_gone(fake_source, sink) -> None:
    source = fake_source(
        [rel_x(1), report()],
        error=OSError(19, "No such device"),
    )
    acc = Accelerator(source, sink, Profile(sens_mult=1.0, accel=0.0))

    with pytest.raises(DeviceGoneError, match="No such device"):
        acc.run()
    assert sink.written == [(REL, ecodes.REL_X, 1), (SYN, ecodes.SYN_REPORT, 0)]


def test_close_ungrabs_and_closes_both_ends(fake_source, sink) -> None:
    source = fake_source()
    with Accelerator(source, sink, Profile(sens_mult=1.0, accel=0.0)) as acc:
        acc.grab()
        assert source.grabbed

    assert not source.grabbed
    assert source.closed
    assert sink.closed


def test_grab_failure_is_a_device_error(fake_source, sink) -> None:
    source = fake_source()

    def busy() -> None:
        raise OSError(16, "Device or resource busy")

    source.grab = busy
    acc = Accelerator(source, sink, Profile(sens_mult=1.0, accel=0.0))
    with pytest.raises(DeviceError, match="busy"):
        acc.grab()


def test_open_missing_node_is_a_device_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(path: str):
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(device.evdev, "InputDevice", missing)
    with pytest.raises(DeviceError, match="/dev/input/nope"):
        Accelerator.open("/dev/input/nope", Profile(sens_mult=1.0, accel=0.0))


def _input_device(path: str, rel: list[int], vendor: int = 0x046D, product: int = 0xC52B):
    return SimpleNamespace(
        path=path,
        name=f"Device {path}",
        phys="usb-0000:00:14.0-1/input2",
        info=SimpleNamespace(vendor=vendor, product=product),
        capabilities=lambda: {ecodes.EV_REL: rel},
        close=lambda: None,
    )


def test_pointer_device_classification() -> None:
    mouse = PointerDevice.from_input_device(
        _input_device("/dev/input/event3", [ecodes.REL_X, ecodes.REL_Y, ecodes.REL_WHEEL])
    )
    assert mouse.is_pointing_device
    assert mouse.vidpid == "046D:C52B"

    wheel_only = PointerDevice.from_input_device(_input_device("/dev/input/event4", [ecodes.REL_WHEEL]))
    assert not wheel_only.is_pointing_device


def test_enumerate_skips_unreadable_and_non_pointing(monkeypatch: pytest.MonkeyPatch) -> None:
    nodes = {
        "/dev/input/event7": [ecodes.REL_X, ecodes.REL_Y],
        "/dev/input/event2": [ecodes.REL_X, ecodes.REL_Y],
        "/dev/input/event1": [],
    }

    def open_node(path: str):
        if path == "/dev/input/event0":
            raise PermissionError(13, "Permission denied")
        return _input_device(path, nodes[path])

    monkeypatch.setattr(device.evdev, "list_devices", lambda: ["/dev/input/event0", *nodes])
    monkeypatch.setattr(device.evdev, "InputDevice", open_node)

    found = enumerate_pointing_devices()
    assert [d.path for d in found] == ["/dev/input/event2", "/dev/input/event7"]


def test_wheel_and_button_frames_do_not_move_the_pointer(fake_source, sink) -> None:
    acc = Accelerator(fake_source(), sink, Profile(sens_mult=1.5, accel=0.0))
    feed(acc, [rel_x(1), report(1000.0)])
    assert sink.written == [(REL, ecodes.REL_X, 2), (SYN, ecodes.SYN_REPORT, 0)]
    sink.written.clear()

    for i in range(1, 6):
        feed(acc, [ev(REL, ecodes.REL_WHEEL, -1), report(1000.0 + i * 0.01)])
    feed(acc, [ev(ecodes.EV_KEY, ecodes.BTN_LEFT, 1), report(1000.1)])
    feed(acc, [ev(ecodes.EV_KEY, ecodes.BTN_LEFT, 0), report(1000.11)])

    moved = [w for w in sink.written if w[0] == REL and w[1] in (ecodes.REL_X, ecodes.REL_Y)]
    assert moved == []
    assert sink.written.count((REL, ecodes.REL_WHEEL, -1)) == 5

    # The leftover -0.5 from the first frame is still applied to the next X motion.
    sink.written.clear()
    feed(acc, [rel_x(1), report(1000.2)])
    assert sink.written == [(REL, ecodes.REL_X, 1), (SYN, ecodes.SYN_REPORT, 0)]
