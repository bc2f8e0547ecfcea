"""
evdev input source and uinput output.

The source device is grabbed exclusively so only the accelerated clone
reaches the rest of the system.
"""

import logging
from dataclasses import dataclass
from typing import List

import evdev
from evdev import ecodes

from .config import Profile
from .curve import MotionFilter
from .errors import DeviceError, DeviceGoneError

log = logging.getLogger(__name__)


@dataclass
class PointerDevice:
    """Represents an evdev input node."""
    path: str
    name: str
    phys: str
    vendor: int
    product: int
    rel_codes: frozenset = frozenset()

    @property
    def is_pointing_device(self) -> bool:
        """Check if this node reports relative X/Y motion (mouse, trackball, etc)."""
        return ecodes.REL_X in self.rel_codes and ecodes.REL_Y in self.rel_codes

    @property
    def vidpid(self) -> str:
        return f"{self.vendor:04X}:{self.product:04X}"

    @classmethod
    def from_input_device(cls, dev: 'evdev.InputDevice') -> 'PointerDevice':
        caps = dev.capabilities()
        return cls(
            path=dev.path,
            name=dev.name or '',
            phys=dev.phys or '',
            vendor=dev.info.vendor,
            product=dev.info.product,
            rel_codes=frozenset(caps.get(ecodes.EV_REL, []))
        )


def enumerate_pointing_devices() -> List[PointerDevice]:
    """
    Enumerate all readable pointing devices.
    Nodes we lack permission for are skipped.
    """
    devices = []
    for path in evdev.list_devices():
        try:
            dev = evdev.InputDevice(path)
        except OSError as e:
            log.debug(f"Skipping {path}: {e}")
            continue
        try:
            device = PointerDevice.from_input_device(dev)
        finally:
            dev.close()
        if device.is_pointing_device:
            devices.append(device)

    return sorted(devices, key=lambda d: d.path)


class Accelerator:
    """
    Reads events from a grabbed source device and writes accelerated
    motion to a uinput clone.

    Relative X/Y counts are buffered until SYN_REPORT, then scaled as one
    frame. Buttons, wheels and everything else pass straight through.
    """

    def __init__(self, source, sink, profile: Profile):
        self._source = source
        self._sink = sink
        self._filter = MotionFilter(profile)
        self._dropping = False
        self._grabbed = False

    @classmethod
    def open(cls, device_path: str, profile: Profile) -> 'Accelerator':
        """Open `device_path`, create its uinput clone and grab it."""
        try:
            source = evdev.InputDevice(device_path)
        except OSError as e:
            raise DeviceError(f"Cannot open {device_path}: {e.strerror or e}")

        try:
            sink = evdev.UInput.from_device(source, name=f"{source.name} (accelerated)")
        except (OSError, evdev.UInputError) as e:
            source.close()
            raise DeviceError(f"Cannot create uinput device for {device_path}: {e}")

        log.info(f"Cloned '{source.name}' ({device_path}) to a uinput device")

        accelerator = cls(source, sink, profile)
        try:
            accelerator.grab()
        except DeviceError:
            accelerator.close()
            raise
        return accelerator

    @property
    def profile(self) -> Profile:
        return self._filter.profile

    def grab(self):
        """Take exclusive access to the source device."""
        try:
            self._source.grab()
        except OSError as e:
            raise DeviceError(f"Cannot grab {self._source.path}: {e.strerror or e}")
        self._grabbed = True
        log.debug(f"Grabbed {self._source.path}")

    def handle_event(self, event):
        """Process one event from the source device."""
        if event.type == ecodes.EV_SYN:
            if event.code == ecodes.SYN_DROPPED:
                log.warning("Got SYN_DROPPED, discarding events until the next report")
                self._dropping = True
                self._filter.drop_frame()
                return
            if self._dropping:
                # Events up to and including this report belong to a lost frame
                if event.code == ecodes.SYN_REPORT:
                    self._dropping = False
                return
            if event.code == ecodes.SYN_REPORT:
                self._end_frame(event)
                return

        if self._dropping:
            return

        if event.type == ecodes.EV_REL and event.code == ecodes.REL_X:
            self._filter.add_x(event.value)
        elif event.type == ecodes.EV_REL and event.code == ecodes.REL_Y:
            self._filter.add_y(event.value)
        else:
            self._sink.write_event(event)

    def _end_frame(self, report):
        frame = self._filter.end_frame(report.timestamp())
        if frame.dx:
            self._sink.write(ecodes.EV_REL, ecodes.REL_X, frame.dx)
        if frame.dy:
            self._sink.write(ecodes.EV_REL, ecodes.REL_Y, frame.dy)
        self._sink.write_event(report)

    def run(self):
        """Blocking event loop. Returns only by exception."""
        log.info(f"Accelerating {self._source.path}: {self.profile}")
        try:
            for event in self._source.read_loop():
                self.handle_event(event)
        except OSError as e:
            raise DeviceGoneError(
                f"Read from {self._source.path} failed (has the device been closed?): {e.strerror or e}"
            )

    def close(self):
        """Release the source device and destroy the clone."""
        if self._grabbed:
            try:
                self._source.ungrab()
            except OSError as e:
                log.debug(f"Ungrab failed: {e}")
            self._grabbed = False
        self._sink.close()
        self._source.close()

    def __enter__(self) -> 'Accelerator':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
