"""
Sensitivity curve and per-frame motion filter.

The curve is linear in pointer speed (counts per millisecond):

    speed < offset:  sens_mult
    otherwise:       sens_mult * min(1 + accel * (speed - offset), cap)
"""

import math
from dataclasses import dataclass
from typing import Tuple

from .config import Profile

# Shortest frame interval used for the speed estimate (8 kHz polling)
MIN_FRAME_MS = 0.125


def factor(sens_mult: float, accel: float, cap: float, offset: float, speed: float) -> float:
    """Sensitivity multiplier for a given pointer speed."""
    if speed < offset:
        return sens_mult
    return sens_mult * min(accel * (speed - offset) + 1.0, cap)


def round_half_away(value: float) -> int:
    """Round to nearest, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass
class Frame:
    """Result of one input frame."""
    dx: int
    dy: int
    speed: float
    sensitivity: float


class MotionFilter:
    """
    Accumulates relative motion between SYN_REPORTs and scales it.

    Whatever is lost to rounding carries into the next frame, so slow
    movements still add up to whole counts.
    """

    def __init__(self, profile: Profile):
        self.profile = profile
        self._x = 0.0
        self._y = 0.0
        self._moved_x = False
        self._moved_y = False
        self._carry_x = 0.0
        self._carry_y = 0.0
        self._last_frame = 0.0

    @property
    def carry(self) -> Tuple[float, float]:
        return self._carry_x, self._carry_y

    def add_x(self, value: int):
        self._x += value
        self._moved_x = True

    def add_y(self, value: int):
        self._y += value
        self._moved_y = True

    def end_frame(self, timestamp: float) -> Frame:
        """
        Close the current frame at `timestamp` (seconds) and return the motion
        to emit.

        The carry only joins an axis that moved in this frame, so button and
        wheel reports never produce motion.
        """
        elapsed_ms = max((timestamp - self._last_frame) * 1000.0, MIN_FRAME_MS)

        x = self._x + self._carry_x if self._moved_x else 0.0
        y = self._y + self._carry_y if self._moved_y else 0.0
        speed = math.hypot(x, y) / elapsed_ms

        p = self.profile
        sensitivity = factor(p.sens_mult, p.accel, p.cap, p.offset, speed)
        x *= sensitivity
        y *= sensitivity

        dx = round_half_away(x)
        dy = round_half_away(y)
        if self._moved_x:
            self._carry_x = x - dx
        if self._moved_y:
            self._carry_y = y - dy

        self.drop_frame()
        self._last_frame = timestamp

        return Frame(dx=dx, dy=dy, speed=speed, sensitivity=sensitivity)

    def drop_frame(self):
        """Forget motion gathered since the last report (after SYN_DROPPED)."""
        self._x = 0.0
        self._y = 0.0
        self._moved_x = False
        self._moved_y = False

    def reset(self):
        """Clear everything, including the rounding carry."""
        self.drop_frame()
        self._carry_x = 0.0
        self._carry_y = 0.0
        self._last_frame = 0.0
