"""Tool position and bounding box tracking for linear moves.

The tracker only knows about four commands:

- ``G0`` / ``G1`` -- linear moves, optionally extruding (``E > 0``)
- ``G90`` / ``G91`` -- absolute / relative positioning

The bounding box encloses every position reached by an extruding move,
plus the start point of the first extruding move after a travel move.
Axes that never saw an extruding move keep the sentinel infinities.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum


def command_code(letter: str, number: int) -> int:
    """Pack a command letter and number into one unsigned 32-bit code.

    Large numbers overlap the letter bits.
    """
    return ((ord(letter) << 16) | number) & 0xFFFF_FFFF


LINEAR_MOVE_CODES = frozenset({command_code("G", 0), command_code("G", 1)})
ABSOLUTE_POSITIONING = command_code("G", 90)
RELATIVE_POSITIONING = command_code("G", 91)

AXES: tuple[str, ...] = ("x", "y", "z")


class PositionMode(Enum):
    """Interpretation of axis values in linear moves."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"


@dataclass
class MotionCommand:
    """One parsed G-code command line.  Unset parameters are ``None``."""

    code: int | None = None
    x: float | None = None
    y: float | None = None
    z: float | None = None
    e: float | None = None

    @property
    def extrudes(self) -> bool:
        return self.e is not None and self.e > 0.0


@dataclass
class BoundingBox:
    """Axis-aligned bounds, initialised to the empty sentinel box."""

    min_x: float = math.inf
    min_y: float = math.inf
    min_z: float = math.inf
    max_x: float = -math.inf
    max_y: float = -math.inf
    max_z: float = -math.inf

    def reset(self) -> None:
        self.min_x = self.min_y = self.min_z = math.inf
        self.max_x = self.max_y = self.max_z = -math.inf

    def include(self, axis: str, value: float) -> None:
        """Widen the bounds of *axis* (``"x"``, ``"y"`` or ``"z"``) to *value*."""
        lo = "min_" + axis
        hi = "max_" + axis
        if getattr(self, lo) > value:
            setattr(self, lo, value)
        if getattr(self, hi) < value:
            setattr(self, hi, value)

    def has_axis(self, axis: str) -> bool:
        """``True`` if at least one value was folded into *axis*."""
        return getattr(self, "min_" + axis) <= getattr(self, "max_" + axis)

    @property
    def is_empty(self) -> bool:
        return not any(self.has_axis(axis) for axis in AXES)


@dataclass
class GeometryTracker:
    """Current position, positioning mode and extrusion bounding box."""

    mode: PositionMode = PositionMode.ABSOLUTE
    x: float | None = None
    y: float | None = None
    z: float | None = None
    extruding: bool = False
    box: BoundingBox = field(default_factory=BoundingBox)
    layer_reset_done: bool = False

    def apply(self, cmd: MotionCommand) -> None:
        """Apply a finished command line to the position and bounds."""
        if cmd.code in LINEAR_MOVE_CODES:
            self._linear_move(cmd)
        elif cmd.code == ABSOLUTE_POSITIONING:
            self.mode = PositionMode.ABSOLUTE
        elif cmd.code == RELATIVE_POSITIONING:
            self.mode = PositionMode.RELATIVE

    def _linear_move(self, cmd: MotionCommand) -> None:
        extrudes = cmd.extrudes
        if extrudes and not self.extruding:
            # Start point of the first extruding move after travel.
            for axis in AXES:
                current = getattr(self, axis)
                if current is not None:
                    self.box.include(axis, current)

        for axis in AXES:
            value = getattr(cmd, axis)
            if value is None:
                continue
            if self.mode is PositionMode.ABSOLUTE:
                setattr(self, axis, value)
            else:
                current = getattr(self, axis)
                # An unknown position stays unknown under relative moves.
                if current is not None:
                    setattr(self, axis, current + value)

        if extrudes:
            for axis in AXES:
                if getattr(cmd, axis) is None:
                    continue
                current = getattr(self, axis)
                if current is not None:
                    self.box.include(axis, current)
            self.extruding = True
        else:
            self.extruding = False

    def layer_change(self) -> None:
        """Drop everything collected before the first layer (priming etc.)."""
        if self.layer_reset_done:
            return
        self.layer_reset_done = True
        self.box.reset()

    def finish(self, first_layer_height: float | None) -> None:
        """Move ``min_z`` down to the nominal z origin of the first layer."""
        if first_layer_height is not None and self.box.min_z < self.box.max_z:
            self.box.min_z -= first_layer_height
