"""Modal machine state tracked while reading G-code line by line."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.units import Units
from .tokenizer import AXES, FEED_COMMANDS, MOTION_COMMANDS, GCodeLine


@dataclass(frozen=True)
class Move:
    """One straight (or chord-approximated) move produced by a line, in mm."""
    start: tuple[float, float, float]
    end: tuple[float, float, float]
    command: str
    feed_rate: Optional[float]

    @property
    def is_rapid(self) -> bool:
        return self.command == "G0"

    @property
    def is_feed(self) -> bool:
        return self.command in FEED_COMMANDS

    @property
    def length(self) -> float:
        return sum((b - a) ** 2 for a, b in zip(self.start, self.end)) ** 0.5

    @property
    def is_coincident(self) -> bool:
        return self.start == self.end

    @property
    def lowest_z(self) -> float:
        return min(self.start[2], self.end[2])


@dataclass
class MachineState:
    """Position and modal settings; ``apply`` advances it by one line.

    Positions start at the origin and are kept in mm.  Motion, feed rate,
    distance mode and units are modal, as on a real controller.
    """

    position: list = field(default_factory=lambda: [0.0, 0.0, 0.0])
    motion: Optional[str] = None
    feed_rate: Optional[float] = None
    spindle_speed: Optional[float] = None
    units: Units = Units.MM
    absolute: bool = True
    spindle_on: bool = False
    coolant_on: bool = False

    def apply(self, line: GCodeLine) -> Optional[Move]:
        """Update the state from *line*; return the move it makes, if any."""
        for command in line.commands:
            units = Units.from_gcode(command)
            if units is not None:
                self.units = units
            elif command == "G90":
                self.absolute = True
            elif command == "G91":
                self.absolute = False
            elif command in MOTION_COMMANDS:
                self.motion = command
            elif command in ("M3", "M4"):
                self.spindle_on = True
            elif command == "M5":
                self.spindle_on = False
            elif command in ("M7", "M8"):
                self.coolant_on = True
            elif command == "M9":
                self.coolant_on = False
            elif command in ("M2", "M30"):
                self.spindle_on = False
                self.coolant_on = False

        feed = line.get("F")
        if feed is not None:
            self.feed_rate = self.units.to_mm(feed)
        speed = line.get("S")
        if speed is not None:
            self.spindle_speed = speed

        # G53 coordinates are machine coordinates; G4/G10/G28 words are not a move
        if not line.has_axis_words or line.has_command("G4", "G10", "G28", "G53"):
            return None
        if self.motion is None:
            return None

        start = tuple(self.position)
        for i, axis in enumerate(AXES):
            value = line.get(axis)
            if value is None:
                continue
            value = self.units.to_mm(value)
            self.position[i] = value if self.absolute else self.position[i] + value
        return Move(start, tuple(self.position), self.motion, self.feed_rate)
