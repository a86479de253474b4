"""Program unit systems.

Everything inside the engine is in mm; G-code text may be written in either
system and is converted at the edges.
"""

from enum import Enum
from typing import Optional

MM_PER_INCH = 25.4


class Units(Enum):
    """Unit system selected by a G20 or G21 modal word."""

    INCH = "G20"
    MM = "G21"

    @property
    def scale(self) -> float:
        """Millimetres per program unit."""
        return MM_PER_INCH if self is Units.INCH else 1.0

    def to_mm(self, value: float) -> float:
        return value * self.scale

    def from_mm(self, value: float) -> float:
        return value / self.scale

    @property
    def gcode_modal(self) -> str:
        return self.value

    @classmethod
    def from_gcode(cls, command: str) -> Optional["Units"]:
        """Return the unit system selected by *command*, or None for any other word."""
        try:
            return cls(command)
        except ValueError:
            return None
