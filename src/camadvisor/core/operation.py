"""Machining operation parameter containers.

An Operation describes how a motion program was planned: the strategy kind
and its nominal feeds, speeds and engagement.  Analyzer and optimizer use it
for defaults (feed rate) and for classifying roughing vs finishing work.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StrategyType(Enum):
    ROUGHING = "roughing"
    FINISHING = "finishing"


class OperationKind(Enum):
    CONTOUR_2D = "2d_contour"
    POCKET_2D = "2d_pocket"
    ADAPTIVE_2D = "2d_adaptive"
    ADAPTIVE_3D = "3d_adaptive"
    PARALLEL_3D = "3d_parallel"
    CONTOUR_3D = "3d_contour"
    SCALLOP_3D = "3d_scallop"
    WATERLINE_3D = "3d_waterline"
    DRILLING = "drilling"
    BORING = "boring"
    REAMING = "reaming"
    TAPPING = "tapping"
    FACING = "facing"
    CHAMFERING = "chamfering"
    ENGRAVING = "engraving"
    THREAD_MILLING = "thread_milling"
    CUSTOM = "custom"

    @property
    def strategy(self) -> Optional[StrategyType]:
        """Roughing for adaptive/pocket clearing, finishing for contour/parallel."""
        if "adaptive" in self.value or "pocket" in self.value:
            return StrategyType.ROUGHING
        if "contour" in self.value or "parallel" in self.value:
            return StrategyType.FINISHING
        return None


class CoolantMode(Enum):
    NONE = "none"
    FLOOD = "flood"
    MIST = "mist"
    AIR_BLAST = "air_blast"
    THROUGH_TOOL = "through_tool"


class CuttingDirection(Enum):
    CONVENTIONAL = "conventional"
    CLIMB = "climb"


@dataclass(frozen=True)
class Operation:
    """Nominal parameters for a single machining operation (mm, mm/min, RPM)."""

    kind: OperationKind = OperationKind.CUSTOM
    name: str = ""
    feed_rate: float = 1000.0
    spindle_speed: float = 10000.0

    # Radial / axial engagement
    stepover: Optional[float] = None
    stepdown: Optional[float] = None

    coolant: CoolantMode = CoolantMode.FLOOD
    direction: CuttingDirection = CuttingDirection.CLIMB
    tolerance: float = 0.01
