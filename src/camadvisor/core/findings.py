"""Issues and recommendations reported by analysis.

These are output data, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IssueKind(Enum):
    INEFFICIENT_MOVEMENT = "inefficient_movement"
    POTENTIAL_COLLISION = "potential_collision"
    FEED_RATE_ISSUE = "feed_rate_issue"
    SPINDLE_SPEED_ISSUE = "spindle_speed_issue"
    EXCESSIVE_DEPTH = "excessive_depth"
    EXCESSIVE_STEPOVER = "excessive_stepover"
    TOOL_ENGAGEMENT_ISSUE = "tool_engagement_issue"
    SURFACE_QUALITY_ISSUE = "surface_quality_issue"
    RAPID_THROUGH_MATERIAL = "rapid_through_material"
    UNOPTIMIZED_APPROACH = "unoptimized_approach"
    UNOPTIMIZED_RETRACT = "unoptimized_retract"
    UNNECESSARY_AIR_CUTTING = "unnecessary_air_cutting"
    LONG_TOOL_PATH = "long_tool_path"
    UNSAFE_ENTRY = "unsafe_entry"
    UNSAFE_EXIT = "unsafe_exit"
    CUSTOM = "custom"


class IssueRule(Enum):
    """The check that produced an issue, finer-grained than its kind."""
    REDUNDANT_POINT = "redundant_point"
    SHORT_SEGMENTS = "short_segments"
    RAPID_SEQUENCE = "rapid_sequence"
    FEED_ABOVE_MAX = "feed_above_max"
    FEED_BELOW_MIN = "feed_below_min"
    FEED_JUMP = "feed_jump"
    DEPTH_ABOVE_MAX = "depth_above_max"
    STEPOVER_ABOVE_MAX = "stepover_above_max"
    HIGH_RETRACT = "high_retract"
    FLAT_APPROACH = "flat_approach"
    CUTTING_ENTRY = "cutting_entry"
    CUTTING_EXIT = "cutting_exit"
    AIR_CUT = "air_cut"
    RAPID_BELOW_SURFACE = "rapid_below_surface"


class RecommendationKind(Enum):
    FEED_RATE = "feed_rate"
    SPINDLE_SPEED = "spindle_speed"
    DEPTH_OF_CUT = "depth_of_cut"
    STEPOVER = "stepover"
    TOOL = "tool"
    APPROACH = "approach"
    RETRACT = "retract"
    STRATEGY = "strategy"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PointRange:
    """Inclusive range of point indices an issue refers to."""
    start: int
    end: int


@dataclass(frozen=True)
class Issue:
    """A defect found in a motion program.

    ``measured`` and ``limit`` carry the numbers behind bound checks (feed,
    depth, stepover, height) so that recommendations need not parse text.
    """
    kind: IssueKind
    rule: IssueRule
    severity: Severity
    description: str
    location: Optional[PointRange] = None
    suggested_fix: str = ""
    measured: Optional[float] = None
    limit: Optional[float] = None


@dataclass(frozen=True)
class Improvement:
    """Estimated percentage gains of following a recommendation."""
    time: float = 0.0
    quality: float = 0.0
    tool_life: float = 0.0
    cost: float = 0.0


@dataclass(frozen=True)
class Recommendation:
    kind: RecommendationKind
    description: str
    current_value: Optional[float] = None
    recommended_value: Optional[float] = None
    improvement: Improvement = Improvement()
    confidence: float = 0.5
