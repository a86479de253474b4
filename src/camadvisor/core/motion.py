"""Motion model: typed tool positions and the programs built from them."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

import numpy as np

from .geometry import as_array, xy_distance
from .operation import Operation


class MotionKind(Enum):
    """Kind of motion segment ending at a point."""
    RAPID = "rapid"          # G0, no cutting
    CUTTING = "cutting"      # G1 at cutting feed
    PLUNGE = "plunge"        # straight descent into material
    RETRACT = "retract"      # pull out of material
    APPROACH = "approach"
    LEAD_IN = "lead-in"
    LEAD_OUT = "lead-out"
    RAMP = "ramp"


# Kinds that count as a safe way to start or leave a cut
ENTRY_KINDS = (MotionKind.RAPID, MotionKind.APPROACH, MotionKind.LEAD_IN)
EXIT_KINDS = (MotionKind.RAPID, MotionKind.LEAD_OUT, MotionKind.RETRACT)


@dataclass(frozen=True)
class MotionPoint:
    """A single position the tool tip passes through.

    ``kind`` None means untagged; analysis infers it from the geometry.
    """
    x: float
    y: float
    z: float
    kind: Optional[MotionKind] = None
    feed_rate: Optional[float] = None  # None → operation default
    spindle_speed: Optional[float] = None
    tool_id: Optional[str] = None

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def moved(self, x: float, y: float, z: float, **changes: Any) -> MotionPoint:
        return replace(self, x=x, y=y, z=z, **changes)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> MotionPoint:
        """Build a point from an input record.

        Accepts ``feedRate``/``feed_rate``, ``spindleSpeed``/``spindle_speed``,
        ``toolId``/``tool_id`` and ``kind``/``type``.

        Raises
        ------
        ValueError:
            If x, y or z is missing or not a finite number, or the kind is unknown.
        """
        coords = []
        for axis in ("x", "y", "z"):
            if axis not in record or record[axis] is None:
                raise ValueError(f"Motion record missing required field {axis!r}")
            coords.append(_number(record[axis], axis))

        kind_value = record.get("kind", record.get("type"))
        kind = None
        if kind_value is not None:
            try:
                kind = MotionKind(kind_value)
            except ValueError:
                raise ValueError(f"Unknown motion kind: {kind_value!r}") from None

        feed = _first(record, "feed_rate", "feedRate")
        spindle = _first(record, "spindle_speed", "spindleSpeed")
        tool_id = _first(record, "tool_id", "toolId")
        return cls(
            *coords,
            kind=kind,
            feed_rate=None if feed is None else _number(feed, "feed_rate"),
            spindle_speed=None if spindle is None else _number(spindle, "spindle_speed"),
            tool_id=None if tool_id is None else str(tool_id),
        )


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if record.get(k) is not None:
            return record[k]
    return None


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Field {name!r} must be a number, got {value!r}")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Field {name!r} must be a number, got {value!r}") from None
    if not math.isfinite(v):
        raise ValueError(f"Field {name!r} must be finite, got {value!r}")
    return v


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class MotionProgram:
    """An ordered, immutable sequence of motion points for one operation."""
    points: tuple[MotionPoint, ...] = ()
    operation: Operation = field(default_factory=Operation)
    tool_id: Optional[str] = None
    name: str = "Untitled"
    id: str = field(default_factory=_new_id)
    estimated_time: Optional[float] = None   # seconds
    estimated_cost: Optional[float] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.points, tuple):
            object.__setattr__(self, "points", tuple(self.points))

    @property
    def total_points(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def coordinates(self) -> np.ndarray:
        """Point positions as an ``(n, 3)`` array."""
        return as_array([p.as_tuple() for p in self.points])

    def derive(self, points: Iterable[MotionPoint], **changes: Any) -> MotionProgram:
        """Copy of this program with new points and a fresh identifier."""
        return replace(self, points=tuple(points), id=_new_id(), **changes)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        operation: Optional[Operation] = None,
        **kwargs: Any,
    ) -> MotionProgram:
        """Build a program from input records, validating each one.

        Raises
        ------
        ValueError:
            If any record is malformed; the message names its index.
        """
        points = []
        for i, rec in enumerate(records):
            if not isinstance(rec, Mapping):
                raise ValueError(f"Motion record {i} is not a mapping")
            try:
                points.append(MotionPoint.from_record(rec))
            except ValueError as exc:
                raise ValueError(f"Motion record {i}: {exc}") from None
        return cls(points=tuple(points), operation=operation or Operation(), **kwargs)


def infer_kind(prev: MotionPoint, curr: MotionPoint, z_step: float, rapid_xy: float) -> MotionKind:
    """Guess the kind of the untagged segment *prev* -> *curr*."""
    dz = curr.z - prev.z
    if dz > z_step:
        return MotionKind.RETRACT
    if dz < -z_step:
        return MotionKind.PLUNGE
    if xy_distance(prev.as_tuple(), curr.as_tuple()) > rapid_xy:
        return MotionKind.RAPID
    return MotionKind.CUTTING


def resolve_kinds(
    points: tuple[MotionPoint, ...] | list[MotionPoint],
    z_step: float,
    rapid_xy: float,
) -> list[MotionKind]:
    """Kind of every point: its tag, else inferred from the incoming segment.

    An untagged first point resolves to cutting.  The kind of point *i* is the
    kind of the segment ending at it.
    """
    kinds: list[MotionKind] = []
    for i, p in enumerate(points):
        if p.kind is not None:
            kinds.append(p.kind)
        elif i == 0:
            kinds.append(MotionKind.CUTTING)
        else:
            kinds.append(infer_kind(points[i - 1], p, z_step, rapid_xy))
    return kinds


def estimate_motion_time(
    points: tuple[MotionPoint, ...] | list[MotionPoint],
    kinds: list[MotionKind],
    default_feed: float,
    rapid_feed: float,
) -> float:
    """Seconds needed to traverse *points*.

    Rapid segments run at *rapid_feed*; others at the destination feed, the
    origin feed, or *default_feed*, whichever is set first.  Segments with no
    positive feed contribute nothing.
    """
    coords = as_array([p.as_tuple() for p in points])
    lengths = np.linalg.norm(np.diff(coords, axis=0), axis=1) if len(coords) > 1 else []
    minutes = 0.0
    for i, length in enumerate(lengths, start=1):
        p1, p2 = points[i - 1], points[i]
        if kinds[i] is MotionKind.RAPID:
            feed = rapid_feed
        else:
            feed = p2.feed_rate or p1.feed_rate or default_feed
        if feed and feed > 0:
            minutes += float(length) / feed
    return minutes * 60.0
