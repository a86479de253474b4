"""Geometry helpers shared by the analyzer, optimizer and cost estimator."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
from shapely.geometry import LineString, MultiPoint, Polygon

Vec3 = tuple[float, float, float]


def as_array(coords: Sequence[Vec3]) -> np.ndarray:
    """Return *coords* as an ``(n, 3)`` float array (``(0, 3)`` when empty)."""
    if len(coords) == 0:
        return np.zeros((0, 3))
    return np.asarray(coords, dtype=float).reshape(-1, 3)


def segment_lengths(coords: np.ndarray) -> np.ndarray:
    """Euclidean length of each consecutive segment of an ``(n, 3)`` array."""
    if len(coords) < 2:
        return np.zeros(0)
    return np.linalg.norm(np.diff(coords, axis=0), axis=1)


def xy_segment_lengths(coords: np.ndarray) -> np.ndarray:
    """Length of each consecutive segment projected on the XY plane."""
    if len(coords) < 2:
        return np.zeros(0)
    return np.linalg.norm(np.diff(coords[:, :2], axis=0), axis=1)


def distance(a: Vec3, b: Vec3) -> float:
    return math.dist(a, b)


def xy_distance(a: Vec3, b: Vec3) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def unit_direction(a: Vec3, b: Vec3) -> Optional[np.ndarray]:
    """Unit vector from *a* to *b*, or None for a zero-length segment."""
    d = np.subtract(b, a, dtype=float)
    n = float(np.linalg.norm(d))
    if n == 0.0:
        return None
    return d / n


def direction_dot(a: Vec3, b: Vec3, c: Vec3) -> Optional[float]:
    """Dot product of the unit directions a->b and b->c (1.0 = straight on)."""
    u = unit_direction(a, b)
    v = unit_direction(b, c)
    if u is None or v is None:
        return None
    return float(np.clip(np.dot(u, v), -1.0, 1.0))


def turn_angle_deg(a: Vec3, b: Vec3, c: Vec3) -> float:
    """Change of direction at *b* in degrees (0 = no turn, 180 = reversal)."""
    dot = direction_dot(a, b, c)
    if dot is None:
        return 0.0
    return math.degrees(math.acos(dot))


def lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    """Point at parameter *t* on the segment a->b."""
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


def xy_footprint(coords: Sequence[Vec3], margin: float = 0.0) -> Polygon:
    """Convex hull of the XY projection of *coords*, grown by *margin*.

    Returns an empty Polygon when fewer than three distinct points span an area
    and *margin* is zero.
    """
    if len(coords) == 0:
        return Polygon()
    hull = MultiPoint([(c[0], c[1]) for c in coords]).convex_hull
    if margin > 0.0:
        hull = hull.buffer(margin)
    if not isinstance(hull, Polygon):
        return Polygon()
    return hull


def xy_segment(a: Vec3, b: Vec3) -> LineString:
    return LineString([(a[0], a[1]), (b[0], b[1])])
