"""Toolpath analysis: movement statistics, defect detection and scoring.

``analyze`` walks the point sequence once for statistics, then runs a list of
independent rule checks that each return zero or more ``Issue`` records.
Recommendations are derived from the issues found, and two 0-100 scores
summarise efficiency and quality.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from ..config.defaults import DEFAULT_THRESHOLDS, Thresholds
from .findings import (
    Improvement,
    Issue,
    IssueKind,
    IssueRule,
    PointRange,
    Recommendation,
    RecommendationKind,
    Severity,
)
from .geometry import direction_dot, distance, segment_lengths, xy_distance, xy_footprint, xy_segment
from .knowledge import safe_max_depth, safe_max_feed_rate, safe_max_stepover
from .material import Material
from .motion import (
    ENTRY_KINDS,
    EXIT_KINDS,
    MotionKind,
    MotionPoint,
    MotionProgram,
    estimate_motion_time,
    resolve_kinds,
)
from .operation import StrategyType
from .tool import Tool

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 100.0

_EFFICIENCY_PENALTIES = {
    IssueKind.INEFFICIENT_MOVEMENT: 2.0,
    IssueKind.UNNECESSARY_AIR_CUTTING: 3.0,
    IssueKind.UNOPTIMIZED_RETRACT: 2.0,
    IssueKind.FEED_RATE_ISSUE: 1.5,
    IssueKind.LONG_TOOL_PATH: 4.0,
}

_QUALITY_PENALTIES = {
    IssueKind.FEED_RATE_ISSUE: 3.0,
    IssueKind.EXCESSIVE_DEPTH: 5.0,
    IssueKind.EXCESSIVE_STEPOVER: 4.0,
    IssueKind.TOOL_ENGAGEMENT_ISSUE: 4.0,
    IssueKind.UNSAFE_ENTRY: 3.0,
    IssueKind.UNSAFE_EXIT: 3.0,
    IssueKind.SURFACE_QUALITY_ISSUE: 6.0,
    IssueKind.RAPID_THROUGH_MATERIAL: 8.0,
}


@dataclass(frozen=True)
class MotionStats:
    """Aggregate movement statistics (mm, mm/min, seconds).

    ``total_distance`` is always ``cutting_distance + rapid_distance``: every
    segment that is not a rapid counts as cutting.
    """
    total_points: int = 0
    total_distance: float = 0.0
    cutting_distance: float = 0.0
    rapid_distance: float = 0.0
    cutting_moves: int = 0
    rapid_moves: int = 0
    estimated_time: float = 0.0
    min_feed_rate: float = 0.0
    max_feed_rate: float = 0.0
    avg_feed_rate: float = 0.0
    max_depth_change: float = 0.0
    stepover: Optional[float] = None

    @property
    def cutting_ratio(self) -> float:
        if self.total_distance <= 0:
            return 0.0
        return self.cutting_distance / self.total_distance


@dataclass(frozen=True)
class ToolpathAnalysis:
    """Result of analysing one motion program."""
    program_id: str
    stats: MotionStats
    issues: tuple[Issue, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    efficiency_score: float = NEUTRAL_SCORE
    quality_score: float = NEUTRAL_SCORE
    kinds: tuple[MotionKind, ...] = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def estimated_time(self) -> float:
        return self.stats.estimated_time

    def issues_of(self, kind: IssueKind) -> list[Issue]:
        return [i for i in self.issues if i.kind is kind]

    def has_issue(self, kind: IssueKind) -> bool:
        return any(i.kind is kind for i in self.issues)


@dataclass(frozen=True)
class _Context:
    program: MotionProgram
    points: tuple[MotionPoint, ...]
    kinds: list[MotionKind]
    lengths: np.ndarray
    tool: Optional[Tool]
    material: Optional[Material]
    thresholds: Thresholds


# ----------------------------------------------------------------------
# Shared predicates
# ----------------------------------------------------------------------

def is_redundant_point(
    prev: MotionPoint,
    curr: MotionPoint,
    nxt: MotionPoint,
    curr_kind: MotionKind,
    next_kind: MotionKind,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """True when *curr* can be dropped without changing the motion.

    The incoming and outgoing segments must share a kind and a similar feed,
    and *curr* must be coincident with a neighbour or lie on a straight line.
    Only cutting and rapid points qualify; plunge, ramp and lead points mark
    pass structure.
    """
    if curr_kind is not next_kind or curr_kind not in (MotionKind.CUTTING, MotionKind.RAPID):
        return False
    f1, f2 = curr.feed_rate, nxt.feed_rate
    if (f1 is None) != (f2 is None):
        return False
    if f1 is not None and f2 is not None and abs(f1 - f2) > thresholds.feed_similarity * max(f1, f2):
        return False
    a, b, c = prev.as_tuple(), curr.as_tuple(), nxt.as_tuple()
    if distance(a, b) < thresholds.coincident_distance or distance(b, c) < thresholds.coincident_distance:
        return True
    dot = direction_dot(a, b, c)
    return dot is not None and dot > thresholds.collinear_dot


def starts_unsafely(kinds: list[MotionKind]) -> bool:
    """Program begins cutting without a rapid, approach or lead-in."""
    if len(kinds) < 2:
        return False
    return kinds[0] not in ENTRY_KINDS and kinds[1] not in ENTRY_KINDS


def ends_unsafely(kinds: list[MotionKind]) -> bool:
    """Program stops while still cutting, with no lead-out or retract."""
    if len(kinds) < 2:
        return False
    return (kinds[-1] not in EXIT_KINDS
            and kinds[-2] not in (MotionKind.RAPID, MotionKind.LEAD_OUT))


def _runs(indices: list[int]) -> list[PointRange]:
    """Collapse sorted indices into inclusive ranges of consecutive values."""
    ranges: list[PointRange] = []
    for i in indices:
        if ranges and ranges[-1].end == i - 1:
            ranges[-1] = PointRange(ranges[-1].start, i)
        else:
            ranges.append(PointRange(i, i))
    return ranges


def _count(r: PointRange) -> int:
    return r.end - r.start + 1


# ----------------------------------------------------------------------
# Statistics
# ----------------------------------------------------------------------

def compute_stats(ctx: _Context) -> MotionStats:
    points, kinds, lengths = ctx.points, ctx.kinds, ctx.lengths
    op = ctx.program.operation
    if len(points) < 2:
        return MotionStats(total_points=len(points), stepover=op.stepover)

    rapid_mask = np.array([k is MotionKind.RAPID for k in kinds[1:]])
    rapid_distance = float(lengths[rapid_mask].sum())
    cutting_distance = float(lengths[~rapid_mask].sum())

    dz = np.abs(np.diff(ctx.program.coordinates()[:, 2]))
    cut_dz = dz[~rapid_mask]
    max_depth = float(cut_dz.max()) if len(cut_dz) else 0.0

    feeds = [p.feed_rate for p, k in zip(points, kinds)
             if k is not MotionKind.RAPID and p.feed_rate is not None]
    if not feeds:
        feeds = [op.feed_rate]

    if ctx.program.estimated_time is not None:
        seconds = ctx.program.estimated_time
    else:
        seconds = estimate_motion_time(
            points, kinds, op.feed_rate, ctx.thresholds.rapid_feed_rate,
        )

    return MotionStats(
        total_points=len(points),
        total_distance=cutting_distance + rapid_distance,
        cutting_distance=cutting_distance,
        rapid_distance=rapid_distance,
        cutting_moves=int((~rapid_mask).sum()),
        rapid_moves=int(rapid_mask.sum()),
        estimated_time=seconds,
        min_feed_rate=float(min(feeds)),
        max_feed_rate=float(max(feeds)),
        avg_feed_rate=float(sum(feeds) / len(feeds)),
        max_depth_change=max_depth,
        stepover=op.stepover,
    )


# ----------------------------------------------------------------------
# Rule checks
# ----------------------------------------------------------------------

def check_redundant_movement(ctx: _Context) -> list[Issue]:
    """Removable points on straight runs, chains of tiny segments, mergeable rapids."""
    points, kinds, lengths, thr = ctx.points, ctx.kinds, ctx.lengths, ctx.thresholds
    issues: list[Issue] = []

    removable: list[int] = []
    short: list[int] = []
    for i in range(1, len(points) - 1):
        if kinds[i] is MotionKind.RAPID or kinds[i + 1] is MotionKind.RAPID:
            continue
        if is_redundant_point(points[i - 1], points[i], points[i + 1], kinds[i], kinds[i + 1], thr):
            removable.append(i)
        elif lengths[i - 1] < thr.short_segment and lengths[i] < thr.short_segment:
            short.append(i)

    for r in _runs(removable):
        issues.append(Issue(
            IssueKind.INEFFICIENT_MOVEMENT, IssueRule.REDUNDANT_POINT, Severity.LOW,
            f"{_count(r)} point(s) lie on a straight run and can be removed",
            PointRange(r.start - 1, r.end + 1),
            "Remove intermediate collinear points",
        ))
    for r in _runs(short):
        issues.append(Issue(
            IssueKind.INEFFICIENT_MOVEMENT, IssueRule.SHORT_SEGMENTS, Severity.LOW,
            f"{_count(r) + 1} consecutive segments shorter than {thr.short_segment:g} mm",
            PointRange(r.start - 1, r.end + 1),
            "Simplify the path with a coarser tolerance",
        ))

    mergeable = [
        i for i in range(1, len(points) - 1)
        if kinds[i - 1] is kinds[i] is kinds[i + 1] is MotionKind.RAPID
        and points[i - 1].z == points[i].z == points[i + 1].z
    ]
    for r in _runs(mergeable):
        issues.append(Issue(
            IssueKind.INEFFICIENT_MOVEMENT, IssueRule.RAPID_SEQUENCE, Severity.MEDIUM,
            f"{_count(r) + 2} consecutive rapid moves at the same height",
            PointRange(r.start - 1, r.end + 1),
            "Merge the rapid moves into one traverse",
        ))
    return issues


def check_feed_rates(ctx: _Context) -> list[Issue]:
    points, kinds = ctx.points, ctx.kinds
    max_safe = safe_max_feed_rate(ctx.tool, ctx.material, ctx.thresholds.default_max_feed_rate)
    min_efficient = ctx.program.operation.feed_rate * 0.5
    issues: list[Issue] = []

    for i, (p, k) in enumerate(zip(points, kinds)):
        if k is MotionKind.RAPID or p.feed_rate is None:
            continue
        if p.feed_rate > max_safe:
            issues.append(Issue(
                IssueKind.FEED_RATE_ISSUE, IssueRule.FEED_ABOVE_MAX, Severity.HIGH,
                f"Feed rate {p.feed_rate:g} mm/min exceeds safe maximum {max_safe:g} mm/min",
                PointRange(i, i),
                f"Reduce the feed rate to {max_safe:g} mm/min or less",
                measured=p.feed_rate, limit=max_safe,
            ))
        elif k is MotionKind.CUTTING and p.feed_rate < min_efficient:
            issues.append(Issue(
                IssueKind.FEED_RATE_ISSUE, IssueRule.FEED_BELOW_MIN, Severity.LOW,
                f"Feed rate {p.feed_rate:g} mm/min is below the efficient minimum {min_efficient:g} mm/min",
                PointRange(i, i),
                f"Raise the feed rate to at least {min_efficient:g} mm/min",
                measured=p.feed_rate, limit=min_efficient,
            ))

    ratio = ctx.thresholds.feed_jump_ratio
    for i in range(1, len(points)):
        if kinds[i - 1] is not MotionKind.CUTTING or kinds[i] is not MotionKind.CUTTING:
            continue
        f1, f2 = points[i - 1].feed_rate, points[i].feed_rate
        if f1 and f2 and abs(f2 - f1) > ratio * f1:
            issues.append(Issue(
                IssueKind.FEED_RATE_ISSUE, IssueRule.FEED_JUMP, Severity.MEDIUM,
                f"Feed rate jumps from {f1:g} to {f2:g} mm/min",
                PointRange(i - 1, i),
                "Ramp the feed rate between consecutive moves",
                measured=f2, limit=f1,
            ))
    return issues


def check_depth_and_stepover(ctx: _Context) -> list[Issue]:
    points, kinds = ctx.points, ctx.kinds
    max_depth = safe_max_depth(ctx.tool, ctx.material, ctx.thresholds.default_max_depth)
    issues: list[Issue] = []

    for i in range(1, len(points)):
        if kinds[i - 1] is MotionKind.RAPID or kinds[i] is MotionKind.RAPID:
            continue
        depth = points[i - 1].z - points[i].z
        if depth > max_depth:
            issues.append(Issue(
                IssueKind.EXCESSIVE_DEPTH, IssueRule.DEPTH_ABOVE_MAX, Severity.HIGH,
                f"Depth of cut {depth:.3f} mm exceeds safe maximum {max_depth:.3f} mm",
                PointRange(i - 1, i),
                "Split the plunge into several passes",
                measured=depth, limit=max_depth,
            ))

    stepover = ctx.program.operation.stepover
    max_stepover = safe_max_stepover(ctx.tool, ctx.material)
    if stepover is not None and max_stepover is not None and stepover > max_stepover:
        issues.append(Issue(
            IssueKind.EXCESSIVE_STEPOVER, IssueRule.STEPOVER_ABOVE_MAX, Severity.MEDIUM,
            f"Stepover {stepover:g} mm exceeds safe maximum {max_stepover:.3f} mm",
            None,
            f"Reduce the stepover to {max_stepover:.3f} mm",
            measured=stepover, limit=max_stepover,
        ))
    return issues


def check_approach_and_retract(ctx: _Context) -> list[Issue]:
    points, kinds, thr = ctx.points, ctx.kinds, ctx.thresholds
    issues: list[Issue] = []

    for i, (p, k) in enumerate(zip(points, kinds)):
        if k is MotionKind.RETRACT and p.z > thr.excessive_retract_height:
            issues.append(Issue(
                IssueKind.UNOPTIMIZED_RETRACT, IssueRule.HIGH_RETRACT, Severity.LOW,
                f"Retract to Z{p.z:g} is higher than needed",
                PointRange(i, i),
                f"Retract to about {thr.safe_retract_height:g} mm above the stock",
                measured=p.z, limit=thr.safe_retract_height,
            ))

    for i in range(1, len(points)):
        if kinds[i - 1] not in (MotionKind.RAPID, MotionKind.RETRACT):
            continue
        if kinds[i] is MotionKind.CUTTING and abs(points[i].z - points[i - 1].z) < thr.inferred_z_step:
            issues.append(Issue(
                IssueKind.UNOPTIMIZED_APPROACH, IssueRule.FLAT_APPROACH, Severity.MEDIUM,
                "Cutting starts directly after a rapid move at the same height",
                PointRange(i - 1, i),
                "Add an approach or lead-in move",
            ))
    return issues


def check_entry_exit(ctx: _Context) -> list[Issue]:
    kinds, n = ctx.kinds, len(ctx.kinds)
    issues: list[Issue] = []
    if starts_unsafely(kinds):
        issues.append(Issue(
            IssueKind.UNSAFE_ENTRY, IssueRule.CUTTING_ENTRY, Severity.MEDIUM,
            "Program starts directly with a cutting move",
            PointRange(0, 1),
            "Add an approach or lead-in move before cutting",
        ))
    if ends_unsafely(kinds):
        issues.append(Issue(
            IssueKind.UNSAFE_EXIT, IssueRule.CUTTING_EXIT, Severity.MEDIUM,
            "Program ends directly on a cutting move",
            PointRange(n - 2, n - 1),
            "Add a lead-out and retract after the last cut",
        ))
    return issues


def check_air_cutting(ctx: _Context) -> list[Issue]:
    points, kinds, thr = ctx.points, ctx.kinds, ctx.thresholds
    issues: list[Issue] = []
    for i in range(1, len(points)):
        if kinds[i - 1] is MotionKind.RAPID or kinds[i] is not MotionKind.CUTTING:
            continue
        p1, p2 = points[i - 1], points[i]
        if p1.z <= thr.stock_surface_z or p2.z <= thr.stock_surface_z:
            continue
        span = xy_distance(p1.as_tuple(), p2.as_tuple())
        if span > thr.air_cut_min_xy:
            issues.append(Issue(
                IssueKind.UNNECESSARY_AIR_CUTTING, IssueRule.AIR_CUT, Severity.LOW,
                f"Cutting move of {span:.1f} mm above the stock surface",
                PointRange(i - 1, i),
                "Convert the move to a rapid",
                measured=span, limit=thr.air_cut_min_xy,
            ))
    return issues


def check_rapids_through_material(ctx: _Context) -> list[Issue]:
    """Rapid moves below the stock surface that cross the cut area."""
    points, kinds, thr = ctx.points, ctx.kinds, ctx.thresholds
    below = [
        i for i in range(1, len(points))
        if kinds[i] is MotionKind.RAPID
        and min(points[i - 1].z, points[i].z) < thr.stock_surface_z
    ]
    if not below:
        return []

    margin = ctx.tool.radius if ctx.tool is not None else thr.coincident_distance
    footprint = xy_footprint(
        [p.as_tuple() for p, k in zip(points, kinds) if k is not MotionKind.RAPID],
        margin,
    )
    if footprint.is_empty:
        return []

    issues: list[Issue] = []
    for i in below:
        if xy_segment(points[i - 1].as_tuple(), points[i].as_tuple()).intersects(footprint):
            issues.append(Issue(
                IssueKind.RAPID_THROUGH_MATERIAL, IssueRule.RAPID_BELOW_SURFACE, Severity.CRITICAL,
                "Rapid move below the stock surface crosses the machined area",
                PointRange(i - 1, i),
                "Retract above the stock before the rapid move",
                measured=min(points[i - 1].z, points[i].z), limit=thr.stock_surface_z,
            ))
    return issues


RULES: tuple[Callable[[_Context], list[Issue]], ...] = (
    check_redundant_movement,
    check_feed_rates,
    check_depth_and_stepover,
    check_approach_and_retract,
    check_entry_exit,
    check_air_cutting,
    check_rapids_through_material,
)


# ----------------------------------------------------------------------
# Recommendations and scores
# ----------------------------------------------------------------------

def _by_rule(issues: list[Issue], rule: IssueRule) -> list[Issue]:
    return [i for i in issues if i.rule is rule]


def build_recommendations(issues: list[Issue], program: MotionProgram) -> list[Recommendation]:
    recs: list[Recommendation] = []

    too_fast = _by_rule(issues, IssueRule.FEED_ABOVE_MAX)
    if too_fast:
        recs.append(Recommendation(
            RecommendationKind.FEED_RATE,
            f"Reduce feed rates on {len(too_fast)} point(s) to the safe maximum",
            current_value=max(i.measured for i in too_fast),
            recommended_value=too_fast[0].limit,
            improvement=Improvement(time=-5.0, quality=15.0, tool_life=25.0),
            confidence=0.9,
        ))
    too_slow = _by_rule(issues, IssueRule.FEED_BELOW_MIN)
    if too_slow:
        recs.append(Recommendation(
            RecommendationKind.FEED_RATE,
            f"Raise feed rates on {len(too_slow)} point(s) to improve cycle time",
            current_value=min(i.measured for i in too_slow),
            recommended_value=too_slow[0].limit,
            improvement=Improvement(time=15.0, cost=10.0),
            confidence=0.8,
        ))
    if _by_rule(issues, IssueRule.FEED_JUMP):
        recs.append(Recommendation(
            RecommendationKind.FEED_RATE,
            "Smooth abrupt feed rate changes between consecutive moves",
            improvement=Improvement(quality=10.0, tool_life=10.0),
            confidence=0.7,
        ))

    deep = _by_rule(issues, IssueRule.DEPTH_ABOVE_MAX)
    if deep:
        recs.append(Recommendation(
            RecommendationKind.DEPTH_OF_CUT,
            "Split deep cuts into multiple passes",
            current_value=max(i.measured for i in deep),
            recommended_value=deep[0].limit,
            improvement=Improvement(time=-10.0, quality=15.0, tool_life=30.0),
            confidence=0.85,
        ))
    wide = _by_rule(issues, IssueRule.STEPOVER_ABOVE_MAX)
    if wide:
        recs.append(Recommendation(
            RecommendationKind.STEPOVER,
            "Reduce the stepover to the tool's safe limit",
            current_value=wide[0].measured,
            recommended_value=wide[0].limit,
            improvement=Improvement(time=-10.0, quality=20.0, tool_life=15.0),
            confidence=0.85,
        ))

    if _by_rule(issues, IssueRule.CUTTING_ENTRY) or _by_rule(issues, IssueRule.FLAT_APPROACH):
        recs.append(Recommendation(
            RecommendationKind.APPROACH,
            "Enter the material with a ramp or lead-in instead of a direct cut",
            improvement=Improvement(quality=10.0, tool_life=20.0),
            confidence=0.8,
        ))
    if _by_rule(issues, IssueRule.CUTTING_EXIT):
        recs.append(Recommendation(
            RecommendationKind.APPROACH,
            "Leave the material with a lead-out followed by a retract",
            improvement=Improvement(quality=5.0, tool_life=10.0),
            confidence=0.75,
        ))

    high = _by_rule(issues, IssueRule.HIGH_RETRACT)
    if high:
        recs.append(Recommendation(
            RecommendationKind.RETRACT,
            "Lower retract heights to a safe clearance plane",
            current_value=max(i.measured for i in high),
            recommended_value=high[0].limit,
            improvement=Improvement(time=5.0, cost=3.0),
            confidence=0.85,
        ))
    if _by_rule(issues, IssueRule.RAPID_BELOW_SURFACE):
        recs.append(Recommendation(
            RecommendationKind.RETRACT,
            "Retract above the stock surface before rapid moves",
            improvement=Improvement(quality=20.0, tool_life=30.0),
            confidence=0.9,
        ))

    wasted = [i for i in issues if i.kind in (IssueKind.INEFFICIENT_MOVEMENT,
                                               IssueKind.UNNECESSARY_AIR_CUTTING)]
    if wasted:
        recs.append(Recommendation(
            RecommendationKind.STRATEGY,
            "Remove redundant points and convert air cuts to rapid moves",
            improvement=Improvement(time=10.0, cost=5.0),
            confidence=0.75,
        ))

    if program.operation.kind.strategy is StrategyType.ROUGHING and len(program.points) >= 2:
        recs.append(Recommendation(
            RecommendationKind.STRATEGY,
            "Follow this roughing operation with a finishing pass",
            improvement=Improvement(time=-20.0, quality=30.0),
            confidence=0.7,
        ))
    return recs


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def efficiency_score(issues: list[Issue], stats: MotionStats) -> float:
    if stats.total_distance <= 0:
        return NEUTRAL_SCORE
    score = 100.0 - sum(_EFFICIENCY_PENALTIES.get(i.kind, 0.0) for i in issues)
    score += stats.cutting_ratio * 10.0
    return _clamp(score)


def quality_score(
    issues: list[Issue],
    stats: MotionStats,
    program: MotionProgram,
    material: Optional[Material],
) -> float:
    if stats.total_distance <= 0:
        return NEUTRAL_SCORE
    score = 100.0 - sum(_QUALITY_PENALTIES.get(i.kind, 0.0) for i in issues)

    strategy = program.operation.kind.strategy
    if strategy is StrategyType.FINISHING:
        score += 5.0
    elif strategy is StrategyType.ROUGHING:
        score -= 5.0

    if material is not None:
        if material.kind.is_soft:
            score += 5.0
        elif material.kind.is_hard:
            score -= 5.0
    return _clamp(score)


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def analyze(
    program: MotionProgram,
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> ToolpathAnalysis:
    """Compute statistics, issues, recommendations and scores for *program*.

    Parameters
    ----------
    program:
        The motion program; it is not modified.
    tool, material:
        Optional metadata used to size safe limits.  Without them generic
        limits from *thresholds* apply.
    thresholds:
        Detection thresholds; override to tune the rule checks.

    Returns
    -------
    ToolpathAnalysis
        Programs with fewer than two points yield zero statistics, no
        issues and neutral scores.
    """
    points = program.points
    kinds = resolve_kinds(points, thresholds.inferred_z_step, thresholds.inferred_rapid_xy)
    ctx = _Context(
        program=program,
        points=points,
        kinds=kinds,
        lengths=segment_lengths(program.coordinates()),
        tool=tool,
        material=material,
        thresholds=thresholds,
    )
    stats = compute_stats(ctx)

    issues: list[Issue] = []
    if len(points) >= 2:
        for rule in RULES:
            issues.extend(rule(ctx))

    recs = build_recommendations(issues, program)
    analysis = ToolpathAnalysis(
        program_id=program.id,
        stats=stats,
        issues=tuple(issues),
        recommendations=tuple(recs),
        efficiency_score=efficiency_score(issues, stats),
        quality_score=quality_score(issues, stats, program, material),
        kinds=tuple(kinds),
    )
    logger.debug(
        "Analyzed %s: %d points, %.1f mm, %d issues, efficiency %.1f, quality %.1f",
        program.id, stats.total_points, stats.total_distance, len(issues),
        analysis.efficiency_score, analysis.quality_score,
    )
    return analysis
