"""Goal-driven toolpath optimization.

``optimize`` analyses a program, then runs one transform stage per requested
goal in the order given.  Each stage takes a point list and returns a new
one; the input program is never modified and the result is a new program
whose metadata points back at the original.

Before the stages run, every point is tagged with its resolved kind and every
non-rapid point after the first carries the feed its incoming segment runs
at.  That keeps stages local: editing one point never changes the feed
another segment inherits.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from ..config.defaults import DEFAULT_THRESHOLDS, ENHANCER_TIMEOUT, Thresholds
from ..enhance import Enhancer, enhance_best_effort
from .analyzer import analyze, ends_unsafely, is_redundant_point, starts_unsafely
from .geometry import lerp, turn_angle_deg, xy_distance
from .knowledge import (
    FeedPolicy,
    kind_feed_factor,
    policy_feed_rate,
    safe_max_depth,
    safe_max_feed_rate,
    tool_life_max_depth,
)
from .material import Material
from .motion import MotionKind, MotionPoint, MotionProgram, resolve_kinds
from .tool import Tool

logger = logging.getLogger(__name__)


class OptimizationGoal(Enum):
    TIME = "time"
    QUALITY = "quality"
    TOOL_LIFE = "tool_life"
    COST = "cost"


@dataclass(frozen=True)
class StageContext:
    tool: Optional[Tool]
    material: Optional[Material]
    thresholds: Thresholds
    default_feed: float

    @property
    def max_feed(self) -> float:
        return safe_max_feed_rate(self.tool, self.material, self.thresholds.default_max_feed_rate)


Points = list[MotionPoint]


def _kinds(points: Points) -> list[MotionKind]:
    return [p.kind or MotionKind.CUTTING for p in points]


def _feed(p: MotionPoint, ctx: StageContext) -> float:
    return p.feed_rate or ctx.default_feed


def prepare_points(program: MotionProgram, thresholds: Thresholds) -> Points:
    """Tag every point with its resolved kind and its segment's effective feed."""
    points = program.points
    kinds = resolve_kinds(points, thresholds.inferred_z_step, thresholds.inferred_rapid_xy)
    default = program.operation.feed_rate
    prepared: Points = []
    for i, (p, k) in enumerate(zip(points, kinds)):
        feed = p.feed_rate
        if k is not MotionKind.RAPID and not feed:
            prev_feed = points[i - 1].feed_rate if i > 0 else None
            feed = prev_feed or default
        prepared.append(replace(p, kind=k, feed_rate=feed))
    return prepared


# ----------------------------------------------------------------------
# Point transforms
# ----------------------------------------------------------------------

_FEED_MODES = ("raise", "lower", "set")


def retune_feeds(points: Points, policy: FeedPolicy, ctx: StageContext, mode: str) -> Points:
    """Move feed rates toward the policy target, never above the safe maximum.

    *mode* ``"raise"`` only speeds points up, ``"lower"`` only slows them
    down and ``"set"`` applies the target outright.  Rapid and retract points
    are left alone.
    """
    if mode not in _FEED_MODES:
        raise ValueError(f"Unknown feed mode {mode!r}")
    base = policy_feed_rate(policy, ctx.tool, ctx.material)
    cap = ctx.max_feed
    out: Points = []
    for p in points:
        if p.kind in (MotionKind.RAPID, MotionKind.RETRACT):
            out.append(p)
            continue
        target = min(base * kind_feed_factor(policy, p.kind), cap)
        current = _feed(p, ctx)
        if mode == "raise":
            target = max(current, target)
        elif mode == "lower":
            target = min(current, target)
        out.append(replace(p, feed_rate=target))
    return out


def convert_air_cuts(points: Points, ctx: StageContext) -> Points:
    """Turn long cutting moves above the stock into rapids."""
    thr = ctx.thresholds
    out = list(points)
    for i in range(1, len(points)):
        p1, p2 = points[i - 1], points[i]
        if p1.kind is MotionKind.RAPID or p2.kind is not MotionKind.CUTTING:
            continue
        if p1.z <= thr.stock_surface_z or p2.z <= thr.stock_surface_z:
            continue
        if xy_distance(p1.as_tuple(), p2.as_tuple()) <= thr.air_cut_convert_xy:
            continue
        if _feed(p2, ctx) > thr.rapid_feed_rate:
            continue
        out[i] = replace(p2, kind=MotionKind.RAPID, feed_rate=None)
    return out


def remove_redundant_points(points: Points, ctx: StageContext) -> Points:
    """Drop points that are coincident or collinear with their neighbours.

    The surviving point keeps the faster of the two feeds so the merged
    segment is never slower than the pair it replaces.
    """
    if len(points) < 3:
        return list(points)
    kept: Points = [points[0]]
    pending = points[1]
    for nxt in points[2:]:
        if is_redundant_point(kept[-1], pending, nxt, pending.kind, nxt.kind, ctx.thresholds):
            if pending.feed_rate is not None and nxt.feed_rate is not None:
                nxt = replace(nxt, feed_rate=max(pending.feed_rate, nxt.feed_rate))
        else:
            kept.append(pending)
        pending = nxt
    kept.append(pending)
    return kept


def cap_retracts(points: Points, ctx: StageContext) -> Points:
    """Lower excessive retracts, and the rapid plane that follows them, to the safe height.

    A retract is only lowered when the move leaving the clearance plane goes
    down to the new height or below, so no segment gets longer.
    """
    safe = ctx.thresholds.safe_retract_height
    out = list(points)
    i = 1
    while i < len(out):
        p = out[i]
        if p.kind is not MotionKind.RETRACT or p.z <= 2.0 * safe:
            i += 1
            continue
        height = max(safe, out[i - 1].z)
        if height >= p.z:
            i += 1
            continue
        j = i + 1
        while j < len(out) and out[j].kind is MotionKind.RAPID and out[j].z == p.z:
            j += 1
        if j < len(out) and out[j].z > height:
            i = j
            continue
        for k in range(i, j):
            out[k] = replace(out[k], z=height)
        i = j
    return out


def merge_rapids(points: Points, ctx: StageContext) -> Points:
    """Collapse runs of rapid moves on one plane above the stock into a single traverse."""
    surface = ctx.thresholds.stock_surface_z
    out: Points = []
    for i, p in enumerate(points):
        if (0 < i < len(points) - 1
                and p.kind is MotionKind.RAPID
                and points[i - 1].kind is MotionKind.RAPID
                and points[i + 1].kind is MotionKind.RAPID
                and points[i - 1].z == p.z == points[i + 1].z
                and p.z > surface):
            continue
        out.append(p)
    return out


def smooth_corners(points: Points, ctx: StageContext, fraction: float = 0.25) -> Points:
    """Blend sharp cutting corners with a short curve.

    Each corner turning more than the threshold is replaced by a quadratic
    blend starting *fraction* of the way back along the incoming segment and
    ending the same fraction along the outgoing one.
    """
    limit = ctx.thresholds.direction_change_deg
    out: Points = []
    for i, p in enumerate(points):
        if not (0 < i < len(points) - 1):
            out.append(p)
            continue
        prev, nxt = points[i - 1], points[i + 1]
        if p.kind is not MotionKind.CUTTING or nxt.kind is not MotionKind.CUTTING:
            out.append(p)
            continue
        a, b, c = prev.as_tuple(), p.as_tuple(), nxt.as_tuple()
        if turn_angle_deg(a, b, c) <= limit:
            out.append(p)
            continue
        start = lerp(b, a, fraction)
        end = lerp(b, c, fraction)
        blend = [start]
        for t in (0.25, 0.5, 0.75):
            # Quadratic Bezier through start, corner, end
            u = 1.0 - t
            blend.append(tuple(u * u * s + 2 * u * t * m + t * t * e
                               for s, m, e in zip(start, b, end)))
        blend.append(end)
        out.extend(p.moved(*q) for q in blend)
    return out


def split_deep_cuts(points: Points, ctx: StageContext, max_depth: float, feed_factor: float) -> Points:
    """Split descending cut segments deeper than *max_depth* into equal passes."""
    if max_depth <= 0:
        return list(points)
    out: Points = []
    for i, p in enumerate(points):
        if i > 0:
            prev = points[i - 1]
            depth = prev.z - p.z
            if (prev.kind is not MotionKind.RAPID and p.kind is not MotionKind.RAPID
                    and depth > max_depth):
                passes = math.ceil(depth / max_depth)
                feed = _feed(p, ctx) * feed_factor
                for k in range(1, passes):
                    out.append(p.moved(
                        *lerp(prev.as_tuple(), p.as_tuple(), k / passes),
                        kind=MotionKind.PLUNGE, feed_rate=feed,
                    ))
        out.append(p)
    return out


# (offset along the first/last segment, height above the point, feed factor)
SINGLE_RAMP = ((0.3, 2.0, 0.7),)
GRADED_RAMP = ((0.6, 4.0, 0.5), (0.3, 2.0, 0.6))
SINGLE_LEAD_OUT = ((0.3, 2.0, 0.7),)
GRADED_LEAD_OUT = ((0.3, 1.0, 0.6), (0.6, 3.0, 0.5))
RETRACT_CLEARANCE = 5.0


def add_entry_exit_ramps(
    points: Points,
    ctx: StageContext,
    entry=SINGLE_RAMP,
    leave=SINGLE_LEAD_OUT,
) -> Points:
    """Prepend approach moves and append lead-out plus retract where cutting starts or ends abruptly."""
    out = list(points)
    kinds = _kinds(out)

    if starts_unsafely(kinds):
        first, second = out[0], out[1]
        dx, dy = second.x - first.x, second.y - first.y
        feed = _feed(first, ctx)
        approach = [
            first.moved(first.x - dx * off, first.y - dy * off, first.z + rise,
                        kind=MotionKind.APPROACH, feed_rate=feed * factor)
            for off, rise, factor in entry
        ]
        out = approach + out

    if ends_unsafely(kinds):
        last, before = out[-1], out[-2]
        dx, dy = last.x - before.x, last.y - before.y
        feed = _feed(last, ctx)
        leads = [
            last.moved(last.x + dx * off, last.y + dy * off, last.z + rise,
                       kind=MotionKind.LEAD_OUT, feed_rate=feed * factor)
            for off, rise, factor in leave
        ]
        final = leads[-1]
        leads.append(final.moved(final.x, final.y, last.z + RETRACT_CLEARANCE,
                                 kind=MotionKind.RETRACT))
        out = out + leads
    return out


def ease_critical_points(points: Points, ctx: StageContext) -> Points:
    """Slow down at sharp turns and steep descents."""
    base = policy_feed_rate(FeedPolicy.TOOL_LIFE, ctx.tool, ctx.material)
    thr = ctx.thresholds
    out = list(points)
    for i in range(1, len(points)):
        p = points[i]
        if p.kind in (MotionKind.RAPID, MotionKind.RETRACT):
            continue
        feed = _feed(p, ctx)
        if i < len(points) - 1 and turn_angle_deg(
            points[i - 1].as_tuple(), p.as_tuple(), points[i + 1].as_tuple()
        ) > thr.direction_change_deg:
            feed = min(feed, base * 0.8)
        if points[i - 1].z - p.z > thr.steep_descent:
            feed = min(feed, base * 0.6)
        out[i] = replace(out[i], feed_rate=feed)
    return out


# ----------------------------------------------------------------------
# Goal stages
# ----------------------------------------------------------------------

def time_stage(points: Points, ctx: StageContext) -> Points:
    points = retune_feeds(points, FeedPolicy.TIME, ctx, "raise")
    points = convert_air_cuts(points, ctx)
    points = remove_redundant_points(points, ctx)
    points = cap_retracts(points, ctx)
    return merge_rapids(points, ctx)


def quality_stage(points: Points, ctx: StageContext) -> Points:
    points = retune_feeds(points, FeedPolicy.QUALITY, ctx, "lower")
    points = smooth_corners(points, ctx)
    max_depth = safe_max_depth(ctx.tool, ctx.material, ctx.thresholds.default_max_depth)
    points = split_deep_cuts(points, ctx, max_depth, 0.8)
    return add_entry_exit_ramps(points, ctx)


def tool_life_stage(points: Points, ctx: StageContext) -> Points:
    points = retune_feeds(points, FeedPolicy.TOOL_LIFE, ctx, "lower")
    points = ease_critical_points(points, ctx)
    points = split_deep_cuts(points, ctx, tool_life_max_depth(ctx.tool, ctx.material), 0.7)
    return add_entry_exit_ramps(points, ctx, GRADED_RAMP, GRADED_LEAD_OUT)


def cost_stage(points: Points, ctx: StageContext) -> Points:
    points = retune_feeds(points, FeedPolicy.COST, ctx, "set")
    points = remove_redundant_points(points, ctx)
    return cap_retracts(points, ctx)


STAGES: dict[OptimizationGoal, Callable[[Points, StageContext], Points]] = {
    OptimizationGoal.TIME: time_stage,
    OptimizationGoal.QUALITY: quality_stage,
    OptimizationGoal.TOOL_LIFE: tool_life_stage,
    OptimizationGoal.COST: cost_stage,
}


def parse_goals(goals: Iterable[Union[str, OptimizationGoal]]) -> list[OptimizationGoal]:
    """Validate *goals*, dropping repeats but keeping first-seen order.

    Raises
    ------
    ValueError:
        If *goals* is empty or names an unknown goal.
    """
    parsed: list[OptimizationGoal] = []
    for g in goals:
        try:
            goal = g if isinstance(g, OptimizationGoal) else OptimizationGoal(g)
        except ValueError:
            raise ValueError(
                f"Unknown optimization goal {g!r}; expected one of "
                + ", ".join(x.value for x in OptimizationGoal)
            ) from None
        if goal not in parsed:
            parsed.append(goal)
    if not parsed:
        raise ValueError("At least one optimization goal is required")
    return parsed


def optimize(
    program: MotionProgram,
    goals: Iterable[Union[str, OptimizationGoal]],
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    enhancer: Optional[Enhancer] = None,
    enhancer_timeout: float = ENHANCER_TIMEOUT,
) -> MotionProgram:
    """Return a new program optimized for *goals*, applied in order.

    Parameters
    ----------
    goals:
        Non-empty sequence of ``"time"``, ``"quality"``, ``"tool_life"`` or
        ``"cost"`` (or ``OptimizationGoal`` members).
    enhancer:
        Optional collaborator run after the deterministic stages; failures
        and timeouts keep the deterministic result.

    Raises
    ------
    ValueError:
        If *goals* is empty or contains an unknown goal.
    """
    parsed = parse_goals(goals)
    before = analyze(program, tool, material, thresholds)

    ctx = StageContext(tool, material, thresholds, program.operation.feed_rate)
    points = prepare_points(program, thresholds)
    for goal in parsed:
        points = STAGES[goal](points, ctx)
        logger.debug("Stage %s: %d points", goal.value, len(points))

    n_before, n_after = len(program.points), len(points)
    reduction = n_before - n_after
    metadata = dict(program.metadata)
    metadata.update({
        "origin_program_id": program.id,
        "optimization_goals": [g.value for g in parsed],
        "optimized_at": datetime.now(timezone.utc).isoformat(),
        "point_reduction": reduction,
        "point_reduction_percent": round(reduction / n_before * 100.0, 2) if n_before else 0.0,
        "issues_before": len(before.issues),
    })
    result = program.derive(
        points,
        name=f"{program.name} (optimized)",
        estimated_time=None,
        estimated_cost=None,
        metadata=metadata,
    )

    if enhancer is not None:
        result = enhance_best_effort(
            enhancer, result, ",".join(g.value for g in parsed), enhancer_timeout,
        )

    logger.debug(
        "Optimized %s -> %s for %s: %d -> %d points",
        program.id, result.id, metadata["optimization_goals"], n_before, n_after,
    )
    return result
