"""Goal-driven rewriting of G-code text.

``optimize_gcode`` analyzes the text first and returns it untouched when
there is nothing to fix or improve.  Otherwise it runs named stages in a
fixed order: comment removal and formatting always, error fixes when the
analysis found errors, and movement, feed rate, rapid and safety stages
according to the goals.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Union

from ..config.defaults import DEFAULT_THRESHOLDS, ENHANCER_TIMEOUT, Thresholds
from ..core.knowledge import FeedPolicy
from ..core.material import Material
from ..core.optimizer import OptimizationGoal, parse_goals
from ..core.tool import Tool
from ..enhance import Enhancer, enhance_best_effort
from . import transforms
from .analyzer import GCodeAnalysis, analyze_gcode
from .tokenizer import tokenize_lines

logger = logging.getLogger(__name__)

Stage = Callable[[list[str]], list[str]]

_MOVEMENT_GOALS = (OptimizationGoal.TIME, OptimizationGoal.COST)
_FEED_GOALS = (OptimizationGoal.QUALITY, OptimizationGoal.TOOL_LIFE, OptimizationGoal.COST)
_SAFETY_GOALS = (OptimizationGoal.QUALITY, OptimizationGoal.TOOL_LIFE)

_MODERATING_POLICIES = {
    OptimizationGoal.QUALITY: FeedPolicy.QUALITY,
    OptimizationGoal.TOOL_LIFE: FeedPolicy.TOOL_LIFE,
}


def _chain(*steps: Callable) -> Stage:
    """Compose line-level steps, re-tokenizing between them."""
    def run(texts: list[str]) -> list[str]:
        for step in steps:
            texts = step(tokenize_lines(texts))
        return texts
    return run


def _feed_stage(
    goals: list[OptimizationGoal],
    tool: Optional[Tool],
    material: Optional[Material],
) -> Stage:
    ceilings = [
        transforms.feed_ceiling(tool, material, _MODERATING_POLICIES.get(goal))
        for goal in goals if goal in _FEED_GOALS
    ]
    ceilings = [c for c in ceilings if c is not None]
    if not ceilings:
        return _chain(transforms.normalize_feed_words)
    ceiling = min(ceilings)
    return _chain(
        lambda lines: transforms.cap_feed_rates(lines, ceiling),
        transforms.normalize_feed_words,
    )


def select_stages(
    analysis: GCodeAnalysis,
    goals: list[OptimizationGoal],
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
    surface_z: float = 0.0,
) -> list[tuple[str, Stage]]:
    """Named stages to run for *goals*, in execution order."""
    stages = [("remove_comments", _chain(transforms.remove_comments))]
    if analysis.errors:
        stages.append(("fix_errors", _chain(
            transforms.split_multiple_g_commands,
            transforms.add_motion_to_g53,
            lambda lines: transforms.start_spindle_before_cuts(lines, surface_z),
        )))
    if any(g in _MOVEMENT_GOALS for g in goals):
        stages.append(("optimize_movements", _chain(
            transforms.drop_coincident_moves,
            transforms.normalize_feed_words,
        )))
    if any(g in _FEED_GOALS for g in goals):
        stages.append(("optimize_feed_rates", _feed_stage(goals, tool, material)))
    if any(g in _MOVEMENT_GOALS for g in goals):
        stages.append(("optimize_rapids", _chain(transforms.merge_rapids)))
    if any(g in _SAFETY_GOALS for g in goals):
        stages.append(("add_safety", _chain(
            transforms.add_safety_preamble,
            transforms.add_safety_footer,
        )))
    stages.append(("format", _chain(transforms.format_lines)))
    return stages


def optimize_gcode(
    text: str,
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
    goals: Iterable[Union[str, OptimizationGoal]] = ("time",),
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    enhancer: Optional[Enhancer] = None,
    enhancer_timeout: float = ENHANCER_TIMEOUT,
) -> str:
    """Return optimized G-code for *goals*.

    Text with no errors and no recommendations is returned unchanged, so
    optimizing already optimized output is a no-op.  If a stage fails
    unexpectedly the original text is returned.

    Raises
    ------
    ValueError:
        If *text* is not a string, or *goals* is empty or unknown.
    """
    parsed = parse_goals(goals)
    analysis = analyze_gcode(text, tool, material, thresholds)
    if analysis.is_clean:
        logger.debug("G-code has nothing to optimize; returning it unchanged")
        return text

    texts = text.splitlines()
    stages = select_stages(analysis, parsed, tool, material, thresholds.stock_surface_z)
    try:
        for name, stage in stages:
            texts = stage(texts)
            logger.debug("Stage %s: %d lines", name, len(texts))
    except Exception:
        logger.warning("G-code optimization failed; returning the original text", exc_info=True)
        return text

    result = "\n".join(texts) + "\n" if texts else ""
    if enhancer is not None:
        result = enhance_best_effort(
            enhancer, result, ",".join(g.value for g in parsed), enhancer_timeout,
        )
    logger.debug(
        "Optimized G-code for %s: %d -> %d lines",
        [g.value for g in parsed], analysis.stats.total_lines, len(texts),
    )
    return result
