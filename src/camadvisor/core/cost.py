"""Machining cost estimation.

A cost estimate combines machine, labor and overhead time charges with a
setup charge, the share of the tool consumed by wear, and the material
removed.  The total is always the plain sum of those six components.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from ..config.defaults import (
    DEFAULT_MATERIAL_COST,
    DEFAULT_RATES,
    DEFAULT_THRESHOLDS,
    LARGE_TOOL_DIAMETER,
    MATERIAL_WASTE_FACTOR,
    SETUP_MINUTES,
    CostRates,
    Thresholds,
)
from .geometry import xy_segment_lengths
from .material import Material
from .motion import MotionKind, MotionProgram, estimate_motion_time, resolve_kinds
from .operation import Operation, OperationKind
from .tool import Tool, ToolKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostBreakdown:
    machine: float = 0.0
    tool: float = 0.0
    material: float = 0.0
    labor: float = 0.0
    setup: float = 0.0
    overhead: float = 0.0

    @property
    def total(self) -> float:
        return self.machine + self.tool + self.material + self.labor + self.setup + self.overhead


@dataclass(frozen=True)
class ToolUsage:
    """How much of one tool a program consumes."""
    tool_id: str
    usage_time: float        # minutes
    wear_percentage: float   # 0-100
    cost: float


@dataclass(frozen=True)
class CostEstimation:
    """Cost of running one program; times are in minutes."""
    program_id: str
    breakdown: CostBreakdown
    total_cost: float
    rates: CostRates
    machining_time: float
    setup_time: float
    tools_used: tuple[ToolUsage, ...] = ()
    assumptions: dict = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def total_time(self) -> float:
        return self.machining_time + self.setup_time


# ----------------------------------------------------------------------
# Tool price and life
# ----------------------------------------------------------------------

# (base price, price per mm of diameter)
_TOOL_PRICE = {
    ToolKind.END_MILL: (30.0, 2.0),
    ToolKind.BALL_MILL: (35.0, 2.5),
    ToolKind.BULL_NOSE_MILL: (40.0, 2.2),
    ToolKind.FACE_MILL: (50.0, 3.0),
    ToolKind.DRILL: (15.0, 1.5),
}
_DEFAULT_TOOL_PRICE = (25.0, 2.0)

# Cutting life in mm per mm of diameter
_TOOL_LIFE_PER_MM = {
    ToolKind.END_MILL: 300.0,
    ToolKind.BALL_MILL: 250.0,
    ToolKind.BULL_NOSE_MILL: 280.0,
    ToolKind.FACE_MILL: 400.0,
    ToolKind.DRILL: 150.0,
}
_DEFAULT_TOOL_LIFE_PER_MM = 200.0


def _coating_factor(coating: str, altin: float, diamond: float, tin: float) -> float:
    c = coating.lower()
    # AlTiN contains "tin", so it is checked first
    if "altin" in c or "tialn" in c:
        return altin
    if "diamond" in c:
        return diamond
    if "tin" in c or "ticn" in c:
        return tin
    return 1.0


def estimate_tool_price(tool: Tool) -> float:
    """Price of *tool*: its list price, else an estimate from kind, size, material and coating."""
    if tool.price:
        return tool.price
    base, per_mm = _TOOL_PRICE.get(tool.kind, _DEFAULT_TOOL_PRICE)
    price = base + per_mm * tool.diameter
    material = tool.material.lower()
    if "diamond" in material:
        price *= 5.0
    elif "carbide" in material:
        price *= 1.5
    return price * _coating_factor(tool.coating, 1.4, 2.0, 1.2)


def estimate_tool_life(tool: Tool, reference_feed: float) -> float:
    """Expected cutting distance (mm) before the tool is worn out.

    A rated ``lifespan`` (minutes) is converted to distance at
    *reference_feed* (mm/min), or at the tool's max feed rate when
    *reference_feed* is not positive.  Otherwise, or when neither feed is
    known, the life is the per-kind distance per mm of diameter, scaled by
    tool material and coating.
    """
    feed = reference_feed if reference_feed > 0 else (tool.max_feed_rate or 0.0)
    if tool.lifespan and feed > 0:
        return tool.lifespan * feed
    life = _TOOL_LIFE_PER_MM.get(tool.kind, _DEFAULT_TOOL_LIFE_PER_MM) * tool.diameter
    material = tool.material.lower()
    if "diamond" in material:
        life *= 3.0
    elif "carbide" in material:
        life *= 1.5
    elif "hss" in material:
        life *= 0.7
    return life * _coating_factor(tool.coating, 1.8, 2.5, 1.5)


def wear_distances(program: MotionProgram, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> tuple[float, float]:
    """Cutting distance (XY, non-rapid) and plunge depth (mm) of *program*."""
    if len(program.points) < 2:
        return 0.0, 0.0
    coords = program.coordinates()
    kinds = resolve_kinds(program.points, thresholds.inferred_z_step, thresholds.inferred_rapid_xy)
    cutting = np.array([k is not MotionKind.RAPID for k in kinds[1:]])
    xy = xy_segment_lengths(coords)
    dz = np.diff(coords[:, 2])
    plunging = cutting & (dz < -thresholds.inferred_z_step)
    return float(xy[cutting].sum()), float(-dz[plunging].sum())


def wear_percentage(cutting_distance: float, plunge_distance: float, tool_life: float) -> float:
    """Share of tool life used, clamped to [0, 100].  Plunging counts double."""
    if tool_life <= 0:
        return 0.0
    wear = (cutting_distance + 2.0 * plunge_distance) / tool_life * 100.0
    return max(0.0, min(100.0, wear))


def estimate_tool_wear(
    program: MotionProgram,
    tool: Tool,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> float:
    """Percentage of *tool* life consumed by *program*."""
    cutting, plunge = wear_distances(program, thresholds)
    life = estimate_tool_life(tool, program.operation.feed_rate)
    return wear_percentage(cutting, plunge, life)


# ----------------------------------------------------------------------
# Setup and material
# ----------------------------------------------------------------------

_COMPLEX_OPERATIONS = (
    OperationKind.ADAPTIVE_2D,
    OperationKind.ADAPTIVE_3D,
    OperationKind.WATERLINE_3D,
    OperationKind.CONTOUR_3D,
)
_SIMPLE_OPERATIONS = (OperationKind.DRILLING, OperationKind.FACING)


def setup_complexity(operation: Operation, tool: Optional[Tool] = None) -> str:
    if operation.kind in _COMPLEX_OPERATIONS:
        complexity = "complex"
    elif operation.kind in _SIMPLE_OPERATIONS:
        complexity = "simple"
    else:
        complexity = "moderate"
    if complexity == "simple" and tool is not None and tool.diameter > LARGE_TOOL_DIAMETER:
        complexity = "moderate"
    return complexity


def estimate_setup_time(operation: Operation, tool: Optional[Tool] = None) -> float:
    """Setup minutes for *operation*."""
    return SETUP_MINUTES[setup_complexity(operation, tool)]


_REMOVAL_RATIOS = {
    OperationKind.POCKET_2D: 0.6,
    OperationKind.ADAPTIVE_2D: 0.6,
    OperationKind.ADAPTIVE_3D: 0.6,
    OperationKind.CONTOUR_2D: 0.2,
    OperationKind.CONTOUR_3D: 0.2,
    OperationKind.DRILLING: 0.05,
    OperationKind.FACING: 0.1,
}
_DEFAULT_REMOVAL_RATIO = 0.3


def estimate_removed_volume(program: MotionProgram) -> float:
    """Material removed in cm^3: bounding box x removal ratio x waste margin."""
    if not program.points:
        return 0.0
    extents = np.ptp(program.coordinates(), axis=0)
    box_cm3 = float(np.prod(extents)) / 1000.0
    ratio = _REMOVAL_RATIOS.get(program.operation.kind, _DEFAULT_REMOVAL_RATIO)
    return box_cm3 * ratio * MATERIAL_WASTE_FACTOR


def estimate_material_cost(program: MotionProgram, material: Optional[Material]) -> float:
    if material is None or not material.price:
        return DEFAULT_MATERIAL_COST
    return material.price * estimate_removed_volume(program)


# ----------------------------------------------------------------------
# Estimation
# ----------------------------------------------------------------------

def machining_minutes(program: MotionProgram, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> float:
    """Program run time in minutes: its own estimate, else computed from the moves."""
    if program.estimated_time is not None:
        return program.estimated_time / 60.0
    kinds = resolve_kinds(program.points, thresholds.inferred_z_step, thresholds.inferred_rapid_xy)
    seconds = estimate_motion_time(
        program.points, kinds, program.operation.feed_rate, thresholds.rapid_feed_rate,
    )
    return seconds / 60.0


def _assemble(
    program_id: str,
    machining_time: float,
    setup_time: float,
    tool_id: str,
    tool_price: float,
    wear: float,
    material_cost: float,
    rates: CostRates,
    assumptions: dict,
) -> CostEstimation:
    hours = machining_time / 60.0
    tool_cost = tool_price * wear / 100.0
    breakdown = CostBreakdown(
        machine=hours * rates.machine,
        tool=tool_cost,
        material=material_cost,
        labor=hours * rates.labor,
        setup=setup_time / 60.0 * (rates.labor + rates.overhead),
        overhead=hours * rates.overhead,
    )
    return CostEstimation(
        program_id=program_id,
        breakdown=breakdown,
        total_cost=breakdown.total,
        rates=rates,
        machining_time=machining_time,
        setup_time=setup_time,
        tools_used=(ToolUsage(tool_id, machining_time, wear, tool_cost),),
        assumptions=assumptions,
    )


def estimate_cost(
    program: MotionProgram,
    tool: Tool,
    material: Optional[Material] = None,
    rates: Optional[CostRates] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> CostEstimation:
    """Estimate what running *program* with *tool* costs.

    Parameters
    ----------
    rates:
        Hourly machine, labor and overhead rates; defaults apply when None.

    Returns
    -------
    CostEstimation
        ``total_cost`` equals ``breakdown.total`` exactly.
    """
    rates = rates or DEFAULT_RATES
    machining_time = machining_minutes(program, thresholds)
    setup_time = estimate_setup_time(program.operation, tool)
    tool_price = estimate_tool_price(tool)
    wear = estimate_tool_wear(program, tool, thresholds)

    assumptions = {
        "tool_price": tool_price,
        "tool_life_mm": estimate_tool_life(tool, program.operation.feed_rate),
        "setup_complexity": setup_complexity(program.operation, tool),
        "removed_volume_cm3": estimate_removed_volume(program),
        "material_price_known": bool(material is not None and material.price),
    }
    estimation = _assemble(
        program.id, machining_time, setup_time, tool.id, tool_price, wear,
        estimate_material_cost(program, material), rates, assumptions,
    )
    logger.debug(
        "Estimated %s: %.2f %s over %.1f min (wear %.1f%%)",
        program.id, estimation.total_cost, rates.currency, machining_time, wear,
    )
    return estimation


def update_estimation(
    estimation: CostEstimation,
    actual_machining_time: Optional[float] = None,
    actual_tool_wear: Optional[float] = None,
    rates: Optional[CostRates] = None,
) -> CostEstimation:
    """Recompute *estimation* from measured time (minutes) and wear (%).

    Values not given keep their estimated counterparts.  Material cost and
    setup time are carried over.
    """
    rates = rates or estimation.rates
    machining_time = estimation.machining_time if actual_machining_time is None else actual_machining_time
    usage = estimation.tools_used[0] if estimation.tools_used else None
    wear = usage.wear_percentage if usage is not None else 0.0
    if actual_tool_wear is not None:
        wear = max(0.0, min(100.0, actual_tool_wear))
    tool_price = estimation.assumptions.get("tool_price", 0.0)

    assumptions = dict(estimation.assumptions)
    assumptions["updated_from"] = estimation.id
    return _assemble(
        estimation.program_id, machining_time, estimation.setup_time,
        usage.tool_id if usage is not None else "", tool_price, wear,
        estimation.breakdown.material, rates, assumptions,
    )


@dataclass(frozen=True)
class StrategyComparison:
    """Estimates for alternative programs, cheapest first."""
    options: tuple[CostEstimation, ...]
    cost_savings: float
    time_savings: float
    savings_percent: float

    @property
    def best(self) -> Optional[CostEstimation]:
        return self.options[0] if self.options else None


def compare_strategies(
    programs: Sequence[MotionProgram],
    tool: Tool,
    material: Optional[Material] = None,
    rates: Optional[CostRates] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> StrategyComparison:
    """Estimate each program and rank them; savings are best vs most expensive."""
    options = sorted(
        (estimate_cost(p, tool, material, rates, thresholds) for p in programs),
        key=lambda e: e.total_cost,
    )
    if not options:
        return StrategyComparison((), 0.0, 0.0, 0.0)
    best, worst = options[0], options[-1]
    cost_savings = worst.total_cost - best.total_cost
    percent = cost_savings / worst.total_cost * 100.0 if worst.total_cost > 0 else 0.0
    return StrategyComparison(
        options=tuple(options),
        cost_savings=cost_savings,
        time_savings=worst.total_time - best.total_time,
        savings_percent=percent,
    )
