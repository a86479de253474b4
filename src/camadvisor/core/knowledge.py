"""Tool and material knowledge base.

Static lookup tables and small scoring functions mapping material and tool
attributes to safe cutting limits, feed policies, advisory text and
tool/material compatibility.  Everything here is a pure function of its
arguments.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional

from .material import Material, MaterialKind
from .motion import MotionKind
from .operation import CoolantMode, Operation, OperationKind, StrategyType
from .tool import Tool


class FeedPolicy(Enum):
    """Feed-rate policy used by an optimization goal."""
    TIME = "time"
    QUALITY = "quality"
    TOOL_LIFE = "tool_life"
    COST = "cost"


def machinability_factor(material: Optional[Material]) -> float:
    """Machinability index as a multiplier (1.0 when unknown)."""
    if material is None or not material.machinability:
        return 1.0
    return material.machinability / 100.0


# ----------------------------------------------------------------------
# Safe limits
# ----------------------------------------------------------------------

def safe_max_feed_rate(
    tool: Optional[Tool],
    material: Optional[Material],
    default: float = 5000.0,
) -> float:
    """Highest feed (mm/min) considered safe for *tool* in *material*."""
    limit = (tool.max_feed_rate if tool is not None else None) or default
    limit *= machinability_factor(material)
    if material is not None and material.kind.is_hard:
        limit *= 0.7
    return limit


def safe_max_depth(
    tool: Optional[Tool],
    material: Optional[Material],
    default: float = 3.0,
) -> float:
    """Largest single-pass depth of cut (mm)."""
    depth = None
    if tool is not None:
        depth = tool.max_cutting_depth or tool.diameter * 0.5
    depth = depth or default
    if material is not None:
        if material.kind is MaterialKind.ALUMINUM:
            depth *= 1.2
        elif material.kind.is_hard:
            depth *= 0.6
    return depth


def tool_life_max_depth(
    tool: Optional[Tool],
    material: Optional[Material],
    default: float = 2.0,
) -> float:
    """Conservative depth of cut (mm) that favours tool life over throughput."""
    depth = None
    if tool is not None:
        if tool.max_cutting_depth:
            depth = tool.max_cutting_depth * 0.7
        else:
            depth = tool.diameter * 0.3
    depth = depth or default
    if material is not None and material.kind.is_hard:
        depth *= 0.5
    return depth


def safe_max_stepover(tool: Optional[Tool], material: Optional[Material]) -> Optional[float]:
    """Largest lateral stepover (mm), or None without a tool to size it."""
    if tool is None:
        return None
    stepover = tool.max_stepover or tool.diameter * 0.4
    if not stepover:
        return None
    if material is not None and material.kind.is_hard:
        stepover *= 0.7
    return stepover


# ----------------------------------------------------------------------
# Feed policies
# ----------------------------------------------------------------------

# (fraction of tool max feed, fallback mm/min, per-material multipliers)
_POLICY_BASE = {
    FeedPolicy.TIME: (1.0, 3000.0, {
        MaterialKind.ALUMINUM: 0.8,
        MaterialKind.STAINLESS_STEEL: 0.4,
        MaterialKind.TITANIUM: 0.4,
        MaterialKind.STEEL: 0.6,
        MaterialKind.PLASTIC: 1.2,
        MaterialKind.WOOD: 1.2,
    }),
    FeedPolicy.QUALITY: (0.6, 1800.0, {
        MaterialKind.ALUMINUM: 0.7,
        MaterialKind.STAINLESS_STEEL: 0.5,
        MaterialKind.TITANIUM: 0.5,
        MaterialKind.PLASTIC: 0.9,
        MaterialKind.WOOD: 0.9,
    }),
    FeedPolicy.TOOL_LIFE: (0.7, 2000.0, {
        MaterialKind.ALUMINUM: 0.8,
        MaterialKind.STAINLESS_STEEL: 0.5,
        MaterialKind.TITANIUM: 0.5,
    }),
}

# Feed multipliers per segment kind; kinds not listed run at the policy feed
KIND_FEED_FACTORS = {
    FeedPolicy.TIME: {
        MotionKind.PLUNGE: 0.3,
        MotionKind.LEAD_IN: 0.7,
        MotionKind.LEAD_OUT: 0.7,
    },
    FeedPolicy.QUALITY: {
        MotionKind.PLUNGE: 0.3,
        MotionKind.LEAD_IN: 0.6,
        MotionKind.LEAD_OUT: 0.6,
    },
    FeedPolicy.TOOL_LIFE: {
        MotionKind.PLUNGE: 0.3,
        MotionKind.LEAD_IN: 0.6,
        MotionKind.LEAD_OUT: 0.6,
        MotionKind.APPROACH: 0.5,
    },
    FeedPolicy.COST: {
        MotionKind.PLUNGE: 0.4,
        MotionKind.LEAD_IN: 0.7,
        MotionKind.LEAD_OUT: 0.7,
        MotionKind.APPROACH: 0.6,
    },
}


def policy_feed_rate(
    policy: FeedPolicy,
    tool: Optional[Tool],
    material: Optional[Material],
) -> float:
    """Target cutting feed (mm/min) for *policy*.

    The cost policy is the mean of the time and tool-life policies.
    """
    if policy is FeedPolicy.COST:
        return (policy_feed_rate(FeedPolicy.TIME, tool, material)
                + policy_feed_rate(FeedPolicy.TOOL_LIFE, tool, material)) / 2.0

    fraction, fallback, multipliers = _POLICY_BASE[policy]
    if tool is not None and tool.max_feed_rate:
        feed = tool.max_feed_rate * fraction
    else:
        feed = fallback
    if material is not None:
        feed *= multipliers.get(material.kind, 1.0)
    return feed * machinability_factor(material)


def kind_feed_factor(policy: FeedPolicy, kind: MotionKind) -> float:
    return KIND_FEED_FACTORS[policy].get(kind, 1.0)


# ----------------------------------------------------------------------
# Advisory text
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class MaterialAdvice:
    """A block of machining guidance."""
    category: str          # "general", "hardness", "machinability", "operation"
    description: str
    points: tuple[str, ...]
    importance: str = "medium"


_GENERAL_ADVICE = {
    MaterialKind.ALUMINUM: MaterialAdvice(
        "general",
        "Aluminum machines easily but forms burrs and sticks to cutting edges",
        (
            "Use lubricant or coolant to prevent built-up edge",
            "Keep cutting speeds high to limit burr formation",
            "Prefer 2-3 flute end mills",
            "Use plenty of coolant to evacuate chips",
        ),
        "high",
    ),
    MaterialKind.STEEL: MaterialAdvice(
        "general",
        "Steel needs strategies that manage hardness and heat",
        (
            "Use moderate cutting speeds",
            "Use plenty of coolant to control heat",
            "Prefer TiN or TiAlN coated tools",
            "Use more flutes to spread the load",
            "Trade depth of cut for a larger stepover",
        ),
        "high",
    ),
    MaterialKind.STAINLESS_STEEL: MaterialAdvice(
        "general",
        "Stainless steel is hard and conducts heat poorly",
        (
            "Lower cutting speed and raise chip load to avoid work hardening",
            "Use tools with positive rake angles",
            "Keep coolant flowing to control heat",
            "Avoid dwelling in the cut",
            "Prefer AlTiN or ZrN coated tools",
        ),
        "critical",
    ),
    MaterialKind.TITANIUM: MaterialAdvice(
        "general",
        "Titanium is reactive and conducts heat poorly",
        (
            "Run at 30-60% of the cutting speed used for steel",
            "Keep chip load up to avoid work hardening",
            "Use high-pressure coolant where available",
            "Avoid interrupting the cut",
            "Prefer bull nose mills for roughing",
        ),
        "critical",
    ),
    MaterialKind.PLASTIC: MaterialAdvice(
        "general",
        "Plastics must be cut without melting",
        (
            "Use high cutting speeds with moderate feeds",
            "Prefer tools designed for plastics",
            "Cool with compressed air rather than liquid",
            "Evacuate chips so they are not re-cut",
        ),
        "medium",
    ),
    MaterialKind.WOOD: MaterialAdvice(
        "general",
        "Wood produces fine dust and is prone to tear-out",
        (
            "Use very high cutting speeds",
            "Use tools with geometry made for wood",
            "Run dust extraction",
            "Plan passes with the grain direction in mind",
        ),
        "medium",
    ),
    MaterialKind.COMPOSITE: MaterialAdvice(
        "general",
        "Composites are abrasive and delaminate easily",
        (
            "Use diamond coated carbide tools",
            "Keep cutting speeds high and feeds moderate",
            "Avoid overheating the matrix",
            "Support the part to prevent vibration",
        ),
        "high",
    ),
}

_GENERIC_ADVICE = MaterialAdvice(
    "general",
    "General machining guidance",
    (
        "Select tools suited to the material",
        "Use coolant appropriate to the heat generated",
        "Tune cutting parameters with test cuts on scrap",
    ),
)


def material_guidance(material: Material) -> MaterialAdvice:
    """General advice block for the material kind."""
    return _GENERAL_ADVICE.get(material.kind, _GENERIC_ADVICE)


def hardness_advice(hardness: float) -> list[str]:
    """Advice for a hardness value in HRC."""
    if hardness < 20:
        return [
            "Soft material: use tools with positive rake angles",
            "Raise cutting speed to improve surface finish",
            "Use coolant to prevent burrs",
        ]
    if hardness < 35:
        return [
            "Medium hardness: balance cutting speed and feed",
            "Use carbide or quality HSS tools",
            "Use coolant to manage heat",
        ]
    if hardness < 50:
        return [
            "Hard material: reduce cutting speed by 30-40%",
            "Use carbide tools coated with TiAlN or AlCrN",
            "Increase setup rigidity",
            "Consider trochoidal strategies",
        ]
    return [
        "Very hard material: reduce cutting speed by 50-60%",
        "Use coated carbide or ceramic tools",
        "Reduce depth of cut and add passes",
        "Consider EDM for complex geometry",
    ]


def machinability_advice(machinability: float) -> list[str]:
    """Advice for a machinability index (0-100)."""
    if machinability < 30:
        return [
            "Very poor machinability: cut speed by 60% and feed by 50%",
            "Use tools made for difficult materials",
            "Remove little material per pass",
            "Consider EDM or waterjet",
        ]
    if machinability < 50:
        return [
            "Poor machinability: cut speed by 40% and feed by 30%",
            "Use carbide tools with advanced coatings",
            "Check tool wear often",
            "Use high-pressure coolant",
        ]
    if machinability < 70:
        return [
            "Average machinability: cut speed by 20% and feed by 10%",
            "Use standard coolant",
            "Monitor tool wear regularly",
        ]
    return [
        "Good machinability: standard or slightly raised parameters",
        "Gain throughput by optimizing toolpaths",
    ]


_HARD_KINDS = (MaterialKind.STAINLESS_STEEL, MaterialKind.TITANIUM)

_OPERATION_TIPS = {
    (StrategyType.ROUGHING, MaterialKind.ALUMINUM): (
        "Use trochoidal paths with high feed",
        "Keep radial engagement at 15-20% of tool diameter",
    ),
    (StrategyType.ROUGHING, _HARD_KINDS): (
        "Reduce spindle speed by 40-50% compared to mild steel",
        "Keep radial engagement at 10-15% of tool diameter",
        "Use strategies that keep tool load constant",
    ),
    (StrategyType.ROUGHING, MaterialKind.PLASTIC): (
        "Use single or double flute tools made for plastics",
        "Keep feeds high so the tool cuts instead of melting",
    ),
    (StrategyType.FINISHING, MaterialKind.ALUMINUM): (
        "Use high cutting speed for a bright finish",
        "Reduce stepover to 5-10% of tool diameter",
    ),
    (StrategyType.FINISHING, _HARD_KINDS): (
        "Use coated tools with positive geometry",
        "Hold a constant feed to avoid work hardening",
        "Use ball mills for 3D surfaces",
    ),
    (StrategyType.FINISHING, MaterialKind.PLASTIC): (
        "Use polished tools with high rake angles",
        "Finish with a light pass at high speed",
    ),
}

_DRILLING_TIPS = {
    MaterialKind.ALUMINUM: (
        "Use a 130-140 degree point angle",
        "Use chip-breaking drill cycles",
    ),
    MaterialKind.STAINLESS_STEEL: (
        "Use a 135-140 degree point angle",
        "Peck drill frequently",
    ),
    MaterialKind.TITANIUM: (
        "Use a 135-140 degree point angle",
        "Peck drill frequently",
    ),
    MaterialKind.PLASTIC: (
        "Use plastic drills with a 60-90 degree point angle",
        "Clear chips with air",
    ),
}


def operation_advice(material: Material, operation: Operation) -> list[str]:
    """Tips specific to running *operation* on *material*."""
    tips: list[str] = []
    strategy = operation.kind.strategy
    if operation.kind is OperationKind.SCALLOP_3D:
        strategy = StrategyType.FINISHING
    for (tip_strategy, kinds), lines in _OPERATION_TIPS.items():
        if tip_strategy is not strategy:
            continue
        if material.kind is kinds or (isinstance(kinds, tuple) and material.kind in kinds):
            tips.extend(lines)
    if operation.kind in (OperationKind.DRILLING, OperationKind.BORING):
        tips.extend(_DRILLING_TIPS.get(material.kind, ()))
    return tips


@dataclass(frozen=True)
class MaterialIssue:
    """A machining problem commonly seen with a material."""
    title: str
    description: str
    solutions: tuple[str, ...]
    severity: str = "medium"


_COMMON_ISSUES = {
    MaterialKind.ALUMINUM: (
        MaterialIssue(
            "Built-up edge",
            "Aluminum sticks to cutting edges, hurting finish and tool life",
            ("Use TiB2 or ZrN coated tools", "Use coolant made for aluminum"),
        ),
        MaterialIssue(
            "Burr formation",
            "Edges are left with burrs",
            ("Use sharp tools with positive rake", "Add a light finishing pass"),
            "low",
        ),
    ),
    MaterialKind.STAINLESS_STEEL: (
        MaterialIssue(
            "Heat build-up",
            "Poor thermal conductivity concentrates heat at the cutting edge",
            ("Use high-pressure coolant", "Reduce cutting speed"),
            "high",
        ),
        MaterialIssue(
            "Work hardening",
            "The surface hardens while it is being cut",
            ("Keep chip thickness up", "Avoid dwelling in the cut"),
            "high",
        ),
    ),
    MaterialKind.PLASTIC: (
        MaterialIssue(
            "Melting",
            "Cutting heat melts the material",
            ("Raise feed per tooth", "Cool with compressed air"),
            "high",
        ),
    ),
    MaterialKind.WOOD: (
        MaterialIssue(
            "Grain tear-out",
            "Fibres tear along the grain",
            ("Cut with the grain", "Finish at high speed and low feed"),
        ),
    ),
    MaterialKind.COMPOSITE: (
        MaterialIssue(
            "Delamination",
            "Layers separate during cutting",
            ("Use compression cutters", "Support the part fully"),
            "high",
        ),
    ),
}
_COMMON_ISSUES[MaterialKind.TITANIUM] = _COMMON_ISSUES[MaterialKind.STAINLESS_STEEL] + (
    MaterialIssue(
        "Rapid tool wear",
        "High strength and abrasiveness wear tools quickly",
        ("Schedule preventive tool changes", "Monitor wear during the job"),
        "high",
    ),
)


def common_issues(material: Material) -> list[MaterialIssue]:
    """Problems typically met with *material*, including hardness/machinability flags."""
    issues = list(_COMMON_ISSUES.get(material.kind, ()))
    if material.hardness is not None and material.hardness > 45:
        issues.append(MaterialIssue(
            "High hardness",
            f"Hardness of {material.hardness:g} HRC requires special tooling",
            ("Use coated carbide tools", "Change tools more often"),
            "high",
        ))
    if material.machinability is not None and material.machinability < 40:
        issues.append(MaterialIssue(
            "Low machinability",
            f"Machinability index of {material.machinability:g}% makes cutting difficult",
            ("Reduce cutting parameters", "Use conservative strategies"),
            "high",
        ))
    return issues


# ----------------------------------------------------------------------
# Cutting parameters
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class CuttingParameters:
    """Starting cutting data.

    ``cutting_speed`` is in m/min, ``feed_per_tooth`` and ``depth_of_cut`` in
    mm, ``stepover`` as a fraction of tool diameter.
    """
    cutting_speed: float
    feed_per_tooth: float
    depth_of_cut: float
    stepover: float
    coolant: CoolantMode = CoolantMode.FLOOD
    notes: str = ""


_BASE_PARAMETERS = {
    MaterialKind.ALUMINUM: CuttingParameters(300.0, 0.1, 1.0, 0.5),
    MaterialKind.STEEL: CuttingParameters(100.0, 0.08, 0.8, 0.4),
    MaterialKind.STAINLESS_STEEL: CuttingParameters(60.0, 0.06, 0.5, 0.3),
    MaterialKind.TITANIUM: CuttingParameters(40.0, 0.05, 0.4, 0.2),
    MaterialKind.PLASTIC: CuttingParameters(200.0, 0.15, 1.5, 0.6, CoolantMode.AIR_BLAST),
    MaterialKind.WOOD: CuttingParameters(400.0, 0.2, 3.0, 0.7, CoolantMode.NONE),
    MaterialKind.COMPOSITE: CuttingParameters(150.0, 0.1, 0.8, 0.4, CoolantMode.MIST),
}
_GENERIC_PARAMETERS = CuttingParameters(
    100.0, 0.1, 1.0, 0.4, notes="Generic values; tune with test cuts",
)


def optimal_parameters(
    material: Material,
    operation: Optional[Operation] = None,
) -> CuttingParameters:
    """Starting cutting data for *material*, adjusted for *operation* if given.

    Hardness scales every value by ``max(0.3, 1 - hardness/100)``;
    machinability scales cutting speed and depth.
    """
    p = _BASE_PARAMETERS.get(material.kind, _GENERIC_PARAMETERS)

    if material.hardness:
        h = max(0.3, 1.0 - material.hardness / 100.0)
        p = replace(
            p,
            cutting_speed=p.cutting_speed * h,
            feed_per_tooth=p.feed_per_tooth * h,
            depth_of_cut=p.depth_of_cut * h,
            stepover=p.stepover * h,
        )
    if material.machinability:
        m = material.machinability / 100.0
        p = replace(p, cutting_speed=p.cutting_speed * m, depth_of_cut=p.depth_of_cut * m)

    if operation is None:
        return p

    strategy = operation.kind.strategy
    if operation.kind is OperationKind.SCALLOP_3D:
        strategy = StrategyType.FINISHING
    if strategy is StrategyType.ROUGHING:
        # Adaptive clearing keeps radial engagement low
        return replace(
            p,
            cutting_speed=p.cutting_speed * 0.8,
            feed_per_tooth=p.feed_per_tooth * 1.2,
            depth_of_cut=p.depth_of_cut * 1.5,
            stepover=p.stepover * 1.2 * 0.5,
            notes="Keep radial engagement constant",
        )
    if strategy is StrategyType.FINISHING:
        return replace(
            p,
            cutting_speed=p.cutting_speed * 1.2,
            feed_per_tooth=p.feed_per_tooth * 0.8,
            depth_of_cut=p.depth_of_cut * 0.5,
            stepover=p.stepover * 0.5,
            notes="Optimize for surface finish",
        )
    if operation.kind is OperationKind.DRILLING:
        return replace(
            p,
            cutting_speed=p.cutting_speed * 0.7,
            stepover=1.0,
            notes="Use chip-breaking drill cycles",
        )
    return p


def spindle_speed_for(tool: Tool, cutting_speed: float) -> float:
    """Spindle RPM giving *cutting_speed* (m/min) at the tool periphery."""
    if tool.diameter <= 0:
        return 0.0
    rpm = 1000.0 * cutting_speed / (math.pi * tool.diameter)
    if tool.max_spindle_speed:
        rpm = min(rpm, tool.max_spindle_speed)
    return rpm


def feed_rate_for(tool: Tool, rpm: float, feed_per_tooth: float) -> float:
    """Table feed (mm/min) from spindle speed and chip load."""
    feed = rpm * feed_per_tooth * max(tool.flute_count, 1)
    if tool.max_feed_rate:
        feed = min(feed, tool.max_feed_rate)
    return feed


# ----------------------------------------------------------------------
# Tool compatibility
# ----------------------------------------------------------------------

IDEAL_TOOL_MATERIALS = {
    MaterialKind.ALUMINUM: ("uncoated carbide", "hss", "diamond", "tib2", "zrn"),
    MaterialKind.STEEL: ("coated carbide", "tin", "ticn", "tialn", "hss-co"),
    MaterialKind.STAINLESS_STEEL: ("coated carbide", "altin", "tialn", "zrn", "ceramic"),
    MaterialKind.TITANIUM: ("coated carbide", "altin", "tialn", "tib2"),
    MaterialKind.PLASTIC: ("uncoated carbide", "diamond", "hss", "dlc"),
    MaterialKind.WOOD: ("carbide", "diamond", "hss", "steel"),
    MaterialKind.COMPOSITE: ("diamond", "diamond coated carbide", "tialn"),
    MaterialKind.BRASS: ("uncoated carbide", "hss", "tin"),
    MaterialKind.COPPER: ("uncoated carbide", "hss", "diamond"),
    MaterialKind.FOAM: ("uncoated carbide", "hss", "steel"),
}

IDEAL_COATINGS = {
    MaterialKind.ALUMINUM: ("tib2", "zrn", "diamond", "uncoated"),
    MaterialKind.STEEL: ("tin", "ticn", "tialn", "altin"),
    MaterialKind.STAINLESS_STEEL: ("altin", "tialn", "zrn", "ticn"),
    MaterialKind.TITANIUM: ("altin", "tialn", "tib2"),
    MaterialKind.PLASTIC: ("dlc", "uncoated", "diamond"),
    MaterialKind.WOOD: ("uncoated", "diamond"),
    MaterialKind.COMPOSITE: ("diamond", "tialn", "altin"),
}

COMPATIBLE_SCORE = 0.6
RECOMMENDED_SCORE = 0.7


def compatibility_score(tool: Tool, material: Material) -> float:
    """Score in [0, 1] for how well *tool* suits *material*.

    Starts at 0.5; adds 0.3 when the tool lists the material kind as
    recommended, 0.2 when the tool material matches an ideal one and 0.2 when
    the coating does.
    """
    score = 0.5
    if material.kind in tool.recommended_materials:
        score += 0.3

    tool_material = tool.material.lower()
    if tool_material and any(
        ideal in tool_material for ideal in IDEAL_TOOL_MATERIALS.get(material.kind, ())
    ):
        score += 0.2

    coating = tool.coating.lower()
    if coating and any(ideal in coating for ideal in IDEAL_COATINGS.get(material.kind, ())):
        score += 0.2

    return max(0.0, min(1.0, score))


def find_compatible_tools(
    material: Material,
    tools: Iterable[Tool],
    minimum: float = COMPATIBLE_SCORE,
) -> list[tuple[Tool, float]]:
    """Tools scoring at least *minimum*, best first."""
    scored = [(t, compatibility_score(t, material)) for t in tools]
    scored = [(t, s) for t, s in scored if s >= minimum]
    return sorted(scored, key=lambda ts: (-ts[1], ts[0].id))


def recommend_tools(material: Material, tools: Iterable[Tool]) -> list[Tool]:
    """Tools scoring at or above the recommendation threshold."""
    return [t for t, _ in find_compatible_tools(material, tools, RECOMMENDED_SCORE)]


@dataclass(frozen=True)
class MaterialReport:
    """Everything the knowledge base knows about machining one material."""
    material: Material
    advice: tuple[MaterialAdvice, ...]
    parameters: CuttingParameters
    issues: tuple[MaterialIssue, ...]
    compatible_tools: tuple[tuple[Tool, float], ...] = field(default_factory=tuple)


def analyze_material(
    material: Material,
    tools: Optional[Iterable[Tool]] = None,
    operation: Optional[Operation] = None,
) -> MaterialReport:
    """Collect guidance, cutting data, issues and compatible tools for *material*."""
    advice = [material_guidance(material)]
    if material.hardness:
        advice.append(MaterialAdvice(
            "hardness",
            f"Hardness of {material.hardness:g} HRC",
            tuple(hardness_advice(material.hardness)),
            "high" if material.hardness > 45 else "medium",
        ))
    if material.machinability:
        advice.append(MaterialAdvice(
            "machinability",
            f"Machinability index of {material.machinability:g}%",
            tuple(machinability_advice(material.machinability)),
            "high" if material.machinability < 50 else "medium",
        ))
    if operation is not None:
        tips = operation_advice(material, operation)
        if tips:
            advice.append(MaterialAdvice(
                "operation",
                f"{operation.kind.value} on {material.name}",
                tuple(tips),
                "high",
            ))

    compatible: tuple[tuple[Tool, float], ...] = ()
    if tools is not None:
        compatible = tuple(find_compatible_tools(material, tools))

    return MaterialReport(
        material=material,
        advice=tuple(advice),
        parameters=optimal_parameters(material, operation),
        issues=tuple(common_issues(material)),
        compatible_tools=compatible,
    )
