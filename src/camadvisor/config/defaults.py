"""Default thresholds, rates and starter tool/material catalogs.

The thresholds are hand-tuned starting points.  Every value can be
overridden per call (pass a modified ``Thresholds``) or persisted through
``EngineSettings``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.material import Material, MaterialKind, MaterialLibrary
from ..core.tool import Tool, ToolKind, ToolLibrary


@dataclass(frozen=True)
class Thresholds:
    """Geometric and feed thresholds used by analyzer and optimizers (mm, mm/min)."""

    # Feeds
    rapid_feed_rate: float = 5000.0
    default_max_feed_rate: float = 5000.0
    feed_jump_ratio: float = 0.5

    # Segment kind inference for untagged points
    inferred_z_step: float = 0.5
    inferred_rapid_xy: float = 10.0

    # Redundant movement
    collinear_dot: float = 0.999
    short_segment: float = 2.0
    coincident_distance: float = 0.01
    feed_similarity: float = 0.1

    # Air cutting: detection reports above this XY span, conversion above the lower one
    air_cut_min_xy: float = 5.0
    air_cut_convert_xy: float = 3.0
    stock_surface_z: float = 0.0

    # Clearance planes
    safe_retract_height: float = 5.0
    excessive_retract_height: float = 20.0

    direction_change_deg: float = 30.0
    steep_descent: float = 2.0
    default_max_depth: float = 3.0


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True)
class CostRates:
    """Hourly rates used by the cost estimator."""

    machine: float = 50.0
    labor: float = 30.0
    overhead: float = 20.0
    currency: str = "EUR"


DEFAULT_RATES = CostRates()

# Setup minutes per complexity class
SETUP_MINUTES = {
    "simple": 10.0,
    "moderate": 20.0,
    "complex": 45.0,
}
# Tools above this diameter (mm) never count as a simple setup
LARGE_TOOL_DIAMETER = 20.0

# Material cost used when no material price is known
DEFAULT_MATERIAL_COST = 10.0
MATERIAL_WASTE_FACTOR = 1.2

# G-code text simulation
GCODE_DEFAULT_FEED_RATE = 200.0
GCODE_TOOL_CHANGE_SECONDS = 10.0
GCODE_TIME_DERATING = 1.2
GCODE_DEFAULT_SPINDLE_SPEED = 1000.0
GCODE_SAFE_Z = 10.0

# Enhancer timeout (seconds)
ENHANCER_TIMEOUT = 30.0


def build_default_tool_library() -> ToolLibrary:
    """Return a ToolLibrary pre-populated with common metric starter tools."""
    lib = ToolLibrary()

    tools = [
        Tool(
            id="em-10-carbide",
            name="10 mm Flat End Mill 3-flute TiAlN",
            kind=ToolKind.END_MILL,
            diameter=10.0,
            flute_count=3,
            material="carbide",
            coating="TiAlN",
            max_feed_rate=5000.0,
            max_spindle_speed=18000.0,
            max_cutting_depth=5.0,
            max_stepover=4.0,
            price=55.0,
            recommended_materials=(MaterialKind.STEEL, MaterialKind.STAINLESS_STEEL,
                                   MaterialKind.TITANIUM),
        ),
        Tool(
            id="em-6-uncoated",
            name="6 mm Flat End Mill 2-flute uncoated",
            kind=ToolKind.END_MILL,
            diameter=6.0,
            flute_count=2,
            material="uncoated carbide",
            max_feed_rate=4000.0,
            max_spindle_speed=24000.0,
            max_cutting_depth=3.0,
            max_stepover=2.4,
            price=28.0,
            recommended_materials=(MaterialKind.ALUMINUM, MaterialKind.PLASTIC),
        ),
        Tool(
            id="bm-6-carbide",
            name="6 mm Ball Mill 2-flute TiAlN",
            kind=ToolKind.BALL_MILL,
            diameter=6.0,
            flute_count=2,
            material="carbide",
            coating="TiAlN",
            max_feed_rate=3000.0,
            max_spindle_speed=20000.0,
            price=42.0,
        ),
        Tool(
            id="drill-5-hss",
            name="5 mm HSS Twist Drill",
            kind=ToolKind.DRILL,
            diameter=5.0,
            flute_count=2,
            material="hss",
            max_feed_rate=300.0,
            price=8.0,
        ),
    ]

    for t in tools:
        lib.add(t)

    return lib


def build_default_material_library() -> MaterialLibrary:
    """Return a MaterialLibrary with a few common stock materials."""
    lib = MaterialLibrary()

    materials = [
        Material("al-6061", "Aluminum 6061-T6", MaterialKind.ALUMINUM,
                 hardness=15.0, machinability=90.0, density=2.7, price=0.02),
        Material("steel-1045", "Steel 1045", MaterialKind.STEEL,
                 hardness=25.0, machinability=55.0, density=7.85, price=0.015),
        Material("ss-304", "Stainless 304", MaterialKind.STAINLESS_STEEL,
                 hardness=30.0, machinability=40.0, density=8.0, price=0.04),
        Material("ti-6al4v", "Titanium Ti-6Al-4V", MaterialKind.TITANIUM,
                 hardness=36.0, machinability=22.0, density=4.43, price=0.3),
        Material("pom", "Acetal (POM)", MaterialKind.PLASTIC,
                 machinability=95.0, density=1.41, price=0.012),
    ]

    for m in materials:
        lib.add(m)

    return lib
