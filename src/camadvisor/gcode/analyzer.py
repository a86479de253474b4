"""Analysis of G-code text: statistics, defects, time and optimization potential."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from ..config.defaults import (
    DEFAULT_THRESHOLDS,
    GCODE_DEFAULT_FEED_RATE,
    GCODE_TIME_DERATING,
    GCODE_TOOL_CHANGE_SECONDS,
    Thresholds,
)
from ..core.material import Material
from ..core.tool import Tool
from . import transforms
from .gcode_writer import needs_formatting
from .state import MachineState
from .tokenizer import GCodeLine, tokenize
from .validate import ValidationIssue, validate_gcode

logger = logging.getLogger(__name__)

SAFETY_RULES = ("cutting_without_coolant", "end_with_active_outputs")


class GCodeRecommendationKind(Enum):
    FORMATTING = "formatting"
    MOVEMENT = "movement"
    SETTINGS = "settings"


@dataclass(frozen=True)
class GCodeRecommendation:
    kind: GCodeRecommendationKind
    description: str
    count: int
    confidence: float


@dataclass(frozen=True)
class OptimizationPotential:
    """What the text optimizer could remove or fix."""
    redundant_feed_rates: int = 0
    rapid_feed_rates: int = 0
    removable_lines: int = 0
    coincident_moves: int = 0
    mergeable_rapids: int = 0
    unformatted_lines: int = 0
    feeds_above_limit: int = 0


@dataclass(frozen=True)
class GCodeStats:
    file_size: int  # bytes
    total_lines: int
    non_empty_lines: int
    command_counts: dict
    tool_changes: int
    rapid_distance: float = 0.0
    cutting_distance: float = 0.0
    estimated_time: float = 0.0  # seconds


@dataclass(frozen=True)
class GCodeAnalysis:
    stats: GCodeStats
    issues: tuple[ValidationIssue, ...]
    potential: OptimizationPotential
    recommendations: tuple[GCodeRecommendation, ...]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def estimated_time(self) -> float:
        return self.stats.estimated_time

    @property
    def is_clean(self) -> bool:
        """No errors and nothing left for the optimizer to do."""
        return not self.errors and not self.recommendations


# ----------------------------------------------------------------------
# Simulation
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class SimulationResult:
    time: float  # seconds, derated
    rapid_distance: float
    cutting_distance: float


def simulate(
    lines: Sequence[GCodeLine],
    rapid_feed: float = DEFAULT_THRESHOLDS.rapid_feed_rate,
    default_feed: float = GCODE_DEFAULT_FEED_RATE,
) -> SimulationResult:
    """Walk the program from the origin and integrate move time.

    Arcs count as their chord.  Dwell ``P`` is read as milliseconds and
    each tool change adds a fixed delay.  The sum is derated for
    acceleration.
    """
    state = MachineState()
    minutes = 0.0
    seconds = 0.0
    rapid_distance = cutting_distance = 0.0
    for line in lines:
        move = state.apply(line)
        if line.has_command("G4"):
            seconds += (line.get("P") or 0.0) / 1000.0
        if line.has_command("M6"):
            seconds += GCODE_TOOL_CHANGE_SECONDS
        if move is None:
            continue
        length = move.length
        if move.is_rapid:
            rapid_distance += length
            minutes += length / rapid_feed
        else:
            cutting_distance += length
            feed = move.feed_rate or default_feed
            minutes += length / feed
    total = (minutes * 60.0 + seconds) * GCODE_TIME_DERATING
    return SimulationResult(total, rapid_distance, cutting_distance)


# ----------------------------------------------------------------------
# Statistics and potential
# ----------------------------------------------------------------------

def command_histogram(lines: Sequence[GCodeLine]) -> dict[str, int]:
    """Count of the first G or M command of each line."""
    return dict(Counter(line.command for line in lines if line.command))


def optimization_potential(
    lines: Sequence[GCodeLine],
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
) -> OptimizationPotential:
    redundant, rapid_feeds = transforms.feed_word_counts(lines)
    ceiling = transforms.feed_ceiling(tool, material)
    return OptimizationPotential(
        redundant_feed_rates=redundant,
        rapid_feed_rates=rapid_feeds,
        removable_lines=sum(1 for line in lines if line.is_blank or line.comment),
        coincident_moves=len(transforms.coincident_moves(lines)),
        mergeable_rapids=transforms.mergeable_rapids(lines),
        unformatted_lines=sum(1 for line in lines if needs_formatting(line)),
        feeds_above_limit=transforms.feeds_above(lines, ceiling) if ceiling is not None else 0,
    )


def build_recommendations(
    potential: OptimizationPotential,
    issues: Sequence[ValidationIssue],
) -> list[GCodeRecommendation]:
    """Recommendations the text optimizer can act on."""
    kind = GCodeRecommendationKind
    recs = []
    if potential.removable_lines:
        recs.append(GCodeRecommendation(
            kind.FORMATTING, "Remove comments and blank lines to reduce file size",
            potential.removable_lines, 1.0,
        ))
    if potential.unformatted_lines:
        recs.append(GCodeRecommendation(
            kind.FORMATTING, "Normalize word spacing and command numbers",
            potential.unformatted_lines, 0.8,
        ))
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        recs.append(GCodeRecommendation(
            kind.FORMATTING, f"Fix {len(errors)} error(s) that could stop the program",
            len(errors), 1.0,
        ))
    feed_words = potential.redundant_feed_rates + potential.rapid_feed_rates
    if feed_words:
        recs.append(GCodeRecommendation(
            kind.MOVEMENT, "Remove redundant feed rates and feed rates on rapid moves",
            feed_words, 0.9,
        ))
    if potential.coincident_moves:
        recs.append(GCodeRecommendation(
            kind.MOVEMENT, "Remove moves to the current position",
            potential.coincident_moves, 0.85,
        ))
    if potential.mergeable_rapids:
        recs.append(GCodeRecommendation(
            kind.MOVEMENT, "Combine rapid moves with the Z retract that follows them",
            potential.mergeable_rapids, 0.8,
        ))
    safety = [i for i in issues if i.rule in SAFETY_RULES]
    if safety:
        recs.append(GCodeRecommendation(
            kind.SETTINGS, "Add spindle and coolant start/stop sequences",
            len(safety), 0.9,
        ))
    if potential.feeds_above_limit:
        recs.append(GCodeRecommendation(
            kind.SETTINGS, "Lower feed rates above the safe maximum for this tool and material",
            potential.feeds_above_limit, 0.85,
        ))
    return recs


def analyze_gcode(
    text: str,
    tool: Optional[Tool] = None,
    material: Optional[Material] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> GCodeAnalysis:
    """Analyze G-code *text*.  Raises ValueError if *text* is not a string."""
    lines = tokenize(text)
    result = validate_gcode(lines, thresholds.stock_surface_z)
    sim = simulate(lines, thresholds.rapid_feed_rate)
    stats = GCodeStats(
        file_size=len(text.encode("utf-8")),
        total_lines=len(lines),
        non_empty_lines=sum(1 for line in lines if not line.is_blank),
        command_counts=command_histogram(lines),
        tool_changes=sum(1 for line in lines if line.has_command("M6")),
        rapid_distance=sim.rapid_distance,
        cutting_distance=sim.cutting_distance,
        estimated_time=sim.time,
    )
    potential = optimization_potential(lines, tool, material)
    recs = build_recommendations(potential, result.issues)
    logger.debug(
        "Analyzed %d G-code lines: %d errors, %d warnings, %d recommendations",
        stats.total_lines, len(result.errors), len(result.warnings), len(recs),
    )
    return GCodeAnalysis(stats, tuple(result.issues), potential, tuple(recs))
