"""G-code validation and sanity checks.

Two passes over tokenized text: independent per-line rules, then a
stateful pass that follows feed rate, spindle and coolant across lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .state import MachineState
from .tokenizer import AXES, GCodeLine

ERROR = "error"
WARNING = "warning"

# Lines searched backwards for a T word before an M6
TOOL_SELECT_WINDOW = 10


@dataclass
class ValidationIssue:
    """A single validation problem found in the G-code."""

    severity: str  # "error" or "warning"
    message: str
    line: Optional[int] = None
    suggested_fix: str = ""
    rule: str = ""


@dataclass
class ValidationResult:
    """Result of validating a G-code text."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == WARNING]

    @property
    def has_errors(self) -> bool:
        return any(i.severity == ERROR for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == WARNING for i in self.issues)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0

    def of_rule(self, rule: str) -> list[ValidationIssue]:
        return [i for i in self.issues if i.rule == rule]


# ----------------------------------------------------------------------
# Per-line rules
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class LineRule:
    name: str
    severity: str
    applies: Callable[[GCodeLine], bool]
    message: str
    suggested_fix: str


def has_multiple_g_commands(line: GCodeLine) -> bool:
    commands = line.g_commands
    if len(commands) < 2:
        return False
    # G53 is a non-modal prefix for a single G0/G1
    return not (len(commands) == 2 and "G53" in commands and ("G0" in commands or "G1" in commands))


def has_malformed_coordinate(line: GCodeLine) -> bool:
    return any(w.letter in AXES for w in line.malformed)


def has_bare_g53(line: GCodeLine) -> bool:
    return line.has_command("G53") and not line.has_command("G0", "G1")


def has_g28_with_trailing_command(line: GCodeLine) -> bool:
    """G28 with an intermediate point followed by another G command on the same line."""
    after_g28 = with_axes = False
    for w in line.words:
        if w.command == "G28":
            after_g28 = True
        elif after_g28 and w.letter in AXES:
            with_axes = True
        elif with_axes and w.letter == "G" and w.command:
            return True
    return False


def is_rapid_to_z0(line: GCodeLine) -> bool:
    return line.has_command("G0") and line.get("Z") == 0.0


LINE_RULES: tuple[LineRule, ...] = (
    LineRule(
        "multiple_g_commands", ERROR, has_multiple_g_commands,
        "Multiple G commands on one line",
        "Put each G command on its own line",
    ),
    LineRule(
        "malformed_coordinate", ERROR, has_malformed_coordinate,
        "Malformed coordinate value",
        "Give every X/Y/Z word a decimal number",
    ),
    LineRule(
        "g53_without_motion", ERROR, has_bare_g53,
        "G53 without G0 or G1",
        "Follow G53 with G0 or G1 on the same line",
    ),
    LineRule(
        "g28_with_trailing_command", ERROR, has_g28_with_trailing_command,
        "G28 with axis words followed by another G command",
        "Put G28 and its intermediate point on a line of their own",
    ),
    LineRule(
        "duplicate_feed_rate", WARNING, lambda line: line.count("F") > 1,
        "Redundant feed rate on one line",
        "Keep a single F word per line",
    ),
    LineRule(
        "duplicate_spindle_speed", WARNING, lambda line: line.count("S") > 1,
        "Redundant spindle speed on one line",
        "Keep a single S word per line",
    ),
    LineRule(
        "rapid_with_feed_rate", WARNING, lambda line: line.has_command("G0") and line.has("F"),
        "Rapid move with feed rate",
        "Remove F from G0 moves; rapids ignore it",
    ),
    LineRule(
        "dwell_without_time", WARNING, lambda line: line.has_command("G4") and not line.has("P"),
        "Dwell without P parameter",
        "Add the dwell time as a P word",
    ),
    LineRule(
        "rapid_to_z0", WARNING, is_rapid_to_z0,
        "Rapid move to Z0",
        "Rapid to a clearance height and feed down to the surface",
    ),
)


def check_lines(lines: Sequence[GCodeLine], rules: Sequence[LineRule] = LINE_RULES) -> list[ValidationIssue]:
    issues = []
    for line in lines:
        for rule in rules:
            if line.words and rule.applies(line):
                issues.append(ValidationIssue(
                    rule.severity, rule.message, line.number, rule.suggested_fix, rule.name,
                ))
    return issues


# ----------------------------------------------------------------------
# Stateful pass
# ----------------------------------------------------------------------

def check_sequence(lines: Sequence[GCodeLine], surface_z: float = 0.0) -> list[ValidationIssue]:
    """Feed rate, spindle, coolant and tool change sequencing checks.

    Cutting is a feed move that reaches below *surface_z*.  The spindle and
    coolant checks report the first offending line of each stretch only.
    """
    issues = []
    state = MachineState()
    spindle_reported = coolant_reported = False

    for index, line in enumerate(lines):
        if not line.words:
            continue
        if line.has_command("M2", "M30") and (state.spindle_on or state.coolant_on):
            active = [name for name, on in (("spindle", state.spindle_on), ("coolant", state.coolant_on)) if on]
            issues.append(ValidationIssue(
                WARNING, f"Program ends with {' and '.join(active)} still on", line.number,
                "Stop the spindle (M5) and coolant (M9) before M2/M30", "end_with_active_outputs",
            ))
        if line.has_command("M6") and not _tool_selected(lines, index):
            issues.append(ValidationIssue(
                WARNING, "Tool change without tool number", line.number,
                "Select the tool with a T word before M6", "tool_change_without_tool",
            ))

        was_spindle, was_coolant = state.spindle_on, state.coolant_on
        move = state.apply(line)
        if state.spindle_on != was_spindle:
            spindle_reported = False
        if state.coolant_on != was_coolant:
            coolant_reported = False
        if move is None or not move.is_feed:
            continue

        if move.feed_rate is None:
            issues.append(ValidationIssue(
                WARNING, "Movement without feed rate", line.number,
                "Add an F word to the first feed move", "movement_without_feed_rate",
            ))
        if move.lowest_z >= surface_z:
            continue
        if not state.spindle_on and not spindle_reported:
            spindle_reported = True
            issues.append(ValidationIssue(
                ERROR, "Cutting move with spindle off", line.number,
                "Start the spindle (M3/M4) before cutting", "cutting_with_spindle_off",
            ))
        if not state.coolant_on and not coolant_reported:
            coolant_reported = True
            issues.append(ValidationIssue(
                WARNING, "Cutting without coolant", line.number,
                "Turn coolant on (M7/M8) before cutting", "cutting_without_coolant",
            ))
    return issues


def _tool_selected(lines: Sequence[GCodeLine], index: int) -> bool:
    start = max(0, index - TOOL_SELECT_WINDOW)
    return any(line.has("T") for line in lines[start:index + 1])


def validate_gcode(lines: Sequence[GCodeLine], surface_z: float = 0.0) -> ValidationResult:
    """Run the per-line rules and the stateful checks over *lines*."""
    issues = check_lines(lines) + check_sequence(lines, surface_z)
    issues.sort(key=lambda i: i.line or 0)
    return ValidationResult(issues)
