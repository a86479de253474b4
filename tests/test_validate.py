"""Tests for G-code validation rules."""

import pytest

from camadvisor.gcode.tokenizer import tokenize
from camadvisor.gcode.validate import ERROR, WARNING, validate_gcode


def _validate(text):
    return validate_gcode(tokenize(text))


def _rule_lines(result, rule):
    return [i.line for i in result.of_rule(rule)]


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_program():
    """Setup, spindle and coolant on, one cut, shutdown."""
    return (
        "G21\nG90\nG17\nG54\nM3 S1000\nM8\n"
        "G0 X0 Y0 Z5\nG1 Z-1 F100\nG1 X10\nG0 Z5\n"
        "M5\nM9\nM30\n"
    )


# ---------------------------------------------------------------------------
# Per-line rules
# ---------------------------------------------------------------------------


class TestLineRules:
    def test_clean_program_passes(self, clean_program):
        assert _validate(clean_program).is_ok

    def test_multiple_g_commands(self):
        result = _validate("G90 G1 X10 F100\n")
        issues = result.of_rule("multiple_g_commands")
        assert len(issues) == 1
        assert issues[0].severity == ERROR
        assert issues[0].line == 1

    def test_g53_with_motion_allowed(self):
        result = _validate("G53 G0 Z0\n")
        assert not result.of_rule("multiple_g_commands")
        assert not result.of_rule("g53_without_motion")

    def test_bare_g53(self):
        result = _validate("G53 Z0\n")
        assert _rule_lines(result, "g53_without_motion") == [1]
        assert result.has_errors

    def test_g28_with_trailing_command(self):
        result = _validate("G21\nG28 X0 Y0 G0 Z5\n")
        issues = result.of_rule("g28_with_trailing_command")
        assert [i.line for i in issues] == [2]
        assert issues[0].severity == ERROR

    def test_g28_alone_or_with_leading_mode(self):
        assert not _validate("G28 X0 Y0\n").of_rule("g28_with_trailing_command")
        assert not _validate("G28 G91 Z0\n").of_rule("g28_with_trailing_command")

    def test_malformed_coordinate(self):
        result = _validate("G0 X1.2.3\n")
        assert _rule_lines(result, "malformed_coordinate") == [1]

    def test_malformed_non_axis_ignored(self):
        assert not _validate("G4 P1.2.3\n").of_rule("malformed_coordinate")

    def test_rapid_with_feed(self):
        result = _validate("G0 X10 F500\n")
        issues = result.of_rule("rapid_with_feed_rate")
        assert issues[0].severity == WARNING
        assert issues[0].message == "Rapid move with feed rate"

    def test_duplicate_feed_and_speed(self):
        result = _validate("G1 X1 F100 F200\nS100 S200\n")
        assert _rule_lines(result, "duplicate_feed_rate") == [1]
        assert _rule_lines(result, "duplicate_spindle_speed") == [2]

    def test_dwell_without_time(self):
        result = _validate("G4\nG4 P100\n")
        assert _rule_lines(result, "dwell_without_time") == [1]

    def test_rapid_to_z0(self):
        result = _validate("G0 Z0\nG0 Z0.5\n")
        assert _rule_lines(result, "rapid_to_z0") == [1]

    def test_comments_are_not_checked(self):
        assert _validate("(G90 G1 X10)\n; G53\n").is_ok


# ---------------------------------------------------------------------------
# Stateful checks
# ---------------------------------------------------------------------------


class TestSequenceRules:
    def test_movement_without_feed(self):
        result = _validate("G1 X10\nG1 X20\n")
        issues = result.of_rule("movement_without_feed_rate")
        assert [i.line for i in issues] == [1, 2]
        assert issues[0].message == "Movement without feed rate"

    def test_feed_set_earlier_is_fine(self):
        result = _validate("F300\nG1 X10\n")
        assert not result.of_rule("movement_without_feed_rate")

    def test_cutting_with_spindle_off(self):
        result = _validate("G0 X0 Y0 Z5\nG1 Z-1 F100\nG1 X10\n")
        issues = result.of_rule("cutting_with_spindle_off")
        assert [i.line for i in issues] == [2]
        assert issues[0].severity == ERROR
        assert _rule_lines(result, "cutting_without_coolant") == [2]

    def test_spindle_reported_per_stretch(self):
        text = "G1 Z-1 F100\nM3 S1000\nG1 X5\nM5\nG1 X10\n"
        result = _validate(text)
        assert _rule_lines(result, "cutting_with_spindle_off") == [1, 5]

    def test_moves_above_surface_are_not_cuts(self):
        result = _validate("G1 X10 Z2 F300\n")
        assert not result.of_rule("cutting_with_spindle_off")
        assert not result.of_rule("cutting_without_coolant")

    def test_surface_height(self):
        lines = tokenize("G1 X10 Z2 F300\n")
        result = validate_gcode(lines, surface_z=5.0)
        assert result.of_rule("cutting_with_spindle_off")

    def test_end_with_spindle_on(self):
        result = _validate("M3 S1000\nM30\n")
        issues = result.of_rule("end_with_active_outputs")
        assert [i.line for i in issues] == [2]
        assert issues[0].message == "Program ends with spindle still on"

    def test_end_with_both_on(self):
        result = _validate("M3 S1000\nM8\nM2\n")
        assert result.of_rule("end_with_active_outputs")[0].message == \
            "Program ends with spindle and coolant still on"

    def test_tool_change_without_tool(self):
        result = _validate("M6\n")
        assert _rule_lines(result, "tool_change_without_tool") == [1]

    def test_tool_change_with_tool(self):
        assert not _validate("T1\nM6\n").of_rule("tool_change_without_tool")
        assert not _validate("T2 M6\n").of_rule("tool_change_without_tool")

    def test_tool_selection_window(self):
        text = "T1\n" + "G0 X1\n" * 10 + "M6\n"
        assert _validate(text).of_rule("tool_change_without_tool")

    def test_issues_sorted_by_line(self):
        result = _validate("G1 X10\nG0 Z0\nG90 G1 X5\n")
        lines = [i.line for i in result.issues]
        assert lines == sorted(lines)
        assert result.has_warnings
