"""Tests for G-code tokenizing, line formatting and modal state."""

import pytest

from camadvisor.core.units import Units
from camadvisor.gcode.gcode_writer import (
    comment,
    fmt,
    format_line,
    make_word,
    needs_formatting,
    rapid,
    render,
    spindle_on,
)
from camadvisor.gcode.state import MachineState
from camadvisor.gcode.tokenizer import tokenize, tokenize_line


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class TestTokenizer:
    def test_comments_split_off(self):
        line = tokenize_line("G01 X10.5 Y-2 (rough pass) ; tail")
        assert line.code == "G01 X10.5 Y-2"
        assert line.comment == "rough pass tail"
        assert [w.letter for w in line.words] == ["G", "X", "Y"]

    def test_comment_only(self):
        line = tokenize_line("(setup)")
        assert line.is_comment_only
        assert line.words == ()
        assert not line.is_blank

    def test_blank(self):
        assert tokenize_line("   ").is_blank

    def test_command_normalization(self):
        line = tokenize_line("g01 x5 M03")
        assert line.commands == ("G1", "M3")
        assert line.g_commands == ("G1",)
        assert line.m_commands == ("M3",)
        assert line.command == "G1"

    def test_words_without_spaces(self):
        line = tokenize_line("G1X10Y5F300")
        assert line.get("X") == 10.0
        assert line.get("Y") == 5.0
        assert line.get("F") == 300.0

    def test_malformed_value(self):
        line = tokenize_line("G1 X1.2.3 Y4")
        assert [w.letter for w in line.malformed] == ["X"]
        assert line.get("X") is None
        assert line.has("X")

    def test_leading_decimal_point(self):
        assert tokenize_line("G1 Z-.5").get("Z") == -0.5

    def test_tool_word_is_not_a_command(self):
        line = tokenize_line("T1 M6")
        assert line.commands == ("M6",)
        assert line.has("T")

    def test_tokenize_numbers_lines(self):
        lines = tokenize("G0 X0\nG1 X1\n")
        assert [line.number for line in lines] == [1, 2]

    def test_tokenize_crlf(self):
        assert len(tokenize("G0 X0\r\nG1 X1\r\n")) == 2

    def test_tokenize_empty(self):
        assert tokenize("") == []

    def test_tokenize_rejects_bytes(self):
        with pytest.raises(ValueError, match="must be text"):
            tokenize(b"G0 X0")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    @pytest.mark.parametrize("value, expected", [
        (1.5, "1.5"),
        (10.0, "10"),
        (0.00001, "0"),
        (-0.00001, "0"),
        (-2.25, "-2.25"),
    ])
    def test_fmt(self, value, expected):
        assert fmt(value) == expected

    def test_fmt_integer_precision(self):
        assert fmt(1000.0, 0) == "1000"
        assert fmt(1400.04, 1) == "1400"

    def test_make_word(self):
        w = make_word("F", 1234.56, 1)
        assert str(w) == "F1234.6"
        assert w.value == pytest.approx(1234.6)

    def test_helpers(self):
        assert rapid(z=10.0) == "G0 Z10"
        assert rapid(1, 2.5, 3) == "G0 X1 Y2.5 Z3"
        assert spindle_on(12000) == "M3 S12000"
        assert comment("pass (1)") == "(pass 1)"

    def test_format_line(self):
        line = tokenize_line("g01  x10.0   y5")
        assert format_line(line) == "G1 X10.0 Y5"
        assert needs_formatting(line)

    def test_formatted_line_needs_nothing(self):
        assert not needs_formatting(tokenize_line("G1 X10 Y5 (keep)"))

    def test_render_keeps_comment(self):
        line = tokenize_line("G01 X1 ; note")
        assert render(line.words, line.comment) == "G1 X1 (note)"


# ---------------------------------------------------------------------------
# Modal state
# ---------------------------------------------------------------------------


def _run(text):
    state = MachineState()
    moves = [state.apply(line) for line in tokenize(text)]
    return state, moves


class TestMachineState:
    def test_modal_motion_and_feed(self):
        state, moves = _run("G1 X10 F500\nY10\n")
        assert moves[1].command == "G1"
        assert moves[1].feed_rate == 500.0
        assert moves[1].end == (10.0, 10.0, 0.0)

    def test_inch_converted_to_mm(self):
        state, moves = _run("G20\nG1 X1 F10\n")
        assert state.units is Units.INCH
        assert moves[1].end[0] == pytest.approx(25.4)
        assert moves[1].feed_rate == pytest.approx(254.0)

    def test_relative_moves(self):
        state, moves = _run("G91\nG1 X5 F100\nX5\n")
        assert moves[2].end == (10.0, 0.0, 0.0)
        assert not state.absolute

    def test_no_motion_mode_no_move(self):
        _, moves = _run("X10\n")
        assert moves == [None]

    def test_non_moves(self):
        _, moves = _run("G0 X1\nG4 P500\nG28 Z0\nG53 G0 Z0\n")
        assert moves[1:] == [None, None, None]

    def test_spindle_and_coolant(self):
        state, _ = _run("M3 S8000\nM8\n")
        assert state.spindle_on and state.coolant_on
        assert state.spindle_speed == 8000.0
        state, _ = _run("M3 S8000\nM8\nM30\n")
        assert not state.spindle_on and not state.coolant_on

    def test_coincident_move(self):
        _, moves = _run("G0 X5\nG0 X5\n")
        assert moves[1].is_coincident
        assert moves[1].length == 0.0
