"""Tests for program unit systems."""

import pytest

from camadvisor.core.units import MM_PER_INCH, Units


class TestUnits:
    def test_inch_round_trip(self):
        assert Units.INCH.to_mm(1.0) == pytest.approx(MM_PER_INCH)
        assert Units.INCH.from_mm(25.4) == pytest.approx(1.0)

    def test_mm_is_identity(self):
        assert Units.MM.to_mm(12.5) == 12.5
        assert Units.MM.from_mm(12.5) == 12.5

    def test_modal_words(self):
        assert Units.INCH.gcode_modal == "G20"
        assert Units.MM.gcode_modal == "G21"

    def test_from_gcode(self):
        assert Units.from_gcode("G20") is Units.INCH
        assert Units.from_gcode("G21") is Units.MM
        assert Units.from_gcode("G90") is None
