"""Tests for machining cost estimation."""

import pytest

from camadvisor.config.defaults import CostRates
from camadvisor.core.cost import (
    compare_strategies,
    estimate_cost,
    estimate_material_cost,
    estimate_setup_time,
    estimate_tool_life,
    estimate_tool_price,
    estimate_tool_wear,
    machining_minutes,
    update_estimation,
    wear_percentage,
)
from camadvisor.core.material import Material, MaterialKind
from camadvisor.core.motion import MotionKind, MotionPoint, MotionProgram
from camadvisor.core.operation import Operation, OperationKind
from camadvisor.core.tool import Tool, ToolKind

C = MotionKind.CUTTING


def _line(length, **kwargs):
    """Program with a single tagged cutting segment of *length* mm along X."""
    return MotionProgram(
        points=(MotionPoint(0, 0, 0, C), MotionPoint(length, 0, 0, C)),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def end_mill():
    """Unpriced 10 mm coated carbide end mill."""
    return Tool("em", "10 mm end mill", ToolKind.END_MILL, 10.0,
                material="carbide", coating="TiAlN")


@pytest.fixture
def timed_program():
    """Program whose run time is already known (600 s)."""
    return _line(100.0, estimated_time=600.0)


# ---------------------------------------------------------------------------
# Tool price, life and wear
# ---------------------------------------------------------------------------


class TestToolCosts:
    def test_list_price_wins(self, end_mill):
        priced = Tool("p", "priced", ToolKind.END_MILL, 10.0, price=42.0)
        assert estimate_tool_price(priced) == 42.0

    def test_estimated_price(self, end_mill):
        # (30 + 2 * 10) * 1.5 carbide * 1.4 TiAlN
        assert estimate_tool_price(end_mill) == pytest.approx(105.0)

    def test_estimated_life(self, end_mill):
        # 300 * 10 * 1.5 carbide * 1.8 TiAlN
        assert estimate_tool_life(end_mill, 1000.0) == pytest.approx(8100.0)

    def test_rated_lifespan_converted_at_feed(self):
        tool = Tool("l", "rated", ToolKind.END_MILL, 10.0, lifespan=60.0)
        assert estimate_tool_life(tool, 1000.0) == pytest.approx(60000.0)

    def test_rated_lifespan_without_operation_feed(self):
        tool = Tool("l", "rated", ToolKind.END_MILL, 10.0, max_feed_rate=2000.0, lifespan=60.0)
        assert estimate_tool_life(tool, 0.0) == pytest.approx(120000.0)

    def test_rated_lifespan_without_any_feed(self):
        tool = Tool("l", "rated", ToolKind.END_MILL, 10.0, lifespan=60.0)
        assert estimate_tool_life(tool, 0.0) == pytest.approx(3000.0)

    def test_wear_with_zero_operation_feed(self):
        tool = Tool("l", "rated", ToolKind.END_MILL, 10.0, max_feed_rate=2000.0, lifespan=60.0)
        program = _line(1200.0, operation=Operation(feed_rate=0.0))
        assert estimate_tool_wear(program, tool) == pytest.approx(1.0)

    def test_wear_from_cutting_distance(self, end_mill):
        assert estimate_tool_wear(_line(1000.0), end_mill) == pytest.approx(1000.0 / 8100.0 * 100.0)

    def test_wear_with_lifespan(self):
        tool = Tool("l", "rated", ToolKind.END_MILL, 10.0, lifespan=60.0)
        assert estimate_tool_wear(_line(1000.0), tool) == pytest.approx(1.6667, abs=1e-4)

    def test_wear_clamped(self, end_mill):
        assert estimate_tool_wear(_line(100000.0), end_mill) == 100.0

    def test_plunge_counts_double(self):
        assert wear_percentage(100.0, 50.0, 1000.0) == pytest.approx(20.0)

    def test_zero_life(self):
        assert wear_percentage(100.0, 0.0, 0.0) == 0.0


# ---------------------------------------------------------------------------
# Setup, material, time
# ---------------------------------------------------------------------------


class TestSetup:
    def test_simple(self):
        assert estimate_setup_time(Operation(kind=OperationKind.DRILLING)) == 10.0

    def test_large_tool_is_never_simple(self):
        big = Tool("b", "big drill", ToolKind.DRILL, 25.0)
        assert estimate_setup_time(Operation(kind=OperationKind.DRILLING), big) == 20.0

    def test_complex(self):
        assert estimate_setup_time(Operation(kind=OperationKind.ADAPTIVE_3D)) == 45.0

    def test_moderate(self):
        assert estimate_setup_time(Operation()) == 20.0


class TestMaterialAndTime:
    def test_unknown_material_price(self):
        assert estimate_material_cost(_line(10.0), None) == 10.0

    def test_bounding_box_volume(self):
        program = MotionProgram(points=(MotionPoint(0, 0, 0), MotionPoint(10, 10, -2)))
        al = Material("al", "Aluminum", MaterialKind.ALUMINUM, price=0.02)
        # 0.2 cm^3 box * 0.3 removal * 1.2 waste * 0.02
        assert estimate_material_cost(program, al) == pytest.approx(0.00144)

    def test_known_time_used(self, timed_program):
        assert machining_minutes(timed_program) == pytest.approx(10.0)

    def test_computed_time(self):
        # 1000 mm at the default 1000 mm/min
        assert machining_minutes(_line(1000.0)) == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Estimation
# ---------------------------------------------------------------------------


class TestEstimateCost:
    def test_total_is_breakdown_sum(self, timed_program, end_mill):
        est = estimate_cost(timed_program, end_mill)
        assert est.total_cost == est.breakdown.total

    def test_breakdown(self, timed_program, end_mill):
        est = estimate_cost(timed_program, end_mill)
        b = est.breakdown
        assert b.machine == pytest.approx(50.0 / 6.0)
        assert b.labor == pytest.approx(30.0 / 6.0)
        assert b.overhead == pytest.approx(20.0 / 6.0)
        assert b.setup == pytest.approx(20.0 / 60.0 * 50.0)
        assert b.material == 10.0
        assert b.tool == pytest.approx(105.0 * (100.0 / 8100.0))

    def test_custom_rates(self, timed_program, end_mill):
        rates = CostRates(machine=120.0, labor=0.0, overhead=0.0, currency="USD")
        est = estimate_cost(timed_program, end_mill, rates=rates)
        assert est.breakdown.machine == pytest.approx(20.0)
        assert est.rates.currency == "USD"

    def test_tool_usage(self, timed_program, end_mill):
        est = estimate_cost(timed_program, end_mill)
        usage = est.tools_used[0]
        assert usage.tool_id == "em"
        assert usage.usage_time == pytest.approx(10.0)
        assert est.total_time == pytest.approx(30.0)
        assert est.assumptions["setup_complexity"] == "moderate"


class TestUpdateEstimation:
    def test_actual_values(self, timed_program, end_mill):
        est = estimate_cost(timed_program, end_mill)
        updated = update_estimation(est, actual_machining_time=60.0, actual_tool_wear=150.0)
        assert updated.breakdown.machine == pytest.approx(50.0)
        assert updated.breakdown.tool == pytest.approx(105.0)
        assert updated.total_cost == updated.breakdown.total
        assert updated.assumptions["updated_from"] == est.id

    def test_unchanged_values_kept(self, timed_program, end_mill):
        est = estimate_cost(timed_program, end_mill)
        updated = update_estimation(est)
        assert updated.total_cost == pytest.approx(est.total_cost)
        assert updated.breakdown.material == est.breakdown.material


class TestCompareStrategies:
    def test_ranked_cheapest_first(self, end_mill):
        slow = _line(100.0, estimated_time=1200.0, name="slow")
        fast = _line(100.0, estimated_time=600.0, name="fast")
        comparison = compare_strategies([slow, fast], end_mill)
        assert comparison.best.program_id == fast.id
        assert comparison.time_savings == pytest.approx(10.0)
        assert comparison.cost_savings == pytest.approx(100.0 / 6.0)
        assert 0.0 < comparison.savings_percent < 100.0

    def test_empty(self, end_mill):
        comparison = compare_strategies([], end_mill)
        assert comparison.best is None
        assert comparison.cost_savings == 0.0
