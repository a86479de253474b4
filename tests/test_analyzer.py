"""Tests for toolpath analysis: statistics, rule checks, recommendations and scores."""

import pytest

from camadvisor.core.analyzer import analyze, is_redundant_point
from camadvisor.core.findings import IssueKind, IssueRule, PointRange, RecommendationKind, Severity
from camadvisor.core.material import Material, MaterialKind
from camadvisor.core.motion import MotionKind, MotionPoint, MotionProgram
from camadvisor.core.operation import Operation, OperationKind
from camadvisor.core.tool import Tool, ToolKind
from camadvisor.config.defaults import build_default_tool_library

R = MotionKind.RAPID
C = MotionKind.CUTTING


def _program(*rows, **kwargs):
    points = []
    for row in rows:
        x, y, z = row[:3]
        kind = row[3] if len(row) > 3 else None
        feed = row[4] if len(row) > 4 else None
        points.append(MotionPoint(x, y, z, kind, feed))
    return MotionProgram(points=tuple(points), **kwargs)


def _rules(analysis):
    return {i.rule for i in analysis.issues}


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def em10():
    """10 mm carbide end mill from the default library."""
    return build_default_tool_library().get("em-10-carbide")


@pytest.fixture
def straight_pass():
    """Rapid over, plunge, three collinear cuts, retract."""
    return _program(
        (0, 0, 5, R),
        (0, 0, -1, MotionKind.PLUNGE, 300),
        (10, 0, -1, C, 500),
        (20, 0, -1, C, 500),
        (30, 0, -1, C, 500),
        (30, 0, 5, MotionKind.RETRACT),
    )


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class TestStats:
    def test_empty_program(self):
        analysis = analyze(MotionProgram())
        assert analysis.stats.total_points == 0
        assert analysis.stats.total_distance == 0.0
        assert analysis.issues == ()
        assert analysis.efficiency_score == 100.0
        assert analysis.quality_score == 100.0

    def test_single_point(self):
        analysis = analyze(_program((0, 0, 0)))
        assert analysis.stats.total_points == 1
        assert analysis.issues == ()

    def test_distance_partition(self, straight_pass):
        stats = analyze(straight_pass).stats
        assert stats.total_distance == pytest.approx(stats.cutting_distance + stats.rapid_distance)
        # Only the first segment ends on a rapid point
        assert stats.rapid_distance == 0.0
        assert stats.cutting_distance == pytest.approx(6 + 30 + 6)

    def test_move_counts(self, straight_pass):
        stats = analyze(straight_pass).stats
        assert stats.cutting_moves == 5
        assert stats.rapid_moves == 0

    def test_feed_range(self, straight_pass):
        stats = analyze(straight_pass).stats
        assert stats.min_feed_rate == 300.0
        assert stats.max_feed_rate == 500.0

    def test_precomputed_time_used(self, straight_pass):
        program = MotionProgram(points=straight_pass.points, estimated_time=123.0)
        assert analyze(program).estimated_time == 123.0

    def test_kinds_resolved(self):
        analysis = analyze(_program((0, 0, 0), (0, 0, 5), (30, 0, 5)))
        assert analysis.kinds == (C, MotionKind.RETRACT, R)

    def test_input_not_modified(self, straight_pass):
        before = straight_pass.points
        analyze(straight_pass)
        assert straight_pass.points == before


# ---------------------------------------------------------------------------
# Rule checks
# ---------------------------------------------------------------------------


class TestFeedChecks:
    def test_feed_above_tool_maximum(self):
        tool = Tool("t1", "test mill", ToolKind.END_MILL, 10.0, max_feed_rate=5000.0)
        analysis = analyze(_program((0, 0, 10, R), (0, 0, 0, C, 50000)), tool)
        assert len(analysis.issues) == 1
        issue = analysis.issues[0]
        assert issue.rule is IssueRule.FEED_ABOVE_MAX
        assert issue.kind is IssueKind.FEED_RATE_ISSUE
        assert issue.severity is Severity.HIGH
        assert issue.location == PointRange(1, 1)
        assert issue.limit == 5000.0

    def test_hard_material_lowers_limit(self):
        ss = Material("ss", "Stainless", MaterialKind.STAINLESS_STEEL, machinability=40.0)
        analysis = analyze(_program((0, 0, 10, R), (0, 0, 0, C, 1500)), material=ss)
        above = [i for i in analysis.issues if i.rule is IssueRule.FEED_ABOVE_MAX]
        assert above[0].limit == pytest.approx(5000 * 0.4 * 0.7)

    def test_feed_below_minimum(self):
        analysis = analyze(_program((0, 0, -1, C, 100), (5, 0, -1, C, 100)))
        below = [i for i in analysis.issues if i.rule is IssueRule.FEED_BELOW_MIN]
        assert len(below) == 2
        assert below[0].limit == 500.0

    def test_feed_jump(self):
        analysis = analyze(_program((0, 0, -1, C, 1000), (5, 0, -1, C, 2000)))
        jumps = [i for i in analysis.issues if i.rule is IssueRule.FEED_JUMP]
        assert len(jumps) == 1
        assert jumps[0].location == PointRange(0, 1)


class TestRedundantMovement:
    def test_collinear_run(self, straight_pass):
        issues = [i for i in analyze(straight_pass).issues if i.rule is IssueRule.REDUNDANT_POINT]
        assert len(issues) == 1
        assert issues[0].location == PointRange(1, 4)
        assert issues[0].severity is Severity.LOW

    def test_short_segments(self):
        analysis = analyze(_program(
            (0, 0, -1, C, 1000), (1, 0, -1, C, 1000), (1, 1, -1, C, 1000), (2, 1, -1, C, 1000),
        ))
        assert IssueRule.SHORT_SEGMENTS in _rules(analysis)

    def test_rapid_sequence(self):
        analysis = analyze(_program(
            (0, 0, 5, R), (20, 0, 5, R), (20, 20, 5, R), (40, 20, 5, R),
        ))
        seq = [i for i in analysis.issues if i.rule is IssueRule.RAPID_SEQUENCE]
        assert len(seq) == 1
        assert seq[0].location == PointRange(0, 3)

    def test_plunge_is_not_redundant(self):
        a, b, c = MotionPoint(0, 0, 5), MotionPoint(0, 0, 0), MotionPoint(0, 0, -5)
        assert not is_redundant_point(a, b, c, MotionKind.PLUNGE, MotionKind.PLUNGE)

    def test_different_feeds_not_redundant(self):
        a = MotionPoint(0, 0, 0)
        b = MotionPoint(10, 0, 0, feed_rate=500.0)
        c = MotionPoint(20, 0, 0, feed_rate=1000.0)
        assert not is_redundant_point(a, b, c, C, C)


class TestDepthAndStepover:
    def test_deep_plunge(self):
        analysis = analyze(_program(
            (0, 0, 0, MotionKind.APPROACH, 300), (0, 0, -10, MotionKind.PLUNGE, 300),
        ))
        deep = [i for i in analysis.issues if i.rule is IssueRule.DEPTH_ABOVE_MAX]
        assert len(deep) == 1
        assert deep[0].measured == pytest.approx(10.0)
        assert deep[0].limit == pytest.approx(3.0)

    def test_stepover_above_tool_limit(self, em10):
        program = _program((0, 0, 5, R), (0, 0, 4, C, 1000), operation=Operation(stepover=8.0))
        wide = [i for i in analyze(program, em10).issues if i.rule is IssueRule.STEPOVER_ABOVE_MAX]
        assert len(wide) == 1
        assert wide[0].limit == pytest.approx(4.0)
        assert wide[0].location is None

    def test_stepover_ignored_without_tool(self):
        program = _program((0, 0, 5, R), (0, 0, 4, C, 1000), operation=Operation(stepover=8.0))
        assert IssueRule.STEPOVER_ABOVE_MAX not in _rules(analyze(program))


class TestApproachAndRetract:
    def test_high_retract(self):
        analysis = analyze(_program((0, 0, -1, C, 1000), (0, 0, 50, MotionKind.RETRACT)))
        high = [i for i in analysis.issues if i.rule is IssueRule.HIGH_RETRACT]
        assert len(high) == 1
        assert high[0].measured == 50.0
        assert high[0].limit == 5.0

    def test_flat_approach(self):
        analysis = analyze(_program((0, 0, -1, R), (5, 0, -1, C, 1000)))
        assert IssueRule.FLAT_APPROACH in _rules(analysis)

    def test_unsafe_entry_and_exit(self):
        analysis = analyze(_program(
            (0, 0, -1, C, 1000), (5, 0, -1, C, 1000), (5, 5, -1, C, 1000),
        ))
        rules = _rules(analysis)
        assert IssueRule.CUTTING_ENTRY in rules
        assert IssueRule.CUTTING_EXIT in rules

    def test_safe_entry_and_exit(self, straight_pass):
        rules = _rules(analyze(straight_pass))
        assert IssueRule.CUTTING_ENTRY not in rules
        assert IssueRule.CUTTING_EXIT not in rules


class TestAirAndRapids:
    def test_air_cut(self):
        analysis = analyze(_program(
            (0, 0, 5, MotionKind.APPROACH, 500), (20, 0, 5, C, 500),
        ))
        air = [i for i in analysis.issues if i.rule is IssueRule.AIR_CUT]
        assert len(air) == 1
        assert air[0].measured == pytest.approx(20.0)

    def test_cut_into_stock_is_not_air(self):
        analysis = analyze(_program(
            (0, 0, 5, MotionKind.APPROACH, 500), (20, 0, -1, C, 500),
        ))
        assert IssueRule.AIR_CUT not in _rules(analysis)

    def test_rapid_through_material(self):
        analysis = analyze(_program(
            (0, 0, -1, C, 1000),
            (10, 0, -1, C, 1000),
            (10, 10, -1, C, 1000),
            (0, 10, -1, C, 1000),
            (-5, 5, -1, R),
            (15, 5, -1, R),
        ))
        critical = [i for i in analysis.issues if i.rule is IssueRule.RAPID_BELOW_SURFACE]
        assert critical
        assert all(i.severity is Severity.CRITICAL for i in critical)
        assert any(i.location == PointRange(4, 5) for i in critical)

    def test_rapid_above_surface_is_fine(self):
        analysis = analyze(_program(
            (0, 0, -1, C, 1000),
            (10, 0, -1, C, 1000),
            (10, 10, -1, C, 1000),
            (0, 10, 5, MotionKind.RETRACT),
            (15, 5, 5, R),
        ))
        assert IssueRule.RAPID_BELOW_SURFACE not in _rules(analysis)


# ---------------------------------------------------------------------------
# Recommendations and scores
# ---------------------------------------------------------------------------


class TestRecommendations:
    def test_feed_recommendation_carries_values(self):
        tool = Tool("t1", "test mill", ToolKind.END_MILL, 10.0, max_feed_rate=5000.0)
        analysis = analyze(_program((0, 0, 10, R), (0, 0, 0, C, 50000)), tool)
        feed = [r for r in analysis.recommendations if r.kind is RecommendationKind.FEED_RATE]
        assert feed[0].current_value == 50000.0
        assert feed[0].recommended_value == 5000.0

    def test_roughing_gets_finishing_pass(self):
        program = _program(
            (0, 0, 5, R), (0, 0, -1, MotionKind.PLUNGE, 300),
            operation=Operation(kind=OperationKind.POCKET_2D),
        )
        recs = analyze(program).recommendations
        assert any("finishing pass" in r.description for r in recs)

    def test_clean_custom_program_has_no_recommendations(self):
        program = _program((0, 0, 5, R), (0, 0, -1, MotionKind.PLUNGE, 1000), (0, 0, 5, MotionKind.RETRACT))
        analysis = analyze(program)
        assert analysis.issues == ()
        assert analysis.recommendations == ()


class TestScores:
    def test_scores_bounded(self):
        rows = [(i * 0.5, (i % 2) * 0.5, -20 * (i % 2), C, 50000 if i % 2 else 10) for i in range(40)]
        analysis = analyze(_program(*rows))
        assert 0.0 <= analysis.efficiency_score <= 100.0
        assert 0.0 <= analysis.quality_score <= 100.0

    def test_finishing_scores_higher_than_roughing(self, straight_pass):
        finishing = MotionProgram(points=straight_pass.points,
                                  operation=Operation(kind=OperationKind.CONTOUR_2D))
        roughing = MotionProgram(points=straight_pass.points,
                                 operation=Operation(kind=OperationKind.POCKET_2D))
        assert analyze(finishing).quality_score > analyze(roughing).quality_score

    def test_rapid_only_program(self):
        # One rapid-sequence penalty and no cutting bonus
        analysis = analyze(_program((0, 0, 5, R), (20, 0, 5, R), (20, 20, 5, R), (40, 20, 5, R)))
        assert analysis.efficiency_score == pytest.approx(98.0)
