"""Tests for the motion model: points, programs, kind inference and timing."""

import pytest

from camadvisor.core.motion import (
    MotionKind,
    MotionPoint,
    MotionProgram,
    estimate_motion_time,
    infer_kind,
    resolve_kinds,
)
from camadvisor.core.operation import Operation, OperationKind, StrategyType


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class TestFromRecords:
    def test_camel_case_keys(self):
        prog = MotionProgram.from_records([
            {"x": 0, "y": 0, "z": 5, "type": "rapid"},
            {"x": 10, "y": 0, "z": -1, "feedRate": 800, "spindleSpeed": 12000, "toolId": 7},
        ])
        assert prog.total_points == 2
        assert prog.points[0].kind is MotionKind.RAPID
        p = prog.points[1]
        assert p.feed_rate == 800.0
        assert p.spindle_speed == 12000.0
        assert p.tool_id == "7"
        assert p.kind is None

    def test_snake_case_keys(self):
        prog = MotionProgram.from_records([
            {"x": 1, "y": 2, "z": 3, "feed_rate": 500, "kind": "lead-in"},
        ])
        assert prog.points[0].feed_rate == 500.0
        assert prog.points[0].kind is MotionKind.LEAD_IN

    def test_missing_coordinate_names_record(self):
        with pytest.raises(ValueError, match="Motion record 1"):
            MotionProgram.from_records([
                {"x": 0, "y": 0, "z": 0},
                {"x": 0, "y": 0},
            ])

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError, match="must be a number"):
            MotionPoint.from_record({"x": "abc", "y": 0, "z": 0})

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            MotionPoint.from_record({"x": True, "y": 0, "z": 0})

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            MotionPoint.from_record({"x": float("nan"), "y": 0, "z": 0})

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="Unknown motion kind"):
            MotionPoint.from_record({"x": 0, "y": 0, "z": 0, "kind": "teleport"})

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError, match="not a mapping"):
            MotionProgram.from_records([(0, 0, 0)])


class TestProgram:
    def test_points_become_tuple(self):
        prog = MotionProgram(points=[MotionPoint(0, 0, 0)])
        assert isinstance(prog.points, tuple)

    def test_derive_gets_new_id(self):
        prog = MotionProgram(points=(MotionPoint(0, 0, 0),), name="pocket")
        derived = prog.derive([MotionPoint(1, 1, 1)], name="copy")
        assert derived.id != prog.id
        assert derived.name == "copy"
        assert prog.points == (MotionPoint(0, 0, 0),)

    def test_coordinates_shape(self):
        prog = MotionProgram(points=(MotionPoint(0, 0, 0), MotionPoint(1, 2, 3)))
        assert prog.coordinates().shape == (2, 3)

    def test_empty(self):
        assert MotionProgram().is_empty


class TestOperationKind:
    def test_strategy(self):
        assert OperationKind.POCKET_2D.strategy is StrategyType.ROUGHING
        assert OperationKind.ADAPTIVE_3D.strategy is StrategyType.ROUGHING
        assert OperationKind.CONTOUR_2D.strategy is StrategyType.FINISHING
        assert OperationKind.PARALLEL_3D.strategy is StrategyType.FINISHING
        assert OperationKind.DRILLING.strategy is None


# ---------------------------------------------------------------------------
# Kinds and time
# ---------------------------------------------------------------------------


class TestKinds:
    def test_infer_retract_and_plunge(self):
        a = MotionPoint(0, 0, 0)
        assert infer_kind(a, MotionPoint(0, 0, 5), 0.5, 10.0) is MotionKind.RETRACT
        assert infer_kind(a, MotionPoint(0, 0, -5), 0.5, 10.0) is MotionKind.PLUNGE

    def test_infer_rapid_and_cutting(self):
        a = MotionPoint(0, 0, 0)
        assert infer_kind(a, MotionPoint(20, 0, 0), 0.5, 10.0) is MotionKind.RAPID
        assert infer_kind(a, MotionPoint(5, 0, 0), 0.5, 10.0) is MotionKind.CUTTING

    def test_tags_win_and_first_point_is_cutting(self):
        points = [
            MotionPoint(0, 0, 0),
            MotionPoint(50, 0, 0, MotionKind.CUTTING),
            MotionPoint(50, 0, 10),
        ]
        assert resolve_kinds(points, 0.5, 10.0) == [
            MotionKind.CUTTING, MotionKind.CUTTING, MotionKind.RETRACT,
        ]


class TestMotionTime:
    def test_rapid_segment(self):
        points = [MotionPoint(0, 0, 0, MotionKind.RAPID), MotionPoint(5000, 0, 0, MotionKind.RAPID)]
        kinds = resolve_kinds(points, 0.5, 10.0)
        assert estimate_motion_time(points, kinds, 1000.0, 5000.0) == pytest.approx(60.0)

    def test_feed_falls_back_to_default(self):
        points = [MotionPoint(0, 0, 0), MotionPoint(5, 0, 0)]
        kinds = resolve_kinds(points, 0.5, 10.0)
        assert estimate_motion_time(points, kinds, 100.0, 5000.0) == pytest.approx(3.0)

    def test_destination_feed_used(self):
        points = [MotionPoint(0, 0, 0, feed_rate=100.0), MotionPoint(5, 0, 0, feed_rate=300.0)]
        kinds = resolve_kinds(points, 0.5, 10.0)
        assert estimate_motion_time(points, kinds, 1000.0, 5000.0) == pytest.approx(1.0)

    def test_single_point(self):
        points = [MotionPoint(0, 0, 0)]
        assert estimate_motion_time(points, [MotionKind.CUTTING], 1000.0, 5000.0) == 0.0

    def test_operation_default_feed(self):
        assert Operation().feed_rate == 1000.0
