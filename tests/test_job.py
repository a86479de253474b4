"""Tests for the machining job orchestrator."""

import pytest

from camadvisor.config.defaults import build_default_tool_library
from camadvisor.config.settings import EngineSettings
from camadvisor.core.job import MachiningJob
from camadvisor.core.motion import MotionKind, MotionPoint, MotionProgram


@pytest.fixture
def program():
    return MotionProgram(
        points=(
            MotionPoint(0, 0, 5, MotionKind.RAPID),
            MotionPoint(0, 0, -1, MotionKind.PLUNGE, 300.0),
            MotionPoint(10, 0, -1, MotionKind.CUTTING, 500.0),
            MotionPoint(20, 0, -1, MotionKind.CUTTING, 500.0),
            MotionPoint(20, 0, 5, MotionKind.RETRACT),
        ),
        tool_id="em-10-carbide",
        name="slot",
    )


class _BrokenLibrary:
    def get(self, tool_id):
        raise OSError("catalog unavailable")


class TestMachiningJob:
    def test_tool_from_library(self, program):
        job = MachiningJob(program, tools=build_default_tool_library())
        report = job.run(["time"])
        assert report.cost is not None
        assert report.optimized_cost is not None
        assert report.cost.tools_used[0].tool_id == "em-10-carbide"
        assert report.notes == ()

    def test_time_saved(self, program):
        report = MachiningJob(program, tools=build_default_tool_library()).run(["time"])
        assert report.time_saved >= 0.0
        assert report.optimized.metadata["origin_program_id"] == program.id
        assert report.cost_saved == pytest.approx(report.cost.total_cost - report.optimized_cost.total_cost)

    def test_explicit_tool_wins(self, program):
        tool = build_default_tool_library().get("em-6-uncoated")
        report = MachiningJob(program, tool=tool, tools=build_default_tool_library()).run()
        assert report.cost.tools_used[0].tool_id == "em-6-uncoated"

    def test_unknown_tool(self, program):
        other = MotionProgram(points=program.points, tool_id="t99")
        job = MachiningJob(other, tools=build_default_tool_library())
        report = job.run()
        assert report.cost is None
        assert report.cost_saved is None
        assert report.notes == (
            "Tool t99 is not in the tool library",
            "No tool available; cost estimation skipped",
        )

    def test_notes_do_not_accumulate_across_runs(self, program):
        other = MotionProgram(points=program.points, tool_id="t99")
        job = MachiningJob(other, tools=build_default_tool_library())
        first = job.run()
        second = job.run()
        assert second.notes == first.notes
        assert len(second.notes) == 2

    def test_failing_library(self, program):
        job = MachiningJob(program, tools=_BrokenLibrary())
        report = job.run()
        assert report.cost is None
        assert report.notes[0] == "Tool em-10-carbide could not be looked up"

    def test_invalid_goals(self, program):
        with pytest.raises(ValueError):
            MachiningJob(program).run([])

    def test_from_settings(self, program):
        settings = EngineSettings(thresholds={"rapid_feed_rate": 10000.0}, machine_rate=100.0)
        job = MachiningJob.from_settings(program, settings, tools=build_default_tool_library())
        assert job.thresholds.rapid_feed_rate == 10000.0
        assert job.rates.machine == 100.0
        report = job.run()
        assert report.cost.rates.machine == 100.0
