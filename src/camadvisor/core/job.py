"""Job orchestrator: ties a motion program to its tool, material and rates.

``MachiningJob.run`` is the top-level entry point for callers that want the
whole picture: analysis, optimization, re-analysis and cost before/after.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from ..config.defaults import DEFAULT_RATES, DEFAULT_THRESHOLDS, ENHANCER_TIMEOUT, CostRates, Thresholds
from ..config.settings import EngineSettings
from ..enhance import Enhancer
from .analyzer import ToolpathAnalysis, analyze
from .cost import CostEstimation, estimate_cost
from .material import Material
from .motion import MotionProgram
from .optimizer import OptimizationGoal, optimize
from .tool import Tool, ToolLibrary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobReport:
    """Everything ``MachiningJob.run`` produced.  Costs are None without a tool."""

    analysis: ToolpathAnalysis
    optimized: MotionProgram
    optimized_analysis: ToolpathAnalysis
    cost: Optional[CostEstimation] = None
    optimized_cost: Optional[CostEstimation] = None
    notes: tuple[str, ...] = ()

    @property
    def time_saved(self) -> float:
        """Seconds saved by the optimized program (negative if slower)."""
        return self.analysis.estimated_time - self.optimized_analysis.estimated_time

    @property
    def cost_saved(self) -> Optional[float]:
        if self.cost is None or self.optimized_cost is None:
            return None
        return self.cost.total_cost - self.optimized_cost.total_cost


@dataclass
class MachiningJob:
    """A motion program plus the tool, material and rates it runs with."""

    program: MotionProgram
    tool: Optional[Tool] = None
    material: Optional[Material] = None
    tools: Optional[ToolLibrary] = None
    rates: CostRates = DEFAULT_RATES
    thresholds: Thresholds = DEFAULT_THRESHOLDS
    enhancer: Optional[Enhancer] = None
    enhancer_timeout: float = ENHANCER_TIMEOUT

    @classmethod
    def from_settings(cls, program: MotionProgram, settings: EngineSettings, **kwargs) -> "MachiningJob":
        return cls(
            program,
            rates=settings.rates(),
            thresholds=settings.resolved_thresholds(),
            enhancer_timeout=settings.enhancer_timeout,
            **kwargs,
        )

    def resolve_tool(self, notes: Optional[list[str]] = None) -> Optional[Tool]:
        """The explicit tool, else the program's tool looked up in ``tools``.

        A failing lookup is logged and treated as an unknown tool.  Lookup
        problems are appended to *notes* when given.
        """
        if notes is None:
            notes = []
        if self.tool is not None:
            return self.tool
        tool_id = self.program.tool_id
        if self.tools is None or tool_id is None:
            return None
        try:
            tool = self.tools.get(tool_id)
        except Exception:
            logger.warning("Tool lookup for %r failed", tool_id, exc_info=True)
            notes.append(f"Tool {tool_id} could not be looked up")
            return None
        if tool is None:
            notes.append(f"Tool {tool_id} is not in the tool library")
        return tool

    def run(self, goals: Iterable[Union[str, OptimizationGoal]] = ("time",)) -> JobReport:
        """Analyze, optimize for *goals*, re-analyze and estimate costs.

        Raises
        ------
        ValueError:
            If *goals* is empty or names an unknown goal.
        """
        notes: list[str] = []
        tool = self.resolve_tool(notes)
        before = analyze(self.program, tool, self.material, self.thresholds)
        optimized = optimize(
            self.program, goals, tool, self.material, self.thresholds,
            enhancer=self.enhancer, enhancer_timeout=self.enhancer_timeout,
        )
        after = analyze(optimized, tool, self.material, self.thresholds)

        cost = optimized_cost = None
        if tool is not None:
            cost = estimate_cost(self.program, tool, self.material, self.rates, self.thresholds)
            optimized_cost = estimate_cost(optimized, tool, self.material, self.rates, self.thresholds)
        else:
            notes.append("No tool available; cost estimation skipped")

        logger.debug(
            "Job %s: %d -> %d issues, %.1f -> %.1f s",
            self.program.name, len(before.issues), len(after.issues),
            before.estimated_time, after.estimated_time,
        )
        return JobReport(before, optimized, after, cost, optimized_cost, tuple(notes))
