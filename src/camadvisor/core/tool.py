"""Cutting tool definitions and the tool catalog."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from .catalog import JsonCatalog
from .material import MaterialKind


class ToolKind(Enum):
    END_MILL = "end_mill"
    BALL_MILL = "ball_mill"
    BULL_NOSE_MILL = "bull_nose_mill"
    FACE_MILL = "face_mill"
    CHAMFER_MILL = "chamfer_mill"
    V_BIT = "v_bit"
    DRILL = "drill"
    TAP = "tap"
    REAMER = "reamer"
    BORING_BAR = "boring_bar"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Tool:
    """A cutting tool definition.

    Dimensions are in mm, feed rates in mm/min, ``lifespan`` in minutes of
    cutting.  ``material`` and ``coating`` are free text such as
    ``"carbide"`` or ``"TiAlN"``.
    """
    id: str
    name: str
    kind: ToolKind
    diameter: float
    flute_count: int = 2
    material: str = ""
    coating: str = ""
    max_feed_rate: Optional[float] = None
    max_spindle_speed: Optional[float] = None
    max_cutting_depth: Optional[float] = None
    max_stepover: Optional[float] = None
    price: Optional[float] = None
    lifespan: Optional[float] = None
    recommended_materials: tuple[MaterialKind, ...] = ()

    @property
    def radius(self) -> float:
        return self.diameter / 2.0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        d["recommended_materials"] = [m.value for m in self.recommended_materials]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Tool:
        """Build a tool from a plain record.

        Raises
        ------
        ValueError:
            If a required field is missing or an enum value is unknown.
        """
        missing = [k for k in ("id", "name", "kind", "diameter") if k not in d]
        if missing:
            raise ValueError(f"Tool record missing fields: {', '.join(missing)}")
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        try:
            d["kind"] = ToolKind(d["kind"])
            d["recommended_materials"] = tuple(
                MaterialKind(m) for m in d.get("recommended_materials", ())
            )
        except ValueError as exc:
            raise ValueError(f"Tool {d['id']!r}: {exc}") from None
        d["diameter"] = float(d["diameter"])
        return cls(**d)


class ToolLibrary(JsonCatalog[Tool]):
    """Read-only tool catalog backed by a JSON file."""

    _decode = Tool.from_dict

    def list_tools(self) -> list[Tool]:
        return sorted(self.entries(), key=lambda t: (t.kind.value, t.diameter))
