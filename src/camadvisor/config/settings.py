"""Engine preferences (persisted to disk)."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field, fields, replace
from pathlib import Path
from typing import Optional

from .defaults import (
    DEFAULT_RATES,
    DEFAULT_THRESHOLDS,
    ENHANCER_TIMEOUT,
    CostRates,
    Thresholds,
)


@dataclass
class EngineSettings:
    """Threshold and rate overrides, serialized to ~/.camadvisor/settings.json.

    ``thresholds`` maps ``Thresholds`` field names to values; unknown names
    are ignored on load.
    """

    thresholds: dict[str, float] = field(default_factory=dict)
    machine_rate: float = DEFAULT_RATES.machine
    labor_rate: float = DEFAULT_RATES.labor
    overhead_rate: float = DEFAULT_RATES.overhead
    currency: str = DEFAULT_RATES.currency
    enhancer_timeout: float = ENHANCER_TIMEOUT

    @staticmethod
    def default_path() -> Path:
        return Path.home() / ".camadvisor" / "settings.json"

    def save(self, path: Optional[Path] = None) -> None:
        p = path or self.default_path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "EngineSettings":
        p = path or cls.default_path()
        if p.exists():
            data = json.loads(p.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        return cls()

    def resolved_thresholds(self) -> Thresholds:
        """Default thresholds with the known overrides applied."""
        known = {f.name for f in fields(Thresholds)}
        overrides = {k: float(v) for k, v in self.thresholds.items() if k in known}
        return replace(DEFAULT_THRESHOLDS, **overrides)

    def rates(self) -> CostRates:
        return CostRates(
            machine=self.machine_rate,
            labor=self.labor_rate,
            overhead=self.overhead_rate,
            currency=self.currency,
        )
