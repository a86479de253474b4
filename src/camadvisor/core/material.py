"""Workpiece material definitions and the material catalog."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from .catalog import JsonCatalog


class MaterialKind(Enum):
    ALUMINUM = "aluminum"
    STEEL = "steel"
    STAINLESS_STEEL = "stainless_steel"
    BRASS = "brass"
    COPPER = "copper"
    TITANIUM = "titanium"
    PLASTIC = "plastic"
    WOOD = "wood"
    COMPOSITE = "composite"
    FOAM = "foam"
    CUSTOM = "custom"

    @property
    def is_hard(self) -> bool:
        """Difficult-to-machine alloys that need reduced parameters."""
        return self in (MaterialKind.STAINLESS_STEEL, MaterialKind.TITANIUM)

    @property
    def is_soft(self) -> bool:
        return self in (MaterialKind.ALUMINUM, MaterialKind.PLASTIC, MaterialKind.WOOD)


@dataclass(frozen=True)
class Material:
    """A workpiece material.

    ``hardness`` is in HRC, ``machinability`` is a 0-100 index, ``density`` is
    in g/cm^3 and ``price`` is per cm^3.
    """
    id: str
    name: str
    kind: MaterialKind
    hardness: Optional[float] = None
    machinability: Optional[float] = None
    density: Optional[float] = None
    price: Optional[float] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Material:
        """Build a material from a plain record.

        Raises
        ------
        ValueError:
            If ``id``, ``name`` or ``kind`` is missing, or ``kind`` is unknown.
        """
        missing = [k for k in ("id", "name", "kind") if k not in d]
        if missing:
            raise ValueError(f"Material record missing fields: {', '.join(missing)}")
        d = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        try:
            d["kind"] = MaterialKind(d["kind"])
        except ValueError:
            raise ValueError(f"Unknown material kind: {d['kind']!r}") from None
        return cls(**d)


class MaterialLibrary(JsonCatalog[Material]):
    """Read-only material catalog backed by a JSON file."""

    _decode = Material.from_dict

    def list_materials(self) -> list[Material]:
        return self.entries()
