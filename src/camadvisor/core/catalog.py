"""Read-only JSON-backed catalogs used to look up tools and materials by id."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class JsonCatalog(Generic[T]):
    """Identifier-keyed lookup table loaded from a JSON list of records.

    Subclasses supply ``_decode`` (record -> entry).  Entries must expose an
    ``id`` attribute.  The catalog is never written back to disk.
    """

    _decode: Callable[[dict], T]

    def __init__(self, path: Optional[Path] = None):
        self._path = path
        self._entries: dict[str, T] = {}
        if self._path is not None and self._path.exists():
            self.load()

    def add(self, entry: T) -> None:
        self._entries[entry.id] = entry

    def get(self, entry_id: str) -> Optional[T]:
        return self._entries.get(entry_id)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[T]:
        return sorted(self._entries.values(), key=lambda e: e.id)

    def load(self) -> None:
        """Replace the catalog contents with the records in the backing file.

        Raises
        ------
        ValueError:
            If the file does not hold a JSON list, or a record is invalid.
        """
        if self._path is None:
            raise ValueError("Catalog has no backing file")
        data = json.loads(self._path.read_text())
        if not isinstance(data, list):
            raise ValueError(f"{self._path}: expected a JSON list of records")
        self._entries = {}
        for record in data:
            self.add(type(self)._decode(record))
