"""
File-backed scratch store for small persisted scalars (utility window ids).
"""

import json
from pathlib import Path
from typing import Any, Optional

from spaces_engine.stores.base import ScratchStore

SCRATCH_FILE = Path.home() / ".spaces" / "scratch.json"


class JsonScratchStore(ScratchStore):
    def __init__(self, path: Path = SCRATCH_FILE):
        self._path = path

    def _load(self) -> dict[str, Any]:
        try:
            return json.loads(self._path.read_text())
        except (FileNotFoundError, json.JSONDecodeError):
            return {}

    def _save(self, values: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(values, indent=2))

    async def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    async def set(self, key: str, value: Any) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    async def remove(self, key: str) -> None:
        values = self._load()
        if key in values:
            del values[key]
            self._save(values)
