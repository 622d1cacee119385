"""Keyed JSON blobs stored under the user's data directory."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, TypeVar


T = TypeVar("T")


def default_data_dir() -> Path:
    return Path.home() / ".bovela"


class PersistenceStore:
    def __init__(self, base_dir: Path | None = None, debug: bool = False) -> None:
        self.base_dir = base_dir or default_data_dir()
        self._debug = debug

    def path_for(self, key: str) -> Path:
        return self.base_dir / key

    def save(self, value: Any, key: str) -> Path:
        target = self.path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(f".{target.name}.tmp")
        tmp.write_text(json.dumps(value, ensure_ascii=True, indent=2), encoding="utf-8")
        os.replace(tmp, target)
        return target

    def load(self, key: str, default: T) -> Any | T:
        target = self.path_for(key)
        if not target.exists():
            return default
        try:
            return json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            if self._debug:
                print(f"[STORE] unreadable {target.name}, using default ({exc})")
            return default
