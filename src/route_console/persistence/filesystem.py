"""File-based persistence for planning run outputs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from ..config import settings


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV run outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "plan") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{prefix}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def write_run(self, prefix: str, files: Mapping[str, Any]) -> Path:
        """Create a run directory and write each named file; ``.json`` names are JSON-encoded."""
        run_dir = self.make_run_directory(prefix=prefix)
        for name, content in files.items():
            if name.endswith(".json"):
                self.write_json(run_dir / name, content)
            else:
                self.write_csv(run_dir / name, content)
        return run_dir
