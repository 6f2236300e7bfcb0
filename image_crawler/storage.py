"""Filesystem export of crawl results.

Storage owns the on-disk layout. Other modules should use this API instead of
building paths manually.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Mapping

from .constants import DEFAULT_EXPORT_FOLDER, DEFAULT_EXPORT_PREFIX, JSON_INDENT
from .types import ImageRecord


class Storage:
    """Persist crawl outputs under a single `export_folder` root.

    Results land in `<export_folder>/<prefix>-<hostname>-<session_id>.json` as
    `{"result": [{"imageUrl": ..., "sourceUrl": ..., "depth": ...}, ...]}`.
    """

    def __init__(
        self,
        export_folder: str | Path = DEFAULT_EXPORT_FOLDER,
        *,
        prefix: str = DEFAULT_EXPORT_PREFIX,
    ) -> None:
        self.export_folder = Path(export_folder)
        self.prefix = prefix
        self.logs_dir = self.export_folder / "logs"

    def result_path_for(self, hostname: str, session_id: str) -> Path:
        """Build the result file path for one session."""

        return self.export_folder / f"{self.prefix}-{self._safe_name(hostname)}-{session_id}.json"

    def stats_path_for(self, hostname: str, session_id: str) -> Path:
        return self.export_folder / f"{self.prefix}-{self._safe_name(hostname)}-{session_id}.stats.json"

    def save_result(
        self,
        records: Iterable[ImageRecord],
        *,
        hostname: str,
        session_id: str,
    ) -> Path:
        """Write the result document atomically and return its path."""

        path = self.result_path_for(hostname, session_id)
        self._atomic_write_json(path, result_document(records))
        return path

    def save_stats(self, stats: Mapping[str, Any], *, hostname: str, session_id: str) -> Path:
        path = self.stats_path_for(hostname, session_id)
        self._atomic_write_json(path, dict(stats))
        return path

    @staticmethod
    def _safe_name(hostname: str) -> str:
        host = hostname.strip().lower() or "unknown"
        return "".join(char if (char.isalnum() or char in {".", "-", "_"}) else "_" for char in host)

    @staticmethod
    def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT) + "\n"
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


def result_document(records: Iterable[ImageRecord]) -> dict[str, Any]:
    """Build the exported JSON document for a record sequence."""

    return {"result": [record.to_json() for record in records]}


__all__ = ["Storage", "result_document"]
