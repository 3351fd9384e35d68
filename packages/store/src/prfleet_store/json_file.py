"""JSONFileStore — per-PR JSON files for nitpick resolutions.

Data format: one file per PR, `<owner>/<name>/nitpicks-<number>.json`
under the configured status directory, holding a JSON object that maps
synthetic comment id → {"resolvedAt": ..., "resolvedBy": ...}.

Only one PR's resolutions are cached at a time. Touching a different PR
flushes the cached one to disk and loads the other. Writes go to a temp
file that is then renamed over the target, so a crash never leaves a
half-written file behind. A missing or unreadable file means nothing has
been resolved yet.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

from prfleet_store.base import BaseNitpickStore
from prfleet_store.models import NitpickResolution

logger = logging.getLogger(__name__)


class JSONFileStore(BaseNitpickStore):
    def __init__(self, status_dir: str = ".agent/status"):
        self._status_dir = Path(status_dir)
        self._lock = threading.Lock()
        self._cache: dict[str, NitpickResolution] = {}
        self._cached_pr: tuple[str, int] | None = None

    def path_for(self, repo: str, pr_number: int) -> Path:
        owner, _, name = repo.partition("/")
        return self._status_dir / owner / name / f"nitpicks-{pr_number}.json"

    def mark_resolved(self, repo: str, pr_number: int, nitpick_id: str, resolved_by: str) -> NitpickResolution:
        with self._lock:
            self._ensure_loaded(repo, pr_number)
            resolution = NitpickResolution(resolved_at=datetime.now(timezone.utc).isoformat(), resolved_by=resolved_by)
            self._cache[nitpick_id] = resolution
            self._persist(repo, pr_number)
            return resolution

    def is_resolved(self, repo: str, pr_number: int, nitpick_id: str) -> bool:
        with self._lock:
            self._ensure_loaded(repo, pr_number)
            return nitpick_id in self._cache

    def list_resolved(self, repo: str, pr_number: int) -> dict[str, NitpickResolution]:
        with self._lock:
            self._ensure_loaded(repo, pr_number)
            return dict(self._cache)

    def close(self) -> None:
        with self._lock:
            if self._cached_pr is not None and self._cache:
                self._persist(*self._cached_pr)

    def _ensure_loaded(self, repo: str, pr_number: int) -> None:
        if self._cached_pr == (repo, pr_number):
            return

        if self._cached_pr is not None and self._cache:
            self._persist(*self._cached_pr)

        self._cache = self._read(self.path_for(repo, pr_number))
        self._cached_pr = (repo, pr_number)

    def _read(self, path: Path) -> dict[str, NitpickResolution]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8")) or {}
            return {nitpick_id: NitpickResolution.from_dict(entry) for nitpick_id, entry in data.items()}
        except (OSError, ValueError, AttributeError) as e:
            # ValueError covers JSONDecodeError and UnicodeDecodeError.
            logger.warning("Could not read nitpick resolutions from %s (%s); starting empty", path, e)
            return {}

    def _persist(self, repo: str, pr_number: int) -> None:
        path = self.path_for(repo, pr_number)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        data = {nitpick_id: r.to_dict() for nitpick_id, r in self._cache.items()}
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
