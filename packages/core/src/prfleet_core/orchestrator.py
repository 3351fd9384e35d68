"""Orchestrator phase tracker.

Records the coarse stage the higher-level review loop says it is in. It never
validates transitions (any phase may follow any phase) and has no effect on
partition coordination: it exists so an operator can see where a long
autonomous run is.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Callable

from prfleet_core.models import OrchestratorProgress, PhaseEntry

PHASES = (
    "escape_check",
    "preflight",
    "label",
    "invoke_agents",
    "poll_wait",
    "spawn_workers",
    "monitor",
    "build_test",
    "complete",
    "error",
    "aborted",
)
TERMINAL_PHASES = ("complete", "error", "aborted")

DEFAULT_DETAIL_MAX_CHARS = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhaseTracker:
    def __init__(self, detail_max_chars: int = DEFAULT_DETAIL_MAX_CHARS, clock: Callable[[], datetime] = _utcnow):
        self._detail_max_chars = detail_max_chars
        self._clock = clock
        self._progress: OrchestratorProgress | None = None

    def update(self, phase: str, detail: str | None = None) -> None:
        """Append a history entry and make phase the current one.

        Reaching a terminal phase stamps completed_at; a later non-terminal
        phase leaves the stamp in place since history is append-only.
        """
        if phase not in PHASES:
            raise ValueError(f"Unknown orchestrator phase: {phase!r}. Choose one of: {', '.join(PHASES)}.")
        if detail is not None and len(detail) > self._detail_max_chars:
            detail = detail[: self._detail_max_chars - 3] + "..."

        now = self._clock()
        if self._progress is None:
            self._progress = OrchestratorProgress(current_phase=phase, detail=detail, started_at=now)
        else:
            self._progress.current_phase = phase
            self._progress.detail = detail
        self._progress.history.append(PhaseEntry(phase=phase, detail=detail, timestamp=now))
        if phase in TERMINAL_PHASES:
            self._progress.completed_at = now

    def snapshot(self) -> OrchestratorProgress | None:
        return copy.deepcopy(self._progress)

    def reset(self) -> None:
        self._progress = None
