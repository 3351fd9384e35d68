"""Coordination data models.

Plain dataclasses so the engine stays free of any transport or persistence
concerns. The call handlers in prfleet_core.tools convert them to dicts via
to_dict() before handing them to remote callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

PENDING = "pending"
CLAIMED = "claimed"
DONE = "done"
FAILED = "failed"
SKIPPED = "skipped"

# Statuses a worker may report. "skipped" is folded into DONE on storage.
REPORTABLE_STATUSES = (DONE, FAILED, SKIPPED)
TERMINAL_STATUSES = (DONE, FAILED)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class PRInfo:
    """Identity of the pull request a run is coordinating."""

    owner: str
    repo: str
    number: int

    @classmethod
    def parse(cls, full_name: str, number: int) -> PRInfo:
        """Build a PRInfo from "owner/name" and a PR number."""
        owner, sep, repo = full_name.partition("/")
        if not sep or not owner or not repo or "/" in repo:
            raise ValueError(f"Repository must be in owner/name format, got {full_name!r}.")
        return cls(owner=owner, repo=repo, number=number)

    @property
    def key(self) -> str:
        return f"{self.owner}-{self.repo}-{self.number}"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"

    def to_dict(self) -> dict:
        return {"owner": self.owner, "repo": self.repo, "pr": self.number}


@dataclass
class PartitionResult:
    """What a worker reports back when it finishes a file."""

    comments_processed: int = 0
    comments_resolved: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "comments_processed": self.comments_processed,
            "comments_resolved": self.comments_resolved,
            "errors": list(self.errors),
        }


@dataclass
class FilePartition:
    """The claimable unit of work: every outstanding item on one file.

    claimed_by and claimed_at are set if and only if status is CLAIMED.
    skipped records that the worker reported "skipped"; the stored status
    is still DONE so completion only has to look at status.
    """

    file: str
    comments: list[str] = field(default_factory=list)
    severity: str = "N/A"
    status: str = PENDING
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    result: PartitionResult | None = None
    skipped: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "comments": list(self.comments),
            "severity": self.severity,
            "status": self.status,
            "claimed_by": self.claimed_by,
            "claimed_at": _iso(self.claimed_at),
            "result": self.result.to_dict() if self.result is not None else None,
            "skipped": self.skipped,
        }


@dataclass
class AgentState:
    """Per-worker bookkeeping, created the first time an agent calls in."""

    agent_id: str
    last_seen: datetime
    claimed_files: list[str] = field(default_factory=list)
    completed_files: list[str] = field(default_factory=list)  # append-only

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "claimed_count": len(self.claimed_files),
            "completed_count": len(self.completed_files),
            "last_seen": _iso(self.last_seen),
        }


@dataclass
class CoordinationRun:
    """One coordination pass over a single PR's outstanding review items.

    partitions preserves insertion order, which is the claim order: the
    partition builder hands them over most-severe first.
    """

    run_id: str
    pr_info: PRInfo
    head_sha: str
    started_at: datetime
    partitions: dict[str, FilePartition] = field(default_factory=dict)
    agents: dict[str, AgentState] = field(default_factory=dict)
    completed_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


@dataclass
class PhaseEntry:
    phase: str
    detail: str | None
    timestamp: datetime

    def to_dict(self) -> dict:
        return {"phase": self.phase, "detail": self.detail, "timestamp": _iso(self.timestamp)}


@dataclass
class OrchestratorProgress:
    """Coarse progress of the higher-level review loop, for observability only."""

    current_phase: str
    detail: str | None
    started_at: datetime
    history: list[PhaseEntry] = field(default_factory=list)
    completed_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "current_phase": self.current_phase,
            "detail": self.detail,
            "history": [entry.to_dict() for entry in self.history],
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
        }
