"""Partition claim & coordination engine.

One CoordinationService instance is created per process and handed to every
call handler. It holds at most one CoordinationRun and serialises every
operation on it behind a single lock, so claims and progress reports are
linearizable against each other no matter how many worker threads call in:

    init_run()          → partitions start pending (empty run is complete)
    claim_partition()   → stale cleanup, heartbeat, claim first pending file
    report_progress()   → owner-checked move to done/failed, completion check
    add_partitions()    → merge newly classified items into the live run

Liveness is heartbeat-based: an agent that has not called in for
stale_agent_timeout seconds loses its claims at the next claim by anyone.
A slow agent that keeps calling is never reclaimed.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from prfleet_core.errors import PermissionDeniedError
from prfleet_core.models import (
    CLAIMED,
    DONE,
    FAILED,
    PENDING,
    REPORTABLE_STATUSES,
    SKIPPED,
    AgentState,
    CoordinationRun,
    FilePartition,
    OrchestratorProgress,
    PartitionResult,
    PRInfo,
)
from prfleet_core.orchestrator import DEFAULT_DETAIL_MAX_CHARS, PhaseTracker
from prfleet_core.severity import max_severity

logger = logging.getLogger(__name__)

DEFAULT_STALE_AGENT_TIMEOUT = 5 * 60
DEFAULT_STALE_RUN_THRESHOLD = 5 * 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CoordinationService:
    def __init__(
        self,
        stale_agent_timeout: float = DEFAULT_STALE_AGENT_TIMEOUT,
        stale_run_threshold: float = DEFAULT_STALE_RUN_THRESHOLD,
        detail_max_chars: int = DEFAULT_DETAIL_MAX_CHARS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.stale_agent_timeout = stale_agent_timeout
        self.stale_run_threshold = stale_run_threshold
        self._clock = clock
        self._lock = threading.RLock()
        self._run: CoordinationRun | None = None
        self._phases = PhaseTracker(detail_max_chars=detail_max_chars, clock=clock)

    @classmethod
    def from_config(cls, config: dict, clock: Callable[[], datetime] = _utcnow) -> CoordinationService:
        return cls(
            stale_agent_timeout=config.get("stale_agent_timeout", DEFAULT_STALE_AGENT_TIMEOUT),
            stale_run_threshold=config.get("stale_run_threshold", DEFAULT_STALE_RUN_THRESHOLD),
            detail_max_chars=config.get("detail_max_chars", DEFAULT_DETAIL_MAX_CHARS),
            clock=clock,
        )

    # ------------------------------------------------------------------ #
    # Run registry                                                        #
    # ------------------------------------------------------------------ #

    def init_run(self, pr_info: PRInfo, head_sha: str, partitions: Iterable[FilePartition]) -> str:
        """Start a new run, unconditionally discarding any previous one.

        Callers that must not clobber another orchestration's run go through
        start_run(), which applies the replacement guard first.
        """
        with self._lock:
            if self._run is not None:
                state = "completed" if self._run.is_complete else "active"
                logger.warning(
                    "Replacing %s run %s for %s with new run for %s", state, self._run.run_id, self._run.pr_info, pr_info
                )

            partitions_map: dict[str, FilePartition] = {}
            for p in partitions:
                partitions_map[p.file] = replace(
                    p,
                    comments=list(dict.fromkeys(p.comments)),
                    status=PENDING,
                    claimed_by=None,
                    claimed_at=None,
                    result=None,
                    skipped=False,
                )

            self._run = CoordinationRun(
                run_id=str(uuid.uuid4()),
                pr_info=pr_info,
                head_sha=head_sha,
                started_at=self._clock(),
                partitions=partitions_map,
            )
            # An empty PR has nothing to claim and is complete straight away.
            self._check_completion()
            logger.info("Started run %s for %s with %d partition(s)", self._run.run_id, pr_info, len(partitions_map))
            return self._run.run_id

    def check_replaceable(self, pr_info: PRInfo, force: bool = False) -> None:
        """Raise PermissionDeniedError if a run for pr_info may not replace the current one.

        Replacement is allowed when there is no run, the run is for the same
        PR, force is set, the run already completed, or the run is older than
        stale_run_threshold (an "active" run that old is presumed abandoned).
        """
        with self._lock:
            run = self._run
            if run is None or run.pr_info == pr_info or force or run.is_complete:
                return
            age = (self._clock() - run.started_at).total_seconds()
            if age > self.stale_run_threshold:
                logger.info("Run %s for %s is stale (%.0fs old); allowing replacement", run.run_id, run.pr_info, age)
                return
            raise PermissionDeniedError(
                f"Active run exists for {run.pr_info}, cannot start a run for {pr_info}. "
                "Wait for it to finish or pass force to replace it."
            )

    def start_run(
        self, pr_info: PRInfo, head_sha: str, partitions: Iterable[FilePartition], force: bool = False
    ) -> str:
        """Guarded init_run: reuse a run for the same PR, refuse to clobber a live one.

        Classification happens outside the lock, so two callers may race to
        start the same PR; the loser gets the winner's run id back.
        """
        with self._lock:
            if self._run is not None and self._run.pr_info == pr_info:
                return self._run.run_id
            self.check_replaceable(pr_info, force=force)
            return self.init_run(pr_info, head_sha, partitions)

    def reset_run(self) -> None:
        with self._lock:
            if self._run is not None:
                logger.warning("Resetting run %s for %s", self._run.run_id, self._run.pr_info)
            self._run = None
            self._phases.reset()

    def force_complete(self) -> bool:
        """Mark the run complete regardless of partition states.

        Returns False when there is no run or it already completed.
        """
        with self._lock:
            if self._run is None or self._run.is_complete:
                return False
            self._run.completed_at = self._clock()
            logger.warning("Run %s force-completed", self._run.run_id)
            return True

    # ------------------------------------------------------------------ #
    # Claim & progress                                                    #
    # ------------------------------------------------------------------ #

    def claim_partition(self, agent_id: str) -> FilePartition | None:
        """Atomically hand the first pending partition to agent_id.

        Returns a copy of the claimed partition, or None when nothing is
        pending. Partitions are scanned in stored order, which is severity
        order from the partition builder.
        """
        with self._lock:
            if self._run is None:
                return None

            self._cleanup_stale_agents(self.stale_agent_timeout)
            agent = self._touch_agent(agent_id)

            for partition in self._run.partitions.values():
                if partition.status != PENDING:
                    continue
                partition.status = CLAIMED
                partition.claimed_by = agent_id
                partition.claimed_at = self._clock()
                agent.claimed_files.append(partition.file)
                logger.debug("Agent %s claimed %s", agent_id, partition.file)
                return copy.deepcopy(partition)

            return None

    def report_progress(
        self,
        agent_id: str,
        file: str,
        status: str,
        result: PartitionResult | None = None,
    ) -> bool:
        """Move a claimed partition to a terminal state.

        Returns False, without raising, unless the partition is currently
        claimed by agent_id: an agent whose claim was reclaimed as stale must
        not complete work that now belongs to someone else. "skipped" is
        stored as DONE with the skipped flag set.
        """
        if status not in REPORTABLE_STATUSES:
            raise ValueError(f"Invalid progress status: {status!r}. Choose one of: {', '.join(REPORTABLE_STATUSES)}.")

        with self._lock:
            if self._run is None:
                return False
            partition = self._run.partitions.get(file)
            if partition is None:
                return False
            if partition.status != CLAIMED or partition.claimed_by != agent_id:
                logger.debug(
                    "Rejected %s report from %s on %s (status=%s, owner=%s)",
                    status,
                    agent_id,
                    file,
                    partition.status,
                    partition.claimed_by,
                )
                return False

            partition.status = DONE if status == SKIPPED else status
            partition.skipped = status == SKIPPED
            partition.claimed_by = None
            partition.claimed_at = None
            partition.result = result

            agent = self._touch_agent(agent_id)
            agent.claimed_files = [f for f in agent.claimed_files if f != file]
            agent.completed_files.append(file)

            self._check_completion()
            return True

    # ------------------------------------------------------------------ #
    # Liveness                                                            #
    # ------------------------------------------------------------------ #

    def cleanup_stale_agents(self, timeout: float | None = None) -> list[str]:
        """Re-queue partitions held by agents silent for longer than timeout seconds.

        Returns the files put back to pending.
        """
        with self._lock:
            return self._cleanup_stale_agents(self.stale_agent_timeout if timeout is None else timeout)

    def _cleanup_stale_agents(self, timeout: float) -> list[str]:
        if self._run is None:
            return []

        now = self._clock()
        limit = timedelta(seconds=timeout)
        requeued: list[str] = []

        for agent_id, agent in list(self._run.agents.items()):
            if now - agent.last_seen <= limit:
                continue

            released = 0
            for file in agent.claimed_files:
                partition = self._run.partitions.get(file)
                if partition is not None and partition.status == CLAIMED and partition.claimed_by == agent_id:
                    partition.status = PENDING
                    partition.claimed_by = None
                    partition.claimed_at = None
                    requeued.append(file)
                    released += 1

            # Keep agents that finished something so their history still shows in status.
            if agent.completed_files:
                agent.claimed_files = []
            else:
                del self._run.agents[agent_id]

            logger.info("Agent %s went stale; re-queued %d partition(s)", agent_id, released)

        return requeued

    # ------------------------------------------------------------------ #
    # Mid-run refresh                                                     #
    # ------------------------------------------------------------------ #

    def add_partitions(
        self,
        partitions: Iterable[FilePartition],
        head_sha: str | None = None,
        expected_run_id: str | None = None,
    ) -> int:
        """Merge newly classified partitions into the live run.

        New files become pending partitions; known files gain any new item
        ids. A finished partition that gains items is reopened, and so is a
        completed run. Returns the number of partitions added or extended.

        With expected_run_id, nothing is merged unless that run is still the
        current one: the items were classified for that run's PR.
        """
        with self._lock:
            if self._run is None:
                return 0
            if expected_run_id is not None and self._run.run_id != expected_run_id:
                logger.info(
                    "Discarding refresh for run %s; run %s for %s replaced it",
                    expected_run_id,
                    self._run.run_id,
                    self._run.pr_info,
                )
                return 0

            touched = 0
            for p in partitions:
                existing = self._run.partitions.get(p.file)
                if existing is None:
                    self._run.partitions[p.file] = replace(
                        p,
                        comments=list(dict.fromkeys(p.comments)),
                        status=PENDING,
                        claimed_by=None,
                        claimed_at=None,
                        result=None,
                        skipped=False,
                    )
                    touched += 1
                    continue

                new_ids = [c for c in dict.fromkeys(p.comments) if c not in existing.comments]
                if not new_ids:
                    continue

                existing.comments.extend(new_ids)
                existing.severity = max_severity(existing.severity, p.severity)
                if existing.is_terminal:
                    existing.status = PENDING
                    existing.result = None
                    existing.skipped = False
                touched += 1

            if head_sha:
                self._run.head_sha = head_sha

            if touched and self._run.is_complete:
                logger.warning("Reopening completed run %s: added/updated %d partition(s)", self._run.run_id, touched)
                self._run.completed_at = None

            return touched

    def all_partitions_done(self) -> bool:
        with self._lock:
            if self._run is None:
                return False
            return all(p.is_terminal for p in self._run.partitions.values())

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #

    def get_current_run(self) -> CoordinationRun | None:
        with self._lock:
            return copy.deepcopy(self._run)

    def has_partition(self, file: str) -> bool:
        with self._lock:
            return self._run is not None and file in self._run.partitions

    def is_run_active(self) -> bool:
        with self._lock:
            return self._run is not None and not self._run.is_complete

    def get_run_age(self) -> float | None:
        """Seconds since the current run started, or None without a run."""
        with self._lock:
            if self._run is None:
                return None
            return (self._clock() - self._run.started_at).total_seconds()

    def get_status(self) -> dict:
        with self._lock:
            run = self._run
            if run is None:
                return {"active": False}

            counts = {PENDING: 0, CLAIMED: 0, DONE: 0, FAILED: 0}
            for p in run.partitions.values():
                counts[p.status] += 1

            return {
                "active": not run.is_complete,
                "run_id": run.run_id,
                "pr_info": run.pr_info.to_dict(),
                "head_sha": run.head_sha,
                "progress": counts,
                "skipped": sum(1 for p in run.partitions.values() if p.skipped),
                "total": len(run.partitions),
                "agents": [a.to_dict() for a in run.agents.values()],
                "started_at": run.started_at.isoformat(),
                "completed_at": run.completed_at.isoformat() if run.completed_at else None,
            }

    # ------------------------------------------------------------------ #
    # Orchestrator phases                                                 #
    # ------------------------------------------------------------------ #

    def update_orchestrator_phase(self, phase: str, detail: str | None = None) -> None:
        with self._lock:
            self._phases.update(phase, detail)

    def get_orchestrator_progress(self) -> OrchestratorProgress | None:
        with self._lock:
            return self._phases.snapshot()

    # ------------------------------------------------------------------ #
    # Helpers                                                             #
    # ------------------------------------------------------------------ #

    def _touch_agent(self, agent_id: str) -> AgentState:
        now = self._clock()
        agent = self._run.agents.get(agent_id)
        if agent is None:
            agent = AgentState(agent_id=agent_id, last_seen=now)
            self._run.agents[agent_id] = agent
        else:
            agent.last_seen = now
        return agent

    def _check_completion(self) -> None:
        run = self._run
        if run is None or run.is_complete:
            return
        if all(p.is_terminal for p in run.partitions.values()):
            run.completed_at = self._clock()
            logger.info("Run %s for %s complete", run.run_id, run.pr_info)
