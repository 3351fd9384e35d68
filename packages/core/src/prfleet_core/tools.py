"""Call handlers for worker agents and the orchestrator.

Each handler takes plain arguments as they arrive from a remote caller,
validates them, drives the CoordinationService and returns a JSON-ready
dict. Violated preconditions raise a CoordinationError subclass; the
transport turns those into error replies with CoordinationError.to_dict().

The service is passed in explicitly — there is no module-level instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prfleet_core.errors import InvalidInputError, NotFoundError, PermissionDeniedError
from prfleet_core.models import DONE, REPORTABLE_STATUSES, SKIPPED, PartitionResult, PRInfo
from prfleet_core.orchestrator import PHASES
from prfleet_core.partitions import build_partitions

if TYPE_CHECKING:
    from prfleet_core.coordinator import CoordinationService
    from prfleet_core.gh.classifier import GitHubClassifier

logger = logging.getLogger(__name__)


def parse_pr_info(data: dict | PRInfo | None) -> PRInfo | None:
    if data is None or isinstance(data, PRInfo):
        return data
    owner = data.get("owner")
    repo = data.get("repo")
    number = data.get("pr", data.get("number"))
    if not owner or not repo:
        raise InvalidInputError("pr_info requires non-empty 'owner' and 'repo'.")
    if not isinstance(number, int) or isinstance(number, bool) or number <= 0:
        raise InvalidInputError("pr_info requires a positive integer 'pr'.")
    return PRInfo(owner=owner, repo=repo, number=number)


def parse_result(data: dict | None) -> PartitionResult | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise InvalidInputError("result must be an object.")
    errors = data.get("errors") or []
    if not isinstance(errors, list):
        raise InvalidInputError("result.errors must be a list of strings.")
    try:
        processed = int(data.get("comments_processed", 0))
        resolved = int(data.get("comments_resolved", 0))
    except (TypeError, ValueError):
        raise InvalidInputError("result counts must be integers.")
    return PartitionResult(comments_processed=processed, comments_resolved=resolved, errors=[str(e) for e in errors])


def _require_agent_id(agent_id: str) -> None:
    if not agent_id or not agent_id.strip():
        raise InvalidInputError("agent_id must be a non-empty string.")


def _check_run_id(service: CoordinationService, run_id: str | None) -> None:
    if run_id is None:
        return
    run = service.get_current_run()
    if run is None or run.run_id != run_id:
        raise NotFoundError(f"Run {run_id} is not the active coordination run.")


def _start_run(service: CoordinationService, classifier: GitHubClassifier, pr_info: PRInfo, force: bool) -> str:
    # Fail fast before the network round-trip; start_run re-checks under the lock.
    service.check_replaceable(pr_info, force=force)
    classification = classifier.classify(pr_info)
    partitions = build_partitions(classification.items)
    return service.start_run(pr_info, classification.head_sha, partitions, force=force)


def _refresh_run(service: CoordinationService, classifier: GitHubClassifier, pr_info: PRInfo, run_id: str) -> int:
    classification = classifier.classify(pr_info)
    touched = service.add_partitions(
        build_partitions(classification.items), head_sha=classification.head_sha, expected_run_id=run_id
    )
    if touched:
        logger.info("Refresh of %s found new work in %d partition(s)", pr_info, touched)
    return touched


def claim_work(
    service: CoordinationService,
    classifier: GitHubClassifier,
    agent_id: str,
    run_id: str | None = None,
    pr_info: dict | PRInfo | None = None,
    force: bool = False,
) -> dict:
    """Claim the next file for agent_id, starting or replacing a run if asked to.

    pr_info is only needed when there is no run yet, or to switch the run to
    another PR (subject to the replacement guard). When nothing is pending
    and every partition is finished, the classifier is polled once more so
    comments that arrived mid-run are picked up before reporting no_work.
    """
    _require_agent_id(agent_id)
    requested = parse_pr_info(pr_info)
    _check_run_id(service, run_id)

    run = service.get_current_run()
    started = False
    if run is None:
        if requested is None:
            raise NotFoundError("No active coordination run. Provide pr_info to start a new run.")
        _start_run(service, classifier, requested, force)
        started = True
    elif requested is not None and requested != run.pr_info:
        _start_run(service, classifier, requested, force)
        started = True

    partition = service.claim_partition(agent_id)

    # No refresh poll for a run this call just classified.
    if partition is None and not started and service.all_partitions_done():
        current = service.get_current_run()
        if current is not None and _refresh_run(service, classifier, current.pr_info, current.run_id):
            partition = service.claim_partition(agent_id)

    if partition is None:
        return {"status": "no_work", "message": "No pending partitions available."}

    return {"status": "claimed", "partition": partition.to_dict()}


def report_progress(
    service: CoordinationService,
    agent_id: str,
    file: str,
    status: str,
    result: dict | None = None,
) -> dict:
    _require_agent_id(agent_id)
    if not file:
        raise InvalidInputError("file must be a non-empty string.")
    if status not in REPORTABLE_STATUSES:
        raise InvalidInputError(f"status must be one of: {', '.join(REPORTABLE_STATUSES)}.")
    if service.get_current_run() is None:
        raise NotFoundError("No active coordination run.")
    if not service.has_partition(file):
        raise NotFoundError(f"File {file} is not part of the current run.")

    if not service.report_progress(agent_id, file, status, parse_result(result)):
        return {
            "status": "error",
            "message": "Failed to report progress. Partition may not be claimed by this agent or run is not active.",
        }

    return {"status": "success", "file": file, "new_status": DONE if status == SKIPPED else status}


def get_work_status(
    service: CoordinationService,
    run_id: str | None = None,
    review_bots: dict | None = None,
) -> dict:
    """Return a status snapshot for monitors and the orchestrator.

    review_bots carries reviewer-bot readiness gathered by the caller (for
    example from a poll of the PR) and is merged in untouched. Its
    all_agents_ready flag, when present and false, holds is_fully_complete
    back: a bot still reviewing may post more comments.
    """
    _check_run_id(service, run_id)

    status = service.get_status()
    status["is_active"] = service.is_run_active()
    status["run_age"] = service.get_run_age()

    progress = service.get_orchestrator_progress()
    status["orchestrator"] = progress.to_dict() if progress is not None else None

    if review_bots is not None:
        status["review_bots"] = review_bots

    counts = status.get("progress", {})
    bots_ready = review_bots is None or review_bots.get("all_agents_ready", True)
    status["is_fully_complete"] = bool(
        status.get("completed_at") and counts.get("pending", 0) == 0 and counts.get("claimed", 0) == 0 and bots_ready
    )
    return status


def reset_coordination(service: CoordinationService, confirm: bool = False) -> dict:
    if confirm is not True:
        raise PermissionDeniedError("Resetting coordination discards the run. Pass confirm=true to proceed.")
    service.reset_run()
    return {"status": "reset", "message": "Coordination state cleared."}


def progress_update(service: CoordinationService, phase: str, detail: str | None = None) -> dict:
    if phase not in PHASES:
        raise InvalidInputError(f"Unknown phase {phase!r}. Choose one of: {', '.join(PHASES)}.")
    service.update_orchestrator_phase(phase, detail)
    return {"status": "ok", "phase": phase}


def progress_check(service: CoordinationService) -> dict:
    progress = service.get_orchestrator_progress()
    if progress is None:
        return {"status": "not_started", "message": "No orchestrator progress reported yet."}
    return {"status": "ok", **progress.to_dict()}


def mark_nitpick_resolved(store, pr_info: dict | PRInfo, nitpick_id: str, agent_id: str) -> dict:
    """Record a synthetic comment as resolved in the durable nitpick store."""
    _require_agent_id(agent_id)
    info = parse_pr_info(pr_info)
    if info is None:
        raise InvalidInputError("pr_info is required.")
    if not nitpick_id:
        raise InvalidInputError("nitpick_id must be a non-empty string.")
    resolution = store.mark_resolved(info.full_name, info.number, nitpick_id, agent_id)
    return {
        "status": "resolved",
        "nitpick_id": nitpick_id,
        "resolved_at": resolution.resolved_at,
        "resolved_by": resolution.resolved_by,
    }
