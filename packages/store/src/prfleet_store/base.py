"""Abstract store interface for manually-resolved synthetic comments.

The coordination engine keeps everything else in memory and rebuilds it
from the classifier; these resolutions are the one thing that must survive
a restart, because the classifier cannot see them on GitHub.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prfleet_store.models import NitpickResolution


class BaseNitpickStore(ABC):
    """Pluggable persistence for nitpick resolutions, keyed by PR.

    repo is always "owner/name"; pr_number is the pull request number.
    """

    @abstractmethod
    def mark_resolved(self, repo: str, pr_number: int, nitpick_id: str, resolved_by: str) -> NitpickResolution:
        """Record nitpick_id as resolved by resolved_by and persist it."""

    @abstractmethod
    def is_resolved(self, repo: str, pr_number: int, nitpick_id: str) -> bool:
        """Return True if nitpick_id was resolved on this PR."""

    @abstractmethod
    def list_resolved(self, repo: str, pr_number: int) -> dict[str, NitpickResolution]:
        """Return every resolution for a PR. Empty when nothing is recorded — never raises."""

    def count_resolved(self, repo: str, pr_number: int) -> int:
        return len(self.list_resolved(repo, pr_number))

    def close(self) -> None:
        """Flush and release anything the store holds.

        Optional — default is a no-op so callers can always call close() safely.
        """
