"""No-op store — selected with `store: noop` in .prfleet.yml.

Useful for throwaway runs and CI jobs that must not write into the working
tree. Resolutions are acknowledged but forgotten, so every synthetic nitpick
is classified as unresolved again on the next poll.
"""

from __future__ import annotations

from datetime import datetime, timezone

from prfleet_store.base import BaseNitpickStore
from prfleet_store.models import NitpickResolution


class NoOpStore(BaseNitpickStore):
    def mark_resolved(self, repo: str, pr_number: int, nitpick_id: str, resolved_by: str) -> NitpickResolution:
        return NitpickResolution(resolved_at=datetime.now(timezone.utc).isoformat(), resolved_by=resolved_by)

    def is_resolved(self, repo: str, pr_number: int, nitpick_id: str) -> bool:
        return False

    def list_resolved(self, repo: str, pr_number: int) -> dict[str, NitpickResolution]:
        return {}
