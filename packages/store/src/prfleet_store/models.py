"""Nitpick resolution data models.

Decoupled from prfleet_core so the store layer can be used independently
and the coordination engine has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NitpickResolution:
    """Who resolved a synthetic comment, and when.

    Synthetic comments (bot review-body nitpicks) have no GitHub thread to
    resolve, so resolution is recorded here instead.
    """

    resolved_at: str  # ISO-8601 UTC timestamp
    resolved_by: str

    def to_dict(self) -> dict:
        return {"resolvedAt": self.resolved_at, "resolvedBy": self.resolved_by}

    @classmethod
    def from_dict(cls, d: dict) -> NitpickResolution:
        return cls(resolved_at=d.get("resolvedAt", ""), resolved_by=d.get("resolvedBy", ""))
