"""Review-item severities and their total order.

Partitions are claimed most-severe first, so every place that compares
severities goes through severity_rank() to get the same ordering.
Severities outside SEVERITY_ORDER are treated as the lowest priority.
"""

from __future__ import annotations

import re

SEVERITY_ORDER: list[str] = ["CRIT", "MAJOR", "MINOR", "ISSUE", "REFACTOR", "NITPICK", "TRIVIAL", "DOCS", "N/A"]

_SEVERITY_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"🔴\s*Critical", re.IGNORECASE), "CRIT"),
    (re.compile(r"🟠\s*Major", re.IGNORECASE), "MAJOR"),
    (re.compile(r"🟡\s*Minor", re.IGNORECASE), "MINOR"),
    (re.compile(r"🔵\s*Trivial", re.IGNORECASE), "TRIVIAL"),
    (re.compile(r"⚠️\s*(?:Potential\s+)?issue", re.IGNORECASE), "ISSUE"),
    (re.compile(r"🛠️\s*Refactor", re.IGNORECASE), "REFACTOR"),
    (re.compile(r"🧹\s*Nitpick", re.IGNORECASE), "NITPICK"),
    (re.compile(r"📝\s*Documentation", re.IGNORECASE), "DOCS"),
]

_RESOLVED_MARKERS = ("✅ Addressed", "✅ Resolved", "[Resolved]")


def severity_rank(severity: str) -> int:
    """Return the position of severity in SEVERITY_ORDER (lower = more severe)."""
    try:
        return SEVERITY_ORDER.index(severity)
    except ValueError:
        return len(SEVERITY_ORDER)


def max_severity(a: str, b: str) -> str:
    """Return the more severe of two severities. Ties keep the first argument."""
    return a if severity_rank(a) <= severity_rank(b) else b


def extract_severity(body: str | None) -> str:
    """Classify a review comment body by the bot's severity badge, or "N/A"."""
    if not body:
        return "N/A"
    for pattern, severity in _SEVERITY_PATTERNS:
        if pattern.search(body):
            return severity
    return "N/A"


def is_resolved_by_marker(body: str | None) -> bool:
    if not body:
        return False
    return any(marker in body for marker in _RESOLVED_MARKERS)
