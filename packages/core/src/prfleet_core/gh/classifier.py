"""GitHub-backed classifier.

Turns a PR's open review feedback into ClassifiedItems for the partition
builder. Two sources feed it:

- inline review comment threads: one item per thread, keyed by the root
  comment id, dropped once the root or any reply carries a resolution marker;
- bot review bodies: the "Nitpick comments" section lists findings that have
  no thread to resolve. Each becomes a synthetic item whose id is derived
  from file, start line and title, so the same nitpick re-posted on the next
  push maps to the same id.

Synthetic items can only be resolved out-of-band, so the classifier takes an
is_resolved predicate (normally the nitpick store) and drops those ids.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Callable, Iterable

from prfleet_core.gh.pull_request import get_bot_reviews, get_head_sha, get_pull, get_repo, get_review_comments
from prfleet_core.models import PRInfo
from prfleet_core.partitions import Classification, ClassifiedItem
from prfleet_core.severity import extract_severity, is_resolved_by_marker

logger = logging.getLogger(__name__)

NITPICK_PREFIX = "coderabbit-nitpick"
NITPICK_SEVERITY = "MINOR"

# Greedy so nested per-file <details> blocks stay inside the captured section.
_NITPICK_SECTION_RE = re.compile(
    r"<details[^>]*>\s*<summary[^>]*>[^<]*Nitpick comments[^<]*</summary>\s*<blockquote[^>]*>(.*)</blockquote>\s*</details>",
    re.IGNORECASE | re.DOTALL,
)
_FILE_SECTION_RE = re.compile(
    r"<details[^>]*>\s*<summary[^>]*>(.*?)\s*\(\d+\)</summary>\s*<blockquote[^>]*>(.*?)</blockquote>\s*</details>",
    re.IGNORECASE | re.DOTALL,
)
_NITPICK_HEADER_RE = re.compile(r"`(\d+(?:-\d+)?)`:\s*\*\*(.*?)\*\*")


def nitpick_id(file: str, line_start: str | int, title: str) -> str:
    digest = hashlib.md5(f"{file}:{line_start}:{title}".encode("utf-8")).hexdigest()[:8]
    return f"{NITPICK_PREFIX}-{digest}-{line_start}"


def parse_nitpicks(body: str | None) -> list[ClassifiedItem]:
    """Extract synthetic nitpick items from a bot review body."""
    if not body:
        return []
    section = _NITPICK_SECTION_RE.search(body)
    if not section:
        return []

    items: list[ClassifiedItem] = []
    for file_match in _FILE_SECTION_RE.finditer(section.group(1)):
        file = file_match.group(1).strip()
        for header in _NITPICK_HEADER_RE.finditer(file_match.group(2)):
            line_start = header.group(1).split("-")[0]
            items.append(
                ClassifiedItem(file=file, item_id=nitpick_id(file, line_start, header.group(2)), severity=NITPICK_SEVERITY)
            )
    return items


def _thread_items(comments: list) -> list[ClassifiedItem]:
    resolved_roots: set[int] = set()
    for c in comments:
        if is_resolved_by_marker(c.body):
            resolved_roots.add(c.in_reply_to_id or c.id)

    items = []
    for c in comments:
        if c.in_reply_to_id or c.id in resolved_roots or not c.path:
            continue
        items.append(ClassifiedItem(file=c.path, item_id=str(c.id), severity=extract_severity(c.body)))
    return items


class GitHubClassifier:
    def __init__(
        self,
        token: str | None = None,
        is_resolved: Callable[[PRInfo, str], bool] | None = None,
        bot_logins: Iterable[str] = ("coderabbitai[bot]",),
        max_items: int = 500,
        repo_getter: Callable | None = None,
    ):
        self._token = token
        self._is_resolved = is_resolved
        self._bot_logins = tuple(bot_logins)
        self._max_items = max_items
        self._repo_getter = repo_getter or get_repo

    def classify(self, pr_info: PRInfo) -> Classification:
        repo = self._repo_getter(pr_info.full_name, self._token)
        pr = get_pull(repo, pr_info.number)

        items = _thread_items(get_review_comments(pr))

        seen = {item.item_id for item in items}
        for review in get_bot_reviews(pr, self._bot_logins):
            for item in parse_nitpicks(review.body):
                if item.item_id not in seen:
                    seen.add(item.item_id)
                    items.append(item)

        if self._is_resolved is not None:
            items = [item for item in items if not self._is_resolved(pr_info, item.item_id)]

        if len(items) > self._max_items:
            logger.warning("%s has %d unresolved items; keeping the first %d", pr_info, len(items), self._max_items)
            items = items[: self._max_items]

        return Classification(head_sha=get_head_sha(pr), items=items)
