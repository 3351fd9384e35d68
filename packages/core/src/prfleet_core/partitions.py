"""Partition builder — groups classified review items into per-file partitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from prfleet_core.models import FilePartition
from prfleet_core.severity import max_severity, severity_rank


@dataclass(frozen=True)
class ClassifiedItem:
    """One unresolved review item as produced by the classifier.

    item_id is opaque: thread ids, comment ids and synthetic nitpick ids all
    share the namespace and are only ever compared for set membership.
    """

    file: str
    item_id: str
    severity: str = "N/A"


@dataclass
class Classification:
    """A classifier poll: the reviewed commit plus every unresolved item."""

    head_sha: str
    items: list[ClassifiedItem] = field(default_factory=list)


def build_partitions(items: Iterable[ClassifiedItem]) -> list[FilePartition]:
    """Return one pending FilePartition per file, most severe file first.

    Item ids are deduplicated per file in first-seen order and each
    partition carries the highest severity among its items. Items without a
    file cannot be assigned to a partition and are dropped. The sort is
    stable, so files of equal severity keep their classifier order.
    """
    groups: dict[str, FilePartition] = {}

    for item in items:
        if not item.file:
            continue
        partition = groups.get(item.file)
        if partition is None:
            groups[item.file] = FilePartition(file=item.file, comments=[item.item_id], severity=item.severity)
            continue
        if item.item_id not in partition.comments:
            partition.comments.append(item.item_id)
        partition.severity = max_severity(partition.severity, item.severity)

    return sorted(groups.values(), key=lambda p: severity_rank(p.severity))
