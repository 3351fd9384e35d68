"""Tests for the partition builder."""

from prfleet_core.partitions import ClassifiedItem, build_partitions


def _item(file, item_id, severity="MINOR"):
    return ClassifiedItem(file=file, item_id=item_id, severity=severity)


class TestBuildPartitions:
    def test_empty_input(self):
        assert build_partitions([]) == []

    def test_groups_items_by_file(self):
        partitions = build_partitions([_item("a.py", "1"), _item("b.py", "2"), _item("a.py", "3")])
        by_file = {p.file: p for p in partitions}
        assert by_file["a.py"].comments == ["1", "3"]
        assert by_file["b.py"].comments == ["2"]

    def test_deduplicates_item_ids(self):
        partitions = build_partitions([_item("a.py", "1"), _item("a.py", "1"), _item("a.py", "2")])
        assert partitions[0].comments == ["1", "2"]

    def test_partition_takes_highest_severity(self):
        partitions = build_partitions([_item("a.py", "1", "NITPICK"), _item("a.py", "2", "MAJOR"), _item("a.py", "3", "MINOR")])
        assert partitions[0].severity == "MAJOR"

    def test_sorted_most_severe_first(self):
        partitions = build_partitions(
            [_item("docs.md", "1", "DOCS"), _item("core.py", "2", "CRIT"), _item("util.py", "3", "REFACTOR")]
        )
        assert [p.file for p in partitions] == ["core.py", "util.py", "docs.md"]

    def test_unknown_severity_sorts_last(self):
        partitions = build_partitions([_item("weird.py", "1", "BLOCKER"), _item("plain.py", "2", "N/A")])
        assert [p.file for p in partitions] == ["plain.py", "weird.py"]

    def test_equal_severity_keeps_classifier_order(self):
        partitions = build_partitions([_item("c.py", "1"), _item("a.py", "2"), _item("b.py", "3")])
        assert [p.file for p in partitions] == ["c.py", "a.py", "b.py"]

    def test_items_without_file_are_dropped(self):
        partitions = build_partitions([_item("", "1", "CRIT"), _item("a.py", "2")])
        assert [p.file for p in partitions] == ["a.py"]

    def test_partitions_start_pending_and_unclaimed(self):
        (partition,) = build_partitions([_item("a.py", "1")])
        assert partition.status == "pending"
        assert partition.claimed_by is None
        assert partition.claimed_at is None
