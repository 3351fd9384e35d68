"""Tests for the GitHub-backed classifier."""

from __future__ import annotations

from unittest.mock import MagicMock

from prfleet_core.gh.classifier import GitHubClassifier, nitpick_id, parse_nitpicks
from prfleet_core.models import PRInfo

PR = PRInfo(owner="owner", repo="repo", number=7)
SHA = "c" * 40

NITPICK_BODY = """**Actionable comments posted: 1**

<details>
<summary>🧹 Nitpick comments (2)</summary><blockquote>

<details>
<summary>src/app.py (2)</summary><blockquote>

`12-14`: **Rename helper for clarity.**

The name `do_it` says nothing.

---

`40`: **Drop unused import.**

</blockquote></details>

</blockquote></details>
"""


def _comment(id, path, body, in_reply_to_id=None):
    c = MagicMock()
    c.id = id
    c.path = path
    c.body = body
    c.in_reply_to_id = in_reply_to_id
    return c


def _review(login, body):
    r = MagicMock()
    r.user.login = login
    r.body = body
    return r


def _classifier_for(comments=(), reviews=(), **kwargs):
    pr = MagicMock()
    pr.head.sha = SHA
    pr.get_review_comments.return_value = list(comments)
    pr.get_reviews.return_value = list(reviews)
    repo = MagicMock()
    repo.get_pull.return_value = pr
    getter = MagicMock(return_value=repo)
    return GitHubClassifier(token="tok", repo_getter=getter, **kwargs), getter, repo


class TestParseNitpicks:
    def test_extracts_items_per_file(self):
        items = parse_nitpicks(NITPICK_BODY)
        assert [i.file for i in items] == ["src/app.py", "src/app.py"]
        assert all(i.severity == "MINOR" for i in items)
        assert items[0].item_id == nitpick_id("src/app.py", "12", "Rename helper for clarity.")
        assert items[1].item_id.endswith("-40")

    def test_ids_are_stable_across_review_passes(self):
        assert [i.item_id for i in parse_nitpicks(NITPICK_BODY)] == [i.item_id for i in parse_nitpicks(NITPICK_BODY)]

    def test_body_without_section(self):
        assert parse_nitpicks("LGTM") == []
        assert parse_nitpicks(None) == []

    def test_id_format(self):
        nid = nitpick_id("a.py", 3, "Title")
        prefix, digest, line = nid.rsplit("-", 2)
        assert prefix == "coderabbit-nitpick"
        assert len(digest) == 8
        assert line == "3"


class TestGitHubClassifier:
    def test_fetches_pr_and_head_sha(self):
        classifier, getter, repo = _classifier_for()
        result = classifier.classify(PR)
        getter.assert_called_once_with("owner/repo", "tok")
        repo.get_pull.assert_called_once_with(7)
        assert result.head_sha == SHA
        assert result.items == []

    def test_thread_roots_become_items(self):
        classifier, _, _ = _classifier_for(
            comments=[
                _comment(1, "a.py", "_🔴 Critical_ boom"),
                _comment(2, "a.py", "agreed", in_reply_to_id=1),
                _comment(3, "b.py", "_🟡 Minor_ style"),
            ]
        )
        items = classifier.classify(PR).items
        assert [(i.file, i.item_id, i.severity) for i in items] == [("a.py", "1", "CRIT"), ("b.py", "3", "MINOR")]

    def test_threads_with_resolution_reply_are_dropped(self):
        classifier, _, _ = _classifier_for(
            comments=[
                _comment(1, "a.py", "_🟠 Major_ leak"),
                _comment(2, "a.py", "✅ Addressed in abc", in_reply_to_id=1),
                _comment(3, "b.py", "[Resolved] done"),
            ]
        )
        assert classifier.classify(PR).items == []

    def test_bot_review_nitpicks_are_included(self):
        classifier, _, _ = _classifier_for(
            reviews=[_review("coderabbitai[bot]", NITPICK_BODY), _review("human", NITPICK_BODY)]
        )
        items = classifier.classify(PR).items
        assert len(items) == 2

    def test_repeated_bot_reviews_do_not_duplicate(self):
        classifier, _, _ = _classifier_for(
            reviews=[_review("coderabbitai[bot]", NITPICK_BODY), _review("coderabbitai[bot]", NITPICK_BODY)]
        )
        assert len(classifier.classify(PR).items) == 2

    def test_resolved_items_are_filtered(self):
        resolved = nitpick_id("src/app.py", "12", "Rename helper for clarity.")
        seen = []

        def is_resolved(pr_info, item_id):
            seen.append(pr_info)
            return item_id == resolved

        classifier, _, _ = _classifier_for(
            reviews=[_review("coderabbitai[bot]", NITPICK_BODY)], is_resolved=is_resolved
        )
        items = classifier.classify(PR).items
        assert [i.item_id for i in items] == [nitpick_id("src/app.py", "40", "Drop unused import.")]
        assert seen[0] == PR

    def test_max_items_caps_output(self):
        comments = [_comment(i, f"f{i}.py", "x") for i in range(1, 6)]
        classifier, _, _ = _classifier_for(comments=comments, max_items=3)
        assert len(classifier.classify(PR).items) == 3
