from __future__ import annotations

from github import Github


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_head_sha(pr) -> str:
    return pr.head.sha


def get_review_comments(pr) -> list:
    """Return every inline review comment on the PR, replies included."""
    return list(pr.get_review_comments())


def get_bot_reviews(pr, bot_logins) -> list:
    """Return the PR's reviews authored by one of bot_logins, oldest first."""
    logins = set(bot_logins)
    return [r for r in pr.get_reviews() if r.user is not None and r.user.login in logins]
