"""plan command — show how a PR's open review items would be partitioned."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prfleet_core.gh.classifier import GitHubClassifier
from prfleet_core.models import PRInfo
from prfleet_core.partitions import build_partitions

console = Console()

_SEVERITY_STYLE = {"CRIT": "red", "MAJOR": "yellow", "MINOR": "blue", "ISSUE": "magenta", "NITPICK": "dim"}


@click.command("plan")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.pass_context
def plan_cmd(ctx, repo: str, pr_number: int):
    """Classify a PR's unresolved review items and print the claim order.

    Workers claim partitions top to bottom: one partition per file, most
    severe file first. Nothing is started or claimed.
    """
    config = ctx.obj["config"]
    store = ctx.obj["store"]

    token = config.get("github_token")
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    try:
        pr_info = PRInfo.parse(repo, pr_number)
    except ValueError as e:
        raise click.UsageError(str(e))

    classifier = GitHubClassifier(
        token=token,
        is_resolved=lambda pr, item_id: store.is_resolved(pr.full_name, pr.number, item_id),
        bot_logins=config.get("bot_logins", ["coderabbitai[bot]"]),
        max_items=config.get("max_items", 500),
    )
    classification = classifier.classify(pr_info)
    partitions = build_partitions(classification.items)

    if not partitions:
        console.print(f"[green]{pr_info} has no unresolved review items.[/green]")
        return

    table = Table(title=f"Partition plan — {pr_info} @ {classification.head_sha[:7]}", header_style="bold cyan")
    table.add_column("#", justify="right", width=4)
    table.add_column("File")
    table.add_column("Severity", width=10)
    table.add_column("Items", justify="right", width=6)

    for i, p in enumerate(partitions, 1):
        style = _SEVERITY_STYLE.get(p.severity, "white")
        table.add_row(str(i), p.file, f"[{style}]{p.severity}[/{style}]", str(len(p.comments)))

    console.print(table)
    total_items = sum(len(p.comments) for p in partitions)
    console.print(f"{len(partitions)} partition(s), {total_items} item(s).")
