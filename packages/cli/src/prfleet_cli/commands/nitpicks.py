"""nitpicks commands — inspect and record manually-resolved synthetic comments."""

from __future__ import annotations

import getpass

import click
from rich.console import Console
from rich.table import Table

from prfleet_core.models import PRInfo

console = Console()


def _pr_info(repo: str, pr_number: int) -> PRInfo:
    try:
        return PRInfo.parse(repo, pr_number)
    except ValueError as e:
        raise click.UsageError(str(e))


@click.group("nitpicks")
def nitpicks_cmd():
    """Synthetic comments resolved outside GitHub's thread API."""


@nitpicks_cmd.command("list")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.pass_context
def list_cmd(ctx, repo: str, pr_number: int):
    """Show every resolved synthetic comment recorded for a PR."""
    pr_info = _pr_info(repo, pr_number)
    store = ctx.obj["store"]
    count = store.count_resolved(pr_info.full_name, pr_info.number)
    if not count:
        console.print("[yellow]No resolved nitpicks recorded.[/yellow]")
        return

    resolutions = store.list_resolved(pr_info.full_name, pr_info.number)

    table = Table(title=f"Resolved nitpicks — {pr_info}", show_header=True, header_style="bold cyan")
    table.add_column("Nitpick ID")
    table.add_column("Resolved By")
    table.add_column("Resolved At", width=20)

    for nitpick_id, r in sorted(resolutions.items(), key=lambda kv: kv[1].resolved_at):
        table.add_row(nitpick_id, r.resolved_by, r.resolved_at[:19].replace("T", " "))

    console.print(table)
    console.print(f"{count} resolved nitpick(s) on {pr_info}.")


@nitpicks_cmd.command("resolve")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--id", "nitpick_id", required=True, help="Synthetic comment id to mark resolved.")
@click.option("--by", "resolved_by", default=None, help="Who resolved it. Defaults to the current user.")
@click.pass_context
def resolve_cmd(ctx, repo: str, pr_number: int, nitpick_id: str, resolved_by: str | None):
    """Mark a synthetic comment as resolved so it is no longer classified."""
    from prfleet_core.tools import mark_nitpick_resolved

    pr_info = _pr_info(repo, pr_number)
    reply = mark_nitpick_resolved(ctx.obj["store"], pr_info, nitpick_id, resolved_by or getpass.getuser())
    console.print(f"[green]Resolved {reply['nitpick_id']} on {pr_info} (by {reply['resolved_by']}).[/green]")
