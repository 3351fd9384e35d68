"""CLI entry point for prfleet.

Commands:
  plan      — classify a PR's open review items and show the claim order
  nitpicks  — list or record manually-resolved synthetic comments
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prfleet_cli.commands.nitpicks import nitpicks_cmd
from prfleet_cli.commands.plan import plan_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the nitpick store selected in .prfleet.yml.

      store: file  → JSONFileStore under status_dir (default)
      store: noop  → NoOpStore (resolutions are not kept)
    """
    store_type = config.get("store", "file")

    if store_type == "noop":
        from prfleet_store.noop import NoOpStore

        return NoOpStore()

    if store_type != "file":
        console.print(f"[yellow]Unknown store {store_type!r}; using the file store.[/yellow]")

    from prfleet_store.json_file import JSONFileStore

    return JSONFileStore(status_dir=config.get("status_dir", ".agent/status"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("prfleet"),
    prog_name="prfleet",
)
@click.option(
    "--config",
    "config_path",
    default=".prfleet.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRFLEET_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Coordinate parallel remediation of PR review comments."""
    from prfleet_core.config import load_config
    from prfleet_cli.auth import resolve_github_token

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    ctx.ensure_object(dict)

    config = load_config(config_path)

    token = resolve_github_token()
    if token:
        config["github_token"] = token

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(plan_cmd)
main.add_command(nitpicks_cmd)
