"""run command: one balancing pass over every configured repository."""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager

import click
from rich.console import Console
from rich.table import Table

from crbalancer_core.autoreviewer import AutoReviewer, RunReport
from crbalancer_core.config import load_repository, repository_entries
from crbalancer_core.errors import BalancerError, ConfigError, StoreError
from crbalancer_core.filters import default_filters
from crbalancer_core.gh.service import GithubReviewService

console = Console()

_STATUS_STYLE = {
    "balanced": "green",
    "shadow": "cyan",
    "already_balanced": "dim",
    "filtered": "dim",
    "failed": "red",
    "cancelled": "yellow",
}


def _build_triggers(config: dict) -> list:
    triggers = []
    if config.get("slack_webhook_url"):
        from crbalancer_core.triggers.slack import SlackWebhookTrigger

        triggers.append(SlackWebhookTrigger(config["slack_webhook_url"]))
    return triggers


@contextmanager
def _cancel_on_sigterm():
    """Yield an Event that is set when the process receives SIGTERM."""
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: cancel.set())
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGTERM, previous)


def _print_report(report: RunReport) -> None:
    if not report.outcomes:
        console.print(f"[yellow]{report.repository}: no open pull requests.[/yellow]")
        return

    table = Table(title=f"Reviewer balancing: {report.repository}", show_header=True, header_style="bold cyan")
    table.add_column("PR", style="bold", width=7)
    table.add_column("Status", width=18)
    table.add_column("Required")
    table.add_column("Optional")
    table.add_column("Error", max_width=60)

    for o in report.outcomes:
        style = _STATUS_STYLE.get(o.status, "white")
        table.add_row(
            f"#{o.pr_id}",
            f"[{style}]{o.status}[/{style}]",
            ",".join(o.required),
            ",".join(o.optional),
            str(o.error) if o.error else "",
        )

    console.print(table)


@click.command("run")
@click.option(
    "--repo",
    "repo_names",
    multiple=True,
    help="Only balance this configured repository. Repeat for several.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: select reviewers and print them without touching GitHub or the store.",
)
@click.pass_context
def run_cmd(ctx, repo_names: tuple[str, ...], shadow: bool):
    """Balance reviewers on every open pull request once.

    Pull requests whose title contains WIP, that do not target the mainline
    branch, or that already carry the balancer comment are left alone.

    \b
    Required environment variables:
      CRBALANCER_TOKEN or GITHUB_TOKEN   GitHub token (or use gh CLI)
    """
    from crbalancer_store.memory import MemoryStore

    config = ctx.obj["config"]
    store = ctx.obj["store"]

    token = config.get("github_token")
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set CRBALANCER_TOKEN or GITHUB_TOKEN, or run `gh auth login` first."
        )

    try:
        entries = repository_entries(config, list(repo_names))
    except ConfigError as e:
        raise click.UsageError(str(e))
    if not entries:
        raise click.UsageError("No repositories configured. Add a 'repositories' list to the config file.")

    if isinstance(store, MemoryStore) and not shadow:
        console.print(
            "[yellow]store: memory: rotation positions will not survive this run. "
            "Use the default sqlite store or 'store: gist' to keep them.[/yellow]"
        )

    service = GithubReviewService(token=token, base_url=config["base_url"], timeout=config["timeout"])
    triggers = _build_triggers(config)

    aborted = []
    with _cancel_on_sigterm() as cancel:
        for entry in entries:
            label = f"{entry['project']}/{entry['name']}"
            try:
                repo = load_repository(store, entry, shadow=shadow)
                reviewer = AutoReviewer(
                    service=service,
                    store=store,
                    repo=repo,
                    bot_identifier=config["bot_marker"],
                    filters=default_filters(entry["mainline_ref"], include_drafts=config["balance_draft_prs"]),
                    triggers=triggers,
                    sla_hours=config["sla_hours"],
                    shadow=shadow,
                )
                report = reviewer.run(cancel=cancel)
            except (BalancerError, ConfigError, StoreError) as e:
                console.print(f"[red]{label}: run aborted: {e}[/red]")
                aborted.append(label)
                continue
            _print_report(report)

    if aborted:
        ctx.exit(1)
