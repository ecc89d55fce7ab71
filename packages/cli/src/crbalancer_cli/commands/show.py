"""show command: display stored repositories and their rotation state."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("show")
@click.option("--repo", "repo_name", default=None, help="Only show this repository (by name).")
@click.pass_context
def show_cmd(ctx, repo_name: str | None):
    """Show reviewer groups, resolved ids and rotation positions.

    Reads from the configured store. With the default memory store only
    repositories touched in this process are known, so there is nothing to show.
    """
    store = ctx.obj["store"]

    repos = store.list_repositories()
    if repo_name:
        repos = [r for r in repos if r.name == repo_name]
    if not repos:
        console.print("[yellow]No repositories found in the store.[/yellow]")
        return

    for repo in repos:
        remote = repo.remote_repo_id or "[dim]unresolved[/dim]"
        table = Table(
            title=f"{repo.project_name}/{repo.name} (id {remote})",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Group", style="bold")
        table.add_column("Owners", max_width=30)
        table.add_column("Req/Opt", justify="center", width=8)
        table.add_column("Reviewers")
        table.add_column("Next", width=12)

        for g in repo.reviewer_groups:
            reviewers = ", ".join(
                r.alias if r.remote_id else f"{r.alias} [dim](unresolved)[/dim]" for r in g.reviewers
            )
            next_up = g.reviewers[g.pos % len(g.reviewers)].alias if g.reviewers else ""
            table.add_row(
                g.group,
                ", ".join(sorted(g.owners)) or "[dim]everyone[/dim]",
                f"{g.required}/{g.optional}",
                reviewers,
                next_up,
            )

        console.print(table)
