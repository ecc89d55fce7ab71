"""CLI entry point for crbalancer.

Commands:
  run   : balance reviewers on the open pull requests of configured repositories
  show  : display stored repositories, reviewer groups and rotation positions
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from crbalancer_cli.commands.run import run_cmd
from crbalancer_cli.commands.show import show_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .crbalancer.yml settings.

    Store selection hierarchy:
      store: sqlite → SQLiteStore (default; uses store_path or .crbalancer.db)
      store: gist   → GistStore   (requires gist_id and github_token)
      store: memory → MemoryStore (rotation is not kept between runs)
    """
    store_type = config.get("store") or "sqlite"

    if store_type == "gist":
        from crbalancer_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            raise click.UsageError("store: gist requires gist_id in the config file and a GitHub token.")
        return GistStore(gist_id=gist_id, token=token, base_url=config.get("base_url"))

    if store_type == "sqlite":
        from crbalancer_store.sqlite import SQLiteStore

        db_path = config.get("store_path", ".crbalancer.db")
        return SQLiteStore(db_path=db_path)

    if store_type == "memory":
        from crbalancer_store.memory import MemoryStore

        return MemoryStore()

    raise click.UsageError(f"Unknown store {store_type!r}. Choose 'memory', 'sqlite' or 'gist'.")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # PyGithub and urllib3 log every request at DEBUG.
    logging.getLogger("github").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("crbalancer"),
    prog_name="crbalancer",
)
@click.option(
    "--config",
    "config_path",
    default=".crbalancer.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="CRBALANCER_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Balance code reviewers across the open pull requests of your repositories."""
    from crbalancer_cli.auth import resolve_github_token
    from crbalancer_core.config import load_config
    from crbalancer_core.errors import ConfigError

    _setup_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.UsageError(str(e))

    config["github_token"] = resolve_github_token(config.get("base_url"))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(run_cmd)
main.add_command(show_cmd)
