import os
from pathlib import Path
from typing import Optional

import yaml

from crbalancer_core.comment import DEFAULT_BOT_MARKER, DEFAULT_SLA_HOURS
from crbalancer_core.errors import ConfigError
from crbalancer_core.filters import DEFAULT_MAINLINE_REF
from crbalancer_core.gh.pull_request import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from crbalancer_store.models import Repository, Reviewer, ReviewerGroup

DEFAULT_CONFIG: dict = {
    "base_url": DEFAULT_BASE_URL,
    "timeout": DEFAULT_TIMEOUT,
    "project": None,
    "bot_marker": DEFAULT_BOT_MARKER,
    "mainline_ref": DEFAULT_MAINLINE_REF,
    "sla_hours": DEFAULT_SLA_HOURS,
    "balance_draft_prs": False,
    "store": "sqlite",  # sqlite | gist | memory
    "store_path": ".crbalancer.db",
    "gist_id": None,
    "slack_webhook_url": None,
    "repositories": [],
}


def load_config(config_path: str = ".crbalancer.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .crbalancer.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "repositories": list(DEFAULT_CONFIG["repositories"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if not isinstance(config["bot_marker"], str) or not config["bot_marker"].strip():
        raise ConfigError("bot_marker must be a non-empty string")

    # Webhook secret from the environment.
    if os.environ.get("CRBALANCER_SLACK_WEBHOOK_URL"):
        config["slack_webhook_url"] = os.environ["CRBALANCER_SLACK_WEBHOOK_URL"]

    return config


def _as_list(value, where: str) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list")
    return value


def _count(entry: dict, key: str, default: int, where: str) -> int:
    value = entry.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ConfigError(f"{where}.{key} must be a non-negative integer, got {value!r}")
    return value


def build_reviewer_groups(entry: dict) -> list[ReviewerGroup]:
    """Turn the ``reviewer_groups`` of one repository entry into ReviewerGroups."""
    name = entry.get("name", "?")
    groups = []
    seen = set()
    for i, g in enumerate(_as_list(entry.get("reviewer_groups"), f"{name}.reviewer_groups")):
        where = f"{name}.reviewer_groups[{i}]"
        if not isinstance(g, dict):
            raise ConfigError(f"{where} must be a mapping")
        group_name = g.get("group") or g.get("name")
        if not group_name:
            raise ConfigError(f"{where} is missing 'group'")
        if group_name in seen:
            raise ConfigError(f"{where}: duplicate group name {group_name!r}")
        seen.add(group_name)

        aliases = [str(a) for a in _as_list(g.get("reviewers"), f"{where}.reviewers")]
        if not aliases:
            raise ConfigError(f"{where} has no reviewers")
        groups.append(
            ReviewerGroup(
                group=group_name,
                reviewers=[Reviewer(alias=a) for a in dict.fromkeys(aliases)],
                owners={str(o) for o in _as_list(g.get("owners"), f"{where}.owners")},
                required=_count(g, "required", 1, where),
                optional=_count(g, "optional", 0, where),
            )
        )
    return groups


def repository_entries(config: dict, names: Optional[list] = None) -> list[dict]:
    """Return the configured repository entries, with project and mainline filled in.

    ``names`` restricts the result to those repository names; an unknown
    name raises ConfigError.
    """
    entries = []
    for raw in _as_list(config.get("repositories"), "repositories"):
        if not isinstance(raw, dict) or not raw.get("name"):
            raise ConfigError("every entry in 'repositories' needs a 'name'")
        entry = dict(raw)
        entry.setdefault("project", config.get("project"))
        entry.setdefault("mainline_ref", config.get("mainline_ref", DEFAULT_MAINLINE_REF))
        if not entry["project"]:
            raise ConfigError(f"repository {entry['name']} has no project; set 'project' globally or per repository")
        entries.append(entry)

    if names:
        by_name = {e["name"]: e for e in entries}
        missing = [n for n in names if n not in by_name]
        if missing:
            raise ConfigError(f"repository not configured: {', '.join(missing)}")
        entries = [by_name[n] for n in names]
    return entries


def load_repository(store, entry: dict, shadow: bool = False) -> Repository:
    """Fetch the stored repository for ``entry``, creating or reconciling it.

    A repository seen for the first time is saved straight away. For a known
    one, reviewer groups from the entry replace the stored ones while cached
    remote ids and rotation positions are kept. With ``shadow`` set the
    result is built the same way but never written back.
    """
    groups = build_reviewer_groups(entry)
    repo = store.find_repository(entry["project"], entry["name"])
    if repo is None:
        repo = Repository(name=entry["name"], project_name=entry["project"], reviewer_groups=groups)
        changed = True
    else:
        changed = repo.reconcile(groups)
    if changed and not shadow:
        store.update_repository(repo.id, repo)
    return repo
