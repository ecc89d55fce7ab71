"""GistStore: zero-infrastructure repository store in a GitHub Gist.

Useful when the balancer runs as a scheduled CI job with no disk that
survives between runs: the rotation state lives next to the code, behind the
same GitHub credentials the balancer already has.

Data format: a single JSON file named `crbalancer_repositories.json` inside
the Gist, holding an object that maps repository id to repository dict.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from crbalancer_store.base import RepositoryStore, StoreError
from crbalancer_store.models import repository_from_dict, repository_to_dict

if TYPE_CHECKING:
    from crbalancer_store.models import Repository

logger = logging.getLogger(__name__)

_GIST_FILENAME = "crbalancer_repositories.json"


class GistStore(RepositoryStore):
    """Stores every repository in one Gist file.

    Each update_repository() reads the whole file, replaces one entry and
    writes it back. Writes raise StoreError on failure and refuse to replace
    a corrupt file. Reads of a missing or corrupt file behave as an empty
    store.
    """

    def __init__(self, gist_id: str, token: str, base_url: str | None = None):
        from github import Auth, Github

        self._gist_id = gist_id
        kwargs = {"base_url": base_url} if base_url else {}
        self._gh = Github(auth=Auth.Token(token), **kwargs)

    def _get_gist(self):
        return self._gh.get_gist(self._gist_id)

    def get_repository(self, repo_id: str) -> Repository | None:
        data = self._load().get(repo_id)
        return repository_from_dict(data) if data is not None else None

    def list_repositories(self) -> list[Repository]:
        return [repository_from_dict(d) for d in self._load().values()]

    def update_repository(self, repo_id: str, repo: Repository) -> None:
        try:
            gist = self._get_gist()
            records = self._read_records(gist, strict=True)
            data = repository_to_dict(repo)
            data["id"] = repo_id
            records[repo_id] = data
            gist.edit(files={_GIST_FILENAME: {"content": json.dumps(records, indent=2, sort_keys=True)}})
        except Exception as e:
            raise StoreError(f"could not save repository {repo.name} to gist {self._gist_id}: {e}") from e

    def _load(self) -> dict[str, dict]:
        try:
            gist = self._get_gist()
        except Exception as e:
            raise StoreError(f"could not read gist {self._gist_id}: {e}") from e
        return self._read_records(gist)

    def _read_records(self, gist, strict: bool = False) -> dict[str, dict]:
        """Read the current JSON object from the Gist file.

        A missing file is an empty store. An unreadable one is treated as empty
        for reads; with ``strict`` it raises StoreError so a write never
        replaces state it could not parse.
        """
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return {}
        try:
            records = json.loads(file_obj.content) or {}
        except (json.JSONDecodeError, TypeError):
            records = None
        if not isinstance(records, dict):
            if strict:
                raise StoreError(f"gist {self._gist_id} holds unreadable {_GIST_FILENAME}; refusing to overwrite it")
            logger.warning("Gist %s holds unreadable %s; treating it as empty", self._gist_id, _GIST_FILENAME)
            return {}
        return records
