"""In-memory store, selected with `store: memory`.

Lets the balancer run without any persistence backend, e.g. in tests. Rotation positions
and resolved ids live only as long as the process, so every fresh run starts
the rotation from the configured positions again.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from crbalancer_store.base import RepositoryStore

if TYPE_CHECKING:
    from crbalancer_store.models import Repository


class MemoryStore(RepositoryStore):
    """Keeps deep copies of saved repositories in a dict.

    Copies are taken on write and on read so callers cannot mutate stored
    state without going through update_repository().
    """

    def __init__(self, repositories: list[Repository] | None = None):
        self._repos: dict[str, Repository] = {}
        for repo in repositories or []:
            self.update_repository(repo.id, repo)

    def get_repository(self, repo_id: str) -> Repository | None:
        repo = self._repos.get(repo_id)
        return copy.deepcopy(repo) if repo is not None else None

    def list_repositories(self) -> list[Repository]:
        return [copy.deepcopy(r) for r in self._repos.values()]

    def update_repository(self, repo_id: str, repo: Repository) -> None:
        self._repos[repo_id] = copy.deepcopy(repo)
