"""Abstract repository store interface.

The orchestrator depends on RepositoryStore, not on a concrete backend, so
the memory, SQLite and Gist backends are swappable without touching the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crbalancer_store.models import Repository


class StoreError(Exception):
    """Raised when a repository cannot be read from or written to the store."""


class RepositoryStore(ABC):
    """Pluggable persistence layer for repository configuration and rotation state.

    Writes must either succeed or raise StoreError.
    """

    @abstractmethod
    def get_repository(self, repo_id: str) -> Repository | None:
        """Return the repository stored under ``repo_id`` or None."""

    @abstractmethod
    def list_repositories(self) -> list[Repository]:
        """Return every stored repository. Empty list when there are none."""

    @abstractmethod
    def update_repository(self, repo_id: str, repo: Repository) -> None:
        """Insert or replace the repository stored under ``repo_id``."""

    def find_repository(self, project_name: str, name: str) -> Repository | None:
        """Look a repository up by project and name.

        Backends with an index should override this; the default scans
        list_repositories().
        """
        for repo in self.list_repositories():
            if repo.project_name == project_name and repo.name == name:
                return repo
        return None

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
