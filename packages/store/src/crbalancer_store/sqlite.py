"""SQLiteStore: local file-based repository store.

Good for a balancer that runs from cron or a long-lived host: the database
file keeps rotation positions and resolved ids between runs.

Schema:
  repositories: one row per repository; reviewer groups are stored as a
                 JSON document because they are always read and written whole.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from crbalancer_store.base import RepositoryStore, StoreError
from crbalancer_store.models import repository_from_dict, repository_to_dict

if TYPE_CHECKING:
    from crbalancer_store.models import Repository

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS repositories (
    id                   TEXT PRIMARY KEY,
    project_name         TEXT NOT NULL,
    name                 TEXT NOT NULL,
    remote_repo_id       TEXT DEFAULT '',
    reviewer_groups_json TEXT DEFAULT '[]',
    updated_at           TEXT
);
CREATE INDEX IF NOT EXISTS idx_repositories_name ON repositories (project_name, name);
"""


class SQLiteStore(RepositoryStore):
    """Stores repositories in a local SQLite database file.

    The database file path defaults to `.crbalancer.db` in the current working
    directory. Configure via .crbalancer.yml: `store_path: /path/to/file.db`.
    """

    def __init__(self, db_path: str = ".crbalancer.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get_repository(self, repo_id: str) -> Repository | None:
        row = self._conn.execute("SELECT * FROM repositories WHERE id=?", (repo_id,)).fetchone()
        return self._row_to_repository(row) if row is not None else None

    def find_repository(self, project_name: str, name: str) -> Repository | None:
        row = self._conn.execute(
            "SELECT * FROM repositories WHERE project_name=? AND name=?",
            (project_name, name),
        ).fetchone()
        return self._row_to_repository(row) if row is not None else None

    def list_repositories(self) -> list[Repository]:
        rows = self._conn.execute("SELECT * FROM repositories ORDER BY project_name, name").fetchall()
        return [self._row_to_repository(r) for r in rows]

    def update_repository(self, repo_id: str, repo: Repository) -> None:
        data = repository_to_dict(repo)
        try:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO repositories
                  (id, project_name, name, remote_repo_id, reviewer_groups_json, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    repo_id,
                    repo.project_name,
                    repo.name,
                    repo.remote_repo_id,
                    json.dumps(data["reviewer_groups"]),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"could not save repository {repo.name}: {e}") from e
        logger.debug("Saved repository %s/%s (%s)", repo.project_name, repo.name, repo_id)

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_repository(row: sqlite3.Row) -> Repository:
        return repository_from_dict(
            {
                "id": row["id"],
                "name": row["name"],
                "project_name": row["project_name"],
                "remote_repo_id": row["remote_repo_id"] or "",
                "reviewer_groups": json.loads(row["reviewer_groups_json"] or "[]"),
            }
        )
