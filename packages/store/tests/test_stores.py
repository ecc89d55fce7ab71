"""Tests for crbalancer-store implementations."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from crbalancer_store.base import StoreError
from crbalancer_store.gist import GistStore
from crbalancer_store.memory import MemoryStore
from crbalancer_store.models import (
    Repository,
    Reviewer,
    ReviewerGroup,
    repository_from_dict,
    repository_to_dict,
)
from crbalancer_store.sqlite import SQLiteStore


def _make_repo(name="api", project="org", pos=0):
    return Repository(
        name=name,
        project_name=project,
        remote_repo_id="100",
        reviewer_groups=[
            ReviewerGroup(
                group="backend",
                reviewers=[Reviewer("alice", "1"), Reviewer("bob", "2"), Reviewer("carol")],
                owners={"dave"},
                required=2,
                optional=1,
                pos=pos,
            )
        ],
    )


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestReviewerGroup:
    def test_empty_owners_owns_everyone(self):
        assert ReviewerGroup(group="g").is_owned_by("42", "anyone")

    def test_owner_matched_by_alias_case_insensitive(self):
        group = ReviewerGroup(group="g", owners={"Dave"})
        assert group.is_owned_by("4", "dave")

    def test_owner_matched_by_id(self):
        group = ReviewerGroup(group="g", owners={"4"})
        assert group.is_owned_by("4", "someone")

    def test_non_owner(self):
        group = ReviewerGroup(group="g", owners={"dave"})
        assert not group.is_owned_by("5", "erin")


class TestRepositoryReconcile:
    def test_keeps_remote_ids_and_position(self):
        repo = _make_repo(pos=2)
        changed = repo.reconcile(
            [ReviewerGroup(group="backend", reviewers=[Reviewer("alice"), Reviewer("bob"), Reviewer("carol")],
                           owners={"dave"}, required=2, optional=1)]
        )
        assert not changed
        assert [r.remote_id for r in repo.reviewer_groups[0].reviewers] == ["1", "2", ""]
        assert repo.reviewer_groups[0].pos == 2

    def test_position_wraps_when_group_shrinks(self):
        repo = _make_repo(pos=2)
        changed = repo.reconcile([ReviewerGroup(group="backend", reviewers=[Reviewer("alice"), Reviewer("bob")])])
        assert changed
        assert repo.reviewer_groups[0].pos == 0

    def test_new_group_starts_at_zero(self):
        repo = _make_repo(pos=1)
        repo.reconcile([ReviewerGroup(group="frontend", reviewers=[Reviewer("erin")])])
        assert repo.reviewer_groups[0].group == "frontend"
        assert repo.reviewer_groups[0].pos == 0

    def test_iter_reviewers_spans_groups(self):
        repo = _make_repo()
        repo.reviewer_groups.append(ReviewerGroup(group="frontend", reviewers=[Reviewer("erin")]))
        assert [r.alias for r in repo.iter_reviewers()] == ["alice", "bob", "carol", "erin"]


def test_dict_conversion_keeps_state():
    repo = _make_repo(pos=1)
    restored = repository_from_dict(json.loads(json.dumps(repository_to_dict(repo))))
    assert restored == repo


# ---------------------------------------------------------------------------
# MemoryStore
# ---------------------------------------------------------------------------


class TestMemoryStore:
    def test_missing_repository_returns_none(self):
        assert MemoryStore().get_repository("nope") is None

    def test_update_and_get(self):
        store = MemoryStore()
        repo = _make_repo()
        store.update_repository(repo.id, repo)
        assert store.get_repository(repo.id) == repo

    def test_returned_copy_is_detached(self):
        repo = _make_repo()
        store = MemoryStore([repo])
        loaded = store.get_repository(repo.id)
        loaded.reviewer_groups[0].pos = 2
        assert store.get_repository(repo.id).reviewer_groups[0].pos == 0

    def test_find_repository(self):
        store = MemoryStore([_make_repo("api"), _make_repo("web")])
        assert store.find_repository("org", "web").name == "web"
        assert store.find_repository("other", "web") is None

    def test_close_is_safe(self):
        MemoryStore().close()


# ---------------------------------------------------------------------------
# SQLiteStore
# ---------------------------------------------------------------------------


class TestSQLiteStore:
    def test_update_and_get(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        repo = _make_repo(pos=1)
        store.update_repository(repo.id, repo)

        loaded = store.get_repository(repo.id)
        assert loaded == repo
        store.close()

    def test_update_replaces_row(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        repo = _make_repo()
        store.update_repository(repo.id, repo)
        repo.reviewer_groups[0].pos = 2
        store.update_repository(repo.id, repo)

        assert len(store.list_repositories()) == 1
        assert store.get_repository(repo.id).reviewer_groups[0].pos == 2
        store.close()

    def test_find_repository(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        repo = _make_repo("web", "org")
        store.update_repository(repo.id, repo)

        assert store.find_repository("org", "web").id == repo.id
        assert store.find_repository("org", "api") is None
        store.close()

    def test_empty_store_lists_nothing(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        assert store.list_repositories() == []
        store.close()

    def test_persists_across_connections(self, tmp_path):
        """Data written by one SQLiteStore instance must be readable by another."""
        db_path = str(tmp_path / "test.db")
        store_a = SQLiteStore(db_path=db_path)
        repo = _make_repo(pos=2)
        store_a.update_repository(repo.id, repo)
        store_a.close()

        store_b = SQLiteStore(db_path=db_path)
        assert store_b.get_repository(repo.id).reviewer_groups[0].pos == 2
        store_b.close()

    def test_write_to_closed_store_raises(self, tmp_path):
        store = SQLiteStore(db_path=str(tmp_path / "test.db"))
        store.close()
        repo = _make_repo()
        with pytest.raises(StoreError):
            store.update_repository(repo.id, repo)


# ---------------------------------------------------------------------------
# GistStore
# ---------------------------------------------------------------------------


def _make_gist_mock(existing: dict | None = None):
    """Return a mock Gist object with crbalancer_repositories.json pre-populated."""
    gist = MagicMock()
    if existing is None:
        gist.files = {}
    else:
        file_mock = MagicMock()
        file_mock.content = json.dumps(existing)
        gist.files = {"crbalancer_repositories.json": file_mock}
    return gist


def _make_gist_store():
    """Return a GistStore with a mocked Github client."""
    store = object.__new__(GistStore)
    store._gist_id = "abc123"
    store._gh = MagicMock()
    return store


def _written(gist) -> dict:
    return json.loads(gist.edit.call_args[1]["files"]["crbalancer_repositories.json"]["content"])


class TestGistStore:
    def test_update_writes_repository(self):
        store = _make_gist_store()
        gist = _make_gist_mock(existing={})
        store._gh.get_gist.return_value = gist
        repo = _make_repo()

        store.update_repository(repo.id, repo)

        gist.edit.assert_called_once()
        content = _written(gist)
        assert content[repo.id]["name"] == "api"

    def test_update_keeps_other_repositories(self):
        other = _make_repo("web")
        store = _make_gist_store()
        gist = _make_gist_mock(existing={other.id: repository_to_dict(other)})
        store._gh.get_gist.return_value = gist
        repo = _make_repo()

        store.update_repository(repo.id, repo)

        assert set(_written(gist)) == {other.id, repo.id}

    def test_update_raises_on_failure(self):
        store = _make_gist_store()
        store._gh.get_gist.side_effect = Exception("network error")
        repo = _make_repo()

        with pytest.raises(StoreError, match="network error"):
            store.update_repository(repo.id, repo)

    def test_update_raises_when_edit_fails(self):
        store = _make_gist_store()
        gist = _make_gist_mock(existing={})
        gist.edit.side_effect = Exception("403 Forbidden")
        store._gh.get_gist.return_value = gist
        repo = _make_repo()

        with pytest.raises(StoreError):
            store.update_repository(repo.id, repo)

    def test_get_repository(self):
        repo = _make_repo(pos=1)
        store = _make_gist_store()
        store._gh.get_gist.return_value = _make_gist_mock(existing={repo.id: repository_to_dict(repo)})

        assert store.get_repository(repo.id) == repo
        assert store.get_repository("missing") is None

    def test_list_repositories_handles_missing_file(self):
        store = _make_gist_store()
        store._gh.get_gist.return_value = _make_gist_mock(existing=None)
        assert store.list_repositories() == []

    def test_corrupt_file_treated_as_empty(self):
        store = _make_gist_store()
        gist = MagicMock()
        gist.files = {"crbalancer_repositories.json": MagicMock(content="{not json")}
        store._gh.get_gist.return_value = gist
        assert store.list_repositories() == []

    def test_update_refuses_to_overwrite_corrupt_file(self):
        store = _make_gist_store()
        gist = MagicMock()
        gist.files = {"crbalancer_repositories.json": MagicMock(content='{"other": {"name": "web", "remote_')}
        store._gh.get_gist.return_value = gist
        repo = _make_repo()

        with pytest.raises(StoreError, match="unreadable"):
            store.update_repository(repo.id, repo)

        gist.edit.assert_not_called()

    def test_update_refuses_to_overwrite_non_object_payload(self):
        store = _make_gist_store()
        gist = _make_gist_mock(existing=None)
        gist.files = {"crbalancer_repositories.json": MagicMock(content='["web"]')}
        store._gh.get_gist.return_value = gist
        repo = _make_repo()

        with pytest.raises(StoreError):
            store.update_repository(repo.id, repo)

        gist.edit.assert_not_called()

    def test_read_failure_raises(self):
        store = _make_gist_store()
        store._gh.get_gist.side_effect = Exception("401 Unauthorized")
        with pytest.raises(StoreError):
            store.list_repositories()
