"""Repository configuration data models.

Decoupled from crbalancer_core so the store layer can be used independently.
The core mutates these objects (resolved remote ids, rotation positions) and
hands them back to a store for persistence.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


@dataclass
class Reviewer:
    """A person who can be asked to review.

    ``remote_id`` is empty until the alias has been resolved against the
    remote service once; after that it is cached and never changes.
    """

    alias: str
    remote_id: str = ""


@dataclass
class ReviewerGroup:
    """A pool of reviewers responsible for the PRs of a set of owners.

    An empty ``owners`` set means the group reviews every author.
    ``pos`` is the rotation position: the index in ``reviewers`` where the
    next selection starts.
    """

    group: str
    reviewers: list[Reviewer] = field(default_factory=list)
    owners: set[str] = field(default_factory=set)
    required: int = 1
    optional: int = 0
    pos: int = 0

    def is_owned_by(self, author_id: str, author_alias: str | None = None) -> bool:
        if not self.owners:
            return True
        owners = {o.lower() for o in self.owners}
        if author_id and author_id.lower() in owners:
            return True
        return bool(author_alias) and author_alias.lower() in owners


@dataclass
class Repository:
    """A repository whose pull requests get balanced reviewers.

    ``id`` is the store's own identifier; ``remote_repo_id`` is the id the
    remote service uses and is resolved lazily by name.
    """

    name: str
    project_name: str
    reviewer_groups: list[ReviewerGroup] = field(default_factory=list)
    remote_repo_id: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def iter_reviewers(self):
        for reviewer_group in self.reviewer_groups:
            yield from reviewer_group.reviewers

    def reconcile(self, groups: list[ReviewerGroup]) -> bool:
        """Replace reviewer groups with ``groups`` while keeping cached state.

        Membership, owners and counts come from ``groups``. Resolved remote
        ids are carried over by alias and rotation positions by group name.
        Returns True if anything changed.
        """
        known_ids = {r.alias: r.remote_id for r in self.iter_reviewers() if r.remote_id}
        known_pos = {g.group: g.pos for g in self.reviewer_groups}

        merged = []
        for g in groups:
            reviewers = [Reviewer(alias=r.alias, remote_id=r.remote_id or known_ids.get(r.alias, "")) for r in g.reviewers]
            pos = known_pos.get(g.group, g.pos)
            merged.append(
                ReviewerGroup(
                    group=g.group,
                    reviewers=reviewers,
                    owners=set(g.owners),
                    required=g.required,
                    optional=g.optional,
                    pos=pos % len(reviewers) if reviewers else 0,
                )
            )

        changed = merged != self.reviewer_groups
        self.reviewer_groups = merged
        return changed


def repository_to_dict(repo: Repository) -> dict:
    return {
        "id": repo.id,
        "name": repo.name,
        "project_name": repo.project_name,
        "remote_repo_id": repo.remote_repo_id,
        "reviewer_groups": [
            {
                "group": g.group,
                "reviewers": [{"alias": r.alias, "remote_id": r.remote_id} for r in g.reviewers],
                "owners": sorted(g.owners),
                "required": g.required,
                "optional": g.optional,
                "pos": g.pos,
            }
            for g in repo.reviewer_groups
        ],
    }


def repository_from_dict(d: dict) -> Repository:
    return Repository(
        id=d.get("id") or uuid.uuid4().hex,
        name=d.get("name", ""),
        project_name=d.get("project_name", ""),
        remote_repo_id=d.get("remote_repo_id", "") or "",
        reviewer_groups=[
            ReviewerGroup(
                group=g.get("group", ""),
                reviewers=[
                    Reviewer(alias=r.get("alias", ""), remote_id=r.get("remote_id", "") or "")
                    for r in g.get("reviewers", [])
                ],
                owners=set(g.get("owners", [])),
                required=g.get("required", 1),
                optional=g.get("optional", 0),
                pos=g.get("pos", 0),
            )
            for g in d.get("reviewer_groups", [])
        ],
    )
