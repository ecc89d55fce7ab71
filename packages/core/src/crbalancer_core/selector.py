"""Reviewer selection by round-robin rotation over reviewer groups.

select_reviewers() is a pure function: it reads each group's rotation
position and returns the new positions alongside the chosen reviewers.
Nothing changes until the caller applies the Selection with
apply_rotation().

Rotation per eligible group:
  1. Walk the group's reviewers circularly, starting at ``pos``.
  2. Skip the PR author and anyone already chosen, matching people by
     remote id or by login ignoring case.
  3. Take the first ``required`` walkers as required, the next ``optional``
     as optional.
  4. Move ``pos`` to just past the last required pick (or the last optional
     pick when the group contributed no required reviewer).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from crbalancer_core.errors import SelectionError
from crbalancer_store.models import Reviewer, ReviewerGroup


@dataclass
class Selection:
    required: list[Reviewer] = field(default_factory=list)
    optional: list[Reviewer] = field(default_factory=list)
    rotation: dict[str, int] = field(default_factory=dict)

    @property
    def reviewers(self) -> list[Reviewer]:
        """Required reviewers first, then optional."""
        return self.required + self.optional


def _identity_keys(reviewer: Reviewer) -> set[str]:
    """Keys that identify one person: the login ignoring case, and the remote id once resolved."""
    keys = {f"alias:{reviewer.alias.lower()}"}
    if reviewer.remote_id:
        keys.add(f"id:{reviewer.remote_id}")
    return keys


def _is_author(reviewer: Reviewer, author_id: str, author_alias: str | None) -> bool:
    if author_id and reviewer.remote_id and reviewer.remote_id == author_id:
        return True
    return bool(author_alias) and reviewer.alias.lower() == author_alias.lower()


def select_reviewers(
    groups: list[ReviewerGroup],
    author_id: str,
    author_alias: str | None = None,
) -> Selection:
    """Pick required and optional reviewers for a PR by ``author_id``.

    Raises SelectionError when no group owns the author or when no required
    reviewer is left after excluding the author.
    """
    eligible = [g for g in groups if g.is_owned_by(author_id, author_alias)]
    if not eligible:
        raise SelectionError(f"no reviewer group owns author {author_alias or author_id}")

    selection = Selection()
    taken: set[str] = set()

    for g in eligible:
        n = len(g.reviewers)
        if n == 0:
            continue

        picked_required: list[int] = []
        picked_optional: list[int] = []
        for step in range(n):
            idx = (g.pos + step) % n
            reviewer = g.reviewers[idx]
            keys = _identity_keys(reviewer)
            if keys & taken or _is_author(reviewer, author_id, author_alias):
                continue
            if len(picked_required) < g.required:
                picked_required.append(idx)
            elif len(picked_optional) < g.optional:
                picked_optional.append(idx)
            else:
                break
            taken |= keys

        selection.required.extend(g.reviewers[i] for i in picked_required)
        selection.optional.extend(g.reviewers[i] for i in picked_optional)

        last = picked_required or picked_optional
        if last:
            selection.rotation[g.group] = (last[-1] + 1) % n

    if not selection.required:
        raise SelectionError(f"no required reviewer available for author {author_alias or author_id}")

    return selection


def apply_rotation(groups: list[ReviewerGroup], selection: Selection) -> None:
    for g in groups:
        if g.group in selection.rotation:
            g.pos = selection.rotation[g.group]


def get_reviewers_alias(reviewers: list[Reviewer]) -> list[str]:
    return [r.alias for r in reviewers]
