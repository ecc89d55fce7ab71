"""Pull request filters.

A filter returns True when a pull request should be left alone. Filters are
pure functions of the PullRequestView and combine with OR: one match is
enough to skip the PR.
"""

from __future__ import annotations

from typing import Callable

from crbalancer_core.service import PullRequestView

Filter = Callable[[PullRequestView], bool]

DEFAULT_MAINLINE_REF = "refs/heads/master"
WIP_MARKER = "WIP"


def filter_wip(pr: PullRequestView) -> bool:
    return WIP_MARKER in pr.title


def filter_draft(pr: PullRequestView) -> bool:
    return pr.is_draft


def target_branch_filter(mainline_ref: str = DEFAULT_MAINLINE_REF) -> Filter:
    """Build a filter that skips every PR not targeting ``mainline_ref``.

    The comparison ignores case, so ``refs/heads/Master`` counts as mainline.
    """
    mainline = mainline_ref.casefold()

    def filter_target_branch(pr: PullRequestView) -> bool:
        return pr.target_ref.casefold() != mainline

    return filter_target_branch


def default_filters(mainline_ref: str = DEFAULT_MAINLINE_REF, include_drafts: bool = False) -> list[Filter]:
    filters = [filter_wip, target_branch_filter(mainline_ref)]
    if not include_drafts:
        filters.append(filter_draft)
    return filters


def should_filter(pr: PullRequestView, filters: list[Filter]) -> bool:
    return any(f(pr) for f in filters)
