"""Reviewer balancing orchestration.

One AutoReviewer pass over a repository:

    ensure_repo()                 resolve + persist remote ids (run-fatal)
    list_open_pull_requests()     (run-fatal)
    for each PR:
        should_filter()           skip WIP, non-mainline, drafts
        balance_review()          guard → select → persist → assign → comment → trigger

A failure inside balance_review() is scoped to that PR: it is recorded on the
PR's outcome and the pass moves on to the next PR.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from crbalancer_core.comment import DEFAULT_BOT_MARKER, DEFAULT_SLA_HOURS, build_comment, contains_balancer_comment
from crbalancer_core.errors import (
    AssignmentError,
    BalanceError,
    CommentError,
    NotFoundError,
    RemoteError,
    SelectionError,
    StoreError,
)
from crbalancer_core.filters import Filter, default_filters, should_filter
from crbalancer_core.selector import apply_rotation, get_reviewers_alias, select_reviewers

if TYPE_CHECKING:
    from crbalancer_core.service import PullRequestView, ReviewService
    from crbalancer_core.triggers.base import ReviewerTrigger
    from crbalancer_store.base import RepositoryStore
    from crbalancer_store.models import Repository, Reviewer

logger = logging.getLogger(__name__)

FILTERED = "filtered"
ALREADY_BALANCED = "already_balanced"
BALANCED = "balanced"
SHADOW = "shadow"
FAILED = "failed"
CANCELLED = "cancelled"


@dataclass
class PullRequestOutcome:
    pr_id: int
    url: str
    status: str
    required: list[str] = field(default_factory=list)
    optional: list[str] = field(default_factory=list)
    error: BalanceError | None = None


@dataclass
class RunReport:
    """What one pass did to each open pull request, in service order."""

    repository: str
    outcomes: list[PullRequestOutcome] = field(default_factory=list)

    def with_status(self, status: str) -> list[PullRequestOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def failed(self) -> list[PullRequestOutcome]:
        return self.with_status(FAILED)

    @property
    def balanced(self) -> list[PullRequestOutcome]:
        return self.with_status(BALANCED)


class AutoReviewer:
    """Adds balanced reviewers to the open pull requests of one repository.

    ``filters`` defaults to default_filters() for the mainline ref. In
    ``shadow`` mode reviewers are selected and reported but nothing is
    persisted, assigned, commented or triggered. Ids resolved during the
    bootstrap stay on the in-memory Repository only.
    """

    def __init__(
        self,
        service: ReviewService,
        store: RepositoryStore,
        repo: Repository,
        bot_identifier: str = DEFAULT_BOT_MARKER,
        filters: list[Filter] | None = None,
        triggers: list[ReviewerTrigger] | None = None,
        sla_hours: int = DEFAULT_SLA_HOURS,
        shadow: bool = False,
    ):
        if not bot_identifier:
            raise ValueError("bot_identifier must not be empty.")
        self.service = service
        self.store = store
        self.repo = repo
        self.bot_identifier = bot_identifier
        self.filters = list(filters) if filters is not None else default_filters()
        self.triggers = list(triggers or [])
        self.sla_hours = sla_hours
        self.shadow = shadow

    # ------------------------------------------------------------------ #
    # Run                                                                  #
    # ------------------------------------------------------------------ #

    def run(self, cancel: threading.Event | None = None) -> RunReport:
        """Balance every open pull request once.

        Bootstrap and listing failures propagate. Per-PR failures are logged,
        recorded on the report and do not stop the pass. Once ``cancel`` is
        set no further PR is started.
        """
        report = RunReport(repository=f"{self.repo.project_name}/{self.repo.name}")
        if cancel is not None and cancel.is_set():
            return report

        self.ensure_repo()

        pull_requests = self.service.list_open_pull_requests(self.repo.remote_repo_id, self.repo.project_name)
        logger.info("%s: %d open pull request(s)", report.repository, len(pull_requests))

        for pr in pull_requests:
            if cancel is not None and cancel.is_set():
                report.outcomes.append(PullRequestOutcome(pr_id=pr.id, url=pr.url, status=CANCELLED))
                continue

            if should_filter(pr, self.filters):
                logger.debug("Skipping PR #%d (%s): filtered", pr.id, pr.title)
                report.outcomes.append(PullRequestOutcome(pr_id=pr.id, url=pr.url, status=FILTERED))
                continue

            try:
                outcome = self.balance_review(pr)
            except BalanceError as e:
                logger.error("Balancing reviewers failed: %s", e)
                outcome = PullRequestOutcome(pr_id=pr.id, url=pr.url, status=FAILED, error=e)
            report.outcomes.append(outcome)

        return report

    # ------------------------------------------------------------------ #
    # Bootstrap                                                            #
    # ------------------------------------------------------------------ #

    def ensure_repo(self) -> None:
        self._ensure_remote_repo_id()
        self._ensure_reviewer_ids()

    def _ensure_remote_repo_id(self) -> None:
        if self.repo.remote_repo_id:
            return

        for remote in self.service.list_repositories(self.repo.project_name):
            if remote.name == self.repo.name:
                self.repo.remote_repo_id = remote.id
                logger.info("Resolved repository %s to id %s", self.repo.name, remote.id)
                self._save_repo()
                return

        raise NotFoundError(f"repo: {self.repo.name} not found in project {self.repo.project_name}")

    def _ensure_reviewer_ids(self) -> None:
        updated = False
        for reviewer in self.repo.iter_reviewers():
            if reviewer.remote_id:
                continue
            identity = self.service.resolve_identity(reviewer.alias)
            reviewer.remote_id = identity.id
            logger.info("Resolved reviewer %s to id %s", reviewer.alias, identity.id)
            updated = True

        if updated:
            self._save_repo()

    def _save_repo(self) -> None:
        if self.shadow:
            return
        self.store.update_repository(self.repo.id, self.repo)

    # ------------------------------------------------------------------ #
    # Balance one PR                                                       #
    # ------------------------------------------------------------------ #

    def balance_review(self, pr: PullRequestView) -> PullRequestOutcome:
        """Run the balance protocol on one pull request.

        Raises BalanceError naming the failed stage. Reviewers added before
        an assign or comment failure stay on the PR; the next pass retries
        because the marker comment was never posted.
        """
        try:
            if self.contains_balancer_comment(pr.repository_id, pr.id):
                logger.debug("PR #%d already balanced", pr.id)
                return PullRequestOutcome(pr_id=pr.id, url=pr.url, status=ALREADY_BALANCED)
        except RemoteError as e:
            raise BalanceError(pr.id, "guard", e) from e

        try:
            selection = select_reviewers(self.repo.reviewer_groups, pr.author_id, pr.author_alias)
        except SelectionError as e:
            raise BalanceError(pr.id, "select", e) from e

        required = get_reviewers_alias(selection.required)
        optional = get_reviewers_alias(selection.optional)

        if self.shadow:
            logger.info("Shadow: would add %s as required and %s as optional to PR #%d", required, optional, pr.id)
            return PullRequestOutcome(pr_id=pr.id, url=pr.url, status=SHADOW, required=required, optional=optional)

        # Persist the advanced rotation before any remote side effect.
        apply_rotation(self.repo.reviewer_groups, selection)
        try:
            self._save_repo()
        except StoreError as e:
            raise BalanceError(pr.id, "persist", e) from e

        try:
            self.add_reviewers(pr.repository_id, pr.id, selection.required, selection.optional)
        except AssignmentError as e:
            raise BalanceError(pr.id, "assign", e) from e

        comment = build_comment(selection.required, self.bot_identifier, self.sla_hours)
        try:
            self.service.create_thread(pr.repository_id, pr.id, comment)
        except RemoteError as e:
            raise BalanceError(pr.id, "comment", CommentError(f"add thread error: {e}")) from e

        logger.info("Added %s as required reviewers and %s as optional to PR #%d", required, optional, pr.id)

        self._fire_triggers(selection.required, pr.url)
        return PullRequestOutcome(pr_id=pr.id, url=pr.url, status=BALANCED, required=required, optional=optional)

    def contains_balancer_comment(self, repository_id: str, pull_request_id: int) -> bool:
        return contains_balancer_comment(self.service, repository_id, pull_request_id, self.bot_identifier)

    def add_reviewers(
        self,
        repository_id: str,
        pull_request_id: int,
        required: list[Reviewer],
        optional: list[Reviewer],
    ) -> None:
        """Add required then optional reviewers, stopping at the first failure."""
        for reviewer in required + optional:
            if not reviewer.remote_id:
                raise AssignmentError(reviewer.alias, ValueError("remote identity not resolved"))
            try:
                self.service.add_reviewer(repository_id, pull_request_id, reviewer.remote_id)
            except RemoteError as e:
                raise AssignmentError(reviewer.alias, e) from e

    def _fire_triggers(self, reviewers: list[Reviewer], pr_url: str) -> None:
        for trigger in self.triggers:
            try:
                trigger(reviewers, pr_url)
            except Exception as e:
                logger.error("Reviewer trigger %s failed for %s: %s", getattr(trigger, "name", trigger), pr_url, e)
