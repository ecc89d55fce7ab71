"""Remote code-review service interface and the value types it returns.

The orchestrator only talks to ReviewService. GithubReviewService in
crbalancer_core.gh.service is the production implementation; tests use
MagicMock(spec=ReviewService) or a small fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PullRequestView:
    """Read-only projection of a remote pull request for one balancing pass."""

    id: int
    repository_id: str
    title: str
    target_ref: str
    author_id: str
    author_alias: str = ""
    url: str = ""
    is_draft: bool = False


@dataclass(frozen=True)
class RemoteRepository:
    id: str
    name: str


@dataclass(frozen=True)
class Identity:
    id: str
    alias: str = ""


@dataclass
class Comment:
    content: str


@dataclass
class CommentThread:
    comments: list[Comment] = field(default_factory=list)


class ReviewService(ABC):
    """Operations the balancer needs from the code-review service.

    Every method raises RemoteError (NotFoundError where noted) instead of
    returning a sentinel, so callers can tell "nothing there" from "could
    not look".
    """

    @abstractmethod
    def list_open_pull_requests(self, repository_id: str, project: str) -> list[PullRequestView]:
        """Return open pull requests in the order the service lists them."""

    @abstractmethod
    def list_repositories(self, project: str) -> list[RemoteRepository]:
        """Return every repository in ``project``. NotFoundError if the project is unknown."""

    @abstractmethod
    def resolve_identity(self, alias: str) -> Identity:
        """Return the remote identity for ``alias``. NotFoundError if unknown."""

    @abstractmethod
    def list_threads(self, repository_id: str, pull_request_id: int) -> list[CommentThread]:
        """Return every comment thread on a pull request."""

    @abstractmethod
    def create_thread(self, repository_id: str, pull_request_id: int, content: str) -> None:
        """Post a new root thread with a single comment."""

    @abstractmethod
    def add_reviewer(self, repository_id: str, pull_request_id: int, reviewer_id: str) -> None:
        """Register a reviewer on a pull request. Adding an existing reviewer again is harmless."""
