"""ReviewService backed by the GitHub REST API through PyGithub."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import requests
from github import GithubException, UnknownObjectException

from crbalancer_core.errors import NotFoundError, RemoteError
from crbalancer_core.gh.pull_request import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    get_client,
    get_comment_threads,
    get_pull_requests,
    to_view,
)
from crbalancer_core.service import CommentThread, Identity, PullRequestView, RemoteRepository, ReviewService

logger = logging.getLogger(__name__)


def _error_message(e: GithubException) -> str:
    data = e.data if isinstance(e.data, dict) else {}
    return data.get("message") or str(e)


@contextmanager
def _remote_call(action: str):
    """Translate PyGithub and transport exceptions into RemoteError."""
    try:
        yield
    except UnknownObjectException as e:
        raise NotFoundError(f"{action}: not found", status=e.status) from e
    except GithubException as e:
        raise RemoteError(f"{action}: {e.status} {_error_message(e)}", status=e.status) from e
    except requests.RequestException as e:
        raise RemoteError(f"{action}: {type(e).__name__}: {e}") from e


class GithubReviewService(ReviewService):
    """GitHub implementation of ReviewService.

    ``project`` is an organisation (or user) login and repository ids are
    GitHub's numeric ids, kept as strings. Every request is bounded by
    ``timeout`` seconds.
    """

    def __init__(self, token: str, base_url: str = DEFAULT_BASE_URL, timeout: int = DEFAULT_TIMEOUT, client=None):
        self._gh = client if client is not None else get_client(token, base_url=base_url, timeout=timeout)
        self._repos: dict[str, object] = {}

    def _get_repo(self, repository_id: str):
        repo = self._repos.get(repository_id)
        if repo is None:
            repo = self._gh.get_repo(int(repository_id))
            self._repos[repository_id] = repo
        return repo

    def _get_pull(self, repository_id: str, pull_request_id: int):
        return self._get_repo(repository_id).get_pull(pull_request_id)

    def list_open_pull_requests(self, repository_id: str, project: str) -> list[PullRequestView]:
        with _remote_call(f"list pull requests of {project}/{repository_id}"):
            repo = self._get_repo(repository_id)
            return [to_view(pr, repository_id) for pr in get_pull_requests(repo)]

    def list_repositories(self, project: str) -> list[RemoteRepository]:
        with _remote_call(f"list repositories of {project}"):
            try:
                owner = self._gh.get_organization(project)
            except UnknownObjectException:
                logger.debug("%s is not an organisation, trying it as a user", project)
                owner = self._gh.get_user(project)
            return [RemoteRepository(id=str(r.id), name=r.name) for r in owner.get_repos()]

    def resolve_identity(self, alias: str) -> Identity:
        with _remote_call(f"resolve identity {alias}"):
            user = self._gh.get_user(alias)
            return Identity(id=str(user.id), alias=user.login)

    def list_threads(self, repository_id: str, pull_request_id: int) -> list[CommentThread]:
        with _remote_call(f"list threads of PR #{pull_request_id}"):
            return get_comment_threads(self._get_pull(repository_id, pull_request_id))

    def create_thread(self, repository_id: str, pull_request_id: int, content: str) -> None:
        with _remote_call(f"create thread on PR #{pull_request_id}"):
            self._get_pull(repository_id, pull_request_id).create_issue_comment(content)

    def add_reviewer(self, repository_id: str, pull_request_id: int, reviewer_id: str) -> None:
        # Review requests take a login, not an id.
        with _remote_call(f"add reviewer {reviewer_id} to PR #{pull_request_id}"):
            login = self._gh.get_user_by_id(int(reviewer_id)).login
            self._get_pull(repository_id, pull_request_id).create_review_request(reviewers=[login])
