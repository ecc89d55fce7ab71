from __future__ import annotations

from github import Auth, Github

from crbalancer_core.service import Comment, CommentThread, PullRequestView

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30


def get_client(token: str, base_url: str = DEFAULT_BASE_URL, timeout: int = DEFAULT_TIMEOUT) -> Github:
    return Github(auth=Auth.Token(token), base_url=base_url, timeout=timeout)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


def target_ref(pr) -> str:
    """Return the PR's base branch as a full ref, e.g. ``refs/heads/master``."""
    ref = pr.base.ref
    return ref if ref.startswith("refs/") else f"refs/heads/{ref}"


def to_view(pr, repository_id: str) -> PullRequestView:
    user = pr.user
    return PullRequestView(
        id=pr.number,
        repository_id=repository_id,
        title=pr.title or "",
        target_ref=target_ref(pr),
        author_id=str(user.id) if user is not None else "",
        author_alias=user.login if user is not None else "",
        url=pr.html_url or "",
        is_draft=bool(pr.draft),
    )


def get_comment_threads(pr) -> list[CommentThread]:
    """Return each conversation comment on the PR as a one-comment thread.

    GitHub has no root threads on the conversation tab; every issue comment
    is its own thread.
    """
    return [CommentThread(comments=[Comment(content=c.body or "")]) for c in pr.get_issue_comments()]
