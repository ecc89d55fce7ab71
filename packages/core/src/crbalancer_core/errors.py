"""Exception hierarchy for the balancer.

Bootstrap failures (RemoteError, NotFoundError, StoreError raised while
resolving ids) abort a whole run. Anything raised while balancing a single
pull request is wrapped in BalanceError and recorded on that PR's outcome.
"""

from __future__ import annotations

from crbalancer_store.base import StoreError

__all__ = [
    "AssignmentError",
    "BalanceError",
    "BalancerError",
    "CommentError",
    "ConfigError",
    "NotFoundError",
    "RemoteError",
    "SelectionError",
    "StoreError",
]


class BalancerError(Exception):
    """Base class for every error raised by crbalancer_core."""


class ConfigError(BalancerError):
    """The configuration file is missing a value or holds a malformed one."""


class RemoteError(BalancerError):
    """The remote service could not be reached or answered with an error."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NotFoundError(RemoteError):
    """A repository or identity does not exist on the remote service."""


class SelectionError(BalancerError):
    """No reviewer could be selected for a pull request author."""


class AssignmentError(BalancerError):
    """Adding one reviewer to a pull request failed."""

    def __init__(self, alias: str, cause: Exception):
        super().__init__(f"failed to add reviewer {alias}: {cause}")
        self.alias = alias
        self.cause = cause


class CommentError(BalancerError):
    """The balancer comment could not be posted after reviewers were added."""


class BalanceError(BalancerError):
    """A failure scoped to one pull request.

    ``stage`` names the step of the balance protocol that failed: guard,
    select, persist, assign or comment.
    """

    def __init__(self, pr_id: int, stage: str, cause: Exception):
        super().__init__(f"PR #{pr_id}: {stage} failed: {cause}")
        self.pr_id = pr_id
        self.stage = stage
        self.cause = cause
