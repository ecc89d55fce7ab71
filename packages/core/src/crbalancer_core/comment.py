"""The balancer comment and the marker that makes balancing idempotent.

Every comment the balancer posts carries the bot marker. A later pass that
finds the marker in any comment on the PR leaves the PR alone, so the
comment itself is the only record that a PR has been balanced.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from crbalancer_core.selector import get_reviewers_alias

if TYPE_CHECKING:
    from crbalancer_core.service import ReviewService
    from crbalancer_store.models import Reviewer

logger = logging.getLogger(__name__)

DEFAULT_BOT_MARKER = "b03f5f7f11d50a3a"
DEFAULT_SLA_HOURS = 48

_TEMPLATE = (
    "Hello {aliases},\n\n"
    "You are randomly selected as the **required** code reviewers of this change.\n\n"
    "Your responsibility is to review **each** iteration of this CR until signoff. "
    "You should provide no more than {sla_hours} hour SLA for each iteration.\n\n"
    "Thank you.\n\n"
    "CR Balancer\n"
    "<!-- crbalancer: {marker} -->"
)


def build_comment(required: list[Reviewer], marker: str, sla_hours: int = DEFAULT_SLA_HOURS) -> str:
    """Render the root comment naming the required reviewers.

    The marker sits in an HTML comment: hidden when rendered, still present
    in the raw body that contains_balancer_comment() searches.
    """
    return _TEMPLATE.format(
        aliases=",".join(get_reviewers_alias(required)),
        sla_hours=sla_hours,
        marker=marker,
    )


def contains_balancer_comment(service: ReviewService, repository_id: str, pull_request_id: int, marker: str) -> bool:
    """Return True if any comment on the pull request contains ``marker``.

    Errors from the service propagate: guessing "not balanced" on a failed
    fetch would assign reviewers twice.
    """
    threads = service.list_threads(repository_id, pull_request_id)
    for thread in threads:
        for comment in thread.comments:
            if marker in (comment.content or ""):
                logger.debug("PR #%d already carries the balancer marker", pull_request_id)
                return True
    return False
