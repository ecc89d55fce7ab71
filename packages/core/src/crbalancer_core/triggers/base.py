"""Reviewer triggers: side effects fired after reviewers have been added.

A trigger is any callable ``(required_reviewers, pr_url) -> None`` that
raises on failure. The orchestrator logs trigger failures and carries on;
the PR is already balanced by the time triggers run.

BaseTrigger is the class form. Subclasses implement _send() only:
    __call__() → _build_message() → _send()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from crbalancer_core.selector import get_reviewers_alias

if TYPE_CHECKING:
    from crbalancer_store.models import Reviewer

ReviewerTrigger = Callable[[list["Reviewer"], str], None]


class BaseTrigger(ABC):
    name: str = "trigger"

    def __call__(self, reviewers: list[Reviewer], pr_url: str) -> None:
        self._send(self._build_message(reviewers, pr_url))

    def _build_message(self, reviewers: list[Reviewer], pr_url: str) -> str:
        return f"{', '.join(get_reviewers_alias(reviewers))}: you have been selected to review {pr_url}"

    @abstractmethod
    def _send(self, message: str) -> None:
        """Deliver one message. Raise on failure."""
