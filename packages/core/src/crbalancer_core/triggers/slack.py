from __future__ import annotations

import logging

import requests

from crbalancer_core.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10


class SlackWebhookTrigger(BaseTrigger):
    """Post the reviewer notification to a Slack incoming webhook."""

    name = "slack"

    def __init__(self, webhook_url: str, timeout: int = _DEFAULT_TIMEOUT):
        if not webhook_url:
            raise ValueError("SlackWebhookTrigger requires a webhook URL.")
        self._webhook_url = webhook_url
        self._timeout = timeout

    def _build_message(self, reviewers, pr_url: str) -> str:
        mentions = ", ".join(f"*{r.alias}*" for r in reviewers)
        return f":eyes: {mentions} selected as required reviewers for <{pr_url}|this pull request>"

    def _send(self, message: str) -> None:
        response = requests.post(self._webhook_url, json={"text": message}, timeout=self._timeout)
        response.raise_for_status()
        logger.debug("Slack notification sent (%d)", response.status_code)
