"""Token lookup for the GitHub account the balancer acts as.

Sources, first hit wins:
  1. CRBALANCER_TOKEN  (a dedicated bot account)
  2. GITHUB_TOKEN      (CI)
  3. `gh auth token`   (a local GitHub CLI login, for the configured host)
"""

from __future__ import annotations

import logging
import os
import subprocess
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("CRBALANCER_TOKEN", "GITHUB_TOKEN")
_PUBLIC_API_HOST = "api.github.com"


def _gh_hostname(base_url: str | None) -> str | None:
    """Map an API base URL to the hostname `gh` keys its logins by.

    None means github.com, which is what `gh` assumes without --hostname.
    """
    if not base_url:
        return None
    host = urlparse(base_url).hostname
    if not host or host == _PUBLIC_API_HOST:
        return None
    return host


def _token_from_gh_cli(hostname: str | None) -> str | None:
    cmd = ["gh", "auth", "token"]
    if hostname:
        cmd += ["--hostname", hostname]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh CLI unavailable: %s", e)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(base_url: str | None = None) -> str | None:
    """Return a GitHub token, or None when no source has one.

    Does not raise. The run command turns a missing token into a UsageError.
    """
    for var in TOKEN_ENV_VARS:
        if os.environ.get(var):
            return os.environ[var]

    token = _token_from_gh_cli(_gh_hostname(base_url))
    if token:
        logger.debug("Using the GitHub token of the gh CLI session.")
    return token
