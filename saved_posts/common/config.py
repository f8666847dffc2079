"""Credential lookup from environment variables."""

import os
from typing import Any

# credential key -> environment variables tried in order
ENV_CREDENTIALS: dict[str, dict[str, tuple[str, ...]]] = {
    "reddit": {
        "client_id": ("REDDIT_CLIENT_ID",),
        "client_secret": ("REDDIT_CLIENT_SECRET",),
        "username": ("REDDIT_USERNAME",),
        "password": ("REDDIT_PASSWORD",),
        "user_agent": ("REDDIT_USER_AGENT",),
    },
    "twitter": {
        "access_token": ("TWITTER_ACCESS_TOKEN", "X_ACCESS_TOKEN"),
        "bearer_token": ("TWITTER_BEARER_TOKEN", "X_BEARER_TOKEN"),
    },
}


def credentials_from_env(platform: str) -> dict[str, Any]:
    """
    Collect the credentials for ``platform`` from the environment.

    Only variables that are set and non-empty are included, so the adapter's
    own required-credential check reports what is missing.

    Args:
        platform: Platform identifier, e.g. "reddit" or "twitter"

    Returns:
        Credentials mapping (empty for platforms with no known variables)
    """
    credentials: dict[str, Any] = {}

    for key, names in ENV_CREDENTIALS.get(platform, {}).items():
        for name in names:
            value = os.environ.get(name)
            if value:
                credentials[key] = value
                break

    return credentials
