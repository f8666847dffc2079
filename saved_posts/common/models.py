import os
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class AuthType(str, Enum):
    """Authentication schemes a platform adapter can accept."""

    OAUTH2 = "oauth2"
    API_TOKEN = "api_token"
    BEARER_TOKEN = "bearer_token"
    COOKIE = "cookie"
    USERNAME_PASSWORD = "username_password"
    PAT = "pat"  # GitHub personal access token


class Capability(str, Enum):
    """Optional adapter capabilities, queried with ``adapter.supports()``."""

    RATE_LIMIT_INFO = "rate_limit_info"
    WEBHOOKS = "webhooks"


class Post(BaseModel):
    """Platform-neutral saved item, as handed to the persistence sink."""

    platform_post_id: str
    url: str
    title: Optional[str] = None
    content: str
    author_name: str
    author_url: str = ""
    media_urls: list[str] = Field(default_factory=list)
    saved_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class RateLimitSettings(BaseModel):
    """Request budget for a platform."""

    model_config = ConfigDict(frozen=True)

    max_requests: int = 50
    window_seconds: float = 60.0


class AdapterConfig(BaseModel):
    """Per-adapter configuration. Immutable once built.

    ``rate_limit`` describes the platform's request budget for callers and
    schedulers; adapters do not read it. Their page delays are per-adapter
    constants (``PAGE_DELAY_SECONDS`` for Reddit, ``BOOKMARK_PAGE_DELAY_SECONDS``
    and ``TIMELINE_PAGE_DELAY_SECONDS`` for Twitter).
    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = 3
    timeout: float = 30.0
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    debug: bool = False

    @classmethod
    def coerce(cls, config: "AdapterConfig | dict | None") -> "AdapterConfig":
        """Accept a config, a partial mapping or None and fill in defaults."""
        if isinstance(config, AdapterConfig):
            return config
        return cls.model_validate(config or {})

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        """Create an AdapterConfig from environment variables."""
        values: dict[str, Any] = {}

        max_retries = os.environ.get("SAVED_POSTS_MAX_RETRIES")
        if max_retries:
            values["max_retries"] = int(max_retries)

        timeout = os.environ.get("SAVED_POSTS_TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)

        debug = os.environ.get("SAVED_POSTS_DEBUG", "")
        values["debug"] = debug.lower() in ("1", "true", "yes", "on")

        return cls(**values)


class RateLimitInfo(BaseModel):
    """Rate-limit state reported by the provider on the last response."""

    limit: int
    remaining: int
    reset_at: datetime


class PaginationCursor(BaseModel):
    """Opaque provider cursor for the neighbouring pages."""

    next: Optional[str] = None
    previous: Optional[str] = None
    has_more: bool = False


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of raw provider items.

    ``includes`` carries side-loaded records (e.g. Twitter users and media)
    that items reference by key.
    """

    data: list[T] = Field(default_factory=list)
    pagination: PaginationCursor = Field(default_factory=PaginationCursor)
    includes: dict[str, Any] = Field(default_factory=dict)


class WebhookConfig(BaseModel):
    """Webhook registration request for platforms that push updates."""

    url: str
    secret: Optional[str] = None
    events: list[str] = Field(default_factory=list)
