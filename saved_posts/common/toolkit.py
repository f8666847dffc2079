"""Shared behaviour every platform adapter delegates to.

Adapters hold an :class:`AdapterToolkit` instead of inheriting from a common
base class. The toolkit owns retry/backoff, rate-limit sleeps, translation of
transport errors into the adapter error taxonomy, credential checks, the
``Post`` builder, debug logging and the cursor pagination loop.
"""

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional, TypeVar

import httpx

from saved_posts.common.errors import (
    AdapterError,
    AuthenticationError,
    ErrorCode,
    MissingCredentialsError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    UnsupportedOperationError,
)
from saved_posts.common.models import AdapterConfig, PaginatedResponse, Post

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_BACKOFF_SECONDS = 30.0
RATE_LIMIT_RESET_HEADERS = ("x-ratelimit-reset", "x-rate-limit-reset", "ratelimit-reset")
SERVICE_UNAVAILABLE_STATUSES = frozenset({500, 502, 503, 504})
NETWORK_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    ConnectionRefusedError,
    TimeoutError,
    asyncio.TimeoutError,
)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def at_or_before(timestamp: datetime, since: Optional[datetime]) -> bool:
    """True when ``timestamp`` is not newer than the ``since`` high-water mark."""
    if since is None:
        return False
    return as_utc(timestamp) <= as_utc(since)


def parse_reset_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a rate-limit reset header: epoch seconds first, then ISO-8601."""
    if not value:
        return None
    value = value.strip()
    if re.fullmatch(r"[0-9]+", value):
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after the 0-indexed failed ``attempt``: 1, 2, 4, ... capped at 30."""
    return min(2.0**attempt, MAX_BACKOFF_SECONDS)


class AdapterToolkit:
    """Helpers bound to one adapter's platform name and configuration."""

    def __init__(self, platform: str, config: Optional[AdapterConfig] = None):
        self.platform = platform
        self.config = AdapterConfig.coerce(config)

    async def rate_limit(self, seconds: float) -> None:
        """Suspend the current operation for ``seconds``."""
        await asyncio.sleep(seconds)

    async def retry_with_backoff(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        context: str = "request",
    ) -> T:
        """
        Await ``operation()`` until it succeeds or the retry budget is spent.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            max_retries: Total attempts (defaults to ``config.max_retries``)
            context: Label used when normalizing and logging failures

        Returns:
            The operation's result

        Raises:
            AdapterError: Immediately for non-retryable failures (authentication,
                not found, validation), otherwise the last failure once the
                budget is exhausted.
        """
        attempts = max(1, self.config.max_retries if max_retries is None else max_retries)
        attempt = 0

        while True:
            try:
                return await operation()
            except Exception as exc:
                error = self.normalize_error(exc, context)
                attempt += 1

                if not error.retryable or attempt >= attempts:
                    if error is exc:
                        raise
                    raise error from exc

                delay = backoff_delay(attempt - 1)
                self.log(
                    f"Retry {attempt}/{attempts} after {delay:.0f}s",
                    {"context": context, "code": error.code.value},
                )
                await self.rate_limit(delay)

    def normalize_error(self, error: BaseException, context: str) -> AdapterError:
        """Translate a transport or HTTP failure into the adapter error taxonomy."""
        self.log(f"{context} failed", repr(error))

        if isinstance(error, AdapterError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return self._from_http_status(error)

        if isinstance(error, NETWORK_EXCEPTIONS):
            return NetworkError(self.platform, error)

        return AdapterError(
            str(error) or "Unknown error",
            ErrorCode.UNKNOWN_ERROR,
            self.platform,
            error,
        )

    def _from_http_status(self, error: httpx.HTTPStatusError) -> AdapterError:
        status = error.response.status_code

        if status in (401, 403):
            return AuthenticationError(self.platform, error)
        if status == 404:
            return ResourceNotFoundError(self.platform, error.request.url.path or "unknown", error)
        if status == 429:
            reset_time = self.extract_rate_limit_reset(error.response.headers)
            return RateLimitError(self.platform, reset_time, error)
        if status in SERVICE_UNAVAILABLE_STATUSES:
            return ServiceUnavailableError(self.platform, error)

        return AdapterError(
            f"HTTP {status} error: {error}",
            ErrorCode.HTTP_ERROR,
            self.platform,
            error,
            status_code=status,
        )

    @staticmethod
    def extract_rate_limit_reset(headers: Mapping[str, str]) -> Optional[datetime]:
        """Read the reset time from the first rate-limit reset header present."""
        for name in RATE_LIMIT_RESET_HEADERS:
            value = headers.get(name)
            if value:
                return parse_reset_time(value)
        return None

    def validate_required_credentials(self, credentials: Mapping[str, Any], required: list[str]) -> None:
        """Raise MissingCredentialsError listing every absent or empty key."""
        missing = [key for key in required if not credentials.get(key)]
        if missing:
            raise MissingCredentialsError(self.platform, missing)

    def create_post(
        self,
        *,
        platform_post_id: str,
        url: str,
        content: str,
        author_name: str,
        author_url: str,
        saved_at: datetime,
        title: Optional[str] = None,
        media_urls: Optional[list[str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Post:
        """Build a Post, defaulting media and metadata to empty containers."""
        return Post(
            platform_post_id=platform_post_id,
            url=url,
            title=title,
            content=content,
            author_name=author_name,
            author_url=author_url,
            media_urls=media_urls or [],
            saved_at=saved_at,
            metadata=metadata or {},
        )

    def log(self, message: str, data: Any = None) -> None:
        """Emit a platform-tagged record when ``config.debug`` is set."""
        if not self.config.debug:
            return
        if data is None:
            logger.info("[%s] %s", self.platform, message)
        else:
            logger.info("[%s] %s %s", self.platform, message, data)

    def unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(self.platform, operation)

    async def paginate(
        self,
        fetch_page: Callable[[Optional[str]], Awaitable[PaginatedResponse]],
        *,
        max_pages: int,
        delay: float,
        label: str = "items",
    ) -> AsyncIterator[PaginatedResponse]:
        """
        Walk a cursor-paginated listing one page at a time.

        Each page is fetched through :meth:`retry_with_backoff`. Iteration ends
        on an empty page, a missing cursor or after ``max_pages`` requests.
        ``delay`` seconds are slept between consecutive requests. Closing the
        generator early guarantees no further page is requested.
        """
        cursor: Optional[str] = None

        for page_number in range(1, max_pages + 1):
            self.log(f"Fetching {label} page {page_number}", {"cursor": cursor})
            page = await self.retry_with_backoff(
                partial(fetch_page, cursor),
                context=f"fetch {label} page {page_number}",
            )

            if not page.data:
                self.log(f"No more {label} to fetch")
                return

            yield page

            cursor = page.pagination.next
            if not page.pagination.has_more or not cursor:
                self.log(f"No more {label} pages available")
                return

            if page_number < max_pages:
                await self.rate_limit(delay)

        logger.warning("[%s] Stopped %s after the %d-page safety cap", self.platform, label, max_pages)
