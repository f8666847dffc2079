"""Sync job: fetch an account's saved posts and upsert them into a sink.

The sink is keyed by ``(platform, platform_post_id, account_id)``. Failures
are classified so the scheduler knows whether to ask the user to
re-authenticate, retry later, or treat the account as misconfigured.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Protocol

from saved_posts.common.contract import PlatformAdapter
from saved_posts.common.errors import (
    AdapterError,
    AuthenticationError,
    NetworkError,
    RateLimitError,
    ServiceUnavailableError,
)
from saved_posts.common.models import Post

logger = logging.getLogger(__name__)

DEFAULT_BACKOFF = timedelta(minutes=15)

PostKey = tuple[str, str, str]


class PostSink(Protocol):
    """Persistence collaborator that upserts posts for an account."""

    def upsert(self, platform: str, account_id: str, post: Post) -> bool:
        """Insert or replace ``post``; return True when it was newly created."""
        ...


class InMemoryPostStore:
    """PostSink backed by a dict keyed by (platform, platform_post_id, account_id)."""

    def __init__(self):
        self._posts: dict[PostKey, Post] = {}

    def upsert(self, platform: str, account_id: str, post: Post) -> bool:
        key = (platform, post.platform_post_id, account_id)
        created = key not in self._posts
        self._posts[key] = post
        return created

    def get(self, platform: str, platform_post_id: str, account_id: str) -> Optional[Post]:
        return self._posts.get((platform, platform_post_id, account_id))

    def posts_for(self, platform: str, account_id: str) -> list[Post]:
        return [
            post
            for (post_platform, _, post_account), post in self._posts.items()
            if post_platform == platform and post_account == account_id
        ]

    def __len__(self) -> int:
        return len(self._posts)


class SyncStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    RETRY_LATER = "retry_later"


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    status: SyncStatus
    platform: str
    account_id: str
    fetched: int = 0
    created: int = 0
    updated: int = 0
    latest_saved_at: Optional[datetime] = None
    retry_at: Optional[datetime] = None
    error: Optional[AdapterError] = None


async def sync_account(
    adapter: PlatformAdapter,
    sink: PostSink,
    account_id: str,
    since: Optional[datetime] = None,
    timeout: Optional[float] = None,
    default_backoff: timedelta = DEFAULT_BACKOFF,
) -> SyncResult:
    """
    Fetch saved posts newer than ``since`` and upsert them into ``sink``.

    Args:
        adapter: Adapter for the account's platform
        sink: Persistence collaborator
        account_id: Owning account, part of every post's identity
        since: High-water mark from the previous run
        timeout: Seconds before the whole fetch is cancelled
        default_backoff: Delay before retrying when the provider gives no reset time

    Returns:
        SyncResult; ``latest_saved_at`` is the next run's ``since``
    """
    platform = adapter.platform
    now = datetime.now(timezone.utc)

    try:
        posts = await asyncio.wait_for(adapter.fetch_saved_posts(since), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Sync for {platform}/{account_id} timed out after {timeout}s")
        return SyncResult(
            status=SyncStatus.RETRY_LATER,
            platform=platform,
            account_id=account_id,
            retry_at=now + default_backoff,
        )
    except AuthenticationError as e:
        logger.error(f"Sync for {platform}/{account_id} failed: re-authentication required")
        return SyncResult(status=SyncStatus.FAILED, platform=platform, account_id=account_id, error=e)
    except RateLimitError as e:
        # A reset time already in the past (e.g. a relative header read as epoch) falls back to the backoff
        if e.reset_time and e.reset_time > now:
            retry_at = e.reset_time
        else:
            retry_at = now + default_backoff
        logger.warning(f"Sync for {platform}/{account_id} rate limited, retrying at {retry_at.isoformat()}")
        return SyncResult(
            status=SyncStatus.RETRY_LATER,
            platform=platform,
            account_id=account_id,
            retry_at=retry_at,
            error=e,
        )
    except (NetworkError, ServiceUnavailableError) as e:
        logger.warning(f"Sync for {platform}/{account_id} hit a transient error: {e.message}")
        return SyncResult(
            status=SyncStatus.RETRY_LATER,
            platform=platform,
            account_id=account_id,
            retry_at=now + default_backoff,
            error=e,
        )
    except AdapterError as e:
        logger.error(f"Sync for {platform}/{account_id} failed: [{e.code.value}] {e.message}")
        return SyncResult(status=SyncStatus.FAILED, platform=platform, account_id=account_id, error=e)

    result = SyncResult(
        status=SyncStatus.COMPLETED,
        platform=platform,
        account_id=account_id,
        fetched=len(posts),
    )

    for post in posts:
        if sink.upsert(platform, account_id, post):
            result.created += 1
        else:
            result.updated += 1

        if result.latest_saved_at is None or post.saved_at > result.latest_saved_at:
            result.latest_saved_at = post.saved_at

    logger.info(
        f"Synced {platform}/{account_id}: {result.fetched} fetched, "
        f"{result.created} new, {result.updated} updated"
    )
    return result
