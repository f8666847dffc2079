"""Reddit adapter: saved submissions and comments."""

import html
import re
from collections.abc import Mapping
from contextlib import aclosing
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from saved_posts.common.errors import AdapterError, AuthenticationError, MissingCredentialsError
from saved_posts.common.models import (
    AdapterConfig,
    AuthType,
    Capability,
    PaginatedResponse,
    PaginationCursor,
    Post,
    RateLimitInfo,
    WebhookConfig,
)
from saved_posts.common.toolkit import AdapterToolkit, at_or_before
from saved_posts.reddit.client import MAX_PAGE_SIZE, RedditClient
from saved_posts.reddit.models import (
    COMMENT_KIND,
    SUBMISSION_KIND,
    RedditComment,
    RedditCommentMetadata,
    RedditSubmission,
    RedditSubmissionMetadata,
    item_kind,
)

REQUIRED_CREDENTIALS = ["client_id", "client_secret", "username", "password"]

# 100 pages * 100 items = 10,000 items; the listing has no documented end
MAX_PAGES = 100

# Reddit allows ~100 requests per minute
PAGE_DELAY_SECONDS = 0.6

MEDIA_URL_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|webp|mp4|webm)$", re.IGNORECASE)


class RedditAdapter:
    """Fetches saved posts and comments from Reddit using OAuth2."""

    platform = "reddit"
    capabilities = frozenset({Capability.RATE_LIMIT_INFO})

    def __init__(
        self,
        credentials: Mapping[str, Any],
        config: Optional[AdapterConfig] = None,
        client: Optional[RedditClient] = None,
    ):
        self.credentials = dict(credentials)
        self.toolkit = AdapterToolkit(self.platform, config)
        self.toolkit.validate_required_credentials(self.credentials, REQUIRED_CREDENTIALS)
        self.client = client or RedditClient.from_credentials(
            self.credentials,
            timeout=self.toolkit.config.timeout,
        )

    async def authenticate(self, credentials: Mapping[str, Any]) -> bool:
        """Check that ``credentials`` can obtain a token and read the account."""
        try:
            self.toolkit.validate_required_credentials(credentials, REQUIRED_CREDENTIALS)
            client = RedditClient.from_credentials(
                dict(credentials),
                timeout=self.toolkit.config.timeout,
                transport=self.client.transport,
            )
            await self.toolkit.retry_with_backoff(client.authenticate, context="authenticate")
            await self.toolkit.retry_with_backoff(client.get_me, context="authenticate")
            return True
        except (AuthenticationError, MissingCredentialsError) as e:
            self.toolkit.log("Authentication failed", e)
            return False

    async def validate_credentials(self) -> bool:
        """Check that the held credentials are still usable."""
        try:
            await self.toolkit.retry_with_backoff(self.client.get_me, context="validate_credentials")
            return True
        except AuthenticationError as e:
            self.toolkit.log("Credential validation failed", e)
            return False

    def get_supported_auth_types(self) -> frozenset[AuthType]:
        return frozenset({AuthType.OAUTH2, AuthType.USERNAME_PASSWORD})

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]:
        """Rate-limit state from the last API response, None before any call."""
        return self.client.last_rate_limit

    async def setup_webhook(self, config: WebhookConfig) -> str:
        raise self.toolkit.unsupported("setup_webhook")

    async def remove_webhook(self, webhook_id: str) -> None:
        raise self.toolkit.unsupported("remove_webhook")

    async def fetch_saved_posts(self, since: Optional[datetime] = None) -> list[Post]:
        """
        Fetch saved submissions and comments, newest first.

        Args:
            since: Only return items saved strictly after this moment; paging
                stops at the first item that is not newer

        Returns:
            List of Post objects in provider order
        """
        self.toolkit.log("Starting to fetch saved posts", {"since": since})
        posts: list[Post] = []
        pages = 0

        try:
            listing = self.toolkit.paginate(
                self._fetch_page,
                max_pages=MAX_PAGES,
                delay=PAGE_DELAY_SECONDS,
                label="saved items",
            )
            async with aclosing(listing):
                async for page in listing:
                    pages += 1
                    for child in page.data:
                        created_at = _item_created_at(child)
                        if created_at is not None and at_or_before(created_at, since):
                            self.toolkit.log("Reached items older than since date", {"since": since})
                            return posts

                        post = self._map_item(child)
                        if post:
                            posts.append(post)
        except AdapterError:
            raise
        except Exception as exc:
            raise self.toolkit.normalize_error(exc, "fetch_saved_posts") from exc

        self.toolkit.log("Fetch complete", {"total_posts": len(posts), "pages": pages})
        return posts

    async def _fetch_page(self, after: Optional[str]) -> PaginatedResponse[dict]:
        listing = await self.client.get_saved(limit=MAX_PAGE_SIZE, after=after)
        data = listing.get("data") or {}
        next_cursor = data.get("after")

        return PaginatedResponse(
            data=data.get("children") or [],
            pagination=PaginationCursor(
                next=next_cursor,
                previous=data.get("before"),
                has_more=bool(next_cursor),
            ),
        )

    def _map_item(self, child: dict) -> Optional[Post]:
        """Map a listing child to a Post; malformed or unknown items yield None."""
        kind = None
        try:
            kind = item_kind(child)
            if kind == SUBMISSION_KIND:
                return self._map_submission(RedditSubmission.model_validate(child["data"]))
            if kind == COMMENT_KIND:
                return self._map_comment(RedditComment.model_validate(child["data"]))
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            self.toolkit.log("Failed to map item", {"kind": kind, "error": str(e)})
            return None

        self.toolkit.log("Unknown item type", {"kind": kind})
        return None

    def _map_submission(self, submission: RedditSubmission) -> Post:
        metadata = RedditSubmissionMetadata(
            subreddit=submission.subreddit,
            subreddit_name_prefixed=submission.subreddit_name_prefixed,
            score=submission.score,
            num_comments=submission.num_comments,
            is_video=submission.is_video,
            over_18=submission.over_18,
            link_flair_text=submission.link_flair_text,
            awards=len(submission.all_awardings),
        )

        return self.toolkit.create_post(
            platform_post_id=submission.id,
            url=f"https://reddit.com{submission.permalink}",
            title=submission.title,
            content=submission.selftext or submission.url,
            author_name=submission.author,
            author_url=f"https://reddit.com/u/{submission.author}",
            media_urls=extract_submission_media(submission),
            saved_at=_from_epoch(submission.created_utc),
            metadata=metadata.model_dump(),
        )

    def _map_comment(self, comment: RedditComment) -> Post:
        metadata = RedditCommentMetadata(
            subreddit=comment.subreddit,
            score=comment.score,
            link_id=comment.link_id,
            link_title=comment.link_title,
            link_url=comment.link_url,
            link_permalink=comment.link_permalink,
            awards=len(comment.all_awardings),
        )

        return self.toolkit.create_post(
            platform_post_id=comment.id,
            url=f"https://reddit.com{comment.permalink}",
            title=f"Comment on: {comment.link_title}",
            content=comment.body,
            author_name=comment.author,
            author_url=f"https://reddit.com/u/{comment.author}",
            saved_at=_from_epoch(comment.created_utc),
            metadata=metadata.model_dump(),
        )


def extract_submission_media(submission: RedditSubmission) -> list[str]:
    """Collect media URLs: thumbnail, previews, video, gallery, then a direct link."""
    media_urls: list[str] = []

    if submission.thumbnail and submission.thumbnail.startswith("http"):
        media_urls.append(_clean_url(submission.thumbnail))

    if submission.preview:
        for image in submission.preview.get("images") or []:
            source_url = (image.get("source") or {}).get("url")
            if source_url:
                media_urls.append(_clean_url(source_url))

    reddit_video = (submission.media or {}).get("reddit_video") or {}
    if reddit_video.get("fallback_url"):
        media_urls.append(reddit_video["fallback_url"])

    if submission.is_gallery and submission.gallery_data and submission.media_metadata:
        for item in submission.gallery_data.get("items") or []:
            entry = submission.media_metadata.get(item.get("media_id"), {})
            # Galleries carry static images under "u" and animations under "gif"/"mp4"
            source = entry.get("s") or {}
            gallery_url = source.get("u") or source.get("gif") or source.get("mp4")
            if gallery_url:
                media_urls.append(_clean_url(gallery_url))

    if submission.url and not submission.is_self and MEDIA_URL_PATTERN.search(submission.url):
        media_urls.append(submission.url)

    # Drop duplicates, keeping discovery order
    return list(dict.fromkeys(media_urls))


def _clean_url(url: str) -> str:
    return html.unescape(url)


def _from_epoch(created_utc: float) -> datetime:
    return datetime.fromtimestamp(created_utc, tz=timezone.utc)


def _item_created_at(child: dict) -> Optional[datetime]:
    try:
        return _from_epoch(float(child["data"]["created_utc"]))
    except (KeyError, TypeError, ValueError, OverflowError, OSError):
        return None
