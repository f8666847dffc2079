"""Twitter/X adapter: bookmarks plus the account's own retweets."""

from collections.abc import Awaitable, Callable, Mapping
from contextlib import aclosing
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional

from pydantic import ValidationError

from saved_posts.common.errors import (
    AdapterError,
    AuthenticationError,
    DataValidationError,
    MissingCredentialsError,
)
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
from saved_posts.x.client import MAX_PAGE_SIZE, XClient
from saved_posts.x.models import (
    TweetEntities,
    TweetMetadata,
    TwitterMedia,
    TwitterTweet,
    TwitterUser,
    is_retweet,
)

# 80 pages * 100 = 8,000 bookmarks. The API itself stops at 800; this only
# guards against a cursor that never terminates.
BOOKMARK_MAX_PAGES = 80

# 50 requests per 15 minutes on the bookmarks endpoint
BOOKMARK_PAGE_DELAY_SECONDS = 18.0

# 32 pages * 100 = 3,200 tweets, the documented timeline depth
TIMELINE_MAX_PAGES = 32

TIMELINE_PAGE_DELAY_SECONDS = 1.0

PageFetcher = Callable[..., Awaitable[dict]]


def select_token(credentials: Mapping[str, Any]) -> Optional[str]:
    """OAuth2 user access token wins over an app bearer token."""
    return credentials.get("access_token") or credentials.get("bearer_token") or None


class TwitterAdapter:
    """Fetches bookmarked tweets and the user's retweets using OAuth 2.0."""

    platform = "twitter"
    capabilities = frozenset({Capability.RATE_LIMIT_INFO})

    def __init__(
        self,
        credentials: Mapping[str, Any],
        config: Optional[AdapterConfig] = None,
        client: Optional[XClient] = None,
    ):
        self.credentials = dict(credentials)
        self.toolkit = AdapterToolkit(self.platform, config)

        token = select_token(self.credentials)
        if not token:
            raise MissingCredentialsError(self.platform, ["access_token or bearer_token"])

        self.client = client or XClient(token, timeout=self.toolkit.config.timeout)
        self._user_id: Optional[str] = None

    async def authenticate(self, credentials: Mapping[str, Any]) -> bool:
        """Check that ``credentials`` can read the authenticated user."""
        token = select_token(credentials)
        if not token:
            self.toolkit.log("Authentication failed", "no access_token or bearer_token")
            return False

        client = XClient(token, timeout=self.toolkit.config.timeout, transport=self.client.transport)
        try:
            response = await self.toolkit.retry_with_backoff(client.get_me, context="authenticate")
        except AuthenticationError as e:
            self.toolkit.log("Authentication failed", e)
            return False
        return bool(response.get("data"))

    async def validate_credentials(self) -> bool:
        try:
            response = await self.toolkit.retry_with_backoff(self.client.get_me, context="validate_credentials")
        except AuthenticationError as e:
            self.toolkit.log("Credential validation failed", e)
            return False
        return bool(response.get("data"))

    def get_supported_auth_types(self) -> frozenset[AuthType]:
        return frozenset({AuthType.OAUTH2, AuthType.BEARER_TOKEN})

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]:
        """Rate-limit state from the last API response, None before any call."""
        return self.client.last_rate_limit

    async def setup_webhook(self, config: WebhookConfig) -> str:
        raise self.toolkit.unsupported("setup_webhook")

    async def remove_webhook(self, webhook_id: str) -> None:
        raise self.toolkit.unsupported("remove_webhook")

    async def get_user_id(self) -> str:
        """Get the authenticated user's ID (resolved once, then cached)."""
        if self._user_id:
            return self._user_id

        response = await self.toolkit.retry_with_backoff(self.client.get_me, context="get_user_id")
        user = response.get("data") or {}
        if not isinstance(user, dict) or not user.get("id"):
            raise DataValidationError(self.platform, ["users/me response has no user id"])

        self._user_id = user["id"]
        return self._user_id

    async def fetch_saved_posts(self, since: Optional[datetime] = None) -> list[Post]:
        """
        Fetch bookmarks followed by retweets.

        Args:
            since: Only return tweets strictly newer than this; each source
                stops paging at its first tweet that is not

        Returns:
            Bookmarks then retweets, each in provider order
        """
        self.toolkit.log("Starting to fetch saved posts", {"since": since})

        try:
            user_id = await self.get_user_id()

            self.toolkit.log("Fetching bookmarks")
            bookmarks = await self._fetch_source(
                partial(self.client.get_bookmarks, user_id),
                source_type="bookmark",
                max_pages=BOOKMARK_MAX_PAGES,
                delay=BOOKMARK_PAGE_DELAY_SECONDS,
                since=since,
            )

            self.toolkit.log("Fetching retweets")
            retweets = await self._fetch_source(
                partial(self.client.get_user_tweets, user_id),
                source_type="retweet",
                max_pages=TIMELINE_MAX_PAGES,
                delay=TIMELINE_PAGE_DELAY_SECONDS,
                since=since,
            )
        except AdapterError:
            raise
        except Exception as exc:
            raise self.toolkit.normalize_error(exc, "fetch_saved_posts") from exc

        self.toolkit.log(
            "Fetch complete",
            {"total_posts": len(bookmarks) + len(retweets), "bookmarks": len(bookmarks), "retweets": len(retweets)},
        )
        return bookmarks + retweets

    async def _fetch_source(
        self,
        fetch: PageFetcher,
        *,
        source_type: str,
        max_pages: int,
        delay: float,
        since: Optional[datetime],
    ) -> list[Post]:
        """Page through one listing, stopping at the first tweet not newer than ``since``."""

        async def fetch_page(pagination_token: Optional[str]) -> PaginatedResponse[dict]:
            response = await fetch(max_results=MAX_PAGE_SIZE, pagination_token=pagination_token)
            meta = response.get("meta") or {}
            next_token = meta.get("next_token")
            return PaginatedResponse(
                data=response.get("data") or [],
                pagination=PaginationCursor(
                    next=next_token,
                    previous=meta.get("previous_token"),
                    has_more=bool(next_token),
                ),
                includes=response.get("includes") or {},
            )

        posts: list[Post] = []
        listing = self.toolkit.paginate(fetch_page, max_pages=max_pages, delay=delay, label=f"{source_type}s")

        async with aclosing(listing):
            async for page in listing:
                users, media = self._index_includes(page.includes)

                for tweet in page.data:
                    created_at = _tweet_created_at(tweet)
                    if created_at is not None and at_or_before(created_at, since):
                        self.toolkit.log(f"Reached {source_type}s older than since date", {"since": since})
                        return posts

                    if source_type == "retweet" and not is_retweet(tweet):
                        continue

                    post = self._map_tweet(tweet, users, media, source_type)
                    if post:
                        posts.append(post)

        return posts

    def _index_includes(self, includes: dict) -> tuple[dict[str, TwitterUser], dict[str, TwitterMedia]]:
        """Build lookup maps for expanded users and media, skipping malformed entries."""
        users: dict[str, TwitterUser] = {}
        media: dict[str, TwitterMedia] = {}

        for raw in includes.get("users") or []:
            try:
                user = TwitterUser.model_validate(raw)
            except ValidationError as e:
                self.toolkit.log("Skipping malformed user", str(e))
                continue
            users[user.id] = user

        for raw in includes.get("media") or []:
            try:
                item = TwitterMedia.model_validate(raw)
            except ValidationError as e:
                self.toolkit.log("Skipping malformed media", str(e))
                continue
            media[item.media_key] = item

        return users, media

    def _map_tweet(
        self,
        raw: Any,
        users: dict[str, TwitterUser],
        media: dict[str, TwitterMedia],
        source_type: str,
    ) -> Optional[Post]:
        """Map a tweet to a Post; a malformed tweet yields None."""
        try:
            tweet = TwitterTweet.model_validate(raw)
            author = users.get(tweet.author_id) if tweet.author_id else None

            media_urls: list[str] = []
            if tweet.attachments:
                for media_key in tweet.attachments.media_keys:
                    if media_key in media:
                        media_urls.extend(extract_media_urls(media[media_key]))

            entities = tweet.entities or TweetEntities()
            expanded_urls = [
                url.get("unwound_url") or url.get("expanded_url")
                for url in entities.urls
                if url.get("unwound_url") or url.get("expanded_url")
            ]

            metadata = TweetMetadata(
                sourceType=source_type,
                author_id=tweet.author_id,
                author_username=author.username if author else None,
                conversation_id=tweet.conversation_id,
                is_retweet=tweet.is_retweet,
                is_quote=tweet.is_quote,
                is_reply=tweet.is_reply,
                referenced_tweets=[ref.model_dump() for ref in tweet.referenced_tweets],
                public_metrics=tweet.public_metrics,
                hashtags=[tag["tag"] for tag in entities.hashtags if tag.get("tag")],
                mentions=[mention["username"] for mention in entities.mentions if mention.get("username")],
                expanded_urls=expanded_urls,
                lang=tweet.lang,
                possibly_sensitive=tweet.possibly_sensitive,
            )

            return self.toolkit.create_post(
                platform_post_id=tweet.id,
                url=f"https://twitter.com/i/web/status/{tweet.id}",
                title=None,
                content=tweet.text,
                author_name=(author.name or author.username) if author else "Unknown",
                author_url=f"https://twitter.com/{author.username}" if author and author.username else "",
                media_urls=media_urls,
                saved_at=_parse_created_at(tweet.created_at) if tweet.created_at else datetime.now(timezone.utc),
                metadata=metadata.model_dump(),
            )
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
            tweet_id = raw.get("id") if isinstance(raw, dict) else None
            self.toolkit.log("Failed to map tweet", {"tweet_id": tweet_id, "error": str(e)})
            return None


def extract_media_urls(media: TwitterMedia) -> list[str]:
    """Photo URL, or preview image plus the highest bit-rate video variant."""
    urls: list[str] = []

    if media.type == "photo":
        if media.url:
            urls.append(media.url)
    elif media.type in ("video", "animated_gif"):
        if media.preview_image_url:
            urls.append(media.preview_image_url)

        videos = [variant for variant in media.variants if "video" in variant.content_type]
        if videos:
            best = max(videos, key=lambda variant: variant.bit_rate or 0)
            urls.append(best.url)

    return urls


def _parse_created_at(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _tweet_created_at(tweet: Any) -> Optional[datetime]:
    try:
        return _parse_created_at(tweet["created_at"])
    except (AttributeError, KeyError, TypeError, ValueError):
        return None
