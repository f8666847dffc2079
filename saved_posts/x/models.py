from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Field sets sent on every paginated request so every page has the same shape
TWEET_FIELDS = ",".join(
    [
        "id",
        "text",
        "author_id",
        "created_at",
        "conversation_id",
        "in_reply_to_user_id",
        "referenced_tweets",
        "attachments",
        "entities",
        "public_metrics",
        "possibly_sensitive",
        "lang",
    ]
)

USER_FIELDS = ",".join(
    [
        "id",
        "name",
        "username",
        "profile_image_url",
        "description",
        "verified",
        "created_at",
    ]
)

MEDIA_FIELDS = ",".join(
    [
        "media_key",
        "type",
        "url",
        "preview_image_url",
        "width",
        "height",
        "duration_ms",
        "variants",
    ]
)

EXPANSIONS = ",".join(
    [
        "author_id",
        "referenced_tweets.id",
        "attachments.media_keys",
        "referenced_tweets.id.author_id",
    ]
)


class TwitterUser(BaseModel):
    """User object from ``includes.users``."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    username: str = ""
    profile_image_url: Optional[str] = None


class MediaVariant(BaseModel):
    bit_rate: Optional[int] = None
    content_type: str = ""
    url: str


class TwitterMedia(BaseModel):
    """Media object from ``includes.media``."""

    model_config = ConfigDict(extra="allow")

    media_key: str
    type: str
    url: Optional[str] = None
    preview_image_url: Optional[str] = None
    variants: list[MediaVariant] = Field(default_factory=list)


class ReferencedTweet(BaseModel):
    type: str  # "retweeted", "quoted" or "replied_to"
    id: str


class TweetAttachments(BaseModel):
    media_keys: list[str] = Field(default_factory=list)
    poll_ids: list[str] = Field(default_factory=list)


class TweetEntities(BaseModel):
    model_config = ConfigDict(extra="allow")

    hashtags: list[dict[str, Any]] = Field(default_factory=list)
    mentions: list[dict[str, Any]] = Field(default_factory=list)
    urls: list[dict[str, Any]] = Field(default_factory=list)


class TwitterTweet(BaseModel):
    """Tweet object (API v2)."""

    model_config = ConfigDict(extra="allow")

    id: str
    text: str
    author_id: Optional[str] = None
    created_at: Optional[str] = None
    conversation_id: Optional[str] = None
    in_reply_to_user_id: Optional[str] = None
    referenced_tweets: list[ReferencedTweet] = Field(default_factory=list)
    attachments: Optional[TweetAttachments] = None
    entities: Optional[TweetEntities] = None
    public_metrics: Optional[dict[str, int]] = None
    possibly_sensitive: Optional[bool] = None
    lang: Optional[str] = None

    def references(self, ref_type: str) -> bool:
        return any(ref.type == ref_type for ref in self.referenced_tweets)

    @property
    def is_retweet(self) -> bool:
        return self.references("retweeted")

    @property
    def is_quote(self) -> bool:
        return self.references("quoted")

    @property
    def is_reply(self) -> bool:
        return self.references("replied_to")


class TweetMetadata(BaseModel):
    """X/Twitter-specific metadata for saved tweets."""

    sourceType: Literal["bookmark", "retweet"]
    author_id: Optional[str] = None
    author_username: Optional[str] = None
    conversation_id: Optional[str] = None
    is_retweet: bool = False
    is_quote: bool = False
    is_reply: bool = False
    referenced_tweets: list[dict[str, str]] = Field(default_factory=list)
    public_metrics: Optional[dict[str, int]] = None
    hashtags: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    expanded_urls: list[str] = Field(default_factory=list)
    lang: Optional[str] = None
    possibly_sensitive: Optional[bool] = None


def is_retweet(tweet: dict) -> bool:
    """Raw-payload check used before a tweet is fully parsed."""
    if not isinstance(tweet, dict):
        return False
    return any(
        isinstance(ref, dict) and ref.get("type") == "retweeted"
        for ref in tweet.get("referenced_tweets") or []
    )
