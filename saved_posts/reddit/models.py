from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

SUBMISSION_KIND = "t3"
COMMENT_KIND = "t1"


class RedditSubmission(BaseModel):
    """A saved link or self post (listing kind ``t3``)."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    subreddit: str = ""
    subreddit_name_prefixed: str = ""
    author: str = "[deleted]"
    title: str
    selftext: str = ""
    url: str = ""
    permalink: str = ""
    created_utc: float
    score: int = 0
    num_comments: int = 0
    thumbnail: Optional[str] = None
    preview: Optional[dict[str, Any]] = None
    media: Optional[dict[str, Any]] = None
    is_self: bool = False
    is_video: bool = False
    is_gallery: bool = False
    gallery_data: Optional[dict[str, Any]] = None
    media_metadata: Optional[dict[str, Any]] = None
    all_awardings: list[Any] = Field(default_factory=list)
    link_flair_text: Optional[str] = None
    over_18: bool = False


class RedditComment(BaseModel):
    """A saved comment (listing kind ``t1``)."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    subreddit: str = ""
    author: str = "[deleted]"
    body: str
    link_id: str = ""
    link_title: str = ""
    link_permalink: str = ""
    link_url: str = ""
    permalink: str = ""
    created_utc: float
    score: int = 0
    all_awardings: list[Any] = Field(default_factory=list)


class RedditSubmissionMetadata(BaseModel):
    """Reddit-specific metadata for saved submissions."""

    type: str = "submission"
    subreddit: str
    subreddit_name_prefixed: str
    score: int
    num_comments: int
    is_video: bool
    over_18: bool = False
    link_flair_text: Optional[str] = None
    awards: int = 0


class RedditCommentMetadata(BaseModel):
    """Reddit-specific metadata for saved comments."""

    type: str = "comment"
    subreddit: str
    score: int
    link_id: str
    link_title: str
    link_url: str
    link_permalink: str
    awards: int = 0


def item_kind(child: dict) -> Optional[str]:
    """Listing child discriminant, inferred from the payload shape when absent."""
    kind = child.get("kind")
    if kind:
        return kind

    data = child.get("data") or {}
    if "title" in data and "selftext" in data:
        return SUBMISSION_KIND
    if "body" in data and "link_title" in data:
        return COMMENT_KIND
    return None
