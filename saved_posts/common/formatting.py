"""Compact JSON-friendly views of posts for LLM consumption."""

from datetime import datetime

from saved_posts.common.models import Post

_REPLACEMENTS = {
    "\u2019": "'",  # right single quote
    "\u2018": "'",  # left single quote
    "\u201c": '"',  # left double quote
    "\u201d": '"',  # right double quote
    "\u2014": "-",  # em dash
    "\u2013": "-",  # en dash
    "\u2026": "...",  # ellipsis
}


def clean_text(text: str, max_length: int = 280) -> str:
    """Normalize typographic unicode to ASCII and optionally truncate."""
    for old, new in _REPLACEMENTS.items():
        text = text.replace(old, new)

    if max_length and len(text) > max_length:
        text = text[: max_length - 3] + "..."

    return text


def format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def simplify_post(post: Post, max_content_length: int = 280) -> dict:
    """Convert a Post to a simplified dict, dropping empty fields."""
    result = {
        "id": post.platform_post_id,
        "author": post.author_name,
        "content": clean_text(post.content, max_content_length),
        "url": post.url,
        "saved_at": format_timestamp(post.saved_at),
    }

    if post.title:
        result["title"] = clean_text(post.title, max_content_length)
    if post.author_url:
        result["author_url"] = post.author_url
    if post.media_urls:
        result["media"] = list(post.media_urls)

    source = post.metadata.get("type") or post.metadata.get("sourceType")
    if source:
        result["source"] = source
    if post.metadata.get("subreddit"):
        result["subreddit"] = post.metadata["subreddit"]

    # Only include non-zero engagement metrics
    metrics = {}
    public_metrics = post.metadata.get("public_metrics") or {}
    if public_metrics.get("retweet_count"):
        metrics["retweets"] = public_metrics["retweet_count"]
    if public_metrics.get("like_count"):
        metrics["likes"] = public_metrics["like_count"]
    if public_metrics.get("reply_count"):
        metrics["replies"] = public_metrics["reply_count"]
    if post.metadata.get("score"):
        metrics["score"] = post.metadata["score"]
    if post.metadata.get("num_comments"):
        metrics["comments"] = post.metadata["num_comments"]
    if metrics:
        result["metrics"] = metrics

    return result
