import json
import logging
import sys
from datetime import datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from saved_posts.common.config import credentials_from_env
from saved_posts.common.contract import PlatformAdapter
from saved_posts.common.formatting import simplify_post
from saved_posts.common.fuzzy_search import search_posts
from saved_posts.common.models import AdapterConfig
from saved_posts.common.registry import AdapterRegistry
from saved_posts.platforms import build_default_registry

logging.basicConfig(
    level=logging.INFO,
    format="[SavedPosts] %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

mcp = FastMCP("Saved Posts Server")

# Global registry (initialized on first use)
_registry: Optional[AdapterRegistry] = None


def get_registry() -> AdapterRegistry:
    """Get or create the adapter registry."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry


def get_adapter(platform: str) -> PlatformAdapter:
    """Create an adapter for ``platform`` from environment credentials."""
    return get_registry().create(platform, credentials_from_env(platform), AdapterConfig.from_env())


def parse_since(since: Optional[str]) -> Optional[datetime]:
    if not since:
        return None
    return datetime.fromisoformat(since.replace("Z", "+00:00"))


@mcp.tool()
def list_platforms() -> str:
    """
    List the platforms saved posts can be fetched from.

    Returns:
        JSON array of platforms with their supported auth types
    """
    platforms = [
        {
            "platform": registration.platform,
            "display_name": registration.display_name,
            "description": registration.description,
            "auth_types": sorted(auth_type.value for auth_type in registration.supported_auth_types),
        }
        for registration in get_registry().registrations()
    ]
    return json.dumps(platforms, indent=2)


@mcp.tool()
async def get_saved_posts(platform: str, since: Optional[str] = None, limit: int = 100) -> str:
    """
    Fetch the user's saved posts from a platform.

    Args:
        platform: Platform identifier from list_platforms (e.g. "reddit", "twitter")
        since: ISO-8601 timestamp; only posts saved after it are returned
        limit: Maximum number of posts to return (default 100)

    Returns:
        JSON array of saved posts
    """
    adapter = get_adapter(platform)
    posts = await adapter.fetch_saved_posts(parse_since(since))

    if limit:
        posts = posts[:limit]

    return json.dumps([simplify_post(post) for post in posts], indent=2)


@mcp.tool()
async def search_saved_posts(
    platform: str,
    queries: list[str],
    match_all: bool = True,
    fuzzy_threshold: int = 2,
    limit: int = 50,
) -> str:
    """
    Search saved posts with fuzzy matching.

    Always fetches fresh posts from the platform to ensure complete search results.

    Args:
        platform: Platform identifier from list_platforms
        queries: List of search terms to look for in title, content and author
        match_all: If True, all queries must match (AND). If False, any match (OR).
        fuzzy_threshold: Max edit distance for fuzzy matching (0 disables fuzzy)
        limit: Maximum number of results to return (default 50)

    Returns:
        JSON array of matching saved posts
    """
    adapter = get_adapter(platform)
    posts = await adapter.fetch_saved_posts()

    results = search_posts(posts, queries, match_all=match_all, fuzzy_threshold=fuzzy_threshold, limit=limit)
    logger.info(f"Search {queries} on {platform} matched {len(results)} of {len(posts)} posts")

    return json.dumps([simplify_post(post) for post in results], indent=2)


@mcp.tool()
async def validate_platform_credentials(platform: str) -> str:
    """
    Check whether the configured credentials for a platform work.

    Args:
        platform: Platform identifier from list_platforms

    Returns:
        JSON object with the platform and whether its credentials are valid
    """
    adapter = get_adapter(platform)
    valid = await adapter.validate_credentials()

    return json.dumps({"platform": platform, "valid": valid}, indent=2)


def main():
    """Entry point for the saved posts MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
