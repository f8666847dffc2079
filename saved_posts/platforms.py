from saved_posts.common.models import AuthType
from saved_posts.common.registry import AdapterRegistry
from saved_posts.reddit.adapter import RedditAdapter
from saved_posts.x.adapter import TwitterAdapter


def register_builtin_adapters(registry: AdapterRegistry) -> AdapterRegistry:
    """Register the Reddit and Twitter/X adapters on ``registry``."""
    registry.register(
        "reddit",
        RedditAdapter,
        display_name="Reddit",
        description="Reddit saved posts and comments",
        supported_auth_types=[AuthType.OAUTH2, AuthType.USERNAME_PASSWORD],
        requires_webhook_support=False,
    )
    registry.register(
        "twitter",
        TwitterAdapter,
        display_name="Twitter / X",
        description="Twitter bookmarks and retweets",
        supported_auth_types=[AuthType.OAUTH2, AuthType.BEARER_TOKEN],
        requires_webhook_support=False,
    )
    return registry


def build_default_registry() -> AdapterRegistry:
    """A fresh registry holding every built-in adapter."""
    return register_builtin_adapters(AdapterRegistry())
