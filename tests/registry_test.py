from datetime import datetime, timezone

import pytest

from saved_posts.common.contract import PlatformAdapter
from saved_posts.common.errors import MissingCredentialsError, UnsupportedOperationError
from saved_posts.common.models import AdapterConfig, AuthType, Capability
from saved_posts.common.registry import AdapterRegistry
from saved_posts.common.toolkit import AdapterToolkit
from saved_posts.platforms import build_default_registry
from saved_posts.reddit.adapter import RedditAdapter
from saved_posts.x.adapter import TwitterAdapter


class MockAdapter:
    platform = "mock"

    def __init__(self, credentials, config=None):
        self.credentials = credentials
        self.toolkit = AdapterToolkit(self.platform, config)
        self.toolkit.validate_required_credentials(credentials, ["token"])

    async def authenticate(self, credentials):
        return credentials.get("token") == "t"

    async def fetch_saved_posts(self, since=None):
        return [
            self.toolkit.create_post(
                platform_post_id="mock-1",
                url="https://mock.example/posts/1",
                title="Fixed post",
                content="Always the same",
                author_name="mocker",
                author_url="https://mock.example/u/mocker",
                saved_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
        ]

    async def validate_credentials(self):
        return True

    def get_supported_auth_types(self):
        return frozenset({AuthType.API_TOKEN})

    def supports(self, capability):
        return False

    async def get_rate_limit_info(self):
        raise self.toolkit.unsupported("get_rate_limit_info")

    async def setup_webhook(self, config):
        raise self.toolkit.unsupported("setup_webhook")

    async def remove_webhook(self, webhook_id):
        raise self.toolkit.unsupported("remove_webhook")


class OtherMockAdapter(MockAdapter):
    pass


def test_create_succeeds_only_for_registered_platforms():
    registry = AdapterRegistry()

    assert not registry.is_supported("mock")
    with pytest.raises(UnsupportedOperationError) as exc_info:
        registry.create("mock", {"token": "t"})
    assert exc_info.value.operation == "create"

    registry.register("mock", MockAdapter, supported_auth_types=[AuthType.API_TOKEN])

    assert registry.is_supported("mock")
    assert "mock" in registry
    assert isinstance(registry.create("mock", {"token": "t"}), MockAdapter)


def test_create_passes_credentials_and_coerced_config():
    registry = AdapterRegistry()
    registry.register("mock", MockAdapter)

    adapter = registry.create("mock", {"token": "t"}, {"max_retries": 5})

    assert adapter.credentials == {"token": "t"}
    assert adapter.toolkit.config == AdapterConfig(max_retries=5)


def test_last_registration_wins():
    registry = AdapterRegistry()
    registry.register("mock", MockAdapter, display_name="First")
    registry.register("mock", OtherMockAdapter, display_name="Second")

    assert len(registry) == 1
    assert registry.get_registration("mock").display_name == "Second"
    assert isinstance(registry.create("mock", {"token": "t"}), OtherMockAdapter)


def test_unregister_and_clear():
    registry = AdapterRegistry()
    registry.register("mock", MockAdapter)
    registry.register("other", OtherMockAdapter)

    registry.unregister("mock")
    assert registry.list_supported() == ["other"]

    registry.clear()
    assert len(registry) == 0


async def test_mock_adapter_end_to_end():
    registry = AdapterRegistry()
    registry.register("mock", MockAdapter, display_name="Mock", supported_auth_types=[AuthType.API_TOKEN])

    adapter = registry.create("mock", {"token": "t"})
    posts = await adapter.fetch_saved_posts()

    assert isinstance(adapter, PlatformAdapter)
    assert len(posts) == 1
    post = posts[0]
    assert post.platform_post_id == "mock-1"
    assert post.url == "https://mock.example/posts/1"
    assert post.content == "Always the same"
    assert post.author_name == "mocker"
    assert post.saved_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert post.media_urls == []
    assert post.metadata == {}


def test_default_registry_holds_builtin_platforms():
    registry = build_default_registry()

    assert registry.list_supported() == ["reddit", "twitter"]
    for registration in registry.registrations():
        assert registration.supported_auth_types
    assert registry.platforms_by_auth_type(AuthType.BEARER_TOKEN) == ["twitter"]
    assert registry.platforms_by_auth_type(AuthType.OAUTH2) == ["reddit", "twitter"]
    assert registry.platforms_with_webhook_support() == []


def test_default_registry_creates_builtin_adapters():
    registry = build_default_registry()

    reddit = registry.create(
        "reddit",
        {"client_id": "id", "client_secret": "secret", "username": "alice", "password": "pw"},
    )
    twitter = registry.create("twitter", {"bearer_token": "app-token"})

    assert isinstance(reddit, RedditAdapter)
    assert isinstance(twitter, TwitterAdapter)
    for adapter in (reddit, twitter):
        assert isinstance(adapter, PlatformAdapter)
        assert adapter.get_supported_auth_types()
        assert adapter.supports(Capability.RATE_LIMIT_INFO)
        assert not adapter.supports(Capability.WEBHOOKS)


def test_default_registry_rejects_incomplete_credentials():
    registry = build_default_registry()

    with pytest.raises(MissingCredentialsError) as exc_info:
        registry.create("reddit", {"client_id": "id", "username": "alice"})

    assert exc_info.value.missing == ["client_secret", "password"]


def test_each_registry_is_independent():
    first = build_default_registry()
    second = build_default_registry()

    first.unregister("reddit")

    assert not first.is_supported("reddit")
    assert second.is_supported("reddit")
