import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from saved_posts.common.errors import (
    AuthenticationError,
    DataValidationError,
    MissingCredentialsError,
    NetworkError,
    ServiceUnavailableError,
)
from saved_posts.common.models import AdapterConfig, PaginatedResponse, PaginationCursor
from saved_posts.common.toolkit import AdapterToolkit, at_or_before, backoff_delay, parse_reset_time

REQUEST = httpx.Request("GET", "https://api.x.com/2/users/me")


def status_error(status: int) -> httpx.HTTPStatusError:
    response = httpx.Response(status, request=REQUEST)
    return httpx.HTTPStatusError(f"HTTP {status}", request=REQUEST, response=response)


async def test_retry_succeeds_on_third_attempt(sleeps):
    toolkit = AdapterToolkit("twitter", AdapterConfig(max_retries=3))
    calls = 0

    async def flaky():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise httpx.ConnectError("connection reset", request=REQUEST)
        return "ok"

    assert await toolkit.retry_with_backoff(flaky) == "ok"
    assert calls == 3
    assert sleeps == [1.0, 2.0]


async def test_retry_stops_immediately_on_authentication_failure(sleeps):
    toolkit = AdapterToolkit("twitter", AdapterConfig(max_retries=5))
    calls = 0

    async def unauthorized():
        nonlocal calls
        calls += 1
        raise status_error(401)

    with pytest.raises(AuthenticationError) as exc_info:
        await toolkit.retry_with_backoff(unauthorized)

    assert calls == 1
    assert sleeps == []
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


async def test_retry_surfaces_last_error_when_budget_is_spent(sleeps):
    toolkit = AdapterToolkit("reddit")
    calls = 0

    async def unavailable():
        nonlocal calls
        calls += 1
        raise status_error(503)

    with pytest.raises(ServiceUnavailableError):
        await toolkit.retry_with_backoff(unavailable)

    assert calls == 3
    assert sleeps == [1.0, 2.0]


async def test_retry_budget_can_be_overridden_per_call(sleeps):
    toolkit = AdapterToolkit("reddit")
    calls = 0

    async def offline():
        nonlocal calls
        calls += 1
        raise ConnectionRefusedError()

    with pytest.raises(NetworkError):
        await toolkit.retry_with_backoff(offline, max_retries=1)

    assert calls == 1
    assert sleeps == []


async def test_validation_errors_are_not_retried(sleeps):
    toolkit = AdapterToolkit("reddit")
    calls = 0

    async def invalid():
        nonlocal calls
        calls += 1
        raise DataValidationError("reddit", ["no user id"])

    with pytest.raises(DataValidationError):
        await toolkit.retry_with_backoff(invalid)

    assert calls == 1


def test_backoff_doubles_and_caps_at_thirty_seconds():
    assert [backoff_delay(attempt) for attempt in range(7)] == [1, 2, 4, 8, 16, 30, 30]


def test_validate_required_credentials_lists_only_missing_keys():
    toolkit = AdapterToolkit("mock")

    with pytest.raises(MissingCredentialsError) as exc_info:
        toolkit.validate_required_credentials({"a": "x"}, ["a", "b"])

    assert exc_info.value.missing == ["b"]
    assert exc_info.value.message == "Missing required credentials: b"


def test_validate_required_credentials_treats_empty_values_as_missing():
    toolkit = AdapterToolkit("mock")

    with pytest.raises(MissingCredentialsError) as exc_info:
        toolkit.validate_required_credentials({"a": "", "b": None, "c": "set"}, ["a", "b", "c"])

    assert exc_info.value.missing == ["a", "b"]
    toolkit.validate_required_credentials({"a": "x", "b": "y"}, ["a", "b"])


def test_create_post_defaults_media_and_metadata():
    post = AdapterToolkit("mock").create_post(
        platform_post_id="1",
        url="https://example.com/1",
        content="hello",
        author_name="alice",
        author_url="",
        saved_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    assert post.media_urls == []
    assert post.metadata == {}
    assert post.title is None


def test_log_only_emits_in_debug_mode(caplog):
    with caplog.at_level(logging.INFO, logger="saved_posts.common.toolkit"):
        AdapterToolkit("reddit").log("quiet")
        AdapterToolkit("reddit", {"debug": True}).log("Fetching page", {"page": 1})

    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["[reddit] Fetching page {'page': 1}"]


def test_unsupported_builds_a_typed_error():
    error = AdapterToolkit("reddit").unsupported("setup_webhook")

    assert error.operation == "setup_webhook"
    assert error.platform == "reddit"


async def test_paginate_follows_cursors_until_exhausted(sleeps):
    toolkit = AdapterToolkit("mock")
    cursors = []

    async def fetch_page(cursor):
        cursors.append(cursor)
        page_number = len(cursors)
        next_cursor = f"c{page_number}" if page_number < 3 else None
        return PaginatedResponse(
            data=[page_number],
            pagination=PaginationCursor(next=next_cursor, has_more=next_cursor is not None),
        )

    pages = [page.data async for page in toolkit.paginate(fetch_page, max_pages=10, delay=0.5)]

    assert pages == [[1], [2], [3]]
    assert cursors == [None, "c1", "c2"]
    assert sleeps == [0.5, 0.5]


async def test_paginate_stops_at_the_page_cap(sleeps, caplog):
    toolkit = AdapterToolkit("mock")
    calls = 0

    async def endless(cursor):
        nonlocal calls
        calls += 1
        return PaginatedResponse(
            data=["item"],
            pagination=PaginationCursor(next=f"c{calls}", has_more=True),
        )

    with caplog.at_level(logging.WARNING, logger="saved_posts.common.toolkit"):
        pages = [page async for page in toolkit.paginate(endless, max_pages=4, delay=1.0)]

    assert len(pages) == 4
    assert calls == 4
    assert sleeps == [1.0, 1.0, 1.0]
    assert "4-page safety cap" in caplog.text


async def test_paginate_stops_on_empty_page(sleeps):
    toolkit = AdapterToolkit("mock")

    async def empty(cursor):
        return PaginatedResponse(pagination=PaginationCursor(next="more", has_more=True))

    assert [page async for page in toolkit.paginate(empty, max_pages=5, delay=1.0)] == []
    assert sleeps == []


def test_parse_reset_time():
    assert parse_reset_time("1234567890") == datetime(2009, 2, 13, 23, 31, 30, tzinfo=timezone.utc)
    assert parse_reset_time("2024-05-01T10:00:00+02:00") == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    assert parse_reset_time("soon") is None
    assert parse_reset_time(None) is None


def test_at_or_before_treats_naive_times_as_utc():
    since = datetime(2024, 1, 1, 12, 0)

    assert at_or_before(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc), since)
    assert at_or_before(datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc), since)
    assert not at_or_before(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(seconds=1), since)
    assert not at_or_before(datetime(2024, 1, 1, tzinfo=timezone.utc), None)
