import pytest

from saved_posts.common.toolkit import AdapterToolkit


@pytest.fixture
def sleeps(monkeypatch):
    """Record toolkit sleeps instead of waiting."""
    delays: list[float] = []

    async def fake_rate_limit(self, seconds):
        delays.append(seconds)

    monkeypatch.setattr(AdapterToolkit, "rate_limit", fake_rate_limit)
    return delays
