from datetime import datetime, timezone
from typing import Optional

import httpx

from saved_posts.common.models import RateLimitInfo
from saved_posts.x.models import EXPANSIONS, MEDIA_FIELDS, TWEET_FIELDS, USER_FIELDS

X_API_BASE = "https://api.x.com/2"
MAX_PAGE_SIZE = 100


class XClient:
    """Client for interacting with the X (Twitter) API v2."""

    def __init__(
        self,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise ValueError("XClient requires an access token or bearer token")

        self.token = token
        self.timeout = timeout
        self.transport = transport
        self.last_rate_limit: Optional[RateLimitInfo] = None

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    async def _get(self, endpoint: str, params: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(
                f"{X_API_BASE}{endpoint}",
                headers=self._get_headers(),
                params={key: value for key, value in params.items() if value},
            )
            self._record_rate_limit(response)
            response.raise_for_status()
            return response.json()

    def _record_rate_limit(self, response: httpx.Response) -> None:
        """Remember the x-rate-limit-* headers of the last response."""
        limit = response.headers.get("x-rate-limit-limit")
        remaining = response.headers.get("x-rate-limit-remaining")
        reset = response.headers.get("x-rate-limit-reset")
        if not (limit and remaining and reset):
            return

        try:
            self.last_rate_limit = RateLimitInfo(
                limit=int(limit),
                remaining=int(remaining),
                reset_at=datetime.fromtimestamp(int(reset), tz=timezone.utc),
            )
        except (ValueError, OverflowError, OSError):
            return

    async def get_me(self) -> dict:
        """Get the authenticated user's information."""
        return await self._get("/users/me", {"user.fields": USER_FIELDS})

    def _page_params(self, max_results: int, pagination_token: Optional[str]) -> dict:
        return {
            "max_results": str(min(max_results, MAX_PAGE_SIZE)),
            "tweet.fields": TWEET_FIELDS,
            "user.fields": USER_FIELDS,
            "media.fields": MEDIA_FIELDS,
            "expansions": EXPANSIONS,
            "pagination_token": pagination_token,
        }

    async def get_bookmarks(
        self,
        user_id: str,
        max_results: int = MAX_PAGE_SIZE,
        pagination_token: Optional[str] = None,
    ) -> dict:
        """
        Fetch a single page of bookmarks.

        Args:
            user_id: Authenticated user's ID
            max_results: Number of results per page (max 100)
            pagination_token: Token for pagination

        Returns:
            Raw API response with data, includes, and meta
        """
        return await self._get(
            f"/users/{user_id}/bookmarks",
            self._page_params(max_results, pagination_token),
        )

    async def get_user_tweets(
        self,
        user_id: str,
        max_results: int = MAX_PAGE_SIZE,
        pagination_token: Optional[str] = None,
        since_id: Optional[str] = None,
    ) -> dict:
        """
        Fetch a single page of the user's own timeline (retweets included).

        Args:
            user_id: Authenticated user's ID
            max_results: Number of results per page (max 100)
            pagination_token: Token for pagination
            since_id: Only return tweets newer than this tweet ID

        Returns:
            Raw API response with data, includes, and meta
        """
        params = self._page_params(max_results, pagination_token)
        params["since_id"] = since_id
        return await self._get(f"/users/{user_id}/tweets", params)
