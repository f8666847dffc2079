from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from saved_posts.common.auth import TokenData
from saved_posts.common.errors import AuthenticationError
from saved_posts.common.models import RateLimitInfo

REDDIT_AUTH_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_API_BASE = "https://oauth.reddit.com"
MAX_PAGE_SIZE = 100


class RedditClient:
    """Client for Reddit's OAuth2 API using the script-app password grant."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        username: str,
        password: str,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        access_token: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.username = username
        self.password = password
        self.user_agent = user_agent or f"saved-posts-sync:v0.1.0 (by /u/{username})"
        self.timeout = timeout
        self.transport = transport
        self._token_data: Optional[TokenData] = None
        self.last_rate_limit: Optional[RateLimitInfo] = None

        # Reuse a token the caller already holds
        if access_token and expires_at:
            self._token_data = TokenData(
                access_token=access_token,
                token_type="bearer",
                expires_at=expires_at,
            )

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    @property
    def access_token(self) -> Optional[str]:
        return self._token_data.access_token if self._token_data else None

    @property
    def token_expires_at(self) -> Optional[datetime]:
        return self._token_data.expires_at if self._token_data else None

    def is_token_valid(self) -> bool:
        return self._token_data is not None and not self._token_data.is_expired()

    async def authenticate(self) -> TokenData:
        """Exchange client id/secret and username/password for a bearer token."""
        if self._token_data and self.is_token_valid():
            return self._token_data

        async with self._http() as client:
            response = await client.post(
                REDDIT_AUTH_URL,
                auth=(self.client_id, self.client_secret),
                data={
                    "grant_type": "password",
                    "username": self.username,
                    "password": self.password,
                },
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "User-Agent": self.user_agent,
                },
            )
            response.raise_for_status()
            token_response = response.json()

        # Reddit reports bad user credentials as 200 {"error": "invalid_grant"}
        if "error" in token_response or "access_token" not in token_response:
            raise AuthenticationError(
                "reddit",
                ValueError(f"Token request rejected: {token_response.get('error', 'no access_token')}"),
            )

        self._token_data = TokenData.from_token_response(token_response)
        return self._token_data

    async def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Authenticated GET, refreshing the token first when it has expired."""
        if not self.is_token_valid():
            await self.authenticate()

        async with self._http() as client:
            response = await client.get(
                f"{REDDIT_API_BASE}{endpoint}",
                params=params,
                headers={
                    "Authorization": f"bearer {self.access_token}",
                    "User-Agent": self.user_agent,
                },
            )
            self._record_rate_limit(response)
            response.raise_for_status()
            return response.json()

    def _record_rate_limit(self, response: httpx.Response) -> None:
        """Remember Reddit's x-ratelimit-* headers from the last response."""
        used = response.headers.get("x-ratelimit-used")
        remaining = response.headers.get("x-ratelimit-remaining")
        reset = response.headers.get("x-ratelimit-reset")
        if remaining is None or reset is None:
            return

        try:
            remaining_count = int(float(remaining))
            used_count = int(float(used)) if used is not None else 0
            reset_seconds = float(reset)
        except ValueError:
            return

        self.last_rate_limit = RateLimitInfo(
            limit=used_count + remaining_count,
            remaining=remaining_count,
            reset_at=datetime.now(timezone.utc) + timedelta(seconds=reset_seconds),
        )

    async def get_me(self) -> dict:
        """Get the authenticated user's account information."""
        return await self._get("/api/v1/me")

    async def get_saved(self, limit: int = MAX_PAGE_SIZE, after: Optional[str] = None) -> dict:
        """
        Fetch one page of the user's saved listing.

        Args:
            limit: Items per page (max 100)
            after: Fullname cursor returned by the previous page

        Returns:
            Raw Listing payload with ``data.children`` and ``data.after``
        """
        params = {
            "limit": str(min(limit, MAX_PAGE_SIZE)),
            "raw_json": "1",
        }
        if after:
            params["after"] = after

        return await self._get("/user/me/saved", params)

    @classmethod
    def from_credentials(
        cls,
        credentials: dict,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RedditClient":
        """Create a RedditClient from an adapter credentials mapping."""
        expires_at = credentials.get("expires_at")
        if isinstance(expires_at, (int, float)):
            expires_at = datetime.fromtimestamp(expires_at, tz=timezone.utc)

        return cls(
            client_id=credentials["client_id"],
            client_secret=credentials["client_secret"],
            username=credentials["username"],
            password=credentials["password"],
            user_agent=credentials.get("user_agent"),
            timeout=timeout,
            transport=transport,
            access_token=credentials.get("access_token"),
            expires_at=expires_at,
        )
