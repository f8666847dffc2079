from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from saved_posts.common.toolkit import as_utc

# Providers that omit expires_in get the conventional one-hour lifetime.
DEFAULT_TOKEN_LIFETIME = 3600


@dataclass
class TokenData:
    """Stores OAuth token data. Expiry is kept in UTC."""

    access_token: str
    token_type: str
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        if self.expires_at is not None:
            self.expires_at = as_utc(self.expires_at)

    def is_expired(self) -> bool:
        """Check if the token is expired (with 5 min buffer)."""
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at - timedelta(minutes=5)

    @classmethod
    def from_token_response(cls, token_response: dict) -> "TokenData":
        """Build TokenData from an OAuth2 token endpoint payload."""
        expires_in = token_response.get("expires_in") or DEFAULT_TOKEN_LIFETIME
        return cls(
            access_token=token_response["access_token"],
            token_type=token_response.get("token_type", "bearer"),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )
