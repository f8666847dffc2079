from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable

from saved_posts.common.models import AuthType, Capability, Post, RateLimitInfo, WebhookConfig


@runtime_checkable
class PlatformAdapter(Protocol):
    """
    Uniform contract every platform adapter fulfils.

    MUST:
      - Map provider items to ``Post`` without inventing IDs
      - With ``since``, return only items strictly newer than it and stop paging
        at the first item that is not
      - Raise ``AdapterError`` subclasses, never raw transport errors

    Optional capabilities are advertised through ``supports()``; calling one
    that is not supported raises ``UnsupportedOperationError``.
    """

    platform: str

    async def authenticate(self, credentials: Mapping[str, Any]) -> bool: ...

    async def fetch_saved_posts(self, since: Optional[datetime] = None) -> list[Post]: ...

    async def validate_credentials(self) -> bool: ...

    def get_supported_auth_types(self) -> frozenset[AuthType]: ...

    def supports(self, capability: Capability) -> bool: ...

    async def get_rate_limit_info(self) -> Optional[RateLimitInfo]: ...

    async def setup_webhook(self, config: WebhookConfig) -> str: ...

    async def remove_webhook(self, webhook_id: str) -> None: ...
