"""Registry mapping platform identifiers to adapter classes."""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from saved_posts.common.contract import PlatformAdapter
from saved_posts.common.errors import UnsupportedOperationError
from saved_posts.common.models import AdapterConfig, AuthType

logger = logging.getLogger(__name__)

AdapterFactory = Callable[..., PlatformAdapter]


@dataclass(frozen=True)
class AdapterRegistration:
    """Registry entry describing one platform adapter."""

    platform: str
    display_name: str
    description: str
    supported_auth_types: frozenset[AuthType]
    requires_webhook_support: bool
    adapter_class: AdapterFactory


class AdapterRegistry:
    """
    Factory for platform adapters.

    Built empty and filled by explicit ``register`` calls. It never holds
    credentials, so one registry can outlive any number of adapter instances.
    """

    def __init__(self):
        self._adapters: dict[str, AdapterRegistration] = {}

    def register(
        self,
        platform: str,
        adapter_class: AdapterFactory,
        *,
        display_name: str = "",
        description: str = "",
        supported_auth_types: Iterable[AuthType] = (),
        requires_webhook_support: bool = False,
    ) -> AdapterRegistration:
        """Register (or replace) the adapter for ``platform``. Last write wins."""
        if platform in self._adapters:
            logger.info(f"Replacing adapter registration for '{platform}'")

        registration = AdapterRegistration(
            platform=platform,
            display_name=display_name or platform,
            description=description,
            supported_auth_types=frozenset(supported_auth_types),
            requires_webhook_support=requires_webhook_support,
            adapter_class=adapter_class,
        )
        self._adapters[platform] = registration
        return registration

    def unregister(self, platform: str) -> None:
        self._adapters.pop(platform, None)

    def create(
        self,
        platform: str,
        credentials: Mapping[str, Any],
        config: "AdapterConfig | dict | None" = None,
    ) -> PlatformAdapter:
        """
        Instantiate the adapter registered for ``platform``.

        Raises:
            UnsupportedOperationError: No adapter is registered under ``platform``
        """
        registration = self._adapters.get(platform)
        if registration is None:
            raise UnsupportedOperationError(platform, "create")

        return registration.adapter_class(dict(credentials), AdapterConfig.coerce(config))

    def is_supported(self, platform: str) -> bool:
        return platform in self._adapters

    def list_supported(self) -> list[str]:
        return list(self._adapters)

    def get_registration(self, platform: str) -> Optional[AdapterRegistration]:
        return self._adapters.get(platform)

    def registrations(self) -> list[AdapterRegistration]:
        return list(self._adapters.values())

    def platforms_by_auth_type(self, auth_type: AuthType) -> list[str]:
        """Platforms whose adapter accepts ``auth_type``."""
        return [
            platform
            for platform, registration in self._adapters.items()
            if auth_type in registration.supported_auth_types
        ]

    def platforms_with_webhook_support(self) -> list[str]:
        return [
            platform
            for platform, registration in self._adapters.items()
            if registration.requires_webhook_support
        ]

    def clear(self) -> None:
        self._adapters.clear()

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, platform: object) -> bool:
        return platform in self._adapters
