"""Fixed provider table, built once per process."""

from types import MappingProxyType
from typing import Iterator, Mapping, Optional

import httpx

from tempvortex.config.settings import Settings, settings as default_settings
from tempvortex.models.mailbox import ProviderId
from tempvortex.services.providers import (
    GuerrillaMailProvider,
    MailProvider,
    MailTmProvider,
    OneSecMailProvider,
)
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)

ROTATION: tuple[ProviderId, ...] = tuple(ProviderId)


class ProviderRegistry:
    """Read-only mapping from every ProviderId to its adapter."""

    def __init__(self, adapters: Mapping[ProviderId, MailProvider]) -> None:
        missing = [provider for provider in ROTATION if provider not in adapters]
        if missing:
            raise ValueError(f"No adapter registered for: {', '.join(p.value for p in missing)}")
        self._adapters = MappingProxyType(dict(adapters))

    def get(self, provider_id: ProviderId | str) -> MailProvider:
        return self._adapters[ProviderId(provider_id)]

    def __getitem__(self, provider_id: ProviderId | str) -> MailProvider:
        return self.get(provider_id)

    def __iter__(self) -> Iterator[MailProvider]:
        return (self._adapters[provider] for provider in ROTATION)

    @staticmethod
    def rotation() -> tuple[ProviderId, ...]:
        return ROTATION

    @staticmethod
    def next_after(provider_id: ProviderId | str) -> ProviderId:
        """Next provider in the fixed rotation, wrapping around."""
        index = ROTATION.index(ProviderId(provider_id))
        return ROTATION[(index + 1) % len(ROTATION)]

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def build_registry(
    config: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ProviderRegistry:
    """
    Construct the provider table from configuration.

    Args:
        config: Settings to read endpoints from (defaults to global settings)
        client: Shared HTTP client, mostly for tests
    """
    config = config or default_settings
    common = {
        "timeout": config.providers.timeout_seconds,
        "max_retries": config.providers.max_retries,
        "client": client,
        "download_dir": config.storage.download_dir,
    }
    registry = ProviderRegistry(
        {
            ProviderId.ONESECMAIL: OneSecMailProvider(config.providers.onesecmail_base_url, **common),
            ProviderId.MAILTM: MailTmProvider(config.providers.mailtm_base_url, **common),
            ProviderId.GUERRILLA: GuerrillaMailProvider(config.providers.guerrilla_base_url, **common),
        }
    )
    logger.info("Provider registry built", providers=[p.value for p in ROTATION])
    return registry
