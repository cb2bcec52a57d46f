"""Session lifecycle: create, recover, switch provider, persist."""

import asyncio
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from tempvortex.config.settings import settings
from tempvortex.models.events import AccountOperationFailed, SessionChanged
from tempvortex.models.mailbox import Account, ProviderId, SessionRecord
from tempvortex.services.errors import AccountCreationError, NoActiveSessionError
from tempvortex.services.events import EventBus
from tempvortex.services.recovery import (
    decode_recovery_url,
    encode_recovery_url,
    strip_recovery_params,
)
from tempvortex.services.registry import ProviderRegistry
from tempvortex.services.session_store import SessionStore
from tempvortex.utils.logging import get_logger
from tempvortex.workers.inbox_synchronizer import InboxSynchronizer

logger = get_logger(__name__)


class SessionState(str, Enum):
    """Session states."""

    NO_SESSION = "no_session"
    ACTIVE = "active"


class SessionManager:
    """
    Owns the current account/provider pair.

    Every change is persisted to the session store and hands the new
    account to the inbox synchronizer, which starts from an empty
    seen-set and message list.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: SessionStore,
        inbox: InboxSynchronizer,
        events: Optional[EventBus] = None,
        storage_key: Optional[str] = None,
        default_provider: Optional[ProviderId] = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.inbox = inbox
        self.events = events or inbox.events
        self.storage_key = storage_key or settings.session.storage_key
        self.account: Optional[Account] = None
        self.provider = ProviderId(default_provider or settings.providers.default_provider)
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self.account else SessionState.NO_SESSION

    async def initialize(self, entry_url: Optional[str] = None) -> Optional[str]:
        """
        Restore a session at startup.

        Priority: recovery link in ``entry_url``, then the persisted record,
        otherwise no session. A recovery link is trusted as-is; no provider
        is contacted.

        Returns:
            ``entry_url`` with the recovery parameters stripped when a
            recovery link was consumed, else None
        """
        async with self._lock:
            if entry_url:
                cleaned = await self._recover(entry_url)
                if cleaned is not None:
                    return cleaned

            record = await self._load()
            if record is not None:
                self.provider = record.provider
                if record.account is not None:
                    logger.info(
                        "Session restored from storage",
                        address=record.account.address,
                        provider=record.provider,
                    )
                    await self._activate(record.account, record.provider, persist=False)
                    return None

            logger.info("No session to restore", provider=self.provider)
            return None

    async def recover(self, entry_url: str) -> Optional[str]:
        """
        Activate the account embedded in a recovery link.

        Returns:
            The URL with recovery parameters stripped, or None (and no state
            change) when the link carries no valid account
        """
        async with self._lock:
            return await self._recover(entry_url)

    async def _recover(self, entry_url: str) -> Optional[str]:
        recovered = decode_recovery_url(entry_url)
        if recovered is None:
            return None
        logger.info("Session recovered from link", address=recovered.address, provider=recovered.provider)
        await self._activate(recovered, recovered.provider)
        return strip_recovery_params(entry_url)

    async def create_account(
        self,
        provider_id: Optional[ProviderId | str] = None,
        custom_login: Optional[str] = None,
    ) -> Account:
        """
        Provision a new mailbox and make it active.

        On failure the previous session (if any) is left untouched.

        Raises:
            AccountCreationError: Provider rejected the login or was unreachable
        """
        provider = ProviderId(provider_id or self.provider)
        adapter = self.registry.get(provider)

        async with self._lock:
            try:
                if custom_login and not adapter.supports_custom_login:
                    raise AccountCreationError(
                        f"{adapter.display_name} does not support custom logins",
                        provider=provider,
                    )
                domains = await adapter.get_domains()
                account = await adapter.create_account(domains[0] if domains else "", custom_login)
            except AccountCreationError as e:
                logger.error(
                    "Account creation failed",
                    provider=provider,
                    error=str(e),
                    code=e.error_code,
                )
                self.events.publish(
                    AccountOperationFailed(
                        operation="create_account",
                        error_code=e.error_code,
                        error=str(e),
                        provider=provider,
                    )
                )
                raise

            await self._activate(account, provider)
            logger.info(
                "Identity created",
                address=account.address,
                provider=provider,
                custom=bool(custom_login),
            )
            return account

    async def switch_provider(self) -> Account:
        """Create an account on the next provider in the rotation."""
        return await self.create_account(self.registry.next_after(self.provider))

    def recovery_url(self, base_url: Optional[str] = None) -> str:
        """Shareable link that restores the current mailbox."""
        if self.account is None:
            raise NoActiveSessionError("No active mailbox to share")
        return encode_recovery_url(self.account, base_url or settings.admin.public_base_url)

    async def _activate(self, account: Account, provider: ProviderId, persist: bool = True) -> None:
        self.account = account
        self.provider = provider
        if persist:
            await self._save()
        await self.inbox.reset(account)
        self.events.publish(SessionChanged(account=account, provider=provider))

    async def _load(self) -> Optional[SessionRecord]:
        try:
            raw = await self.store.get(self.storage_key)
        except Exception as e:
            logger.error("Failed to read session store", error=str(e))
            return None
        if not raw:
            return None
        try:
            return SessionRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Failed to load session", error=str(e))
            return None

    async def _save(self) -> None:
        record = SessionRecord(account=self.account, provider=self.provider)
        try:
            await self.store.set(self.storage_key, record.model_dump_json(by_alias=True))
        except Exception as e:
            logger.error("Failed to persist session", error=str(e))
