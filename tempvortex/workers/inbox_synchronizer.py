"""Inbox synchronizer worker: polls the active mailbox and tracks seen messages."""

import asyncio
from datetime import datetime
from typing import Optional

from tempvortex.config.settings import settings
from tempvortex.models.events import (
    AccountOperationFailed,
    HydrationComplete,
    InboxReplaced,
    MessageArrived,
    NewMailArrived,
    SyncFailed,
)
from tempvortex.models.mailbox import Account, AttachmentDownload, Message, MessageContent
from tempvortex.services.errors import (
    ContentFetchError,
    DeleteError,
    DownloadError,
    MessageNotFoundError,
    NoActiveSessionError,
    SyncError,
    TempMailError,
)
from tempvortex.services.events import EventBus
from tempvortex.services.registry import ProviderRegistry
from tempvortex.utils.logging import bind_mailbox_context, get_logger
from tempvortex.utils.otp import OtpExtractor, default_extractor, extract_otp_from_message

logger = get_logger(__name__)


class InboxSynchronizer:
    """
    Inbox synchronizer worker.

    Sole owner of the seen-set and the published message list. Polls the
    active account on a fixed period, reports each message id as new
    exactly once, and hydrates messages only when they are selected.

    Every account change bumps ``generation``; any poll, fetch or delete
    that completes under an older generation is discarded.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        events: Optional[EventBus] = None,
        poll_interval: Optional[float] = None,
        otp_extractor: Optional[OtpExtractor] = None,
    ) -> None:
        """Initialize worker."""
        self.registry = registry
        self.events = events or EventBus()
        self.poll_interval = poll_interval or settings.inbox.poll_interval_seconds
        self.otp_extractor = otp_extractor or default_extractor
        self.running = False
        self.last_synced_at: Optional[datetime] = None

        self._account: Optional[Account] = None
        self._generation = 0
        self._seen: set[str] = set()
        self._messages: list[Message] = []
        # Hydrated content and read flags survive list replacements
        self._hydrated: dict[str, MessageContent] = {}
        self._read_ids: set[str] = set()

        self._state_lock = asyncio.Lock()
        self._poll_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        logger.info("Inbox synchronizer initialized", poll_interval=self.poll_interval)

    # -- snapshots -------------------------------------------------------

    @property
    def account(self) -> Optional[Account]:
        return self._account

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def messages(self) -> list[Message]:
        return [message.model_copy(deep=True) for message in self._messages]

    @property
    def seen_ids(self) -> frozenset[str]:
        return frozenset(self._seen)

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    def get_message(self, message_id: str) -> Optional[Message]:
        message = self._find(message_id)
        return message.model_copy(deep=True) if message else None

    def _find(self, message_id: str) -> Optional[Message]:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def _replace(self, updated: Message) -> None:
        self._messages = [updated if m.id == updated.id else m for m in self._messages]

    # -- lifecycle -------------------------------------------------------

    async def start(self) -> None:
        """Start polling (if an account is active)."""
        self.running = True
        self._ensure_task()
        logger.info("Inbox synchronizer started", account=self._account.address if self._account else None)

    async def stop(self) -> None:
        """Stop polling gracefully."""
        logger.info("Stopping inbox synchronizer...")
        self.running = False
        await self._cancel_task()
        logger.info("Inbox synchronizer stopped")

    async def reset(self, account: Optional[Account]) -> None:
        """
        Switch to ``account`` with a clean slate.

        Cancels the current loop, empties the seen-set and message list, and
        starts polling the new account if the worker is running. Attachments
        downloaded for the previous mailbox are deleted.
        """
        await self._cancel_task()
        async with self._state_lock:
            previous = self._account
            self._generation += 1
            self._account = account
            self._seen = set()
            self._messages = []
            self._hydrated = {}
            self._read_ids = set()
            self.last_synced_at = None
        logger.info(
            "Inbox reset",
            account=account.address if account else None,
            provider=account.provider if account else None,
            generation=self._generation,
        )
        if previous is not None and (account is None or previous.address != account.address):
            await self._purge_downloads(previous)
        self._ensure_task()

    async def _purge_downloads(self, account: Account) -> None:
        try:
            await self.registry.get(account.provider).purge_downloads(account)
        except OSError as e:
            logger.warning("Failed to remove downloaded attachments", account=account.address, error=str(e))

    def _ensure_task(self) -> None:
        if not self.running or self._account is None:
            return
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(self._generation))

    async def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self, generation: int) -> None:
        """Main polling loop for one account generation."""
        bind_mailbox_context(self._account)
        logger.info("Polling started", generation=generation, poll_interval=self.poll_interval)
        while self.running and generation == self._generation:
            try:
                await self.poll_once()
            except Exception as e:
                # Unexpected adapter failure: keep the timer alive
                logger.error("Polling cycle error", error=str(e), error_type=type(e).__name__)
            await asyncio.sleep(self.poll_interval)

    # -- polling ---------------------------------------------------------

    async def poll_once(self) -> list[Message]:
        """
        Single polling cycle.

        Returns:
            Summaries reported as new by this poll (empty on failure or
            when the result was discarded as stale)
        """
        async with self._poll_lock:
            account, generation = self._account, self._generation
            if account is None:
                return []

            adapter = self.registry.get(account.provider)
            try:
                incoming = await adapter.get_messages(account)
            except SyncError as e:
                # Best effort: keep list, seen-set and timer untouched
                if generation == self._generation:
                    logger.warning(
                        "Inbox sync failed",
                        provider=account.provider,
                        error=str(e),
                        network=e.is_network_error,
                    )
                    self.events.publish(SyncFailed(error=str(e), is_network_error=e.is_network_error))
                return []

            async with self._state_lock:
                if generation != self._generation:
                    logger.debug("Discarding stale poll result", generation=generation)
                    return []

                arrived = []
                for message in incoming:
                    if message.id in self._seen:
                        continue
                    self._seen.add(message.id)
                    arrived.append(message)
                    self.events.publish(MessageArrived(message=message.model_copy(deep=True)))

                if arrived:
                    logger.info("New messages arrived", count=len(arrived), provider=account.provider)
                    self.events.publish(
                        NewMailArrived(messages=[m.model_copy(deep=True) for m in arrived])
                    )

                self._messages = self._carry_forward(incoming)
                self.last_synced_at = datetime.now()
                self.events.publish(InboxReplaced(messages=self.messages))

            return arrived

    async def refresh(self) -> list[Message]:
        """Poll now, outside the timer."""
        return await self.poll_once()

    def _carry_forward(self, incoming: list[Message]) -> list[Message]:
        """Apply known hydrated content and read flags to a fresh poll result."""
        merged: list[Message] = []
        ids: set[str] = set()
        for message in incoming:
            if message.id in ids:
                continue
            ids.add(message.id)
            content = self._hydrated.get(message.id)
            if content is not None:
                message = message.merge_content(content)
            elif message.id in self._read_ids:
                message = message.model_copy(update={"is_read": True})
            merged.append(message)
        return merged

    # -- foreground operations ------------------------------------------

    def _require_account(self) -> tuple[Account, int]:
        if self._account is None:
            raise NoActiveSessionError("No active mailbox")
        return self._account, self._generation

    def _report_failure(self, operation: str, error: TempMailError, generation: int) -> None:
        if generation != self._generation:
            return
        self.events.publish(
            AccountOperationFailed(
                operation=operation,
                error_code=error.error_code,
                error=str(error),
                provider=error.provider,
            )
        )

    async def select_message(self, message_id: str) -> Optional[Message]:
        """
        Select a message for viewing, hydrating it on first selection.

        Returns:
            The hydrated message, or None if the account changed while the
            content was being fetched

        Raises:
            MessageNotFoundError: Id not in the current inbox
            ContentFetchError: Provider fetch failed; message stays selectable
        """
        account, generation = self._require_account()

        async with self._state_lock:
            current = self._find(message_id)
            if current is None:
                raise MessageNotFoundError(f"Message {message_id} not found", provider=account.provider)
            if current.is_hydrated:
                if not current.is_read:
                    current = current.model_copy(update={"is_read": True})
                    self._replace(current)
                self._read_ids.add(message_id)
                return current.model_copy(deep=True)
            snapshot = current

        adapter = self.registry.get(account.provider)
        try:
            content = await adapter.get_message_content(account, message_id)
        except ContentFetchError as e:
            logger.warning("Failed to load message content", message_id=message_id, error=str(e))
            self._report_failure("fetch_content", e, generation)
            raise

        async with self._state_lock:
            if generation != self._generation:
                logger.info("Discarding stale hydration", message_id=message_id, generation=generation)
                return None

            self._hydrated[message_id] = content
            self._read_ids.add(message_id)
            current = self._find(message_id)
            if current is not None:
                hydrated = current.merge_content(content)
                self._replace(hydrated)
            else:
                # Removed by a concurrent poll or delete; still hand it back
                hydrated = snapshot.merge_content(content)

            self.events.publish(HydrationComplete(message_id=message_id, content=content))
            logger.info("Message hydrated", message_id=message_id, provider=account.provider)
            return hydrated.model_copy(deep=True)

    async def delete_message(self, message_id: str) -> None:
        """
        Delete through the provider, then drop it from the list.

        The id stays in the seen-set so it is never reported as new again.
        """
        account, generation = self._require_account()
        adapter = self.registry.get(account.provider)
        try:
            await adapter.delete_message(account, message_id)
        except DeleteError as e:
            self._report_failure("delete", e, generation)
            raise

        async with self._state_lock:
            if generation != self._generation:
                return
            self._messages = [m for m in self._messages if m.id != message_id]
            self._hydrated.pop(message_id, None)
        logger.info("Message removed from inbox", message_id=message_id)

    async def download_attachment(self, message_id: str, attachment_id: str) -> AttachmentDownload:
        """Retrieve an attachment of a hydrated message."""
        account, generation = self._require_account()
        message = self._find(message_id)
        if message is None:
            raise MessageNotFoundError(f"Message {message_id} not found", provider=account.provider)
        attachment = message.find_attachment(attachment_id)
        if attachment is None:
            raise DownloadError(f"Attachment {attachment_id} not found", provider=account.provider)

        adapter = self.registry.get(account.provider)
        try:
            return await adapter.download_attachment(account, message_id, attachment)
        except DownloadError as e:
            self._report_failure("download", e, generation)
            raise

    def extract_otp(self, message_id: str) -> Optional[str]:
        """Passcode detected in a hydrated message, if any."""
        message = self._find(message_id)
        if message is None:
            return None
        return extract_otp_from_message(message, self.otp_extractor)


async def main():
    """Entry point: watch a mailbox headlessly and log arrivals."""
    from tempvortex.services.registry import build_registry
    from tempvortex.services.session_manager import SessionManager, SessionState
    from tempvortex.services.session_store import create_session_store
    from tempvortex.utils.logging import configure_logging

    configure_logging()
    registry = build_registry(settings)
    store = create_session_store(settings)
    inbox = InboxSynchronizer(registry)
    manager = SessionManager(registry, store, inbox)
    queue = inbox.events.subscribe()

    await inbox.start()
    await manager.initialize()
    try:
        if manager.state is SessionState.NO_SESSION:
            await manager.create_account()
        logger.info("Watching mailbox", address=manager.account.address, provider=manager.provider)

        while True:
            event = await queue.get()
            if isinstance(event, MessageArrived):
                logger.info(
                    "New message",
                    sender=event.message.sender_name,
                    subject=event.message.subject,
                )
            elif isinstance(event, SyncFailed):
                logger.warning("Sync failed", error=event.error)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    finally:
        await inbox.stop()
        await store.close()
        await registry.aclose()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
