"""Provider adapter contract and shared HTTP plumbing."""

import re
import secrets
import string
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiofiles
import httpx
from dateutil import parser as date_parser
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from tempvortex.config.settings import settings
from tempvortex.models.mailbox import (
    Account,
    Attachment,
    AttachmentDownload,
    Message,
    MessageContent,
    ProviderId,
)
from tempvortex.services.errors import DownloadError, is_network_error
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)

LOGIN_ALPHABET = string.ascii_lowercase + string.digits
PASSWORD_ALPHABET = string.ascii_letters + string.digits

_UNSAFE_FILENAME = re.compile(r"[^A-Za-z0-9._-]+")


def parse_provider_date(value: str) -> datetime:
    """Parse a provider date string; naive values are taken as UTC."""
    parsed = date_parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_epoch_seconds(value: str | int | float) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def format_display_date(value: datetime) -> str:
    """Render a timestamp in local time for display."""
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def safe_filename(filename: str) -> str:
    cleaned = _UNSAFE_FILENAME.sub("_", Path(filename).name).strip("._")
    return cleaned or "attachment"


class MailProvider(ABC):
    """
    Capability contract every provider adapter satisfies.

    Adapters own every wire quirk of their backend (wrapped vs. bare
    collections, string vs. numeric timestamps, string read flags) and
    only ever hand back the shared models.
    """

    provider_id: ProviderId
    display_name: str
    supports_custom_login: bool = True
    supports_delete: bool = True
    supports_attachments: bool = True
    login_length: int = 10
    fallback_domains: tuple[str, ...] = ()

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        download_dir: Optional[Path] = None,
    ) -> None:
        """
        Initialize adapter.

        Args:
            base_url: Provider endpoint (or relay in front of it)
            timeout: Transport timeout in seconds
            max_retries: Attempts for idempotent GET requests
            client: Pre-built HTTP client (tests inject a mock transport)
            download_dir: Where authenticated attachment downloads are written
        """
        self.base_url = base_url
        self.timeout = timeout if timeout is not None else settings.providers.timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.providers.max_retries
        self.download_dir = download_dir or settings.storage.download_dir
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

        logger.info(
            "Mail provider initialized",
            provider=self.provider_id,
            base_url=self.base_url,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._owns_client:
            await self.client.aclose()

    def generate_login(self) -> str:
        """Random lowercase base36 login."""
        return "".join(secrets.choice(LOGIN_ALPHABET) for _ in range(self.login_length))

    @staticmethod
    def generate_password(length: int = 16) -> str:
        """Fresh random secret; never reused across accounts."""
        core = "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))
        # Guarantees one symbol, one upper, one lower, one digit
        return core + "!Aa1"

    async def _get_json(
        self,
        url: str,
        *,
        params: Optional[Any] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        GET a JSON document, retrying transport failures.

        Raises:
            httpx.TransportError: After the last failed attempt
            httpx.HTTPStatusError: On a non-2xx response (not retried)
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, max=settings.providers.retry_backoff_max),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                response = await self.client.get(url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()

    def _download_dir_for(self, account: Account) -> Path:
        return self.download_dir / safe_filename(account.address)

    async def purge_downloads(self, account: Account) -> None:
        """Delete every attachment downloaded for ``account``."""
        directory = self._download_dir_for(account)
        if not directory.is_dir():
            return
        removed = 0
        for path in directory.iterdir():
            if path.is_file():
                path.unlink()
                removed += 1
        directory.rmdir()
        logger.info("Downloaded attachments removed", provider=self.provider_id, count=removed)

    async def _save_authenticated_download(
        self,
        account: Account,
        url: str,
        headers: dict[str, str],
        message_id: str,
        attachment: Attachment,
    ) -> AttachmentDownload:
        """Fetch attachment bytes with the account credential and store them locally."""
        try:
            response = await self.client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "Attachment download failed",
                provider=self.provider_id,
                message_id=message_id,
                filename=attachment.filename,
                error=str(e),
            )
            raise DownloadError(
                f"Could not download {attachment.filename}",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

        filename = f"{safe_filename(message_id)}_{safe_filename(attachment.filename)}"
        destination = self._download_dir_for(account) / filename
        destination.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(destination, mode="wb") as f:
            await f.write(response.content)

        logger.info(
            "Attachment downloaded",
            provider=self.provider_id,
            message_id=message_id,
            filename=attachment.filename,
            size_bytes=len(response.content),
        )
        return AttachmentDownload(
            filename=attachment.filename,
            content_type=response.headers.get("content-type", attachment.content_type),
            path=destination,
        )

    async def get_domains(self) -> list[str]:
        """Available domains; falls back to a static list, never raises."""
        try:
            domains = await self._fetch_domains()
        except Exception as e:
            logger.warning(
                "Domain lookup failed, using fallback list",
                provider=self.provider_id,
                error=str(e),
            )
            return list(self.fallback_domains)
        if not domains:
            return list(self.fallback_domains)
        return domains

    async def _fetch_domains(self) -> list[str]:
        return list(self.fallback_domains)

    @abstractmethod
    async def create_account(self, domain: str, custom_login: Optional[str] = None) -> Account:
        """Provision a mailbox. Raises AccountCreationError."""

    @abstractmethod
    async def get_messages(self, account: Account) -> list[Message]:
        """List message summaries. Raises SyncError."""

    @abstractmethod
    async def get_message_content(self, account: Account, message_id: str) -> MessageContent:
        """Fetch body/html/attachments. Raises ContentFetchError."""

    @abstractmethod
    async def delete_message(self, account: Account, message_id: str) -> None:
        """Delete a message. Raises DeleteError."""

    @abstractmethod
    async def download_attachment(
        self, account: Account, message_id: str, attachment: Attachment
    ) -> AttachmentDownload:
        """Retrieve an attachment. Raises DownloadError."""
