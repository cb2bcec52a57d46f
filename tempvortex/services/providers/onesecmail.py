"""1secmail adapter: unauthenticated query API, the address is the mailbox."""

from typing import Optional
from urllib.parse import urlencode

import httpx

from tempvortex.models.mailbox import (
    Account,
    Attachment,
    AttachmentDownload,
    Message,
    MessageContent,
    ProviderId,
)
from tempvortex.services.errors import ContentFetchError, SyncError, is_network_error
from tempvortex.services.providers.base import MailProvider, parse_provider_date, to_epoch_millis
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)


class OneSecMailProvider(MailProvider):
    """Provider A. Stateless: no token, no real delete."""

    provider_id = ProviderId.ONESECMAIL
    display_name = "1secmail"
    supports_custom_login = True
    # Delete is a documented no-op for this provider
    supports_delete = False
    supports_attachments = True
    login_length = 9
    fallback_domains = ("1secmail.com", "1secmail.org", "1secmail.net")

    def _mailbox_params(self, account: Account, **extra: str) -> dict[str, str]:
        return {"login": account.login, "domain": account.domain, **extra}

    async def _fetch_domains(self) -> list[str]:
        data = await self._get_json(self.base_url, params={"action": "getDomainsList"})
        if isinstance(data, list):
            return [str(domain) for domain in data if domain]
        return []

    async def create_account(self, domain: str, custom_login: Optional[str] = None) -> Account:
        login = custom_login or self.generate_login()
        account = Account(address=f"{login}@{domain}", provider=self.provider_id)
        logger.info("Account created", provider=self.provider_id, address=account.address)
        return account

    async def get_messages(self, account: Account) -> list[Message]:
        try:
            data = await self._get_json(
                self.base_url,
                params=self._mailbox_params(account, action="getMessages"),
            )
            return [self._to_message(item) for item in data]
        except (httpx.HTTPError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Failed to list messages", provider=self.provider_id, error=str(e))
            raise SyncError(
                "Could not list messages",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

    @staticmethod
    def _to_message(item: dict) -> Message:
        received = parse_provider_date(item["date"])
        return Message(
            id=str(item["id"]),
            from_address=item.get("from", ""),
            subject=item.get("subject", ""),
            date=item["date"],
            timestamp=to_epoch_millis(received),
            is_read=False,
        )

    async def get_message_content(self, account: Account, message_id: str) -> MessageContent:
        try:
            data = await self._get_json(
                self.base_url,
                params=self._mailbox_params(account, action="readMessage", id=message_id),
            )
            if not isinstance(data, dict):
                raise ValueError(f"Unexpected payload for message {message_id}")
            return self._to_content(data)
        except (httpx.HTTPError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(
                "Failed to fetch message content",
                provider=self.provider_id,
                message_id=message_id,
                error=str(e),
            )
            raise ContentFetchError(
                "Could not fetch message content.",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

    @staticmethod
    def _to_content(data: dict) -> MessageContent:
        # Attachments are addressed by filename on this provider
        attachments = [
            Attachment(
                id=att["filename"],
                filename=att["filename"],
                content_type=att.get("contentType") or "application/octet-stream",
                size=int(att.get("size") or 0),
            )
            for att in data.get("attachments") or []
        ]
        return MessageContent(
            body=data.get("textBody"),
            html=data.get("htmlBody"),
            attachments=attachments,
        )

    async def delete_message(self, account: Account, message_id: str) -> None:
        logger.debug(
            "Delete is not supported by provider, ignoring",
            provider=self.provider_id,
            message_id=message_id,
        )

    async def download_attachment(
        self, account: Account, message_id: str, attachment: Attachment
    ) -> AttachmentDownload:
        # Served unauthenticated: hand the caller the URL
        query = urlencode(
            self._mailbox_params(
                account,
                action="downloadAttachment",
                id=message_id,
                file=attachment.filename,
            )
        )
        return AttachmentDownload(
            filename=attachment.filename,
            content_type=attachment.content_type,
            url=f"{self.base_url}?{query}",
        )
