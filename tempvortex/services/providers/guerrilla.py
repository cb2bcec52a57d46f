"""Guerrilla Mail adapter: session-token AJAX API with epoch-second timestamps."""

from typing import Optional

import httpx

from tempvortex.models.mailbox import (
    Account,
    Attachment,
    AttachmentDownload,
    Message,
    MessageContent,
    ProviderId,
)
from tempvortex.services.errors import (
    AccountCreationError,
    ContentFetchError,
    DeleteError,
    DownloadError,
    SyncError,
    is_network_error,
)
from tempvortex.services.providers.base import (
    MailProvider,
    format_display_date,
    from_epoch_seconds,
    to_epoch_millis,
)
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)


class GuerrillaMailProvider(MailProvider):
    """Provider C. The provider assigns the address; ``sid_token`` is the session."""

    provider_id = ProviderId.GUERRILLA
    display_name = "Guerrilla Mail"
    supports_custom_login = False
    supports_delete = True
    supports_attachments = False
    fallback_domains = ("guerrillamail.com",)

    async def create_account(self, domain: str, custom_login: Optional[str] = None) -> Account:
        if custom_login:
            raise AccountCreationError(
                "Custom logins are not supported by Guerrilla Mail",
                provider=self.provider_id,
            )
        try:
            data = await self._get_json(self.base_url, params={"f": "get_email_address"})
            address = data["email_addr"]
            token = data["sid_token"]
        except httpx.HTTPStatusError as e:
            raise AccountCreationError(
                f"Provider rejected session request ({e.response.status_code})",
                provider=self.provider_id,
            ) from e
        except httpx.TransportError as e:
            raise AccountCreationError(
                "Connectivity blocked", provider=self.provider_id, is_network_error=True
            ) from e
        except (ValueError, TypeError, KeyError) as e:
            raise AccountCreationError(
                "Malformed session response", provider=self.provider_id
            ) from e

        logger.info("Account created", provider=self.provider_id, address=address)
        return Account(address=address, token=token, provider=self.provider_id)

    async def get_messages(self, account: Account) -> list[Message]:
        if not account.token:
            logger.warning("Account has no session token, nothing to list", provider=self.provider_id)
            return []
        try:
            data = await self._get_json(
                self.base_url,
                params={"f": "check_email", "seq": "0", "sid_token": account.token},
            )
            return [self._to_message(item) for item in data.get("list") or []]
        except (httpx.HTTPError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Failed to list messages", provider=self.provider_id, error=str(e))
            raise SyncError(
                "Could not list messages",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

    @staticmethod
    def _to_message(item: dict) -> Message:
        received = from_epoch_seconds(item["mail_timestamp"])
        return Message(
            id=str(item["mail_id"]),
            from_address=item.get("mail_from", ""),
            subject=item.get("mail_subject", ""),
            date=format_display_date(received),
            timestamp=to_epoch_millis(received),
            # Read flag arrives as the string "1"/"0"
            is_read=str(item.get("mail_read", "0")) == "1",
        )

    async def get_message_content(self, account: Account, message_id: str) -> MessageContent:
        try:
            data = await self._get_json(
                self.base_url,
                params={"f": "fetch_email", "email_id": message_id, "sid_token": account.token or ""},
            )
        except (httpx.HTTPError, ValueError) as e:
            raise ContentFetchError(
                "Could not fetch message content.",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

        # Unknown ids come back as a bare JSON false
        if not isinstance(data, dict) or data.get("mail_body") is None:
            logger.warning("Unknown message id", provider=self.provider_id, message_id=message_id)
            raise ContentFetchError(f"Message {message_id} not found", provider=self.provider_id)

        body = data["mail_body"]
        return MessageContent(body=body, html=body, attachments=[])

    async def delete_message(self, account: Account, message_id: str) -> None:
        try:
            response = await self.client.get(
                self.base_url,
                params={"f": "del_email", "email_ids[]": message_id, "sid_token": account.token or ""},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to delete message",
                provider=self.provider_id,
                message_id=message_id,
                error=str(e),
            )
            raise DeleteError(
                "Deletion failed",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e
        logger.info("Message deleted", provider=self.provider_id, message_id=message_id)

    async def download_attachment(
        self, account: Account, message_id: str, attachment: Attachment
    ) -> AttachmentDownload:
        raise DownloadError(
            "Attachments are not available on Guerrilla Mail",
            provider=self.provider_id,
        )
