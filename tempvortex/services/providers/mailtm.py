"""mail.tm adapter: bearer-token REST API with a create -> token handshake."""

from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

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
    parse_provider_date,
    to_epoch_millis,
)
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)


class TokenNotReadyError(Exception):
    """Token endpoint answered 401 right after account creation."""

    pass


def hydra_members(data: Any) -> list[dict]:
    """Unwrap a hydra collection; bare arrays pass through."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("hydra:member") or data.get("member") or []
    raise ValueError("Unexpected collection payload")


def error_detail(response: httpx.Response, default: str) -> str:
    """Best-effort human readable rejection reason from a hydra error body."""
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict):
        return data.get("detail") or data.get("hydra:description") or data.get("message") or default
    return default


class MailTmProvider(MailProvider):
    """Provider B. Every call after creation carries the bearer token."""

    provider_id = ProviderId.MAILTM
    display_name = "Mail.tm"
    supports_custom_login = True
    supports_delete = True
    supports_attachments = True
    login_length = 10
    fallback_domains = ("mail.tm",)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    @staticmethod
    def _auth(account: Account) -> dict[str, str]:
        return {"Authorization": f"Bearer {account.token}"}

    async def _fetch_domains(self) -> list[str]:
        data = await self._get_json(self._url("/domains"))
        return [item["domain"] for item in hydra_members(data) if item.get("domain")]

    async def create_account(self, domain: str, custom_login: Optional[str] = None) -> Account:
        """
        Create the mailbox and mint its token.

        A fresh random password is generated for every account; it is used
        only for the token exchange and never stored.

        Raises:
            AccountCreationError: Login taken, invalid domain or handshake failure
        """
        login = custom_login or self.generate_login()
        address = f"{login}@{domain}"
        credentials = {"address": address, "password": self.generate_password()}

        try:
            response = await self.client.post(self._url("/accounts"), json=credentials)
        except httpx.TransportError as e:
            logger.error("Account creation request failed", provider=self.provider_id, error=str(e))
            raise AccountCreationError(
                "Connectivity blocked", provider=self.provider_id, is_network_error=True
            ) from e

        if response.status_code not in (200, 201):
            detail = error_detail(response, "Username taken or creation failed.")
            logger.warning(
                "Provider rejected account creation",
                provider=self.provider_id,
                address=address,
                status=response.status_code,
                detail=detail,
            )
            raise AccountCreationError(detail, provider=self.provider_id, detail=detail)

        try:
            account_data = response.json()
        except ValueError:
            account_data = {}
        if not isinstance(account_data, dict):
            account_data = {}
        token = await self._mint_token(credentials)

        logger.info("Account created", provider=self.provider_id, address=address)
        return Account(
            address=address,
            token=token,
            external_id=account_data.get("id"),
            provider=self.provider_id,
        )

    async def _mint_token(self, credentials: dict[str, str]) -> str:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=wait_exponential(multiplier=0.5, max=4),
                retry=retry_if_exception_type((httpx.TransportError, TokenNotReadyError)),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.post(self._url("/token"), json=credentials)
                    if response.status_code == 401:
                        raise TokenNotReadyError(error_detail(response, "Invalid credentials"))
                    if response.status_code != 200:
                        raise AccountCreationError(
                            error_detail(response, "Token request failed"),
                            provider=self.provider_id,
                        )
                    try:
                        token = response.json().get("token")
                    except (ValueError, AttributeError) as e:
                        raise AccountCreationError(
                            "Malformed token response", provider=self.provider_id
                        ) from e
                    if not token:
                        raise AccountCreationError("Token missing from response", provider=self.provider_id)
                    return token
        except httpx.TransportError as e:
            raise AccountCreationError(
                "Connectivity blocked", provider=self.provider_id, is_network_error=True
            ) from e
        except TokenNotReadyError as e:
            raise AccountCreationError(str(e), provider=self.provider_id) from e

    async def get_messages(self, account: Account) -> list[Message]:
        if not account.token:
            logger.warning("Account has no token, nothing to list", provider=self.provider_id)
            return []
        try:
            data = await self._get_json(self._url("/messages"), headers=self._auth(account))
            return [self._to_message(item) for item in hydra_members(data)]
        except (httpx.HTTPError, ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Failed to list messages", provider=self.provider_id, error=str(e))
            raise SyncError(
                "Could not list messages",
                provider=self.provider_id,
                is_network_error=is_network_error(e),
            ) from e

    @staticmethod
    def _to_message(item: dict) -> Message:
        received = parse_provider_date(item["createdAt"])
        sender = item.get("from") or {}
        return Message(
            id=item["id"],
            from_address=sender.get("address", "") if isinstance(sender, dict) else str(sender),
            subject=item.get("subject", ""),
            date=format_display_date(received),
            timestamp=to_epoch_millis(received),
            is_read=bool(item.get("seen", False)),
        )

    async def get_message_content(self, account: Account, message_id: str) -> MessageContent:
        if not account.token:
            raise ContentFetchError("Account has no token", provider=self.provider_id)
        try:
            data = await self._get_json(
                self._url(f"/messages/{message_id}"), headers=self._auth(account)
            )
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

    def _to_content(self, data: dict) -> MessageContent:
        html = data.get("html")
        if isinstance(html, list):
            html = "".join(html)

        # downloadUrl is relative and needs the bearer token to resolve
        attachments = [
            Attachment(
                id=att["id"],
                filename=att.get("filename", att["id"]),
                content_type=att.get("contentType") or "application/octet-stream",
                size=int(att.get("size") or 0),
                download_url=self._url(att["downloadUrl"]) if att.get("downloadUrl") else None,
            )
            for att in data.get("attachments") or []
        ]
        return MessageContent(body=data.get("text"), html=html or None, attachments=attachments)

    async def delete_message(self, account: Account, message_id: str) -> None:
        if not account.token:
            raise DeleteError("Account has no token", provider=self.provider_id)
        try:
            response = await self.client.delete(
                self._url(f"/messages/{message_id}"), headers=self._auth(account)
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
        if not attachment.download_url or not account.token:
            raise DownloadError(
                f"No authenticated download available for {attachment.filename}",
                provider=self.provider_id,
            )
        return await self._save_authenticated_download(
            account, attachment.download_url, self._auth(account), message_id, attachment
        )
