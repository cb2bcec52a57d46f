"""Error taxonomy for provider and inbox operations."""

from typing import Optional

import httpx

from tempvortex.models.mailbox import ProviderId


class TempMailError(Exception):
    """Base error for mailbox operations.

    ``is_network_error`` marks connectivity/policy failures (DNS, refused
    connection, timeouts, relay rejections) as opposed to the provider
    answering with a rejection.
    """

    default_code = "MAIL_FAIL"

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[ProviderId] = None,
        is_network_error: bool = False,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.is_network_error = is_network_error
        self.detail = detail or message

    @property
    def error_code(self) -> str:
        return "ERR_NETWORK" if self.is_network_error else self.default_code


class AccountCreationError(TempMailError):
    """Provider rejected the login or the credential handshake failed."""

    default_code = "INIT_FAIL"


class SyncError(TempMailError):
    """Listing messages failed."""

    default_code = "SYNC_FAIL"


class ContentFetchError(TempMailError):
    """Fetching a message's content failed or the id is unknown."""

    default_code = "CONTENT_FAIL"


class MessageNotFoundError(ContentFetchError):
    """The id is not in the current inbox."""

    default_code = "NOT_FOUND"


class NoActiveSessionError(TempMailError):
    """Operation requires an active account."""

    default_code = "NO_SESSION"


class DeleteError(TempMailError):
    """Deleting a message failed."""

    default_code = "DELETE_FAIL"


class DownloadError(TempMailError):
    """Retrieving an attachment failed."""

    default_code = "DOWNLOAD_FAIL"


def is_network_error(error: BaseException) -> bool:
    """True for transport-level failures (no usable HTTP response)."""
    return isinstance(error, httpx.TransportError)
