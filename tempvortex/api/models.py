"""API request/response models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tempvortex.models.mailbox import Account, Message, ProviderId
from tempvortex.services.session_manager import SessionState


class ProviderInfo(BaseModel):
    """Provider capabilities."""

    id: ProviderId
    name: str
    supports_custom_login: bool
    supports_delete: bool
    supports_attachments: bool


class AccountInfo(BaseModel):
    """Account as shown to the caller; the token stays server-side."""

    address: str
    provider: ProviderId
    has_token: bool

    @classmethod
    def from_account(cls, account: Account) -> "AccountInfo":
        return cls(address=account.address, provider=account.provider, has_token=bool(account.token))


class SessionResponse(BaseModel):
    """Current session state."""

    state: SessionState
    provider: ProviderId
    account: Optional[AccountInfo] = None


class CreateSessionRequest(BaseModel):
    """Request a new mailbox."""

    provider: Optional[ProviderId] = Field(default=None, description="Defaults to the active provider")
    custom_login: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=64,
        pattern=r"^[a-z0-9._-]+$",
        description="Requested local part; only for providers that support it",
    )


class RecoverSessionRequest(BaseModel):
    """Restore a mailbox from a recovery link."""

    url: str = Field(min_length=1, description="Full recovery link or its query string")


class RecoverSessionResponse(SessionResponse):
    """Session after recovery plus the link with its parameters removed."""

    clean_url: str


class RecoveryLinkResponse(BaseModel):
    """Shareable recovery link."""

    url: str
    warning: str = "Anyone with this link can read this mailbox."


class MessageListResponse(BaseModel):
    """Published inbox snapshot."""

    total: int
    unread: int
    last_synced_at: Optional[datetime] = None
    messages: list[Message]


class RefreshResponse(BaseModel):
    """Result of a manual poll."""

    new_messages: int
    total: int


class MessageDetailResponse(BaseModel):
    """A selected (hydrated) message with its detected passcode."""

    message: Message
    otp: Optional[str] = None


class ErrorResponse(BaseModel):
    """Typed error body."""

    detail: str
    code: str
    provider: Optional[ProviderId] = None
