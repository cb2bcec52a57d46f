"""Mailbox models shared by every provider."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderId(str, Enum):
    """Supported mail providers, in rotation order."""

    ONESECMAIL = "1secmail"
    MAILTM = "mailtm"
    GUERRILLA = "guerrilla"


class Account(BaseModel):
    """A provisioned mailbox.

    ``token`` is absent for stateless providers. For the others it is a
    bearer secret; anyone holding it can read the mailbox.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    address: str
    token: Optional[str] = None
    external_id: Optional[str] = Field(default=None, alias="id")
    provider: ProviderId

    @property
    def login(self) -> str:
        return self.address.split("@", 1)[0]

    @property
    def domain(self) -> str:
        _, _, domain = self.address.partition("@")
        return domain


class Attachment(BaseModel):
    """Attachment metadata."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    filename: str
    content_type: str = Field(default="application/octet-stream", alias="contentType")
    size: int = 0
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")


class MessageContent(BaseModel):
    """Partial message returned by a content fetch."""

    body: Optional[str] = None
    html: Optional[str] = None
    attachments: Optional[list[Attachment]] = None


class Message(BaseModel):
    """Message summary, hydrated once its content has been fetched."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_address: str = Field(default="", alias="from")
    subject: str = ""
    date: str = ""
    timestamp: int = 0  # epoch millis
    is_read: bool = Field(default=False, alias="isRead")
    body: Optional[str] = None
    html: Optional[str] = None
    attachments: Optional[list[Attachment]] = None

    @property
    def is_hydrated(self) -> bool:
        return self.body is not None or self.html is not None

    @property
    def sender_name(self) -> str:
        """Display part of ``from_address`` (text before ``<``)."""
        return self.from_address.split("<", 1)[0].strip() or self.from_address

    def merge_content(self, content: MessageContent) -> "Message":
        """Return a copy with the known content fields applied and marked read."""
        update = {
            name: value
            for name, value in content.model_dump(exclude_none=True).items()
        }
        if content.attachments is not None:
            update["attachments"] = list(content.attachments)
        update["is_read"] = True
        return self.model_copy(update=update)

    def find_attachment(self, attachment_id: str) -> Optional[Attachment]:
        for attachment in self.attachments or []:
            if attachment.id == attachment_id:
                return attachment
        return None


class AttachmentDownload(BaseModel):
    """Where a downloaded attachment can be found.

    Exactly one of ``path`` (bytes fetched with the account's credential)
    or ``url`` (unauthenticated link for the caller to open) is set.
    """

    filename: str
    content_type: str = "application/octet-stream"
    path: Optional[Path] = None
    url: Optional[str] = None


class SessionRecord(BaseModel):
    """Persisted session: the active account and provider."""

    account: Optional[Account] = None
    provider: ProviderId = ProviderId.ONESECMAIL
