"""Data models for the TempVortex mailbox engine."""

from .mailbox import (
    Account,
    Attachment,
    AttachmentDownload,
    Message,
    MessageContent,
    ProviderId,
    SessionRecord,
)
from .events import (
    AccountOperationFailed,
    HydrationComplete,
    InboxEvent,
    InboxReplaced,
    MessageArrived,
    NewMailArrived,
    SessionChanged,
    SyncFailed,
)

__all__ = [
    "Account",
    "Attachment",
    "AttachmentDownload",
    "Message",
    "MessageContent",
    "ProviderId",
    "SessionRecord",
    "AccountOperationFailed",
    "HydrationComplete",
    "InboxEvent",
    "InboxReplaced",
    "MessageArrived",
    "NewMailArrived",
    "SessionChanged",
    "SyncFailed",
]
