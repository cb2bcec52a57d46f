"""Caller-facing inbox and session events."""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .mailbox import Account, Message, MessageContent, ProviderId


class BaseEvent(BaseModel):
    """Common event fields."""

    occurred_at: datetime = Field(default_factory=datetime.now)


class MessageArrived(BaseEvent):
    """A message id was seen for the first time (summary only)."""

    kind: Literal["message_arrived"] = "message_arrived"
    message: Message


class NewMailArrived(BaseEvent):
    """At most one per poll: the batch of newly arrived summaries."""

    kind: Literal["new_mail"] = "new_mail"
    messages: list[Message]


class InboxReplaced(BaseEvent):
    """The published message list after a poll."""

    kind: Literal["inbox_replaced"] = "inbox_replaced"
    messages: list[Message]


class HydrationComplete(BaseEvent):
    """Content for a selected message has been fetched and merged."""

    kind: Literal["hydration_complete"] = "hydration_complete"
    message_id: str
    content: MessageContent


class SyncFailed(BaseEvent):
    """A poll failed; non-fatal, the next tick retries."""

    kind: Literal["sync_failed"] = "sync_failed"
    error: str
    is_network_error: bool = False


class AccountOperationFailed(BaseEvent):
    """An explicit operation (create, fetch, delete, download) failed."""

    kind: Literal["operation_failed"] = "operation_failed"
    operation: str
    error_code: str
    error: str
    provider: Optional[ProviderId] = None


class SessionChanged(BaseEvent):
    """The active account changed (or was cleared)."""

    kind: Literal["session_changed"] = "session_changed"
    account: Optional[Account] = None
    provider: ProviderId


InboxEvent = Union[
    MessageArrived,
    NewMailArrived,
    InboxReplaced,
    HydrationComplete,
    SyncFailed,
    AccountOperationFailed,
    SessionChanged,
]
