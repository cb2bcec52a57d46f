"""Inbox API endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse, RedirectResponse, Response

from tempvortex.api.dependencies import get_inbox
from tempvortex.api.errors import http_error
from tempvortex.api.models import MessageDetailResponse, MessageListResponse, RefreshResponse
from tempvortex.services.errors import TempMailError
from tempvortex.utils.logging import get_logger
from tempvortex.workers.inbox_synchronizer import InboxSynchronizer

logger = get_logger(__name__)
router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("", response_model=MessageListResponse)
async def list_messages(
    inbox: InboxSynchronizer = Depends(get_inbox),
) -> MessageListResponse:
    """
    Latest published inbox.

    Summaries only, in provider order; messages already opened carry
    their content.
    """
    messages = inbox.messages
    return MessageListResponse(
        total=len(messages),
        unread=sum(1 for m in messages if not m.is_read),
        last_synced_at=inbox.last_synced_at,
        messages=messages,
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_messages(
    inbox: InboxSynchronizer = Depends(get_inbox),
) -> RefreshResponse:
    """Poll the provider now instead of waiting for the next tick."""
    arrived = await inbox.refresh()
    return RefreshResponse(new_messages=len(arrived), total=len(inbox.messages))


@router.get("/{message_id}", response_model=MessageDetailResponse)
async def get_message(
    message_id: str,
    inbox: InboxSynchronizer = Depends(get_inbox),
) -> MessageDetailResponse:
    """
    Open a message.

    Fetches content on first open, marks it read and runs passcode
    detection over it.
    """
    try:
        message = await inbox.select_message(message_id)
    except TempMailError as e:
        raise http_error(e)

    if message is None:
        # Session changed while loading
        return Response(status_code=status.HTTP_409_CONFLICT)

    return MessageDetailResponse(message=message, otp=inbox.extract_otp(message_id))


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: str,
    inbox: InboxSynchronizer = Depends(get_inbox),
) -> Response:
    """Permanently delete a message (a no-op on providers without delete)."""
    try:
        await inbox.delete_message(message_id)
    except TempMailError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{message_id}/attachments/{attachment_id}")
async def download_attachment(
    message_id: str,
    attachment_id: str,
    inbox: InboxSynchronizer = Depends(get_inbox),
) -> Response:
    """Serve a downloaded attachment, or redirect to the provider's public URL."""
    try:
        download = await inbox.download_attachment(message_id, attachment_id)
    except TempMailError as e:
        raise http_error(e)

    if download.path is not None:
        return FileResponse(
            download.path,
            media_type=download.content_type,
            filename=download.filename,
        )
    return RedirectResponse(download.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
