"""Session and provider API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tempvortex.api.dependencies import get_registry, get_session_manager
from tempvortex.api.errors import http_error
from tempvortex.api.models import (
    AccountInfo,
    CreateSessionRequest,
    ProviderInfo,
    RecoverSessionRequest,
    RecoverSessionResponse,
    RecoveryLinkResponse,
    SessionResponse,
)
from tempvortex.services.errors import TempMailError
from tempvortex.services.registry import ProviderRegistry
from tempvortex.services.session_manager import SessionManager
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Session"])


def session_response(manager: SessionManager) -> SessionResponse:
    return SessionResponse(
        state=manager.state,
        provider=manager.provider,
        account=AccountInfo.from_account(manager.account) if manager.account else None,
    )


@router.get("/providers", response_model=list[ProviderInfo])
async def list_providers(
    registry: ProviderRegistry = Depends(get_registry),
) -> list[ProviderInfo]:
    """List providers in rotation order with their capabilities."""
    return [
        ProviderInfo(
            id=adapter.provider_id,
            name=adapter.display_name,
            supports_custom_login=adapter.supports_custom_login,
            supports_delete=adapter.supports_delete,
            supports_attachments=adapter.supports_attachments,
        )
        for adapter in registry
    ]


@router.get("/session", response_model=SessionResponse)
async def get_session(
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Current account and provider."""
    return session_response(manager)


@router.post("/session", response_model=SessionResponse)
async def create_session(
    request: Optional[CreateSessionRequest] = None,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """
    Generate a new identity.

    **Request Body (optional):**
    - `provider`: Provider to use (defaults to the active one)
    - `custom_login`: Requested alias, for providers that support it

    The previous mailbox is abandoned; its messages are not carried over.
    """
    request = request or CreateSessionRequest()
    try:
        await manager.create_account(request.provider, request.custom_login)
    except TempMailError as e:
        raise http_error(e)
    return session_response(manager)


@router.post("/session/switch", response_model=SessionResponse)
async def switch_provider(
    manager: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Move to the next provider in the rotation with a fresh identity."""
    try:
        await manager.switch_provider()
    except TempMailError as e:
        raise http_error(e)
    return session_response(manager)


@router.get("/session/recovery-link", response_model=RecoveryLinkResponse)
async def recovery_link(
    base_url: Optional[str] = Query(None, description="Origin the link should point to"),
    manager: SessionManager = Depends(get_session_manager),
) -> RecoveryLinkResponse:
    """Link that restores this mailbox on another device."""
    try:
        url = manager.recovery_url(base_url)
    except TempMailError as e:
        raise http_error(e)
    logger.info("Recovery link issued", provider=manager.provider)
    return RecoveryLinkResponse(url=url)


@router.post("/session/recover", response_model=RecoverSessionResponse)
async def recover_session(
    request: RecoverSessionRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> RecoverSessionResponse:
    """
    Restore a mailbox from a recovery link.

    The provider is not contacted; the link's account is trusted as-is.
    Returns the link with its recovery parameters removed so the caller
    can replace the visible URL.
    """
    clean_url = await manager.recover(request.url)
    if clean_url is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Recovery link must include account and a known provider",
        )
    return RecoverSessionResponse(**session_response(manager).model_dump(), clean_url=clean_url)
