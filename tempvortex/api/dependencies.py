"""FastAPI dependencies exposing the engine stored on app state."""

from fastapi import Request

from tempvortex.services.registry import ProviderRegistry
from tempvortex.services.session_manager import SessionManager
from tempvortex.workers.inbox_synchronizer import InboxSynchronizer


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_inbox(request: Request) -> InboxSynchronizer:
    return request.app.state.inbox


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry
