"""API route modules."""

from .messages import router as messages_router
from .session import router as session_router

__all__ = ["messages_router", "session_router"]
