"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tempvortex.api.middleware import request_logging_middleware
from tempvortex.api.routes import messages_router, session_router
from tempvortex.config.settings import settings
from tempvortex.services.errors import AccountCreationError
from tempvortex.services.events import EventBus
from tempvortex.services.registry import build_registry
from tempvortex.services.session_manager import SessionManager, SessionState
from tempvortex.services.session_store import create_session_store
from tempvortex.utils.logging import configure_logging, get_logger
from tempvortex.workers.inbox_synchronizer import InboxSynchronizer

# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager: wires the engine and starts polling."""
    logger.info("Starting TempVortex", env=settings.app.env)

    registry = build_registry(settings)
    store = create_session_store(settings)
    events = EventBus()
    inbox = InboxSynchronizer(registry, events)
    manager = SessionManager(registry, store, inbox, events)

    app.state.registry = registry
    app.state.events = events
    app.state.inbox = inbox
    app.state.session_manager = manager

    await inbox.start()
    await manager.initialize()

    if manager.state is SessionState.NO_SESSION and settings.app.auto_create_session:
        try:
            await manager.create_account()
        except AccountCreationError as e:
            # Caller can retry or switch provider through the API
            logger.warning("Initial identity not created", error=str(e), code=e.error_code)

    yield

    logger.info("Shutting down...")
    await inbox.stop()
    await store.close()
    await registry.aclose()
    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="TempVortex",
    description="Disposable mailboxes across heterogeneous providers",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.admin.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(request_logging_middleware)

app.include_router(session_router, prefix="/api/v1")
app.include_router(messages_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Basic health check."""
    inbox: InboxSynchronizer = app.state.inbox
    manager: SessionManager = app.state.session_manager
    return {
        "status": "healthy",
        "version": "1.0.0",
        "session": manager.state.value,
        "provider": manager.provider.value,
        "polling": inbox.is_polling,
        "last_synced_at": inbox.last_synced_at.isoformat() if inbox.last_synced_at else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.admin.port)
