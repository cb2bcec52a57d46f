"""Structured logging configuration using structlog."""

import logging
import sys
from typing import TYPE_CHECKING, Any, Optional

import structlog
from structlog.typing import EventDict, Processor

from tempvortex.config.settings import settings

if TYPE_CHECKING:
    from tempvortex.models.mailbox import Account


def add_provider_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Normalize provider enums to their wire value."""
    provider = event_dict.get("provider")
    if provider is not None and hasattr(provider, "value"):
        event_dict["provider"] = provider.value
    return event_dict


def bind_mailbox_context(account: Optional["Account"]) -> None:
    """
    Tag subsequent log lines in this context with the active mailbox.

    Polling tasks call this once at start; tasks copy the context when they
    are created, so the binding stays local to the task. The token is never
    bound.
    """
    structlog.contextvars.unbind_contextvars("account", "provider")
    if account is not None:
        structlog.contextvars.bind_contextvars(account=account.address, provider=account.provider)


def configure_logging() -> None:
    """Configure structured logging."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_provider_context,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.app.log_format == "json":
        processors: list[Processor] = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.app.log_level),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
