"""Pytest configuration and fixtures for all tests."""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing settings
os.environ["APP_ENV"] = "testing"
os.environ["LOG_FORMAT"] = "console"
os.environ["SESSION_STORE_BACKEND"] = "memory"
os.environ["SESSION_STORE_PATH"] = os.path.join(tempfile.gettempdir(), "tempvortex-test-session")
os.environ["DOWNLOAD_DIR"] = os.path.join(tempfile.gettempdir(), "tempvortex-test-downloads")
os.environ["PROVIDER_MAX_RETRIES"] = "1"
os.environ["PROVIDER_TIMEOUT"] = "2"
os.environ["INBOX_POLL_INTERVAL"] = "0.05"
os.environ["AUTO_CREATE_SESSION"] = "false"
os.environ["PUBLIC_BASE_URL"] = "https://mail.example.test/"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"

from tempvortex.models.mailbox import Account, Attachment, Message, MessageContent, ProviderId  # noqa: E402


def build_message(message_id: str, **overrides) -> Message:
    """Summary as an adapter would return it."""
    fields = {
        "id": message_id,
        "from_address": f"Sender {message_id} <sender-{message_id}@example.com>",
        "subject": f"Subject {message_id}",
        "date": "2024-05-01 10:00:00",
        "timestamp": 1714557600000,
        "is_read": False,
    }
    fields.update(overrides)
    return Message(**fields)


def build_adapter(provider_id: ProviderId, *, supports_custom_login: bool = True) -> MagicMock:
    """Adapter double with the capability flags and async operations of a real one."""
    adapter = MagicMock()
    adapter.provider_id = provider_id
    adapter.display_name = provider_id.value
    adapter.supports_custom_login = supports_custom_login
    adapter.supports_delete = True
    adapter.supports_attachments = True
    adapter.get_domains = AsyncMock(return_value=[f"{provider_id.value}.test"])
    adapter.create_account = AsyncMock(
        side_effect=lambda domain, custom_login=None: Account(
            address=f"{custom_login or 'generated'}@{domain}",
            token=f"token-{provider_id.value}",
            provider=provider_id,
        )
    )
    adapter.get_messages = AsyncMock(return_value=[])
    adapter.get_message_content = AsyncMock(
        return_value=MessageContent(body="Your verification code is A1B2C9", html=None, attachments=[])
    )
    adapter.delete_message = AsyncMock(return_value=None)
    adapter.download_attachment = AsyncMock()
    adapter.purge_downloads = AsyncMock()
    adapter.aclose = AsyncMock()
    return adapter


@pytest.fixture
def make_message():
    """Factory for message summaries."""
    return build_message


@pytest.fixture
def adapters():
    """One adapter double per provider; Guerrilla assigns its own logins."""
    return {
        ProviderId.ONESECMAIL: build_adapter(ProviderId.ONESECMAIL),
        ProviderId.MAILTM: build_adapter(ProviderId.MAILTM),
        ProviderId.GUERRILLA: build_adapter(ProviderId.GUERRILLA, supports_custom_login=False),
    }


@pytest.fixture
def registry(adapters):
    """Registry over the adapter doubles."""
    from tempvortex.services.registry import ProviderRegistry

    return ProviderRegistry(adapters)


@pytest.fixture
def event_bus():
    from tempvortex.services.events import EventBus

    return EventBus()


@pytest.fixture
def inbox(registry, event_bus):
    """Synchronizer that is not polling on a timer; tests drive poll_once()."""
    from tempvortex.workers.inbox_synchronizer import InboxSynchronizer

    return InboxSynchronizer(registry, event_bus, poll_interval=0.05)


@pytest.fixture
def account_a():
    return Account(address="alpha@mailtm.test", token="token-a", provider=ProviderId.MAILTM)


@pytest.fixture
def account_b():
    return Account(address="bravo@1secmail.test", provider=ProviderId.ONESECMAIL)


@pytest.fixture
def sample_attachment():
    return Attachment(
        id="ATTACH1",
        filename="invoice.pdf",
        content_type="application/pdf",
        size=1024,
        download_url="https://api.mail.tm/messages/m1/attachment/ATTACH1",
    )
