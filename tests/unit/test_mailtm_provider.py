"""
Unit tests for the mail.tm adapter

Tests the create/token handshake, bearer auth, hydra unwrapping and
authenticated attachment downloads
"""
import json

import httpx
import pytest

from tempvortex.models.mailbox import Account, Attachment, ProviderId
from tempvortex.services.errors import AccountCreationError, ContentFetchError, DeleteError, DownloadError
from tempvortex.services.providers import MailTmProvider
from tempvortex.services.providers.mailtm import hydra_members

BASE_URL = "https://api.mail.tm"


def make_provider(handler, **kwargs) -> MailTmProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MailTmProvider(BASE_URL, client=client, max_retries=1, **kwargs)


@pytest.fixture
def account():
    return Account(address="alpha@mail.tm", token="tok-1", external_id="acc-1", provider=ProviderId.MAILTM)


@pytest.mark.unit
@pytest.mark.providers
class TestMailTmAccountCreation:
    """Test suite for the account handshake"""

    @pytest.mark.asyncio
    async def test_create_account_mints_token(self):
        """
        Given: The provider accepts the account and issues a token
        When: create_account() is called
        Then: The account carries the token and external id
        """
        bodies = []

        def handler(request):
            body = json.loads(request.content)
            bodies.append((request.url.path, body))
            if request.url.path == "/accounts":
                return httpx.Response(201, json={"id": "acc-1", "address": body["address"]})
            if request.url.path == "/token":
                return httpx.Response(200, json={"token": "tok-1", "id": "acc-1"})
            return httpx.Response(404)

        provider = make_provider(handler)
        account = await provider.create_account("mail.tm", "alpha")

        assert account.address == "alpha@mail.tm"
        assert account.token == "tok-1"
        assert account.external_id == "acc-1"
        assert [path for path, _ in bodies] == ["/accounts", "/token"]
        # Same credentials for both calls
        assert bodies[0][1] == bodies[1][1]

    @pytest.mark.asyncio
    async def test_passwords_are_fresh_per_account(self):
        passwords = []

        def handler(request):
            body = json.loads(request.content)
            if request.url.path == "/accounts":
                passwords.append(body["password"])
                return httpx.Response(201, json={"id": "x"})
            return httpx.Response(200, json={"token": "t"})

        provider = make_provider(handler)
        await provider.create_account("mail.tm")
        await provider.create_account("mail.tm")

        assert passwords[0] != passwords[1]
        assert all(p.endswith("!Aa1") and len(p) == 20 for p in passwords)

    @pytest.mark.asyncio
    async def test_create_account_rejected(self):
        """
        Given: The login is already taken
        When: create_account() is called
        Then: AccountCreationError carries the provider's reason
        """
        def handler(request):
            return httpx.Response(
                422,
                json={"hydra:description": "address: This value is already used."},
            )

        provider = make_provider(handler)
        with pytest.raises(AccountCreationError) as exc_info:
            await provider.create_account("mail.tm", "taken")

        assert "already used" in str(exc_info.value)
        assert exc_info.value.error_code == "INIT_FAIL"

    @pytest.mark.asyncio
    async def test_create_account_token_refused(self):
        def handler(request):
            if request.url.path == "/accounts":
                return httpx.Response(201, json={"id": "acc-1"})
            return httpx.Response(401, json={"message": "Invalid credentials."})

        provider = make_provider(handler)
        with pytest.raises(AccountCreationError):
            await provider.create_account("mail.tm", "alpha")

    @pytest.mark.asyncio
    async def test_create_account_network_error(self):
        def handler(request):
            raise httpx.ConnectError("blocked", request=request)

        provider = make_provider(handler)
        with pytest.raises(AccountCreationError) as exc_info:
            await provider.create_account("mail.tm")

        assert exc_info.value.error_code == "ERR_NETWORK"

    @pytest.mark.asyncio
    async def test_create_account_token_not_json(self):
        """
        Given: The token endpoint answers 200 with an HTML page
        When: create_account() is called
        Then: AccountCreationError is raised instead of a decode error
        """
        def handler(request):
            if request.url.path == "/accounts":
                return httpx.Response(201, json={"id": "acc-1"})
            return httpx.Response(200, text="<html>oops</html>")

        provider = make_provider(handler)
        with pytest.raises(AccountCreationError) as exc_info:
            await provider.create_account("mail.tm", "alpha")

        assert exc_info.value.error_code == "INIT_FAIL"

    @pytest.mark.asyncio
    async def test_get_domains_unwraps_hydra(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"hydra:member": [{"domain": "punkproof.com"}, {"domain": "mail.tm"}]},
            )

        provider = make_provider(handler)
        assert await provider.get_domains() == ["punkproof.com", "mail.tm"]


@pytest.mark.unit
@pytest.mark.providers
class TestMailTmMailbox:
    """Test suite for listing, reading and deleting messages"""

    @pytest.mark.asyncio
    async def test_get_messages(self, account):
        """
        Given: A hydra-wrapped message collection
        When: get_messages() is called with a token-bearing account
        Then: The bearer token is sent and summaries are normalized
        """
        def handler(request):
            assert request.headers["Authorization"] == "Bearer tok-1"
            return httpx.Response(
                200,
                json={
                    "hydra:member": [
                        {
                            "id": "m1",
                            "from": {"address": "noreply@service.com", "name": "Service"},
                            "subject": "Welcome",
                            "createdAt": "2024-05-01T10:00:00+00:00",
                            "seen": True,
                        }
                    ]
                },
            )

        provider = make_provider(handler)
        messages = await provider.get_messages(account)

        assert messages[0].id == "m1"
        assert messages[0].from_address == "noreply@service.com"
        assert messages[0].timestamp == 1714557600000
        assert messages[0].is_read is True

    @pytest.mark.asyncio
    async def test_get_messages_without_token(self):
        def handler(request):
            raise AssertionError("No request expected without a token")

        provider = make_provider(handler)
        account = Account(address="alpha@mail.tm", provider=ProviderId.MAILTM)
        assert await provider.get_messages(account) == []

    @pytest.mark.asyncio
    async def test_get_message_content(self, account):
        def handler(request):
            assert request.url.path == "/messages/m1"
            return httpx.Response(
                200,
                json={
                    "id": "m1",
                    "text": "Your code is A1B2C9",
                    "html": ["<p>Your code ", "is A1B2C9</p>"],
                    "attachments": [
                        {
                            "id": "ATTACH1",
                            "filename": "invoice.pdf",
                            "contentType": "application/pdf",
                            "size": 1024,
                            "downloadUrl": "/messages/m1/attachment/ATTACH1",
                        }
                    ],
                },
            )

        provider = make_provider(handler)
        content = await provider.get_message_content(account, "m1")

        assert content.body == "Your code is A1B2C9"
        assert content.html == "<p>Your code is A1B2C9</p>"
        assert content.attachments[0].download_url == "https://api.mail.tm/messages/m1/attachment/ATTACH1"

    @pytest.mark.asyncio
    async def test_get_message_content_error(self, account):
        provider = make_provider(lambda request: httpx.Response(404))
        with pytest.raises(ContentFetchError) as exc_info:
            await provider.get_message_content(account, "missing")

        assert exc_info.value.error_code == "CONTENT_FAIL"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            ["x"],
            {"text": "hi", "attachments": [{"filename": "a.pdf"}]},
        ],
        ids=["non_object_body", "attachment_without_id"],
    )
    async def test_get_message_content_malformed_payload(self, account, payload):
        """
        Given: A 200 response whose body does not match the message shape
        When: get_message_content() is called
        Then: ContentFetchError is raised
        """
        provider = make_provider(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(ContentFetchError) as exc_info:
            await provider.get_message_content(account, "m1")

        assert exc_info.value.error_code == "CONTENT_FAIL"

    @pytest.mark.asyncio
    async def test_delete_message(self, account):
        calls = []

        def handler(request):
            calls.append((request.method, request.url.path))
            return httpx.Response(204)

        provider = make_provider(handler)
        await provider.delete_message(account, "m1")

        assert calls == [("DELETE", "/messages/m1")]

    @pytest.mark.asyncio
    async def test_delete_message_failure(self, account):
        provider = make_provider(lambda request: httpx.Response(404))
        with pytest.raises(DeleteError) as exc_info:
            await provider.delete_message(account, "m1")

        assert exc_info.value.error_code == "DELETE_FAIL"


@pytest.mark.unit
@pytest.mark.providers
class TestMailTmDownloads:
    """Test suite for authenticated attachment downloads"""

    @pytest.mark.asyncio
    async def test_download_writes_file(self, account, sample_attachment, tmp_path):
        """
        Given: An attachment behind the bearer token
        When: download_attachment() is called
        Then: Bytes are fetched with the token and written to the download directory
        """
        def handler(request):
            assert request.headers["Authorization"] == "Bearer tok-1"
            return httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"})

        provider = make_provider(handler, download_dir=tmp_path)
        download = await provider.download_attachment(account, "m1", sample_attachment)

        assert download.url is None
        assert download.path.parent == tmp_path / "alpha_mail.tm"
        assert download.path.read_bytes() == b"%PDF-1.4"
        assert download.content_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_download_failure(self, account, sample_attachment, tmp_path):
        provider = make_provider(lambda request: httpx.Response(403), download_dir=tmp_path)
        with pytest.raises(DownloadError):
            await provider.download_attachment(account, "m1", sample_attachment)

    @pytest.mark.asyncio
    async def test_download_without_url(self, account):
        provider = make_provider(lambda request: httpx.Response(200))
        attachment = Attachment(id="x", filename="x.txt")
        with pytest.raises(DownloadError):
            await provider.download_attachment(account, "m1", attachment)

    @pytest.mark.asyncio
    async def test_purge_downloads_removes_mailbox_directory(self, account, sample_attachment, tmp_path):
        """
        Given: An attachment already downloaded for the mailbox
        When: purge_downloads() is called for that mailbox
        Then: The file and the mailbox's download directory are gone
        """
        provider = make_provider(lambda request: httpx.Response(200, content=b"data"), download_dir=tmp_path)
        download = await provider.download_attachment(account, "m1", sample_attachment)
        assert download.path.exists()

        await provider.purge_downloads(account)

        assert not download.path.exists()
        assert not (tmp_path / "alpha_mail.tm").exists()

    @pytest.mark.asyncio
    async def test_purge_downloads_without_files(self, account, tmp_path):
        provider = make_provider(lambda request: httpx.Response(200), download_dir=tmp_path)
        await provider.purge_downloads(account)
        assert list(tmp_path.iterdir()) == []


@pytest.mark.unit
@pytest.mark.providers
def test_hydra_members_accepts_bare_arrays():
    assert hydra_members([{"id": 1}]) == [{"id": 1}]
    assert hydra_members({"hydra:member": []}) == []
