"""Unit tests for the infrastructure layer (HTTP, SMS gateway, credential store, Redis)."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from redis.exceptions import RedisError

from config import CredentialStoreSettings, SmsSettings
from infrastructure.credentials.auth_admin import AuthAdminCredentialStore
from infrastructure.http_client import HttpClient
from infrastructure.redis_client import create_redis_client
from infrastructure.sms.twilio import TwilioSmsProvider


# ── HttpClient ────────────────────────────────────────────────────────────────


class TestHttpClient:
    async def test_post_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "post", return_value=fake_resp)
        resp = await client.post("http://example.com")
        assert resp.status_code == 200
        await client.aclose()

    async def test_put_delegates_to_httpx(self, mocker):
        client = HttpClient()
        fake_resp = MagicMock(status_code=200)
        mocker.patch.object(client._client, "put", return_value=fake_resp)
        resp = await client.put("http://example.com", json={"a": 1})
        assert resp.status_code == 200
        await client.aclose()

    async def test_post_propagates_exception(self, mocker):
        client = HttpClient()
        mocker.patch.object(client._client, "post", side_effect=Exception("timeout"))
        with pytest.raises(Exception, match="timeout"):
            await client.post("http://example.com")
        await client.aclose()

    async def test_timeout_applied(self):
        client = HttpClient(timeout=2.5)
        assert client.timeout == 2.5
        assert client._client.timeout.read == 2.5
        await client.aclose()


# ── TwilioSmsProvider ─────────────────────────────────────────────────────────


class TestTwilioSmsProvider:
    def _make(self, configured=True):
        settings = SmsSettings(
            twilio_account_sid="AC123" if configured else "",
            twilio_auth_token="tok",
            twilio_phone_number="+15550001111",
        )
        http = MagicMock()
        provider = TwilioSmsProvider(settings=settings, http_client=http, app_name="Alpen Store")
        return provider, http

    async def test_send_posts_form_with_basic_auth(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=201))
        result = await provider.send_password_reset_code("+2348012345678", "012345", 10)
        assert result is True

        args, kwargs = http.post.call_args
        assert args[0] == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
        assert kwargs["auth"] == ("AC123", "tok")
        assert kwargs["data"]["To"] == "+2348012345678"
        assert kwargs["data"]["From"] == "+15550001111"
        assert kwargs["data"]["Body"] == (
            "Your Alpen Store password reset code is: 012345. "
            "This code expires in 10 minutes."
        )

    async def test_not_configured_skips_request(self):
        provider, http = self._make(configured=False)
        http.post = AsyncMock()
        assert await provider.send_password_reset_code("+2348012345678", "1", 10) is False
        http.post.assert_not_called()

    async def test_non_2xx_is_failure(self):
        provider, http = self._make()
        http.post = AsyncMock(return_value=MagicMock(status_code=400, text="bad number"))
        assert await provider.send_password_reset_code("+2348012345678", "1", 10) is False

    @pytest.mark.parametrize(
        "exc",
        [httpx.ConnectTimeout("slow"), httpx.ConnectError("refused")],
        ids=["timeout", "connect_error"],
    )
    async def test_transport_errors_are_failure(self, exc):
        provider, http = self._make()
        http.post = AsyncMock(side_effect=exc)
        assert await provider.send_password_reset_code("+2348012345678", "1", 10) is False


# ── AuthAdminCredentialStore ──────────────────────────────────────────────────


class TestAuthAdminCredentialStore:
    def _make(self, url="https://auth.example.com/", key="service-key"):
        settings = CredentialStoreSettings(auth_admin_url=url, auth_service_role_key=key)
        http = MagicMock()
        return AuthAdminCredentialStore(settings, http), http

    async def test_set_password_puts_to_admin_endpoint(self):
        store, http = self._make()
        http.put = AsyncMock(return_value=MagicMock(status_code=200))
        assert await store.set_password("user-123", "NewPass1!") is True

        args, kwargs = http.put.call_args
        assert args[0] == "https://auth.example.com/admin/users/user-123"
        assert kwargs["json"] == {"password": "NewPass1!"}
        assert kwargs["headers"]["apikey"] == "service-key"
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"

    async def test_not_configured(self):
        store, http = self._make(key="")
        http.put = AsyncMock()
        assert await store.set_password("user-123", "NewPass1!") is False
        http.put.assert_not_called()

    async def test_rejected_update(self):
        store, http = self._make()
        http.put = AsyncMock(return_value=MagicMock(status_code=422, text="nope"))
        assert await store.set_password("user-123", "NewPass1!") is False

    async def test_timeout(self):
        store, http = self._make()
        http.put = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        assert await store.set_password("user-123", "NewPass1!") is False


# ── create_redis_client ───────────────────────────────────────────────────────


class TestCreateRedisClient:
    async def test_none_when_not_configured(self):
        assert await create_redis_client(None) is None

    async def test_connected(self, mocker):
        fake = MagicMock()
        fake.ping = AsyncMock(return_value=True)
        mocker.patch("infrastructure.redis_client.aioredis.from_url", return_value=fake)
        assert await create_redis_client("redis://localhost:6379") is fake

    async def test_unreachable_falls_back(self, mocker):
        fake = MagicMock()
        fake.ping = AsyncMock(side_effect=RedisError("refused"))
        mocker.patch("infrastructure.redis_client.aioredis.from_url", return_value=fake)
        assert await create_redis_client("redis://localhost:6379") is None
