"""Tests for OAuth token helpers."""

from urllib.parse import parse_qs

import pytest

from precoml.config import settings
from precoml.ml import TokenError
from precoml.ml.token import TokenProvider, authorization_url, exchange_code, get_access_token


@pytest.fixture()
def oauth_env(monkeypatch):
    monkeypatch.setattr(settings, "ml_app_id", "123")
    monkeypatch.setattr(settings, "ml_app_secret", "shh")
    monkeypatch.setattr(settings, "ml_refresh_token", "TG-refresh")
    monkeypatch.setattr(settings, "ml_redirect_uri", "https://app.test/api/ml/callback")


class TestGetAccessToken:
    @pytest.mark.asyncio
    async def test_refresh_grant(self, ml_client, upstream, oauth_env):
        upstream.on("/oauth/token", json={"access_token": "APP_USR-new", "expires_in": 21600})

        token = await get_access_token(ml_client)

        assert token == "APP_USR-new"
        form = parse_qs(upstream.calls[0].content.decode())
        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["TG-refresh"]
        assert form["client_id"] == ["123"]

    @pytest.mark.asyncio
    async def test_missing_env(self, ml_client, upstream, monkeypatch):
        monkeypatch.setattr(settings, "ml_refresh_token", "")
        with pytest.raises(TokenError, match="Missing"):
            await get_access_token(ml_client)
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_exchange_rejected(self, ml_client, upstream, oauth_env):
        upstream.on("/oauth/token", status=400, json={"error": "invalid_grant"})
        with pytest.raises(TokenError, match="400"):
            await get_access_token(ml_client)


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_authorization_code_grant(self, ml_client, upstream, oauth_env):
        upstream.on("/oauth/token", json={"access_token": "A", "refresh_token": "TG-new"})

        data = await exchange_code(ml_client, "TG-code")

        assert data["refresh_token"] == "TG-new"
        form = parse_qs(upstream.calls[0].content.decode())
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["TG-code"]
        assert form["redirect_uri"] == ["https://app.test/api/ml/callback"]


class TestTokenProvider:
    @pytest.mark.asyncio
    async def test_none_when_not_configured(self, ml_client, upstream, monkeypatch):
        monkeypatch.setattr(settings, "ml_app_id", "")
        assert await TokenProvider(ml_client)() is None
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_raises_when_exchange_fails(self, ml_client, upstream, oauth_env):
        upstream.on("/oauth/token", status=401, json={})
        with pytest.raises(TokenError):
            await TokenProvider(ml_client)()


def test_authorization_url(oauth_env):
    url = authorization_url()
    assert url.startswith("https://auth.mercadolivre.com.br/authorization?")
    assert "client_id=123" in url
    assert "redirect_uri=https%3A%2F%2Fapp.test%2Fapi%2Fml%2Fcallback" in url
