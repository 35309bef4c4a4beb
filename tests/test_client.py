"""Tests for the Mercado Livre HTTP client."""

import httpx
import pytest

from precoml.ml.client import UpstreamResponse, redact


class TestRedact:
    def test_hides_access_token(self):
        url = redact("https://api.ml.test/items?ids=MLB1&access_token=APP_USR-secret")
        assert "APP_USR-secret" not in url
        assert "ids=MLB1" in url

    def test_untouched_without_token(self):
        assert redact("https://api.ml.test/items/MLB1") == "https://api.ml.test/items/MLB1"


class TestGetJson:
    @pytest.mark.asyncio
    async def test_json_body(self, ml_client, upstream):
        upstream.on("/items/MLB3520318133", json={"price": 10})
        resp = await ml_client.get_json(ml_client.url("/items/MLB3520318133"))
        assert resp.ok
        assert resp.status == 200
        assert resp.data == {"price": 10}

    @pytest.mark.asyncio
    async def test_bearer_header(self, ml_client, upstream):
        await ml_client.get_json(ml_client.url("/items/X"), token="T0K")
        assert upstream.calls[0].headers["Authorization"] == "Bearer T0K"
        assert upstream.calls[0].headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self, ml_client, upstream):
        upstream.on("/items/X", status=403, json={"message": "forbidden"})
        resp = await ml_client.get_json(ml_client.url("/items/X"))
        assert not resp.ok
        assert resp.status == 403
        assert resp.data == {"message": "forbidden"}

    @pytest.mark.asyncio
    async def test_non_json(self, ml_client, upstream):
        upstream.on("/items/X", text="<html></html>")
        resp = await ml_client.get_json(ml_client.url("/items/X"))
        assert resp.status == 200
        assert resp.data is None
        assert resp.error == "response is not JSON"

    @pytest.mark.asyncio
    async def test_timeout_becomes_status_zero(self, ml_client, upstream):
        upstream.on("/items/X", exc=httpx.ReadTimeout("read timed out"))
        resp = await ml_client.get_json(ml_client.url("/items/X"))
        assert resp.status == 0
        assert not resp.ok
        assert "ReadTimeout" in resp.error


class TestFetchRendered:
    @pytest.mark.asyncio
    async def test_disabled_without_config(self, ml_client, upstream):
        resp = await ml_client.fetch_rendered("https://produto.mercadolivre.com.br/MLB-1")
        assert not resp.ok
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_posts_page_url(self, ml_client, upstream, render_configured):
        upstream.on("/content", text="<html>ok</html>")
        resp = await ml_client.fetch_rendered("https://produto.mercadolivre.com.br/MLB-1")
        assert resp.ok
        assert resp.text == "<html>ok</html>"
        assert upstream.calls[0].method == "POST"


def test_upstream_response_ok_range():
    assert UpstreamResponse(url="u", status=204).ok
    assert not UpstreamResponse(url="u", status=301).ok
    assert not UpstreamResponse(url="u").ok
