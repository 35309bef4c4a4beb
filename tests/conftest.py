"""Test fixtures: fake Mercado Livre upstream and sample HTML loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio

from precoml.ml.client import MercadoLivreClient
from precoml.ml.resolver import PriceResolver

SAMPLES_DIR = Path(__file__).resolve().parent.parent / "samples"
API_BASE = "https://api.ml.test"


def auth_of(request: httpx.Request) -> str:
    if request.headers.get("Authorization", "").startswith("Bearer "):
        return "bearer"
    if "access_token" in request.url.params:
        return "query"
    return "public"


@dataclass
class _Route:
    path: str
    auth: str | None
    params: dict[str, str]
    status: int
    json: Any = None
    text: str | None = None
    exc: Exception | None = None


@dataclass
class FakeUpstream:
    """Route table for ``httpx.MockTransport``; unmatched requests get a 404."""

    routes: list[_Route] = field(default_factory=list)
    calls: list[httpx.Request] = field(default_factory=list)

    def on(
        self,
        path: str,
        *,
        auth: str | None = None,
        status: int = 200,
        json: Any = None,
        text: str | None = None,
        exc: Exception | None = None,
        **params: str,
    ) -> "FakeUpstream":
        self.routes.append(_Route(path, auth, params, status, json, text, exc))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for route in self.routes:
            if route.path != request.url.path:
                continue
            if route.auth is not None and route.auth != auth_of(request):
                continue
            if any(request.url.params.get(k) != v for k, v in route.params.items()):
                continue
            if route.exc is not None:
                raise route.exc
            if route.text is not None:
                return httpx.Response(route.status, text=route.text, headers={"content-type": "text/html"})
            return httpx.Response(route.status, json=route.json if route.json is not None else {})
        return httpx.Response(404, json={"message": "not_found", "status": 404})

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.calls]


@pytest.fixture()
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture()
async def ml_client(upstream):
    client = MercadoLivreClient(base_url=API_BASE, transport=httpx.MockTransport(upstream.handler))
    yield client
    await client.close()


async def fixed_token() -> str:
    return "APP_USR-test-token"


async def no_token() -> None:
    return None


@pytest.fixture()
def resolver(ml_client) -> PriceResolver:
    """Resolver with a token available and scraping off."""
    return PriceResolver(ml_client, fixed_token, scrape_by_default=False)


@pytest.fixture()
def public_resolver(ml_client) -> PriceResolver:
    """Resolver without a token."""
    return PriceResolver(ml_client, no_token, scrape_by_default=False)


@pytest.fixture()
def render_configured(monkeypatch):
    from precoml.config import settings

    monkeypatch.setattr(settings, "render_service_url", "https://render.test")
    monkeypatch.setattr(settings, "render_service_token", "render-secret")


@pytest.fixture()
def ldjson_html() -> str:
    return (SAMPLES_DIR / "ml_listing_ldjson.html").read_text(encoding="utf-8")


@pytest.fixture()
def state_html() -> str:
    return (SAMPLES_DIR / "ml_listing_state.html").read_text(encoding="utf-8")


@pytest.fixture()
def markers_html() -> str:
    return (SAMPLES_DIR / "ml_listing_markers.html").read_text(encoding="utf-8")
