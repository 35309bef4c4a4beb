"""Async HTTP client for the Mercado Livre API and the page-rendering service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

_JSON_HEADERS = {
    "Accept": "application/json",
    "User-Agent": settings.ml_user_agent,
}


@dataclass
class UpstreamResponse:
    """Outcome of one outbound call.  ``status`` is 0 when no response arrived."""

    url: str
    status: int = 0
    data: Any = None
    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def redact(url: str) -> str:
    """Hide ``access_token``/``token`` query values before logging or tracing."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return url
    params = parsed.params
    hidden = [k for k in ("access_token", "token") if k in params]
    if not hidden:
        return url
    for key in hidden:
        params = params.set(key, "***")
    return str(parsed.copy_with(params=params))


class MercadoLivreClient:
    """Thin async wrapper that turns every failure into an ``UpstreamResponse``."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ml_api_base).rstrip("/")
        self._client = httpx.AsyncClient(
            headers=_JSON_HEADERS,
            timeout=timeout or settings.ml_request_timeout,
            follow_redirects=True,
            transport=transport,
        )

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(
        self,
        url: str,
        params: dict[str, str] | None = None,
        token: str | None = None,
    ) -> UpstreamResponse:
        """GET a JSON resource.  A bearer *token* goes into the Authorization header."""
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            resp = await self._client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Request error for %s: %s", redact(url), e)
            return UpstreamResponse(url=redact(url), error=f"{type(e).__name__}: {e}")

        result = UpstreamResponse(url=redact(str(resp.request.url)), status=resp.status_code)
        if "application/json" not in resp.headers.get("content-type", ""):
            result.text = resp.text[:500]
            result.error = "response is not JSON"
            return result
        try:
            result.data = resp.json()
        except ValueError as e:
            result.error = f"invalid JSON: {e}"
        if not result.ok:
            logger.debug("HTTP %s for %s", resp.status_code, result.url)
        return result

    async def post_form(self, url: str, data: dict[str, str]) -> UpstreamResponse:
        try:
            resp = await self._client.post(url, data=data)
        except httpx.HTTPError as e:
            logger.warning("Request error for %s: %s", url, e)
            return UpstreamResponse(url=url, error=f"{type(e).__name__}: {e}")
        result = UpstreamResponse(url=url, status=resp.status_code, text=resp.text)
        try:
            result.data = resp.json()
        except ValueError:
            pass
        return result

    async def fetch_rendered(self, page_url: str) -> UpstreamResponse:
        """Fetch a listing page through the rendering service.

        The service takes ``POST {render_service_url}/content?token=...`` with a
        JSON body ``{"url": ...}`` and answers with the rendered HTML.
        """
        if not settings.render_enabled:
            return UpstreamResponse(url=page_url, error="render service not configured")

        endpoint = f"{settings.render_service_url.rstrip('/')}/content"
        params = {"token": settings.render_service_token} if settings.render_service_token else None
        try:
            resp = await self._client.post(
                endpoint,
                params=params,
                json={"url": page_url},
                headers={"Accept": "text/html"},
                timeout=settings.scrape_timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Render service error for %s: %s", page_url, e)
            return UpstreamResponse(url=page_url, error=f"{type(e).__name__}: {e}")
        return UpstreamResponse(url=page_url, status=resp.status_code, text=resp.text)

    async def close(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()
