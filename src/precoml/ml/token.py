"""OAuth token handling for the Mercado Livre API.

Access tokens last ~6h and are minted from a long-lived refresh token kept in
the environment (``ML_REFRESH_TOKEN``).  The refresh token itself comes from
the one-off authorization-code flow behind ``/api/ml/login``.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from ..config import settings
from . import TokenError
from .client import MercadoLivreClient

logger = logging.getLogger(__name__)


def authorization_url() -> str:
    query = urlencode({
        "response_type": "code",
        "client_id": settings.ml_app_id,
        "redirect_uri": settings.ml_redirect_uri,
    })
    return f"{settings.ml_auth_base.rstrip('/')}/authorization?{query}"


async def _token_request(client: MercadoLivreClient, form: dict[str, str]) -> dict:
    resp = await client.post_form(client.url("/oauth/token"), form)
    if not resp.ok:
        detail = resp.error or resp.text[:200]
        raise TokenError(f"Token exchange failed: {resp.status} {detail}", resp.status or None)
    if not isinstance(resp.data, dict) or not resp.data.get("access_token"):
        raise TokenError("Token response has no access_token", resp.status)
    return resp.data


async def get_access_token(client: MercadoLivreClient) -> str:
    """Mint an access token with the ``refresh_token`` grant.

    Raises:
        TokenError: credentials missing from the environment or exchange failed.
    """
    if not settings.oauth_enabled:
        raise TokenError("Missing ML_APP_ID / ML_APP_SECRET / ML_REFRESH_TOKEN envs")
    data = await _token_request(client, {
        "grant_type": "refresh_token",
        "client_id": settings.ml_app_id,
        "client_secret": settings.ml_app_secret,
        "refresh_token": settings.ml_refresh_token,
    })
    return data["access_token"]


async def exchange_code(client: MercadoLivreClient, code: str) -> dict:
    """Trade an authorization code for ``access_token`` + ``refresh_token``."""
    return await _token_request(client, {
        "grant_type": "authorization_code",
        "client_id": settings.ml_app_id,
        "client_secret": settings.ml_app_secret,
        "code": code,
        "redirect_uri": settings.ml_redirect_uri,
    })


class TokenProvider:
    """Async callable returning the current access token.

    Returns None when OAuth is not configured.  A configured but failing
    exchange raises ``TokenError``; callers decide whether that is fatal.
    """

    def __init__(self, client: MercadoLivreClient) -> None:
        self._client = client

    async def __call__(self) -> str | None:
        if not settings.oauth_enabled:
            logger.debug("OAuth not configured; continuing without token")
            return None
        return await get_access_token(self._client)
