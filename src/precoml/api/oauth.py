"""OAuth helper endpoints: authorization redirect, code callback, token check."""

from __future__ import annotations

import html
import logging

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from ..config import settings
from ..ml import TokenError
from ..ml.client import MercadoLivreClient
from ..ml.token import authorization_url, exchange_code, get_access_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ml", tags=["oauth"])


def _get_client() -> MercadoLivreClient:
    from ..main import app_state
    return app_state["ml_client"]


@router.get("/login")
async def login():
    return RedirectResponse(authorization_url(), status_code=302)


@router.get("/callback", response_class=HTMLResponse)
async def callback(code: str = ""):
    """Exchange the authorization code and show the refresh token to store in ML_REFRESH_TOKEN."""
    if not code:
        return HTMLResponse("Sem 'code'", status_code=400)
    try:
        data = await exchange_code(_get_client(), code)
    except TokenError as e:
        logger.warning("Authorization code exchange failed: %s", e)
        return HTMLResponse(
            f"<h1>Erro trocando code por token</h1><pre>{html.escape(str(e))}</pre>",
            status_code=500,
        )
    refresh = html.escape(str(data.get("refresh_token", "")))
    return HTMLResponse(
        "<h1>Tokens obtidos com sucesso</h1>"
        "<p><b>refresh_token:</b></p>"
        f'<pre style="white-space:pre-wrap">{refresh}</pre>'
        "<p>Salve esse valor em <code>ML_REFRESH_TOKEN</code> e reinicie o serviço.</p>"
    )


@router.get("/test-token")
async def test_token():
    have = _env_flags()
    try:
        token = await get_access_token(_get_client())
    except TokenError as e:
        return {"ok": False, "have": have, "error": str(e)}
    return {"ok": True, "have": have, "tokenSample": token[:12] + "..."}


@router.get("/env")
async def env():
    return {"ok": True, "env": _env_flags()}


def _env_flags() -> dict[str, bool]:
    return {
        "ML_APP_ID": bool(settings.ml_app_id),
        "ML_APP_SECRET": bool(settings.ml_app_secret),
        "ML_REDIRECT_URI": bool(settings.ml_redirect_uri),
        "ML_REFRESH_TOKEN": bool(settings.ml_refresh_token),
        "RENDER_SERVICE_URL": bool(settings.render_service_url),
    }
