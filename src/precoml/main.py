"""FastAPI application with a lifespan-managed Mercado Livre client."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import api_router
from .config import settings
from .ml.client import MercadoLivreClient
from .ml.resolver import PriceResolver
from .ml.token import TokenProvider

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Shared state accessible by API endpoints
app_state: dict = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    client = MercadoLivreClient()
    app_state["ml_client"] = client
    app_state["resolver"] = PriceResolver(client, TokenProvider(client))

    if settings.oauth_enabled:
        logger.info("Mercado Livre OAuth configured; authenticated strategies enabled")
    else:
        logger.info("Mercado Livre OAuth not configured; public strategies only")
    if settings.render_enabled:
        logger.info("Render service configured (scrape default=%s)", settings.scrape_enabled)
    else:
        logger.info("Render service not configured; scrape fallback disabled")

    logger.info("precoml started")

    yield

    # Shutdown
    await client.close()
    app_state.clear()
    logger.info("precoml stopped")


app = FastAPI(
    title="precoml",
    description="Mercado Livre price lookup and import cost estimation",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)
