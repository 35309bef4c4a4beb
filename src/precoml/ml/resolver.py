"""Price resolution: run the strategy chain and return one structured result."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Union

from ..config import settings
from .client import MercadoLivreClient, UpstreamResponse
from .extractor import extract_json_price, extract_price, positive_amount
from .identifiers import Identifier, permalink_variants
from .strategies import (
    BUY_BOX,
    CATALOG_OFFERS,
    RetrievalStrategy,
    Shape,
    Source,
    catalog_strategies,
    item_strategies,
)

logger = logging.getLogger(__name__)

TokenSource = Callable[[], Awaitable[Union[str, None]]]

NOTE_MAX_CHARS = 200


# --- Results ---

@dataclass
class PriceSuccess:
    price: float
    source: str
    product_id: str
    item_id: str | None
    strategy: str
    sold_winner: int | None = None
    sold_catalog_total: int | None = None
    ok: bool = field(default=True, init=False)


@dataclass
class PriceFailure:
    error_code: str
    message: str
    http_status: int
    details: dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=False, init=False)


PriceResult = Union[PriceSuccess, PriceFailure]


# --- Trace ---

@dataclass
class TraceEntry:
    strategy: str
    url: str
    status: int
    ok: bool
    note: str = ""


@dataclass
class Trace:
    """Per-request record of attempted strategies.

    Also carries the last listing permalink seen in any upstream payload so
    the scrape strategy can fetch the real page.
    """

    planned: list[str] = field(default_factory=list)
    entries: list[TraceEntry] = field(default_factory=list)
    permalink: str | None = None
    token_ok: bool = False
    token_error: str | None = None

    def add(self, strategy: str, resp: UpstreamResponse, ok: bool, note: str = "") -> None:
        note = note or resp.error
        self.entries.append(TraceEntry(
            strategy=strategy,
            url=resp.url,
            status=resp.status,
            ok=ok,
            note=note[:NOTE_MAX_CHARS],
        ))

    @property
    def attempted(self) -> list[str]:
        return [e.strategy for e in self.entries]

    def as_dict(self) -> dict[str, Any]:
        return {
            "token_ok": self.token_ok,
            "token_error": self.token_error,
            "strategies": self.planned,
            "permalink": self.permalink,
            "trace": [asdict(e) for e in self.entries],
        }


@dataclass
class _Attempt:
    resp: UpstreamResponse
    payload: Any = None
    price: float | None = None
    item_id: str | None = None

    @property
    def sold_quantity(self) -> int | None:
        if isinstance(self.payload, dict):
            return _sold_quantity(self.payload)
        return None


def _sold_quantity(body: dict) -> int | None:
    value = body.get("sold_quantity")
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def canonical_listing_url(identifier: Identifier) -> str:
    _, dashed = permalink_variants(identifier)
    return f"https://produto.mercadolivre.com.br/{dashed}"


class PriceResolver:
    """Resolve a price by walking the retrieval strategies in order.

    Nothing raised by an individual attempt escapes; every outcome ends up
    in the returned ``PriceResult`` and, when given, the ``Trace``.
    """

    def __init__(
        self,
        client: MercadoLivreClient,
        token_provider: TokenSource | None = None,
        scrape_by_default: bool | None = None,
    ) -> None:
        self._client = client
        self._token_provider = token_provider
        self._scrape_by_default = settings.scrape_enabled if scrape_by_default is None else scrape_by_default

    async def resolve(
        self,
        identifier: Identifier,
        enable_scrape: bool | None = None,
        trace: Trace | None = None,
    ) -> PriceResult:
        trace = trace if trace is not None else Trace()
        if not identifier.is_valid:
            return PriceFailure("INVALID_ID_FORMAT", f"Use {settings.ml_site_id} + números", 400)

        token = await self._token(trace)
        if identifier.is_catalog:
            return await self._resolve_catalog(identifier, token, trace)

        scrape = self._scrape_by_default if enable_scrape is None else enable_scrape
        return await self._resolve_item(identifier, token, scrape and settings.render_enabled, trace)

    async def _token(self, trace: Trace) -> str | None:
        if self._token_provider is None:
            trace.token_error = "token provider not configured"
            return None
        try:
            token = await self._token_provider()
        except Exception as e:
            logger.warning("Access token unavailable: %s", e)
            trace.token_error = str(e)
            return None
        trace.token_ok = bool(token)
        if not token and trace.token_error is None:
            trace.token_error = "not configured"
        return token or None

    # --- Listing ids ---

    async def _resolve_item(
        self, identifier: Identifier, token: str | None, enable_scrape: bool, trace: Trace,
    ) -> PriceResult:
        chain = item_strategies(token is not None, enable_scrape)
        trace.planned = [s.name for s in chain]

        for strategy in chain:
            attempt = await self._attempt(strategy, identifier, token, trace)
            if attempt is None or not attempt.price:
                continue
            logger.info("Price for %s resolved by %s: %.2f", identifier.value, strategy.name, attempt.price)
            return PriceSuccess(
                price=attempt.price,
                source=strategy.source.value,
                product_id=identifier.value,
                item_id=attempt.item_id or identifier.value,
                strategy=strategy.name,
                sold_winner=attempt.sold_quantity,
            )

        logger.warning("All %d strategies exhausted for %s", len(chain), identifier.value)
        return PriceFailure(
            "UPSTREAM_ERROR",
            "all strategies exhausted",
            502,
            details={"phase": "item", "attempts": trace.attempted},
        )

    async def _attempt(
        self,
        strategy: RetrievalStrategy,
        identifier: Identifier,
        token: str | None,
        trace: Trace,
    ) -> _Attempt | None:
        try:
            attempt = await self._fetch(strategy, identifier, token, trace)
        except Exception as e:
            logger.warning("Strategy %s failed for %s: %s", strategy.name, identifier.value, e)
            trace.add(strategy.name, UpstreamResponse(url=strategy.name), False, f"{type(e).__name__}: {e}")
            return None

        resp = attempt.resp
        if not resp.ok:
            logger.debug("Strategy %s skipped (HTTP %s)", strategy.name, resp.status)
            trace.add(strategy.name, resp, False)
            return attempt

        if isinstance(attempt.payload, dict) and attempt.payload.get("permalink"):
            trace.permalink = str(attempt.payload["permalink"])

        if attempt.payload is not None and attempt.price is None:
            attempt.price = extract_price(attempt.payload)
        if attempt.price:
            trace.add(strategy.name, resp, True, f"price={attempt.price}")
        else:
            trace.add(strategy.name, resp, False, resp.error or "no usable price")
        return attempt

    async def _fetch(
        self,
        strategy: RetrievalStrategy,
        identifier: Identifier,
        token: str | None,
        trace: Trace,
    ) -> _Attempt:
        if strategy.shape is Shape.HTML:
            page_url = trace.permalink or canonical_listing_url(identifier)
            resp = await self._client.fetch_rendered(page_url)
            return _Attempt(resp, payload=resp.text if resp.ok and resp.text else None)

        resp = await self._client.get_json(
            self._client.url(strategy.build_path(identifier)),
            params=strategy.build_params(identifier, token),
            token=strategy.bearer(token),
        )
        attempt = _Attempt(resp)
        if not resp.ok:
            return attempt

        data = resp.data
        if strategy.shape is Shape.SINGLE:
            attempt.payload = data if isinstance(data, dict) else None
        elif strategy.shape is Shape.BULK:
            attempt.payload = unwrap_bulk(data)
            if attempt.payload is None:
                resp.error = "bulk envelope without a 200 body"
        elif strategy.shape is Shape.SEARCH:
            match = match_search_result(data, identifier)
            if match is None:
                resp.error = "target not among search results"
            else:
                attempt.payload = match
                attempt.item_id = str(match.get("id") or identifier.value)
        return attempt

    # --- Catalog ids ---

    async def _resolve_catalog(self, identifier: Identifier, token: str | None, trace: Trace) -> PriceResult:
        if token is None:
            return PriceFailure(
                "AUTH_REQUIRED",
                "Catalog lookup requires an access token",
                401,
                details={"phase": "buy_box", "token_error": trace.token_error},
            )

        trace.planned = [s.name for s in catalog_strategies()]
        resp = await self._safe_get(BUY_BOX, identifier, token)
        denied = resp.status in (401, 403)
        winner = resp.data.get("buy_box_winner") if resp.ok and isinstance(resp.data, dict) else None
        price = extract_json_price(winner) if isinstance(winner, dict) else None

        if price:
            trace.add(BUY_BOX.name, resp, True, f"price={price}")
            item_id = str(winner["item_id"]) if winner.get("item_id") else None
            sold = await self._winner_sold_quantity(item_id, token) if item_id else None
            return PriceSuccess(
                price=price,
                source=Source.BUY_BOX.value,
                product_id=identifier.value,
                item_id=item_id,
                strategy=BUY_BOX.name,
                sold_winner=sold,
            )
        trace.add(BUY_BOX.name, resp, False, resp.error or "no buy box winner")

        offers = await self._safe_get(CATALOG_OFFERS, identifier, token)
        best, total_sold = cheapest_offer(offers.data) if offers.ok else (None, None)
        if best is not None:
            trace.add(CATALOG_OFFERS.name, offers, True, f"price={best['price']}")
            return PriceSuccess(
                price=float(best["price"]),
                source=Source.SEARCH.value,
                product_id=identifier.value,
                item_id=str(best.get("id") or "") or None,
                strategy=CATALOG_OFFERS.name,
                sold_catalog_total=total_sold,
            )
        trace.add(CATALOG_OFFERS.name, offers, False, offers.error or "no active offers")

        details = {"phase": "catalog", "attempts": trace.attempted}
        if denied:
            return PriceFailure("FORBIDDEN", "Token lacks permission for this catalog product", resp.status, details)
        if resp.ok and offers.ok:
            return PriceFailure("NO_PRICE", "Catalog found, but no active offers", 404, details)
        return PriceFailure("UPSTREAM_ERROR", "all strategies exhausted", 502, details)

    async def _safe_get(
        self, strategy: RetrievalStrategy, identifier: Identifier, token: str | None,
    ) -> UpstreamResponse:
        url = self._client.url(strategy.build_path(identifier))
        try:
            return await self._client.get_json(
                url,
                params=strategy.build_params(identifier, token),
                token=strategy.bearer(token),
            )
        except Exception as e:
            logger.warning("Strategy %s failed for %s: %s", strategy.name, identifier.value, e)
            return UpstreamResponse(url=url, error=f"{type(e).__name__}: {e}")

    async def _winner_sold_quantity(self, item_id: str, token: str) -> int | None:
        """Best effort: sold quantity of the buy-box winner listing."""
        try:
            resp = await self._client.get_json(self._client.url(f"/items/{item_id}"), token=token)
        except Exception as e:
            logger.debug("Sold quantity lookup failed for %s: %s", item_id, e)
            return None
        if resp.ok and isinstance(resp.data, dict):
            return _sold_quantity(resp.data)
        return None


# --- Response normalization ---

def unwrap_bulk(data: Any) -> dict | None:
    """``[{"code": 200, "body": {...}}]`` -> ``{...}``; anything else -> None."""
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if isinstance(first, dict) and first.get("code") == 200 and isinstance(first.get("body"), dict):
        return first["body"]
    return None


def match_search_result(data: Any, identifier: Identifier) -> dict | None:
    """Find the search result that is the target listing (by id or permalink)."""
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        return None
    plain, dashed = permalink_variants(identifier)
    for result in results:
        if not isinstance(result, dict):
            continue
        if str(result.get("id", "")).upper() == plain:
            return result
        permalink = str(result.get("permalink") or "").upper()
        if plain in permalink or dashed in permalink:
            return result
    return None


def cheapest_offer(data: Any) -> tuple[dict | None, int | None]:
    """Cheapest active offer of a catalog search, and the offers' summed sold quantity."""
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        return None, None
    active = [
        r for r in results
        if isinstance(r, dict)
        and r.get("status") in (None, "active")
        and isinstance(r.get("price"), (int, float))
        and positive_amount(r["price"])
    ]
    if not active:
        return None, None
    best = min(active, key=lambda r: r["price"])
    total = sum(_sold_quantity(r) or 0 for r in active)
    return best, total
