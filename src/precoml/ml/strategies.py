"""Retrieval strategies for the price fallback chain.

Each strategy is one concrete upstream call: an endpoint, an auth mode and
the shape of the response.  The ordered list is built per request; the same
``/items`` endpoint may answer 401/403 depending on whether the listing
belongs to the token's owner, so authenticated and public variants of the
same lookup are all tried in turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..config import settings
from .identifiers import Identifier

ITEM_ATTRIBUTES = ",".join((
    "id", "price", "base_price", "original_price", "prices", "variations",
    "currency_id", "status", "available_quantity", "sold_quantity", "permalink",
))


class AuthMode(str, Enum):
    NONE = "none"
    BEARER = "bearer"      # Authorization: Bearer <token>
    QUERY = "query"        # ?access_token=<token>


class Shape(str, Enum):
    SINGLE = "single"      # item body
    BULK = "bulk"          # [{"code": 200, "body": {...}}]
    SEARCH = "search"      # {"results": [...]} matched against the target id
    PRODUCT = "product"    # catalog product with buy_box_winner
    OFFERS = "offers"      # {"results": [...]} for a catalog product, cheapest wins
    HTML = "html"          # rendered listing page


class Source(str, Enum):
    ITEM = "item"
    BUY_BOX = "buy_box"
    SEARCH = "search"
    SCRAPE = "scrape"


@dataclass(frozen=True)
class RetrievalStrategy:
    name: str
    source: Source
    path: str
    auth: AuthMode = AuthMode.NONE
    shape: Shape = Shape.SINGLE
    params: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def needs_token(self) -> bool:
        return self.auth is not AuthMode.NONE

    def build_path(self, identifier: Identifier) -> str:
        return self.path.format(id=identifier.value, site=settings.ml_site_id)

    def build_params(self, identifier: Identifier, token: str | None) -> dict[str, str]:
        params = {k: v.format(id=identifier.value) for k, v in self.params.items()}
        if self.auth is AuthMode.QUERY and token:
            params["access_token"] = token
        return params

    def bearer(self, token: str | None) -> str | None:
        return token if self.auth is AuthMode.BEARER else None


def _item(auth: AuthMode) -> RetrievalStrategy:
    return RetrievalStrategy(
        f"item_{'public' if auth is AuthMode.NONE else auth.value}",
        Source.ITEM,
        "/items/{id}",
        auth=auth,
        params={"attributes": ITEM_ATTRIBUTES},
    )


def _bulk(auth: AuthMode) -> RetrievalStrategy:
    return RetrievalStrategy(
        f"bulk_{'public' if auth is AuthMode.NONE else auth.value}",
        Source.ITEM,
        "/items",
        auth=auth,
        shape=Shape.BULK,
        params={"ids": "{id}", "attributes": ITEM_ATTRIBUTES},
    )


def _search(auth: AuthMode) -> RetrievalStrategy:
    return RetrievalStrategy(
        f"search_{'public' if auth is AuthMode.NONE else auth.value}",
        Source.SEARCH,
        "/sites/{site}/search",
        auth=auth,
        shape=Shape.SEARCH,
        params={"q": "{id}"},
    )


SCRAPE = RetrievalStrategy("scrape_html", Source.SCRAPE, "", shape=Shape.HTML)

BUY_BOX = RetrievalStrategy(
    "buy_box_bearer", Source.BUY_BOX, "/products/{id}",
    auth=AuthMode.BEARER, shape=Shape.PRODUCT,
)

CATALOG_OFFERS = RetrievalStrategy(
    "catalog_offers_public", Source.SEARCH, "/sites/{site}/search",
    shape=Shape.OFFERS,
    params={"product_id": "{id}", "sort": "price_asc", "limit": "50"},
)


def item_strategies(has_token: bool, enable_scrape: bool) -> list[RetrievalStrategy]:
    """Ordered chain for a listing id: authenticated lookups first, scrape last."""
    chain: list[RetrievalStrategy] = []
    if has_token:
        chain += [_item(AuthMode.BEARER), _bulk(AuthMode.BEARER)]
        chain += [_item(AuthMode.QUERY), _bulk(AuthMode.QUERY)]
    chain += [_item(AuthMode.NONE), _bulk(AuthMode.NONE)]
    chain.append(_search(AuthMode.NONE))
    if has_token:
        chain += [_search(AuthMode.BEARER), _search(AuthMode.QUERY)]
    if enable_scrape:
        chain.append(SCRAPE)
    return chain


def catalog_strategies() -> list[RetrievalStrategy]:
    """Buy-box lookup, then the public catalog offers search."""
    return [BUY_BOX, CATALOG_OFFERS]
