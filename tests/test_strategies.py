"""Tests for strategy chain construction."""

from precoml.ml.identifiers import classify
from precoml.ml.strategies import (
    BUY_BOX,
    CATALOG_OFFERS,
    AuthMode,
    Shape,
    catalog_strategies,
    item_strategies,
)


def _names(chain):
    return [s.name for s in chain]


class TestItemStrategies:
    def test_with_token_auth_first(self):
        assert _names(item_strategies(has_token=True, enable_scrape=False)) == [
            "item_bearer", "bulk_bearer",
            "item_query", "bulk_query",
            "item_public", "bulk_public",
            "search_public", "search_bearer", "search_query",
        ]

    def test_without_token_public_only(self):
        assert _names(item_strategies(has_token=False, enable_scrape=False)) == [
            "item_public", "bulk_public", "search_public",
        ]

    def test_scrape_is_last(self):
        chain = item_strategies(has_token=False, enable_scrape=True)
        assert chain[-1].name == "scrape_html"
        assert chain[-1].shape is Shape.HTML

    def test_no_authenticated_strategy_without_token(self):
        assert not any(s.needs_token for s in item_strategies(False, True))


class TestStrategyRequests:
    def setup_method(self):
        self.wid = classify("MLB3520318133")

    def test_query_auth_puts_token_in_params(self):
        strategy = next(s for s in item_strategies(True, False) if s.name == "bulk_query")
        params = strategy.build_params(self.wid, "TOKEN")
        assert params["access_token"] == "TOKEN"
        assert params["ids"] == "MLB3520318133"
        assert strategy.bearer("TOKEN") is None

    def test_bearer_auth_keeps_params_clean(self):
        strategy = item_strategies(True, False)[0]
        assert strategy.auth is AuthMode.BEARER
        assert "access_token" not in strategy.build_params(self.wid, "TOKEN")
        assert strategy.bearer("TOKEN") == "TOKEN"
        assert strategy.build_path(self.wid) == "/items/MLB3520318133"
        assert "price" in strategy.build_params(self.wid, "TOKEN")["attributes"]

    def test_search_query(self):
        strategy = next(s for s in item_strategies(False, False) if s.name == "search_public")
        assert strategy.build_path(self.wid) == "/sites/MLB/search"
        assert strategy.build_params(self.wid, None) == {"q": "MLB3520318133"}


def test_catalog_strategies():
    catalog = classify("MLB35854070")
    assert catalog_strategies() == [BUY_BOX, CATALOG_OFFERS]
    assert BUY_BOX.build_path(catalog) == "/products/MLB35854070"
    assert CATALOG_OFFERS.build_params(catalog, "TOKEN")["product_id"] == "MLB35854070"
