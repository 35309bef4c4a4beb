"""Price extraction from Mercado Livre payloads.

JSON payloads (API item bodies) – scalar fields, ``prices`` collection, variations
HTML payloads (listing pages) – JSON-LD, embedded page state, CSS markers, regex scan
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from bs4 import BeautifulSoup, Tag

from ..config import settings

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "BRL"
MAX_WALK_DEPTH = 12

_SCALAR_PRICE_FIELDS = ("price", "base_price", "original_price")
_ACTIVE_STATUSES = (None, "", "active", "available")

_PRELOADED_STATE_RE = re.compile(
    r"window\.__PRELOADED_STATE__\s*=\s*(\{.*?\})\s*;?\s*</script>", re.DOTALL
)
_BRL_AMOUNT_RE = re.compile(r"R\$\s*(\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:,\d{1,2})?)")
# "12x de R$ 99,90" / "em 10 vezes de R$ ..." precede installment amounts
_INSTALLMENT_PREFIX_RE = re.compile(r"(\d+\s*x|vezes)\s*(de\s*)?$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Number parsing
# ---------------------------------------------------------------------------

def parse_brl(text: str | None) -> float | None:
    """Parse a Brazilian-formatted amount: ``"1.234,56"`` -> ``1234.56``.

    Accepts an optional ``R$`` prefix.  A lone dot followed by exactly three
    digits is a thousands separator; otherwise it is a decimal point.
    """
    if not text:
        return None
    s = text.replace("R$", "").replace("\xa0", "").replace(" ", "").strip()
    if not s:
        return None
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif s.count(".") > 1 or re.fullmatch(r"\d{1,3}\.\d{3}", s):
        s = s.replace(".", "")
    try:
        value = float(s)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _finite(value: float) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def positive_amount(value: Any) -> float | None:
    """Finite amount > 0 from a number or numeric string, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if _finite(value) and value > 0 else None
    if isinstance(value, str):
        try:
            num = float(value)
        except ValueError:
            num = parse_brl(value)
        if num is not None and _finite(num) and num > 0:
            return num
    return None


# ---------------------------------------------------------------------------
# JSON payloads
# ---------------------------------------------------------------------------

def _price_from_fields(body: dict) -> float | None:
    for key in _SCALAR_PRICE_FIELDS:
        price = positive_amount(body.get(key))
        if price:
            return price
    return None


def _price_entries(raw: Any) -> list[dict]:
    # /items/{id}/prices returns {"prices": [...]}; item bodies may inline the list
    if isinstance(raw, dict):
        raw = raw.get("prices")
    if not isinstance(raw, list):
        return []
    return [e for e in raw if isinstance(e, dict)]


def _price_from_prices(raw: Any) -> float | None:
    entries = [
        e for e in _price_entries(raw)
        if e.get("status") in _ACTIVE_STATUSES
        and e.get("currency_id") in (None, DEFAULT_CURRENCY)
        and positive_amount(e.get("amount"))
    ]
    if not entries:
        return None
    entries.sort(key=lambda e: str(e.get("last_updated") or ""), reverse=True)
    return positive_amount(entries[0].get("amount"))


def _price_from_variations(variations: Any) -> float | None:
    if not isinstance(variations, list):
        return None
    found: list[float] = []
    for var in variations:
        if not isinstance(var, dict):
            continue
        price = positive_amount(var.get("price"))
        if price:
            found.append(price)
        for entry in _price_entries(var.get("prices")):
            amount = positive_amount(entry.get("amount"))
            if amount:
                found.append(amount)
    return min(found) if found else None


def extract_json_price(body: dict) -> float | None:
    """Price from an item body: scalar fields, then ``prices``, then variations."""
    return (
        _price_from_fields(body)
        or _price_from_prices(body.get("prices"))
        or _price_from_variations(body.get("variations"))
    )


# ---------------------------------------------------------------------------
# HTML payloads
# ---------------------------------------------------------------------------

def _iter_ld_nodes(data: Any):
    if isinstance(data, list):
        for node in data:
            yield from _iter_ld_nodes(node)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _iter_ld_nodes(data["@graph"])


def _price_from_ld_json(soup: BeautifulSoup) -> float | None:
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except (json.JSONDecodeError, TypeError):
            continue
        for node in _iter_ld_nodes(data):
            offers = node.get("offers")
            for offer in offers if isinstance(offers, list) else [offers]:
                if isinstance(offer, dict):
                    price = positive_amount(offer.get("price"))
                    if price:
                        return price
    return None


def walk_prices(node: Any, path: tuple[str, ...] = (), depth: int = 0) -> list[tuple[tuple[str, ...], float]]:
    """Collect every positive numeric ``price``/``amount`` field with its key path.

    Recursion stops at ``MAX_WALK_DEPTH`` levels.
    """
    if depth > MAX_WALK_DEPTH:
        return []
    found: list[tuple[tuple[str, ...], float]] = []
    if isinstance(node, dict):
        for key, value in node.items():
            key = str(key)
            if key in ("price", "amount") and isinstance(value, (int, float)) and not isinstance(value, bool):
                if _finite(value) and value > 0:
                    found.append((path + (key,), float(value)))
            elif isinstance(value, (dict, list)):
                found.extend(walk_prices(value, path + (key,), depth + 1))
    elif isinstance(node, list):
        for i, value in enumerate(node):
            if isinstance(value, (dict, list)):
                found.extend(walk_prices(value, path + (str(i),), depth + 1))
    return found


def _path_score(path: tuple[str, ...]) -> int:
    parents = " ".join(path[:-1]).lower().replace("_", "")
    if "buybox" in parents:
        return 2
    if "price" in parents:
        return 1
    return 0


def best_walked_price(data: Any) -> float | None:
    """Pick the walked price with the most price-like key path; ties keep document order."""
    found = walk_prices(data)
    if not found:
        return None
    best_path, best_value = found[0]
    best = _path_score(best_path)
    for path, value in found[1:]:
        score = _path_score(path)
        if score > best:
            best, best_value = score, value
    return best_value


def _price_from_page_state(html: str, soup: BeautifulSoup) -> float | None:
    blobs: list[str] = []
    m = _PRELOADED_STATE_RE.search(html)
    if m:
        blobs.append(m.group(1))
    next_data = soup.find("script", id="__NEXT_DATA__")
    if next_data is not None:
        blobs.append(next_data.string or next_data.get_text() or "")

    for blob in blobs:
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.debug("Embedded page state is not valid JSON: %s", e)
            continue
        price = best_walked_price(data)
        if price:
            return price
    return None


def _is_previous_price(el: Tag) -> bool:
    for parent in [el, *el.parents]:
        if parent.name == "s":
            return True
        classes = " ".join(parent.get("class") or [])
        if "previous" in classes or "original-value" in classes:
            return True
    return False


def _amount_from_parts(fraction: str, cents: str | None) -> float | None:
    digits = re.sub(r"\D", "", fraction)
    if not digits:
        return None
    cents_digits = re.sub(r"\D", "", cents or "")[:2]
    value = float(f"{digits}.{cents_digits.ljust(2, '0')}") if cents_digits else float(digits)
    return value if value > 0 else None


_MARKERS = (
    ("andes-money-amount__fraction", "andes-money-amount__cents"),
    ("price-tag-fraction", "price-tag-cents"),
)


def _price_from_markers(soup: BeautifulSoup) -> float | None:
    for fraction_cls, cents_cls in _MARKERS:
        for el in soup.select(f".{fraction_cls}"):
            if _is_previous_price(el):
                continue
            cents_el = el.parent.select_one(f".{cents_cls}") if el.parent else None
            price = _amount_from_parts(
                el.get_text(strip=True),
                cents_el.get_text(strip=True) if cents_el else None,
            )
            if price:
                return price

    for el in soup.select('[data-testid="price-part"]'):
        if _is_previous_price(el):
            continue
        price = positive_amount(el.get_text(" ", strip=True))
        if price:
            return price
    return None


def scan_brl_amounts(
    html: str,
    min_price: float | None = None,
    max_price: float | None = None,
) -> list[float]:
    """All ``R$`` amounts in *html* within the plausibility bounds, installments skipped."""
    lo = settings.min_plausible_price if min_price is None else min_price
    hi = settings.max_plausible_price if max_price is None else max_price
    values: list[float] = []
    for m in _BRL_AMOUNT_RE.finditer(html):
        before = html[max(0, m.start() - 16):m.start()]
        if _INSTALLMENT_PREFIX_RE.search(before):
            continue
        value = parse_brl(m.group(1))
        if value is not None and lo <= value <= hi:
            values.append(value)
    return values


def extract_html_price(html: str) -> float | None:
    """Price from a rendered listing page."""
    if not html:
        return None
    soup = BeautifulSoup(html, "lxml")
    price = (
        _price_from_ld_json(soup)
        or _price_from_page_state(html, soup)
        or _price_from_markers(soup)
    )
    if price:
        return price
    amounts = scan_brl_amounts(html)
    return max(amounts) if amounts else None


def extract_price(payload: dict | str | None) -> float | None:
    """Extract a positive price from an API body (dict) or a listing page (str)."""
    if isinstance(payload, dict):
        return extract_json_price(payload)
    if isinstance(payload, str):
        return extract_html_price(payload)
    return None
