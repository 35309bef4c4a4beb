"""Classify Mercado Livre identifiers and pull them out of URLs.

Listing ids ("WID") have a numeric suffix of 10+ digits (MLB3520318133);
catalog product ids are shorter (MLB35854070).  Both may be pasted as part
of a URL:

    https://www.mercadolivre.com.br/foo/p/MLB35854070#...&wid=MLB3520318133
    https://produto.mercadolivre.com.br/MLB-3520318133-foo-_JM
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from ..config import settings

ITEM_MIN_DIGITS = 10


class IdKind(str, Enum):
    CATALOG = "catalog"
    ITEM = "item"
    INVALID = "invalid"


@dataclass(frozen=True)
class Identifier:
    value: str
    kind: IdKind

    @property
    def is_item(self) -> bool:
        return self.kind is IdKind.ITEM

    @property
    def is_catalog(self) -> bool:
        return self.kind is IdKind.CATALOG

    @property
    def is_valid(self) -> bool:
        return self.kind is not IdKind.INVALID

    @property
    def digits(self) -> str:
        return _LEADING_ALPHA_RE.sub("", self.value)


INVALID = Identifier("", IdKind.INVALID)

_LEADING_ALPHA_RE = re.compile(r"^\D+", re.ASCII)


def _patterns(prefix: str) -> tuple[re.Pattern, re.Pattern, re.Pattern, re.Pattern]:
    p = re.escape(prefix)
    return (
        re.compile(rf"^{p}(\d+)$", re.IGNORECASE | re.ASCII),
        re.compile(rf"wid=({p}\d{{{ITEM_MIN_DIGITS},}})", re.IGNORECASE | re.ASCII),
        re.compile(rf"{p}-?(\d{{{ITEM_MIN_DIGITS},}})", re.IGNORECASE | re.ASCII),
        re.compile(rf"/p/({p}\d+)", re.IGNORECASE | re.ASCII),
    )


def classify(raw: str, prefix: str | None = None) -> Identifier:
    """Classify a raw identifier or URL.

    Bare ids are classified by suffix length.  Anything else is searched for
    an embedded listing id: first the ``wid=`` key in the URL fragment, then
    the first ``<PREFIX><digits>`` run anywhere in the string (permalinks use
    a dash after the prefix).  As a last resort a catalog path segment
    (``/p/MLB123``) yields a catalog id.
    """
    prefix = (prefix or settings.ml_site_id).upper()
    bare_re, wid_re, item_re, catalog_re = _patterns(prefix)

    s = (raw or "").strip()
    if not s:
        return INVALID

    m = bare_re.match(s)
    if m:
        kind = IdKind.ITEM if len(m.group(1)) >= ITEM_MIN_DIGITS else IdKind.CATALOG
        return Identifier(prefix + m.group(1), kind)

    if "#" in s:
        fragment = s.split("#", 1)[1]
        m = wid_re.search(fragment)
        if m:
            return Identifier(m.group(1).upper(), IdKind.ITEM)

    m = item_re.search(s)
    if m:
        return Identifier(prefix + m.group(1), IdKind.ITEM)

    m = catalog_re.search(s.split("#", 1)[0])
    if m:
        return classify(m.group(1), prefix)

    return INVALID


def is_item_id(raw: str, prefix: str | None = None) -> bool:
    """True when *raw* is itself a bare listing id (not a URL)."""
    prefix = (prefix or settings.ml_site_id).upper()
    m = _patterns(prefix)[0].match((raw or "").strip())
    return bool(m) and len(m.group(1)) >= ITEM_MIN_DIGITS


def permalink_variants(identifier: Identifier) -> tuple[str, str]:
    """Forms an item id takes inside a permalink: ``MLB123`` and ``MLB-123``."""
    prefix = identifier.value[: len(identifier.value) - len(identifier.digits)]
    return identifier.value, f"{prefix}-{identifier.digits}"
