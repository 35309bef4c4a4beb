"""Price lookup endpoint.

Always answers HTTP 200; the outcome is carried in ``ok`` / ``error_code``
with an ``http_status`` hint, so the browser client never has to special-case
transport errors.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..ml.identifiers import IdKind, Identifier, classify, is_item_id
from ..ml.resolver import PriceResolver, PriceResult, PriceSuccess, Trace
from ..schemas import ErrorResponse, PriceResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ml", tags=["price"])

_NO_STORE = {"Cache-Control": "no-store"}


def _get_resolver() -> PriceResolver:
    from ..main import app_state
    return app_state["resolver"]


def _respond(model: BaseModel) -> JSONResponse:
    exclude = {"debug"} if getattr(model, "debug", None) is None else None
    return JSONResponse(
        content=model.model_dump(mode="json", by_alias=True, exclude=exclude),
        headers=_NO_STORE,
    )


def _error(code: str, message: str, http_status: int, debug: dict | None = None, **details) -> JSONResponse:
    return _respond(ErrorResponse(
        error_code=code, message=message, http_status=http_status, details=details, debug=debug,
    ))


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes")


def pick_identifier(product_id: str, my_item_id: str) -> Identifier:
    """An explicit own listing id wins; otherwise classify the product input."""
    if is_item_id(my_item_id):
        return classify(my_item_id)
    return classify(product_id)


@router.options("/preco")
async def price_options():
    return JSONResponse({"ok": True}, headers=_NO_STORE)


@router.api_route("/preco", methods=["POST", "PUT", "PATCH", "DELETE"])
async def price_wrong_method(request: Request):
    return _error("METHOD_NOT_ALLOWED", "Only GET", 405, method=request.method)


@router.get("/preco")
async def get_price(
    product_id: str = "",
    my_item_id: str = "",
    debug: str = "",
    scrape: str = "",
):
    """Resolve the current price of a listing (WID) or catalog product."""
    product_id = product_id.strip()
    my_item_id = my_item_id.strip()
    want_debug = _flag(debug)

    if not product_id and not my_item_id:
        return _error("MISSING_PARAM", "product_id is required", 400)

    identifier = pick_identifier(product_id, my_item_id)
    if identifier.kind is IdKind.INVALID:
        return _error(
            "INVALID_ID_FORMAT",
            "Informe o WID (MLB do anúncio), o id de catálogo ou um link com #...wid=MLB...",
            400,
            debug={"product_id": product_id, "my_item_id": my_item_id} if want_debug else None,
        )

    trace = Trace()
    try:
        result = await _get_resolver().resolve(
            identifier,
            enable_scrape=True if _flag(scrape) else None,
            trace=trace,
        )
        return _result_response(result, trace.as_dict() if want_debug else None)
    except Exception as e:
        logger.exception("Price lookup failed for %s", identifier.value)
        return _error("INTERNAL", str(e) or "Internal error", 500, exception=type(e).__name__)


def _result_response(result: PriceResult, debug_info: dict | None) -> JSONResponse:
    if isinstance(result, PriceSuccess):
        return _respond(PriceResponse(
            price=result.price,
            source=result.source,
            product_id=result.product_id,
            item_id=result.item_id,
            sold_winner=result.sold_winner,
            sold_catalog_total=result.sold_catalog_total,
            fetched_at=datetime.now(timezone.utc),
            debug=debug_info,
        ))

    return _respond(ErrorResponse(
        error_code=result.error_code,
        message=result.message,
        http_status=result.http_status,
        details=result.details,
        debug=debug_info,
    ))
