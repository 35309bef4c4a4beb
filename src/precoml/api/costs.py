"""Import cost / margin endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..costs import CostInput, compute_costs
from ..ml.identifiers import classify
from ..ml.resolver import PriceResolver, PriceSuccess
from ..schemas import CostRequest, CostResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["costs"])


def _get_resolver() -> PriceResolver:
    from ..main import app_state
    return app_state["resolver"]


@router.post("/costs", response_model=CostResponse)
async def post_costs(body: CostRequest):
    """Compute landed cost and margin; fetch the ML price first when only product_id is given."""
    price = body.ml_price
    source = None
    if price is None:
        if not body.product_id:
            raise HTTPException(422, "ml_price or product_id is required")
        identifier = classify(body.product_id)
        if not identifier.is_valid:
            raise HTTPException(400, f"Invalid product_id: {body.product_id}")
        result = await _get_resolver().resolve(identifier)
        if not isinstance(result, PriceSuccess):
            raise HTTPException(502, f"Price lookup failed: {result.error_code} {result.message}")
        price, source = result.price, result.source

    breakdown = compute_costs(CostInput(
        unit_usd=body.unit_usd,
        qty=body.qty,
        freight_usd=body.freight_usd,
        usd_brl=body.usd_brl,
        icms_inside=body.icms_inside,
        revenue_tax_pct=body.revenue_tax_pct,
        commission_pct=body.commission_pct,
        ml_price=price,
        ml_shipping_brl=body.ml_shipping_brl,
    ))
    return CostResponse(
        ml_price=price,
        price_source=source,
        cif_brl=breakdown.cif_brl,
        ii=breakdown.ii,
        icms=breakdown.icms,
        taxes=breakdown.taxes,
        unit_cost_brl=breakdown.unit_cost_brl,
        commission=breakdown.commission,
        revenue_tax=breakdown.revenue_tax,
        margin_brl=breakdown.margin_brl,
        margin_pct=breakdown.margin_pct,
    )
