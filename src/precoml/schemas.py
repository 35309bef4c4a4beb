from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# --- Price lookup ---

class PriceResponse(BaseModel):
    ok: bool = True
    price: float
    source: str
    product_id: str
    item_id: str | None = None
    sold_winner: int | None = None
    sold_catalog_total: int | None = None
    fetched_at: datetime
    debug: dict[str, Any] | None = Field(default=None, serialization_alias="_debug")


class ErrorResponse(BaseModel):
    ok: bool = False
    error_code: str
    message: str = ""
    http_status: int
    details: dict[str, Any] = Field(default_factory=dict)
    debug: dict[str, Any] | None = Field(default=None, serialization_alias="_debug")


# --- Costs ---

class CostRequest(BaseModel):
    unit_usd: float = Field(ge=0)
    qty: int = Field(default=1, ge=1)
    freight_usd: float = Field(default=0.0, ge=0)
    usd_brl: float | None = Field(default=None, gt=0)
    icms_inside: bool = False
    revenue_tax_pct: float | None = None
    commission_pct: float | None = None
    ml_shipping_brl: float = 0.0
    ml_price: float | None = Field(default=None, ge=0)
    product_id: str | None = None   # resolve ml_price first when set


class CostResponse(BaseModel):
    ml_price: float
    price_source: str | None = None
    cif_brl: float
    ii: float
    icms: float
    taxes: float
    unit_cost_brl: float
    commission: float
    revenue_tax: float
    margin_brl: float
    margin_pct: float


# --- System ---

class HealthResponse(BaseModel):
    ok: bool = True
    time: datetime
    oauth_configured: bool
    render_configured: bool
