"""Import cost and margin calculation for a Mercado Livre listing."""

from __future__ import annotations

from dataclasses import dataclass

from .config import settings


@dataclass
class CostInput:
    unit_usd: float
    qty: int = 1
    freight_usd: float = 0.0
    usd_brl: float | None = None
    icms_inside: bool = False
    revenue_tax_pct: float | None = None
    commission_pct: float | None = None
    ml_price: float = 0.0
    ml_shipping_brl: float = 0.0


@dataclass
class CostBreakdown:
    cif_brl: float
    ii: float
    icms: float
    taxes: float
    unit_cost_brl: float
    commission: float
    revenue_tax: float
    margin_brl: float
    margin_pct: float


def round2(n: float) -> float:
    return round(n, 2)


def compute_costs(i: CostInput) -> CostBreakdown:
    """Landed unit cost and margin against the marketplace price.

    CIF = (unit USD * qty + freight USD) * USD/BRL
    II = 60% of CIF; ICMS 17% over CIF + II ("por dentro": base / (1 - rate))
    margin = price - (unit cost + commission + revenue tax + ML shipping)
    """
    usd_brl = settings.usd_brl if i.usd_brl is None else i.usd_brl
    commission_pct = settings.commission_pct if i.commission_pct is None else i.commission_pct
    revenue_tax_pct = settings.revenue_tax_pct if i.revenue_tax_pct is None else i.revenue_tax_pct
    rate = settings.icms_rate

    cif = (i.unit_usd * i.qty + i.freight_usd) * usd_brl
    ii = settings.ii_rate * cif
    icms_base = cif + ii
    icms = icms_base * rate / (1 - rate) if i.icms_inside else icms_base * rate
    taxes = ii + icms
    unit_cost = (cif + taxes) / (i.qty or 1)

    price = i.ml_price or 0.0
    commission = commission_pct / 100 * price
    revenue_tax = revenue_tax_pct / 100 * price
    margin = price - (unit_cost + commission + revenue_tax + (i.ml_shipping_brl or 0.0))
    margin_pct = margin / price * 100 if price else 0.0

    return CostBreakdown(
        cif_brl=round2(cif),
        ii=round2(ii),
        icms=round2(icms),
        taxes=round2(taxes),
        unit_cost_brl=round2(unit_cost),
        commission=round2(commission),
        revenue_tax=round2(revenue_tax),
        margin_brl=round2(margin),
        margin_pct=round2(margin_pct),
    )
