from __future__ import annotations

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from orderhub.allocation.engine import compute_gateway_allocation
from orderhub.core.money import ZERO, quantize_money
from orderhub.crud.allocations import partner_earnings_totals
from orderhub.crud.orders import list_orders
from orderhub.crud.partners import get_partner


UNMAPPED_GATEWAY = "unmapped"


def _empty_bucket(code: str, name: str | None) -> dict[str, Any]:
    return {
        "gateway_code": code,
        "gateway_name": name,
        "order_count": 0,
        "total_revenue": ZERO,
        "total_fees": ZERO,
        "net_revenue": ZERO,
        "partners": OrderedDict(),
    }


def gateway_partner_revenue_report(
    db: Session,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    site_id: int | None = None,
) -> dict[str, Any]:
    """Per-gateway revenue, fees and partner shares over a placed-at window.

    Orders whose gateway is not configured are grouped under ``unmapped`` with
    zero fees so they still count toward revenue totals.
    """
    buckets: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for order in list_orders(db, site_id=site_id, start=start, end=end):
        allocation = compute_gateway_allocation(
            db,
            order_total=order.order_total,
            gateway_code=order.payment_gateway_code,
        )
        key = allocation.gateway_code if allocation.recognized else UNMAPPED_GATEWAY
        bucket = buckets.get(key)
        if bucket is None:
            bucket = _empty_bucket(key, allocation.gateway_name)
            buckets[key] = bucket
        bucket["order_count"] += 1
        bucket["total_revenue"] += allocation.order_total
        bucket["total_fees"] += allocation.fee
        bucket["net_revenue"] += allocation.net_revenue
        for share in allocation.partner_shares:
            partner = bucket["partners"].setdefault(
                share.partner_id,
                {
                    "partner_id": share.partner_id,
                    "partner_name": share.partner_name,
                    "assignment_percentage": share.assignment_percentage,
                    "revenue_share": ZERO,
                },
            )
            partner["revenue_share"] += share.revenue_share

    gateways = []
    for bucket in sorted(buckets.values(), key=lambda item: item["gateway_code"] or ""):
        gateways.append(
            {
                **bucket,
                "total_revenue": quantize_money(bucket["total_revenue"]),
                "total_fees": quantize_money(bucket["total_fees"]),
                "net_revenue": quantize_money(bucket["net_revenue"]),
                "partners": [
                    {**partner, "revenue_share": quantize_money(partner["revenue_share"])}
                    for partner in bucket["partners"].values()
                ],
            }
        )
    return {
        "start": start,
        "end": end,
        "total_revenue": quantize_money(sum((g["total_revenue"] for g in gateways), ZERO)),
        "total_fees": quantize_money(sum((g["total_fees"] for g in gateways), ZERO)),
        "gateways": gateways,
    }


def partner_earnings_report(db: Session, partner_id: int) -> dict[str, Any] | None:
    partner = get_partner(db, partner_id)
    if partner is None:
        return None
    totals = partner_earnings_totals(db, partner_id)
    return {
        "partner_id": partner.id,
        "partner_name": partner.name,
        "order_count": totals["order_count"],
        "total": quantize_money(Decimal(totals["total"])),
        "paid": quantize_money(Decimal(totals["paid"])),
        "unpaid": quantize_money(Decimal(totals["unpaid"])),
    }
