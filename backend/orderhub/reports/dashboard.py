from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from orderhub.core.money import ZERO, quantize_money
from orderhub.crud.shipments import count_shipments_by_status
from orderhub.models.order_profits import OrderProfit
from orderhub.models.orders import Order
from orderhub.models.partner_orders import PartnerOrder


def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value))


def profit_statistics(db: Session) -> dict[str, Any]:
    rows = (
        db.query(OrderProfit.payout_status, func.count(OrderProfit.id), func.sum(OrderProfit.net_profit))
        .group_by(OrderProfit.payout_status)
        .order_by(OrderProfit.payout_status.asc())
        .all()
    )
    by_status = [
        {
            "payout_status": status,
            "order_count": int(count or 0),
            "net_profit": quantize_money(_decimal(total)),
        }
        for status, count, total in rows
    ]
    return {
        "order_count": sum(item["order_count"] for item in by_status),
        "total_net_profit": quantize_money(sum((item["net_profit"] for item in by_status), ZERO)),
        "by_status": by_status,
    }


def dashboard_stats(db: Session, *, site_id: int | None = None) -> dict[str, Any]:
    order_query = db.query(func.count(Order.id), func.sum(Order.order_total))
    partner_query = db.query(func.count(PartnerOrder.id))
    if site_id is not None:
        order_query = order_query.filter(Order.site_id == site_id)
        partner_query = partner_query.join(Order, Order.id == PartnerOrder.order_id).filter(
            Order.site_id == site_id
        )
    order_count, revenue = order_query.one()
    return {
        "site_id": site_id,
        "order_count": int(order_count or 0),
        "total_revenue": quantize_money(_decimal(revenue)),
        "partner_order_count": int(partner_query.scalar() or 0),
        "shipments_by_status": count_shipments_by_status(db, site_id=site_id),
    }
