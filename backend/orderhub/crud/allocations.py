"""Persistence for allocation results.

Only ``orderhub.allocation`` calls the writers here; every row is upserted on
its natural key so re-running allocation for an order never accumulates.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from orderhub.models.order_profits import OrderProfit
from orderhub.models.partner_orders import PartnerOrder
from orderhub.models.revenue_shares import RevenueShare


def upsert_partner_order(
    db: Session,
    *,
    partner_id: int,
    order_id: int,
    site_partner_id: int | None,
    share_amount: Decimal,
    share_type: str,
    share_percentage: Decimal,
) -> PartnerOrder:
    row = (
        db.query(PartnerOrder)
        .filter(PartnerOrder.partner_id == partner_id, PartnerOrder.order_id == order_id)
        .first()
    )
    if row is None:
        row = PartnerOrder(partner_id=partner_id, order_id=order_id, is_paid=False)
        db.add(row)
    row.site_partner_id = site_partner_id
    row.share_amount = share_amount
    row.share_type = share_type
    row.share_percentage = share_percentage
    db.flush()
    return row


def list_partner_orders(
    db: Session,
    *,
    order_id: int | None = None,
    partner_id: int | None = None,
) -> list[PartnerOrder]:
    query = db.query(PartnerOrder)
    if order_id is not None:
        query = query.filter(PartnerOrder.order_id == order_id)
    if partner_id is not None:
        query = query.filter(PartnerOrder.partner_id == partner_id)
    return query.order_by(PartnerOrder.id.asc()).all()


def partner_earnings_totals(db: Session, partner_id: int) -> dict[str, Decimal | int]:
    rows = (
        db.query(PartnerOrder.is_paid, func.count(PartnerOrder.id), func.sum(PartnerOrder.share_amount))
        .filter(PartnerOrder.partner_id == partner_id)
        .group_by(PartnerOrder.is_paid)
        .all()
    )
    totals: dict[str, Decimal | int] = {
        "order_count": 0,
        "total": Decimal("0.00"),
        "paid": Decimal("0.00"),
        "unpaid": Decimal("0.00"),
    }
    for is_paid, count, amount in rows:
        amount = Decimal(str(amount or 0))
        totals["order_count"] += int(count or 0)
        totals["total"] += amount
        totals["paid" if is_paid else "unpaid"] += amount
    return totals


def get_order_profit(db: Session, order_id: int) -> OrderProfit | None:
    return db.query(OrderProfit).filter(OrderProfit.order_id == order_id).first()


def get_or_create_order_profit(db: Session, order_id: int) -> tuple[OrderProfit, bool]:
    row = get_order_profit(db, order_id)
    if row is not None:
        return row, False
    row = OrderProfit(order_id=order_id)
    db.add(row)
    return row, True


def upsert_revenue_share(
    db: Session,
    *,
    order_id: int,
    partner_id: int | None,
    partner_share_amount: Decimal,
    website_share_amount: Decimal,
    gateway_fee_amount: Decimal,
) -> RevenueShare:
    row = db.query(RevenueShare).filter(RevenueShare.order_id == order_id).first()
    if row is None:
        row = RevenueShare(order_id=order_id)
        db.add(row)
    row.partner_id = partner_id
    row.partner_share_amount = partner_share_amount
    row.website_share_amount = website_share_amount
    row.gateway_fee_amount = gateway_fee_amount
    db.flush()
    return row


def get_revenue_share(db: Session, order_id: int) -> RevenueShare | None:
    return db.query(RevenueShare).filter(RevenueShare.order_id == order_id).first()
