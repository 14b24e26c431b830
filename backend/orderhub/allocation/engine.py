from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy.orm import Session

from orderhub.allocation.formulas import (
    compute_gateway_fee,
    compute_partner_share,
    compute_revenue_split,
)
from orderhub.allocation.payouts import refresh_order_profit
from orderhub.core.config import settings
from orderhub.core.metrics import allocation_warnings_total
from orderhub.core.money import ZERO, percent_of, quantize_money
from orderhub.core.time import utcnow
from orderhub.crud.allocations import upsert_partner_order, upsert_revenue_share
from orderhub.crud.gateways import get_gateway_by_code, list_active_gateway_assignments
from orderhub.crud.partners import list_active_site_partners
from orderhub.models.enums import ShareTypeEnum
from orderhub.models.order_profits import OrderProfit
from orderhub.models.orders import Order
from orderhub.models.partner_orders import PartnerOrder
from orderhub.models.revenue_shares import RevenueShare


logger = logging.getLogger(__name__)

STAGE_SITE_PARTNERS = "site_partners"
STAGE_GATEWAY = "gateway"
STAGE_ORDER_PROFIT = "order_profit"
STAGE_REVENUE_SHARE = "revenue_share"


@dataclass(frozen=True)
class AllocationWarning:
    stage: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"stage": self.stage, "message": self.message}


@dataclass(frozen=True)
class GatewayPartnerShare:
    partner_id: int
    partner_name: str
    assignment_percentage: Decimal
    revenue_share: Decimal


@dataclass
class GatewayAllocation:
    gateway_code: str | None
    gateway_name: str | None
    order_total: Decimal
    fee: Decimal
    net_revenue: Decimal
    partner_shares: list[GatewayPartnerShare] = field(default_factory=list)

    @property
    def recognized(self) -> bool:
        return self.gateway_name is not None


@dataclass
class AllocationOutcome:
    order_id: int
    partner_orders: list[PartnerOrder] = field(default_factory=list)
    gateway: GatewayAllocation | None = None
    order_profit: OrderProfit | None = None
    revenue_share: RevenueShare | None = None
    warnings: list[AllocationWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def compute_gateway_allocation(db: Session, *, order_total: Decimal, gateway_code: str | None) -> GatewayAllocation:
    """Split a gateway's net revenue among its active partners.

    An unknown gateway yields zero fee and no partner shares rather than an
    error, so the order still counts in gateway-level totals.
    """
    order_total = _decimal(order_total)
    gateway = get_gateway_by_code(db, gateway_code)
    if gateway is None:
        return GatewayAllocation(
            gateway_code=gateway_code,
            gateway_name=None,
            order_total=order_total,
            fee=ZERO,
            net_revenue=order_total,
        )
    fee = compute_gateway_fee(
        order_total,
        gateway.fee_type,
        _decimal(gateway.fees_percentage) if gateway.fees_percentage is not None else None,
        _decimal(gateway.fees_fixed) if gateway.fees_fixed is not None else None,
    )
    net_revenue = order_total - fee
    shares = []
    for assignment in list_active_gateway_assignments(db, gateway.id):
        pct = _decimal(assignment.assignment_percentage)
        shares.append(
            GatewayPartnerShare(
                partner_id=assignment.partner_id,
                partner_name=assignment.partner.name if assignment.partner else "",
                assignment_percentage=pct,
                revenue_share=quantize_money(percent_of(net_revenue, pct)),
            )
        )
    return GatewayAllocation(
        gateway_code=gateway.gateway_code,
        gateway_name=gateway.name,
        order_total=order_total,
        fee=fee,
        net_revenue=quantize_money(net_revenue),
        partner_shares=shares,
    )


def allocate_site_partners(db: Session, order: Order) -> list[PartnerOrder]:
    order_total = _decimal(order.order_total)
    planned = []
    for assignment in list_active_site_partners(db, order.site_id):
        pct = _decimal(assignment.share_percentage)
        share = compute_partner_share(
            order_total,
            assignment.share_type,
            pct,
            settings.PROFIT_SHARE_COST_RATIO,
        )
        planned.append((assignment, pct, share))
    rows = []
    for assignment, pct, share in planned:
        rows.append(
            upsert_partner_order(
                db,
                partner_id=assignment.partner_id,
                order_id=order.id,
                site_partner_id=assignment.id,
                share_amount=share,
                share_type=assignment.share_type,
                share_percentage=pct,
            )
        )
    return rows


def allocate_revenue_share(db: Session, order: Order, gateway: GatewayAllocation | None) -> RevenueShare:
    order_total = _decimal(order.order_total)
    if gateway is None:
        gateway = compute_gateway_allocation(
            db,
            order_total=order_total,
            gateway_code=order.payment_gateway_code,
        )
    revenue_partner = next(
        (
            assignment
            for assignment in list_active_site_partners(db, order.site_id)
            if assignment.share_type == ShareTypeEnum.REVENUE.value
        ),
        None,
    )
    pct = _decimal(revenue_partner.share_percentage) if revenue_partner else ZERO
    partner_share, website_share = compute_revenue_split(order_total, gateway.fee, pct)
    return upsert_revenue_share(
        db,
        order_id=order.id,
        partner_id=revenue_partner.partner_id if revenue_partner else None,
        partner_share_amount=partner_share,
        website_share_amount=website_share,
        gateway_fee_amount=gateway.fee,
    )


def _run_stage(
    db: Session,
    outcome: AllocationOutcome,
    stage: str,
    step: Callable[[], Any],
) -> Any:
    try:
        result = step()
        db.commit()
    except Exception as exc:
        db.rollback()
        allocation_warnings_total.labels(stage).inc()
        logger.warning(
            "allocation.stage_failed",
            extra={"order_id": outcome.order_id, "stage": stage, "error": exc.__class__.__name__},
            exc_info=True,
        )
        outcome.warnings.append(AllocationWarning(stage=stage, message=str(exc) or exc.__class__.__name__))
        return None
    return result


def allocate_order(db: Session, order: Order, *, now: datetime | None = None) -> AllocationOutcome:
    """Run every allocation stage for a persisted order.

    Stages commit independently. A failing stage is rolled back on its own and
    reported as a warning on the outcome; the order row and the other stages
    are left intact.
    """
    now = now or utcnow()
    order_id = order.id
    outcome = AllocationOutcome(order_id=order_id)

    outcome.partner_orders = _run_stage(
        db, outcome, STAGE_SITE_PARTNERS, lambda: allocate_site_partners(db, order)
    ) or []
    outcome.gateway = _run_stage(
        db,
        outcome,
        STAGE_GATEWAY,
        lambda: compute_gateway_allocation(
            db,
            order_total=order.order_total,
            gateway_code=order.payment_gateway_code,
        ),
    )
    if outcome.gateway is not None and not outcome.gateway.recognized:
        logger.info(
            "allocation.gateway_unknown",
            extra={"order_id": order_id, "gateway_code": order.payment_gateway_code},
        )
    outcome.order_profit = _run_stage(
        db, outcome, STAGE_ORDER_PROFIT, lambda: refresh_order_profit(db, order)
    )
    outcome.revenue_share = _run_stage(
        db, outcome, STAGE_REVENUE_SHARE, lambda: allocate_revenue_share(db, order, outcome.gateway)
    )
    logger.info(
        "allocation.completed",
        extra={
            "order_id": order_id,
            "partner_orders": len(outcome.partner_orders),
            "warnings": len(outcome.warnings),
            "allocated_at": now.isoformat(),
        },
    )
    return outcome
