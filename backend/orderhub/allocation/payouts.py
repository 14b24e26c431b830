"""Order profit rows and the payout-status state machine.

processing is the initial state; paid and refunded can be entered from any
state, and re-entering the current state just recomputes. payout_date is
stamped on entry into paid and is never cleared afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from orderhub.allocation.formulas import compute_order_profit
from orderhub.core.config import settings
from orderhub.core.money import ZERO, quantize_money
from orderhub.core.time import utcnow
from orderhub.crud.allocations import get_or_create_order_profit, get_order_profit
from orderhub.crud.orders import get_order
from orderhub.models.enums import PayoutStatusEnum
from orderhub.models.order_profits import OrderProfit
from orderhub.models.orders import Order


logger = logging.getLogger(__name__)


class OrderNotFoundError(LookupError):
    pass


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_payout_status(value: str | None) -> str:
    return (value or PayoutStatusEnum.PROCESSING.value).strip().lower()


def apply_profit(profit: OrderProfit, order_total: Decimal) -> OrderProfit:
    """Recompute the derived columns of ``profit`` from its stored components."""
    breakdown = compute_order_profit(
        order_total=_to_decimal(order_total),
        product_cost=_to_decimal(profit.product_cost),
        gateway_cost_percentage=_to_decimal(profit.gateway_cost_percentage),
        operational_cost=_to_decimal(profit.operational_cost),
        payout_status=profit.payout_status,
    )
    profit.gateway_cost = breakdown.gateway_cost
    profit.total_costs = breakdown.total_costs
    profit.net_profit = breakdown.net_profit
    profit.profit_margin = breakdown.profit_margin
    profit.is_calculated = True
    return profit


def _load_order(db: Session, order_id: int) -> Order:
    order = get_order(db, order_id)
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order


def _set_status(profit: OrderProfit, payout_status: str, now: datetime) -> None:
    status = normalize_payout_status(payout_status)
    profit.payout_status = status
    if status == PayoutStatusEnum.PAID.value:
        profit.payout_date = now


def _new_profit_defaults(profit: OrderProfit) -> None:
    profit.product_cost = ZERO
    profit.gateway_cost_percentage = ZERO
    profit.operational_cost = quantize_money(settings.OPERATIONAL_COST_PER_ORDER)
    profit.payout_status = PayoutStatusEnum.PROCESSING.value


def calculate_order_profit(
    db: Session,
    *,
    order_id: int,
    product_cost: Decimal,
    gateway_cost_percentage: Decimal,
    payout_status: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> OrderProfit:
    """Store cost inputs for an order and recompute its profit.

    Without ``payout_status`` the row keeps its current status.
    """
    now = now or utcnow()
    order = _load_order(db, order_id)
    profit, created = get_or_create_order_profit(db, order.id)
    if created:
        _new_profit_defaults(profit)
    if payout_status is not None:
        _set_status(profit, payout_status, now)
    profit.product_cost = quantize_money(_to_decimal(product_cost))
    profit.gateway_cost_percentage = _to_decimal(gateway_cost_percentage)
    profit.operational_cost = quantize_money(settings.OPERATIONAL_COST_PER_ORDER)
    if notes is not None:
        profit.notes = notes
    apply_profit(profit, order.order_total)
    db.commit()
    db.refresh(profit)
    logger.info(
        "profit.calculated",
        extra={"order_id": order.id, "payout_status": profit.payout_status, "row_created": created},
    )
    return profit


def update_payout_status(
    db: Session,
    *,
    order_id: int,
    payout_status: str,
    now: datetime | None = None,
) -> OrderProfit:
    """Move an order to ``payout_status`` and recompute its profit.

    An order without a profit row gets one with zero product cost and zero
    gateway percentage. Unknown statuses are stored as given and computed like
    processing.
    """
    now = now or utcnow()
    status = normalize_payout_status(payout_status)
    order = _load_order(db, order_id)
    profit, created = get_or_create_order_profit(db, order.id)
    if created:
        _new_profit_defaults(profit)
    previous = None if created else profit.payout_status
    _set_status(profit, status, now)
    apply_profit(profit, order.order_total)
    db.commit()
    db.refresh(profit)
    logger.info(
        "profit.payout_status_changed",
        extra={"order_id": order.id, "from_status": previous, "to_status": status},
    )
    return profit


def refresh_order_profit(db: Session, order: Order) -> OrderProfit | None:
    """Recompute an existing profit row after a re-sync. Does not commit."""
    profit = get_order_profit(db, order.id)
    if profit is None:
        return None
    apply_profit(profit, order.order_total)
    db.flush()
    return profit
