"""Idempotent order sync.

An order is keyed by (site_id, external_order_id). Re-syncing overwrites its
mutable fields and replaces the line items wholesale; it never creates a
second row. Allocation runs after the order is committed and can only add
warnings to the result, never undo the sync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from orderhub.allocation.engine import AllocationOutcome, AllocationWarning, allocate_order
from orderhub.core.config import settings
from orderhub.core.metrics import order_sync_total
from orderhub.core.money import convert, quantize_money
from orderhub.core.time import normalize_ts, utcnow
from orderhub.crud.orders import replace_order_items, upsert_order_row
from orderhub.crud.shipments import create_shipment, get_shipment_for_order
from orderhub.models.enums import SHIPPED_ORDER_STATUSES
from orderhub.models.orders import Order
from orderhub.schemas.webhooks import OrderItemPayload, OrderPayload, OrderSyncPayload


logger = logging.getLogger(__name__)

ORDER_MONEY_FIELDS = ("order_total", "subtotal", "discount_total", "shipping_total", "tax_total")
ITEM_MONEY_FIELDS = ("price", "subtotal", "total")
CONVERTED_CURRENCY = "USD"


@dataclass
class OrderSyncResult:
    order: Order
    created: bool
    allocation: AllocationOutcome | None = None
    warnings: list[AllocationWarning] = field(default_factory=list)

    @property
    def order_id(self) -> int:
        return self.order.id


def _money_converter(currency: str):
    if currency.upper() == "GBP":
        rate = settings.GBP_TO_USD_RATE
        return lambda amount: convert(amount, rate), CONVERTED_CURRENCY
    return quantize_money, currency.upper()


def normalize_order_fields(order: OrderPayload) -> dict[str, Any]:
    to_storage, currency = _money_converter(order.currency)
    fields: dict[str, Any] = {
        "status": order.status,
        "currency": currency,
        "payment_gateway_code": order.payment_gateway_code,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "shipping_address": order.shipping_address,
        "billing_address": order.billing_address,
        "placed_at": normalize_ts(order.placed_at),
    }
    for name in ORDER_MONEY_FIELDS:
        fields[name] = to_storage(getattr(order, name))
    return fields


def normalize_item_fields(item: OrderItemPayload, currency: str) -> dict[str, Any]:
    to_storage, _ = _money_converter(currency)
    fields: dict[str, Any] = {
        "product_id": item.product_id,
        "sku": item.sku,
        "name": item.name,
        "quantity": item.qty,
    }
    for name in ITEM_MONEY_FIELDS:
        fields[name] = to_storage(getattr(item, name))
    return fields


def _ensure_shipment(db: Session, order: Order) -> None:
    if (order.status or "").lower() not in SHIPPED_ORDER_STATUSES:
        return
    if get_shipment_for_order(db, order.id) is not None:
        return
    create_shipment(db, order_id=order.id, commit=False)
    logger.info("shipment.created_from_order", extra={"order_id": order.id})


def sync_order(
    db: Session,
    *,
    site_id: int,
    payload: OrderSyncPayload,
    now: datetime | None = None,
) -> OrderSyncResult:
    now = now or utcnow()
    fields = normalize_order_fields(payload.order)
    items = [normalize_item_fields(item, payload.order.currency) for item in payload.items]

    order, created = upsert_order_row(
        db,
        site_id=site_id,
        external_order_id=payload.order.external_order_id,
        fields=fields,
        now=now,
    )
    replace_order_items(db, order, items)
    _ensure_shipment(db, order)
    db.commit()
    db.refresh(order)

    order_sync_total.labels("created" if created else "updated").inc()
    logger.info(
        "order.synced",
        extra={
            "site_id": site_id,
            "order_id": order.id,
            "order_created": created,
            "item_count": len(items),
            "currency": order.currency,
        },
    )

    allocation = allocate_order(db, order, now=now)
    return OrderSyncResult(
        order=order,
        created=created,
        allocation=allocation,
        warnings=list(allocation.warnings),
    )