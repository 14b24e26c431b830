from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderhub.models.orders import Order, OrderItem

# Columns overwritten when a storefront re-syncs an existing order.
MUTABLE_ORDER_FIELDS = (
    "status",
    "currency",
    "order_total",
    "subtotal",
    "discount_total",
    "shipping_total",
    "tax_total",
    "payment_gateway_code",
    "customer_name",
    "customer_email",
    "customer_phone",
    "shipping_address",
    "billing_address",
    "placed_at",
    "synced_at",
    "updated_at",
)

UPSERT_KEY = ["site_id", "external_order_id"]


def get_order(db: Session, order_id: int) -> Order | None:
    return db.query(Order).filter(Order.id == order_id).first()


def get_order_by_external_id(db: Session, *, site_id: int, external_order_id: str) -> Order | None:
    return (
        db.query(Order)
        .filter(Order.site_id == site_id, Order.external_order_id == external_order_id)
        .first()
    )


def _load_order(db: Session, *, site_id: int, external_order_id: str) -> Order:
    return (
        db.query(Order)
        .execution_options(populate_existing=True)
        .filter(Order.site_id == site_id, Order.external_order_id == external_order_id)
        .one()
    )


def _upsert_statement(dialect: str, values: dict[str, Any]):
    if dialect == "postgresql":
        stmt = pg_insert(Order).values(**values)
    else:
        stmt = sqlite_insert(Order).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=UPSERT_KEY,
        set_={field: stmt.excluded[field] for field in MUTABLE_ORDER_FIELDS},
    )


def _upsert_without_on_conflict(db: Session, values: dict[str, Any]) -> None:
    try:
        with db.begin_nested():
            db.execute(insert(Order).values(**values))
    except IntegrityError:
        existing = _load_order(
            db,
            site_id=values["site_id"],
            external_order_id=values["external_order_id"],
        )
        for field in MUTABLE_ORDER_FIELDS:
            setattr(existing, field, values[field])
        db.flush()


def upsert_order_row(
    db: Session,
    *,
    site_id: int,
    external_order_id: str,
    fields: dict[str, Any],
    now: datetime,
) -> tuple[Order, bool]:
    """Insert or update the order keyed by (site_id, external_order_id).

    Uses a single INSERT .. ON CONFLICT DO UPDATE where the dialect supports it
    so concurrent syncs of the same order converge on one row. Does not commit.
    Returns the order and whether it was newly created.
    """
    existed = (
        db.query(Order.id)
        .filter(Order.site_id == site_id, Order.external_order_id == external_order_id)
        .first()
        is not None
    )
    values = dict(fields)
    values.update(
        {
            "site_id": site_id,
            "external_order_id": external_order_id,
            "synced_at": now,
            "created_at": now,
            "updated_at": now,
        }
    )
    bind = db.get_bind()
    dialect = bind.dialect.name if bind is not None else ""
    if dialect in {"postgresql", "sqlite"}:
        db.execute(_upsert_statement(dialect, values))
    else:
        _upsert_without_on_conflict(db, values)
    order = _load_order(db, site_id=site_id, external_order_id=external_order_id)
    return order, not existed


def replace_order_items(db: Session, order: Order, items: Iterable[dict[str, Any]]) -> list[OrderItem]:
    """Delete every line item of ``order`` and insert ``items``. Does not commit."""
    db.query(OrderItem).filter(OrderItem.order_id == order.id).delete(synchronize_session=False)
    created = []
    for item in items:
        row = OrderItem(order_id=order.id, **item)
        db.add(row)
        created.append(row)
    db.flush()
    db.expire(order, ["items"])
    return created


def list_orders(
    db: Session,
    *,
    site_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Order]:
    query = db.query(Order)
    if site_id is not None:
        query = query.filter(Order.site_id == site_id)
    if start is not None:
        query = query.filter(Order.placed_at >= start)
    if end is not None:
        query = query.filter(Order.placed_at <= end)
    return query.order_by(Order.placed_at.desc(), Order.id.desc()).all()
