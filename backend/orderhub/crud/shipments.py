from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from orderhub.models.enums import ShipmentStatusEnum
from orderhub.models.orders import Order
from orderhub.models.shipments import Shipment, ShippingUpdate


class ShipmentAlreadyExists(Exception):
    """Raised when an order already has its one shipment."""


def get_shipment(db: Session, shipment_id: int) -> Shipment | None:
    return db.query(Shipment).filter(Shipment.id == shipment_id).first()


def get_shipment_for_order(db: Session, order_id: int) -> Shipment | None:
    return db.query(Shipment).filter(Shipment.order_id == order_id).first()


def create_shipment(
    db: Session,
    *,
    order_id: int,
    tracking_number: str | None = None,
    carrier: str | None = None,
    status: str = ShipmentStatusEnum.PENDING.value,
    tracking_url: str | None = None,
    shipped_at: datetime | None = None,
    estimated_delivery: datetime | None = None,
    notes: str | None = None,
    commit: bool = True,
) -> Shipment:
    if get_shipment_for_order(db, order_id) is not None:
        raise ShipmentAlreadyExists(f"Order {order_id} already has a shipment")
    shipment = Shipment(
        order_id=order_id,
        tracking_number=tracking_number,
        carrier=carrier,
        status=status,
        tracking_url=tracking_url,
        shipped_at=shipped_at,
        estimated_delivery=estimated_delivery,
        notes=notes,
    )
    db.add(shipment)
    if commit:
        db.commit()
        db.refresh(shipment)
    else:
        db.flush()
    return shipment


def list_trackable_shipments(db: Session) -> list[Shipment]:
    return (
        db.query(Shipment)
        .filter(Shipment.tracking_number.isnot(None), Shipment.tracking_number != "")
        .order_by(Shipment.id.asc())
        .all()
    )


def count_shipments_by_status(db: Session, *, site_id: int | None = None) -> dict[str, int]:
    query = db.query(Shipment.status, func.count(Shipment.id))
    if site_id is not None:
        query = query.join(Order, Order.id == Shipment.order_id).filter(Order.site_id == site_id)
    rows = query.group_by(Shipment.status).all()
    return {status: int(count) for status, count in rows}


def record_shipping_update(
    db: Session,
    *,
    order_id: int,
    status: str,
    provider: str | None,
    tracking_number: str | None,
    payload: Any,
    occurred_at: datetime | None,
) -> ShippingUpdate:
    update = ShippingUpdate(
        order_id=order_id,
        status=status,
        provider=provider,
        tracking_number=tracking_number,
        payload=payload,
        occurred_at=occurred_at,
    )
    db.add(update)
    db.flush()
    return update
