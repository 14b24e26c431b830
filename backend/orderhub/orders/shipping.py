from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from orderhub.core.time import normalize_ts, utcnow
from orderhub.crud.orders import get_order_by_external_id
from orderhub.crud.shipments import create_shipment, get_shipment_for_order, record_shipping_update
from orderhub.models.shipments import ShippingUpdate
from orderhub.schemas.webhooks import ShippingUpdatePayload
from orderhub.tracking.service import coerce_status, transition_shipment


logger = logging.getLogger(__name__)


class UnknownOrder(LookupError):
    pass


def apply_shipping_update(
    db: Session,
    *,
    site_id: int,
    payload: ShippingUpdatePayload,
    now: datetime | None = None,
) -> ShippingUpdate:
    """Record a storefront shipping update and fold it into the order's shipment."""
    now = now or utcnow()
    order = get_order_by_external_id(db, site_id=site_id, external_order_id=payload.external_order_id)
    if order is None:
        raise UnknownOrder(payload.external_order_id)

    occurred_at = normalize_ts(payload.occurred_at) or now
    update = record_shipping_update(
        db,
        order_id=order.id,
        status=payload.status,
        provider=payload.provider,
        tracking_number=payload.tracking_number,
        payload=payload.payload,
        occurred_at=occurred_at,
    )

    status = coerce_status(payload.status)
    shipment = get_shipment_for_order(db, order.id)
    if shipment is None:
        shipment = create_shipment(
            db,
            order_id=order.id,
            tracking_number=payload.tracking_number,
            carrier=payload.provider,
            commit=False,
        )
    else:
        if payload.tracking_number:
            shipment.tracking_number = payload.tracking_number
        if payload.provider:
            shipment.carrier = payload.provider
    transition_shipment(shipment, status, now=occurred_at)

    db.commit()
    db.refresh(update)
    logger.info(
        "shipping_update.recorded",
        extra={"site_id": site_id, "order_id": order.id, "shipping_update_id": update.id},
    )
    return update
