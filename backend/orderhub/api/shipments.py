from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orderhub.api.deps import require_admin
from orderhub.core.db import get_db
from orderhub.core.time import utcnow
from orderhub.crud.orders import get_order
from orderhub.crud.shipments import (
    ShipmentAlreadyExists,
    count_shipments_by_status,
    create_shipment,
    get_shipment,
)
from orderhub.models.enums import ShipmentStatusEnum
from orderhub.schemas.shipments import (
    LiveTrackingRead,
    RefreshSummaryRead,
    ShipmentCreate,
    ShipmentRead,
    ShipmentStatusUpdate,
)
from orderhub.tracking.providers import TrackingProviderError, TrackingTimeout
from orderhub.tracking.service import ShipmentTracker, coerce_status, transition_shipment


router = APIRouter(prefix="/api/v1/shipments", tags=["shipments"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


def _get_shipment_or_404(db: Session, shipment_id: int):
    shipment = get_shipment(db, shipment_id)
    if shipment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shipment not found")
    return shipment


def get_tracker(db: Session = Depends(get_db)) -> ShipmentTracker:
    return ShipmentTracker(db)


@router.post("", response_model=ShipmentRead, status_code=status.HTTP_201_CREATED)
def create_shipment_endpoint(payload: ShipmentCreate, db: Session = Depends(get_db)):
    if get_order(db, payload.order_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    initial_status = (
        ShipmentStatusEnum.SHIPPED.value if payload.tracking_number else ShipmentStatusEnum.PENDING.value
    )
    try:
        return create_shipment(
            db,
            order_id=payload.order_id,
            tracking_number=payload.tracking_number,
            carrier=payload.carrier,
            status=initial_status,
            tracking_url=payload.tracking_url,
            shipped_at=payload.shipped_at or (utcnow() if payload.tracking_number else None),
            estimated_delivery=payload.estimated_delivery,
            notes=payload.notes,
        )
    except ShipmentAlreadyExists:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Shipment already exists") from None


@router.get("/statistics", response_model=dict[str, int])
def shipment_statistics_endpoint(db: Session = Depends(get_db)):
    return count_shipments_by_status(db)


@router.post("/refresh-tracking", response_model=RefreshSummaryRead)
def refresh_tracking_endpoint(tracker: ShipmentTracker = Depends(get_tracker)):
    results = tracker.refresh_all()
    return {
        "total": len(results),
        "updated": sum(1 for result in results if result.changed),
        "failed": sum(1 for result in results if not result.ok),
        "results": [result.__dict__ for result in results],
    }


@router.get("/{shipment_id}", response_model=ShipmentRead)
def get_shipment_endpoint(shipment_id: int, db: Session = Depends(get_db)):
    return _get_shipment_or_404(db, shipment_id)


@router.put("/{shipment_id}/status", response_model=ShipmentRead)
def update_shipment_status_endpoint(
    shipment_id: int,
    payload: ShipmentStatusUpdate,
    db: Session = Depends(get_db),
):
    shipment = _get_shipment_or_404(db, shipment_id)
    new_status = coerce_status(payload.status)
    if new_status == ShipmentStatusEnum.UNKNOWN.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown shipment status")
    if transition_shipment(shipment, new_status, now=utcnow()):
        db.commit()
        db.refresh(shipment)
    return shipment


@router.get("/{shipment_id}/live-tracking", response_model=LiveTrackingRead)
def live_tracking_endpoint(
    shipment_id: int,
    db: Session = Depends(get_db),
    tracker: ShipmentTracker = Depends(get_tracker),
):
    shipment = _get_shipment_or_404(db, shipment_id)
    if not shipment.tracking_number:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Shipment has no tracking number")
    try:
        response = tracker.get_live_tracking(shipment)
    except TrackingTimeout:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Carrier timed out") from None
    except TrackingProviderError as exc:
        logger.warning("shipment.live_tracking_failed", extra={"shipment_id": shipment_id, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Carrier lookup failed") from None
    return {
        "status": response.status,
        "current_location": response.current_location,
        "estimated_delivery": response.estimated_delivery,
        "delivered_at": response.delivered_at,
        "is_delivered": response.is_delivered,
        "events": [event.__dict__ for event in response.events],
        "has_exception": response.has_exception,
        "exception_message": response.exception_message,
    }
