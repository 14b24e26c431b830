"""Shipment status tracking.

A shipment only changes when the carrier reports a status different from the
stored one; re-applying the same status performs no write. Bulk refresh
spaces carrier calls with a quota-derived throttle and records per-shipment
failures instead of aborting the sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from orderhub.core.config import settings
from orderhub.core.metrics import tracking_refresh_total
from orderhub.core.rate_limit import Throttle
from orderhub.core.time import utcnow
from orderhub.crud.shipments import list_trackable_shipments
from orderhub.models.enums import ShipmentStatusEnum
from orderhub.models.shipments import Shipment
from orderhub.tracking.providers import (
    TrackingProvider,
    TrackingProviderError,
    TrackingResponse,
    TrackingTimeout,
    get_tracking_provider,
)
from orderhub.tracking.providers.base import normalize_status


logger = logging.getLogger(__name__)

SHIPPED_LIKE_STATUSES = frozenset(
    {
        ShipmentStatusEnum.SHIPPED.value,
        ShipmentStatusEnum.IN_TRANSIT.value,
        ShipmentStatusEnum.OUT_FOR_DELIVERY.value,
        ShipmentStatusEnum.DELIVERED.value,
    }
)


@dataclass
class RefreshResult:
    shipment_id: int
    ok: bool
    changed: bool = False
    status: str | None = None
    error: str | None = None


def transition_shipment(
    shipment: Shipment,
    status: str,
    *,
    now: datetime,
    delivered_at: datetime | None = None,
    estimated_delivery: datetime | None = None,
) -> bool:
    """Move ``shipment`` to ``status``; return False when nothing changed.

    ``unknown`` carries no information and never overwrites a stored status.
    """
    if status == ShipmentStatusEnum.UNKNOWN.value or status == shipment.status:
        return False
    shipment.status = status
    shipment.status_changed_at = now
    if status in SHIPPED_LIKE_STATUSES and shipment.shipped_at is None:
        shipment.shipped_at = now
    if status == ShipmentStatusEnum.DELIVERED.value:
        shipment.delivered_at = delivered_at or now
    if estimated_delivery is not None:
        shipment.estimated_delivery = estimated_delivery
    return True


def apply_tracking_response(shipment: Shipment, response: TrackingResponse, *, now: datetime) -> bool:
    status = response.status
    if response.is_delivered:
        status = ShipmentStatusEnum.DELIVERED.value
    elif response.has_exception and status == ShipmentStatusEnum.UNKNOWN.value:
        status = ShipmentStatusEnum.EXCEPTION.value
    return transition_shipment(
        shipment,
        status,
        now=now,
        delivered_at=response.delivered_at,
        estimated_delivery=response.estimated_delivery,
    )


def coerce_status(raw: str) -> str:
    """Map free-text status from storefronts or admins onto shipment statuses."""
    return normalize_status(raw)


class ShipmentTracker:
    def __init__(
        self,
        db: Session,
        provider: TrackingProvider | None = None,
        throttle: Throttle | None = None,
    ) -> None:
        self.db = db
        self.provider = provider or get_tracking_provider()
        self.throttle = throttle or Throttle(settings.TRACKING_REQUESTS_PER_MINUTE)

    def get_live_tracking(self, shipment: Shipment) -> TrackingResponse:
        if not shipment.tracking_number:
            raise TrackingProviderError("Shipment has no tracking number")
        return self.provider.get_live_tracking(shipment.tracking_number, shipment.carrier)

    def refresh(self, shipment: Shipment, *, now: datetime | None = None) -> RefreshResult:
        """Fetch live status for one shipment and persist it only if it changed.

        Provider errors propagate; ``refresh_all`` is the tolerant variant.
        """
        now = now or utcnow()
        response = self.get_live_tracking(shipment)
        changed = apply_tracking_response(shipment, response, now=now)
        if changed:
            self.db.commit()
            self.db.refresh(shipment)
            logger.info(
                "shipment.status_changed",
                extra={"shipment_id": shipment.id, "status": shipment.status},
            )
        tracking_refresh_total.labels("changed" if changed else "unchanged").inc()
        return RefreshResult(shipment_id=shipment.id, ok=True, changed=changed, status=shipment.status)

    def refresh_all(self, *, now: datetime | None = None) -> list[RefreshResult]:
        results: list[RefreshResult] = []
        for shipment in list_trackable_shipments(self.db):
            shipment_id = shipment.id
            self.throttle.wait()
            try:
                results.append(self.refresh(shipment, now=now))
            except TrackingTimeout as exc:
                self.db.rollback()
                tracking_refresh_total.labels("timeout").inc()
                logger.warning("shipment.refresh_timeout", extra={"shipment_id": shipment_id})
                results.append(RefreshResult(shipment_id=shipment_id, ok=False, error=str(exc)))
            except TrackingProviderError as exc:
                self.db.rollback()
                tracking_refresh_total.labels("error").inc()
                logger.warning(
                    "shipment.refresh_failed",
                    extra={"shipment_id": shipment_id, "error": str(exc)},
                )
                results.append(RefreshResult(shipment_id=shipment_id, ok=False, error=str(exc)))
        logger.info(
            "shipment.refresh_completed",
            extra={
                "total": len(results),
                "updated": sum(1 for result in results if result.changed),
                "failed": sum(1 for result in results if not result.ok),
            },
        )
        return results
