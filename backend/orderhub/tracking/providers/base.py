from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from orderhub.core.time import normalize_ts
from orderhub.models.enums import ShipmentStatusEnum


class TrackingProviderError(Exception):
    """Carrier API failed or returned something unusable."""


class TrackingTimeout(TrackingProviderError):
    """Carrier API did not answer within the configured timeout."""


class TrackingNotConfigured(TrackingProviderError):
    """The selected provider has no API key."""


@dataclass(frozen=True)
class TrackingEvent:
    status: str
    occurred_at: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None


@dataclass
class TrackingResponse:
    status: str
    current_location: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    is_delivered: bool = False
    events: list[TrackingEvent] = field(default_factory=list)
    has_exception: bool = False
    exception_message: Optional[str] = None


# Carrier vocabularies collapse onto the shipment statuses we store. Keys are
# lowercased with separators removed.
_STATUS_ALIASES = {
    "pending": ShipmentStatusEnum.PENDING,
    "notfound": ShipmentStatusEnum.PENDING,
    "inforeceived": ShipmentStatusEnum.PENDING,
    "shipped": ShipmentStatusEnum.SHIPPED,
    "pickedup": ShipmentStatusEnum.SHIPPED,
    "intransit": ShipmentStatusEnum.IN_TRANSIT,
    "transit": ShipmentStatusEnum.IN_TRANSIT,
    "outfordelivery": ShipmentStatusEnum.OUT_FOR_DELIVERY,
    "availableforpickup": ShipmentStatusEnum.OUT_FOR_DELIVERY,
    "pickup": ShipmentStatusEnum.OUT_FOR_DELIVERY,
    "delivered": ShipmentStatusEnum.DELIVERED,
    "exception": ShipmentStatusEnum.EXCEPTION,
    "attemptfail": ShipmentStatusEnum.EXCEPTION,
    "deliveryfailure": ShipmentStatusEnum.EXCEPTION,
    "undelivered": ShipmentStatusEnum.EXCEPTION,
    "expired": ShipmentStatusEnum.EXCEPTION,
    "alert": ShipmentStatusEnum.EXCEPTION,
    "returned": ShipmentStatusEnum.RETURNED,
    "returntosender": ShipmentStatusEnum.RETURNED,
}


def normalize_status(raw: Any) -> str:
    if raw is None:
        return ShipmentStatusEnum.UNKNOWN.value
    key = "".join(ch for ch in str(raw).lower() if ch.isalnum())
    status = _STATUS_ALIASES.get(key)
    return status.value if status else ShipmentStatusEnum.UNKNOWN.value


def parse_datetime(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(cleaned)
    except ValueError:
        return None
    return normalize_ts(parsed)


class TrackingProvider:
    name = "base"

    def get_live_tracking(self, tracking_number: str, carrier: str | None) -> TrackingResponse:
        raise NotImplementedError
