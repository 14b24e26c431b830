from __future__ import annotations

import logging
from typing import Any

import requests

from orderhub.tracking.providers.base import (
    TrackingEvent,
    TrackingNotConfigured,
    TrackingProvider,
    TrackingProviderError,
    TrackingResponse,
    TrackingTimeout,
    normalize_status,
    parse_datetime,
)


logger = logging.getLogger(__name__)


def parse_aftership_response(data: dict[str, Any]) -> TrackingResponse:
    if not isinstance(data, dict):
        raise TrackingProviderError("Unexpected AfterShip response")
    trackings = (data.get("data") or {}).get("trackings") or []
    if not trackings:
        raise TrackingProviderError("Tracking number not found")
    tracking = trackings[0]
    delivered_at = parse_datetime(tracking.get("shipment_delivery_date"))
    status = normalize_status(tracking.get("tag"))
    events = [
        TrackingEvent(
            status=normalize_status(checkpoint.get("tag")),
            occurred_at=parse_datetime(checkpoint.get("checkpoint_time")),
            description=checkpoint.get("message"),
            location=checkpoint.get("location"),
        )
        for checkpoint in tracking.get("checkpoints") or []
    ]
    exception_message = tracking.get("exception") or None
    return TrackingResponse(
        status=status,
        current_location=tracking.get("destination_raw_location") or None,
        estimated_delivery=parse_datetime(tracking.get("expected_delivery")),
        delivered_at=delivered_at,
        is_delivered=delivered_at is not None or status == "delivered",
        events=events,
        has_exception=bool(exception_message) or status == "exception",
        exception_message=exception_message,
    )


class AfterShipProvider(TrackingProvider):
    name = "aftership"

    def __init__(self, api_key: str | None, base_url: str, timeout: float, session: requests.Session | None = None) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_live_tracking(self, tracking_number: str, carrier: str | None) -> TrackingResponse:
        if not self.api_key:
            raise TrackingNotConfigured("AfterShip API key not configured")
        try:
            resp = self.session.get(
                f"{self.base_url}/trackings",
                params={"tracking_number": tracking_number},
                headers={"aftership-api-key": self.api_key},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TrackingTimeout("AfterShip request timed out") from exc
        except requests.RequestException as exc:
            raise TrackingProviderError("AfterShip request failed") from exc
        if resp.status_code >= 400:
            logger.error("tracking.aftership_error", extra={"status_code": resp.status_code})
            raise TrackingProviderError(f"AfterShip returned status {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise TrackingProviderError("AfterShip returned invalid JSON") from exc
        try:
            return parse_aftership_response(data)
        except (AttributeError, TypeError, KeyError, ValueError) as exc:
            raise TrackingProviderError("AfterShip returned a malformed tracking payload") from exc
