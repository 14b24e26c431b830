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


def parse_seventeen_track_response(data: dict[str, Any]) -> TrackingResponse:
    if not isinstance(data, dict):
        raise TrackingProviderError("Unexpected 17track response")
    accepted = (data.get("data") or {}).get("accepted") or []
    if not accepted:
        raise TrackingProviderError("Tracking number not accepted")
    entry = accepted[0]
    delivered_at = parse_datetime(entry.get("delivered_time"))
    status = normalize_status(entry.get("status"))
    events = [
        TrackingEvent(
            status=normalize_status(detail.get("status")),
            occurred_at=parse_datetime(detail.get("time")),
            description=detail.get("description"),
            location=detail.get("location"),
        )
        for detail in entry.get("tracking_detail") or []
    ]
    exception_message = entry.get("exception") or None
    return TrackingResponse(
        status=status,
        current_location=entry.get("location") or None,
        estimated_delivery=parse_datetime(entry.get("estimated_delivery")),
        delivered_at=delivered_at,
        is_delivered=delivered_at is not None or status == "delivered",
        events=events,
        has_exception=bool(exception_message) or status == "exception",
        exception_message=exception_message,
    )


class SeventeenTrackProvider(TrackingProvider):
    name = "17track"

    def __init__(self, api_key: str | None, base_url: str, timeout: float, session: requests.Session | None = None) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_live_tracking(self, tracking_number: str, carrier: str | None) -> TrackingResponse:
        if not self.api_key:
            raise TrackingNotConfigured("17track API key not configured")
        body = {"method": "track", "data": {"number": tracking_number, "carrier": carrier}}
        try:
            resp = self.session.post(
                f"{self.base_url}/track",
                json=body,
                headers={"17token": self.api_key},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TrackingTimeout("17track request timed out") from exc
        except requests.RequestException as exc:
            raise TrackingProviderError("17track request failed") from exc
        if resp.status_code >= 400:
            logger.error("tracking.17track_error", extra={"status_code": resp.status_code})
            raise TrackingProviderError(f"17track returned status {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise TrackingProviderError("17track returned invalid JSON") from exc
        try:
            return parse_seventeen_track_response(data)
        except (AttributeError, TypeError, KeyError, ValueError) as exc:
            raise TrackingProviderError("17track returned a malformed tracking payload") from exc
