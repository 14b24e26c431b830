from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from orderhub.core.db import SessionLocal
from orderhub.core.logging import configure_logging
from orderhub.core.rate_limit import Throttle
from orderhub.tracking.service import RefreshResult, ShipmentTracker


logger = logging.getLogger(__name__)


def run_tracking_refresh(db: Session, *, requests_per_minute: int | None = None) -> list[RefreshResult]:
    throttle = Throttle(requests_per_minute) if requests_per_minute else None
    tracker = ShipmentTracker(db, throttle=throttle)
    results = tracker.refresh_all()
    failed = [result.shipment_id for result in results if not result.ok]
    if failed:
        logger.warning("Tracking refresh failed for shipments %s", failed)
    return results


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Refresh carrier status for every trackable shipment.")
    parser.add_argument(
        "--requests-per-minute",
        type=int,
        default=None,
        help="Override the carrier quota used to space requests.",
    )
    return parser.parse_args()


def main() -> None:
    configure_logging()
    args = _parse_args()
    with SessionLocal() as db:
        run_tracking_refresh(db, requests_per_minute=args.requests_per_minute)


if __name__ == "__main__":
    main()
