from __future__ import annotations

import argparse
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from orderhub.core.db import SessionLocal
from orderhub.core.logging import configure_logging
from orderhub.core.time import utcnow
from orderhub.crud.nonces import purge_expired_nonces


logger = logging.getLogger(__name__)


def run_nonce_cleanup(db: Session, *, now: datetime | None = None) -> int:
    """Delete nonces past their replay window. Safe to run at any time."""
    deleted = purge_expired_nonces(db, now=now or utcnow())
    logger.info("nonce_cleanup.completed", extra={"deleted": deleted})
    return deleted


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Purge expired webhook nonces.")
    return parser.parse_args()


def main() -> None:
    configure_logging()
    _parse_args()
    with SessionLocal() as db:
        run_nonce_cleanup(db)


if __name__ == "__main__":
    main()
