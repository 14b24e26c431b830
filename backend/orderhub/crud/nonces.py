from __future__ import annotations

from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderhub.models.request_nonces import RequestNonce


def claim_nonce(
    db: Session,
    *,
    site_id: int,
    nonce: str,
    issued_at: datetime,
    expires_at: datetime,
) -> bool:
    """Insert (site_id, nonce) and commit; return False if it already exists.

    The unique constraint decides, so two concurrent claims of the same pair
    cannot both succeed. The row is committed immediately and survives any
    later failure in the caller's request.
    """
    record = RequestNonce(
        site_id=site_id,
        nonce=nonce,
        issued_at=issued_at,
        expires_at=expires_at,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False
    return True


def purge_expired_nonces(db: Session, *, now: datetime) -> int:
    deleted = (
        db.query(RequestNonce)
        .filter(RequestNonce.expires_at < now)
        .delete(synchronize_session=False)
    )
    db.commit()
    return int(deleted or 0)


def count_nonces(db: Session, *, site_id: int) -> int:
    return db.query(RequestNonce).filter(RequestNonce.site_id == site_id).count()
