"""Authenticate signed storefront webhooks.

Checks run in a fixed order: required fields, site lookup, timestamp window,
nonce claim, secret decryption, then the HMAC itself. Once the nonce has been
claimed it stays consumed even if a later check rejects the request, so a
captured request can never be retried with the same nonce.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from orderhub.core.config import settings
from orderhub.core.crypto import decrypt_secret
from orderhub.core.metrics import webhook_auth_total
from orderhub.core.signing import verify_signature
from orderhub.core.time import from_unix, to_unix, utcnow
from orderhub.crud.nonces import claim_nonce
from orderhub.crud.sites import get_active_site_by_api_key
from orderhub.schemas.webhooks import WebhookEnvelope
from orderhub.webhooks.errors import (
    InvalidCredentials,
    InvalidSignature,
    MissingFields,
    ReplayedNonce,
    StaleTimestamp,
    WebhookAuthError,
)


logger = logging.getLogger(__name__)

# Builds the signed base string from (api_key, timestamp, nonce).
SignatureBaseBuilder = Callable[[str, int, str], str]


@dataclass(frozen=True)
class AuthenticatedSite:
    site_id: int
    api_key: str
    name: str


def _nonce_expiry(now: datetime, timestamp: int) -> datetime:
    # Keep the nonce at least until the request itself could no longer pass
    # the timestamp check, even when the sender's clock runs ahead.
    ttl_expiry = now + timedelta(minutes=settings.NONCE_TTL_MINUTES)
    window_expiry = from_unix(timestamp) + timedelta(seconds=settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS)
    return max(ttl_expiry, window_expiry)


def _check(db: Session, envelope: WebhookEnvelope, build_base: SignatureBaseBuilder, now: datetime) -> AuthenticatedSite:
    if not envelope.site_api_key or not envelope.nonce or not envelope.signature or envelope.timestamp == 0:
        raise MissingFields()

    site = get_active_site_by_api_key(db, envelope.site_api_key)
    if site is None:
        raise InvalidCredentials()

    skew = abs(to_unix(now) - envelope.timestamp)
    if skew > settings.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS:
        raise StaleTimestamp()

    claimed = claim_nonce(
        db,
        site_id=site.id,
        nonce=envelope.nonce,
        issued_at=now,
        expires_at=_nonce_expiry(now, envelope.timestamp),
    )
    if not claimed:
        raise ReplayedNonce()

    try:
        secret = decrypt_secret(site.api_secret_encrypted)
    except ValueError:
        logger.error("webhook.secret_undecryptable", extra={"site_id": site.id})
        raise InvalidCredentials() from None

    base = build_base(site.api_key, envelope.timestamp, envelope.nonce)
    if not verify_signature(base, envelope.signature, secret):
        raise InvalidSignature()

    return AuthenticatedSite(site_id=site.id, api_key=site.api_key, name=site.name)


def authenticate_webhook(
    db: Session,
    envelope: WebhookEnvelope,
    build_base: SignatureBaseBuilder,
    *,
    now: datetime | None = None,
) -> AuthenticatedSite:
    now = now or utcnow()
    try:
        context = _check(db, envelope, build_base, now)
    except WebhookAuthError as exc:
        webhook_auth_total.labels(exc.code).inc()
        logger.warning("webhook.rejected", extra={"error_code": exc.code})
        raise
    webhook_auth_total.labels("ok").inc()
    return context
