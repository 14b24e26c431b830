import os
from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

from orderhub.main import app
import orderhub.core.db as db_module
from orderhub.core.db import Base
from orderhub.core.signing import build_order_signature_base, compute_signature
from orderhub.core.time import to_unix, utcnow
from orderhub.crud.nonces import count_nonces
from orderhub.crud.sites import deactivate_site
from orderhub.schemas.webhooks import WebhookEnvelope
from orderhub.webhooks import (
    InvalidCredentials,
    InvalidSignature,
    MissingFields,
    ReplayedNonce,
    StaleTimestamp,
    authenticate_webhook,
)
from tests.factories import make_site, order_fields, signed_order_body


client = TestClient(app)


def _setup_db(db_url: str):
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
        future=True,
    )
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    Base.metadata.create_all(bind=engine)
    return SessionLocal


def _envelope(site, secret, *, timestamp, nonce=None, signature=None):
    nonce = nonce or uuid4().hex
    base = build_order_signature_base(site.api_key, timestamp, nonce, "1001", "10.00")
    return WebhookEnvelope(
        site_api_key=site.api_key,
        nonce=nonce,
        timestamp=timestamp,
        signature=signature if signature is not None else compute_signature(base, secret),
    )


def _order_base(api_key, timestamp, nonce):
    return build_order_signature_base(api_key, timestamp, nonce, "1001", "10.00")


def test_authenticate_valid_request():
    SessionLocal = _setup_db(f"sqlite:///./webhook_auth_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        context = authenticate_webhook(db, _envelope(site, secret, timestamp=to_unix(now)), _order_base, now=now)
        assert context.site_id == site.id
        assert context.api_key == site.api_key
        assert count_nonces(db, site_id=site.id) == 1


@pytest.mark.parametrize(
    "field",
    ["site_api_key", "nonce", "signature", "timestamp"],
)
def test_missing_fields_rejected_before_lookup(field):
    SessionLocal = _setup_db(f"sqlite:///./webhook_missing_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        envelope = _envelope(site, secret, timestamp=to_unix(now))
        envelope = envelope.model_copy(update={field: 0 if field == "timestamp" else ""})
        with pytest.raises(MissingFields):
            authenticate_webhook(db, envelope, _order_base, now=now)
        assert count_nonces(db, site_id=site.id) == 0


def test_unknown_and_inactive_sites_look_the_same():
    SessionLocal = _setup_db(f"sqlite:///./webhook_creds_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        envelope = _envelope(site, secret, timestamp=to_unix(now))
        unknown = envelope.model_copy(update={"site_api_key": "f" * 32})
        with pytest.raises(InvalidCredentials) as unknown_exc:
            authenticate_webhook(db, unknown, _order_base, now=now)

        deactivate_site(db, site)
        with pytest.raises(InvalidCredentials) as inactive_exc:
            authenticate_webhook(db, envelope, _order_base, now=now)

        assert unknown_exc.value.to_payload() == inactive_exc.value.to_payload()
        assert count_nonces(db, site_id=site.id) == 0


@pytest.mark.parametrize("skew,accepted", [(599, True), (-599, True), (600, True), (601, False), (-601, False)])
def test_timestamp_window(skew, accepted):
    SessionLocal = _setup_db(f"sqlite:///./webhook_window_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        envelope = _envelope(site, secret, timestamp=to_unix(now) + skew)
        if accepted:
            authenticate_webhook(db, envelope, _order_base, now=now)
            assert count_nonces(db, site_id=site.id) == 1
        else:
            with pytest.raises(StaleTimestamp):
                authenticate_webhook(db, envelope, _order_base, now=now)
            assert count_nonces(db, site_id=site.id) == 0


def test_replayed_nonce_rejected():
    SessionLocal = _setup_db(f"sqlite:///./webhook_replay_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        envelope = _envelope(site, secret, timestamp=to_unix(now), nonce="same-nonce")
        authenticate_webhook(db, envelope, _order_base, now=now)
        later = now + timedelta(seconds=30)
        with pytest.raises(ReplayedNonce):
            authenticate_webhook(db, envelope, _order_base, now=later)


def test_bad_signature_still_consumes_nonce():
    SessionLocal = _setup_db(f"sqlite:///./webhook_sig_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, secret = make_site(db)
        forged = _envelope(site, "not-the-secret", timestamp=to_unix(now), nonce="n-forged")
        with pytest.raises(InvalidSignature):
            authenticate_webhook(db, forged, _order_base, now=now)
        assert count_nonces(db, site_id=site.id) == 1

        # The genuine request with the burned nonce is now a replay.
        genuine = _envelope(site, secret, timestamp=to_unix(now), nonce="n-forged")
        with pytest.raises(ReplayedNonce):
            authenticate_webhook(db, genuine, _order_base, now=now)


def test_sync_endpoint_error_shapes():
    SessionLocal = _setup_db(f"sqlite:///./webhook_api_{uuid4().hex}.db")
    with SessionLocal() as db:
        site, secret = make_site(db)
        api_key = site.api_key

    resp = client.post("/api/v1/orders/sync", json={"order": order_fields("1")})
    assert resp.status_code == 400
    assert resp.json()["ok"] is False
    assert resp.json()["error"] == "missing_fields"
    assert resp.headers["X-Error-Code"] == "missing_fields"

    body = signed_order_body(api_key, secret, order_fields("1"))
    body["signature"] = compute_signature("tampered", secret)
    resp = client.post("/api/v1/orders/sync", json=body)
    assert resp.status_code == 401
    assert resp.json()["error"] == "invalid_signature"

    stale = signed_order_body(api_key, secret, order_fields("1"), timestamp=to_unix(utcnow()) - 3600)
    resp = client.post("/api/v1/orders/sync", json=stale)
    assert resp.status_code == 401
    assert resp.json()["error"] == "stale_timestamp"

    good = signed_order_body(api_key, secret, order_fields("1"))
    assert client.post("/api/v1/orders/sync", json=good).status_code == 200
    replay = client.post("/api/v1/orders/sync", json=good)
    assert replay.status_code == 401
    assert replay.json()["error"] == "replayed_nonce"


def test_non_object_body_is_invalid_payload():
    _setup_db(f"sqlite:///./webhook_body_{uuid4().hex}.db")
    resp = client.post("/api/v1/orders/sync", content=b"[1, 2, 3]", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_payload"

    resp = client.post("/api/v1/orders/sync", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_payload"


def test_wrongly_typed_envelope_is_invalid_payload():
    _setup_db(f"sqlite:///./webhook_types_{uuid4().hex}.db")
    resp = client.post(
        "/api/v1/orders/sync",
        json={"site_api_key": "k", "nonce": "n", "timestamp": "yesterday", "signature": "s"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_payload"
    assert "timestamp" in resp.json()["details"]["fields"]
