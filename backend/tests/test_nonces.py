import os
import threading
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

import orderhub.core.db as db_module
import orderhub.models  # noqa: F401
from orderhub.core.db import Base
from orderhub.core.time import utcnow
from orderhub.crud.nonces import claim_nonce, count_nonces, purge_expired_nonces
from orderhub.jobs.nonce_cleanup import run_nonce_cleanup
from tests.factories import make_site


def _setup_db(db_url: str):
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    db_module.engine = engine
    db_module.SessionLocal = SessionLocal
    Base.metadata.create_all(bind=engine)
    return SessionLocal


def _claim(db, site_id, nonce, now=None):
    now = now or utcnow()
    return claim_nonce(
        db,
        site_id=site_id,
        nonce=nonce,
        issued_at=now,
        expires_at=now + timedelta(minutes=15),
    )


def test_claim_nonce_once_per_site():
    SessionLocal = _setup_db(f"sqlite:///./nonces_{uuid4().hex}.db")
    with SessionLocal() as db:
        site_a, _ = make_site(db)
        site_b, _ = make_site(db)
        assert _claim(db, site_a.id, "n-1") is True
        assert _claim(db, site_a.id, "n-1") is False
        # Nonces are scoped per site.
        assert _claim(db, site_b.id, "n-1") is True
        assert count_nonces(db, site_id=site_a.id) == 1


def test_concurrent_claims_admit_exactly_one():
    SessionLocal = _setup_db(f"sqlite:///./nonces_race_{uuid4().hex}.db")
    with SessionLocal() as db:
        site, _ = make_site(db)
        site_id = site.id

    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def worker():
        with SessionLocal() as db:
            barrier.wait()
            claimed = _claim(db, site_id, "race-nonce")
        with lock:
            results.append(claimed)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(results) == [False, True]
    with SessionLocal() as db:
        assert count_nonces(db, site_id=site_id) == 1


def test_purge_removes_only_expired_nonces():
    SessionLocal = _setup_db(f"sqlite:///./nonces_purge_{uuid4().hex}.db")
    now = utcnow()
    with SessionLocal() as db:
        site, _ = make_site(db)
        _claim(db, site.id, "old", now=now - timedelta(hours=1))
        _claim(db, site.id, "fresh", now=now)
        assert purge_expired_nonces(db, now=now) == 1
        assert count_nonces(db, site_id=site.id) == 1
        assert run_nonce_cleanup(db, now=now + timedelta(hours=1)) == 1
        assert count_nonces(db, site_id=site.id) == 0
