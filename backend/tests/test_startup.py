import os
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

from orderhub.main import app
import orderhub.core.db as db_module
from orderhub.core.config import Settings, settings
from orderhub.core.db import Base, DatabaseState, wait_for_database
from orderhub.core.startup_checks import run_startup_checks


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


def test_health_and_metrics():
    _setup_db(f"sqlite:///./startup_health_{uuid4().hex}.db")
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": True}
    assert resp.headers["X-Request-ID"]

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "webhook_auth_total" in metrics.text


def test_health_reports_degraded_database(monkeypatch):
    monkeypatch.setattr("orderhub.main.check_connection", lambda: False)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "degraded", "database": False}


def test_wait_for_database_retries_until_connected(monkeypatch):
    attempts = []

    def flaky_check():
        attempts.append(1)
        if len(attempts) < 3:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    created = []
    sleeps = []
    state = DatabaseState()
    monkeypatch.setattr(db_module, "db_state", state)
    monkeypatch.setattr(db_module, "_ping", flaky_check)

    assert wait_for_database(on_connected=lambda: created.append(True), retry_seconds=5, sleep=sleeps.append)
    assert len(attempts) == 3
    assert sleeps == [5, 5]
    assert created == [True]
    assert state.ready


def test_wait_for_database_gives_up_after_max_attempts(monkeypatch):
    def always_down():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    state = DatabaseState()
    monkeypatch.setattr(db_module, "db_state", state)
    monkeypatch.setattr(db_module, "_ping", always_down)

    assert wait_for_database(retry_seconds=1, max_attempts=2, sleep=lambda _: None) is False
    assert not state.ready
    assert state.last_error


def test_startup_checks_accept_development_defaults(monkeypatch):
    monkeypatch.setattr(settings, "APP_ENV", "development")
    run_startup_checks()


def test_startup_checks_reject_bad_secrets_key(monkeypatch):
    monkeypatch.setattr(settings, "SITE_SECRETS_KEY", "dG9vLXNob3J0")
    with pytest.raises(RuntimeError, match="SITE_SECRETS_KEY"):
        run_startup_checks()


def test_startup_checks_in_production(monkeypatch):
    monkeypatch.setattr(settings, "APP_ENV", "production")
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "short")
    monkeypatch.setattr(settings, "AFTERSHIP_API_KEY", None)
    with pytest.raises(RuntimeError) as excinfo:
        run_startup_checks()
    message = str(excinfo.value)
    assert "ADMIN_API_KEY" in message
    assert "AFTERSHIP_API_KEY" in message
    assert "DATABASE_URL" in message


def test_settings_defaults_keep_business_constants(monkeypatch):
    monkeypatch.setenv("TRACKING_PROVIDER", " 17Track ")
    monkeypatch.setenv("ADMIN_API_KEY", "   ")
    fresh = Settings()
    assert str(fresh.GBP_TO_USD_RATE) == "1.37"
    assert str(fresh.PROFIT_SHARE_COST_RATIO) == "0.70"
    assert fresh.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS == 600
    assert fresh.TRACKING_PROVIDER == "17track"
    assert fresh.ADMIN_API_KEY is None
