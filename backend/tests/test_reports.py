import os
from decimal import Decimal
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

from orderhub.main import app
import orderhub.core.db as db_module
from orderhub.core.config import settings
from orderhub.core.db import Base
from orderhub.models.enums import ShareTypeEnum
from tests.factories import (
    ADMIN_HEADERS,
    ADMIN_KEY,
    make_gateway,
    make_gateway_partner,
    make_order,
    make_partner,
    make_site,
    make_site_partner,
)


client = TestClient(app)
settings.ADMIN_API_KEY = ADMIN_KEY


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


def _seed_report_data(SessionLocal):
    with SessionLocal() as db:
        site, _ = make_site(db)
        gateway = make_gateway(db, gateway_code="stripe", fees_percentage="2.9")
        partner = make_partner(db, name="Gateway Partner")
        make_gateway_partner(db, gateway=gateway, partner=partner, assignment_percentage="50")

        make_order(db, site=site, payment_gateway_code="stripe", order_total="100.00", placed_at="2024-03-01T10:00:00Z")
        make_order(db, site=site, payment_gateway_code="stripe", order_total="50.00", placed_at="2024-03-10T10:00:00Z")
        make_order(db, site=site, payment_gateway_code="cod", order_total="20.00", placed_at="2024-03-11T10:00:00Z")
        make_order(db, site=site, payment_gateway_code="stripe", order_total="999.00", placed_at="2024-05-01T10:00:00Z")
        return site.id, partner.id


def test_gateway_partner_revenue_report():
    SessionLocal = _setup_db(f"sqlite:///./reports_gateway_{uuid4().hex}.db")
    _, partner_id = _seed_report_data(SessionLocal)

    resp = client.get(
        "/api/v1/reports/gateway-partner-revenue",
        params={"start": "2024-03-01T00:00:00", "end": "2024-03-31T23:59:59"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    report = resp.json()
    assert Decimal(report["total_revenue"]) == Decimal("170.00")
    assert Decimal(report["total_fees"]) == Decimal("4.35")

    gateways = {item["gateway_code"]: item for item in report["gateways"]}
    stripe = gateways["stripe"]
    assert stripe["order_count"] == 2
    assert Decimal(stripe["total_fees"]) == Decimal("4.35")
    assert Decimal(stripe["net_revenue"]) == Decimal("145.65")
    assert stripe["partners"][0]["partner_id"] == partner_id
    # 48.55 + 24.28, each order's share rounded on its own.
    assert Decimal(stripe["partners"][0]["revenue_share"]) == Decimal("72.83")

    unmapped = gateways["unmapped"]
    assert unmapped["order_count"] == 1
    assert Decimal(unmapped["total_fees"]) == Decimal("0.00")
    assert unmapped["partners"] == []


def test_report_rejects_inverted_range():
    _setup_db(f"sqlite:///./reports_range_{uuid4().hex}.db")
    resp = client.get(
        "/api/v1/reports/gateway-partner-revenue",
        params={"start": "2024-04-01T00:00:00", "end": "2024-03-01T00:00:00"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 400


def test_partner_earnings_and_dashboard():
    SessionLocal = _setup_db(f"sqlite:///./reports_partner_{uuid4().hex}.db")
    with SessionLocal() as db:
        site, _ = make_site(db)
        other_site, _ = make_site(db)
        partner = make_partner(db)
        make_site_partner(db, site=site, partner=partner, share_type=ShareTypeEnum.REVENUE, share_percentage="10")
        make_order(db, site=site, order_total="100.00")
        make_order(db, site=site, order_total="40.00", status="shipped")
        make_order(db, site=other_site, order_total="500.00")
        site_id, partner_id = site.id, partner.id

    resp = client.get(f"/api/v1/reports/partners/{partner_id}/earnings", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    earnings = resp.json()
    assert earnings["order_count"] == 2
    assert Decimal(earnings["total"]) == Decimal("14.00")
    assert Decimal(earnings["unpaid"]) == Decimal("14.00")
    assert Decimal(earnings["paid"]) == Decimal("0.00")

    assert client.get("/api/v1/reports/partners/9999/earnings", headers=ADMIN_HEADERS).status_code == 404

    resp = client.get("/api/v1/dashboard/stats", params={"site_id": site_id}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["order_count"] == 2
    assert Decimal(stats["total_revenue"]) == Decimal("140.00")
    assert stats["partner_order_count"] == 2
    assert stats["shipments_by_status"] == {"pending": 1}

    overall = client.get("/api/v1/dashboard/stats", headers=ADMIN_HEADERS).json()
    assert overall["order_count"] == 3
    assert Decimal(overall["total_revenue"]) == Decimal("640.00")
