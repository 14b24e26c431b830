import logging
import os
from datetime import datetime
from decimal import Decimal
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
from orderhub.allocation.formulas import compute_order_profit
from orderhub.allocation.payouts import OrderNotFoundError, calculate_order_profit, update_payout_status
from orderhub.core.config import settings
from orderhub.core.db import Base
from orderhub.crud.allocations import get_order_profit
from tests.factories import ADMIN_HEADERS, ADMIN_KEY, make_order, make_site


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


def _seed_order(SessionLocal, **overrides) -> int:
    with SessionLocal() as db:
        site, _ = make_site(db)
        return make_order(db, site=site, **overrides).order_id


@pytest.mark.parametrize(
    "status,net_profit,margin",
    [
        ("paid", "72.00", "72.00"),
        ("refunded", "-123.00", "-100.00"),
        ("processing", "-23.00", "0.00"),
        ("on-hold", "-23.00", "0.00"),
    ],
)
def test_profit_formula_per_status(status, net_profit, margin):
    breakdown = compute_order_profit(
        order_total=Decimal("100.00"),
        product_cost=Decimal("20.00"),
        gateway_cost_percentage=Decimal("3"),
        operational_cost=Decimal("5.00"),
        payout_status=status,
    )
    assert breakdown.gateway_cost == Decimal("3.00")
    assert breakdown.total_costs == Decimal("28.00")
    assert breakdown.net_profit == Decimal(net_profit)
    assert breakdown.profit_margin == Decimal(margin)


def test_paid_margin_on_zero_total_is_zero():
    breakdown = compute_order_profit(
        order_total=Decimal("0"),
        product_cost=Decimal("0"),
        gateway_cost_percentage=Decimal("0"),
        operational_cost=Decimal("5.00"),
        payout_status="paid",
    )
    assert breakdown.net_profit == Decimal("-5.00")
    assert breakdown.profit_margin == Decimal("0.00")


def test_payout_date_is_stamped_on_paid_and_never_cleared():
    SessionLocal = _setup_db(f"sqlite:///./profit_payout_{uuid4().hex}.db")
    order_id = _seed_order(SessionLocal)
    first_paid = datetime(2024, 3, 2, 9, 0, 0)
    second_paid = datetime(2024, 3, 5, 9, 0, 0)

    with SessionLocal() as db:
        profit = calculate_order_profit(
            db,
            order_id=order_id,
            product_cost=Decimal("20"),
            gateway_cost_percentage=Decimal("3"),
        )
        assert profit.payout_status == "processing"
        assert profit.payout_date is None
        assert profit.net_profit == Decimal("-23.00")

        profit = update_payout_status(db, order_id=order_id, payout_status="PAID", now=first_paid)
        assert profit.payout_status == "paid"
        assert profit.payout_date == first_paid
        assert profit.net_profit == Decimal("72.00")
        assert profit.profit_margin == Decimal("72.00")

        profit = update_payout_status(db, order_id=order_id, payout_status="processing")
        assert profit.payout_date == first_paid
        assert profit.net_profit == Decimal("-23.00")

        profit = update_payout_status(db, order_id=order_id, payout_status="paid", now=second_paid)
        assert profit.payout_date == second_paid

        profit = update_payout_status(db, order_id=order_id, payout_status="refunded")
        assert profit.payout_date == second_paid
        assert profit.net_profit == Decimal("-123.00")
        assert profit.profit_margin == Decimal("-100.00")


def test_status_update_without_profit_row_creates_one():
    SessionLocal = _setup_db(f"sqlite:///./profit_synth_{uuid4().hex}.db")
    order_id = _seed_order(SessionLocal)

    with SessionLocal() as db:
        assert get_order_profit(db, order_id) is None
        profit = update_payout_status(db, order_id=order_id, payout_status="paid")
        assert profit.product_cost == Decimal("0.00")
        assert profit.gateway_cost_percentage == Decimal("0.00")
        assert profit.operational_cost == Decimal("5.00")
        assert profit.net_profit == Decimal("95.00")
        assert profit.profit_margin == Decimal("95.00")
        assert profit.is_calculated is True


def test_unknown_order_raises():
    SessionLocal = _setup_db(f"sqlite:///./profit_missing_{uuid4().hex}.db")
    with SessionLocal() as db:
        with pytest.raises(OrderNotFoundError):
            update_payout_status(db, order_id=999, payout_status="paid")


def test_resync_recomputes_existing_profit():
    SessionLocal = _setup_db(f"sqlite:///./profit_resync_{uuid4().hex}.db")
    with SessionLocal() as db:
        site, _ = make_site(db)
        order_id = make_order(db, site=site, wc_order_id="42").order_id
        calculate_order_profit(
            db,
            order_id=order_id,
            product_cost=Decimal("20"),
            gateway_cost_percentage=Decimal("3"),
            payout_status="paid",
        )
        result = make_order(db, site=site, wc_order_id="42", order_total="200.00")
        assert result.warnings == []

        profit = get_order_profit(db, order_id)
        assert profit.gateway_cost == Decimal("6.00")
        assert profit.total_costs == Decimal("31.00")
        assert profit.net_profit == Decimal("169.00")
        assert profit.profit_margin == Decimal("84.50")


def test_profit_endpoints():
    SessionLocal = _setup_db(f"sqlite:///./profit_api_{uuid4().hex}.db")
    order_id = _seed_order(SessionLocal)

    resp = client.get(f"/api/v1/profit/{order_id}", headers=ADMIN_HEADERS)
    assert resp.status_code == 404

    resp = client.post(
        "/api/v1/profit/calculate",
        json={"order_id": order_id, "product_cost": "20", "gateway_cost_percentage": "3", "notes": "wholesale"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["payout_status"] == "processing"
    assert Decimal(body["net_profit"]) == Decimal("-23.00")
    assert body["notes"] == "wholesale"

    resp = client.put(f"/api/v1/profit/{order_id}/status", json={"payout_status": "paid"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    assert Decimal(resp.json()["net_profit"]) == Decimal("72.00")
    assert resp.json()["payout_date"] is not None

    resp = client.get("/api/v1/profit/stats", headers=ADMIN_HEADERS)
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["order_count"] == 1
    assert Decimal(stats["total_net_profit"]) == Decimal("72.00")
    assert stats["by_status"][0]["payout_status"] == "paid"

    resp = client.post(
        "/api/v1/profit/calculate",
        json={"order_id": order_id, "product_cost": "-1"},
        headers=ADMIN_HEADERS,
    )
    assert resp.status_code == 422

    resp = client.put("/api/v1/profit/9999/status", json={"payout_status": "paid"}, headers=ADMIN_HEADERS)
    assert resp.status_code == 404


def test_profit_endpoints_require_admin_key():
    _setup_db(f"sqlite:///./profit_auth_{uuid4().hex}.db")
    assert client.get("/api/v1/profit/stats").status_code == 401
    assert client.get("/api/v1/profit/stats", headers={"X-Admin-Key": "nope"}).status_code == 401


def test_calculation_log_marks_new_rows():
    SessionLocal = _setup_db(f"sqlite:///./profit_logging_{uuid4().hex}.db")
    order_id = _seed_order(SessionLocal)
    records = []

    class Collector(logging.Handler):
        def emit(self, record):
            records.append(record)

    payouts_logger = logging.getLogger("orderhub.allocation.payouts")
    collector = Collector(level=logging.INFO)
    payouts_logger.addHandler(collector)
    try:
        with SessionLocal() as db:
            calculate_order_profit(db, order_id=order_id, product_cost=Decimal("20"), gateway_cost_percentage=Decimal("3"))
            calculate_order_profit(db, order_id=order_id, product_cost=Decimal("25"), gateway_cost_percentage=Decimal("3"))
    finally:
        payouts_logger.removeHandler(collector)

    calculated = [record for record in records if record.getMessage() == "profit.calculated"]
    assert [record.row_created for record in calculated] == [True, False]
