from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orderhub.api.deps import require_admin
from orderhub.core.db import get_db
from orderhub.core.time import normalize_ts
from orderhub.reports.dashboard import dashboard_stats
from orderhub.reports.revenue import gateway_partner_revenue_report, partner_earnings_report
from orderhub.schemas.reports import DashboardStatsRead, GatewayPartnerRevenueReport, PartnerEarningsRead


router = APIRouter(prefix="/api/v1", tags=["reports"], dependencies=[Depends(require_admin)])


def _normalize_range(start: datetime | None, end: datetime | None) -> tuple[datetime | None, datetime | None]:
    start, end = normalize_ts(start), normalize_ts(end)
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must be before end")
    return start, end


@router.get("/reports/gateway-partner-revenue", response_model=GatewayPartnerRevenueReport)
def gateway_partner_revenue_endpoint(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    site_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    start, end = _normalize_range(start, end)
    return gateway_partner_revenue_report(db, start=start, end=end, site_id=site_id)


@router.get("/reports/partners/{partner_id}/earnings", response_model=PartnerEarningsRead)
def partner_earnings_endpoint(partner_id: int, db: Session = Depends(get_db)):
    report = partner_earnings_report(db, partner_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Partner not found")
    return report


@router.get("/dashboard/stats", response_model=DashboardStatsRead)
def dashboard_stats_endpoint(site_id: Optional[int] = None, db: Session = Depends(get_db)):
    return dashboard_stats(db, site_id=site_id)
