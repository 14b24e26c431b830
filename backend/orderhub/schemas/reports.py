from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class GatewayPartnerShareRead(BaseModel):
    partner_id: int
    partner_name: str
    assignment_percentage: Decimal
    revenue_share: Decimal


class GatewayRevenueRead(BaseModel):
    gateway_code: str
    gateway_name: Optional[str] = None
    order_count: int
    total_revenue: Decimal
    total_fees: Decimal
    net_revenue: Decimal
    partners: list[GatewayPartnerShareRead]


class GatewayPartnerRevenueReport(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    total_revenue: Decimal
    total_fees: Decimal
    gateways: list[GatewayRevenueRead]


class PartnerEarningsRead(BaseModel):
    partner_id: int
    partner_name: str
    order_count: int
    total: Decimal
    paid: Decimal
    unpaid: Decimal


class DashboardStatsRead(BaseModel):
    site_id: Optional[int] = None
    order_count: int
    total_revenue: Decimal
    partner_order_count: int
    shipments_by_status: dict[str, int]
