from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ProfitCalculateRequest(BaseModel):
    order_id: int
    product_cost: Decimal = Field(default=Decimal("0"), ge=0)
    gateway_cost_percentage: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    payout_status: Optional[str] = Field(default=None, max_length=16)
    notes: Optional[str] = None


class PayoutStatusUpdate(BaseModel):
    payout_status: str = Field(min_length=1, max_length=16)


class OrderProfitRead(BaseModel):
    order_id: int
    product_cost: Decimal
    gateway_cost_percentage: Decimal
    gateway_cost: Decimal
    operational_cost: Decimal
    total_costs: Decimal
    net_profit: Decimal
    profit_margin: Decimal
    payout_status: str
    payout_date: Optional[datetime] = None
    is_calculated: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class PayoutStatusStats(BaseModel):
    payout_status: str
    order_count: int
    net_profit: Decimal


class ProfitStatsRead(BaseModel):
    order_count: int
    total_net_profit: Decimal
    by_status: list[PayoutStatusStats]
