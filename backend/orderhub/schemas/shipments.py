from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ShipmentCreate(BaseModel):
    order_id: int
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    tracking_url: Optional[str] = None
    shipped_at: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    notes: Optional[str] = None


class ShipmentStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=32)


class ShipmentRead(BaseModel):
    id: int
    order_id: int
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    status: str
    tracking_url: Optional[str] = None
    shipped_at: Optional[datetime] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TrackingEventRead(BaseModel):
    occurred_at: Optional[datetime] = None
    status: str
    description: Optional[str] = None
    location: Optional[str] = None


class LiveTrackingRead(BaseModel):
    status: str
    current_location: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    is_delivered: bool
    events: list[TrackingEventRead]
    has_exception: bool
    exception_message: Optional[str] = None


class RefreshResultRead(BaseModel):
    shipment_id: int
    ok: bool
    changed: bool
    status: Optional[str] = None
    error: Optional[str] = None


class RefreshSummaryRead(BaseModel):
    total: int
    updated: int
    failed: int
    results: list[RefreshResultRead]
