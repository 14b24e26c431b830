from __future__ import annotations

import json
import logging
from decimal import Decimal
from typing import Any, Type, TypeVar

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from orderhub.core.db import get_db
from orderhub.core.metrics import order_sync_total
from orderhub.core.signing import build_order_signature_base, build_shipping_signature_base
from orderhub.orders.shipping import UnknownOrder, apply_shipping_update
from orderhub.orders.sync import sync_order
from orderhub.schemas.webhooks import (
    OrderSyncPayload,
    OrderSyncResponse,
    ShippingUpdatePayload,
    ShippingUpdateResponse,
    WebhookEnvelope,
)
from orderhub.webhooks import InvalidPayload, OrderNotFound, authenticate_webhook


router = APIRouter(prefix="/api/v1", tags=["webhooks"])
logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


async def read_json_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    try:
        data = json.loads(raw, parse_float=Decimal)
    except (ValueError, UnicodeDecodeError):
        raise InvalidPayload("Request body must be a JSON object") from None
    if not isinstance(data, dict):
        raise InvalidPayload("Request body must be a JSON object")
    return data


def _error_fields(exc: ValidationError) -> dict[str, Any]:
    fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
    return {"fields": fields}


def parse_envelope(body: dict[str, Any]) -> WebhookEnvelope:
    try:
        return WebhookEnvelope.model_validate(body)
    except ValidationError as exc:
        raise InvalidPayload("Malformed authentication envelope", _error_fields(exc)) from None


def parse_payload(model: Type[PayloadT], body: dict[str, Any]) -> PayloadT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise InvalidPayload("Malformed request payload", _error_fields(exc)) from None


def _raw_identifier(container: Any) -> str:
    if not isinstance(container, dict):
        return ""
    value = container.get("wc_order_id", container.get("external_order_id"))
    return "" if value is None else str(value)


@router.post(
    "/orders/sync",
    response_model=OrderSyncResponse,
    response_model_exclude_none=True,
)
def sync_order_webhook(
    request: Request,
    body: dict[str, Any] = Depends(read_json_body),
    db: Session = Depends(get_db),
):
    envelope = parse_envelope(body)
    raw_order = body.get("order")

    def signature_base(api_key: str, timestamp: int, nonce: str) -> str:
        order_total = raw_order.get("order_total") if isinstance(raw_order, dict) else None
        return build_order_signature_base(api_key, timestamp, nonce, _raw_identifier(raw_order), order_total)

    site = authenticate_webhook(db, envelope, signature_base)
    request.state.site_id = site.site_id

    try:
        payload = parse_payload(OrderSyncPayload, body)
    except InvalidPayload:
        order_sync_total.labels("invalid").inc()
        raise
    result = sync_order(db, site_id=site.site_id, payload=payload)
    warnings = [warning.to_dict() for warning in result.warnings]
    return OrderSyncResponse(order_id=result.order_id, warnings=warnings or None)


@router.post("/shipping/update", response_model=ShippingUpdateResponse)
def shipping_update_webhook(
    request: Request,
    body: dict[str, Any] = Depends(read_json_body),
    db: Session = Depends(get_db),
):
    envelope = parse_envelope(body)

    def signature_base(api_key: str, timestamp: int, nonce: str) -> str:
        return build_shipping_signature_base(api_key, timestamp, nonce, _raw_identifier(body))

    site = authenticate_webhook(db, envelope, signature_base)
    request.state.site_id = site.site_id

    payload = parse_payload(ShippingUpdatePayload, body)
    try:
        update = apply_shipping_update(db, site_id=site.site_id, payload=payload)
    except UnknownOrder:
        raise OrderNotFound() from None
    return ShippingUpdateResponse(shipping_update_id=update.id)
