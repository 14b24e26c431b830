"""HMAC signing helpers for the storefront webhook protocol.

Storefronts sign a pipe-joined base string with their API secret and send
the base64 HMAC-SHA256 digest alongside the request. The base layouts are
fixed by the storefront plugin:

    order sync:       api_key|timestamp|nonce|wc_order_id|order_total
    shipping update:  api_key|timestamp|nonce|wc_order_id|0
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from decimal import Decimal, InvalidOperation


SHIPPING_TOTAL_PLACEHOLDER = "0"


def compute_signature(base: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), base.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(base: str, signature: str, secret: str) -> bool:
    if not signature:
        return False
    expected = compute_signature(base, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def format_signed_amount(value) -> str:
    """Render an amount the way the storefront wrote it into the signed base.

    Numbers keep their written scale ("100.00" stays "100.00") and never use
    exponent notation. Unparseable strings are passed through untouched so the
    signature check fails instead of the parser.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        value = Decimal(repr(value))
    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = Decimal(stripped)
        except InvalidOperation:
            return stripped
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return format(value, "f")
    return str(value)


def build_order_signature_base(
    api_key: str,
    timestamp: int,
    nonce: str,
    external_order_id: str,
    order_total,
) -> str:
    return "|".join(
        [api_key, str(timestamp), nonce, str(external_order_id), format_signed_amount(order_total)]
    )


def build_shipping_signature_base(
    api_key: str,
    timestamp: int,
    nonce: str,
    external_order_id: str,
) -> str:
    return "|".join(
        [api_key, str(timestamp), nonce, str(external_order_id), SHIPPING_TOTAL_PLACEHOLDER]
    )
