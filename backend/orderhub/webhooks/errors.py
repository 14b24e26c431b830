"""
Webhook error taxonomy. Messages are deliberately generic: a caller learns
the category of the failure, never which stored value it did not match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class WebhookError(Exception):
    code: str
    message: str
    status_code: int
    details: dict[str, Any] | None = field(default=None)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": False, "error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class WebhookAuthError(WebhookError):
    """Base class for authentication rejections."""


class MissingFields(WebhookAuthError):
    def __init__(self) -> None:
        super().__init__("missing_fields", "Missing authentication fields", 400)


class InvalidCredentials(WebhookAuthError):
    """Unknown, inactive or undecryptable site credentials, reported alike."""

    def __init__(self) -> None:
        super().__init__("invalid_credentials", "Invalid site credentials", 401)


class StaleTimestamp(WebhookAuthError):
    def __init__(self) -> None:
        super().__init__("stale_timestamp", "Request timestamp outside the allowed window", 401)


class ReplayedNonce(WebhookAuthError):
    def __init__(self) -> None:
        super().__init__("replayed_nonce", "Request nonce has already been used", 401)


class InvalidSignature(WebhookAuthError):
    def __init__(self) -> None:
        super().__init__("invalid_signature", "Request signature is invalid", 401)


class InvalidPayload(WebhookError):
    def __init__(self, message: str = "Malformed request payload", details: dict[str, Any] | None = None) -> None:
        super().__init__("invalid_payload", message, 400, details)


class OrderNotFound(WebhookError):
    def __init__(self) -> None:
        super().__init__("order_not_found", "Order not found for this site", 404)
