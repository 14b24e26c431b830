"Signed storefront webhook handling: envelope auth and error taxonomy."

from .authenticator import AuthenticatedSite, authenticate_webhook  # noqa: F401
from .errors import (  # noqa: F401
    InvalidCredentials,
    InvalidPayload,
    InvalidSignature,
    MissingFields,
    OrderNotFound,
    ReplayedNonce,
    StaleTimestamp,
    WebhookAuthError,
    WebhookError,
)
