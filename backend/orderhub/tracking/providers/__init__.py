from orderhub.core.config import settings
from orderhub.tracking.providers.aftership import AfterShipProvider
from orderhub.tracking.providers.base import (
    TrackingEvent,
    TrackingNotConfigured,
    TrackingProvider,
    TrackingProviderError,
    TrackingResponse,
    TrackingTimeout,
)
from orderhub.tracking.providers.seventeen_track import SeventeenTrackProvider


_provider: TrackingProvider | None = None
_provider_signature: tuple | None = None


def _get_signature() -> tuple:
    return (
        settings.TRACKING_PROVIDER,
        settings.AFTERSHIP_API_KEY,
        settings.AFTERSHIP_BASE_URL,
        settings.SEVENTEEN_TRACK_API_KEY,
        settings.SEVENTEEN_TRACK_BASE_URL,
        settings.TRACKING_HTTP_TIMEOUT_SECONDS,
    )


def get_tracking_provider() -> TrackingProvider:
    global _provider, _provider_signature
    signature = _get_signature()
    if _provider is None or signature != _provider_signature:
        _provider = _build_tracking_provider(signature[0])
        _provider_signature = signature
    return _provider


def _build_tracking_provider(provider_name: str) -> TrackingProvider:
    timeout = settings.TRACKING_HTTP_TIMEOUT_SECONDS
    if provider_name == "aftership":
        return AfterShipProvider(settings.AFTERSHIP_API_KEY, settings.AFTERSHIP_BASE_URL, timeout)
    if provider_name == "17track":
        return SeventeenTrackProvider(settings.SEVENTEEN_TRACK_API_KEY, settings.SEVENTEEN_TRACK_BASE_URL, timeout)
    raise ValueError(f"Unsupported TRACKING_PROVIDER: {provider_name}")
