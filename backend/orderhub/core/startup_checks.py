"""
Startup-time checks for required configuration.
"""

from __future__ import annotations

import base64
import binascii

from orderhub.core.config import settings


def _is_production() -> bool:
    env = (settings.APP_ENV or "").strip().lower()
    return env in {"production", "prod"}


def _valid_secrets_key(value: str | None) -> bool:
    if not value:
        return False
    try:
        return len(base64.b64decode(value, validate=True)) == 32
    except (binascii.Error, ValueError):
        return False


def run_startup_checks() -> None:
    missing: list[str] = []
    insecure: list[str] = []

    if not settings.DATABASE_URL:
        missing.append("DATABASE_URL")
    if not settings.SITE_SECRETS_KEY:
        missing.append("SITE_SECRETS_KEY")
    elif not _valid_secrets_key(settings.SITE_SECRETS_KEY):
        insecure.append("SITE_SECRETS_KEY")

    if _is_production():
        if not settings.ADMIN_API_KEY:
            missing.append("ADMIN_API_KEY")
        elif len(settings.ADMIN_API_KEY) < 24:
            insecure.append("ADMIN_API_KEY")
        if settings.DATABASE_URL.startswith("sqlite"):
            insecure.append("DATABASE_URL")

    provider = settings.TRACKING_PROVIDER
    if provider == "aftership" and _is_production() and not settings.AFTERSHIP_API_KEY:
        missing.append("AFTERSHIP_API_KEY")
    if provider == "17track" and _is_production() and not settings.SEVENTEEN_TRACK_API_KEY:
        missing.append("SEVENTEEN_TRACK_API_KEY")
    if provider not in {"aftership", "17track"}:
        insecure.append("TRACKING_PROVIDER")

    if missing or insecure:
        parts = []
        if missing:
            parts.append(f"Missing required settings: {', '.join(sorted(set(missing)))}")
        if insecure:
            parts.append(f"Invalid settings detected: {', '.join(sorted(set(insecure)))}")
        raise RuntimeError("Startup checks failed. " + " ".join(parts))
