from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from orderhub.core.config import settings


ADMIN_KEY_HEADER = "X-Admin-Key"


def require_admin(x_admin_key: str | None = Header(default=None, alias=ADMIN_KEY_HEADER)) -> None:
    expected = settings.ADMIN_API_KEY
    if not expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin API disabled")
    if not x_admin_key or not hmac.compare_digest(x_admin_key.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")
