"""Gateway authentication: a shared bearer secret."""

from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, Request

from requestbot.config import settings


async def verify_gateway_key(request: Request) -> None:
    """Require ``Authorization: Bearer <gateway_key>`` when a key is configured."""
    if settings.gateway_key is None:
        return
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not secrets.compare_digest(auth[7:], settings.gateway_key):
        raise HTTPException(status_code=403, detail="Invalid gateway key")


GatewayAuth = Depends(verify_gateway_key)
