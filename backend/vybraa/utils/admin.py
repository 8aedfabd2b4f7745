from __future__ import annotations

import hmac

from flask import current_app, request


def admin_token_ok() -> bool:
    """``X-Admin-Token`` must match ``ADMIN_API_TOKEN``; an unset token locks the endpoints."""
    expected = (current_app.config.get("ADMIN_API_TOKEN") or "").strip()
    got = (request.headers.get("X-Admin-Token") or "").strip()
    if not expected or not got:
        return False
    return hmac.compare_digest(expected, got)
