from __future__ import annotations

from typing import Any, Dict, Optional

from vybraa.extensions import db
from vybraa.models import NotificationQueue


def queue_email(to: str, template: str, payload: Optional[Dict[str, Any]] = None, reference: str = "") -> NotificationQueue:
    # delivery is the dispatcher's job; rows stay "queued" until it picks them up
    n = NotificationQueue(
        channel="email",
        to=(to or "")[:160],
        template=template[:64],
        payload=dict(payload or {}),
        status="queued",
        reference=reference[:128] if reference else None,
    )
    db.session.add(n)
    return n
