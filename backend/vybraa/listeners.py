"""Reactions to settlement events: activity log rows and queued emails.

Handlers run after the settlement commit and commit their own work. An error
here is logged by the bus and never undoes the payment.
"""

from __future__ import annotations

from vybraa.extensions import db
from vybraa.models import ActivityLog, CelebrityProfile, Request, User
from vybraa.utils import events
from vybraa.utils.notify import queue_email


def _log(action: str, target_type: str, target_id, meta: dict, actor_user_id=None) -> None:
    db.session.add(ActivityLog(
        actor_user_id=actor_user_id,
        action=action,
        target_type=target_type,
        target_id=int(target_id) if target_id is not None else None,
        meta=meta,
    ))


def _commit():
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def on_payment_completed(payload: dict) -> None:
    request_id = payload.get("request_id")
    _log("PAYMENT_COMPLETED", "transaction", payload.get("transaction_id"), payload, actor_user_id=payload.get("user_id"))

    if request_id is not None:
        req = db.session.get(Request, int(request_id))
        profile = db.session.get(CelebrityProfile, req.celebrity_profile_id) if req else None
        fan = db.session.get(User, req.user_id) if req else None
        celebrity = profile.user if profile else None
        email_payload = {
            "request_id": int(request_id),
            "amount": payload.get("amount"),
            "currency": payload.get("currency"),
            "occasion": req.occasion if req else None,
        }
        if celebrity is not None:
            queue_email(
                celebrity.email,
                "celebrity_new_request",
                {**email_payload, "name": celebrity.first_name or profile.display_name},
                reference=payload.get("reference", ""),
            )
        if fan is not None:
            queue_email(
                fan.email,
                "fan_payment_confirmed",
                {**email_payload, "name": fan.first_name or "", "celebrity": profile.display_name if profile else ""},
                reference=payload.get("reference", ""),
            )
    _commit()


def on_payment_failed(payload: dict) -> None:
    _log("PAYMENT_FAILED", "transaction", payload.get("transaction_id"), payload, actor_user_id=payload.get("user_id"))
    _commit()


def on_escrow_released(payload: dict) -> None:
    _log("ESCROW_RELEASED", "request", payload.get("request_id"), payload)
    _commit()


def on_request_status_changed(payload: dict) -> None:
    _log("REQUEST_STATUS_CHANGED", "request", payload.get("request_id"), payload)
    _commit()


def register_listeners(app) -> None:
    bus = app.extensions["vybraa_events"]
    bus.subscribe(events.PAYMENT_COMPLETED, on_payment_completed)
    bus.subscribe(events.PAYMENT_FAILED, on_payment_failed)
    bus.subscribe(events.ESCROW_RELEASED, on_escrow_released)
    bus.subscribe(events.REQUEST_STATUS_CHANGED, on_request_status_changed)
