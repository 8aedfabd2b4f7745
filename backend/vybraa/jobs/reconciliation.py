"""Reconciliation sweeps.

Each sweep is safe to run repeatedly and concurrently with webhooks: it only
goes through the same settle / fail / release paths the HTTP layer uses, and
every one of those is idempotent. One bad row never stops the rest.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import exists, or_

from vybraa.errors import GatewayError, GatewayTimeoutError, PaymentError
from vybraa.escrow import fail_transaction, release_escrow, settle
from vybraa.extensions import db
from vybraa.gateways import get_adapter
from vybraa.models import EscrowStatus, Request, RequestStatus, Transaction, TransactionStatus, TransactionType
from vybraa.utils import events
from vybraa.utils.ledger import REFUND_STATUSES


def _now():
    return datetime.utcnow()


# =====================================================
# STALE PENDING PAYMENTS (hourly)
# =====================================================

def sweep_stale_pending(now: datetime | None = None, *, limit: int = 500) -> dict:
    """Ask the provider about escrow payments stuck in PENDING past the window.

    Provider says paid -> normal settlement. Provider says failed, or cannot
    vouch for the payment at all -> FAILED/REFUNDED and the request declined.
    A timeout tells us nothing, so the row is left for the next run.
    """
    now = now or _now()
    cutoff = now - timedelta(hours=int(current_app.config.get("STALE_PENDING_HOURS", 24)))

    processed = 0
    completed = 0
    failed = 0
    still_pending = 0
    errors = 0

    rows = (
        db.session.query(Transaction.reference, Transaction.provider)
        .filter(
            Transaction.is_in_escrow.is_(True),
            Transaction.escrow_status == EscrowStatus.PENDING,
            Transaction.status == TransactionStatus.PENDING,
            Transaction.created_at < cutoff,
        )
        .order_by(Transaction.id.asc())
        .limit(int(limit))
        .all()
    )

    for reference, provider in rows:
        processed += 1
        try:
            adapter = get_adapter(provider)
            try:
                event = adapter.verify(reference)
            except GatewayTimeoutError as e:
                current_app.logger.warning("verify timed out for %s, leaving PENDING: %s", reference, e.message)
                still_pending += 1
                continue
            except GatewayError as e:
                if fail_transaction(reference, f"Payment could not be verified: {e.message}"):
                    failed += 1
                continue

            event.reference = event.reference or reference
            if event.status == TransactionStatus.COMPLETED:
                settle(event)
                completed += 1
            elif event.status in REFUND_STATUSES:
                reason = f"Provider reported {event.provider_status or event.status.lower()}"
                if fail_transaction(reference, reason, metadata=event.metadata):
                    failed += 1
            else:
                still_pending += 1
        except Exception:
            errors += 1
            db.session.rollback()
            current_app.logger.exception("stale pending sweep failed for %s", reference)

    summary = {
        "ok": True,
        "processed": processed,
        "completed": completed,
        "failed": failed,
        "pending": still_pending,
        "errors": errors,
        "ts": _now().isoformat(),
    }
    current_app.logger.info("stale pending sweep: %s", summary)
    return summary


# =====================================================
# UNPAID REQUESTS (daily)
# =====================================================

def _unpaid_requests(cutoff: datetime):
    has_txn = exists().where(
        or_(Transaction.request_id == Request.id, Transaction.reference == Request.payment_reference)
    )
    return (
        Request.query.filter(
            Request.status == RequestStatus.PENDING,
            Request.is_request_paid.is_(False),
            Request.deleted_at.is_(None),
            Request.created_at < cutoff,
            ~has_txn,
        )
        .order_by(Request.id.asc())
        .all()
    )


def sweep_unpaid_requests(now: datetime | None = None) -> dict:
    """Decline and soft-delete requests nobody ever started paying for."""
    now = now or _now()
    hours = int(current_app.config.get("UNPAID_REQUEST_HOURS", 48))
    cutoff = now - timedelta(hours=hours)

    processed = 0
    declined = 0
    errors = 0

    for req in _unpaid_requests(cutoff):
        processed += 1
        request_id = int(req.id)
        previous = req.status
        try:
            stamp = _now()
            db.session.add(Transaction(
                user_id=int(req.user_id),
                request_id=request_id,
                amount=req.price,
                currency=req.currency,
                payment_method="timeout",
                provider="timeout",
                reference=f"timeout_{request_id}_{int(stamp.timestamp() * 1000)}",
                type=TransactionType.CREDIT,
                status=TransactionStatus.FAILED,
                is_in_escrow=False,
                escrow_type=None,
                escrow_status=None,
                description="Request timeout - no payment initiated",
                meta={
                    "timeout_reason": f"No payment initiated within {hours} hours",
                    "timeout_at": stamp.isoformat(),
                },
            ))
            req.status = RequestStatus.DECLINED
            req.deleted_at = stamp
            req.updated_at = stamp
            db.session.add(req)
            db.session.commit()
        except Exception:
            errors += 1
            db.session.rollback()
            current_app.logger.exception("unpaid request sweep failed for request %s", request_id)
            continue

        declined += 1
        current_app.logger.info("request %s declined: no payment initiated within %sh", request_id, hours)
        events.publish(events.REQUEST_STATUS_CHANGED, request_id=request_id, previous=previous, status=RequestStatus.DECLINED)

    summary = {
        "ok": True,
        "processed": processed,
        "declined": declined,
        "errors": errors,
        "ts": _now().isoformat(),
    }
    current_app.logger.info("unpaid request sweep: %s", summary)
    return summary


# =====================================================
# ESCROW RELEASES (every minute)
# =====================================================

def _releasable_request_ids(limit: int) -> list[int]:
    linked = Transaction.request_id == Request.id
    has_txn = exists().where(linked)
    not_ready = exists().where(
        linked,
        or_(
            Transaction.is_in_escrow.is_(False),
            Transaction.escrow_status.is_(None),
            Transaction.escrow_status != EscrowStatus.PENDING,
            Transaction.status != TransactionStatus.COMPLETED,
        ),
    )
    rows = (
        db.session.query(Request.id)
        .filter(
            Request.status == RequestStatus.COMPLETED,
            Request.deleted_at.is_(None),
            has_txn,
            ~not_ready,
        )
        .order_by(Request.id.asc())
        .limit(int(limit))
        .all()
    )
    return [int(r[0]) for r in rows]


def sweep_escrow_releases(*, limit: int = 500) -> dict:
    processed = 0
    released = 0
    errors = 0

    for request_id in _releasable_request_ids(limit):
        processed += 1
        try:
            release_escrow(request_id)
            released += 1
        except PaymentError as e:
            errors += 1
            current_app.logger.exception("escrow release failed for request %s: %s", request_id, e.message)

    summary = {
        "ok": True,
        "processed": processed,
        "released": released,
        "errors": errors,
        "ts": _now().isoformat(),
    }
    if processed:
        current_app.logger.info("escrow release sweep: %s", summary)
    return summary
