"""Escrow settlement engine.

Payment lifecycle of a request transaction:

    PENDING (escrow PENDING) -> COMPLETED (escrow PENDING) -> COMPLETED (escrow RELEASED)
                             \\-> FAILED / CANCELLED (escrow REFUNDED)

``settle`` moves a transaction along the left half from a provider event.
``release_escrow`` performs the split once the request is fulfilled. Both own
their database transaction and publish domain events only after commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from vybraa.errors import (
    ConfigurationError,
    EscrowReleaseError,
    FeeConfigNotFoundError,
    PaymentError,
    ReferenceNotFoundError,
)
from vybraa.extensions import db
from vybraa.gateways.base import NormalizedEvent
from vybraa.models import (
    CelebrityProfile,
    EscrowStatus,
    Request,
    RequestStatus,
    Transaction,
    TransactionStatus,
    WalletEarningsHistory,
)
from vybraa.utils import events
from vybraa.utils.currency import base_currency, convert_to_base
from vybraa.utils.fees import FeeSplit, evaluate_fee, split_percentage
from vybraa.utils.ledger import (
    REFUND_STATUSES,
    TERMINAL_STATUSES,
    apply_status,
    credit_wallet,
    get_transaction,
    lock_wallet,
    upsert_transaction,
)


def _now():
    return datetime.utcnow()


@dataclass
class SettlementResult:
    outcome: str
    reference: str
    request_id: int | None = None
    transaction_id: int | None = None
    changed: bool = False

    def to_dict(self) -> dict:
        return {
            "status": self.outcome,
            "reference": self.reference,
            "request_id": self.request_id,
            "transaction_id": self.transaction_id,
            "changed": self.changed,
        }


@dataclass
class ReleaseResult:
    request_id: int
    transaction_id: int
    base_amount: Decimal
    split: FeeSplit
    currency: str
    fee_source: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "transaction_id": self.transaction_id,
            "base_amount": str(self.base_amount),
            "currency": self.currency,
            "fee_source": self.fee_source,
            **self.split.to_dict(),
        }


def find_request_by_reference(reference: str) -> Request | None:
    """Live requests only; a soft-deleted request no longer accepts payments."""
    return Request.query.filter(Request.payment_reference == reference, Request.deleted_at.is_(None)).first()


def _mark_request_paid(req: Request) -> bool:
    # monotonic: nothing in the codebase ever sets this back to False
    if req.is_request_paid:
        return False
    req.is_request_paid = True
    req.updated_at = _now()
    db.session.add(req)
    return True


def _decline_request(req: Request, reason: str) -> str | None:
    if req.status in (RequestStatus.COMPLETED, RequestStatus.DECLINED):
        return None
    previous = req.status
    req.status = RequestStatus.DECLINED
    req.updated_at = _now()
    db.session.add(req)
    current_app.logger.info("request %s declined (%s)", req.id, reason)
    return previous


def _payment_payload(req: Request | None, txn: Transaction) -> dict:
    payload = {
        "reference": txn.reference,
        "transaction_id": int(txn.id),
        "user_id": int(txn.user_id),
        "amount": str(txn.amount),
        "currency": txn.currency,
        "provider": txn.provider,
        "status": txn.status,
    }
    if req is not None:
        payload.update({
            "request_id": int(req.id),
            "celebrity_profile_id": int(req.celebrity_profile_id),
            "price": str(req.price),
        })
    return payload


# =====================================================
# SETTLEMENT (webhook / verification)
# =====================================================

def settle(event: NormalizedEvent) -> SettlementResult:
    """Apply a normalized provider event to the ledger.

    Safe under at-least-once delivery: the reference-keyed upsert makes repeats
    no-ops, and a losing concurrent insert is retried once as an update.
    """
    if not event.reference:
        raise ReferenceNotFoundError("Provider event carries no reference", provider=event.provider)

    try:
        return _settle_once(event)
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("concurrent insert for reference=%s, retrying as update", event.reference)
        return _settle_once(event)


def _settle_once(event: NormalizedEvent) -> SettlementResult:
    req = find_request_by_reference(event.reference)
    if req is None:
        return _settle_unlinked(event)

    res = upsert_transaction(
        reference=event.reference,
        user_id=int(req.user_id),
        request_id=int(req.id),
        amount=event.amount,
        currency=event.currency or req.currency,
        status=event.status,
        provider=event.provider,
        payment_method=event.channel,
        metadata=event.metadata,
    )
    txn = res.transaction

    completed = res.changed and txn.status == TransactionStatus.COMPLETED
    failed = res.changed and txn.status in REFUND_STATUSES
    if txn.status == TransactionStatus.COMPLETED:
        _mark_request_paid(req)

    declined_from = None
    if failed and current_app.config.get("DECLINE_REQUEST_ON_PAYMENT_FAILURE"):
        declined_from = _decline_request(req, f"payment {txn.status.lower()}")

    db.session.commit()

    if completed:
        current_app.logger.info("payment settled reference=%s request=%s amount=%s %s", txn.reference, req.id, txn.amount, txn.currency)
        events.publish(events.PAYMENT_COMPLETED, **_payment_payload(req, txn))
    elif failed:
        current_app.logger.info("payment %s reference=%s request=%s", txn.status.lower(), txn.reference, req.id)
        events.publish(events.PAYMENT_FAILED, **_payment_payload(req, txn))
    else:
        current_app.logger.info("duplicate or no-op event reference=%s status=%s", txn.reference, event.status)

    if declined_from:
        events.publish(events.REQUEST_STATUS_CHANGED, request_id=int(req.id), previous=declined_from, status=req.status)

    return SettlementResult(
        outcome=txn.status.lower() if res.changed else "duplicate",
        reference=txn.reference,
        request_id=int(req.id),
        transaction_id=int(txn.id),
        changed=res.changed,
    )


def _settle_unlinked(event: NormalizedEvent) -> SettlementResult:
    """Payments not tied to a request (e.g. withdrawals) only move their own row."""
    txn = get_transaction(event.reference, lock=True)
    if txn is None:
        raise ReferenceNotFoundError(
            f"No request or transaction for reference {event.reference}",
            reference=event.reference,
            provider=event.provider,
        )
    changed = apply_status(txn, event.status, event.metadata)
    db.session.add(txn)
    db.session.commit()
    if changed:
        current_app.logger.info("transaction %s moved to %s", txn.reference, txn.status)
        if txn.status == TransactionStatus.COMPLETED:
            events.publish(events.PAYMENT_COMPLETED, **_payment_payload(None, txn))
        elif txn.status in REFUND_STATUSES:
            events.publish(events.PAYMENT_FAILED, **_payment_payload(None, txn))
    return SettlementResult(
        outcome=txn.status.lower() if changed else "duplicate",
        reference=txn.reference,
        request_id=int(txn.request_id) if txn.request_id is not None else None,
        transaction_id=int(txn.id),
        changed=changed,
    )


def fail_transaction(reference: str, reason: str, *, metadata: dict | None = None, decline_request: bool = True) -> bool:
    """Mark a stuck transaction FAILED/REFUNDED and decline its request.

    Used by reconciliation when the provider reports failure or cannot vouch for
    the payment at all. Already-settled rows are left alone.
    """
    txn = get_transaction(reference, lock=True)
    if txn is None or txn.status in TERMINAL_STATUSES:
        db.session.rollback()
        return False

    meta = dict(metadata or {})
    meta.update({"failure_reason": reason, "failed_at": _now().isoformat()})
    apply_status(txn, TransactionStatus.FAILED, meta)
    db.session.add(txn)

    req = db.session.get(Request, txn.request_id) if txn.request_id is not None else None
    declined_from = _decline_request(req, reason) if (req is not None and decline_request) else None
    db.session.commit()

    current_app.logger.info("transaction %s failed: %s", reference, reason)
    events.publish(events.PAYMENT_FAILED, **_payment_payload(req, txn))
    if declined_from:
        events.publish(events.REQUEST_STATUS_CHANGED, request_id=int(req.id), previous=declined_from, status=req.status)
    return True


# =====================================================
# RELEASE
# =====================================================

def _split_for_release(base_amount: Decimal, request_id: int) -> tuple[FeeSplit, str]:
    try:
        return evaluate_fee(base_amount, "request"), "config"
    except FeeConfigNotFoundError as e:
        percent = current_app.config.get("FEE_FALLBACK_PERCENT", "10")
        current_app.logger.warning(
            "fee config missing for request %s (%s); applying flat %s%% fee", request_id, e.message, percent
        )
        return split_percentage(base_amount, percent), "fallback"


def _release(request_id: int) -> ReleaseResult:
    req = db.session.get(Request, int(request_id))
    if req is None:
        raise EscrowReleaseError(f"Request {request_id} not found", request_id=request_id)
    if req.status != RequestStatus.COMPLETED:
        raise EscrowReleaseError(f"Request {request_id} is {req.status}, not COMPLETED", request_id=request_id)

    txn = get_transaction(req.payment_reference, lock=True) if req.payment_reference else None
    if txn is None:
        raise EscrowReleaseError(f"Transaction not found for request {request_id}", request_id=request_id)
    if txn.status != TransactionStatus.COMPLETED:
        raise EscrowReleaseError(
            f"Payment {txn.reference} is {txn.status}; only confirmed payments are released",
            request_id=request_id,
        )
    if txn.escrow_status != EscrowStatus.PENDING:
        raise EscrowReleaseError(
            f"Escrow for request {request_id} is {txn.escrow_status}", request_id=request_id
        )

    now = _now()
    meta = dict(txn.meta or {})
    meta.update({"released_at": now.isoformat(), "release_reason": "Request completed successfully"})
    claimed = db.session.execute(
        update(Transaction)
        .where(Transaction.id == txn.id, Transaction.escrow_status == EscrowStatus.PENDING)
        .values({
            Transaction.escrow_status: EscrowStatus.RELEASED,
            Transaction.release_date: now,
            Transaction.updated_at: now,
            Transaction.meta: meta,
        })
        .execution_options(synchronize_session=False)
    ).rowcount
    if claimed != 1:
        raise EscrowReleaseError(f"Escrow for request {request_id} was released concurrently", request_id=request_id)

    base_amount = convert_to_base(txn.amount, txn.currency)
    split, fee_source = _split_for_release(base_amount, int(req.id))
    if split.payee_balance < 0:
        raise EscrowReleaseError(
            f"Fee {split.platform_fee} exceeds released amount {base_amount}", request_id=request_id
        )

    profile = db.session.get(CelebrityProfile, req.celebrity_profile_id)
    if profile is None:
        raise EscrowReleaseError(f"Celebrity profile not found for request {request_id}", request_id=request_id)

    # celebrity wallet first, platform wallet last: a fixed lock order across releases
    wallet = lock_wallet(user_id=int(profile.user_id))
    if wallet is None:
        raise EscrowReleaseError(f"Celebrity wallet not found for user {profile.user_id}", request_id=request_id)
    platform = lock_wallet(super_admin=True)
    if platform is None:
        raise ConfigurationError("Super admin wallet not found", request_id=request_id)

    credit_wallet(wallet.id, split.payee_balance)
    credit_wallet(platform.id, split.platform_fee)

    currency = base_currency()
    db.session.add(WalletEarningsHistory(
        wallet_id=int(wallet.id),
        request_id=int(req.id),
        amount=split.payee_balance,
        vybraa_fee=split.platform_fee,
        currency=currency,
        status="CREDIT",
    ))
    db.session.flush()

    return ReleaseResult(
        request_id=int(req.id),
        transaction_id=int(txn.id),
        base_amount=base_amount,
        split=split,
        currency=currency,
        fee_source=fee_source,
    )


def release_escrow(request_id: int) -> ReleaseResult:
    """Release a fulfilled request's escrow: one atomic unit, all or nothing.

    Any failure rolls back the escrow flag, both wallet credits and the
    earnings row together; the next sweep tick tries again.
    """
    try:
        result = _release(request_id)
        db.session.commit()
    except PaymentError:
        db.session.rollback()
        raise
    except Exception as e:
        db.session.rollback()
        raise EscrowReleaseError(f"Escrow release aborted for request {request_id}: {e}", request_id=request_id) from e

    current_app.logger.info(
        "escrow released request=%s payee=%s fee=%s %s (%s)",
        result.request_id, result.split.payee_balance, result.split.platform_fee, result.currency, result.fee_source,
    )
    events.publish(events.ESCROW_RELEASED, **result.to_dict())
    return result
