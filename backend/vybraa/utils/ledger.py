"""Transaction ledger: reference-keyed upserts and wallet increments.

Nothing here commits. Callers own the database transaction so that a ledger
write and the request/wallet changes it implies land together.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from flask import current_app
from sqlalchemy import update

from vybraa.extensions import db
from vybraa.models import Transaction, TransactionStatus, TransactionType, EscrowStatus, EscrowType, Wallet
from vybraa.utils.currency import to_money

TERMINAL_STATUSES = (TransactionStatus.COMPLETED, TransactionStatus.FAILED, TransactionStatus.CANCELLED)
REFUND_STATUSES = (TransactionStatus.FAILED, TransactionStatus.CANCELLED)


@dataclass
class UpsertResult:
    transaction: Transaction
    created: bool
    changed: bool
    previous_status: Optional[str] = None


def get_transaction(reference: str, *, lock: bool = False) -> Transaction | None:
    q = Transaction.query.filter_by(reference=reference)
    if lock:
        q = q.with_for_update()
    return q.first()


def escrow_status_for(status: str, in_escrow: bool) -> str | None:
    if not in_escrow:
        return None
    if status in REFUND_STATUSES:
        return EscrowStatus.REFUNDED
    return EscrowStatus.PENDING


def _merged_meta(existing: Any, extra: dict | None, history: dict | None = None) -> dict:
    meta = dict(existing or {})
    if extra:
        meta.update(extra)
    if history:
        meta["history"] = list(meta.get("history") or []) + [history]
    return meta


def apply_status(txn: Transaction, status: str, metadata: dict | None) -> bool:
    """Move an existing row to ``status``. Returns False when nothing changed."""
    if txn.status == status:
        return False

    now = datetime.utcnow()
    backwards = txn.status == TransactionStatus.PROCESSING and status == TransactionStatus.PENDING
    if backwards or txn.status in TERMINAL_STATUSES or not EscrowStatus.can_move(
        txn.escrow_status, escrow_status_for(status, bool(txn.is_in_escrow))
    ):
        # settled rows are final and PROCESSING never drops back to PENDING;
        # keep the late event for support to look at
        current_app.logger.warning(
            "late %s event ignored for reference=%s (status=%s escrow=%s)",
            status, txn.reference, txn.status, txn.escrow_status,
        )
        late = list((txn.meta or {}).get("late_events") or [])
        late.append({"status": status, "at": now.isoformat()})
        txn.meta = _merged_meta(txn.meta, {"late_events": late})
        txn.updated_at = now
        return False

    history = {"from": txn.status, "to": status, "at": now.isoformat()}
    txn.status = status
    txn.escrow_status = escrow_status_for(status, bool(txn.is_in_escrow))
    txn.meta = _merged_meta(txn.meta, metadata, history)
    txn.updated_at = now
    return True


def upsert_transaction(
    *,
    reference: str,
    user_id: int,
    amount,
    currency: str,
    status: str,
    provider: str,
    request_id: int | None = None,
    payment_method: str | None = None,
    metadata: dict | None = None,
    txn_type: str = TransactionType.CREDIT,
) -> UpsertResult:
    """Idempotent write keyed by ``reference``.

    Duplicate deliveries (same status) are no-ops. Request payments are held in
    escrow; anything else is a plain ledger row with no escrow status.
    """
    existing = get_transaction(reference, lock=True)
    if existing:
        previous = existing.status
        changed = apply_status(existing, status, metadata)
        db.session.add(existing)
        return UpsertResult(existing, created=False, changed=changed, previous_status=previous)

    in_escrow = request_id is not None
    txn = Transaction(
        user_id=int(user_id),
        request_id=int(request_id) if request_id is not None else None,
        amount=to_money(amount),
        currency=(currency or "").upper() or "NGN",
        payment_method=(payment_method or provider)[:32],
        provider=provider,
        reference=reference,
        type=txn_type,
        status=status,
        is_in_escrow=in_escrow,
        escrow_type=EscrowType.REQUEST_PAYMENT if in_escrow else None,
        escrow_status=escrow_status_for(status, in_escrow),
        meta=dict(metadata or {}),
    )
    db.session.add(txn)
    # unique(reference) is the dedupe boundary; a racing insert raises IntegrityError here
    db.session.flush()
    return UpsertResult(txn, created=True, changed=True, previous_status=None)


def lock_wallet(*, user_id: int | None = None, super_admin: bool = False) -> Wallet | None:
    q = Wallet.query.filter_by(is_super_admin=True) if super_admin else Wallet.query.filter_by(user_id=int(user_id))
    return q.order_by(Wallet.id.asc()).with_for_update().first()


def credit_wallet(wallet_id: int, amount: Decimal) -> None:
    """Atomic ``balance = balance + amount``; never a read-modify-write."""
    stmt = (
        update(Wallet)
        .where(Wallet.id == int(wallet_id))
        .values(wallet_balance=Wallet.wallet_balance + to_money(amount), updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    res = db.session.execute(stmt)
    if res.rowcount != 1:
        raise RuntimeError(f"wallet {wallet_id} not updated")
