from decimal import Decimal

import pytest

from vybraa.extensions import db
from vybraa.models import EscrowStatus, Transaction, TransactionStatus, Wallet
from vybraa.utils.ledger import credit_wallet, escrow_status_for, upsert_transaction


def _upsert(request_id, status=TransactionStatus.PENDING, reference="REF1", **kw):
    return upsert_transaction(
        reference=reference,
        user_id=kw.pop("user_id"),
        request_id=request_id,
        amount=kw.pop("amount", "100"),
        currency="USD",
        status=status,
        provider="paystack",
        **kw,
    )


def test_escrow_status_for():
    assert escrow_status_for(TransactionStatus.COMPLETED, True) == EscrowStatus.PENDING
    assert escrow_status_for(TransactionStatus.FAILED, True) == EscrowStatus.REFUNDED
    assert escrow_status_for(TransactionStatus.CANCELLED, True) == EscrowStatus.REFUNDED
    assert escrow_status_for(TransactionStatus.FAILED, False) is None


def test_upsert_creates_escrow_row(make_request, fan):
    req = make_request()
    res = _upsert(req.id, TransactionStatus.COMPLETED, user_id=fan.id, payment_method="card")
    db.session.commit()

    assert res.created and res.changed
    txn = res.transaction
    assert txn.amount == Decimal("100.00")
    assert txn.is_in_escrow is True
    assert txn.escrow_type == "REQUEST_PAYMENT"
    assert txn.escrow_status == EscrowStatus.PENDING
    assert txn.payment_method == "card"


def test_upsert_without_request_is_plain_ledger_row(app, fan):
    res = _upsert(None, TransactionStatus.PENDING, reference="WD-1", user_id=fan.id)
    db.session.commit()
    assert res.transaction.is_in_escrow is False
    assert res.transaction.escrow_status is None


def test_upsert_same_status_is_noop(make_request, fan):
    req = make_request()
    _upsert(req.id, TransactionStatus.COMPLETED, user_id=fan.id)
    db.session.commit()

    res = _upsert(req.id, TransactionStatus.COMPLETED, user_id=fan.id)
    db.session.commit()

    assert res.created is False
    assert res.changed is False
    assert Transaction.query.filter_by(reference="REF1").count() == 1


def test_upsert_moves_pending_to_completed_with_history(make_request, fan):
    req = make_request()
    _upsert(req.id, TransactionStatus.PENDING, user_id=fan.id)
    db.session.commit()

    res = _upsert(req.id, TransactionStatus.COMPLETED, user_id=fan.id, metadata={"gateway_response": "Approved"})
    db.session.commit()

    txn = res.transaction
    assert res.changed and res.previous_status == TransactionStatus.PENDING
    assert txn.status == TransactionStatus.COMPLETED
    assert txn.meta["gateway_response"] == "Approved"
    assert txn.meta["history"][-1]["from"] == TransactionStatus.PENDING
    assert txn.meta["history"][-1]["to"] == TransactionStatus.COMPLETED


@pytest.mark.parametrize("late_status", [TransactionStatus.PENDING, TransactionStatus.FAILED])
def test_settled_row_ignores_late_events(make_request, fan, late_status):
    req = make_request()
    _upsert(req.id, TransactionStatus.COMPLETED, user_id=fan.id)
    db.session.commit()

    res = _upsert(req.id, late_status, user_id=fan.id)
    db.session.commit()

    txn = res.transaction
    assert res.changed is False
    assert txn.status == TransactionStatus.COMPLETED
    assert txn.escrow_status == EscrowStatus.PENDING
    assert txn.meta["late_events"][0]["status"] == late_status


def test_released_escrow_never_moves_back(make_request, fan):
    req = make_request()
    res = _upsert(req.id, TransactionStatus.PROCESSING, user_id=fan.id)
    res.transaction.escrow_status = EscrowStatus.RELEASED
    db.session.commit()

    res = _upsert(req.id, TransactionStatus.FAILED, user_id=fan.id)
    db.session.commit()
    assert res.changed is False
    assert res.transaction.escrow_status == EscrowStatus.RELEASED
    assert res.transaction.status == TransactionStatus.PROCESSING


def test_processing_does_not_fall_back_to_pending(make_request, fan):
    req = make_request()
    _upsert(req.id, TransactionStatus.PROCESSING, user_id=fan.id)
    db.session.commit()

    res = _upsert(req.id, TransactionStatus.PENDING, user_id=fan.id)
    db.session.commit()

    txn = Transaction.query.filter_by(reference="REF1").one()
    assert res.changed is False
    assert txn.status == TransactionStatus.PROCESSING
    assert txn.meta["late_events"][0]["status"] == TransactionStatus.PENDING


def test_pending_moves_forward_to_processing(make_request, fan):
    req = make_request()
    _upsert(req.id, TransactionStatus.PENDING, user_id=fan.id)
    db.session.commit()

    res = _upsert(req.id, TransactionStatus.PROCESSING, user_id=fan.id)
    db.session.commit()
    assert res.changed is True
    last = res.transaction.meta["history"][-1]
    assert (last["from"], last["to"]) == (TransactionStatus.PENDING, TransactionStatus.PROCESSING)


def test_credit_wallet_is_additive(app, platform_wallet):
    credit_wallet(platform_wallet.id, Decimal("10.00"))
    credit_wallet(platform_wallet.id, "2.505")
    db.session.commit()
    assert db.session.get(Wallet, platform_wallet.id).wallet_balance == Decimal("12.51")


def test_credit_wallet_missing_row(app):
    with pytest.raises(RuntimeError):
        credit_wallet(999, Decimal("1"))
