from datetime import datetime, timedelta
from decimal import Decimal

import requests
from sqlalchemy.exc import OperationalError

from conftest import FakeResponse
from vybraa.escrow import settle
from vybraa.extensions import db
from vybraa.gateways import base as gateway_base
from vybraa.gateways.base import NormalizedEvent
from vybraa.jobs import reconciliation
from vybraa.jobs.reconciliation import sweep_escrow_releases, sweep_stale_pending, sweep_unpaid_requests
from vybraa.models import (
    ActivityLog,
    EscrowStatus,
    Request,
    RequestStatus,
    Transaction,
    TransactionStatus,
    Wallet,
    WalletEarningsHistory,
)


def _pending_payment(make_request, reference="REF1", age_hours=25, provider="paystack"):
    req = make_request(reference=reference)
    settle(NormalizedEvent(
        provider=provider,
        reference=reference,
        amount=Decimal("100.00"),
        currency="USD",
        provider_status="pending",
        status=TransactionStatus.PENDING,
    ))
    txn = Transaction.query.filter_by(reference=reference).one()
    txn.created_at = datetime.utcnow() - timedelta(hours=age_hours)
    db.session.commit()
    return req


def _paystack_verify_returns(monkeypatch, status):
    body = {"status": True, "data": {"reference": "REF1", "amount": 10000, "currency": "USD", "status": status}}
    monkeypatch.setattr(gateway_base.requests, "get", lambda *a, **k: FakeResponse(200, body))


# -------------------------
# stale pending
# -------------------------

def test_stale_payment_reported_failed_is_refunded_and_declined(make_request, monkeypatch):
    req = _pending_payment(make_request)
    _paystack_verify_returns(monkeypatch, "failed")

    summary = sweep_stale_pending()

    assert summary["processed"] == 1
    assert summary["failed"] == 1
    txn = Transaction.query.filter_by(reference="REF1").one()
    assert txn.status == TransactionStatus.FAILED
    assert txn.escrow_status == EscrowStatus.REFUNDED
    assert db.session.get(Request, req.id).status == RequestStatus.DECLINED
    assert ActivityLog.query.filter_by(action="REQUEST_STATUS_CHANGED", target_id=req.id).count() == 1


def test_stale_payment_confirmed_by_provider_is_settled(make_request, monkeypatch):
    req = _pending_payment(make_request)
    _paystack_verify_returns(monkeypatch, "success")

    summary = sweep_stale_pending()

    assert summary["completed"] == 1
    txn = Transaction.query.filter_by(reference="REF1").one()
    assert txn.status == TransactionStatus.COMPLETED
    assert txn.escrow_status == EscrowStatus.PENDING
    assert db.session.get(Request, req.id).is_request_paid is True


def test_stale_payment_left_pending_on_timeout(make_request, monkeypatch):
    req = _pending_payment(make_request)

    def fake_get(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(gateway_base.requests, "get", fake_get)
    summary = sweep_stale_pending()

    assert summary["pending"] == 1
    assert summary["failed"] == 0
    assert Transaction.query.filter_by(reference="REF1").one().status == TransactionStatus.PENDING
    assert db.session.get(Request, req.id).status == RequestStatus.PENDING


def test_stale_payment_unverifiable_is_failed(make_request, monkeypatch):
    req = _pending_payment(make_request)
    monkeypatch.setattr(gateway_base.requests, "get", lambda *a, **k: FakeResponse(400, {"status": False, "message": "Transaction reference not found"}))

    summary = sweep_stale_pending()

    assert summary["failed"] == 1
    txn = Transaction.query.filter_by(reference="REF1").one()
    assert txn.status == TransactionStatus.FAILED
    assert "could not be verified" in txn.meta["failure_reason"]
    assert db.session.get(Request, req.id).status == RequestStatus.DECLINED


def test_recent_pending_payment_is_not_swept(make_request, monkeypatch):
    _pending_payment(make_request, age_hours=2)

    def fail_get(*args, **kwargs):
        raise AssertionError("provider should not be called")

    monkeypatch.setattr(gateway_base.requests, "get", fail_get)
    assert sweep_stale_pending()["processed"] == 0


def test_stale_flutterwave_payment_uses_flutterwave_verify(make_request, monkeypatch):
    _pending_payment(make_request, provider="flutterwave")
    seen = {}

    def fake_get(url, headers=None, params=None, timeout=None):
        seen.update(url=url, params=params)
        return FakeResponse(200, {"status": "success", "data": {"tx_ref": "REF1", "amount": 100, "currency": "USD", "status": "cancelled"}})

    monkeypatch.setattr(gateway_base.requests, "get", fake_get)
    summary = sweep_stale_pending()

    assert seen["url"].endswith("/transactions/verify_by_reference")
    assert seen["params"] == {"tx_ref": "REF1"}
    assert summary["failed"] == 1
    assert Transaction.query.filter_by(reference="REF1").one().escrow_status == EscrowStatus.REFUNDED


def test_stale_sweep_continues_after_database_error(make_request, monkeypatch):
    _pending_payment(make_request, reference="A1")
    _pending_payment(make_request, reference="A2")

    def fake_get(url, headers=None, params=None, timeout=None):
        reference = url.rsplit("/", 1)[-1]
        return FakeResponse(200, {"status": True, "data": {"reference": reference, "amount": 10000, "currency": "USD", "status": "success"}})

    monkeypatch.setattr(gateway_base.requests, "get", fake_get)

    def flaky_settle(event):
        if event.reference == "A1":
            raise OperationalError("UPDATE transactions", {}, Exception("database is locked"))
        return settle(event)

    monkeypatch.setattr(reconciliation, "settle", flaky_settle)
    summary = sweep_stale_pending()

    assert summary["processed"] == 2
    assert summary["errors"] == 1
    assert summary["completed"] == 1
    assert Transaction.query.filter_by(reference="A1").one().status == TransactionStatus.PENDING
    assert Transaction.query.filter_by(reference="A2").one().status == TransactionStatus.COMPLETED


# -------------------------
# unpaid requests
# -------------------------

def test_unpaid_request_is_declined_and_soft_deleted(make_request):
    req = make_request(reference="REF9", age_hours=49)

    summary = sweep_unpaid_requests()

    assert summary["declined"] == 1
    req = db.session.get(Request, req.id)
    assert req.status == RequestStatus.DECLINED
    assert req.deleted_at is not None

    txn = Transaction.query.filter_by(request_id=req.id).one()
    assert txn.reference.startswith(f"timeout_{req.id}_")
    assert txn.provider == "timeout"
    assert txn.status == TransactionStatus.FAILED
    assert txn.is_in_escrow is False
    assert txn.escrow_status is None
    assert txn.amount == Decimal("100.00")


def test_unpaid_sweep_skips_young_and_started_requests(make_request):
    make_request(reference="YOUNG", age_hours=10)
    started = make_request(reference="STARTED", age_hours=60)
    settle(NormalizedEvent(
        provider="paystack", reference="STARTED", amount=Decimal("100.00"), currency="USD",
        provider_status="pending", status=TransactionStatus.PENDING,
    ))

    summary = sweep_unpaid_requests()

    assert summary["processed"] == 0
    assert db.session.get(Request, started.id).deleted_at is None


def test_unpaid_sweep_runs_once_per_request(make_request):
    make_request(reference="REF9", age_hours=49)
    assert sweep_unpaid_requests()["declined"] == 1
    assert sweep_unpaid_requests()["processed"] == 0
    assert Transaction.query.count() == 1


# -------------------------
# escrow releases
# -------------------------

def _completed_paid_request(make_request, reference):
    req = make_request(reference=reference)
    settle(NormalizedEvent(
        provider="paystack", reference=reference, amount=Decimal("100.00"), currency="USD",
        provider_status="success", status=TransactionStatus.COMPLETED,
    ))
    req = db.session.get(Request, req.id)
    req.status = RequestStatus.COMPLETED
    db.session.commit()
    return req


def test_release_sweep_releases_completed_requests(make_request, celebrity, platform_wallet, fee_config):
    fee_config("PERCENTAGE", "10")
    _completed_paid_request(make_request, "REF1")
    _completed_paid_request(make_request, "REF2")
    make_request(reference="REF3")

    summary = sweep_escrow_releases()

    assert summary["released"] == 2
    assert summary["errors"] == 0
    assert WalletEarningsHistory.query.count() == 2
    assert Wallet.query.filter_by(user_id=celebrity.user_id).one().wallet_balance == Decimal("180.00")
    assert Wallet.query.filter_by(is_super_admin=True).one().wallet_balance == Decimal("20.00")

    # a second tick finds nothing left to release
    assert sweep_escrow_releases()["processed"] == 0


def test_release_sweep_continues_past_failures(make_request, celebrity, platform_wallet, fee_config, exchange_rate):
    fee_config("PERCENTAGE", "10")
    bad = make_request(reference="NGN1", price="5000.00", currency="NGN")
    settle(NormalizedEvent(
        provider="paystack", reference="NGN1", amount=Decimal("5000.00"), currency="NGN",
        provider_status="success", status=TransactionStatus.COMPLETED,
    ))
    bad = db.session.get(Request, bad.id)
    bad.status = RequestStatus.COMPLETED
    db.session.commit()
    _completed_paid_request(make_request, "REF2")

    summary = sweep_escrow_releases()

    assert summary["processed"] == 2
    assert summary["released"] == 1
    assert summary["errors"] == 1
    assert Transaction.query.filter_by(reference="NGN1").one().escrow_status == EscrowStatus.PENDING

    # once the rate exists the next tick picks it up
    exchange_rate("NGN", "1000")
    assert sweep_escrow_releases()["released"] == 1


def test_release_sweep_skips_deleted_and_unpaid(make_request, celebrity, platform_wallet):
    req = _completed_paid_request(make_request, "REF1")
    req.deleted_at = datetime.utcnow()
    db.session.commit()
    make_request(reference="REF2", status=RequestStatus.COMPLETED)

    assert sweep_escrow_releases()["processed"] == 0
