import hashlib
import hmac
import json
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from vybraa import create_app
from vybraa.extensions import db
from vybraa.models import (
    CalculationType,
    CelebrityProfile,
    ExchangeRate,
    FeeConfig,
    Request,
    RequestStatus,
    User,
    Wallet,
)

PAYSTACK_SECRET = "sk_test_vybraa_paystack"
FLUTTERWAVE_HASH = "flw-test-hash"
ADMIN_TOKEN = "admin-test-token"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "ENV": "dev",
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "PAYSTACK_SECRET_KEY": PAYSTACK_SECRET,
        "FLUTTERWAVE_SECRET_KEY": "FLWSECK_TEST-vybraa",
        "FLUTTERWAVE_SECRET_HASH": FLUTTERWAVE_HASH,
        "ADMIN_API_TOKEN": ADMIN_TOKEN,
        "BASE_CURRENCY": "USD",
        "FEE_FALLBACK_PERCENT": "10",
        "ENABLE_SCHEDULER": False,
        "DECLINE_REQUEST_ON_PAYMENT_FAILURE": False,
        "STALE_PENDING_HOURS": 24,
        "UNPAID_REQUEST_HOURS": 48,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fan(app):
    u = User(email="fan@example.com", first_name="Ada", role="fan")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def celebrity(app):
    u = User(email="star@example.com", first_name="Tiwa", role="celebrity")
    db.session.add(u)
    db.session.flush()
    profile = CelebrityProfile(user_id=u.id, display_name="Tiwa S.")
    db.session.add(profile)
    db.session.add(Wallet(user_id=u.id, wallet_balance=Decimal("0.00"), currency="USD"))
    db.session.commit()
    return profile


@pytest.fixture
def platform_wallet(app):
    w = Wallet(user_id=None, wallet_balance=Decimal("0.00"), currency="USD", is_super_admin=True)
    db.session.add(w)
    db.session.commit()
    return w


@pytest.fixture
def make_request(fan, celebrity):
    def _make(reference="REF1", price="100.00", currency="USD", status=RequestStatus.PENDING, age_hours=0, paid=False):
        req = Request(
            user_id=fan.id,
            celebrity_profile_id=celebrity.id,
            price=Decimal(price),
            currency=currency,
            occasion="Birthday",
            status=status,
            is_request_paid=paid,
            payment_reference=reference,
            created_at=datetime.utcnow() - timedelta(hours=age_hours),
        )
        db.session.add(req)
        db.session.commit()
        return req
    return _make


@pytest.fixture
def fee_config(app):
    def _make(calculation_type=CalculationType.PERCENTAGE, value="10", slug="request_fee_charge"):
        row = FeeConfig(name="Request fee", slug=slug, calculation_type=calculation_type, value=Decimal(value))
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def exchange_rate(app):
    def _make(to_currency, rate, from_currency="USD"):
        row = ExchangeRate(from_currency=from_currency, to_currency=to_currency, rate=Decimal(rate), is_active=True)
        db.session.add(row)
        db.session.commit()
        return row
    return _make


def sign_paystack(body: bytes, secret: str = PAYSTACK_SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def paystack_body(reference, event="charge.success", amount=10000, currency="USD", status="success") -> bytes:
    payload = {
        "event": event,
        "data": {
            "id": 4099260516,
            "reference": reference,
            "amount": amount,
            "currency": currency,
            "channel": "card",
            "status": status,
            "gateway_response": "Approved",
            "metadata": {"source": "checkout"},
            "customer": {"email": "fan@example.com"},
        },
    }
    return json.dumps(payload).encode("utf-8")


def flutterwave_payload(tx_ref, status="successful", amount=100, currency="USD") -> dict:
    return {
        "event": "charge.completed",
        "data": {
            "id": 285959875,
            "tx_ref": tx_ref,
            "flw_ref": "FLW-MOCK-1",
            "amount": amount,
            "currency": currency,
            "status": status,
            "processor_response": "Approved by Financial Institution",
            "payment_type": "card",
            "customer": {"email": "fan@example.com"},
        },
    }


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body if body is not None else {}
        self.content = json.dumps(self._body).encode("utf-8")

    def json(self):
        return self._body
