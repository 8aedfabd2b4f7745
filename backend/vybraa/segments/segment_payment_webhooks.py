from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from vybraa.errors import GatewayTimeoutError, PaymentError, ReferenceNotFoundError, SignatureValidationError
from vybraa.escrow import settle
from vybraa.extensions import db
from vybraa.gateways import get_adapter
from vybraa.models import Request, RequestStatus

payments_bp = Blueprint("payments_bp", __name__, url_prefix="/payment")

PAYSTACK_HANDLED_EVENTS = ("charge.success", "charge.failed")


def _check_signature(adapter, header: str) -> None:
    if not adapter.validate_signature(request.get_data() or b"", request.headers.get(header)):
        current_app.logger.warning("%s webhook rejected: invalid %s from %s", adapter.name, header, request.remote_addr)
        raise SignatureValidationError("Invalid webhook signature", provider=adapter.name)


@payments_bp.post("/paystack/initialize")
def paystack_initialize():
    """Start a fan's checkout for a pending request; the webhook settles it later."""
    data = request.get_json(silent=True) or {}
    try:
        request_id = int(data.get("request_id") or 0)
    except (TypeError, ValueError):
        request_id = 0
    email = (data.get("email") or "").strip()
    if request_id <= 0 or "@" not in email:
        return jsonify({"status": "error", "message": "request_id and email are required"}), 400

    req = db.session.get(Request, request_id)
    if req is None or req.deleted_at is not None:
        return jsonify({"status": "error", "message": "Request not found"}), 404
    if req.is_request_paid or req.status != RequestStatus.PENDING:
        return jsonify({"status": "error", "message": "Request is not awaiting payment"}), 409

    if not req.payment_reference:
        now = datetime.utcnow()
        req.payment_reference = f"VYB-{int(req.id)}-{int(now.timestamp() * 1000)}"
        req.updated_at = now
        db.session.add(req)
        db.session.commit()

    metadata = {"request_id": int(req.id)}
    cancel_url = current_app.config.get("PAYMENT_CANCEL_URL")
    if cancel_url:
        metadata["cancel_action"] = cancel_url

    # GatewayError and GatewayTimeoutError go to the PaymentError handler
    checkout = get_adapter("paystack").initialize(
        amount=req.price,
        email=email,
        reference=req.payment_reference,
        callback_url=(data.get("callback_url") or current_app.config.get("PAYMENT_CALLBACK_URL") or "").strip(),
        currency=req.currency,
        metadata=metadata,
    )
    current_app.logger.info("paystack checkout opened request=%s reference=%s", req.id, checkout["reference"])
    return jsonify({"status": "success", "data": checkout}), 200


@payments_bp.post("/paystack/webhook")
def paystack_webhook():
    """Paystack retries anything that is not a 200, so only genuine internal errors answer 500."""
    adapter = get_adapter("paystack")
    # a bad signature surfaces as 401 through the PaymentError handler
    _check_signature(adapter, "x-paystack-signature")

    payload = request.get_json(silent=True) or {}
    event_name = (payload.get("event") or "").strip()
    if event_name not in PAYSTACK_HANDLED_EVENTS:
        current_app.logger.info("paystack webhook %r ignored", event_name)
        return jsonify({"status": "success", "result": "ignored"}), 200

    event = adapter.normalize(payload)
    current_app.logger.info("paystack webhook %s reference=%s status=%s", event_name, event.reference, event.provider_status)
    try:
        result = settle(event)
    except ReferenceNotFoundError as e:
        current_app.logger.warning("paystack webhook for unknown reference=%s: %s", event.reference, e.message)
        return jsonify({"status": "success", "result": "reference_not_found"}), 200
    except PaymentError as e:
        db.session.rollback()
        current_app.logger.exception("paystack webhook failed reference=%s", event.reference)
        return jsonify(e.to_dict()), 500
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("paystack webhook failed reference=%s", event.reference)
        return jsonify({"status": "error", "message": "Webhook error", "error": str(e)}), 500

    return jsonify({"status": "success", "result": result.to_dict()}), 200


@payments_bp.post("/flutterwave/webhook")
def flutterwave_webhook():
    """Always answers 200; the outcome is in the body."""
    adapter = get_adapter("flutterwave")
    if not adapter.secret_hash:
        current_app.logger.warning("FLUTTERWAVE_SECRET_HASH not set; verif-hash not checked")
    try:
        _check_signature(adapter, "verif-hash")
    except SignatureValidationError as e:
        return jsonify({"status": "error", "message": e.message, "error": e.code}), 200

    payload = request.get_json(silent=True) or {}
    event = adapter.normalize(payload)
    current_app.logger.info("flutterwave webhook %s reference=%s status=%s", event.event, event.reference, event.provider_status)
    try:
        result = settle(event)
    except ReferenceNotFoundError:
        current_app.logger.warning("flutterwave webhook for unknown reference=%s", event.reference)
        return jsonify({"status": "error", "result": {"status": "request_not_found", "reference": event.reference}}), 200
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("flutterwave webhook failed reference=%s", event.reference)
        return jsonify({"status": "error", "message": "Webhook processing failed", "error": str(e)}), 200

    return jsonify({"status": "success", "result": result.to_dict()}), 200


@payments_bp.get("/flutterwave/verify/<reference>")
def flutterwave_verify(reference: str):
    """Client-triggered check after checkout. ``reference`` is Flutterwave's transaction id."""
    adapter = get_adapter("flutterwave")
    try:
        event = adapter.verify_by_id(reference)
    except GatewayTimeoutError:
        current_app.logger.warning("flutterwave verify timed out for %s", reference)
        return jsonify({"status": "pending", "reference": reference}), 202

    # ReferenceNotFoundError and GatewayError go to the PaymentError handler
    result = settle(event)
    return jsonify({"status": "success", "result": result.to_dict(), "transaction": event.to_dict()}), 200
