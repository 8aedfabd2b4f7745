from __future__ import annotations

import hashlib
import hmac
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from vybraa.errors import GatewayError
from vybraa.gateways.base import GatewayAdapter, NormalizedEvent
from vybraa.models import TransactionStatus

STATUS_MAP = {
    "success": TransactionStatus.COMPLETED,
    "failed": TransactionStatus.FAILED,
    "abandoned": TransactionStatus.FAILED,
    "reversed": TransactionStatus.FAILED,
    "ongoing": TransactionStatus.PROCESSING,
    "processing": TransactionStatus.PROCESSING,
    "pending": TransactionStatus.PENDING,
}


def _kobo_to_major(amount) -> Decimal:
    try:
        return (Decimal(str(amount or 0)) / Decimal("100")).quantize(Decimal("0.01"))
    except InvalidOperation:
        return Decimal("0.00")


def _major_to_kobo(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaystackAdapter(GatewayAdapter):
    name = "paystack"

    @classmethod
    def from_config(cls, config) -> "PaystackAdapter":
        return cls(
            secret_key=config.get("PAYSTACK_SECRET_KEY", ""),
            base_url=config.get("PAYSTACK_URL", "https://api.paystack.co"),
            timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 20),
        )

    def validate_signature(self, raw_body: bytes, signature: str | None) -> bool:
        """HMAC-SHA512 of the raw request body, hex encoded."""
        if not self.secret_key or not signature:
            return False
        digest = hmac.new(self.secret_key.encode("utf-8"), raw_body or b"", hashlib.sha512).hexdigest()
        return hmac.compare_digest(digest, signature.strip())

    def normalize(self, payload: dict) -> NormalizedEvent:
        payload = payload or {}
        data = payload.get("data") or {}
        event = (payload.get("event") or "").strip()
        provider_status = (data.get("status") or "").strip().lower()
        if not provider_status and event == "charge.success":
            provider_status = "success"
        elif not provider_status and event == "charge.failed":
            provider_status = "failed"

        metadata = {
            "gateway_response": data.get("gateway_response"),
            "paystack_id": data.get("id"),
            "customer": data.get("customer"),
            "provider_metadata": data.get("metadata"),
        }
        return NormalizedEvent(
            provider=self.name,
            reference=(data.get("reference") or "").strip(),
            amount=_kobo_to_major(data.get("amount")),
            currency=(data.get("currency") or "NGN").upper(),
            provider_status=provider_status,
            status=STATUS_MAP.get(provider_status, TransactionStatus.PENDING),
            event=event,
            channel=data.get("channel"),
            metadata={k: v for k, v in metadata.items() if v is not None},
            raw=payload,
        )

    def verify(self, reference: str) -> NormalizedEvent:
        j = self._get(f"/transaction/verify/{reference}")
        if j.get("status") is not True or not isinstance(j.get("data"), dict):
            raise GatewayError(j.get("message") or "Paystack verification failed", provider=self.name, reference=reference)
        return self.normalize({"event": "transaction.verify", "data": j["data"]})

    def initialize(
        self,
        amount,
        email: str,
        reference: str,
        callback_url: str = "",
        currency: str = "NGN",
        metadata: dict | None = None,
    ) -> dict:
        """Open a hosted checkout for ``amount`` (major units). Nothing is settled here;
        the charge arrives later through the webhook or a verify call."""
        payload = {
            "email": email,
            "amount": _major_to_kobo(amount),
            "reference": reference,
            "currency": (currency or "NGN").upper(),
        }
        if callback_url:
            payload["callback_url"] = callback_url
        if metadata:
            payload["metadata"] = metadata

        j = self._post("/transaction/initialize", payload)
        data = j.get("data")
        if j.get("status") is not True or not isinstance(data, dict) or not data.get("authorization_url"):
            raise GatewayError(j.get("message") or "Paystack initialize failed", provider=self.name, reference=reference)
        return {
            "authorization_url": data["authorization_url"],
            "access_code": data.get("access_code") or "",
            "reference": data.get("reference") or reference,
        }
