from __future__ import annotations

import hmac
from decimal import Decimal, InvalidOperation

from vybraa.errors import GatewayError
from vybraa.gateways.base import GatewayAdapter, NormalizedEvent
from vybraa.models import TransactionStatus

STATUS_MAP = {
    "successful": TransactionStatus.COMPLETED,
    "succeeded": TransactionStatus.COMPLETED,
    "failed": TransactionStatus.FAILED,
    "pending": TransactionStatus.PENDING,
    "cancelled": TransactionStatus.CANCELLED,
    "processing": TransactionStatus.PROCESSING,
}


def map_status(status: str | None) -> str:
    return STATUS_MAP.get((status or "").strip().lower(), TransactionStatus.PENDING)


def _major(amount) -> Decimal:
    try:
        return Decimal(str(amount or 0)).quantize(Decimal("0.01"))
    except InvalidOperation:
        return Decimal("0.00")


class FlutterwaveAdapter(GatewayAdapter):
    name = "flutterwave"

    def __init__(self, secret_key: str, base_url: str, timeout: float = 20.0, secret_hash: str = "", strict: bool = True):
        super().__init__(secret_key, base_url, timeout)
        self.secret_hash = (secret_hash or "").strip()
        self.strict = strict

    @classmethod
    def from_config(cls, config) -> "FlutterwaveAdapter":
        return cls(
            secret_key=config.get("FLUTTERWAVE_SECRET_KEY", ""),
            base_url=config.get("FLUTTERWAVE_V3_URL", "https://api.flutterwave.com/v3"),
            timeout=config.get("GATEWAY_TIMEOUT_SECONDS", 20),
            secret_hash=config.get("FLUTTERWAVE_SECRET_HASH", ""),
            strict=(config.get("ENV") or "dev") in ("prod", "production"),
        )

    def validate_signature(self, raw_body: bytes, signature: str | None) -> bool:
        """Flutterwave echoes the configured secret hash in ``verif-hash``; the body is not signed."""
        if not self.secret_hash:
            # without a configured hash dev setups accept everything; production never does
            return not self.strict
        if not signature:
            return False
        return hmac.compare_digest(signature.strip(), self.secret_hash)

    def normalize(self, payload: dict) -> NormalizedEvent:
        payload = payload or {}
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        provider_status = (data.get("status") or "").strip().lower()
        metadata = {
            "flw_ref": data.get("flw_ref"),
            "flw_id": data.get("id"),
            "processor_response": data.get("processor_response"),
            "charged_amount": data.get("charged_amount"),
            "app_fee": data.get("app_fee"),
            "merchant_fee": data.get("merchant_fee"),
            "settled_amount": data.get("amount_settled"),
            "payment_type": data.get("payment_type"),
            "customer": data.get("customer"),
            "provider_metadata": data.get("meta") or data.get("metadata"),
        }
        return NormalizedEvent(
            provider=self.name,
            reference=(data.get("tx_ref") or "").strip(),
            amount=_major(data.get("amount")),
            currency=(data.get("currency") or "").upper(),
            provider_status=provider_status,
            status=map_status(provider_status),
            event=(payload.get("event") or payload.get("event.type") or "").strip(),
            channel=data.get("payment_type") or self.name,
            metadata={k: v for k, v in metadata.items() if v is not None},
            raw=payload,
        )

    def _unwrap(self, j: dict, **context) -> NormalizedEvent:
        if (j.get("status") or "").lower() != "success" or not isinstance(j.get("data"), dict):
            raise GatewayError(j.get("message") or "Flutterwave verification failed", provider=self.name, **context)
        return self.normalize({"event": "transaction.verify", "data": j["data"]})

    def verify(self, reference: str) -> NormalizedEvent:
        j = self._get("/transactions/verify_by_reference", params={"tx_ref": reference})
        return self._unwrap(j, reference=reference)

    def verify_by_id(self, transaction_id: str) -> NormalizedEvent:
        j = self._get(f"/transactions/{transaction_id}/verify")
        return self._unwrap(j, transaction_id=transaction_id)
