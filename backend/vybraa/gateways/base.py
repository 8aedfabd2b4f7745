from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from vybraa.errors import GatewayError, GatewayTimeoutError
from vybraa.models import TransactionStatus


@dataclass
class NormalizedEvent:
    """A provider event reduced to what the ledger needs. ``amount`` is in major units."""

    provider: str
    reference: str
    amount: Decimal
    currency: str
    provider_status: str
    status: str
    event: str = ""
    channel: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "reference": self.reference,
            "amount": str(self.amount),
            "currency": self.currency,
            "provider_status": self.provider_status,
            "status": self.status,
            "event": self.event,
            "channel": self.channel,
        }


class GatewayAdapter:
    """Pure translator between one provider's wire format and the ledger.

    Subclasses implement ``validate_signature``, ``normalize`` and ``verify``.
    The only side effects allowed are outbound provider calls (verify, and
    checkout initialization on Paystack).
    """

    name = "gateway"

    def __init__(self, secret_key: str, base_url: str, timeout: float = 20.0):
        self.secret_key = (secret_key or "").strip()
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = float(timeout)

    def validate_signature(self, raw_body: bytes, signature: str | None) -> bool:
        raise NotImplementedError

    def normalize(self, payload: dict) -> NormalizedEvent:
        raise NotImplementedError

    def verify(self, reference: str) -> NormalizedEvent:
        raise NotImplementedError

    def _get(self, path: str, params: dict | None = None) -> dict:
        return self._call("get", path, params=params)

    def _post(self, path: str, payload: dict) -> dict:
        return self._call("post", path, json=payload)

    def _call(self, method: str, path: str, **kwargs) -> dict:
        if not self.secret_key:
            raise GatewayError(f"{self.name} secret key not set", provider=self.name)
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        try:
            r = getattr(requests, method)(url, headers=headers, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise GatewayTimeoutError(f"{self.name} did not answer: {e}", provider=self.name, url=url) from e
        except requests.RequestException as e:
            raise GatewayError(f"{self.name} request failed: {e}", provider=self.name, url=url) from e

        try:
            j = r.json() if r.content else {}
        except ValueError:
            j = {}
        if not (200 <= r.status_code < 300):
            message = j.get("message") if isinstance(j, dict) else None
            raise GatewayError(
                message or f"HTTP {r.status_code}",
                provider=self.name,
                url=url,
                status_code=r.status_code,
            )
        if not isinstance(j, dict):
            raise GatewayError(f"{self.name} returned an unusable body", provider=self.name, url=url)
        return j
