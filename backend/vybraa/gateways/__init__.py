from __future__ import annotations

from flask import current_app

from vybraa.gateways.base import GatewayAdapter, NormalizedEvent  # noqa: F401
from vybraa.gateways.flutterwave import FlutterwaveAdapter
from vybraa.gateways.paystack import PaystackAdapter

ADAPTERS = {
    PaystackAdapter.name: PaystackAdapter,
    FlutterwaveAdapter.name: FlutterwaveAdapter,
}


def get_adapter(provider: str) -> GatewayAdapter:
    cls = ADAPTERS.get((provider or "").strip().lower())
    if cls is None:
        raise KeyError(f"Unknown payment provider: {provider}")
    return cls.from_config(current_app.config)
