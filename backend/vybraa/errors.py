"""Error taxonomy for the settlement core.

Every error carries a short machine ``code``, the HTTP status an admin-facing
endpoint should answer with, and a ``context`` dict that is logged alongside
the message so the missing row or failing reference can be located.
"""

from __future__ import annotations

from typing import Any


class PaymentError(Exception):
    code = "payment_error"
    http_status = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"status": "error", "code": self.code, "message": self.message}


class ConfigurationError(PaymentError):
    """Missing fee config, exchange rate or super-admin wallet."""

    code = "configuration_error"
    http_status = 500


class FeeConfigNotFoundError(ConfigurationError):
    """No ``<fee_type>_fee_charge`` row. The only configuration gap a release may fall back on."""

    code = "fee_config_not_found"


class SignatureValidationError(PaymentError):
    code = "invalid_signature"
    http_status = 401


class ReferenceNotFoundError(PaymentError):
    code = "reference_not_found"
    http_status = 404


class GatewayError(PaymentError):
    code = "gateway_error"
    http_status = 502


class GatewayTimeoutError(GatewayError):
    """Provider did not answer in time. The payment state is unknown, not failed."""

    code = "gateway_timeout"
    http_status = 504


class EscrowReleaseError(PaymentError):
    code = "escrow_release_failed"
    http_status = 409
