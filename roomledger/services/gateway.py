"""Payment gateway client (Paystack).

The gateway handle is built once per process by get_gateway() and injected
into callers; tests pass their own PaymentGateway.
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import requests

from roomledger.errors import GatewayError
from roomledger.services.config import get_settings

logger = logging.getLogger(__name__)

_REFERENCE_ALPHABET = string.ascii_lowercase + string.digits


def generate_reference(prefix: str = "CHARGE") -> str:
    """Unique payment reference: PREFIX_<epoch ms>_<random suffix>."""
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(8))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


@dataclass
class GatewayVerification:
    """Gateway's verdict on a reference.

    ``status`` is the transaction status the gateway reported ("success",
    "failed", "abandoned"), or None when the reference is unknown to it.
    """

    success: bool
    message: str
    channel: str | None = None
    amount: int | None = None
    status: str | None = None


class PaymentGateway(Protocol):
    """Outbound payment gateway interface."""

    def generate_reference(self, prefix: str = "CHARGE") -> str: ...

    def verify_transaction(self, reference: str) -> GatewayVerification: ...


class PaystackGateway:
    """Paystack transaction verification over HTTPS."""

    def __init__(self, secret_key: str, base_url: str = "https://api.paystack.co", timeout: float = 15.0):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def generate_reference(self, prefix: str = "CHARGE") -> str:
        return generate_reference(prefix)

    def verify_transaction(self, reference: str) -> GatewayVerification:
        """Ask Paystack whether ``reference`` was paid.

        Returns:
            GatewayVerification; success only when Paystack reports status "success".
            Amount is converted from kobo to Naira.

        Raises:
            GatewayError: If the gateway is not configured, unreachable, or replies with non-JSON
        """
        if not self.secret_key:
            logger.error("PAYSTACK_SECRET_KEY not configured")
            raise GatewayError("Payment verification not configured")

        try:
            response = self.session.get(
                f"{self.base_url}/transaction/verify/{reference}",
                headers={"Authorization": f"Bearer {self.secret_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Paystack verification request failed for %s: %s", reference, e)
            raise GatewayError() from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error("Paystack returned non-JSON response for %s (HTTP %s)", reference, response.status_code)
            raise GatewayError("Invalid response from payment gateway") from e

        data = payload.get("data") or {}
        logger.debug("Paystack verification for %s: status=%s", reference, data.get("status"))
        if not payload.get("status") or data.get("status") != "success":
            return GatewayVerification(
                success=False,
                message=payload.get("message") or "Payment verification failed",
                status=data.get("status"),
            )

        amount = data.get("amount")
        return GatewayVerification(
            success=True,
            message=payload.get("message") or "Verification successful",
            channel=data.get("channel"),
            amount=amount // 100 if isinstance(amount, int) else None,
            status=data.get("status"),
        )


@lru_cache
def get_gateway() -> PaymentGateway:
    """Process-wide gateway handle, created on first use."""
    settings = get_settings()
    return PaystackGateway(
        secret_key=settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.gateway_timeout_seconds,
    )


__all__ = [
    "GatewayVerification",
    "PaymentGateway",
    "PaystackGateway",
    "generate_reference",
    "get_gateway",
]
