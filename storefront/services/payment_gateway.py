# storefront/services/payment_gateway.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

import requests
from requests import RequestException

from storefront.domain.errors import PaymentDeclinedError, PaymentProviderError
from storefront.utils.settings import (
    PAYMENT_GATEWAY_URL,
    PAYMENT_GATEWAY_API_KEY,
    PAYMENT_TIMEOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DECLINED_STATUSES = frozenset({"declined", "failed", "canceled", "requires_payment_method"})


@dataclass(frozen=True)
class PaymentResult:
    status: str
    reference: str | None = None


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway:
    """Authorises a charge with an external provider."""

    def authorize(
        self,
        amount_minor_units: int,
        currency: str,
        payment_method_ref: str,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        raise NotImplementedError


class HttpPaymentGateway(PaymentGateway):
    """
    Payment-intent style HTTP provider.

    Brak retry po naszej stronie - ponawianie to sprawa providera,
    a idempotency key chroni przed podwojnym obciazeniem.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = PAYMENT_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def authorize(
        self,
        amount_minor_units: int,
        currency: str,
        payment_method_ref: str,
        idempotency_key: str | None = None,
    ) -> PaymentResult:
        url = f"{self.base_url}/payment_intents"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        logger.info(f"PaymentGateway POST {url} amount={amount_minor_units} {currency}")

        try:
            resp = requests.post(
                url,
                json={
                    "amount": amount_minor_units,
                    "currency": currency,
                    "payment_method": payment_method_ref,
                    "confirm": True,
                },
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise PaymentProviderError("Payment provider timed out") from e
        except RequestException as e:
            raise PaymentProviderError(f"Payment provider unavailable: {e}") from e

        if resp.status_code == 402:
            raise PaymentDeclinedError(self._error_message(resp, "Payment declined"))
        if resp.status_code >= 400:
            raise PaymentProviderError(
                f"Payment provider error ({resp.status_code}): {self._error_message(resp, resp.reason)}"
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise PaymentProviderError("Payment provider returned an invalid response") from e

        status = str(data.get("status") or "")
        if not status:
            raise PaymentProviderError("Payment provider returned no status")
        if status in DECLINED_STATUSES:
            raise PaymentDeclinedError(f"Payment declined ({status})")

        return PaymentResult(status=status, reference=data.get("id"))

    @staticmethod
    def _error_message(resp: requests.Response, default: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return default
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("message") or default
        return (body.get("message") if isinstance(body, dict) else None) or default


def build_payment_gateway() -> PaymentGateway | None:
    if not PAYMENT_GATEWAY_URL:
        return None
    return HttpPaymentGateway(PAYMENT_GATEWAY_URL, PAYMENT_GATEWAY_API_KEY)
