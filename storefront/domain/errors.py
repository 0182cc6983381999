# storefront/domain/errors.py
"""
Bledy domenowe zamowien.

Serwisy rzucaja je przy naruszeniu regul biznesowych, routery tlumacza
``status_code`` na odpowiedz HTTP.
"""


class OrderError(Exception):
    status_code = 400


class ValidationError(OrderError, ValueError):
    """Bad or missing input, including an empty cart."""


class InvalidStatusError(ValidationError):
    """Unknown order status or a transition the state machine does not allow."""


class InsufficientStockError(OrderError):
    def __init__(self, product_name: str, available: int | None = None, requested: int | None = None):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock for product {product_name}")


class NotFoundError(OrderError, LookupError):
    status_code = 404


class ForbiddenError(OrderError, PermissionError):
    status_code = 403


class PaymentDeclinedError(OrderError):
    status_code = 402


class PaymentProviderError(OrderError):
    status_code = 502


class ConflictError(OrderError, RuntimeError):
    status_code = 409
