"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Webhook callers map ``InvalidSignatureError`` to HTTP 400; everything
derived from ``TransientError`` may be retried with backoff.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class InsufficientStockError(DomainException):
    """A reservation asked for more units than are available."""

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for product '{product_id}' "
            f"(need {requested}, have {available} available)"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class IllegalTransitionError(DomainException):
    """A reservation record was asked to move along an edge it does not have."""


# --- Checkout failures --------------------------------------------------------


class EmptyCartError(DomainException):
    """Checkout was attempted with no line items."""


class OutOfStockError(DomainException):
    """A cart item could not be reserved during checkout."""

    def __init__(self, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Product {product_name} is out of stock "
            f"(need {requested}, have {available} available)"
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidCouponError(DomainException):
    """The coupon policy refused the supplied code."""


class PaymentProviderError(DomainException):
    """The payment provider failed to create a payment intent."""


# --- Webhook ingestion --------------------------------------------------------


class InvalidSignatureError(DomainException):
    """A webhook payload failed signature verification or could not be parsed."""


# --- Retryable ----------------------------------------------------------------


class TransientError(DomainException):
    """A failure that may succeed if the caller retries."""


class LockTimeoutError(TransientError):
    """A per-entity lock could not be acquired in time."""
