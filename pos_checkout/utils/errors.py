"""
Checkout error taxonomy.

Every failure the pipeline can report carries a stable ``kind`` string so the
result returned to the till can be matched on without parsing messages.
"""
from typing import Optional


class CheckoutError(Exception):
    """Base class for all pipeline failures."""

    kind: str = "CheckoutError"

    def __init__(self, message: str, line_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line_index = line_index

    def __str__(self) -> str:
        return self.message


class InvalidCheckoutInput(CheckoutError):
    """Empty cart, bad ids or payment method. Nothing was touched."""
    kind = "InvalidCheckoutInput"


class OrderSubmissionFailed(CheckoutError):
    """The order was never created; the whole checkout is safe to retry."""
    kind = "OrderSubmissionFailed"


class InvalidLineItem(CheckoutError):
    kind = "InvalidLineItem"


class InvalidConversionRule(CheckoutError):
    kind = "InvalidConversionRule"


class ConversionRuleRequired(CheckoutError):
    kind = "ConversionRuleRequired"


class InventoryUnavailable(CheckoutError):
    """Current stock could not be read. Never treated as zero stock."""
    kind = "InventoryUnavailable"


class InventoryWriteFailed(CheckoutError):
    kind = "InventoryWriteFailed"


class InvalidStockValue(CheckoutError):
    """Negative or non-finite stock target, rejected before any call."""
    kind = "InvalidStockValue"


class RollbackPartiallyFailed(CheckoutError):
    """Compensation could not restore every prior stock level."""
    kind = "RollbackPartiallyFailed"
