from enum import Enum
from typing import Optional


class ValidationErrorKind(str, Enum):
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_PRICE = "InvalidPrice"
    INVALID_TAX_RATE = "InvalidTaxRate"
    INVALID_DISCOUNT = "InvalidDiscount"
    AMBIGUOUS_DISCOUNT_MODE = "AmbiguousDiscountMode"


class InvoiceValidationError(ValueError):
    """Raised for line items or discounts the calculator cannot price.

    ``line_index`` is the position of the offending line, or None when the
    problem is in the invoice-level discount.
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        message: str,
        line_index: Optional[int] = None,
    ):
        self.kind = kind
        self.line_index = line_index
        if line_index is not None:
            message = f"Line {line_index + 1}: {message}"
        super().__init__(message)
