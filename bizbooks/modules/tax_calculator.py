from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from bizbooks.modules.errors import InvoiceValidationError, ValidationErrorKind
from bizbooks.modules.models import (
    DiscountMode,
    InvoiceContext,
    InvoiceDiscount,
    InvoiceTotals,
    LineItem,
    TaxBucket,
    within_range,
)

# ==========================================
# HELPERS
# ==========================================

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def to_dec(v):
    if v is None:
        return Decimal("0.00")
    if isinstance(v, (int, float, Decimal)):
        return Decimal(str(v))
    return Decimal(str(v).replace(",", ""))


def quantize_money(value: Decimal, places: int = 2) -> Decimal:
    """Half-up rounding to ``places`` decimals. The only rounding step used."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_currency(value):
    try:
        val = to_dec(value)
        return "{:,.2f}".format(val)
    except (ValueError, TypeError, ArithmeticError):
        return str(value)


def format_qty(value):
    try:
        val = to_dec(value)
        if val % 1 == 0:
            return "{:.0f}".format(val)
        return "{:f}".format(val.normalize())
    except (ValueError, TypeError, ArithmeticError):
        return str(value)


# ==========================================
# VALIDATION
# ==========================================


def _validate_line(item: LineItem, idx: int) -> None:
    if not within_range(item.quantity) or item.quantity <= 0:
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_QUANTITY,
            f"quantity must be a positive number in range, got {item.quantity}",
            idx,
        )
    if not within_range(item.unit_price):
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_PRICE,
            f"unit price is out of range, got {item.unit_price}",
            idx,
        )
    if item.unit_price < 0:
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_PRICE,
            f"unit price cannot be negative, got {item.unit_price}",
            idx,
        )
    if not within_range(item.tax_rate_percent):
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_TAX_RATE,
            f"tax rate is out of range, got {item.tax_rate_percent}",
            idx,
        )
    if item.tax_rate_percent < 0:
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_TAX_RATE,
            f"tax rate cannot be negative, got {item.tax_rate_percent}",
            idx,
        )
    for value in (item.discount_percent, item.discount_flat):
        if value is not None and not within_range(value):
            raise InvoiceValidationError(
                ValidationErrorKind.INVALID_DISCOUNT,
                f"discount is out of range, got {value}",
                idx,
            )
    # A zero in either slot means that mode is unused
    if item.discount_percent and item.discount_flat:
        raise InvoiceValidationError(
            ValidationErrorKind.AMBIGUOUS_DISCOUNT_MODE,
            "line sets both a percentage and a flat discount",
            idx,
        )
    if item.discount_percent is not None and not (ZERO <= item.discount_percent <= HUNDRED):
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_DISCOUNT,
            f"discount percent must be between 0 and 100, got {item.discount_percent}",
            idx,
        )
    if item.discount_flat is not None and item.discount_flat < 0:
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_DISCOUNT,
            f"flat discount cannot be negative, got {item.discount_flat}",
            idx,
        )


def _validate_invoice_discount(discount: InvoiceDiscount) -> None:
    if not within_range(discount.value):
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_DISCOUNT,
            f"invoice discount is out of range, got {discount.value}",
        )
    if discount.mode == DiscountMode.PERCENT and not (ZERO <= discount.value <= HUNDRED):
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_DISCOUNT,
            f"invoice discount percent must be between 0 and 100, got {discount.value}",
        )
    if discount.mode == DiscountMode.FLAT and discount.value < 0:
        raise InvoiceValidationError(
            ValidationErrorKind.INVALID_DISCOUNT,
            f"invoice flat discount cannot be negative, got {discount.value}",
        )


# ==========================================
# CALCULATION
# ==========================================


def line_discount(item: LineItem, extended: Decimal) -> Decimal:
    if item.discount_percent:
        return extended * item.discount_percent / HUNDRED
    if item.discount_flat:
        # never takes a line below zero
        return min(item.discount_flat, extended)
    return ZERO


def _apply_invoice_discount(
    buckets: Dict[Decimal, Decimal], discount: Optional[InvoiceDiscount]
) -> Decimal:
    """Spreads the invoice-level discount over the rate buckets by share.

    Mutates ``buckets`` in place and returns the discount amount actually taken.
    """
    if discount is None or not discount.value:
        return ZERO

    pool = sum(buckets.values(), ZERO)
    if pool <= 0:
        return ZERO

    if discount.mode == DiscountMode.PERCENT:
        amount = pool * discount.value / HUNDRED
        for rate in buckets:
            buckets[rate] = buckets[rate] * (HUNDRED - discount.value) / HUNDRED
        return amount

    amount = min(discount.value, pool)
    for rate in buckets:
        buckets[rate] = buckets[rate] - amount * buckets[rate] / pool
    return amount


def compute_invoice_totals(context: InvoiceContext, places: int = 2) -> InvoiceTotals:
    """Prices an invoice.

    Per line: extended = qty * price, less its own discount. Taxable amounts
    are bucketed by tax rate; an invoice-level discount is then spread over
    the buckets pro rata. Each bucket is taxed as IGST (inter-state) or as
    equal CGST and SGST halves (intra-state).

    Nothing is rounded until the result is built; every reported amount is
    then rounded half-up to ``places`` decimals, and the grand total is
    rounded from the unrounded sum rather than from the rounded parts.

    Raises InvoiceValidationError for inputs that cannot be priced.
    """
    if context.invoice_discount is not None:
        _validate_invoice_discount(context.invoice_discount)

    subtotal = ZERO
    discounts = ZERO
    buckets: Dict[Decimal, Decimal] = {}

    for idx, item in enumerate(context.line_items):
        _validate_line(item, idx)

        extended = item.extended
        discount = line_discount(item, extended)

        subtotal += extended
        discounts += discount

        rate = item.tax_rate_percent
        buckets[rate] = buckets.get(rate, ZERO) + (extended - discount)

    discounts += _apply_invoice_discount(buckets, context.invoice_discount)
    taxable = subtotal - discounts

    cgst = sgst = igst = ZERO
    breakdown = []
    for rate in sorted(buckets):
        bucket_taxable = buckets[rate]
        tax = bucket_taxable * rate / HUNDRED
        if context.is_inter_state:
            b_cgst, b_sgst, b_igst = ZERO, ZERO, tax
        else:
            half = tax / 2
            b_cgst, b_sgst, b_igst = half, half, ZERO
        cgst += b_cgst
        sgst += b_sgst
        igst += b_igst
        breakdown.append(
            TaxBucket(
                rate=rate,
                taxable_amount=quantize_money(bucket_taxable, places),
                cgst=quantize_money(b_cgst, places),
                sgst=quantize_money(b_sgst, places),
                igst=quantize_money(b_igst, places),
            )
        )

    return InvoiceTotals(
        subtotal=quantize_money(subtotal, places),
        total_discount=quantize_money(discounts, places),
        taxable_amount=quantize_money(taxable, places),
        cgst=quantize_money(cgst, places),
        sgst=quantize_money(sgst, places),
        igst=quantize_money(igst, places),
        grand_total=quantize_money(taxable + cgst + sgst + igst, places),
        tax_breakdown=breakdown,
    )
