import re
import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator

# Regex Patterns
GSTIN_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"
PAN_PATTERN = r"^[A-Z]{5}[0-9]{4}[A-Z]{1}$"

ZERO = Decimal("0")

# Largest accepted power of ten for any amount, quantity or rate
MAX_MAGNITUDE = 15


def within_range(d: Decimal) -> bool:
    return d.is_finite() and (d.is_zero() or d.adjusted() <= MAX_MAGNITUDE)


def parse_decimal(v):
    """Strict parse used for invoice inputs: bad numbers are input errors."""
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError(f"Not a number: {v!r}")
    if isinstance(v, float):
        return Decimal(str(v))
    if isinstance(v, str):
        try:
            return Decimal(v.replace(",", "").strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {v!r}")
    return v


def coerce_decimal(v) -> Optional[Decimal]:
    """Lenient parse used for fetched records: anything unusable becomes None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, Decimal):
        return v if within_range(v) else None
    if isinstance(v, (int, float)):
        try:
            d = Decimal(str(v))
        except InvalidOperation:
            return None
        return d if within_range(d) else None
    if isinstance(v, str):
        try:
            d = Decimal(v.replace(",", "").strip())
        except InvalidOperation:
            return None
        return d if within_range(d) else None
    return None


def coerce_text(v) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


# --- Invoice Calculation Models ---

class DiscountMode(str, Enum):
    PERCENT = "percent"
    FLAT = "flat"


class LineItem(BaseModel):
    description: Optional[str] = None
    item_id: Optional[str] = None
    hsn_code: Optional[str] = None
    quantity: Decimal = Field(default=Decimal("1"))
    unit_price: Decimal = ZERO
    discount_percent: Optional[Decimal] = None
    discount_flat: Optional[Decimal] = None
    tax_rate_percent: Decimal = ZERO

    @field_validator(
        "quantity", "unit_price", "discount_percent", "discount_flat", "tax_rate_percent",
        mode="before",
    )
    def parse_amounts(cls, v):
        return parse_decimal(v)

    @field_validator("description", "item_id", "hsn_code", mode="before")
    def text_fields(cls, v):
        return coerce_text(v)

    @property
    def extended(self) -> Decimal:
        return self.quantity * self.unit_price


class InvoiceDiscount(BaseModel):
    mode: DiscountMode = DiscountMode.PERCENT
    value: Decimal = ZERO

    @field_validator("value", mode="before")
    def parse_value(cls, v):
        return parse_decimal(v)


class InvoiceContext(BaseModel):
    is_inter_state: bool = False
    line_items: List[LineItem] = []
    invoice_discount: Optional[InvoiceDiscount] = None


class TaxBucket(BaseModel):
    rate: Decimal
    taxable_amount: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO

    class Config:
        frozen = True


class InvoiceTotals(BaseModel):
    """Rounded result of pricing one invoice. Immutable."""
    subtotal: Decimal = ZERO
    total_discount: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    grand_total: Decimal = ZERO
    tax_breakdown: List[TaxBucket] = []

    class Config:
        frozen = True


# --- Party Models ---

class BaseEntity(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    state_code: Optional[str] = None
    address: Optional[str] = None

    @field_validator("id", "name", "state_code", mode="before")
    def stringify_text(cls, v):
        return coerce_text(v)

    @field_validator("gstin")
    def validate_gstin(cls, v):
        if v and not re.match(GSTIN_PATTERN, v):
            raise ValueError(f"Invalid GSTIN format: {v}")
        return v

    @field_validator("pan")
    def validate_pan(cls, v):
        if v and not re.match(PAN_PATTERN, v):
            raise ValueError(f"Invalid PAN format: {v}")
        return v


class Party(BaseEntity):
    type: Optional[str] = None  # customer | supplier | both
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("type", "phone", "email", mode="before")
    def text_fields(cls, v):
        return coerce_text(v)


# --- Fetched Records (dashboard / lists) ---

class RecordModel(BaseModel):
    """Base for records as returned by list endpoints.

    Numeric fields that are missing or unparseable become None, and
    discriminators that are not strings become None, so one bad record
    can never fail a whole collection.
    """
    id: Optional[str] = None

    @field_validator("id", mode="before")
    def stringify_id(cls, v):
        return coerce_text(v)


class InvoiceRecord(RecordModel):
    invoice_number: Optional[str] = None
    invoice_type: Optional[str] = None  # sale | purchase
    status: Optional[str] = None  # draft | pending | partial | paid | cancelled
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    invoice_date: Optional[Union[datetime.date, str]] = None

    @field_validator("total_amount", "paid_amount", mode="before")
    def lenient_amounts(cls, v):
        return coerce_decimal(v)

    @field_validator("invoice_number", "invoice_type", "status", "party_id", "party_name", mode="before")
    def lenient_text(cls, v):
        return coerce_text(v)

    @field_validator("invoice_date", mode="before")
    def lenient_date(cls, v):
        if isinstance(v, (datetime.date, str)):
            return v
        return None


class PaymentRecord(RecordModel):
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    party_id: Optional[str] = None
    party_name: Optional[str] = None
    transaction_type: Optional[str] = None  # payment_in | payment_out
    amount: Optional[Decimal] = None
    payment_mode: Optional[str] = None
    reference_number: Optional[str] = None

    @field_validator("amount", mode="before")
    def lenient_amount(cls, v):
        return coerce_decimal(v)

    @field_validator(
        "invoice_id", "invoice_number", "party_id", "party_name",
        "transaction_type", "payment_mode", "reference_number",
        mode="before",
    )
    def lenient_text(cls, v):
        return coerce_text(v)


class ItemRecord(RecordModel):
    name: Optional[str] = None
    category: Optional[str] = None
    current_stock: Optional[Decimal] = None
    reorder_threshold: Optional[Decimal] = None

    @field_validator("current_stock", "reorder_threshold", mode="before")
    def lenient_amounts(cls, v):
        return coerce_decimal(v)

    @field_validator("name", "category", mode="before")
    def lenient_text(cls, v):
        return coerce_text(v)


class DashboardInputs(BaseModel):
    invoices: List[InvoiceRecord] = []
    payments: List[PaymentRecord] = []
    items: List[ItemRecord] = []
    parties: List[Party] = []


class DashboardStats(BaseModel):
    total_sales: Decimal = ZERO
    total_purchases: Decimal = ZERO
    pending_amount: Decimal = ZERO
    receivables: Decimal = ZERO
    low_stock_count: int = 0
    total_parties_count: int = 0
    paid_invoices_count: int = 0

    total_payments_received: Decimal = ZERO
    total_payments_made: Decimal = ZERO
    outstanding_receivables: Decimal = ZERO
    customers_count: int = 0
    suppliers_count: int = 0
    total_items_count: int = 0
    pending_invoices_count: int = 0
    total_invoices_count: int = 0

    class Config:
        frozen = True

