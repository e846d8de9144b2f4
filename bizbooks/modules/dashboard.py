from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence

from bizbooks.modules.models import (
    DashboardInputs,
    DashboardStats,
    InvoiceRecord,
    ItemRecord,
)

ZERO = Decimal("0")

SALE = "sale"
PURCHASE = "purchase"
PAID = "paid"
PENDING = "pending"
PAYMENT_IN = "payment_in"
PAYMENT_OUT = "payment_out"
CUSTOMER = "customer"
SUPPLIER = "supplier"
BOTH = "both"

DEFAULT_REORDER_THRESHOLD = Decimal("10")
DEFAULT_OPEN_STATUSES = ("pending", "partial")


def _amt(v: Optional[Decimal]) -> Decimal:
    return v if v is not None else ZERO


def _sum(values: Iterable[Optional[Decimal]]) -> Decimal:
    return sum((_amt(v) for v in values), ZERO)


def is_low_stock(item: ItemRecord, default_threshold=DEFAULT_REORDER_THRESHOLD) -> bool:
    threshold = item.reorder_threshold
    if threshold is None:
        threshold = Decimal(str(default_threshold))
    return _amt(item.current_stock) <= threshold


def _payments_by_invoice(inputs: DashboardInputs) -> Dict[str, Decimal]:
    paid: Dict[str, Decimal] = {}
    for pay in inputs.payments:
        if pay.invoice_id is None:
            continue
        paid[pay.invoice_id] = paid.get(pay.invoice_id, ZERO) + _amt(pay.amount)
    return paid


def _paid_on(inv: InvoiceRecord, linked: Dict[str, Decimal]) -> Decimal:
    if inv.paid_amount is not None:
        return inv.paid_amount
    if inv.id is not None:
        return linked.get(inv.id, ZERO)
    return ZERO


def compute_dashboard_stats(
    inputs: DashboardInputs,
    default_reorder_threshold=DEFAULT_REORDER_THRESHOLD,
    open_statuses: Sequence[str] = DEFAULT_OPEN_STATUSES,
) -> DashboardStats:
    """Reduces fetched collections into dashboard figures.

    Total over any input: missing amounts count as zero and a record whose
    discriminator (invoice_type, status, transaction_type, party type) is
    missing or spelled differently simply matches no bucket. Matching is
    exact and case-sensitive.
    """
    invoices = inputs.invoices
    open_set = set(open_statuses)

    sales = [inv for inv in invoices if inv.invoice_type == SALE]
    purchases = [inv for inv in invoices if inv.invoice_type == PURCHASE]

    linked = _payments_by_invoice(inputs)
    receivables = ZERO
    for inv in sales:
        if inv.status in open_set:
            due = _amt(inv.total_amount) - _paid_on(inv, linked)
            if due > 0:
                receivables += due

    # Payments are attributed through their invoice when it is known,
    # otherwise through their own direction.
    type_by_invoice = {inv.id: inv.invoice_type for inv in invoices if inv.id is not None}
    received = ZERO
    made = ZERO
    for pay in inputs.payments:
        kind = type_by_invoice.get(pay.invoice_id) if pay.invoice_id is not None else None
        if kind == SALE or (kind is None and pay.transaction_type == PAYMENT_IN):
            received += _amt(pay.amount)
        elif kind == PURCHASE or (kind is None and pay.transaction_type == PAYMENT_OUT):
            made += _amt(pay.amount)

    total_sales = _sum(inv.total_amount for inv in sales)

    return DashboardStats(
        total_sales=total_sales,
        total_purchases=_sum(inv.total_amount for inv in purchases),
        pending_amount=_sum(inv.total_amount for inv in invoices if inv.status in open_set),
        receivables=receivables,
        low_stock_count=sum(
            1 for item in inputs.items if is_low_stock(item, default_reorder_threshold)
        ),
        total_parties_count=len(inputs.parties),
        paid_invoices_count=sum(1 for inv in invoices if inv.status == PAID),
        total_payments_received=received,
        total_payments_made=made,
        outstanding_receivables=total_sales - received,
        customers_count=sum(1 for p in inputs.parties if p.type in (CUSTOMER, BOTH)),
        suppliers_count=sum(1 for p in inputs.parties if p.type in (SUPPLIER, BOTH)),
        total_items_count=len(inputs.items),
        pending_invoices_count=sum(1 for inv in invoices if inv.status == PENDING),
        total_invoices_count=len(invoices),
    )
