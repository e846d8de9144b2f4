import math
from decimal import Decimal
from typing import Any, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from bizbooks.modules.dashboard import DEFAULT_REORDER_THRESHOLD, is_low_stock
from bizbooks.modules.models import InvoiceRecord, ItemRecord, Party, PaymentRecord

ALL = "all"

T = TypeVar("T")


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def _matches(value: Optional[str], wanted: str) -> bool:
    return wanted == ALL or value == wanted


def filter_invoices(
    invoices: Sequence[InvoiceRecord],
    search: str = "",
    invoice_type: str = ALL,
    status: str = ALL,
) -> List[InvoiceRecord]:
    """Search hits invoice number or party name; type and status match exactly."""
    needle = search.strip().lower()
    out = []
    for inv in invoices:
        if needle and not (_contains(inv.invoice_number, needle) or _contains(inv.party_name, needle)):
            continue
        if not _matches(inv.invoice_type, invoice_type):
            continue
        if not _matches(inv.status, status):
            continue
        out.append(inv)
    return out


def filter_parties(parties: Sequence[Party], search: str = "", party_type: str = ALL) -> List[Party]:
    needle = search.strip().lower()
    out = []
    for party in parties:
        if needle and not (
            _contains(party.name, needle)
            or _contains(party.email, needle)
            or (party.phone is not None and needle in party.phone)
        ):
            continue
        if not _matches(party.type, party_type):
            continue
        out.append(party)
    return out


def filter_payments(payments: Sequence[PaymentRecord], search: str = "") -> List[PaymentRecord]:
    needle = search.strip().lower()
    if not needle:
        return list(payments)
    return [
        p for p in payments
        if _contains(p.party_name, needle)
        or _contains(p.invoice_number, needle)
        or _contains(p.reference_number, needle)
    ]


def filter_items(
    items: Sequence[ItemRecord],
    search: str = "",
    category: str = ALL,
    low_stock_only: bool = False,
    default_reorder_threshold=DEFAULT_REORDER_THRESHOLD,
) -> List[ItemRecord]:
    needle = search.strip().lower()
    out = []
    for item in items:
        if needle and not _contains(item.name, needle):
            continue
        if not _matches(item.category, category):
            continue
        if low_stock_only and not is_low_stock(item, Decimal(str(default_reorder_threshold))):
            continue
        out.append(item)
    return out


class Page(BaseModel):
    items: List[Any] = []
    page: int = 1
    page_size: int = 10
    total: int = 0
    total_pages: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def paginate(records: Sequence[T], page: int = 1, page_size: int = 10) -> Page:
    """1-based page slice; out-of-range page numbers clamp to the nearest page."""
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    total = len(records)
    total_pages = math.ceil(total / page_size) if total else 0
    page = max(1, min(page, total_pages or 1))
    start = (page - 1) * page_size
    return Page(
        items=list(records[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )
