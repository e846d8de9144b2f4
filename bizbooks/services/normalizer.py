import re
import logging
from typing import Any, Dict, List, Optional

from bizbooks.modules.models import (
    GSTIN_PATTERN,
    PAN_PATTERN,
    DashboardInputs,
    DiscountMode,
    InvoiceContext,
    InvoiceDiscount,
    InvoiceRecord,
    ItemRecord,
    LineItem,
    Party,
    PaymentRecord,
)

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

PERCENT_MODES = {"percent", "percentage", "%"}
FLAT_MODES = {"flat", "amount", "fixed"}


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def normalize_keys(value: Any) -> Any:
    """Recursively rewrites camelCase keys as snake_case.

    Services disagree on casing (``totalAmount`` vs ``total_amount``); when
    both spellings are present the snake_case one wins.
    """
    if isinstance(value, list):
        return [normalize_keys(v) for v in value]
    if not isinstance(value, dict):
        return value
    out: Dict[str, Any] = {}
    for key, v in value.items():
        if not isinstance(key, str):
            continue
        snake = camel_to_snake(key)
        if snake in out and snake == key:
            out[snake] = normalize_keys(v)
        elif snake not in out:
            out[snake] = normalize_keys(v)
    return out


def unwrap_collection(payload: Any) -> List[Dict[str, Any]]:
    """Accepts a bare list or the ``{"data": [...]}`` envelope the BFFs use."""
    if isinstance(payload, dict):
        for key in ("data", "items", "results"):
            inner = payload.get(key)
            if isinstance(inner, (list, dict)):
                return unwrap_collection(inner)
        return []
    if not isinstance(payload, list):
        return []
    return [r for r in payload if isinstance(r, dict)]


def _first(record: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        val = record.get(key)
        if val is not None:
            return val
    return None


def _nested(record: Dict[str, Any], *path: str) -> Any:
    cur: Any = record
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# ==========================================
# INVOICE INPUTS (strict)
# ==========================================


def normalize_line_item(raw: Dict[str, Any]) -> LineItem:
    rec = normalize_keys(raw)

    discount_percent = _first(rec, "discount_percent", "discount_percentage")
    discount_flat = _first(rec, "discount_flat", "discount_amount")

    # Forms send a single "discount" value plus a mode selector
    generic = _first(rec, "discount", "discount_value")
    if generic is not None:
        mode = str(rec.get("discount_type") or "percent").lower()
        if mode in FLAT_MODES:
            if discount_flat is None:
                discount_flat = generic
        elif discount_percent is None:
            discount_percent = generic

    return LineItem(**_drop_none({
        "description": _first(rec, "description", "item_name", "name"),
        "item_id": _first(rec, "item_id", "id"),
        "hsn_code": _first(rec, "hsn_code", "hsn", "sac_code"),
        "quantity": rec.get("quantity"),
        "unit_price": _first(rec, "unit_price", "price", "rate", "selling_price"),
        "discount_percent": discount_percent,
        "discount_flat": discount_flat,
        "tax_rate_percent": _first(rec, "tax_rate_percent", "tax_rate", "gst_rate", "tax_percent"),
    }))


def normalize_invoice_discount(raw: Dict[str, Any]) -> Optional[InvoiceDiscount]:
    """Reads the invoice-level discount from an invoice payload, if any."""
    rec = normalize_keys(raw)

    nested = rec.get("invoice_discount")
    if isinstance(nested, dict):
        mode = str(nested.get("mode") or nested.get("type") or "percent").lower()
        value = _first(nested, "value", "amount")
        if value is None:
            return None
        return InvoiceDiscount(
            mode=DiscountMode.FLAT if mode in FLAT_MODES else DiscountMode.PERCENT,
            value=value,
        )

    pct = _first(rec, "invoice_discount_percent", "overall_discount_percent")
    if pct is not None:
        return InvoiceDiscount(mode=DiscountMode.PERCENT, value=pct)
    flat = _first(rec, "invoice_discount_amount", "overall_discount_amount")
    if flat is not None:
        return InvoiceDiscount(mode=DiscountMode.FLAT, value=flat)
    return None


def normalize_invoice_context(raw: Dict[str, Any], is_inter_state: bool) -> InvoiceContext:
    rec = normalize_keys(raw)
    lines = _first(rec, "line_items", "items") or []
    return InvoiceContext(
        is_inter_state=is_inter_state,
        line_items=[normalize_line_item(line) for line in lines if isinstance(line, dict)],
        invoice_discount=normalize_invoice_discount(rec),
    )


# ==========================================
# FETCHED RECORDS (lenient)
# ==========================================


def normalize_invoice(raw: Dict[str, Any]) -> InvoiceRecord:
    rec = normalize_keys(raw)
    return InvoiceRecord(
        id=rec.get("id"),
        invoice_number=_first(rec, "invoice_number", "number"),
        invoice_type=_first(rec, "invoice_type", "type"),
        status=rec.get("status"),
        total_amount=_first(rec, "total_amount", "grand_total", "total"),
        paid_amount=_first(rec, "paid_amount", "amount_paid"),
        party_id=_first(rec, "party_id") or _nested(rec, "party", "id"),
        party_name=_first(rec, "party_name") or _nested(rec, "party", "name"),
        invoice_date=_first(rec, "invoice_date", "date"),
    )


def normalize_payment(raw: Dict[str, Any]) -> PaymentRecord:
    rec = normalize_keys(raw)
    return PaymentRecord(
        id=rec.get("id"),
        invoice_id=_first(rec, "invoice_id") or _nested(rec, "invoice", "id"),
        invoice_number=_first(rec, "invoice_number") or _nested(rec, "invoice", "invoice_number"),
        party_id=_first(rec, "party_id") or _nested(rec, "party", "id"),
        party_name=(
            _first(rec, "party_name")
            or _nested(rec, "party", "name")
            or _nested(rec, "invoice", "party", "name")
        ),
        transaction_type=_first(rec, "transaction_type", "type"),
        amount=rec.get("amount"),
        payment_mode=rec.get("payment_mode"),
        reference_number=rec.get("reference_number"),
    )


def normalize_item(raw: Dict[str, Any]) -> ItemRecord:
    rec = normalize_keys(raw)
    return ItemRecord(
        id=rec.get("id"),
        name=rec.get("name"),
        category=rec.get("category"),
        current_stock=_first(rec, "current_stock", "stock_quantity", "stock"),
        reorder_threshold=_first(
            rec, "reorder_threshold", "low_stock_threshold", "min_stock_level", "reorder_level"
        ),
    )


def normalize_party(raw: Dict[str, Any], lenient: bool = True) -> Party:
    """Maps a party payload; ``lenient`` drops identifiers that fail format checks."""
    rec = normalize_keys(raw)
    gstin = rec.get("gstin")
    pan = rec.get("pan")
    if isinstance(gstin, str):
        gstin = gstin.strip().upper() or None
    if isinstance(pan, str):
        pan = pan.strip().upper() or None

    if lenient:
        if gstin is not None and not (isinstance(gstin, str) and re.match(GSTIN_PATTERN, gstin)):
            logger.debug(f"Ignoring malformed GSTIN on party {rec.get('id')}")
            gstin = None
        if pan is not None and not (isinstance(pan, str) and re.match(PAN_PATTERN, pan)):
            pan = None

    address = rec.get("address") or rec.get("billing_address")
    return Party(
        id=rec.get("id"),
        name=rec.get("name"),
        type=_first(rec, "type", "party_type"),
        state_code=_first(rec, "state_code", "billing_state_code"),
        gstin=gstin,
        pan=pan,
        address=address if isinstance(address, str) else None,
        phone=rec.get("phone"),
        email=rec.get("email"),
    )


def build_dashboard_inputs(invoices=None, payments=None, items=None, parties=None) -> DashboardInputs:
    """Single entry point from raw list responses to the aggregator's input."""
    return DashboardInputs(
        invoices=[normalize_invoice(r) for r in unwrap_collection(invoices)],
        payments=[normalize_payment(r) for r in unwrap_collection(payments)],
        items=[normalize_item(r) for r in unwrap_collection(items)],
        parties=[normalize_party(r) for r in unwrap_collection(parties)],
    )
