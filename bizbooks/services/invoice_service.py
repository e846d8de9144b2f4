import logging
from decimal import Decimal
from typing import Dict, Any, List, Optional

from bizbooks.config import AppConfig
from bizbooks.modules.config_models import BusinessProfile
from bizbooks.modules.errors import InvoiceValidationError, ValidationErrorKind
from bizbooks.modules.models import (
    InvoiceContext,
    InvoiceDiscount,
    InvoiceTotals,
    LineItem,
    Party,
)
from bizbooks.modules.tax_calculator import compute_invoice_totals, format_qty
from bizbooks.services.normalizer import normalize_invoice_context, normalize_party


def _pad_state(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = str(code).strip()
    if not code:
        return None
    if code.isdigit() and len(code) < 2:
        return code.zfill(2)
    return code


def resolve_state_code(entity) -> Optional[str]:
    """State code from the record, else from the first two digits of its GSTIN."""
    if entity is None:
        return None
    code = _pad_state(getattr(entity, "state_code", None))
    if code:
        return code
    gstin = getattr(entity, "gstin", None)
    if gstin and len(gstin) >= 2 and gstin[:2].isdigit():
        return gstin[:2]
    return None


def is_inter_state(business: BusinessProfile, party: Optional[Party]) -> bool:
    """Inter-state only when both states are known and differ.

    A party with no resolvable state is billed as if in the business's own state.
    """
    own = resolve_state_code(business)
    other = resolve_state_code(party)
    if own is None or other is None:
        return False
    return own != other


class InvoiceService:
    """Prices invoices for the configured business and formats tax lines."""

    def __init__(self, config: AppConfig, business: Optional[BusinessProfile] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.rules = config.business_rules
        self.tax_rules = self.rules.tax_rules
        self.business = business or self.rules.business

    def build_context(
        self,
        line_items: List[LineItem],
        party: Optional[Party] = None,
        invoice_discount: Optional[InvoiceDiscount] = None,
    ) -> InvoiceContext:
        return InvoiceContext(
            is_inter_state=is_inter_state(self.business, party),
            line_items=line_items,
            invoice_discount=invoice_discount,
        )

    def totals_for(
        self,
        line_items: List[LineItem],
        party: Optional[Party] = None,
        invoice_discount: Optional[InvoiceDiscount] = None,
    ) -> InvoiceTotals:
        context = self.build_context(line_items, party, invoice_discount)
        return self.calculate(context)

    def totals_from_payload(self, raw_invoice: Dict[str, Any], party: Optional[Party] = None) -> InvoiceTotals:
        """Prices a raw invoice payload; the party may also be embedded under ``party``."""
        if party is None and isinstance(raw_invoice.get("party"), dict):
            party = normalize_party(raw_invoice["party"])
        context = normalize_invoice_context(raw_invoice, is_inter_state(self.business, party))
        return self.calculate(context)

    def calculate(self, context: InvoiceContext) -> InvoiceTotals:
        try:
            self._check_known_rates(context)
            totals = compute_invoice_totals(context, self.tax_rules.money_places)
        except InvoiceValidationError as e:
            self.logger.warning(f"Invoice rejected ({e.kind.value}): {e}")
            raise
        self.logger.info(
            f"Priced {len(context.line_items)} line(s), "
            f"{'inter' if context.is_inter_state else 'intra'}-state: "
            f"taxable {totals.taxable_amount}, grand total {totals.grand_total}"
        )
        return totals

    def _check_known_rates(self, context: InvoiceContext) -> None:
        if not self.tax_rules.reject_unknown_rates:
            return
        allowed = {Decimal(str(r)) for r in self.tax_rules.gst_rates}
        for idx, item in enumerate(context.line_items):
            if item.tax_rate_percent not in allowed:
                raise InvoiceValidationError(
                    ValidationErrorKind.INVALID_TAX_RATE,
                    f"{item.tax_rate_percent}% is not a configured GST rate",
                    idx,
                )

    def tax_lines(self, totals: InvoiceTotals) -> List[Dict[str, Any]]:
        """Display rows, one per tax head per rate."""
        lines = []
        for bucket in totals.tax_breakdown:
            if bucket.igst:
                lines.append({
                    "label": "IGST",
                    "rate_desc": f"@ {format_qty(bucket.rate)}%",
                    "amount": bucket.igst,
                })
            elif bucket.cgst or bucket.sgst:
                half = format_qty(bucket.rate / 2)
                lines.append({"label": "CGST", "rate_desc": f"@ {half}%", "amount": bucket.cgst})
                lines.append({"label": "SGST", "rate_desc": f"@ {half}%", "amount": bucket.sgst})
        return lines

    def place_of_supply(self, party: Optional[Party]) -> str:
        target = resolve_state_code(party) or resolve_state_code(self.business)
        if target is None:
            return "Unknown"
        state_name = self.rules.state_map.get(target, "Unknown")
        return f"{state_name} ({target})"
