import logging
from decimal import Decimal
from typing import Dict, Any

from bizbooks.config import AppConfig
from bizbooks.modules.dashboard import compute_dashboard_stats
from bizbooks.modules.models import DashboardInputs, DashboardStats
from bizbooks.modules.tax_calculator import format_currency
from bizbooks.services.normalizer import build_dashboard_inputs


class DashboardService:
    """Builds dashboard figures from raw list-endpoint payloads."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.rules = config.business_rules.dashboard_rules

    def summarize(self, invoices=None, payments=None, items=None, parties=None) -> DashboardStats:
        inputs = build_dashboard_inputs(
            invoices=invoices, payments=payments, items=items, parties=parties
        )
        return self.aggregate(inputs)

    def aggregate(self, inputs: DashboardInputs) -> DashboardStats:
        stats = compute_dashboard_stats(
            inputs,
            default_reorder_threshold=Decimal(str(self.rules.default_reorder_threshold)),
            open_statuses=self.rules.open_statuses,
        )
        self.logger.info(
            f"Dashboard over {len(inputs.invoices)} invoices, {len(inputs.payments)} payments, "
            f"{len(inputs.items)} items, {len(inputs.parties)} parties"
        )
        return stats

    def cards(self, stats: DashboardStats) -> Dict[str, Any]:
        """Card values as the dashboard shows them (rupee amounts, plain counts)."""
        return {
            "total_sales": f"₹{format_currency(stats.total_sales)}",
            "total_purchases": f"₹{format_currency(stats.total_purchases)}",
            "receivables": f"₹{format_currency(stats.receivables)}",
            "pending_amount": f"₹{format_currency(stats.pending_amount)}",
            "payments_received": f"₹{format_currency(stats.total_payments_received)}",
            "payments_made": f"₹{format_currency(stats.total_payments_made)}",
            "pending_invoices": stats.pending_invoices_count,
            "low_stock_items": stats.low_stock_count,
            "low_stock_status": "Need attention" if stats.low_stock_count > 0 else "All good",
            "parties": stats.total_parties_count,
            "customers": stats.customers_count,
            "suppliers": stats.suppliers_count,
        }
