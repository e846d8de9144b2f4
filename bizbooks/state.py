from typing import Any, Optional

from pydantic import BaseModel

from bizbooks.config import AppConfig
from bizbooks.modules.config_models import BusinessProfile
from bizbooks.services.dashboard_service import DashboardService
from bizbooks.services.invoice_service import InvoiceService
from bizbooks.services.list_filters import (
    ALL,
    Page,
    filter_invoices,
    filter_parties,
    paginate,
)
from bizbooks.services.normalizer import normalize_invoice, normalize_party, unwrap_collection


class InvoiceFilters(BaseModel):
    search: str = ""
    invoice_type: str = ALL
    status: str = ALL


class PartyFilters(BaseModel):
    search: str = ""
    party_type: str = ALL


class Pagination(BaseModel):
    page: int = 1
    page_size: int = 10


class AppState:
    """Per-session application state, passed to whoever needs it.

    Holds the active business, list filters and pagination. The pricing and
    dashboard modules never see this object; they only receive its outputs.
    """

    def __init__(self, config: Optional[AppConfig] = None, business: Optional[BusinessProfile] = None):
        self.config = config or AppConfig.load_default()
        self.business = business or self.config.business_rules.business
        self.invoice_filters = InvoiceFilters()
        self.party_filters = PartyFilters()
        self.pagination = Pagination()

        # Cache
        self._invoice_service = None
        self._dashboard_service = None

    @property
    def invoice_service(self) -> InvoiceService:
        if self._invoice_service is None:
            self._invoice_service = InvoiceService(self.config, self.business)
        return self._invoice_service

    @property
    def dashboard_service(self) -> DashboardService:
        if self._dashboard_service is None:
            self._dashboard_service = DashboardService(self.config)
        return self._dashboard_service

    def switch_business(self, business: BusinessProfile) -> None:
        """Selecting another business resets everything scoped to the old one."""
        self.business = business
        self.invoice_filters = InvoiceFilters()
        self.party_filters = PartyFilters()
        self.pagination = Pagination()
        self._invoice_service = None

    def set_invoice_filters(self, **changes) -> None:
        self.invoice_filters = self.invoice_filters.model_copy(update=changes)
        self.pagination = self.pagination.model_copy(update={"page": 1})

    def set_party_filters(self, **changes) -> None:
        self.party_filters = self.party_filters.model_copy(update=changes)
        self.pagination = self.pagination.model_copy(update={"page": 1})

    def go_to_page(self, page: int) -> None:
        self.pagination = self.pagination.model_copy(update={"page": page})

    def visible_invoices(self, raw: Any) -> Page:
        invoices = [normalize_invoice(r) for r in unwrap_collection(raw)]
        f = self.invoice_filters
        matched = filter_invoices(invoices, f.search, f.invoice_type, f.status)
        page = paginate(matched, self.pagination.page, self.pagination.page_size)
        self.pagination = self.pagination.model_copy(update={"page": page.page})
        return page

    def visible_parties(self, raw: Any) -> Page:
        parties = [normalize_party(r) for r in unwrap_collection(raw)]
        f = self.party_filters
        matched = filter_parties(parties, f.search, f.party_type)
        page = paginate(matched, self.pagination.page, self.pagination.page_size)
        self.pagination = self.pagination.model_copy(update={"page": page.page})
        return page
