from pydantic import BaseModel, Field
from typing import List, Dict, Optional

# --- Business Rules Models ---

class TaxRules(BaseModel):
    money_places: int = 2
    gst_rates: List[float] = [0, 5, 12, 18, 28]
    reject_unknown_rates: bool = False

class DashboardRules(BaseModel):
    default_reorder_threshold: float = 10
    open_statuses: List[str] = ["pending", "partial"]

class BusinessProfile(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    gstin: Optional[str] = None
    state_code: Optional[str] = None

class BusinessRulesConfig(BaseModel):
    tax_rules: TaxRules = Field(default_factory=TaxRules)
    dashboard_rules: DashboardRules = Field(default_factory=DashboardRules)
    state_map: Dict[str, str] = {}
    business: BusinessProfile = Field(default_factory=BusinessProfile)

    class Config:
        extra = "forbid"
