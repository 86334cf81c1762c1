"""Request/response schemas for the Agreement API"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from rra_agreements.models.compliance import ComplianceCheckResult
from rra_agreements.models.template import RenderedSection
from rra_agreements.models.wizard import UserType, WizardStep


class HealthResponse(BaseModel):
    """Health check response"""
    status: str  # "ok" | "error"
    supabase_configured: bool = False
    version: str = "0.1.0"
    active_sessions: int = 0


class TemplateItem(BaseModel):
    """An agreement template in the template list"""
    id: str
    name: str
    description: Optional[str] = None
    version: str
    is_system_template: bool = False
    section_count: int = 0
    clause_count: int = 0


class TemplatesResponse(BaseModel):
    templates: List[TemplateItem] = []


class ComplianceRequest(BaseModel):
    """A draft to check; camelCase or snake_case keys"""
    form_data: dict = Field(default_factory=dict)


class DepositLimitsRequest(BaseModel):
    monthly_rent: float = Field(..., gt=0, description="Rent per calendar month (£)")
    deposit_amount: Optional[float] = Field(None, ge=0, description="Proposed deposit (£)")


class DepositLimitsResponse(BaseModel):
    """Tenant Fees Act 2019 limits for a monthly rent"""
    monthly_rent: float
    weekly_rent: float
    max_deposit_weeks: int
    max_deposit: float
    max_holding_deposit: float
    max_rent_in_advance_months: int
    deposit_weeks: Optional[float] = None
    deposit_within_limit: Optional[bool] = None


class PreviewRequest(BaseModel):
    template_id: Optional[str] = Field(None, description="None = default system template")
    form_data: dict = Field(default_factory=dict)


class PreviewResponse(BaseModel):
    template_id: str
    template_version: str
    sections: List[RenderedSection] = []


class WizardCreateRequest(BaseModel):
    """Open an agreement wizard for a match"""
    match_id: str
    user_id: str
    user_type: UserType = UserType.LANDLORD


class WizardDataRequest(BaseModel):
    """Partial form data; keys present overwrite, omitted keys are kept"""
    data: dict


class WizardGotoRequest(BaseModel):
    step: int = Field(..., ge=0)


class WizardSignRequest(BaseModel):
    tenancy_agreement_id: str


class WizardStateResponse(BaseModel):
    """Snapshot of a wizard session"""
    session_id: str
    agreement_id: Optional[str] = None
    template_id: Optional[str] = None
    status: Optional[str] = None
    current_step: int = 0
    steps: List[WizardStep] = []
    current_step_errors: List[str] = []
    form_data: dict = {}
    compliance: Optional[ComplianceCheckResult] = None
    can_generate: bool = False
    moved: Optional[bool] = None
    error: Optional[str] = None
    generated_pdf_path: Optional[str] = None
    generated_at: Optional[datetime] = None
    signatories: List[dict] = []
