"""Tenancy agreement draft models"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class EPCRating(str, Enum):
    """Energy Performance Certificate bands"""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"


class FurnishingLevel(str, Enum):
    UNFURNISHED = "unfurnished"
    PART_FURNISHED = "part furnished"
    FULLY_FURNISHED = "fully furnished"


class RentPaymentMethod(str, Enum):
    STANDING_ORDER = "standing_order"
    BANK_TRANSFER = "bank_transfer"
    DIRECT_DEBIT = "direct_debit"


class DepositScheme(str, Enum):
    """Government-approved tenancy deposit protection schemes"""
    DPS = "DPS"                 # Deposit Protection Service
    TDS = "TDS"                 # Tenancy Deposit Scheme
    MY_DEPOSITS = "MyDeposits"


class OmbudsmanScheme(str, Enum):
    HOUSING_OMBUDSMAN = "Housing Ombudsman Service"
    PROPERTY_OMBUDSMAN = "Property Ombudsman"
    PROPERTY_REDRESS = "Property Redress Scheme"


class Responsibility(str, Enum):
    """Which party carries a cost (council tax, garden upkeep)"""
    TENANT = "Tenant"
    LANDLORD = "Landlord"
    SHARED = "shared"


class CouncilTaxBand(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    H = "H"


class AgreementStatus(str, Enum):
    """Lifecycle of a generated agreement"""
    DRAFT = "draft"
    GENERATED = "generated"
    SENT_FOR_SIGNING = "sent_for_signing"
    SIGNED = "signed"
    CANCELLED = "cancelled"


class AdditionalOccupant(BaseModel):
    """A permitted occupier who is not a named tenant"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    relationship: str = ""
    age: Optional[int] = None


class AgreementFormData(BaseModel):
    """Sparse working draft of a tenancy agreement.

    Every field is optional until the wizard step that owns it is
    validated. Attributes are snake_case; the stored JSON uses the
    camelCase aliases.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="ignore",
    )

    # Parties
    landlord_name: Optional[str] = None
    landlord_address: Optional[str] = None
    tenant_name: Optional[str] = None
    agent_name: Optional[str] = None
    agent_address: Optional[str] = None

    # Property
    property_address: Optional[str] = None
    furnishing_level: Optional[FurnishingLevel] = None
    inventory_included: Optional[bool] = None
    has_garden: Optional[bool] = None
    garden_maintenance: Optional[Responsibility] = None
    parking_included: Optional[bool] = None
    parking_details: Optional[str] = None

    # Term
    tenancy_start_date: Optional[str] = None   # ISO date
    agreement_date: Optional[str] = None

    # Rent
    rent_amount: Optional[float] = None        # per calendar month
    rent_payment_day: Optional[float] = None   # whole day of month, 1-28
    rent_payment_method: Optional[RentPaymentMethod] = None

    # Deposit
    deposit_amount: Optional[float] = None
    deposit_weeks: Optional[float] = None
    deposit_scheme: Optional[DepositScheme] = None
    deposit_scheme_ref: Optional[str] = None
    deposit_protected_date: Optional[str] = None

    # Occupancy
    max_occupants: Optional[int] = None
    additional_occupants: Optional[List[AdditionalOccupant]] = None

    # Pets
    pets_allowed: Optional[bool] = None
    pet_details: Optional[str] = None

    # Utilities
    utilities_included: Optional[bool] = None
    included_utilities: Optional[str] = None
    council_tax_responsibility: Optional[Responsibility] = None
    council_tax_band: Optional[CouncilTaxBand] = None

    # Compliance
    prs_registration_number: Optional[str] = None
    ombudsman_scheme: Optional[OmbudsmanScheme] = None
    ombudsman_membership_number: Optional[str] = None
    epc_rating: Optional[EPCRating] = None
    epc_expiry_date: Optional[str] = None
    has_gas: Optional[bool] = None
    gas_safety_date: Optional[str] = None
    eicr_date: Optional[str] = None

    # Special terms
    additional_conditions: Optional[str] = None
    special_conditions: Optional[List[str]] = None

    @field_validator("epc_rating", mode="before")
    @classmethod
    def _normalise_epc_rating(cls, value):
        if isinstance(value, str):
            return value.strip().upper() or None
        return value

    @classmethod
    def coerce(cls, value) -> "AgreementFormData":
        """Accept a model, a camelCase/snake_case dict, or None"""
        if isinstance(value, cls):
            return value
        return cls.model_validate(value or {})

    def is_empty(self) -> bool:
        """True when no field has been set"""
        return not self.model_dump(exclude_none=True)


class GeneratedAgreement(BaseModel):
    """An agreement instance created from a template for one match"""
    id: str
    template_id: Optional[str] = None
    match_id: str
    landlord_id: str
    agency_id: Optional[str] = None
    renter_id: str
    property_id: str
    agreement_data: AgreementFormData = Field(default_factory=AgreementFormData)
    status: AgreementStatus = AgreementStatus.DRAFT
    generated_pdf_path: Optional[str] = None
    generated_at: Optional[datetime] = None
    tenancy_agreement_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str
