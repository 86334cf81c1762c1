"""Data models"""

from rra_agreements.models.agreement import (
    EPCRating,
    FurnishingLevel,
    RentPaymentMethod,
    DepositScheme,
    OmbudsmanScheme,
    Responsibility,
    CouncilTaxBand,
    AgreementStatus,
    AdditionalOccupant,
    AgreementFormData,
    GeneratedAgreement,
)
from rra_agreements.models.compliance import (
    ComplianceError,
    ComplianceWarning,
    ComplianceCheckResult,
)
from rra_agreements.models.match import (
    Address,
    PropertyRecord,
    RenterProfile,
    LandlordProfile,
    MatchRecord,
)
from rra_agreements.models.template import (
    ClauseCategory,
    ClauseVariable,
    AgreementClause,
    AgreementSection,
    AgreementTemplate,
    RenderedClause,
    RenderedSection,
)
from rra_agreements.models.wizard import (
    UserType,
    WizardStep,
)

__all__ = [
    "EPCRating",
    "FurnishingLevel",
    "RentPaymentMethod",
    "DepositScheme",
    "OmbudsmanScheme",
    "Responsibility",
    "CouncilTaxBand",
    "AgreementStatus",
    "AdditionalOccupant",
    "AgreementFormData",
    "GeneratedAgreement",
    "ComplianceError",
    "ComplianceWarning",
    "ComplianceCheckResult",
    "Address",
    "PropertyRecord",
    "RenterProfile",
    "LandlordProfile",
    "MatchRecord",
    "ClauseCategory",
    "ClauseVariable",
    "AgreementClause",
    "AgreementSection",
    "AgreementTemplate",
    "RenderedClause",
    "RenderedSection",
    "UserType",
    "WizardStep",
]
