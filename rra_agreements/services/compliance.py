"""RRA 2025 compliance rules for tenancy agreement drafts.

Everything here is pure and synchronous: the wizard re-runs
check_compliance on every form change.
"""

import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError

from rra_agreements.models.agreement import AgreementFormData
from rra_agreements.models.compliance import (
    ComplianceCheckResult,
    ComplianceError,
    ComplianceWarning,
)
from rra_agreements.models.match import LandlordProfile, PropertyRecord

logger = logging.getLogger(__name__)

# Tenant Fees Act 2019, Schedule 1
HIGH_RENT_THRESHOLD = 50000
STANDARD_DEPOSIT_WEEKS = 5
HIGH_RENT_DEPOSIT_WEEKS = 6
WEEKS_PER_YEAR = 52
MAX_RENT_IN_ADVANCE_MONTHS = 1

# Every month has a 28th
MIN_PAYMENT_DAY = 1
MAX_PAYMENT_DAY = 28

# MEES: new tenancies need C or above
FAILING_EPC_RATINGS = {"D", "E", "F", "G"}


def max_deposit_weeks(monthly_rent: float) -> int:
    """Deposit cap in weeks: 6 once annual rent reaches £50,000, else 5"""
    if monthly_rent * 12 >= HIGH_RENT_THRESHOLD:
        return HIGH_RENT_DEPOSIT_WEEKS
    return STANDARD_DEPOSIT_WEEKS


def weekly_rent(monthly_rent: float) -> float:
    return monthly_rent * 12 / WEEKS_PER_YEAR


def calculate_max_deposit(monthly_rent: float) -> float:
    """Maximum deposit allowed under the Tenant Fees Act 2019.

    5 weeks' rent for annual rent below £50,000,
    6 weeks' rent at £50,000 and above.
    """
    return weekly_rent(monthly_rent) * max_deposit_weeks(monthly_rent)


def calculate_deposit_weeks(monthly_rent: float, deposit_amount: float) -> float:
    """Express a deposit as a number of weeks' rent"""
    return deposit_amount / weekly_rent(monthly_rent)


def calculate_max_holding_deposit(monthly_rent: float) -> float:
    """Holding deposits are capped at one week's rent"""
    return weekly_rent(monthly_rent)


def get_max_rent_in_advance_months() -> int:
    return MAX_RENT_IN_ADVANCE_MONTHS


def _field_name(key) -> Optional[str]:
    """Model field for a camelCase or snake_case key"""
    fields = AgreementFormData.model_fields
    if key in fields:
        return key
    for name, info in fields.items():
        if info.alias == key:
            return name
    return None


def _coerce_draft(form_data) -> Tuple[AgreementFormData, List[ComplianceError]]:
    """Validate a draft, turning unusable values into errors.

    Fields that fail validation are reported and left out, so the rules
    still run over the rest of the draft.
    """
    if isinstance(form_data, AgreementFormData) or not isinstance(form_data, dict):
        return AgreementFormData.coerce(form_data), []
    try:
        return AgreementFormData.coerce(form_data), []
    except ValidationError as e:
        invalid = {}
        for error in e.errors():
            name = _field_name(error["loc"][0]) if error["loc"] else None
            if name is not None and name not in invalid:
                invalid[name] = error["msg"]
        if not invalid:
            raise

    errors = [
        ComplianceError(
            field=AgreementFormData.model_fields[name].alias or name,
            message=f"Invalid value: {msg}",
            rra_reference="Agreement form",
        )
        for name, msg in invalid.items()
    ]
    cleaned = {k: v for k, v in form_data.items() if _field_name(k) not in invalid}
    return AgreementFormData.coerce(cleaned), errors


def check_compliance(
    form_data,
    property: Optional[PropertyRecord] = None,
    landlord: Optional[LandlordProfile] = None,
) -> ComplianceCheckResult:
    """Check a draft agreement against RRA 2025 requirements.

    Args:
        form_data: AgreementFormData or a dict of (camelCase or snake_case) fields
        property: Property being let. Accepted for callers that hold it;
            every rule currently reads the draft alone.
        landlord: Landlord profile, same as above.

    Returns:
        ComplianceCheckResult. Only errors affect is_compliant. Values the
        draft model rejects are reported as errors rather than raised.
    """
    data, errors = _coerce_draft(form_data)
    warnings: list[ComplianceWarning] = []

    # Deposit cap
    if data.deposit_amount is not None and data.rent_amount is not None:
        max_deposit = calculate_max_deposit(data.rent_amount)
        if data.deposit_amount > max_deposit:
            errors.append(ComplianceError(
                field="depositAmount",
                message=(
                    f"Deposit exceeds maximum of £{max_deposit:.2f} "
                    f"({max_deposit_weeks(data.rent_amount)} weeks' rent)"
                ),
                rra_reference="Tenant Fees Act 2019, Schedule 1",
            ))

    # Deposit expressed in weeks
    if data.deposit_weeks is not None:
        max_weeks = max_deposit_weeks(data.rent_amount or 0)
        if data.deposit_weeks > max_weeks:
            errors.append(ComplianceError(
                field="depositWeeks",
                message=f"Deposit cannot exceed {max_weeks} weeks' rent",
                rra_reference="Tenant Fees Act 2019",
            ))

    # Payment day
    if data.rent_payment_day is not None:
        day = data.rent_payment_day
        if not float(day).is_integer() or not MIN_PAYMENT_DAY <= day <= MAX_PAYMENT_DAY:
            errors.append(ComplianceError(
                field="rentPaymentDay",
                message=f"Payment day must be between {MIN_PAYMENT_DAY} and {MAX_PAYMENT_DAY}",
                rra_reference="Standard practice",
            ))

    # EPC rating
    if data.epc_rating is not None and data.epc_rating in FAILING_EPC_RATINGS:
        errors.append(ComplianceError(
            field="epcRating",
            message="Property EPC rating must be C or above for new tenancies",
            rra_reference="MEES Regulations 2025",
        ))

    # PRS registration
    if not data.prs_registration_number:
        errors.append(ComplianceError(
            field="prsRegistrationNumber",
            message="Landlord must be registered with PRS Database",
            rra_reference="RRA 2025 - PRS Registration",
        ))

    # Ombudsman
    if not data.ombudsman_scheme or not data.ombudsman_membership_number:
        errors.append(ComplianceError(
            field="ombudsmanScheme",
            message="Landlord must be member of approved ombudsman scheme",
            rra_reference="RRA 2025 - Ombudsman Membership",
        ))

    # Gas safety, only where the property has gas
    if data.has_gas and not data.gas_safety_date:
        errors.append(ComplianceError(
            field="gasSafetyDate",
            message="Gas Safety Certificate date is required for properties with gas",
            rra_reference="Gas Safety (Installation and Use) Regulations 1998",
        ))

    # EICR
    if not data.eicr_date:
        errors.append(ComplianceError(
            field="eicrDate",
            message="Electrical Installation Condition Report date is required",
            rra_reference="Electrical Safety Standards Regulations 2020",
        ))

    # Best-practice warnings
    if not data.inventory_included:
        warnings.append(ComplianceWarning(
            field="inventoryIncluded",
            message="No inventory included",
            suggestion="An inventory protects both parties in deposit disputes",
        ))

    if not data.deposit_protected_date:
        warnings.append(ComplianceWarning(
            field="depositProtectedDate",
            message="Deposit protection date not set",
            suggestion="Deposit must be protected within 30 days of receipt",
        ))

    if errors:
        logger.debug(f"Compliance check found {len(errors)} error(s)")

    return ComplianceCheckResult(
        is_compliant=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )
