"""Ten-step agreement creator wizard.

Holds the working draft for one match, gates navigation on per-step
required fields, re-runs the compliance check on every change and
auto-saves the draft after a quiet period.
"""

import asyncio
import logging
import re
from typing import List, Optional

from rra_agreements.db.mapping import form_data_from_json, form_data_to_json
from rra_agreements.models.agreement import AgreementFormData, AgreementStatus, GeneratedAgreement
from rra_agreements.models.compliance import ComplianceCheckResult
from rra_agreements.models.match import MatchRecord
from rra_agreements.models.template import AgreementTemplate
from rra_agreements.models.wizard import UserType, WizardStep
from rra_agreements.services.agreement_creator import AgreementCreatorService
from rra_agreements.services.compliance import check_compliance

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 2.0

WIZARD_STEPS = [
    WizardStep(id="parties", title="Parties", description="Landlord and tenant details"),
    WizardStep(id="property", title="Property", description="Property details"),
    WizardStep(id="rent-deposit", title="Rent & Deposit", description="Financial terms"),
    WizardStep(id="occupants", title="Occupants", description="Additional occupants", is_optional=True),
    WizardStep(id="pets", title="Pets", description="Pet arrangements"),
    WizardStep(id="utilities", title="Utilities", description="Bills and services"),
    WizardStep(id="compliance", title="Compliance", description="Legal requirements"),
    WizardStep(id="special", title="Special Terms", description="Additional clauses", is_optional=True),
    WizardStep(id="review", title="Review", description="Preview agreement"),
    WizardStep(id="generate", title="Generate", description="Create and send"),
]


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def validate_step(step_index: int, form_data) -> List[str]:
    """Required-field messages for one step. Empty means the step is valid."""
    data = AgreementFormData.coerce(form_data)
    errors: List[str] = []

    if step_index == 0:  # Parties
        if _blank(data.landlord_name):
            errors.append("Landlord name is required")
        if _blank(data.landlord_address):
            errors.append("Landlord address is required")
        if _blank(data.tenant_name):
            errors.append("Tenant name is required")

    elif step_index == 1:  # Property
        if _blank(data.property_address):
            errors.append("Property address is required")
        if not data.tenancy_start_date:
            errors.append("Tenancy start date is required")
        if not data.furnishing_level:
            errors.append("Furnishing level is required")

    elif step_index == 2:  # Rent & Deposit
        if not data.rent_amount or data.rent_amount <= 0:
            errors.append("Rent amount is required")
        if not data.deposit_amount or data.deposit_amount <= 0:
            errors.append("Deposit amount is required")
        if not data.deposit_scheme:
            errors.append("Deposit protection scheme is required")

    elif step_index == 4:  # Pets
        if data.pets_allowed is None:
            errors.append("Please select whether pets are allowed")
        if data.pets_allowed and _blank(data.pet_details):
            errors.append("Pet details are required when pets are allowed")

    elif step_index == 5:  # Utilities
        if data.council_tax_responsibility is None:
            errors.append("Council tax responsibility is required")

    elif step_index == 6:  # Compliance
        if _blank(data.prs_registration_number):
            errors.append("PRS registration number is required")
        if not data.ombudsman_scheme:
            errors.append("Ombudsman scheme is required")
        if _blank(data.ombudsman_membership_number):
            errors.append("Ombudsman membership number is required")
        if not data.epc_rating:
            errors.append("EPC rating is required")
        if not data.epc_expiry_date:
            errors.append("EPC expiry date is required")
        if data.has_gas is not False and not data.gas_safety_date:
            errors.append("Gas safety certificate date is required")
        if not data.eicr_date:
            errors.append("EICR (electrical safety) date is required")

    # Occupants, Special Terms, Review and Generate have no required fields
    return errors


def agreement_filename(match: MatchRecord) -> str:
    street = match.property.address.street or match.property.id
    street = re.sub(r"\s+", "_", street)
    return f"Tenancy_Agreement_{street}.pdf"


class AgreementWizard:
    """Stateful driver for one agreement draft"""

    def __init__(
        self,
        service: AgreementCreatorService,
        match: MatchRecord,
        current_user_id: str,
        current_user_type: UserType = UserType.LANDLORD,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ):
        self.service = service
        self.match = match
        self.current_user_id = current_user_id
        self.current_user_type = UserType(current_user_type)
        self.autosave_delay = autosave_delay

        self.current_step = 0
        self.steps = [step.model_copy() for step in WIZARD_STEPS]
        self.template: Optional[AgreementTemplate] = None
        self.agreement: Optional[GeneratedAgreement] = None
        self.form_data = AgreementFormData()
        self.compliance_result: Optional[ComplianceCheckResult] = None
        self.pdf_bytes: Optional[bytes] = None

        self.is_loading = False
        self.is_saving = False
        self.error: Optional[str] = None

        self._save_task: Optional[asyncio.Task] = None
        self._save_pending = False
        # Fields cleared since the last save, sent as explicit None
        self._cleared: set = set()

    # Lifecycle

    async def initialize(self) -> bool:
        """Load the default template and resume or create the draft.

        On failure the message is kept in `error`; call again to retry.
        """
        self.is_loading = True
        self.error = None
        try:
            self.template = await self.service.get_default_template()
            draft = await self.service.find_active_draft(self.match.id, self.current_user_id)
            if draft is None:
                draft = await self.service.create_draft_agreement(
                    self.match.id, self.template.id, self.current_user_id
                )
            else:
                logger.info(f"Resuming draft agreement {draft.id}")
            self.agreement = draft
            self.form_data = draft.agreement_data
            self._run_compliance()
            return True
        except (ValueError, RuntimeError) as e:
            logger.error(f"Failed to initialize wizard: {e}")
            self.error = str(e) or "Failed to initialize agreement creator"
            return False
        finally:
            self.is_loading = False

    async def close(self) -> None:
        """Drop the pending debounce and save immediately"""
        self._cancel_scheduled_save()
        if self.agreement is not None and (not self.form_data.is_empty() or self._cleared):
            await self.save()

    # Form data

    def update_form_data(self, updates) -> AgreementFormData:
        """Merge updates into the draft, re-check compliance, schedule a save"""
        partial = form_data_to_json(AgreementFormData.coerce(updates), exclude_unset=True)
        for key, value in partial.items():
            if value is None:
                self._cleared.add(key)
            else:
                self._cleared.discard(key)
        merged = {**form_data_to_json(self.form_data), **partial}
        self.form_data = form_data_from_json({k: v for k, v in merged.items() if v is not None})
        self._run_compliance()
        self._schedule_save()
        return self.form_data

    async def save(self) -> bool:
        """Persist the draft. Failures are logged, never raised."""
        if self.agreement is None:
            return False
        self.is_saving = True
        try:
            payload = self._save_payload()
            self.agreement = await self.service.update_agreement_data(self.agreement.id, payload)
            self._saved(payload)
            return True
        except (ValueError, RuntimeError) as e:
            logger.error(f"Failed to save form data: {e}")
            return False
        finally:
            self.is_saving = False

    def _save_payload(self) -> dict:
        """Current draft plus explicit clears, so the stored copy drops them too"""
        return {**form_data_to_json(self.form_data), **{key: None for key in self._cleared}}

    def _saved(self, payload: dict) -> None:
        self._cleared -= {key for key, value in payload.items() if value is None}
        self._save_pending = False

    @property
    def has_unsaved_changes(self) -> bool:
        return self._save_pending

    def _run_compliance(self) -> Optional[ComplianceCheckResult]:
        if not self.form_data.is_empty():
            self.compliance_result = check_compliance(self.form_data, self.match.property)
        return self.compliance_result

    def _schedule_save(self) -> None:
        if self.agreement is None or (self.form_data.is_empty() and not self._cleared):
            return
        self._save_pending = True
        self._cancel_scheduled_save()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the save happens on close() or an explicit save()
            return
        self._save_task = loop.create_task(self._debounced_save())

    def _cancel_scheduled_save(self) -> None:
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        self._save_task = None

    async def _debounced_save(self) -> None:
        await asyncio.sleep(self.autosave_delay)
        await self.save()

    # Navigation

    @property
    def current_step_errors(self) -> List[str]:
        return validate_step(self.current_step, self.form_data)

    @property
    def is_current_step_valid(self) -> bool:
        return not self.current_step_errors

    def _mark_step_complete(self, step_index: int) -> None:
        self.steps[step_index].is_complete = True

    def next(self) -> bool:
        if self.current_step >= len(self.steps) - 1 or not self.is_current_step_valid:
            return False
        self._mark_step_complete(self.current_step)
        self.current_step += 1
        return True

    def previous(self) -> bool:
        if self.current_step <= 0:
            return False
        self.current_step -= 1
        return True

    def go_to_step(self, step_index: int) -> bool:
        """Jump to a step. Backward always; forward only from a valid step."""
        if not 0 <= step_index < len(self.steps) or step_index == self.current_step:
            return False
        if step_index > self.current_step:
            if not self.is_current_step_valid:
                return False
            self._mark_step_complete(self.current_step)
        self.current_step = step_index
        return True

    # Generate step

    @property
    def can_generate(self) -> bool:
        return self.compliance_result is not None and self.compliance_result.is_compliant

    async def generate(self, pdf_generator=None) -> GeneratedAgreement:
        """Render, upload and record the final agreement PDF.

        Raises:
            ValueError: wizard not initialized, or the draft is not compliant
            RuntimeError: saving, uploading or recording failed
        """
        if self.agreement is None or self.template is None:
            raise ValueError("Agreement creator is not initialized")
        result = self._run_compliance()
        if result is None or not result.is_compliant:
            raise ValueError("Agreement is not compliant with RRA 2025 requirements")

        if pdf_generator is None:
            from rra_agreements.services.pdf_generator import AgreementPDFGenerator
            pdf_generator = AgreementPDFGenerator()

        self._cancel_scheduled_save()
        payload = self._save_payload()
        self.agreement = await self.service.update_agreement_data(self.agreement.id, payload)
        self._saved(payload)

        pdf_bytes = pdf_generator.generate(
            self.template,
            self.form_data,
            include_signature_pages=True,
            include_watermark=False,
        )
        path = f"{self.match.id}/{self.agreement.id}/{agreement_filename(self.match)}"
        await self.service.upload_agreement_pdf(path, pdf_bytes)
        self.agreement = await self.service.mark_agreement_generated(self.agreement.id, path)
        self.pdf_bytes = pdf_bytes
        return self.agreement

    def signatories(self) -> List[dict]:
        """Signing order for the e-signature workflow: creator, then renter"""
        renter = self.match.renter
        return [
            {
                "user_id": self.current_user_id,
                "user_type": self.current_user_type.value,
                "user_name": self.form_data.landlord_name or "Landlord",
                "signing_order": 1,
                "is_required": True,
            },
            {
                "user_id": self.match.renter_id,
                "user_type": "renter",
                "user_email": renter.email if renter and renter.email else "",
                "user_name": self.form_data.tenant_name or (renter.names if renter else "") or "Tenant",
                "signing_order": 2,
                "is_required": True,
            },
        ]

    async def send_for_signing(self, tenancy_agreement_id: str) -> GeneratedAgreement:
        """Link the generated agreement to the signing record"""
        if self.agreement is None or self.agreement.status != AgreementStatus.GENERATED:
            raise ValueError("Generate the agreement before sending it for signing")
        self.agreement = await self.service.link_to_tenancy_agreement(
            self.agreement.id, tenancy_agreement_id
        )
        return self.agreement
