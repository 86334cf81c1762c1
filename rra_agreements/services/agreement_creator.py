"""Agreement draft lifecycle: templates, clause library, drafts and status."""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from rra_agreements.db.base import AgreementStoreInterface
from rra_agreements.db.mapping import form_data_from_json, form_data_to_json
from rra_agreements.models.agreement import (
    AgreementFormData,
    AgreementStatus,
    EPCRating,
    FurnishingLevel,
    GeneratedAgreement,
)
from rra_agreements.models.match import MatchRecord
from rra_agreements.models.template import (
    AgreementClause,
    AgreementTemplate,
    ClauseCategory,
)

logger = logging.getLogger(__name__)

DEFAULT_EPC_RATING = EPCRating.C.value
DEFAULT_FURNISHING = FurnishingLevel.UNFURNISHED.value


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _failure(message: str, error: Exception) -> RuntimeError:
    """Log a store failure and build the error callers see"""
    logger.error(f"{message}: {error}")
    return RuntimeError(message)


def initial_form_data(match: MatchRecord) -> AgreementFormData:
    """Seed a new draft with what the marketplace already knows.

    EPC rating falls back to C. Furnishing is lower-cased; values the
    form does not offer are left unset so the Property step asks for them.
    """
    prop = match.property
    landlord = match.landlord

    epc_rating = (prop.epc_rating or DEFAULT_EPC_RATING).upper()
    if epc_rating not in {r.value for r in EPCRating}:
        epc_rating = None

    furnishing = (prop.furnishing or DEFAULT_FURNISHING).lower()
    if furnishing not in {f.value for f in FurnishingLevel}:
        furnishing = None

    return AgreementFormData(
        property_address=prop.address.one_line(),
        rent_amount=prop.rent_pcm or match.monthly_rent_amount,
        tenant_name=match.renter.names if match.renter else "",
        landlord_name=landlord.names if landlord else "",
        epc_rating=epc_rating,
        prs_registration_number=(landlord.prs_registration_number or "") if landlord else "",
        furnishing_level=furnishing,
    )


class AgreementCreatorService:
    """Template lookup and draft persistence for the agreement wizard.

    The record store is passed in; when omitted the configured Supabase
    store is created on first use.
    """

    def __init__(self, store: Optional[AgreementStoreInterface] = None):
        self._db = store

    @property
    def db(self) -> AgreementStoreInterface:
        """Lazy-load database client."""
        if self._db is None:
            from rra_agreements.db.supabase import get_database
            self._db = get_database()
        return self._db

    # Templates

    async def get_active_templates(self) -> List[AgreementTemplate]:
        try:
            return self.db.list_active_templates()
        except Exception as e:
            raise _failure("Failed to load agreement templates", e) from e

    async def get_template_by_id(self, template_id: str) -> Optional[AgreementTemplate]:
        try:
            return self.db.get_template(template_id)
        except Exception as e:
            raise _failure("Failed to load agreement template", e) from e

    async def get_default_template(self) -> AgreementTemplate:
        """Highest-version active system template.

        Raises:
            ValueError: no active system template exists
            RuntimeError: the store call failed
        """
        try:
            template = self.db.get_default_template()
        except Exception as e:
            raise _failure("Failed to load default template", e) from e
        if template is None:
            raise ValueError("No agreement template available")
        return template

    # Clause library

    async def get_clauses_by_category(self, category) -> List[AgreementClause]:
        category = ClauseCategory(category).value
        try:
            return self.db.list_clauses(category=category)
        except Exception as e:
            raise _failure("Failed to load clauses", e) from e

    async def get_mandatory_clauses(self) -> List[AgreementClause]:
        try:
            return self.db.list_clauses(is_mandatory=True)
        except Exception as e:
            raise _failure("Failed to load mandatory clauses", e) from e

    async def get_prohibited_clauses(self) -> List[AgreementClause]:
        try:
            return self.db.list_clauses(is_prohibited=True)
        except Exception as e:
            raise _failure("Failed to load prohibited clauses", e) from e

    # Drafts

    async def get_match(self, match_id: str) -> MatchRecord:
        try:
            match = self.db.get_match(match_id)
        except Exception as e:
            raise _failure("Failed to load match", e) from e
        if match is None:
            raise ValueError("Match not found")
        return match

    async def create_draft_agreement(
        self, match_id: str, template_id: str, created_by: str
    ) -> GeneratedAgreement:
        """Create a draft for a match, seeded from the match records.

        Raises:
            ValueError: the match does not exist
            RuntimeError: the insert failed
        """
        match = await self.get_match(match_id)

        draft = GeneratedAgreement(
            id=str(uuid.uuid4()),
            template_id=template_id,
            match_id=match.id,
            landlord_id=match.landlord_id,
            agency_id=match.managing_agency_id,
            renter_id=match.renter_id,
            property_id=match.property_id,
            agreement_data=initial_form_data(match),
            status=AgreementStatus.DRAFT,
            created_by=created_by,
        )
        try:
            agreement = self.db.insert_generated_agreement(draft)
        except Exception as e:
            raise _failure("Failed to create draft agreement", e) from e

        logger.info(f"Created draft agreement {agreement.id} for match {match_id}")
        return agreement

    async def update_agreement_data(self, agreement_id: str, data) -> GeneratedAgreement:
        """Shallow-merge a partial draft over the stored one.

        Keys present in data replace stored values (an explicit None
        clears the field); omitted keys are kept.

        Raises:
            ValueError: the agreement does not exist, or data is invalid
            RuntimeError: the store call failed
        """
        partial = form_data_to_json(AgreementFormData.coerce(data), exclude_unset=True)

        try:
            current = self.db.get_generated_agreement(agreement_id)
        except Exception as e:
            raise _failure("Failed to update agreement", e) from e
        if current is None:
            raise ValueError("Agreement not found")

        merged = {**form_data_to_json(current.agreement_data), **partial}
        merged = {k: v for k, v in merged.items() if v is not None}

        return await self._update(
            agreement_id,
            {"agreement_data": form_data_from_json(merged), "updated_at": _now()},
            "Failed to update agreement",
        )

    async def get_generated_agreement(self, agreement_id: str) -> Optional[GeneratedAgreement]:
        try:
            return self.db.get_generated_agreement(agreement_id)
        except Exception as e:
            raise _failure("Failed to load agreement", e) from e

    async def get_agreements_for_match(self, match_id: str) -> List[GeneratedAgreement]:
        """All agreements for a match, newest first"""
        try:
            return self.db.list_generated_agreements(match_id)
        except Exception as e:
            raise _failure("Failed to load agreements", e) from e

    async def find_active_draft(
        self, match_id: str, created_by: str
    ) -> Optional[GeneratedAgreement]:
        """Newest draft this user started for the match, if any"""
        try:
            drafts = self.db.list_generated_agreements(
                match_id, status=AgreementStatus.DRAFT.value, created_by=created_by
            )
        except Exception as e:
            raise _failure("Failed to load agreements", e) from e
        return drafts[0] if drafts else None

    async def upload_agreement_pdf(self, path: str, content: bytes) -> str:
        try:
            return self.db.upload_agreement_pdf(path, content)
        except Exception as e:
            raise _failure("Failed to upload agreement", e) from e

    # Status

    async def update_agreement_status(self, agreement_id: str, status) -> GeneratedAgreement:
        status = AgreementStatus(status)
        return await self._update(
            agreement_id,
            {"status": status, "updated_at": _now()},
            "Failed to update agreement status",
        )

    async def mark_agreement_generated(self, agreement_id: str, pdf_path: str) -> GeneratedAgreement:
        agreement = await self._update(
            agreement_id,
            {
                "status": AgreementStatus.GENERATED,
                "generated_pdf_path": pdf_path,
                "generated_at": _now(),
                "updated_at": _now(),
            },
            "Failed to update agreement",
        )
        logger.info(f"Agreement {agreement_id} generated: {pdf_path}")
        return agreement

    async def link_to_tenancy_agreement(
        self, agreement_id: str, tenancy_agreement_id: str
    ) -> GeneratedAgreement:
        return await self._update(
            agreement_id,
            {
                "tenancy_agreement_id": tenancy_agreement_id,
                "status": AgreementStatus.SENT_FOR_SIGNING,
                "updated_at": _now(),
            },
            "Failed to link agreement",
        )

    async def _update(self, agreement_id: str, changes: dict, message: str) -> GeneratedAgreement:
        try:
            agreement = self.db.update_generated_agreement(agreement_id, changes)
        except Exception as e:
            raise _failure(message, e) from e
        if agreement is None:
            raise ValueError("Agreement not found")
        return agreement
