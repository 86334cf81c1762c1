"""Abstract record store interface for the agreement creator"""

from abc import ABC, abstractmethod
from typing import List, Optional

from rra_agreements.models.agreement import GeneratedAgreement
from rra_agreements.models.match import MatchRecord
from rra_agreements.models.template import AgreementClause, AgreementTemplate


class AgreementStoreInterface(ABC):
    """Record CRUD for agreement_templates, agreement_clauses and
    generated_agreements, plus read access to matches.

    Lookups return None when the row does not exist. Any other failure
    propagates from the backend unchanged.
    """

    # Templates

    @abstractmethod
    def list_active_templates(self) -> List[AgreementTemplate]:
        """Active templates, system templates first, newest version first."""

    @abstractmethod
    def get_template(self, template_id: str) -> Optional[AgreementTemplate]:
        """Get template by ID."""

    @abstractmethod
    def get_default_template(self) -> Optional[AgreementTemplate]:
        """Active system template with the highest version."""

    @abstractmethod
    def upsert_template(self, template: AgreementTemplate) -> str:
        """Insert or update a template. Returns template ID."""

    # Clause library

    @abstractmethod
    def list_clauses(
        self,
        category: Optional[str] = None,
        is_mandatory: Optional[bool] = None,
        is_prohibited: Optional[bool] = None,
    ) -> List[AgreementClause]:
        """Active library clauses matching every filter given."""

    # Matches

    @abstractmethod
    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        """Match with embedded property, renter and landlord."""

    # Generated agreements

    @abstractmethod
    def insert_generated_agreement(self, agreement: GeneratedAgreement) -> GeneratedAgreement:
        """Insert a new agreement. Returns the stored record."""

    @abstractmethod
    def get_generated_agreement(self, agreement_id: str) -> Optional[GeneratedAgreement]:
        """Get agreement by ID."""

    @abstractmethod
    def list_generated_agreements(
        self,
        match_id: str,
        status: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> List[GeneratedAgreement]:
        """Agreements for a match, newest first."""

    @abstractmethod
    def update_generated_agreement(
        self, agreement_id: str, changes: dict
    ) -> Optional[GeneratedAgreement]:
        """Apply column changes to one agreement.

        changes maps GeneratedAgreement field names to new values.
        Returns the updated record, or None if the ID does not exist.
        """

    # Storage

    @abstractmethod
    def upload_agreement_pdf(self, path: str, content: bytes) -> str:
        """Store a rendered PDF. Returns the storage path."""

    @abstractmethod
    def get_status(self) -> dict:
        """Backend status info (table counts, connection status)."""
