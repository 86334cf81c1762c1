"""Supabase record store implementing AgreementStoreInterface"""

import logging
from pathlib import Path
from typing import List, Optional

from rra_agreements.db.base import AgreementStoreInterface
from rra_agreements.db.mapping import (
    agreement_changes_to_row,
    agreement_from_row,
    agreement_to_row,
    clause_from_row,
    match_from_row,
    template_from_row,
    template_to_row,
)
from rra_agreements.models.agreement import GeneratedAgreement
from rra_agreements.models.match import MatchRecord
from rra_agreements.models.template import AgreementClause, AgreementTemplate
from rra_agreements.utils.config import get_settings

logger = logging.getLogger(__name__)

MIGRATION_PATH = Path(__file__).parent / "migrations" / "001_agreement_creator.sql"

MATCH_SELECT = (
    "*, property:properties(*), renter:renter_profiles(*), landlord:landlord_profiles(*)"
)

_supabase_client = None
_service_client = None


def _get_supabase_client():
    """Get or create the singleton Supabase client (anon key)."""
    global _supabase_client
    if _supabase_client is None:
        from supabase import ClientOptions, create_client

        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_key,
            options=ClientOptions(
                postgrest_client_timeout=10,
                storage_client_timeout=30,
            ),
        )
    return _supabase_client


def _get_service_client():
    """Get or create the singleton Supabase service-role client (bypasses RLS)."""
    global _service_client
    if _service_client is None:
        from supabase import ClientOptions, create_client

        settings = get_settings()
        key = settings.supabase_service_key or settings.supabase_key
        if not settings.supabase_url or not key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set for write operations"
            )
        _service_client = create_client(
            settings.supabase_url,
            key,
            options=ClientOptions(
                postgrest_client_timeout=10,
                storage_client_timeout=30,
            ),
        )
    return _service_client


class SupabaseAgreementStore(AgreementStoreInterface):
    """Supabase implementation of AgreementStoreInterface."""

    def __init__(self):
        # Anon key: templates and clauses (public RLS). Service role: matches
        # and drafts, whose RLS needs a user session this store never has.
        self._read = _get_supabase_client
        self._write = _get_service_client

    # Templates

    def list_active_templates(self) -> List[AgreementTemplate]:
        client = self._read()
        result = (
            client.table("agreement_templates")
            .select("*")
            .eq("is_active", True)
            .order("is_system_template", desc=True)
            .order("version", desc=True)
            .execute()
        )
        return [template_from_row(row) for row in result.data]

    def get_template(self, template_id: str) -> Optional[AgreementTemplate]:
        client = self._read()
        result = (
            client.table("agreement_templates")
            .select("*")
            .eq("id", template_id)
            .limit(1)
            .execute()
        )
        return template_from_row(result.data[0]) if result.data else None

    def get_default_template(self) -> Optional[AgreementTemplate]:
        client = self._read()
        result = (
            client.table("agreement_templates")
            .select("*")
            .eq("is_system_template", True)
            .eq("is_active", True)
            .order("version", desc=True)
            .limit(1)
            .execute()
        )
        return template_from_row(result.data[0]) if result.data else None

    def upsert_template(self, template: AgreementTemplate) -> str:
        client = self._write()
        result = client.table("agreement_templates").upsert(template_to_row(template)).execute()
        return result.data[0]["id"]

    # Clause library

    def list_clauses(
        self,
        category: Optional[str] = None,
        is_mandatory: Optional[bool] = None,
        is_prohibited: Optional[bool] = None,
    ) -> List[AgreementClause]:
        client = self._read()
        query = client.table("agreement_clauses").select("*").eq("is_active", True)
        if category is not None:
            query = query.eq("category", category)
        if is_mandatory is not None:
            query = query.eq("is_mandatory", is_mandatory)
        if is_prohibited is not None:
            query = query.eq("is_prohibited", is_prohibited)
        result = query.order("category").execute()
        return [clause_from_row(row) for row in result.data]

    # Matches

    def get_match(self, match_id: str) -> Optional[MatchRecord]:
        client = self._write()
        result = (
            client.table("matches")
            .select(MATCH_SELECT)
            .eq("id", match_id)
            .limit(1)
            .execute()
        )
        return match_from_row(result.data[0]) if result.data else None

    # Generated agreements

    def insert_generated_agreement(self, agreement: GeneratedAgreement) -> GeneratedAgreement:
        client = self._write()
        result = (
            client.table("generated_agreements")
            .insert(agreement_to_row(agreement))
            .execute()
        )
        return agreement_from_row(result.data[0])

    def get_generated_agreement(self, agreement_id: str) -> Optional[GeneratedAgreement]:
        client = self._write()
        result = (
            client.table("generated_agreements")
            .select("*")
            .eq("id", agreement_id)
            .limit(1)
            .execute()
        )
        return agreement_from_row(result.data[0]) if result.data else None

    def list_generated_agreements(
        self,
        match_id: str,
        status: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> List[GeneratedAgreement]:
        client = self._write()
        query = client.table("generated_agreements").select("*").eq("match_id", match_id)
        if status is not None:
            query = query.eq("status", status)
        if created_by is not None:
            query = query.eq("created_by", created_by)
        result = query.order("created_at", desc=True).execute()
        return [agreement_from_row(row) for row in result.data]

    def update_generated_agreement(
        self, agreement_id: str, changes: dict
    ) -> Optional[GeneratedAgreement]:
        client = self._write()
        result = (
            client.table("generated_agreements")
            .update(agreement_changes_to_row(changes))
            .eq("id", agreement_id)
            .execute()
        )
        return agreement_from_row(result.data[0]) if result.data else None

    # Storage

    def upload_agreement_pdf(self, path: str, content: bytes) -> str:
        """Upload a rendered agreement to Supabase Storage."""
        client = self._write()
        client.storage.from_(get_settings().agreements_bucket).upload(
            path=path,
            file=content,
            file_options={
                "content-type": "application/pdf",
                "upsert": "true",
            },
        )
        return path

    def get_status(self) -> dict:
        """Get database status info."""
        client = self._read()
        settings = get_settings()
        try:
            templates = client.table("agreement_templates").select("id", count="exact").execute()
            clauses = client.table("agreement_clauses").select("id", count="exact").execute()
            agreements = (
                self._write().table("generated_agreements").select("id", count="exact").execute()
            )
            return {
                "url": settings.supabase_url,
                "templates": templates.count or 0,
                "clauses": clauses.count or 0,
                "agreements": agreements.count or 0,
                "status": "connected",
            }
        except Exception as e:
            logger.error(f"Schema not reachable. Run migration SQL in Supabase SQL Editor: {MIGRATION_PATH}")
            return {
                "url": settings.supabase_url,
                "status": f"error: {e}",
            }


def get_database() -> AgreementStoreInterface:
    """Factory: returns the configured record store."""
    return SupabaseAgreementStore()
