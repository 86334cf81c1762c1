"""Row <-> model mapping.

Database columns are snake_case; the JSONB payloads (template sections,
agreement_data) are camelCase. Store implementations convert through
these functions and hand typed models to the services.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from rra_agreements.models.agreement import AgreementFormData, GeneratedAgreement
from rra_agreements.models.match import MatchRecord
from rra_agreements.models.template import AgreementClause, AgreementTemplate

TEMPLATE_COLUMNS = {
    "id", "name", "description", "version", "sections", "is_system_template",
    "created_by", "is_active", "rra_compliant", "last_compliance_check",
}

AGREEMENT_COLUMNS = {
    "id", "template_id", "match_id", "landlord_id", "agency_id", "renter_id",
    "property_id", "agreement_data", "generated_pdf_path", "generated_at",
    "tenancy_agreement_id", "status", "created_by",
}


def _json_column(value: Any, default: Any) -> Any:
    """JSONB comes back decoded from PostgREST, as text from raw SQL"""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _column_value(value: Any) -> Any:
    if isinstance(value, AgreementFormData):
        return form_data_to_json(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


# Agreement data

def form_data_to_json(data: AgreementFormData, exclude_unset: bool = False) -> dict:
    """camelCase JSON for the agreement_data column.

    With exclude_unset, only fields the caller set are emitted (explicit
    None included) so the result can be merged as a partial update.
    """
    if exclude_unset:
        return data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return data.model_dump(mode="json", by_alias=True, exclude_none=True)


def form_data_from_json(payload: Any) -> AgreementFormData:
    return AgreementFormData.model_validate(_json_column(payload, {}))


# Templates

def template_from_row(row: dict) -> AgreementTemplate:
    data = {k: v for k, v in row.items() if v is not None}
    data["sections"] = _json_column(row.get("sections"), [])
    return AgreementTemplate.model_validate(data)


def template_to_row(template: AgreementTemplate) -> dict:
    row = template.model_dump(mode="json", include=TEMPLATE_COLUMNS, exclude_none=True)
    row["sections"] = [
        section.model_dump(mode="json", by_alias=True, exclude_none=True)
        for section in template.sections
    ]
    return row


def clause_from_row(row: dict) -> AgreementClause:
    return AgreementClause.model_validate({
        "id": row["id"],
        "title": row["title"],
        "content": row["content"],
        "category": row.get("category") or "special",
        "is_mandatory": bool(row.get("is_mandatory")),
        "is_prohibited": bool(row.get("is_prohibited")),
        "rra_reference": row.get("rra_reference"),
        "variables": _json_column(row.get("variables"), []),
    })


# Generated agreements

def agreement_from_row(row: dict) -> GeneratedAgreement:
    data = {k: v for k, v in row.items() if v is not None}
    data["agreement_data"] = form_data_from_json(row.get("agreement_data"))
    return GeneratedAgreement.model_validate(data)


def agreement_to_row(agreement: GeneratedAgreement) -> dict:
    row = agreement.model_dump(mode="json", include=AGREEMENT_COLUMNS, exclude_none=True)
    row["agreement_data"] = form_data_to_json(agreement.agreement_data)
    return row


def agreement_changes_to_row(changes: dict) -> dict:
    """Column values for a partial generated_agreements update"""
    unknown = set(changes) - AGREEMENT_COLUMNS - {"updated_at"}
    if unknown:
        raise ValueError(f"Unknown agreement columns: {', '.join(sorted(unknown))}")
    return {k: _column_value(v) for k, v in changes.items()}


# Matches

def match_from_row(row: Optional[dict]) -> Optional[MatchRecord]:
    """Match row with embedded property/renter/landlord, or None"""
    if not row or not row.get("property"):
        return None
    data = dict(row)
    prop = dict(row["property"])
    prop["address"] = _json_column(prop.get("address"), {})
    data["property"] = prop
    return MatchRecord.model_validate(data)
