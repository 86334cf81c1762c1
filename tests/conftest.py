"""Pytest configuration and fixtures"""

import copy
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import pytest

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
from rra_agreements.services.agreement_creator import AgreementCreatorService

TEMPLATE_PATH = (
    Path(__file__).parent.parent / "rra_agreements" / "templates" / "rra_2025_default.json"
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep tests off any real Supabase project"""
    for name in ("SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_SERVICE_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AUTOSAVE_DELAY_SECONDS", "0.01")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    yield


class InMemoryAgreementStore(AgreementStoreInterface):
    """Record store fake that keeps raw rows, like the database would.

    Add a method name to fail_on to make that call raise ConnectionError.
    """

    def __init__(self):
        self.templates: dict = {}
        self.clauses: dict = {}
        self.matches: dict = {}
        self.agreements: dict = {}
        self.uploads: dict = {}
        self.fail_on: set = set()
        self.calls: List[str] = []
        self._clock = datetime(2025, 1, 1, 9, 0, 0)

    def _call(self, name: str):
        self.calls.append(name)
        if name in self.fail_on:
            raise ConnectionError(f"{name}: connection refused")

    def _tick(self) -> str:
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def list_active_templates(self):
        self._call("list_active_templates")
        rows = [r for r in self.templates.values() if r.get("is_active", True)]
        rows.sort(key=lambda r: (r.get("is_system_template", False), r["version"]), reverse=True)
        return [template_from_row(r) for r in rows]

    def get_template(self, template_id):
        self._call("get_template")
        row = self.templates.get(template_id)
        return template_from_row(row) if row else None

    def get_default_template(self):
        self._call("get_default_template")
        rows = [
            r for r in self.templates.values()
            if r.get("is_system_template") and r.get("is_active", True)
        ]
        if not rows:
            return None
        return template_from_row(max(rows, key=lambda r: r["version"]))

    def upsert_template(self, template):
        self._call("upsert_template")
        row = template_to_row(template)
        self.templates[row["id"]] = row
        return row["id"]

    def list_clauses(self, category=None, is_mandatory=None, is_prohibited=None):
        self._call("list_clauses")
        rows = [r for r in self.clauses.values() if r.get("is_active", True)]
        if category is not None:
            rows = [r for r in rows if r["category"] == category]
        if is_mandatory is not None:
            rows = [r for r in rows if bool(r.get("is_mandatory")) == is_mandatory]
        if is_prohibited is not None:
            rows = [r for r in rows if bool(r.get("is_prohibited")) == is_prohibited]
        return [clause_from_row(r) for r in sorted(rows, key=lambda r: r["category"])]

    def get_match(self, match_id):
        self._call("get_match")
        return match_from_row(copy.deepcopy(self.matches.get(match_id)))

    def insert_generated_agreement(self, agreement):
        self._call("insert_generated_agreement")
        row = agreement_to_row(agreement)
        row["created_at"] = row["updated_at"] = self._tick()
        self.agreements[row["id"]] = row
        return agreement_from_row(copy.deepcopy(row))

    def get_generated_agreement(self, agreement_id):
        self._call("get_generated_agreement")
        row = self.agreements.get(agreement_id)
        return agreement_from_row(copy.deepcopy(row)) if row else None

    def list_generated_agreements(self, match_id, status=None, created_by=None):
        self._call("list_generated_agreements")
        rows = [r for r in self.agreements.values() if r["match_id"] == match_id]
        if status is not None:
            rows = [r for r in rows if r["status"] == status]
        if created_by is not None:
            rows = [r for r in rows if r["created_by"] == created_by]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [agreement_from_row(copy.deepcopy(r)) for r in rows]

    def update_generated_agreement(self, agreement_id, changes):
        self._call("update_generated_agreement")
        row = self.agreements.get(agreement_id)
        if row is None:
            return None
        row.update(agreement_changes_to_row(changes))
        return agreement_from_row(copy.deepcopy(row))

    def upload_agreement_pdf(self, path, content):
        self._call("upload_agreement_pdf")
        self.uploads[path] = content
        return path

    def get_status(self):
        return {
            "templates": len(self.templates),
            "clauses": len(self.clauses),
            "agreements": len(self.agreements),
            "status": "connected",
        }


def load_template_row() -> dict:
    with open(TEMPLATE_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def template_row() -> dict:
    return load_template_row()


@pytest.fixture
def default_template(template_row):
    return template_from_row(template_row)


@pytest.fixture
def match_row() -> dict:
    return {
        "id": "match-1",
        "property_id": "property-1",
        "renter_id": "renter-1",
        "landlord_id": "landlord-1",
        "managing_agency_id": None,
        "monthly_rent_amount": 1150,
        "property": {
            "id": "property-1",
            "address": {"street": "12 Acacia Avenue", "city": "Bristol", "postcode": "BS1 4DJ"},
            "rent_pcm": 1200,
            "epc_rating": "B",
            "furnishing": "Part Furnished",
        },
        "renter": {"id": "renter-1", "names": "Alex Morgan", "email": "alex@example.com"},
        "landlord": {"id": "landlord-1", "names": "Priya Shah", "prs_registration_number": "PRS-123456"},
    }


@pytest.fixture
def match(match_row):
    return match_from_row(match_row)


@pytest.fixture
def clause_rows() -> List[dict]:
    return [
        {"id": "c0000000-0000-0000-0000-000000000002", "category": "term",
         "title": "Tenant Notice Period (Mandatory)",
         "content": "The Tenant may end this tenancy by giving at least 2 months' written notice.",
         "is_mandatory": True, "is_prohibited": False, "rra_reference": "RRA 2025"},
        {"id": "c0000000-0000-0000-0000-000000000006", "category": "pets",
         "title": "Pet Requests (Mandatory)",
         "content": "Tenants may request to keep a pet.",
         "is_mandatory": True, "is_prohibited": False, "rra_reference": "RRA 2025"},
        {"id": "c0000000-0000-0000-0000-000000000011", "category": "term",
         "title": "Section 21 Notice (PROHIBITED)",
         "content": "Section 21 no-fault evictions are prohibited under RRA 2025.",
         "is_mandatory": False, "is_prohibited": True, "rra_reference": "RRA 2025"},
    ]


@pytest.fixture
def store(template_row, match_row, clause_rows) -> InMemoryAgreementStore:
    """Store seeded with the bundled template, one match and a few library clauses"""
    store = InMemoryAgreementStore()
    store.templates[template_row["id"]] = template_row
    store.matches[match_row["id"]] = match_row
    for row in clause_rows:
        store.clauses[row["id"]] = row
    return store


@pytest.fixture
def service(store) -> AgreementCreatorService:
    return AgreementCreatorService(store)


@pytest.fixture
def compliant_form_data() -> dict:
    """A complete draft that passes every step and every compliance rule"""
    return {
        "landlordName": "Priya Shah",
        "landlordAddress": "4 Harbour Road, Bristol, BS2 1AA",
        "tenantName": "Alex Morgan",
        "propertyAddress": "12 Acacia Avenue, Bristol, BS1 4DJ",
        "tenancyStartDate": "2025-03-01",
        "agreementDate": "2025-02-20",
        "furnishingLevel": "part furnished",
        "inventoryIncluded": True,
        "rentAmount": 1200,
        "rentPaymentDay": 1,
        "rentPaymentMethod": "standing_order",
        "depositAmount": 1380,
        "depositWeeks": 4.98,
        "depositScheme": "DPS",
        "depositSchemeRef": "DPS-998877",
        "depositProtectedDate": "2025-03-05",
        "petsAllowed": False,
        "councilTaxResponsibility": "Tenant",
        "councilTaxBand": "C",
        "prsRegistrationNumber": "PRS-123456",
        "ombudsmanScheme": "Property Redress Scheme",
        "ombudsmanMembershipNumber": "PRS-M-4455",
        "epcRating": "C",
        "epcExpiryDate": "2030-06-30",
        "hasGas": True,
        "gasSafetyDate": "2025-01-15",
        "eicrDate": "2024-11-02",
    }
