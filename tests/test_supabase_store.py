"""Tests for SupabaseAgreementStore client routing and row handling"""

from types import SimpleNamespace

import pytest

from rra_agreements.db.mapping import agreement_to_row
from rra_agreements.db.supabase import SupabaseAgreementStore
from rra_agreements.models.agreement import AgreementFormData, GeneratedAgreement


class FakeQuery:
    """Chainable stand-in for a postgrest query builder"""

    def __init__(self, rows):
        self.rows = rows

    def select(self, *args, **kwargs):
        return self

    def eq(self, *args):
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, *args):
        return self

    def insert(self, row):
        self.rows = [row]
        return self

    def update(self, changes):
        self.rows = [{**row, **changes} for row in self.rows]
        return self

    def upsert(self, row):
        self.rows = [row]
        return self

    def execute(self):
        return SimpleNamespace(data=self.rows, count=len(self.rows))


class FakeClient:
    """Records the tables it is asked for"""

    def __init__(self, rows_by_table):
        self.rows_by_table = rows_by_table
        self.tables = []

    def table(self, name):
        self.tables.append(name)
        return FakeQuery(list(self.rows_by_table.get(name, [])))


@pytest.fixture
def agreement_row():
    agreement = GeneratedAgreement(
        id="agreement-1",
        template_id="a0000000-0000-0000-0000-000000000001",
        match_id="match-1",
        landlord_id="landlord-1",
        renter_id="renter-1",
        property_id="property-1",
        agreement_data=AgreementFormData(tenant_name="Alex Morgan"),
        created_by="landlord-1",
    )
    row = agreement_to_row(agreement)
    row["created_at"] = row["updated_at"] = "2025-01-01T09:00:00+00:00"
    return row


@pytest.fixture
def clients(template_row, match_row, agreement_row):
    # The anon client sees public rows only, as RLS would allow without a user session
    anon = FakeClient({"agreement_templates": [template_row]})
    service = FakeClient({
        "agreement_templates": [template_row],
        "matches": [match_row],
        "generated_agreements": [agreement_row],
    })
    return anon, service


@pytest.fixture
def supabase_store(clients):
    anon, service = clients
    store = SupabaseAgreementStore()
    store._read = lambda: anon
    store._write = lambda: service
    return store


class TestClientRouting:
    """Reads of RLS-protected tables must use the service-role client"""

    def test_get_generated_agreement(self, supabase_store, clients):
        anon, service = clients
        agreement = supabase_store.get_generated_agreement("agreement-1")
        assert agreement is not None
        assert agreement.agreement_data.tenant_name == "Alex Morgan"
        assert "generated_agreements" not in anon.tables
        assert service.tables == ["generated_agreements"]

    def test_list_generated_agreements(self, supabase_store, clients):
        anon, _ = clients
        drafts = supabase_store.list_generated_agreements("match-1", status="draft", created_by="landlord-1")
        assert [d.id for d in drafts] == ["agreement-1"]
        assert anon.tables == []

    def test_get_match(self, supabase_store, clients):
        anon, _ = clients
        match = supabase_store.get_match("match-1")
        assert match.property.address.street == "12 Acacia Avenue"
        assert match.renter.names == "Alex Morgan"
        assert anon.tables == []

    def test_update_reads_back(self, supabase_store):
        updated = supabase_store.update_generated_agreement(
            "agreement-1", {"status": "generated", "generated_pdf_path": "match-1/agreement-1/a.pdf"}
        )
        assert updated.status == "generated"
        assert updated.generated_pdf_path == "match-1/agreement-1/a.pdf"

    def test_templates_use_anon_client(self, supabase_store, clients):
        anon, service = clients
        template = supabase_store.get_default_template()
        assert template.version == "RRA2025-v1.0"
        assert anon.tables == ["agreement_templates"]
        assert service.tables == []

    def test_missing_agreement(self, clients):
        anon, _ = clients
        store = SupabaseAgreementStore()
        store._read = lambda: anon
        store._write = lambda: FakeClient({})
        assert store.get_generated_agreement("agreement-1") is None
        assert store.get_match("match-1") is None
