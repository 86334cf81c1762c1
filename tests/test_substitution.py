"""Tests for clause variable substitution and conditional blocks"""

from rra_agreements.models.template import AgreementTemplate
from rra_agreements.services.substitution import (
    VARIABLE_FIELDS,
    build_condition_map,
    find_template_variables,
    render_template,
    substitute_variables,
    unknown_variables,
)


def find_clause(sections, clause_id):
    for section in sections:
        for clause in section.clauses:
            if clause.id == clause_id:
                return clause
    raise KeyError(clause_id)


class TestVariables:
    """{{variable}} replacement"""

    def test_known_variable(self):
        assert substitute_variables("Rent: £{{rent_amount}}", {"rentAmount": 1200}) == "Rent: £1200"

    def test_fractional_number(self):
        assert substitute_variables("£{{rent_amount}}", {"rentAmount": 1200.5}) == "£1200.5"

    def test_unset_variable_is_empty(self):
        assert substitute_variables("Agent: {{agent_name}}.", {}) == "Agent: ."

    def test_unknown_variable_left_as_is(self):
        text = "Ref {{unknown_field}} for {{tenant_name}}"
        assert substitute_variables(text, {"tenantName": "Alex"}) == "Ref {{unknown_field}} for Alex"

    def test_renamed_variables(self):
        text = "Day {{payment_day}} by {{payment_method}}"
        data = {"rentPaymentDay": 1, "rentPaymentMethod": "bank_transfer"}
        assert substitute_variables(text, data) == "Day 1 by bank_transfer"

    def test_dates_are_formatted(self):
        text = "From {{start_date}}, protected {{deposit_protected_date}}"
        data = {"tenancyStartDate": "2025-03-01", "depositProtectedDate": "2025-03-05"}
        assert substitute_variables(text, data) == "From 1 March 2025, protected 5 March 2025"

    def test_unparseable_date_passes_through(self):
        assert substitute_variables("{{start_date}}", {"tenancyStartDate": "soon"}) == "soon"

    def test_deposit_weeks_one_decimal(self):
        assert substitute_variables("{{deposit_weeks}}", {"depositWeeks": 5}) == "5.0"
        assert substitute_variables("{{deposit_weeks}}", {"depositWeeks": 4.98}) == "5.0"

    def test_repeated_variable(self):
        text = "{{tenant_name}} and {{tenant_name}}"
        assert substitute_variables(text, {"tenantName": "Alex"}) == "Alex and Alex"

    def test_no_markup_is_unchanged(self):
        text = "The Tenant must not make any alterations."
        assert substitute_variables(text, {"tenantName": "Alex"}) == text


class TestConditionals:
    """{{#if}} blocks"""

    PETS = "{{#if pets_allowed}}Pets: {{pet_details}}{{else}}No pets{{/if}}"

    def test_if_else_true(self):
        data = {"petsAllowed": True, "petDetails": "One cat"}
        assert substitute_variables(self.PETS, data) == "Pets: One cat"

    def test_if_else_false(self):
        assert substitute_variables(self.PETS, {"petsAllowed": False}) == "No pets"

    def test_unset_condition_uses_default(self):
        assert substitute_variables(self.PETS, {}) == "No pets"

    def test_has_gas_defaults_true(self):
        text = "{{#if has_gas}}Gas supplied{{else}}No gas{{/if}}"
        assert substitute_variables(text, {}) == "Gas supplied"
        assert substitute_variables(text, {"hasGas": False}) == "No gas"

    def test_if_only_false_removes_block(self):
        text = "Let {{#if inventory_included}}with inventory{{/if}}."
        assert substitute_variables(text, {"inventoryIncluded": False}) == "Let ."
        assert substitute_variables(text, {"inventoryIncluded": True}) == "Let with inventory."

    def test_additional_conditions_truthiness(self):
        text = "{{#if additional_conditions}}Extra: {{additional_conditions}}{{/if}}"
        assert substitute_variables(text, {}) == ""
        assert substitute_variables(text, {"additionalConditions": ""}) == ""
        assert substitute_variables(text, {"additionalConditions": "No smoking"}) == "Extra: No smoking"

    def test_multiline_block(self):
        text = "{{#if additional_conditions}}Conditions:\n{{additional_conditions}}{{/if}}"
        data = {"additionalConditions": "No smoking"}
        assert substitute_variables(text, data) == "Conditions:\nNo smoking"

    def test_nested_inner_condition_resolved_first(self):
        # pets_allowed is resolved before has_gas
        text = "{{#if has_gas}}G{{#if pets_allowed}}P{{/if}}{{/if}}"
        assert substitute_variables(text, {"petsAllowed": False}) == "G"
        assert substitute_variables(text, {"petsAllowed": True}) == "GP"

    def test_nested_outer_condition_resolved_first(self):
        # The outer block closes at the inner {{/if}}, leaving the outer one behind
        text = "{{#if pets_allowed}}P{{#if has_gas}}G{{/if}}{{/if}}"
        assert substitute_variables(text, {"petsAllowed": False}) == "{{/if}}"
        assert substitute_variables(text, {"petsAllowed": True}) == "PG"

    def test_several_blocks_same_condition(self):
        text = "{{#if parking_included}}A{{else}}B{{/if}}-{{#if parking_included}}C{{else}}D{{/if}}"
        assert substitute_variables(text, {"parkingIncluded": True}) == "A-C"
        assert substitute_variables(text, {"parkingIncluded": False}) == "B-D"
        text = "{{#if has_garden}}A{{/if}}-{{#if has_garden}}B{{/if}}"
        assert substitute_variables(text, {"hasGarden": True}) == "A-B"

    def test_blocks_for_different_conditions(self):
        text = "{{#if has_garden}}Garden{{/if}} {{#if parking_included}}Parking{{/if}}"
        data = {"hasGarden": True, "parkingIncluded": False}
        assert substitute_variables(text, data) == "Garden "

    def test_unknown_condition_left_as_is(self):
        text = "{{#if has_pool}}Pool{{/if}}"
        assert substitute_variables(text, {}) == text

    def test_unterminated_block_left_as_is(self):
        text = "{{#if pets_allowed}}Pets allowed"
        assert substitute_variables(text, {"petsAllowed": True}) == text

    def test_condition_map(self):
        conditions = build_condition_map({"petsAllowed": True})
        assert conditions["pets_allowed"] is True
        assert conditions["has_gas"] is True
        assert conditions["has_garden"] is False
        assert list(conditions)[0] == "pets_allowed"


class TestTemplateVariables:
    def test_find_in_first_use_order(self):
        text = "{{tenant_name}} {{rent_amount}} {{tenant_name}} {{#if pets_allowed}}x{{/if}}"
        assert find_template_variables(text) == ["tenant_name", "rent_amount"]

    def test_unknown_variables(self):
        assert unknown_variables("{{tenant_name}} {{pool_size}}") == ["pool_size"]

    def test_bundled_template_uses_known_variables(self, default_template):
        for _, clause in default_template.iter_clauses():
            assert unknown_variables(clause.content) == [], clause.id


class TestRenderTemplate:
    """Whole-template rendering"""

    def test_complete_draft_leaves_no_markup(self, default_template, compliant_form_data):
        sections = render_template(default_template, compliant_form_data)
        assert len(sections) == 12
        for section in sections:
            for clause in section.clauses:
                assert "{{" not in clause.content, clause.id

    def test_rendered_clauses(self, default_template, compliant_form_data):
        sections = render_template(default_template, compliant_form_data)
        rent = find_clause(sections, "rent-amount")
        assert rent.content.startswith(
            "The rent is £1200 per calendar month, payable in advance on the 1 day"
        )
        assert "by standing_order" in rent.content
        deposit = find_clause(sections, "deposit-amount")
        assert "£1380 has been paid. This represents 5.0 weeks' rent" in deposit.content
        pets = find_clause(sections, "pet-current")
        assert pets.content.startswith("No pets have been agreed")
        gas = find_clause(sections, "gas-safety")
        assert "dated 15 January 2025" in gas.content
        council_tax = find_clause(sections, "council-tax")
        assert council_tax.content == "The Tenant is responsible for Council Tax. Council Tax Band: C."

    def test_sections_sorted_by_order(self):
        template = AgreementTemplate.model_validate({
            "id": "t1",
            "name": "Test",
            "version": "v1",
            "sections": [
                {"id": "second", "title": "Second", "order": 2, "clauses": []},
                {"id": "first", "title": "First", "order": 1, "clauses": []},
            ],
        })
        assert [s.id for s in render_template(template, {})] == ["first", "second"]

    def test_prohibited_clauses_skipped(self):
        template = AgreementTemplate.model_validate({
            "id": "t1",
            "name": "Test",
            "version": "v1",
            "sections": [{
                "id": "term",
                "title": "Term",
                "order": 1,
                "clauses": [
                    {"id": "notice", "title": "Notice", "content": "Two months.", "isMandatory": True},
                    {"id": "s21", "title": "Section 21", "content": "No-fault eviction.", "isProhibited": True},
                ],
            }],
        })
        sections = render_template(template, {})
        assert [c.id for c in sections[0].clauses] == ["notice"]
        assert sections[0].clauses[0].is_mandatory is True

    def test_every_variable_has_a_field(self):
        from rra_agreements.models.agreement import AgreementFormData

        fields = AgreementFormData.model_fields
        for name, (field, _) in VARIABLE_FIELDS.items():
            assert field in fields, name
