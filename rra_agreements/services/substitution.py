"""Clause template language.

Two passes over the clause text:

1. ``{{variable_name}}`` is replaced with the matching draft value
   (empty string when unset). Names outside VARIABLE_FIELDS are left
   as they are, so clause authors can reference variables the form
   does not collect yet.
2. ``{{#if condition}}A{{else}}B{{/if}}`` and ``{{#if condition}}A{{/if}}``
   blocks are resolved for each name in CONDITION_DEFAULTS, in order.
   Unmatched markup stays literal.

Blocks match non-greedily up to the first ``{{/if}}``, so nesting only
works when the inner condition comes earlier in CONDITION_DEFAULTS than
the outer one. ``{{#if has_gas}}..{{#if pets_allowed}}..{{/if}}{{/if}}``
resolves cleanly; the reverse nesting leaves a stray ``{{/if}}``.
"""

import re
from typing import Any, Callable, Dict, List, Optional

from rra_agreements.models.agreement import AgreementFormData
from rra_agreements.models.template import (
    AgreementTemplate,
    RenderedClause,
    RenderedSection,
)
from rra_agreements.utils.formatting import format_date, format_number

_DATE = "date"
_WEEKS = "weeks"

# variable name -> (form field, renderer)
VARIABLE_FIELDS: Dict[str, tuple] = {
    "landlord_name": ("landlord_name", None),
    "landlord_address": ("landlord_address", None),
    "tenant_name": ("tenant_name", None),
    "agent_name": ("agent_name", None),
    "agent_address": ("agent_address", None),
    "property_address": ("property_address", None),
    "rent_amount": ("rent_amount", None),
    "payment_day": ("rent_payment_day", None),
    "payment_method": ("rent_payment_method", None),
    "deposit_amount": ("deposit_amount", None),
    "deposit_weeks": ("deposit_weeks", _WEEKS),
    "deposit_scheme": ("deposit_scheme", None),
    "deposit_scheme_ref": ("deposit_scheme_ref", None),
    "deposit_protected_date": ("deposit_protected_date", _DATE),
    "start_date": ("tenancy_start_date", _DATE),
    "agreement_date": ("agreement_date", _DATE),
    "epc_rating": ("epc_rating", None),
    "epc_expiry_date": ("epc_expiry_date", _DATE),
    "gas_safety_date": ("gas_safety_date", _DATE),
    "eicr_date": ("eicr_date", _DATE),
    "prs_registration_number": ("prs_registration_number", None),
    "ombudsman_scheme": ("ombudsman_scheme", None),
    "ombudsman_membership_number": ("ombudsman_membership_number", None),
    "furnishing_level": ("furnishing_level", None),
    "council_tax_responsibility": ("council_tax_responsibility", None),
    "council_tax_band": ("council_tax_band", None),
    "pet_details": ("pet_details", None),
    "parking_details": ("parking_details", None),
    "garden_maintenance": ("garden_maintenance", None),
    "included_utilities": ("included_utilities", None),
    "additional_conditions": ("additional_conditions", None),
}

# condition name -> (form field, value when unset). Order matters.
CONDITION_DEFAULTS: Dict[str, tuple] = {
    "pets_allowed": ("pets_allowed", False),
    "inventory_included": ("inventory_included", False),
    "parking_included": ("parking_included", False),
    "has_garden": ("has_garden", False),
    "has_gas": ("has_gas", True),
    "utilities_included": ("utilities_included", False),
    "additional_conditions": ("additional_conditions", False),
}

_VARIABLE_TOKEN = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")


def _render_value(value: Any, renderer: Optional[str]) -> str:
    if renderer == _DATE:
        return format_date(value) if value else ""
    if value is None:
        return ""
    if renderer == _WEEKS:
        return f"{float(value):.1f}"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def build_variable_map(form_data) -> Dict[str, str]:
    """Rendered text for every known variable"""
    data = AgreementFormData.coerce(form_data)
    return {
        name: _render_value(getattr(data, field), renderer)
        for name, (field, renderer) in VARIABLE_FIELDS.items()
    }


def build_condition_map(form_data) -> Dict[str, bool]:
    """Truth value of every known condition"""
    data = AgreementFormData.coerce(form_data)
    conditions = {}
    for name, (field, default) in CONDITION_DEFAULTS.items():
        value = getattr(data, field)
        conditions[name] = default if value is None else bool(value)
    return conditions


def _block_patterns(condition: str) -> tuple:
    name = re.escape(condition)
    if_else = re.compile(
        r"\{\{#if\s+" + name + r"\}\}(.*?)\{\{else\}\}(.*?)\{\{/if\}\}",
        re.DOTALL,
    )
    if_only = re.compile(
        r"\{\{#if\s+" + name + r"\}\}(.*?)\{\{/if\}\}",
        re.DOTALL,
    )
    return if_else, if_only


def _choose(value: bool) -> Callable:
    def replace_if_else(match: re.Match) -> str:
        return match.group(1) if value else match.group(2)
    return replace_if_else


def process_conditionals(content: str, form_data) -> str:
    """Resolve {{#if}} blocks for the known conditions"""
    result = content
    for condition, value in build_condition_map(form_data).items():
        if_else, if_only = _block_patterns(condition)
        result = if_else.sub(_choose(value), result)
        result = if_only.sub(lambda m, v=value: m.group(1) if v else "", result)
    return result


def substitute_variables(content: str, form_data) -> str:
    """Render clause content against a draft.

    Args:
        content: Clause text using the template language
        form_data: AgreementFormData or a dict of draft fields

    Returns:
        The rendered text. Never raises on malformed markup.
    """
    result = content
    for name, text in build_variable_map(form_data).items():
        result = result.replace("{{" + name + "}}", text)
    return process_conditionals(result, form_data)


def find_template_variables(content: str) -> List[str]:
    """Variable names referenced by a clause, in first-use order"""
    seen: List[str] = []
    for name in _VARIABLE_TOKEN.findall(content):
        if name not in seen:
            seen.append(name)
    return seen


def unknown_variables(content: str) -> List[str]:
    """Referenced variables the engine will leave untouched"""
    return [v for v in find_template_variables(content) if v not in VARIABLE_FIELDS]


def render_template(template: AgreementTemplate, form_data) -> List[RenderedSection]:
    """Render every permitted clause of a template for review or output.

    Prohibited clauses are dropped; sections follow their 'order'.
    """
    data = AgreementFormData.coerce(form_data)
    sections: List[RenderedSection] = []
    for section in sorted(template.sections, key=lambda s: s.order):
        clauses = [
            RenderedClause(
                id=clause.id,
                title=clause.title,
                content=substitute_variables(clause.content, data),
                is_mandatory=clause.is_mandatory,
                rra_reference=clause.rra_reference,
            )
            for clause in section.clauses
            if not clause.is_prohibited
        ]
        sections.append(RenderedSection(id=section.id, title=section.title, clauses=clauses))
    return sections
