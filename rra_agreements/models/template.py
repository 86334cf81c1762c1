"""Agreement template models"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ClauseCategory(str, Enum):
    """Clause library categories"""
    PARTIES = "parties"
    PROPERTY = "property"
    TERM = "term"
    RENT = "rent"
    DEPOSIT = "deposit"
    REPAIRS = "repairs"
    PETS = "pets"
    TERMINATION = "termination"
    PROPERTY_USE = "property_use"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    COMPLIANCE = "compliance"
    SPECIAL = "special"
    SIGNATURES = "signatures"


class _SectionJSON(BaseModel):
    """Template sections live in a camelCase JSONB column"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class ClauseVariable(_SectionJSON):
    """A placeholder a clause expects to be filled"""
    name: str
    type: str = "text"  # 'text', 'number', 'date', 'select', 'boolean'
    label: str = ""
    required: bool = False
    options: Optional[List[str]] = None
    default_value: Optional[Any] = None
    validation: Optional[dict] = None


class AgreementClause(_SectionJSON):
    """A titled block of template text"""
    id: str
    title: str
    content: str
    is_mandatory: bool = False
    is_prohibited: bool = False
    rra_reference: Optional[str] = None
    category: ClauseCategory = ClauseCategory.SPECIAL
    variables: List[ClauseVariable] = []


class AgreementSection(_SectionJSON):
    """An ordered group of clauses"""
    id: str
    title: str
    order: int = 0
    is_required: bool = True
    clauses: List[AgreementClause] = []


class AgreementTemplate(BaseModel):
    """A versioned agreement template"""
    id: str
    name: str
    description: Optional[str] = None
    version: str                     # e.g. 'RRA2025-v1.0'
    sections: List[AgreementSection] = []
    is_system_template: bool = False
    created_by: Optional[str] = None
    is_active: bool = True
    rra_compliant: bool = True
    last_compliance_check: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def iter_clauses(self):
        """Yield (section, clause) pairs in document order"""
        for section in sorted(self.sections, key=lambda s: s.order):
            for clause in section.clauses:
                yield section, clause


class RenderedClause(BaseModel):
    """A clause after variable substitution"""
    id: str
    title: str
    content: str
    is_mandatory: bool = False
    rra_reference: Optional[str] = None


class RenderedSection(BaseModel):
    """A section ready for review or PDF output"""
    id: str
    title: str
    clauses: List[RenderedClause] = []
