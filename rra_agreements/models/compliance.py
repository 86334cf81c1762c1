"""Compliance check result models"""

from typing import List

from pydantic import BaseModel


class ComplianceError(BaseModel):
    """A statutory requirement the draft violates (blocks generation)"""
    field: str
    message: str
    rra_reference: str


class ComplianceWarning(BaseModel):
    """A best-practice gap that never blocks generation"""
    field: str
    message: str
    suggestion: str


class ComplianceCheckResult(BaseModel):
    """Outcome of evaluating a draft against the RRA 2025 rule set"""
    is_compliant: bool
    errors: List[ComplianceError] = []
    warnings: List[ComplianceWarning] = []

    def error_for(self, field: str) -> List[ComplianceError]:
        """Errors raised against one form field"""
        return [e for e in self.errors if e.field == field]
