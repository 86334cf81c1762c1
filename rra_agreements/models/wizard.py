"""Agreement wizard step models"""

from enum import Enum

from pydantic import BaseModel


class UserType(str, Enum):
    """Party creating the agreement"""
    LANDLORD = "landlord"
    AGENCY = "agency"


class WizardStep(BaseModel):
    """One page of the agreement creator"""
    id: str
    title: str
    description: str
    is_optional: bool = False
    is_complete: bool = False
