"""Read-only records supplied by the marketplace (match, property, profiles)"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Address(BaseModel):
    model_config = ConfigDict(extra="ignore")

    street: Optional[str] = None
    city: Optional[str] = None
    postcode: Optional[str] = None

    def one_line(self) -> str:
        """'street, city, postcode' with blank parts dropped"""
        return ", ".join(part for part in (self.street, self.city, self.postcode) if part)


class PropertyRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    address: Address = Address()
    rent_pcm: Optional[float] = None
    epc_rating: Optional[str] = None
    furnishing: Optional[str] = None


class RenterProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    names: str = ""
    email: Optional[str] = None


class LandlordProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    names: str = ""
    prs_registration_number: Optional[str] = None


class MatchRecord(BaseModel):
    """A renter/property match with its embedded sub-records"""
    model_config = ConfigDict(extra="ignore")

    id: str
    property_id: str
    renter_id: str
    landlord_id: str
    managing_agency_id: Optional[str] = None
    monthly_rent_amount: Optional[float] = None
    property: PropertyRecord
    renter: Optional[RenterProfile] = None
    landlord: Optional[LandlordProfile] = None
