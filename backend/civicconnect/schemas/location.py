"""Geocoding request and response schemas."""

from typing import List, Optional

from pydantic import Field

from civicconnect.schemas.common import Coordinate, RequestModel, ResponseModel


class ReverseGeocodeRequest(Coordinate):
    pass


class GeocodeRequest(RequestModel):
    address: str = Field(..., max_length=500)


class AddressComponents(ResponseModel):
    street: str = ""
    locality: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""


class AddressDetails(ResponseModel):
    full_address: str
    components: AddressComponents


class ReverseGeocodeResponse(ResponseModel):
    address: str
    details: AddressDetails
    source: str = "openstreetmap"


class GeocodeResponse(ResponseModel):
    lat: float
    lng: float
    formatted_address: str
    bounding_box: Optional[List[str]] = None
