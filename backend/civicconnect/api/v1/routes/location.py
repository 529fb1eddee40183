"""Geocoding endpoints backed by OpenStreetMap."""

import logging

from fastapi import APIRouter, Depends

from civicconnect.api.deps import get_geocoder
from civicconnect.core.exceptions import ResourceNotFoundException, ValidationException
from civicconnect.schemas.location import (
    GeocodeRequest,
    GeocodeResponse,
    ReverseGeocodeRequest,
    ReverseGeocodeResponse,
)
from civicconnect.services.geocoding import Geocoder
from civicconnect.services.lifecycle import LATITUDE_RANGE, LONGITUDE_RANGE, check_range

logger = logging.getLogger("api.location")
router = APIRouter()


@router.post("/reverse-geocode", response_model=ReverseGeocodeResponse)
async def reverse_geocode(
    body: ReverseGeocodeRequest,
    geocoder: Geocoder = Depends(get_geocoder),
) -> ReverseGeocodeResponse:
    """Readable address for a coordinate."""
    check_range(body.lat, LATITUDE_RANGE, "Latitude", "lat")
    check_range(body.lng, LONGITUDE_RANGE, "Longitude", "lng")

    result = await geocoder.reverse(body.lat, body.lng)
    if result is None:
        raise ResourceNotFoundException("Address")
    return result


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode(
    body: GeocodeRequest,
    geocoder: Geocoder = Depends(get_geocoder),
) -> GeocodeResponse:
    """Coordinate for a free-text address."""
    address = body.address.strip()
    if not address:
        raise ValidationException("Address is required", field="address")

    result = await geocoder.forward(address)
    if result is None:
        raise ResourceNotFoundException("Coordinates")
    return result
