"""Address lookup against OpenStreetMap Nominatim."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from civicconnect.core.exceptions import ServiceUnavailableException
from civicconnect.schemas.location import (
    AddressComponents,
    AddressDetails,
    GeocodeResponse,
    ReverseGeocodeResponse,
)

logger = logging.getLogger(__name__)


class Geocoder(ABC):
    """Converts between coordinates and addresses. ``None`` means no match."""

    @abstractmethod
    async def reverse(self, lat: float, lng: float) -> Optional[ReverseGeocodeResponse]:
        raise NotImplementedError

    @abstractmethod
    async def forward(self, address: str) -> Optional[GeocodeResponse]:
        raise NotImplementedError

    async def close(self) -> None:
        pass


def _components(address: Dict[str, Any]) -> AddressComponents:
    street = f"{address.get('house_number', '')} {address.get('road', '')}".strip()
    return AddressComponents(
        street=street,
        locality=address.get("neighbourhood") or address.get("suburb") or "",
        city=address.get("city") or address.get("town") or address.get("village") or "",
        state=address.get("state", ""),
        country=address.get("country", ""),
        postal_code=address.get("postcode", ""),
    )


class NominatimGeocoder(Geocoder):
    """Nominatim client. Requests carry the identifying User-Agent Nominatim requires."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
            transport=transport,
        )

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Nominatim timed out on {path}: {e}")
            raise ServiceUnavailableException("Geocoding service", internal_message=str(e))
        except httpx.HTTPStatusError as e:
            logger.error(f"Nominatim returned {e.response.status_code} on {path}")
            raise ServiceUnavailableException(
                "Geocoding service",
                status_code=502,
                internal_message=f"Nominatim API error: {e.response.status_code}",
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Nominatim request failed on {path}: {e}")
            raise ServiceUnavailableException("Geocoding service", internal_message=str(e))

    async def reverse(self, lat: float, lng: float) -> Optional[ReverseGeocodeResponse]:
        data = await self._get(
            "/reverse",
            {"format": "json", "lat": lat, "lon": lng, "zoom": 18, "addressdetails": 1},
        )
        if not isinstance(data, dict) or not data.get("display_name"):
            return None

        display_name = data["display_name"]
        return ReverseGeocodeResponse(
            address=display_name,
            details=AddressDetails(
                full_address=display_name,
                components=_components(data.get("address") or {}),
            ),
        )

    async def forward(self, address: str) -> Optional[GeocodeResponse]:
        data = await self._get(
            "/search",
            {"format": "json", "q": address, "limit": 1, "addressdetails": 1},
        )
        if not isinstance(data, list) or not data:
            return None

        result = data[0]
        return GeocodeResponse(
            lat=float(result["lat"]),
            lng=float(result["lon"]),
            formatted_address=result.get("display_name", ""),
            bounding_box=result.get("boundingbox"),
        )

    async def close(self) -> None:
        await self._client.aclose()
