"""
Geocoding service for complaint addresses
"""
from dataclasses import dataclass
from typing import Optional
import logging
from urllib.parse import quote

import httpx

from app.core.config import settings
from app.core.exceptions import GeocodingError
from app.core.location_resolution import normalize_city_name

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
MAPBOX_GEOCODE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/{address}.json"

# Google address component types, most specific first
GOOGLE_CITY_COMPONENTS = ("locality", "administrative_area_level_2", "administrative_area_level_1")


@dataclass(frozen=True)
class GeocodeResult:
    city: str
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    provider: str = "google"


class GeocodingService:
    def __init__(self, provider: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.provider = (provider or settings.MAPS_PROVIDER or "google").lower()
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=10, transport=self.transport)

    async def geocode(self, address: str) -> GeocodeResult:
        """Resolve a free-text address to a normalized city and coordinates"""
        if not address or not address.strip():
            raise GeocodingError("Geocoding requires a raw address input")
        try:
            if self.provider == "mapbox":
                return await self._mapbox_geocode(address)
            return await self._google_geocode(address)
        except httpx.HTTPError as e:
            logger.error(f"Geocoding API error: {str(e)}")
            raise GeocodingError("Failed to process location data via geocoding provider")

    async def _google_geocode(self, address: str) -> GeocodeResult:
        if not settings.GOOGLE_MAPS_API_KEY:
            raise GeocodingError("Google Maps API key not configured")
        params = {
            "address": address,
            "key": settings.GOOGLE_MAPS_API_KEY
        }
        async with self._client() as client:
            response = await client.get(GOOGLE_GEOCODE_URL, params=params)
            response.raise_for_status()
            data = response.json()
        if data.get("status") != "OK" or not data.get("results"):
            raise GeocodingError(f"Location lookup failed: {data.get('status')}")

        result = data["results"][0]
        location = result["geometry"]["location"]
        components = result.get("address_components", [])
        raw_city = None
        for component_type in GOOGLE_CITY_COMPONENTS:
            match = next((c for c in components if component_type in c.get("types", [])), None)
            if match:
                raw_city = match.get("long_name")
                break

        return GeocodeResult(
            city=normalize_city_name(raw_city),
            latitude=location["lat"],
            longitude=location["lng"],
            formatted_address=result.get("formatted_address"),
            provider="google",
        )

    async def _mapbox_geocode(self, address: str) -> GeocodeResult:
        if not settings.MAPBOX_ACCESS_TOKEN:
            raise GeocodingError("Mapbox access token not configured")
        params = {
            "access_token": settings.MAPBOX_ACCESS_TOKEN,
            "limit": 1,
            "types": "address,place",
        }
        async with self._client() as client:
            # The address is a single path segment; "#", "?" and "/" must not split it
            url = MAPBOX_GEOCODE_URL.format(address=quote(address, safe=""))
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        if not data.get("features"):
            raise GeocodingError("Location lookup failed: no results")

        feature = data["features"][0]
        lng, lat = feature["center"]
        raw_city = None
        if "place" in feature.get("place_type", []):
            raw_city = feature.get("text")
        else:
            for context in feature.get("context", []):
                if str(context.get("id", "")).startswith("place."):
                    raw_city = context.get("text")
                    break

        return GeocodeResult(
            city=normalize_city_name(raw_city),
            latitude=lat,
            longitude=lng,
            formatted_address=feature.get("place_name"),
            provider="mapbox",
        )
