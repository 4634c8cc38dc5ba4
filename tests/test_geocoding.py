"""
Geocoding against mocked provider responses
"""
import httpx
import pytest

from app.core.config import settings
from app.core.exceptions import GeocodingError
from app.services.geocoding import GeocodingService


def _google_payload(components):
    return {
        "status": "OK",
        "results": [{
            "formatted_address": "Somewhere, India",
            "geometry": {"location": {"lat": 25.43, "lng": 81.84}},
            "address_components": components,
        }],
    }


@pytest.fixture
def google_key(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "test-key")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_google_prefers_locality(google_key):
    seen = {}

    def handler(request):
        seen["address"] = request.url.params["address"]
        return httpx.Response(200, json=_google_payload([
            {"long_name": "Uttar Pradesh", "types": ["administrative_area_level_1"]},
            {"long_name": "Allahabad", "types": ["locality", "political"]},
        ]))

    service = GeocodingService(provider="google", transport=httpx.MockTransport(handler))
    result = await service.geocode("Civil Lines, Allahabad")

    assert seen["address"] == "Civil Lines, Allahabad"
    assert result.city == "Prayagraj"
    assert result.latitude == 25.43
    assert result.provider == "google"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_google_falls_back_to_district(google_key):
    def handler(request):
        return httpx.Response(200, json=_google_payload([
            {"long_name": "Mumbai Suburban", "types": ["administrative_area_level_2"]},
            {"long_name": "Maharashtra", "types": ["administrative_area_level_1"]},
        ]))

    result = await GeocodingService(provider="google", transport=httpx.MockTransport(handler)).geocode("Andheri")

    assert result.city == "Mumbai"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_google_without_city_component_is_unknown(google_key):
    def handler(request):
        return httpx.Response(200, json=_google_payload([
            {"long_name": "India", "types": ["country"]},
        ]))

    result = await GeocodingService(provider="google", transport=httpx.MockTransport(handler)).geocode("India")

    assert result.city == "Unknown"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_google_zero_results(google_key):
    def handler(request):
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    with pytest.raises(GeocodingError):
        await GeocodingService(provider="google", transport=httpx.MockTransport(handler)).geocode("Nowhere")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_provider_http_error_is_wrapped(google_key):
    def handler(request):
        return httpx.Response(503)

    with pytest.raises(GeocodingError):
        await GeocodingService(provider="google", transport=httpx.MockTransport(handler)).geocode("Delhi")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", None)

    with pytest.raises(GeocodingError):
        await GeocodingService(provider="google").geocode("Delhi")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_blank_address_is_rejected():
    with pytest.raises(GeocodingError):
        await GeocodingService().geocode("   ")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_mapbox_reads_place_context(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_ACCESS_TOKEN", "test-token")

    def handler(request):
        return httpx.Response(200, json={"features": [{
            "place_name": "12 Mount Road, Madras, Tamil Nadu",
            "place_type": ["address"],
            "center": [80.27, 13.08],
            "context": [
                {"id": "place.123", "text": "Madras"},
                {"id": "region.456", "text": "Tamil Nadu"},
            ],
        }]})

    result = await GeocodingService(provider="mapbox", transport=httpx.MockTransport(handler)).geocode("12 Mount Road")

    assert result.city == "Chennai"
    assert result.latitude == 13.08
    assert result.longitude == 80.27
    assert result.provider == "mapbox"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_mapbox_encodes_address_as_one_path_segment(monkeypatch):
    monkeypatch.setattr(settings, "MAPBOX_ACCESS_TOKEN", "test-token")
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["raw_path"] = request.url.raw_path
        seen["params"] = dict(request.url.params)
        seen["fragment"] = request.url.fragment
        return httpx.Response(200, json={"features": [{
            "place_name": "Flat #4, 12/3 MG Road, Delhi",
            "place_type": ["address"],
            "center": [77.21, 28.63],
            "context": [{"id": "place.1", "text": "New Delhi"}],
        }]})

    service = GeocodingService(provider="mapbox", transport=httpx.MockTransport(handler))
    result = await service.geocode("Flat #4, 12/3 MG Road?, Delhi")

    assert seen["path"] == "/geocoding/v5/mapbox.places/Flat #4, 12/3 MG Road?, Delhi.json"
    assert b"%23" in seen["raw_path"] and b"%2F" in seen["raw_path"] and b"%3F" in seen["raw_path"]
    assert seen["params"] == {"access_token": "test-token", "limit": "1", "types": "address,place"}
    assert seen["fragment"] == ""
    assert result.city == "Delhi"
