"""
City name normalization
"""
import pytest

from app.core.location_resolution import normalize_city_name, is_global_city, GLOBAL_CITY, UNKNOWN_CITY


@pytest.mark.unit
@pytest.mark.parametrize("raw,expected", [
    ("Delhi Division", "Delhi"),
    ("New Delhi", "Delhi"),
    ("Mumbai Suburban", "Mumbai"),
    ("Allahabad", "Prayagraj"),
    (" Madras ", "Chennai"),
    ("Riverdale", "Riverdale"),
    ("", UNKNOWN_CITY),
    (None, UNKNOWN_CITY),
])
def test_normalize_city_name(raw, expected):
    assert normalize_city_name(raw) == expected


@pytest.mark.unit
def test_global_city():
    assert is_global_city(GLOBAL_CITY)
    assert not is_global_city("Delhi")
    assert not is_global_city(None)
