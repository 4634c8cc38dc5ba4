"""
Resolve geocoder city names to the canonical names staff and admins are
scoped to, so routing and escalation lookups match regardless of which
historical or administrative name the geocoder returned.
"""
from typing import Optional

# Admins scoped to this city act system-wide
GLOBAL_CITY = "Global"
UNKNOWN_CITY = "Unknown"

CITY_ALIASES = {
    "Delhi Division": "Delhi",
    "New Delhi": "Delhi",
    "Delhi": "Delhi",
    "Mumbai Suburban": "Mumbai",
    "Mumbai": "Mumbai",
    "Prayagraj": "Prayagraj",
    "Allahabad": "Prayagraj",  # historical name
    "Chennai": "Chennai",
    "Madras": "Chennai",  # historical name
    "Jaipur": "Jaipur",
}


def normalize_city_name(city_name: Optional[str]) -> str:
    """Map a raw city name onto its canonical form"""
    name = (city_name or "").strip()
    if not name:
        return UNKNOWN_CITY
    return CITY_ALIASES.get(name, name)


def is_global_city(city_name: Optional[str]) -> bool:
    return (city_name or "").strip() == GLOBAL_CITY
