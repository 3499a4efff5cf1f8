"""
Rough travel-time estimates between cities and territories.

Locations resolve to a coarse region (city first, then territory code or name).
Same city is 1h. Within a region the per-region figure applies, across
regions the pair table. Unknown locations fall back to the caller's default.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Optional

SAME_CITY_HOURS = 1.0
MISSING_PAIR_HOURS = 16.0
DEFAULT_TRAVEL_HOURS = 12.0

EUROPE = "europe"
NORTH_AMERICA = "north_america"
LATIN_AMERICA = "latin_america"
ASIA = "asia"
OCEANIA = "oceania"
MIDDLE_EAST = "middle_east"
AFRICA = "africa"

WITHIN_REGION_HOURS: Dict[str, float] = {
    EUROPE: 5.0,
    NORTH_AMERICA: 6.0,
    LATIN_AMERICA: 6.0,
    ASIA: 6.0,
    OCEANIA: 5.0,
    MIDDLE_EAST: 4.0,
    AFRICA: 6.0,
}

CROSS_REGION_HOURS: Dict[FrozenSet[str], float] = {
    frozenset((EUROPE, NORTH_AMERICA)): 14.0,
    frozenset((EUROPE, LATIN_AMERICA)): 16.0,
    frozenset((EUROPE, ASIA)): 14.0,
    frozenset((EUROPE, OCEANIA)): 16.0,
    frozenset((EUROPE, MIDDLE_EAST)): 12.0,
    frozenset((EUROPE, AFRICA)): 12.0,
    frozenset((NORTH_AMERICA, LATIN_AMERICA)): 12.0,
    frozenset((NORTH_AMERICA, ASIA)): 16.0,
    frozenset((NORTH_AMERICA, OCEANIA)): 16.0,
    frozenset((ASIA, OCEANIA)): 12.0,
    frozenset((ASIA, MIDDLE_EAST)): 12.0,
    frozenset((MIDDLE_EAST, AFRICA)): 12.0,
}

_TERRITORIES = {
    EUROPE: (
        "GB", "UK", "IE", "FR", "DE", "NL", "BE", "LU", "ES", "PT", "IT", "CH", "AT",
        "DK", "SE", "NO", "FI", "IS", "PL", "CZ", "SK", "HU", "GR", "HR", "SI", "RO",
        "BG", "EE", "LV", "LT", "RS", "UA",
        "united kingdom", "great britain", "england", "scotland", "wales",
        "northern ireland", "ireland", "france", "germany", "netherlands", "belgium",
        "spain", "portugal", "italy", "switzerland", "austria", "denmark", "sweden",
        "norway", "finland", "iceland", "poland", "czechia", "greece", "europe", "eu",
    ),
    NORTH_AMERICA: ("US", "USA", "CA", "united states", "canada", "north america"),
    LATIN_AMERICA: (
        "MX", "BR", "AR", "CL", "CO", "PE", "UY", "EC",
        "mexico", "brazil", "argentina", "chile", "colombia", "peru", "latam",
    ),
    ASIA: (
        "JP", "KR", "CN", "HK", "TW", "SG", "TH", "MY", "ID", "PH", "VN", "IN",
        "japan", "south korea", "korea", "china", "hong kong", "taiwan", "singapore",
        "thailand", "malaysia", "indonesia", "philippines", "vietnam", "india", "asia",
    ),
    OCEANIA: ("AU", "NZ", "australia", "new zealand", "oceania"),
    MIDDLE_EAST: (
        "AE", "SA", "QA", "IL", "KW", "BH", "OM", "JO", "LB",
        "united arab emirates", "uae", "saudi arabia", "qatar", "israel", "middle east",
    ),
    AFRICA: (
        "ZA", "NG", "KE", "EG", "MA", "GH", "TZ",
        "south africa", "nigeria", "kenya", "egypt", "morocco", "ghana", "africa",
    ),
}

_CITIES = {
    EUROPE: (
        "london", "manchester", "glasgow", "edinburgh", "belfast", "bristol", "leeds",
        "dublin", "cork", "galway", "limerick", "paris", "lyon", "berlin", "hamburg",
        "munich", "cologne", "amsterdam", "rotterdam", "brussels", "antwerp", "madrid",
        "barcelona", "lisbon", "porto", "rome", "milan", "zurich", "vienna", "prague",
        "warsaw", "budapest", "copenhagen", "stockholm", "oslo", "helsinki", "reykjavik",
        "athens",
    ),
    NORTH_AMERICA: (
        "new york", "los angeles", "chicago", "nashville", "austin", "san francisco",
        "seattle", "boston", "miami", "atlanta", "denver", "las vegas", "philadelphia",
        "toronto", "montreal", "vancouver",
    ),
    LATIN_AMERICA: (
        "mexico city", "guadalajara", "sao paulo", "rio de janeiro", "buenos aires",
        "santiago", "bogota", "lima",
    ),
    ASIA: (
        "tokyo", "osaka", "seoul", "beijing", "shanghai", "hong kong", "taipei",
        "singapore", "bangkok", "kuala lumpur", "jakarta", "manila", "mumbai", "delhi",
    ),
    OCEANIA: ("sydney", "melbourne", "brisbane", "perth", "adelaide", "auckland", "wellington"),
    MIDDLE_EAST: ("dubai", "abu dhabi", "doha", "riyadh", "tel aviv", "beirut"),
    AFRICA: ("johannesburg", "cape town", "lagos", "nairobi", "cairo", "marrakech", "accra"),
}

REGION_BY_TERRITORY: Dict[str, str] = {
    name.lower(): region for region, names in _TERRITORIES.items() for name in names
}
REGION_BY_CITY: Dict[str, str] = {
    name: region for region, names in _CITIES.items() for name in names
}


def _key(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    cleaned = " ".join(value.strip().lower().split())
    return cleaned or None


def resolve_region(city: Optional[str] = None, territory: Optional[str] = None) -> Optional[str]:
    city_key = _key(city)
    if city_key and city_key in REGION_BY_CITY:
        return REGION_BY_CITY[city_key]
    territory_key = _key(territory)
    if territory_key:
        return REGION_BY_TERRITORY.get(territory_key)
    return None


def locations_differ(
    city_a: Optional[str],
    territory_a: Optional[str],
    city_b: Optional[str],
    territory_b: Optional[str],
) -> bool:
    """True when both sides name a city (or territory) and the names differ."""
    ca, cb = _key(city_a), _key(city_b)
    if ca and cb:
        return ca != cb
    ta, tb = _key(territory_a), _key(territory_b)
    if ta and tb:
        return ta != tb
    return False


def estimate_travel_hours(
    from_city: Optional[str] = None,
    from_territory: Optional[str] = None,
    to_city: Optional[str] = None,
    to_territory: Optional[str] = None,
    *,
    default_hours: float = DEFAULT_TRAVEL_HOURS,
) -> float:
    """Estimated door-to-door hours between two locations."""
    from_key, to_key = _key(from_city), _key(to_city)
    if from_key and to_key and from_key == to_key:
        return SAME_CITY_HOURS

    origin = resolve_region(from_city, from_territory)
    destination = resolve_region(to_city, to_territory)
    if origin is None or destination is None:
        return float(default_hours)
    if origin == destination:
        return WITHIN_REGION_HOURS.get(origin, float(default_hours))
    return CROSS_REGION_HOURS.get(frozenset((origin, destination)), MISSING_PAIR_HOURS)


__all__ = [
    "CROSS_REGION_HOURS",
    "DEFAULT_TRAVEL_HOURS",
    "REGION_BY_CITY",
    "REGION_BY_TERRITORY",
    "WITHIN_REGION_HOURS",
    "estimate_travel_hours",
    "locations_differ",
    "resolve_region",
]
