"""
City jurisdiction mapping for city-level admins.

A few cities do not line up with a single district in the boundary
dataset: Delhi is a state-level territory and Mumbai spans two districts.
Every other city is matched by district name equality.

CRITICAL: This is a deterministic function - same input always produces
the same filter. Used by the listing planner for every city admin query.
"""

import logging
from typing import Dict, List, Optional, Tuple

from civiclink.storage.base import QueryFilter

logger = logging.getLogger(__name__)

# city (lowercase) -> (location field, accepted values)
SPECIAL_CITY_JURISDICTIONS: Dict[str, Tuple[str, List[str]]] = {
    "delhi": ("location.stateName", ["NCT of Delhi", "NCTofDelhi", "Delhi"]),
    "new delhi": ("location.stateName", ["NCT of Delhi", "NCTofDelhi", "Delhi"]),
    "mumbai": (
        "location.districtName",
        ["Mumbai City", "MumbaiCity", "Mumbai Suburban", "MumbaiSuburban"],
    ),
}


def normalize_city_name(city: Optional[str]) -> Optional[str]:
    """Trim and collapse whitespace; None/blank becomes None."""
    if not city or not city.strip():
        return None
    return " ".join(city.split())


def city_jurisdiction_filter(assigned_city: Optional[str]) -> Optional[QueryFilter]:
    """
    Build the storage filter restricting complaints to a city admin's city.

    Returns None when no city is assigned (caller decides how to fail).
    """
    city = normalize_city_name(assigned_city)
    if city is None:
        return None

    special = SPECIAL_CITY_JURISDICTIONS.get(city.lower())
    if special:
        field, values = special
        logger.debug(f"City '{city}' uses special jurisdiction on {field}: {values}")
        return QueryFilter(field, "in", list(values))

    return QueryFilter("location.districtName", "==", city)
