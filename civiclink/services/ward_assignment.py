"""
Ward assignment.

KNOWN LIMITATION: without an explicit ward the code is a coarse bucket of
the rounded coordinates (10 buckets). It is collision-prone and does not
follow real ward boundaries; it only gives ward admins a stable slice.
"""

import math
from typing import Optional

WARD_PREFIX = "WARD_"
WARD_BUCKETS = 10


def fallback_ward_code(lat: float, lng: float) -> str:
    """Deterministic ward code from floor(lat*1000) + floor(lng*1000)."""
    h = abs(math.floor(lat * 1000) + math.floor(lng * 1000))
    return f"{WARD_PREFIX}{(h % WARD_BUCKETS) + 1}"


def assign_ward(lat: float, lng: float, explicit_ward: Optional[str] = None) -> str:
    """An explicit ward code wins verbatim; otherwise use the fallback bucket."""
    if explicit_ward:
        return explicit_ward
    return fallback_ward_code(lat, lng)
