"""
Duplicate Detection Service - links repeat reports of the same physical issue.

DESIGN PRINCIPLES:
- Duplicates are LINKED, never rejected (citizens still get a complaint id)
- Canonical = FIRST qualifying candidate in iteration order, not the nearest
- Canonical supportCount is bumped with an atomic counter
- The new complaint's own supportCount is NOT reconciled with the chain
- Two simultaneous creations may both become canonical (accepted race)
"""

import logging
from typing import Dict, Iterable, Optional

from civiclink.core.settings import settings
from civiclink.models.complaint import DUPLICATE_POOL_STATUSES
from civiclink.storage.base import ComplaintStore, QueryFilter
from civiclink.utils.geo import great_circle_distance

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """
    Finds an existing open complaint of the same category near a new one.

    Criteria for a canonical match:
    1. Status in submitted / in_progress / resolved / reopened
    2. Latitude within the degree window (range filter, pushed to storage)
    3. Longitude within the degree window (checked in memory)
    4. Great-circle distance strictly below the radius
    5. Identical category
    """

    def __init__(
        self,
        store: ComplaintStore,
        radius_meters: Optional[float] = None,
        degree_window: Optional[float] = None,
    ):
        self.store = store
        self.radius_meters = radius_meters if radius_meters is not None else settings.DUPLICATE_RADIUS_METERS
        self.degree_window = degree_window if degree_window is not None else settings.DUPLICATE_DEGREE_WINDOW

    def candidate_pool(self, lat: float) -> list:
        """Complaints in a duplicate-eligible status inside the latitude band."""
        return self.store.query([
            QueryFilter("status", "in", [status.value for status in DUPLICATE_POOL_STATUSES]),
            QueryFilter("location.lat", ">=", lat - self.degree_window),
            QueryFilter("location.lat", "<=", lat + self.degree_window),
        ])

    def find_canonical(
        self,
        lat: float,
        lng: float,
        category: str,
        candidates: Iterable[Dict],
    ) -> Optional[Dict]:
        """
        Return the first candidate qualifying as canonical, or None.

        Candidates outside the latitude band are skipped here too, so any
        iterable (not only a pre-filtered pool) gives the same answer.
        """
        for candidate in candidates:
            location = candidate.get("location") or {}
            cand_lat = location.get("lat")
            cand_lng = location.get("lng")
            if cand_lat is None or cand_lng is None:
                continue

            if abs(cand_lat - lat) > self.degree_window:
                continue
            if abs(cand_lng - lng) > self.degree_window:
                continue

            distance = great_circle_distance(lat, lng, cand_lat, cand_lng)
            if distance < self.radius_meters and candidate.get("category") == category:
                logger.info(
                    f"Duplicate detected: matches complaint {candidate.get('id')} "
                    f"({distance:.1f}m away, category={category})"
                )
                return candidate

        return None

    def detect(self, lat: float, lng: float, category: str) -> Optional[str]:
        """Scan storage and return the canonical complaint id, if any."""
        canonical = self.find_canonical(lat, lng, category, self.candidate_pool(lat))
        return canonical.get("id") if canonical else None

    def record_support(self, canonical_id: str) -> None:
        """Atomically add one supporter to the canonical complaint."""
        self.store.increment(canonical_id, "supportCount", 1)
        logger.info(f"supportCount incremented on canonical complaint {canonical_id}")
