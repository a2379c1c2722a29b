"""
Administrative Area Resolver - point to state/district lookup.

DESIGN PRINCIPLES:
- Boundary dataset is loaded ONCE and then read-only (safe for concurrent readers)
- Cheap bounding-box rejection before exact point-in-polygon
- Only exterior rings are tested; holes are not subtracted
- First matching feature in dataset order wins (no tie-break for overlaps)
- A failed load is NOT retried; restart the process or call reset()

Input: GeoJSON FeatureCollection, coordinates in [lng, lat] order, each
feature carrying state/district name and code properties.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from civiclink.core.settings import settings
from civiclink.models.complaint import AdminArea

logger = logging.getLogger(__name__)

Ring = Sequence[Sequence[float]]
BBox = Tuple[float, float, float, float]  # (min_lng, min_lat, max_lng, max_lat)

UNKNOWN_AREA = AdminArea()


class PropertyKeys(NamedTuple):
    state_name: str = "NAME_1"
    state_code: str = "GID_1"
    district_name: str = "NAME_2"
    district_code: str = "GID_2"


class AdminFeature(NamedTuple):
    area: AdminArea
    exterior_rings: Tuple[Ring, ...]
    bbox: BBox


def calculate_bbox(coordinates: Any) -> BBox:
    """Axis-aligned bbox over every coordinate pair of a (Multi)Polygon."""
    min_lng = min_lat = float("inf")
    max_lng = max_lat = float("-inf")

    stack = [coordinates]
    while stack:
        coords = stack.pop()
        if not coords:
            continue
        if isinstance(coords[0], (int, float)):
            lng, lat = coords[0], coords[1]
            min_lng = min(min_lng, lng)
            max_lng = max(max_lng, lng)
            min_lat = min(min_lat, lat)
            max_lat = max(max_lat, lat)
        else:
            stack.extend(coords)

    return (min_lng, min_lat, max_lng, max_lat)


def bbox_contains(bbox: BBox, lat: float, lng: float) -> bool:
    min_lng, min_lat, max_lng, max_lat = bbox
    return min_lng <= lng <= max_lng and min_lat <= lat <= max_lat


def point_in_ring(lng: float, lat: float, ring: Ring) -> bool:
    """
    Ray-casting point-in-polygon test against a single ring.

    Points exactly on an edge may fall either way.
    """
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                inside = not inside
        j = i
    return inside


def exterior_rings(geometry: Dict[str, Any]) -> Optional[Tuple[Ring, ...]]:
    """Exterior ring(s) of a Polygon/MultiPolygon; None for other geometry types."""
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []

    if geometry_type == "Polygon":
        return (coordinates[0],) if coordinates else ()
    if geometry_type == "MultiPolygon":
        return tuple(polygon[0] for polygon in coordinates if polygon)
    return None


class AdminAreaResolver:
    """
    Resolves a coordinate to the administrative area containing it.

    Build one per dataset. `load()` is idempotent and thread-safe;
    `lookup()` loads lazily on first use.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        property_keys: Optional[PropertyKeys] = None,
        feature_collection: Optional[Dict[str, Any]] = None,
    ):
        self.path = path
        self.property_keys = property_keys or PropertyKeys()
        self._feature_collection = feature_collection
        self._features: Tuple[AdminFeature, ...] = ()
        self._loaded = False
        self._lock = threading.Lock()

    @classmethod
    def from_features(
        cls,
        feature_collection: Dict[str, Any],
        property_keys: Optional[PropertyKeys] = None,
    ) -> "AdminAreaResolver":
        """Build a resolver over an in-memory GeoJSON FeatureCollection."""
        return cls(property_keys=property_keys, feature_collection=feature_collection)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def feature_count(self) -> int:
        return len(self._features)

    def load(self) -> None:
        """Load and index the dataset. Subsequent calls are no-ops."""
        if self._loaded:
            return

        with self._lock:
            if self._loaded:
                return
            try:
                collection = self._feature_collection
                if collection is None:
                    collection = self._read_dataset()
                self._features = tuple(self._index(collection.get("features") or []))
                logger.info(f"Admin boundaries loaded: {len(self._features)} districts mapped")
            except Exception as e:
                # Not retried: lookups return UNKNOWN_AREA until reset() or restart.
                self._features = ()
                logger.error(f"Failed to load admin boundaries from {self.path}: {e}", exc_info=True)
            finally:
                self._loaded = True

    def reset(self) -> None:
        """Drop the loaded dataset; the next lookup reloads it."""
        with self._lock:
            self._features = ()
            self._loaded = False

    def lookup(self, lat: float, lng: float) -> AdminArea:
        """
        Return the state/district containing (lat, lng).

        All fields are None when no feature contains the point.
        """
        if not self._loaded:
            self.load()

        for feature in self._features:
            if not bbox_contains(feature.bbox, lat, lng):
                continue
            if any(point_in_ring(lng, lat, ring) for ring in feature.exterior_rings):
                return feature.area

        return UNKNOWN_AREA

    def _read_dataset(self) -> Dict[str, Any]:
        if not self.path:
            raise FileNotFoundError("No admin boundary dataset path configured")
        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Admin boundary dataset not found at: {self.path}")
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _index(self, features: Iterable[Dict[str, Any]]) -> List[AdminFeature]:
        keys = self.property_keys
        indexed = []
        for position, feature in enumerate(features):
            geometry = feature.get("geometry") or {}
            rings = exterior_rings(geometry)
            if rings is None:
                logger.warning(
                    f"Skipping feature #{position}: unsupported geometry type {geometry.get('type')!r}"
                )
                continue

            properties = feature.get("properties") or {}
            area = AdminArea(
                state_name=properties.get(keys.state_name),
                state_code=properties.get(keys.state_code),
                district_name=properties.get(keys.district_name),
                district_code=properties.get(keys.district_code),
            )
            indexed.append(AdminFeature(area, rings, calculate_bbox(geometry.get("coordinates"))))
        return indexed


# Process-wide default resolver (built lazily from settings)
_resolver: Optional[AdminAreaResolver] = None
_resolver_lock = threading.Lock()


def get_admin_area_resolver() -> AdminAreaResolver:
    """
    Get or create the default AdminAreaResolver.

    Returns:
        AdminAreaResolver: resolver over settings.ADMIN_AREAS_PATH (not yet loaded)
    """
    global _resolver
    if _resolver is None:
        with _resolver_lock:
            if _resolver is None:
                _resolver = AdminAreaResolver(
                    path=settings.ADMIN_AREAS_PATH,
                    property_keys=PropertyKeys(
                        state_name=settings.ADMIN_AREA_STATE_NAME_KEY,
                        state_code=settings.ADMIN_AREA_STATE_CODE_KEY,
                        district_name=settings.ADMIN_AREA_DISTRICT_NAME_KEY,
                        district_code=settings.ADMIN_AREA_DISTRICT_CODE_KEY,
                    ),
                )
    return _resolver


def set_admin_area_resolver(resolver: Optional[AdminAreaResolver]) -> None:
    """Replace the default resolver (None drops it; next get rebuilds from settings)."""
    global _resolver
    with _resolver_lock:
        _resolver = resolver
