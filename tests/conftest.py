"""
Shared pytest fixtures for the CivicLink test suite.

Everything runs against the in-memory complaint store, a small hand-made
boundary dataset and a controllable clock. No Firebase credentials needed.
"""

import os

os.environ.setdefault("USE_MOCK_DB", "true")
os.environ.setdefault("AI_ENABLED", "true")
os.environ.setdefault("GEMINI_API_KEY", "")

from datetime import datetime, timedelta, timezone

import pytest

from civiclink.models.complaint import ComplaintCreate
from civiclink.services.admin_areas import AdminAreaResolver
from civiclink.services.ai_plugin import AIProviderRegistry, KeywordRulesProvider
from civiclink.services.complaint_service import build_complaint_service
from civiclink.services.notifications import WhatsAppSimulatorSender
from civiclink.services.user_service import UserService
from civiclink.storage.memory import InMemoryComplaintStore

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

MUMBAI = (19.0760, 72.8777)
DELHI = (28.6139, 77.2090)


def square(min_lng, min_lat, max_lng, max_lat):
    return [
        [min_lng, min_lat],
        [max_lng, min_lat],
        [max_lng, max_lat],
        [min_lng, max_lat],
        [min_lng, min_lat],
    ]


def feature(geometry_type, coordinates, state, state_code, district, district_code):
    return {
        "type": "Feature",
        "properties": {
            "NAME_1": state,
            "GID_1": state_code,
            "NAME_2": district,
            "GID_2": district_code,
        },
        "geometry": {"type": geometry_type, "coordinates": coordinates},
    }


BOUNDARIES = {
    "type": "FeatureCollection",
    "features": [
        feature(
            "Polygon",
            [square(72.80, 19.00, 72.95, 19.15)],
            "Maharashtra", "IND.20_1", "Mumbai City", "IND.20.18_1",
        ),
        # Triangle: the north-west half of its bbox is outside
        feature(
            "Polygon",
            [[[76.8, 28.4], [77.4, 28.4], [77.4, 29.0], [76.8, 28.4]]],
            "NCT of Delhi", "IND.25_1", "New Delhi", "IND.25.6_1",
        ),
        # Two members; the first one has a hole
        feature(
            "MultiPolygon",
            [
                [square(73.70, 18.40, 73.90, 18.60), square(73.78, 18.48, 73.82, 18.52)],
                [square(73.00, 20.00, 73.10, 20.10)],
            ],
            "Maharashtra", "IND.20_1", "Pune", "IND.20.25_1",
        ),
        {
            "type": "Feature",
            "properties": {"NAME_1": "Nowhere", "NAME_2": "Point"},
            "geometry": {"type": "Point", "coordinates": [80.0, 20.0]},
        },
    ],
}

USERS = {
    "citizen_1": {"role": "citizen", "phoneNumber": "+919800000001", "preferredLanguage": "hi"},
    "citizen_2": {"role": "citizen"},
    "ward_admin_3": {"role": "ward_admin", "assignedWard": "WARD_3", "phoneNumber": "+919800000003"},
    "ward_admin_none": {"role": "ward_admin"},
    "city_admin_mumbai": {"role": "city_admin", "assignedCity": "Mumbai"},
    "city_admin_delhi": {"role": "city_admin", "assignedCity": "Delhi"},
    "city_admin_pune": {"role": "city_admin", "assignedCity": "Pune"},
    "official_1": {"role": "official"},
    "superadmin_1": {"role": "superadmin"},
}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=FIXED_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryComplaintStore(users=USERS)


@pytest.fixture
def resolver():
    return AdminAreaResolver.from_features(BOUNDARIES)


@pytest.fixture
def sender():
    return WhatsAppSimulatorSender(enabled=True)


@pytest.fixture
def classifier():
    return AIProviderRegistry(providers=[KeywordRulesProvider()])


@pytest.fixture
def service(store, resolver, classifier, sender, clock):
    return build_complaint_service(store, resolver=resolver, classifier=classifier, sender=sender, clock=clock)


@pytest.fixture
def profile(store):
    """profile("citizen_1") -> RoleProfile from the seeded users."""
    users = UserService(store)
    return users.get_role_profile


@pytest.fixture
def make_complaint(service):
    """Create a complaint through the service with sensible defaults."""

    def _make(user_id="citizen_1", lat=MUMBAI[0], lng=MUMBAI[1], category="Roads", **overrides):
        location = overrides.pop("location", {"lat": lat, "lng": lng, "address": "Station Road"})
        payload = ComplaintCreate(
            user_id=user_id,
            title=overrides.pop("title", "Pothole near station"),
            description=overrides.pop("description", "Large pothole blocking the left lane."),
            category=category,
            location=location,
            **overrides,
        )
        return service.create(payload)

    return _make
