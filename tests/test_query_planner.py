"""Role-scoped listing, ordering and derived overdue flags."""

from datetime import timedelta

import pytest

from civiclink.models.complaint import ComplaintFilters
from civiclink.services.query_planner import RoleScopedQueryPlanner, sort_complaints
from civiclink.storage.base import QueryFilter

from conftest import FIXED_NOW


def seed(store, complaint_id, hours_ago=1, **fields):
    location = {
        "lat": 19.0760,
        "lng": 72.8777,
        "stateName": "Maharashtra",
        "districtName": "Mumbai City",
        "wardCode": "WARD_1",
    }
    location.update(fields.pop("location", {}))
    doc = {
        "userId": "citizen_1",
        "title": complaint_id,
        "category": "Roads",
        "priority": "medium",
        "status": "submitted",
        "createdAt": FIXED_NOW - timedelta(hours=hours_ago),
        "isOverdue": False,
        "escalationTriggered": False,
        "location": location,
    }
    doc.update(fields)
    store.put(complaint_id, doc)


@pytest.fixture
def planner(store, clock):
    return RoleScopedQueryPlanner(store, clock=clock)


@pytest.fixture
def seeded(store):
    seed(store, "mumbai-1", hours_ago=3)
    seed(store, "mumbai-2", hours_ago=2, userId="citizen_2", location={"districtName": "Mumbai Suburban"})
    seed(store, "ward-3", hours_ago=1, location={"wardCode": "WARD_3"})
    seed(
        store,
        "delhi-1",
        hours_ago=4,
        userId="citizen_2",
        location={"stateName": "NCT of Delhi", "districtName": "New Delhi", "wardCode": "WARD_9"},
    )
    seed(
        store,
        "pune-1",
        hours_ago=5,
        status="resolved",
        location={"districtName": "Pune", "wardCode": "WARD_3"},
    )
    return store


def ids(results):
    return [c["id"] for c in results]


class TestScope:
    def test_citizen_sees_only_own(self, planner, seeded, profile):
        assert ids(planner.list(None, profile("citizen_1"))) == ["ward-3", "mumbai-1", "pune-1"]

    def test_citizen_filters_are_ignored(self, planner, seeded, profile):
        filters = ComplaintFilters(status="resolved", limit=1)
        assert ids(planner.list(filters, profile("citizen_1"))) == ["ward-3", "mumbai-1", "pune-1"]

    def test_ward_admin(self, planner, seeded, profile):
        assert ids(planner.list(None, profile("ward_admin_3"))) == ["ward-3", "pune-1"]

    def test_ward_admin_without_assignment_sees_nothing(self, planner, seeded, profile):
        assert planner.list(None, profile("ward_admin_none")) == []

    def test_city_admin_mumbai_spans_two_districts(self, planner, seeded, profile):
        assert ids(planner.list(None, profile("city_admin_mumbai"))) == ["ward-3", "mumbai-2", "mumbai-1"]

    def test_city_admin_delhi_matches_state(self, planner, seeded, profile):
        assert ids(planner.list(None, profile("city_admin_delhi"))) == ["delhi-1"]

    def test_other_city_matches_district(self, planner, seeded, profile):
        assert ids(planner.list(None, profile("city_admin_pune"))) == ["pune-1"]

    def test_city_admin_without_city_sees_nothing(self, planner, store, seeded, profile):
        store.put_user("city_admin_none", {"role": "city_admin"})
        assert planner.list(None, profile("city_admin_none")) == []

    @pytest.mark.parametrize("uid", ["official_1", "superadmin_1"])
    def test_unscoped_admins_see_everything(self, planner, seeded, profile, uid):
        assert len(planner.list(None, profile(uid))) == 5


class TestFilters:
    def test_filters_compose_with_scope(self, planner, seeded, profile):
        filters = ComplaintFilters(status="resolved")
        assert ids(planner.list(filters, profile("ward_admin_3"))) == ["pune-1"]

    def test_explicit_ward_filter(self, planner, seeded, profile):
        filters = ComplaintFilters(ward="WARD_9")
        assert ids(planner.list(filters, profile("superadmin_1"))) == ["delhi-1"]
        # conjunctive: cannot widen a ward admin's scope
        assert planner.list(filters, profile("ward_admin_3")) == []

    def test_state_and_district(self, planner, seeded, profile):
        admin = profile("superadmin_1")
        assert ids(planner.list(ComplaintFilters(state="NCT of Delhi"), admin)) == ["delhi-1"]
        assert ids(planner.list(ComplaintFilters(district="Mumbai Suburban"), admin)) == ["mumbai-2"]

    def test_limit_applies_after_sort(self, planner, seeded, profile):
        results = planner.list(ComplaintFilters(limit=2), profile("superadmin_1"))
        assert ids(results) == ["ward-3", "mumbai-2"]

    def test_plan_for_city_admin(self, planner, profile):
        clauses = planner.plan(ComplaintFilters(priority="high"), profile("city_admin_mumbai"))
        assert clauses[0] == QueryFilter(
            "location.districtName",
            "in",
            ["Mumbai City", "MumbaiCity", "Mumbai Suburban", "MumbaiSuburban"],
        )
        assert QueryFilter("priority", "==", "high") in clauses


class TestOrderingAndOverdue:
    def test_ties_broken_by_id(self):
        same = FIXED_NOW
        docs = [
            {"id": "b", "createdAt": same},
            {"id": "c", "createdAt": same - timedelta(minutes=1)},
            {"id": "a", "createdAt": same},
            {"id": "z"},
        ]
        assert ids(sort_complaints(docs)) == ["a", "b", "c", "z"]

    def test_overdue_derived_for_open_complaints(self, planner, store, profile):
        seed(store, "old-open", hours_ago=49)
        seed(store, "old-resolved", hours_ago=49, status="resolved")
        seed(store, "fresh", hours_ago=47)

        results = {c["id"]: c for c in planner.list(None, profile("superadmin_1"))}
        assert results["old-open"]["isOverdue"] is True
        assert results["old-resolved"]["isOverdue"] is False
        assert results["fresh"]["isOverdue"] is False
        # derived only, not written back
        assert store.get("old-open")["isOverdue"] is False


class TestEscalatedAndStats:
    def test_escalated_is_scoped(self, planner, store, profile):
        seed(store, "esc-mumbai", escalationTriggered=True)
        seed(store, "esc-delhi", escalationTriggered=True, location={"stateName": "NCT of Delhi"})
        seed(store, "calm")

        assert ids(planner.escalated(profile("city_admin_delhi"))) == ["esc-delhi"]
        assert set(ids(planner.escalated(profile("superadmin_1")))) == {"esc-mumbai", "esc-delhi"}

    def test_stats(self, planner, seeded, store, profile):
        seed(store, "late", hours_ago=60, escalationTriggered=True, isOverdue=True)
        stats = planner.stats(profile("superadmin_1"))

        assert stats["total"] == 6
        assert stats["byStatus"]["submitted"] == 5
        assert stats["byStatus"]["resolved"] == 1
        assert stats["byStatus"]["rejected"] == 0
        assert stats["overdue"] == 1
        assert stats["escalated"] == 1

    def test_stats_for_unassigned_admin(self, planner, seeded, profile):
        assert planner.stats(profile("ward_admin_none"))["total"] == 0


class TestPublicViews:
    def test_public_stats(self, planner, seeded, store):
        seed(store, "yesterday", hours_ago=13)
        seed(store, "fixed-yesterday", hours_ago=30, status="resolved")

        assert planner.public_stats() == {
            "total_complaints_today": 5,
            "complaints_solved": 2,
            "total_complaints": 7,
        }

    def test_public_stats_empty(self, planner):
        assert planner.public_stats() == {
            "total_complaints_today": 0,
            "complaints_solved": 0,
            "total_complaints": 0,
        }

    def test_feed_is_newest_first_without_owner(self, planner, seeded, store):
        store.update("mumbai-1", {"resolvedBy": "official_1", "rejectionReason": "n/a"})
        feed = planner.public_feed()

        assert ids(feed) == ["ward-3", "mumbai-2", "mumbai-1", "delhi-1", "pune-1"]
        for item in feed:
            assert "userId" not in item
            assert "resolvedBy" not in item
            assert "rejectionReason" not in item
        assert feed[0]["title"] == "ward-3"
        assert feed[0]["location"]["wardCode"] == "WARD_3"

    def test_feed_limit(self, planner, seeded):
        assert ids(planner.public_feed(limit=2)) == ["ward-3", "mumbai-2"]

    def test_feed_marks_overdue(self, planner, store):
        seed(store, "stale", hours_ago=49)
        assert planner.public_feed()[0]["isOverdue"] is True
