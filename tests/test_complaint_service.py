"""Complaint creation and lifecycle transitions."""

from unittest.mock import MagicMock

import pytest

from civiclink.core.exceptions import ComplaintNotFound, NotAuthorized, StateConflict, ValidationFailed
from civiclink.core.settings import settings
from civiclink.models.complaint import ComplaintCreate, ComplaintUpdate, GeoPoint, ResolutionProof

from conftest import DELHI, FIXED_NOW

PROOF = ResolutionProof(image_url="https://example.org/fixed.jpg", note="Patched")


@pytest.fixture
def delhi_complaint(make_complaint):
    return make_complaint(lat=DELHI[0], lng=DELHI[1], category="Electricity", title="Streetlight out")


class TestCreate:
    def test_persists_submitted_complaint_with_tags(self, make_complaint, store):
        complaint = make_complaint()
        stored = store.get(complaint["id"])

        assert stored["status"] == "submitted"
        assert stored["userId"] == "citizen_1"
        assert stored["supportCount"] == 1
        assert stored["timesReopened"] == 0
        assert stored["escalationTriggered"] is False
        assert stored["createdAt"] == FIXED_NOW
        assert stored["location"]["districtName"] == "Mumbai City"
        assert stored["location"]["stateCode"] == "IND.20_1"
        assert stored["location"]["wardCode"].startswith("WARD_")
        assert stored["location"]["address"] == "Station Road"

    def test_explicit_ward_is_kept(self, make_complaint):
        complaint = make_complaint(location={"lat": 19.0760, "lng": 72.8777, "wardCode": "W01"})
        assert complaint["location"]["wardCode"] == "W01"

    def test_untagged_location_still_creates(self, make_complaint):
        complaint = make_complaint(lat=12.9716, lng=77.5946)
        assert complaint["location"]["districtName"] is None
        assert complaint["status"] == "submitted"

    @pytest.mark.parametrize(
        "field, value",
        [("user_id", None), ("title", "  "), ("description", ""), ("location", None)],
    )
    def test_missing_required_fields(self, service, field, value):
        data = {
            "user_id": "citizen_1",
            "title": "Pothole",
            "description": "Deep pothole",
            "category": "Roads",
            "location": {"lat": 19.0760, "lng": 72.8777},
        }
        data[field] = value
        with pytest.raises(ValidationFailed):
            service.create(ComplaintCreate(**data))

    def test_missing_coordinates(self, service):
        payload = ComplaintCreate(user_id="citizen_1", title="t", description="d", location={"address": "x"})
        with pytest.raises(ValidationFailed):
            service.create(payload)

    def test_ai_classifies_when_no_category(self, make_complaint, store):
        complaint = make_complaint(
            category=None,
            title="Water leak",
            description="Urgent: pipeline burst flooding the lane.",
        )
        assert complaint["category"] == "Water"
        assert complaint["priority"] == "high"
        assert complaint["aiSummary"]

        types = [entry["type"] for entry in store.list_activity(complaint["id"])]
        assert types == ["created", "ai_analyzed"]

    def test_ai_not_called_with_category(self, service, make_complaint):
        service.classifier = MagicMock()
        complaint = make_complaint(category="Roads")
        service.classifier.classify.assert_not_called()
        assert complaint["priority"] == "medium"

    def test_ai_failure_uses_fallback(self, service, make_complaint):
        service.classifier = MagicMock()
        service.classifier.classify.side_effect = RuntimeError("boom")
        complaint = make_complaint(category=None, title="Something odd")

        assert complaint["category"] == "General"
        assert complaint["priority"] == "medium"
        assert complaint["aiSummary"] == "(AI Unavailable) Something odd"

    def test_created_activity_logged(self, make_complaint, store):
        complaint = make_complaint()
        [entry] = store.list_activity(complaint["id"])
        assert entry["type"] == "created"
        assert entry["actorId"] == "citizen_1"
        assert entry["actorRole"] == "citizen"
        assert entry["complaintId"] == complaint["id"]


class TestUpdate:
    def test_status_resolved_is_always_rejected(self, service, profile):
        # rejected before the complaint is even loaded
        with pytest.raises(StateConflict):
            service.update("does-not-exist", ComplaintUpdate(status="resolved"), profile("superadmin_1"))

    def test_citizen_cannot_update(self, service, make_complaint, profile):
        complaint = make_complaint()
        with pytest.raises(NotAuthorized):
            service.update(complaint["id"], ComplaintUpdate(status="in_progress"), profile("citizen_1"))

    def test_admin_moves_to_in_progress(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        updated = service.update(complaint["id"], ComplaintUpdate(status="in_progress"), profile("official_1"))

        assert updated["status"] == "in_progress"
        assert store.get(complaint["id"])["status"] == "in_progress"
        entry = store.list_activity(complaint["id"])[-1]
        assert entry["type"] == "admin_updated"
        assert entry["meta"]["newStatus"] == "in_progress"

    def test_rejection_needs_reason(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        with pytest.raises(ValidationFailed):
            service.update(complaint["id"], ComplaintUpdate(status="rejected"), profile("official_1"))
        assert store.get(complaint["id"])["status"] == "submitted"

    def test_rejection_through_update(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        service.update(
            complaint["id"],
            ComplaintUpdate(status="rejected", rejection_reason="Not municipal property"),
            profile("official_1"),
        )
        stored = store.get(complaint["id"])
        assert stored["status"] == "rejected"
        assert stored["rejectionReason"] == "Not municipal property"

    def test_illegal_transition(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        store.update(complaint["id"], {"status": "rejected"})
        with pytest.raises(StateConflict):
            service.update(complaint["id"], ComplaintUpdate(status="in_progress"), profile("official_1"))

    def test_content_edit(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        service.update(complaint["id"], ComplaintUpdate(title="Crater", priority="critical"), profile("official_1"))
        stored = store.get(complaint["id"])
        assert stored["title"] == "Crater"
        assert stored["priority"] == "critical"
        assert stored["status"] == "submitted"

    def test_moved_location_is_retagged(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        service.update(
            complaint["id"],
            ComplaintUpdate(location={"lat": DELHI[0], "lng": DELHI[1]}),
            profile("official_1"),
        )
        location = store.get(complaint["id"])["location"]
        assert location["stateName"] == "NCT of Delhi"
        assert location["districtName"] == "New Delhi"
        assert location["address"] == "Station Road"

    def test_move_keeps_submitted_ward(self, service, make_complaint, profile, store):
        complaint = make_complaint(location={"lat": 19.0760, "lng": 72.8777, "wardCode": "W01"})
        service.update(
            complaint["id"],
            ComplaintUpdate(location={"lat": DELHI[0], "lng": DELHI[1]}),
            profile("official_1"),
        )
        location = store.get(complaint["id"])["location"]
        assert location["districtName"] == "New Delhi"
        assert location["wardCode"] == "W01"

    def test_move_with_new_ward(self, service, make_complaint, profile, store):
        complaint = make_complaint(location={"lat": 19.0760, "lng": 72.8777, "wardCode": "W01"})
        service.update(
            complaint["id"],
            ComplaintUpdate(location={"lat": DELHI[0], "lng": DELHI[1], "wardCode": "W07"}),
            profile("official_1"),
        )
        assert store.get(complaint["id"])["location"]["wardCode"] == "W07"

    def test_move_recomputes_heuristic_ward(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        service.update(
            complaint["id"],
            ComplaintUpdate(location={"lat": DELHI[0], "lng": DELHI[1]}),
            profile("official_1"),
        )
        location = store.get(complaint["id"])["location"]
        assert location["wardCode"].startswith("WARD_")
        assert location["wardExplicit"] is False

    def test_linked_duplicate_category_is_frozen(self, service, make_complaint, profile, store):
        canonical = make_complaint()
        child = make_complaint(user_id="citizen_2", lat=19.0764, lng=72.8777)
        assert child["duplicateOf"] == canonical["id"]

        with pytest.raises(StateConflict):
            service.update(child["id"], ComplaintUpdate(category="Water"), profile("official_1"))
        assert store.get(child["id"])["category"] == "Roads"

    def test_linked_duplicate_cannot_move(self, service, make_complaint, profile, store):
        make_complaint()
        child = make_complaint(user_id="citizen_2", lat=19.0764, lng=72.8777)

        with pytest.raises(StateConflict):
            service.update(
                child["id"], ComplaintUpdate(location={"lat": DELHI[0], "lng": DELHI[1]}), profile("official_1")
            )
        assert store.get(child["id"])["location"]["lat"] == 19.0764

    def test_linked_duplicate_other_edits_allowed(self, service, make_complaint, profile, store):
        make_complaint()
        child = make_complaint(user_id="citizen_2", lat=19.0764, lng=72.8777)

        service.update(
            child["id"], ComplaintUpdate(category="Roads", status="in_progress"), profile("official_1")
        )
        assert store.get(child["id"])["status"] == "in_progress"

    def test_unlinked_category_can_change(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        assert complaint["duplicateOf"] is None
        service.update(complaint["id"], ComplaintUpdate(category="Water"), profile("official_1"))
        assert store.get(complaint["id"])["category"] == "Water"

    def test_empty_update(self, service, make_complaint, profile):
        complaint = make_complaint()
        with pytest.raises(ValidationFailed):
            service.update(complaint["id"], ComplaintUpdate(), profile("official_1"))

    def test_unknown_complaint(self, service, profile):
        with pytest.raises(ComplaintNotFound):
            service.update("nope", ComplaintUpdate(title="x"), profile("official_1"))


class TestResolve:
    def test_requires_admin(self, service, delhi_complaint, profile):
        with pytest.raises(NotAuthorized):
            service.resolve(delhi_complaint["id"], PROOF, None, profile("citizen_1"))

    def test_requires_image_proof(self, service, delhi_complaint, profile, store):
        with pytest.raises(ValidationFailed):
            service.resolve(delhi_complaint["id"], ResolutionProof(note="done"), None, profile("official_1"))
        with pytest.raises(ValidationFailed):
            service.resolve(delhi_complaint["id"], None, None, profile("official_1"))
        assert store.get(delhi_complaint["id"])["status"] == "submitted"

    def test_web_view_link_is_accepted_as_proof(self, service, delhi_complaint, profile):
        proof = ResolutionProof(web_view_link="https://drive.example.org/view/1")
        resolved = service.resolve(delhi_complaint["id"], proof, None, profile("official_1"))
        assert resolved["status"] == "resolved"

    def test_gps_mismatch_delhi(self, service, delhi_complaint, profile, store):
        with pytest.raises(StateConflict) as excinfo:
            service.resolve(
                delhi_complaint["id"],
                PROOF,
                GeoPoint(lat=28.7000, lng=77.2000),
                profile("official_1"),
            )

        error = excinfo.value
        assert "GPS Mismatch" in error.message
        assert 9500 < error.distance_meters < 9700
        assert error.max_distance_meters == 200
        assert store.get(delhi_complaint["id"])["status"] == "submitted"
        assert [e["type"] for e in store.list_activity(delhi_complaint["id"])] == ["created"]

    def test_within_range_resolves(self, service, delhi_complaint, profile, store, sender):
        resolved = service.resolve(
            delhi_complaint["id"],
            PROOF,
            GeoPoint(lat=28.6140, lng=77.2091),
            profile("official_1"),
        )

        stored = store.get(delhi_complaint["id"])
        assert resolved["status"] == stored["status"] == "resolved"
        assert stored["resolverId"] == "official_1"
        assert stored["resolutionProof"]["imageUrl"] == PROOF.image_url
        entry = store.list_activity(delhi_complaint["id"])[-1]
        assert entry["type"] == "admin_resolved"
        assert entry["meta"]["distanceMeters"] < 200

        [message] = sender.outbox
        assert message["to"] == "whatsapp:+919800000001"
        assert message["template"] == "complaint_resolved"
        assert message["locale"] == "hi"
        assert "Streetlight out" in message["body"]

    def test_demo_mode_widens_limit(self, service, delhi_complaint, profile, monkeypatch):
        admin_location = GeoPoint(lat=28.6300, lng=77.2090)  # ~1.8 km away
        with pytest.raises(StateConflict):
            service.resolve(delhi_complaint["id"], PROOF, admin_location, profile("official_1"))

        monkeypatch.setattr(settings, "DEMO_MODE", True)
        resolved = service.resolve(delhi_complaint["id"], PROOF, admin_location, profile("official_1"))
        assert resolved["status"] == "resolved"

    def test_cannot_resolve_twice(self, service, delhi_complaint, profile):
        service.resolve(delhi_complaint["id"], PROOF, None, profile("official_1"))
        with pytest.raises(StateConflict):
            service.resolve(delhi_complaint["id"], PROOF, None, profile("official_1"))


class TestRejectAndReopen:
    def test_reject(self, service, make_complaint, profile, store, sender):
        complaint = make_complaint()
        service.reject(complaint["id"], "Duplicate of a private matter", profile("superadmin_1"))

        stored = store.get(complaint["id"])
        assert stored["status"] == "rejected"
        assert stored["rejectionReason"] == "Duplicate of a private matter"
        assert store.list_activity(complaint["id"])[-1]["type"] == "admin_rejected"
        assert sender.outbox[-1]["template"] == "complaint_rejected"

    def test_reject_requires_reason(self, service, make_complaint, profile):
        complaint = make_complaint()
        with pytest.raises(ValidationFailed):
            service.reject(complaint["id"], "  ", profile("superadmin_1"))

    def test_reject_requires_admin(self, service, make_complaint, profile):
        complaint = make_complaint()
        with pytest.raises(NotAuthorized):
            service.reject(complaint["id"], "spam", profile("citizen_1"))

    def test_owner_reopens_resolved(self, service, make_complaint, profile, store, clock):
        complaint = make_complaint()
        clock.advance(hours=1)
        service.resolve(complaint["id"], PROOF, None, profile("official_1"))
        clock.advance(hours=1)
        reopened = service.reopen(complaint["id"], "Still broken", profile("citizen_1"))

        stored = store.get(complaint["id"])
        assert reopened["status"] == stored["status"] == "reopened"
        assert stored["timesReopened"] == 1
        assert stored["reopenReason"] == "Still broken"

        timeline = service.get_timeline(complaint["id"])
        assert [e["type"] for e in timeline] == ["created", "admin_resolved", "citizen_reopened"]
        assert timeline[0]["timestamp"] < timeline[1]["timestamp"] < timeline[2]["timestamp"]

    def test_reopen_increments_each_time(self, service, make_complaint, profile, store):
        complaint = make_complaint()
        for _ in range(2):
            service.resolve(complaint["id"], PROOF, None, profile("official_1"))
            service.reopen(complaint["id"], None, profile("citizen_1"))
        assert store.get(complaint["id"])["timesReopened"] == 2

    def test_non_owner_cannot_reopen(self, service, make_complaint, profile):
        complaint = make_complaint()
        service.resolve(complaint["id"], PROOF, None, profile("official_1"))
        with pytest.raises(NotAuthorized):
            service.reopen(complaint["id"], "me too", profile("citizen_2"))
        with pytest.raises(NotAuthorized):
            service.reopen(complaint["id"], "admin", profile("official_1"))

    def test_reopen_requires_resolved(self, service, make_complaint, profile):
        complaint = make_complaint()
        with pytest.raises(StateConflict):
            service.reopen(complaint["id"], "why", profile("citizen_1"))


class TestReads:
    def test_get_derives_overdue(self, service, make_complaint, clock):
        complaint = make_complaint()
        assert service.get(complaint["id"])["isOverdue"] is False
        clock.advance(hours=49)
        assert service.get(complaint["id"])["isOverdue"] is True

    def test_get_unknown(self, service):
        with pytest.raises(ComplaintNotFound):
            service.get("missing")

    def test_timeline_unknown(self, service):
        with pytest.raises(ComplaintNotFound):
            service.get_timeline("missing")
