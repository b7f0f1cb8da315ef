# Overview: Pytest coverage for hall partition isolation.

"""
Hall Isolation Tests

Each hall is its own partition of collections. These tests verify that:
1. Staff only ever see their own hall's data
2. X-Hall-Id is honored for ADMIN and ignored for everyone else
3. The global partition (staff registry) is shared by all halls
"""

from cuemaster.services import session_service
from cuemaster.services.hall_data import hall_data

from conftest import OTHER_HALL_ID, headers_for


class TestHallPartitions:

    def test_sessions_are_per_hall(self, app, hall):
        other = hall_data(OTHER_HALL_ID)
        session_service.start_session(hall, player_name="Ali")

        assert [s.player_name for s in hall.load_sessions()] == ["Ali"]
        assert other.load_sessions() == []

    def test_same_name_allowed_in_two_halls(self, app, hall):
        other = hall_data(OTHER_HALL_ID)
        session_service.start_session(hall, player_name="Ali")
        session_service.start_session(other, player_name="Ali")
        assert len(other.load_sessions()) == 1

    def test_registry_is_shared(self, app, hall):
        assert {u.id for u in hall.load_users()} == {u.id for u in hall_data(OTHER_HALL_ID).load_users()}


class TestHallResolution:

    def test_staff_see_own_hall(self, client, hall):
        session_service.start_session(hall, player_name="Ali")

        resp = client.get("/api/sessions", headers=headers_for("u-other"))
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 0

        resp = client.get("/api/sessions", headers=headers_for("u-staff"))
        assert resp.get_json()["count"] == 1

    def test_staff_cannot_switch_hall(self, client, hall):
        session_service.start_session(hall, player_name="Ali")
        resp = client.get("/api/sessions", headers=headers_for("u-other", hall_id="HALL-1"))
        assert resp.get_json()["count"] == 0

    def test_admin_can_switch_hall(self, client, hall):
        session_service.start_session(hall_data(OTHER_HALL_ID), player_name="Omar")
        resp = client.get("/api/sessions", headers=headers_for("u-admin", hall_id=OTHER_HALL_ID))
        assert resp.status_code == 200
        assert [s["playerName"] for s in resp.get_json()["sessions"]] == ["Omar"]

    def test_checkout_lands_in_callers_hall(self, client, hall):
        headers = headers_for("u-other")
        session_id = client.post("/api/sessions", json={"playerName": "Omar"}, headers=headers).get_json()["session"]["id"]
        client.post(f"/api/sessions/{session_id}/games/request", json={}, headers=headers)
        client.post(f"/api/sessions/{session_id}/games/commit", json={"tableNumber": 1}, headers=headers)
        resp = client.post(f"/api/sessions/{session_id}/checkout", json={"paymentMethod": "CASH"}, headers=headers)
        assert resp.status_code == 201

        assert hall.load_transactions() == []
        assert len(hall_data(OTHER_HALL_ID).load_transactions()) == 1
