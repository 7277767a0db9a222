"""
HTTP surface tests against an in-memory record store.

Run: python -m pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketDisconnect

import notifications
from api_routes import get_store
from main import app
from models import EmailSettings, HourSlot, ProductionRecord
from notifications import broadcaster
from utils import utc_now

from conftest import DEPARTMENT_ID, MACHINE_ID, MOLD_ID, OPERATOR_ID, OTHER_DEPARTMENT_ID, OTHER_MACHINE_ID

MISSING_MACHINE_ID = "64b0c0ffee0000000000a0ff"


def identity(role="operator", department=DEPARTMENT_ID, name="ali"):
    return {
        "X-User-Id": OPERATOR_ID,
        "X-User-Name": name,
        "X-User-Role": role,
        "X-Department-Id": department,
    }


@pytest.fixture
def events(monkeypatch):
    sent = []

    async def record(event, payload, department_id=None):
        sent.append((event, payload))

    monkeypatch.setattr(broadcaster, "broadcast", record)
    return sent


@pytest.fixture
def client(store, events):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def today():
    return utc_now().date().isoformat()


class TestAccessControl:

    def test_missing_identity_is_unauthorized(self, client):
        assert client.get(f"/api/analytics/machine-stats/{MACHINE_ID}").status_code == 401

    def test_unknown_machine_is_not_found(self, client):
        response = client.get(f"/api/analytics/production-timeline/{MISSING_MACHINE_ID}", headers=identity())
        assert response.status_code == 404
        assert response.json()["detail"] == "Machine not found"

    def test_operator_of_other_department_is_denied(self, client):
        response = client.get(f"/api/analytics/machine-stats/{OTHER_MACHINE_ID}", headers=identity())
        assert response.status_code == 403

    def test_admin_sees_every_department(self, client):
        response = client.get(
            f"/api/analytics/machine-stats/{OTHER_MACHINE_ID}",
            headers=identity(role="admin", department=OTHER_DEPARTMENT_ID + "x")
        )
        assert response.status_code == 200


class TestTimelineEndpoint:

    def test_timeline_is_dense_for_every_day(self, client):
        response = client.get(f"/api/analytics/production-timeline/{MACHINE_ID}", headers=identity())
        assert response.status_code == 200
        timeline = response.json()
        assert len(timeline) == 8
        assert all(len(day["hours"]) == 24 for day in timeline)
        assert timeline[-1]["date"] == today()

    def test_timeline_shows_stored_hours(self, client, store):
        record = ProductionRecord.for_day(MACHINE_ID, today())
        record.hourly_data.append(HourSlot(hour=0, units_produced=12, running_minutes=60, operator_id=OPERATOR_ID))
        store.put_record(record)

        timeline = client.get(f"/api/analytics/production-timeline/{MACHINE_ID}", headers=identity()).json()
        hour = timeline[-1]["hours"][0]
        assert hour["unitsProduced"] == 12
        assert hour["status"] == "running"
        assert hour["operatorName"] == "ali"


class TestStatsEndpoint:

    def test_stats_include_machine_status(self, client, store):
        record = ProductionRecord.for_day(MACHINE_ID, today())
        record.units_produced = 100
        record.hourly_data.append(HourSlot(hour=0, running_minutes=60, mold_id=MOLD_ID))
        store.put_record(record)

        stats = client.get(f"/api/analytics/machine-stats/{MACHINE_ID}?period=7d", headers=identity()).json()
        assert stats["currentStatus"] == "running"
        assert stats["totalUnitsProduced"] == 100
        assert stats["availability"] == 100

    def test_unknown_period_returns_empty_stats(self, client, store):
        record = ProductionRecord.for_day(MACHINE_ID, today())
        record.units_produced = 100
        store.put_record(record)

        response = client.get(f"/api/analytics/machine-stats/{MACHINE_ID}?period=forever", headers=identity())
        assert response.status_code == 200
        assert response.json()["totalUnitsProduced"] == 0


class TestStoppageEndpoint:

    def test_stoppage_is_saved_and_broadcast(self, client, store, events):
        response = client.post("/api/analytics/stoppage", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 8, "date": "2024-01-01",
            "reason": "planned", "description": "Cleaning", "duration": 20,
        })

        assert response.status_code == 201
        assert response.json() == {"message": "Stoppage recorded successfully"}
        slot = store.stored(MACHINE_ID, "2024-01-01").get_slot(8)
        assert slot.stoppage_minutes == 20
        assert slot.status == "stoppage"
        assert events[0][0] == "stoppage-added"
        assert events[0][1]["stoppage"]["reason"] == "planned"
        assert events[0][1]["stoppage"]["_id"] == slot.stoppages[0].id
        assert events[0][1]["stoppageMinutes"] == 20

    def test_malformed_date_is_bad_request(self, client, store, events):
        response = client.post("/api/analytics/stoppage", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 8, "date": "2024-13-45",
            "reason": "planned", "duration": 5,
        })
        assert response.status_code == 400
        assert "Invalid date" in response.json()["detail"]
        assert store.saves == 0
        assert events == []

    @pytest.mark.parametrize("sap", ["", "ABC123"])
    def test_bad_sap_number_rejected_without_write(self, client, store, events, sap):
        response = client.post("/api/analytics/stoppage", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 8, "date": "2024-01-01",
            "reason": "breakdown", "duration": 20, "sapNotificationNumber": sap,
        })
        assert response.status_code == 400
        assert "SAP notification number" in response.json()["detail"]
        assert store.saves == 0
        assert events == []

    def test_unknown_machine_is_not_written(self, client, store):
        response = client.post("/api/analytics/stoppage", headers=identity(), json={
            "machineId": MISSING_MACHINE_ID, "hour": 8, "date": "2024-01-01",
            "reason": "planned", "duration": 5,
        })
        assert response.status_code == 404
        assert store.saves == 0

    def test_breakdown_mail_failure_does_not_fail_write(self, client, store, monkeypatch):
        store.app_config.email = EmailSettings("alerts@plant.test", "secret", ["maintenance@plant.test"])

        def broken_smtp(*args, **kwargs):
            raise OSError("mail server down")

        monkeypatch.setattr(notifications.smtplib, "SMTP", broken_smtp)

        response = client.post("/api/analytics/stoppage", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 8, "date": "2024-01-01",
            "reason": "breakdown", "duration": 45, "sapNotificationNumber": "4000123",
        })
        assert response.status_code == 201
        stoppage = store.stored(MACHINE_ID, "2024-01-01").get_slot(8).stoppages[0]
        assert stoppage.sap_notification_number == "4000123"


class TestAssignmentEndpoint:

    def test_assignment_by_username_over_shift(self, client, store, events):
        response = client.post("/api/analytics/production-assignment", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 23, "date": "2024-01-01",
            "operatorId": "ali", "moldId": MOLD_ID, "defectiveUnits": 2, "applyToShift": True,
        })

        assert response.status_code == 200
        assert response.json()["hours"] == [22, 23]
        record = store.stored(MACHINE_ID, "2024-01-01")
        assert record.get_slot(22).operator_id == OPERATOR_ID
        assert record.get_slot(23).defective_units == 2
        assert record.defective_units == 2
        event, payload = events[0]
        assert event == "production-assignment-updated"
        assert payload["hours"] == [22, 23]
        assert payload["originalHour"] == 23
        assert [slot["operatorId"] for slot in payload["slots"]] == [OPERATOR_ID, OPERATOR_ID]

    def test_unknown_operator(self, client, store):
        response = client.post("/api/analytics/production-assignment", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 9, "date": "2024-01-01", "operatorId": "ghost",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid operator specified"
        assert store.saves == 0

    def test_malformed_mold(self, client):
        response = client.post("/api/analytics/production-assignment", headers=identity(), json={
            "machineId": MACHINE_ID, "hour": 9, "date": "2024-01-01", "moldId": "not-a-mold",
        })
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid mold ID specified"


def test_live_events_require_identity(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/events"):
            pass

def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
