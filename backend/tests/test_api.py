import httpx
import pytest
from fastapi.testclient import TestClient

from medalert.api.v1.routes import deps
from medalert.api.v1.routes.deps import get_db, get_dispatcher
from medalert.main import app
from medalert.services.notifications import NotificationDispatcher


@pytest.fixture
def client(session_factory, dispatcher):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_id(client):
    r = client.post(
        "/api/v1/users",
        json={"email": "Grace@Example.com", "full_name": "Grace Hopper", "phone": "+61411111111"},
    )
    assert r.status_code == 200
    return r.json()["user_id"]


def _create_medication(client, user_id, **overrides):
    body = {
        "user_id": user_id,
        "name": "Metformin",
        "dosage": "500 mg",
        "frequency": "twice_daily",
        "start_at": "2024-01-01T08:00:00Z",
        "inventory": {"current_quantity": 3, "dose_amount": 1, "refill_threshold": 1, "unit": "tablets"},
    }
    body.update(overrides)
    return client.post("/api/v1/medications", json=body)


def test_health(client):
    assert client.get("/api/v1/health/health").json() == {"status": "ok"}


def test_user_registration_and_duplicate_email(client, user_id):
    r = client.get(f"/api/v1/users/{user_id}")
    assert r.json()["email"] == "grace@example.com"

    dup = client.post("/api/v1/users", json={"email": "grace@example.com", "full_name": "Someone Else"})
    assert dup.status_code == 409


def test_preferences_and_devices(client, user_id):
    r = client.patch(f"/api/v1/users/{user_id}/preferences", json={"channels": ["sms", "device"], "confirm_taken": False})
    assert r.status_code == 200
    assert r.json()["notification_preferences"] == {"channels": ["sms", "device"], "confirm_taken": False}

    bad = client.patch(f"/api/v1/users/{user_id}/preferences", json={"channels": ["pager"]})
    assert bad.status_code == 400

    device = client.post(f"/api/v1/users/{user_id}/devices", json={"device_id": "esp32-1", "device_name": "Kitchen"})
    assert device.status_code == 200
    assert [d["device_id"] for d in client.get(f"/api/v1/users/{user_id}/devices").json()] == ["esp32-1"]

    assert client.delete(f"/api/v1/users/{user_id}/devices/esp32-1").status_code == 200
    assert client.get(f"/api/v1/users/{user_id}/devices").json()[0]["is_active"] is False


def test_device_endpoint_must_be_an_http_url(client, user_id):
    bad = client.post(
        f"/api/v1/users/{user_id}/devices", json={"device_id": "esp32-2", "device_endpoint": "http://esp32.local:abc"}
    )
    assert bad.status_code == 422
    assert client.get(f"/api/v1/users/{user_id}/devices").json() == []

    ok = client.post(
        f"/api/v1/users/{user_id}/devices", json={"device_id": "esp32-2", "device_endpoint": "http://pillbox.local"}
    )
    assert ok.json()["device_endpoint"] == "http://pillbox.local"


def test_create_medication_builds_schedule(client, user_id):
    r = _create_medication(client, user_id)
    assert r.status_code == 200
    med = r.json()
    assert med["frequency"] == "twice_daily"
    assert len(med["slots"]) == 1
    assert med["next_reminder_at"] == "2024-01-01T08:00:00"
    assert med["streak"]["current_streak"] == 0
    assert med["inventory"]["current_quantity"] == 3

    listed = client.get("/api/v1/medications", params={"user_id": user_id}).json()
    assert [m["id"] for m in listed] == [med["id"]]


def test_create_specific_times_medication(client, user_id):
    r = _create_medication(
        client, user_id, frequency="specific_times", times=["18:00", "09:00", "13:00"], start_at="2024-01-01T10:00:00"
    )
    med = r.json()
    assert [s["scheduled_time"] for s in med["slots"]] == ["09:00", "13:00", "18:00"]
    assert med["next_reminder_at"] == "2024-01-01T13:00:00"


def test_unknown_frequency_is_rejected_with_reason(client, user_id):
    r = _create_medication(client, user_id, frequency="fortnightly")
    assert r.status_code == 422
    assert r.json()["error"] == "unknown_frequency"
    assert "fortnightly" in r.json()["detail"]
    assert client.get("/api/v1/medications", params={"user_id": user_id}).json() == []


def test_unknown_user(client):
    r = _create_medication(client, "00000000-0000-0000-0000-000000000000")
    assert r.status_code == 404
    assert r.json()["error"] == "user_not_found"


def test_dose_flow(client, user_id, dispatcher):
    med = _create_medication(client, user_id).json()
    slot_id = med["slots"][0]["slot_id"]

    taken = client.post(f"/api/v1/doses/{slot_id}/take", json={"taken_at": "2024-01-01T08:00:00Z"})
    assert taken.status_code == 200
    assert taken.json()["next_reminder"] == "2024-01-01T20:00:00"
    assert taken.json()["remaining_quantity"] == 2
    assert taken.json()["event"]["action"] == "taken"

    again = client.post(f"/api/v1/doses/{slot_id}/take")
    assert again.status_code == 409
    assert again.json()["error"] == "invalid_transition"

    assert client.post(f"/api/v1/doses/{slot_id}/reset").json()["status"] == "upcoming"
    skipped = client.post(f"/api/v1/doses/{slot_id}/skip", json={"reason": "Nauseous"})
    assert skipped.json()["next_reminder"] == "2024-01-02T08:00:00"

    delayed = client.post(f"/api/v1/doses/{slot_id}/delay", json={"hours": 2})
    assert delayed.status_code == 200

    events = client.get(f"/api/v1/medications/{med['id']}/events").json()
    assert sorted(e["action"] for e in events) == ["delayed", "skipped", "taken"]

    streak = client.get(f"/api/v1/medications/{med['id']}/streak", params={"verify": True}).json()
    assert streak["current_streak"] == 0
    assert streak["longest_streak"] == 1
    assert streak["consistent"] is True

    adherence = client.get(f"/api/v1/medications/{med['id']}/adherence", params={"days": 7}).json()
    assert (adherence["taken"], adherence["skipped"], adherence["delayed"]) == (1, 1, 1)
    assert adherence["adherence_rate"] == 0.5

    by_user = client.get("/api/v1/streaks", params={"user_id": user_id}).json()
    assert by_user[0]["medication_name"] == "Metformin"

    assert ("dose", "taken") in dispatcher.kinds()


def test_take_without_body_and_reset(client, user_id):
    med = _create_medication(client, user_id, frequency="daily").json()
    slot_id = med["slots"][0]["slot_id"]

    assert client.post(f"/api/v1/doses/{slot_id}/take").status_code == 200
    reset = client.post(f"/api/v1/doses/{slot_id}/reset")
    assert reset.json()["status"] == "upcoming"


def test_miss_records_event(client, user_id):
    med = _create_medication(client, user_id).json()
    slot_id = med["slots"][0]["slot_id"]

    r = client.post(f"/api/v1/doses/{slot_id}/miss")
    assert r.json()["event"]["action"] == "missed"
    detail = client.get(f"/api/v1/medications/{med['id']}").json()
    assert detail["slots"][0]["status"] == "missed"


def test_transition_errors_carry_specific_reasons(client, user_id):
    med = _create_medication(client, user_id).json()
    slot_id = med["slots"][0]["slot_id"]

    r = client.post(f"/api/v1/doses/{slot_id}/delay", json={"hours": 0})
    assert r.status_code == 422
    assert r.json()["error"] == "invalid_delay"

    r = client.post(f"/api/v1/doses/{slot_id}/take", json={"quantity": -1})
    assert r.json()["error"] == "invalid_quantity"

    r = client.post("/api/v1/doses/00000000-0000-0000-0000-000000000000/take")
    assert r.status_code == 404
    assert r.json()["error"] == "slot_not_found"

    assert client.post("/api/v1/doses/not-a-uuid/take").status_code == 400
    assert client.get(f"/api/v1/medications/{med['id']}/events").json() == []


def test_inventory_low_supply_and_refill(client, user_id, dispatcher):
    med = _create_medication(client, user_id, frequency="daily").json()
    slot_id = med["slots"][0]["slot_id"]

    client.post(f"/api/v1/doses/{slot_id}/take", json={"quantity": 2})
    inventory = client.get(f"/api/v1/medications/{med['id']}/inventory").json()
    assert inventory["current_quantity"] == 1
    assert inventory["status"] == "below_threshold"
    assert ("low_supply", "taken") in dispatcher.kinds()

    refill = client.post(f"/api/v1/medications/{med['id']}/refill", json={"quantity": 30, "refill_source": "pharmacy"})
    assert refill.status_code == 200
    assert refill.json()["new_quantity"] == 31
    assert refill.json()["threshold_restored"] is True
    assert refill.json()["inventory"]["status"] is None

    history = client.get(f"/api/v1/medications/{med['id']}/refills").json()
    assert [h["quantity"] for h in history] == [30]

    bad = client.post(f"/api/v1/medications/{med['id']}/refill", json={"quantity": 0})
    assert bad.json()["error"] == "invalid_quantity"


def test_medication_without_inventory(client, user_id):
    med = _create_medication(client, user_id, inventory=None).json()
    assert med["inventory"] is None
    assert client.get(f"/api/v1/medications/{med['id']}/inventory").status_code == 404


def test_delete_medication(client, user_id):
    med = _create_medication(client, user_id).json()
    client.post(f"/api/v1/doses/{med['slots'][0]['slot_id']}/take")

    assert client.delete(f"/api/v1/medications/{med['id']}").status_code == 200
    r = client.get(f"/api/v1/medications/{med['id']}")
    assert r.status_code == 404
    assert r.json()["error"] == "medication_not_found"


def test_sweep_endpoint(client, user_id):
    med = _create_medication(client, user_id, frequency="daily").json()

    r = client.post("/api/v1/sweep/run", json={"now": "2024-01-01T10:00:00"})

    assert r.status_code == 200
    assert r.json()["missed"] == [med["slots"][0]["slot_id"]]
    detail = client.get(f"/api/v1/medications/{med['id']}").json()
    assert detail["next_reminder_at"] == "2024-01-02T08:00:00"


def test_manual_notify_reports_per_channel_results(client, user_id, session_factory):
    seen = []

    def gateway(request):
        seen.append(request.url.path)
        if request.url.path == "/sms":
            return httpx.Response(500)
        return httpx.Response(200, json={"ack": True})

    real = NotificationDispatcher(
        session_factory, gateway_url="http://gateway", client=httpx.Client(transport=httpx.MockTransport(gateway))
    )
    app.dependency_overrides[get_dispatcher] = lambda: real
    try:
        med = _create_medication(client, user_id).json()
        r = client.post(f"/api/v1/medications/{med['id']}/notify", json={"channels": ["email", "sms"]})
    finally:
        real.shutdown()

    assert r.status_code == 200
    assert {(x["channel"], x["success"]) for x in r.json()["results"]} == {("email", True), ("sms", False)}
    assert seen == ["/email", "/sms"]

    history = client.get(f"/api/v1/medications/{med['id']}/notifications").json()
    assert {(h["channel"], h["success"], h["kind"]) for h in history} == {("email", True, "reminder"), ("sms", False, "reminder")}
    failed = client.get(f"/api/v1/medications/{med['id']}/notifications", params={"only_failed": True}).json()
    assert [h["channel"] for h in failed] == ["sms"]


def test_app_shutdown_closes_the_dispatcher(monkeypatch):
    closed = []

    class OpenDispatcher:
        def shutdown(self, wait=True):
            closed.append(wait)

    monkeypatch.setattr(deps, "_dispatcher", OpenDispatcher())
    with TestClient(app):
        assert closed == []

    assert closed == [False]
    assert deps._dispatcher is None
