import numpy as np
import pytest
from fastapi.testclient import TestClient

import cropguard.api as api
from cropguard.agent import CropGuardAgent
from cropguard.config import Settings
from cropguard.storage import InMemoryStore
from conftest import FailingWeatherClient, FakeClassifier, encode_png


REPLY = {
    "isPlant": True,
    "isHealthy": False,
    "plantType": "Potato",
    "detectedDisease": "Late blight",
    "confidence": 88,
    "severity": "moderate",
    "treatment": {"immediate": "Apply fungicide", "prevention": "Rotate crops", "followUp": "Rescan"},
}


@pytest.fixture
def client(monkeypatch):
    agent = CropGuardAgent(
        settings=Settings(block_invalid_images=False),
        store=InMemoryStore(),
        classifier=FakeClassifier(REPLY),
        weather_client=FailingWeatherClient(),
    )
    monkeypatch.setattr(api, "agent", agent)
    return TestClient(api.app)


@pytest.fixture
def png():
    return encode_png(np.full((64, 64, 3), 90, dtype=np.uint8))


def analyze(client, png, **form):
    data = {"user_id": "u1", "location": "Durban", **form}
    return client.post("/analyze", files={"image": ("leaf.png", png, "image/png")}, data=data)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_quality_endpoint(client, png):
    body = client.post("/quality", files={"image": ("leaf.png", png, "image/png")}).json()
    assert body["is_valid"] is False
    assert 0 <= body["score"] <= 100
    assert body["issues"]


def test_analyze_records_scan_and_reminders(client, png):
    response = analyze(client, png, field_section="east")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "analyzed"
    assert body["scan"]["detected_disease"] == "Late blight"
    assert body["scan"]["severity"] == "medium"
    assert body["history"]["crop_id"] == "potato_east"
    assert [r["type"] for r in body["reminders"]] == ["treatment", "rescan"]
    assert body["weather"]["source"] == "default"

    history = client.get("/users/u1/history").json()
    assert [h["crop_id"] for h in history] == ["potato_east"]

    crop = client.get("/users/u1/history/Potato", params={"field_section": "east"})
    assert crop.status_code == 200
    assert crop.json()["total_scans"] == 1

    stats = client.get("/users/u1/history/stats").json()
    assert stats["total_scans"] == 1
    assert stats["total_diseased"] == 1

    counts = client.get("/users/u1/reminders/counts").json()
    assert counts["total"] == 2
    assert counts["high"] == 1


def test_analyze_rejects_non_image(client):
    response = client.post(
        "/analyze",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        data={"user_id": "u1"},
    )
    assert response.status_code == 400


def test_unknown_crop_history_is_404(client):
    assert client.get("/users/u1/history/Tomato").status_code == 404


def test_history_cleanup_and_wipe(client, png):
    analyze(client, png)
    analyze(client, png)

    assert client.post("/users/u1/history/cleanup", params={"keep": 1}).json() == {"dropped": 1}
    assert client.delete("/users/u1/history").json() == {"status": "ok"}
    assert client.get("/users/u1/history").json() == []


def test_reminder_lifecycle(client):
    created = client.post(
        "/users/u1/reminders/supply", json={"item": "Fertilizer", "days_remaining": 2}
    )
    assert created.status_code == 201
    reminder = created.json()
    assert reminder["priority"] == "high"

    rid = reminder["id"]
    assert client.post(f"/users/u1/reminders/{rid}/snooze", params={"hours": 4}).status_code == 200
    assert client.post(f"/users/u1/reminders/{rid}/complete").status_code == 200
    assert client.get("/users/u1/reminders").json() == []
    assert len(client.get("/users/u1/reminders", params={"view": "all"}).json()) == 1
    assert client.delete(f"/users/u1/reminders/{rid}").status_code == 200
    assert client.get("/users/u1/reminders", params={"view": "all"}).json() == []


def test_unknown_reminder_is_404(client):
    assert client.post("/users/u1/reminders/nope/complete").status_code == 404
    assert client.post("/users/u1/reminders/nope/snooze", params={"hours": 1}).status_code == 404
    assert client.delete("/users/u1/reminders/nope").status_code == 404


def test_generic_reminder_validation(client):
    ok = client.post(
        "/users/u1/reminders",
        json={"type": "harvest", "priority": "low", "title": "Harvest maize", "scheduled_for": "2026-12-01T08:00:00Z"},
    )
    bad = client.post(
        "/users/u1/reminders",
        json={"type": "party", "title": "?", "scheduled_for": "2026-12-01T08:00:00Z"},
    )

    assert ok.status_code == 201
    assert ok.json()["type"] == "harvest"
    assert bad.status_code == 400


def test_seasonal_reminder(client):
    r = client.post(
        "/users/u1/reminders/seasonal",
        json={"title": "Plant beans", "message": "Rains are here", "scheduled_for": "2026-11-15T06:00:00"},
    )
    assert r.status_code == 201
    assert r.json()["action_required"] is False


def test_unknown_reminder_view_is_400(client):
    assert client.get("/users/u1/reminders", params={"view": "someday"}).status_code == 400


def test_weather_reminders_with_default_weather(client):
    body = client.post("/users/u1/reminders/weather", json={"location": "Durban", "crops": ["Corn"]}).json()
    assert body["weather"]["temperature"] == 22.0
    assert body["reminders"] == []


def test_weather_endpoint_falls_back(client):
    body = client.get("/weather", params={"location": "Durban"}).json()
    assert body["description"] == "Weather data unavailable"


def test_reminder_cleanup(client):
    assert client.post("/users/u1/reminders/cleanup").json() == {"removed": 0}


def test_missing_agent_is_500(monkeypatch):
    monkeypatch.setattr(api, "agent", None)
    assert TestClient(api.app).get("/users/u1/history").status_code == 500
