"""Tests for the FastAPI API endpoints."""
import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient


# Patch anthropic before importing api
with patch('anthropic.Anthropic'):
    import config
    from api import create_app, validate_day, ValidationError
    from engine import GameEngine
    from models import Scenario
    from scenario_service import ScenarioProvider, clear_activity_log, log_activity


class LegitProvider(ScenarioProvider):
    """Always serves a legitimate customer."""

    def generate_scenario(self):
        return Scenario(
            is_scam=False,
            customer_name="Priya Raman",
            initial_message="I'd like to update my phone number.",
            transaction_type="Update Contact Info",
            scam_rationale="Verified through the registered email.",
        )

    def chat_reply(self, scenario, history, message):
        return "Sure, my date of birth is on file."


@pytest.fixture(autouse=True)
def five_cases_per_day(monkeypatch):
    monkeypatch.setattr(config, "CASES_PER_DAY", 5)


@pytest.fixture
def client():
    """Create a test client around a fresh engine."""
    engine = GameEngine(provider=LegitProvider(), event_interval=1000.0, cycle_interval=1000.0)
    with TestClient(create_app(engine)) as test_client:
        yield test_client


def start_round(client, rate=4.5):
    client.post("/game/onboarding/complete")
    return client.post("/game/rate", json={"rate": rate})


class TestValidateDay:

    def test_valid_day(self):
        assert validate_day(1) == 1

    def test_invalid_day(self):
        with pytest.raises(ValidationError):
            validate_day(0)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestStatusEndpoint:

    def test_initial_status(self, client):
        response = client.get("/game/status")
        assert response.status_code == 200
        data = response.json()
        assert data["session"]["phase"] == "onboarding"
        assert data["economy"]["capital"] == config.STARTING_CAPITAL
        assert data["scenario"] is None


class TestRateEndpoints:
    """Tests for setting and adjusting the interest rate."""

    def test_adjust_before_onboarding_conflicts(self, client):
        response = client.put("/game/rate", json={"delta": 0.5})
        assert response.status_code == 409
        assert response.json()["status"] == "error"

    def test_adjust_rate(self, client):
        client.post("/game/onboarding/complete")
        response = client.put("/game/rate", json={"delta": -0.5})
        assert response.status_code == 200
        assert response.json()["interest_rate"] == 4.0

    def test_adjust_rate_delta_too_large(self, client):
        client.post("/game/onboarding/complete")
        response = client.put("/game/rate", json={"delta": 50})
        assert response.status_code == 422

    def test_set_rate_starts_round(self, client):
        response = start_round(client, rate=5.2)
        assert response.status_code == 200
        assert response.json()["rate_locked"] is True

        status = client.get("/game/status").json()
        assert status["session"]["phase"] == "in_round"
        assert status["scenario"]["customer_name"] == "Priya Raman"

    def test_set_rate_twice_conflicts(self, client):
        start_round(client)
        response = client.post("/game/rate", json={"rate": 3.0})
        assert response.status_code == 409


class TestDecisionEndpoint:
    """Tests for submitting decisions."""

    def test_decision_without_round(self, client):
        response = client.post("/game/decision", json={"approved": True})
        assert response.status_code == 409

    def test_correct_decision(self, client):
        start_round(client)
        response = client.post("/game/decision", json={"approved": True})
        assert response.status_code == 200
        data = response.json()
        assert data["is_correct"] is True
        assert data["phase"] == "in_round"

    def test_invalid_payload(self, client):
        start_round(client)
        response = client.post("/game/decision", json={})
        assert response.status_code == 422

    def test_full_day_and_advance(self, client):
        start_round(client)
        for _ in range(5):
            response = client.post("/game/decision", json={"approved": True})
        assert response.json()["phase"] == "end_of_day"

        reports = client.get("/game/reports").json()["reports"]
        assert len(reports) == 1
        assert reports[0]["stats"]["correct"] == 5

        newsletter = client.get("/game/newsletter/1")
        assert newsletter.status_code == 200
        assert "DAY 1" in newsletter.json()["content"]

        response = client.post("/game/day/advance")
        assert response.status_code == 200
        assert response.json()["day"] == 2


class TestReadEndpoints:

    def test_summary_not_available_mid_game(self, client):
        response = client.get("/game/summary")
        assert response.status_code == 404

    def test_newsletter_unknown_day(self, client):
        assert client.get("/game/newsletter/3").status_code == 404
        assert client.get("/game/newsletter/0").status_code == 422

    def test_cases_listed(self, client):
        start_round(client)
        client.post("/game/decision", json={"approved": False})
        cases = client.get("/game/cases").json()["cases"]
        assert len(cases) == 1
        assert cases[0]["is_correct"] is False


class TestOtherIntents:

    def test_mitigation_without_leak(self, client):
        start_round(client)
        response = client.post("/game/mitigation")
        assert response.status_code == 409

    def test_pause_and_resume(self, client):
        start_round(client)
        assert client.post("/game/pause").status_code == 200
        assert client.post("/game/pause").status_code == 409
        assert client.post("/game/resume").json()["paused"] is False

    def test_chat(self, client):
        start_round(client)
        response = client.post("/game/chat", json={"message": "Can you confirm your date of birth?"})
        assert response.status_code == 200
        assert response.json()["reply"] == "Sure, my date of birth is on file."

    def test_chat_empty_message(self, client):
        start_round(client)
        response = client.post("/game/chat", json={"message": "   "})
        assert response.status_code == 422

    def test_dismiss_unknown_alert(self, client):
        response = client.delete("/game/alerts/999")
        assert response.status_code == 404

    def test_reset(self, client):
        start_round(client)
        response = client.post("/game/reset")
        assert response.status_code == 200
        assert response.json()["phase"] == "onboarding"


class TestDebugActivity:
    """Tests for the debug console activity log endpoints."""

    def test_get_and_clear_activity(self, client):
        clear_activity_log()
        log_activity("scenario", "generate", "Priya Raman", duration_ms=120)
        log_activity("chat", "reply", "hello -> hi", success=False, error="timeout")

        response = client.get("/debug/activity")
        assert response.status_code == 200
        activities = response.json()["activities"]
        assert [a["type"] for a in activities] == ["chat", "scenario"]

        filtered = client.get("/debug/activity", params={"activity_type": "scenario"}).json()["activities"]
        assert len(filtered) == 1
        assert filtered[0]["details"] == "Priya Raman"

        assert client.delete("/debug/activity").json() == {"status": "success"}
        assert client.get("/debug/activity").json()["activities"] == []
