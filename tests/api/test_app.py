"""HTTP tests of the automation API."""

import pytest
from fastapi.testclient import TestClient

from src.api.main_app import app


@pytest.fixture
def client(db_path, monkeypatch):
    monkeypatch.setenv("DATABASE_DSN", f"sqlite:///{db_path}")
    monkeypatch.setenv("DATABASE_ASYNC_DSN", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("ENGINE_RULE_CACHE_TTL_SECONDS", "0")
    monkeypatch.setenv("LOG_FILE", "")
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sensor(client):
    response = client.post("/sensors", json={"sensor_id": "temp-1", "owner_id": "grower-1", "name": "Tunnel temperature"})
    assert response.status_code == 201
    return response.json()


def create_rule(client, **overrides):
    payload = {
        "owner_id": "grower-1",
        "name": "cool down",
        "condition_groups": [{"conditions": [{"sensor_id": "temp-1", "operator": "gt", "value": 30}]}],
        "actions": [{"actuator_id": "fan", "action_type": "set_value", "action_value": 70}],
    }
    payload.update(overrides)
    return client.post("/rules", json=payload)


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestRules:
    def test_create_and_fetch(self, client):
        created = create_rule(client)
        assert created.status_code == 201
        rule_id = created.json()["id"]

        fetched = client.get(f"/rules/{rule_id}").json()

        assert fetched["name"] == "cool down"
        assert fetched["state"]["current_state"] == "unknown"
        assert fetched["state"]["trigger_count"] == 0

    def test_invalid_rule_lists_errors(self, client):
        response = create_rule(
            client,
            condition_groups=[
                {"conditions": [{"sensor_id": "temp-1", "operator": "between", "value": 25, "value_max": 20}]}
            ],
        )

        assert response.status_code == 422
        assert "Maximum value must be greater than minimum value" in response.json()["detail"]["errors"]

    def test_rule_needs_trigger(self, client):
        assert create_rule(client, condition_groups=[]).status_code == 422

    def test_unknown_rule(self, client):
        assert client.get("/rules/999").status_code == 404
        assert client.patch("/rules/999", json={"name": "x"}).status_code == 404
        assert client.delete("/rules/999").status_code == 404

    def test_list_requires_owner(self, client):
        create_rule(client)

        assert client.get("/rules").status_code == 422
        assert client.get("/rules", params={"owner_id": "grower-1"}).json()["total"] == 1

    def test_delete(self, client):
        rule_id = create_rule(client).json()["id"]

        assert client.delete(f"/rules/{rule_id}").status_code == 204
        assert client.get(f"/rules/{rule_id}").status_code == 404


class TestReadings:
    def test_reading_fires_rule(self, client, sensor):
        rule_id = create_rule(client).json()["id"]

        response = client.post("/sensors/temp-1/readings", json={"value": 32})

        assert response.status_code == 201
        body = response.json()
        assert body["owner_id"] == "grower-1"
        assert body["fired"] is True
        assert body["selected_rule_id"] == rule_id
        assert [(c["actuator_id"], c["value"]) for c in body["commands"]] == [("fan", 70)]

        commands = client.get("/commands").json()
        assert [(c["actuator_id"], c["status"], c["rule_id"]) for c in commands] == [("fan", "pending", rule_id)]

        history = client.get(f"/rules/{rule_id}/executions").json()
        assert history["total"] == 1
        assert history["entries"][0]["execution_status"] == "success"
        assert client.get(f"/rules/{rule_id}").json()["state"]["trigger_count"] == 1

    def test_non_matching_reading(self, client, sensor):
        create_rule(client)

        body = client.post("/sensors/temp-1/readings", json={"value": 20}).json()

        assert body["fired"] is False
        assert body["matched_rule_ids"] == []
        assert client.get("/commands").json() == []

    def test_unregistered_sensor_is_stored_but_not_evaluated(self, client):
        create_rule(client)

        body = client.post("/sensors/unknown/readings", json={"value": 40}).json()

        assert body["owner_id"] is None
        assert body["skipped_reason"] == "sensor has no owner"
        assert len(client.get("/sensors/unknown/readings").json()) == 1

    def test_deactivated_rule_does_not_fire(self, client, sensor):
        rule_id = create_rule(client).json()["id"]

        assert client.post(f"/rules/{rule_id}/deactivate").json()["is_active"] is False
        assert client.post("/sensors/temp-1/readings", json={"value": 35}).json()["fired"] is False

        assert client.post(f"/rules/{rule_id}/activate").json()["is_active"] is True
        assert client.post("/sensors/temp-1/readings", json={"value": 35}).json()["fired"] is True

    def test_hysteresis_over_http(self, client, sensor):
        create_rule(
            client,
            condition_groups=[{"conditions": [{"sensor_id": "temp-1", "operator": "gte", "value": -50}]}],
            actions=[{"actuator_id": "heater", "action_type": "on"}],
            hysteresis={"on_threshold": 15, "off_threshold": 18, "min_state_change_interval_seconds": 60},
        )

        def post(value, at):
            return client.post("/sensors/temp-1/readings", json={"value": value, "timestamp": at}).json()

        on = post(14, "2026-10-19T12:00:00Z")
        assert on["state_transition"] == "unknown->on"
        assert on["commands"][0]["command_type"] == "on"

        early = post(19, "2026-10-19T12:00:30Z")
        assert early["fired"] is False
        assert "suppressed" in early["skipped_reason"]

        off = post(19, "2026-10-19T12:01:01Z")
        assert off["state_transition"] == "on->off"
        assert off["commands"][0]["command_type"] == "off"


class TestSensors:
    def test_register_is_upsert(self, client, sensor):
        response = client.post("/sensors", json={"sensor_id": "temp-1", "owner_id": "grower-2", "name": "Moved"})

        assert response.json()["id"] == sensor["id"]
        assert client.get("/sensors/temp-1").json()["owner_id"] == "grower-2"
        assert client.get("/sensors", params={"owner_id": "grower-1"}).json() == []

    def test_delete_sensor(self, client, sensor):
        assert client.delete("/sensors/temp-1").status_code == 204
        assert client.get("/sensors/temp-1").status_code == 404


class TestMaintenance:
    def test_cleanup_endpoint(self, client):
        response = client.post("/executions/cleanup")

        assert response.status_code == 200
        assert response.json() == {"expired_deleted": 0, "overflow_deleted": 0}
