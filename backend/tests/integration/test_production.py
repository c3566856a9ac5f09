"""
Integration Tests — Machines and Production Endpoints

Tests:
- POST/GET/PATCH /api/v1/machines
- POST /api/v1/production/deltas (ledger writes, validation payload)
- POST /api/v1/production/events and machine start/stop
"""
from fastapi.testclient import TestClient


class TestMachines:

    def test_create_machine(self, client: TestClient):
        resp = client.post("/api/v1/machines", json={
            "name": "Blow Moulder 3",
            "code": "BM-03",
            "production_speed": 2.5,
            "target_production": 1500,
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["code"] == "BM-03"
        assert data["status"] == "STOPPED"
        assert data["is_active"] is True

    def test_duplicate_code_is_rejected(self, client: TestClient, machine):
        resp = client.post("/api/v1/machines", json={"name": "Copy", "code": machine.code})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"

    def test_list_and_filter(self, client: TestClient, make_machine):
        make_machine()
        make_machine(is_active=False)
        resp = client.get("/api/v1/machines", params={"is_active": True})
        assert resp.status_code == 200
        assert len(resp.json()) == 1

    def test_update_machine(self, client: TestClient, machine):
        resp = client.patch(f"/api/v1/machines/{machine.id}", json={"target_production": 720})
        assert resp.status_code == 200
        assert resp.json()["target_production"] == 720

    def test_unknown_machine_returns_404(self, client: TestClient):
        resp = client.get("/api/v1/machines/9999")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"


class TestProductionDeltas:

    def test_delta_creates_shift_record(self, client: TestClient, machine):
        resp = client.post("/api/v1/production/deltas", json={
            "machine_id": machine.id,
            "operator_id": 10,
            "units": 40,
            "rejected_units": 2,
            "run_minutes": 30,
            "downtime_minutes": 5,
        })
        assert resp.status_code == 201
        data = resp.json()
        assert data["shift_type"] == "DAY"
        assert data["shift_date"] == "2026-10-14"
        assert data["total_production"] == 40
        assert data["rejected_production"] == 2
        assert data["efficiency"] == 85.71

    def test_deltas_accumulate(self, client: TestClient, machine):
        for units in (10, 15):
            client.post("/api/v1/production/deltas", json={"machine_id": machine.id, "operator_id": 10, "units": units})
        resp = client.get("/api/v1/shifts/current", params={"machine_id": machine.id, "operator_id": 10})
        assert resp.status_code == 200
        assert resp.json()["total_production"] == 25

    def test_delta_log_reads(self, client: TestClient, machine, clock):
        first = client.post("/api/v1/production/deltas", json={"machine_id": machine.id, "operator_id": 10, "units": 4})
        clock.advance(minutes=10)
        client.post("/api/v1/production/deltas", json={"machine_id": machine.id, "operator_id": 10, "units": 6})

        since = client.get("/api/v1/production/deltas", params={
            "machine_id": machine.id, "since": "2026-10-14T09:00:00",
        })
        assert since.status_code == 200
        assert [d["units"] for d in since.json()] == [6]

        per_shift = client.get(f"/api/v1/shifts/{first.json()['id']}/deltas")
        assert [d["units"] for d in per_shift.json()] == [4, 6]

    def test_negative_units_are_rejected(self, client: TestClient, machine):
        resp = client.post("/api/v1/production/deltas", json={"machine_id": machine.id, "operator_id": 10, "units": -1})
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["field"] == "units"

    def test_rejected_above_units_is_rejected(self, client: TestClient, machine):
        resp = client.post("/api/v1/production/deltas", json={
            "machine_id": machine.id,
            "operator_id": 10,
            "units": 3,
            "rejected_units": 4,
        })
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "rejected_units"


class TestProductionFlow:

    def test_start_then_stop(self, client: TestClient, machine):
        resp = client.post(f"/api/v1/production/machines/{machine.id}/start", json={"operator_id": 10})
        assert resp.status_code == 200
        data = resp.json()
        assert data["machine_status"] == "RUNNING"
        assert data["ledger_synced"] is True
        assert data["shift"]["operator_id"] == 10

        resp = client.post(f"/api/v1/production/machines/{machine.id}/stop", json={"operator_id": 10})
        assert resp.status_code == 200
        assert resp.json()["machine_status"] == "STOPPED"

    def test_stop_when_not_running_conflicts(self, client: TestClient, machine):
        resp = client.post(f"/api/v1/production/machines/{machine.id}/stop", json={"operator_id": 10})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    def test_event_raises_alert_and_blocks_start(self, client: TestClient, machine, make_config, clock):
        make_config(machine.id, products_per_test=30, block_production=True)
        clock.advance(minutes=1)

        resp = client.post("/api/v1/production/events", json={"machine_id": machine.id, "operator_id": 10, "units": 45})
        assert resp.status_code == 200
        data = resp.json()
        assert data["quality_gate"]["status"] == "PENDING"
        assert data["quality_gate"]["blocking"] is True
        assert len(data["alerts"]) == 1
        assert data["alerts"][0]["severity"] == "HIGH"

        resp = client.post(f"/api/v1/production/machines/{machine.id}/start", json={"operator_id": 10})
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "PRODUCTION_BLOCKED"

    def test_resting_team_is_reported_as_unsynced(self, client: TestClient, machine, teams):
        resp = client.post(
            f"/api/v1/production/machines/{machine.id}/start",
            json={"operator_id": 10, "team_code": "B"},
        )
        assert resp.status_code == 200
        assert resp.json()["ledger_synced"] is False
        assert resp.json()["shift"] is None
