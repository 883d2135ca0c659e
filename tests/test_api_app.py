"""
Tests: calculator HTTP routes (calculation, configurations, history).

Run with:
    pytest tests/test_api_app.py -v
"""

import json
from datetime import datetime, timedelta

import pytest

import auth
import client_configurations as cc
import storage

EXAMPLE_INPUT = {"headcount": 30, "foodCost": 400, "mileage": 15, "mileageRate": 0.70, "numberOfStops": 2}


def _payload(config_id="generic-template", **changes):
    data = cc.config_to_dict(cc.get_configuration(config_id))
    data.update(changes)
    return data


class TestHealth:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json() == {"ok": True, "database": True}


class TestCalculate:

    def test_default_configuration(self, client):
        r = client.post("/api/calculator/calculate", json={"input": EXAMPLE_INPUT})
        assert r.status_code == 200
        body = r.json()
        assert body["configurationId"] == "ready-set-food-standard"
        assert body["customerCharges"]["total"] == 78.5
        assert body["driverPayments"]["total"] == 36.0

    def test_named_configuration_with_bonus(self, client):
        r = client.post(
            "/api/calculator/calculate",
            json={"input": EXAMPLE_INPUT, "configId": "kasa", "bonusQualified": True, "bonusQualifiedPercent": 50},
        )
        assert r.status_code == 200
        assert r.json()["driverPayments"]["bonusPay"] == 5.0

    def test_field_errors(self, client):
        r = client.post("/api/calculator/calculate", json={"input": {**EXAMPLE_INPUT, "headcount": -3}})
        assert r.status_code == 400
        assert "headcount" in r.json()["detail"]["errors"]

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
    def test_non_finite_tips(self, client, literal):
        body = '{"input": {"headcount": 30, "foodCost": 400, "mileage": 15, "tips": ' + literal + "}}"
        r = client.post(
            "/api/calculator/calculate", content=body, headers={"Content-Type": "application/json"}
        )
        assert r.status_code == 400
        assert "tips" in r.json()["detail"]["errors"]

    def test_manual_pricing(self, client):
        r = client.post("/api/calculator/calculate", json={"input": {"headcount": 400, "foodCost": 5000, "mileage": 4}})
        assert r.status_code == 400
        assert "manual pricing" in r.json()["detail"]

    def test_unknown_configuration(self, client):
        r = client.post("/api/calculator/calculate", json={"input": EXAMPLE_INPUT, "configId": "nope"})
        assert r.status_code == 404

    def test_api_key(self, client, monkeypatch):
        monkeypatch.setattr(auth, "API_KEY", "secret")
        assert client.post("/api/calculator/calculate", json={"input": EXAMPLE_INPUT}).status_code == 401

        r = client.post(
            "/api/calculator/calculate",
            json={"input": EXAMPLE_INPUT},
            headers={"X-API-Key": "secret"},
        )
        assert r.status_code == 200


class TestConfigurationReads:

    def test_list_active(self, client):
        r = client.get("/api/calculator/configurations", params={"activeOnly": "true"})
        ids = {c["id"] for c in r.json()["configurations"]}
        assert ids == {"ready-set-food-standard", "kasa"}

    def test_list_all(self, client):
        r = client.get("/api/calculator/configurations")
        assert len(r.json()["configurations"]) == 4

    def test_get_one(self, client):
        r = client.get("/api/calculator/configurations/kasa")
        assert r.status_code == 200
        assert r.json()["clientName"] == "Kasa"

    def test_get_missing(self, client):
        assert client.get("/api/calculator/configurations/nope").status_code == 404

    def test_export(self, client):
        r = client.get("/api/calculator/configurations/kasa/export")
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="kasa.json"'
        assert json.loads(r.text)["id"] == "kasa"


class TestConfigurationWrites:

    def test_requires_authentication(self, client):
        r = client.post("/api/calculator/configurations", json=_payload(id="acme"))
        assert r.status_code == 401

    def test_requires_admin(self, client, login):
        login("u1", "CLIENT")
        r = client.post("/api/calculator/configurations", json=_payload(id="acme"))
        assert r.status_code == 403

    def test_create_assigns_id(self, client, login):
        login("admin-1", "ADMIN")
        r = client.post("/api/calculator/configurations", json=_payload(id="", clientName="Acme"))
        assert r.status_code == 201
        body = r.json()
        assert body["id"].startswith("custom-")
        assert body["createdBy"] == "admin-1"

        r = client.get(f"/api/calculator/configurations/{body['id']}")
        assert r.json()["clientName"] == "Acme"

    def test_create_duplicate(self, client, login):
        login("admin-1", "ADMIN")
        assert client.post("/api/calculator/configurations", json=_payload(id="acme")).status_code == 201
        assert client.post("/api/calculator/configurations", json=_payload(id="acme")).status_code == 409

    def test_create_invalid(self, client, login):
        login("admin-1", "ADMIN")
        data = _payload(id="acme")
        data["driverPaySettings"]["maxPayPerDrop"] = 1
        r = client.post("/api/calculator/configurations", json=data)
        assert r.status_code == 400
        detail = r.json()["detail"]
        assert detail["message"] == "Invalid configuration"
        assert any("Max pay per drop" in e for e in detail["errors"])

    def test_create_malformed(self, client, login):
        login("admin-1", "ADMIN")
        r = client.post("/api/calculator/configurations", json={"id": "x", "pricingTiers": "no"})
        assert r.status_code == 400
        assert r.json()["detail"]["message"] == "Invalid configuration format"

    def test_update_preset_overrides_it(self, client, login):
        login("admin-1", "SUPER_ADMIN")
        r = client.put(
            "/api/calculator/configurations/ready-set-food-standard",
            json=_payload("ready-set-food-standard", mileageRate=4.0),
        )
        assert r.status_code == 200

        r = client.get("/api/calculator/configurations/ready-set-food-standard")
        assert r.json()["mileageRate"] == 4.0
        assert r.json()["createdAt"].startswith("2025-01-01")

    def test_delete(self, client, login):
        login("admin-1", "ADMIN")
        client.post("/api/calculator/configurations", json=_payload(id="acme"))

        assert client.delete("/api/calculator/configurations/acme").status_code == 200
        assert client.get("/api/calculator/configurations/acme").status_code == 404
        assert client.delete("/api/calculator/configurations/acme").status_code == 404

    def test_delete_preset(self, client, login):
        login("admin-1", "ADMIN")
        assert client.delete("/api/calculator/configurations/kasa").status_code == 409

    def test_clone(self, client, login):
        login("admin-1", "ADMIN")
        r = client.post("/api/calculator/configurations/kasa/clone", json={"newName": "Kasa East"})
        assert r.status_code == 201
        body = r.json()
        assert body["id"].startswith("kasa-clone-")
        assert body["clientName"] == "Kasa East"
        assert body["notes"] == "Cloned from Kasa"

    def test_clone_needs_name(self, client, login):
        login("admin-1", "ADMIN")
        r = client.post("/api/calculator/configurations/kasa/clone", json={"newName": "  "})
        assert r.status_code == 400

    def test_import(self, client, login):
        login("admin-1", "ADMIN")
        text = json.dumps(_payload(id="imported", clientName="Imported Co"))
        r = client.post("/api/calculator/configurations/import", content=text)
        assert r.status_code == 201
        assert client.get("/api/calculator/configurations/imported").json()["clientName"] == "Imported Co"

    def test_import_malformed(self, client, login):
        login("admin-1", "ADMIN")
        r = client.post("/api/calculator/configurations/import", content="{oops")
        assert r.status_code == 400
        assert r.json()["detail"]["errors"][0].startswith("Invalid configuration format")

    def test_import_invalid_configuration(self, client, login):
        login("admin-1", "ADMIN")
        data = _payload(id="imported")
        data["driverPaySettings"]["maxPayPerDrop"] = 1
        r = client.post("/api/calculator/configurations/import", content=json.dumps(data))
        assert r.status_code == 400
        detail = r.json()["detail"]
        assert detail["message"] == "Invalid configuration"
        assert any("Max pay per drop" in e for e in detail["errors"])
        assert client.get("/api/calculator/configurations/imported").status_code == 404

    def test_import_non_finite(self, client, login):
        login("admin-1", "ADMIN")
        text = json.dumps(_payload(id="imported", mileageRate=float("inf")))
        r = client.post("/api/calculator/configurations/import", content=text)
        assert r.status_code == 400
        assert r.json()["detail"]["message"] == "Invalid configuration format"


class TestHistory:

    def test_save_requires_authentication(self, client):
        assert client.post("/api/calculator/save", json={"input": EXAMPLE_INPUT}).status_code == 401

    def test_save_recomputes(self, client, login):
        login("driver-1", "DRIVER")
        r = client.post("/api/calculator/save", json={"input": EXAMPLE_INPUT, "notes": "lunch run"})
        assert r.status_code == 201
        body = r.json()
        assert body["userId"] == "driver-1"
        assert body["customerTotal"] == 78.5
        assert body["inputData"]["foodCost"] == 400
        assert body["notes"] == "lunch run"
        assert body["result"]["profit"] == 42.5

    def test_non_admin_sees_own_history_only(self, client, login):
        login("u1", "CLIENT")
        client.post("/api/calculator/save", json={"input": EXAMPLE_INPUT})
        login("u2", "CLIENT")
        client.post("/api/calculator/save", json={"input": EXAMPLE_INPUT})

        r = client.get("/api/calculator/history", params={"userId": "u1"})
        assert [h["userId"] for h in r.json()["history"]] == ["u2"]

        login("boss", "ADMIN")
        r = client.get("/api/calculator/history")
        assert {h["userId"] for h in r.json()["history"]} == {"u1", "u2"}

    def test_newest_first_with_limit(self, client, login, db):
        now = datetime(2026, 1, 1)
        for i in range(3):
            db.add(
                storage.CalculationHistory(
                    id=f"h{i}",
                    created_at=now + timedelta(minutes=i),
                    configuration_id="kasa",
                    user_id="boss",
                    input_data={},
                    customer_charges={},
                    driver_payments={},
                    customer_total=0,
                    driver_total=0,
                )
            )
        db.commit()

        login("boss", "ADMIN")
        r = client.get("/api/calculator/history", params={"limit": 2, "configId": "kasa"})
        assert [h["id"] for h in r.json()["history"]] == ["h2", "h1"]

    @pytest.mark.parametrize("limit", [0, 10_000])
    def test_limit_bounds(self, client, login, limit):
        login("boss", "ADMIN")
        assert client.get("/api/calculator/history", params={"limit": limit}).status_code == 422
