"""
Tests: HTTP client fallbacks and error reporting.

Run with:
    pytest tests/test_api_client.py -v
"""

import pytest
import requests

import api_client
import client_configurations as cc
from pricing_engine import CalculationInput


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


def _offline(*args, **kwargs):
    raise requests.ConnectionError("connection refused")


@pytest.fixture
def calls(monkeypatch):
    """Record outgoing requests; each test sets the canned response."""
    seen = {"response": FakeResponse(), "requests": []}

    def fake(method):
        def _call(url, **kwargs):
            seen["requests"].append((method, url, kwargs))
            return seen["response"]
        return _call

    monkeypatch.setattr(api_client.requests, "get", fake("GET"))
    monkeypatch.setattr(api_client.requests, "post", fake("POST"))
    return seen


class TestFetchConfiguration:

    def test_from_api(self, calls):
        remote = cc.config_to_dict(cc.get_configuration("kasa"))
        remote["clientName"] = "Kasa (remote)"
        calls["response"] = FakeResponse(200, remote)

        config = api_client.fetch_configuration("kasa")
        assert config.client_name == "Kasa (remote)"
        method, url, kwargs = calls["requests"][0]
        assert url.endswith("/api/calculator/configurations/kasa")
        assert kwargs["timeout"] == 30

    def test_offline_uses_preset(self, monkeypatch):
        monkeypatch.setattr(api_client.requests, "get", _offline)
        assert api_client.fetch_configuration("kasa") == cc.get_configuration("kasa")

    def test_error_status_uses_default(self, calls):
        calls["response"] = FakeResponse(500, text="boom")
        assert api_client.fetch_configuration("custom-123") == cc.get_default_configuration()

    def test_bad_payload_uses_preset(self, calls):
        calls["response"] = FakeResponse(200, {"id": "kasa"})
        assert api_client.fetch_configuration("kasa") == cc.get_configuration("kasa")


class TestFetchConfigurations:

    def test_from_api(self, calls):
        calls["response"] = FakeResponse(200, {"configurations": [cc.config_to_dict(cc.get_configuration("kasa"))]})
        configs = api_client.fetch_configurations()
        assert [c.id for c in configs] == ["kasa"]
        assert calls["requests"][0][2]["params"] == {"activeOnly": "true"}

    def test_offline_uses_active_presets(self, monkeypatch):
        monkeypatch.setattr(api_client.requests, "get", _offline)
        assert api_client.fetch_configurations() == cc.get_active_configurations()


class TestSaveCalculation:

    def test_payload(self, calls):
        calls["response"] = FakeResponse(201, {"id": "h1"})
        x = CalculationInput(headcount=30, food_cost=400, mileage=15, number_of_stops=2)

        saved = api_client.save_calculation(x, "kasa", "tok", notes="note", bonus_qualified=True)
        assert saved == {"id": "h1"}

        method, url, kwargs = calls["requests"][0]
        assert method == "POST"
        assert url.endswith("/api/calculator/save")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["json"]["configId"] == "kasa"
        assert kwargs["json"]["notes"] == "note"
        assert kwargs["json"]["bonusQualified"] is True
        assert kwargs["json"]["input"]["foodCost"] == 400
        assert kwargs["json"]["input"]["numberOfStops"] == 2

    def test_requires_token(self, calls):
        x = CalculationInput(headcount=30, food_cost=400, mileage=15)
        with pytest.raises(api_client.ApiError) as exc:
            api_client.save_calculation(x, "kasa", "")
        assert exc.value.status_code == 401
        assert calls["requests"] == []

    def test_api_error(self, calls):
        calls["response"] = FakeResponse(403, {"detail": "Forbidden: Insufficient permissions"})
        x = CalculationInput(headcount=30, food_cost=400, mileage=15)
        with pytest.raises(api_client.ApiError, match="Forbidden") as exc:
            api_client.save_calculation(x, "kasa", "tok")
        assert exc.value.status_code == 403

    def test_unreachable(self, monkeypatch):
        monkeypatch.setattr(api_client.requests, "post", _offline)
        x = CalculationInput(headcount=30, food_cost=400, mileage=15)
        with pytest.raises(api_client.ApiError, match="unreachable"):
            api_client.save_calculation(x, "kasa", "tok")
