"""Tests for the HTTP API."""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from api.main import DEFAULT_ORIGINS, allowed_origins, app


@pytest.fixture
def client():
    return TestClient(app)


def _make_docs() -> list[dict]:
    return [
        {"id": "mon", "date": "2025-01-13", "assetId": "EXC-01", "totalHours": 8},
        {"id": "tue", "date": "2025-01-14", "assetId": "EXC-01", "totalHours": 6, "isBreakdown": True},
        {"id": "wed", "date": "2025-01-15", "assetId": "EXC-01", "totalHours": 0.5, "isRainDay": True},
        {"id": "thu", "date": "2025-01-16", "assetId": "EXC-01", "totalHours": 5, "isPublicHoliday": True},
        {"id": "sat", "date": "2025-01-18", "assetId": "EXC-01", "totalHours": 3},
    ]


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/v1/health"


class TestEPHEndpoint:
    def test_end_to_end(self, client):
        response = client.post("/api/v1/eph", json={
            "records": _make_docs(),
            "start": "2025-01-13",
            "end": "2025-01-19",
            "rates": {"EXC-01": {"dryRate": 100}},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        summary = body["records"][0]
        assert summary["entityId"] == "EXC-01"
        assert summary["totalActualHours"] == 22.5
        assert summary["totalBillableHours"] == 42.5
        assert summary["estimatedCost"] == 4250.0
        assert Decimal(summary["unroundedCost"]) == Decimal("4250")
        assert summary["daysWithEntries"] == 5
        assert summary["missingDates"] == ["2025-01-17", "2025-01-19"]
        assert summary["hours"]["publicHoliday"] == {"actual": 5.0, "billable": 16.0}
        assert body["audit"]["summary"]["totalEntities"] == 1

    def test_invalid_range(self, client):
        response = client.post("/api/v1/eph", json={
            "records": _make_docs(),
            "start": "2025-01-19",
            "end": "2025-01-13",
        })
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "validation_error"

    def test_strict_mode(self, client):
        docs = _make_docs() + [{"id": "bad", "assetId": "EXC-01", "totalHours": 8}]
        response = client.post("/api/v1/eph", json={
            "records": docs,
            "start": "2025-01-13",
            "end": "2025-01-19",
            "strict": True,
        })
        body = response.json()
        assert body["success"] is False
        assert body["error_type"] == "validation_error"
        assert any("unparseable date" in e for e in body["errors"])

    def test_lenient_mode_warns(self, client):
        docs = _make_docs() + [{"id": "bad", "assetId": "EXC-01", "totalHours": 8}]
        response = client.post("/api/v1/eph", json={
            "records": docs,
            "start": "2025-01-13",
            "end": "2025-01-19",
        })
        body = response.json()
        assert body["success"] is True
        assert body["warnings"]
        assert body["records"][0]["totalActualHours"] == 22.5

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/v1/eph", json={"records": []})
        assert response.status_code == 422


class TestBillableHoursEndpoint:
    def test_saturday_minimum(self, client):
        response = client.post("/api/v1/billable-hours", json={
            "record": {"date": "2025-01-18", "assetId": "EXC-01", "totalHours": 3},
        })
        result = response.json()["result"]
        assert result["billableHours"] == 12.0
        assert result["appliedRule"] == "saturday_minimum_billing"
        assert result["dayType"] == "saturday"

    def test_stored_config(self, client):
        response = client.post("/api/v1/billable-hours", json={
            "record": {"date": "2025-01-14", "assetId": "EXC-01", "totalHours": 6, "isBreakdown": True},
            "billing_config": {"breakdown": {"enabled": False}},
        })
        result = response.json()["result"]
        assert result["billableHours"] == 0.0
        assert result["appliedRule"] == "breakdown_no_charge"


class TestBillingMethodEndpoint:
    def test_apply_to_all(self, client):
        response = client.post("/api/v1/billing-config/method", json={"method": "PER_HOUR"})
        config = response.json()["billing_config"]
        for section in ("weekdays", "saturday", "sunday", "publicHolidays"):
            assert config[section]["billingMethod"] == "PER_HOUR"
        assert config["saturday"]["minHours"] == 8.0

    def test_unknown_method_rejected(self, client):
        response = client.post("/api/v1/billing-config/method", json={"method": "HALF_DAY"})
        assert response.status_code == 422


class TestAllowedOrigins:
    def test_default(self):
        assert allowed_origins(None) == DEFAULT_ORIGINS
        assert allowed_origins("") == DEFAULT_ORIGINS

    def test_list(self):
        assert allowed_origins("https://a.example, https://b.example,") == [
            "https://a.example", "https://b.example",
        ]

    def test_wildcard(self):
        assert allowed_origins("https://a.example,*") == ["*"]
