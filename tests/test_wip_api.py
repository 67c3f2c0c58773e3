from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from wip_engine.repositories.ledger_repository import LedgerRepository


def test_client_wip_report(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get("/api/v1/clients/1/wip", params={"fiscal_year": "2024", "fiscal_month": "Dec"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["client_name"] == "Acme"
    assert payload["period"]["fiscal_month"] == "December"
    assert payload["period"]["end_date"] == "2023-12-31"
    assert payload["overall"]["ltd_time"] == "1500.00"
    assert payload["overall"]["gross_profit"] == "1200.00"
    assert payload["task_count"] == 1
    assert {row["code"] for row in payload["master_service_lines"]} == {"TAX"}


def test_group_wip_report(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get("/api/v1/groups/G1/wip", params={"fiscal_year": "2024"})

    assert response.status_code == 200
    assert response.json()["overall"]["ltd_time"] == "2550.00"


def test_repeat_request_is_served_from_cache(client: TestClient, ledger: dict[str, int]) -> None:
    first = client.get("/api/v1/clients/1/wip", params={"mode": "all_time"})
    second = client.get("/api/v1/clients/1/wip", params={"mode": "all_time"})

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_invalid_fiscal_month_names_field(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get("/api/v1/clients/1/wip", params={"fiscal_month": "Thirteenth"})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["field"] == "fiscal_month"
    assert "January" in detail["message"]


def test_invalid_fiscal_year_names_field(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get("/api/v1/clients/1/wip", params={"fiscal_year": "twenty"})

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "fiscal_year"


def test_malformed_custom_date(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get(
        "/api/v1/clients/1/wip",
        params={"mode": "custom", "start_date": "2024-13-01", "end_date": "2024-02-01"},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "start_date"


def test_unknown_client_and_group(client: TestClient, ledger: dict[str, int]) -> None:
    assert client.get("/api/v1/clients/404/wip").status_code == 404
    assert client.get("/api/v1/groups/NOPE/wip").status_code == 404


def test_ledger_failure_is_service_unavailable(
    client: TestClient,
    ledger: dict[str, int],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _boom(self, *args, **kwargs):
        raise OperationalError("EXEC sp", {}, Exception("login timeout"))

    monkeypatch.setattr(LedgerRepository, "aggregate_profitability", _boom)
    monkeypatch.setattr(LedgerRepository, "list_transactions", _boom)
    monkeypatch.setattr(LedgerRepository, "list_task_balances", _boom)

    response = client.get("/api/v1/clients/1/wip", params={"fiscal_year": "2023", "mode": "all_time"})

    assert response.status_code == 503
    assert "unavailable" in response.json()["detail"]


def test_custom_range_at_calendar_limit_is_rejected(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get(
        "/api/v1/clients/1/wip",
        params={"mode": "custom", "start_date": "2024-01-01", "end_date": "9999-12-05"},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "end_date"


def test_unknown_sub_service_line_group(client: TestClient, ledger: dict[str, int]) -> None:
    response = client.get(
        "/api/v1/clients/1/wip",
        params={"fiscal_year": "2024", "sub_service_line_group": "NOPE"},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "sub_service_line_group"
