"""
API tests for main.py.

Services are built against temporary CSV files and a temporary SQLite store
and attached to the app directly, so the startup lifespan never touches the
configured production paths.

To run tests: pytest tests/
"""
import pytest
from fastapi.testclient import TestClient

import main
from context import CAPACITY_CSV_ADVISORY, ENERGY_SOURCES, HISTORY_CSV_ADVISORY


CAPACITY_CSV = (
    "Coal,Oil & Gas,Nuclear,Hydro,Solar,Wind,Small-Hydro,Bio Power\n"
    "50,10,8,5,20,15,2,3\n"
)

HISTORY_CSV = (
    "Month,Coal,Oil & Gas,Nuclear,Hydro,Solar,Wind,Small-Hydro,Bio Power\n"
    "01/2023,50,10,8,5,15,8,1.5,2.5\n"
    "15/06/2023,51,10,8,5,19,10,1.5,2.5\n"
    "01-01-2024,52,10,8,5,24,12,1.5,2.5\n"
)


@pytest.fixture
def paths(tmp_path):
    capacity = tmp_path / "Capacity.csv"
    history = tmp_path / "capacity.csv"
    capacity.write_text(CAPACITY_CSV, encoding="utf-8")
    history.write_text(HISTORY_CSV, encoding="utf-8")
    return {
        "storage_url": f"sqlite:///{tmp_path / 'kv.db'}",
        "capacity_csv": str(capacity),
        "history_csv": str(history),
    }


def attach(paths, **overrides):
    main.app.state.services = main.build_services(**{**paths, **overrides})


@pytest.fixture
def client(paths, monkeypatch):
    monkeypatch.setattr(main, "APP_SECRET_KEY", None)
    attach(paths)
    yield TestClient(main.app)
    main.app.state.services = None


class TestCapacityEndpoints:

    def test_initial_snapshot_from_csv(self, client):
        body = client.get("/capacity").json()
        assert body["sources"] == list(ENERGY_SOURCES)
        assert body["installed"]["Oil & Gas"] == 10.0
        assert body["installed_total"] == 113.0
        assert body["rated_total"] == 0.0
        assert body["csv_loaded"] is True
        assert body["advisory"] is None

    def test_update_plf_recomputes_rated(self, client):
        response = client.put("/capacity/plf", json={"values": {"Coal": 60}})
        assert response.status_code == 200
        body = response.json()
        assert body["plf"]["Coal"] == 60.0
        assert body["rated"]["Coal"] == 30.0
        assert body["rated_total"] == 30.0

    def test_update_installed(self, client):
        body = client.put("/capacity/installed", json={"values": {"Solar": "25.5"}}).json()
        assert body["installed"]["Solar"] == 25.5
        assert body["installed_total"] == 118.5

    def test_plf_clamped(self, client):
        body = client.put("/capacity/plf", json={"values": {"Wind": 140}}).json()
        assert body["plf"]["Wind"] == 100.0

    @pytest.mark.parametrize("payload", [
        {"values": {"Geothermal": 5}},
        {"values": {}},
        {},
    ])
    def test_invalid_updates_rejected(self, client, payload):
        assert client.put("/capacity/installed", json=payload).status_code == 422

    def test_state_survives_restart(self, client, paths):
        client.put("/capacity/installed", json={"values": {"Coal": 70}})
        client.put("/capacity/plf", json={"values": {"Coal": 50}})

        # Restart with the CSV gone: persisted state takes priority anyway.
        attach(paths, capacity_csv=paths["capacity_csv"] + ".missing")
        body = client.get("/capacity").json()
        assert body["installed"]["Coal"] == 70.0
        assert body["plf"]["Coal"] == 50.0
        assert body["rated"]["Coal"] == 35.0
        assert body["csv_loaded"] is True

    def test_huge_installed_value_keeps_api_up(self, client, paths):
        assert client.put("/capacity/installed", json={"values": {"Coal": 1e307}}).status_code == 200
        response = client.get("/capacity")
        assert response.status_code == 200
        assert response.json()["installed"]["Coal"] == 1e307

        attach(paths)
        assert client.get("/capacity").status_code == 200

    def test_missing_csv_advisory(self, client, paths):
        attach(paths, capacity_csv=paths["capacity_csv"] + ".missing")
        body = client.get("/capacity").json()
        assert body["csv_loaded"] is False
        assert body["advisory"] == CAPACITY_CSV_ADVISORY
        assert body["installed_total"] == 0.0


class TestAppKey:

    def test_mutation_requires_key_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(main, "APP_SECRET_KEY", "secret")
        payload = {"values": {"Coal": 1}}
        assert client.put("/capacity/installed", json=payload).status_code == 401
        assert client.put(
            "/capacity/installed", json=payload, headers={"X-App-Key": "wrong"}
        ).status_code == 401
        assert client.put(
            "/capacity/installed", json=payload, headers={"X-App-Key": "secret"}
        ).status_code == 200

    def test_reads_are_open(self, client, monkeypatch):
        monkeypatch.setattr(main, "APP_SECRET_KEY", "secret")
        assert client.get("/capacity").status_code == 200


class TestLedgerEndpoints:

    def test_months(self, client):
        body = client.get("/ledger").json()
        assert body["months"] == ["01/2023", "06/2023", "01/2024"]
        assert body["loaded"] is True
        assert body["duplicate_months"] == []

    def test_ledger_not_loaded(self, client, paths, tmp_path):
        bad = tmp_path / "bad.csv"
        bad.write_text("Date,Coal\n01/2023,50\n", encoding="utf-8")
        attach(paths, history_csv=str(bad))
        body = client.get("/ledger").json()
        assert body["months"] == []
        assert body["loaded"] is False
        assert body["advisory"] == HISTORY_CSV_ADVISORY

    def test_entry(self, client):
        body = client.get("/ledger/entry", params={"month": "1/2023"}).json()
        assert body["month"] == "01/2023"
        assert body["total"] == 100.0

    def test_entry_missing(self, client):
        assert client.get("/ledger/entry", params={"month": "02/2023"}).status_code == 404

    def test_entry_invalid(self, client):
        assert client.get("/ledger/entry", params={"month": "2023-02"}).status_code == 422

    def test_compare_explicit(self, client):
        body = client.get("/ledger/compare", params={"start": "01/2023", "end": "01/2024"}).json()
        assert body["net_addition"] == 15.0
        assert body["sign"] == "positive"
        assert body["delta"]["Solar"] == 9.0
        assert len(body["table"]) == len(ENERGY_SOURCES) + 1

    def test_compare_defaults_to_look_back_window(self, client):
        body = client.get("/ledger/compare").json()
        assert body["start_month"] == "01/2023"
        assert body["end_month"] == "01/2024"
        assert body["net_addition"] == 15.0

    def test_compare_start_only(self, client):
        body = client.get("/ledger/compare", params={"start": "06/2023"}).json()
        assert body["end_month"] == "01/2024"
        assert body["net_addition"] == 8.0

    def test_compare_missing_month_is_placeholder(self, client):
        body = client.get("/ledger/compare", params={"start": "03/2023", "end": "01/2024"}).json()
        assert body["start"] is None
        assert body["end"]["month"] == "01/2024"
        assert body["delta"] is None
        assert body["net_addition"] is None
        assert body["table"] == []

    def test_compare_invalid_month(self, client):
        response = client.get("/ledger/compare", params={"start": "March", "end": "01/2024"})
        assert response.status_code == 422

    def test_compare_empty_ledger(self, client, paths):
        attach(paths, history_csv=paths["history_csv"] + ".missing")
        assert client.get("/ledger/compare").status_code == 404

    def test_table(self, client):
        rows = client.get("/ledger/table").json()["rows"]
        assert [r["Month"] for r in rows] == ["01/2023", "06/2023", "01/2024"]
        assert rows[0]["Change"] is None
        assert rows[2]["Change"] == 8.0


class TestServiceEndpoints:

    def test_metrics(self, client):
        client.get("/capacity")
        body = client.get("/metrics").json()
        assert body["status"] == "healthy"
        assert body["metrics"]["requests"] >= 1

    def test_request_id_header(self, client):
        assert client.get("/capacity").headers.get("X-Request-ID")

    def test_unavailable_before_startup(self, client):
        main.app.state.services = None
        assert client.get("/capacity").status_code == 503


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
