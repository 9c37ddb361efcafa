"""
Functional tests for the extract API.
Drives create, compile, execute and export through the HTTP surface.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError

from extract_builder.core import retry
from extract_builder.core.dependencies import get_statement_runner
from extract_builder.extracts.executor import SqlAlchemyStatementRunner
from tests.support import InMemoryStatementRunner

ACTIVE_STATUS = {"field_id": 1, "operator_id": 1, "value": "ACTIVE", "connector": None}


@pytest.fixture
def extract(client, extract_payload):
    response = client.post("/api/extracts", json=extract_payload)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def compiled(client, extract):
    response = client.put(
        f"/api/extracts/{extract['id']}/criteria",
        json={"criteria_rows": [ACTIVE_STATUS], "version": extract["version"]},
    )
    assert response.status_code == 200
    return {**extract, **response.json()}


class TestExtractLifecycle:
    """Test the full create, compile, execute and export flow"""

    def test_create_returns_definition_without_statement(self, extract):
        assert extract["query_statement"] is None
        assert extract["version"] == 1
        assert extract["extract_code"].startswith("COM-LG-")
        assert [f["field_id"] for f in extract["selected_fields"]] == [2, 5]

    def test_save_criteria_compiles_statement(self, client, compiled):
        assert compiled["success"] is True
        assert compiled["version"] == 2
        assert compiled["query_statement"].startswith(
            'SELECT M.MEMBER_NAME "Member Name", MC.EFF_DATE "Effective Date" FROM MEMBERSHIP M'
        )
        assert compiled["query_statement"].endswith(
            "WHERE MC.STATUS = 'ACTIVE' AND M.SOURCE_SYS_ID='2001' and rownum <=50"
        )

        stored = client.get(f"/api/extracts/{compiled['id']}").json()
        assert stored["query_statement"] == compiled["query_statement"]

    def test_execute_pages_through_the_sample(self, client, compiled):
        first = client.post(f"/api/extracts/{compiled['id']}/execute", json={"page": 1, "page_size": 10})
        last = client.post(f"/api/extracts/{compiled['id']}/execute", json={"page": 5, "page_size": 10})
        past_end = client.post(f"/api/extracts/{compiled['id']}/execute", json={"page": 6, "page_size": 10})

        assert first.status_code == 200
        body = first.json()
        assert body["total_count"] == 50
        assert body["has_more"] is True
        assert len(body["rows"]) == 10
        assert body["columns"] == ["Member Name", "Effective Date", "Plan Code"]

        assert last.json()["has_more"] is False
        assert past_end.json()["rows"] == []
        assert past_end.json()["total_count"] == 50

    def test_execute_without_body_uses_defaults(self, client, compiled):
        response = client.post(f"/api/extracts/{compiled['id']}/execute")

        assert response.status_code == 200
        assert response.json()["current_page"] == 1
        assert response.json()["page_size"] == 10

    def test_execution_logs_are_recorded(self, client, compiled):
        client.post(f"/api/extracts/{compiled['id']}/execute", json={"page": 2, "page_size": 20})

        logs = client.get(f"/api/extracts/{compiled['id']}/execution-logs").json()

        assert len(logs) == 1
        assert logs[0]["success"] is True
        assert (logs[0]["page"], logs[0]["row_count"], logs[0]["total_count"]) == (2, 20, 50)

    def test_csv_export(self, client, compiled):
        response = client.post(f"/api/extracts/{compiled['id']}/export", json={})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert f"filename={compiled['extract_code']}.csv" in response.headers["content-disposition"]
        lines = response.text.split("\n")
        assert lines[0] == "Member Name,Effective Date,Plan Code"
        assert len(lines) == 51

    def test_pipe_export(self, client, compiled):
        response = client.post(f"/api/extracts/{compiled['id']}/export", json={"delimiter": "|"})

        assert response.text.startswith("Member Name|Effective Date|Plan Code")

    def test_xlsx_export(self, client, compiled):
        response = client.post(f"/api/extracts/{compiled['id']}/export", json={"file_format": "XLSX"})

        assert response.status_code == 200
        assert "spreadsheetml" in response.headers["content-type"]
        assert response.content[:2] == b"PK"

    def test_xlsx_export_with_slash_in_name(self, client, extract_payload):
        created = client.post("/api/extracts", json={**extract_payload, "name": "Q1/Q2 Members"}).json()
        client.put(f"/api/extracts/{created['id']}/criteria", json={"criteria_rows": [ACTIVE_STATUS]})

        response = client.post(f"/api/extracts/{created['id']}/export", json={"file_format": "XLSX"})

        assert response.status_code == 200
        assert response.content[:2] == b"PK"

    def test_list_and_search(self, client, extract, extract_payload):
        client.post("/api/extracts", json={**extract_payload, "name": "Termed Members"})

        everything = client.get("/api/extracts").json()
        termed = client.get("/api/extracts", params={"search": "TERMED"}).json()

        assert [e["name"] for e in everything] == ["Termed Members", "Active Commercial Members"]
        assert everything[0]["lob_name"] == "Commercial"
        assert [e["name"] for e in termed] == ["Termed Members"]

    def test_patch_metadata(self, client, compiled):
        response = client.patch(f"/api/extracts/{compiled['id']}", json={"description": "Updated", "version": 2})

        assert response.status_code == 200
        assert response.json()["description"] == "Updated"
        assert response.json()["version"] == 3
        assert response.json()["query_statement"] == compiled["query_statement"]

    def test_config_round_trip(self, client, extract):
        payload = {"file_format_id": 1, "file_delimiter_id": 2, "schedule_parameter_id": 1, "sftp_path": "/drop"}

        saved = client.post(f"/api/extracts/{extract['id']}/config", json=payload)
        loaded = client.get(f"/api/extracts/{extract['id']}/config")

        assert saved.status_code == 200
        assert loaded.json()["file_delimiter_id"] == 2
        assert loaded.json()["sftp_path"] == "/drop"


class TestErrorResponses:
    """Every domain error surfaces a status code plus a stable kind"""

    def test_missing_extract(self, client):
        response = client.get("/api/extracts/9999")

        assert response.status_code == 404
        assert response.json()["kind"] == "ACCESS_DENIED"

    def test_stale_version(self, client, compiled):
        response = client.put(
            f"/api/extracts/{compiled['id']}/criteria",
            json={"criteria_rows": [ACTIVE_STATUS], "version": 1},
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "VERSION_CONFLICT"

    def test_dangling_operator(self, client, extract):
        rows = [{"field_id": 1, "operator_id": 999, "value": "ACTIVE"}]

        response = client.put(f"/api/extracts/{extract['id']}/criteria", json={"criteria_rows": rows})

        assert response.status_code == 422
        assert response.json()["kind"] == "COMPILE_FAILURE"
        assert client.get(f"/api/extracts/{extract['id']}").json()["version"] == 1

    def test_incomplete_criteria_row(self, client, extract):
        rows = [{"field_id": 1, "operator_id": 1, "value": ""}]

        response = client.put(f"/api/extracts/{extract['id']}/criteria", json={"criteria_rows": rows})

        assert response.status_code == 422
        assert response.json()["kind"] == "VALIDATION_FAILURE"

    def test_malformed_body(self, client, extract_payload):
        response = client.post("/api/extracts", json={**extract_payload, "name": "   "})

        assert response.status_code == 422
        assert response.json()["kind"] == "VALIDATION_FAILURE"

    @pytest.mark.parametrize("body", [{"page": 0}, {"page_size": 1001}])
    def test_out_of_range_paging(self, client, compiled, body):
        response = client.post(f"/api/extracts/{compiled['id']}/execute", json=body)

        assert response.status_code == 422

    def test_execute_before_compile(self, client, extract):
        response = client.post(f"/api/extracts/{extract['id']}/execute", json={})

        assert response.status_code == 400
        assert response.json() == {"detail": "Query statement not found for this Extract", "kind": "EXECUTION_FAILURE"}

    def test_warehouse_rejection(self, client, compiled, member_rows):
        error = DBAPIError("SELECT ...", {}, Exception("ORA-00942: table or view does not exist"))
        client.app.dependency_overrides[get_statement_runner] = lambda: InMemoryStatementRunner(member_rows, error=error)

        response = client.post(f"/api/extracts/{compiled['id']}/execute", json={})

        assert response.status_code == 400
        assert response.json()["kind"] == "EXECUTION_FAILURE"
        assert "ORA-00942" in response.json()["detail"]

        logs = client.get(f"/api/extracts/{compiled['id']}/execution-logs").json()
        assert logs[0]["success"] is False

    def test_unreachable_warehouse(self, client, compiled, tmp_path, monkeypatch):
        monkeypatch.setattr(retry.time, "sleep", lambda seconds: None)
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'members.db'}")
        client.app.dependency_overrides[get_statement_runner] = lambda: SqlAlchemyStatementRunner(engine)

        response = client.post(f"/api/extracts/{compiled['id']}/execute", json={})
        engine.dispose()

        assert response.status_code == 503
        assert response.json()["kind"] == "TRANSIENT_STORE_FAILURE"

    def test_domain_errors_are_logged(self, client):
        client.get("/api/extracts/9999")

        errors = client.get("/api/logs/errors").json()

        assert any(log["error_kind"] == "ACCESS_DENIED" and log["status_code"] == 404 for log in errors)


class TestCriteriaBuilderApi:
    def test_append(self, client):
        response = client.post(
            "/api/criteria/append",
            json={"steps": [ACTIVE_STATUS], "index": 0, "connector": "OR"},
        )

        steps = response.json()["steps"]
        assert response.status_code == 200
        assert [s["connector"] for s in steps] == ["OR", None]
        assert steps[1]["field_id"] is None

    def test_remove(self, client):
        steps = [
            {**ACTIVE_STATUS, "connector": "AND"},
            {"field_id": 2, "operator_id": 1, "value": "Smith", "connector": "OR"},
            {"field_id": 4, "operator_id": 11, "value": "40"},
        ]

        response = client.post("/api/criteria/remove", json={"steps": steps, "index": 1})

        assert [(s["field_id"], s["connector"]) for s in response.json()["steps"]] == [(1, "OR"), (4, None)]

    def test_removing_the_only_row_is_rejected(self, client):
        response = client.post("/api/criteria/remove", json={"steps": [ACTIVE_STATUS], "index": 0})

        assert response.status_code == 422
        assert response.json()["kind"] == "VALIDATION_FAILURE"

    def test_finalize(self, client):
        steps = [ACTIVE_STATUS, {"field_id": 2, "operator_id": 1, "value": "Smith", "connector": "OR"}]

        response = client.post("/api/criteria/finalize", json={"steps": steps})

        assert [(s["order"], s["connector"]) for s in response.json()["steps"]] == [(1, "AND"), (2, None)]


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database"]["connected"] is True
