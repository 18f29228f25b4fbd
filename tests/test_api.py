"""Tests for the FastAPI server."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from cronprobe.api.server import create_app
from cronprobe.config import Settings
from cronprobe.ledger.models import ExecutionRecord, ExecutionStatus


@pytest.fixture
def client(tmp_path):
    cfg = Settings(db_path=str(tmp_path / "api.db"), max_jobs_allowed=2, max_page_size=50)
    with TestClient(create_app(cfg)) as c:
        yield c


def _job_body(name: str = "ping", **overrides) -> dict:
    body = {
        "name": name,
        "description": "health check",
        "url": "https://service.test/health",
        "cronExpression": "0 0 12 * * ?",
    }
    body.update(overrides)
    return body


def _seed(client: TestClient, job_name: str, url: str, status: ExecutionStatus, response_time: int) -> ExecutionRecord:
    record = ExecutionRecord(
        job_name=job_name, url=url, status=status, response_time=response_time,
        error_message=None if status == ExecutionStatus.SUCCEEDED else "boom",
    )
    return client.app.state.ledger.append(record)


class TestHealth:
    def test_health(self, client: TestClient):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "jobs": 0, "scheduler": "running"}

    def test_trace_header_echoed(self, client: TestClient):
        resp = client.get("/api/health", headers={"X-Trace-Id": "abc123"})
        assert resp.headers["X-Trace-Id"] == "abc123"

    def test_trace_header_generated(self, client: TestClient):
        resp = client.get("/api/health")
        assert len(resp.headers["X-Trace-Id"]) == 32


class TestJobRoutes:
    def test_create(self, client: TestClient):
        resp = client.post("/api/jobs", json=_job_body())
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "ping"
        assert data["cronExpression"] == "0 0 12 * * ?"
        assert data["timezone"] == "UTC"
        assert client.get("/api/health").json()["jobs"] == 1

    def test_duplicate(self, client: TestClient):
        client.post("/api/jobs", json=_job_body())
        resp = client.post("/api/jobs", json=_job_body(url="https://other.test"))
        assert resp.status_code == 409
        problem = resp.json()
        assert problem["code"] == "job_already_exists"
        assert problem["jobName"] == "ping"
        assert problem["status"] == 409
        assert problem["traceId"]

    def test_capacity(self, client: TestClient):
        assert client.post("/api/jobs", json=_job_body("a")).status_code == 200
        assert client.post("/api/jobs", json=_job_body("b")).status_code == 200
        resp = client.post("/api/jobs", json=_job_body("c"))
        assert resp.status_code == 422
        assert resp.json()["code"] == "max_jobs_reach"
        assert resp.json()["detail"] == "You have reach the system limit of 2 jobs"
        assert client.get("/api/health").json()["jobs"] == 2

    def test_invalid_fields(self, client: TestClient):
        resp = client.post("/api/jobs", json=_job_body(cronExpression="*/5 * * * *", timezone="Nowhere/City"))
        assert resp.status_code == 400
        problem = resp.json()
        assert problem["code"] == "invalid_request_params"
        names = {p["name"] for p in problem["invalidParams"]}
        assert names == {"cronExpression", "timezone"}

    @pytest.mark.parametrize("cron", ["0 0 0 30 2 ?", "0 0 12 * * ? 2020"])
    def test_cron_that_never_fires(self, client: TestClient, cron: str):
        resp = client.post("/api/jobs", json=_job_body(cronExpression=cron))
        assert resp.status_code == 400
        assert resp.json()["invalidParams"] == [
            {"name": "cronExpression", "reason": "not a valid cron expression"},
        ]
        assert client.get("/api/health").json()["jobs"] == 0

    def test_missing_field(self, client: TestClient):
        body = _job_body()
        del body["cronExpression"]
        resp = client.post("/api/jobs", json=body)
        assert resp.status_code == 400
        assert resp.json()["invalidParams"][0]["name"] == "cronExpression"


class TestExecutionRoutes:
    def test_empty(self, client: TestClient):
        resp = client.get("/api/executions")
        assert resp.status_code == 200
        assert resp.json() == {"jobExecutionList": [], "totalElements": 0, "totalPages": 1}

    def test_lists_newest_first(self, client: TestClient):
        first = _seed(client, "ping", "https://a.test", ExecutionStatus.SUCCEEDED, 10)
        second = _seed(client, "ping", "https://a.test", ExecutionStatus.FAILED, 20)
        data = client.get("/api/executions").json()
        assert data["totalElements"] == 2
        ids = [r["externalId"] for r in data["jobExecutionList"]]
        assert ids == [second.external_id, first.external_id]
        failed = data["jobExecutionList"][0]
        assert failed["status"] == "FAILED"
        assert failed["errorMessage"] == "boom"
        assert failed["responseTime"] == 20

    def test_filters(self, client: TestClient):
        _seed(client, "ping", "https://a.test", ExecutionStatus.SUCCEEDED, 10)
        _seed(client, "ping", "https://a.test", ExecutionStatus.FAILED, 20)
        _seed(client, "other", "https://b.test", ExecutionStatus.SUCCEEDED, 30)

        by_name = client.get("/api/executions", params={"jobName": "ping"}).json()
        assert by_name["totalElements"] == 2

        by_url = client.get("/api/executions", params={"url": "https://b.test"}).json()
        assert [r["jobName"] for r in by_url["jobExecutionList"]] == ["other"]

        combined = client.get(
            "/api/executions", params={"jobName": "ping", "status": "succeeded"},
        ).json()
        assert combined["totalElements"] == 1
        assert combined["jobExecutionList"][0]["responseTime"] == 10

    def test_date_bounds(self, client: TestClient):
        _seed(client, "ping", "https://a.test", ExecutionStatus.SUCCEEDED, 10)
        now = datetime.now(timezone.utc)
        around = {
            "from": (now - timedelta(hours=1)).isoformat(),
            "to": (now + timedelta(hours=1)).isoformat(),
        }
        assert client.get("/api/executions", params=around).json()["totalElements"] == 1

        future = {"from": (now + timedelta(days=1)).isoformat()}
        data = client.get("/api/executions", params=future).json()
        assert data["totalElements"] == 0
        assert data["totalPages"] == 1

    def test_sort_and_page(self, client: TestClient):
        for ms in (30, 10, 20):
            _seed(client, "ping", "https://a.test", ExecutionStatus.SUCCEEDED, ms)
        resp = client.get(
            "/api/executions",
            params={"sortDirection": "ASC", "sortProperties": "responseTime", "pageSize": 2},
        )
        data = resp.json()
        assert [r["responseTime"] for r in data["jobExecutionList"]] == [10, 20]
        assert data["totalElements"] == 3
        assert data["totalPages"] == 2

        page1 = client.get(
            "/api/executions",
            params={"sortDirection": "asc", "sortProperties": "responseTime", "pageSize": 2, "pageNumber": 1},
        ).json()
        assert [r["responseTime"] for r in page1["jobExecutionList"]] == [30]

    @pytest.mark.parametrize(
        ("params", "param_name"),
        [
            ({"status": "PENDING"}, "status"),
            ({"sortDirection": "sideways"}, "sortDirection"),
            ({"pageSize": 51}, "pageSize"),
            ({"pageNumber": -1}, "pageNumber"),
            ({"sortProperties": "bogus"}, "sortProperties.bogus"),
            ({"url": "not a url"}, "url"),
            ({"from": "yesterday"}, "from"),
        ],
    )
    def test_invalid_params(self, client: TestClient, params: dict, param_name: str):
        resp = client.get("/api/executions", params=params)
        assert resp.status_code == 400
        problem = resp.json()
        assert problem["code"] == "invalid_request_params"
        assert param_name in {p["name"] for p in problem["invalidParams"]}

    def test_invalid_date_range(self, client: TestClient):
        resp = client.get(
            "/api/executions",
            params={"from": "2025-02-01T00:00:00Z", "to": "2025-01-01T00:00:00Z"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_date_range"
