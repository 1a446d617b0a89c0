"""Unit tests for health checks and structured logging

Tests cover:
- Component checks reporting instead of raising
- Overall status aggregation
- JSON log lines with request id and context fields
- Metric route labels for prefixed routers
"""

import json
import logging
from types import SimpleNamespace

import pytest
from starlette.routing import compile_path

from docspace.observability.health import (
    ComponentHealth,
    HealthStatus,
    check_blob_store_health,
    check_broker_health,
    check_database_health,
    get_overall_health,
)
from docspace.observability.logging_config import JSONFormatter, RequestIDFilter
from docspace.observability.middleware import _route_template
from docspace.observability.request_id import accept_request_id, get_request_id, set_request_id


class BrokenSession:
    def execute(self, statement):
        raise RuntimeError("connection reset")


class UnreachableStore:
    def __init__(self, error=None):
        self.error = error

    def check_health(self):
        if self.error:
            raise self.error
        return False


class TestComponentChecks:
    def test_database_ok(self, db_session):
        health = check_database_health(db_session)

        assert health.status == HealthStatus.HEALTHY
        assert health.latency_ms is not None

    def test_database_error(self):
        health = check_database_health(BrokenSession())

        assert health.status == HealthStatus.UNHEALTHY
        assert health.message == "Database error: connection reset"

    def test_blob_store_ok(self, blob_store):
        assert check_blob_store_health(blob_store).status == HealthStatus.HEALTHY

    def test_blob_store_unreachable(self):
        health = check_blob_store_health(UnreachableStore())

        assert health.status == HealthStatus.UNHEALTHY
        assert health.message == "Blob store bucket unreachable"

    def test_blob_store_error(self):
        health = check_blob_store_health(UnreachableStore(RuntimeError("timeout")))

        assert health.message == "Blob store error: timeout"

    def test_broker_unreachable(self):
        health = check_broker_health("redis://127.0.0.1:1/0")

        assert health.status == HealthStatus.UNHEALTHY
        assert health.message.startswith("Broker error:")


class TestOverallHealth:
    @pytest.mark.parametrize("statuses,expected", [
        ([HealthStatus.HEALTHY, HealthStatus.HEALTHY], HealthStatus.HEALTHY),
        ([HealthStatus.HEALTHY, HealthStatus.DEGRADED], HealthStatus.DEGRADED),
        ([HealthStatus.DEGRADED, HealthStatus.UNHEALTHY], HealthStatus.UNHEALTHY),
    ])
    def test_aggregation(self, statuses, expected):
        components = {str(i): ComponentHealth(status=s) for i, s in enumerate(statuses)}
        assert get_overall_health(components) == expected


class TestJSONLogging:
    def _record(self, **extra):
        record = logging.LogRecord("docspace.test", logging.INFO, __file__, 1, "Job %s done", ("abc",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        RequestIDFilter().filter(record)
        return record

    def test_request_id_and_context_fields(self):
        set_request_id("req-123")

        line = json.loads(JSONFormatter().format(self._record(tenant_id="t1", job_id="j1")))

        assert line["request_id"] == "req-123"
        assert line["message"] == "Job abc done"
        assert line["tenant_id"] == "t1"
        assert line["job_id"] == "j1"
        assert "user_id" not in line
        set_request_id(None)

    def test_default_request_id(self):
        set_request_id(None)
        assert get_request_id() == "no-request-id"

    @pytest.mark.parametrize("header,kept", [
        ("req-42", True),
        ("svc:edge.7_a", True),
        ("bad id\nlevel=ERROR", False),
        ("", False),
        (None, False),
    ])
    def test_incoming_request_id(self, header, kept):
        accepted = accept_request_id(header)

        if kept:
            assert accepted == header
        else:
            assert len(accepted) == 32


def _matched(template, path):
    path_regex, path_format, _ = compile_path(template)
    route = SimpleNamespace(path_regex=path_regex, path_format=path_format)
    return SimpleNamespace(scope={"route": route}, url=SimpleNamespace(path=path))


class TestRouteTemplate:
    @pytest.mark.parametrize("template,path,expected", [
        ("/api/v1/files/{file_id}", "/api/v1/files/abc", "/api/v1/files/{file_id}"),
        ("/files/{file_id}", "/api/v1/files/abc", "/api/v1/files/{file_id}"),
        ("/admin/blobs/{store}/{key:path}", "/api/v1/admin/blobs/user-files/a/b.txt", "/api/v1/admin/blobs/{store}/{key}"),
        ("/health", "/health", "/health"),
    ])
    def test_label_includes_mount_prefix(self, template, path, expected):
        assert _route_template(_matched(template, path)) == expected

    def test_unmatched(self):
        request = SimpleNamespace(scope={}, url=SimpleNamespace(path="/nowhere"))

        assert _route_template(request) == "unmatched"
