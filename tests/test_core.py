"""Tests for database setup and structured logging."""

import json
import logging

from fastapi.testclient import TestClient

from figsync.core.database import check_database, engine_options
from figsync.core.logging import (
    DevelopmentFormatter,
    JSONFormatter,
    get_context_logger,
    request_id_var,
    user_id_var,
)
from tests.conftest import USER_ID


def _record(**extra_fields) -> logging.LogRecord:
    record = logging.LogRecord(
        name="figsync.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Import processed",
        args=(),
        exc_info=None,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


class TestEngineOptions:
    def test_sqlite_allows_cross_thread_sessions(self):
        options = engine_options("sqlite:///./local.db")

        assert options == {"connect_args": {"check_same_thread": False}}

    def test_postgres_uses_pool_settings(self):
        options = engine_options("postgresql://user:pass@db:5432/figsync")

        assert options["pool_pre_ping"] is True
        assert options["pool_size"] == 10
        assert options["max_overflow"] == 20


class TestDatabaseCheck:
    def test_live_session(self, db):
        assert check_database(db) is True

    def test_readiness_endpoint(self, client: TestClient):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"database": "connected"}}


class TestJSONFormatter:
    def test_includes_request_and_user_context(self):
        request_token = request_id_var.set("req-123")
        user_token = user_id_var.set(USER_ID)
        try:
            data = json.loads(JSONFormatter().format(_record(job_id="job-1")))
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)

        assert data["message"] == "Import processed"
        assert data["request_id"] == "req-123"
        assert data["user_id"] == USER_ID
        assert data["job_id"] == "job-1"

    def test_omits_missing_context(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert "request_id" not in data
        assert "user_id" not in data


class TestDevelopmentFormatter:
    def test_appends_extra_fields(self):
        user_token = user_id_var.set(USER_ID)
        try:
            line = DevelopmentFormatter().format(_record(inserted=2))
        finally:
            user_id_var.reset(user_token)

        assert f"<{USER_ID}>" in line
        assert "Import processed {'inserted': 2}" in line


class TestContextLogger:
    def test_merges_adapter_and_call_fields(self, caplog):
        logger = get_context_logger("figsync.test", user_id=USER_ID, batch_size=3)

        with caplog.at_level(logging.INFO, logger="figsync.test"):
            logger.info("Import processed", extra={"extra_fields": {"inserted": 2}})

        fields = caplog.records[-1].extra_fields
        assert fields == {"user_id": USER_ID, "batch_size": 3, "inserted": 2}
