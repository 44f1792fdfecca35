"""Tests for telemetry tracking, operation context and the dev logger."""

import json

import pytest

from third_party_application.core.audit import AuditAction, record_audit
from third_party_application.core.side_effects import best_effort
from third_party_application.models import Actor
from third_party_application.telemetry import (
    TelemetryEvents,
    clear_operation_context,
    export_dev_logs,
    generate_correlation_id,
    get_dev_logs,
    get_operation_context,
    get_telemetry_config,
    initialize_telemetry,
    is_debug_enabled,
    set_debug,
    set_operation_context,
    track_event,
    track_exception,
    track_metric,
)


@pytest.fixture
def operation_context():
    set_operation_context(
        request_id="req-1", actor_id="admin@example.com", application_id="app-1"
    )
    yield get_operation_context()
    clear_operation_context()


class TestTracking:
    """Test events, metrics and exceptions reach the dev logger."""

    def test_initialize_disabled(self):
        assert initialize_telemetry() is None

    def test_track_event_merges_context(self, operation_context):
        track_event("something_happened", {"key": "value"})

        events = get_dev_logs("something_happened")
        assert len(events) == 1
        properties = events[0]["properties"]
        assert properties["key"] == "value"
        assert properties["request_id"] == "req-1"
        assert properties["actor_id"] == "admin@example.com"
        assert properties["app_id"] == "third-party-application"

    def test_track_metric(self):
        track_metric("applicationsMissingRateLimitField", 3)

        metric = get_dev_logs("metric")[0]["properties"]
        assert metric["metric_name"] == "applicationsMissingRateLimitField"
        assert metric["metric_value"] == 3

    def test_track_exception(self):
        track_exception(ValueError("broken"), {"operation": "test"})

        properties = get_dev_logs("exception")[0]["properties"]
        assert properties["error_type"] == "ValueError"
        assert properties["error_message"] == "broken"
        assert properties["operation"] == "test"

    def test_export_dev_logs(self):
        track_event("first")
        track_event("second")

        lines = export_dev_logs().splitlines()

        assert [json.loads(line)["event_name"] for line in lines] == ["first", "second"]


class TestOperationContext:
    def test_defaults_to_anonymous(self, operation_context):
        set_operation_context(request_id="req-2")

        assert get_operation_context()["actor_id"] == "anonymous"

    def test_clear(self, operation_context):
        clear_operation_context()

        assert get_operation_context() == {}

    def test_correlation_ids_unique(self):
        assert generate_correlation_id() != generate_correlation_id()


class TestAudit:
    """Test audit actions recorded as telemetry."""

    def test_record_audit_with_actor(self):
        record_audit(
            AuditAction.COLLABORATOR_ADDED,
            "app-1",
            Actor.gatekeeper("gk-1"),
            {"collaboratorEmail": "new@example.com"},
        )

        properties = get_dev_logs(TelemetryEvents.COLLABORATOR_ADDED)[0]["properties"]
        assert properties["applicationId"] == "app-1"
        assert properties["actorId"] == "gk-1"
        assert properties["actorType"] == "GATEKEEPER"
        assert properties["collaboratorEmail"] == "new@example.com"

    def test_record_audit_without_actor(self):
        record_audit(AuditAction.APP_BLOCKED, "app-1")

        properties = get_dev_logs(TelemetryEvents.APPLICATION_BLOCKED)[0]["properties"]
        assert "actorId" not in properties


@pytest.mark.asyncio
class TestBestEffort:
    """Test best-effort side effects."""

    async def test_success(self):
        async def succeed():
            return "ok"

        assert await best_effort("test call", succeed()) is True
        assert get_dev_logs(TelemetryEvents.EXTERNAL_SERVICE_ERROR) == []

    async def test_failure_is_tracked(self):
        async def fail():
            raise ConnectionError("unreachable")

        assert await best_effort("test call", fail()) is False

        errors = get_dev_logs(TelemetryEvents.EXTERNAL_SERVICE_ERROR)
        assert errors[0]["properties"]["operation"] == "test call"
        assert errors[0]["properties"]["error_type"] == "ConnectionError"


class TestDevLoggerDebug:
    def test_debug_prints_events(self, capsys):
        set_debug(True)
        try:
            assert is_debug_enabled()
            track_event("debugged", {"key": "value"})
        finally:
            set_debug(False)

        assert "[Telemetry] debugged" in capsys.readouterr().out

    def test_dev_logger_disabled(self, monkeypatch):
        monkeypatch.setattr(get_telemetry_config(), "enable_dev_logger", False)

        track_event("unrecorded")
        track_metric("unrecorded_metric", 1)

        assert get_dev_logs() == []
