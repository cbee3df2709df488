"""
Tests for audit entries, sinks and the audit trail.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

import pytest
from aiohttp import test_utils, web

from accessctl.audit import (
    AccessLogEntry,
    AuditConfig,
    AuditSink,
    AuditTrail,
    ConsoleAuditSink,
    FileAuditSink,
    MemoryAuditSink,
    RemoteAuditSink,
    create_audit_sink,
)
from accessctl.authz import (
    AccessEvaluationResult,
    PermissionRule,
    RecordContext,
    UserContext,
    evaluate_access,
)
from accessctl.types.errors import ConfigurationError


@pytest.fixture
def context():
    return UserContext(user_id="u1", role="member", tenant_id="t1", attributes={"region": "eu"})


@pytest.fixture
def denied_entry(context):
    return AccessLogEntry.from_decision(
        "orders", "read", context,
        AccessEvaluationResult.deny("No access to field 'cost'"),
        record=RecordContext(id="o1", attributes={"tenantId": "t1"}),
        field="cost",
    )


@pytest.fixture
def allowed_entry(context):
    return AccessLogEntry.from_decision("orders", "read", context, AccessEvaluationResult.allow())


class FailingSink(AuditSink):
    """Sink whose delivery always blows up."""

    async def write(self, entry):
        raise RuntimeError("disk on fire")


class SlowSink(MemoryAuditSink):
    """Sink that waits until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def write(self, entry):
        await self.release.wait()
        await super().write(entry)


async def start_server(handler):
    app = web.Application()
    app.router.add_post("/", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


class TestAccessLogEntry:
    """Test entry construction and serialization."""

    def test_from_decision(self, denied_entry):
        assert denied_entry.resource == "orders"
        assert denied_entry.can is False
        assert denied_entry.record_id == "o1"
        assert denied_entry.field == "cost"
        assert denied_entry.reason == "No access to field 'cost'"
        assert denied_entry.context == {"userId": "u1", "role": "member", "tenantId": "t1", "region": "eu"}
        assert denied_entry.timestamp.tzinfo is not None

    def test_record_id_from_mapping(self, context):
        entry = AccessLogEntry.from_decision(
            "orders", "read", context, AccessEvaluationResult.allow(), record={"id": 42}
        )
        assert entry.record_id == "42"

    def test_level_and_message(self, denied_entry, allowed_entry):
        assert denied_entry.level == "warn"
        assert denied_entry.message == "Auth DENIED: read orders.cost"
        assert allowed_entry.level == "info"
        assert allowed_entry.message == "Auth ALLOWED: read orders"

    def test_to_dict_wire_names(self, denied_entry, allowed_entry):
        data = denied_entry.to_dict()

        assert data["recordId"] == "o1"
        assert data["field"] == "cost"
        assert data["can"] is False
        assert "recordId" not in allowed_entry.to_dict()
        assert "reason" not in allowed_entry.to_dict()

    def test_from_dict(self, denied_entry):
        assert AccessLogEntry.from_dict(json.loads(denied_entry.to_json())) == denied_entry

    def test_context_is_snapshot(self):
        raw = {"userId": "u1"}
        entry = AccessLogEntry.from_decision("orders", "read", raw, AccessEvaluationResult.allow())
        raw["userId"] = "u2"

        assert entry.context["userId"] == "u1"

        with pytest.raises(TypeError):
            entry.context["userId"] = "u3"
        assert hash(entry) == hash(entry)


class TestSinks:
    """Test the delivery adapters."""

    @pytest.mark.asyncio
    async def test_console_sink_levels(self, caplog, denied_entry, allowed_entry):
        sink = ConsoleAuditSink()

        with caplog.at_level(logging.INFO, logger="accessctl.audit"):
            await sink.write(allowed_entry)
            await sink.write(denied_entry)

        levels = [record.levelno for record in caplog.records if record.name == "accessctl.audit"]
        assert levels == [logging.INFO, logging.WARNING]
        assert "Auth DENIED: read orders.cost" in caplog.text

    @pytest.mark.asyncio
    async def test_memory_sink_filters(self, denied_entry, allowed_entry):
        sink = MemoryAuditSink(max_entries=2)
        await sink.write(allowed_entry)
        await sink.write(denied_entry)
        await sink.write(denied_entry)

        assert len(sink.entries) == 2
        assert sink.get_entries(can=False) == [denied_entry, denied_entry]
        assert sink.get_entries(resource="users") == []

    @pytest.mark.asyncio
    async def test_file_sink_appends_ndjson(self, tmp_path, denied_entry, allowed_entry):
        path = tmp_path / "logs" / "access.log"
        sink = FileAuditSink(str(path))

        await sink.write(allowed_entry)
        await sink.write(denied_entry)

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["can"] is True
        assert json.loads(lines[1])["reason"] == "No access to field 'cost'"

    @pytest.mark.asyncio
    async def test_file_sink_failure_is_logged(self, tmp_path, caplog, denied_entry):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        sink = FileAuditSink(str(blocker / "access.log"))

        with caplog.at_level(logging.ERROR, logger="accessctl.audit.logger"):
            await sink.write(denied_entry)

        assert "Failed to write audit log" in caplog.text

    @pytest.mark.asyncio
    async def test_remote_sink_posts_payload(self, denied_entry):
        received = []

        async def ingest(request):
            received.append((request.headers["Authorization"], await request.json()))
            return web.Response(status=202)

        server = await start_server(ingest)
        sink = RemoteAuditSink(source_token="tok", endpoint=str(server.make_url("/")), service="orders-api")
        try:
            await sink.write(denied_entry)
        finally:
            await sink.close()
            await server.close()

        assert len(received) == 1
        auth, body = received[0]
        assert auth == "Bearer tok"
        assert body["level"] == "warn"
        assert body["message"] == "Auth DENIED: read orders.cost"
        assert body["service"] == "orders-api"
        assert body["recordId"] == "o1"
        assert body["can"] is False

    @pytest.mark.asyncio
    async def test_remote_sink_non_2xx_is_logged(self, caplog, allowed_entry):
        async def reject(request):
            return web.Response(status=401, text="bad token")

        server = await start_server(reject)
        sink = RemoteAuditSink(source_token="tok", endpoint=str(server.make_url("/")))
        try:
            with caplog.at_level(logging.ERROR, logger="accessctl.audit.logger"):
                await sink.write(allowed_entry)
        finally:
            await sink.close()
            await server.close()

        assert "401 bad token" in caplog.text

    @pytest.mark.asyncio
    async def test_remote_sink_transport_error_is_swallowed(self, caplog, allowed_entry):
        async def ok(request):
            return web.Response()

        server = await start_server(ok)
        endpoint = str(server.make_url("/"))
        await server.close()

        sink = RemoteAuditSink(source_token="tok", endpoint=endpoint, timeout=1.0)
        try:
            with caplog.at_level(logging.ERROR, logger="accessctl.audit.logger"):
                await sink.write(allowed_entry)
        finally:
            await sink.close()

        assert "Error sending log" in caplog.text

    @pytest.mark.asyncio
    async def test_remote_sink_timeout_is_swallowed(self, caplog, allowed_entry):
        async def stall(request):
            await asyncio.sleep(1)
            return web.Response()

        server = await start_server(stall)
        sink = RemoteAuditSink(source_token="tok", endpoint=str(server.make_url("/")), timeout=0.1)
        try:
            with caplog.at_level(logging.ERROR, logger="accessctl.audit.logger"):
                await sink.write(allowed_entry)
        finally:
            await sink.close()
            await server.close()

        assert "Error sending log" in caplog.text


class TestAuditConfig:
    """Test sink selection."""

    def test_defaults_to_console(self, monkeypatch):
        monkeypatch.delenv("ACCESSCTL_AUDIT_TARGET", raising=False)

        assert isinstance(create_audit_sink(), ConsoleAuditSink)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ACCESSCTL_AUDIT_TARGET", "FILE")
        monkeypatch.setenv("ACCESSCTL_AUDIT_FILE_PATH", str(tmp_path / "a.log"))
        monkeypatch.setenv("ACCESSCTL_AUDIT_TIMEOUT", "2.5")

        config = AuditConfig.from_env()
        sink = create_audit_sink(config)

        assert config.target == "file"
        assert config.timeout == 2.5
        assert isinstance(sink, FileAuditSink)
        assert sink.file_path == str(tmp_path / "a.log")

    def test_remote_without_token_falls_back(self, caplog):
        with caplog.at_level(logging.WARNING, logger="accessctl.audit.logger"):
            sink = create_audit_sink(AuditConfig(target="remote"))

        assert isinstance(sink, ConsoleAuditSink)
        assert "falling back to console" in caplog.text

    def test_remote_with_token(self):
        sink = create_audit_sink(AuditConfig(target="remote", source_token="tok", endpoint="http://logs.local"))

        assert isinstance(sink, RemoteAuditSink)
        assert sink.endpoint == "http://logs.local"

    def test_memory_target(self):
        assert isinstance(create_audit_sink(AuditConfig(target="memory")), MemoryAuditSink)

    def test_unknown_target(self):
        with pytest.raises(ConfigurationError):
            create_audit_sink(AuditConfig(target="syslog"))

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError):
            AuditConfig(timeout=0).validate()


class TestAuditTrail:
    """Test non-blocking delivery."""

    @pytest.mark.asyncio
    async def test_record_schedules_delivery(self, context):
        sink = MemoryAuditSink()
        trail = AuditTrail(sink)

        entry = trail.record("orders", "read", context, AccessEvaluationResult.allow(), field="total")
        await trail.flush()

        assert list(sink.entries) == [entry]
        assert trail.pending == 0

    @pytest.mark.asyncio
    async def test_record_does_not_wait_for_sink(self, context):
        sink = SlowSink()
        trail = AuditTrail(sink)

        trail.record("orders", "read", context, AccessEvaluationResult.allow())

        assert trail.pending == 1
        assert len(sink.entries) == 0

        sink.release.set()
        await trail.flush()
        assert len(sink.entries) == 1

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_raise(self, caplog, context):
        trail = AuditTrail(FailingSink())

        with caplog.at_level(logging.ERROR, logger="accessctl.audit.trail"):
            trail.record("orders", "read", context, AccessEvaluationResult.allow())
            await trail.flush()
            await trail.write(AccessLogEntry("orders", "read", True))

        assert "disk on fire" in caplog.text

    @pytest.mark.asyncio
    async def test_forced_network_failure_does_not_raise(self, context):
        trail = AuditTrail(RemoteAuditSink(source_token="tok", endpoint="http://127.0.0.1:1/", timeout=0.5))

        trail.record("orders", "read", context, AccessEvaluationResult.deny("No matching rule found"))
        await trail.close()

        assert trail.pending == 0

    def test_record_from_sync_code(self, context):
        sink = MemoryAuditSink()
        trail = AuditTrail(sink)

        trail.record("orders", "read", context, AccessEvaluationResult.allow())
        trail.flush_sync(timeout=5)

        assert len(sink.entries) == 1
        asyncio.run(trail.close())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("make_sink", [
        lambda tmp_path: ConsoleAuditSink(),
        lambda tmp_path: FileAuditSink(str(tmp_path / "access.log")),
        lambda tmp_path: RemoteAuditSink(source_token="tok", endpoint="http://127.0.0.1:1/", timeout=0.5),
        lambda tmp_path: MemoryAuditSink(),
    ])
    async def test_sink_swap_does_not_change_decision(self, make_sink, tmp_path, context):
        rules = [PermissionRule(resource="orders", action="read", field_permissions={"cost": "none"})]
        trail = AuditTrail(make_sink(tmp_path))

        result = evaluate_access(rules, context, "orders", "read", field="cost")
        entry = trail.record("orders", "read", context, result, field="cost")
        await trail.close()

        assert result == AccessEvaluationResult(can=False, reason="No access to field 'cost'")
        assert entry.reason == result.reason

    def test_from_config(self):
        trail = AuditTrail.from_config(AuditConfig(target="memory"))

        assert isinstance(trail.sink, MemoryAuditSink)

    def test_file_sink_serves_sync_and_async_callers(self, tmp_path, context):
        path = tmp_path / "access.log"
        trail = AuditTrail(FileAuditSink(str(path)))

        for _ in range(10):
            trail.record("orders", "read", context, AccessEvaluationResult.allow())
        trail.flush_sync(timeout=5)

        async def record_from_loop():
            for _ in range(10):
                trail.record("orders", "read", context, AccessEvaluationResult.deny("No matching rule found"))
            await trail.flush()

        asyncio.run(record_from_loop())
        asyncio.run(trail.close())

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert len(lines) == 20
        assert sum(1 for line in lines if line["can"]) == 10
