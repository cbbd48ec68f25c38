"""Tests for audit sinks."""

from datetime import datetime

import pytest

from transit_backup.audit import ActivityType, DocumentAuditSink, LoggingAuditSink, remove_none_values
from transit_backup.base import BaseDocumentStore


def test_remove_none_values():
    assert remove_none_values({"a": None, "b": {"c": None, "d": 1}, "e": [None, 2]}) == {
        "b": {"d": 1},
        "e": [None, 2],
    }


@pytest.mark.asyncio
async def test_document_sink_writes_audit_log(document_store):
    sink = DocumentAuditSink(document_store)

    event_id = await sink.log_activity(
        ActivityType.SYSTEM_BACKUP,
        "System backup created: nightly",
        {"backupId": "backup_1", "error": None},
    )

    stored = await document_store.get_document(f"AuditLogs/{event_id}")
    assert stored["activityType"] == "SYSTEM_BACKUP"
    assert stored["description"] == "System backup created: nightly"
    assert stored["metadata"] == {"backupId": "backup_1"}
    assert stored["severity"] == "info"
    assert isinstance(stored["timestamp"], datetime)


@pytest.mark.asyncio
async def test_failing_sink_never_raises():
    class BrokenStore(BaseDocumentStore):
        async def set_document(self, path, data):
            raise ConnectionError("store offline")

    sink = DocumentAuditSink(BrokenStore(namespace="broken"))
    assert await sink.log_activity(ActivityType.SYSTEM_ERROR, "x", severity="error") is None


@pytest.mark.asyncio
async def test_logging_sink_accepts_plain_strings():
    assert await LoggingAuditSink().log_activity("CUSTOM_EVENT", "something happened") is None
