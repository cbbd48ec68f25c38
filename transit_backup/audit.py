"""Audit trail sinks.

Audit logging is fire-and-forget: a sink that cannot record an event logs
the failure and returns ``None`` so the calling operation carries on.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from ._utils import join_path, logger, utc_now
from .base import BaseDocumentStore


class ActivityType(str, Enum):
    SYSTEM_BACKUP = "SYSTEM_BACKUP"
    SYSTEM_RESTORE = "SYSTEM_RESTORE"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    DATA_EXPORT = "DATA_EXPORT"


def remove_none_values(value: Any) -> Any:
    """Recursively drop ``None`` entries from dicts (lists keep their length)."""
    if isinstance(value, dict):
        return {k: remove_none_values(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [remove_none_values(v) for v in value]
    return value


@dataclass
class BaseAuditSink:
    async def log_activity(
        self,
        kind: Union[ActivityType, str],
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
        severity: str = "info",
    ) -> Optional[str]:
        """Record an audit event; returns the event id when the sink assigns one."""
        activity_type = kind.value if isinstance(kind, ActivityType) else str(kind)
        try:
            return await self._write(
                activity_type, description, remove_none_values(metadata or {}), severity
            )
        except Exception as e:
            logger.error(f"Failed to log activity {activity_type}: {e}")
            return None

    async def _write(
        self, activity_type: str, description: str, metadata: Dict[str, Any], severity: str
    ) -> Optional[str]:
        raise NotImplementedError


@dataclass
class LoggingAuditSink(BaseAuditSink):
    """Writes audit events to the process log only."""

    async def _write(self, activity_type, description, metadata, severity):
        message = f"[audit] {activity_type}: {description} {metadata}"
        if severity == "error":
            logger.error(message)
        elif severity == "warning":
            logger.warning(message)
        else:
            logger.info(message)
        return None


@dataclass
class DocumentAuditSink(BaseAuditSink):
    """Appends audit events to the ``AuditLogs`` collection of the document store."""

    document_store: BaseDocumentStore
    collection: str = "AuditLogs"

    async def _write(self, activity_type, description, metadata, severity):
        event_id = uuid.uuid4().hex
        await self.document_store.set_document(
            join_path(self.collection, event_id),
            {
                "activityType": activity_type,
                "description": description,
                "metadata": metadata,
                "severity": severity,
                "timestamp": utc_now(),
            },
        )
        logger.debug(f"Audit event {event_id}: {activity_type}")
        return event_id
