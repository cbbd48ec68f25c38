"""Utility functions for backup/restore operations."""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from .._utils import json_default, logger, utc_now
from .models import SnapshotDocument

TRIP_PREFIX = "trip"


def generate_backup_id(now: Optional[datetime] = None) -> str:
    """Generate backup ID from the creation time.

    Returns:
        Backup ID in format: backup_<epoch milliseconds>
    """
    now = now or utc_now()
    return f"backup_{int(now.timestamp() * 1000)}"


def default_file_name(now: Optional[datetime] = None) -> str:
    """Default blob name: system-backup-YYYY-MM-DD-<epoch milliseconds>."""
    now = now or utc_now()
    return f"system-backup-{now.strftime('%Y-%m-%d')}-{int(now.timestamp() * 1000)}"


def compute_checksum(data: bytes) -> str:
    """Compute SHA-256 checksum of serialized snapshot bytes.

    Args:
        data: Blob contents

    Returns:
        SHA-256 checksum as hex string with 'sha256:' prefix
    """
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def verify_checksum(data: bytes, expected_checksum: str) -> bool:
    """Verify blob checksum.

    Args:
        data: Blob contents
        expected_checksum: Expected checksum (with 'sha256:' prefix)

    Returns:
        True if checksum matches, False otherwise
    """
    return compute_checksum(data) == expected_checksum


def serialize_snapshot(snapshot: SnapshotDocument) -> bytes:
    """Serialize a snapshot to the JSON blob format.

    Datetimes inside document data become ``{seconds, nanoseconds}`` maps.
    """
    payload = snapshot.model_dump(by_alias=True)
    data = json.dumps(payload, indent=2, default=json_default).encode("utf-8")
    logger.debug(f"Serialized snapshot {snapshot.metadata.backup_id}: {len(data):,} bytes")
    return data


def deserialize_snapshot(data: bytes) -> SnapshotDocument:
    """Parse blob bytes back into a SnapshotDocument.

    Timestamp maps stay as plain dicts here; they are converted to native
    datetimes at restore time, right before each write.
    """
    payload: Dict[str, Any] = json.loads(data.decode("utf-8"))
    return SnapshotDocument.model_validate(payload)


def discover_trip_names(date_document: Dict[str, Any]) -> List[str]:
    """Find the trip maps embedded in a dailyTrips date document.

    A field is a trip when its key starts with "trip" and its value is a map;
    ``{"trip1": {...}, "tripNotes": "hello", "trip2": {...}}`` gives
    ``["trip1", "trip2"]``. Field order is preserved.
    """
    return [
        key for key, value in date_document.items()
        if key.startswith(TRIP_PREFIX) and isinstance(value, dict)
    ]
