"""Test utilities for transit-backup tests."""
import fnmatch
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from transit_backup.audit import BaseAuditSink
from transit_backup.base import BaseDocumentStore


def ts(seconds: int) -> datetime:
    """UTC datetime from epoch seconds."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


@dataclass
class RecordingAuditSink(BaseAuditSink):
    """Audit sink that keeps events in memory for assertions."""
    events: List[Dict[str, Any]] = field(default_factory=list)

    async def _write(self, activity_type, description, metadata, severity):
        self.events.append({
            "activity_type": activity_type,
            "description": description,
            "metadata": metadata,
            "severity": severity,
        })
        return str(len(self.events))

    def of_type(self, activity_type: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["activity_type"] == activity_type]


# Documents written by seed_conductor: profile, date, two trip1 tickets,
# one each of preTickets/preBookings/scannedQRCodes, remittance date and ticket
SEEDED_CONDUCTOR_DOCUMENTS = 9


async def seed_conductor(store: BaseDocumentStore, conductor_id: str = "c1", date_id: str = "2024-01-01") -> None:
    base = f"conductors/{conductor_id}"
    await store.set_document(base, {"name": "Juan Dela Cruz", "busNumber": "B-12", "createdAt": ts(1700000000)})
    await store.set_document(
        f"{base}/dailyTrips/{date_id}",
        {
            "trip1": {"route": "Manila - Baguio", "startTime": ts(1700003600)},
            "tripNotes": "hello",
            "trip2": {"route": "Baguio - Manila"},
        },
    )
    await store.set_document(
        f"{base}/dailyTrips/{date_id}/trip1/tickets/tickets/t1",
        {"fare": 450, "submittedAt": ts(1700000000)},
    )
    await store.set_document(f"{base}/dailyTrips/{date_id}/trip1/tickets/tickets/t2", {"fare": 300})
    await store.set_document(f"{base}/preTickets/p1", {"seat": 4})
    await store.set_document(f"{base}/preBookings/b1", {"seat": 7, "paid": True})
    await store.set_document(f"{base}/scannedQRCodes/q1", {"code": "QR-1"})
    await store.set_document(f"{base}/remittance/{date_id}", {"total": 750})
    await store.set_document(f"{base}/remittance/{date_id}/tickets/r1", {"amount": 450})


async def seed_flat(store: BaseDocumentStore) -> None:
    await store.set_document("Admin/a1", {"email": "root@transit.ph", "role": "superadmin"})
    await store.set_document("Admin/a2", {"email": "ops@transit.ph", "role": "admin"})
    await store.set_document("users/u1", {"name": "Maria", "joinedAt": ts(1690000000)})


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the backends use."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.closed = False

    async def ping(self):
        return True

    async def get(self, key):
        return self.data.get(key)

    async def mget(self, keys):
        return [self.data.get(k) for k in keys]

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def sadd(self, key, *members):
        self.data.setdefault(key, set()).update(members)
        return len(members)

    async def srem(self, key, *members):
        members_set = self.data.get(key, set())
        for member in members:
            members_set.discard(member)
        if not members_set:
            self.data.pop(key, None)
        return len(members)

    async def smembers(self, key):
        return set(self.data.get(key, set()))

    async def scan_iter(self, match: Optional[str] = None, count: Optional[int] = None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def close(self):
        self.closed = True
