"""Tests for backup utility functions."""

import json
from datetime import datetime, timezone

from transit_backup.backup.models import (
    CollectionSnapshot,
    ConductorForest,
    DocumentRecord,
    SnapshotDocument,
    SnapshotMetadata,
)
from transit_backup.backup.utils import (
    compute_checksum,
    default_file_name,
    deserialize_snapshot,
    discover_trip_names,
    generate_backup_id,
    serialize_snapshot,
    verify_checksum,
)

CREATED = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)


def _snapshot(**data) -> SnapshotDocument:
    return SnapshotDocument(
        metadata=SnapshotMetadata(
            backup_id="backup_1", created_at=CREATED, expires_at=CREATED, collections=list(data)
        ),
        data=data,
    )


def test_discover_trip_names_only_maps():
    date_document = {"trip1": {"route": "A"}, "tripNotes": "hello", "trip2": {"route": "B"}}
    assert discover_trip_names(date_document) == ["trip1", "trip2"]


def test_discover_trip_names_requires_prefix():
    assert discover_trip_names({"route": {"a": 1}, "Trip3": {}, "trips": []}) == []


def test_generate_backup_id_and_file_name():
    assert generate_backup_id(CREATED) == f"backup_{int(CREATED.timestamp() * 1000)}"
    assert default_file_name(CREATED) == f"system-backup-2024-05-01-{int(CREATED.timestamp() * 1000)}"


def test_checksum():
    checksum = compute_checksum(b"payload")
    assert checksum.startswith("sha256:")
    assert verify_checksum(b"payload", checksum)
    assert not verify_checksum(b"tampered", checksum)


def test_serialize_uses_wire_keys():
    snapshot = _snapshot(
        ADMIN=CollectionSnapshot(
            collection="Admin",
            count=1,
            documents=[DocumentRecord(id="a1", data={"lastLogin": datetime(1970, 1, 1, 0, 1, tzinfo=timezone.utc)})],
        ),
        CONDUCTOR_DATA=ConductorForest(count=0, total_documents=0),
    )

    payload = json.loads(serialize_snapshot(snapshot))

    assert payload["metadata"]["backupId"] == "backup_1"
    assert payload["metadata"]["createdAt"].startswith("2024-05-01T06:00:00")
    assert payload["data"]["ADMIN"]["collection"] == "Admin"
    assert payload["data"]["ADMIN"]["documents"][0]["data"]["lastLogin"] == {"seconds": 60, "nanoseconds": 0}
    assert payload["data"]["CONDUCTOR_DATA"]["collection"] == "conductors_complete"
    assert payload["data"]["CONDUCTOR_DATA"]["totalDocuments"] == 0


def test_deserialize_keeps_collection_kinds_apart():
    snapshot = _snapshot(
        ADMIN=CollectionSnapshot(collection="Admin", count=0, documents=[]),
        CONDUCTOR_DATA=ConductorForest(count=0, total_documents=0),
        USERS=CollectionSnapshot(collection="users", count=0, documents=[], error="permission denied"),
    )

    restored = deserialize_snapshot(serialize_snapshot(snapshot))

    assert isinstance(restored.data["ADMIN"], CollectionSnapshot)
    assert isinstance(restored.data["CONDUCTOR_DATA"], ConductorForest)
    assert restored.data["USERS"].error == "permission denied"
    assert restored.metadata.created_at == CREATED


def test_deserialize_reads_legacy_console_file():
    legacy = {
        "metadata": {
            "backupId": "backup_1714543200000",
            "createdAt": "2024-05-01T06:00:00.000Z",
            "expiresAt": "2024-05-31T06:00:00.000Z",
            "collections": ["CONDUCTOR_DATA"],
            "version": "1.0",
        },
        "data": {
            "CONDUCTOR_DATA": {
                "collection": "conductors_complete",
                "count": 1,
                "totalDocuments": 2,
                "documents": {
                    "c1": {
                        "profile": {"name": "Juan"},
                        "subcollections": {
                            "dailyTrips": {
                                "2024-05-01": {
                                    "data": {"trip1": {"route": "A"}},
                                    "trips": {"trip1": {"tickets": [{"id": "t1", "data": {"fare": 10}}]}},
                                }
                            },
                            "scannedQRCodes": {"q1": {"code": "QR"}},
                        },
                    }
                },
            }
        },
    }

    snapshot = deserialize_snapshot(json.dumps(legacy).encode())

    forest = snapshot.data["CONDUCTOR_DATA"]
    assert isinstance(forest, ConductorForest)
    conductor = forest.documents["c1"]
    assert conductor.subcollections.daily_trips["2024-05-01"].trips["trip1"].tickets[0].id == "t1"
    assert conductor.subcollections.scanned_qr_codes == {"q1": {"code": "QR"}}
    assert conductor.subcollections.pre_tickets == {}
    assert snapshot.total_documents() == 4


def test_deserialize_reads_flat_legacy_remittance():
    legacy = {
        "metadata": {
            "backupId": "backup_1714543200000",
            "createdAt": "2024-05-01T06:00:00.000Z",
            "expiresAt": "2024-05-31T06:00:00.000Z",
            "collections": ["CONDUCTOR_DATA"],
        },
        "data": {
            "CONDUCTOR_DATA": {
                "collection": "conductors_complete",
                "count": 1,
                "documents": {
                    "c1": {
                        "profile": {"name": "Juan"},
                        "subcollections": {
                            "remittance": {"2024-05-01": {"totalAmount": 500, "remittedBy": "Juan"}},
                        },
                    }
                },
            }
        },
    }

    snapshot = deserialize_snapshot(json.dumps(legacy).encode())

    remittance = snapshot.data["CONDUCTOR_DATA"].documents["c1"].subcollections.remittance["2024-05-01"]
    assert remittance.data == {"totalAmount": 500, "remittedBy": "Juan"}
    assert remittance.tickets == {}
    assert snapshot.total_documents() == 2


def test_current_remittance_shape_is_not_reinterpreted():
    snapshot = _snapshot()
    payload = json.loads(serialize_snapshot(snapshot))
    payload["metadata"]["collections"] = ["CONDUCTOR_DATA"]
    payload["data"]["CONDUCTOR_DATA"] = {
        "collection": "conductors_complete",
        "count": 1,
        "documents": {
            "c1": {
                "profile": {},
                "subcollections": {
                    "remittance": {"2024-05-01": {"data": {"total": 750}, "tickets": {"r1": {"amount": 450}}}},
                },
            }
        },
    }

    parsed = deserialize_snapshot(json.dumps(payload).encode())

    remittance = parsed.data["CONDUCTOR_DATA"].documents["c1"].subcollections.remittance["2024-05-01"]
    assert remittance.data == {"total": 750}
    assert remittance.tickets == {"r1": {"amount": 450}}
