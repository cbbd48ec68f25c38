"""Logical collections an operator can select for backup."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

from .walkers.tree_walker import FLAT, CollectionShape


class CollectionKind(str, Enum):
    FLAT = "flat"
    CONDUCTOR_FOREST = "conductor_forest"


@dataclass(frozen=True)
class LogicalCollection:
    key: str
    name: str
    collection: str
    description: str
    kind: CollectionKind = CollectionKind.FLAT
    shape: CollectionShape = field(default=FLAT)


BACKUP_COLLECTIONS: Dict[str, LogicalCollection] = {
    "ADMIN": LogicalCollection(
        key="ADMIN",
        name="Admin Users",
        collection="Admin",
        description="Admin user accounts and permissions",
    ),
    "USERS": LogicalCollection(
        key="USERS",
        name="Users",
        collection="users",
        description="Regular user accounts",
    ),
    "BUS_RESERVATIONS": LogicalCollection(
        key="BUS_RESERVATIONS",
        name="Bus Reservations",
        collection="busReservations",
        description="Bus booking and reservation data",
    ),
    "ACTIVITY_LOGS": LogicalCollection(
        key="ACTIVITY_LOGS",
        name="Activity Logs",
        collection="AuditLogs",
        description="System audit and activity logs",
    ),
    "TRIP_SCHEDULES": LogicalCollection(
        key="TRIP_SCHEDULES",
        name="Trip Schedules",
        collection="trip_sched",
        description="Bus route schedules and timing",
    ),
    "CONDUCTOR_DATA": LogicalCollection(
        key="CONDUCTOR_DATA",
        name="Conductor Data (Complete)",
        collection="conductors",
        description=(
            "Complete conductor data including profiles, dailyTrips, preTickets, "
            "preBookings, scannedQRCodes and remittance"
        ),
        kind=CollectionKind.CONDUCTOR_FOREST,
    ),
}


def resolve_collection(
    key: str, registry: Optional[Mapping[str, LogicalCollection]] = None
) -> Optional[LogicalCollection]:
    """Look up a logical collection by key, case-insensitively."""
    registry = BACKUP_COLLECTIONS if registry is None else registry
    return registry.get(key.upper())
