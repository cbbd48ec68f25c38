"""Collector for the conductor entity tree.

Layout under ``conductors/{conductorId}``::

    dailyTrips/{date}                      date document, one map field per trip
        {tripName}/tickets/tickets/{id}
        {tripName}/preBookings/preBookings/{id}
        {tripName}/preTickets/preTickets/{id}
    preTickets/{id}
    preBookings/{id}
    scannedQRCodes/{id}
    remittance/{date}
        tickets/{id}

Trip names are not fixed: they are discovered per date document by
``discover_trip_names``.
"""

from typing import Dict, List, Optional, Tuple

from ..._utils import gather_or_cancel, join_path, logger
from ..models import (
    ConductorForest,
    ConductorSnapshot,
    ConductorSubcollections,
    DailyTripSnapshot,
    DocumentRecord,
    RemittanceSnapshot,
    TripRecord,
)
from ..utils import discover_trip_names
from .tree_walker import FLAT, CollectionShape, TreeWalker

TRIP_SUBCOLLECTIONS = ("tickets", "preBookings", "preTickets")
FLAT_SUBCOLLECTIONS = ("preTickets", "preBookings", "scannedQRCodes")
REMITTANCE_SHAPE = CollectionShape({"tickets": FLAT})


def trip_collection_path(date_path: str, trip_name: str, kind: str) -> str:
    """``.../dailyTrips/{date}/{trip}/{kind}/{kind}``: the leaf collection of one trip."""
    return join_path(date_path, trip_name, kind, kind)


class ConductorTreeWalker(TreeWalker):

    async def collect(self, root_path: str = "conductors", shape: Optional[CollectionShape] = None) -> ConductorForest:
        conductors = await self.list_documents(root_path)
        snapshots = await gather_or_cancel(
            self.collect_conductor(root_path, conductor_id, profile)
            for conductor_id, profile in conductors
        )
        documents = {conductor_id: snapshot for (conductor_id, _), snapshot in zip(conductors, snapshots)}
        forest = ConductorForest(
            source_path=root_path,
            count=len(documents),
            total_documents=sum(s.document_count() for s in documents.values()),
            documents=documents,
        )
        logger.info(
            f"Collected {forest.count} conductors ({forest.total_documents} documents) from {root_path}"
        )
        return forest

    async def collect_conductor(self, root_path: str, conductor_id: str, profile: dict) -> ConductorSnapshot:
        base = join_path(root_path, conductor_id)
        daily_trips, flat, remittance = await gather_or_cancel([
            self.collect_daily_trips(join_path(base, "dailyTrips")),
            gather_or_cancel(self._collect_flat(join_path(base, name)) for name in FLAT_SUBCOLLECTIONS),
            self.collect_remittance(join_path(base, "remittance")),
        ])
        pre_tickets, pre_bookings, scanned = flat
        return ConductorSnapshot(
            profile=profile,
            subcollections=ConductorSubcollections(
                daily_trips=daily_trips,
                pre_tickets=pre_tickets,
                pre_bookings=pre_bookings,
                scanned_qr_codes=scanned,
                remittance=remittance,
            ),
        )

    async def _collect_flat(self, path: str) -> Dict[str, dict]:
        return {doc_id: data for doc_id, data in await self.list_documents(path)}

    async def collect_daily_trips(self, path: str) -> Dict[str, DailyTripSnapshot]:
        dates = await self.list_documents(path)
        days = await gather_or_cancel(
            self.collect_day(join_path(path, date_id), data) for date_id, data in dates
        )
        return {date_id: day for (date_id, _), day in zip(dates, days)}

    async def collect_day(self, date_path: str, data: dict) -> DailyTripSnapshot:
        trip_names = discover_trip_names(data)
        trips = await gather_or_cancel(self.collect_trip(date_path, name) for name in trip_names)
        return DailyTripSnapshot(
            data=data,
            trips={name: trip for name, trip in zip(trip_names, trips) if trip is not None},
        )

    async def collect_trip(self, date_path: str, trip_name: str) -> Optional[TripRecord]:
        """Read the three ticket collections of one trip; None when all are empty."""
        results: List[List[Tuple[str, dict]]] = await gather_or_cancel(
            self.list_documents(trip_collection_path(date_path, trip_name, kind))
            for kind in TRIP_SUBCOLLECTIONS
        )
        if not any(results):
            return None
        tickets, pre_bookings, pre_tickets = (
            [DocumentRecord(id=doc_id, data=data) for doc_id, data in docs] or None
            for docs in results
        )
        return TripRecord(tickets=tickets, pre_bookings=pre_bookings, pre_tickets=pre_tickets)

    async def collect_remittance(self, path: str) -> Dict[str, RemittanceSnapshot]:
        records = await self.walk(path, REMITTANCE_SHAPE)
        return {
            record.id: RemittanceSnapshot(
                data=record.data,
                tickets={
                    ticket.id: ticket.data
                    for ticket in (record.subcollections or {}).get("tickets", [])
                },
            )
            for record in records
        }
