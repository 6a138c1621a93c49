"""
Persistence side of the simulation: which buses are running, and where they
were last seen. Backed by the ``Bus`` table through Django's async ORM API.
"""
from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple

from django.db import DatabaseError
from django.utils import timezone

from .exceptions import PersistenceWriteFailed
from .geometry import direction_for
from .models import Bus

LOGGER = logging.getLogger(__name__)


class ActiveBus(NamedTuple):
    id: int
    bus_number: str
    direction: str


def snapshot_entry(bus_id, label, lat, lng, status="active") -> Dict:
    return {"id": bus_id, "label": label, "lat": lat, "lng": lng, "status": status}


class BusStore:
    async def list_active(self) -> List[ActiveBus]:
        rows = Bus.objects.filter(status="active").values("id", "bus_number", "direction")
        return [
            ActiveBus(row["id"], row["bus_number"], direction_for(row["bus_number"], row["direction"]))
            async for row in rows
        ]

    async def update_position(self, bus_id: int, lat: float, lng: float) -> None:
        try:
            await Bus.objects.filter(pk=bus_id).aupdate(
                current_lat=lat,
                current_lng=lng,
                position_updated_at=timezone.now(),
            )
        except DatabaseError as error:
            raise PersistenceWriteFailed(f"Could not store position of bus {bus_id}: {error}") from error

    async def snapshot(self) -> List[Dict]:
        rows = Bus.objects.filter(status="active").values(
            "id", "bus_number", "current_lat", "current_lng", "status"
        )
        return [
            snapshot_entry(
                row["id"], row["bus_number"], row["current_lat"], row["current_lng"], row["status"]
            )
            async for row in rows
        ]
