from typing import Dict, List, Optional, Protocol

from .schemas import Trip


class TripStore(Protocol):
    def get(self, trip_id: str) -> Optional[Trip]: ...
    def list(self) -> List[Trip]: ...
    def put(self, trip: Trip) -> None: ...
    def delete(self, trip_id: str) -> bool: ...


class InMemoryTripStore:
    """Process-local trips keyed by `trip_id`; gone when the process exits."""

    def __init__(self) -> None:
        self._trips: Dict[str, Trip] = {}

    def get(self, trip_id: str) -> Optional[Trip]:
        return self._trips.get(trip_id)

    def list(self) -> List[Trip]:
        return list(self._trips.values())

    def put(self, trip: Trip) -> None:
        self._trips[trip.trip_id] = trip

    def delete(self, trip_id: str) -> bool:
        return self._trips.pop(trip_id, None) is not None

    def __len__(self) -> int:
        return len(self._trips)
