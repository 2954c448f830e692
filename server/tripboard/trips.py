import logging
import uuid
from typing import Any, Dict, List, Tuple

from .schemas import Trip, TripIn
from .store import TripStore

logger = logging.getLogger(__name__)


def list_trips(store: TripStore) -> Tuple[int, List[Dict[str, Any]]]:
    """All trips, soonest departure first."""
    trips = sorted(store.list(), key=lambda t: t.date_departing)
    return 200, [t.model_dump(by_alias=True) for t in trips]


def add_trip(store: TripStore, trip_in: TripIn) -> Tuple[int, Dict[str, Any]]:
    trip_id = str(uuid.uuid4())
    # Nested models are passed through as-is, so names are not escaped twice.
    store.put(Trip(trip_id=trip_id, **dict(trip_in)))
    logger.info("added trip %s", trip_id)
    return 200, {"tripId": trip_id, "message": "Success."}


def remove_trip(store: TripStore, trip_id: str) -> Tuple[int, Dict[str, Any]]:
    if not store.delete(trip_id):
        return 404, {"message": "Not found."}
    logger.info("removed trip %s", trip_id)
    return 200, {"message": "Success."}
