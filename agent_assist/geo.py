# Map feed & preset locations for the front end's map and address pickers.

from dataclasses import dataclass
from typing import List

from .models import Coordinate, LocationSlot, Place, ServiceRequest
from .quote_engine import BASE_LOCATION

LABELS = {
    LocationSlot.pickup: "Pickup Location",
    LocationSlot.dropoff: "Dropoff Location",
    LocationSlot.errand: "Errand Location",
    LocationSlot.sign_current: "Current Sign Location",
    LocationSlot.sign_destination: "Destination Location",
}

# Office addresses offered without going through the geocoder
PRESETS: List[Place] = [
    Place("KW North Atlanta, 925 N Point Parkway, Alpharetta, GA 30005", BASE_LOCATION),
]

MAP_CENTER = BASE_LOCATION
MAP_ZOOM = 11


@dataclass(frozen=True)
class MapPoint:
    label: str
    coordinate: Coordinate
    role: LocationSlot


def map_points(request: ServiceRequest) -> List[MapPoint]:
    """Confirmed stops in route order; slots without a coordinate are skipped."""
    if request.stops is None:
        return []
    return [
        MapPoint(LABELS[slot], place.coordinate, slot)
        for slot, place in request.stops.places().items()
        if place is not None
    ]


def find_preset(address: str) -> Place:
    for p in PRESETS:
        if p.address == address:
            return p
    raise ValueError(f"Unknown preset location: {address}")
