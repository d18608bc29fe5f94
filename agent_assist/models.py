"""Domain types for a booking in progress.

A ``ServiceRequest`` carries exactly one ``Stops`` variant, chosen by its
service type, so the location slots that do not apply to a service simply do
not exist on it.
"""

from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Optional
import enum


class ServiceType(str, enum.Enum):
    delivery = "delivery"
    errand = "errand"
    single_sign = "single-sign"
    multiple_signs = "multiple-signs"

    @property
    def involves_signs(self) -> bool:
        return self in (ServiceType.single_sign, ServiceType.multiple_signs)


class TimeOption(str, enum.Enum):
    anytime = "anytime"
    window = "window"
    specific = "specific"


class Step(str, enum.Enum):
    select_type = "select-type"
    what_we_do = "what-we-do"
    enter_locations = "enter-locations"
    job_details = "job-details"
    pricing = "pricing"
    submitted = "submitted"


class LocationSlot(str, enum.Enum):
    pickup = "pickup"
    dropoff = "dropoff"
    errand = "errand"
    sign_current = "sign-current"
    sign_destination = "sign-destination"


# 2-hour window start times offered to the customer
WINDOW_STARTS = ("08:00", "10:00", "12:00", "14:00", "16:00")

MAX_HOURS = 8.0
DEFAULT_HOURS = 1.0
MIN_SIGNS, MAX_SIGNS, DEFAULT_SIGNS = 1, 20, 3


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float


@dataclass(frozen=True)
class Place:
    """A geocoder-confirmed address; address and coordinate travel together."""
    address: str
    coordinate: Coordinate


class Stops:
    """Location slots for one service type. Subclasses declare ``SLOTS``."""

    SLOTS: Dict[LocationSlot, str] = {}

    def get(self, slot: LocationSlot) -> Optional[Place]:
        return getattr(self, self._attr(slot))

    def set(self, slot: LocationSlot, place: Optional[Place]) -> None:
        setattr(self, self._attr(slot), place)

    def places(self) -> Dict[LocationSlot, Optional[Place]]:
        return {slot: self.get(slot) for slot in self.SLOTS}

    def filled(self, slot: LocationSlot) -> bool:
        place = self.get(slot)
        return bool(place and place.address.strip())

    def _attr(self, slot: LocationSlot) -> str:
        try:
            return self.SLOTS[LocationSlot(slot)]
        except (KeyError, ValueError):
            raise ValueError(f"Location '{slot}' does not apply to {type(self).__name__}")


@dataclass
class DeliveryStops(Stops):
    SLOTS = {LocationSlot.pickup: "pickup", LocationSlot.dropoff: "dropoff"}
    pickup: Optional[Place] = None
    dropoff: Optional[Place] = None


@dataclass
class ErrandStop(Stops):
    SLOTS = {LocationSlot.errand: "location"}
    location: Optional[Place] = None


@dataclass
class SignStops(Stops):
    SLOTS = {LocationSlot.sign_current: "current", LocationSlot.sign_destination: "destination"}
    current: Optional[Place] = None
    destination: Optional[Place] = None
    number_of_signs: int = 1


def stops_for(service_type: ServiceType) -> Stops:
    if service_type == ServiceType.delivery:
        return DeliveryStops()
    if service_type == ServiceType.errand:
        return ErrandStop()
    if service_type == ServiceType.multiple_signs:
        return SignStops(number_of_signs=DEFAULT_SIGNS)
    return SignStops(number_of_signs=1)


@dataclass
class Contact:
    name: str = ""
    phone: str = ""
    email: str = ""

    def complete(self) -> bool:
        return all(v.strip() for v in (self.name, self.phone, self.email))


@dataclass
class ServiceRequest:
    service_type: Optional[ServiceType] = None
    stops: Optional[Stops] = None
    scheduled_date: Optional[date] = None
    time_option: Optional[TimeOption] = None
    window_start: Optional[str] = None
    specific_time: Optional[time] = None
    estimated_hours: float = DEFAULT_HOURS
    task_description: str = ""
    contact: Contact = field(default_factory=Contact)

    @classmethod
    def for_service(cls, service_type: ServiceType) -> "ServiceRequest":
        service_type = ServiceType(service_type)
        return cls(service_type=service_type, stops=stops_for(service_type))

    @property
    def sign_count(self) -> int:
        """Signs handled by the job; 0 for services without signs."""
        if isinstance(self.stops, SignStops):
            return self.stops.number_of_signs
        return 0

    def place(self, slot: LocationSlot) -> Optional[Place]:
        if self.stops is None or LocationSlot(slot) not in self.stops.SLOTS:
            return None
        return self.stops.get(slot)
