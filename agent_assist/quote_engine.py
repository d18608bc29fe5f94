# --- agent_assist/quote_engine.py -------------------------------------------
# Mileage, minimum duration & pricing; no external APIs.

from dataclasses import asdict, dataclass
from datetime import time
from typing import Optional
import math

from .models import (
    Coordinate, DeliveryStops, ErrandStop, MAX_HOURS, ServiceRequest,
    ServiceType, SignStops, TimeOption, WINDOW_STARTS,
)
from .settings import settings

EARTH_RADIUS_MI = 3959.0
BASE_LOCATION = Coordinate(settings.AA_BASE_LAT, settings.AA_BASE_LON)

BASE_PRICE = 75.0        # includes the first hour
MILEAGE_RATE = 1.50      # per mile
HOURLY_RATE = 60.0       # per hour beyond the first
SIGN_SURCHARGE = 5.0     # per sign beyond the first, multiple-signs only

MARKUP = {TimeOption.anytime: 0.10, TimeOption.window: 0.25, TimeOption.specific: 0.60}
DEFAULT_MARKUP = 0.25
DOWNGRADE = {TimeOption.specific: TimeOption.window, TimeOption.window: TimeOption.anytime}

MILES_PER_HOUR_OF_WORK = 30.0
SIGNS_PER_BLOCK = 6
HOUR_STEP = 0.5

def _round_up_half(hours): return math.ceil(hours / HOUR_STEP) * HOUR_STEP

def distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in miles (haversine)."""
    to = math.pi / 180.0
    dlat = (b.lat - a.lat) * to; dlon = (b.lon - a.lon) * to
    h = math.sin(dlat/2)**2 + math.cos(a.lat*to)*math.cos(b.lat*to)*math.sin(dlon/2)**2
    return EARTH_RADIUS_MI * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

def _loop(base, first, second):
    return distance(base, first) + distance(first, second) + distance(second, base)

def total_mileage(request: ServiceRequest, base: Coordinate = BASE_LOCATION) -> float:
    """Round-trip miles from the base for the request's stops; 0 until computable."""
    stops = request.stops
    if isinstance(stops, DeliveryStops) and stops.pickup and stops.dropoff:
        return _loop(base, stops.pickup.coordinate, stops.dropoff.coordinate)
    if isinstance(stops, SignStops) and stops.current and stops.destination:
        return _loop(base, stops.current.coordinate, stops.destination.coordinate)
    if isinstance(stops, ErrandStop) and stops.location:
        return distance(base, stops.location.coordinate) * 2
    return 0.0

def minimum_hours(request: ServiceRequest, base: Coordinate = BASE_LOCATION) -> float:
    hours = HOUR_STEP + total_mileage(request, base) / MILES_PER_HOUR_OF_WORK
    if request.service_type is not None and request.service_type.involves_signs and request.sign_count:
        hours += math.ceil(request.sign_count / SIGNS_PER_BLOCK) * HOUR_STEP
    # one rounding point, on the sum
    return max(HOUR_STEP, _round_up_half(hours))

def reconcile_hours(chosen: float, minimum: float) -> float:
    """Raise the chosen duration to the minimum; never lowers it."""
    return max(chosen, minimum)

def check_hours(hours: float, minimum: float) -> float:
    hours = float(hours)
    if not (hours * 2).is_integer():
        raise ValueError("Duration must be in half-hour steps")
    ceiling = max(MAX_HOURS, minimum)
    if not minimum <= hours <= ceiling:
        raise ValueError(f"Duration must be between {minimum:g} and {ceiling:g} hours")
    return hours

def window_for_time(t: Optional[time]) -> str:
    """2-hour window bucket holding ``t``; the 10:00 window when unknown."""
    if t is not None:
        for start in WINDOW_STARTS:
            if int(start[:2]) <= t.hour < int(start[:2]) + 2:
                return start
    return "10:00"

def downgrade_time_option(option: Optional[TimeOption]) -> Optional[TimeOption]:
    return DOWNGRADE.get(option)


@dataclass(frozen=True)
class Quote:
    base_price: float
    distance: float
    mileage_cost: float
    time_cost: float
    sign_cost: float
    subtotal: float
    markup_amount: float
    markup_percent: float
    total: float

    def as_dict(self): return asdict(self)


def price(
    request: ServiceRequest,
    time_option: Optional[TimeOption] = None,
    base: Coordinate = BASE_LOCATION,
) -> Quote:
    """Itemized quote; ``time_option`` previews another flexibility tier."""
    option = time_option or request.time_option
    rate = MARKUP.get(option, DEFAULT_MARKUP)

    miles = total_mileage(request, base)
    hours = reconcile_hours(request.estimated_hours, minimum_hours(request, base))
    mileage_cost = miles * MILEAGE_RATE
    time_cost = max(0.0, hours - 1) * HOURLY_RATE
    sign_cost = 0.0
    if request.service_type == ServiceType.multiple_signs and request.sign_count > 1:
        sign_cost = (request.sign_count - 1) * SIGN_SURCHARGE

    subtotal = BASE_PRICE + mileage_cost + time_cost + sign_cost
    markup = subtotal * rate
    return Quote(
        base_price=BASE_PRICE, distance=miles, mileage_cost=mileage_cost,
        time_cost=time_cost, sign_cost=sign_cost, subtotal=subtotal,
        markup_amount=markup, markup_percent=round(rate * 100, 2), total=subtotal + markup,
    )

def savings_preview(request: ServiceRequest, base: Coordinate = BASE_LOCATION):
    """(cheaper tier, its quote, amount saved) or None when already cheapest."""
    cheaper = downgrade_time_option(request.time_option)
    if cheaper is None:
        return None
    current = price(request, base=base)
    alt = price(request, time_option=cheaper, base=base)
    return cheaper, alt, current.total - alt.total
