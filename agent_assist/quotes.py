"""Stateless quote routes for the Agent Assist API.

``POST /quote`` prices a request snapshot without opening a booking session,
so the front end can preview a price from whatever it already holds.
``GET /presets`` lists the office addresses the address pickers offer.
"""

from fastapi import APIRouter
from typing import List

from .geo import PRESETS
from .models import Coordinate, LocationSlot, Place, ServiceRequest, ServiceType
from .quote_engine import Quote, minimum_hours, price, reconcile_hours, savings_preview, total_mileage
from .schemas import CoordinateIO, PlaceOut, QuoteOut, QuoteRequest, QuoteResponse, SavingsOut

router = APIRouter(prefix="", tags=["quotes"])

_SNAPSHOT_SLOTS = {
    LocationSlot.pickup: "pickup",
    LocationSlot.dropoff: "dropoff",
    LocationSlot.errand: "errand",
    LocationSlot.sign_current: "sign_current",
    LocationSlot.sign_destination: "sign_destination",
}


def quote_out(q: Quote) -> QuoteOut:
    return QuoteOut(**q.as_dict())


def savings_out(preview) -> SavingsOut | None:
    if preview is None:
        return None
    option, alt, saved = preview
    return SavingsOut(time_option=option, quote=quote_out(alt), saves=round(saved, 2))


def place_out(place: Place | None) -> PlaceOut | None:
    if place is None:
        return None
    return PlaceOut(address=place.address, coordinate=CoordinateIO(lat=place.coordinate.lat, lon=place.coordinate.lon))


def request_from_snapshot(data: QuoteRequest) -> ServiceRequest:
    req = ServiceRequest.for_service(data.service_type)
    for slot in req.stops.SLOTS:
        c = getattr(data, _SNAPSHOT_SLOTS[slot])
        if c is not None:
            req.stops.set(slot, Place(slot.value, Coordinate(c.lat, c.lon)))
    if data.service_type == ServiceType.multiple_signs:
        req.stops.number_of_signs = data.number_of_signs
    req.time_option = data.time_option
    req.estimated_hours = data.estimated_hours
    return req


def compute_quote(data: QuoteRequest) -> QuoteResponse:
    req = request_from_snapshot(data)
    minimum = minimum_hours(req)
    req.estimated_hours = reconcile_hours(req.estimated_hours, minimum)
    return QuoteResponse(
        mileage=round(total_mileage(req), 2),
        minimum_hours=minimum,
        estimated_hours=req.estimated_hours,
        quote=quote_out(price(req)),
        downgrade=savings_out(savings_preview(req)),
    )


@router.post("/quote", response_model=QuoteResponse)
def quote_price(payload: QuoteRequest) -> QuoteResponse:
    return compute_quote(payload)


@router.get("/presets", response_model=List[PlaceOut])
def list_presets() -> List[PlaceOut]:
    return [place_out(p) for p in PRESETS]
