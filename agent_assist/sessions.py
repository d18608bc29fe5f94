"""Booking session routes.

Each browser tab drives one ``BookingSession`` held in memory; nothing is
persisted, so a server restart (like a page refresh) starts everyone over.
Blocked forward moves answer 409, malformed edits 422 and a failed delivery
502 with the retry prompt, leaving the session on the pricing step.
"""

import time
from contextlib import contextmanager
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from loguru import logger

from .booking import BookingSession, StepError
from .geo import MAP_CENTER, MAP_ZOOM, find_preset, map_points
from .models import LocationSlot
from .quotes import place_out, quote_out, savings_out
from .schemas import (
    ContactIn, ContactOut, CoordinateIO, DescriptionIn, HoursIn, MapOut, MapPointOut,
    PlaceIn, PresetIn, PricingOut, ScheduleIn, ScheduleOut, ServiceTypeIn, SessionOut, SignsIn,
)
from .submission import FormTransport
from .settings import settings

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SessionRegistry:
    """
    In-memory sessions keyed by id.
    Dev-only; running several workers needs a shared store.
    Sessions idle longer than ``ttl_s`` are pruned whenever a new one is created.
    """
    def __init__(self, ttl_s: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.sessions: Dict[str, BookingSession] = {}
        self.touched: Dict[str, float] = {}
        self.ttl_s = settings.AA_SESSION_TTL_S if ttl_s is None else ttl_s
        self._clock = clock

    def create(self) -> BookingSession:
        self.prune()
        session = BookingSession()
        self.sessions[session.id] = session
        self.touched[session.id] = self._clock()
        logger.info(f"[{session.id}] session created")
        return session

    def get(self, session_id: str) -> BookingSession | None:
        session = self.sessions.get(session_id)
        if session is not None:
            self.touched[session_id] = self._clock()
        return session

    def drop(self, session_id: str) -> bool:
        self.touched.pop(session_id, None)
        return self.sessions.pop(session_id, None) is not None

    def prune(self) -> int:
        cutoff = self._clock() - self.ttl_s
        stale = [
            sid for sid, seen in self.touched.items()
            if seen < cutoff and not self.sessions[sid].submitting
        ]
        for sid in stale:
            self.drop(sid)
        if stale:
            logger.info(f"pruned {len(stale)} idle session(s)")
        return len(stale)

    def clear(self) -> None:
        self.sessions.clear()
        self.touched.clear()

registry = SessionRegistry()


def get_session(session_id: str) -> BookingSession:
    session = registry.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def get_transport() -> FormTransport:
    return FormTransport()


@contextmanager
def booking_errors():
    try:
        yield
    except StepError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def session_out(s: BookingSession) -> SessionOut:
    r = s.request
    c = r.contact
    return SessionOut(
        id=s.id,
        step=s.step,
        service_type=r.service_type,
        locations={slot: place_out(p) for slot, p in r.stops.places().items()} if r.stops else {},
        schedule=ScheduleOut(
            scheduled_date=r.scheduled_date,
            time_option=r.time_option,
            window_start=r.window_start,
            specific_time=r.specific_time,
        ),
        number_of_signs=r.sign_count or None,
        mileage=round(s.mileage, 2),
        minimum_hours=s.minimum_hours,
        estimated_hours=s.estimated_hours,
        task_description=r.task_description,
        contact=ContactOut(name=c.name, phone=c.phone, email=c.email),
        can_continue=s.can_continue(),
        same_day_message=s.same_day_message,
        submitting=s.submitting,
        last_error=s.last_error,
        receipt=s.receipt,
    )


@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session() -> SessionOut:
    return session_out(registry.create())


@router.get("/{session_id}", response_model=SessionOut)
def read_session(session: BookingSession = Depends(get_session)) -> SessionOut:
    return session_out(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def end_session(session: BookingSession = Depends(get_session)) -> Response:
    if session.submitting:
        raise HTTPException(status_code=409, detail="A submission is already in flight")
    registry.drop(session.id)
    logger.info(f"[{session.id}] session ended")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/service-type", response_model=SessionOut)
def choose_service(payload: ServiceTypeIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.choose_service(payload.service_type)
    return session_out(session)


@router.post("/{session_id}/what-we-do", response_model=SessionOut)
def what_we_do(session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.show_what_we_do()
    return session_out(session)


@router.put("/{session_id}/locations/{slot}", response_model=SessionOut)
def confirm_location(slot: LocationSlot, payload: PlaceIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.confirm_location(slot, payload.formatted_address, payload.lat, payload.lon)
    return session_out(session)


@router.put("/{session_id}/locations/{slot}/preset", response_model=SessionOut)
def confirm_preset(slot: LocationSlot, payload: PresetIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        p = find_preset(payload.address)
        session.confirm_location(slot, p.address, p.coordinate.lat, p.coordinate.lon)
    return session_out(session)


@router.delete("/{session_id}/locations/{slot}", response_model=SessionOut)
def clear_location(slot: LocationSlot, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.clear_location(slot)
    return session_out(session)


@router.put("/{session_id}/schedule", response_model=SessionOut)
def set_schedule(payload: ScheduleIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    """A new date resets the time option; a same-day date refuses one.

    A refused time option is not an error: the snapshot comes back without it
    and, for a same-day date, with the phone advisory.
    """
    with booking_errors():
        r = session.request
        if payload.scheduled_date != r.scheduled_date:
            session.set_date(payload.scheduled_date)
        if payload.time_option is not None or r.time_option is not None:
            session.set_time_option(payload.time_option, payload.window_start, payload.specific_time)
    return session_out(session)


@router.put("/{session_id}/signs", response_model=SessionOut)
def set_signs(payload: SignsIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.set_number_of_signs(payload.number_of_signs)
    return session_out(session)


@router.put("/{session_id}/hours", response_model=SessionOut)
def set_hours(payload: HoursIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.set_estimated_hours(payload.hours)
    return session_out(session)


@router.put("/{session_id}/description", response_model=SessionOut)
def set_description(payload: DescriptionIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.set_task_description(payload.task_description)
    return session_out(session)


@router.put("/{session_id}/contact", response_model=SessionOut)
def set_contact(payload: ContactIn, session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.set_contact(payload.name, payload.phone, payload.email or "")
    return session_out(session)


@router.post("/{session_id}/continue", response_model=SessionOut)
def proceed(session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        moved = session.proceed()
    if not moved:
        raise HTTPException(status_code=409, detail=f"Cannot continue from {session.step.value}")
    return session_out(session)


@router.post("/{session_id}/back", response_model=SessionOut)
def back(session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.back()
    return session_out(session)


@router.post("/{session_id}/restart", response_model=SessionOut)
def restart(session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        session.restart()
    return session_out(session)


@router.post("/{session_id}/downgrade", response_model=SessionOut)
def downgrade(session: BookingSession = Depends(get_session)) -> SessionOut:
    with booking_errors():
        if not session.downgrade_time_option():
            raise HTTPException(status_code=409, detail="Already at the most flexible time option")
    return session_out(session)


@router.get("/{session_id}/quote", response_model=PricingOut)
def read_quote(session: BookingSession = Depends(get_session)) -> PricingOut:
    if session.request.service_type is None:
        raise HTTPException(status_code=409, detail="Choose a service type first")
    return PricingOut(quote=quote_out(session.quote()), downgrade=savings_out(session.savings()))


@router.get("/{session_id}/map", response_model=MapOut)
def read_map(session: BookingSession = Depends(get_session)) -> MapOut:
    points = [
        MapPointOut(label=p.label, coordinate=CoordinateIO(lat=p.coordinate.lat, lon=p.coordinate.lon), role=p.role)
        for p in map_points(session.request)
    ]
    return MapOut(
        center=CoordinateIO(lat=MAP_CENTER.lat, lon=MAP_CENTER.lon),
        zoom=MAP_ZOOM,
        service_type=session.request.service_type,
        points=points,
    )


@router.post("/{session_id}/submit", response_model=SessionOut)
async def submit(
    session: BookingSession = Depends(get_session),
    transport: FormTransport = Depends(get_transport),
) -> SessionOut:
    with booking_errors():
        ok = await session.submit(transport)
    if not ok:
        if session.last_error:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=session.last_error)
        raise HTTPException(status_code=409, detail="Name, phone and email are required")
    return session_out(session)
