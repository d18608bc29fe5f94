"""Booking state machine for one customer session.

Steps run select-type -> enter-locations -> job-details -> pricing ->
submitted, with what-we-do as an informational detour off select-type.
Forward moves are gated on the data the next step needs; a blocked move
returns ``False`` and changes nothing. Backward moves always succeed and clear
what the step being left owned.

Mileage, minimum duration and the quote are recomputed from the request on
every read. Every input to the minimum duration funnels through
``_inputs_changed`` so the chosen duration is ratcheted up whenever the
minimum rises.
"""

import math
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from loguru import logger

from .models import (
    Contact, Coordinate, LocationSlot, MAX_SIGNS, MIN_SIGNS, Place,
    ServiceRequest, ServiceType, Step, TimeOption, WINDOW_STARTS,
)
from .quote_engine import (
    BASE_LOCATION, Quote, check_hours, downgrade_time_option, minimum_hours,
    price, reconcile_hours, savings_preview, total_mileage, window_for_time,
)
from .settings import settings
from .submission import build_submission_payload

Transport = Callable[[Dict[str, Any]], Awaitable[bool]]

SAME_DAY_MESSAGE = (
    "While we may be able to help you, same day selections are not allowed online. "
    "Please call us directly at {phone} for help with same-day errands."
)
SUBMIT_FAILED_MESSAGE = (
    "There was an error submitting your request. "
    "Please try again or call us directly at {phone}."
)

FORWARD: dict[Step, Step] = {
    Step.what_we_do: Step.select_type,
    Step.enter_locations: Step.job_details,
    Step.job_details: Step.pricing,
}

BACKWARD: dict[Step, Step] = {
    Step.what_we_do: Step.select_type,
    Step.enter_locations: Step.select_type,
    Step.job_details: Step.enter_locations,
    Step.pricing: Step.job_details,
    Step.submitted: Step.select_type,
}


class StepError(Exception):
    """An action was attempted from a step that does not offer it."""


class SubmissionInProgress(StepError):
    pass


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.AA_TIMEZONE)).date()


class BookingSession:
    def __init__(
        self,
        session_id: Optional[str] = None,
        today: Callable[[], date] = local_today,
        base: Coordinate = BASE_LOCATION,
    ) -> None:
        self.id = session_id or uuid4().hex
        self.base = base
        self._today = today
        self.step = Step.select_type
        self.request = ServiceRequest()
        self.submitting = False
        self.last_error: Optional[str] = None
        self.receipt: Optional[Dict[str, Any]] = None

    # ------------------------------------------------------------ derived

    @property
    def mileage(self) -> float:
        return total_mileage(self.request, self.base)

    @property
    def minimum_hours(self) -> float:
        return minimum_hours(self.request, self.base)

    @property
    def estimated_hours(self) -> float:
        self._inputs_changed()
        return self.request.estimated_hours

    @property
    def same_day(self) -> bool:
        return self.request.scheduled_date is not None and self.request.scheduled_date == self._today()

    @property
    def same_day_message(self) -> Optional[str]:
        return SAME_DAY_MESSAGE.format(phone=settings.AA_SUPPORT_PHONE) if self.same_day else None

    def schedule_valid(self) -> bool:
        r = self.request
        if r.scheduled_date is None or r.scheduled_date <= self._today():
            return False
        if r.time_option == TimeOption.window:
            return r.window_start is not None
        if r.time_option == TimeOption.specific:
            return r.specific_time is not None
        return r.time_option is not None

    def locations_valid(self) -> bool:
        stops = self.request.stops
        if stops is None:
            return False
        # errand has a single slot, the others need every slot
        return all(stops.filled(slot) for slot in stops.SLOTS) and self.schedule_valid()

    def details_valid(self) -> bool:
        return bool(self.request.task_description.strip()) and self.estimated_hours > 0

    def can_continue(self) -> bool:
        if self.submitting:
            return False
        if self.step == Step.what_we_do:
            return True
        if self.step == Step.enter_locations:
            return self.locations_valid()
        if self.step == Step.job_details:
            return self.details_valid()
        if self.step == Step.pricing:
            return self.request.contact.complete()
        return False

    def quote(self, time_option: Optional[TimeOption] = None) -> Quote:
        self._inputs_changed()
        return price(self.request, time_option=time_option, base=self.base)

    def savings(self):
        self._inputs_changed()
        return savings_preview(self.request, base=self.base)

    # ------------------------------------------------------------ transitions

    def choose_service(self, service_type: ServiceType) -> None:
        self._require(Step.select_type)
        self.request = ServiceRequest.for_service(service_type)
        self._inputs_changed()
        self._move(Step.enter_locations)

    def show_what_we_do(self) -> None:
        self._require(Step.select_type)
        self._move(Step.what_we_do)

    def proceed(self) -> bool:
        """Forward move out of the current step; False when its data is incomplete."""
        nxt = FORWARD.get(self.step)
        if nxt is None or not self.can_continue():
            logger.debug(f"[{self.id}] continue blocked at {self.step.value}")
            return False
        self._move(nxt)
        return True

    def back(self) -> Step:
        self._require_idle()
        prev = BACKWARD.get(self.step)
        if prev is None:
            return self.step
        if self.step == Step.job_details:
            self.request.task_description = ""
        if prev == Step.select_type:
            self.restart()
        else:
            self._move(prev)
        return self.step

    def restart(self) -> None:
        self._require_idle()
        self.request = ServiceRequest()
        self.last_error = None
        self.receipt = None
        self._move(Step.select_type)
        logger.info(f"[{self.id}] session reset")

    async def submit(self, transport: Transport) -> bool:
        """Deliver the order; stays on pricing with ``last_error`` set on failure."""
        if self.submitting:
            raise SubmissionInProgress("A submission is already in flight")
        self._require(Step.pricing)
        if not self.can_continue():
            return False

        hours = self.estimated_hours
        payload = build_submission_payload(self.request, self.quote(), hours)
        self.submitting = True
        self.last_error = None
        logger.info(f"[{self.id}] submitting {self.request.service_type.value} request")
        try:
            ok = await transport(payload)
        finally:
            self.submitting = False

        if not ok:
            self.last_error = SUBMIT_FAILED_MESSAGE.format(phone=settings.AA_SUPPORT_PHONE)
            logger.warning(f"[{self.id}] submission failed; staying on pricing")
            return False

        self.receipt = payload
        self.request = ServiceRequest()
        self._move(Step.submitted)
        return True

    # ------------------------------------------------------------ edits

    def confirm_location(self, slot: LocationSlot, address: str, lat: float, lon: float) -> None:
        """Store a geocoder-confirmed place; a rejected edit leaves the slot as it was."""
        self._require(Step.enter_locations)
        lat, lon = float(lat), float(lon)
        if not (math.isfinite(lat) and math.isfinite(lon) and -90 <= lat <= 90 and -180 <= lon <= 180):
            raise ValueError("Coordinates must be a real latitude/longitude")
        slot = LocationSlot(slot)
        stops = self.request.stops
        previous = stops.get(slot)
        stops.set(slot, Place(address, Coordinate(lat, lon)))
        try:
            self._inputs_changed()
        except (ValueError, OverflowError):
            stops.set(slot, previous)
            raise ValueError("Location could not be used for mileage")

    def clear_location(self, slot: LocationSlot) -> None:
        self._require(Step.enter_locations)
        self.request.stops.set(LocationSlot(slot), None)
        self._inputs_changed()

    def set_date(self, scheduled: Optional[date]) -> None:
        self._require(Step.enter_locations)
        r = self.request
        r.scheduled_date = scheduled
        r.time_option = None
        r.window_start = None
        r.specific_time = None

    def set_time_option(
        self,
        option: Optional[TimeOption],
        window_start: Optional[str] = None,
        specific_time: Optional[time] = None,
    ) -> bool:
        """Choose a flexibility tier; refused (False) with no future date chosen."""
        self._require(Step.enter_locations)
        r = self.request
        if option is not None and (r.scheduled_date is None or self.same_day):
            return False
        option = TimeOption(option) if option is not None else None
        if window_start is not None and window_start not in WINDOW_STARTS:
            raise ValueError(f"Window must start at one of {', '.join(WINDOW_STARTS)}")
        r.time_option = option
        r.window_start = window_start if option == TimeOption.window else None
        r.specific_time = specific_time if option == TimeOption.specific else None
        return True

    def set_number_of_signs(self, count: int) -> None:
        self._require(Step.enter_locations, Step.job_details)
        if self.request.service_type != ServiceType.multiple_signs:
            raise ValueError("Sign count only applies to multiple-signs requests")
        if not MIN_SIGNS <= int(count) <= MAX_SIGNS:
            raise ValueError(f"Number of signs must be between {MIN_SIGNS} and {MAX_SIGNS}")
        self.request.stops.number_of_signs = int(count)
        self._inputs_changed()

    def set_estimated_hours(self, hours: float) -> None:
        self._require(Step.job_details)
        self.request.estimated_hours = check_hours(hours, self.minimum_hours)

    def set_task_description(self, text: str) -> None:
        self._require(Step.job_details)
        self.request.task_description = text or ""

    def set_contact(self, name: str = "", phone: str = "", email: str = "") -> None:
        self._require(Step.pricing)
        self.request.contact = Contact(name=name or "", phone=phone or "", email=email or "")

    def downgrade_time_option(self) -> bool:
        """Trade scheduling flexibility for a cheaper tier; False at anytime."""
        self._require(Step.pricing)
        r = self.request
        cheaper = downgrade_time_option(r.time_option)
        if cheaper is None:
            return False
        if cheaper == TimeOption.window:
            r.window_start = window_for_time(r.specific_time)
        else:
            r.window_start = None
        r.time_option = cheaper
        r.specific_time = None
        return True

    # ------------------------------------------------------------ internals

    def _inputs_changed(self) -> None:
        r = self.request
        r.estimated_hours = reconcile_hours(r.estimated_hours, minimum_hours(r, self.base))

    def _move(self, step: Step) -> None:
        logger.debug(f"[{self.id}] {self.step.value} -> {step.value}")
        self.step = step

    def _require_idle(self) -> None:
        if self.submitting:
            raise SubmissionInProgress("A submission is already in flight")

    def _require(self, *steps: Step) -> None:
        self._require_idle()
        if self.step not in steps:
            raise StepError(f"Not available from {self.step.value}")
