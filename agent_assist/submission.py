"""Submission payload and the transport that delivers it.

The payload is a flat record of display strings, shaped for a form relay
that forwards it as a notification email. The transport posts it as JSON and
only reports whether delivery succeeded.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import aiohttp
from loguru import logger

from .models import LocationSlot, ServiceRequest, ServiceType, TimeOption
from .quote_engine import Quote
from .settings import settings

SUBJECT = "New Agent Assist Errand Request"

SERVICE_LABELS = {
    ServiceType.delivery: "Delivery Service",
    ServiceType.errand: "Single Location Errand",
    ServiceType.single_sign: "Single Sign Placement",
    ServiceType.multiple_signs: "Multiple Signs Placement",
}


def format_duration(hours: float) -> str:
    if hours == 0.5:
        return "30 minutes"
    if hours == 1:
        return "1 hour"
    return f"{hours:g} hours"


def describe_time_option(request: ServiceRequest) -> str:
    if request.time_option == TimeOption.anytime:
        return "Anytime (10am-4pm)"
    if request.time_option == TimeOption.window:
        return f"2-Hour Window: {request.window_start or ''}"
    if request.time_option == TimeOption.specific:
        t = request.specific_time
        return f"Specific Time: {t.strftime('%H:%M') if t else ''}"
    return ""


def submission_timestamp(now: Optional[datetime] = None) -> str:
    """e.g. 'Monday, October 19, 2026 at 2:05:09 PM EDT' in the office time zone."""
    now = (now or datetime.now(ZoneInfo(settings.AA_TIMEZONE))).astimezone(ZoneInfo(settings.AA_TIMEZONE))
    hour = now.hour % 12 or 12
    return f"{now:%A, %B} {now.day}, {now.year} at {hour}:{now:%M:%S %p %Z}"


def _address(request: ServiceRequest, slot: LocationSlot) -> str:
    place = request.place(slot)
    return place.address if place and place.address else "N/A"


def build_submission_payload(
    request: ServiceRequest,
    quote: Quote,
    hours: float,
    submitted_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    contact = request.contact
    return {
        "customerName": contact.name,
        "customerPhone": contact.phone,
        "customerEmail": contact.email,
        "serviceType": SERVICE_LABELS.get(request.service_type, ""),
        "serviceDate": request.scheduled_date.isoformat() if request.scheduled_date else "",
        "timeOption": describe_time_option(request),
        "estimatedDuration": format_duration(hours),
        "pickupLocation": _address(request, LocationSlot.pickup),
        "dropoffLocation": _address(request, LocationSlot.dropoff),
        "errandLocation": _address(request, LocationSlot.errand),
        "signCurrentLocation": _address(request, LocationSlot.sign_current),
        "signDestinationLocation": _address(request, LocationSlot.sign_destination),
        "numberOfSigns": request.sign_count if request.service_type == ServiceType.multiple_signs else "N/A",
        "taskDescription": request.task_description,
        "totalMileage": f"{quote.distance:.1f} miles",
        "basePrice": f"{quote.base_price:.2f}",
        "mileageCost": f"{quote.mileage_cost:.2f}",
        "timeCost": f"{quote.time_cost:.2f}",
        "signCost": f"{quote.sign_cost:.2f}",
        "subtotal": f"{quote.subtotal:.2f}",
        "serviceFee": f"{quote.markup_amount:.2f} ({quote.markup_percent:g}%)",
        "totalPrice": f"{quote.total:.2f}",
        "submissionTime": submission_timestamp(submitted_at),
        "_subject": SUBJECT,
    }


class FormTransport:
    """POSTs the payload to the form relay; True only on a 2xx answer."""

    def __init__(self, url: Optional[str] = None, timeout_s: Optional[float] = None) -> None:
        self.url = url or settings.AA_SUBMIT_URL
        self.timeout_s = timeout_s if timeout_s is not None else settings.AA_SUBMIT_TIMEOUT_S

    async def __call__(self, payload: Dict[str, Any]) -> bool:
        try:
            async with aiohttp.ClientSession() as session:
                timeout = aiohttp.ClientTimeout(total=self.timeout_s)
                async with session.post(
                    self.url,
                    json=payload,
                    headers={"Accept": "application/json"},
                    timeout=timeout,
                ) as response:
                    if 200 <= response.status < 300:
                        logger.debug("Submission delivered")
                        return True
                    logger.error(f"Submission rejected by relay: HTTP {response.status}")
                    return False
        except asyncio.TimeoutError:
            logger.error(f"Submission timed out after {self.timeout_s:g}s")
            return False
        except aiohttp.ClientError as e:
            logger.error(f"HTTP client error during submission: {e}")
            return False
