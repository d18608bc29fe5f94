from pydantic import BaseModel, EmailStr, Field
from datetime import date, time
from typing import Annotated, Literal, Optional

from .models import DEFAULT_HOURS, LocationSlot, MAX_SIGNS, MIN_SIGNS, ServiceType, Step, TimeOption

Latitude = Annotated[float, Field(ge=-90, le=90, allow_inf_nan=False)]
Longitude = Annotated[float, Field(ge=-180, le=180, allow_inf_nan=False)]

class CoordinateIO(BaseModel):
    lat: Latitude
    lon: Longitude

class PlaceIn(BaseModel):
    """What the address autocomplete hands over once the customer confirms."""
    formatted_address: str = Field(min_length=1)
    lat: Latitude
    lon: Longitude

class PresetIn(BaseModel):
    address: str

class PlaceOut(BaseModel):
    address: str
    coordinate: CoordinateIO

class ServiceTypeIn(BaseModel):
    service_type: ServiceType

class ScheduleIn(BaseModel):
    scheduled_date: Optional[date] = None
    time_option: Optional[TimeOption] = None
    window_start: Optional[Literal["08:00", "10:00", "12:00", "14:00", "16:00"]] = None
    specific_time: Optional[time] = None

class SignsIn(BaseModel):
    number_of_signs: int = Field(ge=MIN_SIGNS, le=MAX_SIGNS)

class HoursIn(BaseModel):
    hours: float = Field(gt=0, allow_inf_nan=False)

class DescriptionIn(BaseModel):
    task_description: str = ""

class ContactIn(BaseModel):
    name: str = ""
    phone: str = ""
    email: Optional[EmailStr] = None

class QuoteOut(BaseModel):
    base_price: float
    distance: float
    mileage_cost: float
    time_cost: float
    sign_cost: float
    subtotal: float
    markup_amount: float
    markup_percent: float
    total: float

class SavingsOut(BaseModel):
    time_option: TimeOption
    quote: QuoteOut
    saves: float

class PricingOut(BaseModel):
    quote: QuoteOut
    downgrade: Optional[SavingsOut] = None

class MapPointOut(BaseModel):
    label: str
    coordinate: CoordinateIO
    role: LocationSlot

class MapOut(BaseModel):
    center: CoordinateIO
    zoom: int
    service_type: Optional[ServiceType] = None
    points: list[MapPointOut]

class ScheduleOut(BaseModel):
    scheduled_date: Optional[date] = None
    time_option: Optional[TimeOption] = None
    window_start: Optional[str] = None
    specific_time: Optional[time] = None

class ContactOut(BaseModel):
    name: str
    phone: str
    email: str

class SessionOut(BaseModel):
    id: str
    step: Step
    service_type: Optional[ServiceType] = None
    locations: dict[LocationSlot, Optional[PlaceOut]] = {}
    schedule: ScheduleOut
    number_of_signs: Optional[int] = None
    mileage: float
    minimum_hours: float
    estimated_hours: float
    task_description: str
    contact: ContactOut
    can_continue: bool
    same_day_message: Optional[str] = None
    submitting: bool
    last_error: Optional[str] = None
    receipt: Optional[dict] = None

class QuoteRequest(BaseModel):
    """Stateless preview: a full request snapshot, no session involved."""
    service_type: ServiceType
    pickup: Optional[CoordinateIO] = None
    dropoff: Optional[CoordinateIO] = None
    errand: Optional[CoordinateIO] = None
    sign_current: Optional[CoordinateIO] = None
    sign_destination: Optional[CoordinateIO] = None
    number_of_signs: int = Field(default=3, ge=MIN_SIGNS, le=MAX_SIGNS)
    estimated_hours: float = Field(default=DEFAULT_HOURS, gt=0, allow_inf_nan=False)
    time_option: Optional[TimeOption] = None

class QuoteResponse(BaseModel):
    mileage: float
    minimum_hours: float
    estimated_hours: float
    quote: QuoteOut
    downgrade: Optional[SavingsOut] = None
