import math
from datetime import time

import pytest

from agent_assist import quote_engine
from agent_assist.models import (
    Coordinate, LocationSlot, Place, ServiceRequest, ServiceType, TimeOption,
)
from agent_assist.quote_engine import (
    BASE_LOCATION, distance, downgrade_time_option, minimum_hours, price,
    reconcile_hours, savings_preview, total_mileage, window_for_time, check_hours,
)

from conftest import CUMMING, MARIETTA, ROSWELL


def _request(service_type, **slots):
    req = ServiceRequest.for_service(service_type)
    for slot, coord in slots.items():
        req.stops.set(LocationSlot(slot.replace("_", "-")), Place(slot, coord))
    return req


# --- distance ---------------------------------------------------------------

def test_distance_symmetric_and_zero():
    for a, b in [(ROSWELL, CUMMING), (BASE_LOCATION, MARIETTA), (Coordinate(0, 0), Coordinate(-45.5, 170.2))]:
        assert distance(a, b) == pytest.approx(distance(b, a))
        assert distance(a, a) == 0


def test_distance_one_degree_of_latitude():
    # 3959 mi * pi / 180
    assert distance(Coordinate(0, 0), Coordinate(1, 0)) == pytest.approx(69.097, abs=1e-3)


# --- mileage ----------------------------------------------------------------

def test_errand_mileage_is_doubled_one_way():
    req = _request(ServiceType.errand, errand=CUMMING)
    assert total_mileage(req) == 2 * distance(BASE_LOCATION, CUMMING)


def test_delivery_mileage_is_three_leg_loop():
    req = _request(ServiceType.delivery, pickup=ROSWELL, dropoff=MARIETTA)
    expected = distance(BASE_LOCATION, ROSWELL) + distance(ROSWELL, MARIETTA) + distance(MARIETTA, BASE_LOCATION)
    assert total_mileage(req) == pytest.approx(expected)


def test_mileage_zero_until_all_stops_confirmed():
    assert total_mileage(_request(ServiceType.delivery, pickup=ROSWELL)) == 0
    assert total_mileage(_request(ServiceType.single_sign, sign_current=ROSWELL)) == 0
    assert total_mileage(_request(ServiceType.errand)) == 0
    assert total_mileage(ServiceRequest()) == 0


def test_sign_mileage_grows_with_leg_length():
    near = _request(ServiceType.multiple_signs, sign_current=ROSWELL, sign_destination=Coordinate(34.0, -84.4))
    far = _request(ServiceType.multiple_signs, sign_current=ROSWELL, sign_destination=Coordinate(33.8, -84.6))
    assert total_mileage(far) > total_mileage(near)


# --- minimum hours ----------------------------------------------------------

def test_delivery_at_base_scenario():
    req = _request(ServiceType.delivery, pickup=BASE_LOCATION, dropoff=BASE_LOCATION)
    req.time_option = TimeOption.anytime
    assert total_mileage(req) == 0
    assert minimum_hours(req) == 0.5
    q = price(req)
    assert q.subtotal == 75
    assert q.total == pytest.approx(82.50)


def test_errand_fifteen_miles_each_way(monkeypatch):
    monkeypatch.setattr(quote_engine, "distance", lambda a, b: 15.0)
    req = _request(ServiceType.errand, errand=CUMMING)
    assert total_mileage(req) == 30
    assert minimum_hours(req) == 1.5


def test_thirteen_signs_scenario():
    req = ServiceRequest.for_service(ServiceType.multiple_signs)
    req.stops.number_of_signs = 13
    assert minimum_hours(req) == 2.0
    assert price(req).sign_cost == 60


def test_sum_rounded_up_to_half_hour(monkeypatch):
    # 0.5 base + 0.2 mileage + 0.5 signs = 1.2 -> 1.5
    monkeypatch.setattr(quote_engine, "distance", lambda a, b: 2.0)
    req = _request(ServiceType.single_sign, sign_current=ROSWELL, sign_destination=CUMMING)
    assert total_mileage(req) == pytest.approx(6.0)
    assert minimum_hours(req) == 1.5


@pytest.mark.parametrize("one_way", [0, 3, 7.5, 14, 22, 40, 90])
def test_minimum_hours_half_hour_multiple(monkeypatch, one_way):
    monkeypatch.setattr(quote_engine, "distance", lambda a, b: float(one_way))
    hours = minimum_hours(_request(ServiceType.errand, errand=CUMMING))
    assert hours >= 0.5
    assert hours * 2 == int(hours * 2)


def test_minimum_hours_monotonic_in_mileage_and_signs(monkeypatch):
    last = 0
    for miles in range(0, 120, 5):
        monkeypatch.setattr(quote_engine, "distance", lambda a, b, m=miles: float(m))
        h = minimum_hours(_request(ServiceType.errand, errand=CUMMING))
        assert h >= last
        last = h

    req = ServiceRequest.for_service(ServiceType.multiple_signs)
    last = 0
    for n in range(1, 21):
        req.stops.number_of_signs = n
        assert minimum_hours(req) >= last
        last = minimum_hours(req)


def test_signs_ignored_for_non_sign_services():
    assert minimum_hours(ServiceRequest.for_service(ServiceType.errand)) == 0.5
    assert minimum_hours(ServiceRequest.for_service(ServiceType.single_sign)) == 1.0


def test_reconcile_only_raises():
    assert reconcile_hours(1.0, 2.5) == 2.5
    assert reconcile_hours(4.0, 2.5) == 4.0


def test_check_hours_bounds():
    assert check_hours(2.5, 1.0) == 2.5
    with pytest.raises(ValueError):
        check_hours(0.5, 1.0)
    with pytest.raises(ValueError):
        check_hours(8.5, 1.0)
    with pytest.raises(ValueError):
        check_hours(1.25, 1.0)
    # minimum above the usual ceiling lifts the ceiling
    assert check_hours(9.0, 9.0) == 9.0


@pytest.mark.parametrize("hours", [math.inf, -math.inf, math.nan])
def test_check_hours_rejects_non_finite(hours):
    with pytest.raises(ValueError):
        check_hours(hours, 1.0)


# --- pricing ----------------------------------------------------------------

def test_first_hour_included_in_base_price():
    req = ServiceRequest.for_service(ServiceType.errand)
    req.estimated_hours = 1.0
    assert price(req).time_cost == 0
    req.estimated_hours = 3.5
    assert price(req).time_cost == pytest.approx(150)


def test_price_uses_reconciled_hours(monkeypatch):
    monkeypatch.setattr(quote_engine, "distance", lambda a, b: 45.0)
    req = _request(ServiceType.errand, errand=CUMMING)
    req.estimated_hours = 1.0
    # 90 miles -> 0.5 + 3.0 = 3.5 hours minimum
    assert price(req).time_cost == pytest.approx(2.5 * 60)
    assert price(req).mileage_cost == pytest.approx(135)


def test_sign_cost_only_for_multiple_signs():
    single = ServiceRequest.for_service(ServiceType.single_sign)
    assert price(single).sign_cost == 0
    multi = ServiceRequest.for_service(ServiceType.multiple_signs)
    multi.stops.number_of_signs = 1
    assert price(multi).sign_cost == 0
    multi.stops.number_of_signs = 3
    assert price(multi).sign_cost == 10


@pytest.mark.parametrize("option,percent", [
    (TimeOption.anytime, 10), (TimeOption.window, 25), (TimeOption.specific, 60),
])
def test_markup_tiers(option, percent):
    req = _request(ServiceType.delivery, pickup=ROSWELL, dropoff=CUMMING)
    req.time_option = option
    q = price(req)
    assert q.markup_percent == percent
    assert q.markup_amount == pytest.approx(q.subtotal * percent / 100)
    assert q.total == pytest.approx(q.subtotal + q.markup_amount)
    assert q.total > q.subtotal


def test_downgrade_chain_strictly_cheaper():
    req = _request(ServiceType.delivery, pickup=ROSWELL, dropoff=MARIETTA)
    totals = [price(req, time_option=o).total for o in (TimeOption.specific, TimeOption.window, TimeOption.anytime)]
    assert totals[0] > totals[1] > totals[2]
    subtotals = {price(req, time_option=o).subtotal for o in TimeOption}
    assert len(subtotals) == 1


def test_downgrade_order():
    assert downgrade_time_option(TimeOption.specific) == TimeOption.window
    assert downgrade_time_option(TimeOption.window) == TimeOption.anytime
    assert downgrade_time_option(TimeOption.anytime) is None
    assert downgrade_time_option(None) is None


def test_savings_preview():
    req = _request(ServiceType.errand, errand=ROSWELL)
    req.time_option = TimeOption.specific
    option, alt, saved = savings_preview(req)
    assert option == TimeOption.window
    assert saved == pytest.approx(price(req).total - alt.total)
    assert saved > 0
    req.time_option = TimeOption.anytime
    assert savings_preview(req) is None


@pytest.mark.parametrize("t,bucket", [
    (time(8, 0), "08:00"), (time(9, 59), "08:00"), (time(11, 30), "10:00"),
    (time(13, 0), "12:00"), (time(15, 45), "14:00"), (time(17, 10), "16:00"),
    (time(6, 30), "10:00"), (time(19, 0), "10:00"), (None, "10:00"),
])
def test_window_for_time(t, bucket):
    assert window_for_time(t) == bucket


def test_quote_is_idempotent():
    req = _request(ServiceType.delivery, pickup=ROSWELL, dropoff=CUMMING)
    req.time_option = TimeOption.window
    assert price(req) == price(req)
    assert math.isfinite(price(req).total)
