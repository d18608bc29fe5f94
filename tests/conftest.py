"""Shared fixtures: coordinates, a pinned "today" and fake transports."""

from datetime import date, timedelta

import pytest

from agent_assist.booking import BookingSession
from agent_assist.models import Coordinate
from agent_assist.quote_engine import BASE_LOCATION

TODAY = date(2026, 10, 19)
TOMORROW = TODAY + timedelta(days=1)

# Roughly 5-25 miles from the office in Alpharetta, GA
ROSWELL = Coordinate(34.0232, -84.3616)
CUMMING = Coordinate(34.2073, -84.1402)
MARIETTA = Coordinate(33.9526, -84.5499)


class FakeTransport:
    """Records payloads; answers with a fixed result."""

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.payloads = []

    async def __call__(self, payload):
        self.payloads.append(payload)
        return self.ok


@pytest.fixture
def base():
    return BASE_LOCATION


@pytest.fixture
def session():
    return BookingSession(session_id="test", today=lambda: TODAY)


@pytest.fixture
def transport():
    return FakeTransport(ok=True)


@pytest.fixture
def failing_transport():
    return FakeTransport(ok=False)
