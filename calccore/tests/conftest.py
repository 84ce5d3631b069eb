from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from flask.testing import FlaskClient

from calccore.app import create_app
from calccore.config import Settings
from calccore.core.rates import RateConverter
from calccore.exceptions import RateSourceError
from calccore.schemas.rates import RateQuote

T0 = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSource:
    """Stands in for the exchange endpoint; flip ``fail`` to simulate an outage."""

    def __init__(self, rates: dict | None = None, as_of: str = "15.01.2025"):
        self.rates = dict(rates or {"USD": 41.5, "EUR": 43.2})
        self.as_of = as_of
        self.fail = False
        self.calls = 0

    def __call__(self) -> list:
        self.calls += 1
        if self.fail:
            raise RateSourceError("endpoint unreachable")
        return [RateQuote(cc=code, rate=rate, exchangedate=self.as_of) for code, rate in self.rates.items()]


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture()
def converter(source: FakeSource, clock: Clock) -> RateConverter:
    return RateConverter(fetch=source, codes=("USD", "EUR"), home="UAH", clock=clock)


@pytest.fixture()
def app(converter: RateConverter):
    settings = Settings(HOME_CURRENCY="UAH", RATE_CODES=["USD", "EUR"], LOG_LEVEL="WARNING")
    return create_app(settings=settings, rate_converter=converter)


@pytest.fixture()
def client(app) -> FlaskClient:
    with app.test_client() as test_client:
        yield test_client
