from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from db.database import init_database
from fares.config import FareConfiguration, default_fare_configuration
from fares.engine import quote
from fares.quote import FareQuote
from rides.lifecycle import RideLifecycle
from rides.models import Ride, RideStatus
from tests.factories import DROP, IST, PICKUP, FixedClock, advance


@pytest.fixture
def fare_config() -> FareConfiguration:
    """Default configuration: auto 40 base / 2 km included / 17 per km,
    10% commission, 5% tax, evening surge 17-20 x1.4, night 23-5 at 20%."""
    return default_fare_configuration()


@pytest.fixture
def noon() -> datetime:
    """A time with no surge and no night surcharge."""
    return datetime(2024, 5, 1, 12, 0, tzinfo=IST)


@pytest.fixture
def evening() -> datetime:
    """Inside the 17-20 evening surge window."""
    return datetime(2024, 5, 1, 18, 0, tzinfo=IST)


@pytest.fixture
def late_night() -> datetime:
    """Inside both the 22-5 night surge window and the 23-5 night surcharge."""
    return datetime(2024, 5, 1, 23, 30, tzinfo=IST)


@pytest.fixture
def auto_quote(fare_config: FareConfiguration, noon: datetime) -> FareQuote:
    return quote(fare_config, "auto", 5.0, 0, noon, apply_surge=False)


@pytest.fixture
def clock(noon: datetime) -> FixedClock:
    return FixedClock(noon)


@pytest.fixture
def lifecycle(clock: FixedClock) -> RideLifecycle:
    return RideLifecycle(clock=clock)


@pytest.fixture
def make_ride(lifecycle: RideLifecycle, auto_quote: FareQuote) -> Callable[..., Ride]:
    """Factory for rides advanced to a given status."""

    def _make_ride(status: RideStatus = RideStatus.PENDING, ride_id: str = "RIDE-1") -> Ride:
        ride = lifecycle.create(
            ride_id=ride_id, rider_id="u1", pickup=PICKUP, drop=DROP, quote=auto_quote
        ).ride
        return advance(lifecycle, ride, status)

    return _make_ride


@pytest.fixture
def temp_sqlite_db(tmp_path: Path) -> Path:
    return tmp_path / "rides.db"


@pytest.fixture
def session_maker(temp_sqlite_db: Path):
    return init_database(f"sqlite:///{temp_sqlite_db}")


@pytest.fixture
def mock_sink() -> Mock:
    sink = Mock()
    sink.name = "mock"
    return sink
