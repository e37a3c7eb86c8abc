import re
from datetime import date, datetime

import pytest

from rides.ids import booth_ride_number, generate_ride_id
from tests.factories import IST


@pytest.mark.unit
class TestGenerateRideId:
    def test_format(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=IST)
        ride_id = generate_ride_id(now)

        match = re.fullmatch(r"RIDE-(\d+)-(\d{4})", ride_id)
        assert match is not None
        assert int(match.group(1)) == int(now.timestamp() * 1000)

    def test_ids_differ_within_same_millisecond(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=IST)
        ids = {generate_ride_id(now) for _ in range(50)}
        assert len(ids) > 1


@pytest.mark.unit
class TestBoothRideNumber:
    def test_format(self):
        assert (
            booth_ride_number("Rajiv Chowk", date(2024, 5, 1), 7)
            == "RAJIV-CHOWK-2024-05-01-007"
        )

    def test_collapses_whitespace(self):
        assert booth_ride_number("  hauz   khas ", date(2024, 1, 9), 12) == (
            "HAUZ-KHAS-2024-01-09-012"
        )

    def test_sequence_must_be_positive(self):
        with pytest.raises(ValueError):
            booth_ride_number("Janpath", date(2024, 5, 1), 0)
