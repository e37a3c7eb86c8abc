"""Tests for RideService against a temporary SQLite database."""

from datetime import date
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import (
    AlreadyTerminalError,
    ConcurrentModificationError,
    ConfigurationError,
    NotFoundError,
    OTPMismatchError,
    PersistenceError,
)
from db.repositories import BoothQueueRepository, RideRepository
from fares.provider import StaticFareConfigProvider
from geo.distance import GeoPoint
from notifications.dispatch import NotificationDispatch
from rides.lifecycle import RideLifecycle
from rides.booth_queue import QueueStatus
from rides.models import RideStatus
from rides.service import RideService
from tests.factories import DROP, PICKUP


@pytest.fixture
def session(session_maker):
    with session_maker() as session:
        yield session


@pytest.fixture
def repository(session):
    return RideRepository(session)


@pytest.fixture
def dispatcher(mock_sink):
    return NotificationDispatch([mock_sink])


@pytest.fixture
def service(fare_config, session, repository, dispatcher, clock):
    return RideService(
        config_provider=StaticFareConfigProvider(fare_config),
        repository=repository,
        dispatcher=dispatcher,
        booth_queue=BoothQueueRepository(session),
        lifecycle=RideLifecycle(clock=clock),
        clock=clock,
    )


def sent_event_types(sink):
    return [c.args[0].event_type for c in sink.send.call_args_list]


@pytest.mark.integration
class TestBooking:
    def test_book_ride_quotes_and_persists(self, service, repository, mock_sink):
        """Rajiv Chowk to Janpath is under the included 2 km: auto base 40."""
        ride = service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")

        assert ride.status == RideStatus.PENDING
        assert ride.quote.driver_base == 40
        assert ride.quote.customer_total == 46
        assert 0.8 < ride.distance_km < 0.95

        stored = repository.load_ride("RIDE-1")
        assert stored.quote.customer_total == 46
        assert sent_event_types(mock_sink) == ["ride.requested"]

    def test_generates_ride_id(self, service):
        ride = service.book_ride("u1", PICKUP, DROP, "bike")
        assert ride.ride_id.startswith("RIDE-")

    def test_unknown_vehicle_class_not_persisted(self, service, repository):
        with pytest.raises(ConfigurationError):
            service.book_ride("u1", PICKUP, DROP, "boat", ride_id="RIDE-1")
        with pytest.raises(NotFoundError):
            repository.load_ride("RIDE-1")

    def test_estimate(self, service):
        estimate = service.estimate(
            GeoPoint(latitude=PICKUP.latitude, longitude=PICKUP.longitude),
            GeoPoint(latitude=DROP.latitude, longitude=DROP.longitude),
        )
        assert estimate.estimates["car"].driver_base == 60

    def test_quote(self, service):
        assert service.quote("auto", 5.0).customer_total == 105

    def test_demand_multiplier_requires_directory(self, service):
        with pytest.raises(ConfigurationError):
            service.demand_multiplier("auto", "Rajiv Chowk")

    def test_demand_multiplier(self, service):
        service.directory = Mock()
        service.directory.count_online_drivers.return_value = 1
        service.directory.count_active_requests.return_value = 4
        assert service.demand_multiplier("auto", "Rajiv Chowk") == 1.5


@pytest.mark.integration
class TestRideFlow:
    def test_happy_path(self, service, repository, mock_sink, clock):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        ride = service.assign_driver("RIDE-1", "d1")
        assert ride.version == 2

        clock.advance(minutes=5)
        service.start_ride("RIDE-1", ride.start_code)
        clock.advance(minutes=10)
        ended = service.end_ride("RIDE-1", ride.end_code)
        assert ended.status == RideStatus.RIDE_ENDED

        history = service.settle_ride("RIDE-1", True, "upi")

        assert history.final_status == "completed"
        assert history.settlement.customer_total == 46
        assert history.settlement.payment_method == "upi"
        with pytest.raises(NotFoundError):
            repository.load_ride("RIDE-1")
        assert repository.get_history("RIDE-1").settlement.driver_payout == 40
        assert sent_event_types(mock_sink) == [
            "ride.requested",
            "ride.driver_assigned",
            "ride.started",
            "ride.ended",
            "ride.completed",
        ]

    def test_end_ride_with_corrected_distance(self, service):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        ride = service.assign_driver("RIDE-1", "d1")
        service.start_ride("RIDE-1", ride.start_code)

        ended = service.end_ride("RIDE-1", ride.end_code, corrected_distance_km=5.0)

        assert ended.final_quote.customer_total == 105
        assert ended.quote.customer_total == 46
        assert service.settle_ride("RIDE-1", True).settlement.customer_total == 105

    def test_wrong_code_is_not_saved(self, service, repository, mock_sink):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        service.assign_driver("RIDE-1", "d1")

        with pytest.raises(OTPMismatchError):
            service.start_ride("RIDE-1", "0000")

        stored = repository.load_ride("RIDE-1")
        assert stored.status == RideStatus.DRIVER_ASSIGNED
        assert stored.version == 2
        assert len(sent_event_types(mock_sink)) == 2

    def test_cancel_archives_ride(self, service, repository):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")

        history = service.cancel_ride("RIDE-1", "changed plans", "rider")

        assert history.final_status == "cancelled"
        assert repository.get_history("RIDE-1").cancellation_reason == "changed plans"
        with pytest.raises(NotFoundError):
            service.cancel_ride("RIDE-1", "again")

    def test_unknown_ride(self, service):
        with pytest.raises(NotFoundError):
            service.assign_driver("RIDE-missing", "d1")

    def test_notification_failure_does_not_undo_transition(
        self, service, repository, mock_sink, monkeypatch
    ):
        failures = Mock()
        monkeypatch.setattr("notifications.dispatch.notification_failures", failures)
        mock_sink.send.side_effect = RuntimeError("socket gateway down")

        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        service.assign_driver("RIDE-1", "d1")

        assert repository.load_ride("RIDE-1").status == RideStatus.DRIVER_ASSIGNED
        assert failures.add.call_count == 2


@pytest.mark.integration
class TestArchiveAtomicity:
    def test_failed_archive_keeps_ride_live_and_retryable(
        self, service, repository, mock_sink, monkeypatch
    ):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        service.assign_driver("RIDE-1", "d1")
        locked = OperationalError("DELETE FROM booth_queue", {}, Exception("database is locked"))
        monkeypatch.setattr(repository.booth_queue, "remove", Mock(side_effect=locked))

        with pytest.raises(PersistenceError):
            service.cancel_ride("RIDE-1", "changed plans")

        assert repository.load_ride("RIDE-1").status == RideStatus.DRIVER_ASSIGNED
        with pytest.raises(NotFoundError):
            repository.get_history("RIDE-1")
        assert "ride.cancelled" not in sent_event_types(mock_sink)

        monkeypatch.undo()
        history = service.cancel_ride("RIDE-1", "changed plans")

        assert history.final_status == "cancelled"
        assert repository.get_history("RIDE-1").cancellation_reason == "changed plans"
        with pytest.raises(NotFoundError):
            repository.load_ride("RIDE-1")


@pytest.mark.integration
class TestBoothQueue:
    def test_booking_allocates_booth_ride_numbers(self, service):
        first = service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        second = service.book_ride("u2", PICKUP, DROP, "bike", ride_id="RIDE-2")

        assert first.booth_ride_number == "RAJIV-CHOWK-2024-05-01-001"
        assert second.booth_ride_number == "RAJIV-CHOWK-2024-05-01-002"

    def test_numbers_restart_each_day(self, service, clock):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        clock.advance(days=1)

        ride = service.book_ride("u2", PICKUP, DROP, "auto", ride_id="RIDE-2")

        assert ride.booth_ride_number == "RAJIV-CHOWK-2024-05-02-001"

    def test_caller_supplied_number_is_kept(self, service):
        ride = service.book_ride(
            "u1", PICKUP, DROP, "auto", ride_id="RIDE-1", booth_ride_number="KIOSK-7"
        )
        assert ride.booth_ride_number == "KIOSK-7"

        other = service.book_ride("u2", PICKUP, DROP, "auto", ride_id="RIDE-2")
        assert other.booth_ride_number.endswith("-001")

    def test_rejected_booking_does_not_take_a_number(self, service):
        with pytest.raises(ConfigurationError):
            service.book_ride("u1", PICKUP, DROP, "boat", ride_id="RIDE-1")

        ride = service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-2")
        assert ride.booth_ride_number.endswith("-001")

    def test_queue_follows_ride_status(self, service):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        service.book_ride("u2", PICKUP, DROP, "auto", ride_id="RIDE-2")
        first = service.assign_driver("RIDE-1", "d1")
        service.assign_driver("RIDE-2", "d2")

        assert service.queue_ticket("RIDE-1").queue_number == "RAJV-20240501-Q001"
        assert service.queue_ticket("RIDE-2").queue_number == "RAJV-20240501-Q002"

        service.start_ride("RIDE-1", first.start_code)
        assert service.queue_ticket("RIDE-1").status == QueueStatus.IN_PROGRESS
        status = service.booth_queue_status("Rajiv Chowk")
        assert status.queued_count == 1
        assert status.in_progress_count == 1
        assert status.currently_serving == 1

        service.end_ride("RIDE-1", first.end_code)
        service.settle_ride("RIDE-1", True)
        assert [t.ride_id for t in service.list_booth_queue("Rajiv Chowk")] == ["RIDE-2"]

        service.cancel_ride("RIDE-2", "changed plans")
        assert service.list_booth_queue("Rajiv Chowk") == []
        assert service.booth_queue_status("Rajiv Chowk", date(2024, 5, 1)).total_today == 2

    def test_pending_ride_has_no_ticket(self, service):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        with pytest.raises(NotFoundError):
            service.queue_ticket("RIDE-1")

    def test_without_booth_queue(self, fare_config, repository, dispatcher, clock):
        service = RideService(
            config_provider=StaticFareConfigProvider(fare_config),
            repository=repository,
            dispatcher=dispatcher,
            clock=clock,
        )

        ride = service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        assert ride.booth_ride_number is None
        with pytest.raises(ConfigurationError):
            service.booth_queue_status("Rajiv Chowk")


@pytest.mark.integration
class TestAnalytics:
    def test_rider_and_driver_totals(self, service, clock):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        ride = service.assign_driver("RIDE-1", "d1")
        clock.advance(minutes=5)
        service.start_ride("RIDE-1", ride.start_code)
        clock.advance(minutes=12)
        service.end_ride("RIDE-1", ride.end_code, corrected_distance_km=5.0)
        service.settle_ride("RIDE-1", True)

        service.book_ride("u1", PICKUP, DROP, "car", ride_id="RIDE-2")
        service.cancel_ride("RIDE-2", "changed plans")

        service.book_ride("u2", PICKUP, DROP, "auto", ride_id="RIDE-3")
        service.assign_driver("RIDE-3", "d1")

        rider = service.rider_analytics("u1")
        assert rider.total_rides == 2
        assert rider.completed_rides == 1
        assert rider.cancelled_rides == 1
        assert rider.total_spent == 105
        assert rider.longest_ride.ride_id == "RIDE-1"
        assert rider.longest_ride.distance_km == 5.0
        assert [(s.booth_name, s.rides) for s in rider.preferred_stations] == [("Rajiv Chowk", 2)]

        driver = service.driver_analytics("d1")
        assert driver.completed_rides == 1
        assert driver.total_earnings == 91
        assert driver.average_ride_duration_min == 12
        assert driver.average_distance_km == 5.0
        assert driver.active_ride_ids == ["RIDE-3"]

    def test_unknown_rider(self, service):
        analytics = service.rider_analytics("nobody")
        assert analytics.total_rides == 0
        assert analytics.longest_ride is None


@pytest.mark.integration
class TestExpireStaleRides:
    def test_expires_pending_and_assigned_rides(self, service, repository, clock):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-pending")
        service.book_ride("u2", PICKUP, DROP, "auto", ride_id="RIDE-assigned")
        service.assign_driver("RIDE-assigned", "d1")
        clock.advance(minutes=10)
        service.book_ride("u3", PICKUP, DROP, "auto", ride_id="RIDE-fresh")

        clock.advance(minutes=21)
        expired = service.expire_stale_rides()

        assert sorted(expired) == ["RIDE-assigned", "RIDE-pending"]
        history = repository.get_history("RIDE-pending")
        assert history.cancelled_by == "system"
        assert history.cancellation_reason == "No driver found within time limit"
        assert (
            repository.get_history("RIDE-assigned").cancellation_reason
            == "Driver did not start ride within time limit"
        )
        assert repository.load_ride("RIDE-fresh").status == RideStatus.PENDING

    def test_nothing_to_expire(self, service, clock):
        service.book_ride("u1", PICKUP, DROP, "auto", ride_id="RIDE-1")
        clock.advance(minutes=29)
        assert service.expire_stale_rides() == []

    def test_failed_expiry_left_for_next_sweep(
        self, fare_config, dispatcher, make_ride, clock
    ):
        stuck = make_ride(ride_id="RIDE-stuck")
        other = make_ride(ride_id="RIDE-other")
        repository = Mock()
        repository.list_by_status.side_effect = lambda status: (
            [stuck, other] if status == RideStatus.PENDING else []
        )

        def save_and_archive(ride, history):
            if ride.ride_id == "RIDE-stuck":
                raise ConcurrentModificationError("modified concurrently")

        repository.save_and_archive.side_effect = save_and_archive
        service = RideService(
            config_provider=StaticFareConfigProvider(fare_config),
            repository=repository,
            dispatcher=dispatcher,
            clock=clock,
        )

        clock.advance(hours=1)
        assert service.expire_stale_rides() == ["RIDE-other"]
        assert repository.save_and_archive.call_count == 2
        repository.save_ride.assert_not_called()


@pytest.mark.unit
def test_terminal_ride_from_store_rejected(fare_config, dispatcher, make_ride, clock):
    repository = Mock()
    repository.load_ride.return_value = make_ride(RideStatus.COMPLETED)
    service = RideService(
        config_provider=StaticFareConfigProvider(fare_config),
        repository=repository,
        dispatcher=dispatcher,
        clock=clock,
    )

    with pytest.raises(AlreadyTerminalError):
        service.cancel_ride("RIDE-1", "late")
    repository.save_ride.assert_not_called()
    repository.save_and_archive.assert_not_called()
