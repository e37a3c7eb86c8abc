"""Tests for logging filters."""

import logging

import pytest

from ride_logging import PIIFilter


@pytest.mark.unit
class TestPIIFilter:
    @pytest.fixture
    def pii_filter(self):
        return PIIFilter()

    @pytest.fixture
    def make_record(self):
        def _make_record(msg) -> logging.LogRecord:
            return logging.LogRecord(
                name="test.logger",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg=msg,
                args=(),
                exc_info=None,
            )

        return _make_record

    def test_masks_email(self, pii_filter, make_record):
        record = make_record("receipt sent to rider@example.com")
        pii_filter.filter(record)

        assert "[EMAIL]" in record.msg
        assert "rider@example.com" not in record.msg

    def test_masks_phone(self, pii_filter, make_record):
        record = make_record("rider phone 987-654-3210")
        pii_filter.filter(record)

        assert "[PHONE]" in record.msg
        assert "987-654-3210" not in record.msg

    def test_masks_indian_phone_with_country_code(self, pii_filter, make_record):
        record = make_record("driver +91 9876543210 is online")
        pii_filter.filter(record)

        assert record.msg == "driver [PHONE] is online"

    @pytest.mark.parametrize(
        "msg,expected",
        [
            ("start_code=4821 accepted", "start_code=[CODE] accepted"),
            ("end_code: 73912", "end_code: [CODE]"),
            ("OTP=482193 sent", "OTP=[CODE] sent"),
            ("code=9999", "code=[CODE]"),
        ],
    )
    def test_masks_verification_codes(self, pii_filter, make_record, msg, expected):
        record = make_record(msg)
        pii_filter.filter(record)
        assert record.msg == expected

    def test_leaves_ride_ids_alone(self, pii_filter, make_record):
        record = make_record("Ride RIDE-1714550400000-4821 started")
        pii_filter.filter(record)
        assert record.msg == "Ride RIDE-1714550400000-4821 started"

    def test_masks_multiple(self, pii_filter, make_record):
        record = make_record("rider@example.com called 987-654-3210 with otp:4821")
        pii_filter.filter(record)

        assert "[EMAIL]" in record.msg
        assert "[PHONE]" in record.msg
        assert "otp:[CODE]" in record.msg

    def test_always_passes_record(self, pii_filter, make_record):
        assert pii_filter.filter(make_record("plain message")) is True

    def test_non_string_message_untouched(self, pii_filter, make_record):
        payload = {"phone": "987-654-3210"}
        record = make_record(payload)
        pii_filter.filter(record)
        assert record.msg is payload

