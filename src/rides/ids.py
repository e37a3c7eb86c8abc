"""Ride identifiers."""

import secrets
from datetime import date, datetime


def generate_ride_id(now: datetime) -> str:
    """Unique ride reference: RIDE-<epoch millis>-<4 random digits>."""
    millis = int(now.timestamp() * 1000)
    return f"RIDE-{millis}-{1000 + secrets.randbelow(9000)}"


def booth_ride_number(booth_name: str, day: date, sequence: int) -> str:
    """Human-readable per-booth daily ride number, e.g. RAJIV-CHOWK-2024-05-01-007.

    The caller owns the daily counter; sequence starts at 1 each day.
    """
    if sequence < 1:
        raise ValueError(f"Booth ride sequence must start at 1, got {sequence}")
    booth_code = "-".join(booth_name.upper().split())
    return f"{booth_code}-{day.isoformat()}-{sequence:03d}"
