#!/usr/bin/env python3
"""Dyson Link - Protocol/Transport layer - Helper functions."""

from __future__ import annotations

from datetime import UTC, datetime as dt
from typing import Any

from .const import KELVIN_OFFSET


def dt_now() -> dt:
    """Return the current datetime as a local/naive datetime object."""
    return dt.now()


def iso_timestamp(dtm: dt | None = None) -> str:
    """Return an ISO8601 UTC timestamp with millisecond precision.

    The devices expect the same format as used by their own app, e.g.
    '2024-01-31T12:34:56.789Z'.
    """
    dtm = (dtm or dt.now(UTC)).astimezone(UTC)
    return dtm.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def latest_value(value: Any) -> Any:
    """Return the current value of a field, some of which are [old, new] pairs."""
    if isinstance(value, list | tuple):
        return value[-1] if value else None
    return value


def parse_int(value: Any) -> int | None:
    """Return a field as an int, or None if it is not numeric (e.g. 'OFF', 'INIT')."""
    try:
        return int(latest_value(value))
    except (OverflowError, TypeError, ValueError):  # OverflowError: int(inf)
        return None


def decikelvin_to_celsius(value: int) -> float:
    """Convert a device temperature (tenths of a kelvin) into degrees Celsius."""
    return round(value / 10 - KELVIN_OFFSET, 1)


def celsius_to_decikelvin(value: float) -> int:
    """Convert degrees Celsius into a device temperature (tenths of a kelvin)."""
    return round((value + KELVIN_OFFSET) * 10)
