#!/usr/bin/env python3
"""Dyson Link - air quality classification.

Named levels (as used in climate control rules) map to the ordinal scale of the
bridge's AirQuality characteristic: EXCELLENT(1) .. POOR(5), with 0 as unknown.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Final

from .const import AirQuality

_LEVELS: Final[dict[str, AirQuality]] = {
    AirQuality.EXCELLENT.name: AirQuality.EXCELLENT,
    AirQuality.GOOD.name: AirQuality.GOOD,
    AirQuality.FAIR.name: AirQuality.FAIR,
    AirQuality.INFERIOR.name: AirQuality.INFERIOR,
    AirQuality.POOR.name: AirQuality.POOR,
}

# upper bounds (inclusive) of EXCELLENT, GOOD, FAIR & INFERIOR, anything above is POOR
_PM2_5_BANDS: Final = (12, 35, 53, 70)  # ug/m3
_PM10_BANDS: Final = (27, 50, 75, 100)  # ug/m3
_INDEX_BANDS: Final = (2, 4, 6, 8)  # an index, 0-9


def quality_ordinal(level: Any) -> int:
    """Return the ordinal of a named air quality level (0 if it is not one)."""
    if not isinstance(level, str):
        return AirQuality.UNKNOWN
    return _LEVELS.get(level, AirQuality.UNKNOWN)


def trigger_ordinals(levels: Iterable[Any]) -> frozenset[int]:
    """Return the ordinals of a rule's trigger levels.

    Unrecognised levels are dropped, so that they can never match a reading.
    """
    return frozenset(quality_ordinal(lvl) for lvl in levels) - {AirQuality.UNKNOWN}


def _band(value: float | None, bands: tuple[int, ...]) -> AirQuality:
    if value is None or value < 0:
        return AirQuality.UNKNOWN
    for ordinal, upper in enumerate(bands, start=AirQuality.EXCELLENT):
        if value <= upper:
            return AirQuality(ordinal)
    return AirQuality.POOR


def quality_level(
    *,
    pm2_5: float | None = None,
    pm10: float | None = None,
    voc: float | None = None,
    no2: float | None = None,
    pact: float | None = None,
    vact: float | None = None,
) -> str | None:
    """Return the named air quality level of a set of pollutant readings.

    Densities (pm2_5, pm10) are in ug/m3, and indices (voc, no2, pact, vact) are
    0-9. The worst of the readings wins. Returns None if there are no readings.
    """

    worst = max(
        _band(pm2_5, _PM2_5_BANDS),
        _band(pm10, _PM10_BANDS),
        *(_band(v, _INDEX_BANDS) for v in (voc, no2, pact, vact)),
    )
    return None if worst == AirQuality.UNKNOWN else AirQuality(worst).name
