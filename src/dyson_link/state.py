#!/usr/bin/env python3
"""Dyson Link - the state models of a device (its sensors, and its fan/heater).

The models are updated from frames, and are not aware of the protocol.
"""

from __future__ import annotations

import logging
from datetime import datetime as dt, timedelta as td
from typing import TYPE_CHECKING, Any

from dyson_tx.const import (
    AUTO,
    AUTO_MODE,
    FAN,
    FDIR,
    FFOC,
    FILF,
    FILTER_LIFE_HOURS,
    FMOD,
    FNSP,
    FPWR,
    HACT,
    HEAT,
    HFLR,
    HMAX,
    HMOD,
    NMOD,
    NOXL,
    ON,
    OSON,
    P10R,
    P25R,
    PACT,
    TACT,
    VA10,
    VACT,
)
from dyson_tx.helpers import decikelvin_to_celsius, dt_now, latest_value, parse_int

from .const import (
    DEFAULT_FRESHNESS_WINDOW,
    FILTER_CHANGE_THRESHOLD,
    CurrentFanState,
    FanMode,
    HeaterCoolerState,
    TargetHeaterCoolerState,
)
from .quality import quality_level, quality_ordinal

if TYPE_CHECKING:
    from dyson_tx import Frame, ModelTraits


_LOGGER = logging.getLogger(__name__)


class EnvironmentState:
    """The most recent sensor readings of a device."""

    _SENSORS = (TACT, HACT, PACT, VACT, P25R, P10R, VA10, NOXL)

    def __init__(self) -> None:
        self._readings: dict[str, int] = {}
        self.last_updated: dt | None = None

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(temperature={self.temperature}, "
            f"humidity={self.humidity}, air_quality={self.air_quality})"
        )

    def update_state(self, frame: Frame) -> None:
        """Merge the sensor data of a frame into the readings.

        Readings that are not numeric (e.g. 'OFF', 'INIT') leave the prior value
        as is, as do readings that are absent from the frame.
        """

        data = frame.data
        for key in self._SENSORS:
            if key in data and (value := parse_int(data[key])) is not None:
                self._readings[key] = value

        self.last_updated = dt_now()

    def not_updated_recently(
        self, window: float = DEFAULT_FRESHNESS_WINDOW, now: dt | None = None
    ) -> bool:
        """Return True if the readings are older than window seconds (or absent)."""
        if self.last_updated is None:
            return True
        return (now or dt_now()) - self.last_updated > td(seconds=window)

    @property
    def temperature(self) -> float | None:
        """Return the temperature in degrees Celsius (None if never read)."""
        if (value := self._readings.get(TACT)) is None:
            return None
        return decikelvin_to_celsius(value)

    @property
    def humidity(self) -> int | None:
        return self._readings.get(HACT)

    @property
    def pm2_5(self) -> int:
        return self._readings.get(P25R, 0)

    @property
    def pm10(self) -> int:
        return self._readings.get(P10R, 0)

    @property
    def voc(self) -> int:
        if VA10 in self._readings:
            return self._readings[VA10]
        return self._readings.get(VACT, 0)

    @property
    def no2(self) -> int:
        return self._readings.get(NOXL, 0)

    @property
    def air_quality(self) -> int:
        """Return the air quality as an ordinal, 1 (EXCELLENT) to 5 (POOR).

        The worst of the available pollutant readings wins. Returns 0 if unknown.
        """

        def index(key: str) -> float | None:  # va10/noxl are x10
            return None if (v := self._readings.get(key)) is None else v / 10

        level = quality_level(
            pm2_5=self._readings.get(P25R),
            pm10=self._readings.get(P10R),
            voc=index(VA10),
            no2=index(NOXL),
            pact=self._readings.get(PACT),
            vact=self._readings.get(VACT),
        )
        return quality_ordinal(level)


class FanState:
    """The most recent product state of a device (its fan, and heater if any)."""

    def __init__(self, traits: ModelTraits) -> None:
        self._traits = traits
        self._fields: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._fields})"

    @property
    def fields(self) -> dict[str, Any]:
        """Return a copy of the (raw) product state."""
        return dict(self._fields)

    def update_state(self, frame: Frame) -> None:
        """Merge the product state of a frame into the fields."""
        for key, value in frame.product_state.items():
            self._fields[key] = latest_value(value)

    def _is(self, key: str, value: str) -> bool:
        return self._fields.get(key) == value

    @property
    def heat_available(self) -> bool:
        return self._traits.heat_available

    @property
    def is_2018(self) -> bool:
        return self._traits.is_2018

    @property
    def fan_on(self) -> bool:
        if self.is_2018:
            return self._is(FPWR, ON)
        return self._fields.get(FMOD) in (FAN, AUTO_MODE)

    @property
    def fan_auto(self) -> bool:
        if self.is_2018:
            return self._is(AUTO, ON)
        return self._is(FMOD, AUTO_MODE)

    @property
    def fan_speed(self) -> int:
        """Return the fan speed as a percentage (0 if in auto mode, or unknown)."""
        speed = parse_int(self._fields.get(FNSP))  # e.g. '0004', or 'AUTO'
        return 0 if speed is None else speed * 10

    @property
    def fan_rotate(self) -> bool:
        return self._is(OSON, ON)

    @property
    def night_mode(self) -> bool:
        return self._is(NMOD, ON)

    @property
    def fan_focused(self) -> bool:
        return self._is(FDIR if self.is_2018 else FFOC, ON)

    @property
    def fan_heat(self) -> bool:
        return self.heat_available and self._is(HMOD, HEAT)

    @property
    def heat_threshold(self) -> float | None:
        """Return the heat threshold in degrees Celsius (hmax is in decikelvin)."""
        if (value := parse_int(self._fields.get(HMAX))) is None:
            return None
        return decikelvin_to_celsius(value)

    @property
    def filter_life(self) -> int | None:
        """Return the remaining filter life as a percentage, if known."""

        if self.is_2018:
            return parse_int(self._fields.get(HFLR))

        if (hours := parse_int(self._fields.get(FILF))) is None:
            return None
        return min(round(hours * 100 / FILTER_LIFE_HOURS), 100)

    @property
    def filter_change_required(self) -> bool:
        if (life := self.filter_life) is None:
            return False
        return life <= FILTER_CHANGE_THRESHOLD

    @property
    def heater_cooler_state(self) -> HeaterCoolerState:
        if not self.fan_on:
            return HeaterCoolerState.INACTIVE
        if self.fan_heat:
            return HeaterCoolerState.HEATING
        return HeaterCoolerState.COOLING

    @property
    def target_heater_cooler_state(self) -> TargetHeaterCoolerState:
        if self.fan_auto:
            return TargetHeaterCoolerState.AUTO
        if self.fan_heat:
            return TargetHeaterCoolerState.HEAT
        return TargetHeaterCoolerState.COOL

    @property
    def fan_state(self) -> FanMode:
        if not self.fan_on:
            return FanMode.OFF
        if self.fan_auto:
            return FanMode.AUTO
        if self.fan_heat:
            return FanMode.HEAT
        return FanMode.FAN

    @property
    def current_fan_state(self) -> CurrentFanState:
        if self.fan_on:
            return CurrentFanState.BLOWING_AIR
        return CurrentFanState.INACTIVE
