#!/usr/bin/env python3
"""Dyson Link - constants for the device (upper) layer."""

from __future__ import annotations

from enum import EnumCheck, IntEnum, StrEnum, verify
from typing import Final

from dyson_tx.const import (  # noqa: F401, isort: skip, pylint: disable=unused-import
    DEFAULT_FRESHNESS_WINDOW as DEFAULT_FRESHNESS_WINDOW,
    DEFAULT_OSCILLATION_DELAY as DEFAULT_OSCILLATION_DELAY,
    DEFAULT_POLL_INTERVAL as DEFAULT_POLL_INTERVAL,
    ModelTraits as ModelTraits,
    Notify as Notify,
)


# The ordinal scales below are those of the (HomeKit) characteristics served by
# the bridge, so values are passed to/from it as is


@verify(EnumCheck.UNIQUE)
class AirQuality(IntEnum):
    UNKNOWN = 0
    EXCELLENT = 1
    GOOD = 2
    FAIR = 3
    INFERIOR = 4
    POOR = 5


@verify(EnumCheck.UNIQUE)
class HeaterCoolerState(IntEnum):  # the current state
    INACTIVE = 0
    IDLE = 1
    HEATING = 2
    COOLING = 3


@verify(EnumCheck.UNIQUE)
class TargetHeaterCoolerState(IntEnum):
    AUTO = 0
    HEAT = 1
    COOL = 2


@verify(EnumCheck.UNIQUE)
class FanMode(IntEnum):  # the target fan state
    OFF = 0
    HEAT = 1
    FAN = 2
    AUTO = 3


@verify(EnumCheck.UNIQUE)
class CurrentFanState(IntEnum):
    INACTIVE = 0
    IDLE = 1
    BLOWING_AIR = 2


@verify(EnumCheck.UNIQUE)
class RuleType(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    AIR_QUALITY = "air_quality"


FILTER_CHANGE_THRESHOLD: Final[int] = 10  # percent

# climate control configuration
SZ_ACTION: Final = "action"
SZ_CLIMATE_CONTROL: Final = "climate_control"
SZ_DISPLAY_NAME: Final = "display_name"
SZ_ENABLED: Final = "enabled"
SZ_NAME: Final = "name"
SZ_RULES: Final = "rules"
SZ_TRIGGER: Final = "trigger"
SZ_TYPE: Final = "type"

# rule actions (the properties a rule can set)
SZ_FAN_ON: Final = "fan_on"
SZ_FAN_AUTO: Final = "fan_auto"
SZ_FAN_SPEED: Final = "fan_speed"
SZ_ROTATE: Final = "rotate"
SZ_FOCUSED_JET: Final = "focused_jet"
SZ_NIGHT_MODE: Final = "night_mode"
