#!/usr/bin/env python3
"""Dyson Link - a client for Dyson Link (fan, purifier and heater) devices.

Works with the Dyson Link devices via their JSON over MQTT interface.
"""

from __future__ import annotations

from dyson_tx import VERSION

from .climate import OFF_ACTION, Action, ClimateControl, Rule, rules_from_config
from .const import (
    AirQuality,
    CurrentFanState,
    FanMode,
    HeaterCoolerState,
    TargetHeaterCoolerState,
)
from .device import AccessoryT, DysonLinkDevice
from .helpers import with_callback
from .quality import quality_level, quality_ordinal, trigger_ordinals
from .state import EnvironmentState, FanState

__all__ = [
    "VERSION",
    #
    "DysonLinkDevice",
    "AccessoryT",
    "with_callback",
    #
    "EnvironmentState",
    "FanState",
    #
    "OFF_ACTION",
    "Action",
    "ClimateControl",
    "Rule",
    "rules_from_config",
    #
    "quality_level",
    "quality_ordinal",
    "trigger_ordinals",
    #
    "AirQuality",
    "CurrentFanState",
    "FanMode",
    "HeaterCoolerState",
    "TargetHeaterCoolerState",
]
