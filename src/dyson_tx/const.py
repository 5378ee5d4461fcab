#!/usr/bin/env python3
"""Dyson Link - constants for the frame/protocol/transport layer."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import EnumCheck, StrEnum, verify
from typing import Final

# used by the protocol's waiter FSM...
DEFAULT_WAIT_TIMEOUT: Final[float] = 5.0  # waiting for the next frame of a kind
DEFAULT_MAX_WAITERS: Final[int] = 32  # per notification kind

# used by the device...
DEFAULT_FRESHNESS_WINDOW: Final[float] = 60.0  # seconds, a sensor read is cached
DEFAULT_POLL_INTERVAL: Final[float] = 600.0  # seconds, between full refreshes
DEFAULT_OSCILLATION_DELAY: Final[float] = 0.5  # seconds, after power-on

# used by transport...
DEFAULT_MQTT_PORT: Final[int] = 1883
DEFAULT_KEEPALIVE: Final[int] = 60

SZ_DEVICE_ID: Final = "device_id"
SZ_MODEL: Final = "model"

SERIAL_NUMBER_REGEX: Final = re.compile(r"DYSON-(\w{3}-\w{2}-\w{8})-(\w{3})")

KELVIN_OFFSET: Final[int] = 273  # NOTE: the devices use 273, not 273.15


# the JSON envelope
SZ_MSG: Final = "msg"
SZ_TIME: Final = "time"
SZ_DATA: Final = "data"
SZ_PRODUCT_STATE: Final = "product-state"


@verify(EnumCheck.UNIQUE)
class MsgType(StrEnum):
    ENVIRONMENTAL = "ENVIRONMENTAL-CURRENT-SENSOR-DATA"
    CURRENT_STATE = "CURRENT-STATE"
    STATE_CHANGE = "STATE-CHANGE"
    REQUEST_CURRENT_STATE = "REQUEST-CURRENT-STATE"
    STATE_SET = "STATE-SET"


@verify(EnumCheck.UNIQUE)
class Notify(StrEnum):
    SENSOR = "sensor-updated"
    STATE = "state-updated"


NOTIFY_MAP: Final[dict[MsgType, Notify]] = {
    MsgType.ENVIRONMENTAL: Notify.SENSOR,
    MsgType.CURRENT_STATE: Notify.STATE,
}


# product-state fields (the device's own vocabulary)
FMOD: Final = "fmod"  # legacy fan mode: OFF, FAN, AUTO
FPWR: Final = "fpwr"  # modern fan power: ON, OFF
AUTO: Final = "auto"  # modern auto mode: ON, OFF
FNSP: Final = "fnsp"  # fan speed: 0001-0010, AUTO
OSON: Final = "oson"  # oscillation
NMOD: Final = "nmod"  # night mode
FFOC: Final = "ffoc"  # legacy focused jet
FDIR: Final = "fdir"  # modern focused jet (front direction)
HMOD: Final = "hmod"  # heat mode: HEAT, OFF
HMAX: Final = "hmax"  # heat threshold, decikelvin
FILF: Final = "filf"  # legacy filter life, hours remaining
HFLR: Final = "hflr"  # modern HEPA filter life, percent remaining

# environmental fields
TACT: Final = "tact"  # temperature, decikelvin
HACT: Final = "hact"  # relative humidity, percent
PACT: Final = "pact"  # legacy particulate index, 0-9
VACT: Final = "vact"  # legacy VOC index, 0-9
P25R: Final = "p25r"  # PM2.5, ug/m3
P10R: Final = "p10r"  # PM10, ug/m3
VA10: Final = "va10"  # VOC index, x10
NOXL: Final = "noxl"  # NO2 index, x10

ON: Final = "ON"
OFF: Final = "OFF"
FAN: Final = "FAN"
HEAT: Final = "HEAT"
AUTO_MODE: Final = "AUTO"

FILTER_LIFE_HOURS: Final[int] = 4300  # legacy devices report hours remaining


@dataclass(frozen=True)
class ModelTraits:
    """The capabilities/quirks of a model, keyed by its model code."""

    heat_available: bool = False
    is_2018: bool = False  # fpwr/auto/fdir rather than fmod/ffoc
    legacy_mqtt: bool = False  # MQTT v3.1 (MQIsdp) handshake
    hmax_as_str: bool = False  # hmax is sent as a string, not a number


DEFAULT_TRAITS: Final = ModelTraits()

MODEL_TRAITS: Final[dict[str, ModelTraits]] = {
    "438": ModelTraits(is_2018=True, legacy_mqtt=True),  # # TP04 tower
    "455": ModelTraits(heat_available=True),  # #            HP02 hot+cool
    "469": ModelTraits(),  # #                               DP01 desk
    "475": ModelTraits(),  # #                               TP02 tower
    "520": ModelTraits(is_2018=True, legacy_mqtt=True),  # # DP04 desk
    "527": ModelTraits(heat_available=True, is_2018=True, hmax_as_str=True),  # HP04
}


def model_traits(model: str | None) -> ModelTraits:
    """Return the traits of a model (unknown models have no special traits)."""
    if model is None:
        return DEFAULT_TRAITS
    return MODEL_TRAITS.get(model, DEFAULT_TRAITS)


def status_topic(model: str, device_id: str) -> str:
    return f"{model}/{device_id}/status/current"


def command_topic(model: str, device_id: str) -> str:
    return f"{model}/{device_id}/command"
