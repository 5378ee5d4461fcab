#!/usr/bin/env python3
"""Dyson Link - a command (an outbound frame).

All model-specific field names/encodings are resolved here, via the model's traits.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime as dt
from typing import Any, Final

from . import exceptions as exc
from .const import (
    AUTO,
    AUTO_MODE,
    FAN,
    FDIR,
    FFOC,
    FMOD,
    FNSP,
    FPWR,
    HEAT,
    HMAX,
    HMOD,
    NMOD,
    OFF,
    ON,
    OSON,
    SZ_DATA,
    SZ_MSG,
    SZ_TIME,
    ModelTraits,
    MsgType,
)
from .helpers import celsius_to_decikelvin, iso_timestamp

_LOGGER = logging.getLogger(__name__)


# the logical properties understood by encode_state()
SZ_FAN_POWER: Final = "fan_power"
SZ_FAN_AUTO: Final = "fan_auto"
SZ_FAN_MODE: Final = "fan_mode"
SZ_FAN_SPEED: Final = "fan_speed"
SZ_OSCILLATION: Final = "oscillation"
SZ_NIGHT_MODE: Final = "night_mode"
SZ_FOCUSED_JET: Final = "focused_jet"
SZ_HEAT_MODE: Final = "heat_mode"
SZ_HEAT_THRESHOLD: Final = "heat_threshold"

_FieldsT = dict[str, str | int]


def _on_off(value: Any) -> str:
    return ON if value else OFF


def _fan_power(traits: ModelTraits, value: bool) -> _FieldsT:
    if traits.is_2018:
        return {FPWR: _on_off(value)}
    return {FMOD: FAN if value else OFF}


def _fan_auto(traits: ModelTraits, value: bool) -> _FieldsT:
    if traits.is_2018:
        return {AUTO: _on_off(value)}
    return {FMOD: AUTO_MODE if value else FAN}


def _fan_mode(traits: ModelTraits, value: str) -> _FieldsT:
    if value not in (OFF, FAN, AUTO_MODE):
        raise exc.CommandInvalid(f"Invalid fan mode: {value}")
    if not traits.is_2018:
        return {FMOD: value}
    if value == AUTO_MODE:
        return {FPWR: ON, AUTO: ON}
    if value == FAN:
        return {FPWR: ON, AUTO: OFF}
    return {FPWR: OFF}


def _fan_speed(traits: ModelTraits, value: float) -> _FieldsT:
    speed = round(value / 10)
    if not 0 <= speed <= 10:
        raise exc.CommandInvalid(f"Invalid fan speed: {value} (must be 0-100)")
    return {FNSP: f"{max(speed, 1):04d}"}  # 0000 is not a valid speed


def _oscillation(traits: ModelTraits, value: bool) -> _FieldsT:
    return {OSON: _on_off(value)}


def _night_mode(traits: ModelTraits, value: bool) -> _FieldsT:
    return {NMOD: _on_off(value)}


def _focused_jet(traits: ModelTraits, value: bool) -> _FieldsT:
    return {FDIR if traits.is_2018 else FFOC: _on_off(value)}


def _heat_mode(traits: ModelTraits, value: bool) -> _FieldsT:
    return {HMOD: HEAT if value else OFF}


def _heat_threshold(traits: ModelTraits, value: float) -> _FieldsT:
    kelvin = celsius_to_decikelvin(value)
    return {HMAX: str(kelvin) if traits.hmax_as_str else kelvin}


_ENCODERS: Final[dict[str, Callable[[ModelTraits, Any], _FieldsT]]] = {
    SZ_FAN_POWER: _fan_power,
    SZ_FAN_AUTO: _fan_auto,
    SZ_FAN_MODE: _fan_mode,
    SZ_FAN_SPEED: _fan_speed,
    SZ_OSCILLATION: _oscillation,
    SZ_NIGHT_MODE: _night_mode,
    SZ_FOCUSED_JET: _focused_jet,
    SZ_HEAT_MODE: _heat_mode,
    SZ_HEAT_THRESHOLD: _heat_threshold,
}


def encode_state(traits: ModelTraits, **props: Any) -> _FieldsT:
    """Return the device fields that will set the (logical) properties.

    Properties are encoded in the order given, so later ones take precedence.
    """

    result: _FieldsT = {}
    for key, value in props.items():
        try:
            encoder = _ENCODERS[key]
        except KeyError as err:
            raise exc.CommandInvalid(f"Unknown property: {key}") from err
        result |= encoder(traits, value)
    return result


class Command:
    """A command to be published to the device's command topic."""

    def __init__(
        self, msg_type: MsgType, data: _FieldsT | None = None, dtm: dt | None = None
    ) -> None:
        self.msg_type = msg_type
        self.data = data
        self._dtm = dtm

    def __repr__(self) -> str:
        if self.data is None:
            return f"{self.msg_type}"
        return f"{self.msg_type} {self.data}"

    def __str__(self) -> str:
        return json.dumps(self.payload)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Command):
            return NotImplemented
        return (self.msg_type, self.data) == (other.msg_type, other.data)

    @property
    def payload(self) -> dict[str, Any]:
        """Return the JSON payload, timestamped with the current time if need be."""
        result: dict[str, Any] = {
            SZ_MSG: str(self.msg_type),
            SZ_TIME: iso_timestamp(self._dtm),
        }
        if self.data is not None:
            result[SZ_DATA] = self.data
        return result

    @classmethod
    def request_current_state(cls) -> Command:
        """Constructor to ask the device for its current state & sensor data."""
        return cls(MsgType.REQUEST_CURRENT_STATE)

    @classmethod
    def set_state(cls, traits: ModelTraits, **props: Any) -> Command:
        """Constructor to set one or more (logical) properties of the device.

        For example: Command.set_state(traits, fan_power=True, fan_speed=40)
        """
        if not props:
            raise exc.CommandInvalid("A state-set command needs one or more properties")
        return cls(MsgType.STATE_SET, encode_state(traits, **props))
