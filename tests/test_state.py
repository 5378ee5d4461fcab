#!/usr/bin/env python3
"""Dyson Link - Test the state models (sensor readings, and fan state)."""

from datetime import timedelta as td
from typing import Any

import pytest

from dyson_link import (
    CurrentFanState,
    EnvironmentState,
    FanMode,
    FanState,
    HeaterCoolerState,
    TargetHeaterCoolerState,
)
from dyson_tx import Frame, model_traits
from dyson_tx.helpers import dt_now


def _env_frame(**data: Any) -> Frame:
    return Frame(
        dt_now(), {"msg": "ENVIRONMENTAL-CURRENT-SENSOR-DATA", "data": data}
    )


def _state_frame(msg: str = "CURRENT-STATE", **fields: Any) -> Frame:
    return Frame(dt_now(), {"msg": msg, "product-state": fields})


# ### EnvironmentState #################################################################


def test_env_initial() -> None:
    env = EnvironmentState()

    assert env.last_updated is None
    assert env.not_updated_recently()
    assert env.temperature is None
    assert env.humidity is None
    assert env.air_quality == 0


def test_env_update() -> None:
    env = EnvironmentState()
    env.update_state(_env_frame(tact="2950", hact="0045", pact="0003", vact="0001"))

    assert env.temperature == 22.0
    assert env.humidity == 45
    assert env.air_quality == 2  # pact 3 is GOOD
    assert env.last_updated is not None
    assert not env.not_updated_recently()


def test_env_update_modern() -> None:
    env = EnvironmentState()
    env.update_state(
        _env_frame(tact="2961", p25r="0040", p10r="0020", va10="0010", noxl="0005")
    )

    assert env.temperature == 23.1
    assert env.pm2_5 == 40
    assert env.pm10 == 20
    assert env.voc == 10
    assert env.no2 == 5
    assert env.air_quality == 3  # pm2_5 40 is FAIR


def test_env_update_keeps_prior_values() -> None:
    """Values that are absent or not numeric (e.g. 'OFF', 'INIT') are ignored."""

    env = EnvironmentState()
    env.update_state(_env_frame(tact="2950", hact="0045"))
    env.update_state(_env_frame(tact="OFF", hact="INIT", other="0001"))

    assert env.temperature == 22.0
    assert env.humidity == 45

    env.update_state(_env_frame(hact="0050"))
    assert env.temperature == 22.0
    assert env.humidity == 50


def test_env_update_never_numeric() -> None:
    """A reading that has never been numeric is unknown, rather than 0."""

    env = EnvironmentState()
    env.update_state(_env_frame(tact="OFF", hact="INIT"))

    assert env.temperature is None
    assert env.humidity is None
    assert env.last_updated is not None


def test_env_update_out_of_range() -> None:
    """A reading that is not a finite number (e.g. 1e999, i.e. inf) is ignored."""

    env = EnvironmentState()
    env.update_state(_env_frame(tact="2950"))

    frame = Frame.from_payload(
        '{"msg": "ENVIRONMENTAL-CURRENT-SENSOR-DATA", "data": {"tact": 1e999}}'
    )
    env.update_state(frame)

    assert env.temperature == 22.0


def test_env_not_updated_recently() -> None:
    env = EnvironmentState()
    env.update_state(_env_frame(tact="2950"))
    assert env.last_updated is not None

    now = env.last_updated
    assert not env.not_updated_recently(60, now=now + td(seconds=59))
    assert env.not_updated_recently(60, now=now + td(seconds=61))
    assert env.not_updated_recently(5, now=now + td(seconds=6))


# ### FanState #########################################################################


def test_fan_legacy() -> None:
    state = FanState(model_traits("475"))
    state.update_state(
        _state_frame(fmod="FAN", fnsp="0004", oson="ON", nmod="OFF", ffoc="ON")
    )

    assert not state.is_2018
    assert state.fan_on
    assert not state.fan_auto
    assert state.fan_speed == 40
    assert state.fan_rotate
    assert not state.night_mode
    assert state.fan_focused
    assert not state.fan_heat  # no heater

    state.update_state(_state_frame(fmod="AUTO", fnsp="AUTO"))
    assert state.fan_on
    assert state.fan_auto
    assert state.fan_speed == 0

    state.update_state(_state_frame(fmod="OFF"))
    assert not state.fan_on
    assert not state.fan_auto


def test_fan_2018() -> None:
    state = FanState(model_traits("438"))
    state.update_state(
        _state_frame(fpwr="ON", auto="ON", fnsp="0007", fdir="ON", ffoc="OFF")
    )

    assert state.is_2018
    assert state.fan_on
    assert state.fan_auto
    assert state.fan_speed == 70
    assert state.fan_focused  # fdir, not ffoc

    state.update_state(_state_frame(fmod="FAN", fpwr="OFF"))  # fmod is ignored
    assert not state.fan_on


def test_fan_state_change_pairs() -> None:
    """STATE-CHANGE fields are [old, new] pairs, and only the new value is kept."""

    state = FanState(model_traits("475"))
    state.update_state(_state_frame(fmod="OFF", nmod="OFF"))
    state.update_state(_state_frame("STATE-CHANGE", fmod=["OFF", "FAN"]))

    assert state.fan_on
    assert state.fields == {"fmod": "FAN", "nmod": "OFF"}


def test_fan_heat() -> None:
    heater = FanState(model_traits("455"))
    heater.update_state(_state_frame(fmod="FAN", hmod="HEAT", hmax="2980"))

    assert heater.heat_available
    assert heater.fan_heat
    assert heater.heat_threshold == 25.0

    fan = FanState(model_traits("475"))  # hmod is ignored if there's no heater
    fan.update_state(_state_frame(fmod="FAN", hmod="HEAT"))
    assert not fan.fan_heat


@pytest.mark.parametrize(
    "model, fields, life, change",
    [
        ("475", {"filf": "4300"}, 100, False),
        ("475", {"filf": "2150"}, 50, False),
        ("475", {"filf": "0430"}, 10, True),
        ("475", {"filf": "0000"}, 0, True),
        ("438", {"hflr": "0080"}, 80, False),
        ("438", {"hflr": "0010"}, 10, True),
        ("438", {"hflr": "0011"}, 11, False),
        ("438", {}, None, False),
    ],
)
def test_fan_filter_life(
    model: str, fields: dict, life: int | None, change: bool
) -> None:
    state = FanState(model_traits(model))
    state.update_state(_state_frame(**fields))

    assert state.filter_life == life
    assert state.filter_change_required is change


def test_fan_derived_states_off() -> None:
    state = FanState(model_traits("455"))
    state.update_state(_state_frame(fmod="OFF", hmod="OFF"))

    assert state.heater_cooler_state == HeaterCoolerState.INACTIVE
    assert state.target_heater_cooler_state == TargetHeaterCoolerState.COOL
    assert state.fan_state == FanMode.OFF
    assert state.current_fan_state == CurrentFanState.INACTIVE


def test_fan_derived_states_heating() -> None:
    state = FanState(model_traits("455"))
    state.update_state(_state_frame(fmod="FAN", hmod="HEAT"))

    assert state.heater_cooler_state == HeaterCoolerState.HEATING
    assert state.target_heater_cooler_state == TargetHeaterCoolerState.HEAT
    assert state.fan_state == FanMode.HEAT
    assert state.current_fan_state == CurrentFanState.BLOWING_AIR


def test_fan_derived_states_cooling() -> None:
    state = FanState(model_traits("455"))
    state.update_state(_state_frame(fmod="FAN", hmod="OFF"))

    assert state.heater_cooler_state == HeaterCoolerState.COOLING
    assert state.target_heater_cooler_state == TargetHeaterCoolerState.COOL
    assert state.fan_state == FanMode.FAN

    state.update_state(_state_frame(fmod="AUTO"))
    assert state.target_heater_cooler_state == TargetHeaterCoolerState.AUTO
    assert state.fan_state == FanMode.AUTO
