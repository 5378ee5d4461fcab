#!/usr/bin/env python3
"""Dyson Link - Test the encoding of commands (and the decoding of frames)."""

import json
from datetime import UTC, datetime as dt

import pytest

from dyson_tx import Command, Frame, model_traits
from dyson_tx.command import encode_state
from dyson_tx.const import MsgType, Notify
from dyson_tx.exceptions import CommandInvalid, FrameInvalid

LEGACY = model_traits("475")
HEATER = model_traits("455")
MODERN = model_traits("438")
HEATER_2018 = model_traits("527")


# ### Commands #########################################################################


def test_request_current_state() -> None:
    cmd = Command.request_current_state()
    payload = cmd.payload

    assert payload["msg"] == "REQUEST-CURRENT-STATE"
    assert "data" not in payload
    assert payload["time"].endswith("Z") and len(payload["time"]) == 24


def test_payload_timestamp() -> None:
    cmd = Command(MsgType.STATE_SET, {"oson": "ON"}, dtm=dt(2024, 1, 31, tzinfo=UTC))

    assert json.loads(str(cmd)) == {
        "msg": "STATE-SET",
        "time": "2024-01-31T00:00:00.000Z",
        "data": {"oson": "ON"},
    }


@pytest.mark.parametrize(
    "traits, props, expected",
    [
        (LEGACY, {"fan_power": True}, {"fmod": "FAN"}),
        (LEGACY, {"fan_power": False}, {"fmod": "OFF"}),
        (MODERN, {"fan_power": True}, {"fpwr": "ON"}),
        (LEGACY, {"fan_auto": True}, {"fmod": "AUTO"}),
        (LEGACY, {"fan_auto": False}, {"fmod": "FAN"}),
        (MODERN, {"fan_auto": False}, {"auto": "OFF"}),
        (LEGACY, {"fan_mode": "AUTO"}, {"fmod": "AUTO"}),
        (MODERN, {"fan_mode": "AUTO"}, {"fpwr": "ON", "auto": "ON"}),
        (MODERN, {"fan_mode": "FAN"}, {"fpwr": "ON", "auto": "OFF"}),
        (MODERN, {"fan_mode": "OFF"}, {"fpwr": "OFF"}),
        (LEGACY, {"fan_speed": 40}, {"fnsp": "0004"}),
        (LEGACY, {"fan_speed": 100}, {"fnsp": "0010"}),
        (LEGACY, {"fan_speed": 0}, {"fnsp": "0001"}),
        (LEGACY, {"fan_speed": 44}, {"fnsp": "0004"}),
        (LEGACY, {"oscillation": True}, {"oson": "ON"}),
        (LEGACY, {"night_mode": False}, {"nmod": "OFF"}),
        (LEGACY, {"focused_jet": True}, {"ffoc": "ON"}),
        (MODERN, {"focused_jet": True}, {"fdir": "ON"}),
        (HEATER, {"heat_mode": True}, {"hmod": "HEAT"}),
        (HEATER, {"heat_mode": False}, {"hmod": "OFF"}),
        (HEATER, {"heat_threshold": 25}, {"hmax": 2980}),
        (HEATER_2018, {"heat_threshold": 25}, {"hmax": "2980"}),
    ],
)
def test_encode_state(traits, props: dict, expected: dict) -> None:
    assert encode_state(traits, **props) == expected


def test_encode_state_order() -> None:
    """Later properties take precedence, e.g. a power-on followed by auto."""

    assert encode_state(LEGACY, fan_power=True, fan_auto=True) == {"fmod": "AUTO"}
    assert encode_state(LEGACY, fan_auto=True, fan_power=True) == {"fmod": "FAN"}
    assert encode_state(MODERN, fan_power=True, fan_speed=70, oscillation=True) == {
        "fpwr": "ON",
        "fnsp": "0007",
        "oson": "ON",
    }


@pytest.mark.parametrize(
    "props",
    [
        {"fan_speed": 110},
        {"fan_speed": -10},
        {"fan_mode": "HEAT"},
        {"brightness": 5},
    ],
)
def test_encode_state_invalid(props: dict) -> None:
    with pytest.raises(CommandInvalid):
        encode_state(LEGACY, **props)


def test_set_state() -> None:
    cmd = Command.set_state(MODERN, fan_power=True, night_mode=True)

    assert cmd == Command(MsgType.STATE_SET, {"fpwr": "ON", "nmod": "ON"})
    assert cmd.payload["data"] == {"fpwr": "ON", "nmod": "ON"}

    with pytest.raises(CommandInvalid):
        Command.set_state(MODERN)


# ### Frames ###########################################################################


def test_frame_current_state() -> None:
    frame = Frame.from_payload(
        b'{"msg": "CURRENT-STATE", "time": "x", "product-state": {"fmod": "FAN"}}'
    )

    assert frame.msg_type == MsgType.CURRENT_STATE
    assert frame.notify == Notify.STATE
    assert frame.product_state == {"fmod": "FAN"}
    assert frame.data == {}


def test_frame_sensor_data() -> None:
    frame = Frame.from_payload(
        '{"msg": "ENVIRONMENTAL-CURRENT-SENSOR-DATA", "data": {"tact": "2950"}}'
    )

    assert frame.notify == Notify.SENSOR
    assert frame.data == {"tact": "2950"}
    assert str(frame) == "ENVIRONMENTAL-CURRENT-SENSOR-DATA"


def test_frame_unknown_msg() -> None:
    """Unknown frames are valid, but have no type (and fire no notification)."""

    frame = Frame.from_payload('{"msg": "LOCATION", "data": "not a dict"}')

    assert frame.msg_type is None
    assert frame.notify is None
    assert frame.data == {}

    frame = Frame.from_payload('{"msg": "STATE-CHANGE", "product-state": {}}')
    assert frame.msg_type == MsgType.STATE_CHANGE
    assert frame.notify is None


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"\xc3\x28",  # not utf-8
        b"[1, 2, 3]",
        b'"CURRENT-STATE"',
        b'{"time": "2024-01-31T12:34:56.789Z"}',
        b'{"msg": 42}',
    ],
)
def test_frame_invalid(raw: bytes) -> None:
    with pytest.raises(FrameInvalid):
        Frame.from_payload(raw)
