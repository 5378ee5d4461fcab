#!/usr/bin/env python3
"""Dyson Link - Test the configuration parsers."""

from typing import Any

import pytest
import voluptuous as vol
import yaml

from dyson_link.schemas import (
    SCH_CLIMATE_CONTROL,
    SCH_DEVICE_CONFIG,
    SCH_RULE,
    SCH_SERIAL_NUMBER,
)
from dyson_tx.schemas import SCH_COMMS_PARAMS, sch_frame_log_dict_factory

SCH_FRAME_LOG = vol.Schema(sch_frame_log_dict_factory(), extra=vol.PREVENT_EXTRA)


def no_duplicates_constructor(
    loader: yaml.Loader, node: yaml.Node, deep: bool = False
) -> Any:
    """Check for duplicate keys."""
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)  # type: ignore
        if key in mapping:
            raise yaml.constructor.ConstructorError(
                f"Duplicate key: {key} ('{mapping[key]}' overwrites '{value_node}')"
            )
        value = loader.construct_object(value_node, deep=deep)  # type: ignore
        mapping[key] = value
    return loader.construct_mapping(node, deep)


class CheckForDuplicatesLoader(yaml.Loader):
    """Local class to prevent pollution of global yaml.Loader."""

    pass


CheckForDuplicatesLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, no_duplicates_constructor
)


def _test_schema(validator: Any, schema: str) -> dict:
    # cant use yaml.safe_load(schema): PyYAML silently swallows duplicate dict keys!
    return validator(yaml.load(schema, CheckForDuplicatesLoader))


def _test_schema_bad(validator: Any, schema: str) -> None:
    try:
        _test_schema(validator, schema)
    except (vol.Invalid, yaml.YAMLError):
        pass
    else:
        raise TypeError(f"should *not* be valid YAML, but is: {schema}")


def _test_schema_good(validator: Any, schema: str) -> dict:
    try:
        return _test_schema(validator, schema)
    except (vol.Invalid, yaml.YAMLError) as exc:
        raise TypeError(f"should be valid YAML, but isn't ({exc}): {schema}")


COMMS_PARAMS_BAD = (
    """
    #  expected a dictionary
    """,
    """
    wait: 5  # extra keys not allowed @ data['wait']
    """,
    """
    wait_timeout: 0  # value must be at least 0.1
    """,
    """
    poll_interval: 5  # value must be at least 10
    """,
    """
    oscillation_delay: 10  # value must be at most 5
    """,
    """
    max_waiters: 0  # value must be at least 1
    """,
    """
    max_waiters: many  # expected int
    """,
)
COMMS_PARAMS_GOOD = (
    """
    {}
    """,
    """
    wait_timeout: 2
    """,
    """
    wait_timeout: 2.5
    freshness_window: 0
    poll_interval: 60
    oscillation_delay: 0.5
    max_waiters: 8
    """,
)


@pytest.mark.parametrize("index", range(len(COMMS_PARAMS_BAD)))
def test_comms_params_bad(index: int, schemas: tuple = COMMS_PARAMS_BAD) -> None:
    _test_schema_bad(SCH_COMMS_PARAMS, schemas[index])


@pytest.mark.parametrize("index", range(len(COMMS_PARAMS_GOOD)))
def test_comms_params_good(index: int, schemas: tuple = COMMS_PARAMS_GOOD) -> None:
    _test_schema_good(SCH_COMMS_PARAMS, schemas[index])


def test_comms_params_defaults() -> None:
    assert SCH_COMMS_PARAMS({}) == {
        "wait_timeout": 5.0,
        "freshness_window": 60.0,
        "poll_interval": 600.0,
        "oscillation_delay": 0.5,
        "max_waiters": 32,
    }


FRAME_LOG_BAD = (
    """
    #  expected a dictionary
    """,
    """
    frame_log: 7  # expected str
    """,
    """
    frame_log:
      file_name: null  # expected str @ data['frame_log']['file_name']
    """,
    """
    frame_log:  # required key not provided @ data['frame_log']['file_name']
      rotate_backups: 7
    """,
)
FRAME_LOG_GOOD = (
    """
    frame_log: null
    """,
    """
    frame_log: frames.log
    """,
    """
    frame_log:
      file_name: frames.log
      rotate_backups: 7
      rotate_bytes: 204800
    """,
)


@pytest.mark.parametrize("index", range(len(FRAME_LOG_BAD)))
def test_frame_log_bad(index: int, schemas: tuple = FRAME_LOG_BAD) -> None:
    _test_schema_bad(SCH_FRAME_LOG, schemas[index])


@pytest.mark.parametrize("index", range(len(FRAME_LOG_GOOD)))
def test_frame_log_good(index: int, schemas: tuple = FRAME_LOG_GOOD) -> None:
    _test_schema_good(SCH_FRAME_LOG, schemas[index])


RULE_BAD = (
    """
    #  expected a dictionary
    """,
    """
    trigger: [20, 30]  # required key not provided @ data['type']
    action: {}
    """,
    """
    type: temperature
    trigger: 20  # expected list
    action: {}
    """,
    """
    type: temperature
    trigger: [20]  # expected a [low, high] range
    action: {}
    """,
    """
    type: humidity
    trigger: [low, high]  # expected a [low, high] range
    action: {}
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {fan_speed: 11}  # value must be at most 10
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {fan_on: maybe}  # expected boolean
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: [fan_on]  # expected a dictionary
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {}
    name: [hot]  # expected str
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {focused_jet: true, brightness: 5}  # extra keys not allowed
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {fan_onn: true}  # extra keys not allowed
    """,
    """
    type: temperature
    trigger: [20, 30]
    action: {fan_on: true, fanOn: false}  # duplicate key for fan_on
    """,
)
RULE_GOOD = (
    """
    name: hot
    type: temperature
    trigger: [25, 40]
    action: {fan_on: true, fan_speed: 10, rotate: true}
    """,
    """
    type: humidity  # name is optional
    trigger: [60.5, 100]
    action: {}
    """,
    """
    type: air_quality
    trigger: [INFERIOR, POOR, SMOGGY]  # unknown levels never match
    action: {fan_auto: true, night_mode: off}
    """,
    """
    type: pressure  # unknown types never match
    trigger: [1000, 1020]
    action: {focusedJet: true, nightMode: off}  # camelCase keys are aliases
    """,
)


@pytest.mark.parametrize("index", range(len(RULE_BAD)))
def test_rule_bad(index: int, schemas: tuple = RULE_BAD) -> None:
    _test_schema_bad(SCH_RULE, schemas[index])


@pytest.mark.parametrize("index", range(len(RULE_GOOD)))
def test_rule_good(index: int, schemas: tuple = RULE_GOOD) -> None:
    _test_schema_good(SCH_RULE, schemas[index])


def test_rule_normalised() -> None:
    rule = _test_schema_good(SCH_RULE, RULE_GOOD[1])
    assert rule == {
        "name": "",
        "type": "humidity",
        "trigger": [60.5, 100.0],
        "action": {},
    }

    rule = _test_schema_good(SCH_RULE, RULE_GOOD[3])
    assert rule["action"] == {"focused_jet": True, "night_mode": False}


CLIMATE_CONTROL_BAD = (
    """
    enabled: maybe  # expected boolean
    """,
    """
    rules: {}  # expected list
    """,
    """
    rules: [temperature]  # expected a dictionary
    """,
    """
    enabled: true
    ruels: []  # extra keys not allowed @ data['ruels']
    """,
)
CLIMATE_CONTROL_GOOD = (
    """
    {}
    """,
    """
    enabled: true
    """,
    """
    enabled: false
    rules:
      - type: temperature
        trigger: [25, 40]
        action: {fan_on: true}
      - type: temperature  # invalid rules are skipped by the rule engine
        trigger: 20
    """,
)


@pytest.mark.parametrize("index", range(len(CLIMATE_CONTROL_BAD)))
def test_climate_control_bad(
    index: int, schemas: tuple = CLIMATE_CONTROL_BAD
) -> None:
    _test_schema_bad(SCH_CLIMATE_CONTROL, schemas[index])


@pytest.mark.parametrize("index", range(len(CLIMATE_CONTROL_GOOD)))
def test_climate_control_good(
    index: int, schemas: tuple = CLIMATE_CONTROL_GOOD
) -> None:
    _test_schema_good(SCH_CLIMATE_CONTROL, schemas[index])


DEVICE_CONFIG_BAD = (
    """
    #  expected a dictionary
    """,
    """
    serial_number: DYSON-AB1-EU-LEG1234A-475  # required key not provided @ host
    password: secret
    """,
    """
    host: ""  # length of value must be at least 1
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    """,
    """
    host: 192.168.0.99
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    port: 0  # value must be at least 1
    """,
    """
    host: 192.168.0.99
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    disable_sending: maybe  # expected bool
    """,
    """
    host: 192.168.0.99
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    comms_params: {wait: 5}  # extra keys not allowed
    """,
    """
    host: 192.168.0.99
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    climate_control: {enabled: maybe}  # expected boolean
    """,
)
DEVICE_CONFIG_GOOD = (
    """
    host: 192.168.0.99
    serial_number: DYSON-AB1-EU-LEG1234A-475
    password: secret
    """,
    """
    display_name: Bedroom Fan
    host: fan.local
    serial_number: NOT-A-VALID-SERIAL  # the device will not start
    password: secret
    port: 1883
    disable_sending: true
    frame_log: frames.log
    accessory_id: 12  # extra keys are removed
    """,
    """
    host: 192.168.0.99
    serial_number: DYSON-AB4-EU-HOT2018A-527
    password: secret
    comms_params:
      wait_timeout: 10
      poll_interval: 300
    climate_control:
      enabled: true
      rules:
        - name: cold
          type: temperature
          trigger: [-10, 15]
          action: {fan_on: false}
    """,
)


@pytest.mark.parametrize("index", range(len(DEVICE_CONFIG_BAD)))
def test_device_config_bad(index: int, schemas: tuple = DEVICE_CONFIG_BAD) -> None:
    _test_schema_bad(SCH_DEVICE_CONFIG, schemas[index])


@pytest.mark.parametrize("index", range(len(DEVICE_CONFIG_GOOD)))
def test_device_config_good(index: int, schemas: tuple = DEVICE_CONFIG_GOOD) -> None:
    _test_schema_good(SCH_DEVICE_CONFIG, schemas[index])


def test_device_config_defaults() -> None:
    config = _test_schema_good(SCH_DEVICE_CONFIG, DEVICE_CONFIG_GOOD[0])

    assert config["display_name"] is None
    assert config["port"] == 1883
    assert config["disable_sending"] is False
    assert config["frame_log"] is None
    assert config["climate_control"] is None
    assert config["comms_params"]["wait_timeout"] == 5.0


@pytest.mark.parametrize(
    "serial_number, is_valid",
    [
        ("DYSON-AB1-EU-LEG1234A-475", True),
        ("DYSON-AB4-EU-HOT2018A-527", True),
        ("AB1-EU-LEG1234A-475", False),
        ("DYSON-AB1-EU-LEG1234A", False),
        ("", False),
    ],
)
def test_serial_number(serial_number: str, is_valid: bool) -> None:
    if is_valid:
        assert SCH_SERIAL_NUMBER(serial_number) == serial_number
    else:
        with pytest.raises(vol.Invalid):
            SCH_SERIAL_NUMBER(serial_number)
