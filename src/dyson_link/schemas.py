#!/usr/bin/env python3
"""Dyson Link - schema processor for the device (upper) layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final

import voluptuous as vol

from dyson_tx.schemas import (  # noqa: F401
    SCH_CONNECTION_DICT,
    SCH_ENGINE_DICT,
    SCH_SERIAL_NUMBER,
    SZ_COMMS_PARAMS,
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
    SZ_HOST,
    SZ_PASSWORD,
    SZ_PORT,
    SZ_SERIAL_NUMBER,
)

from .const import (
    SZ_ACTION,
    SZ_CLIMATE_CONTROL,
    SZ_DISPLAY_NAME,
    SZ_ENABLED,
    SZ_FAN_AUTO,
    SZ_FAN_ON,
    SZ_FAN_SPEED,
    SZ_FOCUSED_JET,
    SZ_NAME,
    SZ_NIGHT_MODE,
    SZ_ROTATE,
    SZ_RULES,
    SZ_TRIGGER,
    SZ_TYPE,
    RuleType,
)

_LOGGER = logging.getLogger(__name__)


#
# 1/2: Climate control (rules)
SCH_ACTION = vol.Schema(
    {
        vol.Optional(SZ_FAN_ON): vol.Boolean(),
        vol.Optional(SZ_FAN_AUTO): vol.Boolean(),
        vol.Optional(SZ_FAN_SPEED): vol.All(vol.Coerce(int), vol.Range(min=0, max=10)),
        vol.Optional(SZ_ROTATE): vol.Boolean(),
        vol.Optional(SZ_FOCUSED_JET): vol.Boolean(),
        vol.Optional(SZ_NIGHT_MODE): vol.Boolean(),
    },
    extra=vol.PREVENT_EXTRA,
)

# the camelCase keys of the accessory bridge's config, accepted as aliases
ACTION_ALIASES: Final[dict[str, str]] = {
    "fanOn": SZ_FAN_ON,
    "fanAuto": SZ_FAN_AUTO,
    "fanSpeed": SZ_FAN_SPEED,
    "focusedJet": SZ_FOCUSED_JET,
    "nightMode": SZ_NIGHT_MODE,
}


def NormaliseAction() -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Rename any camelCase keys of an action to their snake_case equivalents."""

    def normalise_action(node_value: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in node_value.items():
            name = ACTION_ALIASES.get(key, key)
            if name in result:
                raise vol.Invalid(f"duplicate key for {name}", path=[key])
            result[name] = value
        return result

    return normalise_action


_SCH_RANGE = vol.All(
    [vol.Coerce(float)], vol.Length(min=2, max=2), msg="expected a [low, high] range"
)


def ValidateTrigger() -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Validate a rule's trigger according to the rule's type."""

    def validate_trigger(node_value: dict[str, Any]) -> dict[str, Any]:
        rule_type = node_value[SZ_TYPE]
        if rule_type in (RuleType.TEMPERATURE, RuleType.HUMIDITY):
            trigger = _SCH_RANGE(node_value[SZ_TRIGGER])
        else:  # levels are not validated, unknown levels (and types) never match
            trigger = node_value[SZ_TRIGGER]
        return node_value | {SZ_TRIGGER: trigger}

    return validate_trigger


SCH_RULE = vol.All(
    vol.Schema(
        {
            vol.Optional(SZ_NAME, default=""): vol.Any(None, str),
            vol.Required(SZ_TYPE): str,
            vol.Required(SZ_TRIGGER): list,
            vol.Required(SZ_ACTION): vol.All(dict, NormaliseAction(), SCH_ACTION),
        },
        extra=vol.REMOVE_EXTRA,
    ),
    ValidateTrigger(),
)

# rules are validated individually (by the rule engine), so a bad one is skipped
SCH_CLIMATE_CONTROL = vol.Schema(
    {
        vol.Optional(SZ_ENABLED, default=False): vol.Boolean(),
        vol.Optional(SZ_RULES, default=[]): [dict],
    },
    extra=vol.PREVENT_EXTRA,
)


#
# 2/2: Device configuration
SCH_DEVICE_DICT = {
    vol.Optional(SZ_DISPLAY_NAME, default=None): vol.Any(None, str),
    vol.Optional(SZ_CLIMATE_CONTROL, default=None): vol.Any(None, SCH_CLIMATE_CONTROL),
}

SCH_DEVICE_CONFIG: Final = vol.Schema(
    SCH_DEVICE_DICT | SCH_CONNECTION_DICT | SCH_ENGINE_DICT,
    extra=vol.REMOVE_EXTRA,
)
