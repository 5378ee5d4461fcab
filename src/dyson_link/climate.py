#!/usr/bin/env python3
"""Dyson Link - climate control (a rule engine driven by the sensor readings).

The first rule to match the readings selects an action, and the fan is turned off
if no rule matches. An action is applied only once, until a different one is
selected.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, fields
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import voluptuous as vol

from . import exceptions as exc
from .const import (
    SZ_ACTION,
    SZ_ENABLED,
    SZ_NAME,
    SZ_RULES,
    SZ_TRIGGER,
    SZ_TYPE,
    RuleType,
)
from .quality import trigger_ordinals
from .schemas import SCH_CLIMATE_CONTROL, SCH_RULE

if TYPE_CHECKING:
    from .state import EnvironmentState


_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Action:
    """The properties to set when a rule matches (None means leave as is).

    Fields are in the order in which they are applied to the device.
    """

    fan_on: bool | None = None
    fan_auto: bool | None = None
    fan_speed: int | None = None  # 0-10, not a percentage
    rotate: bool | None = None
    focused_jet: bool | None = None
    night_mode: bool | None = None

    @classmethod
    def from_dict(cls, action: dict[str, Any]) -> Action:
        return cls(**{f.name: action.get(f.name) for f in fields(cls)})

    def items(self) -> Iterator[tuple[str, Any]]:
        """Yield the (name, value) of the fields that are present, in order."""
        for key, value in asdict(self).items():
            if value is not None:
                yield key, value


OFF_ACTION: Final = Action(fan_on=False)


@dataclass(frozen=True)
class Rule:
    name: str
    type: str
    trigger: tuple[Any, ...]
    action: Action

    @classmethod
    def from_dict(cls, rule: dict[str, Any]) -> Rule:
        """Create a rule from its (validated) config."""
        return cls(
            name=rule[SZ_NAME] or "",
            type=rule[SZ_TYPE],
            trigger=tuple(rule[SZ_TRIGGER]),
            action=Action.from_dict(rule[SZ_ACTION]),
        )

    def matches(self, env: EnvironmentState) -> bool:
        """Return True if the readings trigger this rule.

        Ranges are inclusive. Unknown rule types, and readings that are yet to be
        received, never match.
        """

        value: float | None
        if self.type == RuleType.TEMPERATURE:
            value = env.temperature
        elif self.type == RuleType.HUMIDITY:
            value = env.humidity
        elif self.type == RuleType.AIR_QUALITY:
            return env.air_quality in trigger_ordinals(self.trigger)
        else:
            return False

        if value is None:
            return False
        low, high = self.trigger
        return bool(low <= value <= high)


def rules_from_config(rules: Iterable[dict[str, Any]]) -> list[Rule]:
    """Return the valid rules, in order (invalid rules are skipped)."""

    result = []
    for idx, config in enumerate(rules):
        try:
            result.append(Rule.from_dict(SCH_RULE(config)))
        except (vol.Invalid, TypeError) as err:
            _LOGGER.warning("Rule %s is invalid (skipping): %s (%s)", idx, err, config)
    return result


class ClimateState(StrEnum):
    DISABLED = "disabled"
    ENABLED = "enabled"


class ClimateControl:
    """The rule engine of a device."""

    def __init__(
        self, rules: list[Rule], *, enabled: bool = False, name: str = ""
    ) -> None:
        self.rules = rules
        self.name = name

        self._state = ClimateState.ENABLED if enabled else ClimateState.DISABLED
        self.last_applied_action: Action | None = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, state={self._state})"

    @classmethod
    def from_config(cls, config: dict[str, Any], *, name: str = "") -> ClimateControl:
        """Create the rule engine from its config.

        Will raise SchemaInconsistentError if the config is invalid (other than the
        rules themselves, which are skipped if invalid).
        """

        try:
            config = SCH_CLIMATE_CONTROL(config)
        except vol.Invalid as err:
            raise exc.SchemaInconsistentError(f"Climate control: {err}") from err

        return cls(
            rules_from_config(config[SZ_RULES]), enabled=config[SZ_ENABLED], name=name
        )

    @property
    def is_enabled(self) -> bool:
        return self._state == ClimateState.ENABLED

    def enable(self) -> None:
        self._state = ClimateState.ENABLED
        self.last_applied_action = None

    def disable(self) -> None:
        self._state = ClimateState.DISABLED
        self.last_applied_action = None

    def environment_update(self, env: EnvironmentState) -> Action | None:
        """Return the action to apply for the readings, or None if there is none.

        An action is not returned if it was the last one applied.
        """

        if not self.is_enabled:
            _LOGGER.debug("%s: climate control is disabled, skipping", self.name)
            return None

        action = OFF_ACTION
        for rule in self.rules:
            if rule.matches(env):
                _LOGGER.debug("%s: selected rule: %s", self.name, rule.name)
                action = rule.action
                break
        else:
            _LOGGER.debug("%s: no rule matched (%s)", self.name, env)

        if action == self.last_applied_action:
            _LOGGER.debug("%s: action already applied, skipping", self.name)
            return None

        _LOGGER.info("%s: applying action: %s", self.name, action)
        self.last_applied_action = action
        return action
