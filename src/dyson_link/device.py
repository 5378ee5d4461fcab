#!/usr/bin/env python3
"""Dyson Link - a (single) Dyson Link device, with its getters and setters.

Every getter asks the device for its current state and waits for the response,
and every setter sends a command, then confirms the result with the getter. When
the device is not valid, not connected or does not respond in time, the getters
and setters return a default value (e.g. 0 or False), rather than raise.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Final, Protocol, TypeVar

import voluptuous as vol

from dyson_tx import (
    SERIAL_NUMBER_REGEX,
    Command,
    MsgType,
    Notify,
    create_stack,
    model_traits,
)
from dyson_tx.command import (
    SZ_FAN_AUTO,
    SZ_FAN_MODE,
    SZ_FAN_POWER,
    SZ_FAN_SPEED,
    SZ_FOCUSED_JET,
    SZ_HEAT_MODE,
    SZ_HEAT_THRESHOLD,
    SZ_NIGHT_MODE,
    SZ_OSCILLATION,
)
from dyson_tx.const import AUTO_MODE, FAN, OFF
from dyson_tx.schemas import (
    SCH_COMMS_PARAMS,
    SZ_FRESHNESS_WINDOW,
    SZ_MAX_WAITERS,
    SZ_OSCILLATION_DELAY,
    SZ_POLL_INTERVAL,
    SZ_WAIT_TIMEOUT,
)

from . import exceptions as exc
from .climate import Action, ClimateControl
from .const import (
    SZ_CLIMATE_CONTROL,
    SZ_DISPLAY_NAME,
    CurrentFanState,
    FanMode,
    HeaterCoolerState,
    TargetHeaterCoolerState,
)
from .helpers import schedule_task
from .schemas import (
    SCH_DEVICE_CONFIG,
    SZ_COMMS_PARAMS,
    SZ_DISABLE_SENDING,
    SZ_HOST,
    SZ_PASSWORD,
    SZ_PORT,
    SZ_SERIAL_NUMBER,
)
from .state import EnvironmentState, FanState

if TYPE_CHECKING:
    from dyson_tx import DysonProtocolT, DysonTransportT, Frame


#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_DISABLE_CLIMATE_CONTROL: Final[bool] = False

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class AccessoryT(Protocol):
    """The bridge's accessory, which holds the settings last desired by the user."""

    def get_fan_speed_value(self) -> int: ...

    def is_swing_mode_button_on(self) -> bool: ...

    def is_night_mode_switch_on(self) -> bool: ...


class DysonLinkDevice:
    """A Dyson Link device (a fan, purifier and/or heater)."""

    def __init__(
        self,
        display_name: str | None,
        host: str,
        serial_number: str,
        password: str,
        /,
        *,
        port: int | None = None,
        climate_control: dict[str, Any] | None = None,
        accessory: AccessoryT | None = None,
        comms_params: dict[str, Any] | None = None,
        disable_sending: bool = False,
        transport_factory_: Callable[..., Awaitable[DysonTransportT]] | None = None,
    ) -> None:
        self.display_name = display_name or serial_number
        self.serial_number = serial_number
        self.accessory = accessory

        self._host = host
        self._port = port
        self._password = password
        self._disable_sending = disable_sending
        self._transport_factory = transport_factory_

        try:
            self._comms_params = SCH_COMMS_PARAMS(comms_params or {})
        except vol.Invalid as err:
            raise exc.SchemaInconsistentError(f"Comms params: {err}") from err

        self.device_id: str | None = None
        self.model: str | None = None

        if match := SERIAL_NUMBER_REGEX.search(serial_number or ""):
            self.device_id, self.model = match.groups()
        else:
            _LOGGER.error("%s: Incorrect serial number: %s", self, serial_number)

        self.traits = model_traits(self.model)
        self.fan_state = FanState(self.traits)
        self.environment = EnvironmentState()

        self.climate_control: ClimateControl | None = None
        if climate_control and self.is_valid:
            self.climate_control = ClimateControl.from_config(
                climate_control, name=self.display_name
            )

        self._protocol: DysonProtocolT | None = None
        self._transport: DysonTransportT | None = None

        self._poller: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.display_name})"

    @classmethod
    def from_config(
        cls, config: dict[str, Any], /, *, accessory: AccessoryT | None = None
    ) -> DysonLinkDevice:
        """Create a device from its config (e.g. a JSON file)."""

        try:
            config = SCH_DEVICE_CONFIG(config)
        except vol.Invalid as err:
            raise exc.SchemaInconsistentError(f"Device config: {err}") from err

        return cls(
            config[SZ_DISPLAY_NAME],
            config[SZ_HOST],
            config[SZ_SERIAL_NUMBER],
            config[SZ_PASSWORD],
            port=config[SZ_PORT],
            climate_control=config[SZ_CLIMATE_CONTROL],
            accessory=accessory,
            comms_params=config[SZ_COMMS_PARAMS],
            disable_sending=config[SZ_DISABLE_SENDING],
        )

    @property
    def is_valid(self) -> bool:
        """Return True if the device has a valid serial number."""
        return self.device_id is not None and self.model is not None

    @property
    def is_connected(self) -> bool:
        """Return True if the device is able to send/receive frames."""
        return bool(self._protocol and self._protocol.is_connected)

    @property
    def heat_available(self) -> bool:
        return self.traits.heat_available

    @property
    def is_2018(self) -> bool:
        return self.traits.is_2018

    #
    # Lifecycle (the stack, and the poller)

    async def start(self) -> None:
        """Create the protocol/transport stack, and start the poller.

        The transport connects in the background, so the device may not yet be
        connected when this returns. A device with an invalid serial number is never
        started (its getters/setters return their defaults).
        """

        if not self.is_valid:
            _LOGGER.error("%s: Incorrect serial number, not starting", self)
            return
        if self._protocol:
            return

        kwargs: dict[str, Any] = {}
        if self._port:
            kwargs[SZ_PORT] = self._port
        if self._transport_factory:
            kwargs["transport_factory_"] = self._transport_factory

        self._protocol, self._transport = await create_stack(
            self._handle_frame,
            wait_timeout=self._comms_params[SZ_WAIT_TIMEOUT],
            max_waiters=self._comms_params[SZ_MAX_WAITERS],
            host=self._host,
            device_id=self.device_id,
            model=self.model,
            password=self._password,
            disable_sending=self._disable_sending,
            **kwargs,
        )

        self._start_poller()

    async def stop(self) -> None:
        """Stop the poller, and close the transport (will stop the protocol)."""

        await self._stop_poller()

        for task in list(self._tasks):
            task.cancel()
        if tasks := [t for t in self._tasks if not t.done()]:
            await asyncio.gather(*tasks, return_exceptions=True)

        if self._transport:
            self._transport.close()
            assert self._protocol is not None  # mypy
            await self._protocol.wait_for_connection_lost()

        self._protocol = self._transport = None

    def _start_poller(self) -> None:
        """Start the poller (if it is not already running)."""

        if self._poller and not self._poller.done():
            return

        interval = self._comms_params[SZ_POLL_INTERVAL]
        self._poller = schedule_task(self._poll, delay=interval, period=interval)
        self._poller.set_name(f"{self.device_id}_poller")

    async def _stop_poller(self) -> None:
        """Stop the poller (only if it is running)."""

        if not self._poller or self._poller.done():
            return

        self._poller.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._poller

    async def _poll(self) -> None:
        _LOGGER.debug("%s: Fetching new sensor data", self)
        await self.request_refresh()

    def _add_task(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    #
    # Frame handling (invoked by the protocol, before any waiters are resolved)

    def _handle_frame(self, frame: Frame) -> None:
        """Update the state models from a frame."""

        if frame.msg_type == MsgType.ENVIRONMENTAL:
            _LOGGER.info("%s: Update sensor data from %s", self, frame)
            self.environment.update_state(frame)

            if self.climate_control and not _DBG_DISABLE_CLIMATE_CONTROL:
                # run the rules only after the waiters have been resolved
                asyncio.get_running_loop().call_soon(self._climate_update)

        elif frame.msg_type == MsgType.CURRENT_STATE:
            _LOGGER.info("%s: Update fan data from %s", self, frame)
            self.fan_state.update_state(frame)

    def _climate_update(self) -> None:
        assert self.climate_control is not None  # mypy

        if action := self.climate_control.environment_update(self.environment):
            self._add_task(self._apply_action(action))

    async def _apply_action(self, action: Action) -> None:
        """Apply the (present) properties of an action, in order."""

        setters: dict[str, Callable[[Any], Awaitable[Any]]] = {
            "fan_on": self.set_fan_on,
            "fan_auto": self.set_fan_auto,
            "fan_speed": lambda v: self.set_fan_speed(v * 10),
            "rotate": self.set_rotate,
            "focused_jet": self.set_focused_jet,
            "night_mode": self.set_night_mode,
        }

        for key, value in action.items():
            await setters[key](value)

    #
    # The primitives behind the getters/setters

    async def request_refresh(self) -> bool:
        """Ask the device for its current state (unless a request is pending)."""
        if not self._protocol:
            return False
        return await self._protocol.request_refresh()

    async def _wait_for(self, kind: Notify) -> bool:
        """Refresh, and wait for the next frame of a kind.

        Returns False if there is no connection, or no frame arrives in time.
        """

        if not self._protocol or not self.is_connected:
            return False

        try:
            await self._protocol.wait_for(
                kind, timeout=self._comms_params[SZ_WAIT_TIMEOUT]
            )
        except exc.ProtocolError as err:  # incl. ProtocolWaitTimeout, TransportError
            _LOGGER.warning("%s: No response to the %s request: %s", self, kind, err)
            return False
        return True

    async def _get_state(self, fnc: Callable[[FanState], _T], default: _T) -> _T:
        if not await self._wait_for(Notify.STATE):
            return default
        return fnc(self.fan_state)

    async def _get_sensor(
        self, fnc: Callable[[EnvironmentState], _T | None], default: _T
    ) -> _T:
        """Return a sensor reading, or the default if it is unavailable."""

        if not self.is_connected:
            return default

        if self.environment.not_updated_recently(
            self._comms_params[SZ_FRESHNESS_WINDOW]
        ) and not await self._wait_for(Notify.SENSOR):
            return default

        value = fnc(self.environment)
        return default if value is None else value

    async def _set_state(self, **props: Any) -> bool:
        """Send a command to set the (logical) properties. Returns True if sent."""

        if not self._protocol or not self.is_connected:
            return False

        _LOGGER.info("%s: Set state: %s", self, props)
        try:
            await self._protocol.send_cmd(Command.set_state(self.traits, **props))
        except exc.DysonException as err:  # e.g. CommandInvalid, ProtocolError
            _LOGGER.warning("%s: Unable to set state %s: %s", self, props, err)
            return False
        return True

    #
    # Climate control

    def is_climate_control_supported(self) -> bool:
        return self.climate_control is not None

    def is_climate_control_enabled(self) -> bool:
        return bool(self.climate_control and self.climate_control.is_enabled)

    async def set_climate_control(self, value: bool) -> bool:
        """Enable/disable climate control, and return its (new) state."""

        if not self.climate_control:
            return False

        _LOGGER.debug("%s: Set climate control: %s", self, value)
        if value:
            self.climate_control.enable()
        else:
            self.climate_control.disable()

        await self.request_refresh()
        return self.is_climate_control_enabled()

    #
    # Getters (fan/heater state)

    async def is_fan_on(self) -> bool:
        return await self._get_state(lambda s: s.fan_on, False)

    async def is_fan_auto(self) -> bool:
        return await self._get_state(lambda s: s.fan_auto, False)

    async def get_fan_speed(self) -> int:
        return await self._get_state(lambda s: s.fan_speed, 0)

    async def is_rotate(self) -> bool:
        return await self._get_state(lambda s: s.fan_rotate, False)

    async def is_night_mode(self) -> bool:
        return await self._get_state(lambda s: s.night_mode, False)

    async def is_focused_jet(self) -> bool:
        return await self._get_state(lambda s: s.fan_focused, False)

    async def is_heat_on(self) -> bool:
        return await self._get_state(lambda s: s.fan_heat, False)

    async def get_heat_threshold(self) -> float:
        return await self._get_state(lambda s: s.heat_threshold or 0, 0)

    async def get_filter_life(self) -> int:
        return await self._get_state(lambda s: s.filter_life or 0, 0)

    async def is_filter_change_required(self) -> bool:
        return await self._get_state(lambda s: s.filter_change_required, False)

    async def get_heater_cooler_state(self) -> int:
        return await self._get_state(
            lambda s: s.heater_cooler_state, HeaterCoolerState.INACTIVE
        )

    async def get_target_heater_cooler_state(self) -> int:
        return await self._get_state(
            lambda s: s.target_heater_cooler_state, TargetHeaterCoolerState.AUTO
        )

    async def get_fan_state(self) -> int:
        return await self._get_state(lambda s: s.fan_state, FanMode.OFF)

    async def get_current_fan_state(self) -> int:
        return await self._get_state(
            lambda s: s.current_fan_state, CurrentFanState.INACTIVE
        )

    #
    # Getters (sensors), these may be answered from recent readings

    async def get_temperature(self) -> float:
        return await self._get_sensor(lambda e: e.temperature, 0)

    async def get_humidity(self) -> int:
        return await self._get_sensor(lambda e: e.humidity, 0)

    async def get_air_quality(self) -> int:
        return await self._get_sensor(lambda e: e.air_quality, 0)

    async def get_pm2_5(self) -> int:
        return await self._get_sensor(lambda e: e.pm2_5, 0)

    async def get_pm10(self) -> int:
        return await self._get_sensor(lambda e: e.pm10, 0)

    async def get_voc(self) -> int:
        return await self._get_sensor(lambda e: e.voc, 0)

    async def get_no2(self) -> int:
        return await self._get_sensor(lambda e: e.no2, 0)

    #
    # Setters, each returns the (confirmed) state

    async def set_fan_on(self, value: bool) -> bool:
        """Turn the fan on/off.

        When turning on, the fan's settings (speed, oscillation, night mode) are
        restored to those last desired via the accessory.
        """

        if value and self.fan_state.fan_auto:  # don't change AUTO to FAN
            _LOGGER.debug("%s: Fan is in auto mode, not turning it on", self)
        elif value and self.fan_state.fan_on:  # the bridge sends this on every change
            _LOGGER.debug("%s: Fan is already on", self)
        else:
            await self._set_state(**{SZ_FAN_POWER: bool(value)}, **self._restore(value))

        return await self.is_fan_on()

    def _restore(self, value: bool) -> dict[str, Any]:
        """Return the settings last desired via the accessory (if turning on)."""

        if not value or not self.accessory:
            return {}

        props: dict[str, Any] = {}
        if (speed := self.accessory.get_fan_speed_value()) > 0:  # fan not auto here
            _LOGGER.info("%s: Restoring the fan speed to %s", self, speed)
            props[SZ_FAN_SPEED] = speed
        if self.accessory.is_swing_mode_button_on():
            _LOGGER.info("%s: Restoring the fan swing state", self)
            props[SZ_OSCILLATION] = True
        if self.accessory.is_night_mode_switch_on():
            _LOGGER.info("%s: Restoring the night mode state", self)
            props[SZ_NIGHT_MODE] = True
        return props

    async def set_fan_auto(self, value: bool) -> bool:
        if self.is_2018 and value:  # turn the fan on before setting it to auto
            await self._set_state(**{SZ_FAN_POWER: True})
        await self._set_state(**{SZ_FAN_AUTO: bool(value)})
        return await self.is_fan_auto()

    async def set_fan_speed(self, value: float) -> int:
        """Set the fan speed, as a percentage."""
        await self._set_state(**{SZ_FAN_SPEED: value})
        return await self.get_fan_speed()

    async def set_rotate(self, value: bool) -> bool:
        if not self.is_connected:
            return False

        if not self.fan_state.fan_on and not self.fan_state.fan_heat:
            _LOGGER.info("%s: Fan is not on, waiting before setting oson", self)
            await asyncio.sleep(self._comms_params[SZ_OSCILLATION_DELAY])

        await self._set_state(**{SZ_OSCILLATION: bool(value)})
        return await self.is_rotate()

    async def set_night_mode(self, value: bool) -> bool:
        await self._set_state(**{SZ_NIGHT_MODE: bool(value)})
        return await self.is_night_mode()

    async def set_focused_jet(self, value: bool) -> bool:
        await self._set_state(**{SZ_FOCUSED_JET: bool(value)})
        return await self.is_focused_jet()

    async def set_heat_on(self, value: bool) -> bool:
        await self._set_state(**{SZ_HEAT_MODE: bool(value)})
        return await self.is_heat_on()

    async def set_heat_threshold(self, value: float) -> float:
        """Set the heat threshold, in degrees Celsius."""
        await self._set_state(**{SZ_HEAT_THRESHOLD: value})
        return await self.get_heat_threshold()

    async def set_heater_on(self, value: bool) -> bool:
        if self.heat_available and self.is_2018:
            if value:
                await self._set_state(**{SZ_HEAT_MODE: True})
            else:
                await self._set_state(**{SZ_FAN_MODE: FAN, SZ_HEAT_MODE: False})
        else:
            await self._set_state(**{SZ_FAN_MODE: FAN if value else OFF})
        return await self.is_fan_on()

    async def set_heater_cooler_state(self, value: int) -> int:
        """Set the target heater cooler state: AUTO, HEAT or COOL."""

        if value == TargetHeaterCoolerState.AUTO:
            await self._set_state(**{SZ_FAN_MODE: AUTO_MODE})
        elif value == TargetHeaterCoolerState.HEAT:
            await self._set_state(**{SZ_HEAT_MODE: True})
        elif value == TargetHeaterCoolerState.COOL:
            await self._set_state(**{SZ_FAN_MODE: FAN, SZ_HEAT_MODE: False})
        else:
            _LOGGER.warning("%s: Invalid heater cooler state: %s", self, value)
        return await self.get_target_heater_cooler_state()

    async def set_fan_state(self, value: int) -> int:
        """Set the target fan state: OFF, HEAT, FAN or AUTO."""

        if value == FanMode.OFF:
            await self._set_state(**{SZ_FAN_MODE: OFF})
        elif value == FanMode.HEAT:
            await self._set_state(**{SZ_HEAT_MODE: True})
        elif value == FanMode.FAN:
            await self._set_state(**{SZ_FAN_MODE: FAN})
        elif value == FanMode.AUTO:
            await self._set_state(**{SZ_FAN_MODE: AUTO_MODE})
        else:
            _LOGGER.warning("%s: Invalid fan state: %s", self, value)
        return await self.get_fan_state()

    # these are read-only, so nothing is sent
    async def set_current_heater_cooler_state(self, value: int) -> int:
        _LOGGER.debug("%s: Set current heater cooler state: %s", self, value)
        return await self.get_heater_cooler_state()

    async def set_current_fan_state(self, value: int) -> int:
        _LOGGER.debug("%s: Set current fan state: %s", self, value)
        return await self.get_current_fan_state()
