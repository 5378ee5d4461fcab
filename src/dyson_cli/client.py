#!/usr/bin/env python3
"""A CLI for the dyson_link library."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Final

import click
import voluptuous as vol
from colorama import Fore, Style, init as colorama_init

from dyson_link import DysonLinkDevice, exceptions as exc
from dyson_link.helpers import deep_merge
from dyson_link.schemas import (
    SCH_DEVICE_CONFIG,
    SZ_DISABLE_SENDING,
    SZ_FRAME_LOG,
    SZ_HOST,
    SZ_PASSWORD,
    SZ_SERIAL_NUMBER,
)
from dyson_tx import Frame, MsgType, set_frame_logging_config
from dyson_tx.logger import CONSOLE_COLS, DEFAULT_DATEFMT, DEFAULT_FMT

# this is called after import colorlog to ensure its handlers wrap the correct streams
logging.basicConfig(level=logging.WARNING, format=DEFAULT_FMT, datefmt=DEFAULT_DATEFMT)


GET: Final = "get"
MONITOR: Final = "monitor"
SET: Final = "set"

SZ_PROPERTY: Final = "property"
SZ_VALUE: Final = "value"

CONNECT_TIMEOUT: Final[float] = 10  # seconds

COLORS = {
    MsgType.CURRENT_STATE: Fore.CYAN,
    MsgType.ENVIRONMENTAL: Fore.GREEN,
    MsgType.STATE_CHANGE: Style.BRIGHT + Fore.MAGENTA,
}

# property: (getter, setter), setter is None if the property is read-only
PROPERTIES: Final[dict[str, tuple[str, str | None]]] = {
    "fan_on": ("is_fan_on", "set_fan_on"),
    "fan_auto": ("is_fan_auto", "set_fan_auto"),
    "fan_speed": ("get_fan_speed", "set_fan_speed"),
    "fan_state": ("get_fan_state", "set_fan_state"),
    "current_fan_state": ("get_current_fan_state", None),
    "rotate": ("is_rotate", "set_rotate"),
    "night_mode": ("is_night_mode", "set_night_mode"),
    "focused_jet": ("is_focused_jet", "set_focused_jet"),
    "heat_on": ("is_heat_on", "set_heat_on"),
    "heater_on": ("is_fan_on", "set_heater_on"),
    "heat_threshold": ("get_heat_threshold", "set_heat_threshold"),
    "heater_cooler_state": ("get_heater_cooler_state", None),
    "target_heater_cooler_state": (
        "get_target_heater_cooler_state",
        "set_heater_cooler_state",
    ),
    "filter_life": ("get_filter_life", None),
    "filter_change_required": ("is_filter_change_required", None),
    "temperature": ("get_temperature", None),
    "humidity": ("get_humidity", None),
    "air_quality": ("get_air_quality", None),
    "pm2_5": ("get_pm2_5", None),
    "pm10": ("get_pm10", None),
    "voc": ("get_voc", None),
    "no2": ("get_no2", None),
}

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def parse_value(value: str) -> bool | int | float:
    """Convert a value from the command line into a bool, int or float."""

    if value.lower() in ("on", "true", "yes"):
        return True
    if value.lower() in ("off", "false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError as err:
        raise click.BadParameter(f"{value!r} is not a valid value") from err


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-c", "--config-file", type=click.File("r"))
@click.option("-d", "--debug", count=True, help="-d for info, -dd for debug logging")
@click.option("-o", "--frame-log", type=click.Path(), help="Log frames to this file")
@click.option("-lf", "--long-format", is_flag=True, help="dont truncate STDOUT")
@click.pass_context
def cli(ctx, config_file=None, frame_log=None, **kwargs: Any) -> None:
    """A CLI for the dyson_link library."""

    lib_kwargs: dict[str, Any] = {}
    if frame_log:
        lib_kwargs[SZ_FRAME_LOG] = frame_log

    if config_file:  # CLI takes precedence
        lib_kwargs = deep_merge(lib_kwargs, json.load(config_file))

    ctx.obj = kwargs, lib_kwargs


# Args/Params for a device: host serial_number password
class DeviceCommand(click.Command):  # client.py <command> <host> <serial> <password>
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.params.insert(0, click.Argument((SZ_HOST,)))
        self.params.insert(1, click.Argument((SZ_SERIAL_NUMBER,)))
        self.params.insert(2, click.Argument((SZ_PASSWORD,)))


def split_kwargs(obj: tuple[dict, dict], kwargs: dict) -> tuple[dict, dict]:
    """Split kwargs into cli/library kwargs."""
    cli_kwargs, lib_kwargs = obj

    lib_keys = (SZ_HOST, SZ_SERIAL_NUMBER, SZ_PASSWORD)
    cli_kwargs = cli_kwargs | {k: v for k, v in kwargs.items() if k not in lib_keys}
    lib_kwargs = lib_kwargs | {k: v for k, v in kwargs.items() if k in lib_keys}

    return cli_kwargs, lib_kwargs


#
# 1/3: MONITOR (print all frames)
@click.command(cls=DeviceCommand)
@click.option("-l", "--listen", is_flag=True, help="disable sending (listen only)")
@click.pass_obj
def monitor(obj, listen: bool = False, **kwargs: Any):
    """Monitor a device for frames (its state, and sensor data)."""
    config, lib_config = split_kwargs(obj, kwargs)

    if listen:
        print(" - sending is force-disabled")
        lib_config[SZ_DISABLE_SENDING] = True

    return MONITOR, lib_config, config


#
# 2/3: GET (a property)
@click.command(cls=DeviceCommand)
@click.argument(SZ_PROPERTY, type=click.Choice(sorted(PROPERTIES)))
@click.pass_obj
def get(obj, **kwargs: Any):
    """Get a property of a device, e.g. fan_speed."""
    config, lib_config = split_kwargs(obj, kwargs)

    return GET, lib_config, config


#
# 3/3: SET (a property)
@click.command(SET, cls=DeviceCommand)
@click.argument(
    SZ_PROPERTY, type=click.Choice(sorted(k for k, v in PROPERTIES.items() if v[1]))
)
@click.argument(SZ_VALUE)
@click.pass_obj
def set_(obj, **kwargs: Any):
    """Set a property of a device, e.g. fan_speed 40."""
    config, lib_config = split_kwargs(obj, kwargs)

    config[SZ_VALUE] = parse_value(config[SZ_VALUE])
    return SET, lib_config, config


def _set_logging_level(debug: int) -> None:
    level = logging.WARNING if not debug else logging.INFO
    level = logging.DEBUG if debug > 1 else level

    for name in ("dyson_cli", "dyson_link", "dyson_tx"):
        logging.getLogger(name).setLevel(level)


async def async_main(command: str, lib_kwargs: dict, **kwargs: Any) -> None:
    """Do certain things."""

    def handle_frame(frame: Frame) -> None:
        """Process the frame as it arrives (a callback).

        In this case, the frame is merely printed.
        """

        if kwargs["long_format"]:
            print(f'{frame.dtm.isoformat(timespec="microseconds")} ... {frame!r}')
            return

        dtm = f"{frame.dtm:%H:%M:%S.%f}"[:-3]
        color = COLORS.get(frame.msg_type, Fore.YELLOW)  # type: ignore[arg-type]
        print(f"{color}{dtm} {frame!r}"[:CONSOLE_COLS])

    _set_logging_level(kwargs["debug"])

    try:
        lib_kwargs = SCH_DEVICE_CONFIG(lib_kwargs)
    except vol.Invalid as err:
        raise exc.SchemaInconsistentError(f"Device config: {err}") from err

    if lib_kwargs[SZ_FRAME_LOG]:
        await set_frame_logging_config(**lib_kwargs[SZ_FRAME_LOG])

    device = DysonLinkDevice.from_config(lib_kwargs)
    if not device.is_valid:
        raise exc.DeviceInvalid(f"{device}: Incorrect serial number")

    print("\r\nclient.py: Starting device...")

    try:  # main code here
        await device.start()
        assert device._protocol is not None  # mypy
        await device._protocol.wait_for_connection_made(timeout=CONNECT_TIMEOUT)

        if command == MONITOR:
            colorama_init(autoreset=True)
            device._protocol.add_handler(handle_frame)
            await device.request_refresh()
            await device._protocol._wait_connection_lost

        elif command == GET:
            getter, _ = PROPERTIES[kwargs[SZ_PROPERTY]]
            result = await getattr(device, getter)()
            print(f"{kwargs[SZ_PROPERTY]}: {result}")

        elif command == SET:
            _, setter = PROPERTIES[kwargs[SZ_PROPERTY]]
            result = await getattr(device, setter)(kwargs[SZ_VALUE])
            print(f"{kwargs[SZ_PROPERTY]}: {result}")

    except asyncio.CancelledError:
        msg = "ended via: CancelledError (e.g. SIGINT)"
    except exc.DysonException as err:
        msg = f"ended via: DysonException: {err}"
    else:
        msg = "ended without error"
    finally:
        await device.stop()

    print(f"\r\nclient.py: Device stopped: {msg}")


cli.add_command(monitor)
cli.add_command(get)
cli.add_command(set_)


def main() -> None:
    print("\r\nclient.py: Starting dyson_link...")

    try:
        result = cli(standalone_mode=False)
    except click.ClickException as err:
        print(f"Error: {err}")
        sys.exit(-1)

    if isinstance(result, int):
        sys.exit(result)

    (command, lib_kwargs, kwargs) = result

    try:
        asyncio.run(async_main(command, lib_kwargs, **kwargs))
    except KeyboardInterrupt:
        print("\r\nclient.py: Device stopped: ended via: KeyboardInterrupt")
    except exc.DysonException as err:
        print(f"Error: {err}")
        sys.exit(-1)

    print(" - finished dyson_link.\r\n")


if __name__ == "__main__":
    main()
