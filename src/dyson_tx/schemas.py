#!/usr/bin/env python3
"""Dyson Link - schema processor for the frame/protocol (lower) layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Final, TypedDict

import voluptuous as vol

from .const import (
    DEFAULT_FRESHNESS_WINDOW,
    DEFAULT_MAX_WAITERS,
    DEFAULT_MQTT_PORT,
    DEFAULT_OSCILLATION_DELAY,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_TIMEOUT,
    SERIAL_NUMBER_REGEX,
)

_LOGGER = logging.getLogger(__name__)


#
# 0/3: Comms (timing) configuration
SZ_COMMS_PARAMS: Final = "comms_params"
SZ_FRESHNESS_WINDOW: Final = "freshness_window"
SZ_MAX_WAITERS: Final = "max_waiters"
SZ_OSCILLATION_DELAY: Final = "oscillation_delay"
SZ_POLL_INTERVAL: Final = "poll_interval"
SZ_WAIT_TIMEOUT: Final = "wait_timeout"

SCH_COMMS_PARAMS = vol.Schema(
    {
        vol.Required(SZ_WAIT_TIMEOUT, default=DEFAULT_WAIT_TIMEOUT): vol.All(
            vol.Coerce(float), vol.Range(min=0.1, max=60)
        ),
        vol.Required(SZ_FRESHNESS_WINDOW, default=DEFAULT_FRESHNESS_WINDOW): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=3600)
        ),
        vol.Required(SZ_POLL_INTERVAL, default=DEFAULT_POLL_INTERVAL): vol.All(
            vol.Coerce(float), vol.Range(min=10, max=86400)
        ),
        vol.Required(SZ_OSCILLATION_DELAY, default=DEFAULT_OSCILLATION_DELAY): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=5)
        ),
        vol.Required(SZ_MAX_WAITERS, default=DEFAULT_MAX_WAITERS): vol.All(
            int, vol.Range(min=1, max=128)
        ),
    },
    extra=vol.PREVENT_EXTRA,
)

#
# 1/3: Frame log configuration
SZ_FILE_NAME: Final = "file_name"
SZ_FRAME_LOG: Final = "frame_log"
SZ_ROTATE_BACKUPS: Final = "rotate_backups"
SZ_ROTATE_BYTES: Final = "rotate_bytes"


class FrameLogConfigT(TypedDict):
    file_name: str
    rotate_backups: int
    rotate_bytes: int | None


def sch_frame_log_dict_factory(
    default_backups: int = 0,
) -> dict[vol.Required, vol.Any]:
    """Return a frame log dict with a configurable default rotation policy.

    usage:

    SCH_FRAME_LOG_7 = vol.Schema(
        sch_frame_log_dict_factory(default_backups=7), extra=vol.PREVENT_EXTRA
    )
    """

    SCH_FRAME_LOG_CONFIG = vol.Schema(
        {
            vol.Optional(SZ_ROTATE_BACKUPS, default=default_backups): vol.Any(
                None, int
            ),
            vol.Optional(SZ_ROTATE_BYTES): vol.Any(None, int),
        },
        extra=vol.PREVENT_EXTRA,
    )

    SCH_FRAME_LOG_NAME = str

    def NormaliseFrameLog(rotate_backups: int = 0) -> Callable[..., Any]:
        def normalise_frame_log(node_value: str | FrameLogConfigT) -> FrameLogConfigT:
            if isinstance(node_value, str):
                return {
                    SZ_FILE_NAME: node_value,
                    SZ_ROTATE_BACKUPS: rotate_backups,
                    SZ_ROTATE_BYTES: None,
                }
            return node_value

        return normalise_frame_log

    return {  # SCH_FRAME_LOG_DICT
        vol.Required(SZ_FRAME_LOG, default=None): vol.Any(
            None,
            vol.All(
                SCH_FRAME_LOG_NAME,
                NormaliseFrameLog(rotate_backups=default_backups),
            ),
            SCH_FRAME_LOG_CONFIG.extend(
                {vol.Required(SZ_FILE_NAME): SCH_FRAME_LOG_NAME}
            ),
        )
    }


#
# 2/3: Device (connection) identity
SZ_HOST: Final = "host"
SZ_PASSWORD: Final = "password"
SZ_PORT: Final = "port"
SZ_SERIAL_NUMBER: Final = "serial_number"

SCH_SERIAL_NUMBER = vol.All(str, vol.Match(SERIAL_NUMBER_REGEX))

SCH_CONNECTION_DICT = {
    vol.Required(SZ_HOST): vol.All(str, vol.Length(min=1)),
    vol.Required(SZ_SERIAL_NUMBER): str,  # validated by the device, not here
    vol.Required(SZ_PASSWORD): str,
    vol.Optional(SZ_PORT, default=DEFAULT_MQTT_PORT): vol.All(
        int, vol.Range(min=1, max=65535)
    ),
}


#
# 3/3: Engine (protocol/transport) configuration
SZ_DISABLE_SENDING: Final = "disable_sending"

SCH_ENGINE_DICT = {
    vol.Optional(SZ_DISABLE_SENDING, default=False): bool,
    vol.Optional(SZ_COMMS_PARAMS, default={}): SCH_COMMS_PARAMS,
} | sch_frame_log_dict_factory(default_backups=0)
