#!/usr/bin/env python3
"""Dyson Link - a client for Dyson Link (JSON over MQTT) devices."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import TYPE_CHECKING, Any

from .command import Command, encode_state
from .const import (
    MODEL_TRAITS,
    SERIAL_NUMBER_REGEX,
    ModelTraits,
    MsgType,
    Notify,
    model_traits,
)
from .frame import FRAME_LOGGER, Frame
from .logger import set_frame_logging
from .protocol import DysonProtocol, DysonProtocolT, create_stack, protocol_factory
from .schemas import SZ_COMMS_PARAMS, SZ_FRAME_LOG
from .transport import DysonTransportT, MqttTransport, transport_factory
from .version import VERSION

__all__ = [
    "VERSION",
    #
    "SZ_COMMS_PARAMS",
    "SZ_FRAME_LOG",
    #
    "MODEL_TRAITS",
    "SERIAL_NUMBER_REGEX",
    "ModelTraits",
    "MsgType",
    "Notify",
    "model_traits",
    #
    "Command",
    "Frame",
    "encode_state",
    #
    "DysonProtocol",
    "DysonProtocolT",
    "create_stack",
    "protocol_factory",
    #
    "DysonTransportT",
    "MqttTransport",
    "transport_factory",
    #
    "FRAME_LOGGER",
    "set_frame_logging",
    "set_frame_logging_config",
]


if TYPE_CHECKING:
    from logging import Logger


async def set_frame_logging_config(**config: Any) -> Logger:
    """
    Set up frame logging to a file or the console.
    Runs in an executor, as opening the frame log file is a blocking call.

    :param config: if file_name is included, opens the frame log file
    :return: a logging.Logger
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, partial(set_frame_logging, FRAME_LOGGER, **config))
    return FRAME_LOGGER
