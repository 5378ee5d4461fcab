#!/usr/bin/env python3
"""Dyson Link - Typing for DysonProtocol & DysonTransport."""

from collections.abc import Callable
from typing import TypeVar

from .frame import Frame

ExceptionT = TypeVar("ExceptionT", bound=type[Exception])
FrameHandlerT = Callable[[Frame], None]
