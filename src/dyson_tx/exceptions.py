#!/usr/bin/env python3
"""Dyson Link - exceptions within the frame/protocol/transport layer."""

from __future__ import annotations


class _DysonBaseException(Exception):
    """Base class for all dyson_tx exceptions."""

    pass


class DysonException(_DysonBaseException):
    """Base class for all dyson_tx exceptions."""

    HINT: None | str = None

    def __init__(self, *args: object):
        super().__init__(*args)
        self.message: str | None = args[0] if args else None  # type: ignore[assignment]

    def __str__(self) -> str:
        if self.message and self.HINT:
            return f"{self.message} (hint: {self.HINT})"
        if self.message:
            return self.message
        if self.HINT:
            return f"Hint: {self.HINT}"
        return ""


class _DysonLowerError(DysonException):
    """A failure in the lower layer (frame, protocol, transport)."""


########################################################################################
# Errors at/below the protocol/transport layer


class ProtocolError(_DysonLowerError):
    """An error occurred when sending, receiving or waiting for frames."""


class ProtocolFsmError(ProtocolError):
    """The protocol FSM is in the wrong state for the request (e.g. not connected)."""


class ProtocolWaitTimeout(ProtocolError):
    """No frame of the expected kind arrived within the timeout."""

    HINT = "is the device online, and is the password correct?"


class TransportError(ProtocolError):  # derived from ProtocolError
    """An error when sending or receiving frames (JSON payloads)."""


class TransportSourceInvalid(TransportError):
    """The broker/device configuration of the transport is not valid."""


########################################################################################
# Errors when decoding frames or encoding commands


class ParserBaseError(_DysonLowerError):
    """The frame is corrupt/not internally consistent, or cannot be built."""


class FrameInvalid(ParserBaseError):
    """The inbound frame is not a JSON object with a msg field."""


class CommandInvalid(ParserBaseError):
    """The outbound command has an unknown or invalid property."""
