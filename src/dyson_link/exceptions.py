#!/usr/bin/env python3
"""Dyson Link - exceptions above the frame/protocol/transport layer."""

from __future__ import annotations

from dyson_tx.exceptions import (
    DysonException as DysonException,
    FrameInvalid as FrameInvalid,
    ProtocolError as ProtocolError,
    ProtocolWaitTimeout as ProtocolWaitTimeout,
    TransportError as TransportError,
)


class _DysonUpperError(DysonException):
    """A failure in the upper layer (state/schema, device, climate control)."""


########################################################################################
# Errors above the protocol/transport layer, incl. device identity & configuration


class DeviceInvalid(_DysonUpperError):
    """The device is not valid (e.g. it has a malformed serial number)."""

    HINT = "check the serial number, e.g. 'DYSON-NN2-EU-ABC1234A-455'"


class SchemaInconsistentError(_DysonUpperError):
    """The (climate control) configuration is not valid."""
