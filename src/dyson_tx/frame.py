#!/usr/bin/env python3
"""Dyson Link - a decoded (inbound) frame.

Frames are JSON objects published by the device to its status topic, e.g.:
  {"msg": "CURRENT-STATE", "time": "...", "product-state": {"fpwr": "ON", ...}}
  {"msg": "ENVIRONMENTAL-CURRENT-SENSOR-DATA", "time": "...", "data": {...}}
  {"msg": "STATE-CHANGE", "time": "...", "product-state": {"fpwr": ["OFF", "ON"]}}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime as dt
from typing import Any

from . import exceptions as exc
from .const import NOTIFY_MAP, SZ_DATA, SZ_MSG, SZ_PRODUCT_STATE, MsgType, Notify
from .helpers import dt_now

_LOGGER = logging.getLogger(__name__)

FRAME_LOGGER = logging.getLogger(f"{__name__}_log")  # a distinct log of all frames


class Frame:
    """A frame received from the device."""

    def __init__(self, dtm: dt, payload: dict[str, Any]) -> None:
        self.dtm = dtm
        self.payload = payload

        self._msg: str = payload[SZ_MSG]

    def __repr__(self) -> str:
        return json.dumps(self.payload)

    def __str__(self) -> str:
        return self._msg

    @classmethod
    def from_payload(cls, raw: bytes | str, dtm: dt | None = None) -> Frame:
        """Create a frame from the raw payload of an MQTT message.

        Will raise FrameInvalid if the payload is not a JSON object with a msg field.
        """

        try:
            payload = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise exc.FrameInvalid(f"Unable to decode JSON: {err}") from err

        if not isinstance(payload, dict):
            raise exc.FrameInvalid(f"Payload is not a JSON object: {payload}")
        if not isinstance(payload.get(SZ_MSG), str):
            raise exc.FrameInvalid(f"Payload has no {SZ_MSG} field: {payload}")

        return cls(dtm or dt_now(), payload)

    @property
    def msg(self) -> str:
        """Return the message discriminator, as sent by the device."""
        return self._msg

    @property
    def msg_type(self) -> MsgType | None:
        """Return the message type, or None if it is not one we know of."""
        try:
            return MsgType(self._msg)
        except ValueError:
            return None

    @property
    def notify(self) -> Notify | None:
        """Return the notification kind fired by this frame, if any."""
        if (msg_type := self.msg_type) is None:
            return None
        return NOTIFY_MAP.get(msg_type)

    @property
    def data(self) -> dict[str, Any]:
        """Return the sensor data of the frame (empty if there is none)."""
        result = self.payload.get(SZ_DATA)
        return result if isinstance(result, dict) else {}

    @property
    def product_state(self) -> dict[str, Any]:
        """Return the product state of the frame (empty if there is none)."""
        result = self.payload.get(SZ_PRODUCT_STATE)
        return result if isinstance(result, dict) else {}
