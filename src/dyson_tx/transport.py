#!/usr/bin/env python3
"""Dyson Link - the MQTT frame transport.

Operates at the frame layer of: app - frame - MQTT - device

The device is its own MQTT broker (on port 1883): it publishes to
'{model}/{device_id}/status/current', and subscribes to '{model}/{device_id}/command'.
The username is the device_id (from the serial number) and the password is that of
the device's own WiFi network (hashed, as used by the vendor's app).

The paho client runs its own network thread, so all of its callbacks are handed to
the event loop via call_soon_threadsafe().
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from paho.mqtt import MQTTException, client as mqtt

from . import exceptions as exc
from .const import (
    DEFAULT_KEEPALIVE,
    DEFAULT_MQTT_PORT,
    SZ_DEVICE_ID,
    SZ_MODEL,
    command_topic,
    model_traits,
    status_topic,
)
from .frame import Frame
from .helpers import dt_now

if TYPE_CHECKING:
    from .protocol import DysonProtocolT


#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_FORCE_FRAME_LOGGING: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


def _create_paho_client(legacy_mqtt: bool = False) -> mqtt.Client:
    """Return a paho client (some models still use the MQIsdp handshake)."""
    return mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        protocol=mqtt.MQTTv31 if legacy_mqtt else mqtt.MQTTv311,
    )


class _BaseTransport:
    """The protocol-facing half of a transport (asyncio.Transport-like)."""

    def __init__(
        self,
        protocol: DysonProtocolT,
        /,
        *,
        disable_sending: bool = False,
        extra: dict[str, Any] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._protocol = protocol
        self._loop = loop or asyncio.get_running_loop()
        self._extra: dict[str, Any] = extra or {}

        self._disable_sending = disable_sending
        self._closing = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def get_extra_info(self, name: str, default: Any = None) -> Any:
        return self._extra.get(name, default)

    def is_closing(self) -> bool:
        return self._closing

    def close(self) -> None:
        self._close()

    def _close(self, err: exc.DysonException | None = None) -> None:
        """Mark the transport as closed, and tell the protocol (only once)."""

        if self._closing:
            return
        self._closing = True

        self._loop.call_soon_threadsafe(self._protocol.connection_lost, err)

    def _make_connection(self) -> None:
        self._loop.call_soon_threadsafe(self._protocol.connection_made, self)

    def _frame_read(self, raw: bytes | str) -> None:
        """Decode a payload and pass it to the protocol (invalid frames are dropped)."""

        try:
            frame = Frame.from_payload(raw, dtm=dt_now())
        except exc.FrameInvalid as err:
            _LOGGER.warning("%r < Can't decode frame (ignoring): %s", raw, err)
            return

        if self._closing:
            _LOGGER.debug("%r < Transport has closed (ignoring)", frame)
            return

        self._loop.call_soon_threadsafe(self._protocol.frame_received, frame)

    async def write_frame(self, frame: str) -> None:
        """Send a frame to the device (the protocol's only way to send)."""

        if self._disable_sending:
            raise exc.TransportError("Sending has been disabled")
        if self._closing:
            raise exc.TransportError("Transport is closing or has closed")

        self._write_frame(frame)

    def _write_frame(self, frame: str) -> None:
        raise NotImplementedError


class MqttTransport(_BaseTransport):
    """Send/receive frames to/from a Dyson Link device via MQTT.

    The client connects (and reconnects) in the background. The first connection
    binds the protocol, and later ones resume it.
    """

    def __init__(
        self,
        protocol: DysonProtocolT,
        /,
        *,
        host: str,
        device_id: str,
        model: str,
        password: str,
        port: int = DEFAULT_MQTT_PORT,
        **kwargs: Any,
    ) -> None:
        super().__init__(protocol, **kwargs)

        self._host = host
        self._topic_cmd = command_topic(model, device_id)
        self._topic_status = status_topic(model, device_id)

        self._extra[SZ_DEVICE_ID] = device_id
        self._extra[SZ_MODEL] = model

        self._was_connected = False  # remains True after a disconnect

        client = _create_paho_client(legacy_mqtt=model_traits(model).legacy_mqtt)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        client.username_pw_set(device_id, password)
        client.connect_async(host, port, DEFAULT_KEEPALIVE)

        self.client = client
        self.client.loop_start()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._host}, {self._topic_status})"

    # the paho callbacks (invoked from its network thread)

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: mqtt.ConnectFlags,
        reason_code: mqtt.ReasonCode,
        properties: mqtt.Properties | None,
    ) -> None:
        if reason_code.is_failure:
            _LOGGER.error("%s: Unable to connect: %s", self, reason_code)
            return

        client.subscribe(self._topic_status)  # subscriptions don't survive a reconnect

        if self._was_connected:
            _LOGGER.info("%s: Reconnected", self)
            self._loop.call_soon_threadsafe(self._protocol.resume_writing)
        else:
            self._was_connected = True
            self._make_connection()

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: mqtt.DisconnectFlags,
        reason_code: mqtt.ReasonCode,
        properties: mqtt.Properties | None,
    ) -> None:
        if self._closing or not self._was_connected:
            return

        _LOGGER.warning("%s: Disconnected: %s", self, reason_code)
        self._loop.call_soon_threadsafe(self._protocol.pause_writing)

    def _on_message(
        self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage
    ) -> None:
        if _DBG_FORCE_FRAME_LOGGING:
            _LOGGER.warning("Rx: %s", msg.payload)
        else:
            _LOGGER.debug("Rx: %s", msg.payload)

        if msg.topic != self._topic_status:
            _LOGGER.debug("%s: Unexpected topic: %s (ignoring)", self, msg.topic)
            return

        self._frame_read(msg.payload)

    def _write_frame(self, frame: str) -> None:
        """Publish a frame to the device's command topic."""

        if _DBG_FORCE_FRAME_LOGGING:
            _LOGGER.warning("Tx: %s", frame)
        else:
            _LOGGER.debug("Tx: %s", frame)

        try:
            info = self.client.publish(self._topic_cmd, frame)
        except (MQTTException, ValueError) as err:
            raise exc.TransportError(f"Unable to publish: {err}") from err

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise exc.TransportError(f"Unable to publish: {mqtt.error_string(info.rc)}")

    def _close(self, err: exc.DysonException | None = None) -> None:
        """Disconnect from the device, and stop the client's network thread."""

        if self._closing:
            return
        super()._close(err)

        if self._was_connected:
            self.client.unsubscribe(self._topic_status)
        self.client.disconnect()
        self.client.loop_stop()


async def transport_factory(
    protocol: DysonProtocolT,
    /,
    *,
    host: str | None = None,
    device_id: str | None = None,
    model: str | None = None,
    password: str | None = None,
    port: int = DEFAULT_MQTT_PORT,
    disable_sending: bool | None = False,
    extra: dict[str, Any] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
    **kwargs: Any,  # ignored
) -> DysonTransportT:
    """Create and return an MQTT transport, bound to the protocol.

    The transport connects in the background (and reconnects as required), so the
    protocol may not be connected when this returns.
    """

    if not host:
        raise exc.TransportSourceInvalid("A host (the device's address) is required")
    if not device_id or not model:
        raise exc.TransportSourceInvalid("A device_id and model are required")

    return MqttTransport(
        protocol,
        host=host,
        port=port,
        device_id=device_id,
        model=model,
        password=password or "",
        disable_sending=bool(disable_sending),
        extra=extra,
        loop=loop,
    )


DysonTransportT: TypeAlias = MqttTransport
