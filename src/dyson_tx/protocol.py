#!/usr/bin/env python3
"""Dyson Link - the (JSON over MQTT) frame protocol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Final, TypeAlias

from . import exceptions as exc
from .command import Command
from .const import DEFAULT_MAX_WAITERS, DEFAULT_WAIT_TIMEOUT, MsgType, Notify
from .frame import FRAME_LOGGER, Frame
from .protocol_fsm import ProtocolContext
from .transport import transport_factory
from .typing import ExceptionT, FrameHandlerT

if TYPE_CHECKING:
    from .transport import DysonTransportT


#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_DISABLE_COALESCING: Final[bool] = False
_DBG_FORCE_LOG_FRAMES: Final[bool] = False

_LOGGER = logging.getLogger(__name__)


class _BaseProtocol(asyncio.Protocol):
    """Base class for Dyson Link protocols."""

    def __init__(self, frame_handler: FrameHandlerT | None) -> None:
        self._frame_handler = frame_handler
        self._frame_handlers: list[FrameHandlerT] = []

        self._transport: DysonTransportT = None  # type: ignore[assignment]
        self._loop = asyncio.get_running_loop()

        self._pause_writing = False
        self._wait_connection_lost: asyncio.Future[None] | None = None
        self._wait_connection_made: asyncio.Future[DysonTransportT] = (
            self._loop.create_future()
        )

    def add_handler(
        self,
        frame_handler: FrameHandlerT,
        /,
    ) -> Callable[[], None]:
        """Add a Frame handler to the list of such callbacks.

        Returns a callback that can be used to subsequently remove the Frame handler.
        """

        def del_handler() -> None:
            if frame_handler in self._frame_handlers:
                self._frame_handlers.remove(frame_handler)

        if frame_handler not in self._frame_handlers:
            self._frame_handlers.append(frame_handler)

        return del_handler

    def connection_made(  # type: ignore[override]
        self, transport: DysonTransportT
    ) -> None:
        """Bind the Transport to this Protocol (a no-op if it is already bound).

        Frames will then arrive via frame_received(), until connection_lost().
        """

        if self._wait_connection_made.done():
            return

        self._wait_connection_lost = self._loop.create_future()
        self._wait_connection_made.set_result(transport)
        self._transport = transport

    async def wait_for_connection_made(self, timeout: float = 1) -> DysonTransportT:
        """Return the Transport once it has bound to this Protocol.

        Raises TransportError if the binding takes longer than timeout seconds.
        """

        try:
            return await asyncio.wait_for(self._wait_connection_made, timeout)
        except TimeoutError as err:
            raise exc.TransportError(
                f"No connection to the broker after {timeout} secs"
            ) from err

    def connection_lost(self, err: ExceptionT | None) -> None:  # type: ignore[override]
        """Unbind the Transport, which has been closed.

        err is None if the Transport was closed deliberately (e.g. via close()).
        """

        if self._wait_connection_lost is None:  # connection_made() was never invoked
            self._wait_connection_lost = self._loop.create_future()

        if self._wait_connection_lost.done():
            return

        self._wait_connection_made = self._loop.create_future()
        if err:
            self._wait_connection_lost.set_exception(err)
        else:
            self._wait_connection_lost.set_result(None)

    async def wait_for_connection_lost(self, timeout: float = 1) -> ExceptionT | None:
        """Wait for the Transport to unbind from this Protocol.

        Returns at once if the Transport was never bound. Raises TransportError if
        the unbinding takes longer than timeout seconds.
        """

        if self._wait_connection_lost is None:  # was never bound
            return None

        try:
            return await asyncio.wait_for(self._wait_connection_lost, timeout)
        except TimeoutError as err:
            raise exc.TransportError(
                f"The Transport was still bound after {timeout} secs"
            ) from err

    def pause_writing(self) -> None:
        """Called when the transport has lost its connection to the broker/device.

        Pause and resume calls are paired: pause_writing() is called once when the
        connection is lost, and resume_writing() once it has been re-established.
        """

        self._pause_writing = True

    def resume_writing(self) -> None:
        """Called when the transport has re-established its connection.

        Only ever called after a pause_writing().
        """

        self._pause_writing = False

    @property
    def is_connected(self) -> bool:
        """Return True if the protocol has a transport that is able to send."""
        return bool(
            self._transport
            and self._wait_connection_made.done()
            and not self._pause_writing
        )

    async def send_cmd(self, cmd: Command) -> None:
        """Publish a command to the device (there is no acknowledgement)."""

        if not self._transport or not self._wait_connection_made.done():
            raise exc.ProtocolError("There is no connected Transport")
        if self._pause_writing:
            raise exc.ProtocolError("The Protocol is currently paused (disconnected)")

        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning("Sent:   %s", cmd)
        else:
            _LOGGER.debug("Sent:   %s", cmd)

        frame = str(cmd)
        FRAME_LOGGER.info("> %s", frame)
        await self._send_frame(frame)

    async def _send_frame(self, frame: str, /) -> None:
        """Hand the (encoded) frame to the Transport for publishing."""
        await self._transport.write_frame(frame)

    def frame_received(self, frame: Frame) -> None:
        """Log the Frame (to the frame log too), then process it."""

        if _DBG_FORCE_LOG_FRAMES:
            _LOGGER.warning("Recv'd: %r", frame)
        else:
            _LOGGER.debug("Recv'd: %r", frame)
        FRAME_LOGGER.info("< %r", frame)

        self._frame_received(frame)

    def _frame_received(self, frame: Frame) -> None:
        """Pass the Frame to the client's callbacks."""

        # NOTE: invoked directly (not via call_soon), so that the state models are
        # updated before any waiters are resolved
        callbacks = [self._frame_handler] if self._frame_handler else []
        for callback in callbacks + self._frame_handlers:
            try:
                callback(frame)
            except AssertionError as err:  # a bug in a handler
                _LOGGER.exception("%r < exception from app layer: %s", frame, err)
            except exc.DysonException as err:  # protect from upper layers
                _LOGGER.error("%r < exception from app layer: %s", frame, err)


class DysonProtocol(_BaseProtocol):
    """A protocol that correlates callers with the next frame of a kind."""

    def __init__(
        self,
        frame_handler: FrameHandlerT | None,
        /,
        *,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        max_waiters: int = DEFAULT_MAX_WAITERS,
    ) -> None:
        super().__init__(frame_handler)

        self._context = ProtocolContext(
            self, wait_timeout=wait_timeout, max_waiters=max_waiters
        )
        self._tasks: set[asyncio.Task[Any]] = set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._context})"

    def connection_made(  # type: ignore[override]
        self, transport: DysonTransportT
    ) -> None:
        """Consume the callback if invoked by the Transport, and refresh the state."""

        super().connection_made(transport)
        self._context.connection_made(transport)

        _LOGGER.info("%s: connected to the device, requesting its state", self)
        self._schedule_refresh()

    def connection_lost(self, err: ExceptionT | None) -> None:  # type: ignore[override]
        """Fail any waiters, and cancel any pending refresh."""

        self._context.connection_lost(err)
        super().connection_lost(err)

        for task in list(self._tasks):
            task.cancel()

    def pause_writing(self) -> None:
        """Fail any waiters, and refuse new ones until writing is resumed."""

        _LOGGER.warning("%s: the connection to the device has been lost", self)

        super().pause_writing()
        self._context.pause_writing()

    def resume_writing(self) -> None:
        """Inform the FSM that the Protocol has been resumed, and refresh the state."""

        _LOGGER.warning("%s: the connection to the device has been restored", self)

        super().resume_writing()
        self._context.resume_writing()
        self._schedule_refresh()

    def _frame_received(self, frame: Frame) -> None:
        """Update the state models, then resolve any waiters for the frame's kind."""

        super()._frame_received(frame)

        if frame.msg_type == MsgType.STATE_CHANGE:  # the frame has no useful detail
            _LOGGER.info("%s: state changed, requesting the current state", self)
            self._schedule_refresh()
            return

        if frame.notify is None:
            _LOGGER.debug("%r < unknown msg type (ignoring)", frame)
            return

        self._context.frame_received(frame)

    def _schedule_refresh(self) -> None:
        task = self._loop.create_task(self.request_refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def is_connected(self) -> bool:
        return self._context.is_connected and super().is_connected

    def num_waiters(self, kind: Notify) -> int:
        """Return the number of callers waiting for the next frame of this kind."""
        return self._context.num_waiters(kind)

    async def request_refresh(self) -> bool:
        """Ask the device to publish its current state and sensor data.

        The request is not sent if others are already waiting for the response (it
        is a throttle, not a guarantee). Returns True if the request was sent.
        """

        if not self.is_connected:
            return False

        if not _DBG_DISABLE_COALESCING and (
            self.num_waiters(Notify.SENSOR) > 1 or self.num_waiters(Notify.STATE) > 1
        ):
            _LOGGER.debug("%s: a refresh is already pending (not sending)", self)
            return False

        try:
            await self.send_cmd(Command.request_current_state())
        except exc.ProtocolError as err:  # incl. TransportError
            _LOGGER.warning("%s: unable to request a refresh: %s", self, err)
            return False
        return True

    async def wait_for(
        self, kind: Notify, /, *, refresh: bool = True, timeout: float | None = None
    ) -> Frame:
        """Return the next frame of a kind, optionally requesting a refresh first.

        Will raise ProtocolError if not connected, or ProtocolWaitTimeout if no frame
        arrives within the timeout (which defaults to the protocol's wait_timeout).
        """

        fut = self._context.add_waiter(kind)  # must be registered before the refresh
        if refresh:
            await self.request_refresh()
        return await self._context.wait_for(kind, fut, timeout=timeout)


# NOTE: The factory and stack exist for the benefit of the upper layers
def protocol_factory(
    frame_handler: FrameHandlerT | None,
    /,
    *,
    wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
    max_waiters: int = DEFAULT_MAX_WAITERS,
) -> DysonProtocolT:
    """Create and return a Dyson Link frame Protocol."""

    return DysonProtocol(
        frame_handler, wait_timeout=wait_timeout, max_waiters=max_waiters
    )


async def create_stack(
    frame_handler: FrameHandlerT | None,
    /,
    *,
    protocol_factory_: Callable[..., DysonProtocolT] | None = None,
    transport_factory_: Callable[..., Awaitable[DysonTransportT]] | None = None,
    wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
    max_waiters: int = DEFAULT_MAX_WAITERS,
    **kwargs: Any,  # these are for the transport_factory
) -> tuple[DysonProtocolT, DysonTransportT]:
    """Return a Protocol, bound to a newly-created Transport.

    Architecture: device (client) -> frame (Protocol) -> MQTT (Transport) -> device
    - Commands are sent via: await protocol.send_cmd(cmd)
    - receive Frames via the device's frame_handler(frame) callback
    """

    protocol: DysonProtocolT = (protocol_factory_ or protocol_factory)(
        frame_handler, wait_timeout=wait_timeout, max_waiters=max_waiters
    )

    transport: DysonTransportT = await (transport_factory_ or transport_factory)(
        protocol, **kwargs
    )

    return protocol, transport


DysonProtocolT: TypeAlias = DysonProtocol
