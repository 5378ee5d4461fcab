#!/usr/bin/env python3
"""Dyson Link - the protocol's finite state machine.

The device has no request IDs, so a caller cannot wait for 'the reply' to its
request, only for 'the next frame' of a kind. Callers register a one-shot waiter
(a Future) per notification kind; when a frame of that kind arrives, every waiter
registered before it is resolved, in registration order.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from typing import TYPE_CHECKING, Final, TypeAlias

from . import exceptions as exc
from .const import DEFAULT_MAX_WAITERS, DEFAULT_WAIT_TIMEOUT, Notify
from .frame import Frame

if TYPE_CHECKING:
    from .protocol import DysonProtocolT
    from .transport import DysonTransportT
    from .typing import ExceptionT

#
# NOTE: All debug flags should be False for deployment to end-users
_DBG_MAINTAIN_STATE_CHAIN: Final[bool] = False  # keep the previous state

_LOGGER = logging.getLogger(__name__)


#######################################################################################

_FutureT: TypeAlias = asyncio.Future[Frame]


class ProtocolContext:
    def __init__(
        self,
        protocol: DysonProtocolT,
        /,
        *,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        max_waiters: int = DEFAULT_MAX_WAITERS,
    ) -> None:
        self._protocol = protocol
        self.wait_timeout = wait_timeout
        self.max_waiters = max_waiters

        self._loop = protocol._loop
        self._waiters: dict[Notify, deque[_FutureT]] = {k: deque() for k in Notify}

        self._state: _ProtocolStateT = None  # type: ignore[assignment]
        self._prev_state: _ProtocolStateT | None = None

        self.set_state(Inactive)

    def __repr__(self) -> str:
        waiters = ", ".join(
            f"{k.name.lower()}={len(v)}" for k, v in self._waiters.items()
        )
        return f"<ProtocolContext state={self._state.__class__.__name__}, {waiters}>"

    @property
    def state(self) -> _ProtocolStateT:
        return self._state

    @property
    def is_connected(self) -> bool:
        return isinstance(self._state, IsInIdle)

    def set_state(
        self,
        state_class: _ProtocolStateClassT,
        exception: Exception | None = None,
    ) -> None:
        """Transition to a new state, failing any waiters if there's an exception."""

        if _DBG_MAINTAIN_STATE_CHAIN:
            self._prev_state = self._state

        _LOGGER.debug("%s: changing to %s", self, state_class.__name__)

        if exception is not None:
            self._fail_waiters(exception)

        self._state = state_class(self)

        _LOGGER.debug("%s: changed", self)

    def connection_made(self, transport: DysonTransportT) -> None:
        self._state.connection_made()

    def connection_lost(self, err: ExceptionT | None) -> None:
        self._state.connection_lost()

    def frame_received(self, frame: Frame) -> None:
        self._state.frame_rcvd(frame)

    def pause_writing(self) -> None:
        self._state.writing_paused()

    def resume_writing(self) -> None:
        self._state.writing_resumed()

    def num_waiters(self, kind: Notify) -> int:
        """Return the number of callers waiting for the next frame of this kind."""
        return len(self._waiters[kind])

    def add_waiter(self, kind: Notify) -> _FutureT:
        """Register a one-shot waiter for the next frame of this kind.

        Will raise ProtocolError if there is no connection, or too many waiters.
        """

        self._state.waiter_added(kind)

        if len(self._waiters[kind]) >= self.max_waiters:
            raise exc.ProtocolError(
                f"{self}: Too many waiters for {kind} (max is {self.max_waiters})"
            )

        fut: _FutureT = self._loop.create_future()
        self._waiters[kind].append(fut)
        return fut

    def discard_waiter(self, kind: Notify, fut: _FutureT) -> None:
        """Deregister a waiter (if it's still registered)."""
        with contextlib.suppress(ValueError):
            self._waiters[kind].remove(fut)

    async def wait_for(
        self, kind: Notify, fut: _FutureT, timeout: float | None = None
    ) -> Frame:
        """Wait for a waiter to be resolved, deregistering it regardless of result.

        Will raise ProtocolWaitTimeout if no frame of this kind arrives in time.
        """

        timeout = self.wait_timeout if timeout is None else timeout

        try:
            return await asyncio.wait_for(fut, timeout)
        except TimeoutError as err:
            raise exc.ProtocolWaitTimeout(
                f"{self}: No {kind} frame received within {timeout} secs"
            ) from err
        finally:
            self.discard_waiter(kind, fut)

    def _resolve_waiters(self, kind: Notify, frame: Frame) -> None:
        # waiters registered from here onwards must wait for the next frame
        waiters, self._waiters[kind] = self._waiters[kind], deque()

        for fut in waiters:
            if not fut.done():
                fut.set_result(frame)

    def _fail_waiters(self, err: Exception) -> None:
        for kind in Notify:
            waiters, self._waiters[kind] = self._waiters[kind], deque()

            for fut in waiters:
                if not fut.done():
                    fut.set_exception(err)


#######################################################################################


class ProtocolStateBase:
    def __init__(self, context: ProtocolContext) -> None:
        self._context = context

    def __repr__(self) -> str:
        return f"<ProtocolState state={self.__class__.__name__}>"

    def connection_made(self) -> None:
        """Ignore the event, as only Inactive is unconnected."""

    def connection_lost(self) -> None:
        """Become Inactive, failing any waiters."""

        if isinstance(self, Inactive):
            return

        self._context.set_state(
            Inactive, exception=exc.TransportError("The connection was closed")
        )

    def frame_rcvd(self, frame: Frame) -> None:
        """Resolve any waiters for this kind of frame."""

        if kind := frame.notify:
            self._context._resolve_waiters(kind, frame)

    def writing_paused(self) -> None:  # only IsInIdle can be paused
        pass

    def writing_resumed(self) -> None:  # only IsPaused can be resumed
        pass

    def waiter_added(self, kind: Notify) -> None:
        raise exc.ProtocolFsmError(
            f"{self._context}: Not connected, can't wait for {kind}"
        )


class Inactive(ProtocolStateBase):
    """There is no Transport (it is yet to connect, or it has been closed)."""

    def connection_made(self) -> None:
        self._context.set_state(IsInIdle)

    def frame_rcvd(self, frame: Frame) -> None:
        _LOGGER.warning("%s: Unexpected frame (not bound): %r", self._context, frame)


class IsInIdle(ProtocolStateBase):
    """The Protocol is connected, and available for callers to wait for frames."""

    def writing_paused(self) -> None:
        """Transition to IsPaused, failing any waiters as their frames won't arrive."""
        self._context.set_state(
            IsPaused, exception=exc.TransportError("Connection paused (disconnected)")
        )

    def waiter_added(self, kind: Notify) -> None:
        """Do nothing, as waiting is permitted in this state."""
        pass


class IsPaused(ProtocolStateBase):
    """The Protocol's transport has (temporarily) lost its connection to the device."""

    def writing_resumed(self) -> None:
        self._context.set_state(IsInIdle)


#######################################################################################


_ProtocolStateT: TypeAlias = Inactive | IsInIdle | IsPaused

_ProtocolStateClassT: TypeAlias = type[Inactive] | type[IsInIdle] | type[IsPaused]
