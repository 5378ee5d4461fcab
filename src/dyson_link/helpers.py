#!/usr/bin/env python3
"""Dyson Link - Helper functions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from copy import deepcopy
from typing import Any, TypeAlias, TypeVar

_SchemaT: TypeAlias = dict[str, Any]
_T = TypeVar("_T")

_LOGGER = logging.getLogger(__name__)


def deep_merge(src: _SchemaT, dst: _SchemaT) -> _SchemaT:
    """Return a copy of dst, with src merged into it (src has precedence).

    Only dicts are merged; any other value of src (lists included) replaces that of
    dst, so that (e.g.) the ordered list of climate rules is never interleaved.

    >>> deep_merge({'a': {'x': 1}, 'b': [1]}, {'a': {'y': 2}, 'b': [2, 3]})
    {'a': {'y': 2, 'x': 1}, 'b': [1]}
    """

    result = deepcopy(dst)
    for key, value in src.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(value, result[key])
        else:
            result[key] = deepcopy(value)
    return result


def schedule_task(
    coro_fnc: Callable[..., Awaitable[Any]],
    *args: Any,
    delay: float | None = None,
    period: float | None = None,
) -> asyncio.Task[None]:
    """Await coro_fnc(*args) after delay seconds, then every period seconds (if any).

    An exception raised by coro_fnc ends the task.
    """

    async def run_on_schedule() -> None:
        if delay:
            await asyncio.sleep(delay)

        while True:
            await coro_fnc(*args)
            if not period:
                return
            await asyncio.sleep(period)

    return asyncio.create_task(run_on_schedule(), name=coro_fnc.__qualname__)



def with_callback(
    coro: Coroutine[Any, Any, _T],
    callback: Callable[[Exception | None, _T | None], None],
) -> asyncio.Task[_T]:
    """Run a getter/setter coro as a task, then invoke callback(error, value).

    For bridges that expect node-style callbacks, rather than awaitables.
    """

    def done_callback(task: asyncio.Task[_T]) -> None:
        if task.cancelled():
            callback(asyncio.CancelledError(), None)
        elif (err := task.exception()) is not None:
            callback(err, None)  # type: ignore[arg-type]
        else:
            callback(None, task.result())

    task = asyncio.create_task(coro)
    task.add_done_callback(done_callback)
    return task
