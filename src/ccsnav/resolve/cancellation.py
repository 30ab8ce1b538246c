"""Cooperative cancellation tokens for resolution requests.

A :class:`CancellationTokenSource` owns a token that callers pass down
through every async boundary. Listeners register a callback and get back a
:class:`CancellationRegistration` which must be released on every exit path;
registrations are context managers so ``with token.on_cancellation_requested(cb):``
does that.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """The caller's cancellation token fired while work was in flight."""


class CancellationRegistration:
    """Handle for one registered callback; ``dispose()`` is idempotent."""

    def __init__(self, token: CancellationToken | None, key: int | None):
        self._token = token
        self._key = key

    @property
    def disposed(self) -> bool:
        return self._token is None

    def dispose(self) -> None:
        if self._token is not None:
            self._token._unregister(self._key)
            self._token = None

    def __enter__(self) -> CancellationRegistration:
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()


class CancellationToken:
    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._ids = itertools.count()

    @classmethod
    def none(cls) -> CancellationToken:
        """A token that is never cancelled."""
        return cls()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    @property
    def listener_count(self) -> int:
        return len(self._callbacks)

    def on_cancellation_requested(self, callback: Callable[[], None]) -> CancellationRegistration:
        if self._cancelled:
            callback()
            return CancellationRegistration(None, None)
        key = next(self._ids)
        self._callbacks[key] = callback
        return CancellationRegistration(self, key)

    def _unregister(self, key: int | None) -> None:
        self._callbacks.pop(key, None)

    def _fire(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks = list(self._callbacks.values())
        self._callbacks.clear()
        for cb in callbacks:
            cb()


class CancellationTokenSource:
    def __init__(self) -> None:
        self.token = CancellationToken()

    def cancel(self) -> None:
        self.token._fire()

    def dispose(self) -> None:
        self.token._callbacks.clear()

    def __enter__(self) -> CancellationTokenSource:
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()


async def run_cancellable(awaitable: Awaitable[T], token: CancellationToken | None) -> T:
    """Await *awaitable* as a task that is cancelled when *token* fires.

    Raises :class:`OperationCancelled` if the token caused the cancel. A
    cancel of the calling task itself still propagates as
    ``asyncio.CancelledError``.
    """
    if token is None:
        return await awaitable
    if token.is_cancellation_requested:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelled()

    task = asyncio.ensure_future(awaitable)
    with token.on_cancellation_requested(task.cancel):
        try:
            return await task
        except asyncio.CancelledError:
            if token.is_cancellation_requested:
                raise OperationCancelled() from None
            raise
