"""Single-fire cancellation shared by the relay, the upstream request and the caller.

Every disconnect path (explicit abort, output closed early) signals the same
``CancellationToken``; teardown hangs off that one signal so it runs once.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import TypeVar

import httpx

from ragrelay.gateway.errors import CallerAborted

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Idempotent cancellation signal.

    The first ``cancel`` wins: it records the reason, wakes waiters and runs
    the registered callbacks. Later calls are no-ops.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once on cancellation (immediately if already cancelled)."""
        if self.cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def cancel(self, reason: str = "cancelled") -> bool:
        """Signal cancellation.

        Returns:
            True if this call fired the token, False if it was already fired.
        """
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise CallerAborted(self._reason)

    async def wait(self) -> None:
        await self._event.wait()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        The losing awaitable is cancelled and awaited before returning.

        Raises:
            CallerAborted: If the token fired before the awaitable finished.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise CallerAborted(self._reason)
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            await asyncio.gather(task, waiter, return_exceptions=True)
            raise

        if task.done():
            waiter.cancel()
            await asyncio.gather(waiter, return_exceptions=True)
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise CallerAborted(self._reason)


class StreamState(str, Enum):
    """Lifecycle of one relayed chat call."""

    DISPATCHED = "dispatched"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


_TERMINAL = frozenset({StreamState.COMPLETED, StreamState.ABORTED, StreamState.FAILED})


class StreamSession:
    """State owned by exactly one in-flight chat call.

    Attributes:
        id: Short identifier used in log lines.
        token: The call's cancellation token.
        upstream: The backend response, once headers have arrived.
        state: Current ``StreamState``.
    """

    def __init__(self, token: CancellationToken | None = None) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.token = token or CancellationToken()
        self.upstream: httpx.Response | None = None
        self.state = StreamState.DISPATCHED
        self._closed = False
        self.token.add_callback(self._on_cancel)

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, upstream: httpx.Response) -> None:
        self.upstream = upstream

    def mark_streaming(self) -> None:
        if not self.finished:
            self.state = StreamState.STREAMING

    def mark_completed(self) -> None:
        if not self.finished:
            self.state = StreamState.COMPLETED

    def mark_failed(self) -> None:
        if not self.finished:
            self.state = StreamState.FAILED

    def _on_cancel(self) -> None:
        if not self.finished:
            self.state = StreamState.ABORTED
            logger.debug(f"Stream session {self.id} cancelled: {self.token.reason}")

    async def aclose(self) -> None:
        """Release the upstream connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self.upstream is not None:
            await self.upstream.aclose()


async def next_or_none(iterator: AsyncIterator[T]) -> T | None:
    """Advance ``iterator`` once, returning None when it is exhausted."""
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None
