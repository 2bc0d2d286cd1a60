"""Cooperative cancellation of in-flight requests."""
import asyncio
from typing import Awaitable, TypeVar

T = TypeVar('T')


class OperationCanceled(Exception):
    """Raised by ``CancellationToken.run`` when the caller cancels."""


class CancellationToken:
    """
    Caller-owned cancellation flag.

    ``cancel()`` aborts the request currently raced through ``run`` at its
    next suspension point; code resuming after a network call checks
    ``cancelled`` before going on.

    Example:
        >>> token = CancellationToken()
        >>> result = await client.send('GET', url, token=token)
        >>> token.cancel()  # from another task
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason = ''

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = 'canceled by caller') -> None:
        """Request cancellation of every operation run under this token."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await ``awaitable`` unless the token is canceled first.

        Raises:
            OperationCanceled: If the token was or becomes canceled
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCanceled(self._reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise OperationCanceled(self._reason)

    async def sleep(self, delay: float) -> bool:
        """
        Sleep for ``delay`` seconds, waking early on cancellation.

        Returns:
            True if the token was canceled
        """
        if delay <= 0:
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
        return self.cancelled
