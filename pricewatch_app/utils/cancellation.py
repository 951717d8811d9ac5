"""
Cancellation tokens and task scopes for cooperative asyncio tasks.

A scope owns a token and every task spawned under it. Cancelling the scope
sets the token, cancels the tasks (aborting any in-flight connect, receive or
fetch at its next suspension point) and waits until they have all exited.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Event-backed cancellation flag that periodic loops sleep on."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """
        Sleep for ``delay`` seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if the token was cancelled
        """
        if self.cancelled:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False


class TaskScope:
    """A cancellation token plus the tasks running under it."""

    def __init__(self, name: str, token: Optional[CancellationToken] = None) -> None:
        self.name = name
        self.token = token or CancellationToken()
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    @property
    def tasks(self) -> list[asyncio.Task]:
        return list(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Start a task owned by this scope."""
        task = asyncio.create_task(coro, name=f"{self.name}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Scoped task failed",
                scope=self.name,
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__
            )

    async def cancel(self) -> None:
        """Cancel the token and every task, then wait for them to exit."""
        self.token.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
