"""
Ordered, fire-and-forget snapshot persistence.

Sessions request writes without awaiting them. Requests for the same key are
chained so each one starts only after the previous one for that key finished;
a stale snapshot can never overwrite a newer one. Requests for different keys
run independently.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from retain.domain.errors import SnapshotWriteError
from retain.domain.session.models import SessionKey, SessionSnapshot
from retain.domain.session.ports import SnapshotStore

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[SnapshotWriteError], None]


class SnapshotWriter:
    """
    Sequences snapshot writes per session key on the running event loop.

    Failures are logged, kept in `failures`, and passed to every registered
    error handler. They never propagate to the caller that requested them.
    """

    def __init__(self, store: SnapshotStore):
        self._store = store
        self._tails: dict[SessionKey, asyncio.Task] = {}
        self._handlers: list[ErrorHandler] = []
        self.failures: list[SnapshotWriteError] = []

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def add_error_handler(self, handler: ErrorHandler) -> None:
        self._handlers.append(handler)

    def remove_error_handler(self, handler: ErrorHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def request_save(self, key: SessionKey, snapshot: SessionSnapshot) -> asyncio.Task | None:
        """Queue an overwrite of the snapshot for `key`.

        Without a running event loop nothing is queued and the request is
        reported as a failure.
        """
        return self._enqueue(key, lambda: self._store.save(key, snapshot))

    def request_delete(self, key: SessionKey) -> asyncio.Task | None:
        """Queue removal of the snapshot for `key`."""
        return self._enqueue(key, lambda: self._store.delete(key))

    async def load(self, key: SessionKey) -> SessionSnapshot | None:
        """Load the snapshot for `key` once every pending write for it has landed."""
        await self.wait_for(key)
        return await self._store.load(key)

    async def wait_for(self, key: SessionKey) -> None:
        tail = self._tails.get(key)
        if tail is not None:
            await tail

    async def flush(self) -> None:
        """Wait for every pending write."""
        while self._tails:
            await asyncio.gather(*list(self._tails.values()))

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tails.values() if not task.done())

    def _enqueue(self, key: SessionKey, op: Callable[[], Awaitable[None]]) -> asyncio.Task | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            # Called from synchronous code with no loop to run the write on
            self._report(SnapshotWriteError(key, e))
            return None
        previous = self._tails.get(key)
        task = loop.create_task(self._run(key, previous, op))
        self._tails[key] = task
        task.add_done_callback(lambda done, k=key: self._forget(k, done))
        return task

    async def _run(
        self,
        key: SessionKey,
        previous: asyncio.Task | None,
        op: Callable[[], Awaitable[None]],
    ) -> None:
        if previous is not None:
            # Ordered after the previous write for this key
            await previous
        try:
            await op()
        except Exception as e:
            self._report(SnapshotWriteError(key, e))

    def _report(self, error: SnapshotWriteError) -> None:
        logger.warning(f"{error}; session continues without a resumable snapshot")
        self.failures.append(error)
        for handler in list(self._handlers):
            handler(error)

    def _forget(self, key: SessionKey, task: asyncio.Task) -> None:
        if self._tails.get(key) is task:
            del self._tails[key]
