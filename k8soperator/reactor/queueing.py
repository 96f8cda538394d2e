"""
The single event dispatch queue of the operator.

The operator can watch multiple resource types at once. Every resource type
is watched in a separate asyncio task in a never-ending loop (see
:mod:`k8soperator.reactor.watching`). All of them put their events into
one and the same queue, which is consumed by one and only one worker.

As a result, the handlers are invoked strictly one at a time, in the order
in which the events were queued, across all the watched resource types.
The handlers can read-modify-write the same objects (e.g. the status
and the finalizers) without any locks, since nothing else runs meanwhile.

The price is the throughput: one slow handler delays all other events.
By default, there is no backpressure: the queue grows as much as needed
while the handlers are slow (see `QueueingSettings.max_size` to limit it).
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, NamedTuple, Optional

from k8soperator.helpers import typedefs
from k8soperator.structs import bodies

logger = logging.getLogger(__name__)

EventHandler = Callable[[bodies.ResourceEvent], Awaitable[None]]


class QueueItem(NamedTuple):
    event: bodies.ResourceEvent
    handler: EventHandler


if TYPE_CHECKING:
    EventQueue = asyncio.Queue[QueueItem]
else:
    EventQueue = asyncio.Queue


class EventDispatchQueue:
    """
    A strictly ordered queue of events with their handlers, and its only worker.
    """

    def __init__(
            self,
            *,
            max_size: Optional[int] = None,
            logger: typedefs.Logger = logger,
    ) -> None:
        super().__init__()
        self._queue: EventQueue = asyncio.Queue(maxsize=max_size or 0)
        self._worker: Optional[typedefs.Task] = None
        self._logger = logger

    def __len__(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._work(), name='event dispatch worker')

    async def put(self, event: bodies.ResourceEvent, handler: EventHandler) -> None:
        """
        Queue an event for handling, and return without waiting for the handler.

        Never blocks for unbounded queues; for bounded ones, waits for free space.
        """
        await self._queue.put(QueueItem(event=event, handler=handler))

    async def join(self) -> None:
        """ Wait until all the queued events are handled. """
        await self._queue.join()

    async def close(self) -> None:
        """ Stop the worker; the events that are still queued are dropped. """
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

    async def _work(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                await self._handle(item)
            finally:
                self._queue.task_done()

    async def _handle(self, item: QueueItem) -> None:
        # The handler's own cancellations must not stop the worker, only the worker's.
        task = asyncio.ensure_future(item.handler(item.event))
        try:
            await asyncio.wait([task])
        except asyncio.CancelledError:
            task.cancel()
            raise

        meta = item.event.meta
        what = f"{item.event.type.value} event of {meta.id} {meta.namespace or ''}/{meta.name}"
        if task.cancelled():
            self._logger.error(f"Handler for {what} was cancelled.")
        elif task.exception() is not None:
            self._logger.error(f"Handler for {what} failed.", exc_info=task.exception())
