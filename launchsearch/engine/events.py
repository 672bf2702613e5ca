"""Async event bus for search and launch notifications.

Event types follow the pattern ``category.action``:

    search.started     a new generation began for a non-empty query
    search.committed   a bucket was written for the live generation
    search.discarded   a late result arrived for a superseded generation
    search.failed      a source raised; its bucket was emptied
    launch.recorded    an item launch updated its usage weight
    action.failed      an action gateway call failed

The bus is created by the caller and handed to the session and executor;
there is no module-level instance.
"""

import asyncio
import inspect
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger


@dataclass
class Event:
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.now)
    generation: Optional[int] = None


def _make_ref(handler: Callable) -> weakref.ref:
    # Bound methods die immediately under a plain weakref
    if inspect.ismethod(handler):
        return weakref.WeakMethod(handler)
    return weakref.ref(handler)


class EventBus:
    """
    Pub/sub bus with a bounded queue and wildcard subscriptions.

    Handlers are held weakly, so a listener goes away with its owner.
    """

    def __init__(self, max_queue: int = 1000):
        self._subscribers: Dict[str, List[weakref.ref]] = defaultdict(list)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)

    def subscribe(self, pattern: str, handler: Callable[[Event], Any]) -> None:
        """Subscribe to events; ``search.*`` matches every search event, ``*`` everything."""
        self._subscribers[pattern].append(_make_ref(handler))
        logger.debug(f"Subscribed handler to pattern: {pattern}")

    def unsubscribe(self, pattern: str, handler: Callable[[Event], Any]) -> None:
        self._subscribers[pattern] = [
            ref for ref in self._subscribers[pattern]
            if ref() is not None and ref() != handler
        ]

    def publish(self, event: Event) -> bool:
        """
        Queue an event without waiting.

        Returns:
            False if the queue was full and the event was dropped
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return False

        self._stats['emitted'] += 1
        return True

    async def emit(self, event: Event) -> None:
        self.publish(event)

    async def start(self) -> None:
        if self._running:
            logger.warning("Event bus already running")
            return

        self._running = True
        self._processor_task = asyncio.create_task(self._process_events())
        logger.debug("Event bus started")

    async def stop(self) -> None:
        """Stop after delivering everything already queued."""
        if not self._running:
            return
        await self.drain()
        self._running = False
        if self._processor_task:
            self._processor_task.cancel()
            try:
                await self._processor_task
            except asyncio.CancelledError:
                pass
            self._processor_task = None
        logger.debug("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _process_events(self) -> None:
        while self._running:
            event = await self._queue.get()
            try:
                await self._dispatch(event)
                self._stats['processed'] += 1
            except Exception as e:
                logger.error(f"Error processing event {event.type}: {e}")
                self._stats['processing_errors'] += 1
            finally:
                self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        handlers = []
        for pattern, refs in list(self._subscribers.items()):
            if not self._matches_pattern(event.type, pattern):
                continue
            live_refs = []
            for ref in refs:
                handler = ref()
                if handler is not None:
                    handlers.append(handler)
                    live_refs.append(ref)
            self._subscribers[pattern] = live_refs

        if not handlers:
            return

        results = await asyncio.gather(
            *(self._invoke(handler, event) for handler in handlers),
            return_exceptions=True
        )

        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Handler error for event {event.type}: {result}")
                self._stats['handler_errors'] += 1

    @staticmethod
    async def _invoke(handler: Callable[[Event], Any], event: Event) -> Any:
        result = handler(event)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _matches_pattern(event_type: str, pattern: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            return event_type.startswith(pattern[:-2] + ".")
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def reset_stats(self) -> None:
        self._stats.clear()
