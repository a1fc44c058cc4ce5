import asyncio
import itertools
import logging
from threading import Lock
from typing import Callable, Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

Callback = Callable[[dict], None]


def conversation_channel(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class Subscription:
    def __init__(self, bus: "EventBus", channel: str, token: int):
        self._bus = bus
        self.channel = channel
        self._token = token
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._bus._remove(self.channel, self._token)


class EventBus:
    """In-process publish/subscribe fan-out keyed by channel name.

    Publishing runs every callback synchronously on the caller's thread; a
    failing callback is logged and does not affect the others. Cancelling a
    subscription removes its registration immediately.
    """

    def __init__(self):
        self._channels: Dict[str, Dict[int, Callback]] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()

    def subscribe(self, channel: str, callback: Callback) -> Subscription:
        token = next(self._tokens)
        with self._lock:
            self._channels.setdefault(channel, {})[token] = callback
        return Subscription(self, channel, token)

    def _remove(self, channel: str, token: int) -> None:
        with self._lock:
            callbacks = self._channels.get(channel)
            if not callbacks:
                return
            callbacks.pop(token, None)
            if not callbacks:
                self._channels.pop(channel, None)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._channels.get(channel, {}))

    def publish(self, channel: str, payload: dict) -> int:
        with self._lock:
            callbacks = list(self._channels.get(channel, {}).values())
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber on %s failed", channel)
        return len(callbacks)


class WebSocketRelay:
    """Forwards bus events on one channel to one websocket.

    Events may be published from worker threads, so they are handed to the
    socket's event loop through a queue.
    """

    def __init__(self, bus: EventBus, channel: str):
        self._bus = bus
        self.channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._subscription: Optional[Subscription] = None

    def _enqueue(self, payload: dict) -> None:
        loop = self._loop
        if not loop or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._queue.put_nowait, payload)

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._subscription = self._bus.subscribe(self.channel, self._enqueue)

    async def pump(self, websocket: WebSocket) -> None:
        if self._subscription is None:
            self.open()
        try:
            while True:
                payload = await self._queue.get()
                await websocket.send_json(payload)
        finally:
            self.close()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None


event_bus = EventBus()
