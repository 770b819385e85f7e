"""In-process change notifications for lesson rows.

Each subscriber gets its own asyncio.Queue keyed by lesson id. Publishing is
safe from worker threads: events are handed to the subscriber's own loop.
"""

import asyncio
import threading


class LessonEvents:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = {}

    def subscribe(self, lesson_id: str) -> asyncio.Queue:
        """Register a queue that receives one event per change to lesson_id.

        Must be called from a running event loop.
        """
        queue: asyncio.Queue = asyncio.Queue()
        loop = asyncio.get_running_loop()
        with self._lock:
            self._subscribers.setdefault(lesson_id, []).append((loop, queue))
        return queue

    def unsubscribe(self, lesson_id: str, queue: asyncio.Queue) -> None:
        with self._lock:
            entries = self._subscribers.get(lesson_id, [])
            entries[:] = [(l, q) for l, q in entries if q is not queue]
            if not entries:
                self._subscribers.pop(lesson_id, None)

    def subscriber_count(self, lesson_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(lesson_id, []))

    def publish(self, lesson_id: str, event: dict | None = None) -> None:
        payload = event or {"event": "update", "lesson_id": lesson_id}
        with self._lock:
            entries = list(self._subscribers.get(lesson_id, []))
        for loop, queue in entries:
            if loop.is_closed():
                continue
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                queue.put_nowait(payload)
            else:
                loop.call_soon_threadsafe(queue.put_nowait, payload)


lesson_events = LessonEvents()
