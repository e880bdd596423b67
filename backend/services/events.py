from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List


class EventHub:
    """Fan-out of JSON payloads to Server-Sent-Events subscribers."""

    def __init__(self, queue_size: int = 200, keepalive_seconds: float = 15.0) -> None:
        self._queues: List["asyncio.Queue[str]"] = []
        self._queue_size = queue_size
        self._keepalive = keepalive_seconds

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    def publish(self, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False)
        for q in list(self._queues):
            try:
                q.put_nowait(data)
            except asyncio.QueueFull:
                pass

    def subscribe(self) -> "asyncio.Queue[str]":
        q: "asyncio.Queue[str]" = asyncio.Queue(maxsize=self._queue_size)
        self._queues.append(q)
        return q

    def unsubscribe(self, q: "asyncio.Queue[str]") -> None:
        if q in self._queues:
            self._queues.remove(q)

    async def stream(self) -> AsyncIterator[str]:
        q = self.subscribe()
        try:
            while True:
                try:
                    data = await asyncio.wait_for(q.get(), timeout=self._keepalive)
                except asyncio.TimeoutError:
                    yield ":\n\n"
                    continue
                event_name = "message"
                try:
                    event_name = str(json.loads(data).get("type") or "message")
                except (ValueError, AttributeError):
                    event_name = "message"
                yield f"event: {event_name}\ndata: {data}\n\n"
        finally:
            self.unsubscribe(q)
