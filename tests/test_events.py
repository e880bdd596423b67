import asyncio
import json

import pytest

from services.events import EventHub


@pytest.mark.asyncio
async def test_stream_delivers_published_payloads():
    hub = EventHub()
    stream = hub.stream()
    pending = asyncio.ensure_future(stream.__anext__())
    while hub.subscriber_count == 0:
        await asyncio.sleep(0)

    hub.publish({"type": "asset", "asset": {"id": "a.jpg", "status": "loading"}})
    chunk = await pending

    header, data = chunk.strip().split("\n")
    assert header == "event: asset"
    assert json.loads(data[len("data: "):])["asset"]["status"] == "loading"

    await stream.aclose()
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_stream_sends_keepalive_comment():
    hub = EventHub(keepalive_seconds=0.01)
    stream = hub.stream()
    assert await stream.__anext__() == ":\n\n"
    await stream.aclose()


@pytest.mark.asyncio
async def test_full_queue_drops_events():
    hub = EventHub(queue_size=1)
    q = hub.subscribe()
    hub.publish({"type": "one"})
    hub.publish({"type": "two"})
    assert q.qsize() == 1
    assert json.loads(q.get_nowait())["type"] == "one"
