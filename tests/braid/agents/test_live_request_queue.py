import asyncio

import pytest

from braid.agents.live_request_queue import LiveRequest, LiveRequestQueue


@pytest.mark.asyncio
async def test_send_then_get_buffers_in_order():
    queue = LiveRequestQueue()

    queue.send_content({"role": "user", "parts": [{"text": "a"}]})
    queue.send_realtime({"mime_type": "audio/pcm", "data": b"\x00"})
    queue.send_activity_start()
    queue.send_activity_end()

    assert (await queue.get()).content == {"role": "user", "parts": [{"text": "a"}]}
    assert (await queue.get()).blob == {"mime_type": "audio/pcm", "data": b"\x00"}
    assert (await queue.get()).activity_start is True
    assert (await queue.get()).activity_end is True


@pytest.mark.asyncio
async def test_send_resolves_pending_get():
    queue = LiveRequestQueue()
    pending = asyncio.ensure_future(queue.get())
    await asyncio.sleep(0)

    queue.send(LiveRequest(activity_start=True))

    assert (await pending).activity_start is True


@pytest.mark.asyncio
async def test_close_resolves_pending_get():
    queue = LiveRequestQueue()
    pending = asyncio.ensure_future(queue.get())
    await asyncio.sleep(0)

    queue.close()

    assert (await pending).close is True
    assert queue.closed


@pytest.mark.asyncio
async def test_close_drains_buffer_first():
    queue = LiveRequestQueue()
    queue.send_activity_start()
    queue.close()

    assert (await queue.get()).activity_start is True
    assert (await queue.get()).close is True
    assert (await queue.get()).close is True


def test_send_after_close_fails():
    queue = LiveRequestQueue()
    queue.close()

    with pytest.raises(RuntimeError, match="closed"):
        queue.send_activity_start()


@pytest.mark.asyncio
async def test_async_iteration_stops_at_close(alist):
    queue = LiveRequestQueue()
    queue.send_activity_start()
    queue.send_activity_end()
    queue.close()

    requests = await alist(queue)

    assert [(request.activity_start, request.activity_end) for request in requests] == [(True, False), (False, True)]
