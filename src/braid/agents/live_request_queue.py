"""Queue of requests sent to an agent running in live mode."""

import asyncio
import logging
from collections import deque
from typing import AsyncIterator, Optional

from pydantic import BaseModel, ConfigDict

from ..types.content import Blob, Content

logger = logging.getLogger(__name__)


class LiveRequest(BaseModel):
    """A single request sent to a live agent.

    Only one field is expected to be set.

    Attributes:
        content: A content message, sent in turn-by-turn mode.
        blob: A chunk of realtime media.
        activity_start: Marks the start of user activity.
        activity_end: Marks the end of user activity.
        close: Marks the end of the stream.
    """

    model_config = ConfigDict(extra="forbid")

    content: Optional[Content] = None
    blob: Optional[Blob] = None
    activity_start: bool = False
    activity_end: bool = False
    close: bool = False


class LiveRequestQueue:
    """An async queue of live requests.

    `send` hands a request directly to a waiting `get` or buffers it. After `close`, buffered requests are still
    delivered, then every `get` returns a close request and `send` fails.
    """

    def __init__(self) -> None:
        """Initialize an empty, open queue."""
        self._buffer: deque[LiveRequest] = deque()
        self._waiters: deque[asyncio.Future[LiveRequest]] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the queue has been closed."""
        return self._closed

    def send(self, request: LiveRequest) -> None:
        """Send a request.

        Raises:
            RuntimeError: If the queue is closed.
        """
        if self._closed:
            raise RuntimeError("Cannot send to a closed LiveRequestQueue.")

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(request)
                return

        self._buffer.append(request)

    def send_content(self, content: Content) -> None:
        """Send a content message."""
        self.send(LiveRequest(content=content))

    def send_realtime(self, blob: Blob) -> None:
        """Send a chunk of realtime media."""
        self.send(LiveRequest(blob=blob))

    def send_activity_start(self) -> None:
        """Signal the start of user activity."""
        self.send(LiveRequest(activity_start=True))

    def send_activity_end(self) -> None:
        """Signal the end of user activity."""
        self.send(LiveRequest(activity_end=True))

    def close(self) -> None:
        """Close the queue.

        Pending `get` calls and all later ones resolve with a close request once the buffer is drained.
        """
        if self._closed:
            return
        self._closed = True

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(LiveRequest(close=True))

        logger.debug("buffered=<%d> | live request queue closed", len(self._buffer))

    async def get(self) -> LiveRequest:
        """Return the next request, waiting for one if none is buffered."""
        if self._buffer:
            return self._buffer.popleft()
        if self._closed:
            return LiveRequest(close=True)

        waiter: asyncio.Future[LiveRequest] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    async def __aiter__(self) -> AsyncIterator[LiveRequest]:
        """Iterate over requests until the queue is closed."""
        while True:
            request = await self.get()
            if request.close:
                return
            yield request
