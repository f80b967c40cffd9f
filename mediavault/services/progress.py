"""Per-job progress stream"""

import asyncio
from typing import Optional, Tuple

GATHERING_INFORMATION = "gathering-information"
GENERATING_STREAM = "generating-stream"
IMPORTING_PLAYLIST = "importing-playlist"
GENERATING_THUMBNAILS = "generating-thumbnails"
LOOKING_UP = "looking-up"

# Order in which an indexing job reports them
STAGES = (
    GATHERING_INFORMATION,
    GENERATING_STREAM,
    IMPORTING_PLAYLIST,
    GENERATING_THUMBNAILS,
    LOOKING_UP,
)

_CLOSED = object()


class ProgressStream:
    """Single-consumer async iterator of (stage, percentage) pairs.

    Publishing never blocks: updates are buffered until the consumer reads
    them. The stream ends once the job closes it and cannot be iterated twice.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumed = False
        self._closed = False
        self.latest: Optional[Tuple[str, float]] = None

    def publish(self, stage: str, percentage: float):
        if self.closed:
            return
        self.latest = (stage, percentage)
        self._queue.put_nowait((stage, percentage))

    def close(self):
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self):
        if self._consumed:
            raise RuntimeError("Progress stream has already been consumed")
        self._consumed = True
        return self._iterate()

    async def _iterate(self):
        while True:
            update = await self._queue.get()
            if update is _CLOSED:
                return
            yield update
