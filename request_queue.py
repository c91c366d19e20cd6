"""
Guild Desk - Request Queue
Per-channel FIFO so messages of one channel are handled in receipt order.
"""

import asyncio
from typing import Callable, Dict, List, Optional
from collections import defaultdict

from constants import QUEUE_DELAY
import logger as log


class RequestQueue:
    """Processes queued requests one channel at a time.

    Different channels run concurrently; within a channel each request
    finishes before the next starts.
    """

    def __init__(self, delay: float = QUEUE_DELAY):
        self.delay = delay
        self.queues: Dict[str, List[dict]] = defaultdict(list)
        self.processing: Dict[str, bool] = defaultdict(bool)
        self.locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.process_callback: Optional[Callable] = None
        self._tasks: Dict[str, asyncio.Task] = {}

    def set_processor(self, callback: Callable):
        """Set the coroutine function that handles one request."""
        self.process_callback = callback

    def pending(self, channel_id) -> int:
        return len(self.queues.get(str(channel_id), []))

    async def add_request(self, channel_id, **request) -> bool:
        """Queue a request for a channel and start its worker if idle."""
        channel_id = str(channel_id)
        async with self.locks[channel_id]:
            self.queues[channel_id].append(request)
            if not self.processing[channel_id]:
                self.processing[channel_id] = True
                self._tasks[channel_id] = asyncio.create_task(self._process_queue(channel_id))
        return True

    async def _process_queue(self, channel_id: str):
        """Drain a channel's queue in order."""
        try:
            while True:
                async with self.locks[channel_id]:
                    if not self.queues[channel_id]:
                        break
                    request = self.queues[channel_id].pop(0)

                if self.process_callback:
                    try:
                        await self.process_callback(**request)
                    except Exception as e:
                        log.error(f"Request failed ({type(e).__name__}): {e}", channel_id)

                if self.delay:
                    await asyncio.sleep(self.delay)
        finally:
            async with self.locks[channel_id]:
                self.processing[channel_id] = False
                # Requests that arrived while finishing up
                if self.queues[channel_id]:
                    self.processing[channel_id] = True
                    self._tasks[channel_id] = asyncio.create_task(self._process_queue(channel_id))

    async def wait_idle(self, channel_id):
        """Wait until the channel's queue is empty and its worker finished."""
        channel_id = str(channel_id)
        while True:
            task = self._tasks.get(channel_id)
            if task is None or (task.done() and not self.processing[channel_id]):
                return
            if task.done():
                await asyncio.sleep(0)
            else:
                await task
