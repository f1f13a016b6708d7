"""Progress notification for in-flight uploads.

The persister only knows the ``ProgressSink`` protocol. Browsers cannot
read a response stream while still sending the request body, so progress
for HTTP clients travels through a ``ProgressTracker``: the upload request
publishes into a channel keyed by upload id, and a second request
subscribes to that channel and streams the values back.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional, Protocol

from whitelabel.core.config import settings
from whitelabel.uploads.models import UploadProgress

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receiver of progress notifications. ``publish`` must never block."""

    def publish(self, progress: UploadProgress) -> None:
        ...


class NullProgressSink:
    """Sink that discards every notification."""

    def publish(self, progress: UploadProgress) -> None:
        pass


class CallbackProgressSink:
    """Sink that hands each notification to a plain callable."""

    def __init__(self, callback: Callable[[UploadProgress], None]):
        self._callback = callback

    def publish(self, progress: UploadProgress) -> None:
        try:
            self._callback(progress)
        except Exception as e:
            # Progress is fire-and-forget, a broken consumer must not fail the upload
            logger.warning("Progress callback failed", extra={"error": str(e)})


class _Channel:
    def __init__(self) -> None:
        self.subscribers: List[asyncio.Queue] = []
        self.latest: Optional[UploadProgress] = None


class _TrackerSink:
    def __init__(self, tracker: "ProgressTracker", key: str):
        self._tracker = tracker
        self._key = key

    def publish(self, progress: UploadProgress) -> None:
        self._tracker.publish(self._key, progress)


class ProgressTracker:
    """Broadcast registry of progress channels keyed by upload."""

    def __init__(self, queue_size: int = 4096):
        self._queue_size = queue_size
        self._channels: Dict[str, _Channel] = {}

    def _channel(self, key: str) -> _Channel:
        channel = self._channels.get(key)
        if channel is None:
            logger.debug("Opening progress channel", extra={"progress_key": key})
            channel = _Channel()
            self._channels[key] = channel
        return channel

    def sink_for(self, key: str) -> ProgressSink:
        """Return a sink publishing into the channel for ``key``."""
        return _TrackerSink(self, key)

    def publish(self, key: str, progress: UploadProgress) -> None:
        """Deliver a value to every current subscriber without waiting.

        A full subscriber queue loses its oldest value, so a slow reader
        sees fewer but still non-decreasing totals.
        """
        channel = self._channel(key)
        channel.latest = progress
        for queue in channel.subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(progress)

    def finish(self, key: str) -> None:
        """Close the channel for ``key`` and end all its subscriptions."""
        channel = self._channels.pop(key, None)
        if channel is None:
            return
        for queue in channel.subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(None)

    def is_active(self, key: str) -> bool:
        return key in self._channels

    async def subscribe(self, key: str) -> AsyncIterator[UploadProgress]:
        """Yield progress for ``key`` until the upload finishes.

        A subscriber joining mid-upload first receives the latest value.
        """
        channel = self._channel(key)
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        if channel.latest is not None:
            queue.put_nowait(channel.latest)
        channel.subscribers.append(queue)
        try:
            while True:
                progress = await queue.get()
                if progress is None:
                    return
                yield progress
        finally:
            if queue in channel.subscribers:
                channel.subscribers.remove(queue)
            # A channel no upload ever published to dies with its last subscriber
            if (
                not channel.subscribers
                and channel.latest is None
                and self._channels.get(key) is channel
            ):
                del self._channels[key]


# Singleton instance
progress_tracker = ProgressTracker(queue_size=settings.PROGRESS_QUEUE_SIZE)
