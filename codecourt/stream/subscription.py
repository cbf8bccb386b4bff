"""
Stream Subscription
===================
Explicit, cancellable handle between an async chunk producer and a callback.

The subscription pulls one chunk at a time from the producer and hands it to
`on_chunk` before awaiting the next, so chunks are never processed
concurrently. After cancel() no further chunk reaches the callback, even if
the producer still has data in flight, and the producer is closed.
"""
import logging
from typing import AsyncIterator, Callable, Optional

from codecourt.models.code_context import AnalysisContext

logger = logging.getLogger(__name__)

# (context) -> async iterator of text fragments
ChunkProducer = Callable[[AnalysisContext], AsyncIterator[str]]


class StreamSubscription:

    def __init__(
        self,
        stream: AsyncIterator[str],
        on_chunk: Callable[[str], object],
        name: str = "",
    ) -> None:
        self._stream = stream
        self._on_chunk = on_chunk
        self._cancelled = False
        self.name = name
        self.delivered = 0
        self.dropped = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Detach from the producer; later chunks are ignored."""
        if not self._cancelled:
            self._cancelled = True
            logger.info("Subscription %s cancelled after %d chunks", self.name, self.delivered)

    async def consume(self) -> int:
        """
        Deliver chunks until the producer ends, fails, or the subscription is cancelled.

        Returns
        -------
        int
            Number of chunks delivered to the callback.

        Raises
        ------
        Exception
            Whatever the producer raised; the caller decides the run status.
        """
        try:
            async for chunk in self._stream:
                if self._cancelled:
                    self.dropped += 1
                    logger.debug("Subscription %s dropped a stale chunk", self.name)
                    break
                if not chunk:
                    continue
                self._on_chunk(chunk)
                self.delivered += 1
        finally:
            await self._close()
        return self.delivered

    async def _close(self) -> None:
        aclose: Optional[Callable] = getattr(self._stream, "aclose", None)
        if aclose is not None:
            await aclose()
