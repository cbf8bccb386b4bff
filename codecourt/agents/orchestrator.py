"""
Analysis Orchestrator
=====================
Drives one analysis run from request to terminal status.

Lifecycle:
    1. Precondition: code files or a frame must be present (EmptyContextError)
    2. Cancel the previous subscription, if any, and swap in a fresh run
    3. status = connecting → open the producer stream
    4. status = streaming on the first chunk; each chunk goes through the
       StreamSegmenter into the run's issue store
    5. status = done on normal end, error on any producer failure
       (issues already streamed are kept as they are)

Supersession:
    A new run or a persona change cancels the running subscription before the
    new run exists. The old segmenter stays bound to the discarded run
    object, so late chunks from the old stream can never reach the new run.
    A superseded run's status is left untouched.
"""
import asyncio
import logging
from typing import Optional

from codecourt.core.constants import RunStatus
from codecourt.state.run_state import AnalysisRun
from codecourt.state.session import CodeCourtSession
from codecourt.stream.segmenter import StreamSegmenter
from codecourt.stream.subscription import ChunkProducer, StreamSubscription

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """
    Runs analyses for one session against a chunk producer.

    Usage:
        orchestrator = AnalysisOrchestrator(session, client.stream_analysis)
        run = await orchestrator.run_analysis()       # await to completion
        run = orchestrator.launch()                   # or run in background
    """

    def __init__(self, session: CodeCourtSession, producer: ChunkProducer) -> None:
        self.session = session
        self._producer = producer
        self._subscription: Optional[StreamSubscription] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def run(self) -> AnalysisRun:
        return self.session.run

    # -----------------------------------------------------------------------
    # Entry points
    # -----------------------------------------------------------------------
    async def run_analysis(self) -> AnalysisRun:
        """Start a run and await its terminal status."""
        run, subscription = self._start()
        await self._consume(run, subscription)
        return run

    def launch(self) -> AnalysisRun:
        """Start a run as a background task on the running event loop."""
        run, subscription = self._start()
        self._task = asyncio.create_task(
            self._consume(run, subscription), name=f"analysis-{run.run_id}"
        )
        return run

    async def wait(self) -> None:
        """Await the background run, if one is in flight."""
        if self._task is not None and not self._task.done():
            await self._task

    def select_persona(self, persona: str) -> AnalysisRun:
        """Change persona; any in-flight stream is abandoned."""
        self.cancel()
        return self.session.select_persona(persona)

    def cancel(self) -> None:
        """Detach the current subscription and stop its task."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------
    def _start(self) -> tuple[AnalysisRun, StreamSubscription]:
        context = self.session.snapshot_context()
        context.require_content()

        self.cancel()
        run = self.session.reset_run()
        run.set_status(RunStatus.CONNECTING)
        logger.info(
            "Starting run %s persona=%s files=%d frame=%s",
            run.run_id, context.persona, len(context.code_files), bool(context.frame),
        )

        segmenter = StreamSegmenter(run, context.persona)

        def on_chunk(chunk: str) -> None:
            if run.status == RunStatus.CONNECTING:
                run.set_status(RunStatus.STREAMING)
            segmenter.process_chunk(chunk)

        try:
            stream = self._producer(context)
        except Exception as e:
            logger.error("Run %s could not open its stream: %s", run.run_id, e)
            run.set_status(RunStatus.ERROR, error=str(e) or type(e).__name__)
            raise

        subscription = StreamSubscription(stream, on_chunk, name=run.run_id)
        self._subscription = subscription
        return run, subscription

    async def _consume(self, run: AnalysisRun, subscription: StreamSubscription) -> None:
        try:
            delivered = await subscription.consume()
        except Exception as e:
            if subscription.cancelled:
                logger.info("Superseded run %s ended with: %s", run.run_id, e)
                return
            logger.error("Run %s failed after %d issues: %s", run.run_id, len(run.issues), e)
            run.set_status(RunStatus.ERROR, error=str(e) or type(e).__name__)
            return

        if subscription.cancelled:
            logger.info("Run %s superseded; status left at %s", run.run_id, run.status)
            return

        run.set_status(RunStatus.DONE)
        logger.info(
            "Run %s done: %d chunks, %d issues", run.run_id, delivered, len(run.issues)
        )
