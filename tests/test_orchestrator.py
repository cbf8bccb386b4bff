"""
Orchestrator Tests
==================
Full run lifecycle with fake chunk producers: status transitions, producer
failure, run reset and stale-chunk isolation. No network.
"""
import asyncio

import pytest

from codecourt.agents.orchestrator import AnalysisOrchestrator
from codecourt.core.constants import Persona, RunStatus
from codecourt.core.errors import EmptyContextError, ProducerFailure
from codecourt.models.code_context import CodeFile
from codecourt.state.session import CodeCourtSession
from codecourt.stream.subscription import StreamSubscription


CHUNKS = [
    "## Main Title: A\n### The Problem\nfoo",
    "bar\n## Main Title: B\nbaz",
]


def _session(persona=Persona.SECURITY) -> CodeCourtSession:
    session = CodeCourtSession(persona=persona)
    session.add_code_file(CodeFile(name="app.js", content="eval(input)"))
    return session


def _producer_of(chunks, fail_with=None, seen=None):
    async def produce(context):
        if seen is not None:
            seen.append(context)
        for chunk in chunks:
            await asyncio.sleep(0)
            yield chunk
        if fail_with is not None:
            raise fail_with
    return produce


# ===========================================================================
# 1. Normal and failing runs
# ===========================================================================
def test_run_to_done():
    orchestrator = AnalysisOrchestrator(_session(), _producer_of(CHUNKS))
    run = asyncio.run(orchestrator.run_analysis())
    assert run.status == RunStatus.DONE
    assert [i.content for i in run.issues] == [
        "## Main Title: A\n### The Problem\nfoobar",
        "## Main Title: B\nbaz",
    ]
    assert all(i.persona == Persona.SECURITY for i in run.issues)


def test_producer_receives_context():
    seen = []
    session = _session(Persona.SCALABILITY)
    session.set_frame("data:image/png;base64,QUJD")
    orchestrator = AnalysisOrchestrator(session, _producer_of(CHUNKS, seen=seen))
    asyncio.run(orchestrator.run_analysis())
    assert seen[0].persona == Persona.SCALABILITY
    assert [f.name for f in seen[0].code_files] == ["app.js"]
    assert seen[0].frame == "data:image/png;base64,QUJD"


def test_failure_keeps_partial_issues():
    producer = _producer_of(CHUNKS, fail_with=ProducerFailure("HTTP 503"))
    orchestrator = AnalysisOrchestrator(_session(), producer)
    run = asyncio.run(orchestrator.run_analysis())
    assert run.status == RunStatus.ERROR
    assert run.error == "HTTP 503"
    assert len(run.issues) == 2


def test_failure_before_any_chunk():
    orchestrator = AnalysisOrchestrator(_session(), _producer_of([], fail_with=RuntimeError()))
    run = asyncio.run(orchestrator.run_analysis())
    assert run.status == RunStatus.ERROR
    assert run.error == "RuntimeError"
    assert run.issues == []


def test_status_moves_to_streaming_on_first_chunk():
    statuses = []

    async def produce(context):
        statuses.append(orchestrator.run.status)
        yield "## Main Title: A"
        statuses.append(orchestrator.run.status)

    orchestrator = AnalysisOrchestrator(_session(), produce)
    asyncio.run(orchestrator.run_analysis())
    assert statuses == [RunStatus.CONNECTING, RunStatus.STREAMING]
    assert orchestrator.run.status == RunStatus.DONE


def test_empty_chunks_skipped():
    orchestrator = AnalysisOrchestrator(_session(), _producer_of(["", "## Main Title: A", ""]))
    run = asyncio.run(orchestrator.run_analysis())
    assert [i.content for i in run.issues] == ["## Main Title: A"]


def test_empty_context_rejected_before_stream():
    seen = []
    orchestrator = AnalysisOrchestrator(CodeCourtSession(), _producer_of(CHUNKS, seen=seen))
    with pytest.raises(EmptyContextError):
        asyncio.run(orchestrator.run_analysis())
    assert seen == []
    assert orchestrator.run.status == RunStatus.IDLE


# ===========================================================================
# 2. Run reset and supersession
# ===========================================================================
def test_new_run_clears_previous_issues_and_approvals():
    chunks = ["## Main Title: A\n### Code Fix\n```\nfix()\n```"]
    orchestrator = AnalysisOrchestrator(_session(), _producer_of(chunks))

    async def scenario():
        first = await orchestrator.run_analysis()
        first.toggle_approval(first.issues[0].id)
        second = await orchestrator.run_analysis()
        return first, second

    first, second = asyncio.run(scenario())
    assert first is not second
    assert second.approved_issue_ids == []
    assert len(second.issues) == 1
    assert second.issues[0].id != first.issues[0].id


def test_superseded_stream_never_touches_new_run():
    async def scenario():
        release = asyncio.Event()
        calls = []

        async def producer(context):
            calls.append(context)
            if len(calls) == 1:
                yield "## Main Title: OLD\n"
                await release.wait()
                yield "stale text"
                yield "\n## Main Title: OLD-2"
            else:
                yield "## Main Title: NEW\nbody"

        orchestrator = AnalysisOrchestrator(_session(), producer)
        old_run = orchestrator.launch()
        while not old_run.issues:
            await asyncio.sleep(0)

        new_run = await orchestrator.run_analysis()
        release.set()
        await asyncio.sleep(0)
        return old_run, new_run

    old_run, new_run = asyncio.run(scenario())
    assert [i.content for i in new_run.issues] == ["## Main Title: NEW\nbody"]
    assert new_run.status == RunStatus.DONE
    assert [i.content for i in old_run.issues] == ["## Main Title: OLD\n"]
    assert old_run.status == RunStatus.STREAMING


def test_persona_change_cancels_in_flight_run():
    async def scenario():
        release = asyncio.Event()

        async def slow_producer(context):
            yield "## Main Title: A\n"
            await release.wait()
            yield "late"

        orchestrator = AnalysisOrchestrator(_session(), slow_producer)
        old_run = orchestrator.launch()
        while not old_run.issues:
            await asyncio.sleep(0)
        new_run = orchestrator.select_persona(Persona.UI_UX)
        release.set()
        await asyncio.sleep(0)
        return old_run, new_run

    old_run, new_run = asyncio.run(scenario())
    assert new_run.issues == []
    assert new_run.persona == Persona.UI_UX
    assert old_run.issues[0].content == "## Main Title: A\n"


def test_launch_and_wait():
    async def scenario():
        orchestrator = AnalysisOrchestrator(_session(), _producer_of(CHUNKS))
        run = orchestrator.launch()
        assert run.status == RunStatus.CONNECTING
        await orchestrator.wait()
        return run

    run = asyncio.run(scenario())
    assert run.status == RunStatus.DONE
    assert len(run.issues) == 2


# ===========================================================================
# 3. Subscription
# ===========================================================================
def test_cancelled_subscription_drops_chunks():
    received = []

    async def produce():
        for chunk in ["a", "b", "c"]:
            yield chunk

    async def scenario():
        subscriptions = []

        def on_chunk(chunk):
            received.append(chunk)
            subscriptions[0].cancel()

        subscription = StreamSubscription(produce(), on_chunk)
        subscriptions.append(subscription)
        delivered = await subscription.consume()
        return subscription, delivered

    subscription, delivered = asyncio.run(scenario())
    assert received == ["a"]
    assert delivered == 1
    assert subscription.dropped == 1
    assert subscription.cancelled


def test_subscription_closes_producer():
    closed = []

    async def produce():
        try:
            yield "a"
            yield "b"
        finally:
            closed.append(True)

    async def scenario():
        subscriptions = []
        subscription = StreamSubscription(produce(), lambda chunk: subscriptions[0].cancel())
        subscriptions.append(subscription)
        await subscription.consume()

    asyncio.run(scenario())
    assert closed == [True]
