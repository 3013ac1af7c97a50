import asyncio
import time

from models.steps import BaseStep, LoopStep, PlaySoundStep, WaitStep
from runner.audio import AudioChannel
from runner.interpreter import EXECUTORS, run_sequence

from conftest import FakeAudioBackend, ProgressLog, build_context


class CustomStep(BaseStep):
    type: str = "custom"


def run(steps, backend=None, progress=None):
    backend = backend or FakeAudioBackend(duration_ms=5)

    async def scenario():
        ctx = build_context(audio=AudioChannel(backend), progress=progress)
        await run_sequence(steps, ctx)

    asyncio.run(scenario())
    return backend


def test_every_step_kind_has_an_executor():
    assert len(EXECUTORS) == 7


def test_runs_in_order():
    progress = ProgressLog()
    steps = [WaitStep(id="a", amount=0.01), PlaySoundStep(id="b"), WaitStep(id="c")]
    run(steps, progress=progress)
    assert progress.entered == ["a", "b", "c"]


def test_loop_repeats_children():
    backend = run([LoopStep(repeat_count=3, children=[PlaySoundStep()])])
    assert len(backend.played) == 3


def test_nested_loops_multiply():
    inner = LoopStep(repeat_count=3, children=[PlaySoundStep()])
    backend = run([LoopStep(repeat_count=2, children=[inner])])
    assert len(backend.played) == 6


def test_non_positive_repeat_runs_once():
    backend = run([LoopStep(repeat_count=0, children=[PlaySoundStep()])])
    assert len(backend.played) == 1


def test_empty_finite_loop_finishes():
    run([LoopStep(repeat_count=5, children=[])])


def test_unknown_kind_is_skipped():
    progress = ProgressLog()
    backend = run([CustomStep(id="x"), PlaySoundStep(id="p")], progress=progress)
    assert progress.entered == ["x", "p"]
    assert len(backend.played) == 1


def test_infinite_loop_only_ends_on_abort():
    backend = FakeAudioBackend(duration_ms=5)

    async def scenario():
        ctx = build_context(audio=AudioChannel(backend))
        task = asyncio.ensure_future(
            run_sequence([LoopStep(repeat_count=-1, children=[PlaySoundStep()])], ctx)
        )
        await asyncio.sleep(0.1)
        assert not task.done()
        start = time.monotonic()
        ctx.token.abort()
        await asyncio.wait_for(task, timeout=1)
        return time.monotonic() - start

    assert asyncio.run(scenario()) < 0.1
    assert len(backend.played) >= 3


def test_infinite_empty_loop_yields_until_abort():
    async def scenario():
        ctx = build_context()
        task = asyncio.ensure_future(run_sequence([LoopStep(repeat_count=-1)], ctx))
        await asyncio.sleep(0.05)
        assert not task.done()
        ctx.token.abort()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())


def test_aborted_context_runs_nothing():
    progress = ProgressLog()

    async def scenario():
        ctx = build_context(progress=progress)
        ctx.token.abort()
        await run_sequence([WaitStep(id="a", amount=1)], ctx)

    asyncio.run(scenario())
    assert progress.entered == []
