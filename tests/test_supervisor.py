import asyncio
import time

import pytest

from models.steps import LoopStep, NotifyUntilStep, PlaySoundStep, WaitStep
from models.timers import Timer
from runner.audio import AudioChannel
from runner.supervisor import MultiTimerRunner, RunStatus

from conftest import TICK_MS, FakeAudioBackend, RecordingNotifier


def make_runner(backend=None, **kwargs):
    return MultiTimerRunner(
        AudioChannel(backend or FakeAudioBackend(duration_ms=20)),
        RecordingNotifier(),
        tick_ms=TICK_MS,
        **kwargs,
    )


def wait_ms(ms, step_id="w"):
    return WaitStep(id=step_id, amount=ms / 1000)


class TestSequenceRuns:
    def test_wait_then_sound_completes(self):
        backend = FakeAudioBackend(duration_ms=20)
        runner = make_runner(backend)
        timer = Timer(id="t1", steps=[wait_ms(60, "w"), PlaySoundStep(id="p")])

        async def scenario():
            runner.start(timer)
            assert runner.is_running("t1")
            assert runner.active_step_id("t1") == "w"
            await asyncio.sleep(0.03)
            assert 0 < runner.remaining_ms("t1") <= 60
            await runner.wait("t1")

        asyncio.run(scenario())
        assert backend.played == ["sounds/alarm.mp3"]
        assert runner.status("t1").status is RunStatus.COMPLETED
        assert not runner.is_running("t1")
        assert runner.active_step_id("t1") is None
        assert runner.remaining_ms("t1") is None

    def test_unknown_timer_defaults(self):
        runner = make_runner()
        assert runner.is_running("ghost") is False
        assert runner.is_paused("ghost") is False
        assert runner.active_step_id("ghost") is None
        assert runner.remaining_ms("ghost") is None
        assert runner.active_step_id(None) is None
        assert runner.status("ghost").status is RunStatus.IDLE

    def test_empty_timer_is_not_started(self):
        runner = make_runner()

        async def scenario():
            return runner.start(Timer(id="empty"))

        assert asyncio.run(scenario()) is None
        assert runner.status("empty").status is RunStatus.IDLE

    def test_pause_and_resume_exclude_paused_time(self):
        runner = make_runner()
        timer = Timer(id="t1", steps=[wait_ms(100)])

        async def scenario():
            start = time.monotonic()
            runner.start(timer)
            await asyncio.sleep(0.03)
            runner.pause(timer)
            assert runner.is_paused("t1")
            assert not runner.is_running("t1")
            frozen = runner.remaining_ms("t1")
            await asyncio.sleep(0.1)
            assert runner.remaining_ms("t1") == frozen
            runner.resume("t1")
            assert runner.is_running("t1")
            await runner.wait("t1")
            return time.monotonic() - start

        assert asyncio.run(scenario()) >= 0.18
        assert runner.status("t1").status is RunStatus.COMPLETED

    def test_start_on_paused_timer_resumes_same_run(self):
        runner = make_runner()
        timer = Timer(id="t1", steps=[wait_ms(80)])

        async def scenario():
            first = runner.start(timer)
            await asyncio.sleep(0.02)
            runner.pause(timer)
            second = runner.start(timer)
            assert second is first
            assert runner.is_running("t1")
            await runner.wait("t1")

        asyncio.run(scenario())

    def test_start_while_running_is_noop(self):
        runner = make_runner()
        timer = Timer(id="t1", steps=[wait_ms(50)])

        async def scenario():
            first = runner.start(timer)
            assert runner.start(timer) is first
            await runner.wait("t1")

        asyncio.run(scenario())

    def test_restart_begins_from_first_step(self):
        runner = make_runner()
        timer = Timer(id="t1", steps=[wait_ms(40, "a"), wait_ms(200, "b")])

        async def scenario():
            first = runner.start(timer)
            await asyncio.sleep(0.08)
            assert runner.active_step_id("t1") == "b"
            second = runner.restart(timer)
            assert second is not first
            assert runner.active_step_id("t1") == "a"
            await asyncio.sleep(0.02)
            assert first.done()
            assert runner.active_step_id("t1") == "a"
            runner.stop("t1")
            await asyncio.gather(second)

        asyncio.run(scenario())

    def test_stop_is_idempotent_and_silences_audio(self):
        backend = FakeAudioBackend(duration_ms=None)
        runner = make_runner(backend)
        timer = Timer(id="t1", steps=[PlaySoundStep()])

        async def scenario():
            task = runner.start(timer)
            await asyncio.sleep(0.02)
            assert runner.audio.is_playing
            runner.stop("t1")
            runner.stop("t1")
            await asyncio.wait_for(task, timeout=1)
            assert not runner.audio.is_playing

        asyncio.run(scenario())
        state = runner.status("t1")
        assert state.status is RunStatus.ABORTED
        assert state.active_step_id is None
        assert not state.is_running and not state.is_paused

    def test_stop_while_paused(self):
        runner = make_runner()
        timer = Timer(id="t1", steps=[wait_ms(200)])

        async def scenario():
            task = runner.start(timer)
            await asyncio.sleep(0.02)
            runner.pause(timer)
            runner.stop("t1")
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())
        assert not runner.is_paused("t1")

    def test_timers_run_independently(self):
        runner = make_runner()
        short = Timer(id="short", steps=[wait_ms(40)])
        endless = Timer(id="endless", steps=[LoopStep(repeat_count=-1, children=[wait_ms(10)])])

        async def scenario():
            runner.start(short)
            runner.start(endless)
            await runner.wait("short")
            assert runner.is_running("endless")
            runner.stop_all()
            await asyncio.sleep(0.02)

        asyncio.run(scenario())
        assert runner.status("short").status is RunStatus.COMPLETED
        assert runner.status("endless").status is RunStatus.ABORTED

    def test_notify_until_inside_timer_times_out(self):
        backend = FakeAudioBackend(duration_ms=None)
        runner = make_runner(backend)
        timer = Timer(id="t1", steps=[NotifyUntilStep(id="nu", title="Up", timeout_ms=80)])

        async def scenario():
            start = time.monotonic()
            runner.start(timer)
            await asyncio.sleep(0.03)
            assert runner.active_step_id("t1") == "nu"
            await runner.wait("t1")
            return time.monotonic() - start

        assert asyncio.run(scenario()) < 0.4
        assert runner.status("t1").status is RunStatus.COMPLETED
        assert runner.notifier.shown == [("Up", None)]


class TestListeners:
    def test_listener_sees_transitions_and_errors_are_contained(self):
        runner = make_runner()
        seen = []

        def broken(timer_id, state):
            raise RuntimeError("listener bug")

        runner.add_listener(broken)
        runner.add_listener(lambda timer_id, state: seen.append(state.status))
        timer = Timer(id="t1", steps=[wait_ms(30)])

        async def scenario():
            runner.start(timer)
            await runner.wait("t1")

        asyncio.run(scenario())
        assert seen[0] is RunStatus.RUNNING
        assert seen[-1] is RunStatus.COMPLETED

        runner.remove_listener(broken)
        runner.remove_listener(broken)


class TestStopwatch:
    @pytest.fixture
    def stopwatch(self):
        return Timer(id="sw", name="Laps", mode="stopwatch")

    def test_elapsed_pause_and_resume(self, clock, stopwatch):
        runner = make_runner(clock=clock)
        runner.start(stopwatch)
        clock.advance(1500)
        assert runner.is_running("sw")
        assert runner.elapsed_ms("sw") == 1500

        runner.pause(stopwatch)
        clock.advance(1000)
        assert runner.elapsed_ms("sw") == 1500
        assert runner.is_paused("sw")

        runner.start(stopwatch)
        clock.advance(500)
        assert runner.elapsed_ms("sw") == 2000

    def test_mark_records_current_elapsed(self, clock, stopwatch):
        runner = make_runner(clock=clock)
        assert runner.mark(stopwatch) is None

        runner.start(stopwatch)
        clock.advance(1234)
        first = runner.mark(stopwatch)
        clock.advance(766)
        second = runner.mark(stopwatch, name="Finish")

        assert (first.name, first.elapsed_ms) == ("Mark 1", 1234)
        assert (second.name, second.elapsed_ms) == ("Finish", 2000)
        assert [e.id for e in runner.stopwatch_logs("sw")] == [first.id, second.id]

        runner.pause(stopwatch)
        assert runner.mark(stopwatch) is None

    def test_reset_and_stop_zero_the_counter(self, clock, stopwatch):
        runner = make_runner(clock=clock)
        runner.start(stopwatch)
        clock.advance(800)
        runner.mark(stopwatch)

        runner.reset("sw")
        assert runner.elapsed_ms("sw") == 0
        assert not runner.is_running("sw")
        assert len(runner.stopwatch_logs("sw")) == 1

        runner.restart(stopwatch)
        clock.advance(300)
        runner.stop("sw")
        assert runner.elapsed_ms("sw") == 0
        assert not runner.is_running("sw")
        assert not runner.is_paused("sw")

    def test_existing_logs_are_kept(self, clock):
        timer = Timer.model_validate(
            {"id": "sw", "mode": "stopwatch", "logs": [{"name": "Old", "elapsedMs": 10, "loggedAt": 1}]}
        )
        runner = make_runner(clock=clock)
        runner.start(timer)
        clock.advance(50)
        entry = runner.mark(timer)
        assert entry.name == "Mark 2"
        assert [e.name for e in runner.stopwatch_logs("sw")] == ["Old", "Mark 2"]
