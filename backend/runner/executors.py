"""
Step executors

One coroutine per step kind. Leaves take ``(step, ctx)``; containers also
take the interpreter's ``run_sequence`` so nesting depth is unbounded.

Countdowns subtract true wall-clock time between ticks, and the time spent
paused is excluded by re-anchoring the clock after every resume.
"""

import asyncio
import itertools
from typing import Awaitable, Callable, List, Union

from core.logger import get_logger
from core.time_utils import (
    DEFAULT_CLOCK_TIME,
    duration_to_ms,
    ms_until_clock_time,
    sanitize_time_input,
)
from models.steps import (
    LoopStep,
    NotifyStep,
    NotifyUntilStep,
    PlaySoundStep,
    PlaySoundUntilStep,
    SoundFields,
    SoundSource,
    Step,
    WaitStep,
    WaitUntilStep,
)

from .context import RunContext
from .notifications import NotificationPermission, prepare_notification

logger = get_logger(__name__)

SequenceRunner = Callable[[List[Step], RunContext], Awaitable[None]]

MIN_INTERVAL_SECONDS = 0.1


def resolve_sound_url(step: SoundFields, default_url: str) -> str:
    """Uploaded or custom URL when present, otherwise the built-in sound"""
    if step.sound_source is SoundSource.DEFAULT or not step.url:
        return default_url
    return step.url


async def _count_down(step_id: str, total_ms: float, ctx: RunContext) -> None:
    remaining = total_ms
    if remaining > 0:
        last = ctx.now()
        ctx.report_progress(step_id, remaining)

        while remaining > 0 and not ctx.should_abort():
            await ctx.sleep(min(ctx.tick_ms, remaining))
            now = ctx.now()
            remaining -= now - last
            last = now

            if ctx.is_paused():
                await ctx.await_resume()
                last = ctx.now()

            if remaining > 0 and not ctx.should_abort():
                ctx.report_progress(step_id, remaining)

    ctx.report_progress(step_id, None)


async def run_wait(step: WaitStep, ctx: RunContext) -> None:
    await _count_down(step.id, duration_to_ms(step.amount, step.unit), ctx)


async def run_wait_until(step: WaitUntilStep, ctx: RunContext) -> None:
    # The deadline is fixed here; pausing does not re-resolve the clock time
    time_str = sanitize_time_input(step.time, DEFAULT_CLOCK_TIME)
    await _count_down(step.id, ms_until_clock_time(time_str, step.meridiem), ctx)


async def run_play_sound(
    step: Union[PlaySoundStep, PlaySoundUntilStep],
    ctx: RunContext,
) -> None:
    # Pause is only honoured before the sound starts; a started sound plays out
    if ctx.is_paused():
        await ctx.await_resume()
    if ctx.should_abort():
        return
    await ctx.play_sound_to_completion(resolve_sound_url(step, ctx.default_sound_url))


async def _wait_for_dismissal(dismissed: asyncio.Event, ctx: RunContext, limit_ms: float) -> None:
    deadline = ctx.now() + limit_ms
    while not dismissed.is_set() and not ctx.should_abort():
        left = deadline - ctx.now()
        if left <= 0:
            break
        await ctx.sleep(min(ctx.tick_ms, left))


async def run_notify(step: NotifyStep, ctx: RunContext) -> None:
    permission = await ctx.notifier.request_permission()
    if permission is not NotificationPermission.GRANTED:
        logger.debug(f"Notification for step {step.id} skipped: {permission.value}")
        return

    title, body = prepare_notification(step.title, step.body)
    dismissed = asyncio.Event()
    shown = ctx.notifier.show(title, body, on_dismiss=dismissed.set)

    if shown and ctx.notify_grace_ms > 0:
        await _wait_for_dismissal(dismissed, ctx, ctx.notify_grace_ms)


async def _watch_deadline(
    step: NotifyUntilStep,
    timeout_ms: float,
    ctx: RunContext,
    scope: RunContext,
) -> None:
    """Abort the activity scope once the timeout (minus paused time) is used up"""
    remaining = timeout_ms
    last = ctx.now()
    report = not step.children

    while remaining > 0 and not scope.should_abort():
        await scope.sleep(min(ctx.tick_ms, remaining))
        now = ctx.now()
        remaining -= now - last
        last = now

        if ctx.is_paused():
            await scope.await_resume()
            last = ctx.now()

        if report and not scope.should_abort():
            ctx.report_progress(step.id, max(remaining, 0))

    if remaining <= 0:
        logger.debug(f"Notify-until step {step.id} timed out")
    scope.token.abort()
    ctx.stop_audio()


async def run_notify_until(
    step: NotifyUntilStep,
    ctx: RunContext,
    run_sequence: SequenceRunner,
) -> None:
    """Alert repeatedly until dismissed, timed out or aborted

    One activity cycle is either the nested children (when present) or one
    playback of the configured sound, followed by an interval pause. The
    timeout runs on wall-clock time for the whole step, cycles and intervals
    alike, and is enforced mid-cycle.
    """
    timeout_ms = step.timeout_ms if step.timeout_ms is not None else ctx.default_timeout_ms
    interval_seconds = (
        step.interval_seconds
        if step.interval_seconds is not None
        else ctx.default_interval_seconds
    )
    interval_ms = max(MIN_INTERVAL_SECONDS, interval_seconds) * 1000
    url = resolve_sound_url(step, ctx.default_sound_url)

    ctx.report_progress(step.id, timeout_ms)
    scope = ctx.scope()
    finished = False

    def on_dismiss() -> None:
        # The notification can outlive the step; later audio is not ours to stop
        if finished:
            return
        logger.debug(f"Notify-until step {step.id} dismissed")
        scope.token.abort()
        ctx.stop_audio()

    permission = await ctx.notifier.request_permission()
    if permission is NotificationPermission.GRANTED:
        title, body = prepare_notification(step.title, step.body)
        ctx.notifier.show(title, body, on_dismiss=on_dismiss)

    if timeout_ms <= 0:
        scope.token.abort()

    watcher = asyncio.ensure_future(_watch_deadline(step, timeout_ms, ctx, scope))
    try:
        while not scope.should_abort():
            if scope.is_paused():
                await scope.await_resume()
                continue

            if step.children:
                await run_sequence(step.children, scope)
            else:
                await scope.play_sound_to_completion(url)

            if scope.should_abort():
                break
            await scope.sleep(interval_ms)
    finally:
        finished = True
        scope.token.abort()
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)
        ctx.stop_audio()
        ctx.report_progress(step.id, None)


async def run_loop(step: LoopStep, ctx: RunContext, run_sequence: SequenceRunner) -> None:
    if step.is_infinite:
        iterations = itertools.count()
    else:
        iterations = range(max(1, step.repeat_count or 1))

    for iteration in iterations:
        if ctx.should_abort():
            return
        if not step.children:
            if not step.is_infinite:
                return
            # Nothing to run; idle one tick per pass so stop() can get in
            await ctx.sleep(ctx.tick_ms)
            continue

        logger.debug(f"Loop {step.id} pass {iteration + 1}")
        await run_sequence(step.children, ctx)
        # Yield at least once per pass even when every child finished instantly
        await asyncio.sleep(0)

