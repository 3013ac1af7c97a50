"""
Step builders, palette defaults and ready-made timer templates
"""

from typing import List, Optional

from core.time_utils import DEFAULT_CLOCK_TIME, sanitize_time_input
from models.steps import (
    INFINITE_REPEAT,
    LoopStep,
    Meridiem,
    NotifyStep,
    NotifyUntilStep,
    PlaySoundStep,
    PlaySoundUntilStep,
    SoundSource,
    Step,
    StepKind,
    TimeUnit,
    WaitStep,
    WaitUntilStep,
)
from models.timers import Timer, TimerMode

QUICK_TIMER_FALLBACK_SECONDS = 60


def make_wait(amount: float, unit: TimeUnit | str = TimeUnit.SECONDS) -> WaitStep:
    return WaitStep(amount=amount, unit=unit)


def make_wait_until(time: str, meridiem: Meridiem | str = Meridiem.AM) -> WaitUntilStep:
    return WaitUntilStep(time=time, meridiem=meridiem)


def make_play_sound(
    label: str = "Beep",
    sound_source: SoundSource | str = SoundSource.DEFAULT,
    url: Optional[str] = None,
) -> PlaySoundStep:
    return PlaySoundStep(label=label, sound_source=sound_source, url=url)


def make_play_sound_until(
    label: str = "Beep",
    sound_source: SoundSource | str = SoundSource.DEFAULT,
    url: Optional[str] = None,
) -> PlaySoundUntilStep:
    return PlaySoundUntilStep(label=label, sound_source=sound_source, url=url)


def make_notify_until(
    title: str,
    body: str = "",
    timeout_ms: float = 10000,
    interval_seconds: float = 0.2,
    children: Optional[List[Step]] = None,
) -> NotifyUntilStep:
    return NotifyUntilStep(
        title=title,
        body=body,
        label="Beep",
        timeout_ms=timeout_ms,
        sound_source=SoundSource.DEFAULT,
        interval_seconds=interval_seconds,
        children=children or [],
    )


def make_loop(repeat_count: int, children: List[Step]) -> LoopStep:
    return LoopStep(repeat_count=repeat_count, children=children)


def create_default_step(kind: StepKind | str) -> Step:
    """Palette default for a step kind; unknown kinds get a loop"""
    try:
        kind = StepKind(kind)
    except ValueError:
        kind = StepKind.LOOP

    if kind is StepKind.WAIT:
        return make_wait(5, TimeUnit.SECONDS)
    if kind is StepKind.WAIT_UNTIL:
        return make_wait_until(DEFAULT_CLOCK_TIME, Meridiem.AM)
    if kind is StepKind.PLAY_SOUND:
        return make_play_sound("Beep")
    if kind is StepKind.PLAY_SOUND_UNTIL:
        return make_play_sound_until("Beep")
    if kind is StepKind.NOTIFY:
        return NotifyStep(title="Reminder", body="Your timer is running.")
    if kind is StepKind.NOTIFY_UNTIL:
        return make_notify_until(
            "Reminder", "Your timer is running.", timeout_ms=10000, interval_seconds=0.3
        )
    return make_loop(2, [])


# ============ Timer templates ============


def quick_timer(base: Timer, minutes: int = 0, seconds: int = 0) -> Timer:
    """Count down then play the alarm sound; zero length becomes one minute"""
    total_seconds = max(0, int(minutes)) * 60 + max(0, int(seconds))
    if total_seconds == 0:
        total_seconds = QUICK_TIMER_FALLBACK_SECONDS

    steps = [
        make_wait(total_seconds, TimeUnit.SECONDS),
        make_play_sound("Alarm"),
    ]
    return base.model_copy(
        update={"name": "Quick Timer", "mode": TimerMode.SEQUENCE, "steps": steps}
    )


def pomodoro(base: Timer, work_minutes: Optional[float] = 25, break_minutes: Optional[float] = 5) -> Timer:
    """Four rounds of work, chime, short break, chime"""
    work = max(1, min(180, int(work_minutes or 25)))
    rest = max(1, min(120, int(break_minutes or 5)))

    loop = make_loop(
        4,
        [
            make_wait(work, TimeUnit.MINUTES),
            make_play_sound("Alarm"),
            make_wait(rest, TimeUnit.MINUTES),
            make_play_sound("Alarm"),
        ],
    )
    return base.model_copy(
        update={"name": "Pomodoro", "mode": TimerMode.SEQUENCE, "steps": [loop]}
    )


def quick_alarm(
    base: Timer,
    time: str,
    meridiem: Meridiem | str = Meridiem.AM,
    repeat_daily: bool = False,
) -> Timer:
    """Wait until a clock time then ring; optionally every day"""
    wait_until = make_wait_until(sanitize_time_input(time, DEFAULT_CLOCK_TIME), meridiem)
    ring = make_play_sound("Alarm")

    if repeat_daily:
        steps: List[Step] = [make_loop(INFINITE_REPEAT, [wait_until, ring])]
    else:
        steps = [wait_until, ring]

    return base.model_copy(
        update={
            "name": "Daily Alarm" if repeat_daily else "Quick Alarm",
            "mode": TimerMode.ALARM,
            "steps": steps,
        }
    )
