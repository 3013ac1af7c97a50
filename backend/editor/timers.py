"""
Pure edits on Timer values: creation, renaming and stopwatch log maintenance
"""

from typing import List, Optional, Sequence

from models.steps import Step
from models.timers import (
    DEFAULT_TIMER_NAME,
    LogEntry,
    Timer,
    TimerMode,
    make_unique_name,
    normalize_timer,
)


def create_timer(
    timers: Sequence[Timer],
    name: str = DEFAULT_TIMER_NAME,
    mode: TimerMode | str = TimerMode.SEQUENCE,
) -> Timer:
    """New empty timer with a name that does not clash with its siblings"""
    return normalize_timer(
        Timer(name=make_unique_name(name, timers), mode=mode, steps=[], logs=[])
    )


def rename_timer(timer: Timer, name: str, timers: Sequence[Timer]) -> Timer:
    return timer.model_copy(
        update={"name": make_unique_name(name, timers, ignore_id=timer.id)}
    )


def replace_steps(timer: Timer, steps: List[Step]) -> Timer:
    return timer.model_copy(update={"steps": list(steps)})


def add_log(timer: Timer, entry: LogEntry) -> Timer:
    return timer.model_copy(update={"logs": [*timer.logs, entry]})


def rename_log(timer: Timer, log_id: str, name: str) -> Timer:
    logs = [
        entry.model_copy(update={"name": name}) if entry.id == log_id else entry
        for entry in timer.logs
    ]
    return timer.model_copy(update={"logs": logs})


def delete_log(timer: Timer, log_id: str) -> Timer:
    return timer.model_copy(
        update={"logs": [entry for entry in timer.logs if entry.id != log_id]}
    )


def find_log(timer: Timer, log_id: str) -> Optional[LogEntry]:
    return next((entry for entry in timer.logs if entry.id == log_id), None)
