"""
Data models for timers and their step trees
"""

from .base import BaseModel, FrozenModel
from .steps import (
    CONTAINER_KINDS,
    INFINITE_REPEAT,
    BaseStep,
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
    dump_steps,
    parse_step,
    parse_steps,
)
from .timers import (
    DEFAULT_TIMER_NAME,
    LogEntry,
    Timer,
    TimerMode,
    make_unique_name,
    normalize_timer,
)

__all__ = [
    # Base
    "BaseModel",
    "FrozenModel",
    # Steps
    "CONTAINER_KINDS",
    "INFINITE_REPEAT",
    "BaseStep",
    "LoopStep",
    "Meridiem",
    "NotifyStep",
    "NotifyUntilStep",
    "PlaySoundStep",
    "PlaySoundUntilStep",
    "SoundSource",
    "Step",
    "StepKind",
    "TimeUnit",
    "WaitStep",
    "WaitUntilStep",
    "dump_steps",
    "parse_step",
    "parse_steps",
    # Timers
    "DEFAULT_TIMER_NAME",
    "LogEntry",
    "Timer",
    "TimerMode",
    "make_unique_name",
    "normalize_timer",
]
