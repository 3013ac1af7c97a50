"""
Timer and stopwatch log models
"""

from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import AliasChoices, Field, field_validator

from core.ids import create_id

from .base import FrozenModel
from .steps import Step

DEFAULT_TIMER_NAME = "New Timer"


class TimerMode(str, Enum):
    ALARM = "alarm"
    SEQUENCE = "sequence"
    STOPWATCH = "stopwatch"


_LEGACY_MODES = {"simpleStopwatch": TimerMode.STOPWATCH}


class LogEntry(FrozenModel):
    """A stopwatch mark"""

    id: str = Field(default_factory=create_id)
    name: str
    elapsed_ms: float
    logged_at_epoch_ms: float = Field(
        validation_alias=AliasChoices("loggedAtEpochMs", "logged_at_epoch_ms", "loggedAt"),
    )


class Timer(FrozenModel):
    """A named step tree plus its run mode"""

    id: str = Field(default_factory=create_id)
    name: str = DEFAULT_TIMER_NAME
    steps: List[Step] = Field(
        default_factory=list,
        validation_alias=AliasChoices("steps", "blocks"),
    )
    mode: TimerMode = TimerMode.SEQUENCE
    locked: bool = False
    logs: List[LogEntry] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if value is None:
            return TimerMode.SEQUENCE
        return _LEGACY_MODES.get(value, value)

    @field_validator("logs", mode="before")
    @classmethod
    def _default_logs(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @property
    def is_stopwatch(self) -> bool:
        return self.mode is TimerMode.STOPWATCH


def make_unique_name(
    base_name: str,
    timers: Iterable[Timer],
    ignore_id: Optional[str] = None,
) -> str:
    """Trim the name and suffix 2, 3, ... until it no longer clashes with a sibling timer

    Comparison is case-insensitive; an empty name falls back to "New Timer".
    """
    base = (base_name or "").strip() or DEFAULT_TIMER_NAME
    existing = {
        t.name.strip().lower() for t in timers if t.id != ignore_id
    }

    if base.lower() not in existing:
        return base

    i = 2
    candidate = f"{base}{i}"
    while candidate.lower() in existing:
        i += 1
        candidate = f"{base}{i}"
    return candidate


def normalize_timer(timer: Timer) -> Timer:
    """Apply defaults that depend on more than one field"""
    if timer.is_stopwatch and timer.locked:
        return timer.model_copy(update={"locked": False})
    return timer
