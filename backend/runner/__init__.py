"""
Runner module - executes timer step trees

This module provides:
1. RunToken / RunContext: cooperative abort and pause scopes
2. AudioChannel and Notifier: the shared output collaborators
3. run_sequence: the tree interpreter
4. MultiTimerRunner: per-timer supervision and stopwatch timing
"""

# Collaborators first; backends and the factory depend on them
from .audio import AudioBackend, AudioChannel
from .notifications import NotificationPermission, Notifier, NullNotifier, prepare_notification

from .context import RunContext, RunToken
from .factory import RunnerFactory
from .interpreter import EXECUTORS, run_sequence
from .supervisor import (
    MultiTimerRunner,
    RunnerState,
    RunStatus,
    StopwatchState,
    get_timer_runner,
    reset_timer_runner,
    set_timer_runner,
)

__all__ = [
    # Collaborators
    "AudioBackend",
    "AudioChannel",
    "NotificationPermission",
    "Notifier",
    "NullNotifier",
    "prepare_notification",
    "RunnerFactory",
    # Execution
    "RunContext",
    "RunToken",
    "EXECUTORS",
    "run_sequence",
    # Supervision
    "MultiTimerRunner",
    "RunnerState",
    "RunStatus",
    "StopwatchState",
    "get_timer_runner",
    "reset_timer_runner",
    "set_timer_runner",
]
