"""
Multi-timer runner

Owns one run token and one reported-state record per timer id, so several
timers can run side by side while sharing a single audio channel.

State machine of a sequence timer:
    idle -> running -> (paused <-> running) -> completed | aborted

Starting a paused timer resumes it in place; starting an idle, completed or
aborted timer begins a fresh run; restart always begins a fresh run.
Stopwatch timers have no step tree and only keep an elapsed-time counter
plus the marks taken while it runs.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional, Union

from pydantic import Field

from config.loader import ConfigLoader, get_config
from core.ids import create_id
from core.logger import get_logger
from core.time_utils import now_ms
from models.base import FrozenModel
from models.steps import BaseStep
from models.timers import LogEntry, Timer

from .audio import AudioChannel
from .context import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_SOUND_URL,
    DEFAULT_TICK_MS,
    DEFAULT_TIMEOUT_MS,
    RunContext,
    RunToken,
)
from .factory import RunnerFactory
from .interpreter import run_sequence
from .notifications import Notifier

logger = get_logger(__name__)


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABORTED = "aborted"


class RunnerState(FrozenModel):
    """Progress of one sequence timer, as shown to the UI"""

    status: RunStatus = RunStatus.IDLE
    active_step_id: Optional[str] = None
    remaining_ms: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self.status is RunStatus.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.status is RunStatus.PAUSED


class StopwatchState(FrozenModel):
    """Elapsed-time counter of one stopwatch timer"""

    accumulated_ms: float = 0
    started_at_ms: Optional[float] = None
    logs: List[LogEntry] = Field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.started_at_ms is not None

    def elapsed(self, now: float) -> float:
        if self.started_at_ms is None:
            return self.accumulated_ms
        return self.accumulated_ms + max(0.0, now - self.started_at_ms)


StateListener = Callable[[str, Union[RunnerState, StopwatchState]], None]

_IDLE = RunnerState()


@dataclass
class _Run:
    timer: Timer
    token: RunToken
    task: Optional[asyncio.Task] = None
    run_id: str = field(default_factory=create_id)

    @property
    def owner(self) -> str:
        """Audio owner key, unique per run"""
        return f"{self.timer.id}:{self.run_id}"


class MultiTimerRunner:
    """Per-timer run supervisor"""

    def __init__(
        self,
        audio: AudioChannel,
        notifier: Notifier,
        *,
        tick_ms: float = DEFAULT_TICK_MS,
        default_sound_url: str = DEFAULT_SOUND_URL,
        notify_grace_ms: float = 0,
        default_timeout_ms: float = DEFAULT_TIMEOUT_MS,
        default_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = now_ms,
    ):
        self.audio = audio
        self.notifier = notifier
        self.tick_ms = tick_ms
        self.default_sound_url = default_sound_url
        self.notify_grace_ms = notify_grace_ms
        self.default_timeout_ms = default_timeout_ms
        self.default_interval_seconds = default_interval_seconds
        self._clock = clock

        self._runs: Dict[str, _Run] = {}
        self._states: Dict[str, RunnerState] = {}
        self._stopwatches: Dict[str, StopwatchState] = {}
        self._listeners: List[StateListener] = []
        # Public methods may be called from another callback turn than the run itself
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: ConfigLoader) -> "MultiTimerRunner":
        runner_config = config.section("runner")
        return cls(
            RunnerFactory.create_audio_channel(config.section("audio")),
            RunnerFactory.create_notifier(config.section("notifications")),
            tick_ms=float(runner_config.get("tick_ms", DEFAULT_TICK_MS)),
            default_sound_url=config.get("audio.default_sound", DEFAULT_SOUND_URL),
            notify_grace_ms=float(runner_config.get("notify_grace_ms", 0)),
            default_timeout_ms=float(
                runner_config.get("default_timeout_ms", DEFAULT_TIMEOUT_MS)
            ),
            default_interval_seconds=float(
                runner_config.get("default_interval_seconds", DEFAULT_INTERVAL_SECONDS)
            ),
        )

    # ============ Listeners ============

    def add_listener(self, listener: StateListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _emit(self, timer_id: str, state: Union[RunnerState, StopwatchState]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(timer_id, state)
            except Exception as e:
                logger.error(f"State listener failed for timer {timer_id}: {e}", exc_info=True)

    def _set_state(self, timer_id: str, state: RunnerState) -> None:
        with self._lock:
            self._states[timer_id] = state
        self._emit(timer_id, state)

    def _update_run_state(self, run: _Run, **changes) -> None:
        """Apply changes only while run is still the timer's current run"""
        timer_id = run.timer.id
        with self._lock:
            if self._runs.get(timer_id) is not run:
                return
            state = self._states.get(timer_id, _IDLE).model_copy(update=changes)
            self._states[timer_id] = state
        self._emit(timer_id, state)

    def _set_stopwatch(self, timer_id: str, state: StopwatchState) -> None:
        with self._lock:
            self._stopwatches[timer_id] = state
        self._emit(timer_id, state)

    # ============ Sequence runs ============

    def _make_context(self, run: _Run) -> RunContext:
        return RunContext(
            token=run.token,
            audio=self.audio,
            notifier=self.notifier,
            on_progress=partial(self._on_progress, run),
            on_step=partial(self._on_step, run),
            owner=run.owner,
            tick_ms=self.tick_ms,
            default_sound_url=self.default_sound_url,
            notify_grace_ms=self.notify_grace_ms,
            default_timeout_ms=self.default_timeout_ms,
            default_interval_seconds=self.default_interval_seconds,
            clock=self._clock,
        )

    def _on_progress(self, run: _Run, step_id: Optional[str], remaining_ms: Optional[float]) -> None:
        self._update_run_state(run, active_step_id=step_id, remaining_ms=remaining_ms)

    def _on_step(self, run: _Run, step: BaseStep) -> None:
        logger.debug(f"Timer {run.timer.id}: step {step.id} ({step.type}) active")

    def _launch(self, timer: Timer) -> Optional[asyncio.Task]:
        if not timer.steps:
            logger.warning(f"Timer {timer.id} has no steps, nothing to run")
            return None

        run = _Run(timer=timer, token=RunToken())
        with self._lock:
            self._runs[timer.id] = run
        self._set_state(
            timer.id,
            RunnerState(status=RunStatus.RUNNING, active_step_id=timer.steps[0].id),
        )

        run.task = asyncio.get_running_loop().create_task(
            self._execute(run), name=f"timer-{timer.id}"
        )
        logger.info(f"Timer {timer.id} ('{timer.name}') started")
        return run.task

    async def _execute(self, run: _Run) -> None:
        timer_id = run.timer.id
        completed = False
        try:
            await run_sequence(run.timer.steps, self._make_context(run))
            completed = not run.token.aborted
        except Exception as e:
            logger.error(f"Timer {timer_id} run failed: {e}", exc_info=True)
        finally:
            with self._lock:
                is_current = self._runs.get(timer_id) is run
                if is_current:
                    del self._runs[timer_id]
            if is_current:
                status = RunStatus.COMPLETED if completed else RunStatus.ABORTED
                self._set_state(timer_id, RunnerState(status=status))
                logger.info(f"Timer {timer_id} {status.value}")

    def start(self, timer: Timer) -> Optional[asyncio.Task]:
        """Start a timer, or resume it in place if it is paused

        Must be called from within the running event loop. Returns the run
        task for sequence timers.
        """
        if timer.is_stopwatch:
            self._start_stopwatch(timer)
            return None

        run = self._runs.get(timer.id)
        if run is not None:
            if run.token.paused:
                self.resume(timer.id)
            else:
                logger.debug(f"Timer {timer.id} is already running")
            return run.task

        return self._launch(timer)

    def pause(self, timer: Timer) -> None:
        if timer.is_stopwatch:
            self._pause_stopwatch(timer.id)
            return

        run = self._runs.get(timer.id)
        if run is None or run.token.paused:
            return

        run.token.pause()
        self.audio.stop(owner=run.owner)
        self._update_run_state(run, status=RunStatus.PAUSED)
        logger.info(f"Timer {timer.id} paused")

    def resume(self, timer_id: str) -> None:
        stopwatch = self._stopwatches.get(timer_id)
        if stopwatch is not None and not stopwatch.is_running and stopwatch.accumulated_ms > 0:
            self._set_stopwatch(
                timer_id, stopwatch.model_copy(update={"started_at_ms": self._clock()})
            )
            return

        run = self._runs.get(timer_id)
        if run is None or not run.token.paused:
            return

        run.token.resume()
        self._update_run_state(run, status=RunStatus.RUNNING)
        logger.info(f"Timer {timer_id} resumed")

    def restart(self, timer: Timer) -> Optional[asyncio.Task]:
        """Begin again from the first step (stopwatch: from zero)"""
        if timer.is_stopwatch:
            self.reset(timer.id)
            self._start_stopwatch(timer)
            return None

        self.stop(timer.id)
        return self._launch(timer)

    def stop(self, timer_id: str) -> None:
        """Hard-cancel a timer; calling it again is a no-op"""
        with self._lock:
            run = self._runs.pop(timer_id, None)
            stopwatch = self._stopwatches.get(timer_id)

        if run is not None:
            run.token.abort()
            self.audio.stop(owner=run.owner)
            self._set_state(timer_id, RunnerState(status=RunStatus.ABORTED))
            logger.info(f"Timer {timer_id} stopped")

        if stopwatch is not None and (stopwatch.is_running or stopwatch.accumulated_ms > 0):
            self._set_stopwatch(timer_id, StopwatchState(logs=stopwatch.logs))
            logger.info(f"Stopwatch {timer_id} stopped")

    def stop_all(self) -> None:
        with self._lock:
            timer_ids = set(self._runs) | set(self._stopwatches)
        for timer_id in timer_ids:
            self.stop(timer_id)

    async def wait(self, timer_id: str) -> None:
        """Wait until the timer's current run has finished"""
        run = self._runs.get(timer_id)
        if run is not None and run.task is not None:
            await asyncio.gather(run.task, return_exceptions=True)

    def pending_tasks(self) -> List[asyncio.Task]:
        with self._lock:
            return [run.task for run in self._runs.values() if run.task is not None]

    # ============ Stopwatch ============

    def _start_stopwatch(self, timer: Timer) -> None:
        state = self._stopwatches.get(timer.id) or StopwatchState(logs=list(timer.logs))
        if state.is_running:
            return
        self._set_stopwatch(timer.id, state.model_copy(update={"started_at_ms": self._clock()}))
        logger.info(f"Stopwatch {timer.id} running")

    def _pause_stopwatch(self, timer_id: str) -> None:
        state = self._stopwatches.get(timer_id)
        if state is None or not state.is_running:
            return
        self._set_stopwatch(
            timer_id,
            state.model_copy(
                update={
                    "accumulated_ms": state.elapsed(self._clock()),
                    "started_at_ms": None,
                }
            ),
        )
        logger.info(f"Stopwatch {timer_id} paused")

    def reset(self, timer_id: str) -> None:
        """Zero a stopwatch and leave it stopped; marks are kept"""
        state = self._stopwatches.get(timer_id)
        if state is None:
            return
        self._set_stopwatch(timer_id, StopwatchState(logs=state.logs))

    def mark(self, timer: Timer, name: Optional[str] = None) -> Optional[LogEntry]:
        """Record the current elapsed time; only possible while running"""
        state = self._stopwatches.get(timer.id)
        if state is None or not state.is_running:
            logger.warning(f"Stopwatch {timer.id} is not running, cannot mark")
            return None

        now = self._clock()
        entry = LogEntry(
            name=name or f"Mark {len(state.logs) + 1}",
            elapsed_ms=state.elapsed(now),
            logged_at_epoch_ms=now,
        )
        self._set_stopwatch(timer.id, state.model_copy(update={"logs": [*state.logs, entry]}))
        logger.info(f"Stopwatch {timer.id} marked at {entry.elapsed_ms:.0f}ms")
        return entry

    def elapsed_ms(self, timer_id: str) -> float:
        state = self._stopwatches.get(timer_id)
        return state.elapsed(self._clock()) if state is not None else 0

    def stopwatch_logs(self, timer_id: str) -> List[LogEntry]:
        state = self._stopwatches.get(timer_id)
        return list(state.logs) if state is not None else []

    # ============ Read accessors ============

    def status(self, timer_id: str) -> RunnerState:
        return self._states.get(timer_id, _IDLE)

    def is_running(self, timer_id: Optional[str]) -> bool:
        if not timer_id:
            return False
        stopwatch = self._stopwatches.get(timer_id)
        if stopwatch is not None:
            return stopwatch.is_running
        return self.status(timer_id).is_running

    def is_paused(self, timer_id: Optional[str]) -> bool:
        if not timer_id:
            return False
        stopwatch = self._stopwatches.get(timer_id)
        if stopwatch is not None:
            return not stopwatch.is_running and stopwatch.accumulated_ms > 0
        return self.status(timer_id).is_paused

    def active_step_id(self, timer_id: Optional[str]) -> Optional[str]:
        return self.status(timer_id).active_step_id if timer_id else None

    def remaining_ms(self, timer_id: Optional[str]) -> Optional[float]:
        return self.status(timer_id).remaining_ms if timer_id else None

    def states(self) -> Dict[str, RunnerState]:
        with self._lock:
            return dict(self._states)


# Global singleton
_timer_runner: Optional[MultiTimerRunner] = None


def get_timer_runner() -> MultiTimerRunner:
    """Get the global runner, built from configuration on first use"""
    global _timer_runner
    if _timer_runner is None:
        _timer_runner = MultiTimerRunner.from_config(get_config())
    return _timer_runner


def set_timer_runner(runner: MultiTimerRunner) -> None:
    global _timer_runner
    _timer_runner = runner


def reset_timer_runner() -> None:
    global _timer_runner
    if _timer_runner is not None:
        _timer_runner.stop_all()
    _timer_runner = None
