"""
Run token and run context

A ``RunToken`` is the cancellation/pause scope of one run. Tokens chain:
a child token is aborted when it or any ancestor is aborted and is paused
whenever the root is paused. ``RunContext`` bundles the token with the
collaborators every executor needs.
"""

import asyncio
import dataclasses
from dataclasses import dataclass
from typing import Callable, List, Optional

from core.time_utils import now_ms
from models.steps import BaseStep

from .audio import AudioChannel
from .notifications import Notifier

ProgressCallback = Callable[[Optional[str], Optional[float]], None]
StepCallback = Callable[[BaseStep], None]

DEFAULT_SOUND_URL = "sounds/alarm.mp3"
DEFAULT_TICK_MS = 250
DEFAULT_TIMEOUT_MS = 10000
DEFAULT_INTERVAL_SECONDS = 0.5


class RunToken:
    """Abort/pause flags backed by asyncio events"""

    def __init__(self, parent: Optional["RunToken"] = None):
        self._parent = parent
        self._abort_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._resume_event.set()

    def child(self) -> "RunToken":
        return RunToken(parent=self)

    def _chain(self) -> List["RunToken"]:
        tokens: List[RunToken] = []
        token: Optional[RunToken] = self
        while token is not None:
            tokens.append(token)
            token = token._parent
        return tokens

    @property
    def _root(self) -> "RunToken":
        return self._chain()[-1]

    @property
    def aborted(self) -> bool:
        return any(token._abort_event.is_set() for token in self._chain())

    @property
    def paused(self) -> bool:
        return not self.aborted and not self._root._resume_event.is_set()

    def abort(self) -> None:
        """Abort this scope and release anyone waiting on it"""
        self._abort_event.set()
        if self._parent is None:
            self._resume_event.set()

    def pause(self) -> None:
        if not self.aborted:
            self._root._resume_event.clear()

    def resume(self) -> None:
        self._root._resume_event.set()

    async def _first_of(self, events: List[asyncio.Event], timeout: Optional[float]) -> None:
        waiters = [asyncio.ensure_future(event.wait()) for event in events]
        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

    async def wait_resumed(self) -> None:
        """Return once resumed or aborted"""
        while self.paused:
            abort_events = [token._abort_event for token in self._chain()]
            await self._first_of([self._root._resume_event, *abort_events], None)

    async def sleep(self, ms: float) -> None:
        """Sleep up to ms, returning early on abort"""
        if ms <= 0 or self.aborted:
            await asyncio.sleep(0)
            return
        abort_events = [token._abort_event for token in self._chain()]
        await self._first_of(abort_events, ms / 1000)


def _ignore_progress(step_id: Optional[str], remaining_ms: Optional[float]) -> None:
    pass


@dataclass
class RunContext:
    """Everything an executor may touch while a run is in flight"""

    token: RunToken
    audio: AudioChannel
    notifier: Notifier
    on_progress: ProgressCallback = _ignore_progress
    on_step: Optional[StepCallback] = None
    owner: Optional[str] = None
    tick_ms: float = DEFAULT_TICK_MS
    default_sound_url: str = DEFAULT_SOUND_URL
    notify_grace_ms: float = 0
    default_timeout_ms: float = DEFAULT_TIMEOUT_MS
    default_interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    clock: Callable[[], float] = now_ms

    def should_abort(self) -> bool:
        return self.token.aborted

    def is_paused(self) -> bool:
        return self.token.paused

    async def await_resume(self) -> None:
        await self.token.wait_resumed()

    def report_progress(self, step_id: Optional[str], remaining_ms: Optional[float]) -> None:
        self.on_progress(step_id, remaining_ms)

    def enter_step(self, step: BaseStep) -> None:
        self.on_progress(step.id, None)
        if self.on_step is not None:
            self.on_step(step)

    async def play_sound_to_completion(self, url: str) -> None:
        await self.audio.play_to_completion(url, owner=self.owner)

    def stop_audio(self) -> None:
        self.audio.stop(owner=self.owner)

    async def sleep(self, ms: float) -> None:
        await self.token.sleep(ms)

    def now(self) -> float:
        return self.clock()

    def scope(self) -> "RunContext":
        """Same context with a child token that can be aborted on its own"""
        return dataclasses.replace(self, token=self.token.child())
