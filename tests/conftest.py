"""
Shared fixtures: fake audio backends, a recording notifier and context builders
"""

import asyncio
from typing import List, Optional, Tuple

import pytest

from config.loader import reset_config
from runner.audio import AudioBackend, AudioChannel
from runner.context import RunContext, RunToken
from runner.notifications import DismissCallback, NotificationPermission, Notifier

TICK_MS = 10


class FakeAudioBackend(AudioBackend):
    """Plays for a fixed time; ``duration_ms=None`` never ends on its own"""

    def __init__(self, duration_ms: Optional[float] = 20):
        self.duration_ms = duration_ms
        self.loaded: List[str] = []
        self.played: List[str] = []
        self.cancelled = 0

    def load(self, url: str) -> None:
        if url.startswith("missing:"):
            raise FileNotFoundError(url)
        self.loaded.append(url)

    async def play(self) -> None:
        self.played.append(self.loaded[-1])
        try:
            if self.duration_ms is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(self.duration_ms / 1000)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise


class BrokenAudioBackend(FakeAudioBackend):
    async def play(self) -> None:
        self.played.append(self.loaded[-1])
        raise RuntimeError("device unavailable")


class RecordingNotifier(Notifier):
    """Keeps every shown notification; can dismiss them after a delay"""

    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.GRANTED,
        dismiss_after_ms: Optional[float] = None,
    ):
        super().__init__()
        self._granted = permission
        self.dismiss_after_ms = dismiss_after_ms
        self.shown: List[Tuple[str, Optional[str]]] = []

    async def _request(self) -> NotificationPermission:
        return self._granted

    def show(
        self,
        title: str,
        body: Optional[str] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> bool:
        self.shown.append((title, body))
        if self.dismiss_after_ms is not None and on_dismiss is not None:
            asyncio.get_running_loop().call_later(self.dismiss_after_ms / 1000, on_dismiss)
        return True


class LingeringNotifier(RecordingNotifier):
    """Holds dismissal callbacks so a test can close notifications late"""

    def __init__(self):
        super().__init__()
        self.callbacks: List[DismissCallback] = []

    def show(self, title, body=None, on_dismiss=None) -> bool:
        if on_dismiss is not None:
            self.callbacks.append(on_dismiss)
        return super().show(title, body)

    def dismiss_all(self) -> None:
        for callback in self.callbacks:
            callback()


class ProgressLog:
    def __init__(self):
        self.events: List[Tuple[Optional[str], Optional[float]]] = []
        self.entered: List[str] = []

    def on_progress(self, step_id, remaining_ms):
        self.events.append((step_id, remaining_ms))

    def on_step(self, step):
        self.entered.append(step.id)

    def remaining_for(self, step_id: str) -> List[float]:
        return [r for s, r in self.events if s == step_id and r is not None]


class FakeClock:
    def __init__(self, start: float = 1_000_000):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def build_context(
    audio: Optional[AudioChannel] = None,
    notifier: Optional[Notifier] = None,
    progress: Optional[ProgressLog] = None,
    **kwargs,
) -> RunContext:
    """Must be called inside a running loop"""
    progress = progress or ProgressLog()
    return RunContext(
        token=RunToken(),
        audio=audio or AudioChannel(FakeAudioBackend()),
        notifier=notifier or RecordingNotifier(),
        on_progress=progress.on_progress,
        on_step=progress.on_step,
        owner="test",
        tick_ms=TICK_MS,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def fake_backend():
    return FakeAudioBackend(duration_ms=20)


@pytest.fixture
def audio(fake_backend):
    return AudioChannel(fake_backend)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def progress():
    return ProgressLog()


@pytest.fixture
def clock():
    return FakeClock()
