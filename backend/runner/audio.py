"""
Shared audio output

Every timer plays through one ``AudioChannel``, mirroring a single speaker.
A new request supersedes whatever is playing: the same URL is restarted
without reloading, a different URL replaces the loaded source. Each caller
awaits its own playback; being superseded or stopped counts as finished.
Load and playback failures are logged and also count as finished.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from core.logger import get_logger

logger = get_logger(__name__)


class AudioBackend(ABC):
    """Device-level playback of one loaded source"""

    @abstractmethod
    def load(self, url: str) -> None:
        """Prepare a source for playback; may raise if it cannot be loaded"""

    @abstractmethod
    async def play(self) -> None:
        """Play the loaded source to its end; cancellation must stop the sound"""


class AudioChannel:
    """Single-slot audio output shared by all runs"""

    def __init__(self, backend: AudioBackend):
        self._backend = backend
        self._loaded_url: Optional[str] = None
        self._current: Optional[asyncio.Task] = None
        self._owner: Optional[str] = None

    @property
    def backend(self) -> AudioBackend:
        return self._backend

    @property
    def is_playing(self) -> bool:
        return self._current is not None and not self._current.done()

    @property
    def current_owner(self) -> Optional[str]:
        return self._owner if self.is_playing else None

    def _interrupt(self) -> None:
        if self._current is not None and not self._current.done():
            logger.debug(f"Superseding playback owned by {self._owner}")
            self._current.cancel()

    async def play_to_completion(self, url: str, owner: Optional[str] = None) -> None:
        """Play url and return when it ends, fails, is superseded or is stopped"""
        self._interrupt()

        try:
            if url != self._loaded_url:
                self._backend.load(url)
                self._loaded_url = url
        except Exception as e:
            logger.warning(f"Failed to load sound {url}: {e}")
            self._loaded_url = None
            return

        task = asyncio.ensure_future(self._backend.play())
        self._current = task
        self._owner = owner

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._current is task:
                self._current = None
                self._owner = None

        if task.cancelled():
            logger.debug(f"Playback of {url} stopped before the end")
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Playback of {url} failed: {error}")

    def stop(self, owner: Optional[str] = None) -> None:
        """Stop playback; with an owner, only if that owner's sound is playing"""
        if not self.is_playing:
            return
        if owner is not None and owner != self._owner:
            return
        self._interrupt()
