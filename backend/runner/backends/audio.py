"""
Audio backends
"""

import asyncio
import base64
import binascii
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import unquote

from core.logger import get_logger
from runner.audio import AudioBackend

logger = get_logger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent.parent

_MIME_SUFFIXES = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
}


class SilentAudioBackend(AudioBackend):
    """Pretends to play every source for a fixed duration"""

    def __init__(self, duration_ms: float = 1500):
        self.duration_ms = duration_ms
        self.loaded_url: Optional[str] = None

    def load(self, url: str) -> None:
        self.loaded_url = url

    async def play(self) -> None:
        logger.debug(f"Silently playing {self.loaded_url} for {self.duration_ms}ms")
        await asyncio.sleep(self.duration_ms / 1000)


class SubprocessAudioBackend(AudioBackend):
    """Plays sources through an external command-line player

    Remote URLs are handed to the player as is, relative paths resolve against
    the backend directory, and ``data:`` URLs from uploaded files are written to
    a temporary file first.
    """

    def __init__(self, command: Sequence[str]):
        if not command:
            raise ValueError("Audio player command is empty")
        self.command: List[str] = list(command)
        self._target: Optional[str] = None
        self._temp_file: Optional[Path] = None

    @staticmethod
    def is_available(command: Sequence[str]) -> bool:
        return bool(command) and shutil.which(command[0]) is not None

    def _release_temp_file(self) -> None:
        if self._temp_file is not None:
            self._temp_file.unlink(missing_ok=True)
            self._temp_file = None

    def _write_data_url(self, url: str) -> Path:
        header, _, payload = url.partition(",")
        mime = header[len("data:"):].split(";")[0].lower()
        try:
            if ";base64" in header:
                data = base64.b64decode(payload, validate=True)
            else:
                data = unquote(payload).encode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid data URL: {e}") from e

        suffix = _MIME_SUFFIXES.get(mime, ".bin")
        with tempfile.NamedTemporaryFile(prefix="blocktimer-", suffix=suffix, delete=False) as f:
            f.write(data)
            return Path(f.name)

    def load(self, url: str) -> None:
        self._release_temp_file()

        if url.startswith("data:"):
            self._temp_file = self._write_data_url(url)
            self._target = str(self._temp_file)
        elif "://" in url:
            self._target = url
        else:
            path = Path(url).expanduser()
            if not path.is_absolute():
                path = BACKEND_DIR / path
            if not path.exists():
                raise FileNotFoundError(f"Sound file not found: {path}")
            self._target = str(path)

        logger.debug(f"Loaded sound source {self._target}")

    async def play(self) -> None:
        if self._target is None:
            return

        process = await asyncio.create_subprocess_exec(
            *self.command,
            self._target,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            return_code = await process.wait()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.terminate()
                await process.wait()
            raise

        if return_code != 0:
            logger.warning(f"Audio player exited with code {return_code} for {self._target}")
