"""
Runner platform factory
Creates the audio backend and notifier appropriate for the current platform

Design Pattern: Factory Pattern
- Callers only need to know the AudioBackend / Notifier interfaces
- Configuration can force the silent / no-op implementations for headless use
"""

import sys
from typing import Any, Dict

from core.logger import get_logger

from .audio import AudioBackend, AudioChannel
from .backends import LinuxNotifier, MacOSNotifier, SilentAudioBackend, SubprocessAudioBackend
from .notifications import Notifier, NullNotifier

logger = get_logger(__name__)

DEFAULT_PLAYER_COMMAND = ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"]


class RunnerFactory:
    """Runner collaborator factory class"""

    @staticmethod
    def get_platform() -> str:
        """Get current platform identifier

        Returns:
            str: 'darwin' (macOS), 'win32' (Windows), 'linux' (Linux)
        """
        return sys.platform

    @staticmethod
    def create_audio_backend(audio_config: Dict[str, Any]) -> AudioBackend:
        """Create audio backend

        - silent: fixed-duration simulated playback
        - subprocess: external player command
        - auto: subprocess when the player is installed, silent otherwise
        """
        kind = str(audio_config.get("backend", "auto")).lower()
        command = audio_config.get("player_command") or DEFAULT_PLAYER_COMMAND
        duration_ms = float(audio_config.get("simulated_duration_ms", 1500))

        if kind == "subprocess":
            logger.debug(f"Creating subprocess audio backend ({command[0]})")
            return SubprocessAudioBackend(command)

        if kind == "auto" and SubprocessAudioBackend.is_available(command):
            logger.debug(f"Creating subprocess audio backend ({command[0]})")
            return SubprocessAudioBackend(command)

        if kind not in ("auto", "silent"):
            logger.warning(f"Unknown audio backend: {kind}, using silent playback")
        else:
            logger.debug("Creating silent audio backend")
        return SilentAudioBackend(duration_ms)

    @staticmethod
    def create_audio_channel(audio_config: Dict[str, Any]) -> AudioChannel:
        return AudioChannel(RunnerFactory.create_audio_backend(audio_config))

    @staticmethod
    def create_notifier(notification_config: Dict[str, Any]) -> Notifier:
        """Create notifier

        Automatically selects appropriate implementation based on current platform:
        - macOS: osascript
        - Linux: notify-send
        - Others: no notifications
        """
        kind = str(notification_config.get("backend", "auto")).lower()
        if kind == "none":
            logger.debug("Notifications disabled by configuration")
            return NullNotifier()

        platform = RunnerFactory.get_platform()

        if platform == "darwin":
            logger.debug("Creating macOS notifier (osascript)")
            return MacOSNotifier()

        elif platform.startswith("linux"):
            logger.debug("Creating Linux notifier (notify-send)")
            return LinuxNotifier()

        else:
            logger.warning(f"No notifier for platform: {platform}, notifications disabled")
            return NullNotifier()
