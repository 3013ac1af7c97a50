"""
Platform-specific audio and notification backends
"""

from .audio import SilentAudioBackend, SubprocessAudioBackend
from .notifications import LinuxNotifier, MacOSNotifier

__all__ = [
    "SilentAudioBackend",
    "SubprocessAudioBackend",
    "LinuxNotifier",
    "MacOSNotifier",
]
