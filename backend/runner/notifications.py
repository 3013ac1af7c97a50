"""
System notification interface

Notifications are best effort: permission is requested once and cached, a
denied or unavailable notifier simply shows nothing.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional, Tuple

from core.logger import get_logger

logger = get_logger(__name__)

TITLE_LIMIT = 100
BODY_LIMIT = 200
DEFAULT_TITLE = "Timer"

DismissCallback = Callable[[], None]


class NotificationPermission(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"


def prepare_notification(title: Optional[str], body: Optional[str]) -> Tuple[str, Optional[str]]:
    """Apply the title fallback and length limits"""
    safe_title = (title or DEFAULT_TITLE)[:TITLE_LIMIT]
    safe_body = body[:BODY_LIMIT] if body else None
    return safe_title, safe_body


class Notifier(ABC):
    """Desktop notification sink"""

    def __init__(self):
        self._permission = NotificationPermission.DEFAULT

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        """Ask once; later calls return the cached decision"""
        if self._permission is NotificationPermission.DEFAULT:
            try:
                self._permission = await self._request()
            except Exception as e:
                logger.warning(f"Notification permission request failed: {e}")
                self._permission = NotificationPermission.DENIED
            logger.debug(f"Notification permission: {self._permission.value}")
        return self._permission

    async def _request(self) -> NotificationPermission:
        return NotificationPermission.GRANTED

    @abstractmethod
    def show(
        self,
        title: str,
        body: Optional[str] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> bool:
        """Display a notification; returns False if nothing was shown"""


class NullNotifier(Notifier):
    """Notifier for environments without a notification service"""

    async def _request(self) -> NotificationPermission:
        return NotificationPermission.DENIED

    def show(
        self,
        title: str,
        body: Optional[str] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> bool:
        logger.debug(f"Notification suppressed: {title}")
        return False
