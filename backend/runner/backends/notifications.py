"""
Platform notifiers
"""

import asyncio
import shutil
from typing import Optional, Set

from core.logger import get_logger
from runner.notifications import DismissCallback, NotificationPermission, Notifier

logger = get_logger(__name__)

APP_NAME = "Block Timer"


class LinuxNotifier(Notifier):
    """Notifications through ``notify-send``

    With ``--wait`` the command blocks until the notification is closed or
    clicked, which is reported as a dismissal. Older notify-send builds
    reject ``--wait``; a failed command never counts as dismissed.
    """

    def __init__(self, command: str = "notify-send"):
        super().__init__()
        self.command = command
        self._tasks: Set[asyncio.Task] = set()

    async def _request(self) -> NotificationPermission:
        if shutil.which(self.command) is None:
            logger.warning(f"{self.command} not found, notifications disabled")
            return NotificationPermission.DENIED
        return NotificationPermission.GRANTED

    def show(
        self,
        title: str,
        body: Optional[str] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> bool:
        try:
            task = asyncio.get_running_loop().create_task(
                self._run(title, body, on_dismiss)
            )
        except RuntimeError as e:
            logger.warning(f"Cannot show notification outside an event loop: {e}")
            return False
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(
        self,
        title: str,
        body: Optional[str],
        on_dismiss: Optional[DismissCallback],
    ) -> None:
        args = [self.command, "--wait", f"--app-name={APP_NAME}", title]
        if body:
            args.append(body)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            return_code = await process.wait()
        except OSError as e:
            logger.warning(f"Failed to show notification: {e}")
            return

        if return_code == 0 and on_dismiss is not None:
            on_dismiss()


class MacOSNotifier(Notifier):
    """Notifications through AppleScript; dismissal is not observable"""

    def __init__(self):
        super().__init__()
        self._tasks: Set[asyncio.Task] = set()

    async def _request(self) -> NotificationPermission:
        if shutil.which("osascript") is None:
            return NotificationPermission.DENIED
        return NotificationPermission.GRANTED

    @staticmethod
    def _quote(text: str) -> str:
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

    def show(
        self,
        title: str,
        body: Optional[str] = None,
        on_dismiss: Optional[DismissCallback] = None,
    ) -> bool:
        script = f"display notification {self._quote(body or '')} with title {self._quote(title)}"
        try:
            task = asyncio.get_running_loop().create_task(self._run(script))
        except RuntimeError as e:
            logger.warning(f"Cannot show notification outside an event loop: {e}")
            return False
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(self, script: str) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                "osascript",
                "-e",
                script,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await process.wait()
        except OSError as e:
            logger.warning(f"Failed to show notification: {e}")
