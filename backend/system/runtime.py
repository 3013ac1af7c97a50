"""Runtime control utility

Startup, stop and status query logic for the timer engine process.
"""

from __future__ import annotations

import atexit
import signal
import sys
import threading
from typing import Any, Dict, Optional

from config.loader import get_config
from core.logger import get_logger, setup_logging
from runner.supervisor import MultiTimerRunner, set_timer_runner

logger = get_logger(__name__)

# Global flags to prevent duplicate cleanup
_cleanup_done = False
_exit_handlers_registered = False
_runner: Optional[MultiTimerRunner] = None


def _cleanup_on_exit():
    """Cleanup function on process exit (sync version for atexit)"""
    global _cleanup_done

    if _cleanup_done:
        return

    _cleanup_done = True
    logger.debug("Executing exit cleanup...")

    try:
        if _runner is None:
            logger.debug("Runner not started, skipping cleanup")
            return
        # stop() only flips tokens and silences audio, safe outside the loop
        _runner.stop_all()
        logger.debug("Exit cleanup completed")
    except Exception as e:
        logger.error(f"Exit cleanup failed: {e}", exc_info=True)


def _signal_handler(signum, frame):
    """Signal handler"""
    signal_name = signal.Signals(signum).name
    logger.debug(f"Received signal {signal_name}, preparing to exit...")

    _cleanup_on_exit()
    sys.exit(0)


def _is_main_thread() -> bool:
    """Check if current is main thread"""
    return threading.current_thread() is threading.main_thread()


def _register_exit_handlers():
    """Register exit handlers (thread-safe)"""
    global _exit_handlers_registered

    if _exit_handlers_registered:
        logger.debug("Exit handlers already registered, skipping")
        return

    atexit.register(_cleanup_on_exit)
    logger.debug("atexit cleanup function registered")

    # Only register signal handlers in main thread
    if _is_main_thread():
        try:
            signal.signal(signal.SIGINT, _signal_handler)  # Ctrl+C
            signal.signal(signal.SIGTERM, _signal_handler)  # kill command
            logger.debug("Signal handlers registered (main thread)")
        except ValueError as e:
            logger.warning(f"Cannot register signal handlers: {e}")
    else:
        logger.debug("Current thread is not main, skipping signal handler registration (will use atexit)")

    _exit_handlers_registered = True


async def start_runtime(
    config_file: Optional[str] = None,
    *,
    register_exit_handlers: bool = True,
) -> MultiTimerRunner:
    """Load configuration and build the runner; returns the existing one if already started"""
    global _runner, _cleanup_done

    if _runner is not None:
        logger.debug("Timer runner is already started, no need to start again")
        return _runner

    # Load config file (auto-create default config if not exists)
    config_loader = get_config(config_file)
    config_loader.load()
    logger.debug(f"✓ Config file: {config_loader.config_file}")

    setup_logging()

    _runner = MultiTimerRunner.from_config(config_loader)
    set_timer_runner(_runner)
    _cleanup_done = False

    if register_exit_handlers:
        _register_exit_handlers()

    permission = await _runner.notifier.request_permission()
    logger.info(
        f"Timer runner started (audio: {type(_runner.audio.backend).__name__}, "
        f"notifications: {permission.value})"
    )
    return _runner


async def stop_runtime(*, quiet: bool = False) -> Optional[MultiTimerRunner]:
    """Stop every timer and wait for the runs to unwind.

    Args:
        quiet: When True, only log debug messages, avoid terminal shutdown messages.
    """
    global _runner

    runner = _runner
    if runner is None:
        if not quiet:
            logger.info("Timer runner is not currently running")
        return None

    if not quiet:
        logger.info("Stopping timer runner...")

    tasks = runner.pending_tasks()
    runner.stop_all()
    for task in tasks:
        try:
            await task
        except Exception as e:
            if not quiet:
                logger.error(f"Exception while stopping timer run: {e}", exc_info=True)

    _runner = None

    if not quiet:
        logger.info("Timer runner stopped")
    return runner


async def get_runtime_stats() -> Dict[str, Any]:
    """Current per-timer states"""
    if _runner is None:
        return {"running": False, "timers": {}}
    return {
        "running": True,
        "timers": {
            timer_id: state.model_dump() for timer_id, state in _runner.states().items()
        },
    }
