"""Signal handling and graceful shutdown utilities."""

from __future__ import annotations

import asyncio
import inspect
import signal
import sys
import threading
from collections.abc import Callable
from typing import Any

from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "signals"})


class GracefulShutdown:
    """
    Runs registered cleanup handlers once when the application stops.

    Handlers execute in reverse registration order (LIFO); a failing handler
    is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        """Initialize graceful shutdown manager."""
        self._shutdown_handlers: list[Callable[[], Any]] = []
        self._is_shutting_down = False
        self._shutdown_event = asyncio.Event()

    def register_handler(self, handler: Callable[[], Any]) -> None:
        """
        Register a shutdown handler to be called during shutdown.

        Args:
            handler: Sync or async callable to execute during shutdown
        """
        self._shutdown_handlers.append(handler)
        logger.info(f"Registered shutdown handler: {handler.__name__}")

    async def shutdown(self) -> None:
        """Call all registered handlers in reverse order and mark shutdown complete."""
        if self._is_shutting_down:
            logger.warning("Shutdown already in progress")
            return

        self._is_shutting_down = True
        logger.info("Starting graceful shutdown...")

        for handler in reversed(self._shutdown_handlers):
            try:
                logger.info(f"Executing shutdown handler: {handler.__name__}")
                if inspect.iscoroutinefunction(handler):
                    await handler()
                else:
                    await asyncio.to_thread(handler)
                logger.info(f"Completed shutdown handler: {handler.__name__}")
            except Exception as e:
                logger.error(
                    f"Error in shutdown handler {handler.__name__}: {e}", exc_info=True
                )

        self._shutdown_event.set()
        logger.info("Graceful shutdown complete")

    def is_shutting_down(self) -> bool:
        """Check if shutdown is in progress."""
        return self._is_shutting_down

    async def wait_for_shutdown(self) -> None:
        """Wait for shutdown to complete."""
        await self._shutdown_event.wait()


def install_reload_handler(reload_fn: Callable[[], Any]) -> bool:
    """
    Install SIGHUP handler for configuration reload.

    Args:
        reload_fn: Function to call when SIGHUP is received

    Returns:
        True when the handler was installed
    """

    def sighup_handler(signum: int, frame: Any) -> None:
        """Handle SIGHUP signal for config reload."""
        logger.info("Received SIGHUP, reloading configuration...")
        try:
            reload_fn()
            logger.info("Configuration reload complete")
        except Exception as e:
            logger.error(f"Error during configuration reload: {e}", exc_info=True)

    if threading.current_thread() is not threading.main_thread():
        logger.info("Skipping SIGHUP handler installation outside main thread")
        return False

    if sys.platform == "win32":  # SIGHUP not available on Windows
        logger.warning("SIGHUP handler not available on Windows")
        return False

    signal.signal(signal.SIGHUP, sighup_handler)
    logger.info("Installed SIGHUP handler for configuration reload")
    return True
