"""Signal-driven graceful shutdown of the collector server."""

import asyncio
import logging
import signal
import sys
from typing import Optional

from common.constants import SHUTDOWN_GRACE_PERIOD_SECONDS

STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ShutdownController:
    """
    Runs exactly one shutdown sequence per process.

    The server awaits ``wait`` as its shutdown trigger. Once the first
    interrupt arrives it stops listening, so new connections are refused,
    and gives in-flight requests ``grace_period`` seconds before cancelling
    them. Later interrupts are logged and otherwise ignored.
    """

    def __init__(
        self,
        logger: logging.Logger,
        grace_period: float = SHUTDOWN_GRACE_PERIOD_SECONDS
    ):
        """
        Initialize controller.

        Args:
            logger: Server logger
            grace_period: Seconds in-flight requests may keep running
        """
        self.logger = logger
        self.grace_period = grace_period
        self._triggered = False
        self._event: Optional[asyncio.Event] = None

    @property
    def triggered(self) -> bool:
        return self._triggered

    def trigger(self, sig: Optional[int] = None) -> None:
        """
        Start the shutdown sequence.

        Args:
            sig: Signal number that caused the call, if any
        """
        if self._triggered:
            self.logger.info(f"Received signal {sig} while shutting down, ignoring")
            return

        self._triggered = True
        self.logger.info(
            f"Received signal {sig}, server is shutting down "
            f"(grace period {self.grace_period:g}s)..."
        )
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Return once the shutdown sequence has started."""
        if self._event is None:
            self._event = asyncio.Event()
        if self._triggered:
            self._event.set()
        await self._event.wait()

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM of the running loop to ``trigger``."""
        if sys.platform == 'win32':
            return
        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            loop.add_signal_handler(sig, self.trigger, sig)

    def remove_signal_handlers(self) -> None:
        if sys.platform == 'win32':
            return
        loop = asyncio.get_running_loop()
        for sig in STOP_SIGNALS:
            loop.remove_signal_handler(sig)
