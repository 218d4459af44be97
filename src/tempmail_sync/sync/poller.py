# =============================================================================
# Poll Worker
# =============================================================================
# Background worker that refreshes the current session on a timer.
#
# Key responsibilities:
#   - Call SyncContext.refresh() every poll interval
#   - Keep going through gateway failures (logged, counted)
#   - Give up after too many consecutive failures, if configured to
#   - Graceful shutdown
#
# Design notes:
#   - A single asyncio task; the worker never touches the registry itself
#   - No session -> the tick is skipped, not counted as a failure
#   - The first refresh happens immediately on start
# =============================================================================

import asyncio
import logging
from typing import TYPE_CHECKING

from tempmail_sync.errors import GatewayError

if TYPE_CHECKING:
    from tempmail_sync.sync.context import SyncContext

logger = logging.getLogger(__name__)


class PollWorker:
    """
    Periodic session refresher.

    Usage:
        >>> worker = PollWorker(context, interval=15)
        >>> worker.start()
        >>> # ... later ...
        >>> await worker.stop()

    Attributes:
        context: The SyncContext to refresh.
        interval: Seconds between refreshes.
        max_failures: Consecutive failures before giving up (0 = never).
        consecutive_failures: Failures since the last successful refresh.
    """

    def __init__(
        self,
        context: "SyncContext",
        interval: float,
        max_failures: int = 0,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval!r}")
        self.context = context
        self.interval = interval
        self.max_failures = max_failures
        self.consecutive_failures = 0
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        """Check if the worker task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """
        Start polling. Must be called from a running event loop.

        Calling start() on a running worker does nothing.
        """
        if self.is_running:
            logger.warning("PollWorker already running")
            return

        self.consecutive_failures = 0
        logger.info(f"Starting poll worker (every {self.interval}s)")
        self._task = asyncio.create_task(self._run(), name="tempmail-poll")

    async def stop(self) -> None:
        """Stop polling and wait for the task to exit."""
        if self._task is None:
            return

        logger.info("Stopping poll worker")
        task, self._task = self._task, None
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=2.0)
        except asyncio.CancelledError:
            pass
        except asyncio.TimeoutError:
            logger.warning("Poll task did not stop cleanly")

    async def _run(self) -> None:
        """Poll loop."""
        while True:
            await self.poll_once()

            if self.max_failures and self.consecutive_failures >= self.max_failures:
                logger.error(
                    f"Giving up polling after {self.consecutive_failures} consecutive failures"
                )
                return

            await asyncio.sleep(self.interval)

    async def poll_once(self) -> None:
        """
        Run a single refresh, recording the outcome.

        Never raises except for cancellation.
        """
        if self.context.session is None:
            logger.debug("Poll skipped: no session")
            return

        try:
            result = await self.context.refresh()
        except GatewayError as e:
            self.consecutive_failures += 1
            logger.warning(
                f"Poll failed ({e.reason.value}), "
                f"{self.consecutive_failures} in a row: {e}"
            )
            return
        except Exception as e:
            self.consecutive_failures += 1
            logger.error(f"Unexpected error while polling: {e}", exc_info=True)
            return

        self.consecutive_failures = 0
        if result.new_mails:
            logger.debug(f"Poll found {result.new_mails} new mails")
