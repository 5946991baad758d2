# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Periodic refresh of the model collections while the daemon is running.

One tick = fetch /api/tags and /api/ps concurrently, then apply both
results to SyncState in a single write. A side that failed keeps its
previous collection. Ticks never overlap: the next wait starts only after
the current tick has been applied.

Stopping is cooperative: disarm() sets the stop token and cancels the
loop task. A tick cancelled while its fetches are in flight writes
nothing, so the state stays as the last completed tick left it. The
loop also ends as soon as SyncState reports the process stopped, without
waiting for the current sleep to run out.
"""

import asyncio
import contextlib
import logging

from llmanager.api.client import DaemonClient
from llmanager.config import ManagerConfig, config as default_config
from llmanager.exceptions import DaemonUnreachableError, LLManagerError, RemoteError
from llmanager.service.controller import ProcessController
from llmanager.sync.state import SyncState

logger = logging.getLogger("llmanager")


def _describe(context: str, error: BaseException) -> str:
    if isinstance(error, RemoteError):
        return f"API Error ({context}): {error.message}"
    if isinstance(error, LLManagerError):
        return f"Error ({context}): {error.message}"
    return f"An unexpected error occurred ({context}): {error}"


class RefreshScheduler:
    """Self-rescheduling, cancellable polling loop. At most one loop runs."""

    def __init__(
        self,
        client: DaemonClient,
        state: SyncState,
        controller: ProcessController | None = None,
        interval: float | None = None,
        cfg: ManagerConfig | None = None,
    ):
        cfg = cfg or default_config
        self.client = client
        self.state = state
        self.controller = controller
        self.interval = interval if interval is not None else cfg.refresh_interval
        self._task: asyncio.Task | None = None
        self._last_task: asyncio.Task | None = None
        self._stop: asyncio.Event | None = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> bool:
        """
        Starts the loop if the daemon is running and no loop is active.

        Returns True if a new loop was started. Must be called from
        inside a running event loop.
        """
        if self.armed:
            logger.debug("Scheduled refresh not started: already running")
            return False
        if not self.state.process.running:
            logger.info("Scheduled refresh not started: service is not running")
            return False

        logger.info("Starting scheduled model refresh task (every %.0fs)", self.interval)
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(self._stop), name="llmanager-refresh"
        )
        self._last_task = self._task
        return True

    def disarm(self) -> bool:
        """Stops the loop. Returns False if it was not running."""
        task, stop = self._task, self._stop
        self._task = None
        self._stop = None
        if task is None or task.done():
            logger.debug("Scheduled refresh task already stopped")
            return False

        logger.info("Stopping scheduled model refresh task")
        stop.set()
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # The loop may disarm itself; a task must not cancel itself mid-tick
        if task is not current:
            task.cancel()
        return True

    async def join(self) -> None:
        """Waits until the most recent loop has exited."""
        task = self._last_task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _halt(self, task: asyncio.Task, stop: asyncio.Event) -> None:
        """Ends one specific loop; a loop armed later is left alone."""
        if stop.is_set():
            return
        logger.info("Service stopped; ending scheduled refresh")
        if self._task is task:
            self._task = None
            self._stop = None
        stop.set()
        task.cancel()

    async def _run(self, stop: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()

        def on_change(fields: frozenset[str]) -> None:
            if "process" in fields and not self.state.process.running:
                loop.call_soon_threadsafe(self._halt, task, stop)

        unsubscribe = self.state.subscribe(on_change)
        try:
            while not stop.is_set():
                if not self.state.process.running:
                    logger.info("Skipping scheduled refresh: service not running")
                    self.disarm()
                    break

                await self.refresh()
                if stop.is_set():
                    break

                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop.wait(), timeout=self.interval)
        except asyncio.CancelledError:
            logger.info("Scheduled refresh task cancelled")
        finally:
            unsubscribe()
            logger.info("Scheduled refresh task finished")

    async def refresh(self) -> bool:
        """
        Runs one tick. Returns True if at least one collection was updated.

        Fetch failures are recorded as the current error rather than
        raised; cancellation still propagates.
        """
        installed, active = await asyncio.gather(
            self.client.list_installed(),
            self.client.list_active(),
            return_exceptions=True,
        )

        errors: list[str] = []
        failures: list[BaseException] = []
        outcomes = (
            ("fetching local models", installed),
            ("fetching running models", active),
        )
        for context, result in outcomes:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                failures.append(result)
                errors.append(_describe(context, result))
                if isinstance(result, RemoteError):
                    logger.warning("Error %s: %s", context, result.message)
                else:
                    logger.error("Error %s", context, exc_info=result)

        self.state.apply_refresh(
            installed=None if isinstance(installed, BaseException) else installed,
            active=None if isinstance(active, BaseException) else active,
            error="\n".join(errors) or None,
        )

        if len(failures) == 2 and all(isinstance(f, DaemonUnreachableError) for f in failures):
            await self._confirm_daemon_alive()

        refreshed = len(failures) < 2
        if refreshed:
            logger.debug("Scheduled refresh complete: %d models", len(self.state.models))
        return refreshed

    async def _confirm_daemon_alive(self) -> None:
        """Daemon unreachable on both endpoints: disarm if its process is gone."""
        if self.controller is None:
            return
        try:
            handle = await self.controller.check_status()
        except LLManagerError as e:
            logger.warning("Could not probe %s: %s", self.controller.service_name, e.message)
            return
        if not handle.running:
            logger.info("%s is no longer running", self.controller.service_name)
            self.disarm()
