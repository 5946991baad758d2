# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
High-level operations on the daemon and its models.

ModelManager wires the controller, the REST client and the scheduler
around one SyncState and is what a presentation layer talks to. Every
failure is recorded in SyncState.error (for a dismissible notice) and
re-raised to the caller, except during the initial status check, which
only records it.
"""

import asyncio
import logging

from llmanager.api.client import DaemonClient
from llmanager.config import ManagerConfig, config as default_config
from llmanager.exceptions import LLManagerError, ProcessError, RemoteError
from llmanager.models.process import ProcessHandle
from llmanager.service.controller import ProcessController
from llmanager.service.shell import ShellExecutor
from llmanager.sync.scheduler import RefreshScheduler
from llmanager.sync.state import SyncState

logger = logging.getLogger("llmanager")


class ModelManager:
    def __init__(
        self,
        cfg: ManagerConfig | None = None,
        state: SyncState | None = None,
        controller: ProcessController | None = None,
        client: DaemonClient | None = None,
        scheduler: RefreshScheduler | None = None,
    ):
        self.config = cfg or default_config
        self.state = state or SyncState()
        self.controller = controller or ProcessController(
            ShellExecutor(self.config), self.state, self.config
        )
        self.client = client or DaemonClient(cfg=self.config)
        self.scheduler = scheduler or RefreshScheduler(
            self.client, self.state, self.controller, cfg=self.config
        )

    async def __aenter__(self) -> "ModelManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.scheduler.disarm()
        await self.scheduler.join()
        await self.client.aclose()

    # --- Errors ---

    def _record(self, error: Exception, context: str) -> None:
        if isinstance(error, RemoteError):
            message = f"API Error: {error.message}"
        elif isinstance(error, ProcessError):
            message = f"CLI Error: {error.message}"
        else:
            message = f"An unexpected error occurred: {error}"
        logger.error("Error encountered (%s): %s", context, error)
        self.state.set_error(message)

    def dismiss_error(self) -> None:
        self.state.set_error(None)

    # --- Service lifecycle ---

    async def check_initial_status(self) -> ProcessHandle:
        """Probes the daemon; if it runs, loads everything and arms the scheduler."""
        try:
            handle = await self.controller.check_status()
        except LLManagerError as e:
            self._record(e, "checking initial service status")
            self.state.set_process(ProcessHandle.stopped())
            self._reset()
            return self.state.process

        if handle.running:
            logger.info("The service is running with PID %d. Performing setup.", handle.pid)
            await self._setup()
            self.scheduler.arm()
        else:
            logger.info("The service is not currently running.")
            self._reset()
        return handle

    def _reset(self) -> None:
        self.scheduler.disarm()
        self.state.set_version(None)
        self.state.clear_models()

    async def _setup(self) -> None:
        await asyncio.gather(self.refresh_version(raise_errors=False), self.scheduler.refresh())

    async def start_service(self) -> ProcessHandle:
        try:
            handle = await self.controller.start()
        except LLManagerError as e:
            self._record(e, "starting service")
            raise
        self.scheduler.arm()
        return handle

    async def stop_service(self) -> ProcessHandle:
        try:
            handle = await self.controller.stop()
        except LLManagerError as e:
            self._record(e, "stopping service")
            raise
        self.scheduler.disarm()
        return handle

    async def manual_refresh(self) -> None:
        logger.info("Manual refresh triggered.")
        if self.state.process.running:
            await self._setup()
        else:
            await self.check_initial_status()

    # --- Models ---

    async def refresh_version(self, raise_errors: bool = True) -> str | None:
        try:
            version = await self.client.version()
        except RemoteError as e:
            self._record(e, "fetching version")
            if raise_errors:
                raise
            return None
        self.state.set_version(version)
        return version

    async def load_model(self, name: str, keep_alive: str | None = None) -> bool:
        """Asks the daemon to load a model into memory; returns the `done` flag."""
        try:
            response = await self.client.generate(name, keep_alive=keep_alive)
        except RemoteError as e:
            self._record(e, f"loading model {name}")
            raise
        logger.info("Model load request sent for '%s'. Done: %s", name, response.done)
        return response.done

    async def unload_model(self, name: str) -> bool:
        """Expires a loaded model immediately (keep_alive=0)."""
        try:
            response = await self.client.generate(name, keep_alive="0")
        except RemoteError as e:
            self._record(e, f"unloading model {name}")
            raise
        logger.info("Model stop request sent for '%s'. Done: %s", name, response.done)
        return response.done

    async def remove_model(self, name: str) -> None:
        try:
            await self.client.remove(name)
        except RemoteError as e:
            self._record(e, f"removing model {name}")
            raise
        logger.info("Model '%s' successfully removed.", name)
        await self.scheduler.refresh()
