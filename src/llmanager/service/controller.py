# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Lifecycle of the local daemon process (status/start/stop).

Protocol:
  status  pgrep -x <name>; exit status 1 means "no such process"
  start   launch `<serve command>` detached, wait start_grace, re-probe
  stop    probe, kill <pid> (SIGTERM), wait stop_grace, re-probe

None of the operations retries on its own and stop never escalates to
SIGKILL; retry policy belongs to the caller.
"""

import asyncio
import logging
import shlex

from llmanager.config import ManagerConfig, config as default_config
from llmanager.exceptions import ExecutionError, PidNotFoundError, StopFailedError
from llmanager.models.process import ProcessHandle
from llmanager.service.shell import ShellExecutor
from llmanager.sync.state import SyncState

logger = logging.getLogger("llmanager")

# pgrep: 0 = match, 1 = no match, 2+ = usage/system error
PGREP_NO_MATCH = 1


def parse_pids(output: str) -> list[int]:
    """One PID per line; anything that is not an integer is skipped."""
    pids = []
    for line in output.splitlines():
        line = line.strip()
        if line.isdigit():
            pids.append(int(line))
    return pids


class ProcessController:
    """Detects, starts and stops the daemon by its exact process name."""

    def __init__(
        self,
        executor: ShellExecutor | None = None,
        state: SyncState | None = None,
        cfg: ManagerConfig | None = None,
    ):
        self.config = cfg or default_config
        self.executor = executor or ShellExecutor(self.config)
        self.state = state or SyncState()
        self.service_name = self.config.service_name

    def _publish(self, handle: ProcessHandle) -> ProcessHandle:
        self.state.set_process(handle)
        return handle

    async def _find_pid(self) -> int | None:
        command = f"pgrep -x {shlex.quote(self.service_name)}"
        try:
            result = await self.executor.run(command)
        except ExecutionError as e:
            if e.exit_status == PGREP_NO_MATCH:
                return None
            raise
        pids = parse_pids(result.stdout)
        return pids[0] if pids else None

    async def check_status(self) -> ProcessHandle:
        """
        Probes for the daemon.

        Raises:
            ExecutionError: the probe itself failed (e.g. pgrep missing).
        """
        pid = await self._find_pid()
        if pid is None:
            logger.debug("%s is not running", self.service_name)
            return self._publish(ProcessHandle.stopped())
        logger.debug("%s is running with PID %d", self.service_name, pid)
        return self._publish(ProcessHandle.alive(pid))

    async def start(self) -> ProcessHandle:
        """
        Launches the daemon in the background and confirms it has a PID.

        Raises:
            ExecutionError: the launch command could not be issued.
            PidNotFoundError: nothing was found after the grace interval.
        """
        logger.info("Attempting to start %s...", self.service_name)
        await self.executor.run(f"nohup {self.config.serve_command} >/dev/null 2>&1 &")

        await asyncio.sleep(self.config.start_grace)

        handle = await self.check_status()
        if not handle.running:
            logger.warning("Started %s but no PID was found", self.service_name)
            raise PidNotFoundError(self.service_name)

        logger.info("Started %s with PID %d", self.service_name, handle.pid)
        return handle

    async def stop(self) -> ProcessHandle:
        """
        Sends SIGTERM to the daemon and confirms it is gone.

        Stopping an already stopped daemon returns the stopped handle
        without sending anything.

        Raises:
            ExecutionError: the initial probe failed.
            StopFailedError: kill failed, or the process survived it.
        """
        logger.info("Attempting to stop %s...", self.service_name)
        handle = await self.check_status()
        if not handle.running:
            logger.info("%s is not running. Nothing to stop.", self.service_name)
            return handle

        pid = handle.pid
        try:
            await self.executor.run(f"kill {pid}")
        except ExecutionError as e:
            raise StopFailedError(
                self.service_name,
                pid,
                f"Kill command failed (status {e.exit_status}). "
                f"Output: {e.stdout}, Error: {e.stderr}",
            ) from e
        logger.info("Sent termination signal to %s (PID %d)", self.service_name, pid)

        await asyncio.sleep(self.config.stop_grace)

        handle = await self.check_status()
        if handle.running:
            raise StopFailedError(
                self.service_name,
                pid,
                "Process did not terminate after receiving signal.",
            )

        logger.info("%s (PID %d) successfully stopped", self.service_name, pid)
        return handle
