# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Shell command execution with a fixed search path.

Commands run through `<shell> -c` with an environment that contains only
PATH. Whatever environment launched llmanager (a desktop session, a
launchd agent, a terminal with a custom PATH) does not change which
`ollama` or `pgrep` binary gets picked up.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from llmanager.config import ManagerConfig, config as default_config
from llmanager.exceptions import ExecutionError

logger = logging.getLogger("llmanager")


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace").strip()


class ShellExecutor:
    """Runs literal command strings and captures their output."""

    def __init__(self, cfg: ManagerConfig | None = None):
        cfg = cfg or default_config
        self.shell = cfg.shell
        self.search_path = cfg.search_path
        self.timeout = cfg.command_timeout

    @property
    def environment(self) -> dict[str, str]:
        return {"PATH": self.search_path}

    @staticmethod
    async def _reap(process: asyncio.subprocess.Process) -> None:
        """Kills the shell if it is still alive and waits for it to exit."""
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()

    async def run(self, command: str) -> CommandResult:
        """
        Runs a command and returns its stripped stdout/stderr.

        Raises:
            ExecutionError: non-zero exit status, timeout (status -1) or the
                shell could not be spawned at all (status -1).
        """
        logger.debug("exec: %s", command)
        try:
            process = await asyncio.create_subprocess_exec(
                self.shell,
                "-c",
                command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.environment,
            )
        except OSError as e:
            raise ExecutionError(command, -1, "", str(e)) from e

        try:
            out, err = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._reap(process)
            raise ExecutionError(
                command, -1, "", f"Timed out after {self.timeout:.1f}s"
            ) from None
        except asyncio.CancelledError:
            logger.debug("exec cancelled, killing: %s", command)
            await self._reap(process)
            raise

        stdout = _decode(out)
        stderr = _decode(err)

        if process.returncode != 0:
            raise ExecutionError(command, process.returncode, stdout, stderr)

        return CommandResult(stdout=stdout, stderr=stderr)
