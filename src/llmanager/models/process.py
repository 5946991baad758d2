# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""Observed state of the daemon process."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessHandle:
    """Result of a PID probe. A PID is known if and only if the daemon runs."""

    pid: int | None = None
    running: bool = False

    def __post_init__(self):
        if (self.pid is not None) != self.running:
            raise ValueError(
                f"Inconsistent process handle: pid={self.pid} running={self.running}"
            )

    @classmethod
    def stopped(cls) -> "ProcessHandle":
        return cls(pid=None, running=False)

    @classmethod
    def alive(cls, pid: int) -> "ProcessHandle":
        return cls(pid=pid, running=True)
