# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Observable in-memory state shared by the controller, the scheduler and
any presentation layer.

Ownership (one writer per field group):
  process                         ProcessController
  installed, active, models,
  last_refresh                    RefreshScheduler (+ reconciliation)
  version                         ModelManager

`error` is a notice: the scheduler and the manager may set it, only
set_error(None) (ModelManager.dismiss_error) clears it.

Readers subscribe to change notifications or take a snapshot. Writes are
serialized by a lock so a reader on another thread never sees a
half-applied refresh.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from llmanager.api.schemas import ActiveModel, InstalledModel
from llmanager.models.process import ProcessHandle
from llmanager.models.reconciliation import reconcile
from llmanager.models.view import UnifiedModelView

logger = logging.getLogger("llmanager")

Listener = Callable[[frozenset[str]], None]


@dataclass(frozen=True)
class StateSnapshot:
    process: ProcessHandle = field(default_factory=ProcessHandle.stopped)
    installed: tuple[InstalledModel, ...] = ()
    active: tuple[ActiveModel, ...] = ()
    models: tuple[UnifiedModelView, ...] = ()
    version: str | None = None
    last_refresh: datetime | None = None
    error: str | None = None


class SyncState:
    """Injectable state container with explicit subscriptions."""

    def __init__(self):
        self._lock = threading.RLock()
        self._data = StateSnapshot()
        self._listeners: list[Listener] = []

    # --- Reads ---

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return self._data

    @property
    def process(self) -> ProcessHandle:
        return self.snapshot().process

    @property
    def installed(self) -> tuple[InstalledModel, ...]:
        return self.snapshot().installed

    @property
    def active(self) -> tuple[ActiveModel, ...]:
        return self.snapshot().active

    @property
    def models(self) -> tuple[UnifiedModelView, ...]:
        return self.snapshot().models

    @property
    def version(self) -> str | None:
        return self.snapshot().version

    @property
    def last_refresh(self) -> datetime | None:
        return self.snapshot().last_refresh

    @property
    def error(self) -> str | None:
        return self.snapshot().error

    # --- Subscriptions ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _swap(self, changes: dict) -> frozenset[str]:
        # Caller holds the lock
        current = self._data
        changed = frozenset(k for k, v in changes.items() if getattr(current, k) != v)
        if changed:
            self._data = replace(current, **changes)
        return changed

    def _notify(self, changed: frozenset[str]) -> None:
        if not changed:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(changed)
            except Exception:
                logger.exception("State listener failed")

    # --- Writes ---

    def _commit(self, **changes) -> None:
        with self._lock:
            changed = self._swap(changes)
        self._notify(changed)

    def set_process(self, handle: ProcessHandle) -> None:
        self._commit(process=handle)

    def set_version(self, version: str | None) -> None:
        self._commit(version=version)

    def set_error(self, message: str | None) -> None:
        self._commit(error=message)

    def apply_refresh(
        self,
        installed: Sequence[InstalledModel] | None = None,
        active: Sequence[ActiveModel] | None = None,
        error: str | None = None,
        at: datetime | None = None,
    ) -> None:
        """
        Applies one refresh as a single write.

        A side passed as None keeps its previous collection. last_refresh
        advances only if at least one side was supplied, and never moves
        backwards. `error` replaces the current notice when given; a
        successful refresh leaves an earlier notice in place.
        """
        with self._lock:
            current = self._data
            new_installed = tuple(installed) if installed is not None else current.installed
            new_active = tuple(active) if active is not None else current.active
            changes = {
                "installed": new_installed,
                "active": new_active,
                "models": tuple(reconcile(new_installed, new_active)),
            }
            if error is not None:
                changes["error"] = error
            if installed is not None or active is not None:
                stamp = at or datetime.now(timezone.utc)
                if current.last_refresh is not None and stamp < current.last_refresh:
                    stamp = current.last_refresh
                changes["last_refresh"] = stamp
            changed = self._swap(changes)
        self._notify(changed)

    def clear_models(self) -> None:
        """Empties the collections (daemon known to be stopped)."""
        self._commit(installed=(), active=(), models=())
