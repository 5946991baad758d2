# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Merge of installed (/api/tags) and active (/api/ps) models.

The join key is the display name, not the digest. Two installed tags that
share a name would both match the first active entry with that name; the
daemon does not produce such duplicates today, so the fragility is
accepted to keep running status tied to what the user sees.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from llmanager.api.schemas import ActiveModel, InstalledModel
from llmanager.models.formatting import format_bytes, format_relative_date
from llmanager.models.view import NOT_APPLICABLE, NOT_LOADED, UnifiedModelView

IDENTIFIER_LENGTH = 12


def index_by_name(active: Iterable[ActiveModel]) -> dict[str, ActiveModel]:
    """First entry wins when names repeat."""
    index: dict[str, ActiveModel] = {}
    for model in active:
        index.setdefault(model.name, model)
    return index


def to_view(
    installed: InstalledModel, running: ActiveModel | None, now: datetime | None = None
) -> UnifiedModelView:
    return UnifiedModelView(
        id=installed.digest,
        name=installed.name,
        identifier=installed.digest[:IDENTIFIER_LENGTH],
        size_packed=format_bytes(installed.size),
        size_unpacked=format_bytes(running.size) if running else NOT_APPLICABLE,
        processor=(running.details.quantization_level or NOT_APPLICABLE)
        if running
        else NOT_APPLICABLE,
        until=format_relative_date(running.expires_at, now) if running else NOT_LOADED,
        modified=format_relative_date(installed.modified_at, now),
        is_running=running is not None,
        expires_at=running.expires_at if running else None,
    )


def reconcile(
    installed: Iterable[InstalledModel],
    active: Iterable[ActiveModel],
    now: datetime | None = None,
) -> list[UnifiedModelView]:
    """
    Builds one view per installed model, sorted by name.

    Pure: the output depends only on the arguments. Pass `now` to pin the
    relative dates (the default is the current time).
    """
    now = now or datetime.now(timezone.utc)
    running = index_by_name(active)
    rows = [to_view(m, running.get(m.name), now) for m in installed]
    return sorted(rows, key=lambda row: row.name)
