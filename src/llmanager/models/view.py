# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""Row model shown to the user: an installed model plus its runtime status."""

from dataclasses import dataclass

NOT_APPLICABLE = "N/A"
NOT_LOADED = "Not Loaded"


@dataclass(frozen=True)
class UnifiedModelView:
    # Identification
    id: str  # Content digest
    name: str  # Display name (e.g., "llama3.2:3b")
    identifier: str  # Shortened digest

    # Sizes
    size_packed: str  # On disk
    size_unpacked: str  # Resident in memory, or N/A

    # Runtime
    processor: str  # Quantization of the loaded instance, or N/A
    until: str  # Relative expiry, or Not Loaded
    modified: str
    is_running: bool

    expires_at: str | None = None  # Raw expiry from /api/ps
