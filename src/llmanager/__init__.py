# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""llmanager: supervise a local Ollama daemon and its model inventory."""

__version__ = "0.1.0"
