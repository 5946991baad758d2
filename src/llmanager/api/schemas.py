# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Wire schemas of the Ollama REST API as consumed by llmanager.

Only the fields llmanager reads are declared; anything else the daemon
sends is ignored. Timestamps stay as the raw strings the daemon sends
(nanosecond precision, local offsets) and are parsed only when formatted.
"""

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ModelDetails(_Wire):
    parent_model: str = ""
    format: str = ""
    family: str = ""
    families: list[str] | None = None
    parameter_size: str | None = None
    quantization_level: str | None = None


class InstalledModel(_Wire):
    """Entry of GET /api/tags: a model present in the daemon's storage."""

    name: str
    model: str = ""
    modified_at: str = ""
    size: int = 0
    digest: str
    details: ModelDetails = Field(default_factory=ModelDetails)

    @property
    def id(self) -> str:
        return self.digest


class ActiveModel(_Wire):
    """Entry of GET /api/ps: a model currently loaded in memory."""

    name: str
    model: str = ""
    size: int = 0
    digest: str
    details: ModelDetails = Field(default_factory=ModelDetails)
    expires_at: str = ""
    size_vram: int = 0

    @property
    def id(self) -> str:
        return self.digest


class InstalledModelsResponse(_Wire):
    models: list[InstalledModel] = Field(default_factory=list)


class ActiveModelsResponse(_Wire):
    models: list[ActiveModel] = Field(default_factory=list)


class VersionResponse(_Wire):
    version: str


class GenerateRequest(BaseModel):
    """Body of POST /api/generate. Without a prompt it only loads/unloads."""

    model: str
    stream: bool = False
    keep_alive: str | None = None


class GenerateResponse(_Wire):
    model: str = ""
    created_at: str = ""
    response: str = ""
    done: bool = False
    done_reason: str | None = None


class RemoveModelRequest(BaseModel):
    model: str


class ErrorResponse(_Wire):
    error: str
