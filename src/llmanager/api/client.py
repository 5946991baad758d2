# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""
Async client for the daemon's native REST API.

Endpoints used:
    GET    /api/tags      installed models
    GET    /api/ps        models loaded in memory
    GET    /api/version   daemon version
    POST   /api/generate  load (default keep-alive) or unload (keep_alive="0")
    DELETE /api/delete    remove an installed model
"""

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from llmanager.api.schemas import (
    ActiveModel,
    ActiveModelsResponse,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    InstalledModel,
    InstalledModelsResponse,
    RemoveModelRequest,
    VersionResponse,
)
from llmanager.config import ManagerConfig, config as default_config
from llmanager.exceptions import BadResponseError, DaemonUnreachableError, ResponseDecodeError

logger = logging.getLogger("llmanager")

T = TypeVar("T", bound=BaseModel)


class DaemonClient:
    """Thin typed wrapper over httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        cfg: ManagerConfig | None = None,
    ):
        cfg = cfg or default_config
        self.base_url = (base_url or cfg.api_url).rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else cfg.request_timeout,
            transport=transport,
            trust_env=False,
        )

    async def __aenter__(self) -> "DaemonClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- Transport ---

    async def _send(self, method: str, endpoint: str, body: BaseModel | None = None) -> httpx.Response:
        kwargs = {}
        if body is not None:
            kwargs["json"] = body.model_dump(exclude_none=True)
        try:
            response = await self._http.request(method, endpoint, **kwargs)
        except httpx.TransportError as e:
            raise DaemonUnreachableError(self.base_url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise BadResponseError(response.status_code, self._error_description(response))
        return response

    @staticmethod
    def _error_description(response: httpx.Response) -> str:
        try:
            return ErrorResponse.model_validate_json(response.content).error
        except ValidationError:
            logger.warning(
                "Could not decode error body for status %d: %r",
                response.status_code,
                response.text[:200],
            )
            return response.reason_phrase or f"HTTP {response.status_code}"

    async def _request(
        self, schema: type[T], method: str, endpoint: str, body: BaseModel | None = None
    ) -> T:
        response = await self._send(method, endpoint, body)
        try:
            return schema.model_validate_json(response.content)
        except ValidationError as e:
            logger.debug("Undecodable payload from %s: %r", endpoint, response.text[:500])
            raise ResponseDecodeError(endpoint, str(e)) from e

    # --- Endpoints ---

    async def list_installed(self) -> list[InstalledModel]:
        response = await self._request(InstalledModelsResponse, "GET", "/api/tags")
        return list(response.models)

    async def list_active(self) -> list[ActiveModel]:
        response = await self._request(ActiveModelsResponse, "GET", "/api/ps")
        return list(response.models)

    async def version(self) -> str:
        response = await self._request(VersionResponse, "GET", "/api/version")
        return response.version

    async def generate(self, model: str, keep_alive: str | None = None) -> GenerateResponse:
        """
        Sends a prompt-less generate request.

        With no keep_alive the daemon loads the model with its default
        expiry; keep_alive="0" unloads it immediately.
        """
        body = GenerateRequest(model=model, stream=False, keep_alive=keep_alive)
        return await self._request(GenerateResponse, "POST", "/api/generate", body)

    async def remove(self, name: str) -> None:
        await self._send("DELETE", "/api/delete", RemoveModelRequest(model=name))
