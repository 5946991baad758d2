# SPDX-License-Identifier: HRUL-1.0
# Copyright (c) 2026 Gabriel Galán Pelayo
"""Tests for the daemon REST client."""

import json

import httpx
import pytest

from llmanager.api.client import DaemonClient
from llmanager.exceptions import (
    BadResponseError,
    DaemonUnreachableError,
    RemoteError,
    ResponseDecodeError,
)

TAGS = {
    "models": [
        {
            "name": "llama3.2:3b",
            "model": "llama3.2:3b",
            "modified_at": "2025-04-20T10:21:03.612301234+02:00",
            "size": 2019393189,
            "digest": "a80c4f17acd55265feec403c7aef86be0c25983ab279d83f3bcd3abbcb5b8b72",
            "details": {
                "parent_model": "",
                "format": "gguf",
                "family": "llama",
                "families": ["llama"],
                "parameter_size": "3.2B",
                "quantization_level": "Q4_K_M",
            },
        }
    ]
}

PS = {
    "models": [
        {
            "name": "llama3.2:3b",
            "model": "llama3.2:3b",
            "size": 3851340800,
            "digest": "a80c4f17acd55265feec403c7aef86be0c25983ab279d83f3bcd3abbcb5b8b72",
            "details": {
                "parent_model": "",
                "format": "gguf",
                "family": "llama",
                "families": ["llama"],
                "parameter_size": "3.2B",
                "quantization_level": "Q4_K_M",
            },
            "expires_at": "2025-04-22T12:05:00.123456789+02:00",
            "size_vram": 3851340800,
        }
    ]
}


def make_client(handler):
    return DaemonClient(base_url="http://daemon.test", transport=httpx.MockTransport(handler))


class TestReads:
    @pytest.mark.asyncio
    async def test_list_installed(self):
        def handler(request):
            assert request.method == "GET"
            assert request.url.path == "/api/tags"
            return httpx.Response(200, json=TAGS)

        async with make_client(handler) as client:
            models = await client.list_installed()

        assert len(models) == 1
        model = models[0]
        assert model.name == "llama3.2:3b"
        assert model.size == 2019393189
        assert model.id == model.digest
        assert model.details.quantization_level == "Q4_K_M"
        assert model.modified_at.startswith("2025-04-20T10:21:03")

    @pytest.mark.asyncio
    async def test_list_active(self):
        def handler(request):
            assert request.url.path == "/api/ps"
            return httpx.Response(200, json=PS)

        async with make_client(handler) as client:
            models = await client.list_active()

        assert models[0].size_vram == 3851340800
        assert models[0].expires_at == PS["models"][0]["expires_at"]

    @pytest.mark.asyncio
    async def test_empty_listing(self):
        async with make_client(lambda r: httpx.Response(200, json={"models": []})) as client:
            assert await client.list_installed() == []

    @pytest.mark.asyncio
    async def test_unknown_fields_ignored(self):
        payload = {"models": [{"name": "x", "digest": "d", "brand_new_field": 1}]}
        async with make_client(lambda r: httpx.Response(200, json=payload)) as client:
            models = await client.list_installed()

        assert models[0].name == "x"

    @pytest.mark.asyncio
    async def test_version(self):
        def handler(request):
            assert request.url.path == "/api/version"
            return httpx.Response(200, json={"version": "0.6.8"})

        async with make_client(handler) as client:
            assert await client.version() == "0.6.8"


class TestMutations:
    @pytest.mark.asyncio
    async def test_generate_load(self):
        """Without keep_alive the field is not sent at all."""
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"model": "llama3.2:3b", "response": "", "done": True})

        async with make_client(handler) as client:
            response = await client.generate("llama3.2:3b")

        assert captured["path"] == "/api/generate"
        assert captured["body"] == {"model": "llama3.2:3b", "stream": False}
        assert response.done is True

    @pytest.mark.asyncio
    async def test_generate_unload(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200, json={"model": "llama3.2:3b", "done": True, "done_reason": "unload"}
            )

        async with make_client(handler) as client:
            response = await client.generate("llama3.2:3b", keep_alive="0")

        assert captured["body"]["keep_alive"] == "0"
        assert response.done_reason == "unload"

    @pytest.mark.asyncio
    async def test_remove(self):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200)

        async with make_client(handler) as client:
            await client.remove("llama3.2:3b")

        assert captured == {
            "method": "DELETE",
            "path": "/api/delete",
            "body": {"model": "llama3.2:3b"},
        }


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_body_used_as_description(self):
        handler = lambda r: httpx.Response(404, json={"error": "model 'nope' not found"})

        async with make_client(handler) as client:
            with pytest.raises(BadResponseError) as exc_info:
                await client.remove("nope")

        assert exc_info.value.status_code == 404
        assert exc_info.value.description == "model 'nope' not found"
        assert "404" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_reason_phrase_when_body_is_not_json(self):
        handler = lambda r: httpx.Response(500, text="<html>boom</html>")

        async with make_client(handler) as client:
            with pytest.raises(BadResponseError) as exc_info:
                await client.list_installed()

        assert exc_info.value.description == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(DaemonUnreachableError) as exc_info:
                await client.list_active()

        assert exc_info.value.url == "http://daemon.test"
        assert isinstance(exc_info.value, RemoteError)

    @pytest.mark.asyncio
    async def test_undecodable_payload(self):
        handler = lambda r: httpx.Response(200, json={"models": [{"name": "missing digest"}]})

        async with make_client(handler) as client:
            with pytest.raises(ResponseDecodeError) as exc_info:
                await client.list_installed()

        assert exc_info.value.endpoint == "/api/tags"

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        handler = lambda r: httpx.Response(200, text="not json")

        async with make_client(handler) as client:
            with pytest.raises(ResponseDecodeError):
                await client.version()
