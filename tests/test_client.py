"""
Tests for the HTTP API client.
"""

import httpx
import pytest
from modstage.client import ApiClient
from modstage.exceptions import ManifestError
from modstage.exceptions import ManifestValidationError


def client_for(handler):
    return ApiClient("https://api.example.com", transport=httpx.MockTransport(handler))


def test_base_url_required():
    with pytest.raises(ValueError, match="api_url"):
        ApiClient("")


@pytest.mark.asyncio
async def test_get_json():
    def handler(request):
        assert request.url.params["locale"] == "en"
        return httpx.Response(200, json={"hello": "world"})

    async with client_for(handler) as client:
        assert await client.get_json("/greeting", params={"locale": "en"}) == {"hello": "world"}


@pytest.mark.asyncio
async def test_fetch_manifest():
    def handler(request):
        assert request.url.path == "/app/start"
        return httpx.Response(200, json={"status": "ok", "data": {"modules": [{"name": "a", "loadType": "normal"}]}})

    async with client_for(handler) as client:
        manifest = await client.fetch_manifest()

    assert [m.name for m in manifest.data.modules] == ["a"]


@pytest.mark.asyncio
async def test_fetch_manifest_http_error():
    async with client_for(lambda request: httpx.Response(503)) as client:
        with pytest.raises(ManifestError, match="Failed to fetch startup manifest"):
            await client.fetch_manifest()


@pytest.mark.asyncio
async def test_fetch_manifest_not_json():
    async with client_for(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(ManifestError):
            await client.fetch_manifest()


@pytest.mark.asyncio
async def test_fetch_manifest_checks_catalog():
    body = {"status": "ok", "data": {"modules": [{"name": "local", "loadType": "normal"}]}}

    async with client_for(lambda request: httpx.Response(200, json=body)) as client:
        with pytest.raises(ManifestValidationError):
            await client.fetch_manifest(catalog=set())
