"""
HTTP API client used by the bootstrap pipeline.

Thin wrapper over ``httpx.AsyncClient`` bound to the configured API base URL.
"""

import logging
from typing import Any

import httpx

from .exceptions import ManifestError
from .manifest import StartupManifest
from .manifest import parse_manifest

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_PATH = "/app/start"


class ApiClient:
    """
    Async JSON client for the application backend.

    Args:
        base_url: API base URL
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url:
            raise ValueError("api_url in application config is not defined")
        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET ``path`` and decode the JSON body.

        Raises:
            httpx.HTTPError: Transport failure or non-2xx status
        """
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_manifest(
        self, path: str = DEFAULT_MANIFEST_PATH, catalog: set[str] | None = None
    ) -> StartupManifest:
        """
        Fetch and validate the startup manifest.

        Raises:
            ManifestError: Request failed or the body is not JSON
            ManifestValidationError: The manifest failed validation
        """
        logger.debug(f"Fetching startup manifest from {self.base_url}{path}")
        try:
            raw = await self.get_json(path)
        except (httpx.HTTPError, ValueError) as e:
            raise ManifestError(f"Failed to fetch startup manifest: {e}") from e
        return parse_manifest(raw, catalog)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
