"""
Base API Client

Shared plumbing for the Blizzard and Raider.IO clients: a pooled httpx
client, tenacity retries for transport failures, one retry after a 401 when
the subclass can refresh its credentials, and non-2xx responses mapped onto
UpstreamError / NotFoundError.
"""

import logging
from typing import Optional, Dict, Any

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from ...core.exceptions import UpstreamError, NotFoundError

logger = logging.getLogger(__name__)


class BaseAPIClient:
    """JSON-over-HTTP client for one upstream service."""

    service_name = "upstream"
    default_headers: Dict[str, str] = {"Accept": "application/json"}

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Prefix for relative endpoints
            timeout: Default request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self) -> None:
        if not self._client:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.default_headers,
                transport=self.transport
            )
            logger.info(f"{self.service_name} API client initialized")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info(f"{self.service_name} API client closed")

    async def _get_auth_headers(self) -> Dict[str, str]:
        return {}

    async def _on_unauthorized(self) -> bool:
        """Hook for a 401; return True to send the request once more."""
        return False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True
    )
    async def _send(self, url: str, **kwargs) -> httpx.Response:
        if not self._client:
            await self.initialize()

        headers = await self._get_auth_headers()
        logger.debug(f"GET {url}")
        return await self._client.get(url, headers=headers, **kwargs)

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        GET a JSON document.

        Args:
            endpoint: Absolute URL, or a path under ``base_url``
            params: Query parameters
            timeout: Overrides the client timeout for this call

        Raises:
            NotFoundError: Upstream answered 404
            UpstreamError: Any other non-2xx status, a transport failure or a
                body that is not JSON
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs: Dict[str, Any] = {"params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._send(url, **kwargs)
            if response.status_code == 401 and await self._on_unauthorized():
                logger.info(f"{self.service_name} rejected credentials, retrying once")
                response = await self._send(url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamError(
                f"{self.service_name} request timed out",
                service=self.service_name,
                endpoint=url
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                f"{self.service_name} request failed: {e}",
                service=self.service_name,
                endpoint=url
            ) from e

        if response.status_code == 404:
            raise NotFoundError(
                f"{self.service_name} resource", url,
                service=self.service_name, endpoint=url
            )
        if response.status_code >= 400:
            raise UpstreamError(
                f"{self.service_name} request failed: {response.status_code}",
                service=self.service_name,
                status_code=response.status_code,
                endpoint=url
            )

        try:
            return response.json()
        except ValueError as e:
            # Maintenance pages and proxies answer 200 with HTML
            raise UpstreamError(
                f"{self.service_name} returned a non-JSON body",
                service=self.service_name,
                status_code=response.status_code,
                endpoint=url
            ) from e
