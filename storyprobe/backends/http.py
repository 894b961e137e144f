"""HTTP client for the service under test."""

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """Status and raw body of a service response."""

    status_code: int
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON, returning the raw text when it is not JSON."""
        try:
            return json.loads(self.content)
        except ValueError:
            return self.text


class HTTPClient:
    """Thin async wrapper over :class:`httpx.AsyncClient` bound to a base URL."""

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def request(self, method: str, path: str, body: Any = None) -> HTTPResponse:
        """Send a request; ``body`` is JSON-encoded when given."""
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["content"] = json.dumps(body).encode()
            kwargs["headers"] = {"Content-Type": "application/json"}

        logger.debug(f"HTTP {method} {self.base_url}{path}")
        response = await self.client.request(method, path, **kwargs)
        return HTTPResponse(status_code=response.status_code, content=response.content)

    async def get(self, path: str) -> HTTPResponse:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any = None) -> HTTPResponse:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any = None) -> HTTPResponse:
        return await self.request("PUT", path, body)

    async def patch(self, path: str, body: Any = None) -> HTTPResponse:
        return await self.request("PATCH", path, body)

    async def delete(self, path: str) -> HTTPResponse:
        return await self.request("DELETE", path)
