"""
Common base for content source collectors.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from hottopic.config import settings
from hottopic.core.errors import CollectorError

HTTP_HEADERS = {"User-Agent": settings.USER_AGENT}


def create_http_client(**kwargs: Any) -> httpx.AsyncClient:
    """HTTP client carrying the configured timeout and user agent."""
    kwargs.setdefault("timeout", settings.HTTP_TIMEOUT)
    kwargs.setdefault("headers", HTTP_HEADERS)
    return httpx.AsyncClient(**kwargs)


class SourceCollector(ABC):
    """Adapts one external content source into a SourceMetrics model.

    ``collect`` returns zero-valued metrics when the source simply has no
    results, and raises CollectorError for anything that went wrong.
    """

    source_name: str = "unknown"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    @abstractmethod
    async def collect(self, keyword: str, start: date, end: date) -> BaseModel:
        """Collect metrics for a keyword within [start, end]."""
        ...

    def require(self, **credentials: str) -> None:
        """Fail fast when an API credential is not configured."""
        missing = [name for name, value in credentials.items() if not value]
        if missing:
            raise CollectorError(self.source_name, f"missing credentials: {', '.join(missing)}")

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, mapping transport errors and non-2xx responses to CollectorError.

        Uses the shared client when one was injected, otherwise a short-lived one.
        """
        try:
            if self.client is not None:
                response = await self.client.request(method, url, **kwargs)
            else:
                async with create_http_client() as client:
                    response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CollectorError(
                self.source_name, f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise CollectorError(self.source_name, f"{type(e).__name__}: {e}") from e
        return response

    async def request_json(self, method: str, url: str, **kwargs: Any) -> dict:
        response = await self.request(method, url, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            raise CollectorError(self.source_name, "response is not valid JSON") from e
        if not isinstance(data, dict):
            raise CollectorError(self.source_name, "unexpected response payload")
        return data
