"""
HTTP adapter for listadofondos (httpx-based, asyncio).

This module provides a thin adapter for issuing GET requests against the
Morningstar snapshot pages and returning the decoded body. The adapter focuses
on performing a single request with sensible defaults (User-Agent, Accept
headers, timeout). Higher-level behaviors (concurrency across views, failure
isolation per entry, caching) are handled by the calling code.

Design notes
------------
- Headers are stored and exposed as ``Mapping[str, str]`` (no ``bytes`` values).
- Default headers and timeout are injected at construction time.
- The timeout is a deadline for the whole request, body included, not a
  per-read limit.
- Non-2xx responses raise ``httpx.HTTPStatusError``; timeouts raise
  ``httpx.TimeoutException``. Nothing is retried here.
- A custom ``transport`` can be injected (``httpx.MockTransport`` in tests).

Concurrency
-----------
One adapter wraps one ``httpx.AsyncClient`` and is safe to share between
coroutines running on the same event loop.
"""

from __future__ import annotations

import asyncio
from types import MappingProxyType
from typing import Any, Mapping, Optional

import httpx

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 20.0


def _headers_dict(headers: Mapping[str, Any]) -> dict[str, str]:
    """Convert a headers mapping to ``dict[str, str]`` with string values only."""
    return {str(k): str(v) for k, v in headers.items()}


class HttpxAdapter:
    """Async GET adapter over a shared ``httpx.AsyncClient``.

    Parameters
    ----------
    user_agent:
        String for the ``User-Agent`` header. Will be inserted into default
        headers if not already present.
    default_timeout:
        Timeout in seconds applied when a per-request timeout is not supplied.
    default_headers:
        Mapping of default headers applied to all requests.
    transport:
        Optional ``httpx`` transport; defaults to the real network transport.
    """

    default_headers: Mapping[str, str]

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        default_timeout: float = DEFAULT_TIMEOUT,
        default_headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        base: dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "es-ES,es;q=0.9",
        }
        if default_headers:
            base.update(_headers_dict(default_headers))

        self._default_timeout = float(default_timeout)
        self._client = httpx.AsyncClient(
            headers=base,
            timeout=self._default_timeout,
            follow_redirects=True,
            transport=transport,
        )
        self.default_headers = MappingProxyType(dict(base))

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    async def fetch_text(
        self,
        url: str,
        *,
        timeout: float | int | None = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """GET `url` and return the response body as text.

        Raises
        ------
        ValueError
            If ``url`` is empty.
        httpx.HTTPStatusError
            If the response status indicates an HTTP error (4xx/5xx).
        httpx.TimeoutException
            If the whole request, body included, exceeds ``timeout`` (or the
            adapter default).
        httpx.TransportError
            On connection-level failures.
        """
        if not isinstance(url, str) or not url:
            raise ValueError("HttpxAdapter.fetch_text: url must be a non-empty string.")

        deadline = float(timeout) if timeout is not None else self._default_timeout
        try:
            async with asyncio.timeout(deadline):
                resp = await self._client.get(
                    url, headers=dict(headers or {}), timeout=deadline
                )
        except TimeoutError as exc:
            raise httpx.TimeoutException(
                f"GET {url} did not complete within {deadline:g}s"
            ) from exc
        resp.raise_for_status()
        return resp.text

    def describe(self) -> str:
        """Human-readable description of this adapter (for logs and diagnostics)."""
        return f"Async HTTP adapter via 'httpx' (timeout={self._default_timeout:g}s)"

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


__all__ = ["DEFAULT_USER_AGENT", "DEFAULT_TIMEOUT", "HttpxAdapter"]
