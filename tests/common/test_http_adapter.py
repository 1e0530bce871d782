from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Callable

import httpx
import pytest

from listadofondos.common.http_adapter import DEFAULT_USER_AGENT, HttpxAdapter

Handler = Callable[[httpx.Request], httpx.Response]

# ----- helpers ---------------------------------------------------------------


def _fetch(
    handler: Handler, url: str, **kwargs: object
) -> tuple[str, list[httpx.Request]]:
    """Run one fetch through a MockTransport, returning (body, seen requests)."""
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    async def _run() -> str:
        adapter = HttpxAdapter(
            default_headers={"X-Trace": "t-1"},
            transport=httpx.MockTransport(_record),
        )
        try:
            return await adapter.fetch_text(url, **kwargs)  # type: ignore[arg-type]
        finally:
            await adapter.aclose()

    return asyncio.run(_run()), seen


# ----- tests -----------------------------------------------------------------


def test_fetch_text_success_and_default_headers() -> None:
    body, seen = _fetch(
        lambda req: httpx.Response(200, text="<html>ok ñ</html>"),
        "https://example.test/snapshot.aspx?tab=1",
    )
    assert body == "<html>ok ñ</html>"
    assert len(seen) == 1
    req = seen[0]
    assert req.method == "GET"
    assert req.headers["User-Agent"] == DEFAULT_USER_AGENT
    assert req.headers["X-Trace"] == "t-1"
    assert req.url.params["tab"] == "1"


def test_per_request_headers_override_defaults() -> None:
    _, seen = _fetch(
        lambda req: httpx.Response(200, text=""),
        "https://example.test/",
        headers={"X-Trace": "t-2"},
    )
    assert seen[0].headers["X-Trace"] == "t-2"


def test_redirects_are_followed() -> None:
    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.path == "/old":
            return httpx.Response(302, headers={"Location": "https://example.test/new"})
        return httpx.Response(200, text="moved")

    body, seen = _fetch(handler, "https://example.test/old")
    assert body == "moved"
    assert [r.url.path for r in seen] == ["/old", "/new"]


def test_http_error_raises() -> None:
    with pytest.raises(httpx.HTTPStatusError):
        _fetch(lambda req: httpx.Response(503, text="busy"), "https://example.test/")


def _trickle(pieces: int, delay: float) -> httpx.MockTransport:
    """Transport whose body arrives one byte at a time, `delay` apart."""

    async def body() -> AsyncIterator[bytes]:
        for _ in range(pieces):
            await asyncio.sleep(delay)
            yield b"x"

    return httpx.MockTransport(lambda req: httpx.Response(200, content=body()))


def _timed_fetch(adapter: HttpxAdapter, **kwargs: object) -> float:
    """Fetch expecting a timeout; return the elapsed seconds."""

    async def _run() -> None:
        try:
            await adapter.fetch_text("https://example.test/", **kwargs)  # type: ignore[arg-type]
        finally:
            await adapter.aclose()

    started = time.monotonic()
    with pytest.raises(httpx.TimeoutException):
        asyncio.run(_run())
    return time.monotonic() - started


def test_slow_body_hits_total_deadline() -> None:
    adapter = HttpxAdapter(transport=_trickle(pieces=8, delay=0.2))
    assert _timed_fetch(adapter, timeout=0.3) < 1.0


def test_default_timeout_is_total_deadline() -> None:
    adapter = HttpxAdapter(default_timeout=0.3, transport=_trickle(pieces=8, delay=0.2))
    assert _timed_fetch(adapter) < 1.0


def test_slow_body_within_deadline_succeeds() -> None:
    async def _run() -> str:
        adapter = HttpxAdapter(transport=_trickle(pieces=3, delay=0.01))
        try:
            return await adapter.fetch_text("https://example.test/", timeout=5)
        finally:
            await adapter.aclose()

    assert asyncio.run(_run()) == "xxx"


def test_empty_url_rejected() -> None:
    with pytest.raises(ValueError):
        _fetch(lambda req: httpx.Response(200), "")


def test_defaults_are_exposed_read_only() -> None:
    adapter = HttpxAdapter(user_agent="ua/1.0", default_timeout=7)
    try:
        assert adapter.default_headers["User-Agent"] == "ua/1.0"
        assert adapter.default_timeout == 7.0
        assert "7s" in adapter.describe()
        with pytest.raises(TypeError):
            adapter.default_headers["User-Agent"] = "x"  # type: ignore[index]
    finally:
        asyncio.run(adapter.aclose())
