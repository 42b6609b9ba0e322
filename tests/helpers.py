"""HTTP doubles shared by the test modules."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx


def make_response(
    status_code: int = 200,
    payload: Any = None,
    *,
    url: str = "https://example.test/",
    method: str = "GET",
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    request = httpx.Request(method, url)
    if text is not None:
        return httpx.Response(status_code, text=text, headers=headers, request=request)
    return httpx.Response(status_code, json=payload, headers=headers, request=request)


class FakeHTTP:
    """Stands in for the shared HTTP client; every verb is an AsyncMock."""

    def __init__(self) -> None:
        self.get = AsyncMock(return_value=make_response(404, {}))
        self.post = AsyncMock(return_value=make_response(404, {}))
        self.head = AsyncMock(return_value=make_response(404, {}))
