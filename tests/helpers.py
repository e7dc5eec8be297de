"""Test helpers: fake clock and Search Console wire builders."""

from __future__ import annotations

import json
from typing import Any

import httpx


class FakeClock:
    """Manually advanced monotonic clock; sleeping advances it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def gsc_row(
    *keys: str,
    clicks: int = 1,
    impressions: int = 10,
    ctr: float = 0.1,
    position: float = 3.0,
) -> dict[str, Any]:
    """Build one raw upstream Search Analytics row."""
    return {
        "keys": list(keys),
        "clicks": clicks,
        "impressions": impressions,
        "ctr": ctr,
        "position": position,
    }


def batch_response(
    parts: list[tuple[str, int, Any]], boundary: str = "batch_resp"
) -> httpx.Response:
    """Build a multipart/mixed batch response.

    Args:
        parts: (correlation id, embedded status, JSON body) per part.
        boundary: Multipart boundary.
    """
    chunks: list[str] = []
    for correlation_id, status, body in parts:
        chunks.append(
            f"--{boundary}\r\n"
            "Content-Type: application/http\r\n"
            f"Content-ID: <response-{correlation_id}>\r\n"
            "\r\n"
            f"HTTP/1.1 {status} STATUS\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n"
            "\r\n"
            f"{json.dumps(body)}\r\n"
        )
    chunks.append(f"--{boundary}--\r\n")
    return httpx.Response(
        200,
        content="".join(chunks).encode(),
        headers={"Content-Type": f"multipart/mixed; boundary={boundary}"},
    )


def batch_bodies(request: httpx.Request) -> dict[str, dict[str, Any]]:
    """Map correlation id to the embedded JSON body of each batch part."""
    bodies: dict[str, dict[str, Any]] = {}
    current: str | None = None
    for line in request.content.decode().split("\r\n"):
        if line.startswith("Content-ID: <"):
            current = line[len("Content-ID: <") : -1]
        elif line.startswith("{") and current is not None:
            bodies[current] = json.loads(line)
            current = None
    return bodies


def query_body(request: httpx.Request) -> dict[str, Any]:
    """Decode the JSON body of a direct searchAnalytics/query request."""
    body: dict[str, Any] = json.loads(request.content)
    return body


def respond_to_queries(
    handler: Any,
) -> Any:
    """Wrap a per-query handler into a transport handler.

    ``handler(body)`` receives each logical query body and returns
    ``(status, json_body)``. Direct queries and batch parts are both
    routed through it, so tests can ignore how the scheduler grouped them.
    """

    def transport_handler(request: httpx.Request) -> httpx.Response:
        if "/batch/" in request.url.path:
            parts = [
                (correlation_id, *handler(body))
                for correlation_id, body in batch_bodies(request).items()
            ]
            return batch_response(parts)
        status, body = handler(query_body(request))
        return httpx.Response(status, json=body)

    return transport_handler
