"""Encoding and decoding of Google API batch requests.

A batch call is one ``multipart/mixed`` POST whose parts each embed a full
HTTP request (``Content-Type: application/http``). The response mirrors it:
one part per sub-request, each holding an HTTP status line, headers and a
JSON body, matched back through ``Content-ID``.
"""

from __future__ import annotations

import email
import json
import re
from dataclasses import dataclass, field
from email.message import Message
from typing import Any
from urllib.parse import quote

API_PATH_PREFIX = "/webmasters/v3"

_STATUS_LINE = re.compile(r"^HTTP/\d(?:\.\d)?\s+(\d{3})")
_RESPONSE_PREFIX = "response-"


@dataclass(frozen=True)
class BatchPart:
    """One Search Analytics query inside a batch request.

    Attributes:
        correlation_id: Key matching the part to its response part.
        site_url: Property URL the query targets.
        body: searchAnalytics/query JSON body.
    """

    correlation_id: str
    site_url: str
    body: dict[str, Any]

    @property
    def path(self) -> str:
        """Request path of the embedded query."""
        site = quote(self.site_url, safe="")
        return f"{API_PATH_PREFIX}/sites/{site}/searchAnalytics/query"


@dataclass(frozen=True)
class BatchPartResponse:
    """Decoded response part of a batch call.

    Attributes:
        correlation_id: Content-ID of the originating request part.
        status_code: Embedded HTTP status (0 when no status line was found).
        headers: Embedded HTTP headers.
        body: Decoded JSON body, or the raw text if it was not JSON.
    """

    correlation_id: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def ok(self) -> bool:
        """Whether the part is a 2xx response with a JSON object body."""
        return 200 <= self.status_code < 300 and isinstance(self.body, dict)


def encode_batch(parts: list[BatchPart], boundary: str) -> bytes:
    """Serialize parts into a multipart/mixed batch body.

    Args:
        parts: Queries to embed, in order.
        boundary: Multipart boundary (must not occur in any part).

    Returns:
        Request body bytes (CRLF line endings).
    """
    lines: list[str] = []
    for part in parts:
        payload = json.dumps(part.body, separators=(",", ":"))
        lines.extend(
            [
                f"--{boundary}",
                "Content-Type: application/http",
                "Content-Transfer-Encoding: binary",
                f"Content-ID: <{part.correlation_id}>",
                "",
                f"POST {part.path}",
                "Content-Type: application/json",
                f"Content-Length: {len(payload.encode())}",
                "",
                payload,
            ]
        )
    lines.append(f"--{boundary}--")
    lines.append("")
    return "\r\n".join(lines).encode()


def _correlation_id(part: Message) -> str:
    content_id = (part.get("Content-ID") or "").strip().strip("<>")
    if content_id.startswith(_RESPONSE_PREFIX):
        content_id = content_id[len(_RESPONSE_PREFIX) :]
    return content_id


def _split_head(text: str) -> tuple[str, str]:
    match = re.search(r"\r?\n\r?\n", text)
    if match is None:
        return text, ""
    return text[: match.start()], text[match.end() :]


def _parse_embedded_response(raw: bytes) -> tuple[int, dict[str, str], Any]:
    text = raw.decode("utf-8", errors="replace").lstrip("\r\n")
    head, body_text = _split_head(text)
    head_lines = head.splitlines()
    if not head_lines:
        return 0, {}, None

    match = _STATUS_LINE.match(head_lines[0])
    status_code = int(match.group(1)) if match else 0

    headers: dict[str, str] = {}
    for line in head_lines[1:]:
        name, sep, value = line.partition(":")
        if sep:
            headers[name.strip()] = value.strip()

    body_text = body_text.strip()
    body: Any = None
    if body_text:
        try:
            body = json.loads(body_text)
        except json.JSONDecodeError:
            body = body_text
    return status_code, headers, body


def decode_batch(content: bytes, content_type: str) -> dict[str, BatchPartResponse]:
    """Split a multipart/mixed batch response into its parts.

    Args:
        content: Raw response body.
        content_type: Response Content-Type header (carries the boundary).

    Returns:
        Mapping of correlation id to decoded part. Parts without a
        Content-ID are dropped; parts without a status line decode to
        status 0.

    Raises:
        ValueError: If the response is not multipart.
    """
    if "multipart" not in content_type.lower():
        raise ValueError(f"Expected a multipart batch response, got {content_type!r}")

    envelope = f"Content-Type: {content_type}\r\n\r\n".encode() + content
    message = email.message_from_bytes(envelope)
    if not message.is_multipart():
        raise ValueError("Batch response has no parts")

    responses: dict[str, BatchPartResponse] = {}
    for part in message.get_payload():
        correlation_id = _correlation_id(part)
        if not correlation_id:
            continue
        raw = part.get_payload(decode=True)
        if not isinstance(raw, bytes):
            raw = str(part.get_payload()).encode()
        status_code, headers, body = _parse_embedded_response(raw)
        responses[correlation_id] = BatchPartResponse(
            correlation_id=correlation_id,
            status_code=status_code,
            headers=headers,
            body=body,
        )
    return responses
