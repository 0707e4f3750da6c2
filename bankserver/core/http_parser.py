"""
Line-based request parser for the bank wire protocol.

This module reads exactly one request from a connection's stream:
- Start line: ``<METHOD> /<base>/<path> HTTP/x.x``
- Header lines: ``<Name>: <value>`` until a blank line
- Body: exactly ``Content-Length`` bytes, only when that header is present

Every malformed input raises ``InvalidRequestError``; nothing is retried and
nothing is read past the declared body.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import InvalidRequestError


@dataclass
class ParsedRequest:
    """A single parsed request, alive only while its connection is handled."""
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


class HTTPParser:
    """Parses one request from an ``asyncio.StreamReader``.

    The base path is the first segment every request target must start with.
    An empty base path means targets carry the route segment directly.
    Matching is case-sensitive and covers a single segment only.

    Constants:
        MAX_BODY_SIZE: Maximum allowed request body size (10MB)
        MAX_HEADERS: Maximum number of header lines per request (100)
    """
    MAX_BODY_SIZE = 10485760
    MAX_HEADERS = 100
    HEADER_SEPARATOR = ": "

    def __init__(self, base_path: str = ""):
        self.base_path = base_path.strip("/")

    async def parse(self, reader: asyncio.StreamReader) -> ParsedRequest:
        """Read start line, headers and body, in that order."""
        method, path = await self.parse_start_line(reader)
        headers = await self.parse_headers(reader)
        body = await self.read_body(reader, headers)
        return ParsedRequest(method=method, path=path, headers=headers, body=body)

    async def parse_start_line(self, reader: asyncio.StreamReader):
        """Return ``(method, path)`` from the request line."""
        line = await self._read_line(reader)
        if line is None:
            raise InvalidRequestError("Invalid http request start line.")

        parts = line.split(" ")
        if len(parts) < 2 or not parts[0]:
            raise InvalidRequestError("Invalid http request start line.")

        method = parts[0]
        return method, self._route_segment(parts[1])

    def _route_segment(self, target: str) -> str:
        """Extract the path segment that follows the base segment."""
        target = target.split("?", 1)[0]
        if target.startswith("/"):
            target = target[1:]
        segments = target.split("/")

        if self.base_path:
            if segments[0] != self.base_path:
                raise InvalidRequestError("Unknown request URL.")
            segments = segments[1:]

        if not segments:
            raise InvalidRequestError("Invalid http request start line.")
        return segments[0]

    async def parse_headers(self, reader: asyncio.StreamReader) -> Dict[str, str]:
        """Read header lines up to the blank end-of-headers line."""
        headers: Dict[str, str] = {}
        count = 0
        while True:
            line = await self._read_line(reader)
            if line is None:
                raise InvalidRequestError("Incomplete request headers")
            if not line:
                return headers

            count += 1
            if count > self.MAX_HEADERS:
                raise InvalidRequestError("Too many headers")

            parts = line.split(self.HEADER_SEPARATOR, 1)
            if len(parts) != 2 or not parts[0]:
                raise InvalidRequestError("Invalid http header line.")
            headers[parts[0]] = parts[1]

    async def read_body(self, reader: asyncio.StreamReader,
                        headers: Dict[str, str]) -> Optional[str]:
        """Read exactly ``Content-Length`` bytes, or nothing if it is absent."""
        raw_length = content_length(headers)
        if raw_length is None:
            return None

        # ASCII decimal digits only
        if not (raw_length.isascii() and raw_length.isdigit()):
            raise InvalidRequestError("Invalid Content-Length")
        length = int(raw_length)
        if length > self.MAX_BODY_SIZE:
            raise InvalidRequestError("Request body too large")

        try:
            data = await reader.readexactly(length)
        except asyncio.IncompleteReadError:
            raise InvalidRequestError("Incomplete request body")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidRequestError("Invalid request encoding")

    async def _read_line(self, reader: asyncio.StreamReader) -> Optional[str]:
        """Read one line without its terminator.

        Returns None when the stream ends before a full line arrives.
        """
        try:
            raw = await reader.readline()
        except ValueError:
            # StreamReader's line limit was exceeded
            raise InvalidRequestError("Request line too long")

        if not raw.endswith(b"\n"):
            return None

        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidRequestError("Invalid request encoding")
        return line.rstrip("\r\n")


def content_length(headers: Dict[str, str]) -> Optional[str]:
    """Look up the Content-Length header regardless of the client's casing."""
    for name, value in headers.items():
        if name.lower() == "content-length":
            return value
    return None
