"""
Response model and wire serialization.

Responses are always written as a single byte sequence: status line, the two
fixed headers, a blank line and the JSON body.
"""

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger("bankserver")


@dataclass(frozen=True)
class Response:
    """A status/body pair produced once per handled connection."""
    status_code: int
    status_phrase: str
    body: str

    @classmethod
    def ok(cls, body: str) -> "Response":
        return cls(200, "OK", body)


def encode_response(response: Response) -> bytes:
    """Serialize a response into its wire form.

    ``Content-Length`` is the UTF-8 byte length of the body, not its
    character count.
    """
    body = response.body.encode("utf-8")
    head = (
        f"HTTP/1.1 {response.status_code} {response.status_phrase}\r\n"
        f"Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        f"\r\n"
    ).encode("utf-8")
    return head + body


async def write_response(writer: asyncio.StreamWriter, response: Response) -> int:
    """Write a response to the client.

    Returns:
        Number of bytes written, or 0 if the connection failed and the
        response was abandoned.
    """
    data = encode_response(response)
    try:
        writer.write(data)
        await writer.drain()
    except (ConnectionError, OSError) as e:
        logger.warning(f"Failed to write response: {e}")
        return 0
    return len(data)
