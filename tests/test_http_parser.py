#!/usr/bin/env python3
"""
Test suite for the line-based request parser
"""
import asyncio

import pytest

from bankserver.core.errors import InvalidRequestError
from bankserver.core.http_parser import HTTPParser, content_length


def make_reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


@pytest.mark.asyncio
async def test_parses_full_request():
    parser = HTTPParser("bank")
    body = '{"username":"a","password":"p"}'
    raw = (
        "POST /bank/signup HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "X-Trace-Id: abc\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
        f"{body}"
    ).encode()

    request = await parser.parse(make_reader(raw))

    assert request.method == "POST"
    assert request.path == "signup"
    assert request.headers == {
        "Host": "localhost",
        "X-Trace-Id": "abc",
        "Content-Length": str(len(body)),
    }
    assert request.body == body


@pytest.mark.asyncio
async def test_header_keys_keep_client_casing():
    parser = HTTPParser("bank")
    raw = b"GET /bank/money HTTP/1.1\r\nauthorization: Bearer t\r\n\r\n"
    request = await parser.parse(make_reader(raw))
    assert "authorization" in request.headers
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_body_absent_without_content_length():
    parser = HTTPParser("bank")
    raw = b"POST /bank/signin HTTP/1.1\r\nHost: x\r\n\r\nignored"
    request = await parser.parse(make_reader(raw))
    assert request.body is None


@pytest.mark.asyncio
async def test_body_reads_exactly_content_length_bytes():
    parser = HTTPParser("bank")
    raw = b"POST /bank/money HTTP/1.1\r\nContent-Length: 4\r\n\r\nabcdEXTRA"
    reader = make_reader(raw)
    request = await parser.parse(reader)
    assert request.body == "abcd"
    # Nothing past the declared body is consumed
    assert await reader.read() == b"EXTRA"


@pytest.mark.asyncio
async def test_body_length_counts_bytes_not_characters():
    parser = HTTPParser("bank")
    body = '{"to":"zü"}'
    encoded = body.encode("utf-8")
    raw = b"POST /bank/money HTTP/1.1\r\nContent-Length: " + str(len(encoded)).encode() + b"\r\n\r\n" + encoded
    request = await parser.parse(make_reader(raw))
    assert request.body == body


@pytest.mark.asyncio
async def test_bare_newline_terminators_accepted():
    parser = HTTPParser("bank")
    raw = b"GET /bank/money HTTP/1.1\nHost: x\n\n"
    request = await parser.parse(make_reader(raw))
    assert request.path == "money"
    assert request.headers == {"Host": "x"}


@pytest.mark.asyncio
async def test_query_string_is_stripped():
    parser = HTTPParser("bank")
    request = await parser.parse(make_reader(b"GET /bank/money?x=1 HTTP/1.1\r\n\r\n"))
    assert request.path == "money"


@pytest.mark.asyncio
async def test_empty_base_path_uses_first_segment():
    parser = HTTPParser("")
    request = await parser.parse(make_reader(b"GET /money HTTP/1.1\r\n\r\n"))
    assert request.path == "money"


@pytest.mark.asyncio
async def test_value_containing_separator_is_kept_whole():
    parser = HTTPParser("bank")
    raw = b"GET /bank/money HTTP/1.1\r\nX-Note: a: b\r\n\r\n"
    request = await parser.parse(make_reader(raw))
    assert request.headers["X-Note"] == "a: b"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw, message", [
    (b"", "Invalid http request start line."),
    (b"GET\r\n\r\n", "Invalid http request start line."),
    (b"GET /other/money HTTP/1.1\r\n\r\n", "Unknown request URL."),
    (b"GET /Bank/money HTTP/1.1\r\n\r\n", "Unknown request URL."),
    (b"GET /bank HTTP/1.1\r\n\r\n", "Invalid http request start line."),
    (b"GET /bank/money HTTP/1.1\r\nBroken-Header\r\n\r\n", "Invalid http header line."),
    (b"GET /bank/money HTTP/1.1\r\nNo-Space:value\r\n\r\n", "Invalid http header line."),
    (b"GET /bank/money HTTP/1.1\r\nHost: x\r\n", "Incomplete request headers"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: abc\r\n\r\n", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: -1\r\n\r\n", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: 1_0\r\n\r\n0123456789", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: +5\r\n\r\nabcde", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length:  5\r\n\r\nabcde", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: 5 \r\n\r\nabcde", "Invalid Content-Length"),
    ("POST /bank/signup HTTP/1.1\r\nContent-Length: \u0665\r\n\r\nabcde".encode(), "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: \r\n\r\n", "Invalid Content-Length"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort", "Incomplete request body"),
    (b"POST /bank/signup HTTP/1.1\r\nContent-Length: 2\r\n\r\n\xff\xfe", "Invalid request encoding"),
])
async def test_malformed_requests(raw, message):
    parser = HTTPParser("bank")
    with pytest.raises(InvalidRequestError) as exc_info:
        await parser.parse(make_reader(raw))
    assert exc_info.value.message == message


@pytest.mark.asyncio
async def test_too_many_headers():
    parser = HTTPParser("bank")
    lines = "".join(f"X-H{i}: v\r\n" for i in range(HTTPParser.MAX_HEADERS + 1))
    raw = f"GET /bank/money HTTP/1.1\r\n{lines}\r\n".encode()
    with pytest.raises(InvalidRequestError):
        await parser.parse(make_reader(raw))


@pytest.mark.asyncio
async def test_oversized_body_rejected_before_reading():
    parser = HTTPParser("bank")
    raw = f"POST /bank/signup HTTP/1.1\r\nContent-Length: {HTTPParser.MAX_BODY_SIZE + 1}\r\n\r\n".encode()
    with pytest.raises(InvalidRequestError) as exc_info:
        await parser.parse(make_reader(raw))
    assert exc_info.value.message == "Request body too large"


def test_content_length_lookup_ignores_case():
    assert content_length({"content-length": "5"}) == "5"
    assert content_length({"Content-Length": "7"}) == "7"
    assert content_length({"Host": "x"}) is None
