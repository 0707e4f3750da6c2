"""
Per-connection request handling for the bank wire server.

This module provides the connection pipeline:
- Request parsing via ``HTTPParser``
- Method/route dispatch to the banking service
- Failure classification into status responses
- Writing exactly one response, then closing the connection
"""

import asyncio
import time
import uuid
from enum import Enum
from typing import Optional

from bankserver.features.metrics import REQ_FAILURES, REQ_IN_FLIGHT, REQ_LATENCY, REQ_TOTAL
from bankserver.service.base import BankingService, RequestContext
from .errors import (
    BankServerError, BodyDeserializationError, InvalidRequestError,
    MethodNotAllowedError, ResourceNotFoundError, error_response,
    internal_error_response
)
from .http_parser import HTTPParser, ParsedRequest
from .responses import Response, write_response
from .server_utils import access_log_payload, logger


class RouteTarget(Enum):
    GET_BALANCE = "get_balance"
    SIGNUP = "signup"
    SIGNIN = "signin"
    TRANSFER_MONEY = "transfer_money"


GET_ROUTES = {"money": RouteTarget.GET_BALANCE}
POST_ROUTES = {
    "money": RouteTarget.TRANSFER_MONEY,
    "signup": RouteTarget.SIGNUP,
    "signin": RouteTarget.SIGNIN,
}


def method_label(method: str) -> str:
    """Metric label for a request method, bucketed so clients cannot mint series."""
    normalized = method.upper()
    return normalized if normalized in ("GET", "POST") else "OTHER"


def resolve_route(method: str, path: str) -> RouteTarget:
    """Map ``(method, path)`` to a route.

    Raises:
        MethodNotAllowedError: For anything but GET and POST
        ResourceNotFoundError: For an unknown path under a supported method
    """
    normalized = method.upper()
    if normalized == "GET":
        routes = GET_ROUTES
    elif normalized == "POST":
        routes = POST_ROUTES
    else:
        raise MethodNotAllowedError(f"Method {method} not allowed.")

    target = routes.get(path)
    if target is None:
        raise ResourceNotFoundError(f'Resource not found "{path}"')
    return target


class ConnectionHandler:
    """Handles one accepted connection from first byte to close."""

    def __init__(self, service: BankingService, base_path: str = ""):
        self.service = service
        self.parser = HTTPParser(base_path)

    async def handle_connection(self,
                                reader: asyncio.StreamReader,
                                writer: asyncio.StreamWriter) -> Optional[Response]:
        """Process a single request and write its response.

        Returns:
            The response that was sent, or None if the handler itself failed
            before a response could be composed.
        """
        peer = writer.get_extra_info("peername")
        client = f"{peer[0]}:{peer[1]}" if peer else "unknown"
        request_id = str(uuid.uuid4())
        start_time = time.perf_counter()
        method, path = "-", "-"
        response = None

        REQ_IN_FLIGHT.inc()
        try:
            try:
                request = await self.parser.parse(reader)
                method, path = request.method, request.path
                response = await self.dispatch(request)
            except BankServerError as e:
                REQ_FAILURES.labels(tag=e.tag.value).inc()
                response = error_response(e)
            except Exception:
                logger.exception("Unexpected error while handling request from %s", client)
                response = internal_error_response()

            length = await write_response(writer, response)

            duration = time.perf_counter() - start_time
            REQ_TOTAL.labels(method=method_label(method), status=str(response.status_code)).inc()
            REQ_LATENCY.observe(duration)
            payload = access_log_payload(method, path, response.status_code, length,
                                         duration, client, request_id)
            logger.info("request handled", extra=payload)
            return response
        finally:
            REQ_IN_FLIGHT.dec()
            await self._close(writer)

    async def dispatch(self, request: ParsedRequest) -> Response:
        """Route a parsed request to the banking service."""
        if request.method.upper() == "POST" and not request.body:
            raise InvalidRequestError("Body is empty")

        target = resolve_route(request.method, request.path)
        ctx = RequestContext(
            method=request.method,
            path=request.path,
            headers=request.headers,
            body=request.body,
        )

        try:
            if target is RouteTarget.GET_BALANCE:
                return await self.service.get_balance(ctx)
            if target is RouteTarget.TRANSFER_MONEY:
                return await self.service.transfer_money(ctx)
            if target is RouteTarget.SIGNUP:
                return await self.service.signup(ctx)
            return await self.service.signin(ctx)
        except BodyDeserializationError:
            raise InvalidRequestError("Error while serialization body")

    async def _close(self, writer: asyncio.StreamWriter) -> None:
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionError, OSError):
            logger.debug("Error closing writer", exc_info=True)
