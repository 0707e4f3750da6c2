"""
Listener for the bank wire server.

This module binds the listening socket and runs the accept loop:
- One asyncio task per accepted connection, spawned immediately
- Accept errors are logged and never stop the loop
- Graceful shutdown waits for in-flight connections
"""

import asyncio
import logging
import socket
from typing import Optional, Set

from bankserver.features.metrics import start_metrics_server
from bankserver.service.base import BankingService
from .request_handler import ConnectionHandler
from .server_utils import (
    ServerConfigError, configure_logging, configure_socket_opts, logger, run_event_loop
)


def _validate_port(port, name: str = "Port") -> None:
    if not isinstance(port, int) or isinstance(port, bool):
        raise ValueError(f"{name} must be an integer")
    if port < 0 or port > 65535:
        raise ValueError(f"{name} number must be between 0 and 65535")


class BankServer:
    """Raw TCP server speaking the bank wire protocol.

    Attributes:
        service: Banking service shared by all connections
        host: Host address to bind to
        port: Port number to listen on
        base_path: First path segment every request target must carry
        backlog: Listen backlog for the accepting socket
        metrics_port: Optional port for the Prometheus exporter
    """

    def __init__(
        self,
        service: BankingService,
        host: str = "127.0.0.1",
        port: int = 8000,
        base_path: str = "bank",
        backlog: int = 2048,
        metrics_port: Optional[int] = None,
        log_level: int = logging.INFO,
        log_file: Optional[str] = None,
    ):
        self.service = service
        self.host = host

        _validate_port(port)
        self.port = port

        if not isinstance(base_path, str):
            raise ValueError("Base path must be a string")
        if "/" in base_path.strip("/"):
            raise ValueError("Base path must be a single path segment")
        self.base_path = base_path.strip("/")

        if not isinstance(backlog, int):
            raise ValueError("Backlog must be an integer")
        if backlog < 1:
            raise ValueError("Backlog must be at least 1")
        self.backlog = backlog

        if metrics_port is not None:
            _validate_port(metrics_port, "Metrics port")
        self.metrics_port = metrics_port

        self.log_level = log_level
        self.log_file = log_file

        self._sock: Optional[socket.socket] = None
        self._serving = False
        self._accept_task: Optional[asyncio.Task] = None
        self._active_connections: Set[asyncio.Task] = set()

    @property
    def address(self):
        """Bound ``(host, port)``; the real port when bound to port 0."""
        if self._sock is None:
            return self.host, self.port
        return self._sock.getsockname()[:2]

    def run(self) -> None:
        """Configure logging and metrics, then serve until interrupted."""
        configure_logging(self.log_level, self.log_file)
        if self.metrics_port is not None:
            start_metrics_server(self.metrics_port, self.host)
        try:
            run_event_loop(self._serve_forever())
        except KeyboardInterrupt:
            logger.info("Server interrupted, stopping")

    async def _serve_forever(self) -> None:
        await self.listen()
        try:
            await self.serve()
        finally:
            await self.shutdown()

    async def listen(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Bind and listen on the TCP socket.

        Raises:
            ServerConfigError: If the socket cannot be bound
        """
        if host is not None:
            self.host = host
        if port is not None:
            _validate_port(port)
            self.port = port

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            configure_socket_opts(sock)
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except (OSError, ServerConfigError) as e:
            sock.close()
            logger.error(f"Error while starting server on {self.host}:{self.port}: {e}")
            raise ServerConfigError(f"Failed to bind {self.host}:{self.port}") from e
        sock.setblocking(False)
        self._sock = sock

        host, port = self.address
        logger.info("Serving on %s:%s base path /%s", host, port, self.base_path)

    async def serve(self) -> None:
        """Accept connections until ``shutdown`` closes the listening socket."""
        if self._sock is None:
            raise ServerConfigError("Server is not listening; call listen() first")

        loop = asyncio.get_running_loop()
        self._accept_task = asyncio.current_task()
        self._serving = True
        while self._serving and self._sock is not None:
            try:
                client_sock, _ = await loop.sock_accept(self._sock)
            except OSError as e:
                if not self._serving:
                    break
                logger.error(f"Error accepting connection: {e}")
                continue

            task = asyncio.create_task(self._handle_client(client_sock))
            self._active_connections.add(task)
            task.add_done_callback(self._active_connections.discard)

    async def _handle_client(self, client_sock: socket.socket) -> None:
        writer = None
        try:
            reader, writer = await asyncio.open_connection(sock=client_sock)
            handler = ConnectionHandler(self.service, self.base_path)
            await handler.handle_connection(reader, writer)
        except Exception:
            logger.exception("Connection handler raised an unexpected exception")
        finally:
            if writer is None:
                client_sock.close()

    async def shutdown(self) -> None:
        """Stop accepting and wait for in-flight connections to finish."""
        self._serving = False

        # The accept loop must stop waiting on the socket before it is closed
        task = self._accept_task
        self._accept_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._sock is not None:
            self._sock.close()
            self._sock = None

        if self._active_connections:
            logger.info(f"Waiting for {len(self._active_connections)} active connections to complete...")
            await asyncio.wait(list(self._active_connections))
        logger.info("Server shutdown complete")
