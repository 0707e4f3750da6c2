"""
Utility functions for bank server configuration and operation.

This module provides:
- Structured JSON logging setup
- Event loop selection (uvloop on POSIX)
- Socket configuration for the listening socket
- Access log payload construction
"""

import asyncio
import logging
import socket
import sys
from typing import Any, Coroutine, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

if sys.platform != "win32":
    import uvloop

logger = logging.getLogger("bankserver")


class ServerConfigError(Exception):
    """Custom exception for server configuration errors"""

    pass


def configure_logging(level=logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """Configure JSON logging for the bank server.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to log file

    Returns:
        Configured logger instance

    Calling this more than once only updates the level; handlers are added
    the first time.
    """
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def run_event_loop(main: Coroutine) -> Any:
    """Run ``main`` to completion, on uvloop where the platform supports it."""
    if sys.platform != "win32":
        logger.info("Using uvloop event loop")
        return uvloop.run(main)
    return asyncio.run(main)


def configure_socket_opts(sock: socket.socket) -> None:
    """Configure options on the listening socket.

    Args:
        sock: Socket instance to configure

    Raises:
        ServerConfigError: If the options cannot be set
    """
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "TCP_NODELAY"):
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
    except OSError as e:
        logger.error(f"Failed to configure socket options: {e}")
        raise ServerConfigError("Socket configuration failed")


def access_log_payload(method: str, path: str, status: int, length: int,
                       duration: float, client: str, request_id: str) -> Dict[str, Any]:
    return {
        "method": method,
        "path": path,
        "status": status,
        "length": length,
        "duration_s": round(duration, 6),
        "client": client,
        "request_id": request_id,
    }
