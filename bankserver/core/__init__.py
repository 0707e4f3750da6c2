"""
Core server components
"""

from .errors import FailureTag, BankServerError, classify
from .responses import Response, encode_response
from .http_parser import HTTPParser, ParsedRequest
from .request_handler import ConnectionHandler, RouteTarget
from .server_core import BankServer

# Expose public interface
__all__ = [
    "FailureTag", "BankServerError", "classify",
    "Response", "encode_response",
    "HTTPParser", "ParsedRequest",
    "ConnectionHandler", "RouteTarget",
    "BankServer",
]
