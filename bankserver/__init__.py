from .core import (
    BankServer, ConnectionHandler, HTTPParser, ParsedRequest, Response,
    FailureTag, BankServerError
)
from .service import BankingService, RequestContext, InMemoryBankingService

__version__ = '1.0.0'

__all__ = [
    # Core components
    'BankServer',
    'ConnectionHandler',
    'HTTPParser',
    'ParsedRequest',
    'Response',

    # Failures
    'FailureTag',
    'BankServerError',

    # Banking service
    'BankingService',
    'RequestContext',
    'InMemoryBankingService',
]
