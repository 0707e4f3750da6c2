"""
Banking service contract and the in-memory reference implementation
"""

from .base import BankingService, RequestContext
from .memory import InMemoryBankingService

__all__ = ["BankingService", "RequestContext", "InMemoryBankingService"]
