"""
Contract between the wire-protocol core and the banking service.

The core hands each routed request to the service as a ``RequestContext``
and expects back either a ``Response`` or a raised ``BankServerError``.
Implementations are shared by every connection task and must be safe to
call concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

from bankserver.core.responses import Response


@dataclass(frozen=True)
class RequestContext:
    """Request data passed opaquely to the banking service."""
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


class BankingService(ABC):
    """Business operations reachable through the wire protocol."""

    @abstractmethod
    async def get_balance(self, ctx: RequestContext) -> Response:
        """Return the caller's balance. Credentials come from ``ctx.headers``."""

    @abstractmethod
    async def signup(self, ctx: RequestContext) -> Response:
        """Create an account from the JSON body."""

    @abstractmethod
    async def signin(self, ctx: RequestContext) -> Response:
        """Authenticate an existing account from the JSON body."""

    @abstractmethod
    async def transfer_money(self, ctx: RequestContext) -> Response:
        """Move money from the authenticated caller to another account."""
