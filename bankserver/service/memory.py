"""
In-memory reference implementation of the banking service.

Accounts, balances and session tokens live in plain dictionaries guarded by
one ``asyncio.Lock``, which is enough to make concurrent signup, signin,
transfer and balance calls from many connection tasks consistent. Nothing is
persisted; a restart loses every account.
"""

import asyncio
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from typing import Dict

from bankserver.core.errors import (
    AuthenticationError, InsufficientFundsError, MalformedArgumentError,
    NoSuchUserError, UserAlreadyExistsError
)
from bankserver.core.responses import Response
from .base import BankingService, RequestContext
from .models import SigninRequest, SignupRequest, TransferRequest, bearer_token


@dataclass
class Account:
    username: str
    salt: bytes
    password_hash: bytes
    balance: int


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.sha256(salt + password.encode("utf-8")).digest()


class InMemoryBankingService(BankingService):
    """Concurrency-safe in-memory bank.

    Args:
        opening_balance: Balance credited to every new account
    """

    def __init__(self, opening_balance: int = 100):
        if not isinstance(opening_balance, int) or opening_balance < 0:
            raise ValueError("Opening balance must be a non-negative integer")
        self.opening_balance = opening_balance
        self._accounts: Dict[str, Account] = {}
        self._sessions: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def signup(self, ctx: RequestContext) -> Response:
        request = SignupRequest.from_body(ctx.body)
        if not request.username or not request.password:
            raise MalformedArgumentError("Username and password must not be empty")

        async with self._lock:
            if request.username in self._accounts:
                raise UserAlreadyExistsError("User already exists")
            salt = secrets.token_bytes(16)
            self._accounts[request.username] = Account(
                username=request.username,
                salt=salt,
                password_hash=_hash_password(request.password, salt),
                balance=self.opening_balance,
            )
            token = self._issue_token(request.username)
        return Response.ok(json.dumps({"token": token}))

    async def signin(self, ctx: RequestContext) -> Response:
        request = SigninRequest.from_body(ctx.body)
        async with self._lock:
            account = self._accounts.get(request.username)
            if account is None:
                raise NoSuchUserError(f"User {request.username} not found")
            candidate = _hash_password(request.password, account.salt)
            if not hmac.compare_digest(candidate, account.password_hash):
                raise AuthenticationError("Wrong password")
            token = self._issue_token(account.username)
        return Response.ok(json.dumps({"token": token}))

    async def get_balance(self, ctx: RequestContext) -> Response:
        token = bearer_token(ctx.headers)
        async with self._lock:
            account = self._authenticate(token)
            balance = account.balance
        return Response.ok(json.dumps({"balance": balance}))

    async def transfer_money(self, ctx: RequestContext) -> Response:
        request = TransferRequest.from_body(ctx.body)
        token = bearer_token(ctx.headers)
        if request.amount <= 0:
            raise MalformedArgumentError("Amount must be positive")

        async with self._lock:
            sender = self._authenticate(token)
            recipient = self._accounts.get(request.to)
            if recipient is None:
                raise NoSuchUserError(f"User {request.to} not found")
            if sender.balance < request.amount:
                raise InsufficientFundsError("Not enough money")
            sender.balance -= request.amount
            recipient.balance += request.amount
            balance = sender.balance
        return Response.ok(json.dumps({"balance": balance}))

    def _issue_token(self, username: str) -> str:
        token = secrets.token_urlsafe(32)
        self._sessions[token] = username
        return token

    def _authenticate(self, token: str) -> Account:
        username = self._sessions.get(token)
        if username is None:
            raise AuthenticationError("Invalid token")
        return self._accounts[username]
