"""
Typed request bodies for the reference banking service.

Each model is built from the raw body text. Anything that is not a JSON
object with the expected fields raises ``BodyDeserializationError`` so the
connection handler can tell a bad payload apart from a business failure.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict

from bankserver.core.errors import AuthenticationError, BodyDeserializationError


def _load_object(body: str) -> Dict[str, Any]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise BodyDeserializationError(f"Invalid JSON body: {e}")
    if not isinstance(data, dict):
        raise BodyDeserializationError("JSON body must be an object")
    return data


def _require_str(data: Dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str):
        raise BodyDeserializationError(f"Field '{name}' must be a string")
    return value


@dataclass(frozen=True)
class SignupRequest:
    username: str
    password: str

    @classmethod
    def from_body(cls, body: str) -> "SignupRequest":
        data = _load_object(body)
        return cls(_require_str(data, "username"), _require_str(data, "password"))


@dataclass(frozen=True)
class SigninRequest:
    username: str
    password: str

    @classmethod
    def from_body(cls, body: str) -> "SigninRequest":
        data = _load_object(body)
        return cls(_require_str(data, "username"), _require_str(data, "password"))


@dataclass(frozen=True)
class TransferRequest:
    """Transfer of ``amount`` to the account named ``to``."""
    to: str
    amount: int

    @classmethod
    def from_body(cls, body: str) -> "TransferRequest":
        data = _load_object(body)
        amount = data.get("amount")
        # bool is an int subclass but never a valid amount
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise BodyDeserializationError("Field 'amount' must be an integer")
        return cls(_require_str(data, "to"), amount)


def bearer_token(headers: Dict[str, str]) -> str:
    """Extract the bearer credential from an ``Authorization`` header.

    Raises:
        AuthenticationError: If the header is missing or not a bearer token
    """
    value = None
    for name, header_value in headers.items():
        if name.lower() == "authorization":
            value = header_value
            break
    if value is None:
        raise AuthenticationError("Authorization header is missing")

    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()
