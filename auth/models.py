"""
auth/models.py -- Domain types for the authentication pipeline.

Dataclasses own domain shape; the store, hasher, issuer and pipeline do the
work. AuthenticationRequest is the one pydantic model here: it is the input
schema the pipeline validates raw request bodies against, so it belongs to
the domain rather than to the HTTP transport models in api/models.py.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Account:
    """A stored identity eligible to authenticate.

    password_hash is a bcrypt string ($2b$...). The roster of accounts is
    fixed at process start; nothing mutates an Account afterwards.
    """

    id: str
    username: str
    password_hash: str = field(repr=False)


@dataclass(frozen=True)
class Subject:
    """Public identity returned to the caller -- never carries the hash."""

    id: str
    username: str


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    username: str


class AuthenticationRequest(BaseModel):
    """Credentials submitted to POST /auth.

    No whitespace stripping: a password is compared byte-for-byte.
    """

    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=100, repr=False)


class FailureReason(str, Enum):
    MALFORMED_REQUEST = "MalformedRequest"
    UNKNOWN_USER = "UnknownUser"
    WRONG_PASSWORD = "WrongPassword"
    INTERNAL_ERROR = "InternalError"

    @property
    def status_code(self) -> int:
        return _STATUS_BY_REASON[self]


_STATUS_BY_REASON = {
    FailureReason.MALFORMED_REQUEST: 400,
    FailureReason.UNKNOWN_USER: 401,
    FailureReason.WRONG_PASSWORD: 401,
    FailureReason.INTERNAL_ERROR: 500,
}


@dataclass(frozen=True)
class AuthSuccess:
    token: str
    subject: Subject

    @property
    def status_code(self) -> int:
        return 200


@dataclass(frozen=True)
class AuthFailure:
    """Failed authentication.

    reason distinguishes UnknownUser from WrongPassword for operators; the
    HTTP layer renders both identically. details is only populated for
    MalformedRequest and never contains submitted values.
    """

    reason: FailureReason
    details: list[dict[str, Any]] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return self.reason.status_code


AuthenticationResult = Union[AuthSuccess, AuthFailure]
