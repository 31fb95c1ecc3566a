"""
auth/pipeline.py -- Username/password authentication pipeline.

Received -> Validated -> Looked up -> Verified -> Issued, with an exit to a
failure result at every gate:

  invalid body          -> MalformedRequest (400), warn
  unknown username      -> UnknownUser      (401), warn
  password mismatch     -> WrongPassword    (401), warn
  any unexpected fault  -> InternalError    (500), error + stack
  success               -> AuthSuccess      (200), info

authenticate() never raises: every outcome is a returned result, logged
exactly once where it is decided. No side effects beyond logging -- the HTTP
layer turns results into responses.

Timing equalization [C1]: an unknown username still runs one bcrypt check
against a dummy hash so response time does not reveal whether an account
exists. UnknownUser and WrongPassword stay distinct in the log for operators.

The password is read from the validated request and passed to the hasher;
it is never handed to the logger. The hash never leaves this module.

bcrypt is CPU-bound and synchronous. Callers on an event loop should run
authenticate() on a worker thread (api/routes/v1/auth.py does).
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from auth.hashing import PasswordHasher
from auth.models import (
    AuthenticationRequest,
    AuthenticationResult,
    AuthFailure,
    AuthSuccess,
    FailureReason,
    Subject,
    TokenClaims,
)
from auth.store import CredentialStore
from auth.tokens import TokenIssuer
from core.logger import StructuredLogger

RawBody = Union[bytes, bytearray, str, Mapping[str, Any]]


def _validation_details(exc: ValidationError) -> list[dict[str, Any]]:
    """Reduce pydantic errors to field/message/type. The submitted input is dropped."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors(include_url=False, include_input=False, include_context=False)
    ]


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class AuthenticationPipeline:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        logger: StructuredLogger,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._issuer = issuer
        self._logger = logger
        # Same cost as real account hashes so both failure paths take equal time.
        self._dummy_hash = hasher.hash("k8snode_timing_dummy")

    def authenticate(self, body: RawBody, request_id: Optional[str] = None) -> AuthenticationResult:
        """Run one authentication attempt to a result. Never raises."""
        start = time.perf_counter()
        try:
            return self._authenticate(body, request_id, start)
        except Exception as exc:
            self._logger.log_error(exc, "Authentication error", request_id)
            return AuthFailure(FailureReason.INTERNAL_ERROR)

    def _authenticate(self, body: RawBody, request_id: Optional[str], start: float) -> AuthenticationResult:
        # 1. Validate
        try:
            if isinstance(body, (bytes, bytearray, str)):
                credentials = AuthenticationRequest.model_validate_json(body)
            else:
                credentials = AuthenticationRequest.model_validate(body)
        except ValidationError as exc:
            details = _validation_details(exc)
            self._logger.warn(
                "Authentication failed - Invalid request format",
                {
                    "reason": FailureReason.MALFORMED_REQUEST.value,
                    "errors": details,
                    "responseTimeMs": _elapsed_ms(start),
                },
                request_id,
            )
            return AuthFailure(FailureReason.MALFORMED_REQUEST, details)

        # 2. Look up
        account = self._store.find_by_username(credentials.username)
        if account is None:
            self._hasher.verify(credentials.password, self._dummy_hash)  # [C1]
            self._logger.log_auth_attempt(
                credentials.username,
                success=False,
                reason=FailureReason.UNKNOWN_USER.value,
                request_id=request_id,
                metadata={"responseTimeMs": _elapsed_ms(start)},
            )
            return AuthFailure(FailureReason.UNKNOWN_USER)

        # 3. Verify
        if not self._hasher.verify(credentials.password, account.password_hash):
            self._logger.log_auth_attempt(
                account.username,
                success=False,
                reason=FailureReason.WRONG_PASSWORD.value,
                request_id=request_id,
                user_id=account.id,
                metadata={"responseTimeMs": _elapsed_ms(start)},
            )
            return AuthFailure(FailureReason.WRONG_PASSWORD)

        # 4. Issue
        token = self._issuer.issue(TokenClaims(subject_id=account.id, username=account.username))
        self._logger.log_auth_attempt(
            account.username,
            success=True,
            request_id=request_id,
            user_id=account.id,
            metadata={"responseTimeMs": _elapsed_ms(start)},
        )
        return AuthSuccess(token=token, subject=Subject(id=account.id, username=account.username))
