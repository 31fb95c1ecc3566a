"""
auth/tokens.py -- Signed access token issuance.

JWT: python-jose with HS256. Tokens carry the subject id, username, issuer,
issued-at and expiry. A random jti makes two tokens for the same subject
issued within the same second distinct.

The signing secret is handed to TokenIssuer once at process start and never
replaced; the issuer has no other state, so concurrent issue() calls need no
locking.

decode() is the matching verifier. No route calls it today; it returns None
on any failure so a future caller can treat every bad token as
unauthenticated.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from auth.models import TokenClaims

_ALGORITHM = "HS256"


class TokenIssuer:
    def __init__(self, secret: str, expire_seconds: int = 86400, issuer: str = "k8snode-api") -> None:
        if not secret:
            raise ValueError("token signing secret must not be empty")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")
        self._secret = secret
        self.expire_seconds = expire_seconds
        self.issuer = issuer

    def issue(self, claims: TokenClaims) -> str:
        """Encode a signed JWT for claims that expires expire_seconds from now."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": claims.subject_id,
            "userId": claims.subject_id,
            "username": claims.username,
            "iss": self.issuer,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> Optional[dict]:
        """Verify signature, issuer and expiry. Returns the claims or None."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM], issuer=self.issuer)
        except JWTError:
            return None
        if "sub" not in payload or "username" not in payload:
            return None
        return payload
