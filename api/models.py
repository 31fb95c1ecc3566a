"""
API response models for the K8sNode REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the domain types in auth/models.py and
core/health.py. Route handlers map between the two.

Separation of concerns: auth/ + core/ = domain truth; api/ models = API contract.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class UserInfo(BaseModel):
    """Minimal identity returned on login. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str


class AuthSuccessResponse(BaseModel):
    """200 response for POST /auth."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Authentication successful"
    token: str
    user: UserInfo


class AuthFailureResponse(BaseModel):
    """400 / 401 / 500 response for POST /auth.

    details is only set for 400 responses. It lists the failing fields and
    never echoes submitted values.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    details: Optional[list[dict[str, Any]]] = None


# ---------------------------------------------------------------------------
# Errors outside the auth pipeline
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Envelope for 404 / 405 / unhandled 500 responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    timestamp: str


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class MemoryUsage(BaseModel):
    model_config = ConfigDict(frozen=True)

    used: int
    total: int
    percentage: int


class HealthResponse(BaseModel):
    """200 response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: str
    version: str
    environment: str
    uptime: int
    memory: MemoryUsage


class HealthErrorResponse(BaseModel):
    """500 response for GET /health when sampling fails."""

    model_config = ConfigDict(frozen=True)

    status: str = "error"
    timestamp: str
    message: str = "Health check failed"


class ServiceInfoResponse(BaseModel):
    """Response for GET /."""

    model_config = ConfigDict(frozen=True)

    message: str
    version: str
    environment: str
    timestamp: str
    endpoints: list[str]
