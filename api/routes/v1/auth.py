"""
api/routes/v1/auth.py -- Password authentication endpoint.

Routes:
  POST /auth  -- verify username/password, return a signed JWT

Security:
  [C1] AuthenticationPipeline provides timing equalization -- use it, never
       inline store lookup + bcrypt.
  [M5] Cache-Control: no-store on every response from this route.
  UnknownUser and WrongPassword render the same 401 body so the response
  never reveals whether a username exists.

The body is read raw and handed to the pipeline unparsed: malformed JSON is
a pipeline outcome (400 with details), not a framework 422.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.models import AuthFailureResponse, AuthSuccessResponse, UserInfo
from auth.models import AuthenticationResult, AuthSuccess, FailureReason
from auth.pipeline import AuthenticationPipeline

router = APIRouter()

_FAILURE_MESSAGES = {
    FailureReason.MALFORMED_REQUEST: "Invalid request data",
    FailureReason.UNKNOWN_USER: "Invalid credentials",
    FailureReason.WRONG_PASSWORD: "Invalid credentials",
    FailureReason.INTERNAL_ERROR: "Internal server error",
}


def render_result(result: AuthenticationResult) -> JSONResponse:
    """Map a pipeline result to its HTTP response."""
    if isinstance(result, AuthSuccess):
        content = AuthSuccessResponse(
            token=result.token,
            user=UserInfo(id=result.subject.id, username=result.subject.username),
        ).model_dump()
    else:
        body = AuthFailureResponse(
            message=_FAILURE_MESSAGES[result.reason],
            details=result.details if result.reason is FailureReason.MALFORMED_REQUEST else None,
        )
        content = body.model_dump(exclude_none=True)

    resp = JSONResponse(status_code=result.status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth", response_model=AuthSuccessResponse)
async def authenticate(request: Request) -> JSONResponse:
    """Authenticate with username and password; return a bearer token.

    bcrypt dominates the latency of this call, so the pipeline runs on the
    thread pool and unrelated requests keep flowing on the event loop.
    """
    pipeline: AuthenticationPipeline = request.app.state.pipeline
    raw = await request.body()
    result = await run_in_threadpool(pipeline.authenticate, raw, request.state.request_id)
    return render_result(result)
