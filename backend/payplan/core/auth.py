import hmac

from fastapi import Depends, HTTPException, Request

from payplan.core.config import Settings, settings
from payplan.core.errors import AuthenticationError

API_KEY_HEADER = "X-API-Key"


def get_settings() -> Settings:
    return settings


def verify_api_key(provided: str | None, expected: str) -> None:
    """Compare a caller-supplied secret with the configured one.

    Raises:
        AuthenticationError: If no secret is configured, none was supplied,
            or the two differ.
    """
    if not expected:
        raise AuthenticationError("Job API key is not configured")
    if not provided:
        raise AuthenticationError("API key is required")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Invalid API key")


def require_job_api_key(
    request: Request,
    app_settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency guarding job endpoints with the shared secret."""
    provided = request.headers.get(API_KEY_HEADER)
    try:
        verify_api_key(provided, app_settings.JOB_API_KEY)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from None
    return provided  # type: ignore[return-value]
