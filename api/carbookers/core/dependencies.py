"""FastAPI dependencies for injection into route handlers."""

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from carbookers.core.config import settings
from carbookers.services.backend import BackendClient, BackendError, build_backend_client

bearer_scheme = HTTPBearer(auto_error=False)


def backend_http_error(exc: BackendError) -> HTTPException:
    """Map a backend failure onto our response: client errors pass through, the rest become 502."""
    if 400 <= exc.status_code < 500:
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)


async def get_backend(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AsyncGenerator[BackendClient, None]:
    """Yield a backend client carrying the caller's bearer token, if any.

    The token is passed through untouched; the backend validates it.
    """
    client = build_backend_client(settings, credentials.credentials if credentials else None)
    try:
        yield client
    finally:
        await client.aclose()


async def require_staff(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    backend: BackendClient = Depends(get_backend),
) -> BackendClient:
    """Dashboard endpoints need a token. Its role is checked by the backend."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return backend
