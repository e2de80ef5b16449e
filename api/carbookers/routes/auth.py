"""Authentication routes: login and current user, passed through to the backend."""

from fastapi import APIRouter, Depends

from carbookers.core.dependencies import backend_http_error, get_backend, require_staff
from carbookers.schemas import LoginRequest, TokenResponse
from carbookers.services.backend import BackendClient, BackendError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, backend: BackendClient = Depends(get_backend)):
    try:
        return await backend.login(body.email, body.password)
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.get("/me")
async def me(backend: BackendClient = Depends(require_staff)):
    try:
        return await backend.current_user()
    except BackendError as exc:
        raise backend_http_error(exc) from None
