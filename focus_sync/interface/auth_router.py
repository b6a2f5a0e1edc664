"""Registration, login and token refresh endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from focus_sync.domain.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from focus_sync.interface.dependencies import get_auth_service
from focus_sync.services.auth_service import AuthService


router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(payload: AuthResponse, status_code: int) -> JSONResponse:
    return JSONResponse(content=payload.model_dump(mode="json", by_alias=True), status_code=status_code)


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account and return its first token pair."""
    result = await auth_service.register(body or RegisterRequest())
    return _auth_response(result, status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    body: LoginRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Check credentials, update the login streak and issue tokens."""
    result = await auth_service.login(body or LoginRequest())
    return _auth_response(result, status.HTTP_200_OK)


@router.post("/refresh")
async def refresh(
    body: RefreshRequest | None = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Rotate a refresh token into a new pair."""
    result = await auth_service.refresh(body or RefreshRequest())
    return _auth_response(result, status.HTTP_200_OK)
