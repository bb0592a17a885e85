"""Auth API: register, login, token refresh/rotation, logout, profile.

The refresh token is set as an httpOnly cookie and never returned in the
JSON body of register/login/refresh. /auth/refresh and /auth/logout read it
from the cookie first, then from the body.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from crm_access.api.v1.dependencies import (
    DepsDep,
    IdentityDep,
    get_auth_service,
    get_token_service,
)
from crm_access.application.dtos.auth import AuthResult, ProfileUpdate, RegisterCommand
from crm_access.application.services.auth_service import AuthService
from crm_access.application.services.token_service import TokenService
from crm_access.core.config import Settings
from crm_access.core.limiter import limit_auth, limit_tokens, limit_writes
from crm_access.domain.exceptions import AuthenticationException, InvalidTokenException
from crm_access.schemas.auth import (
    AuthResponse,
    AutoRefreshRequest,
    AutoRefreshResponse,
    ChangePasswordRequest,
    IdentityResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPairResponse,
    TokenValidationResponse,
    ValidateTokenRequest,
)
from crm_access.schemas.user import UserResponse

router = APIRouter()

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.secure_cookies,
        "samesite": "none" if settings.secure_cookies else "lax",
        "path": "/",
    }


def set_refresh_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        max_age=settings.refresh_token_max_age_seconds,
        **_cookie_options(settings),
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=settings.refresh_cookie_name, **_cookie_options(settings))


def _auth_response(response: Response, settings: Settings, result: AuthResult) -> AuthResponse:
    set_refresh_cookie(response, settings, result.tokens.refresh_token)
    return AuthResponse(
        access_token=result.tokens.access_token,
        access_token_expiry=result.tokens.access_token_expiry,
        user=UserResponse.from_entity(result.user),
    )


def _presented_refresh_token(
    request: Request, settings: Settings, body_token: str | None
) -> str | None:
    return request.cookies.get(settings.refresh_cookie_name) or body_token


@router.post("/register", response_model=AuthResponse, status_code=201)
@limit_auth
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    auth: AuthServiceDep,
    deps: DepsDep,
):
    """Self-register as SALES_REP or SALES_MANAGER (public endpoint)."""
    result = await auth.register(
        RegisterCommand(
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            phone_number=body.phone_number,
        )
    )
    return _auth_response(response, deps.settings, result)


@router.post("/login", response_model=AuthResponse)
@limit_auth
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    auth: AuthServiceDep,
    deps: DepsDep,
):
    """Authenticate with email and password. Ends the user's previous sessions."""
    result = await auth.login(body.email, body.password)
    return _auth_response(response, deps.settings, result)


@router.post("/refresh", response_model=AuthResponse)
@limit_tokens
async def refresh(
    request: Request,
    response: Response,
    auth: AuthServiceDep,
    deps: DepsDep,
    body: RefreshRequest | None = None,
):
    """Exchange the refresh token (cookie or body) for a new pair; the old one stops working."""
    token = _presented_refresh_token(
        request, deps.settings, body.refresh_token if body else None
    )
    if not token:
        raise AuthenticationException("Refresh token required")
    try:
        result = await auth.refresh(token)
    except InvalidTokenException as e:
        raise InvalidTokenException(
            e.details.get("reason", "invalid"), status_code=401
        ) from None
    return _auth_response(response, deps.settings, result)


@router.post("/auto-refresh", response_model=AutoRefreshResponse)
@limit_tokens
async def auto_refresh(
    request: Request,
    response: Response,
    body: AutoRefreshRequest,
    auth: AuthServiceDep,
    deps: DepsDep,
):
    """Rotate the pair only if the access token is near expiry."""
    try:
        pair = await auth.auto_refresh(body.access_token, body.refresh_token)
    except InvalidTokenException as e:
        raise InvalidTokenException(
            e.details.get("reason", "invalid"), status_code=401
        ) from None
    if pair is None:
        return AutoRefreshResponse(should_refresh=False)
    set_refresh_cookie(response, deps.settings, pair.refresh_token)
    return AutoRefreshResponse(
        should_refresh=True, tokens=TokenPairResponse.from_pair(pair)
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    auth: AuthServiceDep,
    deps: DepsDep,
    body: LogoutRequest | None = None,
):
    """Revoke the presented refresh token; with userId, every session of that user."""
    token = _presented_refresh_token(
        request, deps.settings, body.refresh_token if body else None
    )
    await auth.logout(token, user_id=body.user_id if body else None)
    clear_refresh_cookie(response, deps.settings)
    return MessageResponse(message="Logged out successfully")


@router.post("/validate-token", response_model=TokenValidationResponse)
@limit_tokens
async def validate_token(
    request: Request,
    body: ValidateTokenRequest,
    tokens: TokenServiceDep,
):
    """Report whether an access token is valid, expired, or close to expiry."""
    return TokenValidationResponse.from_inspection(tokens.inspect(body.access_token))


@router.get("/me", response_model=IdentityResponse)
async def get_me(identity: IdentityDep):
    """Identity attached by the authentication gate. Requires Authorization."""
    return IdentityResponse.from_identity(identity)


@router.get("/profile", response_model=UserResponse)
async def get_profile(identity: IdentityDep, auth: AuthServiceDep):
    user = await auth.get_profile(identity.user_id)
    return UserResponse.from_entity(user)


@router.put("/profile", response_model=UserResponse)
@limit_writes
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    identity: IdentityDep,
    auth: AuthServiceDep,
):
    """Update names and phone; password changes need currentPassword."""
    user = await auth.update_profile(
        identity.user_id,
        ProfileUpdate(
            first_name=body.first_name,
            last_name=body.last_name,
            phone_number=body.phone_number,
            password=body.password,
            current_password=body.current_password,
        ),
    )
    return UserResponse.from_entity(user)


@router.post("/change-password", response_model=MessageResponse)
@limit_auth
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    identity: IdentityDep,
    auth: AuthServiceDep,
):
    await auth.change_password(identity.user_id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated")
