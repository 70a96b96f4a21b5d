from fastapi import APIRouter, Depends, HTTPException, Request, Response
from app.config import settings
from app.core.csrf import csrf_store, generate_csrf_token, get_csrf_session_id, extract_csrf_token
from app.core.dependencies import get_auth_service, get_current_token, get_current_user, get_current_profile
from app.core.rate_limiter import (
    login_rate_limiter, signup_rate_limiter, get_rate_limit_ip, create_rate_limit_identifier
)
from app.modules.auth.schemas import (
    LoginRequest, LoginResponse, SignupRequest, SignupResponse, CSRFTokenResponse, MeResponse
)
from app.modules.auth.service import AuthService
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_csrf_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=session_id,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _require_csrf(request: Request, ip: str, body_token: Optional[str]) -> None:
    session_id = get_csrf_session_id(request, ip)
    token = extract_csrf_token(request.headers.get(settings.csrf_header_name), body_token)
    if not token or not csrf_store.validate(session_id, token):
        logger.warning(
            f"CSRF validation failed for session {session_id[:20]} "
            f"(cookie present: {settings.csrf_cookie_name in request.cookies}, token present: {bool(token)})"
        )
        raise HTTPException(status_code=403, detail="CSRF validation failed")


@router.get("/csrf-token", response_model=CSRFTokenResponse)
async def get_csrf_token(request: Request, response: Response):
    """Issue (or return the live) CSRF token for this session and set the session cookie"""
    session_id = get_csrf_session_id(request, get_rate_limit_ip(request))
    token = csrf_store.get(session_id)
    if not token:
        token = generate_csrf_token()
        csrf_store.store(session_id, token)
    _set_csrf_cookie(response, session_id)
    return CSRFTokenResponse(token=token)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Login with CSRF check and per email+IP rate limiting"""
    if not login_data.email or not login_data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    ip = get_rate_limit_ip(request)
    _require_csrf(request, ip, login_data.csrf_token)

    result = login_rate_limiter.check(create_rate_limit_identifier(login_data.email, ip))
    if not result.success:
        logger.warning(f"Login rate limit exceeded for {login_data.email[:5]} from {ip[:10]}")
        login_rate_limiter.raise_exceeded(result, "Too many login attempts. Please try again in 1 hour")

    user, session = service.login(login_data.email, login_data.password)
    login_rate_limiter.apply_headers(response, result)
    return LoginResponse(user=user, session=session)


@router.post("/signup", response_model=SignupResponse, status_code=201)
async def signup(
    signup_data: SignupRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service)
):
    """Register a coach or client account, rate limited per IP"""
    ip = get_rate_limit_ip(request)
    _require_csrf(request, ip, signup_data.csrf_token)

    result = signup_rate_limiter.check(ip)
    if not result.success:
        logger.warning(f"Signup rate limit exceeded from {ip[:10]}")
        signup_rate_limiter.raise_exceeded(result, "Too many signup attempts. Please try again tomorrow")

    user = service.signup(signup_data)
    signup_rate_limiter.apply_headers(response, result)
    return SignupResponse(user=user)


@router.post("/logout", status_code=200)
async def logout(
    request: Request,
    response: Response,
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout, drop the CSRF token for this session and clear its cookie"""
    service.logout(token)
    csrf_store.clear(get_csrf_session_id(request, get_rate_limit_ip(request)))
    response.delete_cookie(settings.csrf_cookie_name, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: Dict = Depends(get_current_user),
    profile: Dict = Depends(get_current_profile)
):
    """Current auth user with their platform profile (role, name)"""
    return MeResponse(id=current_user["id"], email=current_user.get("email"), profile=profile)
