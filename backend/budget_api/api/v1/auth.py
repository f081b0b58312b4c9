"""Authentication API routes.

Registration, sign-in, token refresh and email confirmation are handled by
the identity provider. These routes forward the calls and keep the session
in two HTTP-only cookies.
"""

import base64
import hashlib
import secrets

import structlog
from fastapi import APIRouter, Depends, Request, Response
from starlette.responses import RedirectResponse

from budget_api.api.deps import get_current_user, get_identity_client
from budget_api.config import settings
from budget_api.core.cookies import (
    clear_code_verifier_cookie,
    clear_session_cookies,
    set_code_verifier_cookie,
    set_session_cookies,
)
from budget_api.core.exceptions import (
    InternalError,
    RateLimitedError,
    UnauthorizedError,
    ValidationError,
)
from budget_api.core.security import refresh_tokens, verify_identity
from budget_api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    SessionInfo,
    UserInfo,
)
from budget_api.schemas.common import SuccessResponse
from budget_api.services.identity_client import (
    IdentityClient,
    IdentityServiceError,
    IdentitySession,
    IdentityUser,
)

logger = structlog.get_logger()

router = APIRouter()
callback_router = APIRouter()


def _code_challenge(code_verifier: str) -> str:
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _register_error(e: IdentityServiceError) -> Exception:
    message = e.message.lower()
    if "rate limit" in message:
        return RateLimitedError("Too many attempts, please try again later")
    if "already registered" in message:
        return ValidationError("Email already registered")
    if e.status_code >= 500:
        return InternalError(e.message)
    return ValidationError(e.message or "Registration failed")


def _login_response(session: IdentitySession, user: IdentityUser) -> LoginResponse:
    return LoginResponse(
        user=UserInfo(id=user.id, email=user.email, full_name=user.full_name),
        session=SessionInfo(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_in=session.expires_in,
            expires_at=session.expires_at,
        ),
    )


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    data: RegisterRequest,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
):
    """Create an identity. Login is refused until the email is confirmed."""
    code_verifier = secrets.token_urlsafe(48)
    try:
        user = await identity.sign_up(
            data.email,
            data.password,
            data.full_name,
            redirect_to=f"{settings.site_url.rstrip('/')}/auth/callback",
            code_challenge=_code_challenge(code_verifier),
        )
    except IdentityServiceError as e:
        logger.warning("register_failed", status=e.status_code, error=e.message)
        raise _register_error(e) from e

    set_code_verifier_cookie(response, code_verifier)
    logger.info("user_registered", user_id=user.id)
    return RegisterResponse(
        message="User created. Check your email to confirm the account",
        user=RegisteredUser(id=user.id, email=user.email),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    response: Response,
    identity: IdentityClient = Depends(get_identity_client),
):
    """Sign in with email and password and store the session in cookies."""
    try:
        session = await identity.sign_in_with_password(data.email, data.password)
    except IdentityServiceError as e:
        raise ValidationError(e.message) from e

    user = session.user
    if user is None:
        raise ValidationError("Could not obtain user or session")
    if not user.is_confirmed:
        raise ValidationError("Please confirm your email before signing in")

    set_session_cookies(response, session.access_token, session.refresh_token)
    logger.info("user_logged_in", user_id=user.id, secure_cookies=settings.is_production)
    return _login_response(session, user)


@router.post("/refresh", response_model=LoginResponse)
async def refresh(
    request: Request,
    response: Response,
    data: RefreshRequest | None = None,
    identity: IdentityClient = Depends(get_identity_client),
):
    """Exchange a refresh token (body or cookie) for a new token pair."""
    refresh_token = (data.refresh_token if data else None) or request.cookies.get(
        settings.refresh_cookie_name
    )
    session = await refresh_tokens(identity, refresh_token)
    if session is None:
        raise UnauthorizedError()

    user = session.user or await verify_identity(identity, session.access_token)
    if user is None:
        raise UnauthorizedError()
    set_session_cookies(response, session.access_token, session.refresh_token)
    return _login_response(session, user)


@router.get("/logout")
async def logout_redirect():
    """Clear the session cookies and send the browser home."""
    response = RedirectResponse("/", status_code=302)
    clear_session_cookies(response)
    return response


@router.post("/logout", response_model=SuccessResponse)
async def logout(response: Response):
    clear_session_cookies(response)
    return SuccessResponse()


@router.get("/me", response_model=UserInfo)
async def me(current_user: IdentityUser = Depends(get_current_user)):
    """Return the identity behind the current request."""
    return UserInfo(id=current_user.id, email=current_user.email, full_name=current_user.full_name)


@callback_router.get("/callback")
async def auth_callback(
    request: Request,
    code: str | None = None,
    token_hash: str | None = None,
    type: str = "email",
    next: str = "/",
    identity: IdentityClient = Depends(get_identity_client),
):
    """Finish an email confirmation link: exchange it for a session, then redirect."""
    # Only same-site relative redirects
    target = next if next.startswith("/") and not next.startswith("//") else "/"

    code_verifier = request.cookies.get(settings.code_verifier_cookie_name)
    session = None
    try:
        if code and code_verifier:
            session = await identity.exchange_code_for_session(code, code_verifier)
        elif token_hash:
            session = await identity.verify_token_hash(token_hash, type)
    except IdentityServiceError as e:
        logger.info("auth_callback_failed", error=e.message)

    if session is None:
        response = RedirectResponse(f"{settings.login_path}?error=auth_callback_failed", status_code=302)
        clear_code_verifier_cookie(response)
        return response

    response = RedirectResponse(target, status_code=302)
    set_session_cookies(response, session.access_token, session.refresh_token)
    clear_code_verifier_cookie(response)
    return response
