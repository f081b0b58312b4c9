"""Request authorization gate: token resolution and identity verification.

Every protected endpoint goes through :func:`get_current_user`. Tokens are
looked up in a fixed order:

1. ``Authorization: Bearer <token>`` header (decisive when present);
2. the HTTP-only access cookie, refreshed through the refresh cookie when
   it is missing, expired or rejected by the identity provider.

A refreshed token pair is parked on ``request.state.rotated_session`` and
written back as cookies by :class:`SessionRotationMiddleware`.
"""

import time
from dataclasses import dataclass

import structlog
from fastapi import Depends, Request
from jose import JWTError, jwt

from budget_api.config import settings
from budget_api.core.exceptions import UnauthorizedError
from budget_api.services.identity_client import (
    IdentityClient,
    IdentityServiceError,
    IdentitySession,
    IdentityUser,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ResolvedToken:
    token: str
    source: str  # header, cookie, refresh
    rotated: IdentitySession | None = None


@dataclass(frozen=True)
class Authorized:
    user: IdentityUser
    rotated: IdentitySession | None = None


@dataclass(frozen=True)
class Unauthorized:
    reason: str


AuthResult = Authorized | Unauthorized


def get_identity_client(request: Request) -> IdentityClient:
    return request.app.state.identity_client


def bearer_token(request: Request) -> str | None:
    """Extract the token from an ``Authorization: Bearer`` header."""
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def token_expired(token: str, leeway: int = 10) -> bool:
    """Check the ``exp`` claim without verifying the signature.

    Only used to skip a doomed round-trip; the identity provider stays the
    authority on whether a token is valid.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False
    exp = claims.get("exp")
    return exp is not None and exp <= time.time() + leeway


async def refresh_tokens(identity: IdentityClient, refresh_token: str | None) -> IdentitySession | None:
    if not refresh_token:
        return None
    try:
        session = await identity.refresh_session(refresh_token)
    except IdentityServiceError as e:
        logger.info("session_refresh_failed", error=e.message)
        return None
    logger.info("session_refreshed")
    return session


async def resolve_token(request: Request, identity: IdentityClient) -> ResolvedToken | None:
    """Find a usable access token for the request, or ``None`` (no token)."""
    token = bearer_token(request)
    if token:
        return ResolvedToken(token, "header")

    access_token = request.cookies.get(settings.access_cookie_name)
    if access_token and not token_expired(access_token):
        return ResolvedToken(access_token, "cookie")

    session = await refresh_tokens(identity, request.cookies.get(settings.refresh_cookie_name))
    if session is None:
        return None
    return ResolvedToken(session.access_token, "refresh", rotated=session)


async def verify_identity(identity: IdentityClient, token: str) -> IdentityUser | None:
    """Resolve a token to a user. Every failure collapses to ``None``."""
    try:
        return await identity.get_user(token)
    except IdentityServiceError:
        return None


async def authorize_request(request: Request, identity: IdentityClient) -> AuthResult:
    resolved = await resolve_token(request, identity)
    if resolved is None:
        return Unauthorized("No token found")

    user = await verify_identity(identity, resolved.token)
    if user is not None:
        return Authorized(user, rotated=resolved.rotated)

    if resolved.source == "cookie":
        # Access cookie looked fresh but the provider rejected it (revoked, bad signature)
        session = await refresh_tokens(identity, request.cookies.get(settings.refresh_cookie_name))
        if session is not None:
            user = await verify_identity(identity, session.access_token)
            if user is not None:
                return Authorized(user, rotated=session)

    return Unauthorized("Invalid token")


async def get_current_user(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
) -> IdentityUser:
    """FastAPI dependency: the verified identity behind the request, or 401."""
    result = await authorize_request(request, identity)
    if isinstance(result, Unauthorized):
        logger.info("request_unauthorized", path=request.url.path, reason=result.reason)
        raise UnauthorizedError()

    if result.rotated is not None:
        request.state.rotated_session = result.rotated
    return result.user
