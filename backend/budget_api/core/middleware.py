"""Application middleware: request logging, session cookie rotation, route protection."""

import time

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from budget_api.config import settings
from budget_api.core.cookies import set_session_cookies
from budget_api.core.security import refresh_tokens, token_expired

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each incoming request with timing information."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response


class SessionRotationMiddleware(BaseHTTPMiddleware):
    """Write a token pair refreshed during the request back as cookies.

    Runs for error responses too, so a refresh is never lost because the
    handler later answered 404.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        rotated = getattr(request.state, "rotated_session", None)
        if rotated is not None:
            set_session_cookies(response, rotated.access_token, rotated.refresh_token)
        return response


class ProtectedRouteMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated browser navigations on protected pages to the login page."""

    def __init__(self, app, prefixes: list[str] | None = None, login_path: str | None = None):
        super().__init__(app)
        self.prefixes = prefixes if prefixes is not None else settings.protected_prefixes_list
        self.login_path = login_path or settings.login_path

    def _is_protected(self, request: Request) -> bool:
        if request.method != "GET":
            return False
        path = request.url.path
        return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in self.prefixes)

    async def dispatch(self, request: Request, call_next):
        if not self._is_protected(request):
            return await call_next(request)

        access_token = request.cookies.get(settings.access_cookie_name)
        if access_token and not token_expired(access_token):
            return await call_next(request)

        session = await refresh_tokens(
            request.app.state.identity_client,
            request.cookies.get(settings.refresh_cookie_name),
        )
        if session is None:
            logger.info("protected_route_redirect", path=request.url.path)
            return RedirectResponse(self.login_path, status_code=307)

        # Cookies are written by SessionRotationMiddleware, which wraps this one
        request.state.rotated_session = session
        return await call_next(request)
