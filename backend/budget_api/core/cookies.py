"""Session cookie helpers."""

from starlette.responses import Response

from budget_api.config import settings


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "path": "/",
        "secure": settings.is_production,
        "samesite": "strict" if settings.is_production else "lax",
        "max_age": settings.cookie_max_age,
    }


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Persist an access/refresh token pair as HTTP-only cookies."""
    options = _cookie_options()
    response.set_cookie(settings.access_cookie_name, access_token, **options)
    response.set_cookie(settings.refresh_cookie_name, refresh_token, **options)


def clear_session_cookies(response: Response) -> None:
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(
            name,
            path="/",
            secure=settings.is_production,
            httponly=True,
            samesite="strict" if settings.is_production else "lax",
        )


def set_code_verifier_cookie(response: Response, code_verifier: str) -> None:
    # Short-lived: only needs to survive until the confirmation link is opened
    options = _cookie_options() | {"max_age": 60 * 60 * 24}
    response.set_cookie(settings.code_verifier_cookie_name, code_verifier, **options)


def clear_code_verifier_cookie(response: Response) -> None:
    response.delete_cookie(settings.code_verifier_cookie_name, path="/")
