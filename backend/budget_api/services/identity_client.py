"""Client for the hosted identity provider.

Talks to a GoTrue-compatible REST API (the auth service behind Supabase).
Sign-up, sign-in, token refresh and email confirmation all happen on the
provider; this module only wraps the HTTP calls and normalizes the payloads
and error messages.
"""

from datetime import datetime

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from budget_api.config import settings

logger = structlog.get_logger()


class IdentityServiceError(Exception):
    """The identity provider refused a request or could not be reached."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IdentityUser(BaseModel):
    id: str
    email: str | None = None
    email_confirmed_at: datetime | None = None
    user_metadata: dict = {}

    @property
    def full_name(self) -> str:
        return self.user_metadata.get("full_name") or ""

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None


class IdentitySession(BaseModel):
    access_token: str
    refresh_token: str
    expires_in: int | None = None
    expires_at: int | None = None
    token_type: str = "bearer"
    user: IdentityUser | None = None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if not isinstance(payload, dict):
        return str(payload)
    for key in ("error_description", "msg", "message", "error"):
        if payload.get(key):
            return str(payload[key])
    return response.reason_phrase


def _parse(model: type[BaseModel], payload: dict) -> BaseModel:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.warning("identity_payload_invalid", model=model.__name__, errors=e.error_count())
        raise IdentityServiceError("Unexpected response from identity service", status_code=502) from e


class IdentityClient:
    """Async wrapper around the identity provider's ``/auth/v1`` endpoints."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/auth/v1",
            headers={"apikey": api_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> "IdentityClient":
        return cls(
            settings.identity_url,
            settings.identity_anon_key,
            timeout=settings.identity_timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("identity_unreachable", path=path, error=str(e))
            raise IdentityServiceError("Identity service unavailable", status_code=503) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.info("identity_request_refused", path=path, status=response.status_code, message=message)
            raise IdentityServiceError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("identity_response_not_json", path=path, status=response.status_code)
            raise IdentityServiceError("Unexpected response from identity service", status_code=502) from e
        if not isinstance(payload, dict):
            raise IdentityServiceError("Unexpected response from identity service", status_code=502)
        return payload

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        redirect_to: str | None = None,
        code_challenge: str | None = None,
    ) -> IdentityUser:
        """Create an identity. The provider emails a confirmation link."""
        body: dict = {"email": email, "password": password, "data": {"full_name": full_name}}
        if code_challenge:
            body["code_challenge"] = code_challenge
            body["code_challenge_method"] = "s256"
        params = {"redirect_to": redirect_to} if redirect_to else None
        payload = await self._send("POST", "/signup", json=body, params=params)
        # Auto-confirming providers answer with a session, others with the bare user
        return _parse(IdentityUser, payload.get("user") or payload)

    async def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        payload = await self._send(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return _parse(IdentitySession, payload)

    async def refresh_session(self, refresh_token: str) -> IdentitySession:
        payload = await self._send(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return _parse(IdentitySession, payload)

    async def exchange_code_for_session(self, auth_code: str, code_verifier: str) -> IdentitySession:
        """Finish a PKCE flow started by :meth:`sign_up` (or an OAuth redirect)."""
        payload = await self._send(
            "POST",
            "/token",
            params={"grant_type": "pkce"},
            json={"auth_code": auth_code, "code_verifier": code_verifier},
        )
        return _parse(IdentitySession, payload)

    async def verify_token_hash(self, token_hash: str, type_: str = "email") -> IdentitySession:
        """Confirm an email link carrying ``token_hash`` instead of a PKCE code."""
        payload = await self._send("POST", "/verify", json={"type": type_, "token_hash": token_hash})
        return _parse(IdentitySession, payload)

    async def get_user(self, access_token: str) -> IdentityUser:
        payload = await self._send(
            "GET", "/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        return _parse(IdentityUser, payload)

    async def health(self) -> None:
        """Raise :class:`IdentityServiceError` unless the provider answers its health check."""
        await self._send("GET", "/health")
