"""Async HTTP client for the Budget Tracker API."""

import httpx
import structlog

from budget_api.client.session import SessionState, SessionStatus, SessionTokens

logger = structlog.get_logger()

NETWORK_ERROR_MESSAGE = "Could not reach the server. Please try again."


class BudgetApiError(Exception):
    """The server answered with an error, or could not be reached (``status_code == 0``)."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class BudgetClient:
    """Bearer-token client with transparent refresh on 401."""

    def __init__(
        self,
        base_url: str,
        session: SessionState | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.session = session or SessionState()
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "BudgetClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Auth ──────────────────────────────────────
    async def register(self, email: str, password: str, full_name: str) -> dict:
        return await self._call("POST", "/api/register", auth=False, json={
            "email": email, "password": password, "full_name": full_name,
        })

    async def login(self, email: str, password: str) -> dict:
        data = await self._call("POST", "/api/login", auth=False, json={"email": email, "password": password})
        self.session.sign_in(SessionTokens.model_validate(data["session"]))
        return data["user"]

    async def logout(self) -> None:
        await self._call("POST", "/api/logout", auth=False)
        self.session.sign_out()

    async def me(self) -> dict:
        return await self._call("GET", "/api/me")

    # ── Budgets ───────────────────────────────────
    async def list_budgets(self) -> list[dict]:
        return await self._call("GET", "/api/budgets")

    async def create_budget(self, **fields) -> dict:
        return await self._call("POST", "/api/budgets", json=fields)

    async def get_budget(self, budget_id: str) -> dict:
        return await self._call("GET", f"/api/budgets/{budget_id}")

    async def get_budget_summary(self, budget_id: str) -> dict:
        return await self._call("GET", f"/api/budgets/{budget_id}/summary")

    async def update_budget(self, budget_id: str, **fields) -> dict:
        return await self._call("PATCH", f"/api/budgets/{budget_id}", json=fields)

    async def delete_budget(self, budget_id: str) -> dict:
        return await self._call("DELETE", f"/api/budgets/{budget_id}")

    # ── Transactions ──────────────────────────────
    async def list_transactions(self, budget_id: str) -> list[dict]:
        return await self._call("GET", f"/api/budgets/{budget_id}/transactions")

    async def create_transaction(self, budget_id: str, **fields) -> dict:
        return await self._call("POST", f"/api/budgets/{budget_id}/transactions", json=fields)

    async def update_transaction(self, budget_id: str, transaction_id: str, **fields) -> dict:
        return await self._call("PATCH", f"/api/budgets/{budget_id}/transactions/{transaction_id}", json=fields)

    async def delete_transaction(self, budget_id: str, transaction_id: str) -> dict:
        return await self._call("DELETE", f"/api/budgets/{budget_id}/transactions/{transaction_id}")

    # ── Categories ────────────────────────────────
    async def list_categories(self) -> list[dict]:
        return await self._call("GET", "/api/categories")

    async def create_category(self, name: str, color: str | None = None) -> dict:
        return await self._call("POST", "/api/categories", json={"name": name, "color": color})

    async def update_category(self, category_id: str, **fields) -> dict:
        return await self._call("PATCH", f"/api/categories/{category_id}", json=fields)

    async def delete_category(self, category_id: str) -> dict:
        return await self._call("DELETE", f"/api/categories/{category_id}")

    async def dashboard(self) -> dict:
        return await self._call("GET", "/api/dashboard")

    # ── Plumbing ──────────────────────────────────
    async def _call(self, method: str, path: str, auth: bool = True, **kwargs):
        response = await self._send(method, path, auth, **kwargs)
        if (
            response.status_code == 401
            and auth
            and self.session.status is SessionStatus.SIGNED_IN
            and self.session.refresh_token
        ):
            if await self._refresh():
                response = await self._send(method, path, auth, **kwargs)
        if response.status_code >= 400:
            raise BudgetApiError(response.status_code, _error_message(response))
        return response.json()

    async def _send(self, method: str, path: str, auth: bool, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if auth and self.session.access_token:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        try:
            return await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("api_unreachable", path=path, error=str(e))
            raise BudgetApiError(0, NETWORK_ERROR_MESSAGE) from e

    async def _refresh(self) -> bool:
        self.session.begin_refresh()
        try:
            response = await self._send(
                "POST", "/api/refresh", auth=False, json={"refresh_token": self.session.refresh_token}
            )
        except BudgetApiError:
            self.session.finish_refresh(None)
            raise
        if response.status_code != 200:
            self.session.finish_refresh(None)
            return False
        self.session.finish_refresh(SessionTokens.model_validate(response.json()["session"]))
        return True


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.reason_phrase
    except ValueError:
        return response.reason_phrase
