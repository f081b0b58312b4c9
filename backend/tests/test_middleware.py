"""Browser route protection tests."""

import pytest

from budget_api.config import settings


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/dashboard", "/budgets", "/budgets/123"])
async def test_protected_pages_redirect_to_login(client, path):
    response = await client.get(path)
    assert response.status_code == 307
    assert response.headers["location"] == settings.login_path


@pytest.mark.asyncio
async def test_api_and_public_paths_are_not_redirected(client):
    assert (await client.get("/health")).status_code == 200
    assert (await client.get("/api/budgets")).status_code == 401
    assert (await client.get("/dashboards-public")).status_code == 404


@pytest.mark.asyncio
async def test_access_cookie_lets_navigation_through(client, identity):
    user = identity.create_user("alice@example.com")
    client.cookies.set(settings.access_cookie_name, identity.issue_session(user["id"])["access_token"])

    response = await client.get("/dashboard")
    assert response.status_code != 307


@pytest.mark.asyncio
async def test_refresh_cookie_lets_navigation_through_and_rotates(client, identity):
    user = identity.create_user("alice@example.com")
    client.cookies.set(settings.refresh_cookie_name, identity.issue_session(user["id"])["refresh_token"])

    response = await client.get("/budgets")
    assert response.status_code != 307
    cookie_names = [h.split("=", 1)[0] for h in response.headers.get_list("set-cookie")]
    assert settings.access_cookie_name in cookie_names
