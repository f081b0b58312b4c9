"""Budget endpoint tests."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from budget_api.models.budget import BUDGET_PERIODS, Budget
from budget_api.models.transaction import TRANSACTION_TYPES, Transaction


@pytest.mark.asyncio
async def test_create_budget_defaults_start_date(client, auth_headers):
    response = await client.post(
        "/api/budgets",
        json={"name": "Groceries", "amount": 500, "period": "monthly"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["id"]
    assert data["amount"] == 500
    assert data["period"] == "monthly"
    assert data["start_date"] == date.today().isoformat()
    assert data["end_date"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"amount": 500, "period": "monthly"},
        {"name": "Rent", "period": "monthly"},
        {"name": "Rent", "amount": 500},
    ],
)
async def test_create_budget_missing_field(client, auth_headers, payload):
    response = await client.post("/api/budgets", json=payload, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Missing required fields")


@pytest.mark.asyncio
async def test_create_budget_rejects_non_positive_amount_and_unknown_period(client, auth_headers):
    response = await client.post(
        "/api/budgets", json={"name": "Rent", "amount": 0, "period": "monthly"}, headers=auth_headers
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/budgets", json={"name": "Rent", "amount": 10, "period": "weekly"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_budgets_only_returns_own(client, auth_headers, other_headers, budget):
    response = await client.get("/api/budgets", headers=auth_headers)
    assert response.status_code == 200
    assert [b["id"] for b in response.json()] == [budget["id"]]

    response = await client.get("/api/budgets", headers=other_headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_other_users_budget_is_not_found(client, other_headers, budget):
    for method in ("GET", "DELETE"):
        response = await client.request(method, f"/api/budgets/{budget['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Budget not found"}

    response = await client.patch(
        f"/api/budgets/{budget['id']}", json={"name": "Mine now"}, headers=other_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_absent_and_foreign_budgets_look_the_same(client, other_headers, budget):
    foreign = await client.get(f"/api/budgets/{budget['id']}", headers=other_headers)
    absent = await client.get("/api/budgets/00000000-0000-0000-0000-000000000000", headers=other_headers)
    assert foreign.status_code == absent.status_code == 404
    assert foreign.json() == absent.json()


@pytest.mark.asyncio
async def test_partial_update(client, auth_headers):
    created = await client.post(
        "/api/budgets",
        json={
            "name": "Trip",
            "amount": 1200,
            "period": "custom",
            "end_date": "2024-12-31",
            "description": "Summer",
        },
        headers=auth_headers,
    )
    budget_id = created.json()["id"]

    response = await client.patch(f"/api/budgets/{budget_id}", json={"amount": 1500}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["amount"] == 1500
    assert data["name"] == "Trip"
    assert data["end_date"] == "2024-12-31"
    assert data["description"] == "Summer"

    response = await client.patch(
        f"/api/budgets/{budget_id}", json={"end_date": None, "name": None}, headers=auth_headers
    )
    data = response.json()
    assert data["end_date"] is None
    assert data["name"] == "Trip"
    assert data["description"] == "Summer"


@pytest.mark.asyncio
async def test_delete_budget(client, auth_headers, budget):
    response = await client.delete(f"/api/budgets/{budget['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await client.get(f"/api/budgets/{budget['id']}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_budget_summary_and_dashboard(client, auth_headers, budget):
    url = f"/api/budgets/{budget['id']}/transactions"
    await client.post(url, json={"description": "Milk", "amount": 40, "date": "2024-01-05"}, headers=auth_headers)
    await client.post(url, json={"description": "Bread", "amount": 70, "date": "2024-01-06"}, headers=auth_headers)
    await client.post(
        url,
        json={"description": "Refund", "amount": 10, "type": "income", "date": "2024-01-07"},
        headers=auth_headers,
    )

    response = await client.get(f"/api/budgets/{budget['id']}/summary", headers=auth_headers)
    assert response.status_code == 200
    summary = response.json()
    assert summary["total_expenses"] == 110
    assert summary["total_income"] == 10
    assert summary["total_spent"] == 100
    assert summary["remaining"] == 400
    assert summary["percentage_used"] == 20
    assert summary["transaction_count"] == 3

    response = await client.get("/api/dashboard", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "budget_count": 1,
        "total_budget": 500,
        "total_spent": 100,
        "total_remaining": 400,
    }

    # Budget detail keeps the raw amount
    response = await client.get(f"/api/budgets/{budget['id']}", headers=auth_headers)
    assert response.json()["amount"] == 500


@pytest.mark.asyncio
async def test_period_and_type_constraints_enforced_by_database(session_factory):
    assert BUDGET_PERIODS == ("monthly", "yearly", "custom")
    assert TRANSACTION_TYPES == ("expense", "income")

    async with session_factory() as session:
        session.add(Budget(user_id="u1", name="Odd", amount=10, period="weekly", start_date=date.today()))
        with pytest.raises(IntegrityError):
            await session.flush()
        await session.rollback()

        budget = Budget(user_id="u1", name="Food", amount=10, period="monthly", start_date=date.today())
        session.add(budget)
        await session.flush()
        session.add(
            Transaction(
                budget_id=budget.id, user_id="u1", description="Gift", amount=5,
                type="refund", date=date.today(),
            )
        )
        with pytest.raises(IntegrityError):
            await session.flush()
