from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from app.db.session import get_db
from app.main import app as application


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as c:
        yield c
    application.dependency_overrides.clear()


async def signup(client, username, password="s3cret-pass"):
    res = await client.post("/api/v1/users/signup", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert res.status_code == 201, res.text

    res = await client.post("/api/v1/users/login", json={
        "email": f"{username}@example.com",
        "password": password,
    })
    assert res.status_code == 200, res.text
    body = res.json()
    return body["user"]["id"], {"Authorization": f"Bearer {body['access_token']}"}


@pytest.fixture
async def trio(client):
    """alice, bob and carol signed up; alice's group holds all three."""
    users = {}
    for name in ("alice", "bob", "carol"):
        users[name] = await signup(client, name)

    _, alice_auth = users["alice"]
    res = await client.post("/api/v1/groups/", json={"name": "Flat"}, headers=alice_auth)
    assert res.status_code == 201, res.text
    group_id = res.json()["id"]

    for name in ("bob", "carol"):
        res = await client.post(
            f"/api/v1/groups/{group_id}/members",
            json={"email": f"{name}@example.com"},
            headers=alice_auth,
        )
        assert res.status_code == 201, res.text

    return group_id, users


async def test_root_and_health(client):
    assert (await client.get("/")).status_code == 200
    assert (await client.get("/api/v1/system/health")).json() == {"status": "ok"}


async def test_signup_login_me(client):
    user_id, auth = await signup(client, "dana")

    res = await client.get("/api/v1/users/me", headers=auth)

    assert res.status_code == 200
    assert res.json()["id"] == user_id
    assert "password_hash" not in res.json()


async def test_login_sets_cookie(client):
    await signup(client, "erin")

    res = await client.post("/api/v1/users/login", json={"email": "erin@example.com", "password": "s3cret-pass"})

    assert "access_token" in res.cookies


async def test_duplicate_signup_conflicts(client):
    await signup(client, "frank")

    res = await client.post("/api/v1/users/signup", json={
        "username": "frank", "email": "frank@example.com", "password": "x",
    })

    assert res.status_code == 409
    assert res.json()["error"] == "Conflict"


async def test_wrong_password_unauthorized(client):
    await signup(client, "gina")

    res = await client.post("/api/v1/users/login", json={"email": "gina@example.com", "password": "nope"})

    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized", "message": "Invalid credentials"}


async def test_missing_token_unauthorized(client):
    res = await client.get("/api/v1/balances/overall")

    assert res.status_code == 401
    assert res.json()["error"] == "Unauthorized"


async def test_garbage_token_unauthorized(client):
    res = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert res.status_code == 401


async def test_group_listing(client, trio):
    group_id, users = trio
    _, bob_auth = users["bob"]

    res = await client.get("/api/v1/groups/my-groups", headers=bob_auth)

    assert res.status_code == 200
    groups = res.json()
    assert [g["id"] for g in groups] == [group_id]
    assert [m["username"] for m in groups[0]["members"]] == ["alice", "bob", "carol"]


async def test_adding_existing_member_conflicts(client, trio):
    group_id, users = trio
    _, alice_auth = users["alice"]

    res = await client.post(f"/api/v1/groups/{group_id}/members", json={"email": "bob@example.com"}, headers=alice_auth)

    assert res.status_code == 409


async def test_expense_flow_and_balances(client, trio):
    group_id, users = trio
    alice_id, alice_auth = users["alice"]
    bob_id, bob_auth = users["bob"]

    res = await client.post("/api/v1/expense/", json={
        "group_id": group_id,
        "description": "Dinner",
        "amount": "120.50",
        "split": {"split_method": "equally", "member_ids": [alice_id, bob_id]},
    }, headers=alice_auth)
    assert res.status_code == 201, res.text
    expense = res.json()
    assert expense["paid_by"] == alice_id
    assert Decimal(str(expense["amount"])) == Decimal("120.50")

    res = await client.get(f"/api/v1/expense/{expense['id']}", headers=bob_auth)
    assert res.status_code == 200
    assert sorted(Decimal(str(s["amount_owed"])) for s in res.json()["splits"]) == [Decimal("60.25")] * 2

    res = await client.get("/api/v1/balances/detailed", headers=alice_auth)
    assert [(b["username"], Decimal(str(b["balance"]))) for b in res.json()] == [("bob", Decimal("60.25"))]

    res = await client.get("/api/v1/balances/detailed", params={"group_id": group_id}, headers=bob_auth)
    assert [(b["username"], Decimal(str(b["balance"]))) for b in res.json()] == [("alice", Decimal("-60.25"))]

    res = await client.post("/api/v1/payments/", json={
        "payee_id": alice_id, "amount": "60.25", "group_id": group_id,
    }, headers=bob_auth)
    assert res.status_code == 201, res.text
    assert res.json()["payee"]["username"] == "alice"

    res = await client.get("/api/v1/balances/detailed", headers=alice_auth)
    assert res.json() == []

    res = await client.get("/api/v1/balances/overall", headers=bob_auth)
    overall = {k: Decimal(str(v)) for k, v in res.json().items()}
    assert overall["total_owed"] == Decimal("60.25")
    assert overall["payments_made"] == Decimal("60.25")
    assert overall["net_balance"] == Decimal("-120.50")


async def test_split_mismatch_error_shape(client, trio):
    group_id, users = trio
    alice_id, alice_auth = users["alice"]
    bob_id, _ = users["bob"]

    res = await client.post("/api/v1/expense/", json={
        "group_id": group_id,
        "description": "Taxi",
        "amount": "50.00",
        "split": {"split_method": "exact", "splits": [
            {"user_id": alice_id, "amount_owed": "20.00"},
            {"user_id": bob_id, "amount_owed": "20.00"},
        ]},
    }, headers=alice_auth)

    assert res.status_code == 400
    assert res.json() == {
        "error": "SplitMismatch",
        "message": "Sum of splits (40.00) does not match expense amount (50.00)",
        "expected": "50.00",
        "actual": "40.00",
    }


async def test_unknown_split_method_is_rejected(client, trio):
    group_id, users = trio
    _, alice_auth = users["alice"]

    res = await client.post("/api/v1/expense/", json={
        "group_id": group_id,
        "description": "Taxi",
        "amount": "50.00",
        "split": {"split_method": "by_vibes"},
    }, headers=alice_auth)

    assert res.status_code == 422


async def test_outsider_is_forbidden(client, trio):
    group_id, _ = trio
    _, mallory_auth = await signup(client, "mallory")

    res = await client.post("/api/v1/expense/", json={
        "group_id": group_id,
        "description": "Sneaky",
        "amount": "10.00",
        "split": {"split_method": "equally"},
    }, headers=mallory_auth)
    assert res.status_code == 403
    assert res.json()["error"] == "Forbidden"

    res = await client.get(f"/api/v1/groups/{group_id}", headers=mallory_auth)
    assert res.status_code == 403

    res = await client.get("/api/v1/balances/detailed", params={"group_id": group_id}, headers=mallory_auth)
    assert res.status_code == 403


async def test_missing_group_is_not_found(client, trio):
    _, users = trio
    _, alice_auth = users["alice"]

    res = await client.get("/api/v1/balances/detailed", params={"group_id": "missing"}, headers=alice_auth)

    assert res.status_code == 404
    assert res.json()["error"] == "NotFound"


async def test_self_payment_rejected(client, trio):
    _, users = trio
    alice_id, alice_auth = users["alice"]

    res = await client.post("/api/v1/payments/", json={"payee_id": alice_id, "amount": "5.00"}, headers=alice_auth)

    assert res.status_code == 400
    assert res.json()["error"] == "InvalidInput"


async def test_edit_and_delete_expense(client, trio):
    group_id, users = trio
    alice_id, alice_auth = users["alice"]
    _, carol_auth = users["carol"]

    res = await client.post("/api/v1/expense/", json={
        "group_id": group_id,
        "description": "Rent",
        "amount": "900.00",
        "split": {"split_method": "equally"},
    }, headers=alice_auth)
    expense_id = res.json()["id"]

    res = await client.patch(f"/api/v1/expense/{expense_id}", json={
        "amount": "300.00",
        "split": {"split_method": "shares", "splits": [{"user_id": alice_id, "shares": 1}]},
    }, headers=carol_auth)
    assert res.status_code == 200, res.text
    assert [Decimal(str(s["amount_owed"])) for s in res.json()["splits"]] == [Decimal("300.00")]

    res = await client.get("/api/v1/expense/", headers=carol_auth)
    assert res.json() == []

    res = await client.delete(f"/api/v1/expense/{expense_id}", headers=carol_auth)
    assert res.json() == {"status": "deleted"}

    res = await client.get(f"/api/v1/expense/{expense_id}", headers=alice_auth)
    assert res.status_code == 404
