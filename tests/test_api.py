import asyncio

from httpx import AsyncClient


async def create_account(client: AsyncClient, account_id: int, balance: str):
    return await client.post(
        "/accounts", json={"account_id": account_id, "initial_balance": balance}
    )


async def transfer(client: AsyncClient, source: int, destination: int, amount: str):
    return await client.post(
        "/transactions",
        json={
            "source_account_id": source,
            "destination_account_id": destination,
            "amount": amount,
        },
    )


# ── Test 1: Create then read an account ───────────────────────────────────────

async def test_create_and_get_account(client: AsyncClient):
    resp = await create_account(client, 123, "100.50")
    assert resp.status_code == 201
    assert resp.content == b""

    resp = await client.get("/accounts/123")
    assert resp.status_code == 200
    assert resp.json() == {"account_id": 123, "balance": "100.5"}


# ── Test 2: Reading twice without a transfer returns the same balance ─────────

async def test_get_account_is_stable(client: AsyncClient):
    await create_account(client, 1, "0.00")
    first = (await client.get("/accounts/1")).json()
    second = (await client.get("/accounts/1")).json()
    assert first == second == {"account_id": 1, "balance": "0"}


# ── Test 3: Transfer end to end ───────────────────────────────────────────────

async def test_transfer_updates_balances(client: AsyncClient):
    await create_account(client, 123, "100.50")
    await create_account(client, 456, "200.75")

    resp = await transfer(client, 123, 456, "25.25")
    assert resp.status_code == 201
    body = resp.json()
    assert body["amount"] == "25.25"
    assert body["status"] == "completed"

    assert (await client.get("/accounts/123")).json()["balance"] == "75.25"
    assert (await client.get("/accounts/456")).json()["balance"] == "226"

    resp = await client.get(f"/transactions/{body['transfer_id']}")
    assert resp.status_code == 200
    assert resp.json()["source_account_id"] == 123


async def test_transfers_alias_route(client: AsyncClient):
    await create_account(client, 1, "5")
    await create_account(client, 2, "5")
    resp = await client.post(
        "/transfers",
        json={"source_account_id": 1, "destination_account_id": 2, "amount": "5"},
    )
    assert resp.status_code == 201


# ── Test 4: Error kinds map to stable codes and statuses ──────────────────────

async def test_duplicate_account_conflict(client: AsyncClient):
    await create_account(client, 123, "1")
    resp = await create_account(client, 123, "1")
    assert resp.status_code == 409
    assert resp.json()["error"] == {
        "code": "ACCOUNT_ALREADY_EXISTS",
        "message": "account already exists",
        "field": "account_id",
    }


async def test_negative_initial_balance(client: AsyncClient):
    resp = await create_account(client, 123, "-5")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "NEGATIVE_INITIAL_BALANCE"
    assert (await client.get("/accounts/123")).status_code == 404


async def test_unknown_account_not_found(client: AsyncClient):
    resp = await client.get("/accounts/999")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "ACCOUNT_NOT_FOUND"


async def test_insufficient_balance_is_client_fault(client: AsyncClient):
    await create_account(client, 123, "100.50")
    await create_account(client, 456, "200.75")

    resp = await transfer(client, 123, 456, "1000.00")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INSUFFICIENT_BALANCE"
    assert (await client.get("/accounts/123")).json()["balance"] == "100.5"


async def test_same_account_transfer(client: AsyncClient):
    await create_account(client, 123, "100")
    resp = await transfer(client, 123, 123, "1")
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == (
        "source and destination accounts cannot be the same"
    )


async def test_transfer_from_unknown_account(client: AsyncClient):
    await create_account(client, 456, "1")
    resp = await transfer(client, 999, 456, "1")
    assert resp.status_code == 400
    assert resp.json()["error"] == {
        "code": "SOURCE_ACCOUNT_INVALID",
        "message": "source account validation failed",
        "field": "source_account_id",
    }


async def test_unknown_transfer_not_found(client: AsyncClient):
    resp = await client.get("/transactions/77")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "TRANSFER_NOT_FOUND"


# ── Test 5: Request shape failures → 400 ──────────────────────────────────────

async def test_missing_field_rejected(client: AsyncClient):
    resp = await client.post("/accounts", json={"account_id": 1})
    assert resp.status_code == 400


async def test_numeric_amount_rejected(client: AsyncClient):
    resp = await client.post(
        "/transactions",
        json={"source_account_id": 1, "destination_account_id": 2, "amount": 1.5},
    )
    assert resp.status_code == 400


async def test_non_integer_account_path(client: AsyncClient):
    resp = await client.get("/accounts/abc")
    assert resp.status_code == 400


async def test_account_id_out_of_int64_range(client: AsyncClient):
    resp = await client.get(f"/accounts/{2**63}")
    assert resp.status_code == 400


# ── Test 6: Concurrent opposite transfers through the API ─────────────────────

async def test_concurrent_opposite_transfers(client: AsyncClient):
    await create_account(client, 10, "50")
    await create_account(client, 20, "50")

    results = await asyncio.gather(
        transfer(client, 10, 20, "20"),
        transfer(client, 20, 10, "30"),
        transfer(client, 10, 20, "5"),
    )
    assert [r.status_code for r in results] == [201, 201, 201]

    a = (await client.get("/accounts/10")).json()["balance"]
    b = (await client.get("/accounts/20")).json()["balance"]
    assert (a, b) == ("55", "45")


async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# ── Test 7: Values beyond the stored precision → 400 ──────────────────────────

async def test_out_of_range_exponent_is_client_fault(client: AsyncClient):
    resp = await create_account(client, 1, "1e99999999999999999999")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_AMOUNT_FORMAT"


async def test_credit_beyond_precision_is_client_fault(client: AsyncClient):
    await create_account(client, 1, "9" * 30)
    await create_account(client, 2, "9" * 30)

    resp = await transfer(client, 1, 2, "9" * 30)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BALANCE_OUT_OF_RANGE"
    assert (await client.get("/accounts/2")).json()["balance"] == "9" * 30
