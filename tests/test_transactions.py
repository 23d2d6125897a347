from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from vcards.db.models import Audit, Transaction


async def transaction_count(session, card_id: int) -> int:
    result = await session.execute(select(func.count(Transaction.id)).where(Transaction.card_id == card_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_purchase_within_limit_and_lock(client, async_session, make_card):
    card = await make_card(spending_limit="100.00", merchant_lock="Amazon")

    res = await client.post(
        "/transactions", json={"cardId": card.id, "amount": 50, "merchantName": "Amazon Prime"}
    )

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["status"] == "success"
    assert body["reason"] is None
    assert Decimal(str(body["remainingBalance"])) == Decimal("50.00")
    assert body["transaction"]["status"] == "success"
    assert body["transaction"]["merchantName"] == "Amazon Prime"
    await async_session.refresh(card)
    assert Decimal(card.current_spent) == Decimal("50.00")
    assert await transaction_count(async_session, card.id) == 1


@pytest.mark.asyncio
async def test_purchase_over_limit(client, async_session, make_card):
    card = await make_card(spending_limit="100.00", current_spent="90.00")

    res = await client.post("/transactions", json={"cardId": card.id, "amount": 20, "merchantName": "Shop"})

    assert res.status_code == 400
    body = res.json()
    assert body["status"] == "failed"
    assert body["reason"] == "exceeds spending limit"
    assert body["transaction"]["status"] == "failed"
    assert body["remainingBalance"] is None
    await async_session.refresh(card)
    assert Decimal(card.current_spent) == Decimal("90.00")
    assert await transaction_count(async_session, card.id) == 1


@pytest.mark.asyncio
async def test_purchase_at_wrong_merchant(client, async_session, make_card):
    card = await make_card(merchant_lock="Amazon")

    res = await client.post("/transactions", json={"cardId": card.id, "amount": 5, "merchantName": "eBay Store"})

    assert res.status_code == 400
    assert res.json()["reason"] == "merchant not allowed"
    assert res.json()["transaction"]["failureReason"] == "merchant not allowed"
    assert await transaction_count(async_session, card.id) == 1


@pytest.mark.asyncio
async def test_purchase_on_expired_card_leaves_no_record(client, async_session, make_card):
    card = await make_card(expiry_date=datetime.now(timezone.utc) - timedelta(minutes=1))

    res = await client.post("/transactions", json={"cardId": card.id, "amount": 5, "merchantName": "Shop"})

    assert res.status_code == 400
    assert res.json() == {"status": "failed", "reason": "card expired", "transaction": None, "remainingBalance": None}
    assert await transaction_count(async_session, card.id) == 0


@pytest.mark.asyncio
async def test_purchase_on_inactive_card(client, async_session, make_card, override_settings):
    card = await make_card(is_active=False)

    res = await client.post("/transactions", json={"cardId": card.id, "amount": 5, "merchantName": "Shop"})
    assert res.status_code == 400
    assert res.json()["reason"] == "card inactive"
    assert await transaction_count(async_session, card.id) == 0

    override_settings(record_all_attempts=True)
    res = await client.post("/transactions", json={"cardId": card.id, "amount": 5, "merchantName": "Shop"})
    assert res.status_code == 400
    assert res.json()["transaction"]["status"] == "failed"
    assert await transaction_count(async_session, card.id) == 1


@pytest.mark.asyncio
async def test_purchase_on_unknown_card(client):
    res = await client.post("/transactions", json={"cardId": 4242, "amount": 5, "merchantName": "Shop"})
    assert res.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"cardId": 1, "amount": 0, "merchantName": "Shop"},
        {"cardId": 1, "amount": -3, "merchantName": "Shop"},
        {"cardId": 1, "amount": 0.001, "merchantName": "Shop"},
        {"cardId": 1, "amount": 1e30, "merchantName": "Shop"},
        {"cardId": 1, "amount": "12345678901.00", "merchantName": "Shop"},
        {"cardId": 1, "amount": 5, "merchantName": ""},
        {"cardId": 1, "amount": 5, "merchantName": "   "},
        {"cardId": 1, "amount": 5},
        {"cardId": 1, "amount": 5, "merchantName": "Shop", "status": "success"},
    ],
)
async def test_purchase_validation(client, payload):
    res = await client.post("/transactions", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"] == "Validation failed"


@pytest.mark.asyncio
async def test_sub_cent_purchase_is_not_recorded(client, async_session, make_card):
    card = await make_card(spending_limit="100.00")

    res = await client.post("/transactions", json={"cardId": card.id, "amount": 0.001, "merchantName": "Shop"})

    assert res.status_code == 400
    assert any("amount" in error["loc"] for error in res.json()["errors"])
    assert await transaction_count(async_session, card.id) == 0
    await async_session.refresh(card)
    assert Decimal(card.current_spent) == Decimal("0.00")


@pytest.mark.asyncio
async def test_purchase_auth_can_be_required(client, make_card, other_user, headers_for, auth_headers, override_settings):
    card = await make_card()
    override_settings(require_auth_for_purchases=True)
    payload = {"cardId": card.id, "amount": 5, "merchantName": "Shop"}

    assert (await client.post("/transactions", json=payload)).status_code == 401
    assert (await client.post("/transactions", json=payload, headers=headers_for(other_user))).status_code == 403
    assert (await client.post("/transactions", json=payload, headers=auth_headers)).status_code == 200


@pytest.mark.asyncio
async def test_purchase_is_audited_for_card_owner(client, async_session, make_card, user):
    card = await make_card()

    await client.post("/transactions", json={"cardId": card.id, "amount": 5, "merchantName": "Shop"})

    result = await async_session.execute(select(Audit).where(Audit.user_id == user.id, Audit.resource == "transaction"))
    entry = result.scalar_one()
    assert entry.action == "purchase_approved"
    assert entry.card_id == card.id
    assert entry.details["transaction_id"] is not None


@pytest.mark.asyncio
async def test_list_transactions_scoped_and_filtered(client, make_card, other_user, auth_headers):
    first = await make_card(merchant_lock="Amazon")
    second = await make_card()
    foreign = await make_card(owner=other_user)

    for payload in (
        {"cardId": first.id, "amount": 10, "merchantName": "Amazon"},
        {"cardId": first.id, "amount": 10, "merchantName": "eBay"},
        {"cardId": second.id, "amount": 7.5, "merchantName": "Cafe"},
        {"cardId": foreign.id, "amount": 1, "merchantName": "Elsewhere"},
    ):
        await client.post("/transactions", json=payload)

    res = await client.get("/transactions", headers=auth_headers)
    assert res.status_code == 200
    items = res.json()
    assert len(items) == 3
    assert {item["cardId"] for item in items} == {first.id, second.id}
    assert {item["cardLastFourDigits"] for item in items} == {first.last_four_digits, second.last_four_digits}

    res = await client.get("/transactions", params={"cardId": first.id}, headers=auth_headers)
    assert {item["merchantName"] for item in res.json()} == {"Amazon", "eBay"}

    res = await client.get("/transactions", params={"status": "failed"}, headers=auth_headers)
    assert [item["merchantName"] for item in res.json()] == ["eBay"]

    res = await client.get("/transactions", params={"cardId": foreign.id}, headers=auth_headers)
    assert res.json() == []


@pytest.mark.asyncio
async def test_list_transactions_by_date_range(client, async_session, make_card, auth_headers):
    card = await make_card()
    await client.post("/transactions", json={"cardId": card.id, "amount": 3, "merchantName": "Today"})
    await client.post("/transactions", json={"cardId": card.id, "amount": 4, "merchantName": "Long ago"})
    await async_session.execute(
        update(Transaction)
        .where(Transaction.merchant_name == "Long ago")
        .values(created_at=datetime.now(timezone.utc) - timedelta(days=60))
    )
    await async_session.commit()

    everything = await client.get("/transactions", params={"range": "all"}, headers=auth_headers)
    today = await client.get("/transactions", params={"range": "today"}, headers=auth_headers)
    month = await client.get("/transactions", params={"range": "month"}, headers=auth_headers)

    assert len(everything.json()) == 2
    assert [item["merchantName"] for item in today.json()] == ["Today"]
    assert [item["merchantName"] for item in month.json()] == ["Today"]


@pytest.mark.asyncio
async def test_list_transactions_rejects_unknown_range(client, auth_headers):
    res = await client.get("/transactions", params={"range": "decade"}, headers=auth_headers)
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_transaction_summary(client, make_card, auth_headers):
    card = await make_card(spending_limit="100.00", merchant_lock="Shop")
    for amount, merchant in ((20, "Shop A"), (30.25, "Shop B"), (5, "Elsewhere"), (90, "Shop C")):
        await client.post("/transactions", json={"cardId": card.id, "amount": amount, "merchantName": merchant})

    res = await client.get("/transactions/summary", headers=auth_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 4
    assert body["successful"] == 2
    assert body["failed"] == 2
    assert Decimal(str(body["totalAmount"])) == Decimal("50.25")

    res = await client.get("/transactions/summary", params={"status": "failed"}, headers=auth_headers)
    assert res.json()["total"] == 2
    assert Decimal(str(res.json()["totalAmount"])) == Decimal("0.00")


@pytest.mark.asyncio
async def test_history_requires_auth(client):
    assert (await client.get("/transactions")).status_code == 401
    assert (await client.get("/transactions/summary")).status_code == 401
