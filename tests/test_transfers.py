"""
Tests for transfers between a user's own cards.

These tests verify:
  - Successful transfers move exactly the amount and report both balances
  - Transferring the exact balance leaves zero
  - Insufficient funds, same-card and non-positive amounts are rejected
  - Both cards must belong to the caller (no admin override)
  - BLOCKED cards still send and receive
  - Missing cards are reported as "Source" or "Destination"
  - Failed transfers change nothing (atomicity)
  - Concurrent transfers from one card never lose an update or overdraw
"""

import asyncio
import uuid
from datetime import date

import pytest
from sqlalchemy import select, update

from bankcards.exceptions import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InvalidInputError,
)
from bankcards.models.card import Card, CardStatus
from bankcards.models.user import Role, User
from bankcards.schemas.user import Principal
from bankcards.services import transfer_service
from bankcards.services.card_cipher import get_cipher


async def balance_of(client, card_id) -> int:
    response = await client.get(f"/cards/{card_id}/balance")
    assert response.status_code == 200, response.text
    return response.json()["balance_cents"]


class TestTransferSuccess:
    """Tests for successful transfer operations."""

    async def test_transfer_between_own_cards(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=10000)
        card_b = await issue_card("alice", balance_cents=0)

        response = await user_client.post(
            "/transfers",
            json={
                "from_card_id": card_a["id"],
                "to_card_id": card_b["id"],
                "amount_cents": 5000,
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["amount_cents"] == 5000
        assert data["from_card_id"] == card_a["id"]
        assert data["to_card_id"] == card_b["id"]
        assert data["from_balance_cents"] == 5000
        assert data["to_balance_cents"] == 5000

        assert await balance_of(user_client, card_a["id"]) == 5000
        assert await balance_of(user_client, card_b["id"]) == 5000

    async def test_transfer_exact_balance(self, user_client, issue_card):
        """Transferring the exact balance should succeed (leaving zero)."""
        card_a = await issue_card("alice", balance_cents=7500)
        card_b = await issue_card("alice")

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 7500},
        )
        assert response.status_code == 201
        assert await balance_of(user_client, card_a["id"]) == 0
        assert await balance_of(user_client, card_b["id"]) == 7500

    async def test_back_and_forth(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=50000)
        card_b = await issue_card("alice")

        await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 20000},
        )
        await user_client.post(
            "/transfers",
            json={"from_card_id": card_b["id"], "to_card_id": card_a["id"], "amount_cents": 5000},
        )

        # A: 50000 - 20000 + 5000 = 35000
        # B: 0 + 20000 - 5000 = 15000
        assert await balance_of(user_client, card_a["id"]) == 35000
        assert await balance_of(user_client, card_b["id"]) == 15000


class TestTransferFailures:

    async def test_insufficient_funds_rejected(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=1000)
        card_b = await issue_card("alice", balance_cents=200)

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 1001},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "insufficient_funds"
        assert body["requested_cents"] == 1001
        assert body["available_cents"] == 1000

        # Nothing moved
        assert await balance_of(user_client, card_a["id"]) == 1000
        assert await balance_of(user_client, card_b["id"]) == 200

    async def test_same_card_rejected(self, user_client, issue_card):
        card = await issue_card("alice", balance_cents=1000)
        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card["id"], "to_card_id": card["id"], "amount_cents": 100},
        )
        assert response.status_code == 422
        assert await balance_of(user_client, card["id"]) == 1000

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_amount_rejected(self, user_client, issue_card, amount):
        card_a = await issue_card("alice", balance_cents=1000)
        card_b = await issue_card("alice")
        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": amount},
        )
        assert response.status_code == 422

    async def test_cannot_transfer_from_other_users_card(
        self, user_client, second_user_client, issue_card
    ):
        alice_card = await issue_card("alice", balance_cents=10000)
        bob_card = await issue_card("bob")

        response = await second_user_client.post(
            "/transfers",
            json={"from_card_id": alice_card["id"], "to_card_id": bob_card["id"], "amount_cents": 5000},
        )
        assert response.status_code == 403
        assert await balance_of(user_client, alice_card["id"]) == 10000

    async def test_cannot_transfer_to_other_users_card(
        self, user_client, second_user_client, issue_card
    ):
        """Transfers are between the caller's own cards only."""
        alice_card = await issue_card("alice", balance_cents=10000)
        bob_card = await issue_card("bob")

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": alice_card["id"], "to_card_id": bob_card["id"], "amount_cents": 5000},
        )
        assert response.status_code == 403
        assert await balance_of(user_client, alice_card["id"]) == 10000
        assert await balance_of(second_user_client, bob_card["id"]) == 0

    async def test_admin_cannot_move_users_money(self, user_client, admin_client, issue_card):
        card_a = await issue_card("alice", balance_cents=10000)
        card_b = await issue_card("alice")

        response = await admin_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 100},
        )
        assert response.status_code == 403

    async def test_unknown_source_card(self, user_client, issue_card):
        card = await issue_card("alice")
        missing = uuid.uuid4()

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": str(missing), "to_card_id": card["id"], "amount_cents": 100},
        )
        assert response.status_code == 404
        assert response.json()["detail"].startswith("Source card")

    async def test_unknown_destination_card(self, user_client, issue_card):
        card = await issue_card("alice", balance_cents=1000)
        missing = uuid.uuid4()

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card["id"], "to_card_id": str(missing), "amount_cents": 100},
        )
        assert response.status_code == 404
        assert response.json()["detail"].startswith("Destination card")
        assert await balance_of(user_client, card["id"]) == 1000



class TestTransferCardStatus:
    """Blocking is a lifecycle flag; it does not freeze the owner's balance."""

    async def test_blocked_source_still_transfers(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=100)
        card_b = await issue_card("alice", balance_cents=50)
        await user_client.post(f"/cards/{card_a['id']}/block")

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 50},
        )
        assert response.status_code == 201
        assert await balance_of(user_client, card_a["id"]) == 50
        assert await balance_of(user_client, card_b["id"]) == 100

        # Still blocked afterwards
        listing = (await user_client.get("/cards", params={"status": "BLOCKED"})).json()
        assert [c["id"] for c in listing["items"]] == [card_a["id"]]

    async def test_blocked_destination_still_receives(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=1000)
        card_b = await issue_card("alice")
        await user_client.post(f"/cards/{card_b['id']}/block")

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 100},
        )
        assert response.status_code == 201
        assert await balance_of(user_client, card_a["id"]) == 900
        assert await balance_of(user_client, card_b["id"]) == 100

    async def test_blocked_card_still_needs_funds(self, user_client, issue_card):
        card_a = await issue_card("alice", balance_cents=10)
        card_b = await issue_card("alice")
        await user_client.post(f"/cards/{card_a['id']}/block")

        response = await user_client.post(
            "/transfers",
            json={"from_card_id": card_a["id"], "to_card_id": card_b["id"], "amount_cents": 11},
        )
        assert response.status_code == 422
        assert response.json()["error_type"] == "insufficient_funds"


class TestTransferService:
    """Service-level checks that bypass request validation."""

    async def test_service_rejects_non_positive_amount(self, db_session):
        principal = Principal(username="alice", role=Role.USER)
        with pytest.raises(InvalidInputError):
            await transfer_service.transfer(db_session, principal, uuid.uuid4(), uuid.uuid4(), 0)

    async def test_service_rejects_same_card(self, db_session):
        principal = Principal(username="alice", role=Role.USER)
        card_id = uuid.uuid4()
        with pytest.raises(InvalidInputError):
            await transfer_service.transfer(db_session, principal, card_id, card_id, 100)

    async def test_insufficient_funds_is_typed(self, user_client, issue_card, db_session):
        card_a = await issue_card("alice", balance_cents=50)
        card_b = await issue_card("alice")
        principal = Principal(username="alice", role=Role.USER)

        with pytest.raises(InsufficientFundsError) as exc_info:
            await transfer_service.transfer(
                db_session, principal, uuid.UUID(card_a["id"]), uuid.UUID(card_b["id"]), 51
            )
        assert exc_info.value.available_cents == 50


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

async def seed_two_cards(session_factory, balance_a: int, balance_b: int):
    cipher = get_cipher()
    async with session_factory() as session:
        owner = User(username="alice", hashed_password="x", role=Role.USER)
        card_a = Card(
            owner=owner,
            card_number_encrypted=cipher.encrypt("4111111111111111"),
            card_number_fingerprint=cipher.fingerprint("4111111111111111"),
            expiry_date=date(2099, 1, 1),
            status=CardStatus.ACTIVE,
            balance_cents=balance_a,
        )
        card_b = Card(
            owner=owner,
            card_number_encrypted=cipher.encrypt("4012888888881881"),
            card_number_fingerprint=cipher.fingerprint("4012888888881881"),
            expiry_date=date(2099, 1, 1),
            status=CardStatus.ACTIVE,
            balance_cents=balance_b,
        )
        session.add_all([owner, card_a, card_b])
        await session.commit()
        return card_a.id, card_b.id


async def balances(session_factory, *card_ids):
    async with session_factory() as session:
        result = await session.execute(
            select(Card.id, Card.balance_cents).where(Card.id.in_(card_ids))
        )
        by_id = dict(result.all())
    return [by_id[card_id] for card_id in card_ids]


class TestConcurrentTransfers:

    async def test_concurrent_transfers_conserve_money(self, file_session_factory):
        """
        Ten transfers race on the same source card. Every one either commits
        on fresh data or fails cleanly; the total never changes and the
        source is debited exactly once per committed transfer.
        """
        principal = Principal(username="alice", role=Role.USER)
        card_a, card_b = await seed_two_cards(file_session_factory, 10000, 0)
        workers = 10

        async def one_transfer():
            async with file_session_factory() as session:
                try:
                    await transfer_service.transfer(
                        session, principal, card_a, card_b, 700, max_attempts=workers + 1
                    )
                    await session.commit()
                    return True
                except (ConcurrentModificationError, InsufficientFundsError):
                    await session.rollback()
                    return False

        outcomes = await asyncio.gather(*(one_transfer() for _ in range(workers)))
        succeeded = sum(outcomes)

        balance_a, balance_b = await balances(file_session_factory, card_a, card_b)
        assert balance_a + balance_b == 10000
        assert balance_a == 10000 - 700 * succeeded
        assert balance_b == 700 * succeeded
        assert balance_a >= 0
        # 10 x 700 fits in 10000, so with enough retries all of them land
        assert succeeded == workers

    async def test_concurrent_transfers_never_overdraw(self, file_session_factory):
        principal = Principal(username="alice", role=Role.USER)
        card_a, card_b = await seed_two_cards(file_session_factory, 1000, 0)
        workers = 8

        async def one_transfer():
            async with file_session_factory() as session:
                try:
                    await transfer_service.transfer(
                        session, principal, card_a, card_b, 300, max_attempts=workers + 1
                    )
                    await session.commit()
                    return True
                except (ConcurrentModificationError, InsufficientFundsError):
                    await session.rollback()
                    return False

        outcomes = await asyncio.gather(*(one_transfer() for _ in range(workers)))

        balance_a, balance_b = await balances(file_session_factory, card_a, card_b)
        # Only three 300-cent transfers fit in 1000
        assert sum(outcomes) == 3
        assert balance_a == 100
        assert balance_b == 900

    async def test_stale_version_is_retried_on_fresh_data(self, file_session_factory):
        """A write committed between our read and our flush forces a re-read."""
        principal = Principal(username="alice", role=Role.USER)
        card_a, card_b = await seed_two_cards(file_session_factory, 1000, 0)

        async with file_session_factory() as session:
            # Load the cards into this session's identity map at version 1
            await session.execute(select(Card).where(Card.id.in_([card_a, card_b])))
            await session.commit()

            # Another writer drains 900 cents and bumps the version
            async with file_session_factory() as other:
                await other.execute(
                    update(Card)
                    .where(Card.id == card_a)
                    .values(balance_cents=100, version=Card.version + 1)
                )
                await other.commit()

            with pytest.raises(InsufficientFundsError) as exc_info:
                await transfer_service.transfer(session, principal, card_a, card_b, 500)
            assert exc_info.value.available_cents == 100
