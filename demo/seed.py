#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample users and cards.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────┬───────────────────┬───────┐
    │ Username │ Password          │ Role  │
    ├──────────┼───────────────────┼───────┤
    │ admin    │ AdminDemo123!     │ ADMIN │
    │ alice    │ AliceDemo123!     │ USER  │
    │ bob      │ BobDemo123!       │ USER  │
    │ carol    │ CarolDemo123!     │ USER  │
    └──────────┴───────────────────┴───────┘
"""

import argparse
import asyncio
import random
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {"username": "admin", "password": "AdminDemo123!"}

MEMBERS = [
    {"username": "alice", "password": "AliceDemo123!", "cards": [850_00, 5_000_00]},
    {"username": "bob", "password": "BobDemo123!", "cards": [1_200_00]},
    {"username": "carol", "password": "CarolDemo123!", "cards": [3_200_00, 12_000_00, 0]},
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def cents_to_dollars(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: httpx.AsyncClient, user: dict) -> str:
    """Register a user, return JWT token."""
    resp = await client.post(f"{BASE_URL}/auth/register", json={
        "username": user["username"],
        "password": user["password"],
    })
    resp.raise_for_status()
    return resp.json()["token"]


async def issue_card(client: httpx.AsyncClient, admin_token: str,
                     owner: str, balance_cents: int) -> dict:
    resp = await client.post(
        f"{BASE_URL}/admin/cards",
        json={
            "owner_username": owner,
            "expiry_date": (date.today() + timedelta(days=random.randint(365, 5 * 365))).isoformat(),
            "initial_balance_cents": balance_cents,
        },
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def do_transfer(client: httpx.AsyncClient, token: str,
                      from_id: str, to_id: str, amount_cents: int) -> httpx.Response:
    return await client.post(
        f"{BASE_URL}/transfers",
        json={"from_card_id": from_id, "to_card_id": to_id, "amount_cents": amount_cents},
        headers=auth_header(token),
    )


async def promote_to_admin(username: str) -> None:
    """
    Directly update the user's role to ADMIN in the database.

    The API only lets an existing ADMIN create admins, so the first one is
    an operator action.
    """
    from promote_admin import promote

    await promote(username)


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn bankcards.main:app --reload\n")
            sys.exit(1)

        # --- Admin ---
        print("Creating admin user...")
        admin_token = await register(client, ADMIN)
        await promote_to_admin(ADMIN["username"])
        log(f"Admin: {ADMIN['username']} / {ADMIN['password']}")

        # --- Members ---
        for member in MEMBERS:
            print(f"\nCreating {member['username']}...")
            token = await register(client, member)
            log(f"Login: {member['username']} / {member['password']}")

            cards = []
            for balance in member["cards"]:
                card = await issue_card(client, admin_token, member["username"], balance)
                cards.append(card)
                log(f"Card {card['masked_card_number']}  {cents_to_dollars(balance)}")

            # A few transfers between the member's own cards
            if len(cards) >= 2:
                for _ in range(random.randint(2, 5)):
                    src, dst = random.sample(cards, 2)
                    amount = random.randint(5_00, 150_00)
                    resp = await do_transfer(client, token, src["id"], dst["id"], amount)
                    outcome = "ok" if resp.status_code == 201 else resp.json()["error_type"]
                    log(f"Transfer {cents_to_dollars(amount)} "
                        f"{src['masked_card_number'][-4:]} -> {dst['masked_card_number'][-4:]}: {outcome}")

            # Block one card so the demo shows every state
            if len(cards) >= 3:
                await client.post(f"{BASE_URL}/cards/{cards[-1]['id']}/block",
                                  headers=auth_header(token))
                log(f"Blocked {cards[-1]['masked_card_number']}")

    print("\nDone.\n")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the Bank Cards API with demo data")
    parser.add_argument("--base-url", default=BASE_URL)
    args = parser.parse_args()
    asyncio.run(seed(args.base_url))


if __name__ == "__main__":
    main()
