#!/usr/bin/env python3
"""
Promote an existing user to ADMIN. Run on the server.

Only an ADMIN can create another ADMIN through the API, so the first one
has to be provisioned by an operator:

    python demo/promote_admin.py root
"""
import argparse
import asyncio

from sqlalchemy import update

from bankcards.database import AsyncSessionLocal, engine
from bankcards.models.user import Role, User


async def promote(username: str) -> int:
    async with AsyncSessionLocal() as s:
        r = await s.execute(
            update(User)
            .where(User.username == username)
            .values(role=Role.ADMIN)
        )
        await s.commit()
    await engine.dispose()
    return r.rowcount


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Promote a user to ADMIN")
    parser.add_argument("username")
    args = parser.parse_args()
    print(f"Rows updated: {asyncio.run(promote(args.username))}")
