#!/usr/bin/env python3
"""
Demo seed script — provisions users and accounts for local testing.

!! NOT FOR PRODUCTION !!
This script creates demo users with freshly generated secret keys and
accounts with opening balances. The keys are written in plaintext to a
JSON file so you can try the API with them.

There is no API endpoint for creating users or accounts, so this script
writes through the package's own services (auth_service.create_user,
account_service.create_account) directly against DATABASE_URL.

Usage (after `pip install -e .`):
    # Seed an empty database:
    python demo/seed.py

    # Drop and recreate all tables, then seed:
    python demo/seed.py --reset

    # Write the credentials somewhere else:
    python demo/seed.py --output /tmp/creds.json

Then, with the server running (`ledger-api`):
    curl -H "X-Secret-Key: <alice's key>" localhost:3000/api/accounts/1/balance
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select

from ledger_api.config import get_settings
from ledger_api.database import Database
from ledger_api.models.account import Account
from ledger_api.models.transaction import Transaction
from ledger_api.models.user import User
from ledger_api.services import account_service, auth_service

# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

USERS = [
    {"username": "alice", "accounts": [{"account_number": "ACC001", "balance": "1000.00"}]},
    {"username": "bob", "accounts": [{"account_number": "ACC002", "balance": "500.00"}]},
    {"username": "charlie", "accounts": [{"account_number": "ACC003", "balance": "750.00"}]},
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


async def count_rows(database: Database) -> dict[str, int]:
    """Row counts for the three tables, to detect an already-seeded database."""
    async with database.session() as session:
        counts = {}
        for name, model in (("users", User), ("accounts", Account), ("transactions", Transaction)):
            result = await session.execute(select(func.count()).select_from(model))
            counts[name] = result.scalar_one()
        return counts


async def provision(database: Database) -> dict:
    """Create the demo users and accounts; return the credentials record."""
    seed_data = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "users": [],
        "accounts": [],
    }

    async with database.session() as session:
        for entry in USERS:
            user, secret_key = await auth_service.create_user(session, entry["username"])
            seed_data["users"].append(
                {"id": user.id, "username": user.username, "secret_key": secret_key}
            )
            log(f"User {user.username} (id {user.id})")

            for acct in entry["accounts"]:
                account = await account_service.create_account(
                    session,
                    user.id,
                    Decimal(acct["balance"]),
                    account_number=acct["account_number"],
                )
                seed_data["accounts"].append({
                    "id": account.id,
                    "account_number": account.account_number,
                    "user_id": user.id,
                    "username": user.username,
                    "initial_balance": float(account.balance),
                })
                log(f"  Account {account.account_number} (id {account.id}): {account.balance}")

    return seed_data


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(reset: bool, output: str) -> None:
    settings = get_settings()
    database = Database(settings.DATABASE_URL)

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")
    log(f"Database: {settings.DATABASE_URL}")

    try:
        if reset:
            print("\nDropping all tables...")
            await database.drop_all()
        await database.create_all()

        counts = await count_rows(database)
        if any(counts.values()):
            print("\n  ERROR: Database already contains data!")
            for name, total in counts.items():
                log(f"  - {name}: {total}")
            print("\n  Re-run with --reset to wipe it and seed again.\n")
            sys.exit(1)

        print("\nProvisioning users and accounts...")
        seed_data = await provision(database)
    finally:
        await database.dispose()

    with open(output, "w") as f:
        json.dump(seed_data, f, indent=2)

    print("\n========================================")
    print("  SEED COMPLETE — Credentials")
    print("========================================")
    print(f"\n  {'Username':<12s} {'Secret key'}")
    print(f"  {'─' * 12} {'─' * 64}")
    for user in seed_data["users"]:
        print(f"  {user['username']:<12s} {user['secret_key']}")
    print(f"\n  Saved to {output}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample users and accounts and writes their secret keys to a file.",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Drop and recreate all tables before seeding",
    )
    parser.add_argument(
        "--output", default="seed-data.json",
        help="Where to write the generated credentials (default: seed-data.json)",
    )
    args = parser.parse_args()

    await seed(args.reset, args.output)


if __name__ == "__main__":
    asyncio.run(main())
