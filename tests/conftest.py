"""
Test fixtures for the Ledger API test suite.

This module provides shared fixtures used across all test files:

  - database / db_session: Fresh SQLite database file for each test
  - seeded: Two users and three accounts with known balances
  - client: Async HTTP test client (unauthenticated)
  - alice_client / bob_client: Test clients sending each user's X-Secret-Key

Seeded data (ids are deterministic because each test gets a fresh database):

    user   secret key          account  number       balance
    alice  alice-secret-key    1        1000000001   1000.00
    bob    bob-secret-key      2        1000000002    500.00
    alice                      3        1000000003    250.00

Key design decisions:
  - Each test gets a fresh SQLite file under pytest's tmp_path, so no
    state leaks between tests. A file (rather than :memory:) gives every
    session its own connection, which the concurrency tests rely on.
  - We override FastAPI's get_db dependency to hand out sessions from the
    test Database, so the application code works exactly as in production.
  - Users and accounts are provisioned through the real services
    (auth_service.create_user, account_service.create_account), the same
    code path demo/seed.py uses.
"""

from decimal import Decimal

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from ledger_api.database import Database, get_db
from ledger_api.main import app
from ledger_api.models.account import Account
from ledger_api.models.transaction import Transaction
from ledger_api.services import account_service, auth_service


ALICE_KEY = "alice-secret-key"
BOB_KEY = "bob-secret-key"


@pytest_asyncio.fixture
async def database(tmp_path):
    """Create a fresh Database with all tables for each test."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def seeded(database):
    """Provision alice and bob with the accounts listed in the module docstring."""
    async with database.session() as session:
        alice, _ = await auth_service.create_user(session, "alice", secret_key=ALICE_KEY)
        await account_service.create_account(
            session, alice.id, Decimal("1000.00"), account_number="1000000001"
        )
        bob, _ = await auth_service.create_user(session, "bob", secret_key=BOB_KEY)
        await account_service.create_account(
            session, bob.id, Decimal("500.00"), account_number="1000000002"
        )
        await account_service.create_account(
            session, alice.id, Decimal("250.00"), account_number="1000000003"
        )
    return {"alice_id": alice.id, "bob_id": bob.id}


@pytest_asyncio.fixture
async def db_session(database, seeded):
    """Provide an async session over the seeded test database."""
    async with database.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(database):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    per-test database instead of the real one.
    """

    async def override_get_db():
        async with database.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def alice_client(client, seeded):
    """Client authenticated as alice (owns accounts 1 and 3)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Secret-Key": ALICE_KEY},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def bob_client(client, seeded):
    """Client authenticated as bob (owns account 2)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Secret-Key": BOB_KEY},
    ) as ac:
        yield ac


class LedgerInspector:
    """Reads balances and ledger rows straight from the database, bypassing the API."""

    def __init__(self, database: Database):
        self.database = database

    async def balance(self, account_id: int) -> Decimal:
        async with self.database.session_factory() as session:
            result = await session.execute(
                select(Account.balance).where(Account.id == account_id)
            )
            return result.scalar_one()

    async def count(self, **filters) -> int:
        """Count ledger rows, optionally filtered by column values."""
        async with self.database.session_factory() as session:
            query = select(func.count(Transaction.id)).where(
                *(getattr(Transaction, column) == value for column, value in filters.items())
            )
            return (await session.execute(query)).scalar_one()

    async def rows(self) -> list[Transaction]:
        async with self.database.session_factory() as session:
            result = await session.execute(select(Transaction).order_by(Transaction.id))
            return list(result.scalars().all())


@pytest_asyncio.fixture
async def ledger(database, seeded):
    """Direct database view of the seeded ledger."""
    return LedgerInspector(database)
