"""
Authentication service — secret key resolution and user provisioning.

This module contains the auth logic, separated from HTTP concerns. The
get_current_user dependency calls resolve() and translates a miss into a
401; nothing else in the request path ever sees a secret key.

Resolve flow:
  1. Digest the presented key with SHA-256
  2. Look the digest up (indexed, unique column)
  3. Confirm with a constant-time comparison

Provisioning flow (demo/seed.py, tests):
  1. Refuse duplicate usernames
  2. Generate a random secret key and store only its digest
  3. Return the plaintext key once — it cannot be recovered later
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.exceptions import DuplicateUsernameError
from ledger_api.models.user import User
from ledger_api.security import generate_secret_key, hash_secret_key, verify_secret_key


async def resolve(db: AsyncSession, secret_key: str) -> User | None:
    """
    Map a secret key to its user.

    Returns:
        The User, or None if no user holds this key.
    """
    secret_key_hash = hash_secret_key(secret_key)
    result = await db.execute(select(User).where(User.secret_key_hash == secret_key_hash))
    user = result.scalar_one_or_none()

    if user is None or not verify_secret_key(secret_key, user.secret_key_hash):
        return None

    return user


async def create_user(
    db: AsyncSession,
    username: str,
    secret_key: str | None = None,
) -> tuple[User, str]:
    """
    Provision a new user.

    Args:
        db: Database session.
        username: Unique display name.
        secret_key: Explicit key (tests, fixtures) or None to generate one.

    Returns:
        Tuple of (User instance, plaintext secret key).

    Raises:
        DuplicateUsernameError: If the username is already taken.
    """
    result = await db.execute(select(User).where(User.username == username))
    if result.scalar_one_or_none() is not None:
        raise DuplicateUsernameError(username)

    if secret_key is None:
        secret_key = generate_secret_key()

    user = User(username=username, secret_key_hash=hash_secret_key(secret_key))
    db.add(user)
    await db.flush()

    return user, secret_key
