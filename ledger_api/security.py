"""
Security utilities: secret key generation, hashing, and verification.

Users authenticate with an opaque secret key sent in the X-Secret-Key
header. The key is a random 256-bit value, so it doesn't need a slow,
salted password hash — a plain SHA-256 digest is enough to make a leaked
users table useless, and (unlike a salted hash) it can be looked up
directly by an indexed column.

The digest comparison after lookup uses hmac.compare_digest so the final
check runs in constant time.
"""

import hashlib
import hmac
import secrets


def generate_secret_key() -> str:
    """
    Generate a new secret key for a user.

    Returns:
        A 64-character hex string (32 random bytes).
    """
    return secrets.token_hex(32)


def hash_secret_key(secret_key: str) -> str:
    """
    Digest a secret key for storage and lookup.

    Args:
        secret_key: The plaintext key as presented by the client.

    Returns:
        The SHA-256 hex digest.
    """
    return hashlib.sha256(secret_key.encode("utf-8")).hexdigest()


def verify_secret_key(secret_key: str, secret_key_hash: str) -> bool:
    """Constant-time check of a plaintext key against a stored digest."""
    return hmac.compare_digest(hash_secret_key(secret_key), secret_key_hash)
