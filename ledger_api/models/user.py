"""
User model — the authentication identity.

Each User owns zero or more accounts and authenticates with an opaque
secret key (X-Secret-Key header). Only the SHA-256 digest of the key is
stored; the plaintext is handed out once, when the user is provisioned.

Users are created by provisioning (demo/seed.py) and never deleted by the
API. Deleting one at the database level cascades to its accounts.
"""

from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_api.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Display name, also used in the summary report
    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    # SHA-256 hex digest of the secret key (never store the plaintext!)
    secret_key_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    # Audit timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    accounts: Mapped[list["Account"]] = relationship(
        back_populates="user",
        passive_deletes=True,
    )
