"""
Transaction model — the append-only ledger.

Every submitted money movement creates exactly one Transaction row, whether
it completed or failed. Rows are never updated or deleted: this table is the
audit trail.

Key fields:
  - transaction_id: Random UUID4 string, the public identifier
  - type: "deposit", "withdrawal" or "transfer"
  - amount: As submitted — a failed row may hold a zero or negative amount
  - source_account_id / destination_account_id: Which balances moved
  - status: "completed" or "failed"
  - failure_reason: Human-readable reason, set iff status is "failed"

Weak references:
  The account references use ON DELETE SET NULL. Removing an account must
  not destroy its history, so the reference becomes NULL instead of the
  delete cascading into the ledger.
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ledger_api.database import Base
from ledger_api.models.account import MONEY


class TransactionType(str, enum.Enum):
    """
    The kind of money movement requested.

    Inherits from str so values serialize naturally to JSON and are stored
    as plain strings.
    """
    DEPOSIT = "deposit"         # Money into destination
    WITHDRAWAL = "withdrawal"   # Money out of source
    TRANSFER = "transfer"       # Source -> destination


class TransactionStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    transaction_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        "amount_cents",
        MONEY,
        nullable=False,
    )

    source_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    destination_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        index=True,
    )

    failure_reason: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Indexed for time-ordered audit queries
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
