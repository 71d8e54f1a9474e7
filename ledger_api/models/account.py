"""
Account model — a balance holder owned by exactly one User.

Each account has:
  - A unique external account number (10 random digits unless provisioned
    with an explicit one)
  - A balance stored in integer cents ($10.50 is stored as 1050)

Balance management:
  The balance is only ever changed by the money-movement engine, and only
  by adding or subtracting a transaction amount in the same database
  transaction that records the ledger row.

Why integer cents?
  SQLite has no decimal type: a NUMERIC column silently holds a binary
  float, so 0.70 + 0.10 is stored as 0.7999999999999999 and a withdrawal
  of the displayed 0.80 fails the balance check. Integer cents make the
  SQL arithmetic and comparisons (balance + amount, balance >= amount)
  exact on every backend. Python code never sees cents: the Cents column
  type converts to and from two-place Decimals at the ORM boundary.

  A CHECK constraint at the database level enforces that the balance can
  never go negative. The engine checks before debiting, the store's debit
  is a conditional UPDATE, and the constraint is the final safety net.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import BigInteger, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_api.database import Base
from ledger_api.schemas.money import CENTS, to_money


class Cents(TypeDecorator):
    """
    Money column: Decimal in Python, integer cents in the database.

    Bound values (including the right-hand side of expressions such as
    Account.balance + amount) are quantized to cents and multiplied by 100.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(to_money(value) * 100)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(value) / 100).quantize(CENTS)


# Money type shared by balances and transaction amounts
MONEY = Cents()


class Account(Base):
    __tablename__ = "accounts"

    # Database-level constraint: balance can never be negative
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_accounts_non_negative_balance"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    account_number: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
    )

    # Owner of this account
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    balance: Mapped[Decimal] = mapped_column(
        "balance_cents",
        MONEY,
        nullable=False,
        default=Decimal("0.00"),
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
    user: Mapped["User"] = relationship(
        back_populates="accounts",
    )
