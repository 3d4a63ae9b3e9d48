from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    TIMESTAMP,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from transfer_ledger import money


class Base(DeclarativeBase):
    pass


class TransferStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DecimalText(TypeDecorator):
    """Decimal stored as canonical text, for backends whose NUMERIC is a float."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return money.render(Decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


Money = Numeric(38, 8, asdecimal=True).with_variant(DecimalText(), "sqlite")
# SQLite only autoincrements INTEGER PRIMARY KEY
SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")


class Account(Base):
    __tablename__ = "accounts"

    account_id = Column(BigInteger, primary_key=True, autoincrement=False)
    balance = Column(Money, nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("account_id > 0", name="ck_accounts_id_positive"),
        CheckConstraint("balance >= 0", name="ck_accounts_balance_nonneg"),
    )


class Transfer(Base):
    __tablename__ = "transfers"

    transfer_id = Column(SurrogateKey, primary_key=True, autoincrement=True)
    source_account_id = Column(
        BigInteger, ForeignKey("accounts.account_id"), nullable=False
    )
    destination_account_id = Column(
        BigInteger, ForeignKey("accounts.account_id"), nullable=False
    )
    amount = Column(Money, nullable=False)
    status = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "source_account_id <> destination_account_id",
            name="ck_transfers_distinct_accounts",
        ),
        CheckConstraint("amount > 0", name="ck_transfers_amount_positive"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed')",
            name="ck_transfers_status",
        ),
        Index("ix_transfers_source_account_id", "source_account_id"),
        Index("ix_transfers_destination_account_id", "destination_account_id"),
        Index("ix_transfers_status", "status"),
        {"sqlite_autoincrement": True},
    )
