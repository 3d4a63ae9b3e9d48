from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_ledger.models.ledger import Account, Transfer, TransferStatus
from transfer_ledger.schemas.account import AccountRecord
from transfer_ledger.schemas.transfer import TransferRecord
from transfer_ledger.store.base import AbstractAccountStore, AbstractLedgerStore

TRANSFER_COLUMNS = (
    Transfer.transfer_id,
    Transfer.source_account_id,
    Transfer.destination_account_id,
    Transfer.amount,
    Transfer.status,
    Transfer.created_at,
    Transfer.updated_at,
)


class SqlAccountStore(AbstractAccountStore):
    """Account rows behind one session.

    Everything except ``create`` runs inside the caller's transaction;
    ``create`` is a unit of work of its own and commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def exists(self, account_id: int) -> bool:
        result = await self.session.execute(
            select(Account.account_id).where(Account.account_id == account_id)
        )
        return result.first() is not None

    async def get(self, account_id: int) -> AccountRecord | None:
        result = await self.session.execute(
            select(
                Account.account_id,
                Account.balance,
                Account.created_at,
                Account.updated_at,
            ).where(Account.account_id == account_id)
        )
        row = result.first()
        if row is None:
            return None
        return AccountRecord(**row._mapping)

    async def create(self, account_id: int, balance: Decimal) -> None:
        try:
            await self.session.execute(
                insert(Account).values(account_id=account_id, balance=balance)
            )
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def lock_for_update(self, account_id: int) -> Decimal | None:
        result = await self.session.execute(
            select(Account.balance)
            .where(Account.account_id == account_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def update_balance(self, account_id: int, balance: Decimal) -> int:
        result = await self.session.execute(
            update(Account)
            .where(Account.account_id == account_id)
            .values(balance=balance, updated_at=func.now())
        )
        return result.rowcount


class SqlLedgerStore(AbstractLedgerStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(
        self,
        source_account_id: int,
        destination_account_id: int,
        amount: Decimal,
        status: TransferStatus = TransferStatus.COMPLETED,
    ) -> TransferRecord:
        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            insert(Transfer)
            .values(
                source_account_id=source_account_id,
                destination_account_id=destination_account_id,
                amount=amount,
                status=status.value,
                created_at=now,
                updated_at=now,
            )
            .returning(*TRANSFER_COLUMNS)
        )
        return TransferRecord(**result.one()._mapping)

    async def get(self, transfer_id: int) -> TransferRecord | None:
        result = await self.session.execute(
            select(*TRANSFER_COLUMNS).where(Transfer.transfer_id == transfer_id)
        )
        row = result.first()
        if row is None:
            return None
        return TransferRecord(**row._mapping)
