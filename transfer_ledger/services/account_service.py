import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from transfer_ledger import money
from transfer_ledger.errors import ErrorKind, LedgerError, store_errors
from transfer_ledger.schemas.account import AccountRecord
from transfer_ledger.store.base import AbstractAccountStore

logger = logging.getLogger(__name__)


def validate_account_id(account_id: int, field: str = "account_id") -> None:
    if account_id <= 0:
        raise LedgerError(ErrorKind.POSITIVE_ID_REQUIRED, field)


class AccountService:
    def __init__(self, store: AbstractAccountStore) -> None:
        self.store = store

    async def exists(self, account_id: int) -> bool:
        with store_errors():
            return await self.store.exists(account_id)

    async def get(self, account_id: int) -> AccountRecord:
        validate_account_id(account_id)
        with store_errors():
            account = await self.store.get(account_id)
        if account is None:
            raise LedgerError(ErrorKind.ACCOUNT_NOT_FOUND, "account_id")
        return account

    async def create_account(self, account_id: int, initial_balance: str) -> None:
        """Validate the raw request values, then create the account."""
        validate_account_id(account_id)
        balance = money.parse_decimal(initial_balance, "initial_balance")
        await self.create(account_id, balance)

    async def create(self, account_id: int, initial_balance: Decimal) -> None:
        validate_account_id(account_id)
        if await self.exists(account_id):
            raise LedgerError(ErrorKind.ACCOUNT_ALREADY_EXISTS, "account_id")
        if money.is_negative(initial_balance):
            raise LedgerError(ErrorKind.NEGATIVE_INITIAL_BALANCE, "initial_balance")
        with store_errors():
            try:
                await self.store.create(account_id, initial_balance)
            except IntegrityError as exc:
                # lost a race with a concurrent creator of the same id
                raise LedgerError(
                    ErrorKind.ACCOUNT_ALREADY_EXISTS, "account_id"
                ) from exc
        logger.info(
            "Created account %d with balance %s",
            account_id,
            money.render(initial_balance),
        )

    async def validate_account(self, account_id: int, field: str = "account_id") -> None:
        """Cheap existence gate used before a transfer takes any lock."""
        validate_account_id(account_id, field)
        if not await self.exists(account_id):
            raise LedgerError(ErrorKind.ACCOUNT_DOES_NOT_EXIST, field)

    async def lock_balance(self, account_id: int) -> Decimal:
        with store_errors():
            balance = await self.store.lock_for_update(account_id)
        if balance is None:
            raise LedgerError(ErrorKind.ACCOUNT_NOT_FOUND)
        return balance

    async def update_balance(self, account_id: int, new_balance: Decimal) -> None:
        if money.is_negative(new_balance):
            raise LedgerError(ErrorKind.NEGATIVE_BALANCE)
        if not money.fits(new_balance):
            raise LedgerError(ErrorKind.BALANCE_OUT_OF_RANGE, "amount")
        with store_errors():
            matched = await self.store.update_balance(account_id, new_balance)
        if matched != 1:
            raise LedgerError(ErrorKind.ACCOUNT_NOT_FOUND)
