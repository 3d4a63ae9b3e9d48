import asyncio
import logging
from decimal import Decimal
from enum import Enum
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transfer_ledger import money
from transfer_ledger.errors import ErrorKind, LedgerError, store_errors
from transfer_ledger.schemas.transfer import TransferRecord
from transfer_ledger.services.account_service import AccountService
from transfer_ledger.store.base import AbstractAccountStore, AbstractLedgerStore
from transfer_ledger.store.sql import SqlAccountStore, SqlLedgerStore

logger = logging.getLogger(__name__)


class TransferPhase(str, Enum):
    VALIDATING = "validating"
    LOCKING = "locking"
    CHECKING = "checking"
    APPLYING = "applying"
    COMMITTED = "committed"
    ABORTED = "aborted"


class TransferService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
        account_store: Callable[[AsyncSession], AbstractAccountStore] = SqlAccountStore,
        ledger_store: Callable[[AsyncSession], AbstractLedgerStore] = SqlLedgerStore,
    ) -> None:
        self.session_factory = session_factory
        self.timeout = timeout or None
        self.account_store = account_store
        self.ledger_store = ledger_store

    async def create_transfer(
        self, source_id: int, destination_id: int, amount: str
    ) -> TransferRecord:
        self._enter(TransferPhase.VALIDATING, source_id, destination_id)
        try:
            value = self._validate(source_id, destination_id, amount)
            await self._precheck(source_id, destination_id)
            record = await self._run_with_deadline(source_id, destination_id, value)
        except LedgerError as exc:
            level = logging.INFO if exc.client_fault else logging.WARNING
            logger.log(
                level,
                "Transfer %d -> %d %s: %s",
                source_id,
                destination_id,
                TransferPhase.ABORTED.value,
                exc.kind.value,
            )
            raise
        logger.info(
            "Transfer %d committed: %d -> %d amount=%s",
            record.transfer_id,
            source_id,
            destination_id,
            money.render(value),
        )
        return record

    async def get_transfer(self, transfer_id: int) -> TransferRecord:
        async with self.session_factory() as session:
            with store_errors():
                record = await self.ledger_store(session).get(transfer_id)
        if record is None:
            raise LedgerError(ErrorKind.TRANSFER_NOT_FOUND, "transfer_id")
        return record

    def _validate(self, source_id: int, destination_id: int, amount: str) -> Decimal:
        if source_id <= 0:
            raise LedgerError(ErrorKind.POSITIVE_ID_REQUIRED, "source_account_id")
        if destination_id <= 0:
            raise LedgerError(ErrorKind.POSITIVE_ID_REQUIRED, "destination_account_id")
        if source_id == destination_id:
            raise LedgerError(ErrorKind.SAME_ACCOUNT_TRANSFER)
        if not amount:
            raise LedgerError(ErrorKind.AMOUNT_REQUIRED, "amount")
        value = money.parse_decimal(amount, "amount")
        if not money.is_positive(value):
            raise LedgerError(ErrorKind.AMOUNT_NOT_POSITIVE, "amount")
        return value

    async def _precheck(self, source_id: int, destination_id: int) -> None:
        # not synchronized with the locked phase; the locked reads check again
        async with self.session_factory() as session:
            accounts = AccountService(self.account_store(session))
            checks = (
                (source_id, "source_account_id", ErrorKind.SOURCE_ACCOUNT_INVALID),
                (
                    destination_id,
                    "destination_account_id",
                    ErrorKind.DESTINATION_ACCOUNT_INVALID,
                ),
            )
            for account_id, field, kind in checks:
                try:
                    await accounts.validate_account(account_id, field)
                except LedgerError as exc:
                    if not exc.client_fault:
                        raise
                    raise LedgerError(kind, field) from exc

    async def _run_with_deadline(
        self, source_id: int, destination_id: int, amount: Decimal
    ) -> TransferRecord:
        try:
            with store_errors():
                if self.timeout is None:
                    return await self._apply(source_id, destination_id, amount)
                return await asyncio.wait_for(
                    self._apply(source_id, destination_id, amount), self.timeout
                )
        except asyncio.TimeoutError as exc:
            raise LedgerError(ErrorKind.TRANSFER_TIMEOUT) from exc

    async def _apply(
        self, source_id: int, destination_id: int, amount: Decimal
    ) -> TransferRecord:
        # commits on normal exit, rolls back on any exception
        async with self.session_factory.begin() as session:
            accounts = AccountService(self.account_store(session))
            ledger = self.ledger_store(session)

            self._enter(TransferPhase.LOCKING, source_id, destination_id)
            # ascending id order, whatever the direction
            balances: dict[int, Decimal] = {}
            for account_id in sorted((source_id, destination_id)):
                balances[account_id] = await accounts.lock_balance(account_id)

            self._enter(TransferPhase.CHECKING, source_id, destination_id)
            if balances[source_id] < amount:
                raise LedgerError(ErrorKind.INSUFFICIENT_BALANCE, "amount")
            new_source = money.subtract(balances[source_id], amount)
            new_destination = money.add(balances[destination_id], amount)
            if not money.fits(new_destination):
                raise LedgerError(ErrorKind.BALANCE_OUT_OF_RANGE, "amount")

            self._enter(TransferPhase.APPLYING, source_id, destination_id)
            await accounts.update_balance(source_id, new_source)
            await accounts.update_balance(destination_id, new_destination)
            with store_errors():
                record = await ledger.insert(source_id, destination_id, amount)
        self._enter(TransferPhase.COMMITTED, source_id, destination_id)
        return record

    @staticmethod
    def _enter(phase: TransferPhase, source_id: int, destination_id: int) -> None:
        logger.debug("Transfer %d -> %d: %s", source_id, destination_id, phase.value)
