from abc import ABC, abstractmethod
from decimal import Decimal

from transfer_ledger.models.ledger import TransferStatus
from transfer_ledger.schemas.account import AccountRecord
from transfer_ledger.schemas.transfer import TransferRecord


class AbstractAccountStore(ABC):
    @abstractmethod
    async def exists(self, account_id: int) -> bool: ...

    @abstractmethod
    async def get(self, account_id: int) -> AccountRecord | None: ...

    @abstractmethod
    async def create(self, account_id: int, balance: Decimal) -> None: ...

    @abstractmethod
    async def lock_for_update(self, account_id: int) -> Decimal | None:
        """Read the balance under an exclusive row lock held until the transaction ends."""

    @abstractmethod
    async def update_balance(self, account_id: int, balance: Decimal) -> int:
        """Write a new balance and bump ``updated_at``; returns the matched row count."""


class AbstractLedgerStore(ABC):
    @abstractmethod
    async def insert(
        self,
        source_account_id: int,
        destination_account_id: int,
        amount: Decimal,
        status: TransferStatus = TransferStatus.COMPLETED,
    ) -> TransferRecord: ...

    @abstractmethod
    async def get(self, transfer_id: int) -> TransferRecord | None: ...
