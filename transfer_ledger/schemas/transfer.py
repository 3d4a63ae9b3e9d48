from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_serializer

from transfer_ledger import money
from transfer_ledger.models.ledger import TransferStatus
from transfer_ledger.schemas.account import AccountId


class CreateTransferRequest(BaseModel):
    source_account_id: AccountId
    destination_account_id: AccountId
    amount: str


class TransferRecord(BaseModel):
    transfer_id: int
    source_account_id: int
    destination_account_id: int
    amount: Decimal
    status: TransferStatus
    created_at: datetime
    updated_at: datetime


class TransferResponse(BaseModel):
    transfer_id: int
    source_account_id: int
    destination_account_id: int
    amount: Decimal
    status: TransferStatus
    created_at: datetime

    @field_serializer("amount")
    def render_amount(self, amount: Decimal) -> str:
        return money.render(amount)
