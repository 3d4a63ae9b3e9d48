from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, field_serializer

from transfer_ledger import money

# account ids are BIGINT; positivity is checked by the account service
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
AccountId = Annotated[int, Field(ge=INT64_MIN, le=INT64_MAX)]


class CreateAccountRequest(BaseModel):
    account_id: AccountId
    initial_balance: str


class AccountRecord(BaseModel):
    account_id: int
    balance: Decimal
    created_at: datetime
    updated_at: datetime


class AccountResponse(BaseModel):
    account_id: int
    balance: Decimal

    @field_serializer("balance")
    def render_balance(self, balance: Decimal) -> str:
        return money.render(balance)
