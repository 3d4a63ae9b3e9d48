import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    POSITIVE_ID_REQUIRED = "POSITIVE_ID_REQUIRED"
    ACCOUNT_ALREADY_EXISTS = "ACCOUNT_ALREADY_EXISTS"
    ACCOUNT_DOES_NOT_EXIST = "ACCOUNT_DOES_NOT_EXIST"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    INVALID_AMOUNT_FORMAT = "INVALID_AMOUNT_FORMAT"
    NEGATIVE_INITIAL_BALANCE = "NEGATIVE_INITIAL_BALANCE"
    NEGATIVE_BALANCE = "NEGATIVE_BALANCE"
    BALANCE_OUT_OF_RANGE = "BALANCE_OUT_OF_RANGE"
    AMOUNT_REQUIRED = "AMOUNT_REQUIRED"
    AMOUNT_NOT_POSITIVE = "AMOUNT_NOT_POSITIVE"
    SAME_ACCOUNT_TRANSFER = "SAME_ACCOUNT_TRANSFER"
    SOURCE_ACCOUNT_INVALID = "SOURCE_ACCOUNT_INVALID"
    DESTINATION_ACCOUNT_INVALID = "DESTINATION_ACCOUNT_INVALID"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    TRANSFER_NOT_FOUND = "TRANSFER_NOT_FOUND"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    TRANSFER_TIMEOUT = "TRANSFER_TIMEOUT"

    @property
    def message(self) -> str:
        return MESSAGES[self]

    @property
    def client_fault(self) -> bool:
        return self not in SERVER_FAULTS


MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.POSITIVE_ID_REQUIRED: "account ID must be positive",
    ErrorKind.ACCOUNT_ALREADY_EXISTS: "account already exists",
    ErrorKind.ACCOUNT_DOES_NOT_EXIST: "account does not exist",
    ErrorKind.ACCOUNT_NOT_FOUND: "account not found",
    ErrorKind.INVALID_AMOUNT_FORMAT: "invalid amount format",
    ErrorKind.NEGATIVE_INITIAL_BALANCE: "initial balance cannot be negative",
    ErrorKind.NEGATIVE_BALANCE: "account balance cannot be negative",
    ErrorKind.BALANCE_OUT_OF_RANGE: "resulting balance exceeds the supported precision",
    ErrorKind.AMOUNT_REQUIRED: "amount is required",
    ErrorKind.AMOUNT_NOT_POSITIVE: "amount must be positive",
    ErrorKind.SAME_ACCOUNT_TRANSFER: "source and destination accounts cannot be the same",
    ErrorKind.SOURCE_ACCOUNT_INVALID: "source account validation failed",
    ErrorKind.DESTINATION_ACCOUNT_INVALID: "destination account validation failed",
    ErrorKind.INSUFFICIENT_BALANCE: "insufficient balance in source account",
    ErrorKind.TRANSFER_NOT_FOUND: "transfer not found",
    ErrorKind.PERSISTENCE_FAILURE: "failed to persist changes",
    ErrorKind.TRANSFER_TIMEOUT: "transfer did not complete before the deadline",
}

SERVER_FAULTS = frozenset({ErrorKind.PERSISTENCE_FAILURE, ErrorKind.TRANSFER_TIMEOUT})
RETRYABLE = SERVER_FAULTS


class LedgerError(Exception):
    def __init__(self, kind: ErrorKind, field: str | None = None) -> None:
        self.kind = kind
        self.field = field
        super().__init__(kind.message)

    @property
    def message(self) -> str:
        return self.kind.message

    @property
    def client_fault(self) -> bool:
        return self.kind.client_fault

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE

    def __repr__(self) -> str:
        return f"LedgerError({self.kind.value}, field={self.field!r})"


@contextmanager
def store_errors() -> Iterator[None]:
    """Translate any SQLAlchemy failure raised in the block into PERSISTENCE_FAILURE."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Store operation failed")
        raise LedgerError(ErrorKind.PERSISTENCE_FAILURE) from exc
