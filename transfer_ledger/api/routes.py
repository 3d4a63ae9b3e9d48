import logging

from fastapi import APIRouter, Depends, Path, Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transfer_ledger.config import Settings, get_settings
from transfer_ledger.db import get_session, get_session_factory
from transfer_ledger.schemas.account import (
    INT64_MAX,
    INT64_MIN,
    AccountResponse,
    CreateAccountRequest,
)
from transfer_ledger.schemas.transfer import CreateTransferRequest, TransferResponse
from transfer_ledger.services.account_service import AccountService
from transfer_ledger.services.transfer_service import TransferService
from transfer_ledger.store.sql import SqlAccountStore

logger = logging.getLogger(__name__)
router = APIRouter()


def get_account_service(
    session: AsyncSession = Depends(get_session),
) -> AccountService:
    return AccountService(SqlAccountStore(session))


def get_transfer_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
) -> TransferService:
    return TransferService(session_factory, timeout=settings.transfer_timeout_seconds)


@router.post("/accounts", status_code=201, response_class=Response)
async def post_account(
    body: CreateAccountRequest,
    service: AccountService = Depends(get_account_service),
) -> Response:
    logger.info("Creating account %d", body.account_id)
    await service.create_account(body.account_id, body.initial_balance)
    return Response(status_code=201)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int = Path(ge=INT64_MIN, le=INT64_MAX),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    account = await service.get(account_id)
    return AccountResponse(account_id=account.account_id, balance=account.balance)


@router.post("/transactions", response_model=TransferResponse, status_code=201)
@router.post("/transfers", response_model=TransferResponse, status_code=201)
async def post_transfer(
    body: CreateTransferRequest,
    service: TransferService = Depends(get_transfer_service),
) -> TransferResponse:
    logger.info(
        "Transfer requested %d -> %d amount=%s",
        body.source_account_id,
        body.destination_account_id,
        body.amount,
    )
    record = await service.create_transfer(
        body.source_account_id, body.destination_account_id, body.amount
    )
    return TransferResponse.model_validate(record, from_attributes=True)


@router.get("/transactions/{transfer_id}", response_model=TransferResponse)
async def get_transfer(
    transfer_id: int = Path(ge=1, le=INT64_MAX),
    service: TransferService = Depends(get_transfer_service),
) -> TransferResponse:
    record = await service.get_transfer(transfer_id)
    return TransferResponse.model_validate(record, from_attributes=True)


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "healthy", "service": settings.service_name}
