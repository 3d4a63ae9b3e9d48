import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from transfer_ledger.api.routes import router
from transfer_ledger.config import get_settings
from transfer_ledger.db import engine
from transfer_ledger.errors import ErrorKind, LedgerError
from transfer_ledger.models.ledger import Base

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.ACCOUNT_ALREADY_EXISTS: 409,
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
    ErrorKind.TRANSFER_NOT_FOUND: 404,
    ErrorKind.PERSISTENCE_FAILURE: 500,
    ErrorKind.TRANSFER_TIMEOUT: 503,
}


def status_for(kind: ErrorKind) -> int:
    """HTTP status for an error kind; client faults not listed map to 400."""
    return STATUS_CODES.get(kind, 400 if kind.client_fault else 500)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready, serving %s", settings.service_name)
    yield
    await engine.dispose()


app = FastAPI(
    title="Internal Transfer System",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 (not 422) for malformed request bodies and path parameters."""
    return JSONResponse(
        status_code=400,
        content={"detail": exc.errors()},
    )


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=status_for(exc.kind),
        content={
            "error": {
                "code": exc.kind.value,
                "message": exc.message,
                "field": exc.field,
            }
        },
        headers=headers,
    )


app.include_router(router)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
