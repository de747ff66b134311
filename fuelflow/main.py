import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from fuelflow.api.v1.api import api_router
from fuelflow.core.config import settings
from fuelflow.core.logger import configure_logging
from fuelflow.db.mongo import connect_to_mongo, disconnect_from_mongo
from fuelflow.utils.ledger_validation import (
    ConflictError,
    InvalidStateError,
    LedgerError,
    LedgerValidationError,
    NotFoundError,
    OverAllocationError,
)
from fuelflow.utils.money import format_money

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_mongo()
    try:
        yield
    finally:
        await disconnect_from_mongo()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    LedgerValidationError: 400,
    NotFoundError: 404,
    OverAllocationError: 409,
    ConflictError: 409,
    InvalidStateError: 409,
}


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    content = {"detail": str(exc)}
    if isinstance(exc, OverAllocationError):
        content["remaining"] = format_money(exc.remaining)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("%s %s -> 409: duplicate key", request.method, request.url.path)
    return JSONResponse(status_code=409, content={"detail": "Record already exists"})


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}


app.include_router(api_router, prefix=settings.API_V1_STR)
