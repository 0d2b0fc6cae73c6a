"""
FastAPI endpoints for the custodial Solana wallet.

Every WalletError raised below the API is turned into ``{"error", "code"}``
by one exception handler; the status comes from ERROR_STATUS. Amounts travel
as decimal strings in both directions.

Pay endpoints are plain ``def`` so FastAPI runs them in its threadpool, where
the PayGuard's threading lock serializes them.
"""

import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from CWT_Wallet import wallet
from CWT_Wallet.cwt_ledger.history import LedgerQuery
from CWT_Wallet.cwt_server.context import WalletContext
from CWT_Wallet.cwt_shared.errors import InvalidQueryError, WalletError
from CWT_Wallet.cwt_shared.types import LedgerEntry

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "INVALID_QUERY":                 400,
    "INVALID_REQUEST":               400,
    "INVALID_AMOUNT_FORMAT":         400,
    "INVALID_ADDRESS":               400,
    "INSUFFICIENT_BALANCE":          400,
    "INVALID_VAULT_FILE":            400,
    "INVALID_PASSWORD":              401,
    "PASSWORD_REQUIRED":             401,
    "MISSING_OR_EMPTY_FILE":         404,
    "DESTINATION_EXISTS":            409,
    "TOKEN_ACCOUNT_NOT_PROVISIONED": 409,
    "KEY_MISMATCH":                  409,
    "COOLDOWN_ACTIVE":               429,
    "UPSTREAM_UNAVAILABLE":          502,
}

DATE_FORMAT = "%Y-%m-%d"


# ── Pydantic request/response models ──


class ErrorResponse(BaseModel):
    error: str
    code: str


class GenerateResponse(BaseModel):
    success: bool
    message: str
    address: str


class BalanceResponse(BaseModel):
    address: str
    usdc: str
    sol: str
    rate: str
    usdc_amount_in_rub: str


class TransactionOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    txId: str
    from_: str = Field(alias="from")
    to: str
    amount: str
    currency: str
    ourFeeSOL: str
    timestamp: datetime
    blockNumber: int
    status: str


class TransactionsResponse(BaseModel):
    address: str
    total_income_USDC: str
    total_spent_USDC: str
    transactions: list[TransactionOut]


class PayRequest(BaseModel):
    toAddress: str
    amount: str


class PayResponse(BaseModel):
    txId: str


class HealthResponse(BaseModel):
    status: str
    password_set: bool


# ── Helpers ──


def _parse_day(value: Optional[str], label: str) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidQueryError(f"invalid {label} date, expected YYYY-MM-DD") from None


def build_query(
    type_: Optional[str],
    tx_id: Optional[str],
    from_: Optional[str],
    to: Optional[str],
    min_amount: Optional[str],
    max_amount: Optional[str],
    currency: Optional[str],
) -> LedgerQuery:
    start_day = _parse_day(from_, "from")
    end_day = _parse_day(to, "to")
    return LedgerQuery(
        direction=type_ or None,
        tx_id=tx_id or None,
        currency=currency.upper() if currency else None,
        start=datetime.combine(start_day, time.min, tzinfo=timezone.utc) if start_day else None,
        # "to" covers the whole day.
        end=datetime.combine(end_day, time.max, tzinfo=timezone.utc) if end_day else None,
        min_amount=min_amount or None,
        max_amount=max_amount or None,
    )


def _entry_out(e: LedgerEntry) -> TransactionOut:
    return TransactionOut(
        type=e.direction,
        txId=e.tx_id,
        from_=e.sender,
        to=e.recipient,
        amount=e.amount,
        currency=e.currency,
        ourFeeSOL=e.fee_paid,
        timestamp=e.timestamp,
        blockNumber=e.block_height,
        status=e.status,
    )


def _error(status: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorResponse(error=message, code=code).model_dump())


# ── App ──


def create_app(context: WalletContext) -> FastAPI:
    app = FastAPI(title="CWT Solana Wallet", version="1.0.0")
    app.state.context = context

    @app.exception_handler(WalletError)
    async def wallet_error_handler(request: Request, exc: WalletError):
        status = ERROR_STATUS.get(exc.code, 500)
        if status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(status, str(exc), exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid request')}" if field else "invalid request"
        return _error(400, message, "INVALID_REQUEST")

    # ── Endpoints ──

    @app.post("/solana/generate", response_model=GenerateResponse)
    def generate():
        with context.passwords.borrow() as password:
            address = wallet.generate_wallet(context.wallet_path, password)
        return GenerateResponse(success=True, message="Wallet generated", address=address)

    @app.get("/solana/balance", response_model=BalanceResponse)
    def balance():
        report = wallet.get_balance(context.wallet_path, context.chain_factory, context.price_client)
        return BalanceResponse(
            address=report.address,
            usdc=report.usdc,
            sol=report.sol,
            rate=report.rate,
            usdc_amount_in_rub=report.usdc_in_fiat,
        )

    @app.get(
        "/solana/transactions",
        response_model=TransactionsResponse,
        response_model_by_alias=True,
    )
    def transactions(
        type_: Optional[str] = Query(None, alias="type"),
        tx_id: Optional[str] = Query(None, alias="txId"),
        from_: Optional[str] = Query(None, alias="from"),
        to: Optional[str] = Query(None),
        min_amount: Optional[str] = Query(None, alias="minAmount"),
        max_amount: Optional[str] = Query(None, alias="maxAmount"),
        currency: Optional[str] = Query(None),
    ):
        query = build_query(type_, tx_id, from_, to, min_amount, max_amount, currency)
        report = wallet.get_transactions(context.wallet_path, query, context.chain_factory)
        return TransactionsResponse(
            address=report.address,
            total_income_USDC=report.total_income,
            total_spent_USDC=report.total_spent,
            transactions=[_entry_out(e) for e in report.entries],
        )

    @app.post("/solana/pay/usdc", response_model=PayResponse)
    def pay_usdc(req: PayRequest):
        result = context.payments.pay_usdc(req.toAddress, req.amount)
        return PayResponse(txId=result.tx_id)

    @app.post("/solana/pay/sol", response_model=PayResponse)
    def pay_sol(req: PayRequest):
        result = context.payments.pay_sol(req.toAddress, req.amount)
        return PayResponse(txId=result.tx_id)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok", password_set=context.passwords.is_set)

    return app
