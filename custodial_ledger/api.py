"""
FastAPI REST API Module

HTTP host for a single Bank. The caller identity is taken from a request
header, every controller call runs under one lock, and each outcome is
returned to the client. 128-bit values travel as decimal strings.
"""

from threading import Lock
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator
import uvicorn

from .bank import Bank
from .config import LedgerConfig, get_config
from .errors import BankError
from .events import Outcome, OutcomeDispatcher
from .logging_config import setup_logging
from .storage import MAX_ACCOUNTS, MAX_BALANCE


def _parse_u128(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("must be an unsigned integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError("must be an unsigned integer") from None
    if isinstance(value, float) or number < 0 or number > MAX_BALANCE:
        raise ValueError(f"must be between 0 and {MAX_BALANCE}")
    return number


# Pydantic models for API requests
class AmountRequest(BaseModel):
    amount: int = Field(..., description="Unsigned 128-bit amount, decimal string or integer")

    @field_validator("amount", mode="before")
    @classmethod
    def check_amount(cls, value):
        return _parse_u128(value)


class SetupRequest(BaseModel):
    asset_id: int = Field(..., description="Unsigned 128-bit asset id, decimal string or integer")
    manager: str = Field(..., min_length=1)
    maximum_accounts: int = Field(..., ge=0, le=MAX_ACCOUNTS)

    @field_validator("asset_id", mode="before")
    @classmethod
    def check_asset_id(cls, value):
        return _parse_u128(value)


ERROR_STATUS_CODES = {
    BankError.BAD_ORIGIN: status.HTTP_403_FORBIDDEN,
    BankError.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _respond(outcome: Outcome) -> Dict[str, Any]:
    """Return a success outcome, raise HTTPException for an error outcome"""
    if outcome.is_success:
        return outcome.to_dict()
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(outcome.kind, status.HTTP_409_CONFLICT),
        detail=outcome.to_dict()
    )


def create_app(bank: Optional[Bank] = None, config: Optional[LedgerConfig] = None) -> FastAPI:
    """
    Build the API around a bank

    Without a bank, one is constructed from configuration with the configured
    owner as owner and manager.
    """
    config = config or get_config()
    if bank is None:
        bank = Bank.new(
            config.bank_owner,
            config.default_asset_id,
            config.default_maximum_accounts,
            dispatcher=OutcomeDispatcher()
        )

    app = FastAPI(
        title="Custodial Ledger",
        description="Single-asset custodial bank ledger",
        version="1.0.0"
    )
    app.state.bank = bank
    app.state.lock = Lock()
    caller_header = config.api_caller_header

    def get_caller(request: Request) -> str:
        caller = request.headers.get(caller_header)
        if not caller:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Missing {caller_header} header"
            )
        return caller

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    @app.get("/bank")
    def get_bank():
        with app.state.lock:
            asset_id, owner, manager, maximum_accounts, bank_status = app.state.bank.get()
        return {
            "asset_id": str(asset_id),
            "owner": str(owner),
            "manager": str(manager),
            "maximum_accounts": maximum_accounts,
            "status": bank_status.name.lower()
        }

    @app.post("/bank/setup")
    def setup_bank(request: SetupRequest, caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.setup(caller, request.asset_id, request.manager, request.maximum_accounts)
        return _respond(outcome)

    @app.post("/bank/open")
    def open_bank(caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.open(caller)
        return _respond(outcome)

    @app.post("/bank/close")
    def close_bank(caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.close(caller)
        return _respond(outcome)

    @app.post("/accounts/{holder}/deposit")
    def deposit(holder: str, request: AmountRequest, caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.deposit(caller, holder, request.amount)
        return _respond(outcome)

    @app.post("/accounts/{holder}/withdraw")
    def withdraw(holder: str, request: AmountRequest, caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.withdraw(caller, holder, request.amount)
        return _respond(outcome)

    @app.post("/accounts/{holder}/credit")
    def credit(holder: str, request: AmountRequest, caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.credit(caller, holder, request.amount)
        return _respond(outcome)

    @app.post("/debit")
    def debit(request: AmountRequest, caller: str = Depends(get_caller)):
        with app.state.lock:
            outcome = app.state.bank.debit(caller, request.amount)
        return _respond(outcome)

    @app.get("/accounts")
    def list_accounts():
        with app.state.lock:
            accounts = app.state.bank.list_accounts()
        return {"accounts": [account.to_dict() for account in accounts]}

    @app.get("/accounts/{holder}")
    def get_account(holder: str):
        with app.state.lock:
            account = app.state.bank.get_account(holder)
        if account is None:
            raise HTTPException(status_code=404, detail="Account not found")
        return account.to_dict()

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the API server"""
    config = get_config()
    setup_logging(
        level="DEBUG" if debug else config.log_level,
        log_format=config.log_format,
        log_file=config.log_file
    )
    uvicorn.run(
        create_app(config=config),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level="debug" if debug else "info"
    )
