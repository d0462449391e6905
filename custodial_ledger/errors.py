"""
Error Taxonomy Module

Error kinds a bank operation can fail with. Inside the package failures travel
as LedgerError; the bank controller turns them into error outcomes so callers
never see the exception.
"""

from enum import Enum


class BankError(Enum):
    """Error kinds reported in operation outcomes"""
    BAD_ORIGIN = "BadOrigin"                                    # Caller lacks the required role
    BANK_IS_CLOSE = "BankIsClose"                               # Bank status is Closed
    BANK_ACCOUNT_MAX_OUT = "BankAccountMaxOut"                  # Account capacity reached
    ACCOUNT_ALREADY_EXIST = "AccountAlreadyExist"               # Holder already has an account
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    ACCOUNT_BALANCE_INSUFFICIENT = "AccountBalanceInsufficient"
    ACCOUNT_BALANCE_OVERFLOW = "AccountBalanceOverflow"
    ACCOUNT_FROZEN = "AccountFrozen"


class LedgerError(Exception):
    """Raised by the ledger store and permission checks, carries a BankError"""

    def __init__(self, error: BankError, message: str = ""):
        self.error = error
        self.message = message or error.value
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"LedgerError({self.error.value!r}, {self.message!r})"
