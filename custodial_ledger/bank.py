"""
Bank Controller Module

Permissioned operation surface over a single LedgerStore. Each operation runs
its role, status and account checks in a fixed order before touching the
store and yields exactly one Outcome, which is handed to the outcome
dispatcher when one is attached.

Roles are plain identity comparisons:
    owner   - setup
    manager - open, close, deposit, withdraw, credit
    holder  - debit of their own account

WARNING: setup() deletes every account in the bank.
"""

from enum import Enum
from typing import Callable, Hashable, List, Optional, Tuple

from .errors import BankError, LedgerError
from .events import BankTransactionStatus, Outcome, OutcomeDispatcher, Success
from .logging_config import get_logger, log_action
from .config import get_config
from .storage import Account, BankStatus, LedgerStore, check_u128, check_u16


class Role(Enum):
    """Roles gating mutating operations"""
    OWNER = "owner"
    MANAGER = "manager"


class Bank:
    """
    Custodial bank ledger controller

    The calling identity is passed explicitly to every operation. Identities
    are opaque hashable values compared by equality only.
    """

    def __init__(
        self,
        caller: Hashable,
        asset_id: int = 0,
        maximum_accounts: int = 0,
        dispatcher: Optional[OutcomeDispatcher] = None,
        log_outcomes: Optional[bool] = None
    ):
        self._store = LedgerStore(asset_id, caller, maximum_accounts)
        self._dispatcher = dispatcher
        if log_outcomes is None:
            log_outcomes = get_config().enable_outcome_logging
        self._log_outcomes = log_outcomes
        self.logger = get_logger("custodial_ledger.bank")

    @classmethod
    def new(cls, caller: Hashable, asset_id: int, maximum_accounts: int,
            dispatcher: Optional[OutcomeDispatcher] = None) -> 'Bank':
        """Create a bank owned and managed by the caller, status Open, no accounts"""
        return cls(caller, asset_id, maximum_accounts, dispatcher)

    @classmethod
    def default(cls, caller: Hashable, dispatcher: Optional[OutcomeDispatcher] = None) -> 'Bank':
        """Create a bank with asset 0 and no account capacity"""
        return cls.new(caller, 0, 0, dispatcher)

    @property
    def ledger(self) -> LedgerStore:
        return self._store

    @property
    def dispatcher(self) -> Optional[OutcomeDispatcher]:
        return self._dispatcher

    def set_dispatcher(self, dispatcher: Optional[OutcomeDispatcher]) -> None:
        self._dispatcher = dispatcher

    # Checks

    def _require(self, caller: Hashable, role: Role) -> None:
        bank = self._store.bank
        allowed = bank.owner if role == Role.OWNER else bank.manager
        if caller != allowed:
            raise LedgerError(BankError.BAD_ORIGIN, f"{caller} is not the {role.value}")

    def _require_open(self) -> None:
        if self._store.bank.status != BankStatus.OPEN:
            raise LedgerError(BankError.BANK_IS_CLOSE)

    def _require_account(self, holder: Hashable) -> Account:
        account = self._store.find(holder)
        if account is None:
            raise LedgerError(BankError.ACCOUNT_NOT_FOUND, f"Account {holder} not found")
        return account

    @staticmethod
    def _require_liquid(account: Account) -> None:
        if not account.is_liquid:
            raise LedgerError(BankError.ACCOUNT_FROZEN, f"Account {account.holder} is frozen")

    def _execute(self, caller: Hashable, action: str, operation: Callable[[], Success],
                 resource: Optional[str] = None, extra: Optional[dict] = None) -> Outcome:
        try:
            status = BankTransactionStatus.emit_success(operation())
        except LedgerError as e:
            status = BankTransactionStatus.emit_error(e.error)

        outcome = Outcome(operator=caller, status=status)

        if self._log_outcomes:
            log_action(
                self.logger, "info" if outcome.is_success else "warning",
                f"{action}: {outcome.kind.value}",
                operator=str(caller), action=action, resource=resource,
                outcome=outcome.kind.value, extra=extra
            )

        if self._dispatcher is not None:
            self._dispatcher.publish(outcome)

        return outcome

    # Owner operations

    def setup(self, caller: Hashable, asset_id: int, manager: Hashable, maximum_accounts: int) -> Outcome:
        """
        Reconfigure the bank. Owner only.

        DESTRUCTIVE: every existing account is deleted and the status is reset
        to Open. The owner never changes.
        """
        check_u128("asset_id", asset_id)
        check_u16("maximum_accounts", maximum_accounts)

        def operation():
            self._require(caller, Role.OWNER)
            self._store.reset(asset_id, manager, maximum_accounts)
            return Success.BANK_SETUP_SUCCESS

        return self._execute(caller, "setup", operation, resource="bank", extra={
            "asset_id": str(asset_id),
            "manager": str(manager),
            "maximum_accounts": maximum_accounts
        })

    # Manager operations

    def open(self, caller: Hashable) -> Outcome:
        def operation():
            self._require(caller, Role.MANAGER)
            self._store.set_status(BankStatus.OPEN)
            return Success.BANK_OPEN_SUCCESS

        return self._execute(caller, "open", operation, resource="bank")

    def close(self, caller: Hashable) -> Outcome:
        def operation():
            self._require(caller, Role.MANAGER)
            self._store.set_status(BankStatus.CLOSED)
            return Success.BANK_CLOSE_SUCCESS

        return self._execute(caller, "close", operation, resource="bank")

    def deposit(self, caller: Hashable, account: Hashable, amount: int) -> Outcome:
        """
        Deposit into an account, opening it on first deposit.

        Liquidity is not checked. A new account starts at zero and amount is
        at most MAX_BALANCE, so the credit after an insert cannot fail.
        """
        check_u128("amount", amount)

        def operation():
            self._require(caller, Role.MANAGER)
            self._require_open()
            ledger_account = self._store.find_or_insert(account)
            self._store.credit_balance(ledger_account, amount)
            return Success.ACCOUNT_DEPOSIT_SUCCESS

        return self._execute(caller, "deposit", operation,
                             resource=f"account:{account}", extra={"amount": str(amount)})

    def withdraw(self, caller: Hashable, account: Hashable, amount: int) -> Outcome:
        """Withdraw from an existing account. Liquidity is not checked."""
        check_u128("amount", amount)

        def operation():
            self._require(caller, Role.MANAGER)
            self._require_open()
            ledger_account = self._require_account(account)
            self._store.debit_balance(ledger_account, amount)
            return Success.ACCOUNT_WITHDRAWAL_SUCCESS

        return self._execute(caller, "withdraw", operation,
                             resource=f"account:{account}", extra={"amount": str(amount)})

    def credit(self, caller: Hashable, account: Hashable, amount: int) -> Outcome:
        """Credit an existing liquid account. Bank status is not checked."""
        check_u128("amount", amount)

        def operation():
            self._require(caller, Role.MANAGER)
            ledger_account = self._require_account(account)
            self._require_liquid(ledger_account)
            self._store.credit_balance(ledger_account, amount)
            return Success.ACCOUNT_CREDIT_SUCCESS

        return self._execute(caller, "credit", operation,
                             resource=f"account:{account}", extra={"amount": str(amount)})

    # Holder operations

    def debit(self, caller: Hashable, amount: int) -> Outcome:
        """Debit the caller's own liquid account. Bank status is not checked."""
        check_u128("amount", amount)

        def operation():
            ledger_account = self._require_account(caller)
            self._require_liquid(ledger_account)
            self._store.debit_balance(ledger_account, amount)
            return Success.ACCOUNT_DEBIT_SUCCESS

        return self._execute(caller, "debit", operation,
                             resource=f"account:{caller}", extra={"amount": str(amount)})

    # Queries

    def get(self) -> Tuple[int, Hashable, Hashable, int, BankStatus]:
        """(asset_id, owner, manager, maximum_accounts, status)"""
        bank = self._store.bank
        return (bank.asset_id, bank.owner, bank.manager, bank.maximum_accounts, bank.status)

    def get_account(self, holder: Hashable) -> Optional[Account]:
        """Snapshot of one account, or None"""
        for account in self._store.accounts:
            if account.holder == holder:
                return account
        return None

    def list_accounts(self) -> List[Account]:
        return list(self._store.accounts)
