"""
Ledger Store Module

Owns the bank configuration record and the ordered collection of accounts.
Provides lookup, capacity-checked insertion and checked balance arithmetic.
Every mutation is all-or-nothing: a failed call leaves the store untouched.
"""

from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional, Tuple

from .errors import BankError, LedgerError


MAX_BALANCE = 2 ** 128 - 1       # unsigned 128-bit balances, amounts and asset ids
MAX_ACCOUNTS = 2 ** 16 - 1       # unsigned 16-bit account capacity


class BankStatus(Enum):
    """Bank status (0-Open, 1-Closed)"""
    OPEN = 0
    CLOSED = 1


class Liquidity(Enum):
    """Account liquidity (0-Frozen, 1-Liquid)"""
    FROZEN = 0
    LIQUID = 1


def check_u128(name: str, value: int) -> int:
    """Validate an unsigned 128-bit value"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0 or value > MAX_BALANCE:
        raise ValueError(f"{name} must be between 0 and {MAX_BALANCE}")
    return value


def check_u16(name: str, value: int) -> int:
    """Validate an unsigned 16-bit value"""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0 or value > MAX_ACCOUNTS:
        raise ValueError(f"{name} must be between 0 and {MAX_ACCOUNTS}")
    return value


@dataclass
class Account:
    """Per-holder ledger entry"""
    holder: Hashable
    balance: int = 0
    liquidity: Liquidity = Liquidity.LIQUID

    @property
    def is_liquid(self) -> bool:
        return self.liquidity == Liquidity.LIQUID

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, balance as a decimal string"""
        return {
            'holder': str(self.holder),
            'balance': str(self.balance),
            'liquidity': self.liquidity.name.lower(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Create instance from dictionary"""
        return cls(
            holder=data['holder'],
            balance=check_u128("balance", int(data['balance'])),
            liquidity=Liquidity[data['liquidity'].upper()],
        )


@dataclass
class BankRecord:
    """Singleton bank configuration plus its accounts"""
    asset_id: int
    owner: Hashable
    manager: Hashable
    maximum_accounts: int
    status: BankStatus = BankStatus.OPEN
    accounts: List[Account] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['asset_id'] = str(self.asset_id)
        result['owner'] = str(self.owner)
        result['manager'] = str(self.manager)
        result['status'] = self.status.name.lower()
        result['accounts'] = [account.to_dict() for account in self.accounts]
        return result


class LedgerStore:
    """
    In-memory ledger store for a single bank

    Accounts are kept in insertion order and looked up linearly by holder.
    The store trusts its caller for permissions and bank status; it only
    enforces capacity, uniqueness and arithmetic bounds.
    """

    def __init__(self, asset_id: int, owner: Hashable, maximum_accounts: int):
        self._bank = BankRecord(
            asset_id=check_u128("asset_id", asset_id),
            owner=owner,
            manager=owner,
            maximum_accounts=check_u16("maximum_accounts", maximum_accounts),
        )

    @property
    def bank(self) -> BankRecord:
        return self._bank

    @property
    def accounts(self) -> Tuple[Account, ...]:
        """Snapshot copies of all accounts in insertion order"""
        return tuple(replace(account) for account in self._bank.accounts)

    def __len__(self) -> int:
        return len(self._bank.accounts)

    def find(self, holder: Hashable) -> Optional[Account]:
        """Find the live account for a holder"""
        for account in self._bank.accounts:
            if account.holder == holder:
                return account
        return None

    def insert(self, holder: Hashable) -> Account:
        """
        Append a new liquid account with zero balance

        Raises:
            LedgerError: BankAccountMaxOut when the bank is at capacity,
                AccountAlreadyExist when the holder already has an account
        """
        if len(self._bank.accounts) >= self._bank.maximum_accounts:
            raise LedgerError(
                BankError.BANK_ACCOUNT_MAX_OUT,
                f"Bank holds the maximum of {self._bank.maximum_accounts} accounts"
            )
        if self.find(holder) is not None:
            raise LedgerError(BankError.ACCOUNT_ALREADY_EXIST, f"Account {holder} already exists")

        account = Account(holder=holder)
        self._bank.accounts.append(account)
        return account

    def find_or_insert(self, holder: Hashable) -> Account:
        account = self.find(holder)
        if account is None:
            account = self.insert(holder)
        return account

    def credit_balance(self, account: Account, amount: int) -> None:
        """Add amount to the balance, failing on 128-bit overflow"""
        check_u128("amount", amount)
        new_balance = account.balance + amount
        if new_balance > MAX_BALANCE:
            raise LedgerError(
                BankError.ACCOUNT_BALANCE_OVERFLOW,
                f"Crediting {amount} overflows balance of {account.holder}"
            )
        account.balance = new_balance

    def debit_balance(self, account: Account, amount: int) -> None:
        """Subtract amount from the balance, failing if it exceeds the balance"""
        check_u128("amount", amount)
        if amount > account.balance:
            raise LedgerError(
                BankError.ACCOUNT_BALANCE_INSUFFICIENT,
                f"Balance of {account.holder} is insufficient for {amount}"
            )
        account.balance -= amount

    def reset(self, asset_id: int, manager: Hashable, maximum_accounts: int) -> None:
        """
        Replace the configuration and DELETE EVERY ACCOUNT

        The owner is kept. Status goes back to Open. Arguments are validated
        before anything is replaced.
        """
        check_u128("asset_id", asset_id)
        check_u16("maximum_accounts", maximum_accounts)

        self._bank = BankRecord(
            asset_id=asset_id,
            owner=self._bank.owner,
            manager=manager,
            maximum_accounts=maximum_accounts,
        )

    def set_status(self, status: BankStatus) -> None:
        self._bank.status = BankStatus(status)

    def set_liquidity(self, holder: Hashable, liquidity: Liquidity) -> Account:
        """Freeze or release an existing account"""
        account = self.find(holder)
        if account is None:
            raise LedgerError(BankError.ACCOUNT_NOT_FOUND, f"Account {holder} not found")
        account.liquidity = Liquidity(liquidity)
        return account
