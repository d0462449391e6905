"""
Test suite for the bank controller

Tests each operation's permission, status and account checks in their fixed
order, the destructive setup, and the single outcome per call.
"""

import pytest
from unittest.mock import Mock

from custodial_ledger.bank import Bank, Role
from custodial_ledger.errors import BankError
from custodial_ledger.events import OutcomeDispatcher, Success
from custodial_ledger.storage import BankStatus, Liquidity, MAX_BALANCE


OWNER = "owner"
MANAGER = "manager"


@pytest.fixture
def bank():
    """Bank with a separate manager and room for three accounts"""
    bank = Bank.new(OWNER, asset_id=1, maximum_accounts=3)
    bank.setup(OWNER, 1, MANAGER, 3)
    return bank


def freeze(bank, holder):
    bank.ledger.set_liquidity(holder, Liquidity.FROZEN)


class TestConstruction:
    """Test bank constructors"""

    def test_new(self):
        bank = Bank.new(OWNER, asset_id=42, maximum_accounts=10)

        assert bank.get() == (42, OWNER, OWNER, 10, BankStatus.OPEN)
        assert bank.list_accounts() == []

    def test_default(self):
        bank = Bank.default(OWNER)
        assert bank.get() == (0, OWNER, OWNER, 0, BankStatus.OPEN)

    def test_default_bank_cannot_hold_accounts(self):
        bank = Bank.default(OWNER)

        outcome = bank.deposit(OWNER, "x", 1)
        assert outcome.kind == BankError.BANK_ACCOUNT_MAX_OUT

    def test_owner_is_initial_manager(self):
        bank = Bank.new(OWNER, 0, 1)

        assert bank.deposit(OWNER, "x", 5).kind == Success.ACCOUNT_DEPOSIT_SUCCESS

    def test_roles(self):
        assert Role.OWNER.value == "owner"
        assert Role.MANAGER.value == "manager"


class TestSetup:
    """Test the owner-only destructive reconfiguration"""

    def test_setup_round_trip(self):
        bank = Bank.new(OWNER, 0, 0)

        outcome = bank.setup(OWNER, 123, MANAGER, 9)

        assert outcome.is_success
        assert outcome.kind == Success.BANK_SETUP_SUCCESS
        assert outcome.operator == OWNER
        assert bank.get() == (123, OWNER, MANAGER, 9, BankStatus.OPEN)
        assert bank.list_accounts() == []

    def test_setup_deletes_accounts(self, bank):
        bank.deposit(MANAGER, "x", 100)
        bank.deposit(MANAGER, "y", 100)

        bank.setup(OWNER, 2, MANAGER, 3)

        assert bank.list_accounts() == []
        assert bank.get_account("x") is None

    def test_setup_reopens_closed_bank(self, bank):
        bank.close(MANAGER)

        bank.setup(OWNER, 1, MANAGER, 3)

        assert bank.get()[4] == BankStatus.OPEN

    def test_setup_by_manager_is_bad_origin(self, bank):
        bank.deposit(MANAGER, "x", 100)

        outcome = bank.setup(MANAGER, 5, "intruder", 50)

        assert outcome.kind == BankError.BAD_ORIGIN
        assert outcome.operator == MANAGER
        assert bank.get() == (1, OWNER, MANAGER, 3, BankStatus.OPEN)
        assert bank.get_account("x").balance == 100

    def test_setup_by_stranger_is_bad_origin(self, bank):
        outcome = bank.setup("stranger", 5, "stranger", 50)
        assert outcome.kind == BankError.BAD_ORIGIN

    def test_owner_survives_manager_change(self, bank):
        bank.setup(OWNER, 1, "other", 3)
        assert bank.setup(OWNER, 1, MANAGER, 3).is_success

    def test_setup_rejects_wide_values(self, bank):
        with pytest.raises(ValueError):
            bank.setup(OWNER, MAX_BALANCE + 1, MANAGER, 3)
        with pytest.raises(ValueError):
            bank.setup(OWNER, 1, MANAGER, 70000)
        assert bank.get() == (1, OWNER, MANAGER, 3, BankStatus.OPEN)


class TestOpenClose:
    """Test bank status transitions"""

    def test_close_and_open(self, bank):
        outcome = bank.close(MANAGER)
        assert outcome.kind == Success.BANK_CLOSE_SUCCESS
        assert bank.get()[4] == BankStatus.CLOSED

        outcome = bank.open(MANAGER)
        assert outcome.kind == Success.BANK_OPEN_SUCCESS
        assert bank.get()[4] == BankStatus.OPEN

    def test_repeated_transitions_succeed(self, bank):
        assert bank.open(MANAGER).is_success
        assert bank.close(MANAGER).is_success
        assert bank.close(MANAGER).is_success
        assert bank.get()[4] == BankStatus.CLOSED

    def test_owner_is_not_manager(self, bank):
        assert bank.close(OWNER).kind == BankError.BAD_ORIGIN
        assert bank.get()[4] == BankStatus.OPEN

    def test_open_by_stranger(self, bank):
        bank.close(MANAGER)

        assert bank.open("stranger").kind == BankError.BAD_ORIGIN
        assert bank.get()[4] == BankStatus.CLOSED


class TestDeposit:
    """Test manager deposits"""

    def test_deposit_opens_account(self, bank):
        outcome = bank.deposit(MANAGER, "x", 100)

        assert outcome.kind == Success.ACCOUNT_DEPOSIT_SUCCESS
        account = bank.get_account("x")
        assert account.balance == 100
        assert account.liquidity == Liquidity.LIQUID

    def test_deposit_accumulates(self, bank):
        bank.deposit(MANAGER, "x", 100)
        bank.deposit(MANAGER, "x", 25)

        assert bank.get_account("x").balance == 125
        assert len(bank.list_accounts()) == 1

    def test_deposit_zero_opens_account(self, bank):
        assert bank.deposit(MANAGER, "x", 0).is_success
        assert bank.get_account("x").balance == 0

    def test_deposit_bad_origin_first(self, bank):
        bank.close(MANAGER)

        outcome = bank.deposit("x", "x", 100)

        assert outcome.kind == BankError.BAD_ORIGIN
        assert bank.get_account("x") is None

    def test_deposit_when_closed(self, bank):
        bank.close(MANAGER)

        outcome = bank.deposit(MANAGER, "x", 100)

        assert outcome.kind == BankError.BANK_IS_CLOSE
        assert bank.get_account("x") is None

    def test_deposit_max_out(self, bank):
        for holder in ("x", "y", "z"):
            bank.deposit(MANAGER, holder, 1)

        outcome = bank.deposit(MANAGER, "w", 1)

        assert outcome.kind == BankError.BANK_ACCOUNT_MAX_OUT
        assert len(bank.list_accounts()) == 3

    def test_deposit_to_existing_account_at_capacity(self, bank):
        for holder in ("x", "y", "z"):
            bank.deposit(MANAGER, holder, 1)

        assert bank.deposit(MANAGER, "x", 1).is_success
        assert bank.get_account("x").balance == 2

    def test_deposit_overflow(self, bank):
        bank.deposit(MANAGER, "x", MAX_BALANCE)

        outcome = bank.deposit(MANAGER, "x", 1)

        assert outcome.kind == BankError.ACCOUNT_BALANCE_OVERFLOW
        assert bank.get_account("x").balance == MAX_BALANCE

    def test_deposit_ignores_liquidity(self, bank):
        bank.deposit(MANAGER, "x", 10)
        freeze(bank, "x")

        assert bank.deposit(MANAGER, "x", 5).is_success
        assert bank.get_account("x").balance == 15

    def test_deposit_rejects_negative_amount(self, bank):
        with pytest.raises(ValueError):
            bank.deposit(MANAGER, "x", -5)
        assert bank.get_account("x") is None


class TestWithdraw:
    """Test manager withdrawals"""

    def test_withdraw(self, bank):
        bank.deposit(MANAGER, "x", 100)

        outcome = bank.withdraw(MANAGER, "x", 40)

        assert outcome.kind == Success.ACCOUNT_WITHDRAWAL_SUCCESS
        assert bank.get_account("x").balance == 60

    def test_withdraw_entire_balance(self, bank):
        bank.deposit(MANAGER, "x", 100)

        assert bank.withdraw(MANAGER, "x", 100).is_success
        assert bank.get_account("x").balance == 0

    def test_withdraw_bad_origin(self, bank):
        bank.deposit(MANAGER, "x", 100)

        assert bank.withdraw("x", "x", 10).kind == BankError.BAD_ORIGIN
        assert bank.get_account("x").balance == 100

    def test_withdraw_when_closed_before_account_check(self, bank):
        bank.close(MANAGER)

        assert bank.withdraw(MANAGER, "missing", 10).kind == BankError.BANK_IS_CLOSE

    def test_withdraw_missing_account(self, bank):
        assert bank.withdraw(MANAGER, "missing", 10).kind == BankError.ACCOUNT_NOT_FOUND
        assert bank.get_account("missing") is None

    def test_withdraw_insufficient(self, bank):
        bank.deposit(MANAGER, "x", 100)

        outcome = bank.withdraw(MANAGER, "x", 101)

        assert outcome.kind == BankError.ACCOUNT_BALANCE_INSUFFICIENT
        assert bank.get_account("x").balance == 100

    def test_withdraw_ignores_liquidity(self, bank):
        bank.deposit(MANAGER, "x", 100)
        freeze(bank, "x")

        assert bank.withdraw(MANAGER, "x", 30).is_success
        assert bank.get_account("x").balance == 70


class TestCredit:
    """Test manager credits"""

    def test_credit(self, bank):
        bank.deposit(MANAGER, "x", 10)

        outcome = bank.credit(MANAGER, "x", 5)

        assert outcome.kind == Success.ACCOUNT_CREDIT_SUCCESS
        assert bank.get_account("x").balance == 15

    def test_credit_bad_origin(self, bank):
        bank.deposit(MANAGER, "x", 10)
        assert bank.credit("x", "x", 5).kind == BankError.BAD_ORIGIN

    def test_credit_does_not_open_account(self, bank):
        assert bank.credit(MANAGER, "x", 5).kind == BankError.ACCOUNT_NOT_FOUND
        assert bank.get_account("x") is None

    def test_credit_frozen(self, bank):
        bank.deposit(MANAGER, "x", 10)
        freeze(bank, "x")

        assert bank.credit(MANAGER, "x", 5).kind == BankError.ACCOUNT_FROZEN
        assert bank.get_account("x").balance == 10

    def test_credit_overflow(self, bank):
        bank.deposit(MANAGER, "x", MAX_BALANCE - 1)

        assert bank.credit(MANAGER, "x", 2).kind == BankError.ACCOUNT_BALANCE_OVERFLOW
        assert bank.get_account("x").balance == MAX_BALANCE - 1

    def test_credit_while_closed(self, bank):
        bank.deposit(MANAGER, "x", 10)
        bank.close(MANAGER)

        assert bank.credit(MANAGER, "x", 5).is_success
        assert bank.get_account("x").balance == 15


class TestDebit:
    """Test holder self-debits"""

    def test_debit_own_account(self, bank):
        bank.deposit(MANAGER, "x", 100)

        outcome = bank.debit("x", 30)

        assert outcome.kind == Success.ACCOUNT_DEBIT_SUCCESS
        assert outcome.operator == "x"
        assert bank.get_account("x").balance == 70

    def test_debit_without_account(self, bank):
        assert bank.debit(MANAGER, 1).kind == BankError.ACCOUNT_NOT_FOUND

    def test_debit_frozen(self, bank):
        bank.deposit(MANAGER, "x", 100)
        freeze(bank, "x")

        assert bank.debit("x", 1).kind == BankError.ACCOUNT_FROZEN
        assert bank.get_account("x").balance == 100

    def test_debit_insufficient(self, bank):
        bank.deposit(MANAGER, "x", 100)

        assert bank.debit("x", 101).kind == BankError.ACCOUNT_BALANCE_INSUFFICIENT
        assert bank.get_account("x").balance == 100

    def test_debit_while_closed(self, bank):
        bank.deposit(MANAGER, "x", 100)
        bank.close(MANAGER)

        assert bank.debit("x", 10).is_success


class TestScenarios:
    """End-to-end ledger scenarios"""

    def test_single_account_bank(self):
        bank = Bank.new(OWNER, 0, 0)
        bank.setup(OWNER, 1, MANAGER, 1)

        assert bank.deposit(MANAGER, "x", 100).kind == Success.ACCOUNT_DEPOSIT_SUCCESS
        assert bank.get_account("x").balance == 100

        assert bank.deposit(MANAGER, "y", 50).kind == BankError.BANK_ACCOUNT_MAX_OUT
        assert bank.get_account("y") is None

        assert bank.debit("x", 30).kind == Success.ACCOUNT_DEBIT_SUCCESS
        assert bank.get_account("x").balance == 70

        assert bank.debit("x", 100).kind == BankError.ACCOUNT_BALANCE_INSUFFICIENT
        assert bank.get_account("x").balance == 70

    def test_close_blocks_then_open_restores(self, bank):
        bank.deposit(MANAGER, "x", 100)
        bank.close(MANAGER)

        assert bank.deposit(MANAGER, "x", 1).kind == BankError.BANK_IS_CLOSE
        assert bank.withdraw(MANAGER, "x", 1).kind == BankError.BANK_IS_CLOSE

        bank.open(MANAGER)

        assert bank.deposit(MANAGER, "x", 1).is_success
        assert bank.withdraw(MANAGER, "x", 1).is_success
        assert bank.get_account("x").balance == 100

    def test_queries_return_snapshots(self, bank):
        bank.deposit(MANAGER, "x", 100)

        bank.get_account("x").balance = 0
        bank.list_accounts()[0].balance = 0

        assert bank.get_account("x").balance == 100


class TestOutcomeReporting:
    """Test that every call reports exactly one outcome"""

    def test_one_outcome_per_call(self):
        dispatcher = OutcomeDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)
        bank = Bank.new(OWNER, 0, 1, dispatcher=dispatcher)

        bank.deposit(OWNER, "x", 5)
        bank.deposit(OWNER, "y", 5)
        bank.debit("x", 10)
        bank.setup("x", 0, "x", 0)

        assert handler.call_count == 4
        kinds = [call.args[0].status.kind for call in handler.call_args_list]
        assert kinds == [
            Success.ACCOUNT_DEPOSIT_SUCCESS,
            BankError.BANK_ACCOUNT_MAX_OUT,
            BankError.ACCOUNT_BALANCE_INSUFFICIENT,
            BankError.BAD_ORIGIN,
        ]
        operators = [call.args[0].operator for call in handler.call_args_list]
        assert operators == [OWNER, OWNER, "x", "x"]

    def test_queries_report_nothing(self):
        dispatcher = OutcomeDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)
        bank = Bank.new(OWNER, 0, 1, dispatcher=dispatcher)

        bank.get()
        bank.get_account("x")
        bank.list_accounts()

        handler.assert_not_called()

    def test_failing_subscriber_does_not_change_outcome(self):
        dispatcher = OutcomeDispatcher()
        dispatcher.subscribe_all(Mock(side_effect=RuntimeError("boom")))
        bank = Bank.new(OWNER, 0, 1, dispatcher=dispatcher)

        outcome = bank.deposit(OWNER, "x", 5)

        assert outcome.is_success
        assert bank.get_account("x").balance == 5

    def test_set_dispatcher(self):
        bank = Bank.new(OWNER, 0, 1)
        dispatcher = OutcomeDispatcher()
        handler = Mock()
        dispatcher.subscribe(Success.BANK_CLOSE_SUCCESS, handler)

        bank.set_dispatcher(dispatcher)
        bank.close(OWNER)

        assert bank.dispatcher is dispatcher
        handler.assert_called_once()

    def test_outcomes_are_logged(self, caplog):
        bank = Bank(OWNER, 0, 1, log_outcomes=True)

        with caplog.at_level("INFO", logger="custodial_ledger.bank"):
            bank.deposit(OWNER, "x", 5)
            bank.debit("nobody", 1)

        records = [r for r in caplog.records if r.name == "custodial_ledger.bank"]
        assert [r.levelname for r in records] == ["INFO", "WARNING"]
        assert records[0].action == "deposit"
        assert records[0].outcome == "AccountDepositSuccess"
        assert records[1].outcome == "AccountNotFound"
        assert records[1].operator == "nobody"
