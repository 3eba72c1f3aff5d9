"""Tests for LedgerStore: lazy accounts, debits, credits, gifts and admin edits."""

import pytest

from src.wb_common.enums import BalanceChangeReason
from src.wb_common.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidInputError,
    SelfTransferError,
)
from src.wb_ledger.domain.ledger import LedgerStore


class TestAccounts:
    def test_lazy_creation_with_starting_balance(self, ledger) -> None:
        assert not ledger.has_account("u1")
        assert ledger.get_balance("u1") == 100
        assert ledger.has_account("u1")
        history = ledger.get_balance_history("u1", 10)
        assert len(history) == 1
        assert history[0].reason == BalanceChangeReason.INITIAL_BALANCE
        assert history[0].amount == 100
        assert history[0].balance_after == 100

    def test_custom_starting_balance(self, clock) -> None:
        assert LedgerStore(starting_balance=250, clock=clock).get_balance("u1") == 250

    def test_negative_starting_balance_rejected(self) -> None:
        with pytest.raises(ValueError):
            LedgerStore(starting_balance=-1)

    def test_second_lookup_does_not_reset(self, ledger) -> None:
        ledger.debit("u1", 30, BalanceChangeReason.WAGER_PLACED)
        assert ledger.get_balance("u1") == 70


class TestDebitCredit:
    def test_debit(self, ledger) -> None:
        assert ledger.debit("u1", 40, BalanceChangeReason.WAGER_PLACED, "M-1") == 60
        change = ledger.get_balance_history("u1", 1)[0]
        assert change.amount == -40
        assert change.balance_after == 60
        assert change.reference_id == "M-1"

    def test_debit_insufficient(self, ledger) -> None:
        with pytest.raises(InsufficientBalanceError) as exc_info:
            ledger.debit("u1", 101, BalanceChangeReason.WAGER_PLACED)
        assert exc_info.value.required == 101
        assert exc_info.value.available == 100
        assert ledger.get_balance("u1") == 100

    def test_credit(self, ledger) -> None:
        assert ledger.credit("u1", 75, BalanceChangeReason.WAGER_WON, "M-1") == 175

    @pytest.mark.parametrize("amount", [0, -10])
    def test_non_positive_rejected(self, ledger, amount) -> None:
        with pytest.raises(InvalidAmountError):
            ledger.credit("u1", amount, BalanceChangeReason.WAGER_WON)
        with pytest.raises(InvalidAmountError):
            ledger.debit("u1", amount, BalanceChangeReason.WAGER_PLACED)


class TestTransfer:
    def test_moves_credits(self, ledger) -> None:
        assert ledger.transfer("a", "b", 30) == (70, 130)
        assert ledger.get_balance_history("a", 1)[0].reason == BalanceChangeReason.GIFT_SENT
        received = ledger.get_balance_history("b", 1)[0]
        assert received.reason == BalanceChangeReason.GIFT_RECEIVED
        assert received.reference_id == "a"

    def test_self_transfer(self, ledger) -> None:
        with pytest.raises(SelfTransferError):
            ledger.transfer("a", "a", 10)

    def test_insufficient_changes_nothing(self, ledger) -> None:
        with pytest.raises(InsufficientBalanceError):
            ledger.transfer("a", "b", 500)
        assert ledger.get_balance("a") == 100
        assert not ledger.has_account("b")


class TestSetBalance:
    def test_logs_signed_delta(self, ledger) -> None:
        ledger.set_balance("u1", 40)
        change = ledger.get_balance_history("u1", 1)[0]
        assert change.reason == BalanceChangeReason.ADMIN_EDIT
        assert change.amount == -60
        assert change.balance_after == 40

    @pytest.mark.parametrize("bad", [-1, 1.5, True])
    def test_rejects_invalid(self, ledger, bad) -> None:
        with pytest.raises(InvalidInputError):
            ledger.set_balance("u1", bad)


class TestBalanceHistory:
    def test_newest_first_with_limit(self, ledger, clock) -> None:
        ledger.get_balance("u1")
        clock.advance(seconds=1)
        ledger.debit("u1", 10, BalanceChangeReason.WAGER_PLACED, "M-1")
        clock.advance(seconds=1)
        ledger.credit("u1", 15, BalanceChangeReason.WAGER_WON, "M-1")

        history = ledger.get_balance_history("u1", 2)
        assert [c.reason for c in history] == [
            BalanceChangeReason.WAGER_WON,
            BalanceChangeReason.WAGER_PLACED,
        ]
        assert history[0].timestamp > history[1].timestamp

    def test_zero_limit(self, ledger) -> None:
        ledger.get_balance("u1")
        assert ledger.get_balance_history("u1", 0) == []

    def test_unknown_user_does_not_create(self, ledger) -> None:
        assert ledger.get_balance_history("ghost", 5) == []
        assert not ledger.has_account("ghost")


class TestSnapshotSupport:
    def test_export_restore(self, ledger, clock) -> None:
        ledger.transfer("a", "b", 5)
        accounts = ledger.export_accounts()
        changes = ledger.export_changes()

        fresh = LedgerStore(clock=clock)
        fresh.restore(accounts.values(), changes)
        assert fresh.get_balance("a") == 95
        assert fresh.get_balance("b") == 105
        assert len(fresh.get_balance_history("a", 10)) == 2
