"""LedgerStore: owns per-user balances and the balance-change log.

Accounts are created lazily with the configured starting balance the first
time a user is referenced. Every balance movement appends a BalanceChange;
the log is append-only.
"""

import logging
from collections.abc import Iterable

from src.wb_common.amounts import validate_amount
from src.wb_common.datetime_utils import Clock, utc_now
from src.wb_common.enums import BalanceChangeReason
from src.wb_common.errors import InsufficientBalanceError, InvalidInputError, SelfTransferError
from src.wb_ledger.domain.models import BalanceChange, UserAccount

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(self, starting_balance: int = 100, clock: Clock = utc_now) -> None:
        if starting_balance < 0:
            raise ValueError(f"starting_balance must be >= 0, got {starting_balance}")
        self._starting_balance = starting_balance
        self._clock = clock
        self._accounts: dict[str, UserAccount] = {}
        self._changes: dict[str, list[BalanceChange]] = {}

    @property
    def starting_balance(self) -> int:
        return self._starting_balance

    def _get_or_create(self, user_id: str) -> UserAccount:
        account = self._accounts.get(user_id)
        if account is None:
            account = UserAccount(
                user_id=user_id, balance=self._starting_balance, created_at=self._clock()
            )
            self._accounts[user_id] = account
            self._record(account, BalanceChangeReason.INITIAL_BALANCE, self._starting_balance, None)
        return account

    def _record(
        self,
        account: UserAccount,
        reason: BalanceChangeReason,
        amount: int,
        reference_id: str | None,
    ) -> BalanceChange:
        change = BalanceChange(
            user_id=account.user_id,
            reason=reason,
            amount=amount,
            balance_after=account.balance,
            timestamp=self._clock(),
            reference_id=reference_id,
        )
        self._changes.setdefault(account.user_id, []).append(change)
        return change

    def get_balance(self, user_id: str) -> int:
        return self._get_or_create(user_id).balance

    def has_account(self, user_id: str) -> bool:
        return user_id in self._accounts

    def accounts(self) -> list[UserAccount]:
        return list(self._accounts.values())

    def ensure_funds(self, user_id: str, amount: int) -> None:
        """Raise InsufficientBalanceError without touching the balance."""
        balance = self.get_balance(user_id)
        if amount > balance:
            raise InsufficientBalanceError(required=amount, available=balance)

    def debit(
        self,
        user_id: str,
        amount: int,
        reason: BalanceChangeReason,
        reference_id: str | None = None,
    ) -> int:
        """Remove amount from the balance. Returns the new balance."""
        validate_amount(amount)
        self.ensure_funds(user_id, amount)
        account = self._accounts[user_id]
        account.balance -= amount
        self._record(account, reason, -amount, reference_id)
        return account.balance

    def credit(
        self,
        user_id: str,
        amount: int,
        reason: BalanceChangeReason,
        reference_id: str | None = None,
    ) -> int:
        """Add amount to the balance. Returns the new balance."""
        validate_amount(amount)
        account = self._get_or_create(user_id)
        account.balance += amount
        self._record(account, reason, amount, reference_id)
        return account.balance

    def transfer(self, from_user_id: str, to_user_id: str, amount: int) -> tuple[int, int]:
        """Gift credits between users. Returns (sender_balance, recipient_balance)."""
        if from_user_id == to_user_id:
            raise SelfTransferError()
        validate_amount(amount)
        self.ensure_funds(from_user_id, amount)
        # Recipient account must exist before the debit so both sides apply or neither does
        self._get_or_create(to_user_id)
        sender = self.debit(from_user_id, amount, BalanceChangeReason.GIFT_SENT, to_user_id)
        recipient = self.credit(to_user_id, amount, BalanceChangeReason.GIFT_RECEIVED, from_user_id)
        logger.info("Transfer %d from %s to %s", amount, from_user_id, to_user_id)
        return sender, recipient

    def set_balance(self, user_id: str, new_balance: int) -> int:
        """Administrative overwrite; logged as the signed difference."""
        if isinstance(new_balance, bool) or not isinstance(new_balance, int) or new_balance < 0:
            raise InvalidInputError(1005, f"Balance must be a non-negative integer, got {new_balance!r}")
        account = self._get_or_create(user_id)
        delta = new_balance - account.balance
        account.balance = new_balance
        self._record(account, BalanceChangeReason.ADMIN_EDIT, delta, None)
        return new_balance

    def get_balance_history(self, user_id: str, limit: int) -> list[BalanceChange]:
        """Most recent `limit` changes, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._changes.get(user_id, [])[-limit:]))

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def export_accounts(self) -> dict[str, UserAccount]:
        return dict(self._accounts)

    def export_changes(self) -> dict[str, list[BalanceChange]]:
        return {user_id: list(changes) for user_id, changes in self._changes.items()}

    def restore(
        self,
        accounts: Iterable[UserAccount],
        changes: dict[str, list[BalanceChange]],
    ) -> None:
        self._accounts = {a.user_id: a for a in accounts}
        self._changes = {user_id: list(entries) for user_id, entries in changes.items()}
