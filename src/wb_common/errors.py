"""Unified error codes and custom exceptions.

Every error carries a kind so chat adapters can map it to a reply without
knowing the concrete class.

Error code ranges:
  1xxx: Account / ledger
  2xxx: Market
  3xxx: Wager
  4xxx: Settlement
  9xxx: System
"""

from src.wb_common.enums import ErrorKind


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL,
    ) -> None:
        self.code = code
        self.message = message
        self.kind = kind
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, ErrorKind.NOT_FOUND)


class InvalidInputError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, ErrorKind.INVALID_INPUT)


class UnauthorizedError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, ErrorKind.UNAUTHORIZED)


class StateConflictError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, ErrorKind.STATE_CONFLICT)


# --- 1xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            1001,
            f"Insufficient balance: required {required}, available {available}",
            ErrorKind.INSUFFICIENT_BALANCE,
        )
        self.required = required
        self.available = available


class InvalidAmountError(InvalidInputError):
    def __init__(self, amount: object) -> None:
        super().__init__(1002, f"Amount must be a positive integer, got {amount!r}")


class SelfTransferError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(1003, "Cannot transfer to yourself")


class NotAdminError(UnauthorizedError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1004, f"User {user_id} is not an administrator")


# --- 2xxx: Market ---

class MarketNotFoundError(NotFoundError):
    def __init__(self, market_id: str) -> None:
        super().__init__(2001, f"Market not found: {market_id}")


class InvalidOptionCountError(InvalidInputError):
    def __init__(self, count: int, minimum: int, maximum: int) -> None:
        super().__init__(
            2002, f"Market needs between {minimum} and {maximum} options, got {count}"
        )


class InvalidOddsError(InvalidInputError):
    def __init__(self, option_name: str, odds: object) -> None:
        super().__init__(2003, f"Invalid odds for {option_name!r}: {odds!r} (minimum 1.01)")


class InvalidMarketDefinitionError(InvalidInputError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, f"Invalid market definition: {detail}")


class MarketExistsError(StateConflictError):
    def __init__(self, market_id: str) -> None:
        super().__init__(2005, f"Market already exists: {market_id}")


class InvalidClosingTimeError(InvalidInputError):
    def __init__(self, token: str) -> None:
        super().__init__(2006, f"Invalid closing time {token!r}, expected e.g. 21h30")


# --- 3xxx: Wager ---

class MarketClosedError(StateConflictError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(3001, f"Market {market_id} is not accepting wagers (status={status})")


class DuplicateWagerError(StateConflictError):
    def __init__(self, market_id: str, user_id: str) -> None:
        super().__init__(3002, f"User {user_id} already has a wager on market {market_id}")


class InvalidOptionError(InvalidInputError):
    def __init__(self, market_id: str, option_index: object) -> None:
        super().__init__(3003, f"Invalid option {option_index!r} for market {market_id}")


# --- 4xxx: Settlement ---

class MarketTerminalError(StateConflictError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(4001, f"Market {market_id} is already {status}")


class NotMarketCreatorError(UnauthorizedError):
    def __init__(self, market_id: str, user_id: str) -> None:
        super().__init__(4002, f"User {user_id} did not create market {market_id}")


# --- 9xxx: System ---

class PersistenceFailureError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Snapshot write failed: {detail}", ErrorKind.PERSISTENCE_FAILURE)


class SnapshotCorruptedError(AppError):
    def __init__(self, key: str, detail: str) -> None:
        super().__init__(9002, f"Snapshot {key!r} is unreadable: {detail}", ErrorKind.INTERNAL)
