"""
Error Taxonomy Module

Every rule violation in the account core is signalled with one of these
typed, catchable errors. Each carries a stable ``error_code`` and a
``details`` dict so callers can translate it into a user-facing response.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional


class BankingError(Exception):
    """Base exception for all account core errors."""

    error_code = "BANKING_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for error responses"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.details.items()
            },
        }


class InvalidInputError(BankingError, ValueError):
    """Raised for malformed arguments (name length, currency code, non-positive amount)."""

    error_code = "INVALID_INPUT"


class CurrencyMismatchError(BankingError):
    """Raised when the operands of a money operation have different currencies."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, expected: str, actual: str, message: Optional[str] = None):
        super().__init__(
            message or f"Currency mismatch: expected {expected}, got {actual}",
            expected=expected,
            actual=actual,
        )
        self.expected = expected
        self.actual = actual


class InvalidAccountStateError(BankingError):
    """Raised when the account status does not allow the operation."""

    error_code = "INVALID_ACCOUNT_STATE"


class AccountNotActiveError(InvalidAccountStateError):
    """Raised when an operation requires an Active account."""

    error_code = "ACCOUNT_NOT_ACTIVE"


class AccountNotFrozenError(InvalidAccountStateError):
    """Raised when unfreezing an account that is not frozen."""

    error_code = "ACCOUNT_NOT_FROZEN"


class InsufficientFundsError(BankingError):
    """Raised when the available balance is below the required amount."""

    error_code = "INSUFFICIENT_FUNDS"

    def __init__(self, available, required):
        super().__init__(
            f"Insufficient balance. Available: {available.to_string()}, "
            f"Required: {required.to_string()}",
            available=available.amount,
            required=required.amount,
            currency=available.currency,
        )
        self.available = available
        self.required = required


class DailyLimitExceededError(BankingError):
    """Raised when a debit would push today's debit total over the daily limit."""

    error_code = "DAILY_LIMIT_EXCEEDED"

    def __init__(self, current_total, attempted, limit):
        super().__init__(
            f"Daily transaction limit exceeded. Limit: {limit.to_string()}, "
            f"Current: {current_total.to_string()}, Attempted: {attempted.to_string()}",
            current_total=current_total.amount,
            attempted=attempted.amount,
            limit=limit.amount,
            currency=limit.currency,
        )
        self.current_total = current_total
        self.attempted = attempted
        self.limit = limit


class ClosureNotAllowedError(BankingError):
    """Raised when an account cannot be closed yet."""

    error_code = "CLOSURE_NOT_ALLOWED"


class SameAccountError(BankingError):
    """Raised when a transfer names the same account on both sides."""

    error_code = "SAME_ACCOUNT"


class TransferMismatchError(BankingError):
    """Raised when transfer parties differ in account type or currency."""

    error_code = "TRANSFER_MISMATCH"


class CustomerAccountLimitError(BankingError):
    """Raised when a customer already holds the maximum accounts of a type."""

    error_code = "CUSTOMER_ACCOUNT_LIMIT"


class InvalidTransactionStateError(BankingError):
    """Raised for an illegal transaction status transition."""

    error_code = "INVALID_TRANSACTION_STATE"


class TransactionNotFoundError(BankingError):
    """Raised when a transaction id is not part of the account ledger."""

    error_code = "TRANSACTION_NOT_FOUND"


class AccountNotFoundError(BankingError):
    """Raised by the repository when no account matches the key."""

    error_code = "ACCOUNT_NOT_FOUND"

    def __init__(self, key: str):
        super().__init__(f"Account {key} not found", key=key)
        self.key = key


class ConcurrencyConflictError(BankingError):
    """Raised when a save's expected version does not match the stored version."""

    error_code = "CONCURRENCY_CONFLICT"

    def __init__(self, account_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Concurrency conflict on account {account_id}. "
            f"Expected version: {expected_version}, Actual version: {actual_version}",
            account_id=account_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
        self.account_id = account_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class AllocationFailedError(BankingError):
    """Raised when no unique account number could be generated."""

    error_code = "ALLOCATION_FAILED"

    def __init__(self, account_type: str, attempts: int):
        super().__init__(
            f"Could not generate unique {account_type} account number after {attempts} attempts",
            account_type=account_type,
            attempts=attempts,
        )
        self.attempts = attempts


class EventDispatchError(BankingError):
    """Raised when one or more event handlers failed during dispatch."""

    error_code = "EVENT_DISPATCH_FAILED"

    def __init__(self, failures: List[Dict[str, str]]):
        super().__init__(
            f"{len(failures)} event handler(s) failed during dispatch",
            failures=failures,
        )
        self.failures = failures
