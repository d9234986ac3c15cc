"""
Account Domain Service Module

Business logic that spans more than one Account aggregate (transfers), or
that needs context the aggregate does not hold (customer account counts,
fee schedules). Operates only on in-memory aggregates; persisting the
result is the caller's job.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Union
import uuid

from .accounts import Account
from .currency import Money
from .exceptions import (
    AccountNotActiveError, InvalidInputError, SameAccountError, TransferMismatchError,
)
from .rules import customer_account_limit_rule, same_currency_rule, transaction_amount_positive_rule
from .transactions import Transaction
from .values import AccountStatus, AccountType


@dataclass(frozen=True)
class TransferResult:
    """Both legs of a completed in-memory transfer"""
    transfer_id: str
    debit_transaction: Transaction
    credit_transaction: Transaction


class AccountDomainService:
    """
    Stateless cross-aggregate operations
    """

    def __init__(
        self,
        checking_monthly_fee: Decimal = Decimal('5.00'),
        investment_quarterly_fee: Decimal = Decimal('25.00'),
    ):
        self.checking_monthly_fee = checking_monthly_fee
        self.investment_quarterly_fee = investment_quarterly_fee

    def transfer_between_accounts(
        self,
        from_account: Account,
        to_account: Account,
        amount: Money,
        description: str = "",
    ) -> TransferResult:
        """
        Move money between two accounts of the same type and currency

        Either both aggregates reflect the transfer or neither changes:
        everything the credit leg could reject is checked before the debit.

        Args:
            from_account: Account to debit
            to_account: Account to credit
            amount: Positive amount in the shared currency
            description: Free text appended to both leg descriptions

        Returns:
            TransferResult with the transfer id and both transactions

        Raises:
            SameAccountError, TransferMismatchError, AccountNotActiveError,
            InvalidInputError, InsufficientFundsError, DailyLimitExceededError
        """
        if from_account.id == to_account.id:
            raise SameAccountError("Cannot transfer to the same account", account_id=from_account.id)

        if from_account.account_type != to_account.account_type:
            raise TransferMismatchError(
                "Cannot transfer between different account types",
                from_type=from_account.account_type.value,
                to_type=to_account.account_type.value,
            )
        if from_account.currency != to_account.currency:
            raise TransferMismatchError(
                "Cannot transfer between accounts in different currencies",
                from_currency=from_account.currency,
                to_currency=to_account.currency,
            )

        if not from_account.is_active or not to_account.is_active:
            raise AccountNotActiveError(
                "Both accounts must be active for transfer",
                from_status=from_account.status.value,
                to_status=to_account.status.value,
            )

        # Credit-side checks; the debit leg validates funds and limits itself
        transaction_amount_positive_rule.check(amount, "Transfer")
        same_currency_rule.check(to_account.currency, amount)

        transfer_id = str(uuid.uuid4())
        debit_id = str(uuid.uuid4())
        credit_id = str(uuid.uuid4())

        debit = from_account.transfer_out(
            amount,
            to_account_id=to_account.id,
            to_account_number=to_account.account_number,
            description=description,
            transfer_id=transfer_id,
            transaction_id=debit_id,
            related_transaction_id=credit_id,
        )
        credit = to_account.transfer_in(
            amount,
            from_account_id=from_account.id,
            from_account_number=from_account.account_number,
            description=description,
            transfer_id=transfer_id,
            transaction_id=credit_id,
            related_transaction_id=debit_id,
        )
        return TransferResult(transfer_id, debit, credit)

    def validate_account_creation(
        self,
        customer_accounts: Iterable[Account],
        account_type: Union[AccountType, str],
        limits: Dict[AccountType, int],
    ) -> None:
        """
        Enforce per-customer limits on active accounts of one type

        Raises:
            CustomerAccountLimitError: Customer already holds the maximum
        """
        account_type = AccountType.parse(account_type)
        same_type = sum(
            1 for account in customer_accounts
            if account.account_type == account_type and account.status == AccountStatus.ACTIVE
        )
        customer_account_limit_rule.check(same_type, account_type, limits)

    def can_perform_transaction(self, account: Account, amount: Money, transaction_type: str) -> bool:
        """Quick eligibility check; never raises for rule failures"""
        if not account.is_active:
            return False
        if transaction_type in ("withdrawal", "transfer"):
            return account.has_sufficient_balance(amount)
        return transaction_type == "deposit"

    def apply_interest(self, account: Account, interest_rate: Union[Decimal, str]) -> Optional[Transaction]:
        """Credit savings interest at ``interest_rate`` (0 < rate <= 1)"""
        return account.apply_interest(interest_rate)

    def calculate_account_fees(self, account: Account, period_start: datetime, period_end: datetime) -> Money:
        """
        Maintenance fees due for a period

        Checking accounts pay a monthly fee and investment accounts a
        quarterly fee, with at least one period charged. Savings and credit
        accounts pay nothing.
        """
        if period_end < period_start:
            raise InvalidInputError("Fee period end must not be before its start", field="period_end")

        fees = Money.zero(account.currency)
        days = (period_end - period_start).days

        if account.account_type == AccountType.CHECKING:
            months = max(1, days // 30)
            fees = fees.add(Money(self.checking_monthly_fee * months, account.currency))
        elif account.account_type == AccountType.INVESTMENT:
            quarters = max(1, days // 90)
            fees = fees.add(Money(self.investment_quarterly_fee * quarters, account.currency))

        return fees
