"""
Business Rules Module

Stateless rule objects evaluated by the Account aggregate before it mutates
anything. Each rule is a pure predicate over explicit inputs that returns a
RuleResult; callers use it either as a boolean check (``is_satisfied``) or as
check-and-raise (``check``), which raises the typed error carried by the
failed result.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from .currency import Money
from .exceptions import (
    AccountNotActiveError, BankingError, ClosureNotAllowedError,
    CurrencyMismatchError, CustomerAccountLimitError, DailyLimitExceededError,
    InsufficientFundsError, InvalidInputError,
)
from .values import AccountStatus, AccountType


NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100

# Minimum initial balance per account type, in units of the account currency
MINIMUM_INITIAL_BALANCE = {
    AccountType.CHECKING: Decimal('0'),
    AccountType.SAVINGS: Decimal('100'),
    AccountType.INVESTMENT: Decimal('1000'),
    AccountType.CREDIT: Decimal('0'),
}


@dataclass(frozen=True)
class RuleResult:
    """Outcome of evaluating a rule"""
    passed: bool
    message: str = ""
    error: Optional[BankingError] = None

    @classmethod
    def ok(cls) -> 'RuleResult':
        return cls(True)

    @classmethod
    def fail(cls, error: BankingError) -> 'RuleResult':
        return cls(False, error.message, error)


class BusinessRule:
    """Base for rule strategies; subclasses implement ``evaluate``"""

    name = "business_rule"

    def evaluate(self, *args, **kwargs) -> RuleResult:
        raise NotImplementedError

    def is_satisfied(self, *args, **kwargs) -> bool:
        return self.evaluate(*args, **kwargs).passed

    def check(self, *args, **kwargs) -> None:
        result = self.evaluate(*args, **kwargs)
        if not result.passed:
            raise result.error


class AccountNameRule(BusinessRule):
    """Name must be non-blank and 3-100 characters"""

    name = "account_name"

    def evaluate(self, account_name) -> RuleResult:
        if not isinstance(account_name, str) or not account_name.strip():
            return RuleResult.fail(InvalidInputError(
                "Account name cannot be empty or whitespace", field="name"))
        if len(account_name) < NAME_MIN_LENGTH:
            return RuleResult.fail(InvalidInputError(
                f"Account name must be at least {NAME_MIN_LENGTH} characters long", field="name"))
        if len(account_name) > NAME_MAX_LENGTH:
            return RuleResult.fail(InvalidInputError(
                f"Account name cannot exceed {NAME_MAX_LENGTH} characters", field="name"))
        return RuleResult.ok()


class AccountCreationRule(BusinessRule):
    """Name, type and type-specific initial balance requirements"""

    name = "account_creation"

    def evaluate(self, account_name, account_type: AccountType, initial_balance: Money) -> RuleResult:
        name_result = AccountNameRule().evaluate(account_name)
        if not name_result.passed:
            return name_result

        if not isinstance(account_type, AccountType):
            valid = ", ".join(t.value for t in AccountType)
            return RuleResult.fail(InvalidInputError(
                f"Account type must be one of: {valid}", field="account_type"))

        if account_type == AccountType.CREDIT and not initial_balance.is_zero():
            return RuleResult.fail(InvalidInputError(
                "Credit accounts must start with zero balance", field="initial_balance"))

        minimum = MINIMUM_INITIAL_BALANCE[account_type]
        if initial_balance.amount < minimum:
            return RuleResult.fail(InvalidInputError(
                f"{account_type.value.capitalize()} accounts require minimum initial balance "
                f"of {Money(minimum, initial_balance.currency).to_string()}",
                field="initial_balance",
                minimum=minimum,
            ))
        return RuleResult.ok()


class TransactionAmountPositiveRule(BusinessRule):
    """Transaction amounts must be strictly positive"""

    name = "transaction_amount_positive"

    def evaluate(self, amount: Money, operation: str = "Transaction") -> RuleResult:
        if not isinstance(amount, Money) or not amount.is_positive():
            return RuleResult.fail(InvalidInputError(
                f"{operation} amount must be positive", field="amount"))
        return RuleResult.ok()


class SameCurrencyRule(BusinessRule):
    """Amount must be in the account currency"""

    name = "same_currency"

    def evaluate(self, account_currency: str, amount: Money) -> RuleResult:
        if amount.currency != account_currency:
            return RuleResult.fail(CurrencyMismatchError(account_currency, amount.currency))
        return RuleResult.ok()


class AccountActiveRule(BusinessRule):
    """Operation requires an Active account"""

    name = "account_active"

    def evaluate(self, status: AccountStatus, operation: str = "perform transactions") -> RuleResult:
        if status != AccountStatus.ACTIVE:
            return RuleResult.fail(AccountNotActiveError(
                f"Account must be active to {operation} (status: {status.value})",
                status=status.value,
            ))
        return RuleResult.ok()


def available_balance(balance: Money, minimum_balance: Optional[Money],
                      reserved: Optional[Money] = None) -> Money:
    """Balance minus minimum balance and reserved funds, floored at zero"""
    floor = minimum_balance or Money.zero(balance.currency)
    if reserved is not None:
        floor = floor.add(reserved)
    return balance.subtract_floored(floor)


class SufficientBalanceRule(BusinessRule):
    """Available balance must cover the debit"""

    name = "sufficient_balance"

    def evaluate(self, balance: Money, minimum_balance: Optional[Money], amount: Money,
                 reserved: Optional[Money] = None) -> RuleResult:
        available = available_balance(balance, minimum_balance, reserved)
        if available.is_less_than(amount):
            return RuleResult.fail(InsufficientFundsError(available=available, required=amount))
        return RuleResult.ok()


class DailyLimitRule(BusinessRule):
    """Today's debit total plus the new debit must stay within the daily limit"""

    name = "daily_limit"

    def evaluate(self, daily_limit: Optional[Money], current_total: Money, amount: Money) -> RuleResult:
        # No limit configured (a zero limit also means unlimited)
        if daily_limit is None or daily_limit.is_zero():
            return RuleResult.ok()
        if current_total.add(amount).is_greater_than(daily_limit):
            return RuleResult.fail(DailyLimitExceededError(
                current_total=current_total, attempted=amount, limit=daily_limit))
        return RuleResult.ok()


class ClosureEligibilityRule(BusinessRule):
    """Zero balance and no open pending transactions"""

    name = "closure_eligibility"

    def evaluate(self, balance: Money, open_transaction_count: int) -> RuleResult:
        if not balance.is_zero():
            return RuleResult.fail(ClosureNotAllowedError(
                f"Account cannot be closed while it has a balance of {balance.to_string()}",
                balance=balance.amount,
            ))
        if open_transaction_count > 0:
            return RuleResult.fail(ClosureNotAllowedError(
                f"Account cannot be closed with {open_transaction_count} pending transaction(s)",
                pending_transactions=open_transaction_count,
            ))
        return RuleResult.ok()


class CustomerAccountLimitRule(BusinessRule):
    """A customer may hold only so many active accounts of one type"""

    name = "customer_account_limit"

    def evaluate(self, existing_accounts_of_type: int, account_type: AccountType,
                 limits: Dict[AccountType, int]) -> RuleResult:
        max_allowed = limits.get(account_type)
        if max_allowed is not None and existing_accounts_of_type >= max_allowed:
            return RuleResult.fail(CustomerAccountLimitError(
                f"Customer cannot have more than {max_allowed} {account_type.value} accounts",
                account_type=account_type.value,
                max_allowed=max_allowed,
            ))
        return RuleResult.ok()


account_name_rule = AccountNameRule()
account_creation_rule = AccountCreationRule()
transaction_amount_positive_rule = TransactionAmountPositiveRule()
same_currency_rule = SameCurrencyRule()
account_active_rule = AccountActiveRule()
sufficient_balance_rule = SufficientBalanceRule()
daily_limit_rule = DailyLimitRule()
closure_eligibility_rule = ClosureEligibilityRule()
customer_account_limit_rule = CustomerAccountLimitRule()
