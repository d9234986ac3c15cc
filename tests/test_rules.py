"""
Test suite for business rules

Rules are pure predicates, so they are exercised here without any account
or storage.
"""

import pytest
from decimal import Decimal

from demobank.currency import Money
from demobank.exceptions import (
    AccountNotActiveError, ClosureNotAllowedError, CurrencyMismatchError,
    CustomerAccountLimitError, DailyLimitExceededError, InsufficientFundsError,
    InvalidInputError,
)
from demobank.rules import (
    AccountCreationRule, AccountNameRule, ClosureEligibilityRule, DailyLimitRule,
    RuleResult, SufficientBalanceRule, account_active_rule, available_balance,
    customer_account_limit_rule, same_currency_rule, transaction_amount_positive_rule,
)
from demobank.values import AccountStatus, AccountType


def lira(amount):
    return Money(Decimal(amount), "TRY")


class TestRuleResult:
    """Test RuleResult helpers"""

    def test_ok_and_fail(self):
        """Test result construction"""
        assert RuleResult.ok().passed
        error = InvalidInputError("bad")
        result = RuleResult.fail(error)
        assert not result.passed
        assert result.message == "bad"
        assert result.error is error


class TestAccountNameRule:
    """Test account name validation"""

    def setup_method(self):
        """Set up test fixtures"""
        self.rule = AccountNameRule()

    def test_length_bounds(self):
        """Test the 3 and 100 character bounds"""
        assert self.rule.is_satisfied("abc")
        assert self.rule.is_satisfied("a" * 100)
        assert not self.rule.is_satisfied("ab")
        assert not self.rule.is_satisfied("a" * 101)

    def test_blank_names(self):
        """Test blank names fail"""
        assert not self.rule.is_satisfied("")
        assert not self.rule.is_satisfied("     ")
        assert not self.rule.is_satisfied(None)

    def test_check_raises(self):
        """Test check-and-raise mode"""
        with pytest.raises(InvalidInputError):
            self.rule.check("ab")


class TestAccountCreationRule:
    """Test type-specific creation requirements"""

    def setup_method(self):
        """Set up test fixtures"""
        self.rule = AccountCreationRule()

    def test_savings_minimum(self):
        """Test savings accounts need 100 to open"""
        assert self.rule.is_satisfied("Savings", AccountType.SAVINGS, lira('100'))
        assert not self.rule.is_satisfied("Savings", AccountType.SAVINGS, lira('99.99'))

    def test_investment_minimum(self):
        """Test investment accounts need 1000 to open"""
        assert self.rule.is_satisfied("Portfolio", AccountType.INVESTMENT, lira('1000'))
        assert not self.rule.is_satisfied("Portfolio", AccountType.INVESTMENT, lira('999.99'))

    def test_credit_must_start_at_zero(self):
        """Test credit accounts must open with exactly zero"""
        assert self.rule.is_satisfied("Card", AccountType.CREDIT, lira('0'))
        result = self.rule.evaluate("Card", AccountType.CREDIT, lira('0.01'))
        assert not result.passed
        assert isinstance(result.error, InvalidInputError)

    def test_checking_any_balance(self):
        """Test checking accounts can open empty"""
        assert self.rule.is_satisfied("Daily", AccountType.CHECKING, lira('0'))

    def test_name_checked_first(self):
        """Test the name rule applies during creation"""
        result = self.rule.evaluate("ab", AccountType.CHECKING, lira('0'))
        assert "at least 3" in result.message


class TestTransactionRules:
    """Test amount, currency and status rules"""

    def test_amount_must_be_positive(self):
        """Test zero amounts fail"""
        assert transaction_amount_positive_rule.is_satisfied(lira('0.01'))
        assert not transaction_amount_positive_rule.is_satisfied(lira('0'))
        with pytest.raises(InvalidInputError):
            transaction_amount_positive_rule.check(lira('0'), "Deposit")

    def test_same_currency(self):
        """Test amount currency must match the account"""
        assert same_currency_rule.is_satisfied("TRY", lira('1'))
        with pytest.raises(CurrencyMismatchError):
            same_currency_rule.check("TRY", Money(Decimal('1'), "USD"))

    def test_account_active(self):
        """Test only active accounts pass"""
        assert account_active_rule.is_satisfied(AccountStatus.ACTIVE)
        for status in (AccountStatus.FROZEN, AccountStatus.CLOSED):
            with pytest.raises(AccountNotActiveError):
                account_active_rule.check(status)


class TestSufficientBalanceRule:
    """Test available balance checks"""

    def setup_method(self):
        """Set up test fixtures"""
        self.rule = SufficientBalanceRule()

    def test_available_balance(self):
        """Test balance minus minimum and reservations, floored at zero"""
        assert available_balance(lira('500'), lira('100')) == lira('400')
        assert available_balance(lira('500'), None) == lira('500')
        assert available_balance(lira('500'), lira('100'), lira('150')) == lira('250')
        assert available_balance(lira('50'), lira('100')).is_zero()

    def test_exact_available_passes(self):
        """Test a debit equal to the available balance passes"""
        assert self.rule.is_satisfied(lira('500'), lira('100'), lira('400'))

    def test_one_cent_over_fails(self):
        """Test a debit one cent over fails with both values"""
        result = self.rule.evaluate(lira('500'), lira('100'), lira('400.01'))
        assert not result.passed
        assert isinstance(result.error, InsufficientFundsError)
        assert result.error.available == lira('400')
        assert result.error.required == lira('400.01')


class TestDailyLimitRule:
    """Test daily debit limit"""

    def setup_method(self):
        """Set up test fixtures"""
        self.rule = DailyLimitRule()

    def test_no_limit(self):
        """Test a missing or zero limit never blocks"""
        assert self.rule.is_satisfied(None, lira('1000000'), lira('1'))
        assert self.rule.is_satisfied(lira('0'), lira('1000000'), lira('1'))

    def test_within_and_at_limit(self):
        """Test totals up to the limit pass"""
        assert self.rule.is_satisfied(lira('500'), lira('200'), lira('300'))

    def test_over_limit(self):
        """Test the error carries current total, attempted and limit"""
        with pytest.raises(DailyLimitExceededError) as exc_info:
            self.rule.check(lira('500'), lira('300'), lira('300'))
        error = exc_info.value
        assert error.current_total == lira('300')
        assert error.attempted == lira('300')
        assert error.limit == lira('500')
        assert error.to_dict()["details"]["limit"] == "500.00"


class TestClosureEligibilityRule:
    """Test closure preconditions"""

    def setup_method(self):
        """Set up test fixtures"""
        self.rule = ClosureEligibilityRule()

    def test_zero_balance_no_pending(self):
        """Test closable state"""
        assert self.rule.is_satisfied(lira('0'), 0)

    def test_balance_blocks_closure(self):
        """Test a remaining balance blocks closure"""
        with pytest.raises(ClosureNotAllowedError):
            self.rule.check(lira('50'), 0)

    def test_pending_blocks_closure(self):
        """Test open transactions block closure"""
        with pytest.raises(ClosureNotAllowedError):
            self.rule.check(lira('0'), 1)


class TestCustomerAccountLimitRule:
    """Test per-customer account counts"""

    def setup_method(self):
        """Set up test fixtures"""
        self.limits = {AccountType.CHECKING: 3, AccountType.SAVINGS: 2}

    def test_under_limit(self):
        """Test customers below the limit pass"""
        assert customer_account_limit_rule.is_satisfied(2, AccountType.CHECKING, self.limits)

    def test_at_limit(self):
        """Test customers at the limit fail"""
        with pytest.raises(CustomerAccountLimitError):
            customer_account_limit_rule.check(2, AccountType.SAVINGS, self.limits)

    def test_unlimited_types(self):
        """Test types without a configured limit always pass"""
        assert customer_account_limit_rule.is_satisfied(50, AccountType.INVESTMENT, self.limits)
