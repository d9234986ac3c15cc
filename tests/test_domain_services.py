"""
Test suite for cross-aggregate domain logic

Tests transfers between two in-memory accounts, per-customer account limits,
interest delegation and maintenance fee calculation.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone, timedelta

from demobank.accounts import Account
from demobank.currency import Money
from demobank.domain_services import AccountDomainService
from demobank.events import DomainEvent
from demobank.exceptions import (
    AccountNotActiveError, CustomerAccountLimitError, DailyLimitExceededError,
    InsufficientFundsError, InvalidInputError, SameAccountError, TransferMismatchError,
)
from demobank.transactions import TransactionType
from demobank.values import AccountNumber, AccountType, CustomerId


def money(amount, currency="TRY"):
    return Money(Decimal(amount), currency)


def make_account(balance='0', account_type=AccountType.CHECKING, suffix="000000000001",
                 currency="TRY", **kwargs):
    account = Account.create(
        account_number=AccountNumber.build(account_type, suffix),
        customer_id=CustomerId.new(),
        name="Test Account",
        account_type=account_type,
        initial_balance=money(balance, currency),
        **kwargs
    )
    account.pull_domain_events()
    return account


class TestTransfer:
    """Test transfer_between_accounts"""

    def setup_method(self):
        """Set up test fixtures"""
        self.service = AccountDomainService()
        self.source = make_account('1000', suffix="000000000001")
        self.target = make_account('0', suffix="000000000002")

    def test_transfer(self):
        """Test balances, paired transactions and the single transfer event"""
        result = self.service.transfer_between_accounts(
            self.source, self.target, money('400'), "Rent share")

        assert self.source.balance == money('600')
        assert self.target.balance == money('400')

        assert len(self.source.transactions) == 1
        assert len(self.target.transactions) == 1
        debit = self.source.transactions[0]
        credit = self.target.transactions[0]
        assert debit.transaction_type == TransactionType.TRANSFER_OUT
        assert credit.transaction_type == TransactionType.TRANSFER_IN
        assert debit.amount == credit.amount == money('400')
        assert debit.related_transaction_id == credit.id
        assert credit.related_transaction_id == debit.id
        assert debit.external_reference == credit.external_reference == result.transfer_id
        assert result.debit_transaction is debit
        assert result.credit_transaction is credit
        assert debit.description == "Transfer to 10000000000002: Rent share"
        assert credit.description == "Transfer from 10000000000001: Rent share"

        events = self.source.pending_domain_events + self.target.pending_domain_events
        transferred = [e for e in events if e.event_type == DomainEvent.MONEY_TRANSFERRED]
        assert len(transferred) == 1
        assert transferred[0].data["from_account_id"] == self.source.id
        assert transferred[0].data["to_account_id"] == self.target.id
        assert [e.event_type for e in self.target.pending_domain_events] == [DomainEvent.MONEY_DEPOSITED]

    def test_same_account(self):
        """Test transferring to the same account fails"""
        with pytest.raises(SameAccountError):
            self.service.transfer_between_accounts(self.source, self.source, money('1'))

    def test_type_mismatch(self):
        """Test transfers require the same account type"""
        savings = make_account('100', AccountType.SAVINGS)
        with pytest.raises(TransferMismatchError):
            self.service.transfer_between_accounts(self.source, savings, money('1'))

    def test_currency_mismatch(self):
        """Test transfers require the same currency"""
        dollars = make_account('0', suffix="000000000003", currency="USD")
        with pytest.raises(TransferMismatchError):
            self.service.transfer_between_accounts(self.source, dollars, money('1'))

    def test_both_accounts_must_be_active(self):
        """Test a frozen receiver blocks the transfer before any debit"""
        self.target.freeze("Review")
        with pytest.raises(AccountNotActiveError):
            self.service.transfer_between_accounts(self.source, self.target, money('100'))
        assert self.source.balance == money('1000')
        assert self.source.transactions == []

    def test_insufficient_funds_changes_nothing(self):
        """Test a failed debit leaves both accounts untouched"""
        with pytest.raises(InsufficientFundsError):
            self.service.transfer_between_accounts(self.source, self.target, money('1000.01'))
        assert self.source.balance == money('1000')
        assert self.target.balance.is_zero()
        assert self.source.pending_domain_events == []
        assert self.target.pending_domain_events == []

    def test_daily_limit_applies_to_sender(self):
        """Test the debit leg respects the sender's daily limit"""
        limited = make_account('1000', suffix="000000000004", daily_transaction_limit=money('100'))
        with pytest.raises(DailyLimitExceededError):
            self.service.transfer_between_accounts(limited, self.target, money('150'))

    def test_non_positive_amount(self):
        """Test zero transfers are rejected"""
        with pytest.raises(InvalidInputError):
            self.service.transfer_between_accounts(self.source, self.target, money('0'))


class TestAccountCreationLimits:
    """Test validate_account_creation"""

    def setup_method(self):
        """Set up test fixtures"""
        self.service = AccountDomainService()
        self.limits = {AccountType.CHECKING: 3, AccountType.SAVINGS: 2}

    def test_under_limit(self):
        """Test a customer below the limit may open another account"""
        existing = [make_account(), make_account()]
        self.service.validate_account_creation(existing, AccountType.CHECKING, self.limits)

    def test_at_limit(self):
        """Test a customer at the limit is refused"""
        existing = [make_account('100', AccountType.SAVINGS), make_account('100', AccountType.SAVINGS)]
        with pytest.raises(CustomerAccountLimitError):
            self.service.validate_account_creation(existing, "savings", self.limits)

    def test_closed_accounts_do_not_count(self):
        """Test only active accounts count toward the limit"""
        closed = make_account('0')
        closed.close()
        existing = [make_account(), make_account(), closed]
        self.service.validate_account_creation(existing, AccountType.CHECKING, self.limits)


class TestFeesAndInterest:
    """Test fee calculation and interest delegation"""

    def setup_method(self):
        """Set up test fixtures"""
        self.service = AccountDomainService()
        self.start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_checking_monthly_fee(self):
        """Test checking accounts pay per 30 days, at least once"""
        account = make_account('100')
        assert self.service.calculate_account_fees(
            account, self.start, self.start + timedelta(days=10)) == money('5')
        assert self.service.calculate_account_fees(
            account, self.start, self.start + timedelta(days=95)) == money('15')

    def test_investment_quarterly_fee(self):
        """Test investment accounts pay per 90 days, at least once"""
        account = make_account('1000', AccountType.INVESTMENT)
        assert self.service.calculate_account_fees(
            account, self.start, self.start + timedelta(days=30)) == money('25')
        assert self.service.calculate_account_fees(
            account, self.start, self.start + timedelta(days=365)) == money('100')

    def test_savings_and_credit_are_free(self):
        """Test fee-free account types"""
        end = self.start + timedelta(days=365)
        assert self.service.calculate_account_fees(
            make_account('100', AccountType.SAVINGS), self.start, end).is_zero()
        assert self.service.calculate_account_fees(
            make_account('0', AccountType.CREDIT), self.start, end).is_zero()

    def test_custom_fee_schedule(self):
        """Test configured fee amounts are used"""
        service = AccountDomainService(checking_monthly_fee=Decimal('7.50'))
        assert service.calculate_account_fees(
            make_account('10'), self.start, self.start + timedelta(days=60)) == money('15')

    def test_inverted_period(self):
        """Test an end before the start is rejected"""
        with pytest.raises(InvalidInputError):
            self.service.calculate_account_fees(make_account(), self.start, self.start - timedelta(days=1))

    def test_apply_interest(self):
        """Test interest is delegated to the account"""
        account = make_account('2000', AccountType.SAVINGS)
        transaction = self.service.apply_interest(account, Decimal('0.1'))
        assert transaction.amount == money('200')
        assert account.balance == money('2200')

    def test_can_perform_transaction(self):
        """Test the quick eligibility check"""
        account = make_account('100')
        assert self.service.can_perform_transaction(account, money('100'), "withdrawal")
        assert not self.service.can_perform_transaction(account, money('100.01'), "transfer")
        assert self.service.can_perform_transaction(account, money('1'), "deposit")
        assert not self.service.can_perform_transaction(account, money('1'), "unknown")
        account.freeze("Review")
        assert not self.service.can_perform_transaction(account, money('1'), "deposit")
