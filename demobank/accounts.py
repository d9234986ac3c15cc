"""
Account Aggregate Module

The Account is the single entry point for every balance, limit and status
change. Each operation validates its rules first and only then mutates state,
appends to the transaction/activity ledgers and queues a domain event, so an
operation either applies completely or not at all.

Status machine::

    ACTIVE --freeze--> FROZEN --unfreeze--> ACTIVE
    ACTIVE --close--> CLOSED (terminal)

The aggregate is plain synchronous in-memory logic. It never logs, persists
or dispatches; the application layer saves it with the loaded ``version`` and
then drains ``pull_domain_events`` exactly once.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import uuid

from .activity import AccountActivity, ActivityType, verify_chain
from .currency import Money, to_decimal
from .events import DomainEvent, EventPayload, create_account_event
from .exceptions import (
    AccountNotFrozenError, CurrencyMismatchError, InvalidInputError,
    TransactionNotFoundError,
)
from .rules import (
    account_active_rule, account_creation_rule, account_name_rule,
    available_balance, closure_eligibility_rule, daily_limit_rule,
    same_currency_rule, sufficient_balance_rule, transaction_amount_positive_rule,
)
from .transactions import Transaction, TransactionStatus, TransactionType
from .values import AccountNumber, AccountStatus, AccountType, CustomerId


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _utc_date(moment: datetime):
    return _as_utc(moment).date()


def _money_data(money: Optional[Money]) -> Optional[str]:
    return str(money.amount) if money is not None else None


class Account:
    """
    Bank account aggregate root
    """

    def __init__(
        self,
        *,
        id: str,
        account_number: AccountNumber,
        customer_id: CustomerId,
        name: str,
        account_type: AccountType,
        status: AccountStatus,
        balance: Money,
        opened_at: datetime,
        updated_at: Optional[datetime] = None,
        minimum_balance: Optional[Money] = None,
        daily_transaction_limit: Optional[Money] = None,
        last_transaction_at: Optional[datetime] = None,
        closed_at: Optional[datetime] = None,
        transactions: Optional[List[Transaction]] = None,
        activities: Optional[List[AccountActivity]] = None,
        version: int = 0,
    ):
        self._id = id
        self._account_number = account_number
        self._customer_id = customer_id
        self._name = name
        self._account_type = account_type
        self._status = status
        self._balance = balance
        self._opened_at = opened_at
        self._updated_at = updated_at or opened_at
        self._minimum_balance = minimum_balance
        self._daily_transaction_limit = daily_transaction_limit
        self._last_transaction_at = last_transaction_at
        self._closed_at = closed_at
        self._transactions: List[Transaction] = list(transactions or [])
        self._activities: List[AccountActivity] = list(activities or [])
        self._domain_events: List[EventPayload] = []
        self.version = version

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        account_number: Union[AccountNumber, str],
        customer_id: Union[CustomerId, str],
        name: str,
        account_type: Union[AccountType, str],
        initial_balance: Money,
        minimum_balance: Optional[Money] = None,
        daily_transaction_limit: Optional[Money] = None,
    ) -> 'Account':
        """
        Open a new account in ACTIVE state

        The initial balance fixes the account currency for its whole life.

        Raises:
            InvalidInputError: Name, type, number or initial balance invalid
            CurrencyMismatchError: Limit currencies differ from the balance
        """
        if not isinstance(account_number, AccountNumber):
            account_number = AccountNumber(account_number)
        if not isinstance(customer_id, CustomerId):
            customer_id = CustomerId(customer_id)
        account_type = AccountType.parse(account_type)
        if not isinstance(initial_balance, Money):
            raise InvalidInputError("Initial balance must be Money", field="initial_balance")

        account_creation_rule.check(name, account_type, initial_balance)

        if account_number.account_type != account_type:
            raise InvalidInputError(
                f"Account number {account_number} does not match account type {account_type.value}",
                field="account_number",
            )
        for label, limit in (("Minimum balance", minimum_balance),
                             ("Daily transaction limit", daily_transaction_limit)):
            if limit is not None and limit.currency != initial_balance.currency:
                raise CurrencyMismatchError(
                    initial_balance.currency, limit.currency,
                    f"{label} currency must match account currency",
                )

        now = _utcnow()
        account = cls(
            id=str(uuid.uuid4()),
            account_number=account_number,
            customer_id=customer_id,
            name=name,
            account_type=account_type,
            status=AccountStatus.ACTIVE,
            balance=initial_balance,
            opened_at=now,
            minimum_balance=minimum_balance,
            daily_transaction_limit=daily_transaction_limit,
        )
        account._raise_event(DomainEvent.ACCOUNT_CREATED, {
            "account_number": str(account_number),
            "customer_id": str(customer_id),
            "name": name,
            "account_type": account_type.value,
            "initial_balance": str(initial_balance.amount),
            "currency": initial_balance.currency,
            "minimum_balance": _money_data(minimum_balance),
            "daily_transaction_limit": _money_data(daily_transaction_limit),
        }, now)
        return account

    # ------------------------------------------------------------------
    # State (read-only from outside)
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def account_number(self) -> AccountNumber:
        return self._account_number

    @property
    def customer_id(self) -> CustomerId:
        return self._customer_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def account_type(self) -> AccountType:
        return self._account_type

    @property
    def status(self) -> AccountStatus:
        return self._status

    @property
    def balance(self) -> Money:
        return self._balance

    @property
    def currency(self) -> str:
        return self._balance.currency

    @property
    def minimum_balance(self) -> Optional[Money]:
        return self._minimum_balance

    @property
    def daily_transaction_limit(self) -> Optional[Money]:
        return self._daily_transaction_limit

    @property
    def opened_at(self) -> datetime:
        return self._opened_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def last_transaction_at(self) -> Optional[datetime]:
        return self._last_transaction_at

    @property
    def closed_at(self) -> Optional[datetime]:
        return self._closed_at

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    @property
    def activities(self) -> List[AccountActivity]:
        return list(self._activities)

    @property
    def is_active(self) -> bool:
        return self._status == AccountStatus.ACTIVE

    @property
    def pending_domain_events(self) -> List[EventPayload]:
        return list(self._domain_events)

    def pull_domain_events(self) -> List[EventPayload]:
        """Return queued events and clear the queue (call once after a successful save)"""
        events = self._domain_events
        self._domain_events = []
        return events

    def mark_persisted(self, version: int) -> None:
        """Record the version assigned by storage"""
        self.version = version

    # ------------------------------------------------------------------
    # Balance operations
    # ------------------------------------------------------------------

    def deposit(self, amount: Money, description: str) -> Transaction:
        """
        Credit the account

        Deposits are credits and are never constrained by the daily debit limit.

        Raises:
            InvalidInputError, CurrencyMismatchError, AccountNotActiveError
        """
        self._validate_credit(amount, "Deposit")
        return self._apply_credit(
            amount, TransactionType.DEPOSIT, ActivityType.DEPOSIT, description,
            DomainEvent.MONEY_DEPOSITED,
        )

    def withdraw(self, amount: Money, description: str) -> Transaction:
        """
        Debit the account

        Raises:
            InvalidInputError, CurrencyMismatchError, AccountNotActiveError,
            InsufficientFundsError, DailyLimitExceededError
        """
        self._validate_debit(amount, "Withdrawal")
        return self._apply_debit(
            amount, TransactionType.WITHDRAWAL, ActivityType.WITHDRAWAL, description,
            DomainEvent.MONEY_WITHDRAWN,
        )

    def transfer_out(
        self,
        amount: Money,
        to_account_id: str,
        to_account_number: AccountNumber,
        description: str,
        transfer_id: str,
        transaction_id: Optional[str] = None,
        related_transaction_id: Optional[str] = None,
    ) -> Transaction:
        """Debit leg of a transfer; queues the MONEY_TRANSFERRED event"""
        self._validate_debit(amount, "Transfer")
        return self._apply_debit(
            amount, TransactionType.TRANSFER_OUT, ActivityType.TRANSFER_OUT,
            f"Transfer to {to_account_number}: {description}",
            DomainEvent.MONEY_TRANSFERRED,
            external_reference=transfer_id,
            transaction_id=transaction_id,
            related_transaction_id=related_transaction_id,
            event_data={
                "transfer_id": transfer_id,
                "from_account_id": self._id,
                "from_account_number": str(self._account_number),
                "to_account_id": to_account_id,
                "to_account_number": str(to_account_number),
            },
        )

    def transfer_in(
        self,
        amount: Money,
        from_account_id: str,
        from_account_number: AccountNumber,
        description: str,
        transfer_id: str,
        transaction_id: Optional[str] = None,
        related_transaction_id: Optional[str] = None,
    ) -> Transaction:
        """Credit leg of a transfer; queues a MONEY_DEPOSITED event"""
        self._validate_credit(amount, "Transfer")
        return self._apply_credit(
            amount, TransactionType.TRANSFER_IN, ActivityType.TRANSFER_IN,
            f"Transfer from {from_account_number}: {description}",
            DomainEvent.MONEY_DEPOSITED,
            external_reference=transfer_id,
            transaction_id=transaction_id,
            related_transaction_id=related_transaction_id,
            event_data={
                "transfer_id": transfer_id,
                "from_account_id": from_account_id,
                "from_account_number": str(from_account_number),
            },
        )

    def charge_fee(self, amount: Money, description: str) -> Transaction:
        """
        Debit a service fee

        Fees need available funds and count toward the daily debit total,
        but are not rejected by the daily limit.
        """
        transaction_amount_positive_rule.check(amount, "Fee")
        same_currency_rule.check(self.currency, amount)
        account_active_rule.check(self._status, "charge fees")
        sufficient_balance_rule.check(
            self._balance, self._minimum_balance, amount, self.get_reserved_amount())
        return self._apply_debit(
            amount, TransactionType.FEE, ActivityType.FEE, description,
            DomainEvent.FEE_CHARGED,
        )

    def apply_interest(self, rate: Union[Decimal, str], description: Optional[str] = None) -> Optional[Transaction]:
        """
        Credit interest of ``balance * rate`` (savings accounts only)

        Returns:
            The interest transaction, or None when the interest rounds to zero
        """
        if self._account_type != AccountType.SAVINGS:
            raise InvalidInputError(
                "Interest can only be applied to savings accounts", field="account_type")
        account_active_rule.check(self._status, "receive interest")
        rate = to_decimal(rate, "rate")
        if rate <= 0 or rate > 1:
            raise InvalidInputError("Interest rate must be between 0 and 1", field="rate")

        interest = self._balance.multiply(rate)
        if interest.is_zero():
            return None
        return self._apply_credit(
            interest, TransactionType.INTEREST, ActivityType.INTEREST,
            description or f"Interest applied at {(rate * 100).quantize(Decimal('0.01'), ROUND_HALF_UP)}% rate",
            DomainEvent.INTEREST_APPLIED,
            event_data={"rate": str(rate)},
        )

    # ------------------------------------------------------------------
    # Pending debits
    # ------------------------------------------------------------------

    def initiate_withdrawal(self, amount: Money, description: str,
                            reference: Optional[str] = None) -> Transaction:
        """
        Reserve funds with a PENDING withdrawal; the balance changes on settlement
        """
        self._validate_debit(amount, "Withdrawal")
        now = _utcnow()
        transaction = Transaction.create(
            account_id=self._id,
            transaction_type=TransactionType.WITHDRAWAL,
            amount=amount,
            description=description,
            timestamp=now,
            status=TransactionStatus.PENDING,
            external_reference=reference,
        )
        self._transactions.append(transaction)
        self._record_activity(
            ActivityType.WITHDRAWAL_INITIATED,
            f"Withdrawal of {amount.to_string()} initiated - {description}",
            self._balance, self._balance, now, amount,
            {"transaction_id": transaction.id},
        )
        self._raise_event(DomainEvent.WITHDRAWAL_INITIATED, {
            "transaction_id": transaction.id,
            "amount": str(amount.amount),
            "currency": amount.currency,
            "description": description,
            "available_balance": str(self.get_available_balance().amount),
        }, now)
        self._updated_at = now
        return transaction

    def start_processing(self, transaction_id: str) -> Transaction:
        transaction = self._find_transaction(transaction_id)
        transaction.mark_processing()
        self._updated_at = _utcnow()
        return transaction

    def settle_transaction(self, transaction_id: str) -> Transaction:
        """
        Complete a pending or processing withdrawal and apply the debit
        """
        transaction = self._find_transaction(transaction_id)
        account_active_rule.check(self._status, "settle transactions")
        if transaction.status == TransactionStatus.PENDING:
            transaction.mark_processing()
        if transaction.status != TransactionStatus.PROCESSING:
            # Raises the appropriate transition error
            transaction.mark_completed()

        now = _utcnow()
        balance_before = self._balance
        self._balance = self._balance.subtract(transaction.amount)
        transaction.mark_completed()
        self._last_transaction_at = now
        self._updated_at = now
        self._record_activity(
            ActivityType.TRANSACTION_SETTLED,
            f"Withdrawn {transaction.amount.to_string()} - {transaction.description}",
            balance_before, self._balance, now, transaction.amount,
            {"transaction_id": transaction.id},
        )
        self._raise_event(DomainEvent.MONEY_WITHDRAWN, {
            "transaction_id": transaction.id,
            "amount": str(transaction.amount.amount),
            "currency": transaction.amount.currency,
            "new_balance": str(self._balance.amount),
            "description": transaction.description,
            "transaction_type": transaction.transaction_type.value,
        }, now)
        return transaction

    def fail_transaction(self, transaction_id: str, reason: str) -> Transaction:
        """Mark a processing transaction failed and release its reservation"""
        return self._close_open_transaction(
            transaction_id, reason, TransactionStatus.FAILED,
            ActivityType.TRANSACTION_FAILED, DomainEvent.TRANSACTION_FAILED,
        )

    def cancel_transaction(self, transaction_id: str, reason: str) -> Transaction:
        """Cancel an open transaction and release its reservation"""
        return self._close_open_transaction(
            transaction_id, reason, TransactionStatus.CANCELLED,
            ActivityType.TRANSACTION_CANCELLED, DomainEvent.TRANSACTION_CANCELLED,
        )

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    def update_name(self, new_name: str) -> None:
        account_name_rule.check(new_name)
        account_active_rule.check(self._status, "update the name")

        now = _utcnow()
        old_name = self._name
        self._name = new_name
        self._updated_at = now
        self._record_activity(
            ActivityType.NAME_UPDATED,
            f"Name changed from '{old_name}' to '{new_name}'",
            self._balance, self._balance, now,
            metadata={"old_name": old_name, "new_name": new_name},
        )
        self._raise_event(DomainEvent.ACCOUNT_NAME_UPDATED, {
            "old_name": old_name,
            "new_name": new_name,
        }, now)

    def freeze(self, reason: str) -> None:
        if not isinstance(reason, str) or not reason.strip():
            raise InvalidInputError("Freeze reason cannot be empty", field="reason")
        account_active_rule.check(self._status, "be frozen")
        self._change_status(AccountStatus.FROZEN, reason, ActivityType.FROZEN,
                            DomainEvent.ACCOUNT_FROZEN, f"Account frozen: {reason}")

    def unfreeze(self) -> None:
        if self._status != AccountStatus.FROZEN:
            raise AccountNotFrozenError(
                f"Account must be frozen to unfreeze (status: {self._status.value})",
                status=self._status.value,
            )
        self._change_status(AccountStatus.ACTIVE, "Account unfrozen", ActivityType.UNFROZEN,
                            DomainEvent.ACCOUNT_UNFROZEN, "Account unfrozen")

    def close(self) -> None:
        """
        Close the account permanently

        Raises:
            AccountNotActiveError: Account is frozen or already closed
            ClosureNotAllowedError: Balance is not zero or debits are pending
        """
        account_active_rule.check(self._status, "be closed")
        closure_eligibility_rule.check(self._balance, len(self.pending_transactions))
        now = _utcnow()
        self._closed_at = now
        self._change_status(
            AccountStatus.CLOSED, "Account closed", ActivityType.CLOSED,
            DomainEvent.ACCOUNT_CLOSED,
            f"Account closed with final balance: {self._balance.to_string()}",
            extra_event_data={"final_balance": str(self._balance.amount),
                              "currency": self.currency},
            now=now,
        )

    # ------------------------------------------------------------------
    # Queries (pure)
    # ------------------------------------------------------------------

    @property
    def pending_transactions(self) -> List[Transaction]:
        return [t for t in self._transactions if t.is_open]

    def has_pending_transactions(self) -> bool:
        return any(t.is_open for t in self._transactions)

    def get_reserved_amount(self) -> Money:
        """Sum of open (pending/processing) debits"""
        total = Money.zero(self.currency)
        for transaction in self._transactions:
            if transaction.is_open and transaction.is_debit:
                total = total.add(transaction.amount)
        return total

    def get_available_balance(self) -> Money:
        """Balance minus minimum balance and reserved funds, floored at zero"""
        return available_balance(self._balance, self._minimum_balance, self.get_reserved_amount())

    def get_today_transaction_total(self) -> Money:
        """Sum of today's (UTC) completed debit transactions"""
        return self._today_debit_total(include_open=False)

    def has_sufficient_balance(self, amount: Money) -> bool:
        return sufficient_balance_rule.is_satisfied(
            self._balance, self._minimum_balance, amount, self.get_reserved_amount())

    def is_daily_limit_exceeded(self, amount: Money) -> bool:
        return not daily_limit_rule.is_satisfied(
            self._daily_transaction_limit, self._today_debit_total(include_open=True), amount)

    def get_transactions(self, from_date: Optional[datetime] = None, to_date: Optional[datetime] = None,
                         transaction_type: Optional[Union[TransactionType, str]] = None) -> List[Transaction]:
        """
        Transaction history in recording order

        Args:
            from_date: Earliest timestamp to include (inclusive)
            to_date: Latest timestamp to include (inclusive)
            transaction_type: Only transactions of this type

        Naive datetimes are taken as UTC.
        """
        start = _as_utc(from_date) if from_date else None
        end = _as_utc(to_date) if to_date else None
        if start and end and start > end:
            raise InvalidInputError("from_date must not be after to_date", field="from_date")
        if transaction_type is not None and not isinstance(transaction_type, TransactionType):
            try:
                transaction_type = TransactionType(str(transaction_type).lower())
            except ValueError:
                raise InvalidInputError(
                    f"Unknown transaction type: {transaction_type}", field="transaction_type")

        history = []
        for transaction in self._transactions:
            moment = _as_utc(transaction.timestamp)
            if start and moment < start:
                continue
            if end and moment > end:
                continue
            if transaction_type and transaction.transaction_type != transaction_type:
                continue
            history.append(transaction)
        return history

    def verify_activity_chain(self) -> Dict[str, Any]:
        return verify_chain(self._activities)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _today_debit_total(self, include_open: bool) -> Money:
        today = _utc_date(_utcnow())
        total = Money.zero(self.currency)
        for transaction in self._transactions:
            if not transaction.is_debit or _utc_date(transaction.timestamp) != today:
                continue
            if transaction.is_completed or (include_open and transaction.is_open):
                total = total.add(transaction.amount)
        return total

    def _validate_credit(self, amount: Money, operation: str) -> None:
        transaction_amount_positive_rule.check(amount, operation)
        same_currency_rule.check(self.currency, amount)
        account_active_rule.check(self._status)

    def _validate_debit(self, amount: Money, operation: str) -> None:
        transaction_amount_positive_rule.check(amount, operation)
        same_currency_rule.check(self.currency, amount)
        account_active_rule.check(self._status)
        sufficient_balance_rule.check(
            self._balance, self._minimum_balance, amount, self.get_reserved_amount())
        daily_limit_rule.check(
            self._daily_transaction_limit, self._today_debit_total(include_open=True), amount)

    def _apply_credit(self, amount: Money, transaction_type: TransactionType,
                      activity_type: ActivityType, description: str,
                      event_type: DomainEvent, **kwargs) -> Transaction:
        return self._apply(amount, transaction_type, activity_type, description,
                           event_type, credit=True, **kwargs)

    def _apply_debit(self, amount: Money, transaction_type: TransactionType,
                     activity_type: ActivityType, description: str,
                     event_type: DomainEvent, **kwargs) -> Transaction:
        return self._apply(amount, transaction_type, activity_type, description,
                           event_type, credit=False, **kwargs)

    def _apply(
        self,
        amount: Money,
        transaction_type: TransactionType,
        activity_type: ActivityType,
        description: str,
        event_type: DomainEvent,
        credit: bool,
        external_reference: Optional[str] = None,
        transaction_id: Optional[str] = None,
        related_transaction_id: Optional[str] = None,
        event_data: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """Apply a validated balance change: one transaction, one activity, one event"""
        now = _utcnow()
        balance_before = self._balance
        new_balance = balance_before.add(amount) if credit else balance_before.subtract(amount)
        transaction = Transaction.create(
            account_id=self._id,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            timestamp=now,
            external_reference=external_reference,
            related_transaction_id=related_transaction_id,
            transaction_id=transaction_id,
        )

        self._balance = new_balance
        self._last_transaction_at = now
        self._updated_at = now
        self._transactions.append(transaction)
        verb = "Deposited" if credit else "Withdrawn"
        self._record_activity(
            activity_type, f"{verb} {amount.to_string()} - {description}",
            balance_before, new_balance, now, amount,
            {"transaction_id": transaction.id},
        )
        data = {
            "transaction_id": transaction.id,
            "transaction_type": transaction_type.value,
            "amount": str(amount.amount),
            "currency": amount.currency,
            "new_balance": str(new_balance.amount),
            "description": description,
        }
        data.update(event_data or {})
        self._raise_event(event_type, data, now)
        return transaction

    def _close_open_transaction(self, transaction_id: str, reason: str,
                                new_status: TransactionStatus, activity_type: ActivityType,
                                event_type: DomainEvent) -> Transaction:
        if not isinstance(reason, str) or not reason.strip():
            raise InvalidInputError("Reason cannot be empty", field="reason")
        transaction = self._find_transaction(transaction_id)
        if new_status == TransactionStatus.FAILED:
            transaction.mark_failed(reason)
        else:
            transaction.mark_cancelled(reason)

        now = _utcnow()
        self._updated_at = now
        self._record_activity(
            activity_type,
            f"Transaction {transaction.id} {new_status.value}: {reason}",
            self._balance, self._balance, now, transaction.amount,
            {"transaction_id": transaction.id, "reason": reason},
        )
        self._raise_event(event_type, {
            "transaction_id": transaction.id,
            "amount": str(transaction.amount.amount),
            "currency": transaction.amount.currency,
            "reason": reason,
        }, now)
        return transaction

    def _change_status(self, new_status: AccountStatus, reason: str,
                       activity_type: ActivityType, event_type: DomainEvent,
                       description: str, extra_event_data: Optional[Dict[str, Any]] = None,
                       now: Optional[datetime] = None) -> None:
        now = now or _utcnow()
        old_status = self._status
        self._status = new_status
        self._updated_at = now
        self._record_activity(
            activity_type, description, self._balance, self._balance, now,
            metadata={"old_status": old_status.value, "new_status": new_status.value,
                      "reason": reason},
        )
        data = {
            "old_status": old_status.value,
            "new_status": new_status.value,
            "reason": reason,
        }
        data.update(extra_event_data or {})
        self._raise_event(event_type, data, now)

    def _find_transaction(self, transaction_id: str) -> Transaction:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        raise TransactionNotFoundError(
            f"Transaction {transaction_id} not found on account {self._id}",
            transaction_id=transaction_id,
        )

    def _record_activity(self, activity_type: ActivityType, description: str,
                         balance_before: Money, balance_after: Money, now: datetime,
                         amount: Optional[Money] = None,
                         metadata: Optional[Dict[str, Any]] = None) -> AccountActivity:
        previous_hash = self._activities[-1].current_hash if self._activities else ""
        activity = AccountActivity.record(
            account_id=self._id,
            activity_type=activity_type,
            description=description,
            balance_before=balance_before,
            balance_after=balance_after,
            previous_hash=previous_hash,
            amount=amount,
            metadata=metadata,
            timestamp=now,
        )
        self._activities.append(activity)
        return activity

    def _raise_event(self, event_type: DomainEvent, data: Dict[str, Any], now: datetime) -> None:
        self._domain_events.append(create_account_event(event_type, self._id, data, now))

    def __repr__(self) -> str:
        return (f"Account(id={self._id!r}, number={self._account_number.value!r}, "
                f"status={self._status.value}, balance={self._balance.to_string()!r})")
