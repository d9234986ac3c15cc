"""
Account Application Service Module

Use-cases over the Account aggregate. Every use-case follows the same
sequence under a per-account lock: load, run the aggregate operation, save
with the loaded version, then drain the queued domain events once and hand
them to the dispatcher. A failed operation leaves storage untouched and
dispatches nothing.
"""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from threading import Lock, RLock
from typing import Callable, Dict, List, Optional, TypeVar, Union

from .accounts import Account
from .config import DemobankConfig, get_config
from .currency import Money, decimal_from_string
from .domain_services import AccountDomainService, TransferResult
from .events import EventDispatcher, EventPayload
from .exceptions import EventDispatchError
from .logging_config import get_logger, log_action, setup_logging
from .numbering import AccountNumberAllocator
from .repository import AccountRepository
from .storage import InMemoryStorage, SQLiteStorage, StorageInterface
from .transactions import Transaction, TransactionType
from .values import AccountNumber, AccountType, CustomerId

T = TypeVar("T")


def create_storage(cfg: DemobankConfig) -> StorageInterface:
    """Storage backend selected by ``storage_backend``"""
    backend = cfg.storage_backend.lower()
    if backend == "memory":
        return InMemoryStorage()
    if backend == "sqlite":
        return SQLiteStorage(cfg.sqlite_path)
    raise ValueError(f"Unknown storage backend: {cfg.storage_backend}")


class AccountService:
    """
    Application layer for account operations
    """

    def __init__(
        self,
        repository: AccountRepository,
        dispatcher: Optional[EventDispatcher] = None,
        allocator: Optional[AccountNumberAllocator] = None,
        domain_service: Optional[AccountDomainService] = None,
        config: Optional[DemobankConfig] = None,
    ):
        self.config = config or get_config()
        self.repository = repository
        self.dispatcher = dispatcher or EventDispatcher()
        self.allocator = allocator or AccountNumberAllocator(
            repository, max_attempts=self.config.account_number_max_attempts)
        self.domain_service = domain_service or AccountDomainService(
            checking_monthly_fee=decimal_from_string(self.config.checking_monthly_fee),
            investment_quarterly_fee=decimal_from_string(self.config.investment_quarterly_fee),
        )
        self.logger = get_logger("demobank.services")

        # key -> [lock, number of callers holding or waiting for it]
        self._locks: Dict[str, list] = {}
        self._locks_guard = Lock()

    @classmethod
    def from_config(cls, cfg: Optional[DemobankConfig] = None) -> 'AccountService':
        """Build a service with logging, storage and collaborators from settings"""
        cfg = cfg or get_config()
        setup_logging(cfg.log_level, fmt=cfg.log_format, log_file=cfg.log_file)
        repository = AccountRepository(create_storage(cfg))
        return cls(repository, EventDispatcher(), config=cfg)

    @property
    def account_limits(self) -> Dict[AccountType, int]:
        return {
            AccountType.CHECKING: self.config.max_checking_accounts_per_customer,
            AccountType.SAVINGS: self.config.max_savings_accounts_per_customer,
        }

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self, *keys: str):
        """
        Hold the locks for all keys, always acquired in sorted order

        A key's lock is dropped from the registry once no caller holds or
        waits for it.
        """
        keys = sorted(set(keys))
        with self._locks_guard:
            locks = []
            for key in keys:
                entry = self._locks.setdefault(key, [RLock(), 0])
                entry[1] += 1
                locks.append(entry[0])
        try:
            for lock in locks:
                lock.acquire()
            try:
                yield
            finally:
                for lock in reversed(locks):
                    lock.release()
        finally:
            with self._locks_guard:
                for key in keys:
                    entry = self._locks[key]
                    entry[1] -= 1
                    if entry[1] == 0:
                        del self._locks[key]

    def _dispatch(self, events: List[EventPayload]) -> None:
        if not events or not self.config.enable_event_dispatch:
            return
        try:
            self.dispatcher.dispatch(events)
        except EventDispatchError as e:
            # State is already persisted at this point
            log_action(
                self.logger, "error", "Event dispatch failed after save",
                action="dispatch_events",
                extra={"failures": e.failures, "event_count": len(events)},
            )

    def _execute(self, account_id: str, action: str, operation: Callable[[Account], T]) -> T:
        """Load, apply, save with the loaded version, then dispatch"""
        with self._locked(account_id):
            account = self.repository.load(account_id)
            expected_version = account.version
            result = operation(account)
            self.repository.save(account, expected_version)
            events = account.pull_domain_events()

        self._dispatch(events)
        log_action(
            self.logger, "info", f"Account operation completed: {action}",
            action=action, resource=f"account:{account_id}",
            extra={"version": account.version, "balance": account.balance.to_string(),
                   "status": account.status.value},
        )
        return result

    # ------------------------------------------------------------------
    # Use-cases
    # ------------------------------------------------------------------

    def open_account(
        self,
        customer_id: Union[CustomerId, str],
        name: str,
        account_type: Union[AccountType, str],
        initial_balance: Union[Money, Decimal, str, int],
        minimum_balance: Optional[Money] = None,
        daily_transaction_limit: Optional[Money] = None,
    ) -> Account:
        """
        Open an account with a freshly allocated account number

        A bare amount is taken in the configured default currency.

        Raises:
            InvalidInputError: Creation rules violated
            CustomerAccountLimitError: Customer holds the maximum of this type
            AllocationFailedError: No unique account number available
        """
        customer = customer_id if isinstance(customer_id, CustomerId) else CustomerId(customer_id)
        account_type = AccountType.parse(account_type)
        if not isinstance(initial_balance, Money):
            initial_balance = Money(initial_balance, self.config.default_currency)

        with self._locked(f"customer:{customer.value}"):
            self.domain_service.validate_account_creation(
                self.repository.find_by_customer(customer), account_type, self.account_limits)
            account_number = self.allocator.allocate(account_type)
            account = Account.create(
                account_number=account_number,
                customer_id=customer,
                name=name,
                account_type=account_type,
                initial_balance=initial_balance,
                minimum_balance=minimum_balance,
                daily_transaction_limit=daily_transaction_limit,
            )
            self.repository.save(account, 0)
            events = account.pull_domain_events()

        self._dispatch(events)
        log_action(
            self.logger, "info", "Account opened",
            action="open_account", resource=f"account:{account.id}",
            extra={"account_number": account.account_number.value,
                   "customer_id": customer.value,
                   "account_type": account_type.value,
                   "initial_balance": initial_balance.to_string()},
        )
        return account

    def deposit(self, account_id: str, amount: Money, description: str) -> Transaction:
        return self._execute(account_id, "deposit", lambda a: a.deposit(amount, description))

    def withdraw(self, account_id: str, amount: Money, description: str) -> Transaction:
        return self._execute(account_id, "withdraw", lambda a: a.withdraw(amount, description))

    def transfer(self, from_account_id: str, to_account_id: str, amount: Money,
                 description: str = "") -> TransferResult:
        """
        Transfer between two stored accounts; both are saved atomically

        Raises:
            SameAccountError, TransferMismatchError, AccountNotActiveError,
            InsufficientFundsError, DailyLimitExceededError,
            ConcurrencyConflictError, AccountNotFoundError
        """
        with self._locked(from_account_id, to_account_id):
            from_account = self.repository.load(from_account_id)
            to_account = self.repository.load(to_account_id)
            from_version = from_account.version
            to_version = to_account.version

            result = self.domain_service.transfer_between_accounts(
                from_account, to_account, amount, description)

            self.repository.save_all([(from_account, from_version), (to_account, to_version)])
            events = from_account.pull_domain_events() + to_account.pull_domain_events()

        self._dispatch(events)
        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"transfer:{result.transfer_id}",
            extra={"from_account_id": from_account_id, "to_account_id": to_account_id,
                   "amount": amount.to_string()},
        )
        return result

    def rename_account(self, account_id: str, new_name: str) -> Account:
        def operation(account: Account) -> Account:
            account.update_name(new_name)
            return account
        return self._execute(account_id, "rename_account", operation)

    def freeze_account(self, account_id: str, reason: str) -> Account:
        def operation(account: Account) -> Account:
            account.freeze(reason)
            return account
        return self._execute(account_id, "freeze_account", operation)

    def unfreeze_account(self, account_id: str) -> Account:
        def operation(account: Account) -> Account:
            account.unfreeze()
            return account
        return self._execute(account_id, "unfreeze_account", operation)

    def close_account(self, account_id: str) -> Account:
        def operation(account: Account) -> Account:
            account.close()
            return account
        return self._execute(account_id, "close_account", operation)

    def apply_interest(self, account_id: str, rate: Union[Decimal, str]) -> Optional[Transaction]:
        return self._execute(account_id, "apply_interest",
                             lambda a: self.domain_service.apply_interest(a, rate))

    def charge_fee(self, account_id: str, amount: Money, description: str) -> Transaction:
        return self._execute(account_id, "charge_fee", lambda a: a.charge_fee(amount, description))

    def charge_maintenance_fees(self, account_id: str, period_start: datetime,
                                period_end: datetime) -> Optional[Transaction]:
        """Charge the maintenance fee due for a period; None when nothing is due"""
        def operation(account: Account) -> Optional[Transaction]:
            fees = self.domain_service.calculate_account_fees(account, period_start, period_end)
            if fees.is_zero():
                return None
            return account.charge_fee(
                fees, f"Maintenance fee {period_start.date()} to {period_end.date()}")

        return self._execute(account_id, "charge_maintenance_fees", operation)

    def initiate_withdrawal(self, account_id: str, amount: Money, description: str,
                            reference: Optional[str] = None) -> Transaction:
        return self._execute(account_id, "initiate_withdrawal",
                             lambda a: a.initiate_withdrawal(amount, description, reference))

    def start_processing(self, account_id: str, transaction_id: str) -> Transaction:
        return self._execute(account_id, "start_processing",
                             lambda a: a.start_processing(transaction_id))

    def settle_transaction(self, account_id: str, transaction_id: str) -> Transaction:
        return self._execute(account_id, "settle_transaction",
                             lambda a: a.settle_transaction(transaction_id))

    def fail_transaction(self, account_id: str, transaction_id: str, reason: str) -> Transaction:
        return self._execute(account_id, "fail_transaction",
                             lambda a: a.fail_transaction(transaction_id, reason))

    def cancel_transaction(self, account_id: str, transaction_id: str, reason: str) -> Transaction:
        return self._execute(account_id, "cancel_transaction",
                             lambda a: a.cancel_transaction(transaction_id, reason))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_account(self, account_id: str) -> Account:
        return self.repository.load(account_id)

    def get_account_by_number(self, account_number: Union[AccountNumber, str]) -> Account:
        return self.repository.load_by_account_number(account_number)

    def get_customer_accounts(self, customer_id: Union[CustomerId, str]) -> List[Account]:
        return self.repository.find_by_customer(customer_id)

    def get_transaction_history(self, account_id: str, from_date: Optional[datetime] = None,
                                to_date: Optional[datetime] = None,
                                transaction_type: Optional[Union[TransactionType, str]] = None) -> List[Transaction]:
        """Transactions of an account, optionally limited to a time range and type"""
        account = self.repository.load(account_id)
        return account.get_transactions(from_date, to_date, transaction_type)
