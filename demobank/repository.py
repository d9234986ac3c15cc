"""
Account Repository Module

Persists Account aggregates as JSON documents (with their transactions and
activities embedded) on any StorageInterface backend, and enforces
optimistic concurrency: a save names the version it loaded and is rejected
when the stored version has moved on.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .accounts import Account
from .activity import AccountActivity
from .currency import Money
from .exceptions import AccountNotFoundError, ConcurrencyConflictError
from .logging_config import get_logger, log_action
from .storage import StorageInterface
from .transactions import Transaction
from .values import AccountNumber, AccountStatus, AccountType, CustomerId


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _money(value: Optional[Dict[str, str]]) -> Optional[Money]:
    return Money.from_dict(value) if value else None


class AccountRepository:
    """
    Storage collaborator for Account aggregates
    """

    def __init__(self, storage: StorageInterface, table_name: str = "accounts"):
        self.storage = storage
        self.table_name = table_name
        self.logger = get_logger("demobank.repository")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, account_id: str) -> Account:
        """
        Raises:
            AccountNotFoundError: No account with this id
        """
        data = self.storage.load(self.table_name, account_id)
        if data is None:
            raise AccountNotFoundError(account_id)
        return self._account_from_dict(data)

    def load_by_account_number(self, account_number: Union[AccountNumber, str]) -> Account:
        """
        Raises:
            AccountNotFoundError: No account with this number
        """
        number = str(account_number).strip()
        records = self.storage.find(self.table_name, {"account_number": number})
        if not records:
            raise AccountNotFoundError(number)
        return self._account_from_dict(records[0])

    def exists(self, account_id: str) -> bool:
        return self.storage.exists(self.table_name, account_id)

    def account_number_exists(self, account_number: Union[AccountNumber, str]) -> bool:
        return bool(self.storage.find(self.table_name, {"account_number": str(account_number)}))

    def find_by_customer(self, customer_id: Union[CustomerId, str]) -> List[Account]:
        """All accounts of a customer, in any status"""
        customer = str(CustomerId(str(customer_id)))
        records = self.storage.find(self.table_name, {"customer_id": customer})
        return [self._account_from_dict(record) for record in records]

    def stored_version(self, account_id: str) -> int:
        """Persisted version, 0 when the account was never saved"""
        data = self.storage.load(self.table_name, account_id)
        return data.get("version", 0) if data else 0

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save(self, account: Account, expected_version: int) -> int:
        """
        Persist an account if the stored version still equals expected_version

        Args:
            account: Aggregate to persist
            expected_version: Version the caller loaded (0 for a new account)

        Returns:
            The new persisted version (expected_version + 1)

        Raises:
            ConcurrencyConflictError: Stored version differs from expected_version
        """
        return self.save_all([(account, expected_version)])[0]

    def save_all(self, items: Sequence[Tuple[Account, int]]) -> List[int]:
        """
        Persist several accounts in one atomic storage transaction

        Every version is checked before anything is written, so either all
        accounts are saved or none are.
        """
        new_versions = []
        with self.storage.atomic():
            for account, expected_version in items:
                actual_version = self.stored_version(account.id)
                if actual_version != expected_version:
                    log_action(
                        self.logger, "warning", "Concurrency conflict on save",
                        action="save_account", resource=f"account:{account.id}",
                        extra={"expected_version": expected_version,
                               "actual_version": actual_version},
                    )
                    raise ConcurrencyConflictError(account.id, expected_version, actual_version)

            for account, expected_version in items:
                version = expected_version + 1
                self.storage.save(self.table_name, account.id, self._account_to_dict(account, version))
                new_versions.append(version)

        for (account, _), version in zip(items, new_versions):
            account.mark_persisted(version)
            log_action(
                self.logger, "debug", "Account saved",
                action="save_account", resource=f"account:{account.id}",
                extra={"version": version, "status": account.status.value},
            )
        return new_versions

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def _account_to_dict(self, account: Account, version: int) -> Dict[str, Any]:
        """Convert Account to dictionary for storage"""
        return {
            'id': account.id,
            'account_number': account.account_number.value,
            'customer_id': account.customer_id.value,
            'name': account.name,
            'account_type': account.account_type.value,
            'status': account.status.value,
            'balance': account.balance.to_dict(),
            'minimum_balance': account.minimum_balance.to_dict() if account.minimum_balance else None,
            'daily_transaction_limit': (account.daily_transaction_limit.to_dict()
                                        if account.daily_transaction_limit else None),
            'opened_at': account.opened_at.isoformat(),
            'created_at': account.opened_at.isoformat(),
            'updated_at': account.updated_at.isoformat(),
            'last_transaction_at': account.last_transaction_at.isoformat() if account.last_transaction_at else None,
            'closed_at': account.closed_at.isoformat() if account.closed_at else None,
            'version': version,
            'transactions': [t.to_dict() for t in account.transactions],
            'activities': [a.to_dict() for a in account.activities],
        }

    def _account_from_dict(self, data: Dict[str, Any]) -> Account:
        """Convert dictionary to Account"""
        return Account(
            id=data['id'],
            account_number=AccountNumber(data['account_number']),
            customer_id=CustomerId(data['customer_id']),
            name=data['name'],
            account_type=AccountType(data['account_type']),
            status=AccountStatus(data['status']),
            balance=Money.from_dict(data['balance']),
            minimum_balance=_money(data.get('minimum_balance')),
            daily_transaction_limit=_money(data.get('daily_transaction_limit')),
            opened_at=datetime.fromisoformat(data['opened_at']),
            updated_at=_dt(data.get('updated_at')),
            last_transaction_at=_dt(data.get('last_transaction_at')),
            closed_at=_dt(data.get('closed_at')),
            transactions=[Transaction.from_dict(t) for t in data.get('transactions', [])],
            activities=[AccountActivity.from_dict(a) for a in data.get('activities', [])],
            version=data.get('version', 0),
        )
