"""
Transaction Ledger Module

Transactions are child entities of an Account, created only as a byproduct of
an account operation. Amounts are always positive Money; the direction of the
balance change is carried by the transaction type. Once created, the only
permitted mutation is a status transition:

    PENDING -> PROCESSING -> COMPLETED | FAILED | CANCELLED
    PENDING -> CANCELLED
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional
from enum import Enum
import uuid

from .currency import Money
from .exceptions import InvalidInputError, InvalidTransactionStateError
from .storage import StorageRecord


class TransactionType(Enum):
    """Types of account transactions"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    FEE = "fee"
    INTEREST = "interest"

    @property
    def is_debit(self) -> bool:
        """Debits reduce the balance and count against the daily limit"""
        return self in DEBIT_TYPES

    @property
    def is_credit(self) -> bool:
        return not self.is_debit


DEBIT_TYPES = frozenset({
    TransactionType.WITHDRAWAL,
    TransactionType.TRANSFER_OUT,
    TransactionType.FEE,
})


class TransactionStatus(Enum):
    """States of a transaction"""
    PENDING = "pending"        # Created, funds reserved
    PROCESSING = "processing"  # Being settled
    COMPLETED = "completed"    # Balance updated
    FAILED = "failed"          # Settlement failed
    CANCELLED = "cancelled"    # Withdrawn before settlement

    @property
    def is_open(self) -> bool:
        return self in (TransactionStatus.PENDING, TransactionStatus.PROCESSING)


_ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.PROCESSING, TransactionStatus.CANCELLED},
    TransactionStatus.PROCESSING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    },
    TransactionStatus.COMPLETED: set(),
    TransactionStatus.FAILED: set(),
    TransactionStatus.CANCELLED: set(),
}


@dataclass
class Transaction(StorageRecord):
    """
    Ledger entry belonging to exactly one account (referenced by id only)
    """
    account_id: str
    transaction_type: TransactionType
    amount: Money
    description: str
    timestamp: datetime
    status: TransactionStatus = TransactionStatus.COMPLETED
    external_reference: Optional[str] = None
    related_transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None

    def __post_init__(self):
        if not self.amount.is_positive():
            raise InvalidInputError("Transaction amount must be positive", field="amount")

    @classmethod
    def create(
        cls,
        account_id: str,
        transaction_type: TransactionType,
        amount: Money,
        description: str,
        timestamp: Optional[datetime] = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        external_reference: Optional[str] = None,
        related_transaction_id: Optional[str] = None,
        transaction_id: Optional[str] = None,
    ) -> 'Transaction':
        now = timestamp or datetime.now(timezone.utc)
        return cls(
            id=transaction_id or str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            timestamp=now,
            status=status,
            external_reference=external_reference,
            related_transaction_id=related_transaction_id,
        )

    @property
    def is_debit(self) -> bool:
        return self.transaction_type.is_debit

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    @property
    def is_open(self) -> bool:
        """Pending or processing"""
        return self.status.is_open

    def can_transition_to(self, new_status: TransactionStatus) -> bool:
        return new_status in _ALLOWED_TRANSITIONS[self.status]

    def _transition(self, new_status: TransactionStatus, reason: Optional[str] = None) -> None:
        if not self.can_transition_to(new_status):
            raise InvalidTransactionStateError(
                f"Transaction {self.id} cannot move from {self.status.value} to {new_status.value}",
                transaction_id=self.id,
                current_status=self.status.value,
                requested_status=new_status.value,
            )
        self.status = new_status
        self.updated_at = datetime.now(timezone.utc)
        if reason:
            self.failure_reason = reason

    def mark_processing(self) -> None:
        self._transition(TransactionStatus.PROCESSING)

    def mark_completed(self) -> None:
        self._transition(TransactionStatus.COMPLETED)

    def mark_failed(self, reason: str) -> None:
        self._transition(TransactionStatus.FAILED, reason)

    def mark_cancelled(self, reason: str) -> None:
        self._transition(TransactionStatus.CANCELLED, reason)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'account_id': self.account_id,
            'transaction_type': self.transaction_type.value,
            'amount': str(self.amount.amount),
            'currency': self.amount.currency,
            'description': self.description,
            'timestamp': self.timestamp.isoformat(),
            'status': self.status.value,
            'external_reference': self.external_reference,
            'related_transaction_id': self.related_transaction_id,
            'failure_reason': self.failure_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """Create Transaction from dictionary"""
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_id=data['account_id'],
            transaction_type=TransactionType(data['transaction_type']),
            amount=Money(Decimal(data['amount']), data['currency']),
            description=data['description'],
            timestamp=datetime.fromisoformat(data['timestamp']),
            status=TransactionStatus(data['status']),
            external_reference=data.get('external_reference'),
            related_transaction_id=data.get('related_transaction_id'),
            failure_reason=data.get('failure_reason'),
        )
