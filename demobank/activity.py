"""
Account Activity Module

Append-only audit records produced by account operations. Each activity is
hash-chained to the previous activity of the same account with SHA-256, so a
tampered or reordered log can be detected with ``verify_chain``.
"""

import hashlib
import json
from datetime import datetime, timezone
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from enum import Enum
import uuid

from .currency import Money
from .storage import StorageRecord


class ActivityType(Enum):
    """Kinds of recorded account activity"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    FEE = "fee"
    INTEREST = "interest"
    NAME_UPDATED = "name_updated"
    FROZEN = "frozen"
    UNFROZEN = "unfrozen"
    CLOSED = "closed"
    WITHDRAWAL_INITIATED = "withdrawal_initiated"
    TRANSACTION_SETTLED = "transaction_settled"
    TRANSACTION_FAILED = "transaction_failed"
    TRANSACTION_CANCELLED = "transaction_cancelled"


def _convert_value(value):
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, Money):
        return value.to_dict()
    elif isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [_convert_value(v) for v in value]
    return value


@dataclass
class AccountActivity(StorageRecord):
    """
    Immutable audit record with balance snapshot and hash chaining
    """
    account_id: str
    activity_type: ActivityType
    description: str
    timestamp: datetime
    balance_before: Money
    balance_after: Money
    amount: Optional[Money] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    previous_hash: str = ""
    current_hash: str = ""

    def __post_init__(self):
        # Metadata must stay JSON serializable for hashing and storage
        self.metadata = {k: _convert_value(v) for k, v in self.metadata.items()}

    @classmethod
    def record(
        cls,
        account_id: str,
        activity_type: ActivityType,
        description: str,
        balance_before: Money,
        balance_after: Money,
        previous_hash: str,
        amount: Optional[Money] = None,
        metadata: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> 'AccountActivity':
        """Create an activity and seal it with its chain hash"""
        now = timestamp or datetime.now(timezone.utc)
        activity = cls(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_id=account_id,
            activity_type=activity_type,
            description=description,
            timestamp=now,
            balance_before=balance_before,
            balance_after=balance_after,
            amount=amount,
            metadata=metadata or {},
            previous_hash=previous_hash,
        )
        activity.current_hash = activity.calculate_hash()
        return activity

    def calculate_hash(self) -> str:
        """
        SHA-256 over every field except current_hash
        """
        hash_data = {
            'id': self.id,
            'account_id': self.account_id,
            'activity_type': self.activity_type.value,
            'description': self.description,
            'timestamp': self.timestamp.isoformat(),
            'balance_before': self.balance_before.to_dict(),
            'balance_after': self.balance_after.to_dict(),
            'amount': self.amount.to_dict() if self.amount else None,
            'metadata': self.metadata,
            'previous_hash': self.previous_hash,
        }
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'account_id': self.account_id,
            'activity_type': self.activity_type.value,
            'description': self.description,
            'timestamp': self.timestamp.isoformat(),
            'balance_before': self.balance_before.to_dict(),
            'balance_after': self.balance_after.to_dict(),
            'amount': self.amount.to_dict() if self.amount else None,
            'metadata': self.metadata,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccountActivity':
        """Create AccountActivity from dictionary"""
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_id=data['account_id'],
            activity_type=ActivityType(data['activity_type']),
            description=data['description'],
            timestamp=datetime.fromisoformat(data['timestamp']),
            balance_before=Money.from_dict(data['balance_before']),
            balance_after=Money.from_dict(data['balance_after']),
            amount=Money.from_dict(data['amount']) if data.get('amount') else None,
            metadata=data.get('metadata') or {},
            previous_hash=data.get('previous_hash', ""),
            current_hash=data.get('current_hash', ""),
        )


def verify_chain(activities: Sequence[AccountActivity]) -> Dict[str, Any]:
    """
    Verify hashes and links of an ordered activity log

    Returns:
        Dict with ``valid`` flag, ``checked`` count and a list of ``errors``
    """
    errors: List[str] = []
    previous = ""
    for index, activity in enumerate(activities):
        if not activity.verify_hash():
            errors.append(f"Activity {activity.id} at position {index} has an invalid hash")
        if activity.previous_hash != previous:
            errors.append(f"Activity {activity.id} at position {index} breaks the chain")
        previous = activity.current_hash
    return {'valid': not errors, 'checked': len(activities), 'errors': errors}
