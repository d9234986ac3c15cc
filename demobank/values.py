"""
Account Value Types

Account type and status enumerations plus the AccountNumber and CustomerId
value objects. Account numbers use a strict 14-digit format: a 2-digit
account type prefix followed by 12 digits.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union
import uuid

from .exceptions import InvalidInputError


class AccountType(Enum):
    """Banking product types"""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    CREDIT = "credit"

    @property
    def number_prefix(self) -> str:
        return _TYPE_PREFIXES[self]

    @classmethod
    def parse(cls, value: Union['AccountType', str]) -> 'AccountType':
        """Accept an AccountType or its (case-insensitive) name/value"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        valid = ", ".join(t.value for t in cls)
        raise InvalidInputError(f"Account type must be one of: {valid}", field="account_type")


_TYPE_PREFIXES = {
    AccountType.CHECKING: "10",
    AccountType.SAVINGS: "20",
    AccountType.INVESTMENT: "30",
    AccountType.CREDIT: "40",
}


class AccountStatus(Enum):
    """Account lifecycle states"""
    ACTIVE = "active"      # Normal operation
    FROZEN = "frozen"      # Temporarily suspended
    CLOSED = "closed"      # Permanently closed (terminal)


@dataclass(frozen=True)
class AccountNumber:
    """
    External account identifier: type prefix (10/20/30/40) + 12 digits
    """
    value: str

    LENGTH = 14

    def __post_init__(self):
        value = str(self.value).strip() if self.value is not None else ""
        if not value:
            raise InvalidInputError("Account number cannot be empty", field="account_number")
        if len(value) != self.LENGTH or not value.isdigit() or not value.isascii():
            raise InvalidInputError(
                "Invalid account number format: expected 2-digit type prefix and 12 digits",
                field="account_number",
            )
        if value[:2] not in _TYPE_PREFIXES.values():
            raise InvalidInputError(
                f"Unknown account type prefix {value[:2]!r}", field="account_number"
            )
        object.__setattr__(self, 'value', value)

    @classmethod
    def build(cls, account_type: AccountType, digits: str) -> 'AccountNumber':
        return cls(f"{account_type.number_prefix}{digits}")

    @property
    def type_prefix(self) -> str:
        return self.value[:2]

    @property
    def account_type(self) -> AccountType:
        """Account type encoded in the prefix"""
        for account_type, prefix in _TYPE_PREFIXES.items():
            if prefix == self.type_prefix:
                return account_type
        raise InvalidInputError(f"Unknown account type prefix {self.type_prefix!r}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CustomerId:
    """Owning customer identifier (UUID)"""
    value: str

    def __post_init__(self):
        raw = str(self.value).strip() if self.value is not None else ""
        if not raw:
            raise InvalidInputError("Customer ID cannot be empty", field="customer_id")
        try:
            parsed = uuid.UUID(raw)
        except ValueError:
            raise InvalidInputError("Customer ID must be a valid UUID", field="customer_id")
        if parsed.int == 0:
            raise InvalidInputError("Customer ID cannot be empty", field="customer_id")
        object.__setattr__(self, 'value', str(parsed))

    @classmethod
    def new(cls) -> 'CustomerId':
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value
