"""
Money Value Module

Immutable amount/currency pair with Decimal precision per ISO 4217 code.
NEVER uses float for monetary values. Amounts are never negative: balances,
limits and transaction amounts are all expressed as non-negative Money.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Union
import re

from .exceptions import CurrencyMismatchError, InvalidInputError

# Set global decimal context for financial precision
getcontext().prec = 28

# Minor-unit precision per currency code; anything unlisted uses 2
CURRENCY_PRECISION = {
    "TRY": 2,
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "CHF": 2,
    "CAD": 2,
    "JPY": 0,
    "KWD": 3,
}
DEFAULT_PRECISION = 2

_CURRENCY_CODE = re.compile(r"^[A-Za-z]{3}$")


def currency_precision(code: str) -> int:
    """Number of minor-unit digits for a currency code"""
    return CURRENCY_PRECISION.get(code, DEFAULT_PRECISION)


def to_decimal(value: Union[Decimal, int, float, str], field: str) -> Decimal:
    """Convert a numeric input to a finite Decimal, raising InvalidInputError otherwise"""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidInputError(f"Invalid {field}: {value!r}", field=field)
    if not result.is_finite():
        raise InvalidInputError(f"Invalid {field}: {value!r}", field=field)
    return result


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    All monetary values MUST use this class.
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        if not isinstance(self.currency, str) or not _CURRENCY_CODE.match(self.currency):
            raise InvalidInputError(
                f"Currency code must be exactly 3 letters, got {self.currency!r}",
                field="currency",
            )
        object.__setattr__(self, 'currency', self.currency.upper())

        amount = self.amount
        if not isinstance(amount, Decimal):
            if isinstance(amount, float):
                amount = Decimal(str(amount))
            else:
                try:
                    amount = Decimal(amount)
                except (InvalidOperation, TypeError, ValueError):
                    raise InvalidInputError(f"Invalid amount: {self.amount!r}", field="amount")
        if not amount.is_finite():
            raise InvalidInputError(f"Invalid amount: {self.amount!r}", field="amount")
        if amount < 0:
            raise InvalidInputError("Amount cannot be negative", field="amount")

        # Round to currency precision
        rounded = amount.quantize(
            Decimal('0.1') ** currency_precision(self.currency),
            rounding=ROUND_HALF_UP
        )
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def of(cls, amount: Union[Decimal, int, str], currency: str) -> 'Money':
        return cls(to_decimal(amount, "amount"), currency)

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(Decimal('0'), currency)

    def _require_same_currency(self, other: 'Money') -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: 'Money') -> 'Money':
        self._require_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: 'Money') -> 'Money':
        """
        Subtract keeping the result non-negative.

        Raises InvalidInputError when the result would be negative; callers
        that need a domain-specific failure must compare first.
        """
        self._require_same_currency(other)
        result = self.amount - other.amount
        if result < 0:
            raise InvalidInputError(
                f"Cannot subtract {other.to_string()} from {self.to_string()}: result cannot be negative"
            )
        return Money(result, self.currency)

    def subtract_floored(self, other: 'Money') -> 'Money':
        """Subtract, flooring the result at zero"""
        self._require_same_currency(other)
        return Money(max(self.amount - other.amount, Decimal('0')), self.currency)

    def multiply(self, factor: Union[Decimal, int, str]) -> 'Money':
        factor = to_decimal(factor, "factor")
        if factor < 0:
            raise InvalidInputError("Factor cannot be negative", field="factor")
        return Money(self.amount * factor, self.currency)

    def __add__(self, other: 'Money') -> 'Money':
        return self.add(other)

    def __sub__(self, other: 'Money') -> 'Money':
        return self.subtract(other)

    def __mul__(self, factor: Union[Decimal, int]) -> 'Money':
        return self.multiply(factor)

    def __lt__(self, other: 'Money') -> bool:
        self._require_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._require_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._require_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._require_same_currency(other)
        return self.amount >= other.amount

    def is_greater_than(self, other: 'Money') -> bool:
        return self > other

    def is_greater_or_equal(self, other: 'Money') -> bool:
        return self >= other

    def is_less_than(self, other: 'Money') -> bool:
        return self < other

    def is_less_or_equal(self, other: 'Money') -> bool:
        return self <= other

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        precision = currency_precision(self.currency)
        return f"{self.amount:,.{precision}f} {self.currency}"

    def to_dict(self) -> dict:
        return {"amount": str(self.amount), "currency": self.currency}

    @classmethod
    def from_dict(cls, data: dict) -> 'Money':
        return cls(Decimal(data["amount"]), data["currency"])

    def __str__(self) -> str:
        return self.to_string()


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number

    Returns:
        Decimal value

    Raises:
        InvalidInputError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise InvalidInputError("Value must be a non-empty string")

    # Remove currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value and '.' in clean_value:
        # Both comma and dot - assume comma is thousands separator
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 3:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise InvalidInputError(f"Cannot convert '{value}' to Decimal")
