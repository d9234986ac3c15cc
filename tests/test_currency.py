"""
Test suite for the Money value type

Covers construction rules, precision, arithmetic and comparisons, and
currency mismatch detection.
"""

import pytest
from decimal import Decimal

from demobank.currency import Money, currency_precision, decimal_from_string
from demobank.exceptions import CurrencyMismatchError, InvalidInputError


class TestMoneyConstruction:
    """Test Money creation and validation"""

    def test_valid_money(self):
        """Test creating valid money"""
        money = Money(Decimal('100.50'), "TRY")
        assert money.amount == Decimal('100.50')
        assert money.currency == "TRY"

    def test_currency_code_is_uppercased(self):
        """Test lowercase codes are normalized"""
        assert Money(Decimal('1'), "usd").currency == "USD"

    @pytest.mark.parametrize("code", ["", "US", "USDX", "12A", None])
    def test_invalid_currency_code(self, code):
        """Test currency codes must be exactly 3 letters"""
        with pytest.raises(InvalidInputError):
            Money(Decimal('1'), code)

    def test_negative_amount_rejected(self):
        """Test negative amounts are rejected"""
        with pytest.raises(InvalidInputError):
            Money(Decimal('-0.01'), "TRY")

    def test_tiny_negative_amount_rejected_before_rounding(self):
        """Test a negative amount that would round to zero is still rejected"""
        with pytest.raises(InvalidInputError):
            Money(Decimal('-0.001'), "TRY")

    def test_non_finite_amount_rejected(self):
        """Test NaN and infinity are rejected"""
        with pytest.raises(InvalidInputError):
            Money(Decimal('NaN'), "TRY")
        with pytest.raises(InvalidInputError):
            Money(Decimal('Infinity'), "TRY")

    def test_precision_rounding(self):
        """Test half-up rounding to the currency precision"""
        assert Money(Decimal('10.005'), "TRY").amount == Decimal('10.01')
        assert Money(Decimal('10.004'), "TRY").amount == Decimal('10.00')
        assert Money(Decimal('100.5'), "JPY").amount == Decimal('101')
        assert Money(Decimal('1.0005'), "KWD").amount == Decimal('1.001')

    def test_unlisted_currency_uses_two_places(self):
        """Test unknown codes default to two decimal places"""
        assert currency_precision("XYZ") == 2
        assert Money(Decimal('1.239'), "XYZ").amount == Decimal('1.24')

    def test_string_and_int_amounts(self):
        """Test non-Decimal amounts are converted"""
        assert Money("12.30", "TRY").amount == Decimal('12.30')
        assert Money(5, "TRY").amount == Decimal('5.00')
        assert Money.of("7.5", "EUR") == Money(Decimal('7.50'), "EUR")

    def test_unparseable_amount(self):
        """Test garbage amounts raise InvalidInputError"""
        with pytest.raises(InvalidInputError):
            Money("abc", "TRY")

    def test_zero(self):
        """Test zero factory"""
        zero = Money.zero("TRY")
        assert zero.is_zero()
        assert not zero.is_positive()


class TestMoneyArithmetic:
    """Test Money operations"""

    def setup_method(self):
        """Set up test fixtures"""
        self.hundred = Money(Decimal('100.00'), "TRY")
        self.forty = Money(Decimal('40.00'), "TRY")
        self.dollars = Money(Decimal('40.00'), "USD")

    def test_add(self):
        """Test addition"""
        assert self.hundred.add(self.forty) == Money(Decimal('140.00'), "TRY")
        assert self.hundred + self.forty == Money(Decimal('140.00'), "TRY")

    def test_subtract(self):
        """Test subtraction"""
        assert self.hundred.subtract(self.forty) == Money(Decimal('60.00'), "TRY")
        assert self.hundred - self.forty == Money(Decimal('60.00'), "TRY")

    def test_subtract_to_negative_fails(self):
        """Test subtraction never produces a negative amount"""
        with pytest.raises(InvalidInputError):
            self.forty.subtract(self.hundred)

    def test_subtract_floored(self):
        """Test floored subtraction stops at zero"""
        assert self.forty.subtract_floored(self.hundred).is_zero()

    def test_multiply(self):
        """Test scalar multiplication"""
        assert self.hundred.multiply(Decimal('0.025')) == Money(Decimal('2.50'), "TRY")
        assert self.hundred * 3 == Money(Decimal('300.00'), "TRY")

    def test_multiply_negative_factor_fails(self):
        """Test negative factors are rejected"""
        with pytest.raises(InvalidInputError):
            self.hundred.multiply(Decimal('-1'))

    @pytest.mark.parametrize("factor", ["abc", None, "NaN"])
    def test_multiply_non_numeric_factor_fails(self, factor):
        """Test non-numeric factors raise InvalidInputError"""
        with pytest.raises(InvalidInputError) as exc_info:
            self.hundred.multiply(factor)
        assert exc_info.value.details["field"] == "factor"

    def test_of_non_numeric_amount_fails(self):
        """Test Money.of rejects text that is not a number"""
        with pytest.raises(InvalidInputError):
            Money.of("abc", "TRY")

    def test_comparisons(self):
        """Test comparison helpers"""
        assert self.hundred.is_greater_than(self.forty)
        assert self.hundred.is_greater_or_equal(self.hundred)
        assert self.forty.is_less_than(self.hundred)
        assert self.forty.is_less_or_equal(self.forty)
        assert self.forty < self.hundred
        assert not self.hundred <= self.forty

    def test_cross_currency_operations_fail(self):
        """Test cross-currency add, subtract and compare all fail"""
        with pytest.raises(CurrencyMismatchError):
            self.forty.add(self.dollars)
        with pytest.raises(CurrencyMismatchError):
            self.hundred.subtract(self.dollars)
        with pytest.raises(CurrencyMismatchError):
            self.forty.is_greater_than(self.dollars)
        with pytest.raises(CurrencyMismatchError):
            _ = self.forty < self.dollars

    def test_equality_is_by_value(self):
        """Test money compares by amount and currency"""
        assert Money(Decimal('40'), "TRY") == self.forty
        assert self.forty != self.dollars

    def test_display_format(self):
        """Test display formatting"""
        assert Money(Decimal('1234.5'), "TRY").to_string() == "1,234.50 TRY"
        assert str(Money(Decimal('1000'), "JPY")) == "1,000 JPY"

    def test_dict_conversion(self):
        """Test dict representation keeps the amount as a string"""
        data = self.hundred.to_dict()
        assert data == {"amount": "100.00", "currency": "TRY"}
        assert Money.from_dict(data) == self.hundred


class TestDecimalFromString:
    """Test decimal string parsing helper"""

    def test_plain_and_formatted_values(self):
        """Test common number formats"""
        assert decimal_from_string("5.00") == Decimal('5.00')
        assert decimal_from_string("1,234.56") == Decimal('1234.56')
        assert decimal_from_string("12,5") == Decimal('12.5')
        assert decimal_from_string(" 25 ") == Decimal('25')

    def test_invalid_values(self):
        """Test invalid values raise InvalidInputError"""
        with pytest.raises(InvalidInputError):
            decimal_from_string("")
        with pytest.raises(InvalidInputError):
            decimal_from_string("abc")
