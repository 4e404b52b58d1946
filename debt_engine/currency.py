"""
Money Module

Fixed-point money values with ISO 4217 currency codes. Every amount is a
Decimal quantized to the currency's minor unit. NEVER uses float for
monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Union
from enum import Enum
import re

# High precision for intermediate results such as (1 + r) ** n
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with minor-unit precision"""
    USD = ("USD", 2)
    EUR = ("EUR", 2)
    GBP = ("GBP", 2)
    CHF = ("CHF", 2)
    CAD = ("CAD", 2)
    AUD = ("AUD", 2)
    JPY = ("JPY", 0)  # No minor unit

    def __init__(self, code: str, precision: int):
        self.code = code
        self.precision = precision

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount, e.g. 0.01 for USD"""
        return Decimal('0.1') ** self.precision


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    Every arithmetic result is re-quantized to the currency minor unit.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        rounded = self.amount.quantize(self.currency.minor_unit, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls, currency: Currency) -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __truediv__(self, divisor: Decimal) -> 'Money':
        if not isinstance(divisor, Decimal):
            divisor = Decimal(str(divisor))
        return Money(self.amount / divisor, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.amount, self.currency.code))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def ratio(self, other: 'Money') -> Decimal:
        """Unrounded quotient of two amounts in the same currency"""
        self._check_currency(other, "divide")
        return self.amount / other.amount

    def whole_multiples_of(self, other: 'Money') -> int:
        """How many times `other` fits into this amount, rounded down"""
        self._check_currency(other, "divide")
        return int((self.amount / other.amount).to_integral_value(rounding=ROUND_FLOOR))

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency.precision == 0:
            return f"{self.currency.code} {self.amount:,.0f}"
        return f"{self.currency.code} {self.amount:,.{self.currency.precision}f}"


def to_decimal(value: Union[Decimal, int, str]) -> Decimal:
    """
    Convert a user-supplied amount or rate to Decimal.

    Floats are rejected outright: they would smuggle binary rounding error
    into the fixed-point engine.

    Raises:
        ValueError: If the value cannot be represented as a Decimal
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Refusing to convert {type(value).__name__} {value!r} to Decimal")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        return decimal_from_string(value)
    raise ValueError(f"Cannot convert {value!r} to Decimal")


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats

    Args:
        value: String representation of number, e.g. "1,249.25" or "$ 300"

    Returns:
        Decimal value

    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")

    # Strip currency symbols and whitespace
    clean_value = re.sub(r'[^\d.,\-+]', '', value.strip())

    if ',' in clean_value and '.' in clean_value:
        # Comma is the thousands separator
        clean_value = clean_value.replace(',', '')
    elif clean_value.count(',') == 1:
        whole, fraction = clean_value.split(',')
        if len(fraction) <= 2:
            clean_value = f"{whole}.{fraction}"
        else:
            clean_value = whole + fraction

    try:
        result = Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    if not result.is_finite():
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    return result


def money_from(value: Union[Money, Decimal, int, str], currency: Currency) -> Money:
    """Coerce a Money or raw amount into Money of the given currency"""
    if isinstance(value, Money):
        if value.currency != currency:
            raise ValueError(
                f"Amount currency {value.currency.code} does not match {currency.code}"
            )
        return value
    return Money(to_decimal(value), currency)
