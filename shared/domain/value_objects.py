"""
Common Value Objects

Value objects used across the booking and ledger domains:
- Money: Fixed-point monetary amount (2 decimal places, round half up)
- DateRange: Half-open range of calendar dates (check-in to check-out)
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal('0.01')


def quantize_money(value) -> Decimal:
    """Round a numeric value to cents using round-half-up."""
    if isinstance(value, float):
        raise TypeError("Floating-point values are not accepted for money")
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, order=True)
class Money:
    """
    Money value object

    Represents a non-negative monetary amount with fixed precision of
    two decimal places. Every arithmetic result is re-quantized with
    ROUND_HALF_UP so repeated transfers never drift.
    """
    amount: Decimal

    def __post_init__(self):
        object.__setattr__(self, 'amount', quantize_money(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")

    @classmethod
    def zero(cls) -> 'Money':
        return cls(Decimal('0'))

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        return Money(self.amount + other.amount)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract; the result must stay non-negative"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        return Money(self.amount - other.amount)

    def __mul__(self, factor) -> 'Money':
        """Multiply by an integer or Decimal factor"""
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * factor)

    __rmul__ = __mul__

    def is_positive(self) -> bool:
        return self.amount > 0

    def __str__(self):
        return f"{self.amount:,.2f}"

    def __repr__(self):
        return f"Money({self.amount})"


@dataclass(frozen=True)
class DateRange:
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    Used for booking periods and availability checks.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Note: end_date is exclusive, so adjacent ranges don't overlap.

        Examples:
            - DateRange(25, 28) overlaps with DateRange(27, 30) -> True
            - DateRange(25, 28) overlaps with DateRange(28, 31) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        # Overlap formula: start1 < end2 AND end1 > start2
        return (self.start_date < other.end_date and
                self.end_date > other.start_date)

    def contains(self, check_date: date) -> bool:
        """start_date is inclusive, end_date is exclusive"""
        return self.start_date <= check_date < self.end_date

    def __len__(self) -> int:
        """Number of nights in this range"""
        return (self.end_date - self.start_date).days

    @property
    def nights(self) -> int:
        return len(self)

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
