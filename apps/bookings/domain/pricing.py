"""
Rent Calculator

Dual pricing policy: stays up to 30 nights are billed per night; longer
stays are billed at whichever is cheaper, per night or per started
30-night month.
"""

from datetime import date
from decimal import Decimal

from shared.domain.value_objects import DateRange, Money

LONG_STAY_THRESHOLD = 30
MONTH_LENGTH = 30


def billed_months(nights: int) -> int:
    """Started 30-night months (ceiling division)"""
    return -(-nights // MONTH_LENGTH)


def calculate_rent(
    nightly_price: Money | Decimal,
    monthly_price: Money | Decimal,
    check_in: date,
    check_out: date,
) -> Money:
    """
    Total rent for a stay

    Pure and deterministic. The caller guarantees check_out > check_in.

    Examples:
        - 30 nights at 10.00 -> 300.00 (nightly only)
        - 31 nights at 10.00, monthly 200.00 -> min(310.00, 400.00) = 310.00
        - 31 nights at 100.00, monthly 1000.00 -> min(3100.00, 2000.00) = 2000.00
    """
    nightly = nightly_price if isinstance(nightly_price, Money) else Money(nightly_price)
    monthly = monthly_price if isinstance(monthly_price, Money) else Money(monthly_price)
    nights = DateRange(check_in, check_out).nights

    by_night = nightly * nights
    if nights <= LONG_STAY_THRESHOLD:
        return by_night

    by_month = monthly * billed_months(nights)
    return min(by_night, by_month)
