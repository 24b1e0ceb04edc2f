"""
Clock

The lifecycle never reads the wall clock directly; it receives a
``Clock`` callable so tests can pin "now" for the 24-hour guards.
"""

from datetime import date, datetime, time, timedelta
from typing import Callable

from django.utils import timezone

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current aware datetime in UTC."""
    return timezone.now()


def fixed_clock(moment: datetime) -> Clock:
    """Clock that always returns ``moment``."""
    def _now() -> datetime:
        return moment
    return _now


def local_date(moment: datetime) -> date:
    """Calendar date of ``moment`` in the project time zone."""
    if timezone.is_aware(moment):
        return timezone.localtime(moment).date()
    return moment.date()


def start_of_day(day: date, reference: datetime) -> datetime:
    """Midnight of ``day``, aware in the project time zone when ``reference`` is aware."""
    midnight = datetime.combine(day, time.min)
    if timezone.is_aware(reference):
        return timezone.make_aware(midnight)
    return midnight


def time_until(day: date, now: datetime) -> timedelta:
    """Time left from ``now`` until midnight of ``day``."""
    return start_of_day(day, now) - now
