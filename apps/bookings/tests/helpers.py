"""Fixture builders shared by booking, ledger and rating tests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from apps.apartments.models import Apartment
from apps.finances.ledger import Ledger
from apps.users.models import User
from shared.domain.value_objects import Money

# Noon in the project time zone
NOW = timezone.make_aware(datetime(2025, 6, 1, 12, 0))


def make_user(phone: str, role=User.RoleChoices.TENANT, funds: str | None = None) -> User:
    user = User.objects.create_user(phone=phone, password="Secret-pass-123", role=role)
    if funds is not None:
        Ledger().deposit(user.pk, Money(Decimal(funds)), "Test top-up")
        user.refresh_from_db()
    return user


def make_apartment(owner: User, nightly: str = "100.00", monthly: str = "2000.00", **extra) -> Apartment:
    extra.setdefault("governorate", "Damascus")
    extra.setdefault("city", "Damascus")
    extra.setdefault("address", "Mezzeh, building 7")
    return Apartment.objects.create(
        owner=owner,
        nightly_price=Decimal(nightly),
        monthly_price=Decimal(monthly),
        **extra,
    )


def balance_of(user: User) -> Decimal:
    user.refresh_from_db(fields=["balance"])
    return user.balance
