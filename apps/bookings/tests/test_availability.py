"""Availability checks and race behaviour of booking creation."""

from __future__ import annotations

import threading
import unittest
from datetime import date
from decimal import Decimal

from django.db import connection, connections
from django.test import TestCase, TransactionTestCase

from apps.bookings.application.bootstrap import build_handlers
from apps.bookings.application.command_handlers import (
    ApproveBookingCommand,
    ApproveModificationCommand,
    CreateBookingCommand,
    RequestModificationCommand,
)
from apps.bookings.models import Booking
from apps.bookings.services import AvailabilityChecker
from apps.users.models import User
from shared.application.clock import fixed_clock
from shared.domain.errors import ConflictError, NotFoundError
from shared.domain.value_objects import DateRange

from .helpers import NOW, balance_of, make_apartment, make_user


class DateRangeOverlapTests(unittest.TestCase):
    def test_adjacent_ranges_do_not_overlap(self) -> None:
        first = DateRange(date(2025, 6, 10), date(2025, 6, 13))
        second = DateRange(date(2025, 6, 13), date(2025, 6, 15))
        self.assertFalse(first.overlaps_with(second))
        self.assertFalse(second.overlaps_with(first))

    def test_nested_range_overlaps(self) -> None:
        outer = DateRange(date(2025, 6, 1), date(2025, 6, 30))
        inner = DateRange(date(2025, 6, 10), date(2025, 6, 11))
        self.assertTrue(outer.overlaps_with(inner))
        self.assertEqual(inner.nights, 1)

    def test_empty_range_is_invalid(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(date(2025, 6, 10), date(2025, 6, 10))


class AvailabilityCheckerTests(TestCase):
    def setUp(self) -> None:
        self.owner = make_user("+963922000001", role=User.RoleChoices.OWNER)
        self.tenant = make_user("+963922000002")
        self.apartment = make_apartment(self.owner)
        self.checker = AvailabilityChecker()

    def book(self, check_in: date, check_out: date, status: str = Booking.Status.APPROVED) -> Booking:
        return Booking.objects.create(
            tenant=self.tenant,
            apartment=self.apartment,
            check_in_date=check_in,
            check_out_date=check_out,
            payment_method="wallet",
            total_rent=Decimal("100.00"),
            status=status,
        )

    def test_touching_endpoints_are_free(self) -> None:
        self.book(date(2025, 6, 10), date(2025, 6, 13))

        self.assertFalse(self.checker.has_conflict(self.apartment.pk, date(2025, 6, 13), date(2025, 6, 15)))
        self.assertFalse(self.checker.has_conflict(self.apartment.pk, date(2025, 6, 7), date(2025, 6, 10)))

    def test_overlaps_conflict(self) -> None:
        booking = self.book(date(2025, 6, 10), date(2025, 6, 13))

        for check_in, check_out in [
            (date(2025, 6, 12), date(2025, 6, 14)),
            (date(2025, 6, 9), date(2025, 6, 11)),
            (date(2025, 6, 11), date(2025, 6, 12)),
            (date(2025, 6, 1), date(2025, 6, 30)),
        ]:
            with self.subTest(check_in=check_in, check_out=check_out):
                conflicts = self.checker.get_conflicting_bookings(self.apartment.pk, check_in, check_out)
                self.assertEqual(list(conflicts), [booking])

    def test_only_blocking_statuses_count(self) -> None:
        for status in (
            Booking.Status.REJECTED,
            Booking.Status.CANCELLED,
            Booking.Status.MODIFIED_PENDING,
            Booking.Status.MODIFIED_REJECTED,
            Booking.Status.COMPLETED,
        ):
            self.book(date(2025, 6, 10), date(2025, 6, 13), status=status)
        self.assertFalse(self.checker.has_conflict(self.apartment.pk, date(2025, 6, 10), date(2025, 6, 13)))

        self.book(date(2025, 6, 10), date(2025, 6, 13), status=Booking.Status.MODIFIED_APPROVED)
        self.assertTrue(self.checker.has_conflict(self.apartment.pk, date(2025, 6, 10), date(2025, 6, 13)))

    def test_excluded_booking_is_ignored(self) -> None:
        booking = self.book(date(2025, 6, 10), date(2025, 6, 13))

        self.assertFalse(
            self.checker.has_conflict(
                self.apartment.pk, date(2025, 6, 11), date(2025, 6, 14), exclude_booking_id=booking.pk
            )
        )

    def test_other_apartments_do_not_interfere(self) -> None:
        self.book(date(2025, 6, 10), date(2025, 6, 13))
        other = make_apartment(self.owner, address="Malki, building 2")

        self.assertFalse(self.checker.has_conflict(other.pk, date(2025, 6, 10), date(2025, 6, 13)))

    def test_lock_apartment_requires_active_listing(self) -> None:
        self.apartment.status = self.apartment.Status.DELETED
        self.apartment.save()

        with self.assertRaises(NotFoundError):
            self.checker.lock_apartment(self.apartment.pk)
        self.assertEqual(self.checker.lock_apartment(self.apartment.pk, require_active=False), self.apartment)


class SequentialCreationTests(TestCase):
    def test_second_overlapping_request_conflicts(self) -> None:
        owner = make_user("+963922000001", role=User.RoleChoices.OWNER)
        apartment = make_apartment(owner)
        first = make_user("+963922000002", funds="500.00")
        second = make_user("+963922000003", funds="500.00")
        create = build_handlers(clock=fixed_clock(NOW))[CreateBookingCommand]

        create(CreateBookingCommand(first.pk, apartment.pk, date(2025, 6, 10), date(2025, 6, 13), "wallet"))
        with self.assertRaises(ConflictError):
            create(CreateBookingCommand(second.pk, apartment.pk, date(2025, 6, 12), date(2025, 6, 14), "wallet"))

        self.assertEqual(balance_of(second), Decimal("500.00"))


class RecordingAvailabilityChecker(AvailabilityChecker):
    """Notes the order of lock and availability calls."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def lock_apartment(self, apartment_id, *, require_active=True):  # type: ignore[override]
        self.calls.append("lock_apartment")
        return super().lock_apartment(apartment_id, require_active=require_active)

    def has_conflict(self, apartment_id, check_in, check_out, *, exclude_booking_id=None):  # type: ignore[override]
        self.calls.append("has_conflict")
        return super().has_conflict(apartment_id, check_in, check_out, exclude_booking_id=exclude_booking_id)


class LockOrderTests(TestCase):
    """Every date-blocking write checks availability under the apartment lock."""

    def setUp(self) -> None:
        self.owner = make_user("+963922000001", role=User.RoleChoices.OWNER)
        self.tenant = make_user("+963922000002", funds="1000.00")
        self.apartment = make_apartment(self.owner)
        self.checker = RecordingAvailabilityChecker()
        self.handlers = build_handlers(clock=fixed_clock(NOW), availability=self.checker)

    def test_create_locks_apartment_before_checking_dates(self) -> None:
        self.handlers[CreateBookingCommand](
            CreateBookingCommand(self.tenant.pk, self.apartment.pk, date(2025, 6, 10), date(2025, 6, 13), "wallet")
        )

        self.assertEqual(self.checker.calls, ["lock_apartment", "has_conflict"])

    def test_owner_modification_decision_locks_before_checking_dates(self) -> None:
        created = self.handlers[CreateBookingCommand](
            CreateBookingCommand(self.tenant.pk, self.apartment.pk, date(2025, 6, 10), date(2025, 6, 13), "wallet")
        )
        self.handlers[ApproveBookingCommand](ApproveBookingCommand(created.booking_id, self.owner.pk))
        self.handlers[RequestModificationCommand](
            RequestModificationCommand(created.booking_id, self.tenant.pk, check_out=date(2025, 6, 14))
        )
        self.checker.calls.clear()

        self.handlers[ApproveModificationCommand](ApproveModificationCommand(created.booking_id, self.owner.pk))

        self.assertEqual(self.checker.calls, ["lock_apartment", "has_conflict"])


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentCreationTests(TransactionTestCase):
    """Two tenants race for the same dates; the apartment lock lets one through."""

    def test_exactly_one_of_two_racing_requests_wins(self) -> None:
        owner = make_user("+963922000001", role=User.RoleChoices.OWNER)
        apartment = make_apartment(owner)
        tenants = [
            make_user("+963922000002", funds="500.00"),
            make_user("+963922000003", funds="500.00"),
        ]
        create = build_handlers(clock=fixed_clock(NOW))[CreateBookingCommand]
        barrier = threading.Barrier(len(tenants))
        outcomes: list = []
        lock = threading.Lock()

        def attempt(tenant: User) -> None:
            try:
                barrier.wait()
                result = create(
                    CreateBookingCommand(tenant.pk, apartment.pk, date(2025, 6, 10), date(2025, 6, 13), "wallet")
                )
                outcome = result
            except ConflictError as e:
                outcome = e
            finally:
                connections.close_all()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(tenant,)) for tenant in tenants]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        conflicts = [outcome for outcome in outcomes if isinstance(outcome, ConflictError)]
        self.assertEqual(len(outcomes), 2)
        self.assertEqual(len(conflicts), 1)
        self.assertEqual(Booking.objects.filter(apartment=apartment).count(), 1)
        paid = sorted(balance_of(tenant) for tenant in tenants)
        self.assertEqual(paid, [Decimal("200.00"), Decimal("500.00")])
