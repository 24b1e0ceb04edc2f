"""Availability checking for booking workflows."""

from __future__ import annotations

import logging
from datetime import date

from django.db import transaction  # type: ignore
from django.db.models import Q, QuerySet  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from apps.apartments.models import Apartment
from apps.bookings.domain.entities import BLOCKING_STATUSES
from shared.domain.errors import NotFoundError

logger = logging.getLogger(__name__)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


class AvailabilityChecker:
    """Decides whether a ``[check_in, check_out)`` stay collides with blocking bookings.

    Conflict checks are only race-free when the caller holds the apartment
    lock from :meth:`lock_apartment` until the new booking row is written.
    """

    def get_conflicting_bookings(
        self,
        apartment_id: int,
        check_in: date,
        check_out: date,
        *,
        exclude_booking_id: int | None = None,
    ) -> QuerySet:
        from .models import Booking  # Local import to prevent circular dependency

        # Half-open intervals: touching endpoints do not overlap
        overlapping_filter = Q(check_in_date__lt=check_out) & Q(check_out_date__gt=check_in)

        bookings_qs = Booking.objects.filter(
            apartment_id=apartment_id,
            status__in=[status.value for status in BLOCKING_STATUSES],
        ).filter(overlapping_filter)

        if exclude_booking_id is not None:
            bookings_qs = bookings_qs.exclude(pk=exclude_booking_id)

        return _lock_queryset_if_possible(bookings_qs.order_by("check_in_date", "pk"))

    def has_conflict(
        self,
        apartment_id: int,
        check_in: date,
        check_out: date,
        *,
        exclude_booking_id: int | None = None,
    ) -> bool:
        conflicts = self.get_conflicting_bookings(
            apartment_id, check_in, check_out, exclude_booking_id=exclude_booking_id
        )
        conflicting_ids = list(conflicts.values_list("pk", flat=True))
        if conflicting_ids:
            logger.info(
                f"Apartment {apartment_id} is busy for {check_in} - {check_out}: "
                f"overlaps bookings {conflicting_ids}"
            )
        return bool(conflicting_ids)

    def lock_apartment(self, apartment_id: int, *, require_active: bool = True) -> Apartment:
        """Take the per-apartment row lock; must run inside a transaction."""
        try:
            apartment = (
                Apartment.objects.select_for_update(of=("self",))
                .select_related("owner")
                .get(pk=apartment_id)
            )
        except Apartment.DoesNotExist:
            raise NotFoundError("Apartment not found", apartment_id=apartment_id)

        if require_active and not apartment.is_bookable:
            raise NotFoundError(
                "Apartment not found or not available",
                apartment_id=apartment_id,
                apartment_status=apartment.status,
            )
        return apartment
