"""Booking domain models for the apartment rentals platform."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain import entities
from apps.bookings.domain.entities import BookingStatus
from shared.domain.base import EventRecorder
from shared.domain.value_objects import DateRange, Money


class Booking(EventRecorder, models.Model):
    """Apartment reservation made by a tenant.

    Status changes go through ``apply`` so that every change follows the
    lifecycle transition table. Bookings are never deleted.
    """

    class Status(models.TextChoices):
        PENDING = BookingStatus.PENDING.value, _("Pending owner approval")
        APPROVED = BookingStatus.APPROVED.value, _("Approved")
        REJECTED = BookingStatus.REJECTED.value, _("Rejected")
        CANCELLED = BookingStatus.CANCELLED.value, _("Cancelled")
        MODIFIED_PENDING = BookingStatus.MODIFIED_PENDING.value, _("Modification pending")
        MODIFIED_APPROVED = BookingStatus.MODIFIED_APPROVED.value, _("Modification approved")
        MODIFIED_REJECTED = BookingStatus.MODIFIED_REJECTED.value, _("Modification rejected")
        COMPLETED = BookingStatus.COMPLETED.value, _("Completed")

    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    apartment = models.ForeignKey(
        "apartments.Apartment",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    check_in_date = models.DateField()
    check_out_date = models.DateField()
    number_of_guests = models.PositiveSmallIntegerField(null=True, blank=True)
    payment_method = models.CharField(max_length=50)
    total_rent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Rent fixed at creation or modification time."),
    )
    status = models.CharField(
        max_length=32,
        choices=Status.choices,
        default=Status.PENDING,
    )
    previous_check_in_date = models.DateField(null=True, blank=True)
    previous_check_out_date = models.DateField(null=True, blank=True)
    previous_number_of_guests = models.PositiveSmallIntegerField(null=True, blank=True)
    previous_total_rent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Values before the latest modification request, kept for audit."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out_date__gt=models.F("check_in_date")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(total_rent__gte=0),
                name="booking_rent_non_negative",
            ),
        ]
        indexes = [
            models.Index(
                fields=["apartment", "check_in_date", "check_out_date"],
                name="booking_apartment_dates_idx",
            ),
            models.Index(fields=["tenant", "status"], name="booking_tenant_status_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} for apartment {self.apartment_id} ({self.status})"

    @property
    def lifecycle_status(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def dates(self) -> DateRange:
        return DateRange(self.check_in_date, self.check_out_date)

    @property
    def rent(self) -> Money:
        return Money(self.total_rent)

    def ensure_allowed(self, action: entities.BookingAction) -> BookingStatus:
        """Target status for ``action``; raises InvalidStateError."""
        return entities.transition(self.lifecycle_status, action)

    def apply(self, action: entities.BookingAction) -> BookingStatus:
        """Move to the next status; does not save."""
        target = self.ensure_allowed(action)
        self.status = target.value
        return target

    def snapshot_for_modification(self) -> None:
        self.previous_check_in_date = self.check_in_date
        self.previous_check_out_date = self.check_out_date
        self.previous_number_of_guests = self.number_of_guests
        self.previous_total_rent = self.total_rent

    def can_cancel(self, now: datetime) -> bool:
        return entities.can_cancel(self.lifecycle_status, self.check_in_date, now)

    def can_modify(self, now: datetime) -> bool:
        return entities.can_modify(self.lifecycle_status, self.check_in_date, now)

    def can_rate(self, today: date) -> bool:
        return entities.can_rate(
            self.lifecycle_status, self.check_out_date, today, self.has_rating
        )

    @property
    def has_rating(self) -> bool:
        return hasattr(self, "rating")
