"""Apartment domain models for the apartment rentals platform."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Apartment(models.Model):
    """Apartment listed for rent by an owner."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        DELETED = "deleted", _("Deleted")

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="apartments",
    )
    governorate = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    address = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    bedrooms = models.PositiveSmallIntegerField(default=1)
    bathrooms = models.PositiveSmallIntegerField(default=1)
    nightly_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    monthly_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    photos = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Stored photo paths, opaque to the booking core."),
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Apartment")
        verbose_name_plural = _("Apartments")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(nightly_price__gte=0) & models.Q(monthly_price__gte=0),
                name="apartment_prices_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["owner", "status"], name="apartment_owner_status_idx"),
            models.Index(fields=["status"], name="apartment_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.address}, {self.city}"

    @property
    def is_bookable(self) -> bool:
        return self.status == self.Status.ACTIVE
